"""Exception hierarchy for hostguard."""

from .analysis import (
    AnalysisError,
    FileAccessError,
    FixConflictError,
    InternalInvariantViolation,
    ParseError,
)
from .base import HostguardError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    RuleLoadError,
)
from .taxonomy import ErrorCode

__all__ = [
    "HostguardError",
    "ErrorCode",
    "AnalysisError",
    "FileAccessError",
    "ParseError",
    "FixConflictError",
    "InternalInvariantViolation",
    "ConfigurationError",
    "InvalidConfigError",
    "RuleLoadError",
]
