"""Configuration exceptions: settings values and rule-set loading."""

from typing import Any, Optional

from .base import HostguardError
from .taxonomy import ErrorCode


class ConfigurationError(HostguardError):
    """Base class for configuration-related errors."""

    code = ErrorCode.HG200


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class RuleLoadError(ConfigurationError):
    """Raised when the active rule set cannot be loaded.

    A partially loaded rule set would silently under-report, so this aborts
    the run before any file is processed.
    """

    def __init__(self, reason: str, rule_id: Optional[str] = None, code: ErrorCode = ErrorCode.HG202):
        details = {"reason": reason}
        if rule_id is not None:
            details["rule_id"] = rule_id
        super().__init__(f"Cannot load rule set: {reason}", details=details, code=code)
        self.reason = reason
        self.rule_id = rule_id
