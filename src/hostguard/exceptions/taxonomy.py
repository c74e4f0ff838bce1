"""Error taxonomy with stable error codes.

Error Code Convention:
    HG1xx - Parse errors
    HG2xx - Configuration and rule-load errors
    HG3xx - Fix errors
    HG4xx - File access errors
    HG9xx - Internal invariant violations
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Structured error codes for observability and debugging."""

    # Parse errors (HG1xx)
    HG100 = "HG100"  # Malformed input (unterminated literal, mismatched delimiter)
    HG101 = "HG101"  # Recoverable syntax error (implicitly closed block)

    # Configuration errors (HG2xx)
    HG200 = "HG200"  # Invalid configuration value
    HG201 = "HG201"  # Duplicate rule id
    HG202 = "HG202"  # Malformed rule definition
    HG203 = "HG203"  # Unknown rule id or category

    # Fix errors (HG3xx)
    HG300 = "HG300"  # Fixed text no longer parses

    # File access errors (HG4xx)
    HG400 = "HG400"  # File unreadable
    HG401 = "HG401"  # File unwritable

    # Internal errors (HG9xx)
    HG900 = "HG900"  # Diagnostic span outside file bounds
    HG901 = "HG901"  # Invalid fix edit (outside the text or overlapping within a proposal)
    HG902 = "HG902"  # Inconsistent rule output (bad span or missing message value)


# Codes whose errors can be recovered at file granularity.
RECOVERABLE_CODES = frozenset(
    {
        ErrorCode.HG100,
        ErrorCode.HG101,
        ErrorCode.HG300,
        ErrorCode.HG400,
        ErrorCode.HG401,
    }
)


def is_recoverable(code: ErrorCode) -> bool:
    """True if an error with this code is handled per file rather than per run."""
    return code in RECOVERABLE_CODES
