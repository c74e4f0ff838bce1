"""Tests for the exception hierarchy and error codes."""

import pytest

from hostguard.exceptions import (
    AnalysisError,
    ConfigurationError,
    ErrorCode,
    FileAccessError,
    FixConflictError,
    HostguardError,
    InternalInvariantViolation,
    InvalidConfigError,
    ParseError,
    RuleLoadError,
)
from hostguard.exceptions.taxonomy import RECOVERABLE_CODES, is_recoverable


class TestErrorCodes:
    """Test the ErrorCode enum and recoverability."""

    def test_values_match_names(self):
        for code in ErrorCode:
            assert code.value == code.name

    def test_codes_are_grouped_by_hundreds(self):
        prefixes = {code.value[:3] for code in ErrorCode}
        assert prefixes == {"HG1", "HG2", "HG3", "HG4", "HG9"}

    @pytest.mark.parametrize("code", [ErrorCode.HG100, ErrorCode.HG300, ErrorCode.HG400, ErrorCode.HG401])
    def test_per_file_codes_are_recoverable(self, code):
        assert is_recoverable(code)

    @pytest.mark.parametrize("code", [ErrorCode.HG200, ErrorCode.HG203, ErrorCode.HG900, ErrorCode.HG902])
    def test_run_level_codes_are_fatal(self, code):
        assert not is_recoverable(code)

    def test_no_internal_code_is_recoverable(self):
        assert not any(code.value.startswith("HG9") for code in RECOVERABLE_CODES)


class TestHierarchy:
    """Test which base classes each error belongs to."""

    @pytest.mark.parametrize(
        "cls, base",
        [
            (InvalidConfigError, ConfigurationError),
            (RuleLoadError, ConfigurationError),
            (FileAccessError, AnalysisError),
            (ParseError, AnalysisError),
            (FixConflictError, AnalysisError),
            (InternalInvariantViolation, AnalysisError),
            (ConfigurationError, HostguardError),
            (AnalysisError, HostguardError),
        ],
    )
    def test_subclass(self, cls, base):
        assert issubclass(cls, base)


class TestErrors:
    """Test messages, details and structured output."""

    def test_str_includes_details(self):
        error = InvalidConfigError("fail_on", "fatal", "unknown severity")
        assert str(error) == "Invalid configuration for fail_on: fatal (key=fail_on, value=fatal, reason=unknown severity)"
        assert error.code is ErrorCode.HG200

    def test_str_without_details(self):
        assert str(HostguardError("plain")) == "plain"

    def test_to_json(self):
        error = FileAccessError("A.cs", "file not found")
        assert error.to_json() == {
            "error_code": "HG400",
            "error": "FileAccessError",
            "message": "Cannot access file: A.cs",
            "details": {"filepath": "A.cs", "reason": "file not found"},
            "recoverable": True,
        }

    def test_write_failure_code(self):
        error = FileAccessError("A.cs", "read-only", write=True)
        assert error.code is ErrorCode.HG401
        assert error.message == "Cannot write file: A.cs"

    def test_parse_error_location(self):
        error = ParseError("unterminated string literal", 3, 16)
        assert error.message == "Parse error at 3:16: unterminated string literal"
        named = error.with_path("Bad.cs")
        assert named.path == "Bad.cs"
        assert named.message == "Parse error at Bad.cs:3:16: unterminated string literal"
        assert (named.line, named.column, named.reason) == (3, 16, error.reason)

    def test_rule_load_error_code(self):
        error = RuleLoadError("duplicate rule id 'x'", rule_id="x", code=ErrorCode.HG201)
        assert error.code is ErrorCode.HG201
        assert error.details["rule_id"] == "x"
        assert not error.recoverable

    def test_fix_conflict(self):
        error = FixConflictError("fixed text does not parse", path="A.cs")
        assert error.code is ErrorCode.HG300
        assert error.recoverable
        assert error.details == {"reason": "fixed text does not parse", "path": "A.cs"}

    def test_internal_violation_is_fatal(self):
        error = InternalInvariantViolation("span outside text", code=ErrorCode.HG900)
        assert not error.recoverable
        assert "span outside text" in str(error)
