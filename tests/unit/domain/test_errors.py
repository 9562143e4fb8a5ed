"""Unit tests for perfolio.domain.errors."""

from perfolio.domain.errors import (
    EngineError,
    EngineErrorCode,
    EngineException,
    SchemaValidationError,
    parse_engine_error,
)


class TestEngineException:
    def test_to_engine_error(self):
        exc = EngineException(EngineErrorCode.INVALID_DATE_RANGE, "bad window")

        assert exc.to_engine_error() == EngineError(
            code=EngineErrorCode.INVALID_DATE_RANGE, message="bad window", recoverable=False
        )
        assert str(exc) == "bad window"


class TestParseEngineError:
    """Test mapping arbitrary exceptions to EngineError."""

    def test_engine_exception_keeps_code(self):
        exc = EngineException(EngineErrorCode.WORKER_TERMINATED, "gone", recoverable=False)

        error = parse_engine_error(exc)

        assert error.code is EngineErrorCode.WORKER_TERMINATED
        assert error.recoverable is False

    def test_other_exception_is_recoverable_overflow(self):
        error = parse_engine_error(ZeroDivisionError("division by zero"))

        assert error.code is EngineErrorCode.CALCULATION_OVERFLOW
        assert error.message == "division by zero"
        assert error.recoverable is True

    def test_exception_without_message_uses_class_name(self):
        assert parse_engine_error(OverflowError()).message == "OverflowError"


class TestSchemaValidationError:
    def test_issues_are_listed_in_message(self):
        exc = SchemaValidationError("Invalid portfolio document", ["a: missing", "b: bad"])

        assert exc.issues == ["a: missing", "b: bad"]
        assert str(exc) == "Invalid portfolio document: a: missing; b: bad"

    def test_is_a_value_error(self):
        assert isinstance(SchemaValidationError("x"), ValueError)
