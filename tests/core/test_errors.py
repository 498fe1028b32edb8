"""Tests for logspine.core.errors module."""

import pytest

from logspine.core.errors import (
    ConfigError,
    DrainError,
    DumpError,
    ErrorCategory,
    ErrorContext,
    FlushError,
    InvalidConfigError,
    InvalidLevelError,
    LogSpineError,
    SchedulerStateError,
    StorageError,
    ValidationError,
    WriteError,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        ctx = ErrorContext()
        assert ctx.component is None
        assert ctx.operation is None
        assert ctx.to_dict() == {}

    def test_to_dict_includes_metadata(self):
        ctx = ErrorContext(component="dump-periodically", operation="write", metadata={"lines": 3})
        assert ctx.to_dict() == {
            "component": "dump-periodically",
            "operation": "write",
            "lines": 3,
        }


class TestLogSpineError:
    """Test the base error."""

    def test_defaults(self):
        error = LogSpineError("Something went wrong")
        assert error.message == "Something went wrong"
        assert error.category == ErrorCategory.INTERNAL
        assert error.cause is None
        assert str(error) == "Something went wrong"

    def test_cause_is_chained(self):
        cause = ConnectionError("DNS lookup failed")
        error = LogSpineError("Network error", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause

    def test_with_context_is_fluent(self):
        error = LogSpineError("Drain failed").with_context(
            component="dump-periodically", operation="drain", level="INFO"
        )
        assert error.context.component == "dump-periodically"
        assert error.context.operation == "drain"
        assert error.context.metadata == {"level": "INFO"}

    def test_to_dict(self):
        error = WriteError("Persistence sink rejected batch", cause=OSError("disk full"))
        error.with_context(operation="write")
        d = error.to_dict()
        assert d["error_type"] == "WriteError"
        assert d["category"] == "SCHEDULING"
        assert d["cause"] == "disk full"
        assert d["cause_type"] == "OSError"
        assert d["context"] == {"operation": "write"}

    def test_to_dict_omits_empty_context(self):
        assert "context" not in LogSpineError("x").to_dict()

    def test_repr(self):
        assert repr(StorageError("boom")) == "StorageError('boom', category=STORAGE)"


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls, category",
        [
            (ConfigError, ErrorCategory.CONFIG),
            (ValidationError, ErrorCategory.VALIDATION),
            (StorageError, ErrorCategory.STORAGE),
            (DumpError, ErrorCategory.SCHEDULING),
            (SchedulerStateError, ErrorCategory.SCHEDULING),
        ],
    )
    def test_default_categories(self, cls, category):
        assert cls("x").category == category

    def test_dump_errors_share_base(self):
        for cls in (DrainError, WriteError, FlushError):
            assert issubclass(cls, DumpError)
            assert issubclass(cls, LogSpineError)

    def test_invalid_config_error(self):
        error = InvalidConfigError("period_seconds", 0)
        assert error.key == "period_seconds"
        assert error.value == 0
        assert "period_seconds" in error.message
        assert error.to_dict()["value"] == "0"

    def test_invalid_level_error_is_value_error(self):
        error = InvalidLevelError("loud")
        assert isinstance(error, ValueError)
        assert isinstance(error, ValidationError)
        assert error.field == "level"
        assert error.to_dict()["value"] == "'loud'"
