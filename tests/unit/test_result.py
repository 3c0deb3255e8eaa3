"""Tests for Ok/Err result values."""

import pytest

from src.utils.errors import NotFoundError, ValidationError
from src.utils.result import Err, Ok, capture


class TestOk:
    def test_and_then_chains(self) -> None:
        result = Ok(2).and_then(lambda v: Ok(v * 3))

        assert result == Ok(6)

    def test_map_wraps_value(self) -> None:
        assert Ok("a").map(str.upper) == Ok("A")

    def test_unwrap(self) -> None:
        assert Ok(5).unwrap() == 5
        assert Ok(5).is_ok is True


class TestErr:
    """An Err short-circuits every later stage."""

    def test_and_then_skips_stage(self) -> None:
        error = ValidationError("bad")
        calls = []

        result = Err(error).and_then(lambda v: calls.append(v) or Ok(v))

        assert result == Err(error)
        assert calls == []

    def test_map_skips_stage(self) -> None:
        error = NotFoundError("missing")

        assert Err(error).map(lambda v: v + 1).is_ok is False

    def test_unwrap_raises_error(self) -> None:
        error = NotFoundError("missing")

        with pytest.raises(NotFoundError):
            Err(error).unwrap()


class TestCapture:
    """Tests for capture function."""

    def test_success_is_ok(self) -> None:
        assert capture(int, "12") == Ok(12)

    def test_app_error_is_err(self) -> None:
        def fail(value: str) -> None:
            raise ValidationError(f"bad {value}")

        result = capture(fail, "x")

        assert isinstance(result, Err)
        assert result.error.message == "bad x"

    def test_unexpected_exception_propagates(self) -> None:
        """Test non-application errors are left to the handler boundary."""
        with pytest.raises(ValueError):
            capture(int, "not a number")
