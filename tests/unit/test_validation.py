"""Tests for input validation utilities."""

from decimal import Decimal
from typing import Any
import pytest

from src.utils.errors import ErrorCode, ValidationError
from src.utils.responses import encode_cursor
from src.utils.schemas import Field
from src.utils.validation import (
    DEFAULT_PAGE_LIMIT,
    parse_json_body,
    parse_pagination,
    validate_bool_flag,
    validate_choice,
    validate_email,
    validate_identifier,
    validate_payload,
    validate_period,
    validate_positive_int,
    validate_text,
)


class TestValidatePositiveInt:
    """Tests for validate_positive_int function."""

    @pytest.mark.parametrize(
        "value,expected",
        [(5, 5), ("12", 12), (" 7 ", 7), (3.0, 3), (Decimal("4"), 4), ("+8", 8)],
    )
    def test_accepts_integral_values(self, value: Any, expected: int) -> None:
        assert validate_positive_int(value, "id_grupo") == expected

    @pytest.mark.parametrize("value", [True, False, 1.5, "abc", "1.0", "", None, [1], float("nan")])
    def test_rejects_non_integers(self, value: Any) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_positive_int(value, "id_grupo")

        assert exc_info.value.message == "id_grupo must be an integer"
        assert exc_info.value.details == {"field": "id_grupo"}

    @pytest.mark.parametrize("value", [0, -3, "0", "-1"])
    def test_rejects_non_positive(self, value: Any) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_positive_int(value, "id_grupo")

        assert exc_info.value.message == "id_grupo must be greater than 0"

    def test_largest_storable_value(self) -> None:
        assert validate_positive_int("9" * 38, "id_grupo") == 10**38 - 1

    @pytest.mark.parametrize("value", [10**38, int("9" * 40), "9" * 40, "1" + "0" * 5000, 1e300])
    def test_rejects_values_beyond_store_precision(self, value: Any) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_positive_int(value, "id_grupo")

        assert exc_info.value.message == "id_grupo is too large"


class TestValidateText:
    """Tests for validate_text function."""

    def test_trims_value(self) -> None:
        assert validate_text("  Ventas  ", "descripcion", 255) == "Ventas"

    def test_rejects_empty_when_required(self) -> None:
        with pytest.raises(ValidationError, match="required"):
            validate_text("   ", "descripcion", 255)

    def test_allows_empty_when_optional(self) -> None:
        assert validate_text("", "app_version", 20, required=False) == ""

    def test_rejects_too_long(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_text("x" * 256, "descripcion", 255)

        assert exc_info.value.details == {"field": "descripcion", "maxLength": 255}

    def test_length_checked_after_trim(self) -> None:
        assert validate_text(" " + "x" * 255 + " ", "descripcion", 255) == "x" * 255

    @pytest.mark.parametrize("value", ["<script>", "Tom & Jerry", "it's", 'say "hi"', "a > b"])
    def test_rejects_markup_characters(self, value: str) -> None:
        """Test unsafe input is rejected, not silently cleaned."""
        with pytest.raises(ValidationError, match="disallowed characters"):
            validate_text(value, "descripcion", 255)

    def test_rejects_non_string(self) -> None:
        with pytest.raises(ValidationError, match="must be a string"):
            validate_text(12, "descripcion", 255)


class TestValidateBoolFlag:
    @pytest.mark.parametrize(
        "value,expected",
        [(True, True), (False, False), (1, True), (0, False), ("TRUE", True), ("false", False), ("1", True), ("0", False)],
    )
    def test_normalizes(self, value: Any, expected: bool) -> None:
        assert validate_bool_flag(value, "activo") is expected

    @pytest.mark.parametrize("value", ["yes", "", None, [True]])
    def test_rejects_other_values(self, value: Any) -> None:
        with pytest.raises(ValidationError, match="activo must be a boolean"):
            validate_bool_flag(value, "activo")


class TestValidateIdentifier:
    def test_accepts_pattern(self) -> None:
        assert validate_identifier(" user_01-a ", "id_usuario", 50) == "user_01-a"

    def test_accepts_number(self) -> None:
        assert validate_identifier(42, "id_usuario", 50) == "42"

    @pytest.mark.parametrize("value", ["user 1", "user#1", "ñandu"])
    def test_rejects_other_characters(self, value: str) -> None:
        with pytest.raises(ValidationError, match="may only contain"):
            validate_identifier(value, "id_usuario", 50)

    def test_rejects_too_long(self) -> None:
        with pytest.raises(ValidationError, match="cannot exceed 50"):
            validate_identifier("a" * 51, "id_usuario", 50)


class TestValidateEmail:
    def test_lowercases(self) -> None:
        assert validate_email(" Ana@Example.COM ") == "ana@example.com"

    def test_keeps_case_when_asked(self) -> None:
        assert validate_email(" Ana@Example.COM ", lowercase=False) == "Ana@Example.COM"

    @pytest.mark.parametrize("value", ["", "no-at-sign", "a@b", "a b@c.com", None])
    def test_rejects_invalid(self, value: Any) -> None:
        with pytest.raises(ValidationError):
            validate_email(value)


class TestValidatePeriod:
    def test_accepts_month(self) -> None:
        assert validate_period(" 2024-12 ") == "2024-12"

    @pytest.mark.parametrize("value", ["2024-00", "2024-13", "24-05", "2024/05", "2024-5", 202405, None])
    def test_rejects_other_formats(self, value: Any) -> None:
        with pytest.raises(ValidationError, match="YYYY-MM"):
            validate_period(value)


class TestValidateChoice:
    def test_accepts_any_case(self) -> None:
        assert validate_choice("y", "blk", ("Y", "N", "S")) == "Y"

    def test_rejects_unknown(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_choice("X", "blk", ("Y", "N", "S"))

        assert exc_info.value.details["allowed"] == ["Y", "N", "S"]


class TestParseJsonBody:
    """Tests for parse_json_body function."""

    def test_parses_object(self) -> None:
        assert parse_json_body('{"id_grupo": 5}') == {"id_grupo": 5}

    def test_passes_dict_through(self) -> None:
        body = {"id_grupo": 5}

        assert parse_json_body(body) is body

    @pytest.mark.parametrize("body", [None, "", "   "])
    def test_missing_body(self, body: Any) -> None:
        with pytest.raises(ValidationError, match="Request body is required") as exc_info:
            parse_json_body(body)

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_invalid_json(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_json_body("{not json")

        assert exc_info.value.error_code == ErrorCode.INVALID_JSON

    def test_non_object_json(self) -> None:
        with pytest.raises(ValidationError, match="JSON object"):
            parse_json_body("[1, 2]")

    def test_deeply_nested_json(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_json_body("[" * 100000 + "]" * 100000)

        assert exc_info.value.error_code == ErrorCode.INVALID_JSON


class TestParsePagination:
    """Tests for parse_pagination function."""

    def test_defaults(self) -> None:
        assert parse_pagination({}) == (DEFAULT_PAGE_LIMIT, None)

    def test_limit_and_cursor(self) -> None:
        cursor = encode_cursor({"_pk": "CAT_GRUPO#5", "_sk": "METADATA"})

        limit, start_key = parse_pagination({"limit": "10", "lastEvaluatedKey": cursor})

        assert limit == 10
        assert start_key == {"_pk": "CAT_GRUPO#5", "_sk": "METADATA"}

    @pytest.mark.parametrize("limit", ["0", "101", "abc"])
    def test_rejects_bad_limit(self, limit: str) -> None:
        with pytest.raises(ValidationError):
            parse_pagination({"limit": limit})

    @pytest.mark.parametrize("cursor", ["not-json", "%7B%7D", "é", encode_cursor([1])])  # type: ignore[arg-type]
    def test_rejects_bad_cursor(self, cursor: str) -> None:
        with pytest.raises(ValidationError, match="lastEvaluatedKey"):
            parse_pagination({"lastEvaluatedKey": cursor})


class TestValidatePayload:
    """Tests for validate_payload function."""

    FIELDS = (
        Field("id_grupo", validate_positive_int),
        Field("descripcion", lambda v, f: validate_text(v, f, 255)),
        Field("nota", lambda v, f: validate_text(v, f, 10, required=False), required=False),
    )

    def test_full_validation(self) -> None:
        result = validate_payload({"id_grupo": "5", "descripcion": " Ventas ", "extra": 1}, self.FIELDS)

        assert result == {"id_grupo": 5, "descripcion": "Ventas"}

    def test_collects_every_field_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_payload({"id_grupo": 0}, self.FIELDS)

        fields = exc_info.value.details["fields"]
        assert fields == {
            "id_grupo": "id_grupo must be greater than 0",
            "descripcion": "descripcion is required",
        }
        assert exc_info.value.message == "id_grupo must be greater than 0"

    def test_none_counts_as_absent(self) -> None:
        result = validate_payload({"id_grupo": 1, "descripcion": "x", "nota": None}, self.FIELDS)

        assert "nota" not in result

    def test_partial_only_validates_present_fields(self) -> None:
        assert validate_payload({"descripcion": "Nueva"}, self.FIELDS, partial=True) == {
            "descripcion": "Nueva"
        }

    def test_partial_requires_one_field(self) -> None:
        with pytest.raises(ValidationError, match="At least one field must be provided"):
            validate_payload({"unknown": 1}, self.FIELDS, partial=True)
