"""
Input validation utilities.

Field-class validators for numeric ids, free text, boolean-like flags,
pattern identifiers and emails, plus request body, pagination and
schema-driven payload validation. Every validator either returns the
sanitized value or raises ValidationError.
"""

import base64
import json
import math
import re
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Tuple

from .errors import ErrorCode, ValidationError

if TYPE_CHECKING:
    from .schemas import Field

# Characters that could be used to inject markup downstream
UNSAFE_TEXT_PATTERN = re.compile(r"[<>'\"&]")

IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

TRUE_STRINGS = {"true", "1"}
FALSE_STRINGS = {"false", "0"}

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 100
MAX_EMAIL_LENGTH = 255

# DynamoDB numbers carry at most 38 significant digits
MAX_STORED_INT = 10**38 - 1


def validate_positive_int(value: Any, field: str) -> int:
    """
    Coerce a numeric identifier to a positive integer.

    Accepts ints, integral floats/Decimals and strings of digits. Booleans,
    fractional numbers, non-numeric strings and values <= 0 are rejected.

    Raises:
        ValidationError: If the value is not a positive integer
    """
    number: Optional[int] = None

    if isinstance(value, bool):
        number = None
    elif isinstance(value, int):
        number = value
    elif isinstance(value, (float, Decimal)):
        if math.isfinite(value) and value == int(value):
            number = int(value)
    elif isinstance(value, str) and INTEGER_PATTERN.match(value.strip()):
        if len(value.strip().lstrip("+-").lstrip("0")) > len(str(MAX_STORED_INT)):
            raise ValidationError(f"{field} is too large", {"field": field})
        number = int(value.strip())

    if number is None:
        raise ValidationError(f"{field} must be an integer", {"field": field})
    if number <= 0:
        raise ValidationError(f"{field} must be greater than 0", {"field": field})
    if number > MAX_STORED_INT:
        raise ValidationError(f"{field} is too large", {"field": field})
    return number


def validate_text(value: Any, field: str, max_length: int, required: bool = True) -> str:
    """
    Validate a free-text field.

    The value is trimmed and length-capped. Input containing any of
    ``< > ' " &`` is rejected rather than cleaned.

    Raises:
        ValidationError: If the value is missing, too long or unsafe
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", {"field": field})

    text = value.strip()
    if required and not text:
        raise ValidationError(f"{field} is required and cannot be empty", {"field": field})
    if len(text) > max_length:
        raise ValidationError(
            f"{field} cannot exceed {max_length} characters",
            {"field": field, "maxLength": max_length},
        )
    if UNSAFE_TEXT_PATTERN.sub("", text) != text:
        raise ValidationError(f"{field} contains disallowed characters", {"field": field})
    return text


def validate_bool_flag(value: Any, field: str) -> bool:
    """
    Normalize a boolean-like flag.

    Accepts booleans, numbers (0 is False, anything else True) and the
    strings "true", "false", "1", "0" in any casing.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValidationError(
        f"{field} must be a boolean (true/false, 1/0)", {"field": field}
    )


def validate_identifier(value: Any, field: str, max_length: int) -> str:
    """Validate a pattern identifier made of letters, digits, '_' and '-'."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(f"{field} must be a string", {"field": field})

    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required and cannot be empty", {"field": field})
    if len(text) > max_length:
        raise ValidationError(
            f"{field} cannot exceed {max_length} characters",
            {"field": field, "maxLength": max_length},
        )
    if not IDENTIFIER_PATTERN.match(text):
        raise ValidationError(
            f"{field} may only contain letters, numbers, '_' and '-'", {"field": field}
        )
    return text


def validate_email(value: Any, field: str = "email", lowercase: bool = True) -> str:
    """
    Validate a trimmed email address.

    Stored addresses are lower-cased. Pass ``lowercase=False`` where the
    address is forwarded as typed, such as a login username.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", {"field": field})

    email = value.strip()
    if lowercase:
        email = email.lower()
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(
            f"{field} cannot exceed {MAX_EMAIL_LENGTH} characters",
            {"field": field, "maxLength": MAX_EMAIL_LENGTH},
        )
    if not EMAIL_PATTERN.match(email):
        raise ValidationError(f"{field} must be a valid email address", {"field": field})
    return email


def validate_period(value: Any, field: str = "periodo") -> str:
    """Validate a calendar month written as YYYY-MM."""
    if isinstance(value, str) and PERIOD_PATTERN.match(value.strip()):
        return value.strip()
    raise ValidationError(f"{field} must be a YYYY-MM month", {"field": field})


def validate_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    """Validate a single-letter style enumeration (case-insensitive)."""
    allowed = tuple(choices)
    if isinstance(value, str) and value.strip().upper() in allowed:
        return value.strip().upper()
    raise ValidationError(
        f"{field} must be one of {', '.join(allowed)}", {"field": field, "allowed": list(allowed)}
    )


def parse_json_body(body: Any) -> Dict[str, Any]:
    """
    Parse a request body into a JSON object.

    Raises:
        ValidationError: If the body is missing, not JSON, or not an object
    """
    if isinstance(body, dict):
        return body
    if body is None or (isinstance(body, str) and not body.strip()):
        raise ValidationError("Request body is required")

    try:
        parsed = json.loads(body)
    except (TypeError, ValueError, RecursionError):
        raise ValidationError("Request body must be valid JSON", error_code=ErrorCode.INVALID_JSON)

    if not isinstance(parsed, dict):
        raise ValidationError(
            "Request body must be a JSON object", error_code=ErrorCode.INVALID_JSON
        )
    return parsed


def parse_pagination(query: Dict[str, Any]) -> Tuple[int, Optional[Dict[str, Any]]]:
    """
    Read ``limit`` and ``lastEvaluatedKey`` query parameters.

    Returns:
        (limit, exclusive_start_key) where the key is None on the first page
    """
    raw_limit = query.get("limit")
    limit = DEFAULT_PAGE_LIMIT
    if raw_limit not in (None, ""):
        limit = validate_positive_int(raw_limit, "limit")
        if limit > MAX_PAGE_LIMIT:
            raise ValidationError(
                f"limit must be between 1 and {MAX_PAGE_LIMIT}", {"field": "limit"}
            )

    raw_key = query.get("lastEvaluatedKey")
    if raw_key in (None, ""):
        return limit, None

    try:
        start_key = decode_cursor(str(raw_key))
    except (ValueError, RecursionError):
        raise ValidationError("lastEvaluatedKey is not a valid cursor", {"field": "lastEvaluatedKey"})
    if not isinstance(start_key, dict):
        raise ValidationError("lastEvaluatedKey is not a valid cursor", {"field": "lastEvaluatedKey"})
    return limit, start_key


def decode_cursor(cursor: str) -> Any:
    """Inverse of responses.encode_cursor: unpadded URL-safe base64 of a JSON object."""
    padded = cursor + "=" * (-len(cursor) % 4)
    return json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))


def validate_payload(
    payload: Dict[str, Any], fields: Iterable["Field"], partial: bool = False
) -> Dict[str, Any]:
    """
    Validate a request payload against a list of field rules.

    For full validation (create) every required field must be present. For
    partial validation (update) only the fields present in the payload are
    validated and returned, and at least one must be present. Unknown keys
    are ignored. A value of None counts as absent.

    Raises:
        ValidationError: Naming every offending field in ``details.fields``
    """
    validated: Dict[str, Any] = {}
    errors: Dict[str, str] = {}
    fields = list(fields)

    for field in fields:
        value = payload.get(field.name)
        if value is None:
            if field.required and not partial:
                errors[field.name] = f"{field.name} is required"
            continue
        try:
            validated[field.name] = field.validate(value)
        except ValidationError as e:
            errors[field.name] = e.message

    if errors:
        first_message = next(iter(errors.values()))
        raise ValidationError(first_message, {"fields": errors})

    if partial and not validated:
        names = ", ".join(field.name for field in fields)
        raise ValidationError(f"At least one field must be provided ({names})")

    return validated
