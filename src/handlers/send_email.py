"""
Lambda handler for POST /contexto/email.

Sends one HTML email through SES on behalf of an authenticated caller.
"""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.api_types import ApiResponse  # type: ignore[import-not-found]
    from utils.notifications import sanitize_html_body, sanitize_subject, send_email  # type: ignore[import-not-found]
    from utils.pipeline import api_handler, require_auth, route  # type: ignore[import-not-found]
    from utils.responses import success_response  # type: ignore[import-not-found]
    from utils.result import Result, capture  # type: ignore[import-not-found]
    from utils.schemas import Field  # type: ignore[import-not-found]
    from utils.validation import parse_json_body, validate_email, validate_payload  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.api_types import ApiResponse
    from ..utils.notifications import sanitize_html_body, sanitize_subject, send_email
    from ..utils.pipeline import api_handler, require_auth, route
    from ..utils.responses import success_response
    from ..utils.result import Result, capture
    from ..utils.schemas import Field
    from ..utils.validation import parse_json_body, validate_email, validate_payload

EMAIL_FIELDS = (
    Field("to", validate_email),
    Field("subject", sanitize_subject),
    Field("bodyHtml", sanitize_html_body),
)


@api_handler
def send_email_handler(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Send an email.

    Body: {"to": email, "subject": str (<= 100), "bodyHtml": str}

    Returns:
        200 with {"messageId"}; 502 if SES rejects the message
    """
    return (
        require_auth(event, "POST")
        .and_then(lambda _: capture(parse_json_body, event.get("body")))
        .and_then(lambda body: capture(validate_payload, body, EMAIL_FIELDS))
        .and_then(
            lambda message: capture(send_email, message["to"], message["subject"], message["bodyHtml"])
        )
        .map(lambda message_id: success_response({"messageId": message_id}, 200, "Email sent"))
    )


handler = route({"POST": send_email_handler})
