"""
Email notifications via SES.

Subjects are reduced to plain text and bodies are cleaned down to safe
formatting markup with nh3 before anything is sent.
"""

import html
import os
from typing import Any, Optional

import boto3
import nh3
from botocore.exceptions import ClientError

from .dynamodb import get_required_env
from .errors import AppError, ThrottlingError, UpstreamServiceError, ValidationError
from .item_store import THROTTLING_CODES
from .logging import get_logger

logger = get_logger(__name__)

MAX_SUBJECT_LENGTH = 100

SES_THROTTLING_CODES = THROTTLING_CODES | {"Throttling", "MaxSendingRateExceeded"}


def sanitize_subject(value: Any, field: str = "subject") -> str:
    """
    Strip all markup from an email subject.

    Raises:
        ValidationError: If nothing is left or the subject is too long
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", {"field": field})

    subject = " ".join(html.unescape(nh3.clean(value, tags=set())).split())
    if not subject:
        raise ValidationError(f"{field} is required and cannot be empty", {"field": field})
    if len(subject) > MAX_SUBJECT_LENGTH:
        raise ValidationError(
            f"{field} cannot exceed {MAX_SUBJECT_LENGTH} characters",
            {"field": field, "maxLength": MAX_SUBJECT_LENGTH},
        )
    return subject


def sanitize_html_body(value: Any, field: str = "bodyHtml") -> str:
    """Remove scripts, event handlers and other executable markup, keep formatting tags."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", {"field": field})

    body = nh3.clean(value).strip()
    if not body:
        raise ValidationError(f"{field} is required and cannot be empty", {"field": field})
    return body


def _get_ses_client() -> Any:
    return boto3.client("ses", region_name=os.getenv("SES_REGION") or None)


def send_email(to: str, subject: str, body_html: str, source: Optional[str] = None) -> str:
    """
    Send one HTML email.

    Args:
        to: Recipient address (already validated)
        subject: Sanitized subject
        body_html: Sanitized HTML body
        source: Sender; defaults to SES_SOURCE_EMAIL

    Returns:
        SES message id

    Raises:
        ThrottlingError: If SES is rate limiting the account
        UpstreamServiceError: If SES rejects the message
    """
    sender = source or get_required_env("SES_SOURCE_EMAIL")

    try:
        response = _get_ses_client().send_email(
            Source=sender,
            Destination={"ToAddresses": [to]},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Html": {"Data": body_html, "Charset": "UTF-8"}},
            },
        )
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        logger.error("SES send_email failed", sesErrorCode=code, error=str(e))
        error: AppError
        if code in SES_THROTTLING_CODES:
            error = ThrottlingError(
                "Email sending is being throttled, try again later", {"sesErrorCode": code}
            )
        else:
            error = UpstreamServiceError("The email could not be sent", {"sesErrorCode": code})
        raise error from e

    message_id: str = response["MessageId"]
    logger.info("Email sent", messageId=message_id)
    return message_id
