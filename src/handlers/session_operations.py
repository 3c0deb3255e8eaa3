"""
Lambda handlers for the caller's session.

POST /contexto/login exchanges an email and password for Cognito tokens
using the USER_PASSWORD_AUTH flow. The app client has a secret, so every
request carries a SECRET_HASH. PUT /contexto checks a bearer token and
reports whose it is.

Environment variables: COGNITO_REGION, COGNITO_CLIENT_ID, COGNITO_CLIENT_SECRET
"""

import base64
import hashlib
import hmac
import os
from functools import partial
from typing import Any, Dict

import boto3
from botocore.exceptions import ClientError

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.api_types import ApiResponse  # type: ignore[import-not-found]
    from utils.auth import authenticate_request  # type: ignore[import-not-found]
    from utils.dynamodb import get_required_env  # type: ignore[import-not-found]
    from utils.errors import (  # type: ignore[import-not-found]
        AuthenticationError,
        ErrorCode,
        ThrottlingError,
        UpstreamServiceError,
        ValidationError,
    )
    from utils.logging import get_logger  # type: ignore[import-not-found]
    from utils.pipeline import api_handler, route  # type: ignore[import-not-found]
    from utils.responses import success_response  # type: ignore[import-not-found]
    from utils.result import Result, capture  # type: ignore[import-not-found]
    from utils.schemas import Field  # type: ignore[import-not-found]
    from utils.validation import parse_json_body, validate_email, validate_payload  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.api_types import ApiResponse
    from ..utils.auth import authenticate_request
    from ..utils.dynamodb import get_required_env
    from ..utils.errors import (
        AuthenticationError,
        ErrorCode,
        ThrottlingError,
        UpstreamServiceError,
        ValidationError,
    )
    from ..utils.logging import get_logger
    from ..utils.pipeline import api_handler, route
    from ..utils.responses import success_response
    from ..utils.result import Result, capture
    from ..utils.schemas import Field
    from ..utils.validation import parse_json_body, validate_email, validate_payload

logger = get_logger(__name__)

MAX_PASSWORD_LENGTH = 256

# Cognito errors that mean "wrong credentials"; one message for all of them
INVALID_CREDENTIAL_CODES = frozenset({"NotAuthorizedException", "UserNotFoundException"})


def validate_password(value: Any, field: str = "password") -> str:
    """Passwords are taken verbatim: not trimmed and not character-filtered."""
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{field} is required", {"field": field})
    if len(value) > MAX_PASSWORD_LENGTH:
        raise ValidationError(f"{field} is too long", {"field": field})
    return value


LOGIN_FIELDS = (
    Field("email", partial(validate_email, lowercase=False)),
    Field("password", validate_password),
)


def compute_secret_hash(username: str, client_id: str, client_secret: str) -> str:
    """Base64 HMAC-SHA256 of username + client id, keyed with the client secret."""
    digest = hmac.new(
        client_secret.encode("utf-8"),
        (username + client_id).encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("utf-8")


def _get_cognito_client() -> Any:
    return boto3.client("cognito-idp", region_name=os.getenv("COGNITO_REGION") or None)


def initiate_auth(email: str, password: str) -> Dict[str, Any]:
    """
    Run USER_PASSWORD_AUTH against the app client.

    Returns:
        accessToken, idToken, refreshToken and expiresIn

    Raises:
        AuthenticationError: Wrong credentials, unconfirmed user or a pending challenge
        ThrottlingError: Cognito rate limiting
        UpstreamServiceError: Any other Cognito failure
    """
    client_id = get_required_env("COGNITO_CLIENT_ID")
    client_secret = get_required_env("COGNITO_CLIENT_SECRET")

    try:
        response = _get_cognito_client().initiate_auth(
            AuthFlow="USER_PASSWORD_AUTH",
            ClientId=client_id,
            AuthParameters={
                "USERNAME": email,
                "PASSWORD": password,
                "SECRET_HASH": compute_secret_hash(email, client_id, client_secret),
            },
        )
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        logger.warning("Cognito initiate_auth failed", cognitoErrorCode=code)
        if code in INVALID_CREDENTIAL_CODES:
            raise AuthenticationError("Incorrect email or password") from e
        if code == "UserNotConfirmedException":
            raise AuthenticationError(
                "User is not confirmed. Check your email.", error_code=ErrorCode.FORBIDDEN
            ) from e
        if code == "PasswordResetRequiredException":
            raise AuthenticationError("Password reset required") from e
        if code == "TooManyRequestsException":
            raise ThrottlingError("Too many login attempts, try again later") from e
        raise UpstreamServiceError(
            "Authentication service error",
            {"cognitoErrorCode": code},
            error_code=ErrorCode.AUTH_PROVIDER_ERROR,
        ) from e

    result = response.get("AuthenticationResult")
    if not result:
        raise AuthenticationError(
            "An additional authentication challenge is required",
            {"challengeName": response.get("ChallengeName")},
        )

    return {
        "accessToken": result.get("AccessToken"),
        "idToken": result.get("IdToken"),
        "refreshToken": result.get("RefreshToken"),
        "expiresIn": result.get("ExpiresIn"),
    }


@api_handler
def login(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Authenticate with email and password. No bearer token is required."""
    return (
        capture(parse_json_body, event.get("body"))
        .and_then(lambda body: capture(validate_payload, body, LOGIN_FIELDS))
        .and_then(lambda creds: capture(initiate_auth, creds["email"], creds["password"]))
        .map(lambda tokens: success_response(tokens, 200, "Authenticated"))
    )


handler = route({"POST": login})


def session_identity(claims: Dict[str, Any]) -> Dict[str, Any]:
    """Who a verified token belongs to. Access tokens carry client_id, id tokens aud."""
    return {
        "userId": claims.get("sub"),
        "username": claims.get("username") or claims.get("cognito:username"),
        "clientId": claims.get("client_id") or claims.get("aud"),
    }


@api_handler
def validate_session(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Verify the bearer token. Nothing is read from or written to the store."""
    return authenticate_request(event).map(
        lambda claims: success_response(session_identity(claims), 200, "Token is valid")
    )


session_handler = route({"GET": validate_session, "PUT": validate_session})
