"""Tests for the login and token validation handlers."""

import base64
import hashlib
import hmac
from typing import Any, Callable, Dict, Generator
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from src.handlers.session_operations import (
    compute_secret_hash,
    handler,
    initiate_auth,
    session_handler,
    session_identity,
    validate_session,
)
from src.utils.errors import AuthenticationError, ErrorCode, ThrottlingError, UpstreamServiceError
from tests.unit.api_helpers import CLIENT_ID, response_body

EventFactory = Callable[..., Dict[str, Any]]

CREDENTIALS = {"email": "Ana@Example.com", "password": " s3cret Pass! "}

AUTH_RESULT = {
    "AuthenticationResult": {
        "AccessToken": "access",
        "IdToken": "id",
        "RefreshToken": "refresh",
        "ExpiresIn": 3600,
    }
}


def cognito_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "InitiateAuth")


@pytest.fixture
def cognito() -> Generator[MagicMock, None, None]:
    client = MagicMock()
    client.initiate_auth.return_value = AUTH_RESULT
    with patch("src.handlers.session_operations._get_cognito_client", return_value=client):
        yield client


@pytest.fixture(autouse=True)
def client_secret(monkeypatch: Any) -> str:
    monkeypatch.setenv("COGNITO_CLIENT_SECRET", "shh")
    return "shh"


class TestComputeSecretHash:
    def test_matches_hmac_sha256(self) -> None:
        expected = base64.b64encode(
            hmac.new(b"shh", b"ana@example.com" + CLIENT_ID.encode(), hashlib.sha256).digest()
        ).decode()

        assert compute_secret_hash("ana@example.com", CLIENT_ID, "shh") == expected


class TestInitiateAuth:
    """Tests for initiate_auth function."""

    def test_returns_tokens(self, cognito: MagicMock) -> None:
        tokens = initiate_auth("ana@example.com", "pw")

        assert tokens == {"accessToken": "access", "idToken": "id", "refreshToken": "refresh", "expiresIn": 3600}
        kwargs = cognito.initiate_auth.call_args.kwargs
        assert kwargs["AuthFlow"] == "USER_PASSWORD_AUTH"
        assert kwargs["ClientId"] == CLIENT_ID
        assert kwargs["AuthParameters"]["SECRET_HASH"] == compute_secret_hash("ana@example.com", CLIENT_ID, "shh")

    @pytest.mark.parametrize(
        "code,error_type,error_code",
        [
            ("NotAuthorizedException", AuthenticationError, ErrorCode.UNAUTHORIZED),
            ("UserNotFoundException", AuthenticationError, ErrorCode.UNAUTHORIZED),
            ("UserNotConfirmedException", AuthenticationError, ErrorCode.FORBIDDEN),
            ("PasswordResetRequiredException", AuthenticationError, ErrorCode.UNAUTHORIZED),
            ("TooManyRequestsException", ThrottlingError, ErrorCode.THROTTLED),
            ("InternalErrorException", UpstreamServiceError, ErrorCode.AUTH_PROVIDER_ERROR),
        ],
    )
    def test_error_mapping(self, cognito: MagicMock, code: str, error_type: type, error_code: str) -> None:
        cognito.initiate_auth.side_effect = cognito_error(code)

        with pytest.raises(error_type) as exc_info:
            initiate_auth("ana@example.com", "pw")

        assert exc_info.value.error_code == error_code

    def test_unknown_user_and_bad_password_look_the_same(self, cognito: MagicMock) -> None:
        messages = []
        for code in ("NotAuthorizedException", "UserNotFoundException"):
            cognito.initiate_auth.side_effect = cognito_error(code)
            with pytest.raises(AuthenticationError) as exc_info:
                initiate_auth("ana@example.com", "pw")
            messages.append(exc_info.value.message)

        assert messages == ["Incorrect email or password"] * 2

    def test_challenge(self, cognito: MagicMock) -> None:
        cognito.initiate_auth.return_value = {"ChallengeName": "NEW_PASSWORD_REQUIRED", "Session": "s"}

        with pytest.raises(AuthenticationError) as exc_info:
            initiate_auth("ana@example.com", "pw")

        assert exc_info.value.details == {"challengeName": "NEW_PASSWORD_REQUIRED"}


class TestLoginHandler:
    """Tests for the POST /login handler."""

    def test_login_without_bearer_token(
        self, cognito: MagicMock, make_event: EventFactory, lambda_context: Any
    ) -> None:
        response = handler(make_event("POST", CREDENTIALS, token=None), lambda_context)

        body = response_body(response)
        assert response["statusCode"] == 200
        assert body["data"]["accessToken"] == "access"
        params = cognito.initiate_auth.call_args.kwargs["AuthParameters"]
        assert params["USERNAME"] == "Ana@Example.com"
        assert params["SECRET_HASH"] == compute_secret_hash("Ana@Example.com", CLIENT_ID, "shh")
        assert params["PASSWORD"] == " s3cret Pass! "

    def test_email_is_trimmed_but_not_lowercased(
        self, cognito: MagicMock, make_event: EventFactory, lambda_context: Any
    ) -> None:
        body = {**CREDENTIALS, "email": "  Ana@Example.com\t"}

        handler(make_event("POST", body, token=None), lambda_context)

        assert cognito.initiate_auth.call_args.kwargs["AuthParameters"]["USERNAME"] == "Ana@Example.com"

    def test_wrong_password(self, cognito: MagicMock, make_event: EventFactory, lambda_context: Any) -> None:
        cognito.initiate_auth.side_effect = cognito_error("NotAuthorizedException")

        response = handler(make_event("POST", CREDENTIALS, token=None), lambda_context)

        assert response["statusCode"] == 401

    @pytest.mark.parametrize(
        "body",
        [{"email": "ana@example.com"}, {"email": "nope", "password": "pw"}, {"email": "a@b.co", "password": ""}],
    )
    def test_invalid_credentials_payload(
        self, cognito: MagicMock, make_event: EventFactory, lambda_context: Any, body: Dict[str, Any]
    ) -> None:
        response = handler(make_event("POST", body, token=None), lambda_context)

        assert response["statusCode"] == 400
        cognito.initiate_auth.assert_not_called()

    def test_provider_failure(self, cognito: MagicMock, make_event: EventFactory, lambda_context: Any) -> None:
        cognito.initiate_auth.side_effect = cognito_error("InternalErrorException")

        response = handler(make_event("POST", CREDENTIALS, token=None), lambda_context)

        assert response["statusCode"] == 502
        assert response_body(response)["error"]["errorCode"] == ErrorCode.AUTH_PROVIDER_ERROR


class TestValidateSession:
    """Tests for the token validation handler."""

    def test_reports_token_identity(self, make_event: EventFactory, lambda_context: Any) -> None:
        response = session_handler(make_event("PUT"), lambda_context)

        assert response["statusCode"] == 200
        assert response_body(response)["data"] == {
            "userId": "user-123",
            "username": "user-123",
            "clientId": CLIENT_ID,
        }

    def test_id_token_identity(
        self,
        make_token: Callable[..., str],
        make_event: EventFactory,
        lambda_context: Any,
        token_validator: Any,
    ) -> None:
        token_validator.token_use = "id"
        token = make_token(
            token_use="id", client_id=None, username=None, aud=CLIENT_ID, **{"cognito:username": "ana"}
        )

        response = validate_session(make_event("PUT", token=token), lambda_context)

        assert response_body(response)["data"] == {"userId": "user-123", "username": "ana", "clientId": CLIENT_ID}

    @pytest.mark.parametrize("token_kwargs", [{"exp": 1}, {"client_id": "other-client"}])
    def test_rejected_tokens(
        self,
        make_token: Callable[..., str],
        make_event: EventFactory,
        lambda_context: Any,
        token_kwargs: Dict[str, Any],
    ) -> None:
        response = session_handler(make_event("PUT", token=make_token(**token_kwargs)), lambda_context)

        assert response["statusCode"] == 401
        assert response_body(response)["error"]["errorCode"] == ErrorCode.UNAUTHORIZED

    def test_missing_header(self, make_event: EventFactory, lambda_context: Any) -> None:
        response = session_handler(make_event("PUT", token=None), lambda_context)

        assert response["statusCode"] == 401

    def test_session_identity_falls_back_to_id_token_claims(self) -> None:
        claims = {"sub": "s", "cognito:username": "ana", "aud": "web"}

        assert session_identity(claims) == {"userId": "s", "username": "ana", "clientId": "web"}
