"""
Test fixtures for Lambda function tests.

Provides mocked AWS resources, signed Cognito-style tokens and API Gateway
proxy events.
"""

import json
import time
from types import SimpleNamespace
from typing import Any, Callable, Dict, Generator, Optional

import boto3
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from moto import mock_aws

from src.utils.auth import TokenValidator, override_token_validator
from src.utils.dynamodb import clear_all_overrides
from tests.unit.api_helpers import CLIENT_ID, SIGNING_KID, SOURCE_EMAIL, USER_POOL_ID
from tests.unit.table_schemas import ENTITIES_TABLE_NAME, create_entities_table_schema


class StaticJWKSClient:
    """JWKS client that serves one in-memory RSA public key."""

    def __init__(self, public_key: Any, kid: str = SIGNING_KID) -> None:
        self.public_key = public_key
        self.kid = kid
        self.calls = 0

    def get_signing_key_from_jwt(self, token: str) -> Any:
        self.calls += 1
        kid = jwt.get_unverified_header(token).get("kid")
        if kid != self.kid:
            raise jwt.PyJWKClientError(f'Unable to find a signing key that matches: "{kid}"')
        return SimpleNamespace(key=self.public_key)


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch: Any) -> None:
    """Set fake AWS credentials and handler configuration."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("TABLE_NAME", ENTITIES_TABLE_NAME)
    monkeypatch.setenv("COGNITO_USER_POOL_ID", USER_POOL_ID)
    monkeypatch.setenv("COGNITO_CLIENT_ID", CLIENT_ID)
    monkeypatch.setenv("SES_SOURCE_EMAIL", SOURCE_EMAIL)
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.delenv("ADMIN_GROUP", raising=False)
    monkeypatch.delenv("DYNAMODB_ENDPOINT", raising=False)


@pytest.fixture
def dynamodb_table() -> Generator[Any, None, None]:
    """Create the mock entities table."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        table = dynamodb.create_table(**create_entities_table_schema())
        yield table
    clear_all_overrides()


@pytest.fixture
def ses_client() -> Generator[Any, None, None]:
    """Mock SES with the sender address verified."""
    with mock_aws():
        client = boto3.client("ses", region_name="us-east-1")
        client.verify_email_identity(EmailAddress=SOURCE_EMAIL)
        yield client


@pytest.fixture(scope="session")
def rsa_private_key() -> Any:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks_client(rsa_private_key: Any) -> StaticJWKSClient:
    return StaticJWKSClient(rsa_private_key.public_key())


@pytest.fixture(autouse=True)
def token_validator(jwks_client: StaticJWKSClient) -> Generator[TokenValidator, None, None]:
    """Install a validator that trusts the in-memory signing key."""
    validator = TokenValidator(user_pool_id=USER_POOL_ID, client_id=CLIENT_ID, jwks_client=jwks_client)
    override_token_validator(validator)
    yield validator
    override_token_validator(None)


@pytest.fixture
def make_token(rsa_private_key: Any) -> Callable[..., str]:
    """
    Build a signed access token.

    Keyword arguments override claims; an override of None removes the claim.
    """

    def _make(kid: str = SIGNING_KID, key: Any = None, **overrides: Any) -> str:
        now = int(time.time())
        claims: Dict[str, Any] = {
            "sub": "user-123",
            "username": "user-123",
            "token_use": "access",
            "client_id": CLIENT_ID,
            "iss": f"https://cognito-idp.us-east-1.amazonaws.com/{USER_POOL_ID}",
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        claims = {name: value for name, value in claims.items() if value is not None}
        return jwt.encode(
            claims, key or rsa_private_key, algorithm="RS256", headers={"kid": kid}
        )

    return _make


@pytest.fixture
def user_token(make_token: Callable[..., str]) -> str:
    return make_token()


@pytest.fixture
def admin_token(make_token: Callable[..., str]) -> str:
    return make_token(sub="admin-1", **{"cognito:groups": ["admin"]})


@pytest.fixture
def make_event(user_token: str) -> Callable[..., Dict[str, Any]]:
    """
    Build an API Gateway proxy event.

    ``token`` defaults to a valid user token; pass None for an
    unauthenticated request. Dict bodies are JSON-encoded.
    """

    def _make(
        method: str,
        body: Any = None,
        path_parameters: Optional[Dict[str, Any]] = None,
        query: Optional[Dict[str, Any]] = None,
        token: Optional[str] = user_token,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        event_headers: Dict[str, str] = {"Content-Type": "application/json"}
        if token is not None:
            event_headers["Authorization"] = f"Bearer {token}"
        event_headers.update(headers or {})
        return {
            "httpMethod": method,
            "path": "/contexto/test",
            "headers": event_headers,
            "pathParameters": path_parameters,
            "queryStringParameters": query,
            "body": json.dumps(body) if isinstance(body, (dict, list)) else body,
            "requestContext": {"requestId": "test-correlation-id"},
        }

    return _make


@pytest.fixture
def lambda_context() -> Any:
    """Mock Lambda context."""

    class Context:
        function_name = "test-function"
        memory_limit_in_mb = 128
        invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-function"
        aws_request_id = "test-request-id"

    return Context()

