"""
Authentication and authorization for API Gateway handlers.

Verifies Cognito-issued RS256 bearer tokens against the user pool JWKS and
checks group-based permissions on the verified claims.

Environment variables:
    COGNITO_USER_POOL_ID   e.g. us-east-1_AbCdEf123
    COGNITO_CLIENT_ID      app client id; checked against the token when set
    COGNITO_TOKEN_USE      "access" (default) or "id"
    ADMIN_GROUP            Cognito group allowed to delete (default "admin")
    JWKS_CACHE_SECONDS     how long a fetched key set is reused (default 3600)
"""

import os
import threading
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient

from .api_types import get_groups, get_header
from .dynamodb import get_required_env
from .errors import AuthenticationError, ErrorCode
from .logging import get_logger
from .result import Err, Ok, Result, capture

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "
AUTH_HEADERS = ("Authorization", "Authentication")
ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})


def extract_bearer_token(header_value: Optional[str]) -> str:
    """
    Strip an optional "Bearer " prefix from an Authorization header.

    Raises:
        AuthenticationError: If the header is missing or holds no token
    """
    if header_value is None:
        raise AuthenticationError("Authorization header is required")

    token = header_value.strip()
    if token.lower().startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX) :].strip()
    elif token.lower() == BEARER_PREFIX.strip():
        token = ""

    if not token:
        raise AuthenticationError("Authorization token is empty")
    return token


class TokenValidator:
    """
    Verifies Cognito JWTs.

    The JWKS client is created on first use and reused for the life of the
    worker; creation is guarded by a lock so concurrent first requests share
    one key set. A token signed by a key that is not cached triggers one
    refetch inside the JWKS client.
    """

    def __init__(
        self,
        user_pool_id: Optional[str] = None,
        client_id: Optional[str] = None,
        token_use: Optional[str] = None,
        jwks_client: Optional[Any] = None,
    ) -> None:
        self.user_pool_id = user_pool_id or get_required_env("COGNITO_USER_POOL_ID")
        self.client_id = client_id if client_id is not None else os.getenv("COGNITO_CLIENT_ID")
        self.token_use = token_use or os.getenv("COGNITO_TOKEN_USE", "access")
        self._jwks_client = jwks_client
        self._lock = threading.Lock()

    @property
    def region(self) -> str:
        return self.user_pool_id.split("_")[0]

    @property
    def issuer(self) -> str:
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"

    def _get_jwks_client(self) -> Any:
        if self._jwks_client is None:
            with self._lock:
                if self._jwks_client is None:
                    self._jwks_client = PyJWKClient(
                        self.jwks_url,
                        cache_jwk_set=True,
                        lifespan=int(os.getenv("JWKS_CACHE_SECONDS", "3600")),
                    )
        return self._jwks_client

    def verify(self, header_value: Optional[str]) -> Dict[str, Any]:
        """
        Verify a raw Authorization header value and return the claims.

        Raises:
            AuthenticationError: With a human-readable reason on any failure
        """
        token = extract_bearer_token(header_value)

        try:
            signing_key = self._get_jwks_client().get_signing_key_from_jwt(token)
            claims: Dict[str, Any] = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                issuer=self.issuer,
                options={
                    "verify_aud": False,
                    "require": ["exp", "iss", "sub", "token_use"],
                },
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired. Please sign in again.")
        except jwt.InvalidIssuerError:
            raise AuthenticationError("Token issuer mismatch.")
        except jwt.MissingRequiredClaimError as e:
            raise AuthenticationError(f"Token is missing the {e.claim} claim.")
        except jwt.PyJWKClientError as e:
            raise AuthenticationError(f"Token signing key could not be resolved: {e}")
        except jwt.PyJWTError as e:
            raise AuthenticationError(f"Token validation failed: {e}")

        if claims.get("token_use") != self.token_use:
            raise AuthenticationError(f"Token must be an {self.token_use} token.")

        if self.client_id:
            token_client = claims.get("client_id") if self.token_use == "access" else claims.get("aud")
            if token_client != self.client_id:
                raise AuthenticationError("Token was issued for a different client.")

        return claims


_validator: Optional[TokenValidator] = None
_validator_lock = threading.Lock()


def get_token_validator() -> TokenValidator:
    """Return the worker's validator, creating it from the environment on first use."""
    global _validator
    if _validator is None:
        with _validator_lock:
            if _validator is None:
                _validator = TokenValidator()
    return _validator


def override_token_validator(validator: Optional[TokenValidator]) -> None:
    """Replace the worker's validator (tests). None resets to lazy creation."""
    global _validator
    _validator = validator


def authenticate_request(
    event: Dict[str, Any], validator: Optional[TokenValidator] = None
) -> "Result[Dict[str, Any]]":
    """Verify the request's bearer token. Returns Ok(claims) or Err(AuthenticationError)."""
    header_value = get_header(event, *AUTH_HEADERS)
    if header_value is None:
        return Err(AuthenticationError("Authorization header is required"))

    result = capture((validator or get_token_validator()).verify, header_value)
    if not result.is_ok:
        logger.warning("Authentication failed", reason=result.error.message)
    return result


def is_admin(claims: Dict[str, Any]) -> bool:
    """Check whether the caller belongs to the admin Cognito group."""
    return os.getenv("ADMIN_GROUP", "admin") in get_groups(claims)


def authorize_operation(
    claims: Dict[str, Any], method: str, admin_only: bool = False
) -> "Result[Dict[str, Any]]":
    """
    Check that verified claims may perform ``method``.

    Requires a subject and token use, a CRUD method, and admin group
    membership when ``admin_only`` is set. Failures are authentication
    errors (401).
    """
    if not claims.get("sub") or not claims.get("token_use"):
        return Err(AuthenticationError("Token is missing required claims"))
    if method not in ALLOWED_METHODS:
        return Err(AuthenticationError(f"Operation {method} is not permitted"))
    if admin_only and not is_admin(claims):
        logger.warning("Admin operation denied", sub=claims.get("sub"), method=method)
        return Err(
            AuthenticationError(
                "Administrator privileges are required for this operation",
                error_code=ErrorCode.FORBIDDEN,
            )
        )
    return Ok(claims)
