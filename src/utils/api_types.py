"""
Type definitions for API Gateway proxy events.

Provides TypedDict definitions for the Lambda proxy integration event and
the verified token claims, plus safe extraction helpers.
"""

from typing import Any, Dict, List, Optional, TypedDict


class RequestContext(TypedDict, total=False):
    """API Gateway request context."""

    requestId: str
    stage: str
    resourcePath: str
    httpMethod: str


class ApiGatewayEvent(TypedDict, total=False):
    """Lambda proxy integration event."""

    httpMethod: str
    resource: str
    path: str
    headers: Optional[Dict[str, str]]
    pathParameters: Optional[Dict[str, str]]
    queryStringParameters: Optional[Dict[str, str]]
    body: Optional[str]
    isBase64Encoded: bool
    requestContext: RequestContext


class TokenClaims(TypedDict, total=False):
    """Verified Cognito token claims."""

    sub: str
    username: str
    token_use: str
    client_id: str
    aud: str
    iss: str
    exp: int
    iat: int
    scope: str
    email: str


class ApiResponse(TypedDict):
    """Lambda proxy integration response."""

    statusCode: int
    headers: Dict[str, str]
    body: str


# Helper functions for safe extraction


def get_http_method(event: Dict[str, Any]) -> str:
    """Return the upper-cased HTTP method, or an empty string if absent."""
    method = event.get("httpMethod") or event.get("requestContext", {}).get("httpMethod") or ""
    return str(method).upper()


def get_header(event: Dict[str, Any], *names: str) -> Optional[str]:
    """
    Look up a header case-insensitively.

    Args:
        event: API Gateway event
        names: Candidate header names, checked in order

    Returns:
        First matching header value or None
    """
    headers: Dict[str, Any] = event.get("headers") or {}
    lowered = {str(key).lower(): value for key, value in headers.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value is not None:
            return str(value)
    return None


def get_path_parameter(event: Dict[str, Any], name: str) -> Optional[str]:
    """Extract a path parameter, or None if not present."""
    params: Dict[str, Any] = event.get("pathParameters") or {}
    value = params.get(name)
    return None if value is None else str(value)


def get_query_parameters(event: Dict[str, Any]) -> Dict[str, str]:
    """Return query string parameters, never None."""
    params: Dict[str, str] = event.get("queryStringParameters") or {}
    return params


def get_groups(claims: Dict[str, Any]) -> List[str]:
    """
    Extract Cognito group memberships from claims.

    Cognito may deliver a single group as a string.
    """
    groups = claims.get("cognito:groups") or []
    if isinstance(groups, str):
        return [groups]
    return [str(group) for group in groups]
