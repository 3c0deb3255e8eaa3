"""
Handler boundary and the shared authenticate -> validate -> store -> respond
pipeline used by every entity handler.

Handlers decorated with ``api_handler`` return ``Ok(response)`` or
``Err(error)``; the decorator turns errors (and any unexpected exception)
into the error envelope so nothing escapes to the Lambda runtime.
"""

import functools
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from .api_types import ApiResponse, get_http_method, get_path_parameter
from .auth import authenticate_request, authorize_operation
from .errors import MethodNotAllowedError, to_app_error
from .item_store import ItemStore, Page
from .logging import get_correlation_id, get_logger
from .responses import build_page, error_response, options_response, success_response
from .result import Err, Ok, Result, capture
from .schemas import EntitySchema
from .validation import parse_json_body

logger = get_logger(__name__)

Handler = Callable[[Dict[str, Any], Any], "Result[ApiResponse]"]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def api_handler(fn: Handler) -> Callable[[Dict[str, Any], Any], ApiResponse]:
    """
    Lambda boundary for API Gateway proxy handlers.

    Answers CORS preflight, logs the request with its correlation ID, and
    maps every outcome to a proxy response.
    """

    @functools.wraps(fn)
    def wrapper(event: Dict[str, Any], context: Any) -> ApiResponse:
        log = logger.with_correlation_id(get_correlation_id(event))
        method = get_http_method(event)
        if method == "OPTIONS":
            return options_response()

        log.info("Request received", handler=fn.__name__, method=method, path=event.get("path"))
        try:
            outcome = fn(event, context)
        except Exception as e:
            log.error(
                "Unhandled error",
                handler=fn.__name__,
                errorType=type(e).__name__,
                error=str(e),
            )
            outcome = Err(to_app_error(e))

        if isinstance(outcome, Err):
            response = error_response(outcome.error)
            log.warning(
                "Request failed",
                handler=fn.__name__,
                statusCode=response["statusCode"],
                errorCode=outcome.error.error_code,
                reason=outcome.error.message,
            )
            return response

        response = outcome.value
        log.info("Request completed", handler=fn.__name__, statusCode=response["statusCode"])
        return response

    return wrapper


def route(routes: Mapping[str, Callable[[Dict[str, Any], Any], ApiResponse]]) -> Callable[
    [Dict[str, Any], Any], ApiResponse
]:
    """Build a single entry point that dispatches on httpMethod."""

    @api_handler
    def dispatch(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
        target = routes.get(get_http_method(event))
        if target is None:
            return Err(MethodNotAllowedError(get_http_method(event) or None))
        inner = getattr(target, "__wrapped__", None)
        if inner is None:
            return Ok(target(event, context))
        result: "Result[ApiResponse]" = inner(event, context)
        return result

    return dispatch


def require_auth(
    event: Dict[str, Any], method: str, admin_only: bool = False
) -> "Result[Dict[str, Any]]":
    """Authenticate the bearer token, then authorize the operation."""
    return authenticate_request(event).and_then(
        lambda claims: authorize_operation(claims, method, admin_only)
    )


def respond(
    schema: EntitySchema, status_code: int = 200, message: Optional[str] = None
) -> Callable[[Dict[str, Any]], ApiResponse]:
    return lambda item: success_response(schema.response_builder(item), status_code, message)


def respond_page(schema: EntitySchema) -> Callable[[Page], ApiResponse]:
    return lambda page: success_response(
        build_page(page.items, schema.response_builder, page.last_evaluated_key)
    )


def has_path_key(event: Dict[str, Any], schema: EntitySchema) -> bool:
    return any(get_path_parameter(event, name) for name in schema.path_params)


# Single-item operations


def create_entity(event: Dict[str, Any], schema: EntitySchema) -> "Result[ApiResponse]":
    """POST: validate the body and conditionally put a new item."""
    return (
        require_auth(event, "POST")
        .and_then(lambda _: capture(parse_json_body, event.get("body")))
        .and_then(lambda body: capture(schema.validate_create, body))
        .and_then(
            lambda values: ItemStore.for_entity(schema.name).create(
                schema.build_item(values, utc_now())
            )
        )
        .map(respond(schema, 201, f"{schema.name} created"))
    )


def get_entity(event: Dict[str, Any], schema: EntitySchema) -> "Result[ApiResponse]":
    """GET by natural key from the path."""
    return (
        require_auth(event, "GET")
        .and_then(lambda _: capture(schema.parse_key, event.get("pathParameters")))
        .and_then(lambda key: ItemStore.for_entity(schema.name).get(schema.key_for(key)))
        .map(respond(schema))
    )


def update_entity(event: Dict[str, Any], schema: EntitySchema) -> "Result[ApiResponse]":
    """PUT: partial update of the fields present in the body."""

    def validate(_: Any) -> "Result[Dict[str, Any]]":
        key = capture(schema.parse_key, event.get("pathParameters"))
        body = key.and_then(lambda _: capture(parse_json_body, event.get("body")))
        return body.and_then(
            lambda payload: capture(schema.validate_update, payload, key.unwrap())
        ).map(lambda changes: {"key": key.unwrap(), "changes": changes})

    return (
        require_auth(event, "PUT")
        .and_then(validate)
        .and_then(
            lambda request: ItemStore.for_entity(schema.name).update(
                schema.key_for(request["key"]),
                schema.build_changes(request["changes"], request["key"], utc_now()),
            )
        )
        .map(respond(schema, 200, f"{schema.name} updated"))
    )


def delete_entity(event: Dict[str, Any], schema: EntitySchema) -> "Result[ApiResponse]":
    """DELETE by natural key; returns the deleted item."""
    return (
        require_auth(event, "DELETE", admin_only=schema.admin_only_delete)
        .and_then(lambda _: capture(schema.parse_key, event.get("pathParameters")))
        .and_then(lambda key: ItemStore.for_entity(schema.name).delete(schema.key_for(key)))
        .map(respond(schema, 200, f"{schema.name} deleted"))
    )


def list_entities(
    schema: EntitySchema,
    limit: int,
    start_key: Optional[Dict[str, Any]],
    filters: Optional[Dict[str, Any]] = None,
) -> "Result[ApiResponse]":
    """Unfiltered listing: one scan page of the entity's items."""
    return (
        ItemStore.for_entity(schema.name)
        .scan(schema.item_type, filters=filters, limit=limit, start_key=start_key)
        .map(respond_page(schema))
    )
