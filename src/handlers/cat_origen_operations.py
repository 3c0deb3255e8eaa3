"""
Lambda handlers for catalog origin (CatOrigen) operations.

Routes: POST /catorigen, GET /catorigen[/{id}], PUT /catorigen/{id},
DELETE /catorigen/{id}. Items are keyed CAT_ORIGEN#<id_origen> / METADATA.
"""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.api_types import ApiResponse, get_query_parameters  # type: ignore[import-not-found]
    from utils.pipeline import (  # type: ignore[import-not-found]
        api_handler,
        create_entity,
        delete_entity,
        get_entity,
        has_path_key,
        list_entities,
        require_auth,
        route,
        update_entity,
    )
    from utils.result import Result, capture  # type: ignore[import-not-found]
    from utils.schemas import CAT_ORIGEN  # type: ignore[import-not-found]
    from utils.validation import parse_pagination  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.api_types import ApiResponse, get_query_parameters
    from ..utils.pipeline import (
        api_handler,
        create_entity,
        delete_entity,
        get_entity,
        has_path_key,
        list_entities,
        require_auth,
        route,
        update_entity,
    )
    from ..utils.result import Result, capture
    from ..utils.schemas import CAT_ORIGEN
    from ..utils.validation import parse_pagination


@api_handler
def create_cat_origen(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Create a catalog origin.

    Body: {"id_origen": int > 0, "descripcion": str (<= 255)}

    Returns:
        201 with the stored origin, 409 if id_origen already exists
    """
    return create_entity(event, CAT_ORIGEN)


@api_handler
def get_cat_origen(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Get one origin by path id, or a page of all origins when no id is given."""
    if has_path_key(event, CAT_ORIGEN):
        return get_entity(event, CAT_ORIGEN)

    return (
        require_auth(event, "GET")
        .and_then(lambda _: capture(parse_pagination, get_query_parameters(event)))
        .and_then(lambda paging: list_entities(CAT_ORIGEN, *paging))
    )


@api_handler
def update_cat_origen(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Update descripcion. A body id_origen must match the path id."""
    return update_entity(event, CAT_ORIGEN)


@api_handler
def delete_cat_origen(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    return delete_entity(event, CAT_ORIGEN)


handler = route(
    {
        "GET": get_cat_origen,
        "POST": create_cat_origen,
        "PUT": update_cat_origen,
        "DELETE": delete_cat_origen,
    }
)
