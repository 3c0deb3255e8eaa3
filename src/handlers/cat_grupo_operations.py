"""
Lambda handlers for catalog group (CatGrupo) operations.

Routes: POST /catgrupo, GET /catgrupo[/{id}], PUT /catgrupo/{id},
DELETE /catgrupo/{id}. Items are keyed CAT_GRUPO#<id_grupo> / METADATA.
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
    from utils.schemas import CAT_GRUPO  # type: ignore[import-not-found]
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
    from ..utils.schemas import CAT_GRUPO
    from ..utils.validation import parse_pagination


@api_handler
def create_cat_grupo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Create a catalog group.

    Body: {"id_grupo": int > 0, "descripcion": str (<= 255)}

    Returns:
        201 with the stored group, 409 if id_grupo already exists
    """
    return create_entity(event, CAT_GRUPO)


@api_handler
def get_cat_grupo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Get one group by path id, or a page of all groups when no id is given."""
    if has_path_key(event, CAT_GRUPO):
        return get_entity(event, CAT_GRUPO)

    return (
        require_auth(event, "GET")
        .and_then(lambda _: capture(parse_pagination, get_query_parameters(event)))
        .and_then(lambda paging: list_entities(CAT_GRUPO, *paging))
    )


@api_handler
def update_cat_grupo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Update descripcion. A body id_grupo must match the path id."""
    return update_entity(event, CAT_GRUPO)


@api_handler
def delete_cat_grupo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    return delete_entity(event, CAT_GRUPO)


handler = route(
    {
        "GET": get_cat_grupo,
        "POST": create_cat_grupo,
        "PUT": update_cat_grupo,
        "DELETE": delete_cat_grupo,
    }
)
