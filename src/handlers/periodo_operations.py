"""
Lambda handlers for the period catalog (CatalogoPeriodos).

Routes: POST /periodos, GET /periodos[/{periodo}], PUT /periodos/{periodo},
DELETE /periodos/{periodo}. All periods share the CATALOGO#PERIODOS
partition with one PERIODO#<YYYY-MM> sort key each.
"""

from functools import partial
from typing import Any, Dict, Optional, Tuple

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.api_types import ApiResponse, get_query_parameters  # type: ignore[import-not-found]
    from utils.ids import PERIODO_SK_PREFIX, PERIODOS_PK  # type: ignore[import-not-found]
    from utils.item_store import ItemStore  # type: ignore[import-not-found]
    from utils.pipeline import (  # type: ignore[import-not-found]
        api_handler,
        create_entity,
        delete_entity,
        get_entity,
        has_path_key,
        require_auth,
        respond_page,
        route,
        update_entity,
    )
    from utils.result import Result, capture  # type: ignore[import-not-found]
    from utils.schemas import PERIODO  # type: ignore[import-not-found]
    from utils.validation import parse_pagination, validate_choice  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.api_types import ApiResponse, get_query_parameters
    from ..utils.ids import PERIODO_SK_PREFIX, PERIODOS_PK
    from ..utils.item_store import ItemStore
    from ..utils.pipeline import (
        api_handler,
        create_entity,
        delete_entity,
        get_entity,
        has_path_key,
        require_auth,
        respond_page,
        route,
        update_entity,
    )
    from ..utils.result import Result, capture
    from ..utils.schemas import PERIODO
    from ..utils.validation import parse_pagination, validate_choice

validate_actual = partial(validate_choice, choices=("0", "1"))

ListQuery = Tuple[Optional[Dict[str, str]], int, Optional[Dict[str, Any]]]


def parse_list_query(query: Dict[str, Any]) -> ListQuery:
    limit, start_key = parse_pagination(query)
    flag = None
    if query.get("actual") not in (None, ""):
        flag = {"actual": validate_actual(query["actual"], "actual")}
    return flag, limit, start_key


def list_periodos(list_query: ListQuery) -> "Result[ApiResponse]":
    """Periods come back in month order from the catalog partition."""
    flag, limit, start_key = list_query
    return (
        ItemStore.for_entity(PERIODO.name)
        .query_partition(PERIODOS_PK, PERIODO_SK_PREFIX, filters=flag, limit=limit, start_key=start_key)
        .map(respond_page(PERIODO))
    )


@api_handler
def create_periodo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Create a period.

    Body: {"periodo": "YYYY-MM", "actual": "0" | "1", "nombre_periodo": str (<= 100)}

    Returns:
        201 with the stored period, 409 if the month already exists
    """
    return create_entity(event, PERIODO)


@api_handler
def get_periodo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Get one period by month, or list periods (optional actual filter)."""
    if has_path_key(event, PERIODO):
        return get_entity(event, PERIODO)

    return (
        require_auth(event, "GET")
        .and_then(lambda _: capture(parse_list_query, get_query_parameters(event)))
        .and_then(list_periodos)
    )


@api_handler
def update_periodo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    return update_entity(event, PERIODO)


@api_handler
def delete_periodo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    return delete_entity(event, PERIODO)


handler = route(
    {
        "GET": get_periodo,
        "POST": create_periodo,
        "PUT": update_periodo,
        "DELETE": delete_periodo,
    }
)
