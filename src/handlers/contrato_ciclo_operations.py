"""Lambda handlers for contract cycle (ContratoCiclo) operations."""

from typing import Any, Dict, Optional, Tuple

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.api_types import ApiResponse, get_query_parameters  # type: ignore[import-not-found]
    from utils.errors import ValidationError  # type: ignore[import-not-found]
    from utils.ids import contrato_partition, origen_partition  # type: ignore[import-not-found]
    from utils.item_store import ItemStore  # type: ignore[import-not-found]
    from utils.logging import get_logger  # type: ignore[import-not-found]
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
    from utils.schemas import CONTRATO_CICLO  # type: ignore[import-not-found]
    from utils.validation import parse_pagination, validate_bool_flag, validate_positive_int  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.api_types import ApiResponse, get_query_parameters
    from ..utils.errors import ValidationError
    from ..utils.ids import contrato_partition, origen_partition
    from ..utils.item_store import ItemStore
    from ..utils.logging import get_logger
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
    from ..utils.schemas import CONTRATO_CICLO
    from ..utils.validation import parse_pagination, validate_bool_flag, validate_positive_int

logger = get_logger(__name__)

ListQuery = Tuple[Dict[str, Any], int, Optional[Dict[str, Any]]]


def parse_list_query(query: Dict[str, Any]) -> ListQuery:
    limit, start_key = parse_pagination(query)
    filters: Dict[str, Any] = {}
    for name in ("id_origen", "id_contrato"):
        if query.get(name):
            filters[name] = validate_positive_int(query[name], name)
    if query.get("activo") not in (None, ""):
        filters["activo"] = validate_bool_flag(query["activo"], "activo")

    if "id_contrato" in filters and "id_origen" not in filters:
        raise ValidationError(
            "id_contrato can only be used together with id_origen", {"field": "id_contrato"}
        )
    return filters, limit, start_key


def list_contrato_ciclos(list_query: ListQuery) -> "Result[ApiResponse]":
    """Cycles by origin use GSI8; the activo flag is applied as a filter."""
    filters, limit, start_key = list_query
    store = ItemStore.for_entity(CONTRATO_CICLO.name)
    flag = {"activo": filters["activo"]} if "activo" in filters else None

    if "id_origen" in filters:
        logger.info("Listing ciclos by origen", **filters)
        sort_value = (
            contrato_partition(filters["id_contrato"]) if "id_contrato" in filters else None
        )
        page = store.query_index(
            "GSI8",
            origen_partition(filters["id_origen"]),
            sort_value,
            filters=flag,
            limit=limit,
            start_key=start_key,
        )
    else:
        page = store.scan(CONTRATO_CICLO.item_type, filters=flag, limit=limit, start_key=start_key)

    return page.map(respond_page(CONTRATO_CICLO))


@api_handler
def create_contrato_ciclo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Create a contract cycle.

    Body: {"id_ciclo", "id_contrato", "id_origen": int > 0,
           "activo": bool-like, "descripcion": str (<= 500)}
    """
    return create_entity(event, CONTRATO_CICLO)


@api_handler
def get_contrato_ciclo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Get one cycle by id_ciclo, or list cycles (id_origen, id_contrato, activo filters)."""
    if has_path_key(event, CONTRATO_CICLO):
        return get_entity(event, CONTRATO_CICLO)

    return (
        require_auth(event, "GET")
        .and_then(lambda _: capture(parse_list_query, get_query_parameters(event)))
        .and_then(list_contrato_ciclos)
    )


@api_handler
def update_contrato_ciclo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    return update_entity(event, CONTRATO_CICLO)


@api_handler
def delete_contrato_ciclo(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Delete a cycle (admin group only)."""
    return delete_entity(event, CONTRATO_CICLO)


handler = route(
    {
        "GET": get_contrato_ciclo,
        "POST": create_contrato_ciclo,
        "PUT": update_contrato_ciclo,
        "DELETE": delete_contrato_ciclo,
    }
)
