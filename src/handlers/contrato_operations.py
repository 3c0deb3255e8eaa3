"""
Lambda handlers for contract (Contrato) operations.

Contracts are keyed CAT_CONTRATO#<id_empresa> / METADATA and carry GSI7 keys
(ORIGEN#<id_origen> / CONTRATO#<id_contrato>) so contracts can be listed by
origin without a scan. Deleting a contract requires the admin group.
"""

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
    from utils.schemas import CONTRATO  # type: ignore[import-not-found]
    from utils.validation import parse_pagination, validate_positive_int  # type: ignore[import-not-found]
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
    from ..utils.schemas import CONTRATO
    from ..utils.validation import parse_pagination, validate_positive_int

logger = get_logger(__name__)

ListQuery = Tuple[Dict[str, int], int, Optional[Dict[str, Any]]]


def parse_list_query(query: Dict[str, Any]) -> ListQuery:
    """
    Validate listing filters and paging.

    id_contrato narrows an id_origen lookup; on its own it would need a scan,
    so it is rejected.
    """
    limit, start_key = parse_pagination(query)
    filters: Dict[str, int] = {}
    for name in ("id_origen", "id_contrato"):
        if query.get(name):
            filters[name] = validate_positive_int(query[name], name)

    if "id_contrato" in filters and "id_origen" not in filters:
        raise ValidationError(
            "id_contrato can only be used together with id_origen", {"field": "id_contrato"}
        )
    return filters, limit, start_key


def list_contratos(list_query: ListQuery) -> "Result[ApiResponse]":
    filters, limit, start_key = list_query
    store = ItemStore.for_entity(CONTRATO.name)

    if "id_origen" in filters:
        logger.info("Listing contratos by origen", **filters)
        sort_value = (
            contrato_partition(filters["id_contrato"]) if "id_contrato" in filters else None
        )
        page = store.query_index(
            "GSI7",
            origen_partition(filters["id_origen"]),
            sort_value,
            limit=limit,
            start_key=start_key,
        )
    else:
        page = store.scan(CONTRATO.item_type, limit=limit, start_key=start_key)

    return page.map(respond_page(CONTRATO))


@api_handler
def create_contrato(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Create a contract.

    Body: {"id_empresa", "id_contrato", "id_origen": int > 0,
           "descripcion": str (<= 500)}
    """
    return create_entity(event, CONTRATO)


@api_handler
def get_contrato(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Get one contract by id_empresa, or list contracts.

    Query parameters: id_origen (GSI7 lookup), id_contrato (with id_origen),
    limit (1-100, default 50), lastEvaluatedKey (cursor from a previous page).
    """
    if has_path_key(event, CONTRATO):
        return get_entity(event, CONTRATO)

    return (
        require_auth(event, "GET")
        .and_then(lambda _: capture(parse_list_query, get_query_parameters(event)))
        .and_then(list_contratos)
    )


@api_handler
def update_contrato(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Update a contract.

    id_origen and id_contrato feed the GSI7 keys, so they must be sent
    together; the index keys are rewritten in the same request.
    """
    return update_entity(event, CONTRATO)


@api_handler
def delete_contrato(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Delete a contract (admin group only)."""
    return delete_entity(event, CONTRATO)


handler = route(
    {
        "GET": get_contrato,
        "POST": create_contrato,
        "PUT": update_contrato,
        "DELETE": delete_contrato,
    }
)
