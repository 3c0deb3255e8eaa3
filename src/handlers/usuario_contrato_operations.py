"""
Lambda handlers for user-contract links (UsuarioContrato).

A link lives in its user's partition:
    _pk = USUARIO#<id_usuario>, _sk = CONTRATO_USUARIO#<id_origen>#<id_contrato>
and carries GSI5 keys (CONTRATO#<id_contrato> / USUARIO#<id_usuario>) so the
links of a contract can be found without a scan.
"""

from typing import Any, Dict, Optional, Tuple

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.api_types import ApiResponse, get_query_parameters  # type: ignore[import-not-found]
    from utils.errors import ValidationError  # type: ignore[import-not-found]
    from utils.ids import USUARIO_CONTRATO_SK_PREFIX, contrato_partition, usuario_key, usuario_sort  # type: ignore[import-not-found]
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
    from utils.schemas import USUARIO_CONTRATO  # type: ignore[import-not-found]
    from utils.validation import parse_pagination, validate_positive_int  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.api_types import ApiResponse, get_query_parameters
    from ..utils.errors import ValidationError
    from ..utils.ids import USUARIO_CONTRATO_SK_PREFIX, contrato_partition, usuario_key, usuario_sort
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
    from ..utils.schemas import USUARIO_CONTRATO
    from ..utils.validation import parse_pagination, validate_positive_int

logger = get_logger(__name__)

ListQuery = Tuple[Dict[str, int], int, Optional[Dict[str, Any]]]


def parse_list_query(query: Dict[str, Any]) -> ListQuery:
    """At least one of id_usuario or id_contrato is required; id_ciclo narrows either."""
    limit, start_key = parse_pagination(query)
    filters: Dict[str, int] = {}
    for name in ("id_usuario", "id_contrato", "id_ciclo"):
        if query.get(name):
            filters[name] = validate_positive_int(query[name], name)

    if "id_usuario" not in filters and "id_contrato" not in filters:
        raise ValidationError("Either id_usuario or id_contrato must be provided")
    return filters, limit, start_key


def list_usuario_contratos(list_query: ListQuery) -> "Result[ApiResponse]":
    filters, limit, start_key = list_query
    store = ItemStore.for_entity(USUARIO_CONTRATO.name)
    ciclo = {"id_ciclo": filters["id_ciclo"]} if "id_ciclo" in filters else None

    if "id_contrato" in filters:
        logger.info("Listing usuario_contratos by contrato", **filters)
        sort_value = usuario_sort(filters["id_usuario"]) if "id_usuario" in filters else None
        page = store.query_index(
            "GSI5",
            contrato_partition(filters["id_contrato"]),
            sort_value,
            filters=ciclo,
            limit=limit,
            start_key=start_key,
        )
    else:
        logger.info("Listing usuario_contratos by usuario", **filters)
        page = store.query_partition(
            usuario_key(filters["id_usuario"])["_pk"],
            USUARIO_CONTRATO_SK_PREFIX,
            filters=ciclo,
            limit=limit,
            start_key=start_key,
        )

    return page.map(respond_page(USUARIO_CONTRATO))


@api_handler
def create_usuario_contrato(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Link a user to a contract.

    Body: {"id_usuario", "id_origen", "id_contrato", "id_ciclo",
           "id_participante": int > 0, "token_participante": str}
    """
    return create_entity(event, USUARIO_CONTRATO)


@api_handler
def get_usuario_contrato(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Get one link by /{id_usuario}/{id_origen}/{id_contrato}, or list links.

    Listing by id_usuario queries the user's partition; listing by
    id_contrato queries GSI5.
    """
    if has_path_key(event, USUARIO_CONTRATO):
        return get_entity(event, USUARIO_CONTRATO)

    return (
        require_auth(event, "GET")
        .and_then(lambda _: capture(parse_list_query, get_query_parameters(event)))
        .and_then(list_usuario_contratos)
    )


@api_handler
def update_usuario_contrato(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Update id_ciclo, id_participante or token_participante of a link."""
    return update_entity(event, USUARIO_CONTRATO)


@api_handler
def delete_usuario_contrato(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    return delete_entity(event, USUARIO_CONTRATO)


handler = route(
    {
        "GET": get_usuario_contrato,
        "POST": create_usuario_contrato,
        "PUT": update_usuario_contrato,
        "DELETE": delete_usuario_contrato,
    }
)
