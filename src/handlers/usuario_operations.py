"""
Lambda handlers for app user (Usuario) operations.

Users are keyed USUARIO#<id_usuario> / METADATA. A 9-character activation
code is generated on create and stored with the user, but it is never
returned by any of these handlers.
"""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.api_types import ApiResponse  # type: ignore[import-not-found]
    from utils.pipeline import api_handler, create_entity, delete_entity, get_entity, route, update_entity  # type: ignore[import-not-found]
    from utils.result import Result  # type: ignore[import-not-found]
    from utils.schemas import USUARIO  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.api_types import ApiResponse
    from ..utils.pipeline import api_handler, create_entity, delete_entity, get_entity, route, update_entity
    from ..utils.result import Result
    from ..utils.schemas import USUARIO


@api_handler
def create_usuario(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Register an app user.

    Body: {"id_usuario": str, "email": str, ...optional device/status fields}

    blk defaults to "N". fecha_estatus and cod_act_vig are stamped with the
    creation time, and disp_fecha_estatus too when disp_id_estatus is sent.
    """
    return create_entity(event, USUARIO)


@api_handler
def get_usuario(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """Get a user by path id. Users are never listed."""
    return get_entity(event, USUARIO)


@api_handler
def update_usuario(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    """
    Partially update a user.

    Changing id_estatus restamps fecha_estatus; changing disp_id_estatus
    restamps disp_fecha_estatus.
    """
    return update_entity(event, USUARIO)


@api_handler
def delete_usuario(event: Dict[str, Any], context: Any) -> "Result[ApiResponse]":
    return delete_entity(event, USUARIO)


handler = route(
    {
        "GET": get_usuario,
        "POST": create_usuario,
        "PUT": update_usuario,
        "DELETE": delete_usuario,
    }
)
