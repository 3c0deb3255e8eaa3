"""
API Gateway response builders for Lambda handlers.

Provides the uniform ``{success, data|error, timestamp}`` envelope with CORS
headers, plus entity builders that turn DynamoDB items into API payloads.
"""

import base64
import json
import os
import traceback
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, TypedDict, cast

from .api_types import ApiResponse
from .errors import AppError, handle_error

CORS_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "Content-Type,X-Amz-Date,Authorization,X-Api-Key,X-Amz-Security-Token,Authentication"
    ),
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}


class CatGrupoResponse(TypedDict, total=False):
    """Catalog group payload."""

    id_grupo: int
    descripcion: str
    item_type: str
    createdAt: str
    updatedAt: str


class CatOrigenResponse(TypedDict, total=False):
    """Catalog origin payload."""

    id_origen: int
    descripcion: str
    item_type: str
    createdAt: str
    updatedAt: str


class ContratoResponse(TypedDict, total=False):
    """Contract payload."""

    id_empresa: int
    id_contrato: int
    id_origen: int
    descripcion: str
    item_type: str
    createdAt: str
    updatedAt: str


class ContratoCicloResponse(TypedDict, total=False):
    """Contract cycle payload."""

    id_ciclo: int
    id_contrato: int
    id_origen: int
    activo: bool
    descripcion: str
    item_type: str
    createdAt: str
    updatedAt: str


class UsuarioResponse(TypedDict, total=False):
    """User payload. The activation code is never returned."""

    id_usuario: str
    email: str
    cognito_sub: Optional[str]
    id_disp: Optional[str]
    blk: str
    id_blk_motivo: Optional[int]
    id_estatus: Optional[int]
    fecha_estatus: Optional[str]
    app_version: Optional[str]
    disp_os_type: Optional[str]
    disp_os_version: Optional[str]
    disp_os_model: Optional[str]
    disp_id_estatus: Optional[int]
    disp_fecha_estatus: Optional[str]
    cod_act_vig: Optional[str]
    item_type: str
    createdAt: str
    updatedAt: str


class PeriodoResponse(TypedDict, total=False):
    """Catalog period payload. actual is "1" for the current period."""

    periodo: str
    actual: str
    nombre_periodo: str
    item_type: str
    createdAt: str
    updatedAt: str


class UsuarioContratoResponse(TypedDict, total=False):
    """User-contract link payload."""

    id_usuario: int
    id_origen: int
    id_contrato: int
    id_ciclo: int
    id_participante: int
    token_participante: str
    item_type: str
    createdAt: str
    updatedAt: str


def _as_int(value: Any) -> Optional[int]:
    """Coerce DynamoDB numbers (Decimal) to int, or None if not numeric."""
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def _bookkeeping(item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "item_type": item.get("item_type", ""),
        "createdAt": item.get("createdAt", ""),
        "updatedAt": item.get("updatedAt", ""),
    }


def build_cat_grupo_response(item: Dict[str, Any]) -> CatGrupoResponse:
    return CatGrupoResponse(
        id_grupo=cast(int, _as_int(item.get("id_grupo"))),
        descripcion=cast(str, item.get("descripcion", "")),
        **_bookkeeping(item),
    )


def build_cat_origen_response(item: Dict[str, Any]) -> CatOrigenResponse:
    return CatOrigenResponse(
        id_origen=cast(int, _as_int(item.get("id_origen"))),
        descripcion=cast(str, item.get("descripcion", "")),
        **_bookkeeping(item),
    )


def build_contrato_response(item: Dict[str, Any]) -> ContratoResponse:
    return ContratoResponse(
        id_empresa=cast(int, _as_int(item.get("id_empresa"))),
        id_contrato=cast(int, _as_int(item.get("id_contrato"))),
        id_origen=cast(int, _as_int(item.get("id_origen"))),
        descripcion=cast(str, item.get("descripcion", "")),
        **_bookkeeping(item),
    )


def build_contrato_ciclo_response(item: Dict[str, Any]) -> ContratoCicloResponse:
    return ContratoCicloResponse(
        id_ciclo=cast(int, _as_int(item.get("id_ciclo"))),
        id_contrato=cast(int, _as_int(item.get("id_contrato"))),
        id_origen=cast(int, _as_int(item.get("id_origen"))),
        activo=bool(item.get("activo", False)),
        descripcion=cast(str, item.get("descripcion", "")),
        **_bookkeeping(item),
    )


def build_usuario_response(item: Dict[str, Any]) -> UsuarioResponse:
    """
    Build a user payload from a DynamoDB item.

    Keys, index attributes and the activation code (cod_act) are never
    exposed; optional attributes that were never set are omitted.
    """
    optional_text = (
        "cognito_sub",
        "id_disp",
        "fecha_estatus",
        "app_version",
        "disp_os_type",
        "disp_os_version",
        "disp_os_model",
        "disp_fecha_estatus",
        "cod_act_vig",
    )
    optional_int = ("id_blk_motivo", "id_estatus", "disp_id_estatus")

    response = UsuarioResponse(
        id_usuario=cast(str, item.get("id_usuario", "")),
        email=cast(str, item.get("email", "")),
        blk=cast(str, item.get("blk", "N")),
        **_bookkeeping(item),
    )
    for name in optional_text:
        if item.get(name) is not None:
            response[name] = item[name]  # type: ignore[literal-required]
    for name in optional_int:
        if item.get(name) is not None:
            response[name] = _as_int(item[name])  # type: ignore[literal-required]
    return response


def build_usuario_contrato_response(item: Dict[str, Any]) -> UsuarioContratoResponse:
    return UsuarioContratoResponse(
        id_usuario=cast(int, _as_int(item.get("id_usuario"))),
        id_origen=cast(int, _as_int(item.get("id_origen"))),
        id_contrato=cast(int, _as_int(item.get("id_contrato"))),
        id_ciclo=cast(int, _as_int(item.get("id_ciclo"))),
        id_participante=cast(int, _as_int(item.get("id_participante"))),
        token_participante=cast(str, item.get("token_participante", "")),
        **_bookkeeping(item),
    )


def build_periodo_response(item: Dict[str, Any]) -> PeriodoResponse:
    return PeriodoResponse(
        periodo=cast(str, item.get("periodo", "")),
        actual=cast(str, item.get("actual", "0")),
        nombre_periodo=cast(str, item.get("nombre_periodo", "")),
        **_bookkeeping(item),
    )


def build_list_response(
    items: List[Dict[str, Any]], builder: Callable[[Dict[str, Any]], Any]
) -> List[Any]:
    """
    Build a list of responses using the provided builder.

    Args:
        items: List of DynamoDB items
        builder: Builder function to apply to each item

    Returns:
        List of built responses
    """
    return [builder(item) for item in items]


def build_page(
    items: List[Dict[str, Any]],
    builder: Callable[[Dict[str, Any]], Any],
    last_evaluated_key: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a paginated payload.

    The cursor is opaque base64 so it can be sent back verbatim as the
    ``lastEvaluatedKey`` query parameter.
    """
    page: Dict[str, Any] = {
        "items": build_list_response(items, builder),
        "count": len(items),
    }
    if last_evaluated_key:
        page["pagination"] = {
            "lastEvaluatedKey": encode_cursor(last_evaluated_key),
            "hasMoreItems": True,
        }
    return page


def encode_cursor(key: Dict[str, Any]) -> str:
    """URL-safe base64 of the key as JSON, padding dropped, so it survives query strings untouched."""
    raw = json.dumps(key, default=json_default, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def json_default(value: Any) -> Any:
    """JSON fallback for DynamoDB types."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_development() -> bool:
    return os.getenv("ENVIRONMENT", "").lower() == "development"


def success_response(
    data: Any, status_code: int = 200, message: Optional[str] = None
) -> ApiResponse:
    """Wrap a payload in the success envelope."""
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    body["timestamp"] = _timestamp()
    return ApiResponse(
        statusCode=status_code,
        headers=dict(CORS_HEADERS),
        body=json.dumps(body, default=json_default),
    )


def error_response(error: AppError) -> ApiResponse:
    """
    Wrap an AppError in the error envelope using its status code.

    A stack trace is attached only when ENVIRONMENT=development.
    """
    payload: Dict[str, Any] = {"code": error.status_code, **handle_error(error)}
    if is_development():
        source = error.__cause__ or error
        payload["stack"] = "".join(
            traceback.format_exception(type(source), source, source.__traceback__)
        )

    body = {"success": False, "error": payload, "timestamp": _timestamp()}
    return ApiResponse(
        statusCode=error.status_code,
        headers=dict(CORS_HEADERS),
        body=json.dumps(body, default=json_default),
    )


def options_response() -> ApiResponse:
    """CORS preflight response."""
    return ApiResponse(statusCode=200, headers=dict(CORS_HEADERS), body="")
