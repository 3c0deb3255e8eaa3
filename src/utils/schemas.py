"""
Per-entity request schemas.

Each EntitySchema declares the fields an entity accepts, how its primary key
and secondary-index keys are derived, and how stored items are turned into
API payloads. Handlers validate requests against a schema before touching
the store.
"""

import secrets
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from . import ids
from .errors import ValidationError
from .responses import (
    build_cat_grupo_response,
    build_cat_origen_response,
    build_contrato_ciclo_response,
    build_contrato_response,
    build_periodo_response,
    build_usuario_contrato_response,
    build_usuario_response,
)
from .validation import (
    validate_bool_flag,
    validate_choice,
    validate_email,
    validate_identifier,
    validate_payload,
    validate_period,
    validate_positive_int,
    validate_text,
)

ACTIVATION_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
ACTIVATION_CODE_LENGTH = 9


@dataclass(frozen=True)
class Field:
    """A single validated attribute."""

    name: str
    validator: Callable[[Any, str], Any]
    required: bool = True

    def validate(self, value: Any) -> Any:
        return self.validator(value, self.name)


@dataclass(frozen=True)
class EntitySchema:
    """Declarative description of a stored entity."""

    name: str
    item_type: str
    fields: Tuple[Field, ...]
    key_fields: Tuple[str, ...]
    path_params: Tuple[str, ...]
    key_builder: Callable[..., Dict[str, str]]
    response_builder: Callable[[Dict[str, Any]], Any]
    index_fields: Tuple[str, ...] = ()
    index_builder: Optional[Callable[..., Dict[str, str]]] = None
    admin_only_delete: bool = False
    create_defaults: Optional[Callable[[Dict[str, Any], str], Dict[str, Any]]] = None
    update_extras: Optional[Callable[[Dict[str, Any], str], Dict[str, Any]]] = None

    @property
    def mutable_fields(self) -> Tuple[Field, ...]:
        return tuple(f for f in self.fields if f.name not in self.key_fields)

    def field_named(self, name: str) -> Field:
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        raise KeyError(name)

    def key_for(self, values: Mapping[str, Any]) -> Dict[str, str]:
        return self.key_builder(*(values[name] for name in self.key_fields))

    def index_keys_for(self, values: Mapping[str, Any]) -> Dict[str, str]:
        if self.index_builder is None:
            return {}
        return self.index_builder(*(values[name] for name in self.index_fields))

    def parse_key(self, path_parameters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Validate the natural-key path parameters.

        Returns:
            Mapping of key field name to validated value
        """
        params = path_parameters or {}
        values: Dict[str, Any] = {}
        for key_field, param in zip(self.key_fields, self.path_params):
            raw = params.get(param)
            if raw is None or raw == "":
                raise ValidationError(
                    f"Path parameter {param} is required", {"field": param}
                )
            values[key_field] = self.field_named(key_field).validate(raw)
        return values

    def validate_create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return validate_payload(payload, self.fields)

    def validate_update(
        self, payload: Dict[str, Any], key_values: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Validate a partial update.

        Key fields may be repeated in the body but must match the path. Index
        source fields that are not part of the key must change together so
        the index keys can be recomputed in the same request.
        """
        for name, expected in key_values.items():
            if payload.get(name) is not None:
                given = self.field_named(name).validate(payload[name])
                if given != expected:
                    raise ValidationError(
                        f"{name} in the body does not match the path", {"field": name}
                    )

        changes = validate_payload(payload, self.mutable_fields, partial=True)

        movable = [name for name in self.index_fields if name not in self.key_fields]
        touched = [name for name in movable if name in changes]
        if touched and len(touched) != len(movable):
            raise ValidationError(
                f"{' and '.join(movable)} must be updated together",
                {"fields": {name: "required with " + ", ".join(touched) for name in movable}},
            )
        return changes

    def build_item(self, values: Dict[str, Any], now: str) -> Dict[str, Any]:
        """Build the full store item for a create."""
        item: Dict[str, Any] = {
            **self.key_for(values),
            **values,
            **(self.create_defaults(values, now) if self.create_defaults else {}),
            **self.index_keys_for(values),
            "item_type": self.item_type,
            "createdAt": now,
            "updatedAt": now,
        }
        return item

    def build_changes(
        self, changes: Dict[str, Any], key_values: Mapping[str, Any], now: str
    ) -> Dict[str, Any]:
        """Attributes to SET on update, including recomputed index keys."""
        attributes: Dict[str, Any] = dict(changes)
        if self.update_extras is not None:
            attributes.update(self.update_extras(changes, now))
        merged = {**key_values, **changes}
        if self.index_builder is not None and all(name in merged for name in self.index_fields):
            touched = any(name in changes for name in self.index_fields)
            if touched:
                attributes.update(self.index_keys_for(merged))
        attributes["updatedAt"] = now
        return attributes


def generate_activation_code() -> str:
    """Random activation code without ambiguous characters (0, O, I, L, 1)."""
    return "".join(
        secrets.choice(ACTIVATION_CODE_ALPHABET) for _ in range(ACTIVATION_CODE_LENGTH)
    )


def _text(max_length: int, required: bool = True) -> Callable[[Any, str], str]:
    return partial(validate_text, max_length=max_length, required=required)


def _usuario_create_defaults(values: Dict[str, Any], now: str) -> Dict[str, Any]:
    defaults: Dict[str, Any] = {
        "cod_act": generate_activation_code(),
        "cod_act_vig": now,
        "fecha_estatus": now,
    }
    if "blk" not in values:
        defaults["blk"] = "N"
    if "disp_id_estatus" in values:
        defaults["disp_fecha_estatus"] = now
    return defaults


def _usuario_update_extras(changes: Dict[str, Any], now: str) -> Dict[str, Any]:
    extras: Dict[str, Any] = {}
    if "id_estatus" in changes:
        extras["fecha_estatus"] = now
    if "disp_id_estatus" in changes:
        extras["disp_fecha_estatus"] = now
    return extras


CAT_GRUPO = EntitySchema(
    name="cat_grupo",
    item_type="RK_PAI_CAT_GRUPO",
    fields=(
        Field("id_grupo", validate_positive_int),
        Field("descripcion", _text(255)),
    ),
    key_fields=("id_grupo",),
    path_params=("id",),
    key_builder=ids.cat_grupo_key,
    response_builder=build_cat_grupo_response,
)

CAT_ORIGEN = EntitySchema(
    name="cat_origen",
    item_type="RK_PAI_CAT_ORIGEN",
    fields=(
        Field("id_origen", validate_positive_int),
        Field("descripcion", _text(255)),
    ),
    key_fields=("id_origen",),
    path_params=("id",),
    key_builder=ids.cat_origen_key,
    response_builder=build_cat_origen_response,
)

CONTRATO = EntitySchema(
    name="contrato",
    item_type="RK_PAI_CAT_CONTRATO",
    fields=(
        Field("id_empresa", validate_positive_int),
        Field("id_contrato", validate_positive_int),
        Field("id_origen", validate_positive_int),
        Field("descripcion", _text(500)),
    ),
    key_fields=("id_empresa",),
    path_params=("id_empresa",),
    key_builder=ids.contrato_key,
    response_builder=build_contrato_response,
    index_fields=("id_origen", "id_contrato"),
    index_builder=ids.contrato_index_keys,
    admin_only_delete=True,
)

CONTRATO_CICLO = EntitySchema(
    name="contrato_ciclo",
    item_type="RK_PAI_CAT_CONTRATO_CICLO",
    fields=(
        Field("id_ciclo", validate_positive_int),
        Field("id_contrato", validate_positive_int),
        Field("id_origen", validate_positive_int),
        Field("activo", validate_bool_flag),
        Field("descripcion", _text(500)),
    ),
    key_fields=("id_ciclo",),
    path_params=("id_ciclo",),
    key_builder=ids.contrato_ciclo_key,
    response_builder=build_contrato_ciclo_response,
    index_fields=("id_origen", "id_contrato"),
    index_builder=ids.contrato_ciclo_index_keys,
    admin_only_delete=True,
)

USUARIO = EntitySchema(
    name="usuario",
    item_type="RK_PAI_USUARIO_APP",
    fields=(
        Field("id_usuario", partial(validate_identifier, max_length=50)),
        Field("email", validate_email),
        Field("cognito_sub", _text(100, required=False), required=False),
        Field("id_disp", _text(100, required=False), required=False),
        Field("blk", partial(validate_choice, choices=("Y", "N", "S")), required=False),
        Field("id_blk_motivo", validate_positive_int, required=False),
        Field("id_estatus", validate_positive_int, required=False),
        Field("app_version", _text(20, required=False), required=False),
        Field("disp_os_type", _text(50, required=False), required=False),
        Field("disp_os_version", _text(50, required=False), required=False),
        Field("disp_os_model", _text(100, required=False), required=False),
        Field("disp_id_estatus", validate_positive_int, required=False),
    ),
    key_fields=("id_usuario",),
    path_params=("id",),
    key_builder=ids.usuario_key,
    response_builder=build_usuario_response,
    create_defaults=_usuario_create_defaults,
    update_extras=_usuario_update_extras,
)

USUARIO_CONTRATO = EntitySchema(
    name="usuario_contrato",
    item_type="RK_PAI_USUARIO_CONTRATO",
    fields=(
        Field("id_usuario", validate_positive_int),
        Field("id_origen", validate_positive_int),
        Field("id_contrato", validate_positive_int),
        Field("id_ciclo", validate_positive_int),
        Field("id_participante", validate_positive_int),
        Field("token_participante", partial(validate_identifier, max_length=255)),
    ),
    key_fields=("id_usuario", "id_origen", "id_contrato"),
    path_params=("id_usuario", "id_origen", "id_contrato"),
    key_builder=ids.usuario_contrato_key,
    response_builder=build_usuario_contrato_response,
    index_fields=("id_usuario", "id_contrato"),
    index_builder=ids.usuario_contrato_index_keys,
)

PERIODO = EntitySchema(
    name="periodo",
    item_type="RK_PAI_CATALOGO_PERIODOS",
    fields=(
        Field("periodo", validate_period),
        Field("actual", partial(validate_choice, choices=("0", "1"))),
        Field("nombre_periodo", _text(100)),
    ),
    key_fields=("periodo",),
    path_params=("periodo",),
    key_builder=ids.periodo_key,
    response_builder=build_periodo_response,
)
