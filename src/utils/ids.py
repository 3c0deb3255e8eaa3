"""
Key derivation utilities for the single-table DynamoDB layout.

Every primary key and secondary-index key is derived here so the write path
(create/update) and the read path (get/query) always agree on the format.
"""

from typing import Dict, Union

METADATA_SK = "METADATA"

IdValue = Union[int, str]


def _key(pk: str, sk: str = METADATA_SK) -> Dict[str, str]:
    return {"_pk": pk, "_sk": sk}


# Primary keys


def cat_grupo_key(id_grupo: int) -> Dict[str, str]:
    return _key(f"CAT_GRUPO#{id_grupo}")


def cat_origen_key(id_origen: int) -> Dict[str, str]:
    return _key(f"CAT_ORIGEN#{id_origen}")


def contrato_key(id_empresa: int) -> Dict[str, str]:
    return _key(f"CAT_CONTRATO#{id_empresa}")


def contrato_ciclo_key(id_ciclo: int) -> Dict[str, str]:
    return _key(f"CAT_CONTRATO_CICLO#{id_ciclo}")


def usuario_key(id_usuario: str) -> Dict[str, str]:
    return _key(f"USUARIO#{id_usuario}")


def usuario_contrato_key(id_usuario: int, id_origen: int, id_contrato: int) -> Dict[str, str]:
    """User-contract links live in the user's partition, one sort key per contract."""
    return _key(f"USUARIO#{id_usuario}", f"CONTRATO_USUARIO#{id_origen}#{id_contrato}")


USUARIO_CONTRATO_SK_PREFIX = "CONTRATO_USUARIO#"

# Every period lives in one catalog partition, one sort key per month
PERIODOS_PK = "CATALOGO#PERIODOS"
PERIODO_SK_PREFIX = "PERIODO#"


def periodo_key(periodo: str) -> Dict[str, str]:
    return _key(PERIODOS_PK, f"{PERIODO_SK_PREFIX}{periodo}")


# Secondary-index keys

# Index name -> (partition attribute, sort attribute)
INDEXES: Dict[str, tuple] = {
    "GSI5": ("gsi5pk", "gsi5sk"),
    "GSI7": ("gsi7pk", "gsi7sk"),
    "GSI8": ("gsi8pk", "gsi8sk"),
}


def origen_partition(id_origen: IdValue) -> str:
    return f"ORIGEN#{id_origen}"


def contrato_partition(id_contrato: IdValue) -> str:
    return f"CONTRATO#{id_contrato}"


def usuario_sort(id_usuario: IdValue) -> str:
    return f"USUARIO#{id_usuario}"


def contrato_index_keys(id_origen: int, id_contrato: int) -> Dict[str, str]:
    """GSI7: contracts grouped by origin, sorted by contract."""
    return {"gsi7pk": origen_partition(id_origen), "gsi7sk": contrato_partition(id_contrato)}


def contrato_ciclo_index_keys(id_origen: int, id_contrato: int) -> Dict[str, str]:
    """GSI8: contract cycles grouped by origin, sorted by contract."""
    return {"gsi8pk": origen_partition(id_origen), "gsi8sk": contrato_partition(id_contrato)}


def usuario_contrato_index_keys(id_usuario: int, id_contrato: int) -> Dict[str, str]:
    """GSI5: user-contract links grouped by contract."""
    return {"gsi5pk": contrato_partition(id_contrato), "gsi5sk": usuario_sort(id_usuario)}
