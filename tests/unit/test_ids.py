"""Tests for key derivation utilities."""

from src.utils import ids


class TestPrimaryKeys:
    """Primary keys share the METADATA sort key except user-contract links."""

    def test_catalog_keys(self) -> None:
        assert ids.cat_grupo_key(5) == {"_pk": "CAT_GRUPO#5", "_sk": "METADATA"}
        assert ids.cat_origen_key(3) == {"_pk": "CAT_ORIGEN#3", "_sk": "METADATA"}

    def test_contrato_keys(self) -> None:
        assert ids.contrato_key(12) == {"_pk": "CAT_CONTRATO#12", "_sk": "METADATA"}
        assert ids.contrato_ciclo_key(7) == {"_pk": "CAT_CONTRATO_CICLO#7", "_sk": "METADATA"}

    def test_usuario_key(self) -> None:
        assert ids.usuario_key("abc-1") == {"_pk": "USUARIO#abc-1", "_sk": "METADATA"}

    def test_usuario_contrato_key_lives_in_user_partition(self) -> None:
        key = ids.usuario_contrato_key(9, 3, 44)

        assert key == {"_pk": "USUARIO#9", "_sk": "CONTRATO_USUARIO#3#44"}
        assert key["_pk"] == ids.usuario_key(9)["_pk"]
        assert key["_sk"].startswith(ids.USUARIO_CONTRATO_SK_PREFIX)

    def test_periodos_share_catalog_partition(self) -> None:
        key = ids.periodo_key("2024-05")

        assert key == {"_pk": "CATALOGO#PERIODOS", "_sk": "PERIODO#2024-05"}
        assert key["_sk"].startswith(ids.PERIODO_SK_PREFIX)


class TestIndexKeys:
    """Index keys written on create must match the values queried on list."""

    def test_contrato_index_keys(self) -> None:
        keys = ids.contrato_index_keys(3, 44)

        assert keys == {"gsi7pk": "ORIGEN#3", "gsi7sk": "CONTRATO#44"}
        assert keys["gsi7pk"] == ids.origen_partition("3")

    def test_contrato_ciclo_index_keys(self) -> None:
        assert ids.contrato_ciclo_index_keys(3, 44) == {"gsi8pk": "ORIGEN#3", "gsi8sk": "CONTRATO#44"}

    def test_usuario_contrato_index_keys(self) -> None:
        keys = ids.usuario_contrato_index_keys(9, 44)

        assert keys == {"gsi5pk": "CONTRATO#44", "gsi5sk": "USUARIO#9"}
        assert keys["gsi5sk"] == ids.usuario_sort(9)

    def test_index_attribute_names(self) -> None:
        for name, (pk, sk) in ids.INDEXES.items():
            number = name[len("GSI") :]
            assert pk == f"gsi{number}pk"
            assert sk == f"gsi{number}sk"
