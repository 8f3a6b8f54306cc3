import json

import pytest

from wfibe.core import encrypt
from wfibe.errors import ConfigError, DecodeError
from wfibe.params import (
    PublicParametersBundle,
    dump_master_secret,
    export_public_params,
    import_public_params,
    load_master_secret,
    load_public_params,
    save_public_params,
)


def test_export_import_is_byte_identical(small):
    first = export_public_params(small.public)
    data = first.to_bytes()
    again = export_public_params(import_public_params(PublicParametersBundle.from_bytes(data)))
    assert again == first
    assert again.to_bytes() == data


def test_imported_parameters_encrypt(small):
    pp = import_public_params(export_public_params(small.public))
    assert (pp.n, pp.m, pp.pairing) == (6, 5, "SS512")
    assert encrypt(pp, b"hi", ["a"], {"b": 1}, 1).ok


def test_file_round_trip(small, tmp_path):
    path = str(tmp_path / "keys" / "pp.json")
    bundle = save_public_params(path, small.public)
    assert export_public_params(load_public_params(path)) == bundle


def test_missing_row_rejected(small):
    d = export_public_params(small.public).to_dict()
    d["mpk1"] = d["mpk1"][:1]
    with pytest.raises(DecodeError):
        import_public_params(PublicParametersBundle.from_dict(d))


def test_short_row_rejected(small):
    d = export_public_params(small.public).to_dict()
    d["mpk2"] = [row[:-1] for row in d["mpk2"]]
    with pytest.raises(DecodeError):
        import_public_params(PublicParametersBundle.from_dict(d))


def test_wrong_element_kind_rejected(small):
    d = export_public_params(small.public).to_dict()
    d["g1"] = d["Z"]
    with pytest.raises(DecodeError):
        import_public_params(PublicParametersBundle.from_dict(d))


@pytest.mark.parametrize("field", ["n", "g2", "mpk1", "pairing"])
def test_missing_field_rejected(small, field):
    d = export_public_params(small.public).to_dict()
    del d[field]
    with pytest.raises(DecodeError):
        PublicParametersBundle.from_dict(d)


@pytest.mark.parametrize("value", [0, -3, "6", True])
def test_bad_dimension_rejected(small, value):
    d = export_public_params(small.public).to_dict()
    d["n"] = value
    with pytest.raises(DecodeError):
        PublicParametersBundle.from_dict(d)


def test_non_json_rejected():
    with pytest.raises(DecodeError):
        PublicParametersBundle.from_bytes(b"\x00not json")
    with pytest.raises(DecodeError):
        PublicParametersBundle.from_bytes(json.dumps([1, 2]).encode())


def test_unknown_pairing_rejected(small):
    d = export_public_params(small.public).to_dict()
    d["pairing"] = "type z"
    with pytest.raises(ConfigError):
        import_public_params(PublicParametersBundle.from_dict(d))


def test_master_secret_round_trip(small):
    ctx = small.public.ctx
    blob = dump_master_secret(ctx, small.secret)
    back = load_master_secret(ctx, json.loads(json.dumps(blob)))
    assert back.B1 == small.secret.B1
    assert back.B2 == small.secret.B2
