import pytest
from charm.toolbox.pairinggroup import ZR, G1, G2, GT

from wfibe.config import TYPE_A_PARAMS
from wfibe.errors import ConfigError, DecodeError
from wfibe.group import GroupContext, b64d, resolve_curve


def test_resolve_named_curve():
    assert resolve_curve("SS512") == "SS512"


def test_resolve_raw_type_a_block():
    assert resolve_curve(TYPE_A_PARAMS) == "SS512"


@pytest.mark.parametrize("bad", ["", "   ", "type a\nq 7", "NOPE512"])
def test_unknown_descriptor_rejected(bad):
    with pytest.raises(ConfigError):
        GroupContext(bad)


def test_scalar_reduced_mod_order(ctx):
    assert ctx.scalar(ctx.order + 5) == ctx.scalar(5)
    assert ctx.scalar(-1) == ctx.zero() - ctx.one()


def test_dot_product(ctx):
    u = ctx.scalars([1, 2, 3])
    v = ctx.scalars([4, 5, 6])
    assert ctx.dot(u, v) == ctx.scalar(32)
    with pytest.raises(ValueError):
        ctx.dot(u, v[:2])


def test_multi_exp_matches_naive_product(ctx):
    bases = [ctx.random(G1) for _ in range(4)]
    exps = ctx.scalars([3, 0, 7, 1])
    expected = bases[0] ** exps[0] * bases[2] ** exps[2] * bases[3] ** exps[3]
    assert ctx.multi_exp(bases, exps) == expected


def test_multi_exp_all_zero_is_identity(ctx):
    bases = [ctx.random(G1) for _ in range(3)]
    ident = ctx.multi_exp(bases, [ctx.zero()] * 3)
    g = ctx.random(G1)
    assert g * ident == g


def test_serialize_round_trip(ctx):
    for kind in (ZR, G1, G2, GT):
        e = ctx.random(kind)
        assert ctx.deserialize(ctx.serialize(e), kind) == e


def test_deserialize_rejects_wrong_kind(ctx):
    data = ctx.serialize(ctx.random(ZR))
    with pytest.raises(DecodeError):
        ctx.deserialize(data, G1)


@pytest.mark.parametrize("junk", [b"", b"garbage", "1:abc"])
def test_deserialize_rejects_garbage(ctx, junk):
    with pytest.raises(DecodeError):
        ctx.deserialize(junk, G1)


def test_element_size_is_encoding_length(ctx):
    assert ctx.element_size(G1) == len(ctx.serialize(ctx.random(G1)))
    assert ctx.element_size(G2) > 0


def test_b64d_rejects_invalid():
    with pytest.raises(DecodeError):
        b64d("@@@")


def test_identity_is_neutral(ctx):
    g = ctx.random(G1)
    assert g * ctx.identity(G1) == g


def test_short_body_rejected_before_charm(ctx, monkeypatch):
    def boom(data):
        raise AssertionError("charm deserialize reached with a short buffer")

    monkeypatch.setattr(ctx.group, "deserialize", boom)
    with pytest.raises(DecodeError):
        ctx.deserialize(b"1:abc", G1)
    with pytest.raises(DecodeError):
        ctx.deserialize(b"1:YWI=")


def test_truncated_element_rejected(ctx):
    import base64

    data = ctx.serialize(ctx.random(G1))
    raw = base64.b64decode(data.split(b":", 1)[1])
    short = b"1:" + base64.b64encode(raw[:-1])
    with pytest.raises(DecodeError):
        ctx.deserialize(short, G1)
    with pytest.raises(DecodeError):
        ctx.deserialize(data + b"AAAA", G1)


@pytest.mark.parametrize("junk", [b"x:abcd", b"9:abcd", b"1:!!!!"])
def test_bad_tag_or_body_rejected(ctx, junk):
    with pytest.raises(DecodeError):
        ctx.deserialize(junk)


def test_raw_size_matches_decoded_element(ctx):
    import base64

    for kind in (ZR, G1, G2, GT):
        data = ctx.serialize(ctx.random(kind))
        assert len(base64.b64decode(data.split(b":", 1)[1])) == ctx.raw_size(kind)
