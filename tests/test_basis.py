import logging

import pytest

from wfibe.basis import BASIS_ROWS, generate_basis, is_orthogonal, orthogonal_rows
from wfibe.core import setup
from wfibe.errors import ConfigError


def test_rows_are_orthogonal_and_non_isotropic(ctx):
    basis = orthogonal_rows(ctx, 3, 9)
    assert len(basis) == 3 and all(len(r) == 9 for r in basis)
    assert is_orthogonal(ctx, basis)
    for row in basis:
        assert not ctx.is_zero(ctx.dot(row, row))


def test_images_match_basis(ctx):
    from charm.toolbox.pairinggroup import G1

    g1 = ctx.random(G1)
    basis, images = generate_basis(ctx, g1, 7)
    assert len(basis) == BASIS_ROWS
    for i in range(BASIS_ROWS):
        for j in range(7):
            assert images[i][j] == g1 ** basis[i][j]


def test_setup_public_key_consistent_with_secret(small):
    pp, msk = small.public, small.secret
    assert len(pp.mpk1) == 2 and len(pp.mpk1[0]) == pp.n + 1
    assert len(pp.mpk2) == 2 and len(pp.mpk2[0]) == pp.m + 1
    assert is_orthogonal(pp.ctx, msk.B1)
    assert is_orthogonal(pp.ctx, msk.B2)
    for B, mpk in ((msk.B1, pp.mpk1), (msk.B2, pp.mpk2)):
        for i, row in enumerate(B):
            for j, b in enumerate(row):
                assert mpk[i][j] == pp.g1 ** b


def test_zero_norm_row_is_resampled(ctx, caplog):
    draws = {"n": 0}

    def sampler():
        draws["n"] += 1
        # first candidate row is all zeros
        return ctx.zero() if draws["n"] <= 4 else ctx.random_scalar()

    with caplog.at_level(logging.WARNING, logger="wfibe.basis"):
        basis = orthogonal_rows(ctx, 2, 4, sample=sampler)
    assert "resampling" in caplog.text
    assert is_orthogonal(ctx, basis)
    assert not ctx.is_zero(ctx.dot(basis[0], basis[0]))


def test_resampling_gives_up(ctx):
    with pytest.raises(ArithmeticError):
        orthogonal_rows(ctx, 2, 3, sample=ctx.zero)


def test_bad_shape(ctx):
    with pytest.raises(ValueError):
        orthogonal_rows(ctx, 0, 3)


@pytest.mark.parametrize("n,m", [(0, 4), (4, 0), (-1, 4), (True, 4), (4, 2.5)])
def test_setup_rejects_bad_dimensions(n, m):
    with pytest.raises(ConfigError):
        setup(n, m)


def test_setup_fails_when_basis_cannot_be_sampled(monkeypatch):
    def broken(*args, **kwargs):
        raise ArithmeticError("could not sample a non-isotropic basis row 0")

    monkeypatch.setattr("wfibe.core.generate_basis", broken)
    with pytest.raises(ConfigError):
        setup(2, 2)


def test_setup_sizes(small):
    ctx = small.public.ctx
    from charm.toolbox.pairinggroup import ZR, G1

    width = 2 * (6 + 1 + 5 + 1)
    assert small.public_key_size == width * ctx.element_size(G1)
    assert small.master_key_size == width * ctx.element_size(ZR)
    assert small.setup_time_ms > 0


def test_parameters_cannot_be_mutated(small):
    pp, msk = small.public, small.secret
    with pytest.raises(TypeError):
        pp.mpk1[0][0] = pp.g1
    with pytest.raises(TypeError):
        pp.mpk2[1] = pp.mpk2[0]
    with pytest.raises(TypeError):
        msk.B1[0][0] = pp.ctx.zero()
    with pytest.raises(TypeError):
        msk.B2[0][1] = pp.ctx.one()
