# -*- coding: utf-8 -*-
"""
basis.py  (dual orthogonal basis generation)
--------------------------------------------
Secret basis B in Zp^{rows x cols} with pairwise orthogonal rows, and its
public image  B_hat[i][j] = g1^{B[i][j]}.

Orthogonalisation is Gram-Schmidt restricted to Zp:

  b_i <- b_i - sum_{k<i} (<b_i, b_k> / <b_k, b_k>) * b_k

Rows are never normalised (Zp has no square roots to speak of). A row is only
accepted once <b_i, b_i> != 0, since later rows divide by it; otherwise the
row is resampled and projected again.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional, Tuple

from .group import GroupContext

logger = logging.getLogger(__name__)

Matrix = Tuple[Tuple[Any, ...], ...]   # immutable; shared read-only across workers

BASIS_ROWS = 2
MAX_RESAMPLES = 64


def orthogonal_rows(ctx: GroupContext, rows: int, cols: int,
                    sample: Optional[Callable[[], Any]] = None) -> Matrix:
    """
    Sample `rows` mutually orthogonal, non-isotropic vectors of length `cols`.

    `sample` draws one scalar (defaults to a uniform element of Zp).
    """
    if rows <= 0 or cols <= 0:
        raise ValueError(f"basis shape must be positive, got {rows}x{cols}")
    draw = sample or ctx.random_scalar

    matrix: List[Tuple[Any, ...]] = []
    norms: List[Any] = []
    for i in range(rows):
        for attempt in range(MAX_RESAMPLES + 1):
            row = [draw() for _ in range(cols)]
            for k in range(i):
                factor = ctx.dot(row, matrix[k]) * (norms[k] ** -1)
                row = [a - b * factor for a, b in zip(row, matrix[k])]
            norm = ctx.dot(row, row)
            if not ctx.is_zero(norm):
                break
            logger.warning("basis row %d has zero self dot product; resampling (attempt %d)",
                           i, attempt + 1)
        else:
            raise ArithmeticError(f"could not sample a non-isotropic basis row {i}")
        matrix.append(tuple(row))
        norms.append(norm)
    return tuple(matrix)


def public_images(g1: Any, basis: Matrix) -> Matrix:
    return tuple(tuple(g1 ** b for b in row) for row in basis)


def generate_basis(ctx: GroupContext, g1: Any, cols: int,
                   sample: Optional[Callable[[], Any]] = None) -> Tuple[Matrix, Matrix]:
    """Return (B, B_hat) for a BASIS_ROWS x cols dual basis."""
    t0 = time.perf_counter()
    basis = orthogonal_rows(ctx, BASIS_ROWS, cols, sample=sample)
    images = public_images(g1, basis)
    logger.info("basis %dx%d generated in %.1f ms (dominant setup cost)",
                BASIS_ROWS, cols, (time.perf_counter() - t0) * 1000)
    return basis, images


def is_orthogonal(ctx: GroupContext, basis: Matrix) -> bool:
    for i in range(len(basis)):
        for k in range(i):
            if not ctx.is_zero(ctx.dot(basis[i], basis[k])):
                return False
    return True
