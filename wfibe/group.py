# -*- coding: utf-8 -*-
"""
group.py  (algebraic group context)
-----------------------------------
One pairing instance e : G1 x G2 -> GT plus the scalar field Zp, built from a
named Charm curve ("SS512" by default) or from a raw PBC parameter block that
matches one of Charm's known curves.

Element encodings are Charm's "<type>:<base64>" byte strings; deserialize()
checks the type tag and that the bytes are canonical before handing the
element back.
"""

from __future__ import annotations

import base64
from functools import reduce
from typing import Any, Dict, Iterable, List, Optional, Sequence

from charm.toolbox.pairingcurves import params as curve_params
from charm.toolbox.pairinggroup import PairingGroup, ZR, G1, G2, GT, pair

from .errors import ConfigError, DecodeError

KIND_NAMES = {ZR: "ZR", G1: "G1", G2: "G2", GT: "GT"}


# ============================================================
# Base64 helpers (JSON transport of element bytes)
# ============================================================

def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except (ValueError, UnicodeEncodeError) as e:
        raise DecodeError(f"invalid base64 field: {e}") from e


# ============================================================
# Pairing descriptor resolution
# ============================================================

def resolve_curve(descriptor: str) -> str:
    """
    Map a pairing descriptor to a Charm curve name.

    Accepts a curve name ("SS512") or a raw parameter block
    ("type a\\nq ...\\nr ...") equal, token for token, to a known curve.
    """
    if not isinstance(descriptor, str) or not descriptor.strip():
        raise ConfigError("pairing descriptor must be a non-empty string")
    name = descriptor.strip()
    if name in curve_params:
        return name
    tokens = name.split()
    for curve, block in curve_params.items():
        if isinstance(block, str) and block.split() == tokens:
            return curve
    raise ConfigError(f"unrecognised pairing parameters: {name[:40]!r}")


# ============================================================
# Group context
# ============================================================

class GroupContext:
    """Pairing group, scalar field and element codec for one parameter set."""

    def __init__(self, descriptor: str = "SS512"):
        self.curve = resolve_curve(descriptor)
        try:
            self.group = PairingGroup(self.curve)
        except Exception as e:
            raise ConfigError(f"cannot initialise pairing {self.curve}: {e}") from e
        self.order = int(self.group.order())
        self._sizes: Dict[int, int] = {}
        self._raw_sizes: Dict[int, int] = {}

    def __repr__(self) -> str:
        return f"GroupContext(curve={self.curve!r})"

    # -- scalars ------------------------------------------------------------

    def scalar(self, value: int) -> Any:
        return self.group.init(ZR, int(value) % self.order)

    def scalars(self, values: Iterable[int]) -> List[Any]:
        return [self.scalar(v) for v in values]

    def zero(self) -> Any:
        return self.group.init(ZR, 0)

    def one(self) -> Any:
        return self.group.init(ZR, 1)

    def random_scalar(self) -> Any:
        return self.group.random(ZR)

    def is_zero(self, x: Any) -> bool:
        return x == self.zero()

    def dot(self, u: Sequence[Any], v: Sequence[Any]) -> Any:
        """Standard dot product over Zp."""
        if len(u) != len(v):
            raise ValueError(f"dot product length mismatch: {len(u)} != {len(v)}")
        acc = self.zero()
        for a, b in zip(u, v):
            acc = acc + a * b
        return acc

    # -- group elements -----------------------------------------------------

    def random(self, kind: int) -> Any:
        return self.group.random(kind)

    def identity(self, kind: int) -> Any:
        return self.group.random(kind) ** self.zero()

    def pair(self, a: Any, b: Any) -> Any:
        return pair(a, b)

    def multi_exp(self, bases: Sequence[Any], exponents: Sequence[Any]) -> Any:
        """prod_j bases[j] ** exponents[j], skipping zero exponents."""
        if len(bases) != len(exponents):
            raise ValueError(f"multi_exp length mismatch: {len(bases)} != {len(exponents)}")
        terms = [b ** e for b, e in zip(bases, exponents) if not self.is_zero(e)]
        if not terms:
            return bases[0] ** self.zero()
        return reduce(lambda x, y: x * y, terms)

    # -- codec --------------------------------------------------------------

    def serialize(self, elem: Any) -> bytes:
        return self.group.serialize(elem)

    def deserialize(self, data: bytes, kind: Optional[int] = None) -> Any:
        if not isinstance(data, (bytes, bytearray)) or b":" not in data:
            raise DecodeError("element bytes must look like b'<type>:<base64>'")
        data = bytes(data)
        tag, body = data.split(b":", 1)
        try:
            tag_kind = int(tag)
        except ValueError:
            raise DecodeError(f"bad element type tag {tag!r}") from None
        if tag_kind not in KIND_NAMES:
            raise DecodeError(f"unknown element type tag {tag!r}")
        if kind is not None and tag_kind != kind:
            raise DecodeError(
                f"expected a {KIND_NAMES.get(kind, kind)} element, got {KIND_NAMES[tag_kind]}"
            )
        # Charm reads a fixed element length from the decoded buffer
        try:
            raw = base64.b64decode(body, validate=True)
        except ValueError as e:
            raise DecodeError(f"element body is not base64: {e}") from e
        if len(raw) != self.raw_size(tag_kind):
            raise DecodeError(
                f"{KIND_NAMES[tag_kind]} element must be {self.raw_size(tag_kind)} bytes, got {len(raw)}"
            )
        try:
            elem = self.group.deserialize(data)
        except Exception as e:
            raise DecodeError(f"malformed element: {e}") from e
        if elem is None or elem is False:
            raise DecodeError("malformed element")
        try:
            canonical = self.group.serialize(elem)
        except Exception as e:
            raise DecodeError(f"malformed element: {e}") from e
        if canonical != data:
            raise DecodeError("non-canonical element encoding")
        return elem

    def element_size(self, kind: int) -> int:
        """Encoded length of one element of the given group."""
        if kind not in self._sizes:
            sample = self.serialize(self.random(kind))
            self._sizes[kind] = len(sample)
            self._raw_sizes[kind] = len(base64.b64decode(sample.split(b":", 1)[1]))
        return self._sizes[kind]

    def raw_size(self, kind: int) -> int:
        """Decoded (pre-base64) length of one element of the given group."""
        self.element_size(kind)
        return self._raw_sizes[kind]
