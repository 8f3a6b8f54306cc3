# -*- coding: utf-8 -*-
"""
params.py  (public parameter export / import)
---------------------------------------------
The live PublicParameters hold algebraic handles bound to one GroupContext.
PublicParametersBundle is the wire form: element bytes only, so it can be
written to a file, sent to a sender, and re-imported into a fresh context.

  export_public_params(pp) -> bundle      (bytes only)
  import_public_params(bundle) -> pp      (DecodeError on any shape fault)

JSON layout (base64 element bytes):

  {"n": 64, "m": 64, "pairing": "SS512",
   "g1": "...", "g2": "...", "Z": "...",
   "mpk1": [[...n+1...], [...]], "mpk2": [[...m+1...], [...]]}
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from charm.toolbox.pairinggroup import ZR, G1, G2

from .basis import BASIS_ROWS
from .core import MasterSecret, PublicParameters
from .errors import DecodeError
from .group import GroupContext, b64d, b64e

ByteMatrix = Tuple[Tuple[bytes, ...], ...]


# ============================================================
# JSON file helpers
# ============================================================

def save_json(path: str, obj: Any) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)

def load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# ============================================================
# Wire bundle
# ============================================================

@dataclass(frozen=True)
class PublicParametersBundle:
    n: int
    m: int
    g1: bytes
    g2: bytes
    Z: bytes
    mpk1: ByteMatrix
    mpk2: ByteMatrix
    pairing: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n": self.n,
            "m": self.m,
            "pairing": self.pairing,
            "g1": b64e(self.g1),
            "g2": b64e(self.g2),
            "Z": b64e(self.Z),
            "mpk1": [[b64e(x) for x in row] for row in self.mpk1],
            "mpk2": [[b64e(x) for x in row] for row in self.mpk2],
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "PublicParametersBundle":
        if not isinstance(d, Mapping):
            raise DecodeError("public parameter bundle must be a JSON object")
        try:
            return cls(
                n=_dimension(d["n"], "n"),
                m=_dimension(d["m"], "m"),
                pairing=str(d["pairing"]),
                g1=b64d(d["g1"]),
                g2=b64d(d["g2"]),
                Z=b64d(d["Z"]),
                mpk1=_byte_matrix(d["mpk1"], "mpk1"),
                mpk2=_byte_matrix(d["mpk2"], "mpk2"),
            )
        except KeyError as e:
            raise DecodeError(f"public parameter bundle missing field {e}") from e
        except (TypeError, AttributeError) as e:
            raise DecodeError(f"malformed public parameter bundle: {e}") from e

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "PublicParametersBundle":
        try:
            obj = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"public parameter bundle is not JSON: {e}") from e
        return cls.from_dict(obj)


def _dimension(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise DecodeError(f"bundle field {name} must be a positive integer, got {value!r}")
    return value


def _byte_matrix(rows: Any, name: str) -> ByteMatrix:
    if not isinstance(rows, list) or not all(isinstance(r, list) for r in rows):
        raise DecodeError(f"bundle field {name} must be a list of rows")
    return tuple(tuple(b64d(x) for x in row) for row in rows)


# ============================================================
# Export / Import
# ============================================================

def export_public_params(pp: PublicParameters) -> PublicParametersBundle:
    ctx = pp.ctx
    return PublicParametersBundle(
        n=pp.n,
        m=pp.m,
        g1=ctx.serialize(pp.g1),
        g2=ctx.serialize(pp.g2),
        Z=ctx.serialize(pp.Z),
        mpk1=tuple(tuple(ctx.serialize(x) for x in row) for row in pp.mpk1),
        mpk2=tuple(tuple(ctx.serialize(x) for x in row) for row in pp.mpk2),
        pairing=pp.pairing,
    )


def _import_matrix(ctx: GroupContext, rows: Sequence[Sequence[bytes]],
                   width: int, name: str):
    if len(rows) != BASIS_ROWS:
        raise DecodeError(f"{name} must have {BASIS_ROWS} rows, got {len(rows)}")
    out = []
    for i, row in enumerate(rows):
        if len(row) != width:
            raise DecodeError(f"{name}[{i}] must have {width} entries, got {len(row)}")
        out.append(tuple(ctx.deserialize(x, G1) for x in row))
    return tuple(out)


def import_public_params(bundle: PublicParametersBundle,
                         ctx: Optional[GroupContext] = None) -> PublicParameters:
    """
    Rebuild live PublicParameters from a bundle.

    Raises DecodeError on wrong matrix shapes or malformed element bytes, and
    ConfigError when the pairing descriptor is not recognised.
    """
    ctx = ctx or GroupContext(bundle.pairing)
    n = _dimension(bundle.n, "n")
    m = _dimension(bundle.m, "m")
    return PublicParameters(
        ctx=ctx,
        n=n,
        m=m,
        g1=ctx.deserialize(bundle.g1, G1),
        g2=ctx.deserialize(bundle.g2, G2),
        Z=ctx.deserialize(bundle.Z, ZR),
        mpk1=_import_matrix(ctx, bundle.mpk1, n + 1, "mpk1"),
        mpk2=_import_matrix(ctx, bundle.mpk2, m + 1, "mpk2"),
        pairing=bundle.pairing,
    )


def save_public_params(path: str, pp: PublicParameters) -> PublicParametersBundle:
    bundle = export_public_params(pp)
    save_json(path, bundle.to_dict())
    return bundle


def load_public_params(path: str, ctx: Optional[GroupContext] = None) -> PublicParameters:
    return import_public_params(PublicParametersBundle.from_dict(load_json(path)), ctx)


# ============================================================
# Master secret (authority-side persistence only)
# ============================================================

def dump_master_secret(ctx: GroupContext, secret: MasterSecret) -> Dict[str, Any]:
    return {
        "B1": [[b64e(ctx.serialize(x)) for x in row] for row in secret.B1],
        "B2": [[b64e(ctx.serialize(x)) for x in row] for row in secret.B2],
    }


def load_master_secret(ctx: GroupContext, d: Mapping[str, Any]) -> MasterSecret:
    try:
        return MasterSecret(
            B1=tuple(tuple(ctx.deserialize(x, ZR) for x in row) for row in _byte_matrix(d["B1"], "B1")),
            B2=tuple(tuple(ctx.deserialize(x, ZR) for x in row) for row in _byte_matrix(d["B2"], "B2")),
        )
    except KeyError as e:
        raise DecodeError(f"master secret missing field {e}") from e
