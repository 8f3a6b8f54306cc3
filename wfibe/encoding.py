# -*- coding: utf-8 -*-
"""
encoding.py  (attribute / policy vector encoding)
-------------------------------------------------
  index(name) = |int32(SHA-256(lower(trim(name)))[0:4])| mod dim

Attribute sets become 0/1 presence vectors, policy maps become weight
vectors. Names that land on the same coordinate overwrite each other (last
write wins); the caller picks a dimension that keeps the birthday bound
k^2 / (2 dim) small.
"""

from __future__ import annotations

import hashlib
from collections import Counter
from typing import Iterable, List, Mapping


def _check_dim(dim: int) -> None:
    if dim <= 0:
        raise ValueError(f"vector dimension must be positive, got {dim}")


def normalise(name: str) -> str:
    return name.strip().lower()


def coordinate_index(name: str, dim: int) -> int:
    _check_dim(dim)
    digest = hashlib.sha256(normalise(name).encode("utf-8")).digest()
    lead = int.from_bytes(digest[:4], "big", signed=True)
    return abs(lead) % dim


def encode_attributes(attributes: Iterable[str], dim: int) -> List[int]:
    vector = [0] * dim
    for name in attributes:
        vector[coordinate_index(name, dim)] = 1
    return vector


def encode_policy(policy: Mapping[str, int], dim: int) -> List[int]:
    vector = [0] * dim
    for name, weight in policy.items():
        vector[coordinate_index(name, dim)] = int(weight)
    return vector


def weighted_match(attribute_vector: List[int], policy_vector: List[int]) -> int:
    """Plain integer inner product of an attribute vector and a policy vector."""
    if len(attribute_vector) != len(policy_vector):
        raise ValueError("vectors must have the same dimension")
    return sum(a * w for a, w in zip(attribute_vector, policy_vector))


def default_threshold(policy: Mapping[str, int]) -> int:
    """Half of the policy's total weight (integer division)."""
    return sum(int(w) for w in policy.values()) // 2


# ============================================================
# Collision accounting
# ============================================================

def collision_pairs(names: Iterable[str], dim: int) -> int:
    """Number of distinct name pairs that share a coordinate."""
    distinct = {normalise(n) for n in names}
    buckets = Counter(coordinate_index(n, dim) for n in distinct)
    return sum(c * (c - 1) // 2 for c in buckets.values())


def expected_collision_pairs(k: int, dim: int) -> float:
    """Birthday estimate of colliding pairs for k uniform names."""
    _check_dim(dim)
    return k * (k - 1) / (2.0 * dim)
