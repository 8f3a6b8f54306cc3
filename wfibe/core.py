# -*- coding: utf-8 -*-
"""
core.py  (WFIBE scheme core)
----------------------------
Roles:
  Authority: Setup / KeyGen
  Sender   : Encrypt (public parameters only)

  Setup(n, m):
    g1 <- G1, g2 <- G2, Z <- Zp
    B1 in Zp^{2 x (n+1)}, B2 in Zp^{2 x (m+1)}   rows orthogonal
    mpk1 = g1^{B1},  mpk2 = g1^{B2}               component-wise

  KeyGen(y_SB in Z^m, y_PA in Z^n):
    y_PA' = (y_PA, 1),  y_SB' = (y_SB, 1)
    sk_PA_i = g2^{<B1[i], y_PA'>}
    sk_SB_i = g2^{<B2[i], y_SB'>}                 i = 1, 2

  Encrypt(M, x_SA in Z^n, x_PB in Z^m, d):
    x_SA' = (x_SA, Z - d),  x_PB' = (x_PB, Z - d)
    c1_i = prod_j mpk1[i][j]^{r1 x_SA'[j]}
    c2_i = prod_j mpk2[i][j]^{r2 x_PB'[j]}
    K1 = e(g1,g2)^{r1 Z},  K2 = e(g1,g2)^{r2 Z}
    C  = AES(H(K1 || K2), M)

Keys and ciphertext headers are always four group elements, whatever the
number of attributes. Operations return typed results (ok / error) instead of
raising; only configuration faults in setup() raise.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from charm.toolbox.pairinggroup import ZR, G1, G2

from .basis import Matrix, generate_basis
from .config import DEFAULT_CIPHER, DEFAULT_DIGEST, DEFAULT_PAIRING
from .encoding import encode_attributes, encode_policy
from .errors import ConfigError, DecodeError, EncryptionError, KeyGenError
from .group import GroupContext, b64d, b64e
from .symmetric import CIPHERS, derive_key, encrypt_payload

logger = logging.getLogger(__name__)


# ============================================================
# Scheme dataclasses
# ============================================================

@dataclass(frozen=True)
class PublicParameters:
    """Live public parameters (algebraic handles); see params.py for the wire form."""
    ctx: GroupContext
    n: int
    m: int
    g1: Any
    g2: Any
    Z: Any
    mpk1: Matrix   # G1^{2 x (n+1)}
    mpk2: Matrix   # G1^{2 x (m+1)}
    pairing: str


@dataclass(frozen=True)
class MasterSecret:
    B1: Matrix     # Zp^{2 x (n+1)}
    B2: Matrix     # Zp^{2 x (m+1)}


@dataclass(frozen=True)
class SecretKey:
    sk_pa_1: bytes
    sk_pa_2: bytes
    sk_sb_1: bytes
    sk_sb_2: bytes

    def elements(self) -> Tuple[bytes, bytes, bytes, bytes]:
        return (self.sk_pa_1, self.sk_pa_2, self.sk_sb_1, self.sk_sb_2)

    def to_bytes(self) -> bytes:
        return b"".join(self.elements())

    @property
    def size(self) -> int:
        return sum(len(x) for x in self.elements())

    def to_dict(self) -> Dict[str, str]:
        return {name: b64e(getattr(self, name)) for name in _SK_FIELDS}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SecretKey":
        try:
            return cls(**{name: b64d(d[name]) for name in _SK_FIELDS})
        except (KeyError, TypeError, AttributeError) as e:
            raise DecodeError(f"bad secret key record: {e}") from e


_SK_FIELDS = ("sk_pa_1", "sk_pa_2", "sk_sb_1", "sk_sb_2")
_HEADER_FIELDS = ("c1_1", "c1_2", "c2_1", "c2_2")


@dataclass(frozen=True)
class Ciphertext:
    c1_1: bytes
    c1_2: bytes
    c2_1: bytes
    c2_2: bytes
    payload: bytes                 # IV / nonce || symmetric ciphertext
    timestamp: int                 # ms since epoch
    sender_attribute_count: int    # metadata only
    threshold: int
    cipher: str = DEFAULT_CIPHER

    def header(self) -> Tuple[bytes, bytes, bytes, bytes]:
        return (self.c1_1, self.c1_2, self.c2_1, self.c2_2)

    @property
    def header_size(self) -> int:
        return sum(len(x) for x in self.header())

    @property
    def size(self) -> int:
        return self.header_size + len(self.payload)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {name: b64e(getattr(self, name)) for name in _HEADER_FIELDS}
        d.update({
            "payload": b64e(self.payload),
            "timestamp": self.timestamp,
            "sender_attribute_count": self.sender_attribute_count,
            "threshold": self.threshold,
            "cipher": self.cipher,
        })
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Ciphertext":
        try:
            return cls(
                payload=b64d(d["payload"]),
                timestamp=int(d["timestamp"]),
                sender_attribute_count=int(d.get("sender_attribute_count", 0)),
                threshold=int(d["threshold"]),
                cipher=str(d.get("cipher", DEFAULT_CIPHER)),
                **{name: b64d(d[name]) for name in _HEADER_FIELDS},
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            if isinstance(e, DecodeError):
                raise
            raise DecodeError(f"bad ciphertext record: {e}") from e


@dataclass(frozen=True)
class Encapsulation:
    header: Tuple[bytes, bytes, bytes, bytes]   # (c1_1, c1_2, c2_1, c2_2)
    key: bytes                                   # H(K1 || K2)


@dataclass
class SetupResult:
    public: PublicParameters
    secret: MasterSecret
    setup_time_ms: float
    public_key_size: int
    master_key_size: int


@dataclass
class KeyGenResult:
    ok: bool
    secret_key: Optional[SecretKey] = None
    error: Optional[str] = None
    keygen_time_ms: float = 0.0
    key_size: int = 0


@dataclass
class EncryptionResult:
    ok: bool
    ciphertext: Optional[Ciphertext] = None
    error: Optional[str] = None
    encryption_time_ms: float = 0.0
    ciphertext_size: int = 0
    message_size: int = 0
    expansion_rate: float = 0.0


def _elapsed_ms(t0: float) -> float:
    return (time.perf_counter() - t0) * 1000.0


# ============================================================
# Setup
# ============================================================

def _check_dimension(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def setup(n: int, m: int, pairing: str = DEFAULT_PAIRING,
          sample: Optional[Callable[[], Any]] = None) -> SetupResult:
    """
    Setup(n, m) -> (PublicParameters, MasterSecret)

    Raises ConfigError on bad dimensions / pairing parameters, or when basis
    generation cannot complete; nothing may be served in that case.
    """
    n = _check_dimension("n", n)
    m = _check_dimension("m", m)
    ctx = GroupContext(pairing)

    t0 = time.perf_counter()
    g1 = ctx.random(G1)
    g2 = ctx.random(G2)
    Z = ctx.random_scalar()

    try:
        B1, mpk1 = generate_basis(ctx, g1, n + 1, sample=sample)
        B2, mpk2 = generate_basis(ctx, g1, m + 1, sample=sample)
    except ArithmeticError as e:
        raise ConfigError(f"setup failed: {e}") from e

    public = PublicParameters(ctx=ctx, n=n, m=m, g1=g1, g2=g2, Z=Z,
                              mpk1=mpk1, mpk2=mpk2, pairing=pairing)
    secret = MasterSecret(B1=B1, B2=B2)
    elapsed = _elapsed_ms(t0)

    width = 2 * (n + 1 + m + 1)
    result = SetupResult(
        public=public,
        secret=secret,
        setup_time_ms=elapsed,
        public_key_size=width * ctx.element_size(G1),
        master_key_size=width * ctx.element_size(ZR),
    )
    logger.info("setup n=%d m=%d curve=%s done in %.1f ms (mpk %d bytes)",
                n, m, ctx.curve, elapsed, result.public_key_size)
    return result


# ============================================================
# KeyGen
# ============================================================

def _derive_secret_key(params: PublicParameters, secret: MasterSecret,
                       attribute_vector: Sequence[int],
                       policy_vector: Sequence[int]) -> SecretKey:
    ctx = params.ctx
    if len(policy_vector) != params.n:
        raise KeyGenError(f"policy vector must have length n={params.n}, got {len(policy_vector)}")
    if len(attribute_vector) != params.m:
        raise KeyGenError(f"attribute vector must have length m={params.m}, got {len(attribute_vector)}")
    if any(len(row) != params.n + 1 for row in secret.B1) or \
            any(len(row) != params.m + 1 for row in secret.B2):
        raise KeyGenError("master secret does not match the public parameter dimensions")

    y_pa = ctx.scalars(policy_vector) + [ctx.one()]
    y_sb = ctx.scalars(attribute_vector) + [ctx.one()]

    k1_pa = ctx.dot(secret.B1[0], y_pa)
    k2_pa = ctx.dot(secret.B1[1], y_pa)
    k1_sb = ctx.dot(secret.B2[0], y_sb)
    k2_sb = ctx.dot(secret.B2[1], y_sb)

    g2 = params.g2
    return SecretKey(
        sk_pa_1=ctx.serialize(g2 ** k1_pa),
        sk_pa_2=ctx.serialize(g2 ** k2_pa),
        sk_sb_1=ctx.serialize(g2 ** k1_sb),
        sk_sb_2=ctx.serialize(g2 ** k2_sb),
    )


def keygen_vectors(params: PublicParameters, secret: MasterSecret,
                   attribute_vector: Sequence[int],
                   policy_vector: Sequence[int]) -> KeyGenResult:
    """KeyGen over already-encoded vectors (attribute: length m, policy: length n)."""
    t0 = time.perf_counter()
    try:
        sk = _derive_secret_key(params, secret, attribute_vector, policy_vector)
    except KeyGenError as e:
        logger.warning("key generation rejected: %s", e)
        return KeyGenResult(ok=False, error=str(e), keygen_time_ms=_elapsed_ms(t0))
    except Exception as e:
        err = KeyGenError(f"key generation failed: {e}")
        logger.warning("%s", err)
        return KeyGenResult(ok=False, error=str(err), keygen_time_ms=_elapsed_ms(t0))

    elapsed = _elapsed_ms(t0)
    logger.debug("keygen done in %.1f ms (%d bytes)", elapsed, sk.size)
    return KeyGenResult(ok=True, secret_key=sk, keygen_time_ms=elapsed, key_size=sk.size)


def keygen(params: PublicParameters, secret: MasterSecret,
           attributes: Iterable[str], policy: Mapping[str, int]) -> KeyGenResult:
    """KeyGen(attribute set -> length m, policy map -> length n)."""
    try:
        attribute_vector = encode_attributes(attributes, params.m)
        policy_vector = encode_policy(policy, params.n)
    except (AttributeError, TypeError, ValueError) as e:
        return KeyGenResult(ok=False, error=str(KeyGenError(f"cannot encode identity: {e}")))
    return keygen_vectors(params, secret, attribute_vector, policy_vector)


# ============================================================
# Encrypt
# ============================================================

def encapsulate(params: PublicParameters, attribute_vector: Sequence[int],
                policy_vector: Sequence[int], threshold: int,
                digest: str = DEFAULT_DIGEST) -> Encapsulation:
    """
    Build the 4-element header and the derived symmetric key.

    Samples fresh r1, r2 on every call. Raises EncryptionError.
    """
    ctx = params.ctx
    if len(attribute_vector) != params.n:
        raise EncryptionError(f"attribute vector must have length n={params.n}, got {len(attribute_vector)}")
    if len(policy_vector) != params.m:
        raise EncryptionError(f"policy vector must have length m={params.m}, got {len(policy_vector)}")
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise EncryptionError(f"threshold must be an integer, got {threshold!r}")

    shift = params.Z - ctx.scalar(threshold)        # Z - d over Zp
    x_sa = ctx.scalars(attribute_vector) + [shift]
    x_pb = ctx.scalars(policy_vector) + [shift]

    r1 = ctx.random_scalar()
    r2 = ctx.random_scalar()

    e1 = [r1 * x for x in x_sa]
    e2 = [r2 * x for x in x_pb]
    c1_1 = ctx.multi_exp(params.mpk1[0], e1)
    c1_2 = ctx.multi_exp(params.mpk1[1], e1)
    c2_1 = ctx.multi_exp(params.mpk2[0], e2)
    c2_2 = ctx.multi_exp(params.mpk2[1], e2)

    egg = ctx.pair(params.g1, params.g2)
    K1 = egg ** (r1 * params.Z)
    K2 = egg ** (r2 * params.Z)
    try:
        key = derive_key(ctx, K1, K2, digest)
    except ValueError as e:
        raise EncryptionError(f"key derivation failed: {e}") from e

    header = tuple(ctx.serialize(c) for c in (c1_1, c1_2, c2_1, c2_2))
    return Encapsulation(header=header, key=key)


def encrypt_vectors(params: PublicParameters, message: bytes,
                    attribute_vector: Sequence[int], policy_vector: Sequence[int],
                    threshold: int, attribute_count: int = 0,
                    cipher: str = DEFAULT_CIPHER,
                    digest: str = DEFAULT_DIGEST) -> EncryptionResult:
    """Encrypt with pre-encoded vectors (attribute: length n, policy: length m)."""
    t0 = time.perf_counter()
    try:
        if cipher not in CIPHERS:
            raise EncryptionError(f"unsupported payload cipher {cipher!r}")
        plaintext = bytes(message)
        enc = encapsulate(params, attribute_vector, policy_vector, threshold, digest)
        try:
            payload = encrypt_payload(enc.key, plaintext, cipher)
        except ValueError as e:
            raise EncryptionError(f"payload encryption failed: {e}") from e
        ct = Ciphertext(
            c1_1=enc.header[0],
            c1_2=enc.header[1],
            c2_1=enc.header[2],
            c2_2=enc.header[3],
            payload=payload,
            timestamp=int(time.time() * 1000),
            sender_attribute_count=int(attribute_count),
            threshold=threshold,
            cipher=cipher,
        )
    except EncryptionError as e:
        logger.warning("encryption rejected: %s", e)
        return EncryptionResult(ok=False, error=str(e), encryption_time_ms=_elapsed_ms(t0))
    except Exception as e:
        err = EncryptionError(f"encryption failed: {e}")
        logger.warning("%s", err)
        return EncryptionResult(ok=False, error=str(err), encryption_time_ms=_elapsed_ms(t0))

    elapsed = _elapsed_ms(t0)
    return EncryptionResult(
        ok=True,
        ciphertext=ct,
        encryption_time_ms=elapsed,
        ciphertext_size=ct.size,
        message_size=len(plaintext),
        expansion_rate=ct.size / len(plaintext) if plaintext else 0.0,
    )


def _encode_sender(params: PublicParameters, attributes: Iterable[str],
                   policy: Mapping[str, int]) -> Tuple[List[int], List[int], int]:
    names = set(attributes)
    return (encode_attributes(names, params.n), encode_policy(policy, params.m), len(names))


def encrypt(params: PublicParameters, message: bytes, attributes: Iterable[str],
            policy: Mapping[str, int], threshold: int,
            cipher: str = DEFAULT_CIPHER, digest: str = DEFAULT_DIGEST) -> EncryptionResult:
    """Encrypt(M, sender attributes -> length n, sender policy -> length m, d)."""
    try:
        x_sa, x_pb, count = _encode_sender(params, attributes, policy)
    except (AttributeError, TypeError, ValueError) as e:
        return EncryptionResult(ok=False, error=str(EncryptionError(f"cannot encode sender identity: {e}")))
    return encrypt_vectors(params, message, x_sa, x_pb, threshold,
                           attribute_count=count, cipher=cipher, digest=digest)


def encrypt_batch(params: PublicParameters, messages: Sequence[bytes],
                  attributes: Iterable[str], policy: Mapping[str, int], threshold: int,
                  cipher: str = DEFAULT_CIPHER, digest: str = DEFAULT_DIGEST,
                  workers: int = 1) -> List[EncryptionResult]:
    """
    Encrypt many payloads for one sender identity.

    Attribute / policy encoding happens once; r1, r2 are sampled per message.
    Results keep the order of `messages`.
    """
    try:
        x_sa, x_pb, count = _encode_sender(params, attributes, policy)
    except (AttributeError, TypeError, ValueError) as e:
        err = str(EncryptionError(f"cannot encode sender identity: {e}"))
        return [EncryptionResult(ok=False, error=err) for _ in messages]

    one = partial(encrypt_vectors, params,
                  attribute_vector=x_sa, policy_vector=x_pb, threshold=threshold,
                  attribute_count=count, cipher=cipher, digest=digest)
    if workers <= 1 or len(messages) <= 1:
        return [one(msg) for msg in messages]
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="wfibe-enc") as pool:
        return list(pool.map(one, messages))
