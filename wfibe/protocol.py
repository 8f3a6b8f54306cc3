# -*- coding: utf-8 -*-
"""
protocol.py  (key request / response and ciphertext envelope)
-------------------------------------------------------------
  client -> authority : KeyRequest
  authority -> client : KeyResponse
  sender -> receiver  : CiphertextEnvelope, answered with ACK

Frame: 4-byte big-endian length || UTF-8 JSON object.
"""

from __future__ import annotations

import json
import struct
import time
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Mapping, Optional

from .config import ACK
from .core import Ciphertext, SecretKey
from .errors import DecodeError

HEADER = struct.Struct(">I")
MAX_FRAME = 16 * 1024 * 1024


def now_ms() -> int:
    return int(time.time() * 1000)


# ============================================================
# Messages
# ============================================================

@dataclass
class KeyRequest:
    attributes: List[str]
    policy: Dict[str, int]
    client_id: Optional[str] = None
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "key_request",
            "attributes": sorted(self.attributes),
            "policy": dict(self.policy),
            "client_id": self.client_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "KeyRequest":
        _expect_type(d, "key_request")
        try:
            return cls(
                attributes=[str(a) for a in d["attributes"]],
                policy={str(k): int(v) for k, v in d["policy"].items()},
                client_id=d.get("client_id"),
                timestamp=int(d.get("timestamp", now_ms())),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"bad key request: {e}") from e


@dataclass
class KeyResponse:
    request_id: int
    success: bool
    secret_key: Optional[SecretKey] = None
    keygen_time_ms: float = 0.0
    key_size: int = 0
    error_message: Optional[str] = None
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "key_response",
            "request_id": self.request_id,
            "success": self.success,
            "secret_key": self.secret_key.to_dict() if self.secret_key else None,
            "keygen_time_ms": self.keygen_time_ms,
            "key_size": self.key_size,
            "error_message": self.error_message,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "KeyResponse":
        _expect_type(d, "key_response")
        try:
            sk = d.get("secret_key")
            return cls(
                request_id=int(d["request_id"]),
                success=bool(d["success"]),
                secret_key=SecretKey.from_dict(sk) if sk else None,
                keygen_time_ms=float(d.get("keygen_time_ms", 0.0)),
                key_size=int(d.get("key_size", 0)),
                error_message=d.get("error_message"),
                timestamp=int(d.get("timestamp", now_ms())),
            )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, DecodeError):
                raise
            raise DecodeError(f"bad key response: {e}") from e


@dataclass
class CiphertextEnvelope:
    sequence_number: int
    sender_id: str
    ciphertext: Ciphertext
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "ciphertext",
            "sequence_number": self.sequence_number,
            "sender_id": self.sender_id,
            "timestamp": self.timestamp,
            "ciphertext": self.ciphertext.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "CiphertextEnvelope":
        _expect_type(d, "ciphertext")
        try:
            return cls(
                sequence_number=int(d["sequence_number"]),
                sender_id=str(d["sender_id"]),
                ciphertext=Ciphertext.from_dict(d["ciphertext"]),
                timestamp=int(d.get("timestamp", now_ms())),
            )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, DecodeError):
                raise
            raise DecodeError(f"bad ciphertext envelope: {e}") from e


def _expect_type(d: Any, kind: str) -> None:
    if not isinstance(d, Mapping):
        raise DecodeError(f"{kind} must be a JSON object")
    if d.get("type", kind) != kind:
        raise DecodeError(f"expected a {kind} message, got {d.get('type')!r}")


def is_ack(token: Any) -> bool:
    return token == ACK


# ============================================================
# Framing
# ============================================================

def encode_frame(obj: Mapping[str, Any]) -> bytes:
    body = json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    if len(body) > MAX_FRAME:
        raise ValueError(f"frame of {len(body)} bytes exceeds {MAX_FRAME}")
    return HEADER.pack(len(body)) + body


def decode_frame(data: bytes) -> Any:
    """Decode exactly one frame; trailing or missing bytes are an error."""
    if len(data) < HEADER.size:
        raise DecodeError("frame shorter than its length prefix")
    (length,) = HEADER.unpack_from(data)
    if length > MAX_FRAME:
        raise DecodeError(f"frame length {length} exceeds {MAX_FRAME}")
    body = data[HEADER.size:]
    if len(body) != length:
        raise DecodeError(f"frame declares {length} bytes, carries {len(body)}")
    return _parse_body(body)


def _parse_body(body: bytes) -> Any:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"frame body is not JSON: {e}") from e


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    buf = b""
    while len(buf) < size:
        chunk = stream.read(size - len(buf))
        if not chunk:
            raise DecodeError(f"stream closed after {len(buf)} of {size} bytes")
        buf += chunk
    return buf


def read_frame(stream: BinaryIO) -> Any:
    (length,) = HEADER.unpack(_read_exact(stream, HEADER.size))
    if length > MAX_FRAME:
        raise DecodeError(f"frame length {length} exceeds {MAX_FRAME}")
    return _parse_body(_read_exact(stream, length))


def write_frame(stream: BinaryIO, obj: Mapping[str, Any]) -> None:
    stream.write(encode_frame(obj))
    stream.flush()
