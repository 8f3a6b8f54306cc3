# -*- coding: utf-8 -*-
"""
sender.py  (encrypting sender)
------------------------------
A sender only ever sees the public parameters. It encrypts under its own
attribute set, its own weighted policy and a threshold d, wraps each
ciphertext in a numbered envelope and hands it to a transport that answers
with an ACK token.
"""

from __future__ import annotations

import itertools
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .config import DEFAULT_CIPHER, DEFAULT_DIGEST, KEY_WORKERS
from .core import EncryptionResult, PublicParameters, encrypt, encrypt_batch
from .encoding import default_threshold
from .params import PublicParametersBundle, import_public_params, load_public_params
from .protocol import CiphertextEnvelope, is_ack

logger = logging.getLogger(__name__)

Transport = Callable[[Dict[str, Any]], Any]


@dataclass
class SenderStats:
    total_messages: int = 0
    encrypted: int = 0
    failed: int = 0
    delivered: int = 0
    rejected: int = 0
    total_encryption_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        avg = self.total_encryption_ms / self.encrypted if self.encrypted else 0.0
        return {
            "total_messages": self.total_messages,
            "encrypted": self.encrypted,
            "failed": self.failed,
            "delivered": self.delivered,
            "rejected": self.rejected,
            "average_encryption_ms": round(avg, 3),
        }


class Sender:
    def __init__(self, params: PublicParameters, attributes: Iterable[str],
                 policy: Mapping[str, int], threshold: Optional[int] = None,
                 sender_id: Optional[str] = None,
                 cipher: str = DEFAULT_CIPHER, digest: str = DEFAULT_DIGEST):
        self.params = params
        self.attributes = sorted(set(attributes))
        self.policy = dict(policy)
        self.threshold = default_threshold(self.policy) if threshold is None else threshold
        self.sender_id = sender_id or f"sender-{uuid.uuid4().hex[:8]}"
        self.cipher = cipher
        self.digest = digest
        self._lock = threading.Lock()
        self._seq = itertools.count(1)
        self._stats = SenderStats()

    @classmethod
    def from_bundle(cls, bundle: PublicParametersBundle, *args, **kwargs) -> "Sender":
        return cls(import_public_params(bundle), *args, **kwargs)

    @classmethod
    def from_file(cls, path: str, *args, **kwargs) -> "Sender":
        return cls(load_public_params(path), *args, **kwargs)

    # -- encryption ---------------------------------------------------------

    def _record(self, results: Sequence[EncryptionResult]) -> None:
        with self._lock:
            for r in results:
                self._stats.total_messages += 1
                if r.ok:
                    self._stats.encrypted += 1
                    self._stats.total_encryption_ms += r.encryption_time_ms
                else:
                    self._stats.failed += 1

    def encrypt(self, message: bytes) -> EncryptionResult:
        result = encrypt(self.params, message, self.attributes, self.policy,
                         self.threshold, cipher=self.cipher, digest=self.digest)
        self._record([result])
        if not result.ok:
            logger.warning("[%s] encryption failed: %s", self.sender_id, result.error)
        return result

    def encrypt_batch(self, messages: Sequence[bytes],
                      workers: int = KEY_WORKERS) -> List[EncryptionResult]:
        results = encrypt_batch(self.params, messages, self.attributes, self.policy,
                                self.threshold, cipher=self.cipher, digest=self.digest,
                                workers=workers)
        self._record(results)
        failed = sum(1 for r in results if not r.ok)
        logger.info("[%s] batch of %d encrypted (%d failed)", self.sender_id, len(results), failed)
        return results

    # -- envelopes ----------------------------------------------------------

    def envelope(self, result: EncryptionResult) -> CiphertextEnvelope:
        if not result.ok or result.ciphertext is None:
            raise ValueError(f"cannot wrap a failed encryption: {result.error}")
        with self._lock:
            seq = next(self._seq)
        return CiphertextEnvelope(sequence_number=seq, sender_id=self.sender_id,
                                  ciphertext=result.ciphertext)

    def send(self, envelope: CiphertextEnvelope, transport: Transport) -> bool:
        """Hand one envelope to `transport`; True iff it answers ACK."""
        ok = is_ack(transport(envelope.to_dict()))
        with self._lock:
            if ok:
                self._stats.delivered += 1
            else:
                self._stats.rejected += 1
        if not ok:
            logger.warning("[%s] envelope #%d not acknowledged",
                           self.sender_id, envelope.sequence_number)
        return ok

    def statistics(self) -> Dict[str, Any]:
        with self._lock:
            return self._stats.to_dict()
