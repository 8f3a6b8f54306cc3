# -*- coding: utf-8 -*-
"""
object_store.py  (file-backed ciphertext envelope store)
--------------------------------------------------------
Layout:
  <root>/<sender_id>/<sequence_number>.json
  <root>/<sender_id>/latest.json          {"latest_sequence": N}

receive() doubles as a sender transport: it stores the envelope and answers
with the ACK token.
"""

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, List, Mapping, Optional

from .config import ACK
from .errors import DecodeError
from .protocol import CiphertextEnvelope

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9._@-]+$")


class EnvelopeStore:

    def __init__(self, root_dir: str):
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _sender_dir(self, sender_id: str) -> Path:
        if not _SAFE_ID.match(sender_id) or sender_id in (".", ".."):
            raise ValueError(f"unsafe sender id: {sender_id!r}")
        return self.root_dir / sender_id

    def put(self, envelope: CiphertextEnvelope) -> Path:
        sender_dir = self._sender_dir(envelope.sender_id)
        sender_dir.mkdir(parents=True, exist_ok=True)

        seq = int(envelope.sequence_number)
        path = sender_dir / f"{seq}.json"
        path.write_text(json.dumps(envelope.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")

        with self._lock:
            latest_path = sender_dir / "latest.json"
            latest = self._latest(sender_dir)
            if latest is None or seq > latest:
                latest_path.write_text(json.dumps({"latest_sequence": seq}), encoding="utf-8")
        return path

    def _latest(self, sender_dir: Path) -> Optional[int]:
        latest_path = sender_dir / "latest.json"
        if not latest_path.exists():
            return None
        return int(json.loads(latest_path.read_text(encoding="utf-8"))["latest_sequence"])

    def get(self, sender_id: str, sequence_number: Optional[int] = None) -> CiphertextEnvelope:
        sender_dir = self._sender_dir(sender_id)
        if sequence_number is None:
            sequence_number = self._latest(sender_dir)
            if sequence_number is None:
                raise FileNotFoundError(f"latest.json not found for sender_id={sender_id}")

        path = sender_dir / f"{int(sequence_number)}.json"
        if not path.exists():
            raise FileNotFoundError(f"envelope not found: {path}")
        return CiphertextEnvelope.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def sequences(self, sender_id: str) -> List[int]:
        sender_dir = self._sender_dir(sender_id)
        if not sender_dir.exists():
            return []
        return sorted(int(p.stem) for p in sender_dir.glob("*.json") if p.stem.isdigit())

    def receive(self, message: Mapping[str, Any]) -> Optional[str]:
        """Store one envelope message; ACK on success, None if it is rejected."""
        try:
            envelope = CiphertextEnvelope.from_dict(message)
            self.put(envelope)
        except (DecodeError, ValueError) as e:
            logger.warning("envelope rejected: %s", e)
            return None
        logger.debug("stored envelope #%d from %s", envelope.sequence_number, envelope.sender_id)
        return ACK
