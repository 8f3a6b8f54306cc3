# -*- coding: utf-8 -*-
"""
authority.py  (key generation authority)
----------------------------------------
Holds the master secret. start() runs Setup exactly once before anything is
served; KeyRequests are then answered from a bounded worker pool. Workers
only read the master secret and public parameters.
"""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .config import DEFAULT_PAIRING, KEY_WORKERS, Settings
from .core import MasterSecret, PublicParameters, SetupResult, keygen, setup
from .errors import ConfigError
from .params import PublicParametersBundle, export_public_params, save_public_params
from .protocol import KeyRequest, KeyResponse

logger = logging.getLogger(__name__)


@dataclass
class AuthorityStats:
    total_requests: int = 0
    successful: int = 0
    failed: int = 0
    total_keygen_ms: float = 0.0

    @property
    def average_keygen_ms(self) -> float:
        return self.total_keygen_ms / self.total_requests if self.total_requests else 0.0

    @property
    def success_rate(self) -> float:
        return 100.0 * self.successful / self.total_requests if self.total_requests else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful": self.successful,
            "failed": self.failed,
            "average_keygen_ms": round(self.average_keygen_ms, 3),
            "success_rate": round(self.success_rate, 2),
        }


class KeyAuthority:
    """
    Usage:
        with KeyAuthority(n=64, m=64) as kgc:
            resp = kgc.submit(KeyRequest(attrs, policy)).result()
    """

    def __init__(self, n: int, m: int, pairing: str = DEFAULT_PAIRING,
                 workers: int = KEY_WORKERS):
        if workers <= 0:
            raise ConfigError(f"worker pool size must be positive, got {workers}")
        self.n = n
        self.m = m
        self.pairing = pairing
        self.workers = workers
        self._setup: Optional[SetupResult] = None
        self._pool: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._stats = AuthorityStats()

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyAuthority":
        return cls(settings.n, settings.m, settings.pairing, settings.key_workers)

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> SetupResult:
        """Run Setup (once) and open the worker pool. Raises ConfigError."""
        if self._setup is None:
            logger.info("authority setup n=%d m=%d pairing=%s", self.n, self.m, self.pairing)
            self._setup = setup(self.n, self.m, self.pairing)
            logger.info("authority ready: setup %.1f ms, public key %d bytes, master key %d bytes",
                        self._setup.setup_time_ms, self._setup.public_key_size,
                        self._setup.master_key_size)
        if self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=self.workers,
                                            thread_name_prefix="wfibe-kgc")
        return self._setup

    def stop(self) -> None:
        pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=True)
            logger.info("authority stopped: %s", self.statistics())

    def __enter__(self) -> "KeyAuthority":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._pool is not None

    # -- parameters ---------------------------------------------------------

    def _require_setup(self) -> SetupResult:
        if self._setup is None:
            raise RuntimeError("authority has not been started")
        return self._setup

    @property
    def public_parameters(self) -> PublicParameters:
        return self._require_setup().public

    @property
    def master_secret(self) -> MasterSecret:
        return self._require_setup().secret

    def public_bundle(self) -> PublicParametersBundle:
        return export_public_params(self.public_parameters)

    def export_public_parameters(self, path: str) -> PublicParametersBundle:
        bundle = save_public_params(path, self.public_parameters)
        logger.info("public parameters saved to %s", path)
        return bundle

    # -- requests -----------------------------------------------------------

    def handle(self, request: KeyRequest) -> KeyResponse:
        """Answer one KeyRequest synchronously. Never raises for bad input."""
        setup_result = self._require_setup()
        with self._lock:
            request_id = next(self._ids)
        logger.debug("[%d] key request from %s: %d attributes, policy size %d",
                     request_id, request.client_id, len(request.attributes), len(request.policy))

        result = keygen(setup_result.public, setup_result.secret,
                        request.attributes, request.policy)

        with self._lock:
            self._stats.total_requests += 1
            self._stats.total_keygen_ms += result.keygen_time_ms
            if result.ok:
                self._stats.successful += 1
            else:
                self._stats.failed += 1

        if result.ok:
            logger.debug("[%d] key generated in %.1f ms (%d bytes)",
                         request_id, result.keygen_time_ms, result.key_size)
        else:
            logger.warning("[%d] key generation failed: %s", request_id, result.error)

        return KeyResponse(
            request_id=request_id,
            success=result.ok,
            secret_key=result.secret_key,
            keygen_time_ms=result.keygen_time_ms,
            key_size=result.key_size,
            error_message=result.error,
        )

    def handle_dict(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        """Decoded frame in, response frame out."""
        return self.handle(KeyRequest.from_dict(message)).to_dict()

    def submit(self, request: KeyRequest) -> "Future[KeyResponse]":
        if self._pool is None:
            raise RuntimeError("authority is not running")
        return self._pool.submit(self.handle, request)

    # -- statistics ---------------------------------------------------------

    def statistics(self) -> Dict[str, Any]:
        with self._lock:
            return self._stats.to_dict()
