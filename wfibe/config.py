# -*- coding: utf-8 -*-
"""
config.py  (shared system parameters)
-------------------------------------
Every device (authority, sender, receiver) uses the same pairing parameters
and vector dimensions. Deployment-specific values come from the environment:

  WFIBE_N / WFIBE_M            vector dimensions (default 64 / 64)
  WFIBE_PAIRING                Charm curve name or raw PBC parameter block
  WFIBE_KEY_WORKERS            key authority worker pool size (default 10)
  WFIBE_KGC_HOST / _PORT       key authority endpoint
  WFIBE_CONNECTION_TIMEOUT     connect timeout in seconds
  WFIBE_READ_TIMEOUT           connection read timeout in seconds
  WFIBE_PUBLIC_PARAMS_FILE     exported public parameters
  WFIBE_STORE_DIR              ciphertext envelope store
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigError

# Type A pairing, 160-bit group order (identical to Charm's "SS512").
TYPE_A_PARAMS = (
    "type a\n"
    "q 8780710799663312522437781984754049815806883199414208211028653399266475630880222957078625179422662221423155858769582317459277713367317481324925129998224791\n"
    "h 12016012264891146079388821366740534204802954401251311822919615131047207289359704531102844802183906537786776\n"
    "r 730750818665451621361119245571504901405976559617\n"
    "exp2 159\n"
    "exp1 107\n"
    "sign1 1\n"
    "sign0 1"
)

DEFAULT_PAIRING = "SS512"
DEFAULT_N = 64
DEFAULT_M = 64

KEY_WORKERS = 10
DEFAULT_CIPHER = "aes-256-cbc"
DEFAULT_DIGEST = "sha256"

KGC_HOST = "127.0.0.1"
KGC_PORT = 8080
CONNECTION_TIMEOUT = 5.0
READ_TIMEOUT = 30.0

PUBLIC_PARAMS_FILE = "keys/public_params.json"
MASTER_SECRET_FILE = "keys/master_secret.json"
STORE_DIR = "keys/store"

ACK = "ACK"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    n: int = DEFAULT_N
    m: int = DEFAULT_M
    pairing: str = DEFAULT_PAIRING
    key_workers: int = KEY_WORKERS
    kgc_host: str = KGC_HOST
    kgc_port: int = KGC_PORT
    connection_timeout: float = CONNECTION_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    public_params_file: str = PUBLIC_PARAMS_FILE
    store_dir: str = STORE_DIR

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            n=_env_int("WFIBE_N", DEFAULT_N),
            m=_env_int("WFIBE_M", DEFAULT_M),
            pairing=os.environ.get("WFIBE_PAIRING", DEFAULT_PAIRING),
            key_workers=_env_int("WFIBE_KEY_WORKERS", KEY_WORKERS),
            kgc_host=os.environ.get("WFIBE_KGC_HOST", KGC_HOST),
            kgc_port=_env_int("WFIBE_KGC_PORT", KGC_PORT),
            connection_timeout=_env_float("WFIBE_CONNECTION_TIMEOUT", CONNECTION_TIMEOUT),
            read_timeout=_env_float("WFIBE_READ_TIMEOUT", READ_TIMEOUT),
            public_params_file=os.environ.get("WFIBE_PUBLIC_PARAMS_FILE", PUBLIC_PARAMS_FILE),
            store_dir=os.environ.get("WFIBE_STORE_DIR", STORE_DIR),
        )
