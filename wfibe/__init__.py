# -*- coding: utf-8 -*-
"""Weighted fuzzy identity-based encryption over Charm pairing groups."""

from .core import (
    Ciphertext,
    EncryptionResult,
    KeyGenResult,
    MasterSecret,
    PublicParameters,
    SecretKey,
    SetupResult,
    encapsulate,
    encrypt,
    encrypt_batch,
    keygen,
    keygen_vectors,
    setup,
)
from .errors import ConfigError, DecodeError, EncryptionError, KeyGenError, PayloadError, WFIBEError
from .group import GroupContext
from .params import PublicParametersBundle, export_public_params, import_public_params

__version__ = "0.1.0"
