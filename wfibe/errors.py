# -*- coding: utf-8 -*-
"""
errors.py  (WFIBE error taxonomy)
---------------------------------
ConfigError   : bad pairing descriptor or dimensions; fatal at setup
DecodeError   : malformed serialized elements / bundles; reject the input
KeyGenError   : key derivation failed; surfaced inside a failed KeyGenResult
EncryptionError: encryption failed; surfaced inside a failed EncryptionResult
PayloadError  : symmetric payload rejected (wrong key, bad padding / tag)
"""


class WFIBEError(Exception):
    """Base class for every error raised by the package."""


class ConfigError(WFIBEError, ValueError):
    pass


class DecodeError(WFIBEError, ValueError):
    pass


class KeyGenError(WFIBEError):
    pass


class EncryptionError(WFIBEError):
    pass


class PayloadError(WFIBEError):
    pass
