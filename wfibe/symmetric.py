# -*- coding: utf-8 -*-
"""
symmetric.py  (payload key derivation + AES)
--------------------------------------------
  K_sym = H( ser(K1) || ser(K2) )           H = SHA-256 by default

Payload formats (IV / nonce always prepended):
  aes-256-cbc : IV(16)   || AES-CBC(PKCS7(M))
  aes-256-gcm : nonce(12)|| AES-GCM(M) || tag(16)
"""

from __future__ import annotations

import hashlib
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import PayloadError
from .group import GroupContext

AES_CBC = "aes-256-cbc"
AES_GCM = "aes-256-gcm"
CIPHERS = (AES_CBC, AES_GCM)

BLOCK_SIZE = 16
IV_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16


def derive_key(ctx: GroupContext, k1: Any, k2: Any, digest: str = "sha256") -> bytes:
    """Hash two GT elements into a 32-byte AES key."""
    h = hashlib.new(digest)
    h.update(ctx.serialize(k1))
    h.update(ctx.serialize(k2))
    key = h.digest()
    if len(key) < 32:
        raise ValueError(f"digest {digest!r} yields {len(key)} bytes; AES-256 needs 32")
    return key[:32]


def _check_cipher(cipher: str) -> None:
    if cipher not in CIPHERS:
        raise ValueError(f"unsupported payload cipher {cipher!r}; expected one of {CIPHERS}")


def encrypt_payload(key: bytes, plaintext: bytes, cipher: str = AES_CBC) -> bytes:
    _check_cipher(cipher)
    if cipher == AES_GCM:
        nonce = os.urandom(NONCE_SIZE)
        return nonce + AESGCM(key).encrypt(nonce, plaintext, None)

    iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()
    enc = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return iv + enc.update(padded) + enc.finalize()


def decrypt_payload(key: bytes, data: bytes, cipher: str = AES_CBC) -> bytes:
    _check_cipher(cipher)
    if cipher == AES_GCM:
        if len(data) < NONCE_SIZE + TAG_SIZE:
            raise PayloadError("payload shorter than nonce + tag")
        try:
            return AESGCM(key).decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], None)
        except InvalidTag as e:
            raise PayloadError("authentication tag mismatch") from e

    body = data[IV_SIZE:]
    if len(data) < IV_SIZE + BLOCK_SIZE or len(body) % BLOCK_SIZE:
        raise PayloadError("payload is not IV + whole cipher blocks")
    dec = Cipher(algorithms.AES(key), modes.CBC(data[:IV_SIZE])).decryptor()
    padded = dec.update(body) + dec.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise PayloadError("invalid padding") from e


def payload_size(message_length: int, cipher: str = AES_CBC) -> int:
    """Encrypted payload length for a message of the given length."""
    _check_cipher(cipher)
    if cipher == AES_GCM:
        return NONCE_SIZE + message_length + TAG_SIZE
    return IV_SIZE + (message_length // BLOCK_SIZE + 1) * BLOCK_SIZE
