#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel

from __future__ import annotations

import hmac
from hashlib import sha256
from random import SystemRandom
from typing import Final

from cryptography.hazmat.primitives.ciphers import Cipher
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.ciphers.algorithms import AES
from cryptography.hazmat.primitives.ciphers.modes import CBC
from cryptography.hazmat.primitives.padding import PKCS7

SYSTEM_RANDOM: Final = SystemRandom()
randbytes: Final = SYSTEM_RANDOM.randbytes

GCM_VERSION_SIZE: Final = 3
GCM_IV_SIZE: Final = 16
GCM_TAG_SIZE: Final = 16


def hmac_sha256(key: bytes, *parts: bytes) -> bytes:
    """
    Compute an HMAC-SHA256 digest over the concatenation of `parts`.

    >>> hmac_sha256(b"key", b"a", b"b") == hmac_sha256(b"key", b"ab")
    True
    """
    mac = hmac.new(key, digestmod=sha256)
    for part in parts:
        mac.update(part)

    return mac.digest()


def decrypt_aes_cbc(key: bytes, iv: bytes, data: bytes) -> bytes:
    """Decrypt PKCS7-padded AES-CBC data."""
    decryptor = Cipher(AES(key), CBC(iv)).decryptor()
    padded = decryptor.update(data) + decryptor.finalize()

    unpadder = PKCS7(128).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def decrypt_aes_gcm(key: bytes, data: bytes) -> bytes:
    """
    Decrypt a versioned AES-GCM blob.

    The blob is laid out as `version (3) || iv (16) || ciphertext || tag (16)`, with the version bytes
    authenticated as associated data.

    :raises ValueError: If the blob is too short to hold any ciphertext.
    :raises cryptography.exceptions.InvalidTag: If authentication fails.
    """
    header_size = GCM_VERSION_SIZE + GCM_IV_SIZE
    if len(data) <= header_size + GCM_TAG_SIZE:
        msg = f"Encrypted blob is too short ({len(data)} bytes)."
        raise ValueError(msg)

    version = data[:GCM_VERSION_SIZE]
    iv = data[GCM_VERSION_SIZE:header_size]

    # AESGCM expects the tag appended to the ciphertext, which is already the case here.
    return AESGCM(key).decrypt(iv, data[header_size:], version)
