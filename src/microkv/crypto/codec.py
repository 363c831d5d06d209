"""
Authenticated encryption for stored values.

Values are sealed with AES-256-GCM from the ``cryptography`` package. The
key is the 32-byte password secret (SHA-256 of a cleartext password, or a
caller-supplied pre-hashed buffer); the nonce is a 24-byte public value
generated once per store and persisted alongside the data.

Security Design:
    - Every ciphertext carries a 16-byte GCM tag; decrypt() verifies it
      before returning anything, so tampered data and wrong passwords both
      fail with the same CryptoError and no partial plaintext
    - The password secret lives in a SecretBuffer and is wiped on close

Known Weakness:
    The same nonce is reused for every value written under a store's key.
    This mirrors the on-disk format, where one nonce is recorded per file.
    Reusing a GCM nonce under one key lets an attacker who sees several
    ciphertexts learn plaintext XORs and forge tags. Moving to per-value
    nonces requires a file format change.
"""

from __future__ import annotations

import logging
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from microkv.crypto.secret import SecretBuffer
from microkv.errors import CryptoError

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # AES-256
NONCE_SIZE = 24
TAG_SIZE = 16


def generate_nonce() -> bytes:
    """Generate a fresh public nonce for a new store."""
    return secrets.token_bytes(NONCE_SIZE)


def hash_password(password: str) -> SecretBuffer:
    """
    Hash a cleartext password into a fixed-size secret.

    Args:
        password: Cleartext password, e.g. read from a terminal prompt.

    Returns:
        SecretBuffer holding the 32-byte SHA-256 digest.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(password.encode("utf-8"))
    return SecretBuffer(digest.finalize())


def derive_key(secret: SecretBuffer) -> AESGCM:
    """
    Build the symmetric cipher from a stored secret.

    Raises:
        CryptoError: If the secret is not KEY_SIZE bytes or has been wiped.
    """
    key = secret.expose()
    # wipe() sets the flag before zeroing, so check it after copying
    if secret.wiped:
        raise CryptoError("cannot derive key from a wiped password secret")
    if len(key) != KEY_SIZE:
        raise CryptoError("cannot derive key from password hash")
    return AESGCM(key)


def encrypt(plaintext: bytes, key: AESGCM, nonce: bytes) -> bytes:
    """Seal plaintext; returns ciphertext with the tag appended."""
    return key.encrypt(nonce, plaintext, None)


def decrypt(ciphertext: bytes, key: AESGCM, nonce: bytes) -> bytes:
    """
    Open a sealed value.

    Raises:
        CryptoError: If the tag does not verify.
    """
    try:
        return key.decrypt(nonce, ciphertext, None)
    except (InvalidTag, ValueError) as e:
        logger.debug("Value failed authentication (%d bytes)", len(ciphertext))
        raise CryptoError("cannot validate value being decrypted") from e


def seal(plaintext: bytes, secret: SecretBuffer | None, nonce: bytes) -> bytes:
    """Encrypt with the store secret, or pass through when there is none."""
    if secret is None:
        return plaintext
    return encrypt(plaintext, derive_key(secret), nonce)


def unseal(blob: bytes, secret: SecretBuffer | None, nonce: bytes) -> bytes:
    """Decrypt with the store secret, or pass through when there is none."""
    if secret is None:
        return blob
    return decrypt(blob, derive_key(secret), nonce)
