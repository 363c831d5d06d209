"""
Cryptography for MicroKV.

Password hashing, key derivation and AES-256-GCM sealing of stored values,
plus the wipeable SecretBuffer that holds the password secret in memory.
"""

from microkv.crypto.codec import (
    KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    decrypt,
    derive_key,
    encrypt,
    generate_nonce,
    hash_password,
    seal,
    unseal,
)
from microkv.crypto.secret import SecretBuffer, zero_out

__all__ = [
    "KEY_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "SecretBuffer",
    "decrypt",
    "derive_key",
    "encrypt",
    "generate_nonce",
    "hash_password",
    "seal",
    "unseal",
    "zero_out",
]
