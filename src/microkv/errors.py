"""
Error taxonomy for MicroKV.

Every public operation either returns its value or raises one of the
exceptions below. All of them derive from MicroKVError so callers can
catch the whole family with a single clause.

    MicroKVError
        KeyNotFoundError      get_unwrap() on an absent key
        CryptoError           key derivation or authentication failure
        SerializationError    value or store file does not decode
        FileError             I/O failure on the store file or its directory
        PoisonError           lock poisoned by a failed writer
        InvalidKeyError       namespace/key contains the delimiter

Wrong passwords and tampered ciphertexts both surface as CryptoError with
the same message; they are intentionally not distinguished.
"""


class MicroKVError(Exception):
    """Base exception for all MicroKV errors."""

    def __init__(self, message: str | None = None) -> None:
        self.message = message
        super().__init__(message or self.default_message)

    default_message = "key-value store error"


class KeyNotFoundError(MicroKVError):
    """Raised when a requested key does not exist in storage."""

    default_message = "key not found in storage"


class CryptoError(MicroKVError):
    """Raised when a key cannot be derived or a value fails authentication."""

    default_message = "cryptographic operation failed"


class SerializationError(MicroKVError):
    """Raised when a value or a store file cannot be decoded."""

    default_message = "cannot deserialize data"


class FileError(MicroKVError):
    """Raised when the store file or its directory cannot be accessed."""

    default_message = "file operation failed"


class PoisonError(MicroKVError):
    """Raised when acquiring a lock that a failed writer left poisoned."""

    default_message = "lock is poisoned"


class InvalidKeyError(MicroKVError, ValueError):
    """Raised when a namespace or key contains the namespace delimiter."""

    default_message = "invalid key"
