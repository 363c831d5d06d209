"""
MicroKV - secure, persistent key-value storage

A small embedded store for secrets, configuration and license data in
single-process applications.

Key Features:
    - Insertion-ordered in-memory map with sorted key enumeration
    - Reader/writer locking for multi-threaded use
    - AES-256-GCM authenticated encryption keyed by a password secret
    - Namespaces multiplexing logical sub-stores over one map
    - Whole-file commit and load, with atomic replacement on write

Usage:
    from microkv import MicroKV

    kv = MicroKV.new("demo").with_pwd_clear("p@ss")
    kv.put("k1", 42)
    kv.get("k1", int)
    kv.commit()
"""

__version__ = "0.3.0"
__author__ = ""
__email__ = ""

from microkv.errors import (
    CryptoError,
    FileError,
    InvalidKeyError,
    KeyNotFoundError,
    MicroKVError,
    PoisonError,
    SerializationError,
)
from microkv.namespace import NamespaceView
from microkv.store import MicroKV, get_db_path

__all__ = [
    "__version__",
    "MicroKV",
    "NamespaceView",
    "get_db_path",
    "MicroKVError",
    "KeyNotFoundError",
    "CryptoError",
    "SerializationError",
    "FileError",
    "PoisonError",
    "InvalidKeyError",
]
