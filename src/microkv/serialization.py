"""
Conversion between caller values and the bytes kept in a store.

Values are encoded as compact UTF-8 JSON before encryption. On top of the
plain JSON types this understands:

    - dataclass instances (stored as objects, rebuilt when the dataclass is
      passed as the expected type on read; fields annotated with nested
      dataclasses, lists, tuples, dicts or unions of these are rebuilt too)
    - tuples (stored as lists, rebuilt when ``tuple`` is expected)
    - bytes / bytearray (stored as a tagged base64 object)

Mapping keys must be strings. A caller dict whose only key is one of the
reserved tags is escaped on write, so every accepted value decodes back to
itself.

The store itself is type-erased at rest. Readers may pass an expected type
to get(), including parameterized generics such as ``list[int]`` or
``dict[str, Owner]``; a value that does not match it raises
SerializationError. Typing constructs other than generics, unions and
``Any`` are not checked.
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
import json
import types
import typing
from typing import Any

from microkv.errors import SerializationError

_BYTES_TAG = "__bytes__"
_DICT_TAG = "__dict__"
_RESERVED_TAGS = (_BYTES_TAG, _DICT_TAG)


def dumps_value(value: Any) -> bytes:
    """
    Encode a value to bytes.

    Raises:
        SerializationError: If the value is not representable.
    """
    try:
        return json.dumps(
            _to_jsonable(value),
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(
            f"cannot serialize value of type {type(value).__name__}"
        ) from e


def loads_value(data: bytes, expected_type: Any = None) -> Any:
    """
    Decode bytes produced by dumps_value().

    Args:
        data: Serialized value.
        expected_type: If given, the decoded value must be an instance of
            this type (or be convertible to it, for dataclasses, tuples and
            int -> float).

    Raises:
        SerializationError: If the bytes do not decode or do not match
            expected_type.
    """
    try:
        value = _from_jsonable(json.loads(data.decode("utf-8")))
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        # binascii.Error is a ValueError
        raise SerializationError("cannot deserialize stored bytes") from e

    if expected_type is None:
        return value
    return _coerce(value, expected_type)


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _encode_mapping({
            f.name: getattr(value, f.name) for f in dataclasses.fields(value)
        })
    if isinstance(value, (bytes, bytearray)):
        return {_BYTES_TAG: base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, dict):
        return _encode_mapping(value)
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def _encode_mapping(mapping: dict) -> dict[str, Any]:
    for key in mapping:
        if not isinstance(key, str):
            raise SerializationError(
                f"cannot serialize mapping with {type(key).__name__} key {key!r}"
            )

    encoded = {k: _to_jsonable(v) for k, v in mapping.items()}
    if len(encoded) == 1 and next(iter(encoded)) in _RESERVED_TAGS:
        return {_DICT_TAG: encoded}
    return encoded


def _from_jsonable(value: Any) -> Any:
    if isinstance(value, list):
        return [_from_jsonable(v) for v in value]
    if not isinstance(value, dict):
        return value

    if len(value) == 1:
        if _BYTES_TAG in value:
            return base64.b64decode(value[_BYTES_TAG], validate=True)
        if _DICT_TAG in value:
            inner = value[_DICT_TAG]
            if not isinstance(inner, dict):
                raise ValueError("escaped mapping is not an object")
            return {k: _from_jsonable(v) for k, v in inner.items()}
    return {k: _from_jsonable(v) for k, v in value.items()}


def _coerce(value: Any, expected_type: Any) -> Any:
    if expected_type is Any:
        return value
    if expected_type is None or expected_type is type(None):
        if value is not None:
            raise _mismatch(value, expected_type)
        return value
    if dataclasses.is_dataclass(expected_type) and isinstance(expected_type, type):
        return _build_dataclass(value, expected_type)

    origin = typing.get_origin(expected_type)
    if origin is typing.Union or origin is types.UnionType:
        return _coerce_union(value, expected_type)
    if origin is not None:
        return _coerce_generic(value, expected_type, origin)

    if not isinstance(expected_type, type):
        # Literal, TypeVar and friends are not checked
        return value

    if expected_type is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if expected_type is tuple and isinstance(value, list):
        return tuple(value)
    # bool is an int subclass; don't let True pass as 1
    if expected_type is int and isinstance(value, bool):
        raise _mismatch(value, expected_type)

    if not isinstance(value, expected_type):
        raise _mismatch(value, expected_type)
    return value


def _coerce_union(value: Any, expected_type: Any) -> Any:
    for option in typing.get_args(expected_type):
        try:
            return _coerce(value, option)
        except SerializationError:
            continue
    raise _mismatch(value, expected_type)


def _coerce_generic(value: Any, expected_type: Any, origin: Any) -> Any:
    args = typing.get_args(expected_type)

    if origin is list:
        if not isinstance(value, list):
            raise _mismatch(value, expected_type)
        return [_coerce(v, args[0]) for v in value] if args else value

    if origin is tuple:
        if not isinstance(value, list):
            raise _mismatch(value, expected_type)
        if not args:
            return tuple(value)
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_coerce(v, args[0]) for v in value)
        if len(args) != len(value):
            raise _mismatch(value, expected_type)
        return tuple(_coerce(v, t) for v, t in zip(value, args))

    if origin is dict:
        if not isinstance(value, dict):
            raise _mismatch(value, expected_type)
        if not args:
            return value
        key_type, value_type = args
        return {_coerce(k, key_type): _coerce(v, value_type) for k, v in value.items()}

    if not isinstance(origin, type):
        return value
    if not isinstance(value, origin):
        raise _mismatch(value, expected_type)
    return value


def _build_dataclass(value: Any, cls: type) -> Any:
    if not isinstance(value, dict):
        raise _mismatch(value, cls)

    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError):
        hints = {}

    kwargs = {}
    for name, item in value.items():
        hint = hints.get(name)
        if hint is not None:
            item = _coerce(item, hint)
        kwargs[name] = item

    try:
        return cls(**kwargs)
    except TypeError as e:
        raise SerializationError(
            f"cannot deserialize into specified object type {cls.__name__}"
        ) from e


def _mismatch(value: Any, expected_type: Any) -> SerializationError:
    return SerializationError(
        f"cannot deserialize {type(value).__name__} into specified object "
        f"type {getattr(expected_type, '__name__', expected_type)}"
    )
