"""Tests for value serialization."""

from __future__ import annotations

import unittest
from dataclasses import dataclass

from microkv.errors import SerializationError
from microkv.serialization import dumps_value, loads_value


@dataclass
class Owner:
    name: str
    seats: int


@dataclass
class License:
    id: int
    owner: Owner
    tags: list[str]


@dataclass
class Team:
    members: list[Owner]
    lead: Owner | None
    seats_by_name: dict[str, Owner]


class TestSerialization(unittest.TestCase):
    """Tests for dumps_value/loads_value."""

    def test_plain_values(self) -> None:
        """Test JSON-native values survive unchanged."""
        for value in [42, 3.5, "text", True, None, [1, "a"], {"k": {"n": 1}}]:
            self.assertEqual(loads_value(dumps_value(value)), value)

    def test_unicode_string(self) -> None:
        """Test non-ASCII text is stored as UTF-8."""
        data = dumps_value("héllo")

        self.assertIn("héllo".encode("utf-8"), data)
        self.assertEqual(loads_value(data, str), "héllo")

    def test_bytes(self) -> None:
        """Test that bytes values are preserved."""
        self.assertEqual(loads_value(dumps_value(b"\x00\xff")), b"\x00\xff")

    def test_tuple_with_expected_type(self) -> None:
        """Test tuples are rebuilt when tuple is expected."""
        data = dumps_value((1, 2))

        self.assertEqual(loads_value(data), [1, 2])
        self.assertEqual(loads_value(data, tuple), (1, 2))

    def test_dataclass(self) -> None:
        """Test nested dataclasses are rebuilt from the expected type."""
        value = License(id=13, owner=Owner(name="Bob", seats=5), tags=["pro"])

        restored = loads_value(dumps_value(value), License)

        self.assertEqual(restored, value)
        self.assertIsInstance(restored.owner, Owner)

    def test_dataclass_mismatch(self) -> None:
        """Test decoding a dict with wrong fields into a dataclass fails."""
        with self.assertRaises(SerializationError):
            loads_value(dumps_value({"unexpected": 1}), Owner)

    def test_int_as_float(self) -> None:
        """Test integers are accepted where a float is expected."""
        self.assertEqual(loads_value(dumps_value(2), float), 2.0)

    def test_type_mismatch(self) -> None:
        """Test a wrong expected type raises SerializationError."""
        with self.assertRaises(SerializationError) as ctx:
            loads_value(dumps_value("overwritten"), int)

        self.assertIn("specified object type", str(ctx.exception))

    def test_bool_is_not_int(self) -> None:
        """Test booleans are not accepted as integers."""
        with self.assertRaises(SerializationError):
            loads_value(dumps_value(True), int)

    def test_unserializable_value(self) -> None:
        """Test values JSON cannot represent are rejected."""
        with self.assertRaises(SerializationError):
            dumps_value(object())

    def test_corrupt_bytes(self) -> None:
        """Test undecodable bytes raise SerializationError."""
        with self.assertRaises(SerializationError):
            loads_value(b"\xff\xfe{")

    def test_dict_shaped_like_bytes_tag(self) -> None:
        """Test a caller dict keyed by the bytes tag is not read back as bytes."""
        for value in [
            {"__bytes__": "aGk="},
            {"__bytes__": "hello world"},
            {"__dict__": [1]},
            {"outer": {"__bytes__": "aGk="}},
            [{"__dict__": {"__bytes__": "x"}}],
        ]:
            self.assertEqual(loads_value(dumps_value(value)), value)

    def test_bytes_alongside_tag_shaped_dict(self) -> None:
        """Test real bytes and tag-shaped dicts coexist in one value."""
        value = {"raw": b"hi", "fake": {"__bytes__": "aGk="}}

        self.assertEqual(loads_value(dumps_value(value)), value)

    def test_non_string_keys_rejected(self) -> None:
        """Test mappings with non-str keys are refused instead of rewritten."""
        for value in [{1: "a"}, {"nested": {(1, 2): "b"}}, {None: 0}]:
            with self.assertRaises(SerializationError):
                dumps_value(value)

    def test_parameterized_expected_type(self) -> None:
        """Test generic expected types are checked element-wise."""
        data = dumps_value([1, 2, 3])

        self.assertEqual(loads_value(data, list[int]), [1, 2, 3])
        self.assertEqual(loads_value(data, tuple[int, ...]), (1, 2, 3))
        with self.assertRaises(SerializationError):
            loads_value(data, list[str])
        with self.assertRaises(SerializationError):
            loads_value(data, dict[str, int])

    def test_dict_expected_type(self) -> None:
        """Test dict[str, T] validates values."""
        data = dumps_value({"a": 1})

        self.assertEqual(loads_value(data, dict[str, int]), {"a": 1})
        with self.assertRaises(SerializationError):
            loads_value(data, dict[str, str])

    def test_union_expected_type(self) -> None:
        """Test optional and union expected types."""
        self.assertIsNone(loads_value(dumps_value(None), int | None))
        self.assertEqual(loads_value(dumps_value("x"), int | str), "x")
        with self.assertRaises(SerializationError):
            loads_value(dumps_value(1.5), int | None)

    def test_dataclass_with_generic_fields(self) -> None:
        """Test dataclasses inside lists, dicts and optionals are rebuilt."""
        value = Team(
            members=[Owner(name="Ann", seats=1), Owner(name="Bob", seats=2)],
            lead=Owner(name="Ann", seats=1),
            seats_by_name={"bob": Owner(name="Bob", seats=2)},
        )

        restored = loads_value(dumps_value(value), Team)

        self.assertEqual(restored, value)
        self.assertIsInstance(restored.members[0], Owner)
        self.assertIsInstance(restored.lead, Owner)
        self.assertIsInstance(restored.seats_by_name["bob"], Owner)

    def test_dataclass_with_missing_optional(self) -> None:
        """Test a None optional dataclass field stays None."""
        value = Team(members=[], lead=None, seats_by_name={})

        self.assertEqual(loads_value(dumps_value(value), Team), value)


if __name__ == "__main__":
    unittest.main()
