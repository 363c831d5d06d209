"""
Tests for namespaced views.

Uses Python's unittest module.
"""

from __future__ import annotations

import gc
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from microkv import InvalidKeyError, KeyNotFoundError, MicroKV, NamespaceView
from microkv.namespace import format_key

TEST_PASSWORD = "TEST_PASSWORD"


class TestFormatKey(unittest.TestCase):
    """Tests for composite key construction."""

    def test_default_namespace(self) -> None:
        self.assertEqual(format_key("", "key"), "key")

    def test_named_namespace(self) -> None:
        self.assertEqual(format_key("ns", "key"), "ns@key")


class TestNamespaceView(unittest.TestCase):
    """Tests for NamespaceView operations."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()
        self.base = Path(self.temp_dir)
        self.kv = MicroKV.new("namespaces", base_dir=self.base).with_pwd_clear(TEST_PASSWORD)

    def tearDown(self) -> None:
        self.kv.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_key(self) -> None:
        """Test key() builds composite keys."""
        self.assertEqual(self.kv.namespace("A").key("x"), "A@x")
        self.assertEqual(self.kv.namespace("").key("x"), "x")

    def test_put_get(self) -> None:
        """Test basic put/get in a namespace."""
        view = self.kv.namespace("A")
        view.put("x", 123)

        self.assertEqual(view.get("x", int), 123)
        self.assertTrue(view.exists("x"))

    def test_isolation(self) -> None:
        """Test values in one namespace are invisible elsewhere."""
        self.kv.namespace("A").put("x", "in-a")

        self.assertIsNone(self.kv.get("x"))
        self.assertIsNone(self.kv.namespace("B").get("x"))
        self.assertFalse(self.kv.namespace("B").exists("x"))

    def test_same_key_in_different_namespaces(self) -> None:
        """Test the same logical key holds independent values."""
        self.kv.put("x", "default")
        self.kv.namespace("A").put("x", "a")
        self.kv.namespace("B").put("x", "b")

        self.assertEqual(self.kv.get("x"), "default")
        self.assertEqual(self.kv.namespace("A").get("x"), "a")
        self.assertEqual(self.kv.namespace("B").get("x"), "b")

    def test_keys_filtered_by_namespace(self) -> None:
        """Test keys() only lists the namespace's entries."""
        self.kv.put("root", 1)
        self.kv.namespace("A").put("y", 1)
        self.kv.namespace("A").put("x", 1)
        self.kv.namespace("AB").put("z", 1)

        self.assertEqual(self.kv.namespace("A").keys(), ["A@y", "A@x"])
        self.assertEqual(self.kv.namespace("A").sorted_keys(), ["A@x", "A@y"])
        self.assertEqual(self.kv.namespace("AB").keys(), ["AB@z"])

    def test_default_namespace_lists_everything(self) -> None:
        """Test the default namespace matches every key."""
        self.kv.put("root", 1)
        self.kv.namespace("A").put("x", 1)

        self.assertEqual(self.kv.keys(), ["root", "A@x"])
        self.assertEqual(self.kv.sorted_keys(), ["A@x", "root"])

    def test_clear_only_namespace(self) -> None:
        """Test clear() removes only the namespace's entries."""
        self.kv.put("root", 1)
        self.kv.namespace("A").put("x", 1)
        self.kv.namespace("B").put("x", 1)

        self.kv.namespace("A").clear()

        self.assertEqual(self.kv.keys(), ["root", "B@x"])

    def test_default_clear_removes_everything(self) -> None:
        """Test clearing the default namespace empties the store."""
        self.kv.put("root", 1)
        self.kv.namespace("A").put("x", 1)

        self.kv.namespace("").clear()

        self.assertEqual(self.kv.keys(), [])

    def test_delete(self) -> None:
        """Test delete within a namespace."""
        view = self.kv.namespace("A")
        view.put("x", 1)
        self.kv.put("x", 2)

        self.assertTrue(view.delete("x"))
        self.assertFalse(view.delete("x"))
        self.assertEqual(self.kv.get("x"), 2)

    def test_get_unwrap_missing(self) -> None:
        """Test get_unwrap raises on a missing key."""
        with self.assertRaises(KeyNotFoundError):
            self.kv.namespace("A").get_unwrap("missing")

    def test_get_unwrap_stored_none(self) -> None:
        """Test a stored None is distinguishable from a missing key."""
        view = self.kv.namespace("A")
        view.put("nothing", None)

        self.assertIsNone(view.get_unwrap("nothing"))

    def test_values_are_encrypted(self) -> None:
        """Test namespaced values are encrypted like default ones."""
        self.kv.namespace("A").put("x", "plaintext-value")

        with self.kv.lock_read() as data:
            blob = data.get("A@x")

        self.assertIsNotNone(blob)
        self.assertNotIn(b"plaintext-value", blob)

    def test_namespace_with_delimiter_rejected(self) -> None:
        """Test namespaces may not contain the delimiter."""
        with self.assertRaises(InvalidKeyError):
            self.kv.namespace("a@b")

    def test_default_key_with_delimiter_rejected(self) -> None:
        """Test default-namespace keys may not contain the delimiter."""
        with self.assertRaises(InvalidKeyError):
            self.kv.put("A@x", 1)
        with self.assertRaises(ValueError):
            self.kv.get("A@x")

    def test_namespaced_key_may_contain_delimiter(self) -> None:
        """Test keys inside a named namespace may contain the delimiter."""
        view = self.kv.namespace("users")
        view.put("ops@example.com", "admin")

        self.assertEqual(view.get("ops@example.com"), "admin")
        self.assertEqual(self.kv.keys(), ["users@ops@example.com"])

    def test_auto_commit_on_mutation(self) -> None:
        """Test put/delete/clear commit when auto-commit is enabled."""
        self.kv.set_auto_commit(True)
        view = self.kv.namespace("A")

        with patch.object(self.kv, "commit", wraps=self.kv.commit) as commit:
            view.put("x", 1)
            view.delete("x")
            view.clear()

        self.assertEqual(commit.call_count, 3)
        self.assertTrue(self.kv.path.exists())

    def test_auto_commit_runs_without_write_lock(self) -> None:
        """Test commit is not called while the write lock is held."""
        self.kv.set_auto_commit(True)
        writer_held: list[bool] = []

        def record_state() -> None:
            writer_held.append(self.kv._lock._writer)

        with patch.object(self.kv, "commit", side_effect=record_state):
            self.kv.namespace("A").put("x", 1)

        self.assertEqual(writer_held, [False])

    def test_no_commit_without_auto_commit(self) -> None:
        """Test mutations stay in memory by default."""
        self.kv.namespace("A").put("x", 1)

        self.assertFalse(self.kv.path.exists())


class TestNamespaceLifetime(unittest.TestCase):
    """Tests for views outliving their store."""

    def test_view_after_close(self) -> None:
        """Test a view refuses to work after its store is closed."""
        kv = MicroKV.new("lifetime", base_dir=tempfile.gettempdir())
        view = kv.namespace("A")
        kv.close()

        with self.assertRaises(ValueError):
            view.put("x", 1)

    def test_view_after_store_collected(self) -> None:
        """Test a view does not keep its store alive."""
        view = MicroKV.new("lifetime", base_dir=tempfile.gettempdir()).namespace("A")
        gc.collect()

        self.assertIsInstance(view, NamespaceView)
        with self.assertRaises(ValueError):
            view.get("x")


if __name__ == "__main__":
    unittest.main()
