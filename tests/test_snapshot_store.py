"""Tests for the snapshot store."""

import logging
from pathlib import Path

import pytest

from code_reference_optimizer.exceptions import NotFoundError, SnapshotNotFoundError
from code_reference_optimizer.models.diff import ChangeType
from code_reference_optimizer.services.snapshot_store import SnapshotStore


class TestSymbolDiff:
    """Test symbol-level diffs."""

    def test_modified_and_added_symbols(self, snapshot_store: SnapshotStore):
        """Test one modified and one added symbol."""
        snapshot_store.symbol_snapshot("m.py", {"foo": "old"})

        changes = snapshot_store.symbol_diff("m.py", {"foo": "new", "bar": "b"})

        by_symbol = {c.symbol: c for c in changes}
        assert len(changes) == 2
        assert by_symbol["foo"].type == ChangeType.MODIFIED
        assert by_symbol["foo"].old_code == "old"
        assert by_symbol["foo"].code == "new"
        assert by_symbol["bar"].type == ChangeType.ADDED
        assert by_symbol["bar"].code == "b"

    def test_removed_symbol(self, snapshot_store: SnapshotStore):
        """Test that removed symbols keep their old code and have empty content."""
        snapshot_store.symbol_snapshot("m.py", {"foo": "old", "gone": "bye"})

        changes = snapshot_store.symbol_diff("m.py", {"foo": "old"})

        assert len(changes) == 1
        assert changes[0].type == ChangeType.REMOVED
        assert changes[0].symbol == "gone"
        assert changes[0].code == ""
        assert changes[0].old_code == "bye"

    def test_unchanged_symbols_produce_no_records(self, snapshot_store: SnapshotStore):
        """Test identical maps."""
        snapshot_store.symbol_snapshot("m.py", {"foo": "same"})

        assert snapshot_store.symbol_diff("m.py", {"foo": "same"}) == []

    def test_empty_code_is_still_present(self, snapshot_store: SnapshotStore):
        """Test that a symbol with empty code counts as present."""
        snapshot_store.symbol_snapshot("m.py", {"foo": ""})

        changes = snapshot_store.symbol_diff("m.py", {"foo": "body"})

        assert [c.type for c in changes] == [ChangeType.MODIFIED]

    def test_snapshot_is_copied(self, snapshot_store: SnapshotStore):
        """Test that later mutation of the caller's map does not leak in."""
        symbols = {"foo": "old"}
        snapshot_store.symbol_snapshot("m.py", symbols)
        symbols["foo"] = "mutated"

        assert snapshot_store.symbol_diff("m.py", {"foo": "old"}) == []

    def test_missing_symbol_snapshot_raises(self, snapshot_store: SnapshotStore):
        """Test diffing symbols without a snapshot."""
        with pytest.raises(SnapshotNotFoundError):
            snapshot_store.symbol_diff("unknown.py", {})


class TestTextSnapshots:
    """Test text snapshots and line diffs."""

    def test_diff_against_current(self, snapshot_store: SnapshotStore):
        """Test diffing a stored snapshot against new text."""
        snapshot_store.snapshot_from_content("m.py", "a\nb\nc\nd")

        changes = snapshot_store.diff_against_current("m.py", "a\nb2\nc2\nd")

        assert len(changes) == 1
        assert changes[0].type == ChangeType.MODIFIED

    def test_diff_without_snapshot_raises(self, snapshot_store: SnapshotStore):
        """Test that the missing-snapshot error is a not-found error."""
        with pytest.raises(NotFoundError) as exc_info:
            snapshot_store.diff_against_current("never.py", "text")

        assert exc_info.value.key == "never.py"
        assert "never.py" in str(exc_info.value)

    def test_contextual_diff(self, snapshot_store: SnapshotStore):
        """Test contextual diff against a snapshot."""
        snapshot_store.snapshot_from_content("m.py", "a\nb\nc")

        changes = snapshot_store.contextual_diff("m.py", "a\nB\nc", context_lines=1)

        assert changes[0].content == "a\nB\nc"

    def test_minimal_update_filters_by_symbol(self, snapshot_store: SnapshotStore):
        """Test filtering hunks to those mentioning target symbols."""
        old = "def foo():\n    pass\n\nx = 1\n"
        new = "def foo():\n    return foo_value\n\nx = 2\n"
        snapshot_store.snapshot_from_content("m.py", old)

        update = snapshot_store.minimal_update("m.py", new, ["foo_value"])

        assert len(update.changes) == 1
        assert "foo_value" in update.changes[0].content
        assert update.summary == "1 modification"

    def test_minimal_update_without_filter(self, snapshot_store: SnapshotStore):
        """Test that no filter returns every hunk."""
        snapshot_store.snapshot_from_content("m.py", "a\nb\nc")

        update = snapshot_store.minimal_update("m.py", "A\nb\nC")

        assert update.stats.modified_lines == 2

    def test_clear_and_clear_key(self, snapshot_store: SnapshotStore):
        """Test dropping snapshots."""
        snapshot_store.snapshot_from_content("a.py", "a")
        snapshot_store.snapshot_from_content("b.py", "b")
        snapshot_store.symbol_snapshot("a.py", {})

        snapshot_store.clear_key("a.py")
        assert snapshot_store.keys() == ["b.py"]
        with pytest.raises(SnapshotNotFoundError):
            snapshot_store.symbol_diff("a.py", {})

        snapshot_store.clear()
        assert snapshot_store.get("b.py") is None


@pytest.mark.asyncio
class TestFileSnapshots:
    """Test snapshots read from disk."""

    async def test_snapshot_and_diff_file(self, snapshot_store: SnapshotStore, tmp_path: Path):
        """Test snapshotting a file and diffing it after an edit."""
        path = tmp_path / "m.py"
        path.write_text("a\nb\n", encoding="utf-8")

        assert await snapshot_store.snapshot(str(path)) is True
        assert await snapshot_store.has_changed(str(path)) is False

        path.write_text("a\nb\nc\n", encoding="utf-8")

        assert await snapshot_store.has_changed(str(path)) is True
        changes = await snapshot_store.diff_file(str(path))
        assert [c.type for c in changes] == [ChangeType.ADDED]
        assert changes[0].content == "c"

    async def test_unreadable_file_is_logged_not_raised(
        self, snapshot_store: SnapshotStore, tmp_path: Path, caplog
    ):
        """Test that snapshot I/O errors are swallowed with a warning."""
        missing = str(tmp_path / "missing.py")

        with caplog.at_level(logging.WARNING):
            assert await snapshot_store.snapshot(missing) is False

        assert "Failed to create snapshot" in caplog.text
        assert snapshot_store.get(missing) is None

    async def test_has_changed_without_snapshot(self, snapshot_store: SnapshotStore, tmp_path: Path):
        """Test that files never snapshotted count as changed."""
        assert await snapshot_store.has_changed(str(tmp_path / "x.py")) is True

    async def test_diff_file_without_snapshot_raises(
        self, snapshot_store: SnapshotStore, tmp_path: Path
    ):
        """Test diffing a file that was never snapshotted."""
        with pytest.raises(SnapshotNotFoundError):
            await snapshot_store.diff_file(str(tmp_path / "x.py"))
