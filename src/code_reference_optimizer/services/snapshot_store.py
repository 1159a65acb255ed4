"""Snapshot store for file and symbol level diffs."""

import logging
from pathlib import Path

import aiofiles

from code_reference_optimizer.exceptions import SnapshotNotFoundError
from code_reference_optimizer.models.diff import (
    ChangeType,
    DiffChange,
    MinimalUpdate,
    SymbolChange,
)
from code_reference_optimizer.services.diff_engine import DiffEngine

logger = logging.getLogger(__name__)


class SnapshotStore:
    """In-memory snapshots of file text and per-symbol code, keyed by path.

    Snapshots live until cleared; nothing is persisted.
    """

    def __init__(self, diff_engine: DiffEngine | None = None) -> None:
        """Initialize snapshot store.

        Args:
            diff_engine: Engine used to compute line diffs
        """
        self.diff_engine = diff_engine or DiffEngine()
        self._files: dict[str, str] = {}
        self._symbols: dict[str, dict[str, str]] = {}

    def snapshot_from_content(self, key: str, content: str) -> None:
        """Store text as the snapshot for key."""
        self._files[key] = content

    async def snapshot(self, key: str) -> bool:
        """Read the file at key and store it as the snapshot.

        Unreadable files are logged and skipped.

        Returns:
            True if a snapshot was stored
        """
        try:
            content = await self._read(key)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to create snapshot for {key}: {e}")
            return False

        self._files[key] = content
        return True

    def symbol_snapshot(self, key: str, symbols: dict[str, str]) -> None:
        """Store a copy of a symbol name -> code map for key."""
        self._symbols[key] = dict(symbols)

    def get(self, key: str) -> str | None:
        """Get the stored text snapshot for key, if any."""
        return self._files.get(key)

    def keys(self) -> list[str]:
        """Keys with a text snapshot."""
        return list(self._files)

    def diff_against_current(self, key: str, current_text: str) -> list[DiffChange]:
        """Diff the snapshot for key against current_text.

        Raises:
            SnapshotNotFoundError: If key was never snapshotted
        """
        return self.diff_engine.diff(self._require(key), current_text)

    async def diff_file(self, key: str) -> list[DiffChange]:
        """Diff the snapshot for key against the file's current contents.

        Raises:
            SnapshotNotFoundError: If key was never snapshotted
            OSError: If the file cannot be read
        """
        snapshot = self._require(key)
        current = await self._read(key)
        return self.diff_engine.diff(snapshot, current)

    def contextual_diff(
        self, key: str, current_text: str, context_lines: int = 3
    ) -> list[DiffChange]:
        """Diff against the snapshot with surrounding lines around each hunk."""
        return self.diff_engine.contextual(self._require(key), current_text, context_lines)

    def minimal_update(
        self,
        key: str,
        current_text: str,
        target_symbols: list[str] | None = None,
    ) -> MinimalUpdate:
        """Hunks changed since the snapshot, optionally filtered to symbols.

        A hunk is kept for a symbol filter when its content mentions any of
        the target symbols.
        """
        changes = self.diff_against_current(key, current_text)
        if target_symbols:
            changes = [
                change
                for change in changes
                if any(symbol in change.content for symbol in target_symbols)
            ]

        return MinimalUpdate(
            changes=changes,
            stats=self.diff_engine.stats(changes),
            summary=self.diff_engine.summarize(changes),
        )

    async def has_changed(self, key: str) -> bool:
        """Check whether the file differs from its snapshot.

        Missing snapshots and unreadable files count as changed.
        """
        snapshot = self._files.get(key)
        if snapshot is None:
            return True

        try:
            return await self._read(key) != snapshot
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {key} for change detection: {e}")
            return True

    def symbol_diff(self, key: str, current: dict[str, str]) -> list[SymbolChange]:
        """Compare current symbol code against the symbol snapshot for key.

        Every name in either map is visited once, snapshot names first.
        Unchanged symbols produce no record.

        Raises:
            SnapshotNotFoundError: If key has no symbol snapshot
        """
        previous = self._symbols.get(key)
        if previous is None:
            raise SnapshotNotFoundError(key, kind="symbol snapshot")

        changes: list[SymbolChange] = []
        for name in dict.fromkeys([*previous, *current]):
            if name not in previous:
                changes.append(
                    SymbolChange(type=ChangeType.ADDED, symbol=name, code=current[name])
                )
            elif name not in current:
                changes.append(
                    SymbolChange(
                        type=ChangeType.REMOVED,
                        symbol=name,
                        code="",
                        old_code=previous[name],
                    )
                )
            elif previous[name] != current[name]:
                changes.append(
                    SymbolChange(
                        type=ChangeType.MODIFIED,
                        symbol=name,
                        code=current[name],
                        old_code=previous[name],
                    )
                )

        return changes

    def clear(self) -> None:
        """Drop every text and symbol snapshot."""
        self._files.clear()
        self._symbols.clear()

    def clear_key(self, key: str) -> None:
        """Drop the snapshots for one key."""
        self._files.pop(key, None)
        self._symbols.pop(key, None)

    def _require(self, key: str) -> str:
        snapshot = self._files.get(key)
        if snapshot is None:
            raise SnapshotNotFoundError(key)
        return snapshot

    @staticmethod
    async def _read(key: str) -> str:
        async with aiofiles.open(Path(key), encoding="utf-8") as f:
            return await f.read()
