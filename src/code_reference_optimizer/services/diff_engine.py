"""Line-level diff and patch engine."""

from dataclasses import dataclass
from typing import Literal

from code_reference_optimizer.exceptions import InvalidHunkSequenceError
from code_reference_optimizer.models.diff import ChangeType, DiffChange, DiffStats

OpType = Literal["added", "removed", "unchanged"]


@dataclass
class _Op:
    """Single-line edit operation with 0-based indexes into both texts."""

    type: OpType
    content: str
    old_index: int
    new_index: int


class DiffEngine:
    """Compute line diffs with an LCS table and apply hunk lists.

    Consecutive removed lines immediately followed by added lines are merged
    into one `modified` hunk. Unchanged lines never appear in the output.
    """

    def diff(self, old_text: str, new_text: str) -> list[DiffChange]:
        """Compute the hunks turning old_text into new_text.

        Args:
            old_text: Original text
            new_text: Updated text

        Returns:
            Ordered hunks (empty when the texts are identical)
        """
        old_lines = old_text.split("\n")
        new_lines = new_text.split("\n")
        table = self._lcs_table(old_lines, new_lines)
        ops = self._op_stream(old_lines, new_lines, table)
        return self._merge(ops)

    def apply(self, original_text: str, changes: list[DiffChange]) -> str:
        """Apply hunks to the original text.

        Hunks with an old range are applied in ascending `old_start` order.
        Pure insertions are placed relative to the running old-to-new line
        offset: removals shift it down, insertions up, and modified hunks
        reset it to ``new_end - old_end`` from their own ranges.

        Args:
            original_text: Text the hunks were computed against
            changes: Hunks to apply

        Returns:
            Reconstructed text

        Raises:
            InvalidHunkSequenceError: If hunks overlap, run backwards or
                fall outside the original text
        """
        lines = original_text.split("\n")
        anchored = sorted(
            (c for c in changes if c.old_start is not None),
            key=lambda c: c.old_start,  # type: ignore[arg-type,return-value]
        )
        insertions = sorted(
            (c for c in changes if c.old_start is None),
            key=lambda c: c.new_start or 0,
        )

        result: list[str] = []
        cursor = 1  # next original line (1-based) not yet copied or skipped
        offset = 0

        while anchored or insertions:
            insert_at = None
            if insertions:
                insert_at = insertions[0].new_start - offset  # type: ignore[operator]
            if insert_at is not None and (not anchored or insert_at <= anchored[0].old_start):  # type: ignore[operator]
                change = insertions.pop(0)
                self._copy_until(lines, result, cursor, insert_at, change)
                cursor = max(cursor, insert_at)
                added = change.content.split("\n")
                result.extend(added)
                offset += len(added)
                continue

            change = anchored.pop(0)
            old_start, old_end = change.old_start, change.old_end
            if old_end is None or old_end > len(lines):
                raise InvalidHunkSequenceError(
                    f"Hunk {old_start}-{old_end} is outside the original text "
                    f"({len(lines)} lines)"
                )
            self._copy_until(lines, result, cursor, old_start, change)  # type: ignore[arg-type]
            cursor = old_end + 1

            if change.type == ChangeType.REMOVED:
                offset -= old_end - old_start + 1  # type: ignore[operator]
            elif change.type == ChangeType.MODIFIED:
                result.extend(change.content.split("\n"))
                offset = change.new_end - old_end  # type: ignore[operator]
            else:
                raise InvalidHunkSequenceError(
                    f"Hunk of type {change.type.value} cannot carry an old range"
                )

        if cursor <= len(lines):
            result.extend(lines[cursor - 1 :])

        return "\n".join(result)

    def stats(self, changes: list[DiffChange]) -> DiffStats:
        """Count added, removed and modified lines.

        Modified hunks count the size of their new range.
        """
        added = removed = modified = 0
        for change in changes:
            if change.type == ChangeType.ADDED:
                added += change.new_end - change.new_start + 1  # type: ignore[operator]
            elif change.type == ChangeType.REMOVED:
                removed += change.old_end - change.old_start + 1  # type: ignore[operator]
            else:
                modified += change.new_end - change.new_start + 1  # type: ignore[operator]

        return DiffStats(
            total_changes=added + removed + modified,
            added_lines=added,
            removed_lines=removed,
            modified_lines=modified,
        )

    def summarize(self, changes: list[DiffChange]) -> str:
        """Human-readable summary such as ``"2 additions, 1 deletion"``."""
        stats = self.stats(changes)
        parts = []
        for count, noun in (
            (stats.added_lines, "addition"),
            (stats.removed_lines, "deletion"),
            (stats.modified_lines, "modification"),
        ):
            if count > 0:
                parts.append(f"{count} {noun}{'' if count == 1 else 's'}")

        if not parts:
            return "No changes detected"
        return ", ".join(parts)

    def contextual(
        self, old_text: str, new_text: str, context_lines: int = 3
    ) -> list[DiffChange]:
        """Diff with each hunk widened by surrounding lines.

        Removed hunks are widened against the old text; added and modified
        hunks against the new text. The results are for display and are not
        meant to be applied.
        """
        old_lines = old_text.split("\n")
        new_lines = new_text.split("\n")
        widened: list[DiffChange] = []

        for change in self.diff(old_text, new_text):
            if change.type == ChangeType.REMOVED:
                start = max(1, change.old_start - context_lines)  # type: ignore[operator]
                end = min(len(old_lines), change.old_end + context_lines)  # type: ignore[operator]
                widened.append(
                    DiffChange.removed(start, end, "\n".join(old_lines[start - 1 : end]))
                )
                continue

            start = max(1, change.new_start - context_lines)  # type: ignore[operator]
            end = min(len(new_lines), change.new_end + context_lines)  # type: ignore[operator]
            block = "\n".join(new_lines[start - 1 : end])
            if change.type == ChangeType.ADDED:
                widened.append(DiffChange.added(start, end, block))
            else:
                widened.append(
                    DiffChange.modified(change.old_start, change.old_end, start, end, block)  # type: ignore[arg-type]
                )

        return widened

    @staticmethod
    def _copy_until(
        lines: list[str], result: list[str], cursor: int, start: int, change: DiffChange
    ) -> None:
        """Copy original lines from cursor up to (not including) start."""
        if start < cursor or start > len(lines) + 1:
            raise InvalidHunkSequenceError(
                f"{change.type.value} hunk anchored at line {start} overlaps or "
                f"runs past the previous hunk (next unconsumed line is {cursor})"
            )
        result.extend(lines[cursor - 1 : start - 1])

    @staticmethod
    def _lcs_table(old_lines: list[str], new_lines: list[str]) -> list[list[int]]:
        """Build the (m+1)x(n+1) longest-common-subsequence length table."""
        m, n = len(old_lines), len(new_lines)
        table = [[0] * (n + 1) for _ in range(m + 1)]

        for i in range(1, m + 1):
            row, prev = table[i], table[i - 1]
            old_line = old_lines[i - 1]
            for j in range(1, n + 1):
                if old_line == new_lines[j - 1]:
                    row[j] = prev[j - 1] + 1
                else:
                    row[j] = max(prev[j], row[j - 1])

        return table

    @staticmethod
    def _op_stream(
        old_lines: list[str], new_lines: list[str], table: list[list[int]]
    ) -> list[_Op]:
        """Walk the table back from (m, n) and return ops in forward order.

        On a mismatch the walk prefers emitting an added line when
        ``table[i][j-1] >= table[i-1][j]``.
        """
        ops: list[_Op] = []
        i, j = len(old_lines), len(new_lines)

        while i > 0 or j > 0:
            if i > 0 and j > 0 and old_lines[i - 1] == new_lines[j - 1]:
                ops.append(_Op("unchanged", old_lines[i - 1], i - 1, j - 1))
                i -= 1
                j -= 1
            elif j > 0 and (i == 0 or table[i][j - 1] >= table[i - 1][j]):
                ops.append(_Op("added", new_lines[j - 1], i - 1, j - 1))
                j -= 1
            else:
                ops.append(_Op("removed", old_lines[i - 1], i - 1, j - 1))
                i -= 1

        ops.reverse()
        return ops

    @staticmethod
    def _merge(ops: list[_Op]) -> list[DiffChange]:
        """Collapse the op stream into added/removed/modified hunks."""
        changes: list[DiffChange] = []
        i = 0

        while i < len(ops):
            op = ops[i]
            if op.type == "unchanged":
                i += 1
                continue

            removed: list[_Op] = []
            while i < len(ops) and ops[i].type == "removed":
                removed.append(ops[i])
                i += 1
            added: list[_Op] = []
            while i < len(ops) and ops[i].type == "added":
                added.append(ops[i])
                i += 1

            if removed and added:
                changes.append(
                    DiffChange.modified(
                        removed[0].old_index + 1,
                        removed[-1].old_index + 1,
                        added[0].new_index + 1,
                        added[-1].new_index + 1,
                        "\n".join(a.content for a in added),
                    )
                )
            elif removed:
                changes.append(
                    DiffChange.removed(
                        removed[0].old_index + 1,
                        removed[-1].old_index + 1,
                        "\n".join(r.content for r in removed),
                    )
                )
            else:
                changes.append(
                    DiffChange.added(
                        added[0].new_index + 1,
                        added[-1].new_index + 1,
                        "\n".join(a.content for a in added),
                    )
                )

        return changes
