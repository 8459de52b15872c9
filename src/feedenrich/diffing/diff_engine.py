"""Before/after comparison for audit display and change-magnitude scoring."""

from __future__ import annotations

from typing import Mapping

from feedenrich.diffing.tokenizer import jaccard, tokenize
from feedenrich.models.domain import ChangeType, DiffChange, FieldDiff


class DiffEngine:
    def compute_diff(self, field: str, before: str | None, after: str | None) -> FieldDiff:
        before = before if isinstance(before, str) else ""
        after = after if isinstance(after, str) else ""

        if before == after:
            return FieldDiff(
                field=field,
                before=before,
                after=after,
                change_type=ChangeType.UNCHANGED,
                similarity=1.0,
            )
        if not before:
            change_type = ChangeType.ADDED
        elif not after:
            change_type = ChangeType.REMOVED
        else:
            change_type = ChangeType.MODIFIED

        before_words = tokenize(before)
        after_words = tokenize(after)
        before_set = {w.lower() for w in before_words}
        after_set = {w.lower() for w in after_words}

        return FieldDiff(
            field=field,
            before=before,
            after=after,
            change_type=change_type,
            changes=self._build_changes(before, after),
            added_words=_unique_missing(after_words, before_set),
            removed_words=_unique_missing(before_words, after_set),
            similarity=jaccard(before_set, after_set),
        )

    def compute_multiple_diffs(
        self, before: Mapping[str, str], after: Mapping[str, str]
    ) -> list[FieldDiff]:
        diffs = []
        for field in sorted(set(before) | set(after)):
            old, new = before.get(field, ""), after.get(field, "")
            if old != new:
                diffs.append(self.compute_diff(field, old, new))
        return diffs

    @staticmethod
    def _build_changes(before: str, after: str) -> list[DiffChange]:
        """Common-prefix / common-suffix trimming; the middle is one delete plus one insert."""
        prefix = 0
        limit = min(len(before), len(after))
        while prefix < limit and before[prefix] == after[prefix]:
            prefix += 1

        suffix = 0
        while (
            suffix < len(before) - prefix
            and suffix < len(after) - prefix
            and before[len(before) - 1 - suffix] == after[len(after) - 1 - suffix]
        ):
            suffix += 1

        changes: list[DiffChange] = []
        if prefix:
            changes.append(DiffChange(type="equal", text=before[:prefix], position=0))
        deleted = before[prefix : len(before) - suffix]
        if deleted:
            changes.append(DiffChange(type="delete", text=deleted, position=prefix))
        inserted = after[prefix : len(after) - suffix]
        if inserted:
            changes.append(DiffChange(type="insert", text=inserted, position=prefix))
        if suffix:
            changes.append(
                DiffChange(
                    type="equal",
                    text=before[len(before) - suffix :],
                    position=len(after) - suffix,
                )
            )
        return changes


def _unique_missing(words: list[str], other: set[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for w in words:
        key = w.lower()
        if key in other or key in seen:
            continue
        seen.add(key)
        result.append(w)
    return result
