"""Append-only version history of the requirement document.

Every committed mutation of the document (a manual edit, a completed
generation, a brief change) appends one immutable snapshot. Sequence numbers
are strictly increasing across the whole session, no matter how many
generations are in flight, because a commit is a single synchronous step.

History is never pruned. Listing is paginated with a sequence-number cursor
so callers do not have to materialise the whole log.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from enum import Enum

import structlog
from pydantic import BaseModel, ConfigDict, Field

from srdworkshop.document.models import Document, SectionKind
from srdworkshop.errors import SnapshotNotFoundError

logger = structlog.get_logger(__name__)


class SnapshotCause(str, Enum):
    """Why a snapshot was taken."""

    INITIAL_STATE = "initial_state"
    MANUAL_EDIT = "manual_edit"
    GENERATION_COMPLETED = "generation_completed"
    BRIEF_UPDATED = "brief_updated"


class Snapshot(BaseModel):
    """An immutable copy of the document at commit time.

    Attributes:
        sequence_number: Position in the history, starting at 1.
        document: Deep copy of the document.
        cause: What kind of mutation was committed.
        section: The section that changed, if the mutation targeted one.
        timestamp: Commit time (UTC).
    """

    model_config = ConfigDict(frozen=True)

    sequence_number: int
    document: Document
    cause: SnapshotCause
    section: SectionKind | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def label(self) -> str:
        """Short change description for history listings."""
        if self.cause == SnapshotCause.INITIAL_STATE:
            return "Initial version"
        if self.cause == SnapshotCause.BRIEF_UPDATED:
            return "Updated brief"
        verb = "Generated" if self.cause == SnapshotCause.GENERATION_COMPLETED else "Edited"
        if self.section is None:
            return f"{verb} document"
        return f"{verb} {self.section.title}"


class SectionDiff(BaseModel):
    """Line delta for one section."""

    model_config = ConfigDict(frozen=True)

    added: int = 0
    removed: int = 0


class DiffStats(BaseModel):
    """Coarse line-count delta between two snapshots.

    Attributes:
        added: Lines present in the newer snapshot only, over all sections.
        removed: Lines present in the older snapshot only, over all sections.
        sections: Per-section deltas, only for sections that changed.
    """

    model_config = ConfigDict(frozen=True)

    added: int = 0
    removed: int = 0
    sections: dict[SectionKind, SectionDiff] = Field(default_factory=dict)

    @property
    def changed(self) -> int:
        return self.added + self.removed


def _lines(content: str) -> Counter[str]:
    return Counter(line.rstrip() for line in content.splitlines() if line.strip())


class VersionHistory:
    """Snapshot log of the document.

    Only the owning workshop session commits; everything else is read-only.
    """

    def __init__(self) -> None:
        self._snapshots: list[Snapshot] = []
        self._logger = logger.bind(component="VersionHistory")

    def __len__(self) -> int:
        return len(self._snapshots)

    def commit(
        self,
        document: Document,
        cause: SnapshotCause,
        section: SectionKind | None = None,
    ) -> int:
        """Append a snapshot of the document.

        Args:
            document: Document state to capture. It is deep-copied.
            cause: What kind of mutation is being committed.
            section: The section the mutation targeted, if any.

        Returns:
            The new snapshot's sequence number.
        """
        sequence_number = len(self._snapshots) + 1
        snapshot = Snapshot(
            sequence_number=sequence_number,
            document=document.model_copy(deep=True),
            cause=cause,
            section=section,
        )
        self._snapshots.append(snapshot)

        self._logger.info(
            "snapshot_committed",
            sequence_number=sequence_number,
            cause=cause.value,
            section=section.title if section else None,
        )
        return sequence_number

    def latest(self) -> Snapshot | None:
        """Most recent snapshot, or None when the history is empty."""
        return self._snapshots[-1] if self._snapshots else None

    def get(self, sequence_number: int) -> Snapshot:
        """Return the snapshot with the given sequence number.

        Raises:
            SnapshotNotFoundError: If no such snapshot exists.
        """
        if 1 <= sequence_number <= len(self._snapshots):
            return self._snapshots[sequence_number - 1]
        raise SnapshotNotFoundError(sequence_number)

    def at(self, index: int) -> Snapshot:
        """Return a snapshot by position, oldest first (negative indexes allowed).

        Raises:
            IndexError: If the index is out of range.
        """
        return self._snapshots[index]

    def list(self, limit: int | None = None, before: int | None = None) -> list[Snapshot]:
        """List snapshots, most recent first.

        Args:
            limit: Maximum number of snapshots to return; None for all.
            before: Only return snapshots with a smaller sequence number.

        Returns:
            Snapshots ordered from newest to oldest.
        """
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")

        snapshots = self._snapshots
        if before is not None:
            snapshots = snapshots[: max(0, min(before - 1, len(snapshots)))]
        ordered = snapshots[::-1]
        return ordered if limit is None else ordered[:limit]

    def diff_stats(self, a: Snapshot, b: Snapshot) -> DiffStats:
        """Count lines added and removed per section going from a to b.

        Lines are compared as a multiset per section, so moved lines do not
        count and duplicated lines do. Blank lines are ignored. A section
        present in only one snapshot counts in full.
        """
        old = {section.kind: section.content for section in a.document.sections}
        new = {section.kind: section.content for section in b.document.sections}

        kinds = list(old) + [kind for kind in new if kind not in old]
        sections: dict[SectionKind, SectionDiff] = {}
        total_added = total_removed = 0
        for kind in kinds:
            before_lines = _lines(old.get(kind, ""))
            after_lines = _lines(new.get(kind, ""))
            added = sum((after_lines - before_lines).values())
            removed = sum((before_lines - after_lines).values())
            if added or removed:
                sections[kind] = SectionDiff(added=added, removed=removed)
                total_added += added
                total_removed += removed

        return DiffStats(added=total_added, removed=total_removed, sections=sections)

    def diff_latest(self) -> DiffStats:
        """Diff the two most recent snapshots (empty stats if fewer than two)."""
        if len(self._snapshots) < 2:
            return DiffStats()
        return self.diff_stats(self._snapshots[-2], self._snapshots[-1])
