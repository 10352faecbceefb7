"""Section store for the requirement document.

The store owns the current ``Document`` value and enforces the section
invariants: a generating section rejects manual edits, a section can only be
claimed by one generation at a time, and an edit demotes the section to
reviewing so edited content is re-confirmed before it counts as final.

Every mutation swaps in a new frozen ``Document``; nothing here performs I/O.
"""

from __future__ import annotations

import structlog

from srdworkshop.document.models import (
    Document,
    GenerationState,
    Section,
    SectionKind,
    SectionStatus,
)
from srdworkshop.errors import AlreadyGeneratingError, SectionLockedError

logger = structlog.get_logger(__name__)


class SectionStore:
    """Holds the ordered document sections and their status.

    Attributes:
        document: The current document value (read-only view).
    """

    def __init__(self, document: Document) -> None:
        """Initialize the store.

        Args:
            document: Initial document. Section order is fixed from here on.
        """
        self._document = document
        self._logger = logger.bind(component="SectionStore")

    @property
    def document(self) -> Document:
        return self._document

    def get_section(self, kind: SectionKind | str) -> Section:
        """Return a section by kind or title.

        Raises:
            SectionNotFoundError: If the document has no such section.
        """
        return self._document.section(kind)

    def set_content(self, kind: SectionKind | str, content: str) -> Section:
        """Replace a section's content through a manual edit.

        The status always becomes reviewing, including for completed
        sections.

        Args:
            kind: Section to edit.
            content: New text body.

        Returns:
            The updated section.

        Raises:
            SectionNotFoundError: If the document has no such section.
            SectionLockedError: If the section is generating.
        """
        section = self.get_section(kind)
        if section.is_generating:
            raise SectionLockedError(section.kind)

        updated = section.model_copy(
            update={"content": content, "status": SectionStatus.REVIEWING}
        )
        self._replace(updated)

        self._logger.info(
            "section_content_set",
            section=section.title,
            from_status=section.status.value,
            to_status=updated.status.value,
        )
        return updated

    def mark_generating(self, kind: SectionKind | str) -> Section:
        """Claim a section for a generation task.

        Raises:
            SectionNotFoundError: If the document has no such section.
            AlreadyGeneratingError: If the section is already generating.
        """
        section = self.get_section(kind)
        if section.is_generating:
            raise AlreadyGeneratingError(section.kind)

        updated = section.model_copy(
            update={"generation_state": GenerationState.GENERATING}
        )
        self._replace(updated)
        self._logger.debug("section_marked_generating", section=section.title)
        return updated

    def apply_generation_result(self, kind: SectionKind | str, content: str) -> Section:
        """Store generated content, complete the section and release it.

        Raises:
            SectionNotFoundError: If the document has no such section.
        """
        section = self.get_section(kind)
        updated = section.model_copy(
            update={
                "content": content,
                "status": SectionStatus.COMPLETED,
                "generation_state": GenerationState.IDLE,
            }
        )
        self._replace(updated)

        self._logger.info(
            "section_generation_applied",
            section=section.title,
            from_status=section.status.value,
            content_length=len(content),
        )
        return updated

    def clear_generating(self, kind: SectionKind | str) -> Section:
        """Release a section without touching its content or status."""
        section = self.get_section(kind)
        if not section.is_generating:
            return section

        updated = section.model_copy(update={"generation_state": GenerationState.IDLE})
        self._replace(updated)
        self._logger.debug("section_generation_cleared", section=section.title)
        return updated

    def set_brief(self, brief: str) -> Document:
        """Replace the document's free-form brief."""
        self._document = self._document.model_copy(update={"brief": brief})
        self._logger.info("document_brief_set", brief_length=len(brief))
        return self._document

    def _replace(self, section: Section) -> None:
        self._document = self._document.replace_section(section)
