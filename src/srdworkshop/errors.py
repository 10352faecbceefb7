"""Exception hierarchy for the SRD Workshop core.

Every precondition failure raised by the workshop derives from
``WorkshopError`` and carries a stable ``code`` string plus structured
attributes, so callers can render an actionable message (for example which
prerequisite section still has to be completed) without parsing text.

Precondition errors are raised before any state is touched. External
generation and chat failures are not raised through this hierarchy; they are
reported on the returned task or assistant message instead.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from srdworkshop.document.models import SectionKind


def _title(section: SectionKind | str) -> str:
    if isinstance(section, Enum):
        return section.title
    return str(section)


class WorkshopError(Exception):
    """Base class for workshop precondition errors.

    Attributes:
        code: Stable machine-readable error code.
        message: Human-readable description.
    """

    code = "workshop_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SectionNotFoundError(WorkshopError):
    """Raised when a section title or kind is not part of the document."""

    code = "section_not_found"

    def __init__(self, title: SectionKind | str) -> None:
        self.title = _title(title)
        super().__init__(f"Section not found: {self.title}")


class SectionLockedError(WorkshopError):
    """Raised when a manual edit targets a section that is generating."""

    code = "section_locked"

    def __init__(self, section: SectionKind) -> None:
        self.section = section
        super().__init__(
            f"Section {section.title} is being generated and cannot be edited"
        )


class AlreadyGeneratingError(WorkshopError):
    """Raised by the section store when a section is already generating."""

    code = "already_generating"

    def __init__(self, section: SectionKind) -> None:
        self.section = section
        super().__init__(f"Section {section.title} is already generating")


class DependencyUnmetError(WorkshopError):
    """Raised when generation is requested before its prerequisites are met.

    Attributes:
        section: The section whose generation was refused.
        missing: Every prerequisite that is not yet completed, in table order.
        reason: Short reason string from the dependency gate.
    """

    code = "dependency_unmet"

    def __init__(
        self,
        section: SectionKind,
        missing: Sequence[SectionKind] = (),
        reason: str = "prerequisites incomplete",
        message: str | None = None,
    ) -> None:
        self.section = section
        self.missing = list(missing)
        self.reason = reason
        if message is None:
            names = ", ".join(kind.title for kind in self.missing)
            message = f"{section.title} requires completed: {names}"
        super().__init__(message)


class NotGeneratableError(DependencyUnmetError):
    """Raised when generation is requested for a manual-only section."""

    code = "not_generatable"

    def __init__(self, section: SectionKind) -> None:
        super().__init__(
            section,
            reason="not generatable",
            message=f"Section {section.title} does not support generation",
        )


class GenerationInProgressError(WorkshopError):
    """Raised when a generation request hits a section that is in flight."""

    code = "generation_in_progress"

    def __init__(self, section: SectionKind) -> None:
        self.section = section
        super().__init__(f"Generation already in progress for {section.title}")


class StreamBusyError(WorkshopError):
    """Raised when a user message is posted while an assistant turn streams."""

    code = "stream_busy"

    def __init__(self, message_id: int) -> None:
        self.message_id = message_id
        super().__init__(
            f"Assistant message {message_id} is still streaming; "
            "finalize or abort it first"
        )


class TurnAlreadyOpenError(WorkshopError):
    """Raised when an assistant turn is opened while another is streaming."""

    code = "turn_already_open"

    def __init__(self, message_id: int) -> None:
        self.message_id = message_id
        super().__init__(f"Assistant turn {message_id} is already open")


class NotStreamingError(WorkshopError):
    """Raised when a message id is not the currently streaming message."""

    code = "not_streaming"

    def __init__(self, message_id: int) -> None:
        self.message_id = message_id
        super().__init__(f"Message {message_id} is not the open streaming message")


class SnapshotNotFoundError(WorkshopError):
    """Raised when a history lookup names an unknown snapshot."""

    code = "snapshot_not_found"

    def __init__(self, sequence_number: int) -> None:
        self.sequence_number = sequence_number
        super().__init__(f"Snapshot not found: {sequence_number}")


class TemplateNotFoundError(WorkshopError):
    """Raised when a section template id is not in the catalog."""

    code = "template_not_found"

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Template not found: {template_id}")
