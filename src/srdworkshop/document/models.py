"""Data model for the requirement document.

The document is an ordered, fixed set of sections. Section identity is the
closed ``SectionKind`` enum rather than free-form titles, so an unknown title
is rejected where it enters the system instead of silently matching nothing.

All models here are frozen. The section store replaces values instead of
mutating them, which is what lets version history keep a document value as
an immutable snapshot.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from srdworkshop.errors import SectionNotFoundError


class SectionKind(str, Enum):
    """The sections a requirement document can contain."""

    CORE_FEATURES = "core_features"
    TECHNICAL_ARCHITECTURE = "technical_architecture"
    USER_EXPERIENCE = "user_experience"
    TESTING_STRATEGY = "testing_strategy"

    @property
    def title(self) -> str:
        """Display title, unique within a document."""
        return _TITLES[self]

    @classmethod
    def parse(cls, value: SectionKind | str) -> SectionKind:
        """Resolve a kind from an enum member, value, name, or display title.

        Matching ignores case and surrounding whitespace.

        Args:
            value: Kind or string naming it.

        Returns:
            The matching SectionKind.

        Raises:
            SectionNotFoundError: If the string names no known section.
        """
        if isinstance(value, SectionKind):
            return value
        key = " ".join(str(value).split()).lower()
        for kind in cls:
            if key in (kind.value, kind.name.lower(), kind.title.lower()):
                return kind
        raise SectionNotFoundError(str(value))


_TITLES: dict[SectionKind, str] = {
    SectionKind.CORE_FEATURES: "Core Features",
    SectionKind.TECHNICAL_ARCHITECTURE: "Technical Architecture",
    SectionKind.USER_EXPERIENCE: "User Experience",
    SectionKind.TESTING_STRATEGY: "Testing Strategy",
}


class SectionStatus(str, Enum):
    """Editorial status of a section."""

    DRAFT = "draft"
    REVIEWING = "reviewing"
    COMPLETED = "completed"


class GenerationState(str, Enum):
    """Whether a generation task currently owns the section."""

    IDLE = "idle"
    GENERATING = "generating"


class Section(BaseModel):
    """One titled unit of the requirement document.

    Attributes:
        kind: Section identity.
        content: Text body, may be empty.
        status: Editorial status.
        generatable: Whether the section supports automatic generation.
        generation_state: Idle, or Generating while a task owns the section.
    """

    model_config = ConfigDict(frozen=True)

    kind: SectionKind
    content: str = ""
    status: SectionStatus = SectionStatus.DRAFT
    generatable: bool = True
    generation_state: GenerationState = GenerationState.IDLE

    @property
    def title(self) -> str:
        return self.kind.title

    @property
    def is_generating(self) -> bool:
        return self.generation_state == GenerationState.GENERATING


class Estimate(BaseModel):
    """A min/max range with a confidence percentage."""

    model_config = ConfigDict(frozen=True)

    minimum: float = Field(ge=0)
    maximum: float = Field(ge=0)
    confidence: int = Field(default=0, ge=0, le=100)

    @model_validator(mode="after")
    def validate_range(self) -> Estimate:
        if self.minimum > self.maximum:
            raise ValueError(
                f"Estimate minimum {self.minimum} exceeds maximum {self.maximum}"
            )
        return self


class Document(BaseModel):
    """An ordered requirement document.

    Section order is fixed when the document is created and each kind
    appears at most once.

    Attributes:
        project_name: Display name of the project.
        overview: Short free-text project overview.
        brief: The one-line user requirement that drives generation prompts.
        sections: Sections in display order.
        tech_stack: Technologies the project is expected to use.
        budget_range: Estimated budget.
        timeline_weeks: Estimated delivery time in weeks.
    """

    model_config = ConfigDict(frozen=True)

    project_name: str = ""
    overview: str = ""
    brief: str = ""
    sections: tuple[Section, ...] = Field(default_factory=tuple)
    tech_stack: tuple[str, ...] = Field(default_factory=tuple)
    budget_range: Estimate | None = None
    timeline_weeks: Estimate | None = None

    @field_validator("sections")
    @classmethod
    def validate_unique_kinds(cls, v: tuple[Section, ...]) -> tuple[Section, ...]:
        """Reject documents that repeat a section kind."""
        seen: set[SectionKind] = set()
        for section in v:
            if section.kind in seen:
                raise ValueError(f"Duplicate section: {section.kind.title}")
            seen.add(section.kind)
        return v

    @property
    def kinds(self) -> list[SectionKind]:
        return [section.kind for section in self.sections]

    def has(self, kind: SectionKind) -> bool:
        return any(section.kind == kind for section in self.sections)

    def section(self, kind: SectionKind | str) -> Section:
        """Return the section for a kind or title.

        Raises:
            SectionNotFoundError: If the document has no such section.
        """
        kind = SectionKind.parse(kind)
        for section in self.sections:
            if section.kind == kind:
                return section
        raise SectionNotFoundError(kind)

    def replace_section(self, section: Section) -> Document:
        """Return a copy of the document with one section replaced in place."""
        if not self.has(section.kind):
            raise SectionNotFoundError(section.kind)
        sections = tuple(
            section if existing.kind == section.kind else existing
            for existing in self.sections
        )
        return self.model_copy(update={"sections": sections})

    def generating_kinds(self) -> list[SectionKind]:
        return [section.kind for section in self.sections if section.is_generating]
