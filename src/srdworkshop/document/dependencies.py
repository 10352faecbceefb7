"""Dependency gate for section generation.

This module answers "can this section be generated now?" from the current
section statuses. The rule table maps a section kind to the prerequisite
kinds that must be completed first.

The gate is pure and keeps no cache: prerequisite statuses can change
between two requests, so every request is evaluated against the document it
is given.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

import structlog
from pydantic import BaseModel, ConfigDict, Field

from srdworkshop.document.models import Document, SectionKind, SectionStatus

logger = structlog.get_logger(__name__)


# Authoritative prerequisite table
DEPENDENCY_RULES: dict[SectionKind, tuple[SectionKind, ...]] = {
    SectionKind.CORE_FEATURES: (),
    SectionKind.TECHNICAL_ARCHITECTURE: (SectionKind.CORE_FEATURES,),
    SectionKind.USER_EXPERIENCE: (),
    SectionKind.TESTING_STRATEGY: (),
}


class GateVerdict(str, Enum):
    """Outcome of a dependency gate check."""

    ALLOWED = "allowed"
    NOT_GENERATABLE = "not_generatable"
    PREREQUISITES_INCOMPLETE = "prerequisites_incomplete"


class GateDecision(BaseModel):
    """Result of asking whether a section may be generated.

    Attributes:
        section: The section that was checked.
        verdict: Allowed, or the reason generation is blocked.
        missing: All prerequisites that are not completed, in rule order.
    """

    model_config = ConfigDict(frozen=True)

    section: SectionKind
    verdict: GateVerdict
    missing: tuple[SectionKind, ...] = Field(default_factory=tuple)

    @property
    def allowed(self) -> bool:
        return self.verdict == GateVerdict.ALLOWED

    @property
    def reason(self) -> str:
        if self.verdict == GateVerdict.NOT_GENERATABLE:
            return "not generatable"
        if self.verdict == GateVerdict.PREREQUISITES_INCOMPLETE:
            return "prerequisites incomplete"
        return "allowed"


class DependencyGate:
    """Evaluates generation prerequisites against a document.

    Attributes:
        rules: Mapping of section kind to prerequisite kinds.
    """

    def __init__(
        self, rules: Mapping[SectionKind, tuple[SectionKind, ...]] | None = None
    ) -> None:
        self.rules: dict[SectionKind, tuple[SectionKind, ...]] = dict(
            DEPENDENCY_RULES if rules is None else rules
        )
        self._logger = logger.bind(component="DependencyGate")

    def prerequisites(self, kind: SectionKind) -> tuple[SectionKind, ...]:
        """Prerequisite kinds for a section (empty when it has no rule)."""
        return self.rules.get(kind, ())

    def can_generate(self, document: Document, kind: SectionKind | str) -> GateDecision:
        """Check whether a section may be generated right now.

        A section that is not generatable is always blocked. Otherwise every
        prerequisite must be present in the document with status completed;
        a prerequisite the document does not contain counts as unmet. All
        unmet prerequisites are reported, not just the first.

        Args:
            document: Current document state.
            kind: Section to check.

        Returns:
            GateDecision describing the verdict and any missing prerequisites.

        Raises:
            SectionNotFoundError: If the document does not contain the section.
        """
        section = document.section(kind)

        if not section.generatable:
            return GateDecision(section=section.kind, verdict=GateVerdict.NOT_GENERATABLE)

        missing: list[SectionKind] = []
        for prerequisite in self.prerequisites(section.kind):
            if not document.has(prerequisite):
                missing.append(prerequisite)
            elif document.section(prerequisite).status != SectionStatus.COMPLETED:
                missing.append(prerequisite)

        if missing:
            self._logger.debug(
                "dependencies_unresolved",
                section=section.title,
                missing=[m.title for m in missing],
            )
            return GateDecision(
                section=section.kind,
                verdict=GateVerdict.PREREQUISITES_INCOMPLETE,
                missing=tuple(missing),
            )

        return GateDecision(section=section.kind, verdict=GateVerdict.ALLOWED)

    def completed_context(self, document: Document, kind: SectionKind) -> dict[str, str]:
        """Content of the completed prerequisites of a section, keyed by title.

        Used to seed a section's generation prompt with the sections it
        builds on.
        """
        context: dict[str, str] = {}
        for prerequisite in self.prerequisites(kind):
            if document.has(prerequisite):
                section = document.section(prerequisite)
                if section.status == SectionStatus.COMPLETED:
                    context[section.title] = section.content
        return context


_default_gate = DependencyGate()


def can_generate(document: Document, kind: SectionKind | str) -> GateDecision:
    """Check a section against the default rule table.

    Args:
        document: Current document state.
        kind: Section to check.

    Returns:
        GateDecision for the section.
    """
    return _default_gate.can_generate(document, kind)
