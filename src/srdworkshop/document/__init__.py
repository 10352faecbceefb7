"""Requirement document model, section store, and dependency gate."""

from __future__ import annotations

from srdworkshop.document.defaults import (
    STANDARD_SECTIONS,
    build_document,
    default_document,
    sample_document,
)
from srdworkshop.document.dependencies import (
    DEPENDENCY_RULES,
    DependencyGate,
    GateDecision,
    GateVerdict,
    can_generate,
)
from srdworkshop.document.models import (
    Document,
    Estimate,
    GenerationState,
    Section,
    SectionKind,
    SectionStatus,
)
from srdworkshop.document.store import SectionStore
from srdworkshop.document.templates import (
    BUILTIN_TEMPLATES,
    SectionTemplate,
    TemplateCatalog,
    TemplateCategory,
)

__all__ = [
    # Models
    "Document",
    "Estimate",
    "GenerationState",
    "Section",
    "SectionKind",
    "SectionStatus",
    # Store
    "SectionStore",
    # Dependencies
    "DEPENDENCY_RULES",
    "DependencyGate",
    "GateDecision",
    "GateVerdict",
    "can_generate",
    # Defaults
    "STANDARD_SECTIONS",
    "build_document",
    "default_document",
    "sample_document",
    # Templates
    "BUILTIN_TEMPLATES",
    "SectionTemplate",
    "TemplateCatalog",
    "TemplateCategory",
]
