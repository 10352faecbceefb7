"""Seed documents for new workshop sessions."""

from __future__ import annotations

from srdworkshop.document.models import (
    Document,
    Estimate,
    Section,
    SectionKind,
    SectionStatus,
)

# Display order of a standard requirement document
STANDARD_SECTIONS: tuple[SectionKind, ...] = (
    SectionKind.CORE_FEATURES,
    SectionKind.TECHNICAL_ARCHITECTURE,
    SectionKind.USER_EXPERIENCE,
    SectionKind.TESTING_STRATEGY,
)

# Testing strategy is written by hand
MANUAL_ONLY: frozenset[SectionKind] = frozenset({SectionKind.TESTING_STRATEGY})


def build_document(
    kinds: tuple[SectionKind, ...] = STANDARD_SECTIONS,
    project_name: str = "",
    brief: str = "",
    overview: str = "",
) -> Document:
    """Create an empty document with the given sections, all in draft."""
    return Document(
        project_name=project_name,
        overview=overview,
        brief=brief,
        sections=tuple(
            Section(kind=kind, generatable=kind not in MANUAL_ONLY) for kind in kinds
        ),
    )


def default_document(project_name: str = "", brief: str = "") -> Document:
    """The standard four-section requirement document, empty and in draft."""
    return build_document(project_name=project_name, brief=brief)


def sample_document() -> Document:
    """A filled-in demo document for a travel photo-sharing app."""
    return Document(
        project_name="Social Photo Sharing App",
        overview=(
            "A mobile-first social platform for photo sharing with AI-powered "
            "content discovery, focused on travel photography."
        ),
        brief="I want a photo-sharing social app for travel photography enthusiasts",
        sections=(
            Section(
                kind=SectionKind.CORE_FEATURES,
                status=SectionStatus.COMPLETED,
                content=(
                    "## Core Features\n\n"
                    "### Accounts\n"
                    "- Sign-up and login (email, social accounts)\n"
                    "- Profile management\n"
                    "- Privacy settings\n\n"
                    "### Publishing\n"
                    "- Photo upload and editing\n"
                    "- Filters and basic editing tools\n"
                    "- Location tagging\n"
                    "- Tags\n\n"
                    "### Social\n"
                    "- Follow and unfollow\n"
                    "- Likes, comments, shares\n"
                    "- Direct messages\n"
                    "- Push notifications\n"
                ),
            ),
            Section(
                kind=SectionKind.TECHNICAL_ARCHITECTURE,
                status=SectionStatus.COMPLETED,
                content=(
                    "## Technical Architecture\n\n"
                    "### Frontend\n"
                    "- React Native\n"
                    "- Redux Toolkit\n\n"
                    "### Backend\n"
                    "- Node.js + Express\n"
                    "- MongoDB\n"
                    "- Redis\n"
                    "- S3 image storage\n"
                ),
            ),
            Section(
                kind=SectionKind.USER_EXPERIENCE,
                status=SectionStatus.REVIEWING,
                content=(
                    "## User Experience\n\n"
                    "### Principles\n"
                    "- Mobile first\n"
                    "- Minimal interface\n"
                    "- Fast loading\n\n"
                    "### Performance\n"
                    "- App start < 3s\n"
                    "- Image load < 2s\n"
                    "- Interaction response < 500ms\n"
                ),
            ),
            Section(
                kind=SectionKind.TESTING_STRATEGY,
                generatable=False,
                content=(
                    "## Testing Strategy\n\n"
                    "- Unit test coverage > 80%\n"
                    "- Integration tests\n"
                    "- E2E tests for key user flows\n"
                ),
            ),
        ),
        tech_stack=("React Native", "Node.js", "MongoDB", "AWS", "TensorFlow.js"),
        budget_range=Estimate(minimum=150_000, maximum=250_000, confidence=85),
        timeline_weeks=Estimate(minimum=16, maximum=24, confidence=78),
    )
