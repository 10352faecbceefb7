"""Scripted generators for demos and tests.

These implement the provider protocols with canned text, so a workshop
session can run end to end without any model behind it.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Iterator, Mapping, Sequence

import structlog

from srdworkshop.conversation.stream import ConversationMessage
from srdworkshop.document.models import SectionKind
from srdworkshop.providers.base import GenerationRequest, TokenCallback

logger = structlog.get_logger(__name__)

DEFAULT_SECTION_CONTENT: dict[SectionKind, str] = {
    SectionKind.CORE_FEATURES: (
        "## Core Features\n\n"
        "### Accounts\n"
        "- Sign-up and login\n"
        "- Profile management\n\n"
        "### Content\n"
        "- Upload and edit\n"
        "- Tags and location\n\n"
        "### Social\n"
        "- Follow, like, comment\n"
        "- Notifications\n"
    ),
    SectionKind.TECHNICAL_ARCHITECTURE: (
        "## Technical Architecture\n\n"
        "### Frontend\n"
        "- Cross-platform mobile client\n\n"
        "### Backend\n"
        "- REST API service\n"
        "- Document database\n"
        "- Cache\n"
        "- Object storage\n"
    ),
    SectionKind.USER_EXPERIENCE: (
        "## User Experience\n\n"
        "### Principles\n"
        "- Mobile first\n"
        "- Minimal interface\n\n"
        "### Key flows\n"
        "1. Onboarding\n"
        "2. Publishing\n"
        "3. Discovery\n"
    ),
    SectionKind.TESTING_STRATEGY: (
        "## Testing Strategy\n\n"
        "- Unit tests\n"
        "- Integration tests\n"
        "- End-to-end tests\n"
    ),
}

DEFAULT_REPLIES: tuple[str, ...] = (
    "I understand you want to build a photo-sharing app. A few questions first:\n\n"
    "1. Who is the target audience?\n"
    "2. How is it different from existing products?\n"
    "3. Which core features matter most?\n\n"
    "I have started the requirements outline, take a look at the preview.",
    "Great, based on that I updated the technical architecture. I suggest a "
    "cross-platform client with a Node.js and MongoDB backend.\n\n"
    "Next I need to know the expected user scale, performance requirements and "
    "the rough budget and timeline.",
    "The requirements document is complete. It covers features, architecture, "
    "user experience and testing strategy.\n\n"
    "Estimated timeline: 16-24 weeks. You can edit any section directly or keep "
    "refining the details with me.",
)


class ScriptedContentGenerator:
    """Content generator that answers from a fixed table.

    Attributes:
        responses: Section content to return, keyed by kind.
        delay: Seconds to sleep before answering.
        requests: Every request received, in order.
    """

    def __init__(
        self,
        responses: Mapping[SectionKind, str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.responses = dict(DEFAULT_SECTION_CONTENT if responses is None else responses)
        self.delay = delay
        self.requests: list[GenerationRequest] = []

    async def generate_content(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        try:
            return self.responses[request.section]
        except KeyError:
            raise LookupError(f"No scripted content for {request.section.title}") from None


class ScriptedReplyGenerator:
    """Reply generator that streams canned replies word by word.

    Replies are used in rotation. Each word (with its leading space) is
    pushed as one fragment.

    Attributes:
        delay: Seconds to sleep between fragments.
    """

    def __init__(self, replies: Sequence[str] = DEFAULT_REPLIES, delay: float = 0.0) -> None:
        if not replies:
            raise ValueError("ScriptedReplyGenerator needs at least one reply")
        self._replies: Iterator[str] = itertools.cycle(replies)
        self.delay = delay

    async def generate_reply(
        self,
        conversation: Sequence[ConversationMessage],
        on_token: TokenCallback,
    ) -> str | None:
        reply = next(self._replies)
        for fragment in split_fragments(reply):
            on_token(fragment)
            # Yield to the loop even without a delay so cancellation can land
            await asyncio.sleep(self.delay)
        logger.debug("scripted_reply_streamed", history_length=len(conversation))
        return None


def split_fragments(text: str) -> list[str]:
    """Split text into word fragments that concatenate back to the text.

    Line breaks stay attached to the following word.
    """
    fragments: list[str] = []
    current = ""
    for char in text:
        if char == " " and current.strip():
            fragments.append(current)
            current = ""
        current += char
    if current:
        fragments.append(current)
    return fragments
