"""Shared pytest fixtures for SRD Workshop tests.

Provides fake content and reply generators whose progress is controlled
with ``asyncio.Event`` gates, so tests can observe a section while it is
generating or an assistant turn while it is streaming, plus ready-made
workshop sessions.
"""

from __future__ import annotations

import asyncio
from typing import AsyncGenerator, Mapping, Sequence

import pytest
import pytest_asyncio

from srdworkshop.config import ConversationConfig, GenerationConfig, WorkshopConfig
from srdworkshop.conversation.stream import ConversationMessage
from srdworkshop.document.defaults import default_document
from srdworkshop.document.models import SectionKind
from srdworkshop.providers.base import GenerationRequest, TokenCallback
from srdworkshop.providers.scripted import DEFAULT_SECTION_CONTENT
from srdworkshop.session import WorkshopSession


class GatedContentGenerator:
    """Content generator that blocks until released.

    Attributes:
        responses: Content returned per section kind.
        error: If set, raised instead of returning content.
        requests: Every request received, in order.
        started: Set as soon as the first request arrives.
        release: Generation returns once this is set.
    """

    def __init__(
        self,
        responses: Mapping[SectionKind, str] | None = None,
        error: Exception | None = None,
        gated: bool = True,
    ) -> None:
        self.responses = dict(DEFAULT_SECTION_CONTENT if responses is None else responses)
        self.error = error
        self.requests: list[GenerationRequest] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        if not gated:
            self.release.set()

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def generate_content(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        self.started.set()
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.responses[request.section]


class GatedReplyGenerator:
    """Reply generator that streams fragments, optionally pausing mid-reply.

    Fragments before ``pause_after`` are pushed immediately; the rest wait
    for ``release``.

    Attributes:
        fragments: Fragments pushed through on_token, in order.
        final: Value returned after streaming (None keeps the fragments).
        error: If set, raised after the fragments were pushed.
        conversations: The conversation passed on each call.
        started: Set once the first fragments were pushed.
        release: Streaming continues once this is set.
    """

    def __init__(
        self,
        fragments: Sequence[str] = ("Hi", " there"),
        final: str | None = None,
        error: Exception | None = None,
        pause_after: int | None = None,
    ) -> None:
        self.fragments = list(fragments)
        self.final = final
        self.error = error
        self.pause_after = pause_after
        self.conversations: list[list[ConversationMessage]] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def generate_reply(
        self,
        conversation: Sequence[ConversationMessage],
        on_token: TokenCallback,
    ) -> str | None:
        self.conversations.append(list(conversation))
        for index, fragment in enumerate(self.fragments):
            if index == self.pause_after:
                self.started.set()
                await self.release.wait()
            on_token(fragment)
            await asyncio.sleep(0)
        self.started.set()
        if self.pause_after is not None and self.pause_after >= len(self.fragments):
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.final


@pytest.fixture
def content_generator() -> GatedContentGenerator:
    """Gated content generator, released manually by the test."""
    return GatedContentGenerator()


@pytest.fixture
def instant_generator() -> GatedContentGenerator:
    """Content generator that answers immediately."""
    return GatedContentGenerator(gated=False)


@pytest.fixture
def reply_generator() -> GatedReplyGenerator:
    """Reply generator that streams "Hi", " there" without pausing."""
    return GatedReplyGenerator()


@pytest.fixture
def workshop_config() -> WorkshopConfig:
    """Workshop configuration with short timeouts for tests."""
    return WorkshopConfig(
        generation=GenerationConfig(timeout_seconds=5.0),
        conversation=ConversationConfig(timeout_seconds=5.0),
    )


@pytest_asyncio.fixture
async def session(
    content_generator: GatedContentGenerator,
    reply_generator: GatedReplyGenerator,
    workshop_config: WorkshopConfig,
) -> AsyncGenerator[WorkshopSession, None]:
    """Workshop session over the default document with gated generators.

    Yields:
        WorkshopSession; outstanding work is cancelled on teardown.
    """
    workshop = WorkshopSession(
        content_generator,
        reply_generator,
        document=default_document(project_name="PhotoShare", brief="A travel photo app"),
        config=workshop_config,
        session_id="S-test",
    )
    yield workshop
    await workshop.close()


@pytest_asyncio.fixture
async def instant_session(
    instant_generator: GatedContentGenerator,
    reply_generator: GatedReplyGenerator,
    workshop_config: WorkshopConfig,
) -> AsyncGenerator[WorkshopSession, None]:
    """Workshop session whose content generator answers immediately.

    Yields:
        WorkshopSession; outstanding work is cancelled on teardown.
    """
    workshop = WorkshopSession(
        instant_generator,
        reply_generator,
        document=default_document(project_name="PhotoShare", brief="A travel photo app"),
        config=workshop_config,
        session_id="S-instant",
    )
    yield workshop
    await workshop.close()


@pytest.fixture
def make_content_generator() -> type[GatedContentGenerator]:
    """Factory for content generators with custom responses or errors."""
    return GatedContentGenerator


@pytest.fixture
def make_reply_generator() -> type[GatedReplyGenerator]:
    """Factory for reply generators with custom fragments, results or errors."""
    return GatedReplyGenerator
