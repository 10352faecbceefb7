"""Protocols for the external generation operations.

The workshop core never talks to a model directly. Section content and
assistant replies come from two pluggable operations defined here as
Protocols, so any client (an SDK wrapper, an HTTP client, a scripted fake
in tests) can be plugged into a session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from srdworkshop.document.models import SectionKind

if TYPE_CHECKING:
    from srdworkshop.conversation.stream import ConversationMessage

TokenCallback = Callable[[str], None]


class GenerationRequest(BaseModel):
    """Input handed to a content generator for one section.

    Attributes:
        section: Section to generate.
        brief: The document's one-line user requirement.
        context: Completed prerequisite content keyed by section title.
        prompt: Fully rendered prompt for the section.
    """

    model_config = ConfigDict(frozen=True)

    section: SectionKind
    brief: str = ""
    context: dict[str, str] = Field(default_factory=dict)
    prompt: str = ""


@runtime_checkable
class ContentGenerator(Protocol):
    """Produces the body of a document section."""

    async def generate_content(self, request: GenerationRequest) -> str:
        """Generate section content.

        Args:
            request: Section, brief, prerequisite context and rendered prompt.

        Returns:
            Generated markdown text for the section.

        Raises:
            Exception: Any failure; the orchestrator records it on the task.
        """
        ...


@runtime_checkable
class ReplyGenerator(Protocol):
    """Produces an assistant reply for the conversation channel."""

    async def generate_reply(
        self,
        conversation: Sequence[ConversationMessage],
        on_token: TokenCallback,
    ) -> str | None:
        """Generate a reply, pushing fragments as they become available.

        Args:
            conversation: The message log so far, oldest first, excluding the
                open assistant message.
            on_token: Called once per fragment, in order.

        Returns:
            A definitive final text that replaces the streamed fragments, or
            None to keep the accumulated fragments as the final content.

        Raises:
            Exception: Any failure; the turn is aborted with a fallback text.
        """
        ...
