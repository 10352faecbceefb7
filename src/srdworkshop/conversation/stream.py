"""Conversation stream for the workshop's assistant channel.

The stream is an ordered message log with at most one assistant message
open for streaming at any time. Conversation is turn based: a user message
cannot be posted while an assistant turn is open, and a second turn cannot
be opened until the first is finalized or aborted.

Fragments are appended in call order; the stream never reorders them.
Observers subscribe to push events (``token``, ``finalized``, ...) instead
of polling the log, so streaming is decoupled from any pacing or timing.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from srdworkshop.config import DEFAULT_FALLBACK_MESSAGE
from srdworkshop.errors import NotStreamingError, StreamBusyError, TurnAlreadyOpenError

logger = structlog.get_logger(__name__)


class MessageRole(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConversationMessage(BaseModel):
    """One entry of the message log.

    Attributes:
        id: Monotonic message identifier.
        role: Message author.
        content: Message text (accumulated fragments while streaming).
        streaming: True only for the open assistant turn.
        aborted: True if the turn was finalized with a fallback text.
        created_at: Creation time (UTC).
        finalized_at: When streaming ended, for assistant messages.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    role: MessageRole
    content: str = ""
    streaming: bool = False
    aborted: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finalized_at: datetime | None = None


class StreamEventType(str, Enum):
    """Kinds of events pushed to stream observers."""

    MESSAGE_POSTED = "message_posted"
    TURN_OPENED = "turn_opened"
    TOKEN = "token"
    FINALIZED = "finalized"
    ABORTED = "aborted"


class StreamEvent(BaseModel):
    """An event pushed to stream observers.

    Attributes:
        type: Event kind.
        message: The message after the change.
        fragment: The appended fragment, for token events.
    """

    model_config = ConfigDict(frozen=True)

    type: StreamEventType
    message: ConversationMessage
    fragment: str = ""


StreamObserver = Callable[[StreamEvent], None]


class ConversationStream:
    """Ordered message log with a single streaming assistant slot.

    Attributes:
        fallback_message: Text used when an assistant turn is aborted.
    """

    def __init__(
        self,
        greeting: str = "",
        fallback_message: str = DEFAULT_FALLBACK_MESSAGE,
    ) -> None:
        """Initialize the stream.

        Args:
            greeting: Optional system message to seed the log with.
            fallback_message: Default text for aborted assistant turns.
        """
        self.fallback_message = fallback_message

        self._messages: list[ConversationMessage] = []
        self._positions: dict[int, int] = {}
        self._ids = itertools.count(1)
        self._open_id: int | None = None
        self._observers: list[StreamObserver] = []
        self._logger = logger.bind(component="ConversationStream")

        if greeting:
            self.post_system_message(greeting)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def messages(self) -> tuple[ConversationMessage, ...]:
        return tuple(self._messages)

    def get(self, message_id: int) -> ConversationMessage:
        """Return a message by id.

        Raises:
            KeyError: If the id is unknown.
        """
        return self._messages[self._positions[message_id]]

    @property
    def open_turn(self) -> ConversationMessage | None:
        """The streaming assistant message, if a turn is open."""
        return self.get(self._open_id) if self._open_id is not None else None

    @property
    def is_streaming(self) -> bool:
        return self._open_id is not None

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: StreamObserver) -> Callable[[], None]:
        """Register an observer for stream events.

        Returns:
            A callable that removes the observer again.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _emit(self, type_: StreamEventType, message: ConversationMessage, fragment: str = "") -> None:
        event = StreamEvent(type=type_, message=message, fragment=fragment)
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                self._logger.exception(
                    "stream_observer_failed",
                    event_type=type_.value,
                    message_id=message.id,
                )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def post_user_message(self, content: str) -> int:
        """Append an immutable user message.

        Raises:
            ValueError: If the content is empty or whitespace.
            StreamBusyError: If an assistant turn is streaming.
        """
        if not content.strip():
            raise ValueError("Message content must not be empty")
        return self._post(MessageRole.USER, content)

    def post_system_message(self, content: str) -> int:
        """Append an immutable system message.

        Raises:
            StreamBusyError: If an assistant turn is streaming.
        """
        return self._post(MessageRole.SYSTEM, content)

    def begin_assistant_turn(self) -> int:
        """Open a streaming assistant message with empty content.

        Raises:
            TurnAlreadyOpenError: If a turn is already open.
        """
        if self._open_id is not None:
            raise TurnAlreadyOpenError(self._open_id)

        message = self._append(MessageRole.ASSISTANT, "", streaming=True)
        self._open_id = message.id

        self._logger.info("assistant_turn_opened", message_id=message.id)
        self._emit(StreamEventType.TURN_OPENED, message)
        return message.id

    def append_token(self, message_id: int, fragment: str) -> ConversationMessage:
        """Concatenate a fragment onto the open assistant message.

        Raises:
            NotStreamingError: If message_id is not the open streaming message.
        """
        current = self._require_open(message_id)
        updated = current.model_copy(update={"content": current.content + fragment})
        self._store(updated)
        self._emit(StreamEventType.TOKEN, updated, fragment)
        return updated

    def finalize_assistant_turn(
        self, message_id: int, final_content: str | None = None
    ) -> ConversationMessage:
        """Close the open assistant turn.

        Args:
            message_id: The open streaming message.
            final_content: If given, replaces the accumulated fragments.

        Raises:
            NotStreamingError: If message_id is not the open streaming message.
        """
        current = self._require_open(message_id)
        content = current.content if final_content is None else final_content
        updated = self._close(current, content, aborted=False)

        self._logger.info(
            "assistant_turn_finalized",
            message_id=message_id,
            replaced=final_content is not None,
            content_length=len(content),
        )
        self._emit(StreamEventType.FINALIZED, updated)
        return updated

    def abort_assistant_turn(
        self, message_id: int, reason: str | None = None
    ) -> ConversationMessage:
        """Close the open assistant turn with a fallback text.

        Args:
            message_id: The open streaming message.
            reason: Replacement text; defaults to ``fallback_message``.

        Raises:
            NotStreamingError: If message_id is not the open streaming message.
        """
        current = self._require_open(message_id)
        updated = self._close(current, reason or self.fallback_message, aborted=True)

        self._logger.warning(
            "assistant_turn_aborted",
            message_id=message_id,
            streamed_length=len(current.content),
        )
        self._emit(StreamEventType.ABORTED, updated)
        return updated

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _post(self, role: MessageRole, content: str) -> int:
        if self._open_id is not None:
            raise StreamBusyError(self._open_id)
        message = self._append(role, content)
        self._logger.debug("message_posted", message_id=message.id, role=role.value)
        self._emit(StreamEventType.MESSAGE_POSTED, message)
        return message.id

    def _append(self, role: MessageRole, content: str, streaming: bool = False) -> ConversationMessage:
        message = ConversationMessage(
            id=next(self._ids), role=role, content=content, streaming=streaming
        )
        self._positions[message.id] = len(self._messages)
        self._messages.append(message)
        return message

    def _store(self, message: ConversationMessage) -> None:
        self._messages[self._positions[message.id]] = message

    def _require_open(self, message_id: int) -> ConversationMessage:
        if self._open_id is None or message_id != self._open_id:
            raise NotStreamingError(message_id)
        return self.get(message_id)

    def _close(self, current: ConversationMessage, content: str, aborted: bool) -> ConversationMessage:
        updated = current.model_copy(
            update={
                "content": content,
                "streaming": False,
                "aborted": aborted,
                "finalized_at": datetime.now(timezone.utc),
            }
        )
        self._store(updated)
        self._open_id = None
        return updated
