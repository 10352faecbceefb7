"""Conversation channel: ordered message log with streamed assistant turns."""

from srdworkshop.conversation.stream import (
    ConversationMessage,
    ConversationStream,
    MessageRole,
    StreamEvent,
    StreamEventType,
    StreamObserver,
)

__all__ = [
    "ConversationMessage",
    "ConversationStream",
    "MessageRole",
    "StreamEvent",
    "StreamEventType",
    "StreamObserver",
]
