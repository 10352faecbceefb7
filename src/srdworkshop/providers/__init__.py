"""External generation operations consumed by the workshop core."""

from srdworkshop.providers.base import (
    ContentGenerator,
    GenerationRequest,
    ReplyGenerator,
    TokenCallback,
)
from srdworkshop.providers.scripted import (
    DEFAULT_REPLIES,
    DEFAULT_SECTION_CONTENT,
    ScriptedContentGenerator,
    ScriptedReplyGenerator,
    split_fragments,
)

__all__ = [
    "ContentGenerator",
    "DEFAULT_REPLIES",
    "DEFAULT_SECTION_CONTENT",
    "GenerationRequest",
    "ReplyGenerator",
    "ScriptedContentGenerator",
    "ScriptedReplyGenerator",
    "TokenCallback",
    "split_fragments",
]
