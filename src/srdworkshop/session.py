"""Workshop session: the requirement-document workflow facade.

A ``WorkshopSession`` exclusively owns one document (through its section
store), one conversation stream and one version history, and exposes the
command and query surface used by callers such as request handlers or
tests. There is no process-wide session; whoever composes the workshop owns
the instance.

Command surface:
    edit_section, apply_template, set_brief, generate_section,
    start_generation, cancel_generation, send_message, cancel_assistant_turn

Query surface:
    document, section, can_generate, messages, history, version_history,
    diff_stats, generation_tasks

Example:
    >>> session = WorkshopSession(ScriptedContentGenerator(), ScriptedReplyGenerator())
    >>> task = await session.generate_section("Core Features")
    >>> task.state
    <TaskState.SUCCEEDED: 'succeeded'>
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Callable

import structlog

from srdworkshop.config import WorkshopConfig
from srdworkshop.context.generator import PromptGenerator
from srdworkshop.conversation.stream import (
    ConversationMessage,
    ConversationStream,
    StreamObserver,
)
from srdworkshop.document.defaults import default_document
from srdworkshop.document.dependencies import DependencyGate, GateDecision
from srdworkshop.document.models import Document, Section, SectionKind
from srdworkshop.document.store import SectionStore
from srdworkshop.document.templates import TemplateCatalog
from srdworkshop.errors import GenerationInProgressError, NotStreamingError
from srdworkshop.history import DiffStats, Snapshot, SnapshotCause, VersionHistory
from srdworkshop.logging import bind_session_context, set_correlation_id
from srdworkshop.orchestrator.generation import GenerationOrchestrator
from srdworkshop.orchestrator.state_machine import GenerationTask
from srdworkshop.providers.base import ContentGenerator, ReplyGenerator

logger = structlog.get_logger(__name__)


class WorkshopSession:
    """Aggregate of section store, generation, conversation and history.

    Attributes:
        id: Session identifier, bound into every log line.
        config: Workshop configuration.
        reply_generator: External chat operation used by send_message.
        templates: Section template catalog for apply_template.
    """

    def __init__(
        self,
        content_generator: ContentGenerator,
        reply_generator: ReplyGenerator,
        document: Document | None = None,
        config: WorkshopConfig | None = None,
        gate: DependencyGate | None = None,
        prompts: PromptGenerator | None = None,
        templates: TemplateCatalog | None = None,
        session_id: str | None = None,
    ) -> None:
        """Create a session and commit the initial snapshot.

        Args:
            content_generator: External section generation operation.
            reply_generator: External chat reply operation.
            document: Initial document; defaults to the standard empty one.
            config: Workshop configuration; defaults are used when omitted.
            gate: Dependency gate; defaults to the standard rule table.
            prompts: Prompt renderer for section generation.
            templates: Section template catalog.
            session_id: Identifier for logging; generated when omitted.
        """
        self.id = session_id or str(uuid.uuid4())
        self.config = config or WorkshopConfig()
        self.reply_generator = reply_generator
        self.templates = templates or TemplateCatalog()

        self._logger = logger.bind(component="WorkshopSession", session_id=self.id)

        self._store = SectionStore(document if document is not None else default_document())
        self._history = VersionHistory()
        self._conversation = ConversationStream(
            greeting=self.config.conversation.greeting,
            fallback_message=self.config.conversation.fallback_message,
        )
        self._orchestrator = GenerationOrchestrator(
            store=self._store,
            history=self._history,
            generator=content_generator,
            gate=gate,
            prompts=prompts,
            config=self.config.generation,
            session_id=self.id,
        )
        self._turn_task: asyncio.Task[None] | None = None

        self._history.commit(self._store.document, SnapshotCause.INITIAL_STATE)
        self._logger.info(
            "workshop_session_created",
            sections=[kind.title for kind in self._store.document.kinds],
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def document(self) -> Document:
        return self._store.document

    def section(self, kind: SectionKind | str) -> Section:
        return self._store.get_section(kind)

    def can_generate(self, kind: SectionKind | str) -> GateDecision:
        """Evaluate the dependency gate for a section without side effects."""
        return self._orchestrator.gate.can_generate(self._store.document, kind)

    def messages(self) -> tuple[ConversationMessage, ...]:
        return self._conversation.messages()

    def history(self, limit: int | None = None, before: int | None = None) -> list[Snapshot]:
        """Page through snapshots, most recent first.

        Args:
            limit: Page size; defaults to ``history.default_page_size``.
            before: Cursor; only snapshots older than this sequence number.
        """
        if limit is None:
            limit = self.config.history.default_page_size
        return self._history.list(limit=limit, before=before)

    @property
    def version_history(self) -> VersionHistory:
        return self._history

    def diff_stats(self, a: int, b: int) -> DiffStats:
        """Line delta between two snapshots given by sequence number."""
        return self._history.diff_stats(self._history.get(a), self._history.get(b))

    def generation_tasks(self) -> list[GenerationTask]:
        return self._orchestrator.active_tasks()

    @property
    def orchestrator(self) -> GenerationOrchestrator:
        return self._orchestrator

    @property
    def conversation(self) -> ConversationStream:
        return self._conversation

    def subscribe(self, observer: StreamObserver) -> Callable[[], None]:
        """Register a conversation stream observer; returns an unsubscribe callable."""
        return self._conversation.subscribe(observer)

    # ------------------------------------------------------------------
    # Document commands
    # ------------------------------------------------------------------

    def edit_section(self, kind: SectionKind | str, content: str) -> Snapshot:
        """Manually replace a section's content and commit a snapshot.

        Raises:
            SectionNotFoundError: If the document has no such section.
            SectionLockedError: If the section is generating.
        """
        section = self._store.set_content(kind, content)
        sequence_number = self._history.commit(
            self._store.document, SnapshotCause.MANUAL_EDIT, section=section.kind
        )
        return self._history.get(sequence_number)

    def apply_template(self, kind: SectionKind | str, template_id: str) -> Snapshot:
        """Replace a section's content with a catalog template.

        Raises:
            TemplateNotFoundError: If the template id is unknown.
            SectionNotFoundError: If the document has no such section.
            SectionLockedError: If the section is generating.
        """
        template = self.templates.get(template_id)
        snapshot = self.edit_section(kind, template.content)
        self._logger.info("template_applied", template_id=template_id, section=snapshot.section.title)
        return snapshot

    def set_brief(self, brief: str) -> Snapshot | None:
        """Replace the document's brief and commit a snapshot.

        Returns:
            The new snapshot, or None if the brief did not change.

        Raises:
            GenerationInProgressError: If any section is generating.
        """
        brief = brief.strip()
        if brief == self._store.document.brief:
            return None

        generating = self._store.document.generating_kinds()
        if generating:
            raise GenerationInProgressError(generating[0])

        self._store.set_brief(brief)
        sequence_number = self._history.commit(self._store.document, SnapshotCause.BRIEF_UPDATED)
        return self._history.get(sequence_number)

    # ------------------------------------------------------------------
    # Generation commands
    # ------------------------------------------------------------------

    def start_generation(self, kind: SectionKind | str) -> GenerationTask:
        """Admit a generation task without waiting for it.

        Raises:
            Precondition errors from GenerationOrchestrator.request_generation.
        """
        return self._orchestrator.request_generation(kind)

    async def generate_section(self, kind: SectionKind | str) -> GenerationTask:
        """Generate a section and wait for the task to resolve.

        The success snapshot is committed by the orchestrator. External
        failures are reported on the returned task, not raised.

        Raises:
            Precondition errors from GenerationOrchestrator.request_generation.
        """
        return await self._orchestrator.generate(kind)

    def cancel_generation(self, kind: SectionKind | str) -> bool:
        """Cancel the live generation task for a section (idempotent)."""
        return self._orchestrator.cancel(kind)

    # ------------------------------------------------------------------
    # Conversation commands
    # ------------------------------------------------------------------

    async def send_message(self, content: str) -> ConversationMessage:
        """Post a user message and stream the assistant reply.

        The reply is produced by the reply generator, which pushes fragments
        into the open assistant message. The turn is finalized when the
        generator returns, or aborted with the fallback text if it fails,
        times out or yields nothing.

        Returns:
            The assistant message after the turn closed.

        Raises:
            ValueError: If the content is empty.
            StreamBusyError: If an assistant turn is already streaming.
        """
        self._conversation.post_user_message(content)
        message_id = self._conversation.begin_assistant_turn()
        conversation = [m for m in self._conversation.messages() if m.id != message_id]

        turn = asyncio.create_task(
            self._stream_reply(message_id, conversation),
            name=f"reply-{self.id}-{message_id}",
        )
        self._turn_task = turn
        turn.add_done_callback(self._clear_turn_task)

        try:
            await asyncio.wait({turn})
        except asyncio.CancelledError:
            self.cancel_assistant_turn()
            raise

        if not turn.cancelled() and turn.exception() is not None:
            error = turn.exception()
            self._abort(message_id, f"{type(error).__name__}: {error}")

        return self._conversation.get(message_id)

    def cancel_assistant_turn(self) -> bool:
        """Abort the open assistant turn and stop its reply task.

        Returns:
            True if a turn was open.
        """
        open_turn = self._conversation.open_turn
        if open_turn is None:
            return False

        self._conversation.abort_assistant_turn(
            open_turn.id, self.config.conversation.cancelled_message
        )
        if self._turn_task is not None and not self._turn_task.done():
            self._turn_task.cancel()

        self._logger.info("assistant_turn_cancelled", message_id=open_turn.id)
        return True

    async def close(self) -> None:
        """Cancel outstanding generation tasks and any open turn."""
        self.cancel_assistant_turn()
        if self._turn_task is not None:
            await asyncio.wait({self._turn_task})
        await self._orchestrator.shutdown()
        self._logger.info("workshop_session_closed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _clear_turn_task(self, task: asyncio.Task[None]) -> None:
        if self._turn_task is task:
            self._turn_task = None

    def _is_open(self, message_id: int) -> bool:
        open_turn = self._conversation.open_turn
        return open_turn is not None and open_turn.id == message_id

    async def _stream_reply(
        self, message_id: int, conversation: list[ConversationMessage]
    ) -> None:
        set_correlation_id(uuid.uuid4().hex)
        bind_session_context(self.id, message_id=message_id)

        def on_token(fragment: str) -> None:
            try:
                self._conversation.append_token(message_id, fragment)
            except NotStreamingError:
                self._logger.debug("late_token_dropped", message_id=message_id)

        try:
            final_content = await asyncio.wait_for(
                self.reply_generator.generate_reply(conversation, on_token),
                timeout=self.config.conversation.timeout_seconds,
            )
        except asyncio.CancelledError:
            if self._is_open(message_id):
                self._conversation.abort_assistant_turn(
                    message_id, self.config.conversation.cancelled_message
                )
            raise
        except asyncio.TimeoutError:
            self._abort(message_id, "timeout")
            return
        except Exception as e:
            self._abort(message_id, f"{type(e).__name__}: {e}")
            return

        if not self._is_open(message_id):
            self._logger.debug("reply_after_turn_closed", message_id=message_id)
            return

        if final_content is not None and not isinstance(final_content, str):
            self._abort(
                message_id, f"reply returned {type(final_content).__name__}, expected str"
            )
            return

        streamed = self._conversation.get(message_id).content
        content = streamed if final_content is None else final_content
        if not content.strip():
            self._abort(message_id, "empty reply")
            return

        self._conversation.finalize_assistant_turn(message_id, final_content)

    def _abort(self, message_id: int, error: str) -> None:
        self._logger.error("assistant_reply_failed", message_id=message_id, error=error)
        if self._is_open(message_id):
            self._conversation.abort_assistant_turn(message_id)
