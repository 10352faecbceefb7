"""Generation orchestrator for document sections.

This module admits, runs and resolves section generation tasks:

1. Consult the dependency gate; refuse with ``DependencyUnmetError``.
2. Claim the section in the store; refuse with ``GenerationInProgressError``
   if another task already owns it.
3. Render the section prompt and call the external content generator as a
   background asyncio task, bounded by the configured timeout.
4. On success apply the content and commit a ``generation_completed``
   snapshot; on failure, timeout or cancellation release the section
   without touching content, status or history.

Admission (steps 1-2) is synchronous, so two requests for the same section
can never both be admitted. Different sections run concurrently; there is
no global generation lock. Results are only applied if the task is still
the section's live task, so a result that arrives after cancellation is
discarded.
"""

from __future__ import annotations

import asyncio

import structlog

from srdworkshop.config import GenerationConfig
from srdworkshop.context.generator import PromptGenerator
from srdworkshop.document.dependencies import DependencyGate, GateVerdict
from srdworkshop.document.models import SectionKind
from srdworkshop.document.store import SectionStore
from srdworkshop.errors import (
    AlreadyGeneratingError,
    DependencyUnmetError,
    GenerationInProgressError,
    NotGeneratableError,
)
from srdworkshop.history import SnapshotCause, VersionHistory
from srdworkshop.logging import bind_session_context, set_correlation_id
from srdworkshop.orchestrator.state_machine import GenerationTask, TaskState
from srdworkshop.providers.base import ContentGenerator, GenerationRequest

logger = structlog.get_logger(__name__)


class GenerationOrchestrator:
    """Single-flight-per-section generation manager.

    Attributes:
        store: Section store the orchestrator mutates.
        history: Version history that receives success snapshots.
        generator: External content generator.
        gate: Dependency gate consulted on every request.
        prompts: Prompt renderer for section requests.
        config: Generation settings (timeout).
        session_id: Owning session id, bound into runner log context.
    """

    def __init__(
        self,
        store: SectionStore,
        history: VersionHistory,
        generator: ContentGenerator,
        gate: DependencyGate | None = None,
        prompts: PromptGenerator | None = None,
        config: GenerationConfig | None = None,
        session_id: str | None = None,
    ) -> None:
        self.store = store
        self.history = history
        self.generator = generator
        self.gate = gate or DependencyGate()
        self.prompts = prompts or PromptGenerator()
        self.config = config or GenerationConfig()
        self.session_id = session_id

        self._active: dict[SectionKind, GenerationTask] = {}
        self._runners: dict[str, asyncio.Task[None]] = {}
        self._logger = logger.bind(component="GenerationOrchestrator", session_id=session_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def active_tasks(self) -> list[GenerationTask]:
        """Tasks that currently own a section, in admission order."""
        return list(self._active.values())

    def is_generating(self, kind: SectionKind | str) -> bool:
        return SectionKind.parse(kind) in self._active

    def get_task(self, kind: SectionKind | str) -> GenerationTask | None:
        """The live task for a section, if any."""
        return self._active.get(SectionKind.parse(kind))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def request_generation(self, kind: SectionKind | str) -> GenerationTask:
        """Admit a generation task for a section and start it.

        Must be called from a running event loop. Nothing changes unless
        the task is admitted.

        Args:
            kind: Section to generate.

        Returns:
            The admitted task, already scheduled.

        Raises:
            SectionNotFoundError: If the document has no such section.
            NotGeneratableError: If the section does not support generation.
            DependencyUnmetError: If prerequisites are not completed.
            GenerationInProgressError: If the section is already generating.
        """
        asyncio.get_running_loop()
        kind = SectionKind.parse(kind)
        document = self.store.document

        decision = self.gate.can_generate(document, kind)
        if decision.verdict == GateVerdict.NOT_GENERATABLE:
            self._logger.info("generation_refused", section=kind.title, reason=decision.reason)
            raise NotGeneratableError(kind)
        if not decision.allowed:
            self._logger.info(
                "generation_refused",
                section=kind.title,
                reason=decision.reason,
                missing=[m.title for m in decision.missing],
            )
            raise DependencyUnmetError(kind, decision.missing, decision.reason)

        context = self.gate.completed_context(document, kind)
        prompt = self.prompts.section_prompt(kind, document, context)

        try:
            self.store.mark_generating(kind)
        except AlreadyGeneratingError as e:
            self._logger.info("generation_refused", section=kind.title, reason="in progress")
            raise GenerationInProgressError(kind) from e

        task = GenerationTask(section=kind, prompt=prompt)
        request = GenerationRequest(
            section=kind,
            brief=document.brief,
            context=context,
            prompt=prompt,
        )
        self._active[kind] = task

        runner = asyncio.create_task(
            self._run(task, request),
            name=f"generate-{kind.value}-{task.id}",
        )
        self._runners[task.id] = runner
        runner.add_done_callback(lambda _: self._runners.pop(task.id, None))

        self._logger.info(
            "generation_admitted",
            task_id=task.id,
            section=kind.title,
            prerequisites=list(context),
        )
        return task

    async def wait(self, task: GenerationTask) -> GenerationTask:
        """Wait until a task's background work has finished.

        Returns:
            The same task, now in a terminal state.
        """
        runner = self._runners.get(task.id)
        if runner is not None:
            await asyncio.wait({runner})
        return task

    async def generate(self, kind: SectionKind | str) -> GenerationTask:
        """Admit a generation task and wait for it to resolve.

        External failures do not raise; inspect the returned task's state
        and error.

        Raises:
            Same precondition errors as ``request_generation``.
        """
        task = self.request_generation(kind)
        return await self.wait(task)

    def cancel(self, kind: SectionKind | str) -> bool:
        """Cancel the live task for a section.

        Idempotent: cancelling a section with no live task is a no-op.

        Returns:
            True if a live task was cancelled.
        """
        kind = SectionKind.parse(kind)
        task = self._active.get(kind)
        if task is None:
            self._logger.debug("generation_cancel_noop", section=kind.title)
            return False

        self._resolve_cancelled(task)

        runner = self._runners.get(task.id)
        if runner is not None and not runner.done():
            runner.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every live task.

        Returns:
            Number of tasks cancelled.
        """
        return sum(1 for kind in list(self._active) if self.cancel(kind))

    async def shutdown(self) -> None:
        """Cancel all live tasks and wait for their runners to exit."""
        self.cancel_all()
        runners = list(self._runners.values())
        if runners:
            await asyncio.wait(runners)

    def apply_result(self, task: GenerationTask, content: str) -> bool:
        """Apply generated content if the task is still live.

        This is the only path by which generated content reaches the
        document. A task that was cancelled, already resolved, or replaced
        by a newer task for the same section is stale and its result is
        discarded.

        Returns:
            True if the content was applied and a snapshot committed.
        """
        if not self._is_live(task):
            self._logger.warning(
                "stale_result_discarded",
                task_id=task.id,
                section=task.section.title,
                task_state=task.state.value,
            )
            return False

        self.store.apply_generation_result(task.section, content)
        task.snapshot_sequence = self.history.commit(
            self.store.document,
            SnapshotCause.GENERATION_COMPLETED,
            section=task.section,
        )
        task.transition(TaskState.SUCCEEDED)
        del self._active[task.section]

        self._logger.info(
            "generation_succeeded",
            task_id=task.id,
            section=task.section.title,
            snapshot_sequence=task.snapshot_sequence,
        )
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_live(self, task: GenerationTask) -> bool:
        return self._active.get(task.section) is task and task.state == TaskState.RUNNING

    async def _run(self, task: GenerationTask, request: GenerationRequest) -> None:
        if task.is_terminal:
            return
        set_correlation_id(task.id)
        if self.session_id is not None:
            bind_session_context(self.session_id, task_id=task.id)
        task.transition(TaskState.RUNNING)

        try:
            content = await asyncio.wait_for(
                self.generator.generate_content(request),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.CancelledError:
            if self._active.get(task.section) is task:
                self._resolve_cancelled(task)
            raise
        except asyncio.TimeoutError:
            self._fail(task, "timeout")
            return
        except Exception as e:
            self._fail(task, f"{type(e).__name__}: {e}")
            return

        if not isinstance(content, str) or not content.strip():
            self._fail(task, "empty result")
            return

        self.apply_result(task, content)

    def _resolve_cancelled(self, task: GenerationTask) -> None:
        del self._active[task.section]
        task.transition(TaskState.CANCELLED)
        self.store.clear_generating(task.section)
        self._logger.info("generation_cancelled", task_id=task.id, section=task.section.title)

    def _fail(self, task: GenerationTask, error: str) -> None:
        if not self._is_live(task):
            self._logger.warning(
                "stale_failure_discarded",
                task_id=task.id,
                section=task.section.title,
                error=error,
            )
            return

        task.error = error
        task.transition(TaskState.FAILED)
        del self._active[task.section]
        self.store.clear_generating(task.section)

        self._logger.error(
            "generation_failed",
            task_id=task.id,
            section=task.section.title,
            error=error,
        )
