"""Unit tests for the generation orchestrator.

Tests cover:
- Dependency gating before any external call
- Single-flight admission per section
- Concurrent generation of different sections
- Success snapshots and prerequisite context
- Failure, empty result and timeout handling
- Idempotent cancellation and stale result discarding
"""

from __future__ import annotations

import asyncio

import pytest

from srdworkshop.config import GenerationConfig
from srdworkshop.document.defaults import default_document
from srdworkshop.document.models import (
    Document,
    GenerationState,
    Section,
    SectionKind,
    SectionStatus,
)
from srdworkshop.document.store import SectionStore
from srdworkshop.errors import (
    DependencyUnmetError,
    GenerationInProgressError,
    NotGeneratableError,
    SectionNotFoundError,
)
from srdworkshop.history import SnapshotCause, VersionHistory
from srdworkshop.orchestrator.generation import GenerationOrchestrator
from srdworkshop.orchestrator.state_machine import TaskState


def _orchestrator(
    generator,
    timeout_seconds: float | None = 5.0,
    document: Document | None = None,
) -> GenerationOrchestrator:
    if document is None:
        document = default_document(project_name="PhotoShare", brief="photos")
    return GenerationOrchestrator(
        store=SectionStore(document),
        history=VersionHistory(),
        generator=generator,
        config=GenerationConfig(timeout_seconds=timeout_seconds),
    )


def _with_completed_features(content: str) -> Document:
    return default_document(brief="photos").replace_section(
        Section(
            kind=SectionKind.CORE_FEATURES,
            content=content,
            status=SectionStatus.COMPLETED,
        )
    )


@pytest.mark.asyncio
class TestAdmission:
    """Test preconditions checked before the external call."""

    async def test_dependency_unmet(self, content_generator) -> None:
        """Test that unmet prerequisites refuse the request and change nothing."""
        orchestrator = _orchestrator(content_generator)

        with pytest.raises(DependencyUnmetError) as exc_info:
            orchestrator.request_generation("Technical Architecture")

        assert exc_info.value.missing == [SectionKind.CORE_FEATURES]
        assert str(exc_info.value) == "Technical Architecture requires completed: Core Features"
        assert content_generator.call_count == 0
        assert len(orchestrator.history) == 0
        assert not orchestrator.store.get_section("Technical Architecture").is_generating

    async def test_not_generatable(self, content_generator) -> None:
        orchestrator = _orchestrator(content_generator)

        with pytest.raises(NotGeneratableError) as exc_info:
            orchestrator.request_generation(SectionKind.TESTING_STRATEGY)

        assert isinstance(exc_info.value, DependencyUnmetError)
        assert exc_info.value.code == "not_generatable"
        assert orchestrator.active_tasks() == []

    async def test_unknown_section(self, content_generator) -> None:
        orchestrator = _orchestrator(content_generator)
        with pytest.raises(SectionNotFoundError):
            orchestrator.request_generation("Pricing")

    async def test_second_request_rejected(self, content_generator) -> None:
        """Test that only one task per section is admitted."""
        orchestrator = _orchestrator(content_generator)

        first = orchestrator.request_generation(SectionKind.CORE_FEATURES)
        with pytest.raises(GenerationInProgressError) as exc_info:
            orchestrator.request_generation("core features")

        assert exc_info.value.section == SectionKind.CORE_FEATURES
        assert orchestrator.active_tasks() == [first]

        content_generator.release.set()
        await orchestrator.wait(first)

        assert first.state == TaskState.SUCCEEDED
        assert content_generator.call_count == 1

    async def test_concurrent_generate_calls(self, content_generator) -> None:
        """Test that of two concurrent generate calls exactly one proceeds."""
        orchestrator = _orchestrator(content_generator)

        first = asyncio.create_task(orchestrator.generate(SectionKind.CORE_FEATURES))
        second = asyncio.create_task(orchestrator.generate(SectionKind.CORE_FEATURES))
        await content_generator.started.wait()
        content_generator.release.set()

        results = await asyncio.gather(first, second, return_exceptions=True)

        errors = [r for r in results if isinstance(r, Exception)]
        tasks = [r for r in results if not isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], GenerationInProgressError)
        assert len(tasks) == 1
        assert tasks[0].state == TaskState.SUCCEEDED
        assert content_generator.call_count == 1

    async def test_admitted_task_owns_section(self, content_generator) -> None:
        orchestrator = _orchestrator(content_generator)
        task = orchestrator.request_generation(SectionKind.USER_EXPERIENCE)
        assert task.state == TaskState.CREATED
        assert orchestrator.store.get_section(SectionKind.USER_EXPERIENCE).is_generating
        assert orchestrator.is_generating("User Experience")
        assert orchestrator.get_task(SectionKind.USER_EXPERIENCE) is task
        await orchestrator.shutdown()


def test_request_outside_event_loop(content_generator) -> None:
    """Test that admission without a running loop fails and changes nothing."""
    orchestrator = _orchestrator(content_generator)
    with pytest.raises(RuntimeError):
        orchestrator.request_generation(SectionKind.CORE_FEATURES)
    assert not orchestrator.store.get_section(SectionKind.CORE_FEATURES).is_generating


@pytest.mark.asyncio
class TestSuccess:
    """Test successful generation."""

    async def test_success_completes_section_and_snapshots(self, instant_generator) -> None:
        orchestrator = _orchestrator(instant_generator)

        task = await orchestrator.generate(SectionKind.CORE_FEATURES)

        section = orchestrator.store.get_section(SectionKind.CORE_FEATURES)
        assert task.succeeded
        assert task.snapshot_sequence == 1
        assert section.status == SectionStatus.COMPLETED
        assert section.generation_state == GenerationState.IDLE
        assert section.content == instant_generator.responses[SectionKind.CORE_FEATURES]

        snapshot = orchestrator.history.latest()
        assert snapshot.cause == SnapshotCause.GENERATION_COMPLETED
        assert snapshot.section == SectionKind.CORE_FEATURES
        assert orchestrator.active_tasks() == []

    async def test_request_carries_brief_and_prompt(self, instant_generator) -> None:
        orchestrator = _orchestrator(instant_generator)
        task = await orchestrator.generate(SectionKind.USER_EXPERIENCE)

        (request,) = instant_generator.requests
        assert request.section == SectionKind.USER_EXPERIENCE
        assert request.brief == "photos"
        assert request.context == {}
        assert request.prompt == task.prompt
        assert "User requirement: photos" in request.prompt

    async def test_architecture_receives_features_context(self, instant_generator) -> None:
        """Test that completed prerequisites seed the generation request."""
        orchestrator = _orchestrator(
            instant_generator, document=_with_completed_features("- Login\n- Feed")
        )

        task = await orchestrator.generate(SectionKind.TECHNICAL_ARCHITECTURE)

        (request,) = instant_generator.requests
        assert task.succeeded
        assert request.context == {"Core Features": "- Login\n- Feed"}
        assert "- Feed" in request.prompt

    async def test_different_sections_run_concurrently(self, content_generator) -> None:
        """Test that there is no global generation lock."""
        orchestrator = _orchestrator(content_generator)

        features = orchestrator.request_generation(SectionKind.CORE_FEATURES)
        experience = orchestrator.request_generation(SectionKind.USER_EXPERIENCE)
        await asyncio.sleep(0)

        assert {t.section for t in orchestrator.active_tasks()} == {
            SectionKind.CORE_FEATURES,
            SectionKind.USER_EXPERIENCE,
        }
        assert features.state == TaskState.RUNNING
        assert experience.state == TaskState.RUNNING

        content_generator.release.set()
        await orchestrator.wait(features)
        await orchestrator.wait(experience)

        assert sorted(s.sequence_number for s in orchestrator.history.list()) == [1, 2]
        assert {features.snapshot_sequence, experience.snapshot_sequence} == {1, 2}


@pytest.mark.asyncio
class TestFailure:
    """Test external failures."""

    async def test_generator_error(self, make_content_generator) -> None:
        """Test that a failed generation leaves the section untouched."""
        generator = make_content_generator(error=RuntimeError("model offline"), gated=False)
        orchestrator = _orchestrator(generator)
        before = orchestrator.store.get_section(SectionKind.CORE_FEATURES)

        task = await orchestrator.generate(SectionKind.CORE_FEATURES)

        after = orchestrator.store.get_section(SectionKind.CORE_FEATURES)
        assert task.state == TaskState.FAILED
        assert task.error == "RuntimeError: model offline"
        assert after == before
        assert len(orchestrator.history) == 0
        assert orchestrator.active_tasks() == []

    async def test_empty_result_is_failure(self, make_content_generator) -> None:
        generator = make_content_generator(
            responses={SectionKind.CORE_FEATURES: "   \n"}, gated=False
        )
        orchestrator = _orchestrator(generator)

        task = await orchestrator.generate(SectionKind.CORE_FEATURES)

        assert task.state == TaskState.FAILED
        assert task.error == "empty result"
        assert orchestrator.store.get_section(SectionKind.CORE_FEATURES).status == SectionStatus.DRAFT
        assert len(orchestrator.history) == 0

    async def test_timeout(self, content_generator) -> None:
        """Test that a generator that never answers is failed after the timeout."""
        orchestrator = _orchestrator(content_generator, timeout_seconds=0.05)

        task = await orchestrator.generate(SectionKind.CORE_FEATURES)

        assert task.state == TaskState.FAILED
        assert task.error == "timeout"
        assert not orchestrator.store.get_section(SectionKind.CORE_FEATURES).is_generating
        assert len(orchestrator.history) == 0

    async def test_retry_after_failure(self, make_content_generator) -> None:
        generator = make_content_generator(error=RuntimeError("flaky"), gated=False)
        orchestrator = _orchestrator(generator)

        failed = await orchestrator.generate(SectionKind.CORE_FEATURES)
        generator.error = None
        retried = await orchestrator.generate(SectionKind.CORE_FEATURES)

        assert failed.state == TaskState.FAILED
        assert retried.succeeded
        assert len(orchestrator.history) == 1


@pytest.mark.asyncio
class TestCancellation:
    """Test cancel and stale result handling."""

    async def test_cancel_running_task(self, content_generator) -> None:
        orchestrator = _orchestrator(content_generator)
        task = orchestrator.request_generation(SectionKind.CORE_FEATURES)
        await content_generator.started.wait()

        assert orchestrator.cancel(SectionKind.CORE_FEATURES) is True
        await orchestrator.wait(task)

        section = orchestrator.store.get_section(SectionKind.CORE_FEATURES)
        assert task.state == TaskState.CANCELLED
        assert task.cancelled
        assert section.generation_state == GenerationState.IDLE
        assert section.content == ""
        assert len(orchestrator.history) == 0

    async def test_cancel_before_start(self, content_generator) -> None:
        """Test cancelling a task whose runner has not started yet."""
        orchestrator = _orchestrator(content_generator)
        task = orchestrator.request_generation(SectionKind.CORE_FEATURES)

        assert orchestrator.cancel(SectionKind.CORE_FEATURES) is True
        await orchestrator.wait(task)

        assert task.state == TaskState.CANCELLED
        assert task.started_at is None
        assert content_generator.call_count == 0

    async def test_cancel_is_idempotent(self, content_generator) -> None:
        orchestrator = _orchestrator(content_generator)
        orchestrator.request_generation(SectionKind.CORE_FEATURES)

        assert orchestrator.cancel(SectionKind.CORE_FEATURES) is True
        assert orchestrator.cancel(SectionKind.CORE_FEATURES) is False
        assert orchestrator.cancel(SectionKind.USER_EXPERIENCE) is False
        await orchestrator.shutdown()

    async def test_stale_result_discarded(self, content_generator) -> None:
        """Test that a result delivered after cancellation never mutates the store."""
        orchestrator = _orchestrator(content_generator)
        task = orchestrator.request_generation(SectionKind.CORE_FEATURES)
        await content_generator.started.wait()
        orchestrator.cancel(SectionKind.CORE_FEATURES)
        await orchestrator.wait(task)
        before = orchestrator.store.get_section(SectionKind.CORE_FEATURES)
        assert not before.is_generating

        applied = orchestrator.apply_result(task, "late content")

        assert applied is False
        assert orchestrator.store.get_section(SectionKind.CORE_FEATURES) == before
        assert task.state == TaskState.CANCELLED
        assert len(orchestrator.history) == 0

    async def test_stale_result_does_not_hit_newer_task(self, content_generator) -> None:
        """Test that an old task's result is ignored while a new task owns the section."""
        orchestrator = _orchestrator(content_generator)
        old = orchestrator.request_generation(SectionKind.CORE_FEATURES)
        orchestrator.cancel(SectionKind.CORE_FEATURES)
        new = orchestrator.request_generation(SectionKind.CORE_FEATURES)
        await content_generator.started.wait()

        assert orchestrator.apply_result(old, "stale") is False
        assert orchestrator.store.get_section(SectionKind.CORE_FEATURES).is_generating

        content_generator.release.set()
        await orchestrator.wait(new)

        section = orchestrator.store.get_section(SectionKind.CORE_FEATURES)
        assert new.succeeded
        assert section.content == content_generator.responses[SectionKind.CORE_FEATURES]
        assert len(orchestrator.history) == 1

    async def test_result_applied_once(self, instant_generator) -> None:
        orchestrator = _orchestrator(instant_generator)
        task = await orchestrator.generate(SectionKind.CORE_FEATURES)

        assert orchestrator.apply_result(task, "again") is False
        assert len(orchestrator.history) == 1

    async def test_cancel_all_and_shutdown(self, content_generator) -> None:
        orchestrator = _orchestrator(content_generator)
        first = orchestrator.request_generation(SectionKind.CORE_FEATURES)
        second = orchestrator.request_generation(SectionKind.USER_EXPERIENCE)

        await orchestrator.shutdown()

        assert first.state == TaskState.CANCELLED
        assert second.state == TaskState.CANCELLED
        assert orchestrator.store.document.generating_kinds() == []
        assert orchestrator.cancel_all() == 0
