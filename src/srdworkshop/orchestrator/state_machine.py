"""Generation task state machine.

This module defines the lifecycle of a single section generation task and
validates its transitions:

    created -> running -> {succeeded, failed, cancelled}

A task may also be cancelled before it starts running. Terminal states
accept no further transitions, which is what makes cancellation idempotent
and lets a late result be recognised as stale.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

import structlog
from pydantic import BaseModel, Field

from srdworkshop.document.models import SectionKind

logger = structlog.get_logger(__name__)


class TaskState(str, Enum):
    """Lifecycle states of a generation task."""

    CREATED = "created"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class InvalidTransitionError(Exception):
    """Raised when an invalid task state transition is attempted.

    Attributes:
        current: The current task state.
        target: The attempted target state.
        task_id: The ID of the task that failed to transition.
    """

    code = "invalid_transition"

    def __init__(self, current: TaskState, target: TaskState, task_id: str | None = None):
        self.current = current
        self.target = target
        self.task_id = task_id
        msg = f"Invalid transition from {current.value} to {target.value}"
        if task_id:
            msg += f" for task {task_id}"
        super().__init__(msg)


# Authoritative state machine definition
TASK_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    TaskState.CREATED: {TaskState.RUNNING, TaskState.CANCELLED},
    TaskState.RUNNING: {TaskState.SUCCEEDED, TaskState.FAILED, TaskState.CANCELLED},
    TaskState.SUCCEEDED: set(),
    TaskState.FAILED: set(),
    TaskState.CANCELLED: set(),
}

TERMINAL_STATES: frozenset[TaskState] = frozenset(
    state for state, targets in TASK_TRANSITIONS.items() if not targets
)


def validate_transition(current: TaskState, target: TaskState) -> bool:
    """Validate if a task state transition is allowed.

    Args:
        current: Current task state.
        target: Target task state.

    Returns:
        True if the transition is valid according to TASK_TRANSITIONS.
    """
    return target in TASK_TRANSITIONS.get(current, set())


class GenerationTask(BaseModel):
    """One asynchronous attempt to generate a section.

    Tasks are referenced by section kind only; the section itself holds no
    pointer back to its task.

    Attributes:
        id: Unique task identifier.
        section: Section the task generates.
        state: Current lifecycle state.
        cancelled: Whether the task was cancelled.
        created_at: When the task was admitted.
        started_at: When the external generation call was issued.
        finished_at: When the task reached a terminal state.
        prompt: Rendered prompt sent to the content generator.
        error: Failure description for failed tasks.
        snapshot_sequence: History sequence number committed on success.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    section: SectionKind
    state: TaskState = TaskState.CREATED
    cancelled: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    finished_at: datetime | None = None
    prompt: str = ""
    error: str | None = None
    snapshot_sequence: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def succeeded(self) -> bool:
        return self.state == TaskState.SUCCEEDED

    def transition(self, target: TaskState) -> None:
        """Move the task to a new state.

        Sets started_at on entering running, finished_at on entering any
        terminal state, and the cancelled flag on cancellation.

        Raises:
            InvalidTransitionError: If the transition is not valid.
        """
        current = self.state
        if not validate_transition(current, target):
            raise InvalidTransitionError(current, target, self.id)

        now = datetime.now(timezone.utc)
        self.state = target
        if target == TaskState.RUNNING:
            self.started_at = now
        if target in TERMINAL_STATES:
            self.finished_at = now
        if target == TaskState.CANCELLED:
            self.cancelled = True

        logger.debug(
            "generation_task_transition",
            task_id=self.id,
            section=self.section.title,
            from_state=current.value,
            to_state=target.value,
        )
