"""Orchestrator subsystem for SRD Workshop.

This module implements the generation task state machine and the
single-flight-per-section generation orchestrator.
"""

from __future__ import annotations

from srdworkshop.orchestrator.generation import GenerationOrchestrator
from srdworkshop.orchestrator.state_machine import (
    TASK_TRANSITIONS,
    TERMINAL_STATES,
    GenerationTask,
    InvalidTransitionError,
    TaskState,
    validate_transition,
)

__all__ = [
    # Orchestrator
    "GenerationOrchestrator",
    # State machine
    "GenerationTask",
    "InvalidTransitionError",
    "TASK_TRANSITIONS",
    "TERMINAL_STATES",
    "TaskState",
    "validate_transition",
]
