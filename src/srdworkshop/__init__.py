"""SRD Workshop - Requirement-document generation workflow core.

This package provides the in-process state machine behind the requirement
document workshop: section lifecycle and dependency gating, single-flight
section generation, streamed assistant conversation turns, and an
append-only snapshot history of the document.
"""

__version__ = "0.1.0"
