"""Session package exports."""

from medgraph.session.defaults import DEFAULT_FACTS, SUGGESTED_QUERIES
from medgraph.session.orchestrator import (
    AssistantState,
    ChatTurn,
    ExtractionState,
    Role,
    SessionOrchestrator,
    SubmissionStatus,
)

__all__ = [
    "DEFAULT_FACTS",
    "SUGGESTED_QUERIES",
    "AssistantState",
    "ChatTurn",
    "ExtractionState",
    "Role",
    "SessionOrchestrator",
    "SubmissionStatus",
]
