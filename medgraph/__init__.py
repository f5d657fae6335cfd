"""Knowledge-graph grounded medical question answering."""

from medgraph.exceptions import (
    GroundingError,
    InvalidInput,
    MalformedExtractionOutput,
    OracleUnavailable,
)
from medgraph.extraction import EntityType, RelationType, Triple, TripleExtractor
from medgraph.formatting import TrialFormatter, format_trial_identifiers
from medgraph.generation import ContextSynthesizer, VerifiedResponder
from medgraph.session import ChatTurn, SessionOrchestrator, SubmissionStatus

__version__ = "0.1.0"

__all__ = [
    "GroundingError",
    "InvalidInput",
    "MalformedExtractionOutput",
    "OracleUnavailable",
    "EntityType",
    "RelationType",
    "Triple",
    "TripleExtractor",
    "TrialFormatter",
    "format_trial_identifiers",
    "ContextSynthesizer",
    "VerifiedResponder",
    "ChatTurn",
    "SessionOrchestrator",
    "SubmissionStatus",
]
