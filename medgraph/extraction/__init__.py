"""Extraction package exports."""

from medgraph.extraction.llm_extractor import TripleExtractor
from medgraph.extraction.models import EntityType, ExtractionResult, RelationType, Triple
from medgraph.extraction.triple_validator import TripleValidator, ValidationResult

__all__ = [
    "EntityType",
    "RelationType",
    "Triple",
    "ExtractionResult",
    "TripleExtractor",
    "TripleValidator",
    "ValidationResult",
]
