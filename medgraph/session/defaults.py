"""Zero-state grounding context used before any extraction has run."""

from typing import Tuple

from medgraph.extraction.models import EntityType, ExtractionResult, RelationType, Triple

DEFAULT_FACTS: ExtractionResult = (
    Triple(
        subject="Age-related Macular Degeneration",
        subject_type=EntityType.DISEASE,
        predicate=RelationType.CAUSE,
        object="Central Vision Impairment",
        object_type=EntityType.PROGRESSION,
    ),
    Triple(
        subject="Smoking",
        subject_type=EntityType.RISK_FACTOR,
        predicate=RelationType.AGGRAVATE,
        object="AMD Progression",
        object_type=EntityType.PROGRESSION,
    ),
    Triple(
        subject="NCT01778491",
        subject_type=EntityType.TEST_DIAGNOSTIC,
        predicate=RelationType.DIAGNOSE,
        object="AMD Subtypes",
        object_type=EntityType.DISEASE,
    ),
)

SUGGESTED_QUERIES: Tuple[str, ...] = (
    "What are the primary causes of AMD?",
    "Does smoking affect vision loss?",
    "What trials exist for anti-VEGF?",
)
