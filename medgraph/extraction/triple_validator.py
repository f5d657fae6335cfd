"""Field-by-field validation of candidate triples returned by the LLM."""

from typing import Any, List, Optional, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel

from medgraph.extraction.models import EntityType, RelationType, Triple

REQUIRED_FIELDS = ("subject", "subject_type", "predicate", "object", "object_type")

_ENTITY_VALUES = {e.value for e in EntityType}
_RELATION_VALUES = {r.value for r in RelationType}


class ValidationResult(BaseModel):
    """Result of validating one candidate."""

    valid: bool
    triple: Optional[Triple] = None
    reason: Optional[str] = None


class TripleValidator:
    """Turns raw candidate objects into Triples, rejecting anything off-vocabulary.

    Repairs are limited to trimming whitespace and lower-casing the enum
    fields. No synonym mapping is attempted.
    """

    def validate_candidate(self, item: Any, *, default_source: Optional[str] = None) -> ValidationResult:
        if not isinstance(item, dict):
            return ValidationResult(valid=False, reason=f"not an object: {type(item).__name__}")

        values = {}
        for field in REQUIRED_FIELDS:
            raw = item.get(field)
            if not isinstance(raw, str) or not raw.strip():
                return ValidationResult(valid=False, reason=f"missing field '{field}'")
            values[field] = raw.strip()

        for field in ("subject_type", "object_type"):
            values[field] = values[field].lower()
            if values[field] not in _ENTITY_VALUES:
                return ValidationResult(
                    valid=False, reason=f"unknown {field} '{values[field]}'"
                )

        values["predicate"] = values["predicate"].lower()
        if values["predicate"] not in _RELATION_VALUES:
            return ValidationResult(valid=False, reason=f"unknown predicate '{values['predicate']}'")

        source = item.get("source")
        if isinstance(source, str) and source.strip():
            values["source"] = source.strip()
        elif default_source:
            values["source"] = default_source

        return ValidationResult(
            valid=True,
            triple=Triple(
                subject=values["subject"],
                subject_type=EntityType(values["subject_type"]),
                predicate=RelationType(values["predicate"]),
                object=values["object"],
                object_type=EntityType(values["object_type"]),
                source=values.get("source"),
            ),
        )

    def filter_candidates(
        self,
        candidates: Sequence[Any],
        *,
        default_source: Optional[str] = None,
    ) -> Tuple[List[Triple], List[Tuple[Any, str]]]:
        """Split candidates into accepted Triples and ``(candidate, reason)`` rejects.

        Accepted triples keep the order of ``candidates``.
        """
        accepted: List[Triple] = []
        rejected: List[Tuple[Any, str]] = []

        for item in candidates:
            result = self.validate_candidate(item, default_source=default_source)
            if result.valid and result.triple is not None:
                accepted.append(result.triple)
            else:
                rejected.append((item, result.reason or "Unknown validation failure"))

        if rejected:
            logger.debug(
                f"Dropped {len(rejected)}/{len(candidates)} candidate triples "
                f"(kept {len(accepted)})"
            )
            for item, reason in rejected:
                logger.debug(f"Rejected candidate triple: {reason}", candidate=item)

        return accepted, rejected
