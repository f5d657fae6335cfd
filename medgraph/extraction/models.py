"""Closed medical vocabulary and the Triple value object."""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntityType(str, Enum):
    """Entity types allowed at either end of a Triple."""

    DISEASE = "disease"
    SYMPTOM = "symptom"
    TREATMENT = "treatment"
    RISK_FACTOR = "risk_factor"
    TEST_DIAGNOSTIC = "test/diagnostic"
    GENE = "gene"
    BIOMARKER = "biomarker"
    COMPLICATION = "complication"
    PROGNOSIS = "prognosis"
    COMORBIDITY = "comorbidity"
    PROGRESSION = "progression"
    BODY_PART = "body_part"


class RelationType(str, Enum):
    """Causal/medical relation types allowed as a Triple predicate."""

    CAUSE = "cause"
    TREAT = "treat"
    PRESENT = "present"
    DIAGNOSE = "diagnose"
    AGGRAVATE = "aggravate"
    PREVENT = "prevent"
    IMPROVE = "improve"
    AFFECT = "affect"


class Triple(BaseModel):
    """Subject-predicate-object fact with typed endpoints."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject: str = Field(..., min_length=1, description="Subject entity surface form")
    subject_type: EntityType = Field(..., description="Subject entity type")
    predicate: RelationType = Field(..., description="Relation between subject and object")
    object: str = Field(..., min_length=1, description="Object entity surface form")
    object_type: EntityType = Field(..., description="Object entity type")
    source: Optional[str] = Field(default=None, description="Where the fact came from")

    @field_validator("subject", "object")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject whitespace-only entity names."""
        v = v.strip()
        if not v:
            raise ValueError("Entity name must not be blank")
        return v

    def render(self) -> str:
        """Render the fact as a single prompt line."""
        line = (
            f"{self.subject} [{self.subject_type.value}] --{self.predicate.value}--> "
            f"{self.object} [{self.object_type.value}]"
        )
        if self.source:
            line += f" (source: {self.source})"
        return line


# Ordered, possibly empty; produced fresh per extraction call.
ExtractionResult = Tuple[Triple, ...]
