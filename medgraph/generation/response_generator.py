"""Verified answer generation from a synthesized narrative.

This is the second generation prompt. The oracle plays a constrained
medical-expert persona and sees only the question and the narrative, never
the raw triples. After generation the answer is checked for clinical-trial
identifiers that do not occur in the narrative; such answers are flagged as
a hallucination risk but returned unchanged.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from medgraph.exceptions import InvalidInput, OracleUnavailable
from medgraph.formatting.trial_formatter import find_trial_identifiers
from medgraph.utils.config import DEFAULT_PROMPTS_PATH, ResponseConfig
from medgraph.utils.oracle import LLMOracle, Oracle, OracleRequest
from medgraph.utils.prompts import PromptLibrary


class VerifiedAnswer(BaseModel):
    """Answer text plus the outcome of the post-generation checks."""

    text: str = Field(..., min_length=1, description="Answer for display")
    insufficient_information: bool = Field(
        default=False, description="The answer is the insufficient-information statement"
    )
    hallucination_risk: bool = Field(
        default=False, description="The answer cites trial identifiers absent from the narrative"
    )
    unverified_identifiers: List[str] = Field(
        default_factory=list, description="Trial identifiers not found in the narrative"
    )


class VerifiedResponder:
    """Generates answers restricted to a narrative context."""

    def __init__(
        self,
        config: Optional[ResponseConfig] = None,
        prompts_path: str | Path = DEFAULT_PROMPTS_PATH,
        *,
        oracle: Optional[Oracle] = None,
    ) -> None:
        self.config = config or ResponseConfig()
        self.prompts = PromptLibrary(prompts_path)
        self.oracle = oracle or LLMOracle(self.config.llm)

        logger.info(
            "Initialized VerifiedResponder",
            provider=self.config.llm.provider,
            model=self.config.llm.model,
        )

    def respond(self, query: str, narrative: str) -> str:
        """Return the answer text for ``query`` grounded in ``narrative``."""
        return self.generate(query, narrative).text

    def generate(self, query: str, narrative: str) -> VerifiedAnswer:
        """Generate an answer and run the post-generation checks.

        Raises:
            InvalidInput: ``query`` or ``narrative`` is blank.
            OracleUnavailable: The oracle failed or returned nothing.
        """
        if not query or not query.strip():
            raise InvalidInput("Query must not be empty")
        if not narrative or not narrative.strip():
            raise InvalidInput("Narrative must not be empty")

        message = self.config.insufficient_information_message
        system, user = self.prompts.render(
            self.config.prompt_key,
            {
                "query": query.strip(),
                "narrative": narrative.strip(),
                "insufficient_information_message": message,
            },
        )
        answer = self.oracle.invoke(OracleRequest(system=system, user=user)).strip()
        if not answer:
            raise OracleUnavailable("Oracle returned an empty answer")

        unverified = self._unverified_identifiers(answer, narrative)
        if unverified:
            logger.warning(
                "Answer cites trial identifiers missing from the narrative",
                identifiers=unverified,
            )

        return VerifiedAnswer(
            text=answer,
            insufficient_information=message.lower() in answer.lower(),
            hallucination_risk=bool(unverified),
            unverified_identifiers=unverified,
        )

    def _unverified_identifiers(self, answer: str, narrative: str) -> List[str]:
        known = set(find_trial_identifiers(narrative))
        unverified: List[str] = []
        for identifier in find_trial_identifiers(answer):
            if identifier not in known and identifier not in unverified:
                unverified.append(identifier)
        return unverified
