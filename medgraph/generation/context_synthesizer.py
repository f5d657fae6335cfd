"""Narrative synthesis from verified triples.

The synthesizer is the first of the two generation prompts: it turns a fact
set into a short paragraph that later serves as the *only* context the
responder sees. The fact set is rendered line by line into the prompt; when
it is empty the prompt says so explicitly instead of listing anything.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from medgraph.exceptions import InvalidInput, OracleUnavailable
from medgraph.extraction.models import Triple
from medgraph.utils.config import DEFAULT_PROMPTS_PATH, SynthesisConfig
from medgraph.utils.oracle import LLMOracle, Oracle, OracleRequest
from medgraph.utils.prompts import PromptLibrary

NO_FACTS_AVAILABLE = (
    "No verified facts are available for this question. "
    "State that no relevant verified facts were found; do not add any facts."
)


class ContextSynthesizer:
    """Synthesizes a query-focused narrative using only the given facts."""

    def __init__(
        self,
        config: Optional[SynthesisConfig] = None,
        prompts_path: str | Path = DEFAULT_PROMPTS_PATH,
        *,
        oracle: Optional[Oracle] = None,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            config: Synthesis configuration
            prompts_path: Path to the prompt templates YAML
            oracle: Oracle to call; built from ``config.llm`` when omitted
        """
        self.config = config or SynthesisConfig()
        self.prompts = PromptLibrary(prompts_path)
        self.oracle = oracle or LLMOracle(self.config.llm)

        logger.info(
            "Initialized ContextSynthesizer",
            provider=self.config.llm.provider,
            model=self.config.llm.model,
        )

    def synthesize(self, query: str, facts: Sequence[Triple]) -> str:
        """Produce a narrative for ``query`` grounded in ``facts``.

        Args:
            query: User question
            facts: Triples to ground on, possibly empty

        Returns:
            Non-empty narrative paragraph

        Raises:
            InvalidInput: ``query`` is blank.
            OracleUnavailable: The oracle failed or returned nothing.
        """
        if not query or not query.strip():
            raise InvalidInput("Query must not be empty")

        system, user = self.prompts.render(
            self.config.prompt_key,
            {
                "query": query.strip(),
                "facts": self.format_facts(facts),
                "fact_count": len(facts),
            },
        )
        narrative = self.oracle.invoke(OracleRequest(system=system, user=user)).strip()
        if not narrative:
            raise OracleUnavailable("Oracle returned an empty narrative")

        logger.debug(f"Synthesized narrative from {len(facts)} facts ({len(narrative)} chars)")
        return narrative

    def format_facts(self, facts: Sequence[Triple]) -> str:
        """Format facts for inclusion in the prompt."""
        if not facts:
            return NO_FACTS_AVAILABLE
        return "\n".join(f"- {fact.render()}" for fact in facts)
