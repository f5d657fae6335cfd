"""LLM-powered triple extraction.

Source text is sent to the oracle together with the closed medical
vocabulary; the response is parsed as JSON and every candidate object is
validated against the Triple invariant. Invalid candidates are dropped, an
unparseable response fails the whole call.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, List, Optional

from loguru import logger

from medgraph.exceptions import InvalidInput, MalformedExtractionOutput
from medgraph.extraction.models import EntityType, ExtractionResult, RelationType
from medgraph.extraction.triple_validator import TripleValidator
from medgraph.utils.config import DEFAULT_PROMPTS_PATH, ExtractionConfig
from medgraph.utils.oracle import LLMOracle, Oracle, OracleRequest
from medgraph.utils.prompts import PromptLibrary

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", flags=re.DOTALL)


class TripleExtractor:
    """Extracts vocabulary-constrained triples from raw text via the oracle."""

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        prompts_path: str | Path = DEFAULT_PROMPTS_PATH,
        *,
        oracle: Optional[Oracle] = None,
        validator: Optional[TripleValidator] = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.prompts = PromptLibrary(prompts_path)
        self.oracle = oracle or LLMOracle(self.config.llm)
        self.validator = validator or TripleValidator()

        logger.info(
            "Initialized TripleExtractor",
            provider=self.config.llm.provider,
            model=self.config.llm.model,
            prompts=str(self.prompts.prompts_path),
        )

    # -----------------------
    # Public API
    # -----------------------
    def extract(self, source_text: str, *, source: Optional[str] = None) -> ExtractionResult:
        """Extract triples from ``source_text``.

        Args:
            source_text: Free text such as a paper abstract.
            source: Label stamped on triples that do not name their own source.

        Returns:
            Accepted triples in the order the oracle listed them.

        Raises:
            InvalidInput: ``source_text`` is blank.
            OracleUnavailable: The oracle could not be reached.
            MalformedExtractionOutput: The response is not structured data.
        """
        if not source_text or not source_text.strip():
            raise InvalidInput("Source text must not be empty")

        system, user = self.prompts.render(
            self.config.prompt_key,
            {
                "entity_types": self._format_vocabulary(EntityType),
                "relation_types": self._format_vocabulary(RelationType),
                "source_text": source_text.strip(),
            },
        )
        raw_response = self.oracle.invoke(OracleRequest(system=system, user=user, json_output=True))

        candidates = self._parse_candidates(raw_response)
        triples, rejected = self.validator.filter_candidates(candidates, default_source=source)

        logger.info(
            "Extracted triples",
            accepted=len(triples),
            rejected=len(rejected),
        )
        return tuple(triples)

    # -----------------------
    # Parsing helpers
    # -----------------------
    def _format_vocabulary(self, vocabulary: Any) -> str:
        return ", ".join(member.value for member in vocabulary)

    def _parse_candidates(self, response_text: str) -> List[Any]:
        data = self._extract_json(response_text)
        if data is None:
            logger.warning("Failed to parse LLM extraction response as JSON")
            raise MalformedExtractionOutput("Extraction response is not valid JSON")

        if isinstance(data, dict) and "triples" in data:
            raw_triples = data.get("triples")
        elif isinstance(data, list):
            raw_triples = data
        else:
            raw_triples = None

        if not isinstance(raw_triples, list):
            logger.warning("Unexpected extraction response structure")
            raise MalformedExtractionOutput(
                "Extraction response must be a list of triples or an object with a 'triples' list"
            )
        return raw_triples

    def _extract_json(self, text: str) -> Any:
        if not text:
            return None

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass
        except RecursionError:
            return None

        # Models sometimes wrap JSON in prose or Markdown fences.
        for fenced in _FENCE_PATTERN.finditer(text):
            try:
                return json.loads(fenced.group(1))
            except json.JSONDecodeError:
                continue
            except RecursionError:
                return None

        decoder = json.JSONDecoder()
        for opening in re.finditer(r"[\[{]", text):
            try:
                data, _ = decoder.raw_decode(text, opening.start())
            except json.JSONDecodeError:
                continue
            except RecursionError:
                return None
            return data
        return None
