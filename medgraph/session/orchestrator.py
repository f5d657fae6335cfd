"""Session orchestration for the grounding pipeline.

A session owns two independent lanes:

* the extraction lane (``IDLE -> EXTRACTING -> IDLE``) which replaces the
  held fact set, and
* the assistant lane (``IDLE -> SYNTHESIZING -> GENERATING -> IDLE``) which
  appends to the chat transcript.

Both lanes run on one event loop; the blocking oracle calls are pushed to
worker threads. Only one assistant request may be in flight: a query
submitted while the lane is busy is rejected without touching the
transcript. Every failure returns its lane to ``IDLE``.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from medgraph.exceptions import GroundingError
from medgraph.extraction.llm_extractor import TripleExtractor
from medgraph.extraction.models import ExtractionResult, Triple
from medgraph.formatting.trial_formatter import AnnotatedToken, TextToken, TrialFormatter
from medgraph.generation.context_synthesizer import ContextSynthesizer
from medgraph.generation.response_generator import VerifiedResponder
from medgraph.session.defaults import DEFAULT_FACTS
from medgraph.utils.config import Config, SessionConfig
from medgraph.utils.oracle import LLMOracle


class Role(str, Enum):
    """Chat transcript author."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One immutable entry of the chat transcript."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    grounding_context: Optional[str] = Field(
        default=None, description="Narrative the assistant answer was grounded on"
    )
    hallucination_risk: bool = Field(
        default=False, description="Answer cites content the narrative does not contain"
    )


class ExtractionState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"


class AssistantState(str, Enum):
    IDLE = "idle"
    SYNTHESIZING = "synthesizing"
    GENERATING = "generating"


class SubmissionStatus(str, Enum):
    """Outcome of a ``submit_*`` call."""

    REJECTED = "rejected"  # guard failed, nothing happened
    COMPLETED = "completed"
    FAILED = "failed"  # extraction failed, held facts unchanged
    FALLBACK = "fallback"  # assistant failed, fallback turn appended


_EXTRACTION_TRANSITIONS: Dict[ExtractionState, FrozenSet[ExtractionState]] = {
    ExtractionState.IDLE: frozenset({ExtractionState.EXTRACTING}),
    ExtractionState.EXTRACTING: frozenset({ExtractionState.IDLE}),
}

_ASSISTANT_TRANSITIONS: Dict[AssistantState, FrozenSet[AssistantState]] = {
    AssistantState.IDLE: frozenset({AssistantState.SYNTHESIZING}),
    AssistantState.SYNTHESIZING: frozenset({AssistantState.GENERATING, AssistantState.IDLE}),
    AssistantState.GENERATING: frozenset({AssistantState.IDLE}),
}


class SessionOrchestrator:
    """Sequences extraction, synthesis and verified response for one user session."""

    def __init__(
        self,
        extractor: TripleExtractor,
        synthesizer: ContextSynthesizer,
        responder: VerifiedResponder,
        *,
        formatter: Optional[TrialFormatter] = None,
        config: Optional[SessionConfig] = None,
        default_facts: Sequence[Triple] = DEFAULT_FACTS,
    ) -> None:
        self.extractor = extractor
        self.synthesizer = synthesizer
        self.responder = responder
        self.formatter = formatter or TrialFormatter()
        self.config = config or SessionConfig()
        self.default_facts: ExtractionResult = tuple(default_facts)

        self._extraction_state = ExtractionState.IDLE
        self._assistant_state = AssistantState.IDLE
        self._facts: ExtractionResult = ()
        self._transcript: List[ChatTurn] = []
        self._last_extraction_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: Config) -> "SessionOrchestrator":
        """Build a session with LLM-backed stages from application config."""

        def oracle(llm):
            return LLMOracle(
                llm,
                openai_api_key=config.openai_api_key,
                anthropic_api_key=config.anthropic_api_key,
            )

        return cls(
            extractor=TripleExtractor(
                config.extraction, config.prompts_path, oracle=oracle(config.extraction.llm)
            ),
            synthesizer=ContextSynthesizer(
                config.synthesis, config.prompts_path, oracle=oracle(config.synthesis.llm)
            ),
            responder=VerifiedResponder(
                config.response, config.prompts_path, oracle=oracle(config.response.llm)
            ),
            formatter=TrialFormatter(config.formatting),
            config=config.session,
        )

    # -----------------------
    # Read-only snapshots
    # -----------------------
    @property
    def transcript(self) -> Tuple[ChatTurn, ...]:
        return tuple(self._transcript)

    @property
    def facts(self) -> ExtractionResult:
        return self._facts

    @property
    def extraction_state(self) -> ExtractionState:
        return self._extraction_state

    @property
    def assistant_state(self) -> AssistantState:
        return self._assistant_state

    @property
    def is_extracting(self) -> bool:
        return self._extraction_state is not ExtractionState.IDLE

    @property
    def is_generating(self) -> bool:
        return self._assistant_state is not AssistantState.IDLE

    @property
    def last_extraction_error(self) -> Optional[str]:
        return self._last_extraction_error

    def grounding_facts(self) -> ExtractionResult:
        """Facts the next query will be grounded on."""
        return self._facts if self._facts else self.default_facts

    # -----------------------
    # Extraction lane
    # -----------------------
    async def submit_extraction(self, text: str) -> SubmissionStatus:
        """Extract triples from ``text`` and replace the held fact set on success."""
        if not text or not text.strip():
            logger.debug("Ignoring blank extraction request")
            return SubmissionStatus.REJECTED
        if self.is_extracting:
            logger.debug("Extraction already in flight; rejecting new request")
            return SubmissionStatus.REJECTED

        self._move_extraction(ExtractionState.EXTRACTING)
        try:
            triples = await asyncio.to_thread(self.extractor.extract, text)
        except Exception as exc:  # noqa: BLE001
            self._last_extraction_error = str(exc)
            self._log_failure("Extraction", exc)
            return SubmissionStatus.FAILED
        finally:
            self._move_extraction(ExtractionState.IDLE)

        self._facts = tuple(triples)
        self._last_extraction_error = None
        logger.info("Replaced session fact set", facts=len(self._facts))
        return SubmissionStatus.COMPLETED

    # -----------------------
    # Assistant lane
    # -----------------------
    async def submit_query(self, query: str) -> SubmissionStatus:
        """Answer ``query`` through synthesis and verified response.

        The user turn is appended before the first await so transcript order
        always follows submission order.
        """
        if not query or not query.strip():
            logger.debug("Ignoring blank query")
            return SubmissionStatus.REJECTED
        if self.is_generating:
            logger.debug("Assistant request already in flight; rejecting query")
            return SubmissionStatus.REJECTED

        self._transcript.append(ChatTurn(role=Role.USER, content=query))
        facts = self.grounding_facts()
        logger.info(
            "Answering query",
            facts=len(facts),
            default_facts=not self._facts,
        )

        self._move_assistant(AssistantState.SYNTHESIZING)
        try:
            narrative = await asyncio.to_thread(self.synthesizer.synthesize, query, facts)
            self._move_assistant(AssistantState.GENERATING)
            answer = await asyncio.to_thread(self.responder.generate, query, narrative)
        except Exception as exc:  # noqa: BLE001
            self._log_failure("Assistant request", exc)
            self._transcript.append(
                ChatTurn(role=Role.ASSISTANT, content=self.config.fallback_message)
            )
            return SubmissionStatus.FALLBACK
        finally:
            self._move_assistant(AssistantState.IDLE)

        self._transcript.append(
            ChatTurn(
                role=Role.ASSISTANT,
                content=answer.text,
                grounding_context=narrative,
                hallucination_risk=answer.hallucination_risk,
            )
        )
        return SubmissionStatus.COMPLETED

    # -----------------------
    # Rendering boundary
    # -----------------------
    def render_turn(self, turn: ChatTurn) -> List[AnnotatedToken]:
        """Tokens for display; only assistant content gets trial links."""
        if turn.role is Role.ASSISTANT:
            return self.formatter.format(turn.content)
        return [TextToken(text=turn.content)] if turn.content else []

    def _log_failure(self, what: str, exc: Exception) -> None:
        if isinstance(exc, GroundingError):
            logger.error(f"{what} failed: {exc}")
        else:
            logger.exception(f"{what} failed unexpectedly: {exc}")

    # -----------------------
    # State machine
    # -----------------------
    def _move_extraction(self, target: ExtractionState) -> None:
        if target not in _EXTRACTION_TRANSITIONS[self._extraction_state]:
            raise RuntimeError(
                f"Illegal extraction transition {self._extraction_state.value} -> {target.value}"
            )
        self._extraction_state = target

    def _move_assistant(self, target: AssistantState) -> None:
        if target not in _ASSISTANT_TRANSITIONS[self._assistant_state]:
            raise RuntimeError(
                f"Illegal assistant transition {self._assistant_state.value} -> {target.value}"
            )
        self._assistant_state = target
