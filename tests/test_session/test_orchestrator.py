from __future__ import annotations

import asyncio
import json
import threading

import pytest

from medgraph.exceptions import OracleUnavailable
from medgraph.extraction.llm_extractor import TripleExtractor
from medgraph.extraction.models import Triple
from medgraph.formatting.trial_formatter import TextToken, TrialLinkToken
from medgraph.generation.context_synthesizer import ContextSynthesizer
from medgraph.generation.response_generator import VerifiedResponder
from medgraph.session.defaults import DEFAULT_FACTS
from medgraph.session.orchestrator import (
    AssistantState,
    ChatTurn,
    ExtractionState,
    Role,
    SessionOrchestrator,
    SubmissionStatus,
)
from medgraph.utils.config import SessionConfig

pytestmark = pytest.mark.anyio

FALLBACK = "Something went wrong; please consult clinical guidelines."

SMOKING_JSON = json.dumps(
    {
        "triples": [
            {
                "subject": "Smoking",
                "subject_type": "risk_factor",
                "predicate": "aggravate",
                "object": "AMD progression",
                "object_type": "progression",
            }
        ]
    }
)


def _session(extraction_oracle, synthesis_oracle, response_oracle) -> SessionOrchestrator:
    return SessionOrchestrator(
        extractor=TripleExtractor(oracle=extraction_oracle),
        synthesizer=ContextSynthesizer(oracle=synthesis_oracle),
        responder=VerifiedResponder(oracle=response_oracle),
        config=SessionConfig(fallback_message=FALLBACK),
    )


async def _wait_until(predicate) -> None:
    for _ in range(500):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


async def test_end_to_end_extract_then_answer(scripted_oracle) -> None:
    synthesis = scripted_oracle("Smoking aggravates AMD progression.")
    response = scripted_oracle("Smoking aggravates AMD progression, which can lead to vision loss.")
    session = _session(scripted_oracle(SMOKING_JSON), synthesis, response)

    assert await session.submit_extraction("Smoking aggravates AMD progression.") is (
        SubmissionStatus.COMPLETED
    )
    assert session.facts == (
        Triple(
            subject="Smoking",
            subject_type="risk_factor",
            predicate="aggravate",
            object="AMD progression",
            object_type="progression",
        ),
    )

    status = await session.submit_query("Does smoking affect vision loss?")

    assert status is SubmissionStatus.COMPLETED
    synthesis_prompt = synthesis.requests[0].user
    assert "Smoking [risk_factor] --aggravate--> AMD progression [progression]" in synthesis_prompt
    assert "Macular Degeneration" not in synthesis_prompt
    assert response.requests[0].user.count("Smoking aggravates AMD progression.") == 1

    user_turn, assistant_turn = session.transcript
    assert user_turn == ChatTurn(role=Role.USER, content="Does smoking affect vision loss?")
    assert assistant_turn.role is Role.ASSISTANT
    assert assistant_turn.content
    assert assistant_turn.grounding_context == "Smoking aggravates AMD progression."
    assert session.assistant_state is AssistantState.IDLE


async def test_generation_failure_appends_single_fallback_turn(scripted_oracle) -> None:
    session = _session(
        scripted_oracle(SMOKING_JSON),
        scripted_oracle("Smoking aggravates AMD progression."),
        scripted_oracle(OracleUnavailable("provider down")),
    )
    await session.submit_extraction("Smoking aggravates AMD progression.")

    status = await session.submit_query("Does smoking affect vision loss?")

    assert status is SubmissionStatus.FALLBACK
    assert len(session.transcript) == 2
    fallback = session.transcript[-1]
    assert fallback == ChatTurn(role=Role.ASSISTANT, content=FALLBACK)
    assert fallback.grounding_context is None
    assert session.is_generating is False


async def test_synthesis_failure_skips_generation(scripted_oracle) -> None:
    response = scripted_oracle("unused")
    session = _session(scripted_oracle(), scripted_oracle(OracleUnavailable("timeout")), response)

    status = await session.submit_query("What are the primary causes of AMD?")

    assert status is SubmissionStatus.FALLBACK
    assert response.requests == []
    assert [turn.role for turn in session.transcript] == [Role.USER, Role.ASSISTANT]
    assert session.transcript[-1].content == FALLBACK


async def test_default_facts_ground_queries_before_extraction(scripted_oracle) -> None:
    synthesis = scripted_oracle("AMD causes central vision impairment.")
    session = _session(scripted_oracle(), synthesis, scripted_oracle("It causes vision impairment."))

    assert session.grounding_facts() == DEFAULT_FACTS
    await session.submit_query("What are the primary causes of AMD?")

    prompt = synthesis.requests[0].user
    for fact in DEFAULT_FACTS:
        assert fact.render() in prompt


async def test_query_while_in_flight_is_rejected(scripted_oracle) -> None:
    gate = threading.Event()
    synthesis = scripted_oracle("narrative", gate=gate)
    response = scripted_oracle("answer")
    session = _session(scripted_oracle(), synthesis, response)

    first = asyncio.create_task(session.submit_query("First question?"))
    await _wait_until(lambda: synthesis.requests)
    assert session.assistant_state is AssistantState.SYNTHESIZING
    transcript_before = session.transcript

    second = await session.submit_query("Second question?")

    assert second is SubmissionStatus.REJECTED
    assert session.transcript == transcript_before
    assert len(synthesis.requests) == 1

    gate.set()
    assert await first is SubmissionStatus.COMPLETED
    assert [turn.content for turn in session.transcript] == ["First question?", "answer"]
    assert len(response.requests) == 1


async def test_blank_submissions_are_rejected(scripted_oracle) -> None:
    extraction = scripted_oracle()
    synthesis = scripted_oracle()
    session = _session(extraction, synthesis, scripted_oracle())

    assert await session.submit_query("   ") is SubmissionStatus.REJECTED
    assert await session.submit_extraction("") is SubmissionStatus.REJECTED
    assert session.transcript == ()
    assert extraction.requests == [] and synthesis.requests == []


async def test_failed_extraction_keeps_previous_facts(scripted_oracle) -> None:
    session = _session(
        scripted_oracle(SMOKING_JSON, "not json at all", OracleUnavailable("offline")),
        scripted_oracle(),
        scripted_oracle(),
    )
    await session.submit_extraction("Smoking aggravates AMD progression.")
    held = session.facts

    assert await session.submit_extraction("Another abstract.") is SubmissionStatus.FAILED
    assert session.facts == held
    assert "not valid JSON" in session.last_extraction_error

    assert await session.submit_extraction("Third abstract.") is SubmissionStatus.FAILED
    assert session.facts == held
    assert session.extraction_state is ExtractionState.IDLE


async def test_successful_extraction_replaces_facts_wholesale(scripted_oracle) -> None:
    session = _session(scripted_oracle(SMOKING_JSON, '{"triples": []}'), scripted_oracle(), scripted_oracle())

    await session.submit_extraction("Smoking aggravates AMD progression.")
    assert len(session.facts) == 1

    assert await session.submit_extraction("Nothing relevant here.") is SubmissionStatus.COMPLETED
    assert session.facts == ()
    assert session.grounding_facts() == DEFAULT_FACTS


async def test_lanes_run_independently(scripted_oracle) -> None:
    gate = threading.Event()
    extraction = scripted_oracle(SMOKING_JSON, gate=gate)
    session = _session(extraction, scripted_oracle("narrative"), scripted_oracle("answer"))

    pending = asyncio.create_task(session.submit_extraction("Smoking aggravates AMD progression."))
    await _wait_until(lambda: extraction.requests)
    assert session.is_extracting
    assert await session.submit_extraction("Again.") is SubmissionStatus.REJECTED

    assert await session.submit_query("Does smoking affect vision loss?") is SubmissionStatus.COMPLETED

    gate.set()
    assert await pending is SubmissionStatus.COMPLETED
    assert len(session.facts) == 1
    assert len(extraction.requests) == 1


async def test_unexpected_stage_error_still_yields_fallback(scripted_oracle) -> None:
    session = _session(scripted_oracle(), scripted_oracle(RuntimeError("bug")), scripted_oracle())

    assert await session.submit_query("Question?") is SubmissionStatus.FALLBACK
    assert session.transcript[-1].content == FALLBACK


async def test_render_turn_formats_assistant_content_only(scripted_oracle) -> None:
    session = _session(scripted_oracle(), scripted_oracle(), scripted_oracle())

    user_tokens = session.render_turn(ChatTurn(role=Role.USER, content="About NCT01778491?"))
    assistant_tokens = session.render_turn(
        ChatTurn(role=Role.ASSISTANT, content="See NCT01778491.")
    )

    assert user_tokens == [TextToken(text="About NCT01778491?")]
    assert isinstance(assistant_tokens[1], TrialLinkToken)
