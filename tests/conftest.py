"""Shared fixtures: a scripted oracle standing in for the LLM provider."""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Union

import pytest

from medgraph.exceptions import OracleUnavailable
from medgraph.utils.oracle import OracleRequest

Reply = Union[str, Exception, Callable[[OracleRequest], str]]


class ScriptedOracle:
    """Returns queued replies in order and records every request.

    A reply may be a string, an exception instance to raise, or a callable
    receiving the request. An optional ``gate`` blocks each call until set,
    which lets tests observe in-flight states.
    """

    def __init__(self, *replies: Reply, gate: Optional[threading.Event] = None) -> None:
        self.replies: List[Reply] = list(replies)
        self.requests: List[OracleRequest] = []
        self.gate = gate

    def invoke(self, request: OracleRequest) -> str:
        self.requests.append(request)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if not self.replies:
            raise OracleUnavailable("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply


@pytest.fixture
def scripted_oracle() -> Callable[..., ScriptedOracle]:
    return ScriptedOracle


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"
