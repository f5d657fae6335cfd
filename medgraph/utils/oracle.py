"""Generative text oracle boundary.

Every pipeline stage talks to the LLM through the :class:`Oracle` protocol:
one request in, raw text out. :class:`LLMOracle` is the production
implementation with a provider switch (OpenAI / Anthropic) and bounded
retries. Whatever goes wrong on the provider side surfaces as
:class:`~medgraph.exceptions.OracleUnavailable`; the text that comes back is
untrusted and validated by the caller.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional, Protocol

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from medgraph.exceptions import OracleUnavailable
from medgraph.utils.config import LLMConfig
from medgraph.utils.llm_client import create_anthropic_client, create_openai_client


class OracleRequest(BaseModel):
    """A single prompt sent to the oracle."""

    model_config = ConfigDict(frozen=True)

    system: str = Field(..., description="System / persona instructions")
    user: str = Field(..., description="Rendered user prompt")
    json_output: bool = Field(default=False, description="Ask the provider for JSON output")


class Oracle(Protocol):
    """Anything that can turn an :class:`OracleRequest` into text."""

    def invoke(self, request: OracleRequest) -> str:
        """Return the raw completion text, or raise ``OracleUnavailable``."""


class LLMOracle:
    """Oracle backed by the OpenAI or Anthropic chat APIs."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        *,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        sleep_fn: Callable[[float], None] | None = None,
    ) -> None:
        self.config = config or LLMConfig()
        self._openai_api_key = openai_api_key or None
        self._anthropic_api_key = anthropic_api_key or None
        self._sleep = sleep_fn or time.sleep
        self._client: Any = None

    def invoke(self, request: OracleRequest) -> str:
        attempts = max(1, self.config.retry_attempts)
        last_error: Exception | None = None

        logger.info(f"Calling LLM using {self.config.provider}: {self.config.model}")

        for attempt in range(1, attempts + 1):
            try:
                if self.config.provider == "openai":
                    return self._call_openai(request)
                if self.config.provider == "anthropic":
                    return self._call_anthropic(request)
                raise ValueError(f"Unsupported LLM provider: {self.config.provider}")
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                logger.warning(
                    "LLM request failed",
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(exc),
                )
                if attempt >= attempts:
                    break
                backoff = min(2 ** (attempt - 1), 8)
                self._sleep(backoff)

        raise OracleUnavailable(
            f"{self.config.provider} request failed after {attempts} attempt(s): {last_error}"
        ) from last_error

    def _get_client(self) -> Any:
        if self._client is None:
            if self.config.provider == "openai":
                self._client = create_openai_client(
                    api_key=self._openai_api_key,
                    base_url=self.config.base_url,
                    timeout=self.config.timeout,
                )
            else:
                self._client = create_anthropic_client(
                    api_key=self._anthropic_api_key,
                    base_url=self.config.base_url,
                    timeout=self.config.timeout,
                )
        return self._client

    def _call_openai(self, request: OracleRequest) -> str:
        client = self._get_client()

        completion_kwargs: Dict[str, Any] = {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "messages": [
                {"role": "system", "content": request.system},
                {"role": "user", "content": request.user},
            ],
        }
        if request.json_output:
            completion_kwargs["response_format"] = {"type": "json_object"}

        response = client.chat.completions.create(**completion_kwargs)

        content = response.choices[0].message.content
        if isinstance(content, list):
            parts = []
            for item in content:
                if isinstance(item, dict):
                    parts.append(str(item.get("text", "")))
                else:
                    parts.append(str(item))
            return "\n".join(parts).strip()
        return str(content or "")

    def _call_anthropic(self, request: OracleRequest) -> str:
        client = self._get_client()

        system = request.system
        if request.json_output:
            # No JSON response mode on the Messages API; restate it in the prompt.
            system += "\n\nRespond with JSON only, without any surrounding prose."

        message = client.messages.create(
            model=self.config.model,
            system=system,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            messages=[{"role": "user", "content": request.user}],
        )
        parts = []
        for block in message.content:
            if getattr(block, "type", None) == "text":
                parts.append(getattr(block, "text", ""))
        return "\n".join(parts).strip()
