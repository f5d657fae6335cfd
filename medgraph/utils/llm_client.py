"""LLM client creation factory.

Both providers resolve credentials the same way: explicit arguments win,
then ``<PROVIDER>_API_KEY`` / ``<PROVIDER>_BASE_URL`` from the environment.
SDK-level retries default to 0 because ``LLMOracle`` owns the retry policy.
"""

import os
from typing import Optional, Tuple

import anthropic
from loguru import logger
from openai import OpenAI


def _mask(key: Optional[str]) -> str:
    return f"{key[:4]}...{key[-4:]}" if key and len(key) > 8 else "None"


def _resolve(
    env_prefix: str, api_key: Optional[str], base_url: Optional[str], timeout: Optional[float]
) -> Tuple[Optional[str], Optional[str]]:
    final_api_key = api_key or os.getenv(f"{env_prefix}_API_KEY")
    final_base_url = base_url or os.getenv(f"{env_prefix}_BASE_URL")
    logger.debug(
        f"Creating {env_prefix.title()} client: base_url={final_base_url}, "
        f"api_key={_mask(final_api_key)}, timeout={timeout}"
    )
    return final_api_key, final_base_url


def create_openai_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    max_retries: int = 0,
) -> OpenAI:
    """Create an OpenAI (or OpenAI-compatible) client.

    Args:
        api_key: The API key. If None, falls back to ``OPENAI_API_KEY``.
        base_url: The base URL. If None, falls back to ``OPENAI_BASE_URL``.
        timeout: Request timeout in seconds.
        max_retries: SDK-level retries.
    """
    final_api_key, final_base_url = _resolve("OPENAI", api_key, base_url, timeout)
    return OpenAI(
        api_key=final_api_key,
        base_url=final_base_url,
        timeout=timeout,
        max_retries=max_retries,
    )


def create_anthropic_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    max_retries: int = 0,
) -> anthropic.Anthropic:
    """Create an Anthropic client; unset options are left to the SDK defaults."""
    final_api_key, final_base_url = _resolve("ANTHROPIC", api_key, base_url, timeout)

    client_kwargs: dict = {"api_key": final_api_key, "max_retries": max_retries}
    if final_base_url:
        client_kwargs["base_url"] = final_base_url
    if timeout is not None:
        client_kwargs["timeout"] = timeout
    return anthropic.Anthropic(**client_kwargs)
