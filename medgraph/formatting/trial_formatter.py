"""Clinical-trial identifier detection and link annotation.

Scans free text for ClinicalTrials.gov identifiers (``NCT`` followed by
exactly eight digits) and splits it into plain-text and link tokens for the
presentation layer. The scan is pure and total: any string, including the
empty one, yields a token list whose concatenated surface text equals the
input.
"""

from __future__ import annotations

import re
from typing import List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from medgraph.utils.config import FormattingConfig

DEFAULT_TRIAL_BASE_URL = "https://clinicaltrials.gov/study"
TRIAL_ID_PATTERN = re.compile(r"\bNCT[0-9]{8}\b")


class TextToken(BaseModel):
    """Plain-text span."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class TrialLinkToken(BaseModel):
    """Verified-link span for a trial identifier."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["trial_link"] = "trial_link"
    identifier: str = Field(..., pattern=r"^NCT[0-9]{8}$")
    href: str

    @property
    def text(self) -> str:
        return self.identifier


AnnotatedToken = Union[TextToken, TrialLinkToken]


def find_trial_identifiers(text: str) -> List[str]:
    """Return trial identifiers in ``text`` in order of appearance."""
    return TRIAL_ID_PATTERN.findall(text or "")


def format_trial_identifiers(
    text: str, base_url: str = DEFAULT_TRIAL_BASE_URL
) -> List[AnnotatedToken]:
    """Split ``text`` into plain and trial-link tokens in a single left-to-right pass."""
    base = base_url.rstrip("/")
    tokens: List[AnnotatedToken] = []
    cursor = 0

    for match in TRIAL_ID_PATTERN.finditer(text):
        if match.start() > cursor:
            tokens.append(TextToken(text=text[cursor : match.start()]))
        identifier = match.group(0)
        tokens.append(TrialLinkToken(identifier=identifier, href=f"{base}/{identifier}"))
        cursor = match.end()

    if cursor < len(text):
        tokens.append(TextToken(text=text[cursor:]))
    return tokens


def reconstruct(tokens: Sequence[AnnotatedToken]) -> str:
    """Concatenate the original surface text of ``tokens``."""
    return "".join(token.text for token in tokens)


def render_markdown(tokens: Sequence[AnnotatedToken]) -> str:
    """Render tokens as Markdown, trial identifiers becoming inline links."""
    parts = []
    for token in tokens:
        if isinstance(token, TrialLinkToken):
            parts.append(f"[{token.identifier}]({token.href})")
        else:
            parts.append(token.text)
    return "".join(parts)


class TrialFormatter:
    """Configured front for :func:`format_trial_identifiers`."""

    def __init__(self, config: Optional[FormattingConfig] = None) -> None:
        self.config = config or FormattingConfig()

    def format(self, text: str) -> List[AnnotatedToken]:
        return format_trial_identifiers(text, base_url=self.config.trial_base_url)
