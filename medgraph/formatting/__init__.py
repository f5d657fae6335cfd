"""Formatting package exports."""

from medgraph.formatting.trial_formatter import (
    AnnotatedToken,
    TextToken,
    TrialFormatter,
    TrialLinkToken,
    find_trial_identifiers,
    format_trial_identifiers,
    reconstruct,
    render_markdown,
)

__all__ = [
    "AnnotatedToken",
    "TextToken",
    "TrialLinkToken",
    "TrialFormatter",
    "find_trial_identifiers",
    "format_trial_identifiers",
    "reconstruct",
    "render_markdown",
]
