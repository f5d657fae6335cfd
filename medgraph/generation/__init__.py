"""Generation package exports."""

from medgraph.generation.context_synthesizer import ContextSynthesizer
from medgraph.generation.response_generator import VerifiedAnswer, VerifiedResponder

__all__ = ["ContextSynthesizer", "VerifiedAnswer", "VerifiedResponder"]
