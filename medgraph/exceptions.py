"""Error taxonomy shared by the grounding pipeline stages."""


class GroundingError(RuntimeError):
    """Base class for failures raised by the grounding pipeline."""


class OracleUnavailable(GroundingError):
    """Raised when the LLM provider cannot be reached or returns nothing usable."""


class MalformedExtractionOutput(GroundingError):
    """Raised when an extraction response cannot be parsed as structured data."""


class InvalidInput(GroundingError, ValueError):
    """Raised when a caller passes blank text or an empty query to a stage."""
