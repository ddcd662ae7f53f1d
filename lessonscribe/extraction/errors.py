"""
Error types for the extraction engine.

Scope of each error:
- UnparseableExtraction: one inference call; aborts the enclosing strategy
- MissingInputError: strategy setup; raised before any inference call
- UnknownModelPricing: pricing lookup only; callers fall back to default rates
- ArtifactPersistenceError: report storage; logged as a warning
"""


class ExtractionError(Exception):
    """Base class for extraction engine errors."""


class UnparseableExtraction(ExtractionError):
    """
    The model response could not be reduced to a usable extraction.

    Attributes:
        reason: What was wrong with the response
        preview: First characters of the response text, for the logs
    """

    PREVIEW_CHARS = 200

    def __init__(self, reason: str, response_text: str = ""):
        self.reason = reason
        self.preview = response_text[:self.PREVIEW_CHARS]
        super().__init__(f"{reason} (response starts: {self.preview!r})")


class MissingInputError(ExtractionError):
    """A strategy or merge was asked to run without usable input."""


class UnknownModelPricing(ExtractionError, LookupError):
    """No pricing entry exists for a model id."""

    def __init__(self, model: str):
        self.model = model
        super().__init__(f"No pricing configured for model '{model}'")


class ArtifactPersistenceError(ExtractionError):
    """A comparison report could not be written to the artifact store."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{message} (key={key})")
