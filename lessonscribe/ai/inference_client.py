"""
Inference client interface for LessonScribe.

The extraction engine talks to a vision-capable LLM through one method,
InferenceClient.invoke(). Keeping the boundary this narrow lets tests
substitute a scripted client with canned responses, and keeps network code
out of the merge and statistics logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ImagePayload:
    """
    A page image ready to send to a model.

    Attributes:
        data: Base64-encoded image bytes
        media_type: MIME type of the encoded image
    """

    data: str
    media_type: str = "image/jpeg"


@dataclass(frozen=True)
class InferenceResponse:
    """
    Raw model output plus reported token usage.

    The text is untrusted: it may be fenced, chatty, truncated or not JSON at all.
    """

    text: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class InferenceRequestError(RuntimeError):
    """Raised when the inference backend cannot produce a response."""

    def __init__(self, model: str, message: str):
        self.model = model
        self.message = message
        super().__init__(f"{message} (model={model})")


class InferenceClient(ABC):
    """
    Abstract inference collaborator.

    Implementations must make exactly one model call per invoke() and must not
    retry internally; bounding call duration is their responsibility.
    """

    @abstractmethod
    def invoke(
        self,
        system_prompt: str,
        user_prompt: str,
        images: list[ImagePayload],
        model_id: str,
        max_tokens: int,
        temperature: float,
    ) -> InferenceResponse:
        """
        Run one model call.

        Args:
            system_prompt: Instructions shared by every call of a strategy
            user_prompt: Batch-specific prompt
            images: Page images for the batch, in page order
            model_id: Model identifier understood by the backend
            max_tokens: Upper bound on generated tokens
            temperature: Sampling temperature

        Returns:
            InferenceResponse with the raw text and token counts

        Raises:
            InferenceRequestError: If the backend fails or times out
        """
        pass
