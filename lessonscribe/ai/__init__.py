"""
LessonScribe AI Module
Inference collaborators for vision-capable models.

Architecture:
=============
The extraction engine only sees the InferenceClient interface: one call,
a system prompt, a user prompt, page images, and raw text back with token
counts. OllamaInferenceClient is the shipped implementation; it talks to a
local or remote Ollama server over its REST API (requests only, no model
runtime in-process).
"""

from .inference_client import (
    ImagePayload,
    InferenceClient,
    InferenceRequestError,
    InferenceResponse,
)
from .ollama_client import OllamaInferenceClient

__all__ = [
    'ImagePayload',
    'InferenceClient',
    'InferenceRequestError',
    'InferenceResponse',
    'OllamaInferenceClient',
]
