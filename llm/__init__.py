"""Inference endpoint clients."""

from .base import InferenceClient, GenerationRequest, GenerationResponse, MalformedResponseError
from .ollama import OllamaClient

__all__ = [
    "InferenceClient",
    "GenerationRequest",
    "GenerationResponse",
    "MalformedResponseError",
    "OllamaClient",
]
