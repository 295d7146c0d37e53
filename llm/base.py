"""Abstract base classes for inference endpoints."""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field


class GenerationRequest(BaseModel):
    """Standardized non-streaming generation request."""
    model: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 1000
    stop_sequences: Optional[List[str]] = None


class GenerationResponse(BaseModel):
    """Standardized generation response."""
    content: str
    model: str
    eval_count: Optional[int] = None
    metadata: Dict[str, Any] = {}


class MalformedResponseError(ValueError):
    """Raised when an endpoint answers 2xx with an unusable body."""


class InferenceClient(ABC):
    """Abstract base class for a single inference endpoint."""

    def __init__(self, base_url: str, timeout: float = 60.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @abstractmethod
    async def generate(self, request: GenerationRequest, timeout: Optional[float] = None) -> GenerationResponse:
        """Issue one generation call.

        Transport failures propagate as ``httpx`` exceptions and unusable
        bodies as ``MalformedResponseError``; callers decide how to record them.
        """

    @abstractmethod
    async def list_models(self) -> List[str]:
        """Names of the models hosted by this endpoint."""

    @abstractmethod
    async def health_check(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Check if the endpoint is reachable."""

    async def aclose(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
