"""Abstract base for all text generation providers."""

from abc import ABC, abstractmethod

from boardroom.errors import GenerationFailure
from boardroom.models import GenerationResult


class ProviderError(GenerationFailure):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all text generation providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'claude', 'openai')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, max_tokens: int | None = None) -> GenerationResult:
        """Generate text for the given prompt.

        Args:
            prompt: The full prompt text to send.
            max_tokens: Response size bound. Falls back to the configured
                model limit when omitted.

        Returns:
            GenerationResult with content and usage metadata.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...
