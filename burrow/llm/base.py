from abc import ABC, abstractmethod

from burrow.llm.types import GenerationOptions, GenerationResponse
from burrow.types import Message


class ProviderError(Exception):
    """Base class for failures reported by a model provider."""


class NetworkError(ProviderError):
    pass


class ApiError(ProviderError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(ProviderError):
    pass


class LLMProvider(ABC):
    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        tools: list[dict],
        options: GenerationOptions,
    ) -> GenerationResponse: ...

    async def close(self) -> None:
        return None
