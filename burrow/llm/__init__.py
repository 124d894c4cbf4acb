from burrow.llm.base import ApiError, ConfigError, LLMProvider, NetworkError, ProviderError
from burrow.llm.retry import ReliableProvider, RetryPolicy, is_retryable
from burrow.llm.types import GenerationOptions, GenerationResponse, ToolCall, Usage

__all__ = [
    "ApiError",
    "ConfigError",
    "GenerationOptions",
    "GenerationResponse",
    "LLMProvider",
    "NetworkError",
    "ProviderError",
    "ReliableProvider",
    "RetryPolicy",
    "ToolCall",
    "Usage",
    "is_retryable",
]
