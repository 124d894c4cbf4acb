from burrow.config import Config
from burrow.llm.base import ConfigError, LLMProvider
from burrow.llm.litellm import LiteLLMProvider
from burrow.llm.retry import ReliableProvider, RetryPolicy


def create_provider(config: Config) -> LLMProvider:
    """Pick the first configured provider: OpenAI, OpenRouter, Anthropic, Google."""
    if config.openai_api_key:
        provider = LiteLLMProvider(config.openai_api_key, config.openai_api_base, prefix="openai")
    elif config.openrouter_api_key:
        provider = LiteLLMProvider(config.openrouter_api_key, config.openrouter_api_base, prefix="openrouter")
    elif config.anthropic_api_key:
        provider = LiteLLMProvider(config.anthropic_api_key, prefix="anthropic")
    elif config.gemini_api_key:
        provider = LiteLLMProvider(config.gemini_api_key, prefix="gemini")
    else:
        raise ConfigError("No LLM provider configured. Set OPENAI_API_KEY, OPENROUTER_API_KEY, ANTHROPIC_API_KEY or GEMINI_API_KEY.")

    return ReliableProvider(
        provider,
        RetryPolicy(
            max_retries=config.provider_max_retries,
            base_backoff_ms=config.provider_backoff_ms,
        ),
    )
