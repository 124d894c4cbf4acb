import litellm
import openai

from burrow.llm.base import ApiError, ConfigError, LLMProvider, NetworkError
from burrow.llm.types import GenerationOptions, GenerationResponse, Usage
from burrow.llm.utils import parse_tool_calls, to_wire_messages, to_wire_tools
from burrow.types import Message


class LiteLLMProvider(LLMProvider):
    """Chat-completions provider routed through litellm.

    ``prefix`` selects the litellm route (``openai``, ``openrouter``,
    ``anthropic``, ``gemini``) for bare model ids.
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None, prefix: str | None = None):
        self.api_key = api_key
        self.api_base = api_base
        self.prefix = prefix

    def _route(self, model: str) -> str:
        if not self.prefix or model.startswith(f"{self.prefix}/"):
            return model
        return f"{self.prefix}/{model}"

    def _build_request(self, messages: list[Message], tools: list[dict], options: GenerationOptions) -> dict:
        if not options.model:
            raise ConfigError("No model configured")

        request: dict = {"model": self._route(options.model), "messages": to_wire_messages(messages)}
        optional = {
            "tools": to_wire_tools(tools) if tools else None,
            "tool_choice": "auto" if tools else None,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "api_key": self.api_key,
            "api_base": self.api_base,
        }
        request.update({k: v for k, v in optional.items() if v is not None})
        return request

    async def chat(
        self,
        messages: list[Message],
        tools: list[dict],
        options: GenerationOptions,
    ) -> GenerationResponse:
        request = self._build_request(messages, tools, options)
        try:
            response = await litellm.acompletion(**request)
        except (litellm.Timeout, litellm.APIConnectionError) as e:
            raise NetworkError(str(e)) from e
        except litellm.AuthenticationError as e:
            raise ConfigError(str(e)) from e
        except openai.APIStatusError as e:
            raise ApiError(f"{e.status_code}: {e}") from e
        except openai.OpenAIError as e:
            raise ApiError(str(e)) from e
        return self._parse_response(response)

    def _parse_response(self, response) -> GenerationResponse:
        if not response.choices:
            raise ApiError("Provider returned no choices")
        msg = response.choices[0].message

        usage = None
        if response.usage:
            usage = Usage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
            )

        return GenerationResponse(
            content=msg.content or "",
            tool_calls=parse_tool_calls(msg.tool_calls),
            usage=usage,
        )
