import asyncio
import json
import time
import zlib
from collections.abc import Awaitable, Callable
from typing import Any

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from burrow.bus import BusClosed, InboundMessage, Lagged, MessageBus, OutboundMessage, Subscription
from burrow.channel import Channel
from burrow.constants import (
    AUDIT_PREVIEW_CHARS,
    LLM_RETRIES,
    LLM_RETRY_BASE_DELAY,
    MAX_ITERATIONS,
    SUMMARY_KEEP_MESSAGES,
    SUMMARY_MAX_TOKENS,
    SUMMARY_TEMPERATURE,
    TOOL_ERROR_PREFIXES,
)
from burrow.context import ContextBuilder
from burrow.context.prompts import SUMMARIZE_SYSTEM_PROMPT, SUMMARIZE_USER_TEMPLATE, render_transcript
from burrow.core.persona import ProfileUpdater
from burrow.core.state import TurnOutcome
from burrow.events import AuditEvent, AuditType
from burrow.llm.base import LLMProvider
from burrow.llm.types import GenerationOptions, GenerationResponse, ToolCall, serialize_tool_calls
from burrow.llm.utils import TOOL_CALL_ID_KEY, TOOL_CALLS_KEY
from burrow.logging import get_logger
from burrow.metrics import MetricsStore
from burrow.session import SessionStore
from burrow.tools.core import ToolError, ToolPermission, ToolRegistry
from burrow.types import Message, Role

_logger = get_logger(__name__)

AGENT_CHANNEL = "agent"

type Sleep = Callable[[float], Awaitable[None]]


class ArgumentParseError(ValueError):
    pass


def parse_arguments(raw: str) -> dict[str, Any]:
    if not raw or not raw.strip():
        return {}
    try:
        args = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ArgumentParseError(str(e)) from e
    if not isinstance(args, dict):
        raise ArgumentParseError(f"expected a JSON object, got {type(args).__name__}")
    return args


def is_success(result: str) -> bool:
    return not result.startswith(TOOL_ERROR_PREFIXES)


def provider_error_text(error: BaseException) -> str:
    return f"⚠️ I encountered an error communicating with the AI provider: {error}"


def shard_for(session_key: str, count: int) -> int:
    return zlib.crc32(session_key.encode("utf-8")) % count


def max_iterations_text(limit: int = MAX_ITERATIONS) -> str:
    return (
        f"⚠️ I reached the maximum number of processing steps ({limit}). "
        "My last response may be incomplete. Please try rephrasing your request."
    )


class AgentLoop:
    """Consumes inbound messages and drives one model/tool turn per message.

    A turn ends in exactly one of three ways: a final assistant answer, a
    provider error message, or the max-iterations warning. Each publishes one
    outbound message. Tool failures of any kind are fed back to the model as
    ``Tool`` messages and never end the turn.
    """

    def __init__(
        self,
        bus: MessageBus,
        provider: LLMProvider,
        tools: ToolRegistry,
        context: ContextBuilder,
        sessions: SessionStore,
        options: GenerationOptions,
        channel: Channel | None = None,
        metrics: MetricsStore | None = None,
        profile: ProfileUpdater | None = None,
        max_iterations: int = MAX_ITERATIONS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.bus = bus
        self.provider = provider
        self.tools = tools
        self.context = context
        self.sessions = sessions
        self.options = options
        self.channel = channel if channel is not None else Channel()
        self.metrics = metrics if metrics is not None else MetricsStore()
        self.profile = profile
        self.max_iterations = max_iterations
        self._sleep = sleep

    # --- consumer ---

    async def run(self, subscription: Subscription | None = None, shard: tuple[int, int] | None = None) -> None:
        """Consume inbound messages until the bus closes.

        With ``shard=(index, count)`` only session keys hashing to ``index``
        are processed, so several consumers can share one broadcast bus
        without handling a message twice.
        """
        rx = subscription if subscription is not None else self.bus.subscribe()
        _logger.info("Agent loop started", shard=shard)
        while True:
            try:
                event = await rx.recv()
            except Lagged as e:
                _logger.warning("Agent loop lagged, %d inbound messages dropped", e.count)
                continue
            except BusClosed:
                _logger.info("Bus closed, stopping agent loop")
                break
            if not isinstance(event, InboundMessage):
                continue
            if shard is not None and shard_for(event.message.session_key, shard[1]) != shard[0]:
                continue
            try:
                await self.process(event.message)
            except Exception:
                _logger.exception("Turn failed", id=str(event.message.id), session=event.message.session_key)

    # --- plumbing ---

    def _audit(self, type: AuditType, session_key: str, payload: dict) -> None:
        self.channel.publish(AuditEvent(type=type, session_key=session_key, payload=payload))

    def _publish(self, message: Message) -> None:
        try:
            receivers = self.bus.publish(OutboundMessage(message))
        except BusClosed:
            _logger.error("Bus closed, outbound message dropped", session=message.session_key)
            return
        if receivers == 0:
            _logger.warning("No subscribers for outbound message", session=message.session_key)

    def _send_error(self, session_key: str, text: str) -> None:
        self._publish(Message.new(AGENT_CHANNEL, session_key, Role.ASSISTANT, text))

    def _log_llm_retry(self, retry_state: RetryCallState) -> None:
        _logger.warning(
            "LLM call failed, retrying",
            attempt=retry_state.attempt_number,
            max=LLM_RETRIES,
            delay_ms=int(retry_state.next_action.sleep * 1000),
            error=str(retry_state.outcome.exception()),
        )

    async def _call_llm(
        self, messages: list[Message], tool_defs: list[dict], options: GenerationOptions
    ) -> GenerationResponse:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(LLM_RETRIES),
            wait=wait_exponential(multiplier=LLM_RETRY_BASE_DELAY, exp_base=2),
            sleep=self._sleep,
            reraise=True,
            before_sleep=self._log_llm_retry,
        )
        return await retrying(self.provider.chat, messages, tool_defs, options)

    async def _observe_persona(self, text: str) -> None:
        if self.profile is None:
            return
        try:
            await self.profile.observe(text)
        except Exception:
            _logger.exception("Failed to update persona profile")

    # --- turn ---

    async def process(self, inbound: Message) -> TurnOutcome:
        async with self.sessions.turn(inbound.session_key):
            return await self._process(inbound)

    async def _process(self, inbound: Message) -> TurnOutcome:
        key = inbound.session_key
        _logger.info("Processing message", id=str(inbound.id), session=key)
        self.metrics.inc_turns()

        await self.sessions.add_message(key, inbound)
        await self._observe_persona(inbound.content)

        history = await self.sessions.get_history(key)
        summary = await self.sessions.get_summary(key)
        messages = self.context.build(
            history[:-1], summary, inbound.content, channel=inbound.channel, session_key=key
        )

        allowed = self.context.allowed_tools()
        tool_defs = self.tools.list_definitions_for(allowed)
        if not tool_defs:
            _logger.warning("No tools allowed for this turn", session=key)

        for iteration in range(1, self.max_iterations + 1):
            try:
                response = await self._call_llm(messages, tool_defs, self.options)
            except Exception as e:
                _logger.error("LLM provider failed after %d attempts: %s", LLM_RETRIES, e, session=key)
                self._send_error(key, provider_error_text(e))
                return TurnOutcome.PROVIDER_ERROR

            if response.usage:
                self.metrics.add_tokens(response.usage)
                self._audit(
                    AuditType.LLM_COMPLETION,
                    key,
                    {
                        "model": self.options.model,
                        "input_tokens": response.usage.input_tokens,
                        "output_tokens": response.usage.output_tokens,
                        "iteration": iteration,
                    },
                )

            metadata = {TOOL_CALLS_KEY: serialize_tool_calls(response.tool_calls)} if response.tool_calls else {}
            messages.append(Message.new(AGENT_CHANNEL, key, Role.ASSISTANT, response.content, metadata))

            if not response.tool_calls:
                final = Message.new(AGENT_CHANNEL, key, Role.ASSISTANT, response.content)
                await self.sessions.add_message(key, final)
                self._publish(final)
                await self._maybe_summarize(key)
                return TurnOutcome.FINAL

            for call in response.tool_calls:
                messages.append(await self._run_tool_call(key, call, allowed))

        _logger.warning("Agent loop hit max iterations", session=key, iterations=self.max_iterations)
        self._send_error(key, max_iterations_text(self.max_iterations))
        return TurnOutcome.MAX_ITERATIONS

    async def _run_tool_call(self, key: str, call: ToolCall, allowed: ToolPermission) -> Message:
        metadata = {TOOL_CALL_ID_KEY: call.id}

        if not ToolRegistry.is_allowed(call.name, allowed):
            _logger.warning("Blocked tool execution, '%s' not in allowed list", call.name, session=key)
            self._audit(
                AuditType.SECURITY_VIOLATION,
                key,
                {"type": "tool_blocked", "tool": call.name, "reason": "default_deny"},
            )
            text = f"Error: Tool '{call.name}' is not authorized by any active skill."
            return Message.new(AGENT_CHANNEL, key, Role.TOOL, text, metadata)

        _logger.info("Executing tool %s", call.name, session=key)
        start = time.monotonic()
        self.metrics.inc_tool_calls()
        result = await self._execute(call)
        duration_ms = int((time.monotonic() - start) * 1000)
        success = is_success(result)

        self.tools.record_metrics(call.name, duration_ms, success)
        self._audit(
            AuditType.TOOL_EXECUTION,
            key,
            {
                "tool": call.name,
                "args": call.arguments,
                "output_preview": result[:AUDIT_PREVIEW_CHARS],
                "duration_ms": duration_ms,
                "success": success,
            },
        )
        return Message.new(AGENT_CHANNEL, key, Role.TOOL, result, metadata)

    async def _execute(self, call: ToolCall) -> str:
        if self.tools.get(call.name) is None:
            return f"Tool not found: {call.name}"
        try:
            args = parse_arguments(call.arguments)
        except ArgumentParseError as e:
            return f"Error parsing arguments: {e}"
        try:
            return await self.tools.execute(call.name, args)
        except ToolError as e:
            return f"Error executing tool: {e}"
        except Exception as e:
            _logger.exception("Tool %s raised unexpectedly", call.name)
            return f"Error executing tool: {e}"

    # --- summarization ---

    async def _maybe_summarize(self, key: str) -> None:
        history = await self.sessions.get_history(key)
        if not self.sessions.should_summarize(key, len(history)):
            return

        _logger.info("Auto-summarizing session history", session=key, messages=len(history))
        prompt = [
            Message.new("system", key, Role.SYSTEM, SUMMARIZE_SYSTEM_PROMPT),
            Message.new("user", key, Role.USER, SUMMARIZE_USER_TEMPLATE.format(transcript=render_transcript(history))),
        ]
        options = GenerationOptions(
            model=self.options.model,
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
        )
        try:
            response = await self._call_llm(prompt, [], options)
            await self.sessions.set_summary(key, response.content)
            await self.sessions.mark_summarized(key)
            if response.usage:
                self.metrics.add_tokens(response.usage)
            removed = await self.sessions.trim_history(key, SUMMARY_KEEP_MESSAGES)
        except Exception:
            _logger.exception("Failed to auto-summarize session", session=key)
            return
        _logger.info("Session summarized", session=key, removed=removed)
