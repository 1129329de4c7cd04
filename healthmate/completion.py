"""
HealthMate — Completion Client

Thin adapter over a remote OpenAI-compatible chat-completion endpoint
(DeepSeek by default). One call sends one system + user message pair and
always comes back as a CompletionResult; nothing here raises to callers.

Usage:
    client = CompletionClient()
    result = await client.complete(ADVISOR_PERSONA, "How much should I sleep?")
    if result.ok:
        print(result.text)
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from openai import AsyncOpenAI

from healthmate import secrets_manager
from healthmate.structured_logging import logger


ADVISOR_PERSONA = (
    "你是一位温和友善的健康管理顾问，擅长提供饮食、运动与作息方面的建议。"
)

# Longer prompts are rejected before any network call.
MAX_PROMPT_CHARS = 4000


class CompletionKind(str, Enum):
    OK                    = "ok"
    INPUT_REJECTED        = "input_rejected"
    CONFIGURATION_MISSING = "configuration_missing"
    SERVICE_FAILURE       = "service_failure"
    EMPTY_CONTENT         = "empty_content"


@dataclass(frozen=True)
class CompletionRequest:
    system_prompt: str
    user_prompt:   str

    def messages(self) -> list[dict]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user",   "content": self.user_prompt},
        ]


@dataclass(frozen=True)
class CompletionResult:
    kind:   CompletionKind
    text:   str = ""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is CompletionKind.OK

    @classmethod
    def success(cls, text: str) -> "CompletionResult":
        return cls(CompletionKind.OK, text=text)

    @classmethod
    def failure(cls, kind: CompletionKind, reason: str) -> "CompletionResult":
        return cls(kind, reason=reason)


class MalformedResponse(ValueError):
    """The service answered but the payload had no usable choice."""


# (api_key, request) -> first choice's content, or None when it has none
Transport = Callable[[str, CompletionRequest], Awaitable[Optional[str]]]


async def openai_transport(api_key: str, request: CompletionRequest) -> Optional[str]:
    """Send one request through the openai SDK and return the first choice's text."""
    client = AsyncOpenAI(
        api_key=api_key,
        base_url=secrets_manager.get_base_url(),
        timeout=secrets_manager.get_timeout(),
        max_retries=0,
    )
    try:
        completion = await client.chat.completions.create(
            model=secrets_manager.get_model_name(),
            messages=request.messages(),
        )
    finally:
        await client.close()

    choices = getattr(completion, "choices", None) or []
    if not choices or getattr(choices[0], "message", None) is None:
        raise MalformedResponse("response carried no choices")
    return choices[0].message.content


class CompletionClient:
    """Single request/response cycle with pre-flight checks and typed failures.

    Retries are left to callers; every call ends in exactly one result.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        api_key_provider: Callable[[], Optional[str]] = secrets_manager.get_api_key,
    ):
        self.transport = transport or openai_transport
        self.api_key_provider = api_key_provider

    async def complete(self, system_prompt: str, user_prompt: str) -> CompletionResult:
        started = time.perf_counter()
        prompt = (user_prompt or "").strip()
        result = await self._complete(system_prompt or ADVISOR_PERSONA, prompt)
        logger.log_completion(
            result.kind.value,
            (time.perf_counter() - started) * 1000,
            len(prompt),
        )
        return result

    async def _complete(self, system_prompt: str, prompt: str) -> CompletionResult:
        if not prompt:
            return CompletionResult.failure(
                CompletionKind.INPUT_REJECTED, "message is empty"
            )
        if len(prompt) > MAX_PROMPT_CHARS:
            return CompletionResult.failure(
                CompletionKind.INPUT_REJECTED,
                f"message exceeds {MAX_PROMPT_CHARS} characters",
            )

        api_key = self.api_key_provider()
        if not api_key:
            return CompletionResult.failure(
                CompletionKind.CONFIGURATION_MISSING, "DEEPSEEK_API_KEY is not set"
            )

        request = CompletionRequest(system_prompt=system_prompt, user_prompt=prompt)
        try:
            content = await self.transport(api_key, request)
        except Exception as e:
            logger.error("Completion service call failed", exc_info=repr(e))
            return CompletionResult.failure(CompletionKind.SERVICE_FAILURE, str(e) or type(e).__name__)

        if not isinstance(content, str) or not content.strip():
            return CompletionResult.failure(
                CompletionKind.EMPTY_CONTENT, "service returned no content"
            )
        return CompletionResult.success(content)

    async def reply(self, message: str) -> CompletionResult:
        """Answer a raw message with the advisor persona."""
        return await self.complete(ADVISOR_PERSONA, message)
