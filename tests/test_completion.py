"""Completion client: pre-flight checks, failure kinds and the openai transport."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import FakeTransport
from healthmate.completion import (
    ADVISOR_PERSONA,
    CompletionClient,
    CompletionKind,
    MAX_PROMPT_CHARS,
    MalformedResponse,
    openai_transport,
    CompletionRequest,
)


# ============================================================================
# PRE-FLIGHT
# ============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("message", ["", "   ", "\n\t ", None])
async def test_blank_message_is_rejected_without_network(client, fake_transport, message):
    result = await client.complete(ADVISOR_PERSONA, message)
    assert result.kind is CompletionKind.INPUT_REJECTED
    assert not result.ok
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_oversize_message_is_rejected_without_network(client, fake_transport):
    result = await client.complete(ADVISOR_PERSONA, "睡" * (MAX_PROMPT_CHARS + 1))
    assert result.kind is CompletionKind.INPUT_REJECTED
    assert str(MAX_PROMPT_CHARS) in result.reason
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_message_at_limit_is_sent(client, fake_transport):
    result = await client.complete(ADVISOR_PERSONA, "睡" * MAX_PROMPT_CHARS)
    assert result.ok
    assert len(fake_transport.calls) == 1


@pytest.mark.asyncio
async def test_missing_credential_is_configuration_failure(fake_transport):
    client = CompletionClient(transport=fake_transport, api_key_provider=lambda: None)
    result = await client.complete(ADVISOR_PERSONA, "我该怎么减脂？")
    assert result.kind is CompletionKind.CONFIGURATION_MISSING
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_credential_read_from_environment(monkeypatch, fake_transport):
    client = CompletionClient(transport=fake_transport)

    monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
    result = await client.complete(ADVISOR_PERSONA, "hello")
    assert result.kind is CompletionKind.CONFIGURATION_MISSING

    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-env")
    result = await client.complete(ADVISOR_PERSONA, "hello")
    assert result.ok
    assert len(fake_transport.calls) == 1

    monkeypatch.delenv("DEEPSEEK_API_KEY")
    result = await client.complete(ADVISOR_PERSONA, "hello")
    assert result.kind is CompletionKind.CONFIGURATION_MISSING


# ============================================================================
# REMOTE CALL
# ============================================================================

@pytest.mark.asyncio
async def test_success_returns_content_unchanged(fake_transport, client):
    fake_transport.reply = "  建议每天步行 8000 步。\n"
    result = await client.complete(ADVISOR_PERSONA, "步数多少合适？")
    assert result.ok
    assert result.text == "  建议每天步行 8000 步。\n"


@pytest.mark.asyncio
async def test_request_carries_persona_and_trimmed_prompt(fake_transport, client):
    await client.reply("  睡多久合适？  ")
    assert len(fake_transport.calls) == 1
    request = fake_transport.calls[0]
    assert request.system_prompt == ADVISOR_PERSONA
    assert request.user_prompt == "睡多久合适？"
    assert request.messages() == [
        {"role": "system", "content": ADVISOR_PERSONA},
        {"role": "user", "content": "睡多久合适？"},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    ConnectionError("network down"),
    asyncio.TimeoutError(),
    RuntimeError("HTTP 500"),
    MalformedResponse("response carried no choices"),
])
async def test_transport_errors_become_service_failure(error):
    transport = FakeTransport(error=error)
    client = CompletionClient(transport=transport, api_key_provider=lambda: "sk-test")
    result = await client.complete(ADVISOR_PERSONA, "hi")
    assert result.kind is CompletionKind.SERVICE_FAILURE
    assert result.reason
    assert len(transport.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   "])
async def test_no_content_is_empty_content(content):
    transport = FakeTransport(reply=content)
    client = CompletionClient(transport=transport, api_key_provider=lambda: "sk-test")
    result = await client.complete(ADVISOR_PERSONA, "hi")
    assert result.kind is CompletionKind.EMPTY_CONTENT


# ============================================================================
# OPENAI TRANSPORT
# ============================================================================

def _fake_openai(completion):
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(return_value=completion)
    sdk.close = AsyncMock()
    return sdk


@pytest.mark.asyncio
async def test_openai_transport_returns_first_choice(monkeypatch):
    monkeypatch.setenv("DEEPSEEK_MODEL", "deepseek-chat")
    completion = SimpleNamespace(choices=[
        SimpleNamespace(message=SimpleNamespace(content="first")),
        SimpleNamespace(message=SimpleNamespace(content="second")),
    ])
    sdk = _fake_openai(completion)
    with patch("healthmate.completion.AsyncOpenAI", return_value=sdk) as ctor:
        text = await openai_transport("sk-test", CompletionRequest("sys", "user"))

    assert text == "first"
    assert ctor.call_args.kwargs["api_key"] == "sk-test"
    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "deepseek-chat"
    assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
    sdk.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_openai_transport_rejects_empty_choices():
    sdk = _fake_openai(SimpleNamespace(choices=[]))
    with patch("healthmate.completion.AsyncOpenAI", return_value=sdk):
        with pytest.raises(MalformedResponse):
            await openai_transport("sk-test", CompletionRequest("sys", "user"))
    sdk.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_client_maps_sdk_exception_to_service_failure():
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(side_effect=ConnectionError("refused"))
    sdk.close = AsyncMock()
    client = CompletionClient(api_key_provider=lambda: "sk-test")
    with patch("healthmate.completion.AsyncOpenAI", return_value=sdk):
        result = await client.reply("hi")
    assert result.kind is CompletionKind.SERVICE_FAILURE
