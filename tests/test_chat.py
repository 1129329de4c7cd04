"""Chat session: transcript ordering, in-flight guard and failure placeholders."""

import asyncio

import pytest

from conftest import FakeTransport, wait_for_calls
from healthmate.chat import ChatSession, ChatTurn, Speaker, send
from healthmate.completion import CompletionClient, CompletionKind
from healthmate.messages import CHAT_PLACEHOLDERS


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n"])
async def test_blank_send_is_noop(client, fake_transport, text):
    session = ChatSession(client)
    accepted = await session.send(text)
    assert accepted is False
    assert len(session) == 0
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_send_appends_user_then_assistant(client, fake_transport):
    fake_transport.reply = "每晚睡 7-8 小时。"
    session = ChatSession(client)
    assert await session.send("睡多久？") is True
    assert session.transcript == (
        ChatTurn(Speaker.USER, "睡多久？"),
        ChatTurn(Speaker.ASSISTANT, "每晚睡 7-8 小时。"),
    )


@pytest.mark.asyncio
async def test_user_turn_visible_before_resolution(scripted_client, scripted_transport):
    session = ChatSession(scripted_client)
    task = asyncio.create_task(session.send("  A  "))
    await wait_for_calls(scripted_transport, 1)

    assert len(session) == 1
    assert session.transcript[0] == ChatTurn(Speaker.USER, "  A  ")
    assert scripted_transport.calls[0].user_prompt == "A"
    assert session.sending is True

    scripted_transport.release(0, "reply")
    await task
    assert len(session) == 2
    assert session.sending is False


@pytest.mark.asyncio
async def test_failure_appends_exactly_one_placeholder():
    transport = FakeTransport(error=ConnectionError("down"))
    session = ChatSession(CompletionClient(transport=transport, api_key_provider=lambda: "k"))
    assert await session.send("A") is True

    assert len(session) == 2
    user, assistant = session.transcript
    assert user.speaker is Speaker.USER
    assert assistant.speaker is Speaker.ASSISTANT
    assert assistant.failure is CompletionKind.SERVICE_FAILURE
    assert assistant.text == CHAT_PLACEHOLDERS[CompletionKind.SERVICE_FAILURE]


@pytest.mark.asyncio
async def test_second_send_while_in_flight_is_ignored(scripted_client, scripted_transport):
    session = ChatSession(scripted_client)
    first = asyncio.create_task(session.send("A"))
    await wait_for_calls(scripted_transport, 1)

    assert await session.send("B") is False
    assert len(session) == 1

    scripted_transport.release(0, "answer A")
    assert await first is True
    assert [t.text for t in session.transcript] == ["A", "answer A"]
    assert len(scripted_transport.calls) == 1


@pytest.mark.asyncio
async def test_guard_released_after_failure(scripted_client, scripted_transport):
    session = ChatSession(scripted_client)
    first = asyncio.create_task(session.send("A"))
    await wait_for_calls(scripted_transport, 1)
    scripted_transport.release(0, RuntimeError("boom"))
    await first

    second = asyncio.create_task(session.send("B"))
    await wait_for_calls(scripted_transport, 2)
    scripted_transport.release(1, "answer B")
    assert await second is True

    assert [(t.speaker, t.text) for t in session.transcript] == [
        (Speaker.USER, "A"),
        (Speaker.ASSISTANT, CHAT_PLACEHOLDERS[CompletionKind.SERVICE_FAILURE]),
        (Speaker.USER, "B"),
        (Speaker.ASSISTANT, "answer B"),
    ]


@pytest.mark.asyncio
async def test_transcript_is_read_only_view(client):
    session = ChatSession(client)
    await session.send("A")
    view = session.transcript
    assert isinstance(view, tuple)
    with pytest.raises(AttributeError):
        view[0].text = "edited"


@pytest.mark.asyncio
async def test_functional_send_returns_session(client):
    session = ChatSession(client)
    assert await send(session, "A") is session
    assert len(session) == 2
