"""Shared fixtures: scripted completion transports and clients."""

import asyncio
import os
import sys

import pytest

# Add project root to path for imports (file lives in tests/)
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _ROOT)

from healthmate.completion import CompletionClient


class FakeTransport:
    """Answers every call immediately with `reply`, or raises `error`."""

    def __init__(self, reply="多喝水，早点休息。", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def __call__(self, api_key, request):
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return self.reply


class ScriptedTransport:
    """Holds each call open until the test releases it, in any order."""

    def __init__(self):
        self.calls = []
        self._gates = []
        self._replies = {}

    async def __call__(self, api_key, request):
        index = len(self.calls)
        self.calls.append(request)
        gate = asyncio.Event()
        self._gates.append(gate)
        await gate.wait()
        reply = self._replies[index]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def release(self, index, reply):
        self._replies[index] = reply
        self._gates[index].set()


async def wait_for_calls(transport, count, max_ticks=100):
    """Yield to the loop until `count` calls have reached the transport."""
    for _ in range(max_ticks):
        if len(transport.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} transport calls, saw {len(transport.calls)}")


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def scripted_transport():
    return ScriptedTransport()


@pytest.fixture
def client(fake_transport):
    return CompletionClient(transport=fake_transport, api_key_provider=lambda: "sk-test")


@pytest.fixture
def scripted_client(scripted_transport):
    return CompletionClient(transport=scripted_transport, api_key_provider=lambda: "sk-test")
