from __future__ import annotations

import asyncio
import io
import json
from typing import Iterable, List, Sequence

import pytest

from services.mcp_common.framing import LineFraming
from services.pipeline_ai.config import Settings
from services.pipeline_ai.providers.base import ChatMessage, ProviderError


class ChunkReader:
    """Binary reader that hands out one predefined chunk per read1() call."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = list(chunks)

    def read1(self, size: int = -1) -> bytes:
        if not self._chunks:
            return b""
        return self._chunks.pop(0)


class FakeProvider:
    name = "fake"

    def __init__(self, reply: str = "name: generated\n", *, delay: float = 0.0) -> None:
        self.reply = reply
        self.delay = delay
        self.calls: List[dict] = []

    async def complete(self, messages: Sequence[ChatMessage], *, model: str, temperature: float, max_tokens: int) -> str:
        self.calls.append(
            {"messages": list(messages), "model": model, "temperature": temperature, "max_tokens": max_tokens}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.reply


class FailingProvider:
    name = "failing"

    async def complete(self, messages: Sequence[ChatMessage], *, model: str, temperature: float, max_tokens: int) -> str:
        raise ProviderError("quota exceeded")


def run_framed(server, chunks: Iterable[bytes], *, max_message_chars=None) -> List[dict]:
    out = io.BytesIO()
    framing = LineFraming(ChunkReader(chunks), out, max_message_chars=max_message_chars, log=io.StringIO())
    asyncio.run(server.serve(framing))
    return [json.loads(line) for line in out.getvalue().decode("utf-8").splitlines()]


@pytest.fixture
def settings() -> Settings:
    return Settings(provider="offline")


@pytest.fixture
def log() -> io.StringIO:
    return io.StringIO()
