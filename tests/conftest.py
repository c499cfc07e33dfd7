from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any

import pytest

from parley.transport import BaseTransport, Destination


@dataclass(frozen=True)
class FakeHandle:
    id: int
    channel: str
    text: str


class FakeTransport(BaseTransport[FakeHandle, Any]):
    name = "fake"

    def __init__(self, *, private: bool = False, sendable: bool = True) -> None:
        self.private = private
        self.sendable = sendable
        self.calls: list[tuple[Any, ...]] = []
        self.typing = 0
        self._next_id = 1

    def is_private(self, message: Any) -> bool:
        return self.private

    def can_send(self, message: Any) -> bool:
        return self.sendable

    def mention(self, message: Any) -> str:
        return f"<@{message.author_id}>"

    async def send(self, message: Any, destination: Destination, text: str) -> FakeHandle:
        channel = f"dm:{message.author_id}" if destination is Destination.AUTHOR else message.channel_id
        self.calls.append(("send", destination.value, text))
        return self._new(channel, text)

    async def send_alongside(self, handle: FakeHandle, text: str) -> FakeHandle:
        self.calls.append(("send_alongside", handle.id, text))
        return self._new(handle.channel, text)

    async def edit(self, handle: FakeHandle, text: str) -> FakeHandle:
        self.calls.append(("edit", handle.id, text))
        return FakeHandle(handle.id, handle.channel, text)

    async def delete(self, handle: FakeHandle) -> None:
        self.calls.append(("delete", handle.id))

    def escape_markup(self, text: str, *, code_block: bool = False) -> str:
        if code_block:
            return text.replace("```", "`\u200b``")
        return text.replace("*", "\\*")

    def typing_count(self, message: Any) -> int:
        return self.typing

    def start_typing(self, message: Any) -> None:
        self.typing += 1

    def stop_typing(self, message: Any) -> None:
        self.typing -= 1

    def prior(self, count: int, start: int = 100, channel: str = "c1") -> tuple[FakeHandle, ...]:
        return tuple(FakeHandle(start + i, channel, f"old {i}") for i in range(count))

    def ops(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    def _new(self, channel: str, text: str) -> FakeHandle:
        handle = FakeHandle(self._next_id, channel, text)
        self._next_id += 1
        return handle


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def message() -> SimpleNamespace:
    return SimpleNamespace(id=1, channel_id="c1", author_id=42, content="!echo hi", guild=None)
