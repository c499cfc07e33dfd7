"""Outbound transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Generic, TypeVar

from parley.response.split import SplitPolicy, split_message

H = TypeVar("H")
M = TypeVar("M")


class Destination(Enum):
    """Where a fresh response is sent."""

    CHANNEL = "channel"
    AUTHOR = "author"


class BaseTransport(ABC, Generic[H, M]):
    """Abstract base class for chat platform transports.

    ``H`` is the platform's sent-message handle, ``M`` the triggering message.
    """

    name: str = "base"

    @abstractmethod
    def is_private(self, message: M) -> bool:
        """Whether the message was sent outside of a guild."""

    @abstractmethod
    def can_send(self, message: M) -> bool:
        """Whether the bot may post in the message's channel."""

    @abstractmethod
    def mention(self, message: M) -> str:
        """Mention markup for the message's author."""

    @abstractmethod
    async def send(self, message: M, destination: Destination, text: str) -> H:
        """Send a new message to the channel or the author of ``message``."""

    @abstractmethod
    async def send_alongside(self, handle: H, text: str) -> H:
        """Send a new message in the channel ``handle`` lives in."""

    @abstractmethod
    async def edit(self, handle: H, text: str) -> H:
        """Replace the text of a sent message."""

    @abstractmethod
    async def delete(self, handle: H) -> None:
        """Delete a sent message."""

    @abstractmethod
    def escape_markup(self, text: str, *, code_block: bool = False) -> str:
        """Escape platform markup; with ``code_block`` only code fences."""

    def member(self, message: M) -> Any:
        """Guild member behind ``message``, or ``None`` outside a guild."""
        return getattr(message, "member", None)

    def split(self, text: str, policy: SplitPolicy) -> list[str]:
        return split_message(text, policy)

    def typing_count(self, message: M) -> int:
        return 0

    def start_typing(self, message: M) -> None:
        return None

    def stop_typing(self, message: M) -> None:
        return None
