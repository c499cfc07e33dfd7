"""Discord channel adapter."""

from __future__ import annotations

import asyncio
from collections import Counter, OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import discord
from loguru import logger

from parley.config import Settings
from parley.invocation import BaseCommand, Invocation, InvocationRunner
from parley.transport import BaseTransport, Destination

ZERO_WIDTH_SPACE = "\u200b"


@dataclass(frozen=True)
class ResolvedCommand:
    """A command recognized in a message, with its arguments."""

    command: BaseCommand
    arg_string: str | None = None
    pattern_matches: list[str] | None = None


CommandResolver = Callable[[discord.Message], ResolvedCommand | None]


class DiscordTransport(BaseTransport[discord.Message, discord.Message]):
    """Transport based on discord.py messages."""

    name = "discord"

    def __init__(self) -> None:
        self._typing_tasks: dict[int, asyncio.Task[None]] = {}

    def is_private(self, message: discord.Message) -> bool:
        return message.guild is None

    def can_send(self, message: discord.Message) -> bool:
        guild = message.guild
        if guild is None:
            return True
        return bool(message.channel.permissions_for(guild.me).send_messages)

    def mention(self, message: discord.Message) -> str:
        return message.author.mention

    def member(self, message: discord.Message) -> discord.Member | None:
        author = message.author
        return author if isinstance(author, discord.Member) else None

    async def send(self, message: discord.Message, destination: Destination, text: str) -> discord.Message:
        target = message.author if destination is Destination.AUTHOR else message.channel
        return await target.send(content=text)

    async def send_alongside(self, handle: discord.Message, text: str) -> discord.Message:
        return await handle.channel.send(content=text)

    async def edit(self, handle: discord.Message, text: str) -> discord.Message:
        return await handle.edit(content=text)

    async def delete(self, handle: discord.Message) -> None:
        try:
            await handle.delete()
        except discord.NotFound:
            logger.debug("discord.delete.missing message_id={}", handle.id)

    def escape_markup(self, text: str, *, code_block: bool = False) -> str:
        if code_block:
            return text.replace("```", f"`{ZERO_WIDTH_SPACE}``")
        return discord.utils.escape_markdown(text)

    def typing_count(self, message: discord.Message) -> int:
        return 1 if message.channel.id in self._typing_tasks else 0

    def start_typing(self, message: discord.Message) -> None:
        self.stop_typing(message)
        self._typing_tasks[message.channel.id] = asyncio.create_task(self._typing_loop(message.channel))

    def stop_typing(self, message: discord.Message) -> None:
        task = self._typing_tasks.pop(message.channel.id, None)
        if task is not None:
            task.cancel()

    async def _typing_loop(self, channel: discord.abc.Messageable) -> None:
        try:
            async with channel.typing():
                await asyncio.Event().wait()
        except asyncio.CancelledError:
            return
        except Exception:
            logger.exception("discord.typing_loop.error channel_id={}", getattr(channel, "id", "<unknown>"))
            return


class DiscordCommandChannel:
    """Run commands for messages received by a discord.py client.

    Invocations are kept per triggering message, so editing the message re-runs
    the command and updates the earlier responses in place.
    """

    name = "discord"

    def __init__(
        self,
        client: discord.Client,
        resolver: CommandResolver,
        *,
        settings: Settings | None = None,
        runner: InvocationRunner | None = None,
        transport: DiscordTransport | None = None,
    ) -> None:
        self._client = client
        self._resolver = resolver
        self._settings = settings or Settings()
        self._runner = runner or InvocationRunner(self._settings)
        self._transport = transport or DiscordTransport()
        self._invocations: OrderedDict[int, Invocation[discord.Message, discord.Message]] = OrderedDict()
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: Counter[int] = Counter()

    @property
    def transport(self) -> DiscordTransport:
        return self._transport

    def install(self) -> None:
        """Register the message listeners on the client."""
        client = self._client

        @client.event
        async def on_message(message: discord.Message) -> None:
            await self.handle_message(message)

        @client.event
        async def on_message_edit(before: discord.Message, after: discord.Message) -> None:
            if before.content == after.content:
                return
            await self.handle_message(after)

    async def handle_message(self, message: discord.Message) -> Any:
        if message.author.bot:
            return None

        # One run at a time per message.
        lock = self._locks.setdefault(message.id, asyncio.Lock())
        self._lock_users[message.id] += 1
        try:
            async with lock:
                return await self._dispatch(message)
        finally:
            self._lock_users[message.id] -= 1
            if not self._lock_users[message.id]:
                del self._lock_users[message.id]
                del self._locks[message.id]

    async def _dispatch(self, message: discord.Message) -> Any:
        previous = self._invocations.pop(message.id, None)
        resolved = self._resolver(message)
        if resolved is None:
            if previous is not None:
                # The edited message no longer triggers a command.
                await previous.finalize(())
            return None

        logger.info(
            "discord.invocation channel_id={} sender_id={} command={} rerun={}",
            message.channel.id,
            message.author.id,
            resolved.command.name,
            previous is not None,
        )
        invocation = Invocation(
            message,
            resolved.command,
            self._transport,
            arg_string=resolved.arg_string,
            pattern_matches=resolved.pattern_matches,
            state=previous.state if previous is not None else None,
            max_length=self._settings.split_max_length,
        )
        try:
            return await self._runner.run(invocation)
        finally:
            self._remember(message.id, invocation)

    def _remember(self, message_id: int, invocation: Invocation[discord.Message, discord.Message]) -> None:
        limit = self._settings.edit_cache_size
        if limit <= 0:
            return
        self._invocations[message_id] = invocation
        while len(self._invocations) > limit:
            self._invocations.popitem(last=False)
