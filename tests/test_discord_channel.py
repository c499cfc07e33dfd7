from __future__ import annotations

import asyncio
import contextlib
from types import SimpleNamespace
from typing import Any

import discord
import pytest

from parley.channels.discord import DiscordCommandChannel, DiscordTransport, ResolvedCommand
from parley.config import Settings
from parley.invocation import BaseCommand, Invocation
from parley.transport import Destination


class DummyChannel:
    def __init__(self, channel_id: int = 10) -> None:
        self.id = channel_id
        self.sent: list[DummyMessage] = []
        self.send_messages = True

    async def send(self, content: str) -> DummyMessage:
        sent = DummyMessage(message_id=1000 + len(self.sent), content=content, channel=self)
        self.sent.append(sent)
        return sent

    def permissions_for(self, _member: Any) -> SimpleNamespace:
        return SimpleNamespace(send_messages=self.send_messages)


class DummyMessage:
    def __init__(
        self,
        *,
        message_id: int,
        content: str,
        channel: DummyChannel,
        author: Any = None,
        guild: Any = None,
    ) -> None:
        self.id = message_id
        self.content = content
        self.channel = channel
        self.author = author or SimpleNamespace(id=7, bot=True, mention="<@7>")
        self.guild = guild
        self.edits: list[str] = []
        self.deleted = False

    async def edit(self, content: str) -> DummyMessage:
        self.edits.append(content)
        self.content = content
        return self

    async def delete(self) -> None:
        self.deleted = True


class SayCommand(BaseCommand):
    name = "say"

    async def run(self, invocation: Invocation, args: Any, from_pattern: bool) -> Any:
        return await invocation.say(args)


def _trigger(content: str, *, bot: bool = False, guild: Any = None) -> DummyMessage:
    author = SimpleNamespace(id=42, bot=bot, mention="<@42>", name="tester")
    return DummyMessage(message_id=1, content=content, channel=DummyChannel(), author=author, guild=guild)


def _resolver(message: DummyMessage) -> ResolvedCommand | None:
    if not message.content.startswith("!say "):
        return None
    return ResolvedCommand(command=SayCommand(), arg_string=message.content[len("!say ") :])


def _channel(settings: Settings | None = None, resolver: Any = _resolver) -> DiscordCommandChannel:
    client = SimpleNamespace(event=lambda func: func)
    return DiscordCommandChannel(client, resolver, settings=settings or Settings())  # type: ignore[arg-type]


def test_transport_checks_send_permission_in_guild() -> None:
    transport = DiscordTransport()
    message = _trigger("x", guild=SimpleNamespace(me=SimpleNamespace(id=7)))

    assert transport.is_private(message) is False  # type: ignore[arg-type]
    assert transport.can_send(message) is True  # type: ignore[arg-type]
    message.channel.send_messages = False
    assert transport.can_send(message) is False  # type: ignore[arg-type]


def test_transport_private_messages_can_always_be_answered() -> None:
    transport = DiscordTransport()
    message = _trigger("x")
    assert transport.is_private(message) is True  # type: ignore[arg-type]
    assert transport.can_send(message) is True  # type: ignore[arg-type]
    assert transport.mention(message) == "<@42>"  # type: ignore[arg-type]


def test_transport_escapes_markdown() -> None:
    transport = DiscordTransport()
    assert transport.escape_markup("a ``` b", code_block=True) == "a `\u200b`` b"
    assert transport.escape_markup("**bold**") == discord.utils.escape_markdown("**bold**")


@pytest.mark.asyncio
async def test_transport_sends_to_channel_or_author() -> None:
    transport = DiscordTransport()
    message = _trigger("x")
    dm: list[str] = []

    async def _author_send(content: str) -> str:
        dm.append(content)
        return "dm-handle"

    message.author.send = _author_send

    sent = await transport.send(message, Destination.CHANNEL, "to channel")  # type: ignore[arg-type]
    direct = await transport.send(message, Destination.AUTHOR, "to author")  # type: ignore[arg-type]

    assert sent.content == "to channel"  # type: ignore[attr-defined]
    assert direct == "dm-handle"
    assert dm == ["to author"]


@pytest.mark.asyncio
async def test_transport_delete_ignores_missing_message() -> None:
    transport = DiscordTransport()
    handle = _trigger("x")

    async def _gone() -> None:
        raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Message")

    handle.delete = _gone  # type: ignore[method-assign]
    await transport.delete(handle)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_handle_message_runs_command_and_reruns_on_edit() -> None:
    channel = _channel()
    trigger = _trigger("!say hello")

    await channel.handle_message(trigger)  # type: ignore[arg-type]
    assert [m.content for m in trigger.channel.sent] == ["hello"]

    trigger.content = "!say bye"
    await channel.handle_message(trigger)  # type: ignore[arg-type]

    response = trigger.channel.sent[0]
    assert len(trigger.channel.sent) == 1
    assert response.edits == ["bye"]


@pytest.mark.asyncio
async def test_edit_that_drops_the_command_deletes_responses() -> None:
    channel = _channel()
    trigger = _trigger("!say hello")
    await channel.handle_message(trigger)  # type: ignore[arg-type]

    trigger.content = "never mind"
    assert await channel.handle_message(trigger) is None  # type: ignore[arg-type]

    assert trigger.channel.sent[0].deleted is True


@pytest.mark.asyncio
async def test_bot_messages_are_ignored() -> None:
    channel = _channel()
    trigger = _trigger("!say hello", bot=True)

    assert await channel.handle_message(trigger) is None  # type: ignore[arg-type]
    assert trigger.channel.sent == []


@pytest.mark.asyncio
async def test_zero_cache_size_disables_rerun_tracking() -> None:
    channel = _channel(Settings(edit_cache_size=0))
    trigger = _trigger("!say hello")

    await channel.handle_message(trigger)  # type: ignore[arg-type]
    trigger.content = "!say again"
    await channel.handle_message(trigger)  # type: ignore[arg-type]

    assert [m.content for m in trigger.channel.sent] == ["hello", "again"]


def test_install_registers_listeners() -> None:
    registered: dict[str, Any] = {}

    def _event(func: Any) -> Any:
        registered[func.__name__] = func
        return func

    client = SimpleNamespace(event=_event)
    DiscordCommandChannel(client, _resolver, settings=Settings()).install()  # type: ignore[arg-type]

    assert set(registered) == {"on_message", "on_message_edit"}


@pytest.mark.asyncio
async def test_transport_typing_task_lifecycle() -> None:
    transport = DiscordTransport()
    message = _trigger("x")
    entered = asyncio.Event()

    @contextlib.asynccontextmanager
    async def _typing() -> Any:
        entered.set()
        yield

    message.channel.typing = _typing  # type: ignore[attr-defined]

    transport.start_typing(message)  # type: ignore[arg-type]
    assert transport.typing_count(message) == 1  # type: ignore[arg-type]
    await asyncio.wait_for(entered.wait(), timeout=1)

    transport.stop_typing(message)  # type: ignore[arg-type]
    await asyncio.sleep(0)
    assert transport.typing_count(message) == 0  # type: ignore[arg-type]


def test_transport_member_is_none_for_plain_users() -> None:
    transport = DiscordTransport()
    assert transport.member(_trigger("x")) is None  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_overlapping_edits_of_one_message_run_in_turn() -> None:
    gate = asyncio.Event()

    class GatedSayCommand(BaseCommand):
        name = "gated"

        async def run(self, invocation: Invocation, args: Any, from_pattern: bool) -> Any:
            await gate.wait()
            return await invocation.say(args)

    def _gated_resolver(message: DummyMessage) -> ResolvedCommand:
        return ResolvedCommand(command=GatedSayCommand(), arg_string=message.content)

    channel = _channel(resolver=_gated_resolver)
    trigger = _trigger("one")

    first = asyncio.create_task(channel.handle_message(trigger))  # type: ignore[arg-type]
    await asyncio.sleep(0)
    trigger.content = "two"
    second = asyncio.create_task(channel.handle_message(trigger))  # type: ignore[arg-type]
    await asyncio.sleep(0)
    gate.set()
    await asyncio.gather(first, second)

    assert len(trigger.channel.sent) == 1
    assert trigger.channel.sent[0].edits == ["two"]
    assert channel._locks == {}
