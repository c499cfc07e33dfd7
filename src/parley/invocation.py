"""Command invocations and the runner executing them."""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections.abc import Generator
from contextvars import ContextVar
from typing import Any, Generic, TypeVar

from loguru import logger

from parley.args import parse_command_args
from parley.config import Settings
from parley.errors import FriendlyError
from parley.response.reconciler import Reconciler, ResponseKind
from parley.response.split import DEFAULT_MAX_LENGTH, SplitPolicy
from parley.response.state import ResponseState
from parley.signals import BlockReason, CommandSignals
from parley.transport import BaseTransport

H = TypeVar("H")
M = TypeVar("M")

_command_context: ContextVar[str] = ContextVar("command")


def current_command() -> str:
    """Get the name of the command running in this context."""
    return _command_context.get("-")


@contextlib.contextmanager
def command_context(name: str) -> Generator[None, None, None]:
    reset_token = _command_context.set(name)
    try:
        yield
    finally:
        _command_context.reset(reset_token)


class BaseCommand(ABC):
    """Command definition consumed by the runner."""

    name: str = "command"
    prefix: str = "!"
    guild_only: bool = False
    args_type: str = "single"
    args_count: int | None = None
    args_single_quotes: bool = True

    def has_permission(self, invocation: Invocation) -> bool:
        return True

    def usage(self, arg_string: str | None = None, guild: Any = None, only_mention: bool = False) -> str:
        command = f"{self.name} {arg_string}" if arg_string else self.name
        if only_mention:
            return f"`@mention {command}`"
        return f"`{self.prefix}{command}`"

    @abstractmethod
    async def run(self, invocation: Invocation, args: Any, from_pattern: bool) -> Any:
        """Run the command logic; return the response handles to keep."""


class Invocation(Generic[H, M]):
    """A message triggering a command, the command, and the means to respond."""

    def __init__(
        self,
        message: M,
        command: BaseCommand,
        transport: BaseTransport[H, M],
        *,
        arg_string: str | None = None,
        pattern_matches: list[str] | None = None,
        state: ResponseState | None = None,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self.message = message
        self.command = command
        self.transport = transport
        self.arg_string = arg_string
        self.pattern_matches = pattern_matches
        self.responses: Reconciler[H, M] = Reconciler(transport, message, state, max_length=max_length)

    @property
    def state(self) -> ResponseState:
        return self.responses.state

    @property
    def from_pattern(self) -> bool:
        return self.pattern_matches is not None

    def parse_args(self) -> str | list[str]:
        return parse_command_args(
            self.arg_string,
            self.command.args_type,
            arg_count=self.command.args_count,
            allow_single_quote=self.command.args_single_quotes,
        )

    def command_usage(self, arg_string: str | None = None, only_mention: bool = False) -> str:
        return self.command.usage(arg_string, self.guild, only_mention)

    async def run(self, runner: InvocationRunner | None = None) -> Any:
        return await (runner or InvocationRunner()).run(self)

    async def respond(
        self,
        kind: ResponseKind | str,
        content: Any,
        *,
        split: SplitPolicy | bool | None = None,
        lang: str | None = None,
        fresh_if_exhausted: bool = False,
    ) -> H | list[H]:
        return await self.responses.respond(
            kind, content, split=split, lang=lang, fresh_if_exhausted=fresh_if_exhausted
        )

    async def say(self, content: Any, *, split: SplitPolicy | bool | None = None) -> H | list[H]:
        return await self.responses.say(content, split=split)

    async def reply(self, content: Any, *, split: SplitPolicy | bool | None = None) -> H | list[H]:
        return await self.responses.reply(content, split=split)

    async def direct(self, content: Any, *, split: SplitPolicy | bool | None = None) -> H | list[H]:
        return await self.responses.direct(content, split=split)

    async def code(self, lang: str | None, content: Any, *, split: SplitPolicy | bool | None = None) -> H | list[H]:
        return await self.responses.code(lang, content, split=split)

    async def finalize(self, responses: Any) -> None:
        """Adopt ``responses`` as this invocation's output.

        ``None`` adopts everything sent or edited during the run.
        """
        if responses is None:
            responses = self.state.produced
        await self.responses.finalize(responses)

    # Shortcuts to the triggering message

    @property
    def id(self) -> Any:
        return getattr(self.message, "id", None)

    @property
    def content(self) -> str:
        return getattr(self.message, "content", "")

    @property
    def author(self) -> Any:
        return getattr(self.message, "author", None)

    @property
    def channel(self) -> Any:
        return getattr(self.message, "channel", None)

    @property
    def guild(self) -> Any:
        return getattr(self.message, "guild", None)

    @property
    def member(self) -> Any:
        return self.transport.member(self.message)


class InvocationRunner:
    """Run invocations: gate, parse, execute, respond, finalize."""

    def __init__(self, settings: Settings | None = None, signals: CommandSignals | None = None) -> None:
        self.settings = settings or Settings()
        self.signals = signals or CommandSignals()

    async def run(self, invocation: Invocation[Any, Any]) -> Any:
        with command_context(invocation.command.name):
            output = responses = None
            try:
                output, responses = await self._run(invocation)
            finally:
                await invocation.finalize(responses)
            return output

    async def _run(self, invocation: Invocation[Any, Any]) -> tuple[Any, Any]:
        command = invocation.command
        reason = self._blocked_reason(invocation)
        if reason is not None:
            logger.info("invocation.blocked command={} reason={}", command.name, reason)
            self.signals.emit_blocked(invocation, reason)
            template = self.settings.guild_only_template if reason == "guild_only" else self.settings.permission_template
            return await self._notify(invocation, template.format(command=command.name)), None

        from_pattern = invocation.from_pattern
        args = invocation.pattern_matches if from_pattern else invocation.parse_args()
        typing_count = invocation.transport.typing_count(invocation.message)
        task: asyncio.Future[Any] | None = None
        try:
            task = asyncio.ensure_future(command.run(invocation, args, from_pattern))
            self.signals.emit_run(invocation, command=command, task=task, args=args, from_pattern=from_pattern)
            result = await task
        except Exception as exc:
            if task is not None and not task.done():
                task.cancel()
            self.signals.emit_error(invocation, command=command, error=exc, args=args, from_pattern=from_pattern)
            self._stop_typing(invocation, typing_count)
            if isinstance(exc, FriendlyError):
                logger.info("invocation.friendly_error command={} error={}", command.name, exc)
                return await self._notify(invocation, str(exc)), None
            logger.opt(exception=exc).error("invocation.error command={}", command.name)
            return await self._notify(invocation, self._unexpected_error_text(invocation, exc)), None
        return result, result

    @staticmethod
    async def _notify(invocation: Invocation[Any, Any], text: str) -> Any:
        # Runner notices never fail for lack of a message to edit.
        return await invocation.respond(ResponseKind.REPLY, text, fresh_if_exhausted=True)

    @staticmethod
    def _blocked_reason(invocation: Invocation[Any, Any]) -> BlockReason | None:
        if invocation.command.guild_only and invocation.transport.is_private(invocation.message):
            return "guild_only"
        if not invocation.command.has_permission(invocation):
            return "permission"
        return None

    @staticmethod
    def _stop_typing(invocation: Invocation[Any, Any], typing_count: int) -> None:
        transport = invocation.transport
        try:
            if transport.typing_count(invocation.message) > typing_count:
                transport.stop_typing(invocation.message)
        except Exception:
            logger.exception("invocation.typing.stop_failed command={}", invocation.command.name)

    def _unexpected_error_text(self, invocation: Invocation[Any, Any], error: Exception) -> str:
        owner = self.settings.owner_name
        if owner:
            owner = invocation.transport.escape_markup(owner)
        return self.settings.render_unexpected_error(error, owner)
