"""Response reconciliation.

A command may respond several times during one run, and a run may be repeated
(for instance when the triggering message is edited). The reconciler keeps the
messages sent for an invocation in a :class:`ResponseState` and, on a repeated
run, edits those messages in place instead of sending new ones:

* the first response call of a run edits the first unit of the previous run,
  the second call the second unit, and so on;
* inside a unit, chunks are edited pairwise, extra chunks are sent next to the
  first message, and surplus messages are deleted from the end;
* :meth:`Reconciler.finalize` deletes the units the run did not reach.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from enum import StrEnum
from typing import Any, Generic, TypeVar, assert_never

from loguru import logger

from parley.errors import InvalidConfigurationError
from parley.response.split import DEFAULT_MAX_LENGTH, SplitPolicy
from parley.response.state import ResponseState, SentUnit
from parley.transport import BaseTransport, Destination

H = TypeVar("H")
M = TypeVar("M")

CODE_FENCE = "```"


class ResponseKind(StrEnum):
    PLAIN = "plain"
    REPLY = "reply"
    DIRECT = "direct"
    CODE = "code"


def resolve_content(content: Any) -> str:
    """Render response content as text; sequences become one line per item."""
    if isinstance(content, (list, tuple)):
        return "\n".join(str(item) for item in content)
    return str(content)


class Reconciler(Generic[H, M]):
    """Send, edit and delete the response messages of one invocation."""

    def __init__(
        self,
        transport: BaseTransport[H, M],
        message: M,
        state: ResponseState | None = None,
        *,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self._transport = transport
        self._message = message
        self._state = state or ResponseState()
        self._max_length = max_length

    @property
    def state(self) -> ResponseState:
        return self._state

    def resolve_kind(self, kind: ResponseKind) -> ResponseKind:
        """Degrade the kind to what the originating context allows right now."""
        if kind is ResponseKind.REPLY and self._transport.is_private(self._message):
            kind = ResponseKind.PLAIN
        if kind is not ResponseKind.DIRECT and not self._transport.can_send(self._message):
            kind = ResponseKind.DIRECT
        return kind

    async def respond(
        self,
        kind: ResponseKind | str,
        content: Any,
        *,
        split: SplitPolicy | bool | None = None,
        lang: str | None = None,
        fresh_if_exhausted: bool = False,
    ) -> H | list[H]:
        """Send or edit one response.

        On a repeated run the next unit of the previous run is edited. With
        ``fresh_if_exhausted`` a call that finds no unit left to edit sends a new
        message instead of raising :class:`ResponseStateError`.
        """
        try:
            kind = ResponseKind(kind)
        except ValueError:
            raise InvalidConfigurationError(f"unknown response kind {kind!r}") from None
        kind = self.resolve_kind(kind)
        destination, chunks = self._render(kind, resolve_content(content), self._split_policy(split), lang)

        if not self._state.has_prior or (fresh_if_exhausted and self._state.exhausted):
            handles = [await self._transport.send(self._message, destination, chunk) for chunk in chunks]
            self._state = self._state.record(handles)
            logger.debug("response.sent kind={} chunks={}", kind, len(handles))
        else:
            self._state = self._state.advance()
            handles = await self._edit_unit(self._state.current, chunks)
            self._state = self._state.replace_current(handles)
            logger.debug("response.edited kind={} index={} chunks={}", kind, self._state.index, len(handles))
        return handles[0] if len(handles) == 1 else handles

    async def say(self, content: Any, *, split: SplitPolicy | bool | None = None) -> H | list[H]:
        return await self.respond(ResponseKind.PLAIN, content, split=split)

    async def reply(self, content: Any, *, split: SplitPolicy | bool | None = None) -> H | list[H]:
        return await self.respond(ResponseKind.REPLY, content, split=split)

    async def direct(self, content: Any, *, split: SplitPolicy | bool | None = None) -> H | list[H]:
        return await self.respond(ResponseKind.DIRECT, content, split=split)

    async def code(self, lang: str | None, content: Any, *, split: SplitPolicy | bool | None = None) -> H | list[H]:
        return await self.respond(ResponseKind.CODE, content, split=split, lang=lang)

    async def finalize(self, responses: Any) -> None:
        """Delete what the last run left behind and adopt its output."""
        stale = self._state.stale_units()
        for unit in stale:
            for handle in unit:
                await self._transport.delete(handle)
        if stale:
            logger.debug("response.finalize.deleted units={}", len(stale))
        self._state = ResponseState.from_responses(responses)

    def _split_policy(self, split: SplitPolicy | bool | None) -> SplitPolicy | None:
        if split is True:
            return SplitPolicy(max_length=self._max_length)
        if not split:
            return None
        return split

    def _render(
        self, kind: ResponseKind, content: str, policy: SplitPolicy | None, lang: str | None
    ) -> tuple[Destination, list[str]]:
        match kind:
            case ResponseKind.PLAIN:
                return Destination.CHANNEL, self._split(content, policy)
            case ResponseKind.DIRECT:
                return Destination.AUTHOR, self._split(content, policy)
            case ResponseKind.REPLY:
                prefix = f"{self._transport.mention(self._message)}, "
                if policy is not None:
                    policy = replace(policy, max_length=policy.max_length - len(prefix))
                return Destination.CHANNEL, [f"{prefix}{chunk}" for chunk in self._split(content, policy)]
            case ResponseKind.CODE:
                opening = f"{CODE_FENCE}{lang or ''}\n"
                closing = f"\n{CODE_FENCE}"
                escaped = self._transport.escape_markup(content, code_block=True)
                if policy is not None:
                    policy = policy.with_defaults(prepend=opening, append=closing)
                return Destination.CHANNEL, self._split(f"{opening}{escaped}{closing}", policy)
            case _:
                assert_never(kind)

    def _split(self, text: str, policy: SplitPolicy | None) -> list[str]:
        if policy is None:
            return [text]
        return self._transport.split(text, policy)

    async def _edit_unit(self, unit: SentUnit, chunks: Sequence[str]) -> list[H]:
        handles: list[H] = []
        for position, chunk in enumerate(chunks):
            if position < len(unit):
                handles.append(await self._transport.edit(unit[position], chunk))
            else:
                handles.append(await self._transport.send_alongside(unit[0], chunk))
        # chunks is never empty, so the first message is always kept.
        for surplus in reversed(unit[len(chunks) :]):
            await self._transport.delete(surplus)
        return handles
