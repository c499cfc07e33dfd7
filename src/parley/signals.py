"""Signal-based invocation hooks."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal

from blinker import Signal
from loguru import logger

BlockReason = Literal["guild_only", "permission"]


class CommandSignals:
    """Observability hooks for command invocations backed by blinker signals.

    Receivers are called synchronously with the invocation as sender; their
    return values are ignored and their exceptions are logged, never raised
    into the runner.
    """

    def __init__(self) -> None:
        self.blocked = Signal("parley.command.blocked")
        self.command_run = Signal("parley.command.run")
        self.command_error = Signal("parley.command.error")

    def emit_blocked(self, invocation: Any, reason: BlockReason) -> None:
        self._emit(self.blocked, "blocked", invocation, reason=reason)

    def emit_run(self, invocation: Any, *, command: Any, task: Any, args: Any, from_pattern: bool) -> None:
        self._emit(
            self.command_run,
            "command_run",
            invocation,
            command=command,
            task=task,
            args=args,
            from_pattern=from_pattern,
        )

    def emit_error(self, invocation: Any, *, command: Any, error: BaseException, args: Any, from_pattern: bool) -> None:
        self._emit(
            self.command_error,
            "command_error",
            invocation,
            command=command,
            error=error,
            args=args,
            from_pattern=from_pattern,
        )

    def on_blocked(self, handler: Callable[..., Any]) -> Callable[[], None]:
        return self._connect(self.blocked, "blocked", handler)

    def on_run(self, handler: Callable[..., Any]) -> Callable[[], None]:
        return self._connect(self.command_run, "command_run", handler)

    def on_error(self, handler: Callable[..., Any]) -> Callable[[], None]:
        return self._connect(self.command_error, "command_error", handler)

    @staticmethod
    def _emit(signal: Signal, name: str, sender: Any, **kwargs: Any) -> None:
        # Covers receivers connected to the signal directly.
        try:
            signal.send(sender, **kwargs)
        except Exception:
            logger.exception("signal.error signal={}", name)

    @staticmethod
    def _connect(signal: Signal, name: str, handler: Callable[..., Any]) -> Callable[[], None]:
        def _receiver(sender: Any, **kwargs: Any) -> None:
            try:
                handler(sender, **kwargs)
            except Exception:
                logger.exception("signal.receiver.error signal={}", name)

        signal.connect(_receiver, weak=False)
        return lambda: signal.disconnect(_receiver)
