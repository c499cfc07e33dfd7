"""Response state of one invocation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from parley.errors import ResponseStateError

SentUnit = tuple[Any, ...]


def normalize_units(responses: Any) -> tuple[SentUnit, ...]:
    """Turn a command's output into a tuple of sent units.

    Accepts ``None``, a single handle, or a sequence whose items are handles or
    sequences of handles.
    """
    if responses is None:
        return ()
    if not isinstance(responses, (list, tuple)):
        return ((responses,),)
    units: list[SentUnit] = []
    for item in responses:
        if isinstance(item, (list, tuple)):
            if item:
                units.append(tuple(item))
        elif item is not None:
            units.append((item,))
    return tuple(units)


@dataclass(frozen=True)
class ResponseState:
    """Messages sent for one invocation.

    ``units`` are left over from the previous run and are the targets of edits,
    ``index`` points at the unit the latest edit went to (``-1`` before the first
    edit), and ``produced`` collects what the current run has sent or edited.
    """

    units: tuple[SentUnit, ...] = ()
    index: int = -1
    produced: tuple[SentUnit, ...] = ()

    def __post_init__(self) -> None:
        if self.index != -1 and not 0 <= self.index < len(self.units):
            raise ResponseStateError(f"response index {self.index} out of range for {len(self.units)} sent units")

    @property
    def has_prior(self) -> bool:
        return bool(self.units)

    @property
    def exhausted(self) -> bool:
        """Whether every unit from the previous run has been edited already."""
        return self.index + 1 >= len(self.units)

    @property
    def current(self) -> SentUnit:
        if self.index == -1:
            raise ResponseStateError("no response is selected for editing")
        return self.units[self.index]

    def advance(self) -> ResponseState:
        """Move the cursor to the next unit to edit."""
        return replace(self, index=self.index + 1)

    def record(self, unit: Sequence[Any]) -> ResponseState:
        """Record a freshly sent unit."""
        return replace(self, produced=(*self.produced, tuple(unit)))

    def replace_current(self, unit: Sequence[Any]) -> ResponseState:
        """Store the edited version of the unit under the cursor."""
        units = list(self.units)
        units[self.index] = tuple(unit)
        return replace(self, units=tuple(units), produced=(*self.produced, tuple(unit)))

    def stale_units(self) -> tuple[SentUnit, ...]:
        """Units from the previous run that the current run did not reach."""
        return self.units[self.index + 1 :]

    @classmethod
    def from_responses(cls, responses: Any) -> ResponseState:
        return cls(units=normalize_units(responses))
