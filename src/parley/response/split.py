"""Length-based message splitting."""

from __future__ import annotations

from dataclasses import dataclass, replace

from parley.errors import InvalidConfigurationError

DEFAULT_MAX_LENGTH = 2000


@dataclass(frozen=True)
class SplitPolicy:
    """How to split text that exceeds the platform message length."""

    max_length: int = DEFAULT_MAX_LENGTH
    char: str = "\n"
    prepend: str = ""
    append: str = ""

    def with_defaults(self, *, prepend: str, append: str) -> SplitPolicy:
        """Fill in prepend/append only where the caller left them empty."""
        return replace(self, prepend=self.prepend or prepend, append=self.append or append)


def split_message(text: str, policy: SplitPolicy | None = None) -> list[str]:
    """Split text into chunks that each fit into one message.

    Every chunk but the last gets ``policy.append`` and every chunk but the first
    gets ``policy.prepend``, so text already wrapped in a code fence stays fenced
    in every chunk.
    """
    policy = policy or SplitPolicy()
    if len(text) <= policy.max_length:
        return [text]

    budget = policy.max_length - len(policy.prepend) - len(policy.append)
    if budget <= 0:
        raise InvalidConfigurationError(
            f"split max_length {policy.max_length} leaves no room for prepend/append"
        )

    pieces: list[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= budget:
            pieces.append(remaining)
            break
        # A separator starting right at the budget still closes a full chunk.
        split_at = remaining.rfind(policy.char, 0, budget + len(policy.char)) if policy.char else -1
        if split_at <= 0:
            # No split character in range: hard cut.
            pieces.append(remaining[:budget])
            remaining = remaining[budget:]
        else:
            pieces.append(remaining[:split_at])
            remaining = remaining[split_at + len(policy.char) :]

    last = len(pieces) - 1
    return [
        f"{policy.prepend if i > 0 else ''}{piece}{policy.append if i < last else ''}" for i, piece in enumerate(pieces)
    ]
