"""Application-level exception types for parley."""

from __future__ import annotations


class ParleyError(Exception):
    """Base exception for parley."""


class ConfigurationError(ParleyError):
    """Base exception for configuration and command definition errors."""


class InvalidConfigurationError(ConfigurationError, ValueError):
    """Raised when a command or response option names an unknown mode."""


class FriendlyError(ParleyError):
    """Raised by command logic with a message meant for the invoking user."""


class ResponseStateError(ParleyError, RuntimeError):
    """Raised when the response cursor and the sent messages are out of sync."""
