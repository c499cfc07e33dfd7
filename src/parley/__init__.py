"""parley - command invocation envelope for chat bots."""

from parley.args import parse_args, parse_command_args, parse_single
from parley.errors import FriendlyError, InvalidConfigurationError, ParleyError, ResponseStateError
from parley.invocation import BaseCommand, Invocation, InvocationRunner
from parley.response import Reconciler, ResponseKind, ResponseState, SplitPolicy, split_message
from parley.signals import CommandSignals
from parley.transport import BaseTransport, Destination

__version__ = "0.1.0"

__all__ = [
    "BaseCommand",
    "BaseTransport",
    "CommandSignals",
    "Destination",
    "FriendlyError",
    "InvalidConfigurationError",
    "Invocation",
    "InvocationRunner",
    "ParleyError",
    "Reconciler",
    "ResponseKind",
    "ResponseState",
    "ResponseStateError",
    "SplitPolicy",
    "parse_args",
    "parse_command_args",
    "parse_single",
    "split_message",
]
