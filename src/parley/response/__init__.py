"""Response splitting, state and reconciliation."""

from parley.response.reconciler import Reconciler, ResponseKind
from parley.response.split import SplitPolicy, split_message
from parley.response.state import ResponseState

__all__ = ["Reconciler", "ResponseKind", "ResponseState", "SplitPolicy", "split_message"]
