"""structrx: fine-grained reactive state trees for Python."""

from importlib.metadata import version as _version

__version__ = _version("structrx")

from structrx._tracking import get_pending_count
from structrx.topic import Topic
from structrx.subscriber import Subscriber, autorun, reaction
from structrx.action import action, transaction
from structrx.state import State, StateKind, create_state
from structrx.exceptions import InvalidStateInput, StructRxError
# textual NOT auto-imported — opt-in only

__all__ = [
    "create_state",
    "State",
    "StateKind",
    "Topic",
    "Subscriber",
    "autorun",
    "reaction",
    "action",
    "transaction",
    "get_pending_count",
    "InvalidStateInput",
    "StructRxError",
]
