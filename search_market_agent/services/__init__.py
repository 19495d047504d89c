"""Business logic services: resolution, sequencing, notification handling."""

from .attempts import AttemptTracker
from .funding import AirdropFunder
from .pricing import ladder_price
from .reporting import ErrorReporter
from .resolver import MarketResolver
from .sequencer import TransactionSequencer
from .subscriber import ChangeSubscriber

__all__ = [
    "AttemptTracker",
    "AirdropFunder",
    "ladder_price",
    "ErrorReporter",
    "MarketResolver",
    "TransactionSequencer",
    "ChangeSubscriber",
]
