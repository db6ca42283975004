"""Change notifications and the cache invalidation they trigger."""

from .invalidation import INVALIDATION_TABLE, RealtimeInvalidator
from .stream import ChangeStream, InProcessChangeStream, Subscription

__all__ = ["INVALIDATION_TABLE", "RealtimeInvalidator", "ChangeStream", "InProcessChangeStream", "Subscription"]
