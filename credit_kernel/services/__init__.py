"""Kernel services: sequence allocation and change notification."""

from credit_kernel.services.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeType,
    Collection,
    Subscription,
)
from credit_kernel.services.sequence_service import SequenceService

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChangeType",
    "Collection",
    "Subscription",
    "SequenceService",
]
