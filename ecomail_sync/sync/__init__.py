"""
ecomail_sync.sync - Reconciliation logic

Status normalization, contact models and the decision table. The engines
live in ecomail_sync.sync.engine and ecomail_sync.sync.reverse.
"""

from ecomail_sync.sync.contact import (
    ContactRecord,
    Intent,
    PropertyMap,
    TargetSubscriber,
    ValidationError,
)
from ecomail_sync.sync.diff import SyncAction, SyncDecision, decide
from ecomail_sync.sync.status import SubscriberStatus, normalize_status

__all__ = [
    "ContactRecord",
    "TargetSubscriber",
    "PropertyMap",
    "Intent",
    "ValidationError",
    "SyncAction",
    "SyncDecision",
    "decide",
    "SubscriberStatus",
    "normalize_status",
]
