"""
Decision logic for Notion to Ecomail reconciliation.

decide() is a pure function: given the source contact and the current
Ecomail subscriber (or None when Ecomail has no such subscriber) it returns
the action to take and the exact payload to send. It performs no I/O, so
the whole decision table can be tested without a network.

Decision table:

    intent   target status          attributes differ   action
    -------  ---------------------  ------------------  ----------------------
    UNSET    any                    -                   SKIP
    OPT_IN   SUBSCRIBED             no                  SKIP
    OPT_IN   SUBSCRIBED             yes                 UPDATE_KEEP_SUBSCRIBED
    OPT_IN   anything else          -                   CREATE
    OPT_OUT  UNSUBSCRIBED           no                  SKIP
    OPT_OUT  UNSUBSCRIBED           yes                 UPDATE_KEEP_UNSUBSCRIBED
    OPT_OUT  NOT_FOUND              -                   SKIP
    OPT_OUT  anything else          -                   UNSUBSCRIBE

Attribute policy: tags are always sent in full (an empty list clears them
remotely). name, surname and company are compared and sent only when the
source value is non-empty, so an empty Notion cell never blanks out a value
stored in Ecomail.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ecomail_sync.sync.contact import ContactRecord, Intent, TargetSubscriber
from ecomail_sync.sync.status import SubscriberStatus, status_label

# Profile fields only ever added or changed, never cleared
PROFILE_FIELDS = ("name", "surname", "company")


class SyncAction(Enum):
    """What has to happen to one contact in Ecomail."""

    CREATE = "create"
    UPDATE_KEEP_SUBSCRIBED = "update_keep_subscribed"
    UPDATE_KEEP_UNSUBSCRIBED = "update_keep_unsubscribed"
    UNSUBSCRIBE = "unsubscribe"
    SKIP = "skip"
    REJECT = "reject"

    @property
    def is_upsert(self) -> bool:
        """CREATE and UPDATE_KEEP_SUBSCRIBED share the same upsert call."""
        return self in (SyncAction.CREATE, SyncAction.UPDATE_KEEP_SUBSCRIBED)


@dataclass(frozen=True)
class SyncDecision:
    """
    Result of decide().

    Attributes:
        action: The SyncAction to execute
        payload: Subscriber fields to send; empty for SKIP
        reason: Short explanation for logs
        changed_fields: Attributes that differ (for updates)
    """

    action: SyncAction
    payload: dict[str, Any] = field(default_factory=dict)
    reason: str = ""
    changed_fields: tuple[str, ...] = ()


def tags_differ(source_tags: list[str], target_tags: list[str]) -> bool:
    """
    Compare two tag lists ignoring order.

    Both sides are copied before sorting; the caller's lists are never
    reordered.
    """
    left = sorted(list(source_tags or []))
    right = sorted(list(target_tags or []))
    if len(left) != len(right):
        return True
    return any(a != b for a, b in zip(left, right))


def changed_attributes(contact: ContactRecord, target: TargetSubscriber) -> list[str]:
    """
    List the attributes that would change Ecomail if synced.

    Returns:
        Field names among ``tags`` and PROFILE_FIELDS. A profile field is
        only reported when the Notion value is non-empty and differs.
    """
    changed = []
    if tags_differ(contact.tags, target.tags):
        changed.append("tags")

    for name in PROFILE_FIELDS:
        source_value = getattr(contact, name)
        if source_value and source_value != getattr(target, name):
            changed.append(name)

    return changed


def build_payload(contact: ContactRecord, status: SubscriberStatus) -> dict[str, Any]:
    """
    Build the subscriber fields for an upsert or attribute update.

    ``tags`` is always present, including when empty. Profile fields are
    included only when non-empty in Notion.
    """
    payload: dict[str, Any] = {
        "email": contact.email.strip() if contact.email else contact.email,
        "status": status.value,
        "tags": list(contact.tags),
    }
    for name in PROFILE_FIELDS:
        value = getattr(contact, name)
        if value:
            payload[name] = value
    return payload


def decide(
    contact: ContactRecord, target: Optional[TargetSubscriber]
) -> SyncDecision:
    """
    Decide what to do with one contact.

    Args:
        contact: Validated source contact
        target: Current Ecomail subscriber, or None if it does not exist

    Returns:
        SyncDecision with the action and payload
    """
    if contact.intent is Intent.UNSET:
        return SyncDecision(SyncAction.SKIP, reason="intent not set in Notion")

    status = target.status if target is not None else SubscriberStatus.NOT_FOUND

    if contact.intent is Intent.OPT_IN:
        if target is not None and status is SubscriberStatus.SUBSCRIBED:
            changed = changed_attributes(contact, target)
            if not changed:
                return SyncDecision(SyncAction.SKIP, reason="already in sync")
            return SyncDecision(
                SyncAction.UPDATE_KEEP_SUBSCRIBED,
                payload=build_payload(contact, SubscriberStatus.SUBSCRIBED),
                reason=f"changed: {', '.join(changed)}",
                changed_fields=tuple(changed),
            )

        return SyncDecision(
            SyncAction.CREATE,
            payload=build_payload(contact, SubscriberStatus.SUBSCRIBED),
            reason=f"opted in, Ecomail status {status_label(status)}",
        )

    # Intent.OPT_OUT
    if status is SubscriberStatus.NOT_FOUND:
        return SyncDecision(SyncAction.SKIP, reason="opted out, not in Ecomail")

    if target is not None and status is SubscriberStatus.UNSUBSCRIBED:
        changed = changed_attributes(contact, target)
        if not changed:
            return SyncDecision(SyncAction.SKIP, reason="already unsubscribed")
        return SyncDecision(
            SyncAction.UPDATE_KEEP_UNSUBSCRIBED,
            payload=build_payload(contact, SubscriberStatus.UNSUBSCRIBED),
            reason=f"changed: {', '.join(changed)}",
            changed_fields=tuple(changed),
        )

    return SyncDecision(
        SyncAction.UNSUBSCRIBE,
        payload={
            "email": contact.email.strip() if contact.email else contact.email,
            "status": SubscriberStatus.UNSUBSCRIBED.value,
        },
        reason=f"opted out, Ecomail status {status_label(status)}",
    )
