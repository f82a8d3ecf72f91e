"""
Subscriber status normalization.

Ecomail reports a subscriber's state either as a numeric code or as a
mnemonic string, and a missing subscriber has no status at all. Every
representation is folded into one canonical value here, at the boundary,
so the rest of the package only ever compares SubscriberStatus members.

Unrecognized codes and labels are passed through unchanged instead of
raising; callers must treat such opaque values as "not a known success
state".
"""

from enum import Enum
from typing import Any, Union


class SubscriberStatus(Enum):
    """Canonical subscriber states. Known members carry the Ecomail code."""

    SUBSCRIBED = 1
    UNSUBSCRIBED = 2
    HARD_BOUNCE = 4
    SPAM_COMPLAINT = 5
    UNCONFIRMED = 6
    NOT_FOUND = "NOT_FOUND"


# A known SubscriberStatus, or an opaque int/str the service sent us
CanonicalStatus = Union[SubscriberStatus, int, str]

STATUS_CODES: dict[int, SubscriberStatus] = {
    1: SubscriberStatus.SUBSCRIBED,
    2: SubscriberStatus.UNSUBSCRIBED,
    4: SubscriberStatus.HARD_BOUNCE,
    5: SubscriberStatus.SPAM_COMPLAINT,
    6: SubscriberStatus.UNCONFIRMED,
}

STATUS_LABELS: dict[str, SubscriberStatus] = {
    "SUBSCRIBED": SubscriberStatus.SUBSCRIBED,
    "UNSUBSCRIBED": SubscriberStatus.UNSUBSCRIBED,
    "HARD_BOUNCE": SubscriberStatus.HARD_BOUNCE,
    "SPAM_COMPLAINT": SubscriberStatus.SPAM_COMPLAINT,
    "UNCONFIRMED": SubscriberStatus.UNCONFIRMED,
}


def normalize_status(raw_status: Any) -> CanonicalStatus:
    """
    Map an Ecomail status representation to its canonical value.

    Args:
        raw_status: Numeric code, mnemonic string, or None

    Returns:
        The matching SubscriberStatus; SubscriberStatus.NOT_FOUND for None;
        the input unchanged when it is not recognized

    Example:
        >>> normalize_status(1)
        <SubscriberStatus.SUBSCRIBED: 1>
        >>> normalize_status("UNSUBSCRIBED")
        <SubscriberStatus.UNSUBSCRIBED: 2>
        >>> normalize_status("BOGUS")
        'BOGUS'
    """
    if raw_status is None:
        return SubscriberStatus.NOT_FOUND

    if isinstance(raw_status, SubscriberStatus):
        return raw_status

    # bool is an int subclass; True must not read as "subscribed"
    if isinstance(raw_status, bool):
        return raw_status

    if isinstance(raw_status, int):
        return STATUS_CODES.get(raw_status, raw_status)

    if isinstance(raw_status, str):
        return STATUS_LABELS.get(raw_status.strip().upper(), raw_status)

    return raw_status


def is_known_status(status: CanonicalStatus) -> bool:
    """Return True if status is a SubscriberStatus member, not an opaque value."""
    return isinstance(status, SubscriberStatus)


def status_label(status: CanonicalStatus) -> str:
    """Human readable label for logs, e.g. ``SUBSCRIBED`` or ``opaque(9)``."""
    if isinstance(status, SubscriberStatus):
        return status.name
    return f"opaque({status!r})"
