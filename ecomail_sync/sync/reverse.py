"""
Ecomail to Notion sync (the "pull" direction).

Mirrors subscription state, tags and profile fields recorded in Ecomail back
onto the matching Notion rows. Rows are matched by case-insensitive email.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from ecomail_sync.api.ecomail_api import EcomailAPI
from ecomail_sync.api.http_client import ApplicationError, TransportError
from ecomail_sync.api.notion_api import (
    NotionAPI,
    multi_select_value,
    option_value,
    rich_text_value,
)
from ecomail_sync.sync.contact import (
    ContactRecord,
    Intent,
    PropertyMap,
    TargetSubscriber,
    is_valid_email,
)
from ecomail_sync.sync.diff import tags_differ
from ecomail_sync.sync.engine import DEFAULT_PACING_DELAY, ContactFailure
from ecomail_sync.sync.status import SubscriberStatus

# Ecomail states that mean the contact does not want (or cannot get) mail
OPTED_OUT_STATUSES = frozenset(
    {
        SubscriberStatus.UNSUBSCRIBED,
        SubscriberStatus.HARD_BOUNCE,
        SubscriberStatus.SPAM_COMPLAINT,
    }
)

logger = logging.getLogger(__name__)


def intent_for_status(status: Any) -> Optional[Intent]:
    """
    Map an Ecomail status to the Notion intent it implies.

    Returns None for UNCONFIRMED, NOT_FOUND and opaque statuses, which
    leave the Notion intent untouched.
    """
    if status is SubscriberStatus.SUBSCRIBED:
        return Intent.OPT_IN
    if status in OPTED_OUT_STATUSES:
        return Intent.OPT_OUT
    return None


@dataclass
class ReverseSummary:
    """Counters for one Ecomail to Notion run."""

    total_subscribers: int = 0
    updated: int = 0
    unchanged: int = 0
    not_found: int = 0
    skipped_invalid: int = 0
    failed: int = 0
    dry_run: bool = False
    failures: list[ContactFailure] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    @property
    def exit_code(self) -> int:
        return 1 if self.has_failures else 0

    def summary(self) -> str:
        """Generate a human-readable summary of the run."""
        updated_label = "Would update in Notion" if self.dry_run else "Updated in Notion"
        lines = [
            "Pull Summary (dry run):" if self.dry_run else "Pull Summary:",
            f"  Ecomail subscribers: {self.total_subscribers}",
            f"  {updated_label}: {self.updated}",
            f"  Skipped (no changes): {self.unchanged}",
            f"  Not found in Notion: {self.not_found}",
            f"  Skipped (invalid email): {self.skipped_invalid}",
            f"  Failed: {self.failed}",
        ]
        if self.failures:
            lines.append("")
            lines.append("Failures:")
            for failure in self.failures:
                lines.append(f"  {failure.email}: [{failure.kind}] {failure.message}")
        return "\n".join(lines)


def build_page_updates(
    contact: ContactRecord, subscriber: TargetSubscriber, property_map: PropertyMap
) -> dict[str, Any]:
    """
    Build the Notion property updates that make a row mirror Ecomail.

    Args:
        contact: Current Notion row
        subscriber: Ecomail subscriber with the same email
        property_map: Column names to write

    Returns:
        Mapping of column name to property value; empty when in sync
    """
    updates: dict[str, Any] = {}

    wanted = intent_for_status(subscriber.status)
    if wanted is not None and wanted is not contact.intent:
        values = (
            property_map.opt_in_values
            if wanted is Intent.OPT_IN
            else property_map.opt_out_values
        )
        if values:
            updates[property_map.intent] = option_value(
                values[0], property_map.intent_type
            )

    if tags_differ(contact.tags, subscriber.tags):
        updates[property_map.tags] = multi_select_value(list(subscriber.tags))

    for name in ("name", "surname", "company"):
        target_value = getattr(subscriber, name) or None
        if target_value != getattr(contact, name):
            updates[getattr(property_map, name)] = rich_text_value(target_value)

    return updates


class ReverseSyncEngine:
    """
    Mirrors Ecomail subscribers onto the Notion database.

    Both sides are listed completely before anything is written; a listing
    failure raises EnumerationError. A failed page update is recorded and
    the loop moves on.

    Usage:
        engine = ReverseSyncEngine(ecomail, notion, property_map=PropertyMap())
        summary = engine.pull()
        print(summary.summary())
    """

    def __init__(
        self,
        ecomail: EcomailAPI,
        notion: NotionAPI,
        property_map: Optional[PropertyMap] = None,
        dry_run: bool = False,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.ecomail = ecomail
        self.notion = notion
        self.property_map = property_map or notion.property_map
        self.dry_run = dry_run
        self.pacing_delay = pacing_delay
        self._sleep = sleep

    def pull(self) -> ReverseSummary:
        """
        Run the Ecomail to Notion sync.

        Returns:
            ReverseSummary for the run

        Raises:
            EnumerationError: If either side cannot be fully listed
        """
        logger.info(f"Starting pull from Ecomail (dry_run={self.dry_run})")
        subscribers = self.ecomail.list_subscribers()
        contacts = self.notion.fetch_contacts()

        # First row wins when Notion holds duplicate emails
        by_email: dict[str, ContactRecord] = {}
        for contact in contacts:
            if contact.key:
                by_email.setdefault(contact.key, contact)

        summary = ReverseSummary(
            total_subscribers=len(subscribers), dry_run=self.dry_run
        )
        writes = 0

        for subscriber in subscribers:
            email = subscriber.email.strip()
            if not is_valid_email(email):
                logger.warning(f"Skipping Ecomail subscriber with invalid email: {email!r}")
                summary.skipped_invalid += 1
                continue

            contact = by_email.get(email.lower())
            if contact is None or not contact.page_id:
                logger.info(f"Contact not found in Notion: {email}")
                summary.not_found += 1
                continue

            updates = build_page_updates(contact, subscriber, self.property_map)
            if not updates:
                logger.debug(f"No changes needed: {email}")
                summary.unchanged += 1
                continue

            if self.dry_run:
                logger.info(f"Would update {email}: {', '.join(updates)}")
                summary.updated += 1
                continue

            if writes and self.pacing_delay > 0:
                self._sleep(self.pacing_delay)
            writes += 1

            try:
                self.notion.update_page(contact.page_id, updates)
            except (TransportError, ApplicationError) as e:
                kind = "application" if isinstance(e, ApplicationError) else "transport"
                logger.error(f"Failed to update {email} in Notion [{kind}]: {e}")
                summary.failed += 1
                summary.failures.append(ContactFailure(email, kind, str(e)))
                continue

            logger.info(f"Updated {email} in Notion: {', '.join(updates)}")
            summary.updated += 1

        logger.info(
            f"Pull finished: updated={summary.updated}, unchanged={summary.unchanged}, "
            f"not_found={summary.not_found}, failed={summary.failed}"
        )
        return summary
