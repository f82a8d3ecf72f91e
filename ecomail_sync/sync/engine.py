"""
Sync engine for Notion to Ecomail reconciliation.

Drives the per-contact loop: validate, fetch the Ecomail subscriber,
decide, execute, classify the outcome and pace the next request. Contacts
are processed strictly one at a time in source order. A failure on one
contact is recorded and never stops the loop; only failing to list the
source contacts aborts a run.
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Optional

from ecomail_sync.api.ecomail_api import EcomailAPI
from ecomail_sync.api.http_client import (
    ApplicationError,
    EnumerationError,
    RequestTimeoutError,
    TransportError,
)
from ecomail_sync.api.notion_api import NotionAPI
from ecomail_sync.sync.contact import ContactRecord, Intent, ValidationError
from ecomail_sync.sync.diff import SyncAction, SyncDecision, decide

# Fixed wait between successive contacts
DEFAULT_PACING_DELAY = 0.1  # seconds

# Process exit codes derived from a run
EXIT_OK = 0
EXIT_FAILURES = 1

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactFailure:
    """
    One contact that could not be reconciled.

    Attributes:
        email: Contact email (or page id when the email is missing)
        kind: Error class: validation, timeout, transport, application, unexpected
        message: Underlying error message
        action: Action that was being executed, if one was decided
    """

    email: str
    kind: str
    message: str
    action: Optional[SyncAction] = None


@dataclass
class RunSummary:
    """
    Counters for one reconciliation run.

    Rejected contacts are counted in both ``rejected`` and ``failed``.
    """

    created: int = 0
    updated: int = 0
    unsubscribed: int = 0
    skipped_unchanged: int = 0
    skipped_unset: int = 0
    rejected: int = 0
    failed: int = 0
    dry_run: bool = False
    failures: list[ContactFailure] = field(default_factory=list)

    @property
    def created_or_updated(self) -> int:
        """Upserts and attribute updates together."""
        return self.created + self.updated

    @property
    def total_processed(self) -> int:
        """Contacts that reached a final outcome."""
        return (
            self.created
            + self.updated
            + self.unsubscribed
            + self.skipped_unchanged
            + self.skipped_unset
            + self.failed
        )

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    @property
    def exit_code(self) -> int:
        """EXIT_FAILURES whenever any contact failed, regardless of successes."""
        return EXIT_FAILURES if self.has_failures else EXIT_OK

    def record_failure(self, failure: ContactFailure) -> None:
        self.failed += 1
        self.failures.append(failure)

    def summary(self) -> str:
        """
        Generate a human-readable summary of the run.

        Returns:
            Formatted multi-line string
        """
        prefix = "Would be " if self.dry_run else ""
        lines = [
            "Sync Summary (dry run):" if self.dry_run else "Sync Summary:",
            f"  Contacts processed: {self.total_processed}",
            f"  {prefix}Created: {self.created}",
            f"  {prefix}Updated: {self.updated}",
            f"  {prefix}Unsubscribed: {self.unsubscribed}",
            f"  Skipped (no changes): {self.skipped_unchanged}",
            f"  Skipped (intent not set): {self.skipped_unset}",
            f"  Rejected (invalid): {self.rejected}",
            f"  Failed: {self.failed}",
        ]

        if self.failures:
            lines.append("")
            lines.append("Failures:")
            for failure in self.failures:
                lines.append(f"  {failure.email}: [{failure.kind}] {failure.message}")

        return "\n".join(lines)


def classify_error(error: Exception) -> str:
    """Map an exception to the failure kind recorded in the summary."""
    if isinstance(error, ValidationError):
        return "validation"
    if isinstance(error, RequestTimeoutError):
        return "timeout"
    if isinstance(error, TransportError):
        return "transport"
    if isinstance(error, ApplicationError):
        return "application"
    return "unexpected"


class SyncEngine:
    """
    One-directional reconciliation engine (Notion -> Ecomail).

    Usage:
        client = RequestClient()
        engine = SyncEngine(
            ecomail=EcomailAPI(client, api_key, list_id),
            source=NotionAPI(client, token, database_id),
        )

        # Enumerate Notion and reconcile everything
        summary = engine.sync()

        # Or reconcile an explicit sequence of contacts
        summary = engine.run(contacts)
        sys.exit(summary.exit_code)
    """

    def __init__(
        self,
        ecomail: EcomailAPI,
        source: Optional[NotionAPI] = None,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        dry_run: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the sync engine.

        Args:
            ecomail: Target subscriber service
            source: Source contact store, needed by sync() only
            pacing_delay: Seconds to wait between successive contacts
            dry_run: If True, decide everything but send no mutations
            sleep: Sleep function, injectable for tests
        """
        self.ecomail = ecomail
        self.source = source
        self.pacing_delay = pacing_delay
        self.dry_run = dry_run
        self._sleep = sleep

    def sync(self, limit: Optional[int] = None) -> RunSummary:
        """
        Enumerate every Notion contact, then reconcile them.

        Args:
            limit: Only process the first ``limit`` contacts

        Returns:
            RunSummary for the run

        Raises:
            EnumerationError: If the source cannot be fully listed
        """
        if self.source is None:
            raise ValueError("SyncEngine.sync() needs a source contact store")

        logger.info(f"Starting sync (dry_run={self.dry_run})")
        contacts = self.source.fetch_contacts()
        logger.info(f"Found {len(contacts)} contacts in Notion")

        if limit is not None:
            contacts = contacts[:limit]
            logger.info(f"Limiting run to {len(contacts)} contacts")

        return self.run(contacts)

    def run(self, contacts: Iterable[ContactRecord]) -> RunSummary:
        """
        Reconcile contacts one at a time, in order.

        Args:
            contacts: Source contacts. A lazy iterable may raise
                EnumerationError; it then propagates with the counters
                accumulated so far attached as ``error.summary``.

        Returns:
            RunSummary with every contact's outcome
        """
        summary = RunSummary(dry_run=self.dry_run)
        first = True

        try:
            for contact in contacts:
                if not first and self.pacing_delay > 0:
                    self._sleep(self.pacing_delay)
                first = False

                self._process_contact(contact, summary)
        except EnumerationError as e:
            e.summary = summary
            logger.error(f"Aborting run, source enumeration failed: {e}")
            raise

        level = logging.WARNING if summary.has_failures else logging.INFO
        logger.log(
            level,
            f"Sync finished: created={summary.created}, updated={summary.updated}, "
            f"unsubscribed={summary.unsubscribed}, "
            f"skipped={summary.skipped_unchanged + summary.skipped_unset}, "
            f"rejected={summary.rejected}, failed={summary.failed}",
        )
        return summary

    def _process_contact(self, contact: ContactRecord, summary: RunSummary) -> None:
        """Reconcile one contact and update summary; never raises per-contact errors."""
        label = contact.email or f"page {contact.page_id or '?'}"

        try:
            contact.validate()
        except ValidationError as e:
            logger.warning(f"Rejected {label}: {e}")
            summary.rejected += 1
            summary.record_failure(
                ContactFailure(label, "validation", str(e), SyncAction.REJECT)
            )
            return

        decision: Optional[SyncDecision] = None
        try:
            target = self.ecomail.get_subscriber(contact.email.strip())
            decision = decide(contact, target)
            logger.debug(f"{label}: {decision.action.value} ({decision.reason})")

            if decision.action is SyncAction.SKIP:
                if contact.intent is Intent.UNSET:
                    summary.skipped_unset += 1
                else:
                    summary.skipped_unchanged += 1
                logger.info(f"Skipped {label}: {decision.reason}")
                return

            self._execute(decision, label)

        except (TransportError, ApplicationError) as e:
            self._record_error(summary, label, e, decision)
            return
        except Exception as e:
            logger.exception(f"Unexpected error syncing {label}: {e}")
            self._record_error(summary, label, e, decision)
            return

        self._count_success(summary, decision.action)

    def _execute(self, decision: SyncDecision, label: str) -> None:
        """Send the mutation for a non-skip decision."""
        verb = {
            SyncAction.CREATE: "create",
            SyncAction.UPDATE_KEEP_SUBSCRIBED: "update",
            SyncAction.UPDATE_KEEP_UNSUBSCRIBED: "update (keeping unsubscribed)",
            SyncAction.UNSUBSCRIBE: "unsubscribe",
        }[decision.action]

        if self.dry_run:
            logger.info(f"Would {verb} {label}: {decision.reason}")
            return

        if decision.action.is_upsert:
            self.ecomail.upsert_subscriber(decision.payload)
        else:
            self.ecomail.update_subscriber(decision.payload)

        logger.info(f"Synced {label}: {verb} ({decision.reason})")

    def _count_success(self, summary: RunSummary, action: SyncAction) -> None:
        if action is SyncAction.CREATE:
            summary.created += 1
        elif action in (
            SyncAction.UPDATE_KEEP_SUBSCRIBED,
            SyncAction.UPDATE_KEEP_UNSUBSCRIBED,
        ):
            summary.updated += 1
        elif action is SyncAction.UNSUBSCRIBE:
            summary.unsubscribed += 1

    def _record_error(
        self,
        summary: RunSummary,
        label: str,
        error: Exception,
        decision: Optional[SyncDecision],
    ) -> None:
        kind = classify_error(error)
        action = decision.action if decision else None
        stage = f" during {action.value}" if action else " while fetching subscriber"
        logger.error(f"Failed {label}{stage} [{kind}]: {error}")
        summary.record_failure(ContactFailure(label, kind, str(error), action))

    def __repr__(self) -> str:
        return (
            f"SyncEngine(list_id={self.ecomail.list_id!r}, "
            f"pacing_delay={self.pacing_delay}, dry_run={self.dry_run})"
        )
