"""
Contact and subscriber data models for Notion to Ecomail reconciliation.

Provides:
- ContactRecord: one Notion database row, the source of truth
- TargetSubscriber: the current Ecomail view of the same email
- PropertyMap: which Notion columns hold which contact fields
- Email shape validation used to reject malformed contacts
"""

import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ecomail_sync.sync.status import CanonicalStatus, normalize_status

# Basic local@domain.tld shape; deliverability is Ecomail's problem
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s.]+(\.[^@\s.]+)+$")

# Default Notion column names
DEFAULT_EMAIL_PROPERTY = "Email"
DEFAULT_NAME_PROPERTY = "Jméno"
DEFAULT_SURNAME_PROPERTY = "Příjmení"
DEFAULT_COMPANY_PROPERTY = "Firma"
DEFAULT_TAGS_PROPERTY = "Tags"
DEFAULT_INTENT_PROPERTY = "Marketingový status"
DEFAULT_OPT_IN_VALUES = ("Ano",)
DEFAULT_OPT_OUT_VALUES = ("Ne",)


class ValidationError(Exception):
    """Raised when a contact record is structurally invalid (e.g. bad email)."""

    pass


class Intent(Enum):
    """The source's declared subscription decision for a contact."""

    OPT_IN = "opt_in"
    OPT_OUT = "opt_out"
    UNSET = "unset"


def _fold(value: str) -> str:
    """NFC-normalize and casefold, so NFD column names still match."""
    return unicodedata.normalize("NFC", value).casefold().strip()


def is_valid_email(email: Optional[str]) -> bool:
    """Check that email is a non-empty string shaped like local@domain.tld."""
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


@dataclass(frozen=True)
class PropertyMap:
    """
    Names of the Notion columns that hold each contact field.

    Attributes:
        email: Column of type ``email`` (or text) with the address
        name: First name column (rich text)
        surname: Last name column (rich text)
        company: Company column (rich text)
        tags: Multi-select column with the tags to mirror
        intent: Select/status column declaring the subscription decision
        intent_type: Notion property type of the intent column, used for writes
        opt_in_values: Intent values meaning "subscribe"
        opt_out_values: Intent values meaning "unsubscribe"
    """

    email: str = DEFAULT_EMAIL_PROPERTY
    name: str = DEFAULT_NAME_PROPERTY
    surname: str = DEFAULT_SURNAME_PROPERTY
    company: str = DEFAULT_COMPANY_PROPERTY
    tags: str = DEFAULT_TAGS_PROPERTY
    intent: str = DEFAULT_INTENT_PROPERTY
    intent_type: str = "select"
    opt_in_values: tuple[str, ...] = DEFAULT_OPT_IN_VALUES
    opt_out_values: tuple[str, ...] = DEFAULT_OPT_OUT_VALUES

    def intent_from_value(self, value: Optional[str]) -> Intent:
        """
        Map a raw intent column value to an Intent.

        Anything that is not a configured opt-in or opt-out value,
        including an empty cell, is Intent.UNSET.
        """
        if not value:
            return Intent.UNSET
        folded = _fold(value)
        if folded in {_fold(v) for v in self.opt_in_values}:
            return Intent.OPT_IN
        if folded in {_fold(v) for v in self.opt_out_values}:
            return Intent.OPT_OUT
        return Intent.UNSET


def find_property(properties: dict[str, Any], name: str) -> Optional[dict[str, Any]]:
    """
    Look up a Notion property by column name.

    Tries an exact match first, then a match after NFC normalization and
    case folding.
    """
    if name in properties:
        return properties[name]

    wanted = _fold(name)
    for key, value in properties.items():
        if _fold(key) == wanted:
            return value
    return None


def property_text(prop: Optional[dict[str, Any]]) -> Optional[str]:
    """
    Extract a single text value from a Notion property object.

    Handles email, rich_text, title, select, status, url, phone_number and
    number properties. Returns None for empty or unsupported properties.
    """
    if not prop:
        return None

    prop_type = prop.get("type")

    if prop_type in ("rich_text", "title"):
        parts = prop.get(prop_type) or []
        text = "".join(p.get("plain_text", "") for p in parts).strip()
        return text or None

    if prop_type in ("select", "status"):
        option = prop.get(prop_type)
        return option.get("name") if option else None

    if prop_type in ("email", "url", "phone_number"):
        value = prop.get(prop_type)
        return value.strip() if isinstance(value, str) and value.strip() else None

    if prop_type == "number":
        value = prop.get("number")
        return None if value is None else str(value)

    return None


def property_tags(prop: Optional[dict[str, Any]]) -> list[str]:
    """Extract multi-select option names, keeping Notion's order."""
    if not prop or prop.get("type") != "multi_select":
        return []
    return [
        option["name"] for option in prop.get("multi_select") or [] if option.get("name")
    ]


@dataclass(frozen=True)
class ContactRecord:
    """
    A contact as declared by the Notion database.

    Attributes:
        email: Address as entered; identity is case-insensitive
        name: First name, or None when empty
        surname: Last name, or None when empty
        company: Company name, or None when empty
        tags: Tags in source order; an empty list is meaningful (clear tags)
        intent: Declared subscription decision
        page_id: Notion page id (stable per-record identifier)

    Usage:
        contact = ContactRecord.from_notion_page(page, PropertyMap())
        contact.validate()
    """

    email: Optional[str]
    name: Optional[str] = None
    surname: Optional[str] = None
    company: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    intent: Intent = Intent.UNSET
    page_id: Optional[str] = None

    @property
    def key(self) -> str:
        """Case-insensitive identity key."""
        return (self.email or "").strip().lower()

    def validate(self) -> None:
        """
        Check structural shape.

        Raises:
            ValidationError: If the email is missing or malformed
        """
        if not self.email or not self.email.strip():
            raise ValidationError(f"Contact {self.page_id or '?'} has no email")
        if not is_valid_email(self.email):
            raise ValidationError(f"Malformed email address: {self.email!r}")

    @classmethod
    def from_notion_page(
        cls, page: dict[str, Any], property_map: PropertyMap
    ) -> "ContactRecord":
        """
        Build a ContactRecord from a Notion database query result.

        Example page structure::

            {
                'id': 'a1b2...',
                'properties': {
                    'Email': {'type': 'email', 'email': 'jan@example.com'},
                    'Jméno': {'type': 'rich_text', 'rich_text': [{'plain_text': 'Jan'}]},
                    'Tags': {'type': 'multi_select', 'multi_select': [{'name': 'vip'}]},
                    'Marketingový status': {'type': 'select', 'select': {'name': 'Ano'}}
                }
            }
        """
        properties = page.get("properties") or {}

        def text(column: str) -> Optional[str]:
            return property_text(find_property(properties, column))

        email = text(property_map.email)

        return cls(
            email=email.strip() if email else None,
            name=text(property_map.name),
            surname=text(property_map.surname),
            company=text(property_map.company),
            tags=property_tags(find_property(properties, property_map.tags)),
            intent=property_map.intent_from_value(text(property_map.intent)),
            page_id=page.get("id"),
        )


@dataclass(frozen=True)
class TargetSubscriber:
    """
    The Ecomail subscriber currently stored for an email.

    Attributes:
        email: Address as stored by Ecomail
        status: Canonical status (see status.normalize_status)
        tags: Current tags on the subscriber
        name: First name, or None
        surname: Last name, or None
        company: Company name, or None
    """

    email: str
    status: CanonicalStatus
    tags: list[str] = field(default_factory=list)
    name: Optional[str] = None
    surname: Optional[str] = None
    company: Optional[str] = None

    @classmethod
    def from_api_response(
        cls, data: dict[str, Any], list_id: Optional[str] = None
    ) -> "TargetSubscriber":
        """
        Build a TargetSubscriber from an Ecomail subscriber body.

        The subscriber may be flat or wrapped in ``subscriber``/``data``. The
        status is read from the subscriber, then from the wrapper, then from
        the entry for ``list_id`` under ``lists``.
        """
        outer = data
        for wrapper in ("subscriber", "data"):
            inner = data.get(wrapper)
            if isinstance(inner, dict):
                data = inner
                break

        raw_status = data.get("status")
        if raw_status is None and outer is not data:
            # List items carry the per-list status beside the subscriber
            raw_status = outer.get("status")
        if raw_status is None and list_id is not None:
            lists = data.get("lists")
            if isinstance(lists, dict):
                entry = lists.get(str(list_id))
                if isinstance(entry, dict):
                    raw_status = entry.get("status")

        return cls(
            email=data.get("email") or "",
            status=normalize_status(raw_status),
            tags=_tag_names(data.get("tags")),
            name=data.get("name") or None,
            surname=data.get("surname") or None,
            company=data.get("company") or None,
        )


def _tag_names(raw_tags: Any) -> list[str]:
    """Ecomail sends tags as strings; tolerate {'name': ...} objects too."""
    if not isinstance(raw_tags, list):
        return []
    names = []
    for tag in raw_tags:
        if isinstance(tag, dict):
            tag = tag.get("name")
        if isinstance(tag, str) and tag:
            names.append(tag)
    return names
