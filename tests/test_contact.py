"""
Tests for the contact data models.

Covers Notion row parsing, email validation and Ecomail subscriber parsing.
"""

import unicodedata

import pytest

from ecomail_sync.sync.contact import (
    ContactRecord,
    Intent,
    PropertyMap,
    TargetSubscriber,
    ValidationError,
    find_property,
    is_valid_email,
    property_tags,
    property_text,
)
from ecomail_sync.sync.status import SubscriberStatus


def rich_text(text):
    return {"type": "rich_text", "rich_text": [{"plain_text": text}] if text else []}


def notion_page(
    email="jan@example.com",
    name="Jan",
    surname="Novák",
    company="ACME",
    tags=("vip",),
    intent="Ano",
    page_id="page-1",
):
    return {
        "id": page_id,
        "properties": {
            "Email": {"type": "email", "email": email},
            "Jméno": rich_text(name),
            "Příjmení": rich_text(surname),
            "Firma": rich_text(company),
            "Tags": {
                "type": "multi_select",
                "multi_select": [{"name": t} for t in tags],
            },
            "Marketingový status": {
                "type": "select",
                "select": {"name": intent} if intent else None,
            },
        },
    }


class TestEmailValidation:
    """Tests for is_valid_email()."""

    @pytest.mark.parametrize(
        "email", ["jan@example.com", "a.b+c@sub.example.cz", " jan@example.com "]
    )
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize(
        "email",
        [
            None,
            "",
            "jan",
            "jan@",
            "@example.com",
            "jan@example",
            "a b@x.cz",
            "a@x..com",
            "a@.x.com",
            "a@x.com.",
        ],
    )
    def test_invalid(self, email):
        assert not is_valid_email(email)


class TestPropertyMap:
    """Tests for intent mapping."""

    def test_default_values(self):
        pm = PropertyMap()
        assert pm.intent_from_value("Ano") is Intent.OPT_IN
        assert pm.intent_from_value("Ne") is Intent.OPT_OUT

    def test_empty_and_unknown_are_unset(self):
        pm = PropertyMap()
        assert pm.intent_from_value(None) is Intent.UNSET
        assert pm.intent_from_value("") is Intent.UNSET
        assert pm.intent_from_value("Možná") is Intent.UNSET

    def test_matching_ignores_case_and_whitespace(self):
        pm = PropertyMap()
        assert pm.intent_from_value(" ano ") is Intent.OPT_IN

    def test_custom_values(self):
        pm = PropertyMap(opt_in_values=("Yes", "Y"), opt_out_values=("No",))
        assert pm.intent_from_value("y") is Intent.OPT_IN
        assert pm.intent_from_value("Ano") is Intent.UNSET


class TestPropertyHelpers:
    """Tests for Notion property extraction helpers."""

    def test_find_property_exact(self):
        props = {"Email": {"type": "email", "email": "a@b.cz"}}
        assert find_property(props, "Email") is props["Email"]

    def test_find_property_matches_nfd_column_name(self):
        """Columns stored in NFD form are found by their NFC name."""
        nfd_name = unicodedata.normalize("NFD", "Příjmení")
        props = {nfd_name: rich_text("Novák")}
        assert find_property(props, "Příjmení") is props[nfd_name]

    def test_find_property_case_insensitive(self):
        props = {"email": {"type": "email", "email": "a@b.cz"}}
        assert find_property(props, "Email") is props["email"]

    def test_find_property_missing(self):
        assert find_property({}, "Email") is None

    def test_property_text_types(self):
        assert property_text(rich_text("  Jan ")) == "Jan"
        assert property_text({"type": "title", "title": [{"plain_text": "T"}]}) == "T"
        assert property_text({"type": "select", "select": {"name": "Ano"}}) == "Ano"
        assert property_text({"type": "status", "status": {"name": "Ne"}}) == "Ne"
        assert property_text({"type": "email", "email": "a@b.cz"}) == "a@b.cz"
        assert property_text({"type": "number", "number": 5}) == "5"

    def test_property_text_empty(self):
        assert property_text(None) is None
        assert property_text(rich_text("")) is None
        assert property_text({"type": "select", "select": None}) is None
        assert property_text({"type": "checkbox", "checkbox": True}) is None

    def test_property_tags_keeps_order(self):
        prop = {
            "type": "multi_select",
            "multi_select": [{"name": "b"}, {"name": "a"}],
        }
        assert property_tags(prop) == ["b", "a"]

    def test_property_tags_wrong_type(self):
        assert property_tags(rich_text("vip")) == []


class TestContactRecordFromNotion:
    """Tests for ContactRecord.from_notion_page()."""

    def test_full_row(self):
        contact = ContactRecord.from_notion_page(notion_page(), PropertyMap())

        assert contact.email == "jan@example.com"
        assert contact.name == "Jan"
        assert contact.surname == "Novák"
        assert contact.company == "ACME"
        assert contact.tags == ["vip"]
        assert contact.intent is Intent.OPT_IN
        assert contact.page_id == "page-1"

    def test_empty_cells(self):
        page = notion_page(name="", company="", tags=(), intent=None)
        contact = ContactRecord.from_notion_page(page, PropertyMap())

        assert contact.name is None
        assert contact.company is None
        assert contact.tags == []
        assert contact.intent is Intent.UNSET

    def test_missing_email(self):
        contact = ContactRecord.from_notion_page(notion_page(email=None), PropertyMap())
        assert contact.email is None

    def test_custom_column_names(self):
        page = {
            "id": "p",
            "properties": {
                "E-mail": {"type": "email", "email": "x@y.cz"},
                "Newsletter": {"type": "status", "status": {"name": "Yes"}},
            },
        }
        pm = PropertyMap(email="E-mail", intent="Newsletter", opt_in_values=("Yes",))

        contact = ContactRecord.from_notion_page(page, pm)

        assert contact.email == "x@y.cz"
        assert contact.intent is Intent.OPT_IN


class TestContactRecordValidate:
    """Tests for ContactRecord.validate()."""

    def test_valid_contact(self):
        ContactRecord(email="jan@example.com").validate()

    def test_missing_email(self):
        with pytest.raises(ValidationError, match="no email"):
            ContactRecord(email=None, page_id="p1").validate()

    def test_malformed_email(self):
        with pytest.raises(ValidationError, match="Malformed"):
            ContactRecord(email="not-an-email").validate()

    def test_key_is_case_insensitive(self):
        assert ContactRecord(email=" Jan@Example.COM ").key == "jan@example.com"


class TestTargetSubscriberFromApi:
    """Tests for TargetSubscriber.from_api_response()."""

    def test_flat_body_with_numeric_status(self):
        sub = TargetSubscriber.from_api_response(
            {"email": "a@b.cz", "status": 1, "tags": ["x"], "name": "A"}
        )
        assert sub.status is SubscriberStatus.SUBSCRIBED
        assert sub.tags == ["x"]
        assert sub.name == "A"
        assert sub.surname is None

    def test_wrapped_body_with_mnemonic_status(self):
        sub = TargetSubscriber.from_api_response(
            {"subscriber": {"email": "a@b.cz", "status": "UNSUBSCRIBED"}}
        )
        assert sub.email == "a@b.cz"
        assert sub.status is SubscriberStatus.UNSUBSCRIBED

    def test_status_from_wrapper(self):
        """List items carry the status next to the subscriber object."""
        sub = TargetSubscriber.from_api_response(
            {"status": 2, "subscriber": {"email": "a@b.cz"}}
        )
        assert sub.status is SubscriberStatus.UNSUBSCRIBED

    def test_status_from_lists_entry(self):
        sub = TargetSubscriber.from_api_response(
            {"subscriber": {"email": "a@b.cz", "lists": {"7": {"status": 5}}}},
            list_id="7",
        )
        assert sub.status is SubscriberStatus.SPAM_COMPLAINT

    def test_missing_status_is_not_found(self):
        sub = TargetSubscriber.from_api_response({"email": "a@b.cz"})
        assert sub.status is SubscriberStatus.NOT_FOUND

    def test_opaque_status_passes_through(self):
        sub = TargetSubscriber.from_api_response({"email": "a@b.cz", "status": 42})
        assert sub.status == 42

    def test_tag_objects(self):
        sub = TargetSubscriber.from_api_response(
            {"email": "a@b.cz", "tags": [{"name": "x"}, "y", None, ""]}
        )
        assert sub.tags == ["x", "y"]
