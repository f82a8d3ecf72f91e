"""
Unit tests for the Ecomail API wrapper.

The RequestClient is mocked; tests inspect the ApiRequest objects it
receives and feed back canned responses.
"""

import pytest

from ecomail_sync.api.ecomail_api import DEFAULT_ECOMAIL_BASE_URL, EcomailAPI
from ecomail_sync.api.http_client import (
    ApplicationError,
    EnumerationError,
    TransportError,
)
from ecomail_sync.sync.status import SubscriberStatus


@pytest.fixture
def api(mock_client):
    return EcomailAPI(mock_client, api_key="k3y", list_id=5)


def sent_request(mock_client, index=-1):
    """The ApiRequest passed to execute() (last call by default)."""
    return mock_client.execute.call_args_list[index].args[0]


class TestEcomailAPIInitialization:
    """Tests for EcomailAPI construction."""

    def test_defaults(self, api):
        assert api.list_id == "5"
        assert api.base_url == DEFAULT_ECOMAIL_BASE_URL
        assert api.resubscribe is True
        assert api.trigger_autoresponders is True

    def test_strips_trailing_slash(self, mock_client):
        api = EcomailAPI(mock_client, "k", "1", base_url="https://x.test/")
        assert api.base_url == "https://x.test"


class TestGetSubscriber:
    """Tests for get_subscriber()."""

    def test_found(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(
            200,
            {"subscriber": {"email": "a@x.com", "status": 1, "tags": ["vip"]}},
        )

        subscriber = api.get_subscriber("a@x.com")

        assert subscriber.status is SubscriberStatus.SUBSCRIBED
        assert subscriber.tags == ["vip"]
        request = sent_request(mock_client)
        assert request.method == "GET"
        assert request.url == f"{DEFAULT_ECOMAIL_BASE_URL}/lists/5/subscriber/a%40x.com"
        assert request.headers["key"] == "k3y"

    def test_404_means_absent(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(404, {"message": "Not found"})
        assert api.get_subscriber("a@x.com") is None

    def test_other_error_raises(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(500, text="boom")

        with pytest.raises(ApplicationError) as exc_info:
            api.get_subscriber("a@x.com")

        assert exc_info.value.status_code == 500

    def test_non_dict_body_raises(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(200, ["unexpected"])

        with pytest.raises(ApplicationError, match="unexpected body"):
            api.get_subscriber("a@x.com")

    def test_fills_missing_email(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(200, {"status": "UNSUBSCRIBED"})

        subscriber = api.get_subscriber("a@x.com")

        assert subscriber.email == "a@x.com"
        assert subscriber.status is SubscriberStatus.UNSUBSCRIBED

    def test_transport_error_propagates(self, api, mock_client):
        mock_client.execute.side_effect = TransportError("down")

        with pytest.raises(TransportError):
            api.get_subscriber("a@x.com")


class TestUpsertSubscriber:
    """Tests for upsert_subscriber()."""

    def test_request_body(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(200, {"id": 10})

        api.upsert_subscriber(
            {"email": "a@x.com", "status": 1, "tags": ["vip"], "name": "Jan"}
        )

        request = sent_request(mock_client)
        assert request.method == "POST"
        assert request.url.endswith("/lists/5/subscribe")
        assert request.json == {
            "subscriber_data": {"email": "a@x.com", "status": 1, "name": "Jan"},
            "update_existing": True,
            "resubscribe": True,
            "trigger_autoresponders": True,
            "tags": ["vip"],
        }

    def test_empty_tags_are_sent(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(200, {"id": 10})

        api.upsert_subscriber({"email": "a@x.com", "status": 1, "tags": []})

        assert sent_request(mock_client).json["tags"] == []

    def test_resubscribe_flag(self, mock_client, make_response):
        api = EcomailAPI(mock_client, "k", "5", resubscribe=False)
        mock_client.execute.return_value = make_response(200, {})

        api.upsert_subscriber({"email": "a@x.com", "status": 1, "tags": []})

        assert sent_request(mock_client).json["resubscribe"] is False

    def test_embedded_error_raises(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(
            200, {"errors": {"email": ["invalid"]}}
        )

        with pytest.raises(ApplicationError):
            api.upsert_subscriber({"email": "a@x.com", "status": 1, "tags": []})


class TestUpdateSubscriber:
    """Tests for update_subscriber()."""

    def test_request_body_keeps_status(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(200, {"id": 10})

        api.update_subscriber({"email": "a@x.com", "status": 2, "tags": ["vip"]})

        request = sent_request(mock_client)
        assert request.method == "PUT"
        assert request.url.endswith("/lists/5/update-subscriber")
        assert request.json == {
            "email": "a@x.com",
            "subscriber_data": {"email": "a@x.com", "status": 2, "tags": ["vip"]},
        }

    def test_requires_status(self, api, mock_client):
        with pytest.raises(ValueError, match="status"):
            api.update_subscriber({"email": "a@x.com", "tags": []})
        mock_client.execute.assert_not_called()

    def test_non_2xx_raises(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(404, {"message": "gone"})

        with pytest.raises(ApplicationError) as exc_info:
            api.update_subscriber({"email": "a@x.com", "status": 2})

        assert exc_info.value.status_code == 404

    def test_embedded_error_raises(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(
            200, {"error": "Subscriber not found in list"}
        )

        with pytest.raises(ApplicationError, match="not found in list"):
            api.update_subscriber({"email": "a@x.com", "status": 2})


class TestListSubscribers:
    """Tests for list_subscribers()."""

    def test_follows_pages(self, api, mock_client, make_response):
        mock_client.execute.side_effect = [
            make_response(
                200,
                {"data": [{"email": "a@x.com", "status": 1}], "last_page": 2},
            ),
            make_response(
                200,
                {"data": [{"email": "b@x.com", "status": "UNSUBSCRIBED"}], "last_page": 2},
            ),
        ]

        subscribers = api.list_subscribers()

        assert [s.email for s in subscribers] == ["a@x.com", "b@x.com"]
        assert subscribers[1].status is SubscriberStatus.UNSUBSCRIBED
        assert sent_request(mock_client, 0).params == {"page": 1}
        assert sent_request(mock_client, 1).params == {"page": 2}

    def test_stops_without_last_page(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(
            200, {"data": [{"email": "a@x.com", "status": 1}]}
        )

        assert len(api.list_subscribers()) == 1
        assert mock_client.execute.call_count == 1

    def test_failure_is_enumeration_error(self, api, mock_client, make_response):
        mock_client.execute.side_effect = [
            make_response(200, {"data": [], "last_page": 3}),
            TransportError("down"),
        ]

        with pytest.raises(EnumerationError, match="page 2"):
            api.list_subscribers()

    def test_error_response_is_enumeration_error(
        self, api, mock_client, make_response
    ):
        mock_client.execute.return_value = make_response(401, {"message": "bad key"})

        with pytest.raises(EnumerationError):
            api.list_subscribers()

    def test_body_without_data_is_enumeration_error(
        self, api, mock_client, make_response
    ):
        mock_client.execute.return_value = make_response(
            200, {"subscribers": [{"email": "a@x.com"}]}
        )

        with pytest.raises(EnumerationError, match="page 1"):
            api.list_subscribers()

    def test_non_dict_body_is_enumeration_error(self, api, mock_client, make_response):
        mock_client.execute.return_value = make_response(200, [{"email": "a@x.com"}])

        with pytest.raises(EnumerationError):
            api.list_subscribers()

    def test_page_cap_is_enumeration_error(
        self, api, mock_client, make_response, monkeypatch
    ):
        monkeypatch.setattr("ecomail_sync.api.ecomail_api.MAX_LIST_PAGES", 2)
        mock_client.execute.return_value = make_response(
            200, {"data": [{"email": "a@x.com", "status": 1}], "last_page": 5}
        )

        with pytest.raises(EnumerationError, match="exceeded 2 pages"):
            api.list_subscribers()

        assert mock_client.execute.call_count == 2
