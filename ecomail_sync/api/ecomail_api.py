"""
Ecomail API wrapper for subscriber reconciliation.

Provides a thin interface to the Ecomail v2 REST API for:
- Looking up a subscriber by email (404 means "no subscriber")
- Idempotent create-or-update (upsert) with explicit resubscribe control
- Updating a subscriber while keeping or setting its status
- Listing every subscriber of a list, including unsubscribed ones

All calls go through a shared RequestClient. Mutation responses are checked
for embedded error objects even when the HTTP status is 2xx.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

from ecomail_sync.api.http_client import (
    ApiRequest,
    ApplicationError,
    EnumerationError,
    RequestClient,
    TransportError,
    check_response,
)
from ecomail_sync.sync.contact import TargetSubscriber

DEFAULT_ECOMAIL_BASE_URL = "https://api2.ecomailapp.cz"

# Safety stop for list pagination
MAX_LIST_PAGES = 10_000

logger = logging.getLogger(__name__)


class EcomailAPI:
    """
    Ecomail list operations.

    Attributes:
        client: RequestClient used for every call
        list_id: Ecomail list the subscribers belong to
        base_url: API root (default https://api2.ecomailapp.cz)

    Usage:
        api = EcomailAPI(RequestClient(), api_key="...", list_id="3")

        subscriber = api.get_subscriber("jan@example.com")  # None if absent
        api.upsert_subscriber({"email": "jan@example.com", "status": 1, "tags": []})
        api.update_subscriber({"email": "jan@example.com", "status": 2})
        everyone = api.list_subscribers()
    """

    def __init__(
        self,
        client: RequestClient,
        api_key: str,
        list_id: str,
        base_url: str = DEFAULT_ECOMAIL_BASE_URL,
        trigger_autoresponders: bool = True,
        resubscribe: bool = True,
    ):
        """
        Initialize the Ecomail wrapper.

        Args:
            client: Shared RequestClient
            api_key: Ecomail API key (sent in the ``key`` header)
            list_id: Target list id
            base_url: API root URL
            trigger_autoresponders: Start list autoresponders on upsert
            resubscribe: Allow upsert to resubscribe a previously
                unsubscribed contact
        """
        self.client = client
        self.list_id = str(list_id)
        self.base_url = base_url.rstrip("/")
        self.trigger_autoresponders = trigger_autoresponders
        self.resubscribe = resubscribe
        self._headers = {"key": api_key, "Content-Type": "application/json"}

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
    ) -> ApiRequest:
        return ApiRequest(
            method=method,
            url=f"{self.base_url}/lists/{self.list_id}/{path}",
            operation=operation,
            params=params,
            json=json,
            headers=self._headers,
        )

    def get_subscriber(self, email: str) -> Optional[TargetSubscriber]:
        """
        Fetch the subscriber for an email.

        Args:
            email: Subscriber email address

        Returns:
            TargetSubscriber, or None if Ecomail answered 404

        Raises:
            ApplicationError: For any other non-2xx response
            TransportError: If no response could be obtained
        """
        request = self._request(
            "GET", f"subscriber/{quote(email, safe='')}", "get_subscriber"
        )
        response = self.client.execute(request)

        if response.status_code == 404:
            logger.debug(f"Subscriber not found in Ecomail: {email}")
            return None

        body = check_response(response, f"get_subscriber({email})")
        if not isinstance(body, dict):
            raise ApplicationError(
                f"get_subscriber({email}) returned an unexpected body",
                status_code=response.status_code,
                detail=body,
            )

        subscriber = TargetSubscriber.from_api_response(body, list_id=self.list_id)
        if not subscriber.email:
            subscriber = TargetSubscriber(
                email=email,
                status=subscriber.status,
                tags=subscriber.tags,
                name=subscriber.name,
                surname=subscriber.surname,
                company=subscriber.company,
            )
        return subscriber

    def upsert_subscriber(self, payload: dict[str, Any]) -> Any:
        """
        Create or update a subscriber (POST /lists/{id}/subscribe).

        Args:
            payload: Subscriber fields from the diff engine: ``email``,
                ``status``, ``tags`` and optional ``name``/``surname``/``company``

        Returns:
            Decoded response body

        Raises:
            ApplicationError: On non-2xx or an embedded error object
            TransportError: If no response could be obtained
        """
        subscriber_data = {k: v for k, v in payload.items() if k != "tags"}
        body: dict[str, Any] = {
            "subscriber_data": subscriber_data,
            "update_existing": True,
            "resubscribe": self.resubscribe,
            "trigger_autoresponders": self.trigger_autoresponders,
        }
        if "tags" in payload:
            body["tags"] = list(payload["tags"])

        logger.debug(f"Upsert payload for {payload.get('email')}: {body}")
        response = self.client.execute(
            self._request("POST", "subscribe", "upsert_subscriber", json=body)
        )
        return check_response(response, f"upsert_subscriber({payload.get('email')})")

    def update_subscriber(self, payload: dict[str, Any]) -> Any:
        """
        Update an existing subscriber (PUT /lists/{id}/update-subscriber).

        The payload must carry ``status`` so an update of tags or attributes
        cannot silently resubscribe an unsubscribed contact.

        Raises:
            ValueError: If payload has no status
            ApplicationError: On non-2xx or an embedded error object
            TransportError: If no response could be obtained
        """
        if "status" not in payload:
            raise ValueError("update_subscriber payload must include a status")

        body = {"email": payload["email"], "subscriber_data": dict(payload)}

        logger.debug(f"Update payload for {payload.get('email')}: {body}")
        response = self.client.execute(
            self._request("PUT", "update-subscriber", "update_subscriber", json=body)
        )
        return check_response(response, f"update_subscriber({payload.get('email')})")

    def list_subscribers(self) -> list[TargetSubscriber]:
        """
        List every subscriber of the list, including unsubscribed ones.

        Follows ``?page=N`` until ``last_page`` is reached.

        Returns:
            All subscribers

        Raises:
            EnumerationError: If any page cannot be fetched or read, or the
                listing never reaches its last page
        """
        subscribers: list[TargetSubscriber] = []
        page = 1

        while page <= MAX_LIST_PAGES:
            request = self._request(
                "GET", "subscribers", "list_subscribers", params={"page": page}
            )
            try:
                response = self.client.execute(request)
                body = check_response(response, f"list_subscribers(page={page})")
            except (TransportError, ApplicationError) as e:
                raise EnumerationError(
                    f"Failed to list Ecomail subscribers at page {page}: {e}"
                ) from e

            if not isinstance(body, dict) or not isinstance(body.get("data"), list):
                raise EnumerationError(
                    f"Ecomail subscriber listing returned no data list (page {page})"
                )

            for item in body["data"]:
                if isinstance(item, dict):
                    subscribers.append(
                        TargetSubscriber.from_api_response(item, list_id=self.list_id)
                    )

            last_page = body.get("last_page")
            if not isinstance(last_page, int) or page >= last_page:
                break
            page += 1
        else:
            raise EnumerationError(
                f"Ecomail subscriber listing exceeded {MAX_LIST_PAGES} pages"
            )

        logger.info(f"Fetched {len(subscribers)} subscribers from Ecomail")
        return subscribers
