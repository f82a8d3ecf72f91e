"""
Notion API wrapper for the source contact database.

Provides:
- Paginated database queries followed to exhaustion
- Conversion of database rows to ContactRecord
- Page property updates (used by the Ecomail -> Notion direction)

A listing that cannot be completed raises EnumerationError; the caller
treats that as fatal for the whole run.
"""

import logging
from collections.abc import Iterator
from typing import Any, Optional

from ecomail_sync.api.http_client import (
    ApiRequest,
    ApplicationError,
    EnumerationError,
    RequestClient,
    TransportError,
    check_response,
)
from ecomail_sync.sync.contact import ContactRecord, PropertyMap

DEFAULT_NOTION_BASE_URL = "https://api.notion.com"
DEFAULT_NOTION_VERSION = "2022-06-28"

# Notion caps page_size at 100
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100

logger = logging.getLogger(__name__)


def rich_text_value(text: Optional[str]) -> dict[str, Any]:
    """Build a rich_text property value; None or "" clears the cell."""
    if not text:
        return {"rich_text": []}
    return {"rich_text": [{"type": "text", "text": {"content": text}}]}


def multi_select_value(names: list[str]) -> dict[str, Any]:
    """Build a multi_select property value from option names."""
    return {"multi_select": [{"name": name} for name in names]}


def option_value(name: str, prop_type: str = "select") -> dict[str, Any]:
    """Build a select or status property value."""
    return {prop_type: {"name": name}}


class NotionAPI:
    """
    Read and update rows of one Notion database.

    Usage:
        notion = NotionAPI(RequestClient(), token="secret_...", database_id="abc")

        # All rows as ContactRecords (raises EnumerationError on failure)
        contacts = notion.fetch_contacts()

        # Update a row
        notion.update_page(page_id, {"Tags": multi_select_value(["vip"])})
    """

    def __init__(
        self,
        client: RequestClient,
        token: str,
        database_id: str,
        property_map: Optional[PropertyMap] = None,
        base_url: str = DEFAULT_NOTION_BASE_URL,
        notion_version: str = DEFAULT_NOTION_VERSION,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """
        Initialize the Notion wrapper.

        Args:
            client: Shared RequestClient
            token: Notion integration token
            database_id: Database holding the contacts
            property_map: Column names for contact fields (defaults apply)
            base_url: API root URL
            notion_version: Value of the Notion-Version header
            page_size: Rows per query page (capped at 100)
        """
        self.client = client
        self.database_id = database_id
        self.property_map = property_map or PropertyMap()
        self.base_url = base_url.rstrip("/")
        self.page_size = min(page_size, MAX_PAGE_SIZE)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": notion_version,
            "Content-Type": "application/json",
        }

    def iter_pages(self) -> Iterator[dict[str, Any]]:
        """
        Yield every page of the database, following next_cursor.

        Raises:
            EnumerationError: If any query page cannot be fetched
        """
        cursor: Optional[str] = None
        batch = 0

        while True:
            batch += 1
            body: dict[str, Any] = {"page_size": self.page_size}
            if cursor:
                body["start_cursor"] = cursor

            request = ApiRequest(
                method="POST",
                url=f"{self.base_url}/v1/databases/{self.database_id}/query",
                operation="query_database",
                json=body,
                headers=self._headers,
            )

            try:
                response = self.client.execute(request)
                data = check_response(response, f"query_database(batch={batch})")
            except (TransportError, ApplicationError) as e:
                raise EnumerationError(
                    f"Failed to list Notion contacts (batch {batch}): {e}"
                ) from e

            if not isinstance(data, dict):
                raise EnumerationError(
                    f"Notion query returned an unexpected body (batch {batch})"
                )

            yield from data.get("results") or []

            if not data.get("has_more"):
                return
            cursor = data.get("next_cursor")
            if not cursor:
                raise EnumerationError(
                    f"Notion reported more results without a cursor (batch {batch})"
                )

    def fetch_pages(self) -> list[dict[str, Any]]:
        """Return every raw page of the database."""
        pages = list(self.iter_pages())
        logger.info(f"Fetched {len(pages)} pages from Notion")
        return pages

    def fetch_contacts(self) -> list[ContactRecord]:
        """
        Return every database row as a ContactRecord.

        The listing is completed before anything is returned, so a failure
        part way through never yields a partial contact set.

        Raises:
            EnumerationError: If the database cannot be fully listed
        """
        return [
            ContactRecord.from_notion_page(page, self.property_map)
            for page in self.fetch_pages()
        ]

    def update_page(self, page_id: str, properties: dict[str, Any]) -> Any:
        """
        Update properties of a page.

        Args:
            page_id: Notion page id
            properties: Mapping of column name to property value

        Returns:
            Decoded response body

        Raises:
            ApplicationError: If Notion rejects the update
            TransportError: If no response could be obtained
        """
        request = ApiRequest(
            method="PATCH",
            url=f"{self.base_url}/v1/pages/{page_id}",
            operation="update_page",
            json={"properties": properties},
            headers=self._headers,
        )
        response = self.client.execute(request)
        return check_response(response, f"update_page({page_id})")
