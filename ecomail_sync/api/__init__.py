"""
ecomail_sync.api - Remote service wrappers

Contains the resilient request client and the Notion and Ecomail wrappers
built on top of it.
"""

from ecomail_sync.api.ecomail_api import EcomailAPI
from ecomail_sync.api.http_client import (
    ApiRequest,
    ApplicationError,
    EnumerationError,
    RateLimitError,
    RequestClient,
    RequestTimeoutError,
    TransportError,
)
from ecomail_sync.api.notion_api import NotionAPI

__all__ = [
    "ApiRequest",
    "RequestClient",
    "EcomailAPI",
    "NotionAPI",
    "TransportError",
    "RequestTimeoutError",
    "RateLimitError",
    "ApplicationError",
    "EnumerationError",
]
