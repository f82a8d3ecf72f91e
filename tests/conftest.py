"""Shared fixtures for the ecomail_sync test suite."""

import logging
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from ecomail_sync.utils.logging import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def isolated_logging(monkeypatch):
    """Keep tests from writing log files and restore the package logger."""
    monkeypatch.setenv("ECOMAIL_SYNC_LOG_FILE", "none")
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def build_response(
    status_code: int = 200,
    body: Any = None,
    headers: dict[str, str] | None = None,
    text: str | None = None,
) -> MagicMock:
    """Build a mock requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.headers = headers or {}

    if body is not None:
        response.content = b"{...}"
        response.json.return_value = body
        response.text = text if text is not None else str(body)
    elif text:
        response.content = text.encode()
        response.json.side_effect = ValueError("not json")
        response.text = text
    else:
        response.content = b""
        response.json.side_effect = ValueError("empty")
        response.text = ""

    return response


@pytest.fixture
def mock_client():
    """A RequestClient stand-in whose execute() returns queued responses."""
    return MagicMock()


@pytest.fixture
def no_sleep():
    """Sleep function recording the requested delays."""
    return MagicMock()


@pytest.fixture
def make_response():
    """Factory fixture for mock responses (see build_response)."""
    return build_response
