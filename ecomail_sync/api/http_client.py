"""
Resilient HTTP request execution shared by the Notion and Ecomail wrappers.

Every outbound call goes through RequestClient.execute(), which provides:
- A per-call timeout (default 30s)
- Exponential backoff retry on transport failures (1s, 2s, 4s, ...)
- A separate backoff curve for HTTP 429, honouring Retry-After exactly
  when the server sends it (otherwise 2s, 4s, 8s, ...)

Any other response, successful or not, is handed back unchanged. Whether
a 404 means "absent" or "failed" depends on the operation, so status
classification belongs to the caller.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import requests
from requests.exceptions import RequestException

# Retry configuration defaults
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds, first transport-failure backoff
DEFAULT_RATE_LIMIT_DELAY = 2.0  # seconds, first 429 backoff without Retry-After
DEFAULT_MAX_RETRY_DELAY = 60.0  # seconds, cap for computed backoff

USER_AGENT = "notion-ecomail-sync/0.1.0"

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when no response could be obtained after all attempts."""

    pass


class RequestTimeoutError(TransportError):
    """Raised when the final attempt exceeded the request timeout."""

    pass


class RateLimitError(TransportError):
    """Raised when the server still answers 429 after all attempts."""

    pass


class ApplicationError(Exception):
    """
    Raised when a response was obtained but reports a failure.

    Attributes:
        status_code: HTTP status of the response, if any
        detail: Error text or object extracted from the body
    """

    def __init__(
        self, message: str, status_code: Optional[int] = None, detail: Any = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class EnumerationError(Exception):
    """
    Raised when a full listing (all Notion pages, all subscribers) fails.

    Attributes:
        summary: Counters accumulated before the failure, when raised
                 during a run (set by the sync engine)
    """

    def __init__(self, message: str, summary: Any = None):
        super().__init__(message)
        self.summary = summary


@dataclass(frozen=True)
class ApiRequest:
    """
    Description of one HTTP call.

    Attributes:
        method: HTTP method ("GET", "POST", "PUT", "PATCH")
        url: Absolute URL
        operation: Short name used in log messages (e.g. "get_subscriber")
        params: Query string parameters
        json: JSON body
        headers: Extra headers (authentication etc.)
    """

    method: str
    url: str
    operation: str = "request"
    params: Optional[dict[str, Any]] = None
    json: Any = None
    headers: Optional[dict[str, str]] = None


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a Retry-After header.

    Accepts delay-seconds ("5", "1.5") or an HTTP-date. Dates in the past
    yield 0.

    Returns:
        Seconds to wait, or None if the header is missing or unparsable
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    try:
        return max(float(value), 0.0)
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


def response_body(response: requests.Response) -> Any:
    """Decode a JSON body; empty or non-JSON bodies yield None."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def embedded_error(body: Any) -> Any:
    """
    Return the error member of a body that reports failure, else None.

    Recognizes ``{"error": ...}``, ``{"errors": ...}`` and
    ``{"status": "error", "message": ...}``.
    """
    if not isinstance(body, dict):
        return None
    for key in ("error", "errors"):
        if body.get(key):
            return body[key]
    status = body.get("status")
    if isinstance(status, str) and status.lower() in ("error", "failed", "fail"):
        return body.get("message") or status
    return None


def check_response(response: requests.Response, operation: str) -> Any:
    """
    Fail on a non-2xx response or a 2xx body that embeds an error.

    Args:
        response: Response returned by RequestClient.execute()
        operation: Operation name for the error message

    Returns:
        The decoded JSON body (None when empty)

    Raises:
        ApplicationError: If the response reports a failure
    """
    body = response_body(response)

    if not 200 <= response.status_code < 300:
        detail = embedded_error(body) or (response.text or "").strip()[:500]
        raise ApplicationError(
            f"{operation} failed with status {response.status_code}: {detail}",
            status_code=response.status_code,
            detail=detail,
        )

    detail = embedded_error(body)
    if detail:
        raise ApplicationError(
            f"{operation} returned {response.status_code} with error: {detail}",
            status_code=response.status_code,
            detail=detail,
        )

    return body


class RequestClient:
    """
    Executes ApiRequests with timeout, retry and rate-limit handling.

    The client keeps no state between calls apart from the underlying
    requests.Session, so one instance serves any number of sequential calls.

    Usage:
        client = RequestClient(timeout=30, max_attempts=3)
        response = client.execute(
            ApiRequest("GET", "https://api2.ecomailapp.cz/lists/1/subscriber/a@x.com",
                       operation="get_subscriber", headers={"key": api_key})
        )
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the request client.

        Args:
            session: requests.Session to use (a new one by default)
            timeout: Per-call timeout in seconds (default 30)
            max_attempts: Total attempts per call, including the first (default 3)
            retry_delay: First backoff after a transport failure (default 1.0)
            rate_limit_delay: First backoff after a 429 without Retry-After
                (default 2.0)
            max_retry_delay: Upper bound for computed backoff (default 60.0)
            sleep: Sleep function, injectable for tests
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.rate_limit_delay = rate_limit_delay
        self.max_retry_delay = max_retry_delay
        self._sleep = sleep

    def execute(self, request: ApiRequest) -> requests.Response:
        """
        Execute a request, retrying transport failures and 429 responses.

        Args:
            request: The call to make

        Returns:
            The first response that is not a 429 (any status code)

        Raises:
            RequestTimeoutError: If the last attempt timed out
            RateLimitError: If every attempt was answered with 429
            TransportError: If the last attempt failed without a response
        """
        name = request.operation
        headers = {"User-Agent": USER_AGENT, **(request.headers or {})}

        transport_delay = self.retry_delay
        rate_delay = self.rate_limit_delay

        for attempt in range(1, self.max_attempts + 1):
            logger.debug(
                f"{name}: {request.method} {request.url} "
                f"(attempt {attempt}/{self.max_attempts})"
            )

            try:
                response = self.session.request(
                    request.method,
                    request.url,
                    params=request.params,
                    json=request.json,
                    headers=headers,
                    timeout=self.timeout,
                )

            except requests.Timeout as e:
                if attempt >= self.max_attempts:
                    logger.error(f"{name} timed out after {self.max_attempts} attempts")
                    raise RequestTimeoutError(
                        f"{name} timed out after {self.timeout:g}s "
                        f"({self.max_attempts} attempts)"
                    ) from e
                logger.warning(
                    f"{name} timed out, retrying in {transport_delay:.1f}s "
                    f"(attempt {attempt}/{self.max_attempts})"
                )

            except RequestException as e:
                if attempt >= self.max_attempts:
                    logger.error(f"{name} failed after {self.max_attempts} attempts: {e}")
                    raise TransportError(
                        f"{name} failed after {self.max_attempts} attempts: {e}"
                    ) from e
                logger.warning(
                    f"{name} network error, retrying in {transport_delay:.1f}s "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )

            else:
                if response.status_code != 429:
                    return response

                wait = parse_retry_after(response.headers.get("Retry-After"))
                if wait is None:
                    wait = rate_delay
                    rate_delay = min(rate_delay * 2, self.max_retry_delay)

                if attempt >= self.max_attempts:
                    logger.error(
                        f"{name} still rate limited after {self.max_attempts} attempts"
                    )
                    raise RateLimitError(
                        f"Rate limit exceeded for {name} "
                        f"after {self.max_attempts} attempts"
                    )

                logger.warning(
                    f"{name} rate limited (429), retrying in {wait:.1f}s "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                self._sleep(wait)
                continue

            self._sleep(transport_delay)
            transport_delay = min(transport_delay * 2, self.max_retry_delay)

        # Unreachable: the last attempt either returns or raises
        raise TransportError(f"{name} failed after {self.max_attempts} attempts")
