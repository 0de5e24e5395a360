"""Authenticated HTTP client with retries and identity rotation."""

import asyncio
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
from bs4 import BeautifulSoup

from ieltsbank.config import settings
from ieltsbank.errors import (
    AuthenticationExpiredError,
    FetchFatalError,
    FetchRetryExhaustedError,
)

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
)


def exponential_backoff(
    attempt: int,
    base: float | None = None,
    cap: float | None = None,
) -> float:
    """Delay before retry number `attempt` (1-based), with up to 20% jitter."""
    base = settings.retry_base_delay if base is None else base
    cap = settings.retry_max_delay if cap is None else cap
    delay = min(base * 2 ** (attempt - 1), cap)
    return delay + random.uniform(0, delay * 0.2)


def is_retryable_status(status_code: int) -> bool:
    """Rate limiting and server errors are worth another try."""
    return status_code == 429 or status_code >= 500


@dataclass
class RetryPolicy:
    """How many times to try a request and how long to wait in between."""

    max_retries: int = field(default_factory=lambda: settings.max_retries)
    backoff: Callable[[int], float] = exponential_backoff
    is_retryable_status: Callable[[int], bool] = is_retryable_status

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")


@dataclass
class Credentials:
    """Session cookie pair replayed on every request."""

    session_id: str = field(default_factory=lambda: settings.session_id)
    csrf_token: str = field(default_factory=lambda: settings.csrf_token)

    def cookie_header(self) -> str:
        return f"sessionid={self.session_id}; csrftoken={self.csrf_token}"


class _RetryableResponse(Exception):
    """Internal signal: response status is retryable."""


class FetchClient:
    """Fetches pages from the source site.

    Transport errors, timeouts and retryable statuses are retried with
    backoff up to the policy's ceiling. Other 4xx responses and login
    redirects fail straight away.
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        retry_policy: RetryPolicy | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        login_title_markers: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.credentials = credentials or Credentials()
        self.retry_policy = retry_policy or RetryPolicy()
        self.base_url = (base_url or settings.site_base_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self.login_title_markers = (
            settings.login_title_markers
            if login_title_markers is None
            else login_title_markers
        )
        self._transport = transport

    def build_headers(
        self,
        referer: str | None = None,
        extra: dict[str, str] | None = None,
    ) -> dict[str, str]:
        """Headers for one request, with a freshly picked User-Agent."""
        headers = {
            "Cookie": self.credentials.cookie_header(),
            "User-Agent": random.choice(USER_AGENTS),
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Language": "en-US,en;q=0.9,vi;q=0.8",
        }
        if referer:
            headers["Referer"] = referer
            headers["Origin"] = self.base_url
        if extra:
            headers.update(extra)
        return headers

    async def fetch(
        self,
        url: str,
        *,
        referer: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        """Fetch a page and return its body.

        Args:
            url: Absolute URL to GET
            referer: Sent as Referer, with the site as Origin
            headers: Extra headers merged over the defaults

        Returns:
            Response body as text

        Raises:
            FetchRetryExhaustedError: transient failures outlasted the policy
            FetchFatalError: non-retryable HTTP status
            AuthenticationExpiredError: the site served its login page
        """
        policy = self.retry_policy
        last_error = ""

        for attempt in range(1, policy.max_retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout,
                    follow_redirects=True,
                    transport=self._transport,
                ) as client:
                    response = await client.get(
                        url, headers=self.build_headers(referer, headers)
                    )
                    self._check_status(url, response)
                    body = response.text
                    logger.debug(f"Fetched {url} (attempt {attempt})")

            except httpx.TimeoutException as e:
                last_error = f"timeout: {e}"
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
            except _RetryableResponse as e:
                last_error = str(e)
            else:
                self._check_login_page(url, body)
                return body

            if attempt < policy.max_retries:
                delay = policy.backoff(attempt)
                logger.warning(
                    f"Retrying {url} (attempt {attempt}/{policy.max_retries}) "
                    f"in {delay:.1f}s: {last_error}",
                    extra={"url": url, "attempt": attempt, "reason": last_error},
                )
                await asyncio.sleep(delay)

        logger.error(
            f"Failed to fetch {url} after {policy.max_retries} attempts",
            extra={"url": url, "attempt": policy.max_retries, "reason": last_error},
        )
        raise FetchRetryExhaustedError(url, policy.max_retries, last_error)

    def _check_status(self, url: str, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if self.retry_policy.is_retryable_status(status):
            raise _RetryableResponse(f"HTTP {status}")
        logger.error(f"HTTP {status} for {url}, not retrying")
        raise FetchFatalError(f"HTTP {status} for {url}", url, status)

    def _check_login_page(self, url: str, body: str) -> None:
        title_tag = BeautifulSoup(body, "lxml").title
        title = title_tag.get_text(strip=True) if title_tag else ""
        if any(marker in title for marker in self.login_title_markers):
            logger.error(f"Redirected to login page while fetching {url}")
            raise AuthenticationExpiredError(
                f"Session expired: {url} served the login page ({title!r})", url
            )
