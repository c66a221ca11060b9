"""HTTP transport for remote base configurations.

One blocking GET per call: no retries, no caching. Every failure mode
(bad URL, network error, timeout, non-2xx status) surfaces as
:class:`FetchError` so callers have a single exception to translate.
"""

from __future__ import annotations

import logging

import httpx

from clashctl.config.logging import redact_url

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset({"http", "https"})


class FetchError(Exception):
    """Raised when a remote document cannot be downloaded."""

    def __init__(self, url: str, reason: str, *, status_code: int | None = None) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class Fetcher:
    """Download remote documents as raw bytes.

    ``transport`` lets tests plug in an ``httpx.MockTransport`` in place
    of the network.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        user_agent: str = "clash",
        follow_redirects: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._follow_redirects = follow_redirects
        self._transport = transport

    def fetch_text(self, url: str) -> bytes:
        """GET *url* and return the response body.

        Raises:
            FetchError: On an unusable URL, transport failure, or a
                non-success status code.
        """
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as exc:
            raise FetchError(url, f"invalid URL ({exc})") from exc
        if parsed.scheme not in _ALLOWED_SCHEMES:
            raise FetchError(url, f"unsupported scheme {parsed.scheme!r}")

        logger.debug("Fetching %s", redact_url(url))
        with httpx.Client(
            timeout=self._timeout,
            follow_redirects=self._follow_redirects,
            headers={"User-Agent": self._user_agent},
            transport=self._transport,
        ) as client:
            try:
                response = client.get(parsed)
            except httpx.TimeoutException as exc:
                raise FetchError(url, f"timed out after {self._timeout}s") from exc
            except httpx.HTTPError as exc:
                raise FetchError(url, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise FetchError(
                url,
                f"HTTP {response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
            )
        logger.debug("Fetched %d bytes from %s", len(response.content), redact_url(url))
        return response.content
