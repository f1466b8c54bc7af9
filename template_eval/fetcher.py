"""HTTP fetching of pages.

PageFetcher encapsulates the httpx client and turns responses into parsed
Documents. Every failure surfaces as a FetchError subclass so the driver
can report it per URL:

- MalformedURLError when the URL cannot be requested at all
- TransportError for network, HTTP status and body parsing failures
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from template_eval.common.document import Document, parse_document
from template_eval.common.exceptions import (
    DocumentParseError,
    MalformedURLError,
    TransportError,
)

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; template-eval/0.1)"

DEFAULT_TIMEOUT = 30.0


class PageFetcher:
    """Fetches pages over HTTP with a fixed crawler identity.

    Example::

        with PageFetcher(timeout=10.0) as fetcher:
            document = fetcher.fetch("https://example.com/product/42")
    """

    def __init__(
        self,
        timeout: float | None = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
    ) -> None:
        """Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds. None means no timeout.
            user_agent: Value of the User-Agent header sent with every
                request.
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = httpx.Client(
            headers={"User-Agent": user_agent},
            timeout=timeout,
            follow_redirects=True,
        )

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> PageFetcher:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit - closes the client."""
        self.close()

    def fetch(self, url: str) -> Document:
        """Fetch a URL and parse the response body.

        Args:
            url: Absolute http(s) URL.

        Returns:
            The parsed document. Its ``url`` is the URL as requested, not
            the final URL after redirects.

        Raises:
            MalformedURLError: If the URL is invalid or not http(s).
            TransportError: On connection errors, timeouts, non-2xx
                responses, or a body that is not parseable HTML.
        """
        logger.debug("Fetching %s", url)
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise MalformedURLError(url, str(e)) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise TransportError(
                url,
                f"HTTP {status} {e.response.reason_phrase}".strip(),
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

        try:
            return parse_document(url, response.text)
        except DocumentParseError as e:
            raise TransportError(
                url,
                f"Could not parse HTML: {e.reason}",
                status_code=response.status_code,
            ) from e
