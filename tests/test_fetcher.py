"""Tests for PageFetcher.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made.
- URLs without an http(s) scheme are rejected by httpx before any transport
  is reached, so those tests run unmocked.
"""

from __future__ import annotations

import httpx
import pytest
import respx

from template_eval.common.exceptions import (
    FetchError,
    MalformedURLError,
    TransportError,
)
from template_eval.fetcher import USER_AGENT, PageFetcher


@pytest.fixture
def fetcher():
    with PageFetcher(timeout=5.0) as f:
        yield f


class TestFetch:
    """Tests for PageFetcher.fetch."""

    def test_success(self, fetcher, shoe_url, shoe_html):
        """A 200 response shall be parsed into a Document."""
        with respx.mock:
            respx.get(shoe_url).mock(
                return_value=httpx.Response(200, text=shoe_html)
            )
            document = fetcher.fetch(shoe_url)

        assert document.url == shoe_url
        assert document.source == shoe_html
        assert document.tree.findtext(".//h1") == "Shoe"

    def test_sends_crawler_identity(self, fetcher, shoe_url):
        """Every request shall carry the fixed User-Agent."""
        with respx.mock:
            route = respx.get(shoe_url).mock(
                return_value=httpx.Response(200, text="<h1>Shoe</h1>")
            )
            fetcher.fetch(shoe_url)

        assert route.called
        assert route.calls.last.request.headers["User-Agent"] == USER_AGENT

    def test_follows_redirects(self, fetcher):
        """The document shall keep the requested URL after redirects."""
        with respx.mock:
            respx.get("https://example.com/old").mock(
                return_value=httpx.Response(
                    301, headers={"Location": "https://example.com/new"}
                )
            )
            respx.get("https://example.com/new").mock(
                return_value=httpx.Response(200, text="<h1>Moved</h1>")
            )
            document = fetcher.fetch("https://example.com/old")

        assert document.url == "https://example.com/old"
        assert document.tree.findtext(".//h1") == "Moved"

    def test_http_error_status(self, fetcher, shoe_url):
        """A non-2xx response shall raise TransportError with the status."""
        with respx.mock:
            respx.get(shoe_url).mock(return_value=httpx.Response(404))
            with pytest.raises(TransportError) as exc_info:
                fetcher.fetch(shoe_url)

        assert exc_info.value.status_code == 404
        assert "HTTP 404" in exc_info.value.reason
        assert exc_info.value.url == shoe_url

    def test_server_error(self, fetcher, shoe_url):
        with respx.mock:
            respx.get(shoe_url).mock(return_value=httpx.Response(503))
            with pytest.raises(TransportError) as exc_info:
                fetcher.fetch(shoe_url)

        assert exc_info.value.status_code == 503

    def test_connection_error(self, fetcher, shoe_url):
        """Network failures shall raise TransportError."""
        with respx.mock:
            respx.get(shoe_url).mock(
                side_effect=httpx.ConnectError("Connection refused")
            )
            with pytest.raises(TransportError) as exc_info:
                fetcher.fetch(shoe_url)

        assert "Connection refused" in exc_info.value.reason
        assert exc_info.value.status_code is None

    def test_timeout(self, fetcher, shoe_url):
        with respx.mock:
            respx.get(shoe_url).mock(
                side_effect=httpx.ReadTimeout("timed out")
            )
            with pytest.raises(TransportError):
                fetcher.fetch(shoe_url)

    def test_empty_body(self, fetcher, shoe_url):
        """A body that is not HTML shall raise TransportError."""
        with respx.mock:
            respx.get(shoe_url).mock(return_value=httpx.Response(200, text=""))
            with pytest.raises(TransportError, match="Could not parse HTML"):
                fetcher.fetch(shoe_url)

    @pytest.mark.parametrize(
        "url", ["example.com/product/42", "ftp://example.com/product/42"]
    )
    def test_unsupported_scheme(self, fetcher, url):
        """URLs without an http(s) scheme shall raise MalformedURLError."""
        with pytest.raises(MalformedURLError) as exc_info:
            fetcher.fetch(url)

        assert exc_info.value.url == url

    def test_invalid_url(self, fetcher):
        """Syntactically invalid URLs shall raise MalformedURLError."""
        with pytest.raises(MalformedURLError):
            fetcher.fetch("https://example.com/\x01")

    def test_errors_share_a_base(self, fetcher):
        with pytest.raises(FetchError):
            fetcher.fetch("not a url")
