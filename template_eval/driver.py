"""Sequential driver that runs a compiled template over a list of URLs.

URLs are processed strictly in input order, one at a time. Each URL
produces exactly one UrlResult; a failing URL never stops the run.

The driver owns the cache-then-fetch policy:

1. Look the URL up in the page cache.
2. On a miss, fetch it and insert the result into the cache.
3. Evaluate the template against the document.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from template_eval.cache import NullPageCache, PageCache
from template_eval.common.document import Document
from template_eval.common.exceptions import ExtractionError, FetchError
from template_eval.data_types import (
    CompiledTemplate,
    ExtractionFailed,
    FetchFailed,
    Matched,
    NoMatch,
    UrlResult,
)
from template_eval.engine import evaluate
from template_eval.fetcher import PageFetcher

logger = logging.getLogger(__name__)


def read_urls(path: Path) -> Iterator[str]:
    """Yield the lines of a URL file, without line terminators.

    Blank lines are passed through; TemplateDriver.run() skips them. Bytes
    that are not valid UTF-8 become U+FFFD, so a garbled line fails as that
    one URL instead of aborting the file.
    """
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            yield line.rstrip("\r\n")


class TemplateDriver:
    """Runs one compiled template over URLs.

    Attributes:
        template: The compiled template, shared by every URL.
        fetcher: Fetches pages that are not in the cache.
        cache: Page cache; a NullPageCache disables caching.
    """

    def __init__(
        self,
        template: CompiledTemplate,
        fetcher: PageFetcher,
        cache: PageCache | None = None,
    ) -> None:
        self.template = template
        self.fetcher = fetcher
        self.cache: PageCache = cache if cache is not None else NullPageCache()

    def fetch_document(self, url: str) -> Document:
        """Return the document for a URL, from the cache or the network.

        Raises:
            FetchError: If the URL is not cached and cannot be fetched.
        """
        document = self.cache.lookup(url)
        if document is not None:
            return document

        document = self.fetcher.fetch(url)
        self.cache.insert(url, document)
        return document

    def process_url(self, url: str) -> UrlResult:
        """Fetch and evaluate a single URL.

        Args:
            url: The URL to process.

        Returns:
            Matched with the output row, or NoMatch, FetchFailed or
            ExtractionFailed describing why there is no row.
        """
        try:
            document = self.fetch_document(url)
        except FetchError as e:
            logger.debug("Fetch failed for %s: %s", url, e.reason)
            return FetchFailed(url, e)

        try:
            row = evaluate(url, self.template, document)
        except ExtractionError as e:
            logger.debug("Extraction failed for %s: %s", url, e.reason)
            return ExtractionFailed(url, e)

        if row is None:
            return NoMatch(url, self.template.pattern)
        return Matched(url, tuple(row))

    def run(self, lines: Iterable[str]) -> Iterator[UrlResult]:
        """Process URLs in order, skipping blank lines.

        Args:
            lines: URL lines, e.g. from read_urls(). Surrounding whitespace
                is stripped.

        Yields:
            One UrlResult per non-blank line, in input order.
        """
        processed = 0
        matched = 0
        for line in lines:
            url = line.strip()
            if not url:
                continue

            result = self.process_url(url)
            processed += 1
            if isinstance(result, Matched):
                matched += 1
            yield result

        logger.info(
            "Processed %d URLs with template %r: %d matched",
            processed,
            self.template.name,
            matched,
        )
