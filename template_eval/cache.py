"""On-disk page cache.

The cache maps URLs to the raw markup fetched for them, so repeated runs over
the same URL list do not hit the network again.

On-disk format:

- key: SHA-256 hex digest of the UTF-8 encoded URL. The URL is hashed
  exactly as given; no normalization is applied.
- location: ``<cache dir>/<key[:2]>/<key>.html.zst``. Keys contain only
  ``[0-9a-f]``, so URLs with slashes, query strings or reserved characters
  never leak into the path.
- content: the page's raw markup, UTF-8 encoded, as one zstd frame.

Entries are written once and never expired or deleted. An entry is only
rewritten after a lookup found it unreadable (corrupt or truncated); the
freshly fetched page then replaces it. Writes go to a temporary file in the
entry's directory and are renamed into place, so a reader never sees a
partial entry.

The cache never fails a run. Unreadable entries count as misses and failed
writes are logged and dropped. When no usable directory is configured,
open_page_cache() returns a NullPageCache, which misses on every lookup.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

import zstandard as zstd

from template_eval.common.compression import compress, decompress
from template_eval.common.document import Document, parse_document
from template_eval.common.exceptions import (
    CacheReadError,
    CacheWriteError,
    DocumentParseError,
)

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".html.zst"


def cache_key(url: str) -> str:
    """Derive the cache key for a URL.

    Args:
        url: The URL, exactly as it appears in the input.

    Returns:
        64-character lowercase hex digest.
    """
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


class PageCache(Protocol):
    """Maps URLs to previously fetched documents."""

    @property
    def enabled(self) -> bool:
        """Whether inserted documents can ever be looked up again."""
        ...

    def lookup(self, url: str) -> Document | None:
        """Return the cached document for a URL, or None on a miss."""
        ...

    def insert(self, url: str, document: Document) -> None:
        """Store a document. Best effort: never raises."""
        ...


class NullPageCache:
    """A cache that stores nothing. Every lookup is a miss."""

    enabled = False

    def lookup(self, url: str) -> Document | None:
        return None

    def insert(self, url: str, document: Document) -> None:
        pass


class DiskPageCache:
    """Page cache backed by a directory of zstd-compressed files.

    Attributes:
        directory: Root directory of the cache.
    """

    enabled = True

    def __init__(self, directory: Path) -> None:
        """Initialize the cache.

        Args:
            directory: Root directory. Must exist and be writable; use
                open_page_cache() to have this checked.
        """
        self.directory = directory
        # URLs whose entry failed to read; insert may replace those
        self._unreadable: set[str] = set()

    def __repr__(self) -> str:
        return f"DiskPageCache({str(self.directory)!r})"

    def path_for(self, url: str) -> Path:
        """Return the location of a URL's entry, whether or not it exists."""
        key = cache_key(url)
        return self.directory / key[:2] / f"{key}{ENTRY_SUFFIX}"

    def lookup(self, url: str) -> Document | None:
        """Return the cached document for a URL.

        Args:
            url: The URL to look up.

        Returns:
            The parsed document, or None if there is no entry or the entry
            cannot be read.
        """
        path = self.path_for(url)
        if not path.is_file():
            logger.debug("Cache miss for %s", url)
            return None

        try:
            document = self._read(url, path)
        except CacheReadError as e:
            logger.warning(
                "Ignoring unreadable cache entry %s for %s: %s",
                e.path,
                url,
                e.message,
            )
            self._unreadable.add(url)
            return None

        logger.debug("Cache hit for %s", url)
        return document

    def insert(self, url: str, document: Document) -> None:
        """Store a document's raw markup under the URL's key.

        An existing entry is left untouched unless lookup() found it
        unreadable, in which case it is replaced. Failures are logged and
        otherwise ignored.

        Args:
            url: The URL the document was fetched from.
            document: The fetched document.
        """
        path = self.path_for(url)
        if path.exists() and url not in self._unreadable:
            return

        try:
            self._write(url, path, document.source)
        except CacheWriteError as e:
            logger.warning(
                "Could not cache %s at %s: %s", url, e.path, e.message
            )
            return

        self._unreadable.discard(url)
        logger.debug("Cached %s at %s", url, path)

    def _read(self, url: str, path: Path) -> Document:
        """Read and parse one entry.

        Raises:
            CacheReadError: If the entry cannot be read, decompressed,
                decoded or parsed.
        """
        try:
            source = decompress(path.read_bytes()).decode("utf-8")
            return parse_document(url, source)
        except (
            OSError,
            zstd.ZstdError,
            UnicodeDecodeError,
            DocumentParseError,
        ) as e:
            raise CacheReadError(url, str(path), str(e)) from e

    def _write(self, url: str, path: Path, source: str) -> None:
        """Atomically write one entry.

        Raises:
            CacheWriteError: If the entry cannot be written.
        """
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=".", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(compress(source.encode("utf-8")))
            os.replace(tmp_name, path)
        except (OSError, zstd.ZstdError) as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise CacheWriteError(url, str(path), str(e)) from e


def open_page_cache(
    directory: str | Path | None,
) -> DiskPageCache | NullPageCache:
    """Open the page cache for a directory.

    The directory is created if it does not exist. Caching is disabled,
    with a warning, if the directory cannot be created or is not writable.

    Args:
        directory: Cache directory. None or "" disables caching.

    Returns:
        A DiskPageCache, or a NullPageCache when caching is disabled.
    """
    if directory is None or not str(directory).strip():
        logger.debug("No cache directory configured; caching disabled")
        return NullPageCache()

    path = Path(directory).expanduser()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(
            "Cannot create cache directory %s (%s); caching disabled",
            path,
            e.strerror or e,
        )
        return NullPageCache()

    if not os.access(path, os.W_OK | os.X_OK):
        logger.warning(
            "Cache directory %s is not writable; caching disabled", path
        )
        return NullPageCache()

    logger.debug("Using page cache at %s", path)
    return DiskPageCache(path)
