"""Parsed HTML documents.

A Document keeps the raw markup it was built from alongside the lxml tree.
The raw markup is what the page cache stores; the tree is what compiled
queries run against.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lxml import etree, html
from lxml.html import HtmlElement

from template_eval.common.exceptions import DocumentParseError


@dataclass(frozen=True)
class Document:
    """A fetched page, parsed and ready for querying.

    Attributes:
        url: The URL the page was fetched from.
        source: The raw markup as received.
        tree: Root element of the parsed document.
    """

    url: str
    source: str
    tree: HtmlElement = field(compare=False, repr=False)


def parse_document(url: str, source: str) -> Document:
    """Parse raw markup into a Document.

    Args:
        url: The URL the markup came from. Used as the tree's base URL.
        source: The raw markup.

    Returns:
        A Document wrapping the parsed tree.

    Raises:
        DocumentParseError: If lxml cannot build a tree (e.g. empty input).
    """
    try:
        tree = html.document_fromstring(source, base_url=url)
    except ValueError:
        # lxml refuses str input carrying an XML encoding declaration
        try:
            tree = html.document_fromstring(
                source.encode("utf-8"), base_url=url
            )
        except (etree.ParserError, ValueError) as e:
            raise DocumentParseError(url, str(e)) from e
    except etree.ParserError as e:
        raise DocumentParseError(url, str(e)) from e

    return Document(url=url, source=source, tree=tree)
