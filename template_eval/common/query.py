"""Query capability used by compiled rules.

Rules never talk to lxml directly. They hold a CompiledQuery produced by a
QueryCompiler, so the document/query engine can be swapped without touching
the template or rule compilers.

XPathQueryCompiler is the standard implementation. Expressions are compiled
once with ``lxml.etree.XPath`` and the compiled object is reused for every
document. The EXSLT ``re`` and ``set`` prefixes are pre-bound, so
expressions like ``//a[re:test(@href, '/p/\\d+')]`` work out of the box.

Results are flattened to strings:

- elements give their text content, stripped
- text nodes and attributes give their string value
- numbers give their shortest form (``count(//li)`` gives ``"3"``)
- booleans give ``"true"`` or ``"false"``
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from lxml import etree

from template_eval.common.exceptions import CompileError, ExtractionError

if TYPE_CHECKING:
    from template_eval.common.document import Document

EXSLT_NAMESPACES = {
    "re": "http://exslt.org/regular-expressions",
    "set": "http://exslt.org/sets",
}


class CompiledQuery(Protocol):
    """An executable query bound to one dialect."""

    @property
    def expression(self) -> str:
        """The source expression this query was compiled from."""
        ...

    def evaluate(self, document: Document) -> list[str]:
        """Run the query and return its results in document order.

        Raises:
            ExtractionError: If evaluation fails.
        """
        ...


class QueryCompiler(Protocol):
    """Compiles query expressions of one dialect."""

    dialect: str

    def compile(self, expression: str) -> CompiledQuery:
        """Compile an expression.

        Raises:
            CompileError: If the expression is not valid in this dialect.
        """
        ...


def _to_string(result: Any) -> str:
    """Flatten a single XPath result to a string."""
    if isinstance(result, etree._Element):
        text = etree.tostring(
            result, method="text", encoding="unicode", with_tail=False
        )
        return text.strip()
    # bool before float: bool is an int subclass, XPath numbers are floats
    if isinstance(result, bool):
        return "true" if result else "false"
    if isinstance(result, float):
        if result.is_integer():
            return str(int(result))
        return repr(result)
    return str(result)


class XPathQuery:
    """A compiled XPath 1.0 expression.

    Attributes:
        expression: The XPath source.
    """

    def __init__(self, expression: str, xpath: etree.XPath) -> None:
        self.expression = expression
        self._xpath = xpath

    def __repr__(self) -> str:
        return f"XPathQuery({self.expression!r})"

    def evaluate(self, document: Document) -> list[str]:
        """Run the query against a document.

        Args:
            document: The parsed document.

        Returns:
            One string per result, in document order. A scalar result
            (number, boolean, string function) gives a single-item list.

        Raises:
            ExtractionError: If lxml fails evaluating the expression, for
                example on an unknown function.
        """
        try:
            results = self._xpath(document.tree)
        except etree.XPathError as e:
            raise ExtractionError(
                document.url, str(e), expression=self.expression
            ) from e

        if isinstance(results, list):
            return [_to_string(r) for r in results]
        return [_to_string(results)]


class XPathQueryCompiler:
    """QueryCompiler for XPath 1.0 backed by lxml."""

    dialect = "xpath"

    def __init__(self, namespaces: dict[str, str] | None = None) -> None:
        """Initialize the compiler.

        Args:
            namespaces: Extra prefix to URI bindings. The EXSLT ``re`` and
                ``set`` prefixes are always bound.
        """
        self.namespaces = {**EXSLT_NAMESPACES, **(namespaces or {})}

    def compile(self, expression: str) -> XPathQuery:
        """Compile an XPath expression.

        Args:
            expression: XPath source.

        Returns:
            The compiled query.

        Raises:
            CompileError: If lxml rejects the expression.
        """
        try:
            xpath = etree.XPath(expression, namespaces=self.namespaces)
        except etree.XPathError as e:
            raise CompileError(
                f"Failed to compile xPath: {expression}: {e}",
                expression,
                {"dialect": self.dialect, "error": str(e)},
            ) from e
        return XPathQuery(expression, xpath)
