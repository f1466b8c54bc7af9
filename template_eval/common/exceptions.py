"""Exception types for template evaluation errors.

Template errors (ValidationError, CompileError) are fatal and are raised
while a template is loaded, before any URL is processed. Fetch and
extraction errors are scoped to a single URL and are caught by the driver.
Cache errors never leave the cache: a failed read is a miss and a failed
write is logged.
"""

from __future__ import annotations

from typing import Any


class TemplateEvalException(Exception):
    """Base class for all template-eval errors.

    Attributes:
        message: Human-readable description of the failure.
        context: Additional key/value context rendered below the message.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the failure.
            context: Optional dict of additional context (field, value, etc).
        """
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        # Formatted on demand so context added while unwinding is shown
        return self._format_message()

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [self.message]

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


# =============================================================================
# Template errors
# =============================================================================


class TemplateError(TemplateEvalException):
    """Base class for errors raised while loading a template.

    These abort the whole run before any row is printed.
    """

    pass


class ValidationError(TemplateError):
    """Raised when template or rule metadata is malformed.

    Examples are an empty pattern, a rule name outside the template type's
    vocabulary, or a domain that does not appear in the pattern.
    """

    pass


class CompileError(TemplateError):
    """Raised when a URL pattern or a rule query fails to compile.

    The underlying parser diagnostic is kept as ``__cause__`` and repeated
    in the context under ``error``.

    Attributes:
        expression: The expression that failed to compile.
    """

    def __init__(
        self,
        message: str,
        expression: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.expression = expression
        super().__init__(message, {"expression": expression, **(context or {})})


# =============================================================================
# Per-URL errors
# =============================================================================


class FetchError(TemplateEvalException):
    """Base class for failures to obtain a page.

    Attributes:
        url: The URL that could not be fetched.
        reason: Short description of the failure, without context lines.
    """

    def __init__(
        self,
        url: str,
        reason: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.url = url
        self.reason = reason
        super().__init__(reason, {"url": url, **(context or {})})


class MalformedURLError(FetchError):
    """Raised when a URL cannot be requested at all (bad syntax or scheme)."""

    pass


class TransportError(FetchError):
    """Raised on network, protocol, HTTP status or body decoding failures.

    Attributes:
        status_code: HTTP status code when the server answered, else None.
    """

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        context = {"status_code": status_code} if status_code else None
        super().__init__(url, reason, context)


class ExtractionError(TemplateEvalException):
    """Raised when a compiled query fails while evaluating a document.

    Attributes:
        url: URL of the document being evaluated.
        reason: The engine's diagnostic.
        rule_name: Name of the rule owning the query, once known.
        expression: The failing query expression.
    """

    def __init__(
        self,
        url: str,
        reason: str,
        rule_name: str | None = None,
        expression: str | None = None,
    ) -> None:
        self.url = url
        self.reason = reason
        self.rule_name = rule_name
        self.expression = expression

        context: dict[str, Any] = {"url": url}
        if rule_name is not None:
            context["rule"] = rule_name
        if expression is not None:
            context["expression"] = expression
        super().__init__(f"Query evaluation failed: {reason}", context)


class DocumentParseError(TemplateEvalException):
    """Raised when raw markup cannot be turned into a document tree."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Could not parse HTML: {reason}", {"url": url})


# =============================================================================
# Cache errors
# =============================================================================


class CacheError(TemplateEvalException):
    """Base class for page cache failures. Always recovered locally.

    Attributes:
        url: The URL whose entry was being read or written.
        path: The entry's location on disk.
    """

    def __init__(self, url: str, path: str, reason: str) -> None:
        self.url = url
        self.path = path
        super().__init__(reason, {"url": url, "path": path})


class CacheReadError(CacheError):
    """Raised when a cache entry exists but cannot be read or parsed."""

    pass


class CacheWriteError(CacheError):
    """Raised when a cache entry cannot be written."""

    pass
