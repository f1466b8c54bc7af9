"""Extraction engine: applies a compiled template to a document."""

from __future__ import annotations

import re

from template_eval.common.document import Document
from template_eval.common.exceptions import ExtractionError
from template_eval.data_types import CompiledRule, CompiledTemplate

VALUE_SEPARATOR = ", "

# Tabs and line breaks would split a TSV row
_ROW_BREAKING = re.compile(r"[\t\r\n]+")


def header_row(template: CompiledTemplate) -> list[str]:
    """Column names: ``url`` followed by the rule names in order."""
    return ["url", *template.column_names]


def evaluate_rule(rule: CompiledRule, document: Document) -> str:
    """Evaluate one rule and join its values into a single field.

    Values are joined with ", " for both TEXT and LIST_TEXT rules; a rule
    with no results gives the empty string.

    Raises:
        ExtractionError: If the rule's query fails on this document.
    """
    try:
        values = rule.query.evaluate(document)
    except ExtractionError as e:
        raise ExtractionError(
            e.url, e.reason, rule_name=rule.name, expression=e.expression
        ) from e

    if not values:
        return ""
    return _ROW_BREAKING.sub(" ", VALUE_SEPARATOR.join(values))


def evaluate(
    url: str, template: CompiledTemplate, document: Document
) -> list[str] | None:
    """Apply a template to a document fetched from a URL.

    Args:
        url: The URL the document came from.
        template: The compiled template.
        document: The parsed document.

    Returns:
        None if the template's pattern does not match the URL. Otherwise
        the URL followed by one value per rule, in rule order.

    Raises:
        ExtractionError: If a rule's query fails on this document.
    """
    if not template.matches(url):
        return None

    return [url, *(evaluate_rule(rule, document) for rule in template.rules)]
