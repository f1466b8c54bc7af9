"""Data types for template evaluation.

This module defines the two halves of the template model and the values
the driver hands back for each URL:

1. Raw specs - Pydantic models deserialized from the template file. They
   are lenient about missing keys so the compiler can report every problem
   as a ValidationError with a clear message.
2. Compiled forms - Frozen dataclasses built once at startup and shared,
   read-only, by every URL evaluation.
3. URL results - One tagged value per processed URL, so routine outcomes
   (no match, fetch failure) are matched on instead of raised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from template_eval.common.exceptions import ExtractionError, FetchError
from template_eval.common.query import CompiledQuery
from template_eval.vocabulary import TemplateType

# =============================================================================
# Raw specs
# =============================================================================


class RuleSpec(BaseModel):
    """One extraction rule as written in the template file.

    The query is accepted under ``query``, ``xPath`` or ``xpath``, and the
    output format under ``output_format`` or ``outputFormat``.

    Attributes:
        name: Output column name.
        query: XPath expression selecting the field's values.
        output_format: ``TEXT`` or ``LIST_TEXT``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    query: str = Field(
        default="",
        validation_alias=AliasChoices("query", "xPath", "xpath"),
    )
    output_format: str = Field(
        default="",
        validation_alias=AliasChoices("output_format", "outputFormat"),
    )

    @field_validator("name", "query", "output_format", mode="before")
    @classmethod
    def blank_to_empty(cls, value: Any) -> Any:
        # YAML reads ``name:`` with no value as None
        return "" if value is None else value


class TemplateSpec(BaseModel):
    """A template as written in the template file.

    Attributes:
        pattern: Regular expression the URLs must match.
        domain: Site domain; must appear in the pattern.
        name: Template name.
        type: Vocabulary selector, ``general`` or ``product``.
        rules: Extraction rules in output column order.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str = ""
    domain: str = ""
    name: str = ""
    type: str = ""
    rules: tuple[RuleSpec, ...] = ()

    @field_validator("pattern", "domain", "name", "type", mode="before")
    @classmethod
    def blank_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("rules", mode="before")
    @classmethod
    def missing_rules(cls, value: Any) -> Any:
        return () if value is None else value


# =============================================================================
# Compiled forms
# =============================================================================


class OutputFormat(Enum):
    """Cardinality hint attached to a rule.

    Both formats join multiple values with ", " in the output row.
    """

    TEXT = "TEXT"
    LIST_TEXT = "LIST_TEXT"


@dataclass(frozen=True)
class CompiledRule:
    """A validated rule with its query compiled.

    Attributes:
        name: Output column name, as written in the template.
        output_format: Cardinality hint.
        query: Executable query, reused for every document.
    """

    name: str
    output_format: OutputFormat
    query: CompiledQuery


@dataclass(frozen=True)
class CompiledTemplate:
    """A validated template, ready to evaluate documents.

    Attributes:
        name: Template name.
        domain: Site domain.
        type: The vocabulary the rule names were checked against.
        pattern: Source of the URL regular expression.
        url_match: Compiled URL regular expression.
        rules: Compiled rules in output column order.
    """

    name: str
    domain: str
    type: TemplateType
    pattern: str
    url_match: re.Pattern[str] = field(compare=False, repr=False)
    rules: tuple[CompiledRule, ...] = ()

    def matches(self, url: str) -> bool:
        """Check whether the URL pattern matches anywhere in the URL."""
        return self.url_match.search(url) is not None

    @property
    def column_names(self) -> list[str]:
        """Rule names in output column order."""
        return [rule.name for rule in self.rules]


# =============================================================================
# URL results
# =============================================================================


@dataclass(frozen=True)
class Matched:
    """The URL matched and every rule was evaluated.

    Attributes:
        url: The processed URL.
        row: The URL followed by one value per rule.
    """

    url: str
    row: tuple[str, ...]


@dataclass(frozen=True)
class NoMatch:
    """The URL does not satisfy the template's pattern."""

    url: str
    pattern: str


@dataclass(frozen=True)
class FetchFailed:
    """The page could be neither read from cache nor fetched."""

    url: str
    error: FetchError

    @property
    def reason(self) -> str:
        return self.error.reason


@dataclass(frozen=True)
class ExtractionFailed:
    """A rule's query failed while evaluating the page."""

    url: str
    error: ExtractionError

    @property
    def reason(self) -> str:
        return self.error.reason


# The driver returns exactly one of these per URL.
UrlResult = Matched | NoMatch | FetchFailed | ExtractionFailed
