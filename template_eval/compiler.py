"""Template and rule compilation.

Templates are validated and compiled once, at startup. Every problem found
here is fatal: a template that fails to compile aborts the run before any
URL is fetched.

Template files are YAML mappings::

    pattern: "example\\.com/product/.*"   # regex searched in each URL
    domain: example.com                   # must appear in the pattern
    name: Example shoes
    type: product                         # general or product
    rules:                                # one output column per rule
      - name: title                       # from the type's vocabulary
        xPath: //h1
        output_format: TEXT               # TEXT or LIST_TEXT

Example::

    template = load_template(Path("templates/shoes.yaml"))
    for rule in template.rules:
        print(rule.name, rule.query.expression)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from template_eval.common.exceptions import CompileError, ValidationError
from template_eval.common.query import QueryCompiler, XPathQueryCompiler
from template_eval.data_types import (
    CompiledRule,
    CompiledTemplate,
    OutputFormat,
    RuleSpec,
    TemplateSpec,
)
from template_eval.vocabulary import (
    VOCABULARIES,
    TemplateType,
    is_permitted,
    parse_template_type,
)

logger = logging.getLogger(__name__)

_VALID_TYPES = ", ".join(t.value for t in TemplateType)
_VALID_FORMATS = ", ".join(f.value for f in OutputFormat)

# A backslash before punctuation, as produced by re.escape
_ESCAPED_PUNCTUATION = re.compile(r"\\([^\w\s])")


def compile_rule(
    spec: RuleSpec,
    vocabulary: frozenset[str],
    query_compiler: QueryCompiler,
) -> CompiledRule:
    """Validate a rule and compile its query.

    Args:
        spec: The rule as read from the template file.
        vocabulary: Rule names permitted by the template's type.
        query_compiler: Compiler for the rule's query dialect.

    Returns:
        The compiled rule.

    Raises:
        ValidationError: If a field is empty, the name is not in the
            vocabulary, or the output format is unknown.
        CompileError: If the query does not compile.
    """
    if not spec.name:
        raise ValidationError("Name must be non-empty!")
    if not spec.query:
        raise ValidationError(
            "xPath must be non-empty!", {"rule": spec.name}
        )
    if not spec.output_format:
        raise ValidationError(
            "output_format must be non-empty!", {"rule": spec.name}
        )

    if not is_permitted(spec.name, vocabulary):
        raise ValidationError(
            f"Name must be one of {{{', '.join(sorted(vocabulary))}}}",
            {"rule": spec.name},
        )

    try:
        output_format = OutputFormat(spec.output_format.upper())
    except ValueError:
        raise ValidationError(
            f"output_format must be one of {{{_VALID_FORMATS}}}",
            {"rule": spec.name, "output_format": spec.output_format},
        ) from None

    query = query_compiler.compile(spec.query)

    return CompiledRule(
        name=spec.name, output_format=output_format, query=query
    )


def _domain_in_pattern(domain: str, pattern: str) -> bool:
    """Check that the domain appears literally in the URL pattern.

    Patterns usually escape the dots of the domain (``example\\.com``), so
    the pattern is also searched with escaped punctuation unescaped.
    """
    if domain in pattern:
        return True
    return domain in _ESCAPED_PUNCTUATION.sub(r"\1", pattern)


def compile_template(
    spec: TemplateSpec,
    query_compiler: QueryCompiler | None = None,
) -> CompiledTemplate:
    """Validate a template and compile its pattern and rules.

    Args:
        spec: The template as read from the template file.
        query_compiler: Compiler for rule queries. Defaults to XPath.

    Returns:
        The compiled template.

    Raises:
        ValidationError: If the template or any rule is malformed.
        CompileError: If the pattern or any rule query does not compile.
    """
    if query_compiler is None:
        query_compiler = XPathQueryCompiler()

    if not spec.pattern:
        raise ValidationError("Pattern must be non-empty!")
    if not spec.domain:
        raise ValidationError("Domain must be non-empty!")
    if not spec.name:
        raise ValidationError("Name must be non-empty!")
    if not spec.rules:
        raise ValidationError(
            "At least one rule must be specified", {"template": spec.name}
        )

    template_type = parse_template_type(spec.type)
    if template_type is None:
        raise ValidationError(
            f"Type must be one of {{{_VALID_TYPES}}}",
            {"template": spec.name, "type": spec.type},
        )

    try:
        url_match = re.compile(spec.pattern)
    except re.error as e:
        raise CompileError(
            f"Failed to compile pattern: {e}",
            spec.pattern,
            {"template": spec.name, "error": str(e)},
        ) from e

    if not _domain_in_pattern(spec.domain, spec.pattern):
        raise ValidationError(
            "The pattern should contain the domain",
            {
                "template": spec.name,
                "pattern": spec.pattern,
                "domain": spec.domain,
            },
        )

    vocabulary = VOCABULARIES[template_type]
    rules: list[CompiledRule] = []
    for position, rule_spec in enumerate(spec.rules, start=1):
        try:
            rules.append(compile_rule(rule_spec, vocabulary, query_compiler))
        except (ValidationError, CompileError) as e:
            e.context.setdefault("template", spec.name)
            e.context.setdefault("position", position)
            raise

    logger.debug(
        "Compiled template %r (%s, %d rules)",
        spec.name,
        template_type.value,
        len(rules),
    )

    return CompiledTemplate(
        name=spec.name,
        domain=spec.domain,
        type=template_type,
        pattern=spec.pattern,
        url_match=url_match,
        rules=tuple(rules),
    )


def load_template_spec(path: Path) -> TemplateSpec:
    """Read a template file into a TemplateSpec without compiling it.

    Args:
        path: Path to the YAML template file.

    Returns:
        The deserialized template.

    Raises:
        ValidationError: If the file is unreadable, is not valid YAML, is
            not a mapping, or has fields of the wrong shape.
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except OSError as e:
        raise ValidationError(
            f"Could not read template file: {e.strerror or e}",
            {"path": str(path)},
        ) from e
    except yaml.YAMLError as e:
        raise ValidationError(
            "Template file is not valid YAML", {"path": str(path), "error": e}
        ) from e

    if not isinstance(content, dict):
        raise ValidationError(
            "Template file must contain a mapping",
            {"path": str(path), "found": type(content).__name__},
        )

    try:
        return TemplateSpec.model_validate(content)
    except PydanticValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(
            f"Template file has invalid fields: {errors}",
            {"path": str(path)},
        ) from e


def load_template(
    path: Path, query_compiler: QueryCompiler | None = None
) -> CompiledTemplate:
    """Read and compile a template file.

    Args:
        path: Path to the YAML template file.
        query_compiler: Compiler for rule queries. Defaults to XPath.

    Returns:
        The compiled template.

    Raises:
        ValidationError: If the file or the template is malformed.
        CompileError: If the pattern or a rule query does not compile.
    """
    spec = load_template_spec(path)
    return compile_template(spec, query_compiler)
