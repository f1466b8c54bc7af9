"""Shared fixtures for template-eval tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from template_eval.common.document import Document, parse_document
from template_eval.compiler import compile_template
from template_eval.data_types import CompiledTemplate, RuleSpec, TemplateSpec

SHOE_URL = "https://example.com/product/42"

SHOE_HTML = """
<html>
<head><title>Shoe | Example Store</title></head>
<body>
    <h1>Shoe</h1>
    <span class="price">49.99</span>
    <ul class="colors">
        <li>A</li>
        <li>B</li>
        <li>C</li>
    </ul>
    <img class="gallery" src="/img/1.jpg" />
    <img class="gallery" src="/img/2.jpg" />
</body>
</html>
"""

SHOE_TEMPLATE_YAML = """\
pattern: "example\\\\.com/product/.*"
domain: example.com
name: Example shoes
type: product
rules:
  - name: title
    xPath: //h1
    output_format: TEXT
"""


@pytest.fixture
def shoe_url() -> str:
    """URL matched by the product template."""
    return SHOE_URL


@pytest.fixture
def shoe_html() -> str:
    """Product page with one h1, one price and three colors."""
    return SHOE_HTML


@pytest.fixture
def shoe_document() -> Document:
    """The product page, parsed."""
    return parse_document(SHOE_URL, SHOE_HTML)


@pytest.fixture
def make_document() -> Callable[[str, str], Document]:
    """Factory parsing markup into a Document."""

    def _make(source: str, url: str = SHOE_URL) -> Document:
        return parse_document(url, source)

    return _make


@pytest.fixture
def product_spec() -> TemplateSpec:
    """Product template with a title rule, as in the template file."""
    return TemplateSpec(
        pattern=r"example\.com/product/.*",
        domain="example.com",
        name="Example shoes",
        type="product",
        rules=(RuleSpec(name="title", query="//h1", output_format="TEXT"),),
    )


@pytest.fixture
def product_template(product_spec: TemplateSpec) -> CompiledTemplate:
    """The product template, compiled."""
    return compile_template(product_spec)


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Factory writing text to a file under tmp_path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def template_file(write_file: Callable[[str, str], Path]) -> Path:
    """The product template written as YAML."""
    return write_file("shoes.yaml", SHOE_TEMPLATE_YAML)


@pytest.fixture
def runner() -> CliRunner:
    """Click test runner."""
    return CliRunner()
