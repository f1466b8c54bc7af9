"""template-eval CLI: apply an extraction template to a list of URLs.

Usage:
    template-eval run urls.txt template.yaml              # No page cache
    template-eval run urls.txt template.yaml cache/       # Cache pages in cache/
    template-eval check template.yaml                     # Validate a template

Rows are written to stdout as tab-separated values: a header line, then one
line per URL that matched the template. URLs that did not match or could
not be fetched are reported on stderr.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from typing_extensions import assert_never

from template_eval.cache import open_page_cache
from template_eval.common.exceptions import MalformedURLError, TemplateError
from template_eval.compiler import load_template
from template_eval.data_types import (
    CompiledTemplate,
    ExtractionFailed,
    FetchFailed,
    Matched,
    NoMatch,
    UrlResult,
)
from template_eval.driver import TemplateDriver, read_urls
from template_eval.engine import header_row
from template_eval.fetcher import DEFAULT_TIMEOUT, PageFetcher


def _configure_logging(verbose: bool) -> None:
    # stderr also carries per-URL diagnostics, so stay quiet by default
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("template_eval").setLevel(log_level)


def _load(template_file: Path) -> CompiledTemplate:
    """Compile a template file, turning template errors into CLI errors."""
    try:
        return load_template(template_file)
    except TemplateError as e:
        raise click.ClickException(
            f"Invalid template {template_file}: {e}"
        ) from e


def report(result: UrlResult) -> None:
    """Write a URL result: rows to stdout, diagnostics to stderr."""
    match result:
        case Matched(row=row):
            click.echo("\t".join(row))
        case NoMatch(url=url, pattern=pattern):
            click.echo(
                f"URL {url} did not match template url regex: {pattern}",
                err=True,
            )
        case FetchFailed(url=url, error=MalformedURLError()):
            click.echo(
                f"URL: {url} is not a valid URL: {result.reason}", err=True
            )
        case FetchFailed(url=url):
            click.echo(
                f"Failed to fetch HTML from {url} : {result.reason}", err=True
            )
        case ExtractionFailed(url=url, error=error):
            click.echo(
                f"Failed to extract fields from {url} : "
                f"rule '{error.rule_name}': {result.reason}",
                err=True,
            )
        case _:
            assert_never(result)


@click.group()
@click.version_option(package_name="template-eval")
def cli() -> None:
    """template-eval: extract page fields with declarative templates."""


@cli.command()
@click.argument(
    "url_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "template_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "cache_dir",
    required=False,
    default=None,
    envvar="TEMPLATE_EVAL_CACHE_DIR",
)
@click.option(
    "--timeout",
    type=float,
    default=DEFAULT_TIMEOUT,
    show_default=True,
    help="Request timeout in seconds (0 disables the timeout).",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def run(
    url_file: Path,
    template_file: Path,
    cache_dir: str | None,
    timeout: float,
    verbose: bool,
) -> None:
    """Fetch the URLs in URL_FILE and apply TEMPLATE_FILE to each page.

    URL_FILE holds one URL per line; blank lines are skipped. CACHE_DIR,
    if given (or set in TEMPLATE_EVAL_CACHE_DIR), stores fetched pages so
    later runs reuse them instead of fetching again.

    \b
    Examples:
        template-eval run urls.txt shoes.yaml
        template-eval run urls.txt shoes.yaml ~/.cache/template-eval
    """
    _configure_logging(verbose)

    template = _load(template_file)
    cache = open_page_cache(cache_dir)

    click.echo("\t".join(header_row(template)))

    with PageFetcher(timeout=timeout if timeout > 0 else None) as fetcher:
        driver = TemplateDriver(template, fetcher, cache)
        for result in driver.run(read_urls(url_file)):
            report(result)


@cli.command()
@click.argument(
    "template_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def check(template_file: Path, verbose: bool) -> None:
    """Validate and compile TEMPLATE_FILE without fetching anything."""
    _configure_logging(verbose)

    template = _load(template_file)

    click.echo(f"Template:  {template.name}")
    click.echo(f"Type:      {template.type.value}")
    click.echo(f"Domain:    {template.domain}")
    click.echo(f"Pattern:   {template.pattern}")
    click.echo(f"Columns:   {', '.join(header_row(template))}")
    click.echo(f"Rules ({len(template.rules)}):")
    for rule in template.rules:
        click.echo(
            f"  {rule.name} [{rule.output_format.value}] "
            f"{rule.query.expression}"
        )
