"""Tests for the template-eval command line.

HTTP traffic is mocked with ``respx``; every URL a test feeds to ``run`` that
has an http(s) scheme needs a route, since non-matching URLs are fetched too.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import respx
from click.testing import CliRunner

from template_eval.cli import cli

SHOE_PAGE = "<html><body><h1>Shoe</h1></body></html>"


class TestRunCommand:
    """Tests for the run command."""

    def test_end_to_end(
        self, runner: CliRunner, write_file, template_file: Path
    ) -> None:
        """A matching URL shall produce the header and one row."""
        urls = write_file("urls.txt", "https://example.com/product/42\n")

        with respx.mock:
            respx.get("https://example.com/product/42").mock(
                return_value=httpx.Response(200, text=SHOE_PAGE)
            )
            result = runner.invoke(cli, ["run", str(urls), str(template_file)])

        assert result.exit_code == 0, result.output
        assert result.stdout == (
            "url\ttitle\nhttps://example.com/product/42\tShoe\n"
        )
        assert result.stderr == ""

    def test_non_matching_url(
        self, runner: CliRunner, write_file, template_file: Path
    ) -> None:
        """A URL outside the pattern shall be reported on stderr only."""
        urls = write_file("urls.txt", "https://other.com/x\n")

        with respx.mock:
            respx.get("https://other.com/x").mock(
                return_value=httpx.Response(200, text=SHOE_PAGE)
            )
            result = runner.invoke(cli, ["run", str(urls), str(template_file)])

        assert result.exit_code == 0
        assert result.stdout == "url\ttitle\n"
        assert result.stderr == (
            "URL https://other.com/x did not match template url regex: "
            "example\\.com/product/.*\n"
        )

    def test_fetch_failure_continues(
        self, runner: CliRunner, write_file, template_file: Path
    ) -> None:
        """A URL that cannot be fetched shall not stop later URLs."""
        urls = write_file(
            "urls.txt",
            "https://example.com/product/404\n"
            "\n"
            "https://example.com/product/42\n",
        )

        with respx.mock:
            respx.get("https://example.com/product/404").mock(
                return_value=httpx.Response(404)
            )
            respx.get("https://example.com/product/42").mock(
                return_value=httpx.Response(200, text=SHOE_PAGE)
            )
            result = runner.invoke(cli, ["run", str(urls), str(template_file)])

        assert result.exit_code == 0
        assert result.stdout == (
            "url\ttitle\nhttps://example.com/product/42\tShoe\n"
        )
        assert result.stderr == (
            "Failed to fetch HTML from https://example.com/product/404 : "
            "HTTP 404 Not Found\n"
        )

    def test_undecodable_url_line(
        self, runner: CliRunner, tmp_path: Path, template_file: Path
    ) -> None:
        """Invalid UTF-8 on one line shall not cost the other rows."""
        urls = tmp_path / "urls.txt"
        urls.write_bytes(
            b"https://example.com/product/42\n"
            b"https://example.com/product/\xff\n"
            b"https://example.com/product/43\n"
        )

        # The garbled URL is auto-mocked with an empty body
        with respx.mock(assert_all_mocked=False) as mock:
            mock.get("https://example.com/product/42").mock(
                return_value=httpx.Response(200, text=SHOE_PAGE)
            )
            mock.get("https://example.com/product/43").mock(
                return_value=httpx.Response(200, text=SHOE_PAGE)
            )
            result = runner.invoke(cli, ["run", str(urls), str(template_file)])

        assert result.exception is None
        assert result.exit_code == 0
        assert result.stdout == (
            "url\ttitle\n"
            "https://example.com/product/42\tShoe\n"
            "https://example.com/product/43\tShoe\n"
        )
        assert result.stderr.count("\n") == 1
        assert "https://example.com/product/\ufffd" in result.stderr

    def test_invalid_url(
        self, runner: CliRunner, write_file, template_file: Path
    ) -> None:
        urls = write_file("urls.txt", "example.com/product/42\n")

        result = runner.invoke(cli, ["run", str(urls), str(template_file)])

        assert result.exit_code == 0
        assert result.stdout == "url\ttitle\n"
        assert result.stderr.startswith(
            "URL: example.com/product/42 is not a valid URL: "
        )

    def test_extraction_failure(self, runner: CliRunner, write_file) -> None:
        """A rule failing at evaluation shall be reported by name."""
        template = write_file(
            "broken.yaml",
            "pattern: example\\.com/product/.*\n"
            "domain: example.com\n"
            "name: Broken\n"
            "type: product\n"
            "rules:\n"
            "  - name: price\n"
            "    xPath: //h1[$undefined]\n"
            "    output_format: TEXT\n",
        )
        urls = write_file("urls.txt", "https://example.com/product/42\n")

        with respx.mock:
            respx.get("https://example.com/product/42").mock(
                return_value=httpx.Response(200, text=SHOE_PAGE)
            )
            result = runner.invoke(cli, ["run", str(urls), str(template)])

        assert result.exit_code == 0
        assert result.stdout == "url\tprice\n"
        assert result.stderr.startswith(
            "Failed to extract fields from https://example.com/product/42 : "
            "rule 'price': "
        )

    def test_invalid_template_aborts(
        self, runner: CliRunner, write_file
    ) -> None:
        """An invalid template shall fail before anything is fetched."""
        template = write_file(
            "bad.yaml",
            "pattern: example\\.com/.*\n"
            "name: No domain\n"
            "type: product\n"
            "rules:\n"
            "  - name: title\n"
            "    xPath: //h1\n"
            "    output_format: TEXT\n",
        )
        urls = write_file("urls.txt", "https://example.com/product/42\n")

        with respx.mock(assert_all_called=False) as mock:
            route = mock.get("https://example.com/product/42")
            result = runner.invoke(cli, ["run", str(urls), str(template)])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert "Invalid template" in result.stderr
        assert "Domain must be non-empty!" in result.stderr
        assert not route.called

    def test_missing_url_file(
        self, runner: CliRunner, tmp_path: Path, template_file: Path
    ) -> None:
        result = runner.invoke(
            cli, ["run", str(tmp_path / "nope.txt"), str(template_file)]
        )

        assert result.exit_code == 2

    def test_cache_dir_avoids_refetch(
        self,
        runner: CliRunner,
        write_file,
        template_file: Path,
        tmp_path: Path,
    ) -> None:
        """A second run over the same cache shall not fetch again."""
        urls = write_file("urls.txt", "https://example.com/product/42\n")
        cache_dir = tmp_path / "cache"
        args = ["run", str(urls), str(template_file), str(cache_dir)]

        with respx.mock:
            route = respx.get("https://example.com/product/42").mock(
                return_value=httpx.Response(200, text=SHOE_PAGE)
            )
            first = runner.invoke(cli, args)
            second = runner.invoke(cli, args)

        assert route.call_count == 1
        assert first.exit_code == second.exit_code == 0
        assert first.stdout == second.stdout
        assert cache_dir.is_dir()

    def test_cache_dir_from_environment(
        self,
        runner: CliRunner,
        write_file,
        template_file: Path,
        tmp_path: Path,
    ) -> None:
        urls = write_file("urls.txt", "https://example.com/product/42\n")
        cache_dir = tmp_path / "env-cache"

        with respx.mock:
            respx.get("https://example.com/product/42").mock(
                return_value=httpx.Response(200, text=SHOE_PAGE)
            )
            result = runner.invoke(
                cli,
                ["run", str(urls), str(template_file)],
                env={"TEMPLATE_EVAL_CACHE_DIR": str(cache_dir)},
            )

        assert result.exit_code == 0
        assert any(cache_dir.rglob("*.html.zst"))


class TestCheckCommand:
    """Tests for the check command."""

    def test_valid_template(
        self, runner: CliRunner, template_file: Path
    ) -> None:
        """A valid template shall be summarized without fetching."""
        result = runner.invoke(cli, ["check", str(template_file)])

        assert result.exit_code == 0
        assert "Template:  Example shoes" in result.stdout
        assert "Type:      product" in result.stdout
        assert "Columns:   url, title" in result.stdout
        assert "title [TEXT] //h1" in result.stdout

    def test_unknown_rule_name(self, runner: CliRunner, write_file) -> None:
        template = write_file(
            "bad.yaml",
            "pattern: example\\.com/.*\n"
            "domain: example.com\n"
            "name: Bad rule\n"
            "type: general\n"
            "rules:\n"
            "  - name: title\n"
            "    xPath: //h1\n"
            "    output_format: TEXT\n",
        )

        result = runner.invoke(cli, ["check", str(template)])

        assert result.exit_code == 1
        assert "Name must be one of" in result.stderr
