"""
Tests for the command line interface.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from brokenlinks import cli
from brokenlinks.storage.results import HttpStatus, LinkResult, ResultStore

from fakes import make_config


def sample_results():
    store = ResultStore()
    store.append(LinkResult(url="http://example.com", status=HttpStatus.from_code(200)))
    store.append(LinkResult(url="http://example.com/gone", parent="http://example.com",
                            status=HttpStatus.from_code(404)))
    return store


class TestParseArguments:
    """Option parsing and mapping onto the configuration."""

    def test_short_options(self):
        args = cli.parse_arguments(["-u", "http://example.com", "-s", "2", "-i", r"\.pdf$",
                                    "-l", "urls.txt", "-o", "out.json", "-L", "debug"])

        assert args.url == "http://example.com"
        assert args.stop_after == 2
        assert args.ignore_regex == r"\.pdf$"
        assert args.url_list == "urls.txt"
        assert args.output_file == "out.json"
        assert args.log_level == "DEBUG"

    def test_long_ignore_option(self):
        args = cli.parse_arguments(["--url", "http://example.com", "--ignoreRegex", "logout"])

        assert args.ignore_regex == "logout"

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            cli.parse_arguments(["-u", "http://example.com", "-L", "LOUD"])

    def test_build_config(self):
        args = cli.parse_arguments(["-u", "http://example.com", "--dont-print-result", "--pretty-print",
                                    "--ignore-robots", "--drop-fragments", "--serial-fanout",
                                    "--timeout", "5", "--max-concurrent-requests", "3",
                                    "--user-agent", "checker/2", "-L", "warn"])

        config = cli.build_config(args)

        assert config.crawler.base_url == "http://example.com"
        assert config.crawler.respect_robots_txt is False
        assert config.crawler.drop_fragments is True
        assert config.crawler.serial_fanout is True
        assert config.crawler.request_timeout == 5
        assert config.crawler.max_concurrent_requests == 3
        assert config.crawler.user_agent == "checker/2"
        assert config.output.print_result is False
        assert config.output.pretty_print is True
        assert config.logging.level == "WARN"

    def test_unset_flags_keep_config_file_values(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "crawler:\n"
            "  base_url: http://example.com\n"
            "  respect_robots_txt: false\n"
            "output:\n"
            "  print_result: false\n",
            encoding='utf-8'
        )

        config = cli.build_config(cli.parse_arguments(["--config", str(config_file)]))

        assert config.crawler.respect_robots_txt is False
        assert config.output.print_result is False


class TestMain:
    """Exit codes and output."""

    def test_missing_url_exits_with_error(self, capsys):
        assert cli.main([]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_url_exits_with_error(self, capsys):
        assert cli.main(["-u", "example.com"]) == 1
        assert "example.com" in capsys.readouterr().err

    def test_missing_url_list_exits_with_error(self, tmp_path, capsys):
        assert cli.main(["-u", "http://example.com", "-l", str(tmp_path / "missing.txt")]) == 1
        assert "missing.txt" in capsys.readouterr().err

    def test_successful_run_prints_json(self, capsys):
        with patch.object(cli, "setup_logging"), \
                patch.object(cli.CrawlerApp, "run", new=AsyncMock(return_value=sample_results())):
            exit_code = cli.main(["-u", "http://example.com"])

        assert exit_code == 0
        printed = json.loads(capsys.readouterr().out)
        assert [entry['status'] for entry in printed] == ["200 OK", "404 Not Found"]

    def test_interrupt_exits_with_error(self, capsys):
        with patch.object(cli, "setup_logging"), \
                patch.object(cli.CrawlerApp, "run", new=AsyncMock(side_effect=KeyboardInterrupt)):
            exit_code = cli.main(["-u", "http://example.com"])

        assert exit_code == 1
        assert "Interrupted" in capsys.readouterr().err


class TestCrawlerApp:
    """Writing results."""

    def test_write_output_to_file_only(self, tmp_path, capsys):
        config = make_config("http://example.com")
        config.output.print_result = False
        config.output.file = str(tmp_path / "out.json")

        cli.CrawlerApp(config).write_output(sample_results())

        assert capsys.readouterr().out == ""
        data = json.loads((tmp_path / "out.json").read_text(encoding='utf-8'))
        assert data[1]['url'] == "http://example.com/gone"
        assert data[1]['parent'] == "http://example.com"

    def test_write_output_pretty(self, capsys):
        config = make_config("http://example.com")
        config.output.pretty_print = True

        cli.CrawlerApp(config).write_output(sample_results())

        out = capsys.readouterr().out
        assert "\n    {" in out
        assert len(json.loads(out)) == 2

    @pytest.mark.asyncio
    async def test_run_closes_scheduler(self):
        config = make_config("http://example.com")
        app = cli.CrawlerApp(config)

        with patch.object(cli.CrawlerScheduler, "initialize", new=AsyncMock()), \
                patch.object(cli.CrawlerScheduler, "crawl", new=AsyncMock(side_effect=RuntimeError("boom"))), \
                patch.object(cli.CrawlerScheduler, "close", new=AsyncMock()) as close:
            with pytest.raises(RuntimeError):
                await app.run()

        close.assert_awaited_once()
