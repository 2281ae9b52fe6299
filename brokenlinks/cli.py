"""
Command line interface for the broken link checker.

Parses options, builds the configuration, runs one crawl and writes the JSON
result to stdout and/or a file.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from . import __version__
from .crawler.scheduler import CrawlerScheduler
from .storage.results import ResultStore
from .utils.config import Config, ConfigError, LOG_LEVELS, load_config
from .utils.logger import setup_logging


class CrawlerApp:
    """Main application class for the link checker."""

    def __init__(self, config: Config):
        self.config = config
        self.scheduler: Optional[CrawlerScheduler] = None
        self.logger = logging.getLogger(__name__)

    async def run(self) -> ResultStore:
        """Run one crawl and return the collected results."""
        crawler_config = self.config.crawler

        self.logger.info("=== LINK CHECK STARTING ===")
        self.logger.info(f"Seed URLs: {self.config.seed_urls}")
        self.logger.info(f"Stop after: {crawler_config.stop_after if crawler_config.stop_after is not None else 'unbounded'}")
        self.logger.info(f"Max concurrent requests: {crawler_config.max_concurrent_requests}")
        self.logger.info(f"Respect robots.txt: {crawler_config.respect_robots_txt}")

        self.scheduler = CrawlerScheduler(self.config)
        try:
            await self.scheduler.initialize()
            await self.scheduler.crawl()
        finally:
            await self.scheduler.close()
            self.logger.info("=== LINK CHECK FINISHED ===")

        return self.scheduler.results

    def write_output(self, results: ResultStore):
        """Print and/or save the JSON result."""
        output = self.config.output

        if output.print_result:
            print(results.to_json(pretty=output.pretty_print))

        if output.file:
            results.write_json(output.file, pretty=output.pretty_print)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Check a web site for broken links",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  brokenlinks -u https://example.com
  brokenlinks -u https://example.com --stop-after 2 --pretty-print
  brokenlinks -u https://example.com -l urls.txt -o results.json --dont-print-result
  brokenlinks -u https://example.com -i '\\.pdf$' -L DEBUG
  brokenlinks --config config.yaml
        """,
    )

    parser.add_argument(
        "-u", "--url",
        help="The URL to traverse (required unless set in the config file)"
    )

    parser.add_argument(
        "-s", "--stop-after",
        type=int,
        help="The number of recursions to stop crawling after. Default is infinite."
    )

    parser.add_argument(
        "-i", "--ignoreRegex",
        dest="ignore_regex",
        help="Links matching this regex are not followed from crawled pages"
    )

    parser.add_argument(
        "-l", "--list",
        dest="url_list",
        help="Path to a file with additional seed URLs, one per line"
    )

    parser.add_argument(
        "-o", "--output-file",
        help="File to save the JSON result to"
    )

    parser.add_argument(
        "--dont-print-result",
        action="store_true",
        help="Do not print the JSON result to stdout"
    )

    parser.add_argument(
        "--pretty-print",
        action="store_true",
        default=None,
        help="Indent the JSON output"
    )

    parser.add_argument(
        "-L", "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="The log level to log at (default: INFO)"
    )

    parser.add_argument(
        "--log-file",
        help="Also write logs to this file"
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit logs as JSON lines"
    )

    parser.add_argument(
        "--user-agent",
        help="User-Agent header, also used as the robots.txt user-agent token"
    )

    parser.add_argument(
        "--timeout",
        type=int,
        help="Request timeout in seconds (default: 30)"
    )

    parser.add_argument(
        "--max-concurrent-requests",
        type=int,
        help="Maximum number of requests in flight (default: 10)"
    )

    parser.add_argument(
        "--drop-fragments",
        action="store_true",
        default=None,
        help="Strip #fragments from discovered links before checking them"
    )

    parser.add_argument(
        "--serial-fanout",
        action="store_true",
        default=None,
        help="Check the links of a page one after another instead of concurrently. "
             "A broken link is then reported under every page that references it"
    )

    parser.add_argument(
        "--ignore-robots",
        action="store_true",
        help="Do not consult robots.txt"
    )

    parser.add_argument(
        "--config",
        help="Path to a YAML configuration file"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"brokenlinks {__version__}"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Merge the optional config file with command line options."""
    overrides = {
        'crawler': {
            'base_url': args.url,
            'url_list': args.url_list,
            'stop_after': args.stop_after,
            'ignore_regex': args.ignore_regex,
            'user_agent': args.user_agent,
            'request_timeout': args.timeout,
            'max_concurrent_requests': args.max_concurrent_requests,
            'respect_robots_txt': False if args.ignore_robots else None,
            'drop_fragments': args.drop_fragments,
            'serial_fanout': args.serial_fanout,
        },
        'output': {
            'file': args.output_file,
            'print_result': False if args.dont_print_result else None,
            'pretty_print': args.pretty_print,
        },
        'logging': {
            'level': args.log_level,
            'file': args.log_file,
            'json_format': args.json_logs,
        },
    }
    return load_config(args.config, overrides)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI application."""
    args = parse_arguments(argv)

    try:
        config = build_config(args)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)

    app = CrawlerApp(config)
    try:
        results = asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1

    app.write_output(results)
    return 0


if __name__ == "__main__":
    sys.exit(main())
