"""
Crawl orchestration: admission, robots gate, fetching, redirect handling and
recursive link expansion for one link-check run.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from bs4.exceptions import ParserRejectedMarkup

from .fetcher import FetchResult, RobotsChecker, WebFetcher, format_error
from .parser import LinkExtractor, decode_content
from .url_frontier import URLFrontier, URLTask
from .urls import get_host, is_similar_host, resolve
from ..storage.results import HttpStatus, LinkResult, ResultStore
from ..utils.config import Config
from ..utils.logger import get_crawler_logger


FOLLOWED_REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})
MULTIPLE_CHOICES = 300
USE_PROXY = 305
MISSING_REDIRECT_LOCATION = "Couldn't determine redirect location"


@dataclass
class CrawlStats:
    """Statistics for a crawl run."""
    start_time: float
    urls_checked: int = 0
    fetch_errors: int = 0
    redirects: int = 0
    robots_blocked: int = 0
    duplicates_skipped: int = 0
    replayed_results: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time


class CrawlerScheduler:
    """
    Recursively checks every link reachable from the seed URLs.

    Pages on the base URL's host (ignoring ``www.``) are scanned for links;
    pages elsewhere are fetched and recorded but not scanned. Each URL is
    fetched at most once per run.
    """

    def __init__(self, config: Config, fetcher: Optional[WebFetcher] = None,
                 robots_checker: Optional[RobotsChecker] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.url_logger = get_crawler_logger(__name__, event_type='url_event')

        crawler_config = config.crawler
        self.base_host = get_host(crawler_config.base_url)
        self.max_depth = crawler_config.stop_after
        self.ignore_pattern = re.compile(crawler_config.ignore_regex) if crawler_config.ignore_regex else None

        # Components
        self.fetcher = fetcher
        self.robots_checker = robots_checker
        self.parser = LinkExtractor()
        self._owns_fetcher = fetcher is None

        # Crawl state
        self.url_frontier = URLFrontier()
        self.results = ResultStore()
        self.stats = CrawlStats(start_time=time.time())

    async def initialize(self):
        """Create the HTTP fetcher and robots gate unless they were injected."""
        crawler_config = self.config.crawler

        if self.fetcher is None:
            self.fetcher = WebFetcher(
                user_agent=crawler_config.user_agent,
                request_timeout=crawler_config.request_timeout,
                max_concurrent_requests=crawler_config.max_concurrent_requests,
                max_content_size=crawler_config.max_content_size
            )
            await self.fetcher.start()

        if self.robots_checker is None and crawler_config.respect_robots_txt:
            self.robots_checker = RobotsChecker(crawler_config.user_agent, self.fetcher)

        self.logger.info("Crawler scheduler initialized")

    async def close(self):
        """Close the fetcher if this scheduler created it."""
        if self.fetcher and self._owns_fetcher:
            await self.fetcher.close()
        self.logger.info("Crawler scheduler closed")

    async def crawl(self, seed_urls: Optional[Iterable[str]] = None) -> List[LinkResult]:
        """
        Check all seed URLs and everything reachable from them.

        Args:
            seed_urls: URLs to start from (defaults to the configured seeds)

        Returns:
            Every recorded result, in completion order
        """
        seeds = list(seed_urls) if seed_urls is not None else self.config.seed_urls
        self.stats = CrawlStats(start_time=time.time())

        self.logger.info(f"Starting crawl of {len(seeds)} seed URL(s), base host {self.base_host}")
        await asyncio.gather(*(self.check_recursive(URLTask(url=url, depth=0)) for url in seeds))

        self._log_final_stats()
        return self.results.to_list()

    async def check_recursive(self, url_task: URLTask):
        """
        Check one URL and, depending on the response, what it leads to.
        Returns once every task spawned from this URL has finished.
        """
        if self._should_stop(url_task):
            return

        if not self.url_frontier.try_admit(url_task.url):
            self._handle_already_seen(url_task)
            return

        if self.robots_checker and not await self.robots_checker.can_fetch(url_task.url):
            self.url_frontier.release(url_task.url)
            self.stats.robots_blocked += 1
            return

        self.url_logger.log_url_event(logging.INFO, url_task.url, f"Checking {url_task.url}",
                                      parent=url_task.parent_url)
        in_domain = self._is_in_domain(url_task.url)
        fetch_result = await self.fetcher.fetch(url_task.url, read_body=in_domain)
        self.stats.urls_checked += 1

        if fetch_result.error:
            self.stats.fetch_errors += 1
            self.logger.warning(f"Failed to get {url_task.url}: {fetch_result.error}")
            self._record(LinkResult(url=url_task.url, parent=url_task.parent_url,
                                    error_msg=fetch_result.error))
            return

        status_code = fetch_result.status_code
        if status_code in FOLLOWED_REDIRECT_CODES:
            await self._handle_redirect(url_task, fetch_result)
        elif 300 <= status_code < 400:
            self._handle_unfollowed_redirect(url_task, fetch_result)
        else:
            await self._handle_response(url_task, fetch_result, in_domain)

    def _should_stop(self, url_task: URLTask) -> bool:
        if self.max_depth is not None and url_task.depth > self.max_depth:
            self.logger.debug(f"Stopping after {self.max_depth} recursions on {url_task.url}")
            return True
        return False

    def _is_in_domain(self, url: str) -> bool:
        return is_similar_host(get_host(url), self.base_host)

    def _handle_already_seen(self, url_task: URLTask):
        """Report a known-broken link again under the page that just referenced it."""
        self.stats.duplicates_skipped += 1
        self.logger.debug(f"Already visited/crawled {url_task.url}. ignoring...")

        if not self.url_frontier.is_finalized(url_task.url):
            return

        prior = self.results.find_first(url_task.url)
        if prior is None:
            self.logger.error(f"{url_task.url} is finalized but has no recorded result")
            return

        if prior.is_failure:
            self.results.append(prior.with_parent(url_task.parent_url))
            self.stats.replayed_results += 1

    async def _handle_redirect(self, url_task: URLTask, fetch_result: FetchResult):
        self.stats.redirects += 1
        target = None
        if fetch_result.location:
            target = resolve(fetch_result.location, url_task.url)

        self._record(LinkResult(
            url=url_task.url,
            parent=url_task.parent_url,
            status=self._status_of(fetch_result),
            redirect=target,
            error_msg=None if target else MISSING_REDIRECT_LOCATION
        ))

        if target is None:
            self.logger.warning(f"{url_task.url} redirects without a usable Location header")
            return

        if self._is_in_domain(url_task.url):
            await self.check_recursive(url_task.redirect_to(target))
        else:
            self.logger.debug(f"Not following off-site redirect {url_task.url} -> {target}")

    def _handle_unfollowed_redirect(self, url_task: URLTask, fetch_result: FetchResult):
        status_code = fetch_result.status_code
        if status_code == MULTIPLE_CHOICES:
            self.logger.warning(f"{url_task.url} answered 300 Multiple Choices, cannot pick a target")
        elif status_code == USE_PROXY:
            self.logger.info(f"Not following 305 Use Proxy from {url_task.url}")

        self._record(LinkResult(url=url_task.url, parent=url_task.parent_url,
                                status=self._status_of(fetch_result)))

    async def _handle_response(self, url_task: URLTask, fetch_result: FetchResult, in_domain: bool):
        status = self._status_of(fetch_result)

        if fetch_result.content_type != 'text/html':
            self.logger.debug(f"Not an HTML page. Skipping {url_task.url}")
            self._record(LinkResult(url=url_task.url, parent=url_task.parent_url, status=status))
            return

        if not in_domain or fetch_result.content is None:
            self._record(LinkResult(url=url_task.url, parent=url_task.parent_url, status=status))
            return

        try:
            html = decode_content(fetch_result.content, fetch_result.charset)
            hrefs = self.parser.extract_hrefs(html)
        except (LookupError, ParserRejectedMarkup) as e:
            self.logger.warning(f"Failure processing {url_task.url}. Skipping...")
            self._record(LinkResult(url=url_task.url, parent=url_task.parent_url,
                                    error_msg=format_error(e)))
            return

        self._record(LinkResult(url=url_task.url, parent=url_task.parent_url, status=status))

        links = self._resolve_links(hrefs, url_task.url)
        await self._expand([url_task.child(link) for link in links])

    def _resolve_links(self, hrefs: Iterable[str], page_url: str) -> List[str]:
        """Absolute, de-duplicated outbound links that are not ignored."""
        links: Dict[str, None] = {}
        for href in hrefs:
            link = resolve(href, page_url, drop_fragment=self.config.crawler.drop_fragments)
            if link is None:
                continue
            if self.ignore_pattern and self.ignore_pattern.search(link):
                continue
            links[link] = None
        return list(links)

    async def _expand(self, child_tasks: List[URLTask]):
        """Check every child link and wait until all of them are done."""
        if self.config.crawler.serial_fanout:
            for child_task in child_tasks:
                await self.check_recursive(child_task)
        else:
            await asyncio.gather(*(self.check_recursive(child_task) for child_task in child_tasks))

    def _record(self, result: LinkResult):
        """Store a result, then mark its URL finalized."""
        self.results.append(result)
        self.url_frontier.mark_finalized(result.url)

    @staticmethod
    def _status_of(fetch_result: FetchResult) -> HttpStatus:
        return HttpStatus.from_code(fetch_result.status_code, fetch_result.reason)

    def _log_final_stats(self):
        """Log final crawl statistics."""
        frontier_stats = self.url_frontier.get_stats()

        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"URLs checked: {self.stats.urls_checked}")
        self.logger.info(f"Results recorded: {len(self.results)}")
        self.logger.info(f"Fetch errors: {self.stats.fetch_errors}")
        self.logger.info(f"Redirects: {self.stats.redirects}")
        self.logger.info(f"Blocked by robots.txt: {self.stats.robots_blocked}")
        self.logger.info(f"Duplicates skipped: {self.stats.duplicates_skipped}")
        self.logger.info(f"Replayed broken results: {self.stats.replayed_results}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Frontier stats: {frontier_stats}")
        if self.fetcher is not None:
            self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")
