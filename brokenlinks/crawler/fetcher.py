"""
HTTP fetcher and robots.txt gate.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import aiohttp
from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout


DISALLOW_ALL_ROBOTS_TXT = "User-agent: *\nDisallow: /"


def format_error(error: BaseException) -> str:
    """Describe an exception as ``[ClassName]: message``."""
    return f"[{type(error).__name__}]: {error}"


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int = 0
    reason: Optional[str] = None
    location: Optional[str] = None
    content_type: Optional[str] = None
    charset: Optional[str] = None
    content: Optional[bytes] = None
    error: Optional[str] = None
    fetch_time: float = 0.0


class RobotsChecker:
    """
    Answers robots.txt allow/deny queries.

    Raw robots.txt text is cached per host and fetched at most once per run.
    Hosts whose robots.txt cannot be retrieved, or that answer with a server
    error or any client error other than 404, are treated as fully disallowed.
    """

    def __init__(self, user_agent: str, fetcher: 'WebFetcher'):
        self.user_agent = user_agent
        self.fetcher = fetcher
        self.robots_cache: Dict[str, str] = {}
        self._pending: Dict[str, asyncio.Task] = {}
        self.logger = logging.getLogger(__name__)

    async def can_fetch(self, url: str) -> bool:
        """Check if URL can be fetched according to robots.txt."""
        robots_txt = await self.get_robots_txt(url)

        parser = RobotFileParser()
        parser.parse(robots_txt.splitlines())
        allowed = parser.can_fetch(self.user_agent, url)

        if not allowed:
            self.logger.info(f"Robots.txt blocks access to: {url}")
        return allowed

    async def get_robots_txt(self, url: str) -> str:
        """Return the cached robots.txt text for the URL's host, fetching it once."""
        parsed = urlsplit(url)
        host = parsed.hostname or ''

        if host in self.robots_cache:
            return self.robots_cache[host]

        task = self._pending.get(host)
        if task is None:
            robots_url = f"{parsed.scheme}://{parsed.netloc}/robots.txt"
            task = asyncio.ensure_future(self._fetch_robots_txt(robots_url))
            self._pending[host] = task

        robots_txt = await task
        self.robots_cache[host] = robots_txt
        self._pending.pop(host, None)
        return robots_txt

    async def _fetch_robots_txt(self, robots_url: str) -> str:
        result = await self.fetcher.fetch_robots(robots_url)

        if result.error:
            self.logger.warning(f"Could not fetch {robots_url}: {result.error}")
            return DISALLOW_ALL_ROBOTS_TXT

        status = result.status_code
        if status >= 500 or (400 <= status < 500 and status != 404):
            self.logger.warning(f"Got {status} for {robots_url}, treating host as disallowed")
            return DISALLOW_ALL_ROBOTS_TXT

        if not result.content:
            return ""
        return result.content.decode(result.charset or 'utf-8', errors='replace')


class WebFetcher:
    """
    Issues GET requests with a bounded number of requests in flight.

    ``fetch`` never follows redirects; ``fetch_robots`` does.
    """

    def __init__(self, user_agent: str, request_timeout: int = 30,
                 max_concurrent_requests: int = 10, max_content_size: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

        # Statistics
        self.stats = {
            'total_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    limit_per_host=10,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str, read_body: bool = True) -> FetchResult:
        """
        Fetch a single URL without following redirects.

        Args:
            url: The URL to fetch
            read_body: Download the body when the response is HTML

        Returns:
            FetchResult object containing the response data or error information
        """
        return await self._get(url, allow_redirects=False, read_body=read_body)

    async def fetch_robots(self, url: str) -> FetchResult:
        """Fetch a robots.txt file, following redirects."""
        return await self._get(url, allow_redirects=True, read_body=True, html_only=False)

    async def _get(self, url: str, allow_redirects: bool, read_body: bool,
                   html_only: bool = True) -> FetchResult:
        start_time = time.time()

        async with self.semaphore:
            try:
                self.stats['total_requests'] += 1

                async with self.session.get(url, allow_redirects=allow_redirects) as response:
                    content = None
                    if read_body and (not html_only or response.content_type == 'text/html'):
                        content = await self._read_content_safely(response)

                    result = FetchResult(
                        url=url,
                        status_code=response.status,
                        reason=response.reason,
                        location=response.headers.get('Location'),
                        content_type=response.content_type,
                        charset=response.charset,
                        content=content,
                        fetch_time=time.time() - start_time
                    )

                    self.logger.debug(f"Fetched {url}: {response.status} ({len(content) if content else 0} bytes)")
                    return result

            except asyncio.TimeoutError as e:
                self.stats['failed_requests'] += 1
                error_msg = f"[{type(e).__name__}]: Request timeout"
                self.logger.warning(f"Timeout fetching {url}")

            except ClientError as e:
                self.stats['failed_requests'] += 1
                error_msg = format_error(e)
                self.logger.warning(f"Client error fetching {url}: {e}")

            except Exception as e:
                self.stats['failed_requests'] += 1
                error_msg = format_error(e)
                self.logger.error(f"Unexpected error fetching {url}: {e}")

            return FetchResult(
                url=url,
                error=error_msg,
                fetch_time=time.time() - start_time
            )

    async def _read_content_safely(self, response: ClientResponse) -> Optional[bytes]:
        """
        Read response content up to ``max_content_size`` bytes.

        Returns:
            Body bytes, or None if the body is larger than the limit
        """
        content_length = response.headers.get('Content-Length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            self.logger.warning(f"Content too large ({content_length} bytes): {response.url}")
            return None

        # Read content in chunks to respect size limit
        content_bytes = b''
        async for chunk in response.content.iter_chunked(8192):
            content_bytes += chunk
            if len(content_bytes) > self.max_content_size:
                self.logger.warning(f"Content exceeded size limit during reading: {response.url}")
                return None

        self.stats['total_bytes_downloaded'] += len(content_bytes)
        return content_bytes

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
