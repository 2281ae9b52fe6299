"""
URL frontier: tracks which URLs have been dispatched and which are finished.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Set


@dataclass
class URLTask:
    """Represents a URL checking task."""
    url: str
    depth: int
    parent_url: Optional[str] = None
    discovered_time: float = field(default_factory=time.time)

    def child(self, url: str) -> 'URLTask':
        """Task for a link found on this page, one level deeper."""
        return URLTask(url=url, depth=self.depth + 1, parent_url=self.url)

    def redirect_to(self, url: str) -> 'URLTask':
        """Task for a redirect target; redirects do not consume depth."""
        return URLTask(url=url, depth=self.depth, parent_url=self.url)


class URLFrontier:
    """
    Admitted and finalized URL sets for a single crawl run.

    ``admitted`` holds every URL whose fetch has been dispatched; ``finalized``
    holds every URL whose result has been recorded. Admission is one atomic
    check-and-insert, so at most one fetch is ever in flight per URL.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self.admitted: Set[str] = set()
        self.finalized: Set[str] = set()

    def try_admit(self, url: str) -> bool:
        """
        Admit a URL for fetching.
        Returns True if the caller should fetch it, False if already seen.
        """
        with self._lock:
            if url in self.finalized or url in self.admitted:
                return False
            self.admitted.add(url)
            return True

    def release(self, url: str):
        """Withdraw an admitted URL that will not be fetched."""
        with self._lock:
            self.admitted.discard(url)

    def mark_finalized(self, url: str):
        """Mark a URL as finished. Call only after its result is stored."""
        with self._lock:
            self.finalized.add(url)

    def is_finalized(self, url: str) -> bool:
        with self._lock:
            return url in self.finalized

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        with self._lock:
            return {
                'total_admitted': len(self.admitted),
                'total_finalized': len(self.finalized),
                'in_flight': len(self.admitted - self.finalized),
            }
