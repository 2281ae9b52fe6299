"""
Link check results and the append-only store that collects them.
"""

import dataclasses
import json
import logging
import threading
from dataclasses import dataclass
from http import HTTPStatus
from pathlib import Path
from typing import Any, Dict, List, Optional


UNKNOWN_STATUS_REASON = "Unknown Status Code"


@dataclass(frozen=True)
class HttpStatus:
    """An HTTP status code with its reason phrase."""
    code: int
    reason: str

    @classmethod
    def from_code(cls, code: int, server_reason: Optional[str] = None) -> 'HttpStatus':
        """Build a status using the standard phrase, falling back to the server's."""
        try:
            reason = HTTPStatus(code).phrase
        except ValueError:
            reason = server_reason or UNKNOWN_STATUS_REASON
        return cls(code=code, reason=reason)

    @property
    def is_success(self) -> bool:
        return 200 <= self.code < 300

    def __str__(self) -> str:
        return f"{self.code} {self.reason}"


@dataclass
class LinkResult:
    """Outcome of checking one URL in one discovery context."""
    url: str
    parent: Optional[str] = None
    status: Optional[HttpStatus] = None
    error_msg: Optional[str] = None
    redirect: Optional[str] = None

    @property
    def is_failure(self) -> bool:
        """Whether this outcome should be reported under every referring page."""
        if self.error_msg is not None:
            return True
        return self.status is not None and not self.status.is_success

    def with_parent(self, parent: Optional[str]) -> 'LinkResult':
        """Copy of this outcome attributed to another referring page."""
        return dataclasses.replace(self, parent=parent)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'parent': self.parent,
            'url': self.url,
            'status': str(self.status) if self.status is not None else None,
            'errorMsg': self.error_msg,
            'redirect': self.redirect,
        }


class ResultStore:
    """
    Append-only list of link results.

    Appends are serialized by a lock; the first result recorded for each URL
    is indexed so later discoverers can replay it.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._results: List[LinkResult] = []
        self._first_by_url: Dict[str, LinkResult] = {}

    def append(self, result: LinkResult):
        """Record a result."""
        with self._lock:
            self._results.append(result)
            self._first_by_url.setdefault(result.url, result)

    def find_first(self, url: str) -> Optional[LinkResult]:
        """Return the first result recorded for ``url``, if any."""
        with self._lock:
            return self._first_by_url.get(url)

    def to_list(self) -> List[LinkResult]:
        with self._lock:
            return list(self._results)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def to_json(self, pretty: bool = False) -> str:
        """Serialize all results as a JSON array."""
        data = [result.to_dict() for result in self.to_list()]
        return json.dumps(data, ensure_ascii=False, indent=4 if pretty else None)

    def write_json(self, file_path: str, pretty: bool = False):
        """Write the JSON array to ``file_path``, creating parent directories."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json(pretty))
        self.logger.info(f"Wrote {len(self)} results to {path}")
