"""
HTML parsing for link discovery.
"""

import logging
from typing import List, Optional

from bs4 import BeautifulSoup


DEFAULT_ENCODING = 'utf-8'
FALLBACK_ENCODINGS = ('utf-8', 'latin-1', 'cp1252')


def decode_content(content: bytes, charset: Optional[str] = None) -> str:
    """
    Decode a response body, trying the declared charset first.

    Bytes that are invalid in the declared charset fall back through
    ``FALLBACK_ENCODINGS`` and finally UTF-8 with errors ignored.

    Raises:
        LookupError: if the declared charset is unknown
    """
    encoding = charset or DEFAULT_ENCODING
    try:
        return content.decode(encoding)
    except UnicodeDecodeError:
        logging.getLogger(__name__).debug(f"Body is not valid {encoding}, trying fallback encodings")

    for fallback_encoding in FALLBACK_ENCODINGS:
        try:
            return content.decode(fallback_encoding)
        except UnicodeDecodeError:
            continue

    return content.decode(DEFAULT_ENCODING, errors='ignore')


class LinkExtractor:
    """Extracts raw ``href`` values from anchor tags."""

    def __init__(self, features: str = 'lxml'):
        self.features = features
        self.logger = logging.getLogger(__name__)

    def extract_hrefs(self, html_content: str) -> List[str]:
        """
        Collect the href attribute of every ``<a>`` tag.

        Args:
            html_content: Decoded HTML document

        Returns:
            Non-blank href strings in document order, uninterpreted
        """
        soup = BeautifulSoup(html_content, self.features)

        hrefs = []
        for link in soup.find_all('a', href=True):
            href = link['href'].strip()
            if href:
                hrefs.append(href)

        self.logger.debug(f"Found {len(hrefs)} links")
        return hrefs
