"""
URL resolution and host comparison helpers.
"""

from typing import Optional
from urllib.parse import urlsplit, urlunsplit


ALLOWED_SCHEMES = ('http', 'https')


def get_host(url: str) -> str:
    """Extract the host of an absolute URL."""
    return urlsplit(url).hostname or ''


def is_similar_host(host: str, other: str) -> bool:
    """Compare two hosts, ignoring a single leading ``www.`` on either side."""
    return _strip_www(host) == _strip_www(other)


def _strip_www(host: str) -> str:
    if host.startswith('www.'):
        return host[4:]
    return host


def resolve(href: str, page_url: str, drop_fragment: bool = False) -> Optional[str]:
    """
    Turn a raw href into an absolute URL relative to the page it was found on.

    Args:
        href: Raw attribute value (absolute or relative reference)
        page_url: Absolute URL of the referring page
        drop_fragment: Clear the ``#fragment`` of the result

    Returns:
        The absolute URL, or None when the reference uses an unsupported
        scheme or cannot be parsed at all.
    """
    href = href.strip()
    try:
        ref = urlsplit(href)
        base = urlsplit(page_url)
    except ValueError:
        return None

    if ref.scheme:
        # mailto:, javascript:, ftp://... and scheme-only oddities like "http:foo"
        if ref.scheme.lower() not in ALLOWED_SCHEMES or not ref.netloc:
            return None
        if drop_fragment and ref.fragment:
            return urlunsplit((ref.scheme, ref.netloc, ref.path, ref.query, ''))
        return href

    if ref.netloc:
        # network-path reference ("//host/path") inherits the page's scheme
        fragment = '' if drop_fragment else ref.fragment
        return urlunsplit((base.scheme, ref.netloc, ref.path, ref.query, fragment))

    if not ref.path:
        path = base.path
        query = ref.query or base.query
    elif ref.path.startswith('/'):
        path = ref.path
        query = ref.query
    else:
        path = base.path.rstrip('/') + '/' + ref.path
        query = ref.query

    fragment = '' if drop_fragment else ref.fragment
    return urlunsplit((base.scheme, base.netloc, path, query, fragment))
