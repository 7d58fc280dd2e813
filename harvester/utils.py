"""
Shared utility functions for the harvester.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def listing_page_url(search_url: str, page: int) -> str:
    """
    Build the URL of one listing page.

    Args:
        search_url: Search results URL (may already carry a page parameter)
        page: 1-based page number

    Returns:
        URL with the ``page`` query parameter set
    """
    parts = urlsplit(search_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != 'page']
    query.append(('page', str(page)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def absolute_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve ``href`` against ``base_url``; None for empty links."""
    if not href:
        return None
    return urljoin(base_url, href.strip())


def unique(items: Iterable[str]) -> List[str]:
    """Deduplicate while keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def clean_text(value: Optional[str]) -> str:
    """Collapse whitespace runs into single spaces."""
    if not value:
        return ""
    return " ".join(value.split())
