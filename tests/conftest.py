from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

import pytest

from harvester.browser import PageHandle, WaitPolicy
from harvester.config import CrawlConfig, HarvesterConfig, RateLimitConfig, RetryConfig
from harvester.errors import NavigationError, WaitTimeout

SEARCH_URL = "https://directory.test/search?q="


def detail_urls(page: int, count: int = 50) -> List[str]:
    return [f"https://directory.test/people/p{page}-{i}" for i in range(count)]


class FakeSite:
    """Listing pages keyed by page number; anything missing times out like an empty listing."""

    def __init__(self, pages: Optional[Dict[int, List[str]]] = None):
        self.pages = pages or {}
        self.fail_times: Dict[str, int] = {}
        self.listing_errors: Dict[int, int] = {}
        self.opened: List[str] = []
        self.stop_after: Optional[int] = None
        self.context = None

    def listing_requests(self) -> List[str]:
        return [url for url in self.opened if 'page=' in url]

    def detail_requests(self) -> List[str]:
        return [url for url in self.opened if 'page=' not in url]


class FakeSession:
    def __init__(self, site: FakeSite):
        self.site = site
        self.closed = False

    def open(self, url: str, wait: WaitPolicy, timeout: Optional[float] = None) -> PageHandle:
        site = self.site
        site.opened.append(url)
        query = parse_qs(urlsplit(url).query)
        if 'page' in query:
            page = int(query['page'][0])
            if site.listing_errors.get(page, 0) > 0:
                site.listing_errors[page] -= 1
                raise NavigationError(f"net::ERR_CONNECTION_RESET on page {page}")
            if page not in site.pages:
                raise WaitTimeout(f"no listing content on page {page}")
            return PageHandle(url=url, html="\n".join(site.pages[page]))

        if site.fail_times.get(url, 0) > 0:
            site.fail_times[url] -= 1
            raise NavigationError(f"could not load {url}")
        if site.stop_after is not None and site.context is not None:
            if len(site.detail_requests()) >= site.stop_after:
                site.context.request_stop("test")
        return PageHandle(url=url, html=f"<h1>{url.rsplit('/', 1)[-1]}</h1>")

    def close(self):
        self.closed = True


class FakeSessionFactory:
    def __init__(self, site: FakeSite):
        self.site = site
        self.sessions: List[FakeSession] = []

    def open_session(self, headless: bool, default_timeout: float = 30.0) -> FakeSession:
        session = FakeSession(self.site)
        self.sessions.append(session)
        return session


class FakeExtractor:
    name = "people"
    search_url = SEARCH_URL
    columns = [('URL', 'url'), ('Name', 'name')]
    listing_wait = WaitPolicy(ready_selector='li')
    detail_wait = WaitPolicy(ready_selector='h1')

    def accepts(self, href: str) -> bool:
        return True

    def list_urls(self, page: PageHandle) -> List[str]:
        return [line for line in page.html.splitlines() if line]

    def extract_detail(self, page: PageHandle) -> Optional[dict]:
        name = page.html.replace('<h1>', '').replace('</h1>', '')
        if not name:
            return None
        return {'url': page.url, 'name': name}


@pytest.fixture
def config(tmp_path: Path) -> HarvesterConfig:
    return HarvesterConfig(
        target="people",
        data_dir=tmp_path / "data",
        local_browser=True,
        rate_limit=RateLimitConfig(base_delay=0.0, batch_delay_min=0.0, batch_delay_max=0.0),
        retry=RetryConfig(max_retries=3, base_delay=0.0, max_delay=0.0),
        crawl=CrawlConfig(max_items=120, results_per_page=50, batch_size=50, checkpoint_every=10),
    )


@pytest.fixture
def site() -> FakeSite:
    return FakeSite({page: detail_urls(page) for page in (1, 2, 3)})
