"""
Page provider backed by a Selenium WebDriver session.
Sessions come either from a Multilogin browser profile or a local SeleniumBase browser.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chromium.options import ChromiumOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait

from .config import MultiloginConfig
from .errors import NavigationError, WaitTimeout
from .multilogin import Multilogin


@dataclass(frozen=True)
class WaitPolicy:
    """What "content loaded" and "no results" look like for a page."""
    ready_selector: str
    no_results_selector: Optional[str] = None
    no_results_text: Sequence[str] = ()


@dataclass(frozen=True)
class PageHandle:
    """A rendered page as seen by the extractors."""
    url: str
    html: str
    no_results: bool = False


class BrowserSession:
    """One serial browser session. Every open() is bounded by a deadline."""

    def __init__(self, driver, default_timeout: float = 30.0, on_close: Optional[Callable[[], None]] = None):
        self.driver = driver
        self.default_timeout = default_timeout
        self._on_close = on_close

    def _has_no_results(self, policy: WaitPolicy) -> bool:
        if policy.no_results_selector and self.driver.find_elements(By.CSS_SELECTOR, policy.no_results_selector):
            return True
        if policy.no_results_text:
            source = self.driver.page_source or ""
            return any(text in source for text in policy.no_results_text)
        return False

    def _ready(self, policy: WaitPolicy) -> bool:
        return bool(self.driver.find_elements(By.CSS_SELECTOR, policy.ready_selector)) or self._has_no_results(policy)

    def open(self, url: str, wait: WaitPolicy, timeout: Optional[float] = None) -> PageHandle:
        """
        Navigate to a URL and wait for content or a "no results" marker.

        Args:
            url: Page to open
            wait: WaitPolicy describing readiness
            timeout: Deadline in seconds for navigation and the wait

        Returns:
            PageHandle with the rendered HTML

        Raises:
            WaitTimeout: content did not appear before the deadline
            NavigationError: the browser could not load the page
        """
        deadline = timeout or self.default_timeout
        try:
            self.driver.set_page_load_timeout(deadline)
            self.driver.get(url)
        except TimeoutException as e:
            raise WaitTimeout(f"Timed out loading {url} after {deadline}s") from e
        except WebDriverException as e:
            raise NavigationError(f"Navigation to {url} failed: {e.msg or e}") from e

        try:
            WebDriverWait(self.driver, deadline).until(lambda _: self._ready(wait))
        except TimeoutException as e:
            raise WaitTimeout(
                f"Timed out waiting for '{wait.ready_selector}' on {url} after {deadline}s"
            ) from e
        except WebDriverException as e:
            raise NavigationError(f"Browser error on {url}: {e.msg or e}") from e

        try:
            return PageHandle(
                url=self.driver.current_url or url,
                html=self.driver.page_source or "",
                no_results=self._has_no_results(wait),
            )
        except WebDriverException as e:
            raise NavigationError(f"Could not read page source for {url}: {e.msg or e}") from e

    def close(self):
        """Quit the browser and run the provider-side cleanup."""
        try:
            if self.driver is not None:
                self.driver.quit()
        except WebDriverException as e:
            print(f"⚠️  Error closing browser: {e}")
        finally:
            self.driver = None
            if self._on_close is not None:
                self._on_close()


class MultiloginSessionFactory:
    """Opens sessions on the configured Multilogin browser profile."""

    def __init__(self, config: MultiloginConfig, client: Optional[Multilogin] = None):
        self.config = config
        self.client = client or Multilogin(
            folder_id=config.folder_id,
            profile_id=config.profile_id,
            use_local_docker=config.use_local_docker,
        )

    def open_session(self, headless: bool, default_timeout: float = 30.0) -> BrowserSession:
        print("Signing in to Multilogin...")
        self.client.sign_in(self.config.email, self.config.password)
        print("✓ Successfully signed in")

        print(f"Starting browser profile (headless: {headless})...")
        port = self.client.start_profile(headless=headless)
        try:
            driver = webdriver.Remote(
                command_executor=f"http://127.0.0.1:{port}",
                options=ChromiumOptions(),
            )
        except WebDriverException:
            self.client.stop_profile()
            raise
        print("✓ Browser profile started")
        return BrowserSession(driver, default_timeout=default_timeout, on_close=self._stop_profile)

    def _stop_profile(self):
        print("Stopping Multilogin profile...")
        self.client.stop_profile()
        print("✓ Profile stopped successfully")

    def force_stop(self):
        """Sign in and stop a profile left locked by a previous run."""
        self.client.sign_in(self.config.email, self.config.password)
        self.client.stop_profile()


class LocalSessionFactory:
    """Opens sessions on a local undetected-Chrome browser via SeleniumBase."""

    def open_session(self, headless: bool, default_timeout: float = 30.0) -> BrowserSession:
        from seleniumbase import Driver

        print("Initializing local browser...")
        driver = Driver(uc=True, headless=headless)
        return BrowserSession(driver, default_timeout=default_timeout)
