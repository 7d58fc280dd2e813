"""
Cancellation handle shared between the crawl controller and signal handlers.
"""

import threading
from typing import Optional


class CrawlContext:
    """Carries the stop flag and the open page-provider session."""

    def __init__(self):
        self._stop_event = threading.Event()
        self.stop_reason: Optional[str] = None
        self.session = None

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def request_stop(self, reason: str = "interrupt"):
        """Ask the controller to stop after the current unit of work."""
        if not self._stop_event.is_set():
            self.stop_reason = reason
        self._stop_event.set()

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to ``seconds``, returning early on stop.

        Returns:
            True if a stop was requested
        """
        if seconds <= 0:
            return self.stopped
        return self._stop_event.wait(seconds)

    def attach_session(self, session):
        self.session = session

    def release_session(self):
        """Close the attached session, if any."""
        session, self.session = self.session, None
        if session is None:
            return
        try:
            session.close()
        except Exception as e:
            print(f"⚠️  Error closing browser session: {e}")
