"""Browsing sessions for the source site.

Every scrape runs inside ``open_session``/``with_session``, which hands the
work a fresh ``BrowserPage`` and always tears it down afterwards. Sessions are
never pooled or shared between requests.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout
from playwright.sync_api import sync_playwright

from motchill import config
from motchill.errors import NavigationTimeout, PageError, ProbeFailure, ScrapeError, SessionError
from motchill.models import PlayerState

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLICK_BY_TEXT_JS = """(label) => {
  const target = Array.from(document.querySelectorAll('button'))
    .find(b => (b.textContent || '').trim() === label);
  if (!target) return false;
  target.click();
  return true;
}"""

PLAYER_STATE_JS = """() => {
  if (!window.jwplayer) return null;
  try {
    const playlist = window.jwplayer().getPlaylist();
    if (!playlist || !playlist[0]) return null;
    const head = playlist[0];
    return {
      file: head.file || '',
      sources: (head.sources || []).map(s => ({file: s.file, label: s.label}))
    };
  } catch (e) {
    return {error: String((e && e.message) || e)};
  }
}"""


class BrowserPage(ABC):
    """Narrow capability interface the scraper drives."""

    poll_interval_ms: int = config.POLL_INTERVAL_MS

    @abstractmethod
    def navigate(self, url: str) -> None:
        ...

    @abstractmethod
    def content(self) -> str:
        ...

    def evaluate(self, script: str, arg: Any = None) -> Any:
        raise PageError(f"{type(self).__name__} cannot run page scripts")

    def click_by_text(self, text: str) -> bool:
        return False

    def read_player_state(self) -> Optional[PlayerState]:
        return None

    def pause(self, ms: float) -> None:
        time.sleep(ms / 1000)

    def close(self) -> None:
        pass

    def wait_for(self, predicate: Callable[[], bool], timeout_ms: int) -> bool:
        """Poll ``predicate`` until it holds or ``timeout_ms`` elapses.

        Returns whether the condition was met. Substrate errors raised by the
        predicate count as "not yet".
        """
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            try:
                if predicate():
                    return True
            except ScrapeError as exc:
                logger.debug("Wait condition raised %s", exc)
            remaining_ms = (deadline - time.monotonic()) * 1000
            if remaining_ms <= 0:
                return False
            self.pause(min(self.poll_interval_ms, remaining_ms))


class PlaywrightPage(BrowserPage):
    def __init__(self, headless: Optional[bool] = None, timeout_ms: Optional[int] = None):
        self.headless = config.HEADLESS if headless is None else headless
        self.timeout_ms = timeout_ms or config.NAV_TIMEOUT_MS
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    @classmethod
    def open(cls, headless: Optional[bool] = None, timeout_ms: Optional[int] = None) -> "PlaywrightPage":
        page = cls(headless=headless, timeout_ms=timeout_ms)
        try:
            page.start()
        except Exception:
            page.close()
            raise
        return page

    def start(self) -> None:
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=self.headless,
            args=["--no-sandbox", "--disable-dev-shm-usage"],
        )
        self._context = self._browser.new_context(user_agent=config.USER_AGENT, locale="vi-VN")
        self._page = self._context.new_page()
        self._page.set_default_navigation_timeout(self.timeout_ms)
        self._page.set_default_timeout(self.timeout_ms)

    def navigate(self, url: str) -> None:
        logger.info("Navigating to %s", url)
        try:
            self._page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
        except PlaywrightTimeout as exc:
            raise NavigationTimeout(f"{url} did not load within {self.timeout_ms} ms") from exc
        except PlaywrightError as exc:
            raise PageError(f"Could not load {url}: {exc}") from exc

    def content(self) -> str:
        try:
            return self._page.content()
        except PlaywrightError as exc:
            raise PageError(f"Could not read page content: {exc}") from exc

    def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise PageError(f"Page script failed: {exc}") from exc

    def click_by_text(self, text: str) -> bool:
        return bool(self.evaluate(CLICK_BY_TEXT_JS, text))

    def read_player_state(self) -> Optional[PlayerState]:
        try:
            raw = self._page.evaluate(PLAYER_STATE_JS)
        except PlaywrightError as exc:
            raise ProbeFailure(f"Player state unreadable: {exc}") from exc
        if not raw:
            return None
        if raw.get("error"):
            raise ProbeFailure(raw["error"])
        return PlayerState(file=raw.get("file") or "", sources=raw.get("sources") or [])

    def pause(self, ms: float) -> None:
        try:
            self._page.wait_for_timeout(ms)
        except PlaywrightError as exc:
            raise PageError(f"Page closed while waiting: {exc}") from exc

    def close(self) -> None:
        for name in ("_context", "_browser"):
            target = getattr(self, name)
            if target is None:
                continue
            try:
                target.close()
            except PlaywrightError as exc:
                logger.warning("Failed to close %s: %s", name.lstrip("_"), exc)
            setattr(self, name, None)
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as exc:
                logger.warning("Failed to stop playwright: %s", exc)
            self._playwright = None
        self._page = None


class HttpPage(BrowserPage):
    """Static-HTML substrate: no scripts run, so the player is never available."""

    def __init__(self, timeout_ms: Optional[int] = None):
        self.timeout_ms = timeout_ms or config.NAV_TIMEOUT_MS
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": config.USER_AGENT})
        self._html = ""

    def navigate(self, url: str) -> None:
        logger.info("Fetching %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout_ms / 1000)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise NavigationTimeout(f"{url} did not load within {self.timeout_ms} ms") from exc
        except requests.RequestException as exc:
            raise PageError(f"Could not load {url}: {exc}") from exc
        self._html = response.text

    def content(self) -> str:
        return self._html

    def close(self) -> None:
        self.session.close()


PageFactory = Callable[[], BrowserPage]

PAGE_FACTORIES: dict[str, PageFactory] = {
    "playwright": PlaywrightPage.open,
    "http": HttpPage,
}


def default_page_factory() -> PageFactory:
    try:
        return PAGE_FACTORIES[config.BROWSER]
    except KeyError:
        raise SessionError(f"Unknown browser substrate {config.BROWSER!r}") from None


@contextmanager
def open_session(factory: Optional[PageFactory] = None) -> Iterator[BrowserPage]:
    try:
        factory = factory or default_page_factory()
        page = factory()
    except SessionError:
        raise
    except Exception as exc:
        raise SessionError(f"Could not start a browsing session: {exc}") from exc
    try:
        yield page
    finally:
        page.close()


def with_session(work: Callable[[BrowserPage], T], factory: Optional[PageFactory] = None) -> T:
    with open_session(factory) as page:
        return work(page)
