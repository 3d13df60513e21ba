"""Shared fixtures: a scripted browser session and a recording sleep."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pytest

from visitprobe.infrastructure.browser_session import BrowserSession
from visitprobe.infrastructure.pacing import Pacer, PacingConfig


@dataclass
class FakePage:
    """What the fake browser shows after navigating to a URL."""
    status: int = 200
    final_url: Optional[str] = None
    title: str = "Storefront"
    body_length: int = 5000
    markup_length: int = 20000


class FakeSession(BrowserSession):
    """
    BrowserSession scripted per URL.

    ``pages`` maps a URL to a FakePage, an exception, or a list of those
    consumed one per navigation (the last entry repeats). Unknown URLs load
    as a healthy page on the same URL.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, Any]] = None,
        visible: Optional[set] = None,
        click_urls: Optional[Dict[str, str]] = None,
        reveals: Optional[Dict[str, set]] = None,
        enter_url: Optional[str] = None,
    ):
        self.pages = dict(pages or {})
        self.visible = set(visible or ())
        self.click_urls = dict(click_urls or {})
        self.reveals = dict(reveals or {})
        self.enter_url = enter_url
        self.url = "about:blank"
        self.current: Optional[FakePage] = None
        self.visits: List[str] = []
        self.actions: List[tuple] = []
        self.screenshots: List[Path] = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    def _next_page(self, url: str):
        script = self.pages.get(url, FakePage())
        if isinstance(script, list):
            return script.pop(0) if len(script) > 1 else script[0]
        return script

    async def goto(self, url: str) -> int:
        self.visits.append(url)
        page = self._next_page(url)
        if isinstance(page, BaseException):
            raise page
        self.current = page
        self.url = page.final_url or url
        return page.status

    async def current_url(self) -> str:
        return self.url

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        page = self.current or FakePage(title="", body_length=0, markup_length=0)
        return {
            "title": page.title,
            "bodyLength": page.body_length,
            "markupLength": page.markup_length,
        }

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        self.actions.append(("wait", selector, timeout_ms))
        return selector in self.visible

    async def fill(self, selector: str, value: str) -> None:
        self.actions.append(("fill", selector, value))

    async def click(self, selector: str) -> None:
        self.actions.append(("click", selector))
        self.visible |= self.reveals.get(selector, set())
        if selector in self.click_urls:
            self.url = self.click_urls[selector]

    async def press(self, selector: str, key: str) -> None:
        self.actions.append(("press", selector, key))
        if key == "Enter" and self.enter_url:
            self.url = self.enter_url

    async def screenshot(self, path: Union[str, Path]) -> Optional[Path]:
        self.screenshots.append(Path(path))
        return Path(path)

    def performed(self, kind: str) -> List[tuple]:
        return [action for action in self.actions if action[0] == kind]


class SleepRecorder:
    """Async sleep replacement that records requested durations."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def sleep():
    """Recording sleep; nothing actually waits."""
    return SleepRecorder()


@pytest.fixture
def pacer(sleep):
    """Pacer with default timings and no wall-clock delay."""
    return Pacer(PacingConfig(), sleep=sleep)


@pytest.fixture
def urls_file(tmp_path):
    """Write a URL list and return its path."""
    def _write(content: str) -> Path:
        path = tmp_path / "urls.csv"
        path.write_text(content, encoding="utf-8")
        return path
    return _write
