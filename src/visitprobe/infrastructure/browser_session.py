"""
Browser session capability used by the retry loop and the authenticator.

``BrowserSession`` is the narrow interface the probe needs from a browser:
navigate, read the current URL, evaluate script, fill and click form
controls, and optionally take a screenshot. ``PlaywrightSession`` implements
it on top of a single Playwright page that is reused for every visit.

    async with PlaywrightSession(config) as session:
        status = await session.goto("https://example.com")
"""
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright
from playwright_stealth import Stealth

from ..browser_config import BrowserConfig, MARKETPLACE_CONFIG
from ..exceptions import NavigationError

logger = logging.getLogger(__name__)


DOM_SIGNALS_SCRIPT = """
() => {
    const title = document.title || "";
    const text = (document.body && document.body.innerText) ? document.body.innerText : "";
    const markup = document.documentElement ? document.documentElement.outerHTML : "";
    return { title: title, bodyLength: text.length, markupLength: markup.length };
}
"""


class BrowserSession(ABC):
    """Capabilities the probe needs from a browser tab."""

    @abstractmethod
    async def goto(self, url: str) -> int:
        """Navigate to ``url`` and return the response status (0 when unavailable)."""

    @abstractmethod
    async def current_url(self) -> str:
        """URL the tab shows after redirects and client-side routing."""

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Evaluate a JavaScript expression in the page."""

    @abstractmethod
    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        """Wait until ``selector`` is visible. Returns False on timeout."""

    @abstractmethod
    async def fill(self, selector: str, value: str) -> None:
        """Replace the value of an input."""

    @abstractmethod
    async def click(self, selector: str) -> None:
        """Click the first element matching ``selector``."""

    @abstractmethod
    async def press(self, selector: str, key: str) -> None:
        """Press a key while ``selector`` has focus."""

    async def screenshot(self, path: Union[str, Path]) -> Optional[Path]:
        """Capture the page. Sessions without screenshot support return None."""
        return None


async def read_dom_signals(session: BrowserSession) -> Dict[str, Any]:
    """Collect title, rendered text length and markup length from the page."""
    signals = await session.evaluate(DOM_SIGNALS_SCRIPT) or {}
    return {
        "title": str(signals.get("title") or ""),
        "body_length": int(signals.get("bodyLength") or 0),
        "markup_length": int(signals.get("markupLength") or 0),
    }


class PlaywrightSession(BrowserSession):
    """
    Single-page Playwright session.

    This class is designed to be used as an async context manager, managing
    its own browser lifecycle. One page is shared by the login flow and every
    visit, so cookies from an authenticated session carry over.
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        """
        Initialize the session.

        Args:
            config: BrowserConfig with fingerprint and launch settings
        """
        self._config = config or MARKETPLACE_CONFIG
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

        logger.debug(f"PlaywrightSession initialized with config: {self._config}")

    async def __aenter__(self) -> "PlaywrightSession":
        """Enter async context manager, launching browser and page."""
        logger.info(
            f"Launching {self._config.browser_type} browser (headless={self._config.headless})"
        )

        self._playwright = await async_playwright().start()
        browser_launcher = getattr(self._playwright, self._config.browser_type)

        launch_options: Dict[str, Any] = {"headless": self._config.headless}
        if self._config.launch_args and self._config.browser_type == "chromium":
            launch_options["args"] = self._config.launch_args

        try:
            self._browser = await browser_launcher.launch(**launch_options)
            self._context = await self._create_context()
            self._page = await self._context.new_page()
            self._page.set_default_navigation_timeout(self._config.timeout)
        except BaseException:
            await self.close()
            raise

        logger.info("Browser launched successfully")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing browser."""
        await self.close()

    async def close(self) -> None:
        if self._context:
            await self._context.close()
            self._context = None
            self._page = None

        if self._browser:
            logger.info("Closing browser")
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def _create_context(self):
        """Create the browser context carrying the configured fingerprint."""
        context = await self._browser.new_context(
            viewport=self._config.viewport,
            user_agent=self._config.get_user_agent(),
            locale=self._config.locale,
            timezone_id=self._config.timezone_id,
            extra_http_headers=self._config.extra_headers,
            ignore_https_errors=self._config.ignore_https_errors,
            java_script_enabled=True,
        )

        if self._config.stealth_mode:
            await Stealth().apply_stealth_async(context)
            logger.debug("Applied playwright-stealth evasions")

        return context

    @property
    def page(self):
        if self._page is None:
            raise RuntimeError(
                "Browser is not running. Use PlaywrightSession as an async context manager: "
                "async with PlaywrightSession(config) as session:"
            )
        return self._page

    async def goto(self, url: str) -> int:
        try:
            response = await self.page.goto(
                url,
                wait_until=self._config.wait_until,
                timeout=self._config.timeout,
            )
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e

        # Client-rendered pages may produce no response object at all.
        return response.status if response else 0

    async def current_url(self) -> str:
        return self.page.url

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_selector(selector, state="visible", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def fill(self, selector: str, value: str) -> None:
        await self.page.fill(selector, value)

    async def click(self, selector: str) -> None:
        await self.page.click(selector)

    async def press(self, selector: str, key: str) -> None:
        await self.page.press(selector, key)

    async def screenshot(self, path: Union[str, Path]) -> Optional[Path]:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await self.page.screenshot(path=str(target), full_page=True)
        return target
