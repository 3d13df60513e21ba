"""
Browser configuration for Playwright-driven visits.

This module provides a validated Pydantic configuration model for the browser
fingerprint (user agent, locale, timezone, viewport) and launch settings, plus
pre-configured instances for common use cases.
"""
import random
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# Desktop user agent pool for optional rotation
USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
]

DEFAULT_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--lang=id-ID",
    "--window-size=1366,864",
]


def get_random_user_agent() -> str:
    """Get a random user agent from the pool."""
    return random.choice(USER_AGENTS)


class BrowserConfig(BaseModel):
    """
    Configuration for the Playwright browser session.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    model_config = ConfigDict(frozen=True)

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to drive"
    )

    stealth_mode: bool = Field(
        default=True,
        description="Apply playwright-stealth evasions to the browser context"
    )

    timeout: int = Field(
        default=120000,
        description="Navigation timeout in milliseconds",
        ge=1000,
        le=600000
    )

    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="domcontentloaded",
        description="When to consider navigation complete; domcontentloaded tolerates chatty storefronts"
    )

    locale: str = Field(
        default="id-ID",
        description="Browser locale"
    )

    timezone_id: str = Field(
        default="Asia/Makassar",
        description="Emulated timezone"
    )

    accept_language: str = Field(
        default="id-ID,id;q=0.9,en-US;q=0.8,en;q=0.7",
        description="Accept-Language header sent with every request"
    )

    viewport_width: int = Field(default=1366, ge=320)
    viewport_height: int = Field(default=864, ge=320)

    user_agent: Optional[str] = Field(
        default=USER_AGENTS[0],
        description="Fixed user agent, ignored when rotate_user_agent is set"
    )

    rotate_user_agent: bool = Field(
        default=False,
        description="Pick a random user agent when the session starts"
    )

    ignore_https_errors: bool = Field(
        default=True,
        description="Continue past certificate errors"
    )

    launch_args: List[str] = Field(
        default_factory=lambda: list(DEFAULT_LAUNCH_ARGS),
        description="Additional browser launch arguments"
    )

    def get_user_agent(self) -> str:
        """Get the user agent to use for this config."""
        if self.rotate_user_agent:
            return get_random_user_agent()
        if self.user_agent:
            return self.user_agent
        return USER_AGENTS[0]

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}

    @property
    def extra_headers(self) -> Dict[str, str]:
        return {"Accept-Language": self.accept_language}


# --- Pre-configured Instances for Common Use Cases ---

MARKETPLACE_CONFIG = BrowserConfig()
"""
Default configuration tuned for marketplace storefronts.

Headless Chromium with stealth, Indonesian locale and a generous timeout.
"""

DEBUG_CONFIG = BrowserConfig(
    headless=False,
    stealth_mode=True,
    timeout=60000,
)
"""
Visible browser for watching a run or completing a second factor by hand.
"""
