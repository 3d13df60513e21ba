"""
Infrastructure Package.

Provides the browser session capability and request pacing used by the
visit engine.
"""

from .browser_session import (
    BrowserSession,
    PlaywrightSession,
    DOM_SIGNALS_SCRIPT,
    read_dom_signals,
)
from .pacing import (
    Pacer,
    PacingConfig,
    Sleeper,
    backoff_delay,
)

__all__ = [
    # Browser session
    "BrowserSession",
    "PlaywrightSession",
    "DOM_SIGNALS_SCRIPT",
    "read_dom_signals",
    # Pacing
    "Pacer",
    "PacingConfig",
    "Sleeper",
    "backoff_delay",
]
