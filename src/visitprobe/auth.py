"""
Pre-flight login for visits that need an authenticated session.

The flow is a scripted form fill, not a generic login solver:

    NOT_STARTED -> FORM_LOADED -> CREDENTIALS_SUBMITTED
        -> [AWAITING_SECOND_FACTOR] -> LOGGED_IN | FAILED

After submission the resulting URL decides the path. A verification URL
suspends the run for a fixed window so a one-time passcode can be completed
out of band; the window is never polled or shortened. If the URL still points
at the login surface afterwards the flow has failed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .config import LoginConfig
from .exceptions import AuthenticationError
from .infrastructure.browser_session import BrowserSession
from .infrastructure.pacing import Sleeper

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    """Login flow states."""
    NOT_STARTED = "not_started"
    FORM_LOADED = "form_loaded"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    AWAITING_SECOND_FACTOR = "awaiting_second_factor"
    LOGGED_IN = "logged_in"
    FAILED = "failed"


_TRANSITIONS = {
    AuthState.NOT_STARTED: {AuthState.FORM_LOADED, AuthState.FAILED},
    AuthState.FORM_LOADED: {AuthState.CREDENTIALS_SUBMITTED, AuthState.FAILED},
    AuthState.CREDENTIALS_SUBMITTED: {
        AuthState.AWAITING_SECOND_FACTOR,
        AuthState.LOGGED_IN,
        AuthState.FAILED,
    },
    AuthState.AWAITING_SECOND_FACTOR: {AuthState.LOGGED_IN, AuthState.FAILED},
    AuthState.LOGGED_IN: set(),
    AuthState.FAILED: set(),
}


@dataclass
class AuthResult:
    """Outcome of the login flow."""
    state: AuthState
    final_url: str = ""
    diagnostic: str = ""
    second_factor_waited: bool = False
    history: List[AuthState] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == AuthState.LOGGED_IN

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "final_url": self.final_url,
            "diagnostic": self.diagnostic,
            "second_factor_waited": self.second_factor_waited,
            "history": [state.value for state in self.history],
        }


def url_has_marker(url: str, markers: Iterable[str]) -> bool:
    lowered = (url or "").lower()
    return any(marker in lowered for marker in markers)


class Authenticator:
    """Drives a BrowserSession through the configured login form."""

    def __init__(
        self,
        session: BrowserSession,
        login: LoginConfig,
        sleep: Optional[Sleeper] = None,
    ):
        self.session = session
        self.login = login
        self._sleep = sleep or asyncio.sleep
        self._state = AuthState.NOT_STARTED
        self._history: List[AuthState] = [AuthState.NOT_STARTED]
        self._second_factor_waited = False

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def history(self) -> Tuple[AuthState, ...]:
        return tuple(self._history)

    def _transition(self, new_state: AuthState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid login transition {self._state.value} -> {new_state.value}")
        logger.debug(f"Login state: {self._state.value} -> {new_state.value}")
        self._state = new_state
        self._history.append(new_state)

    async def _result(self, diagnostic: str = "") -> AuthResult:
        try:
            final_url = await self.session.current_url()
        except Exception as e:
            logger.debug(f"Could not read URL after login step: {e}")
            final_url = ""
        return AuthResult(
            state=self._state,
            final_url=final_url,
            diagnostic=diagnostic,
            second_factor_waited=self._second_factor_waited,
            history=list(self._history),
        )

    async def _fail(self, diagnostic: str) -> AuthResult:
        logger.error(f"Login failed: {diagnostic}")
        self._transition(AuthState.FAILED)
        return await self._result(diagnostic)

    async def _first_visible(self, selectors: Iterable[str], timeout_ms: int) -> Optional[str]:
        for selector in selectors:
            if await self.session.wait_for_selector(selector, timeout_ms):
                return selector
        return None

    async def wait_for_second_factor(self) -> bool:
        """
        Suspend for the fixed verification window.

        Returns:
            True once the window has elapsed
        """
        window = self.login.second_factor_wait
        logger.warning(
            f"Second factor requested; waiting {window:.0f}s for out-of-band completion"
        )
        await self._sleep(window)
        self._second_factor_waited = True
        return True

    async def authenticate(self) -> AuthResult:
        """
        Run the login flow once.

        Step errors end the flow in FAILED with a diagnostic rather than
        propagating.
        """
        if self._state != AuthState.NOT_STARTED:
            raise RuntimeError("Authenticator instances are single-use")

        login = self.login
        # The first candidate waits for the form to render; the rest are checked quickly.
        quick_ms = min(1000, login.field_timeout_ms)

        logger.info(f"Logging in at {login.url}")
        try:
            await self.session.goto(login.url)
        except Exception as e:
            return await self._fail(f"Login page unreachable: {e}")
        self._transition(AuthState.FORM_LOADED)

        try:
            identifier_field = await self._first_visible(login.identifier_selectors[:1], login.field_timeout_ms)
            if identifier_field is None:
                identifier_field = await self._first_visible(login.identifier_selectors[1:], quick_ms)
            if identifier_field is None:
                return await self._fail("Identifier field not found on login page")
            await self.session.fill(identifier_field, login.identifier)

            # Some forms reveal the passcode field only after a "next" step.
            passcode_field = await self._first_visible(login.passcode_selectors, quick_ms)
            if passcode_field is None:
                next_button = await self._first_visible(login.next_selectors, quick_ms)
                if next_button is not None:
                    await self.session.click(next_button)
                passcode_field = await self._first_visible(
                    login.passcode_selectors[:1], login.field_timeout_ms
                ) or await self._first_visible(login.passcode_selectors[1:], quick_ms)
            if passcode_field is None:
                return await self._fail("Passcode field not found on login page")
            await self.session.fill(passcode_field, login.passcode)

            submit_button = await self._first_visible(login.submit_selectors, quick_ms)
            if submit_button is not None:
                await self.session.click(submit_button)
            else:
                await self.session.press(passcode_field, "Enter")
        except Exception as e:
            return await self._fail(f"Login form interaction failed: {e}")

        self._transition(AuthState.CREDENTIALS_SUBMITTED)
        if login.settle_seconds > 0:
            await self._sleep(login.settle_seconds)

        url = await self.session.current_url()
        if url_has_marker(url, login.second_factor_markers):
            self._transition(AuthState.AWAITING_SECOND_FACTOR)
            await self.wait_for_second_factor()
            url = await self.session.current_url()

        if url_has_marker(url, login.login_markers):
            return await self._fail(f"Still on login page after submission: {url}")

        self._transition(AuthState.LOGGED_IN)
        logger.info(f"Logged in; landed on {url}")
        return await self._result()


async def ensure_logged_in(
    session: BrowserSession,
    login: LoginConfig,
    sleep: Optional[Sleeper] = None,
) -> AuthResult:
    """Run the login flow and raise AuthenticationError unless it succeeds."""
    result = await Authenticator(session, login, sleep=sleep).authenticate()
    if not result.success:
        raise AuthenticationError(result.diagnostic or "Login failed", result=result)
    return result
