"""
Top-level probe run with fault containment.

``run_probe`` loads the URL list, opens one browser session, runs the visit
engine and writes the report. Whatever happens, it tries to leave an artifact
behind:

- login failure: a dedicated summary, no visit logs
- configuration or unexpected fault: logs of the outcomes collected so far
  plus a crash summary, then the error is re-raised
"""

import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Callable, List, Optional

from .browser_config import BrowserConfig
from .config import ProbeConfig
from .engine import VisitEngine
from .exceptions import AuthenticationError, ReportWriteError
from .infrastructure.browser_session import PlaywrightSession
from .infrastructure.pacing import Pacer
from .models import RunReport, VisitOutcome
from .reporter import ReportWriter, render_summary
from .sources import load_targets

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager]


@dataclass
class ProbeRun:
    """What a probe run produced."""
    report: Optional[RunReport] = None
    auth_error: Optional[AuthenticationError] = None

    @property
    def ok(self) -> bool:
        return self.report is not None and self.auth_error is None


async def run_probe(
    config: ProbeConfig,
    browser_config: Optional[BrowserConfig] = None,
    session_factory: Optional[SessionFactory] = None,
    pacer: Optional[Pacer] = None,
) -> ProbeRun:
    """
    Execute one probe run and write its artifacts.

    Args:
        config: Probe settings
        browser_config: Browser fingerprint and launch settings
        session_factory: Callable returning an async context manager that
            yields a BrowserSession (defaults to PlaywrightSession)
        pacer: Optional pacer, mainly to inject a fake sleep

    Returns:
        ProbeRun with the report, or the authentication error that stopped it

    Raises:
        ConfigurationError: the URL list is unusable (crash summary written)
        BaseException: any unexpected fault, interrupt or cancellation
            (partial logs and crash summary written)
    """
    writer = ReportWriter(config.artifact_dir)
    engine: Optional[VisitEngine] = None

    if session_factory is None:
        session_factory = lambda: PlaywrightSession(browser_config)  # noqa: E731

    logger.debug(f"Probe settings: {config.to_dict()}")

    try:
        writer.ensure_dir()
        targets = load_targets(config.urls_path)

        if not targets:
            logger.warning(f"No URLs found in {config.urls_path} (after header)")
            report = RunReport()
            writer.write_report(report)
            return ProbeRun(report=report)

        async with session_factory() as session:
            engine = VisitEngine(session, config, pacer=pacer)
            report = await engine.run(targets)

        writer.write_report(report)
        logger.info("SUMMARY\n" + render_summary(report))
        return ProbeRun(report=report)

    except AuthenticationError as e:
        logger.error(f"Authentication failed, no URLs visited: {e}")
        try:
            writer.write_auth_failure(str(e))
        except ReportWriteError as write_error:
            logger.error(f"Could not write authentication failure summary: {write_error}")
        return ProbeRun(auth_error=e)

    except BaseException as e:
        # Interrupts and cancellation also leave partial logs behind before propagating
        logger.exception(f"Fatal error: {e!r}")
        _write_partial(writer, engine.outcomes if engine else [])
        writer.write_crash_summary(e)
        raise


def _write_partial(writer: ReportWriter, outcomes: List[VisitOutcome]) -> None:
    if not outcomes:
        return
    try:
        writer.write_outcomes(outcomes)
        logger.info(f"Wrote {len(outcomes)} outcomes collected before the failure")
    except ReportWriteError as e:
        logger.error(f"Could not write partial report: {e}")
