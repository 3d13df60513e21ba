"""Bounded retry loop around a single target visit."""

import logging
import re
from pathlib import Path
from typing import Callable, List, Optional

from .classifier import SuccessClassifier
from .config import ProbeConfig
from .infrastructure.browser_session import BrowserSession, read_dom_signals
from .infrastructure.pacing import Pacer, PacingConfig
from .models import (
    AttemptRecord,
    Observation,
    Target,
    VisitOutcome,
    iso_timestamp,
    parse_hostname,
)

logger = logging.getLogger(__name__)

OutcomeHook = Callable[[VisitOutcome], None]


async def observe(
    session: BrowserSession,
    target: Target,
    pacer: Pacer,
    settle_seconds: float = 0.0,
) -> Observation:
    """Navigate once and capture the signals the classifier needs."""
    status = await session.goto(target.url)

    # Allow late JS hydration before reading the DOM
    if settle_seconds > 0:
        await pacer.wait(settle_seconds)

    final_url = await session.current_url()
    signals = await read_dom_signals(session)

    return Observation(
        status=status or 0,
        final_url=final_url,
        final_host=parse_hostname(final_url),
        body_length=signals["body_length"],
        title=signals["title"],
        markup_length=signals["markup_length"],
    )


class RetryController:
    """
    Visits one target up to ``max_attempts`` times.

    Each attempt is one navigation. A navigation fault counts as a failed
    attempt; it never aborts the run. The loop stops at the first successful
    verdict, backs off between failed attempts and always ends with a
    randomized pause so the whole run is paced, not just the retries.
    """

    def __init__(
        self,
        classifier: Optional[SuccessClassifier] = None,
        pacer: Optional[Pacer] = None,
        max_attempts: int = 4,
        settle_seconds: float = 2.0,
        screenshot_dir: Optional[Path] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.classifier = classifier or SuccessClassifier()
        self.pacer = pacer or Pacer()
        self.max_attempts = max_attempts
        self.settle_seconds = settle_seconds
        self.screenshot_dir = Path(screenshot_dir) if screenshot_dir else None

    @classmethod
    def from_config(
        cls,
        config: ProbeConfig,
        pacer: Optional[Pacer] = None,
        classifier: Optional[SuccessClassifier] = None,
    ) -> "RetryController":
        pacer = pacer or Pacer(
            PacingConfig(
                backoff_base=config.backoff_base,
                backoff_jitter=config.backoff_jitter,
                min_gap=config.visit_gap_min,
                max_gap=config.visit_gap_max,
            )
        )
        classifier = classifier or SuccessClassifier(
            policy=config.success_policy,
            min_body_length=config.min_body_length,
        )
        screenshot_dir = (
            Path(config.artifact_dir) / "screenshots"
            if config.capture_failure_screenshots
            else None
        )
        return cls(
            classifier=classifier,
            pacer=pacer,
            max_attempts=config.max_attempts,
            settle_seconds=config.settle_seconds,
            screenshot_dir=screenshot_dir,
        )

    async def run_attempt(self, target: Target, session: BrowserSession, attempt: int) -> AttemptRecord:
        try:
            observation = await observe(session, target, self.pacer, self.settle_seconds)
        except Exception as e:
            logger.warning(f"Attempt {attempt} for {target.url} failed: {e}")
            return AttemptRecord(attempt=attempt, observation=Observation.failed(), fault=e)

        verdict = self.classifier.classify(observation, target)
        if not verdict.success:
            logger.warning(f"Attempt {attempt} for {target.url}: {verdict.diagnostic}")
        return AttemptRecord(attempt=attempt, observation=observation, verdict=verdict)

    async def attempt_visit(
        self,
        target: Target,
        session: BrowserSession,
        max_attempts: Optional[int] = None,
        on_outcome: Optional[OutcomeHook] = None,
    ) -> VisitOutcome:
        """
        Visit ``target`` until it classifies as healthy or attempts run out.

        ``on_outcome`` receives the outcome before the inter-visit pause, so
        a fault during that pause cannot lose it.

        Returns:
            VisitOutcome carrying the last status, the final verdict, the
            number of attempts consumed and the last diagnostic on failure
        """
        max_attempts = max_attempts or self.max_attempts
        records: List[AttemptRecord] = []

        for attempt in range(1, max_attempts + 1):
            record = await self.run_attempt(target, session, attempt)
            records.append(record)
            if record.verdict.success:
                break
            if attempt < max_attempts:
                await self.pacer.wait_backoff(attempt)

        last = records[-1]
        success = last.verdict.success
        error = "" if success else (last.error or "Unhealthy: no diagnostic")

        if not success:
            await self._capture_failure(target, session)

        outcome = VisitOutcome(
            timestamp=iso_timestamp(),
            url=target.url,
            status=last.status,
            success=success,
            attempts=len(records),
            error=error,
        )
        logger.info(
            f"{'OK' if success else 'FAIL'} {target.url} "
            f"(status={outcome.status}, attempts={outcome.attempts})"
        )
        if on_outcome is not None:
            on_outcome(outcome)

        await self.pacer.wait_between_visits()
        return outcome

    async def _capture_failure(self, target: Target, session: BrowserSession) -> None:
        if not self.screenshot_dir:
            return
        slug = re.sub(r"[^A-Za-z0-9]+", "_", target.hostname or target.url).strip("_")[:80]
        path = self.screenshot_dir / f"{slug or 'target'}_{iso_timestamp().replace(':', '')}.png"
        try:
            saved = await session.screenshot(path)
            if saved:
                logger.info(f"Saved failure screenshot: {saved}")
        except Exception as e:
            logger.warning(f"Could not capture screenshot for {target.url}: {e}")
