"""Sequential visit engine: optional login, then one retry loop per target."""

import logging
from typing import Iterable, List, Optional

from .auth import AuthResult, ensure_logged_in
from .classifier import SuccessClassifier
from .config import ProbeConfig
from .infrastructure.browser_session import BrowserSession
from .infrastructure.pacing import Pacer
from .models import RunReport, Target, VisitOutcome, utc_now
from .retry import RetryController

logger = logging.getLogger(__name__)


class VisitEngine:
    """
    Orchestrates one probe run over a single browser session.

    Everything is sequential: one session, one navigation at a time, all
    waits are suspensions of the single control flow. Outcomes collected so
    far stay available on ``outcomes`` if the run is aborted by a fault.

        engine = VisitEngine(session, config)
        report = await engine.run(targets)
    """

    def __init__(
        self,
        session: BrowserSession,
        config: Optional[ProbeConfig] = None,
        classifier: Optional[SuccessClassifier] = None,
        pacer: Optional[Pacer] = None,
    ):
        self.session = session
        self.config = config or ProbeConfig()
        self.controller = RetryController.from_config(self.config, pacer=pacer, classifier=classifier)
        self.outcomes: List[VisitOutcome] = []
        self.auth_result: Optional[AuthResult] = None

    @property
    def pacer(self) -> Pacer:
        return self.controller.pacer

    async def authenticate(self) -> Optional[AuthResult]:
        """Log in when credentials are configured.

        Raises:
            AuthenticationError: the login flow ended in FAILED
        """
        if not self.config.has_credentials:
            return None
        self.auth_result = await ensure_logged_in(
            self.session,
            self.config.login,
            sleep=self.pacer.wait,
        )
        logger.debug(f"Login result: {self.auth_result.to_dict()}")
        return self.auth_result

    async def run(self, targets: Iterable[Target]) -> RunReport:
        """
        Visit every target in order.

        Raises:
            AuthenticationError: login failed; no target has been visited
        """
        targets = list(targets)
        report = RunReport(started_at=utc_now())
        self.outcomes = report.outcomes

        await self.authenticate()

        logger.info(
            f"Visiting {len(targets)} URLs (max {self.config.max_attempts} attempts each, "
            f"success when {self.controller.classifier.policy.describe()})"
        )
        for index, target in enumerate(targets, start=1):
            logger.debug(f"[{index}/{len(targets)}] {target.url}")
            await self.controller.attempt_visit(target, self.session, on_outcome=self.outcomes.append)

        report.finished_at = utc_now()
        logger.info(
            f"Run complete: {report.successes}/{report.total} successful "
            f"(waited {self.pacer.get_stats()['total_wait_time']}s)"
        )
        return report
