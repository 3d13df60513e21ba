"""Browser-driven synthetic monitoring for storefront URLs."""

__version__ = "0.1.0"

from visitprobe.models import (
    Target,
    Observation,
    Verdict,
    AttemptRecord,
    VisitOutcome,
    RunReport,
    parse_hostname,
)
from visitprobe.classifier import (
    SuccessClassifier,
    SuccessPolicy,
    POLICIES,
    classify,
    register_policy,
)
from visitprobe.config import ProbeConfig, LoginConfig
from visitprobe.browser_config import BrowserConfig, MARKETPLACE_CONFIG, DEBUG_CONFIG
from visitprobe.exceptions import (
    ProbeError,
    ConfigurationError,
    NavigationError,
    AuthenticationError,
    ReportWriteError,
)
from visitprobe.retry import RetryController
from visitprobe.auth import Authenticator, AuthState, AuthResult
from visitprobe.engine import VisitEngine
from visitprobe.sources import read_urls, load_targets
from visitprobe.reporter import ReportWriter, render_csv, render_summary
from visitprobe.runner import ProbeRun, run_probe

# Infrastructure
from visitprobe.infrastructure import (
    BrowserSession,
    PlaywrightSession,
    Pacer,
    PacingConfig,
    backoff_delay,
)

__all__ = [
    # Models
    "Target",
    "Observation",
    "Verdict",
    "AttemptRecord",
    "VisitOutcome",
    "RunReport",
    "parse_hostname",
    # Classification
    "SuccessClassifier",
    "SuccessPolicy",
    "POLICIES",
    "classify",
    "register_policy",
    # Configuration
    "ProbeConfig",
    "LoginConfig",
    "BrowserConfig",
    "MARKETPLACE_CONFIG",
    "DEBUG_CONFIG",
    # Errors
    "ProbeError",
    "ConfigurationError",
    "NavigationError",
    "AuthenticationError",
    "ReportWriteError",
    # Engine
    "RetryController",
    "Authenticator",
    "AuthState",
    "AuthResult",
    "VisitEngine",
    "read_urls",
    "load_targets",
    "ReportWriter",
    "render_csv",
    "render_summary",
    "ProbeRun",
    "run_probe",
    # Infrastructure
    "BrowserSession",
    "PlaywrightSession",
    "Pacer",
    "PacingConfig",
    "backoff_delay",
]
