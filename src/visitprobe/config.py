from dotenv import load_dotenv
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional, Tuple
from pathlib import Path
import json
import os

import yaml

from visitprobe.classifier import POLICIES
from visitprobe.exceptions import ConfigurationError

load_dotenv()  # Loads variables from .env file


ENV_PREFIX = "PROBE_"


@dataclass(frozen=True)
class LoginConfig:
    """Scripted login flow run once before the visit loop."""
    url: str
    identifier: str
    passcode: str = field(repr=False)

    # Candidate selectors, tried in order
    identifier_selectors: Tuple[str, ...] = (
        'input[type="email"]',
        'input[name="loginKey"]',
        'input[name="username"]',
        'input[name="email"]',
        'input[autocomplete="username"]',
        'input[type="tel"]',
    )
    next_selectors: Tuple[str, ...] = (
        'button:has-text("Next")',
        'button:has-text("Lanjut")',
        'button:has-text("Continue")',
        'button[type="submit"]',
    )
    passcode_selectors: Tuple[str, ...] = (
        'input[type="password"]',
        'input[name="password"]',
        'input[autocomplete="current-password"]',
    )
    submit_selectors: Tuple[str, ...] = (
        'button[type="submit"]',
        'button:has-text("Log in")',
        'button:has-text("Masuk")',
        'button:has-text("Sign in")',
        'input[type="submit"]',
    )

    # URL fragments identifying the verification surface and the login surface
    second_factor_markers: Tuple[str, ...] = ("otp", "verify", "verification", "2fa", "mfa", "challenge")
    login_markers: Tuple[str, ...] = ("login", "signin", "sign-in")

    second_factor_wait: float = 60.0  # seconds
    field_timeout_ms: int = 10000
    settle_seconds: float = 3.0

    @classmethod
    def from_env(cls) -> Optional["LoginConfig"]:
        """Build login settings when both secrets are present, else None."""
        identifier = (os.getenv(f"{ENV_PREFIX}LOGIN_ID") or "").strip()
        passcode = os.getenv(f"{ENV_PREFIX}LOGIN_PASSCODE") or ""
        if not identifier or not passcode:
            return None

        url = (os.getenv(f"{ENV_PREFIX}LOGIN_URL") or "").strip()
        if not url:
            raise ConfigurationError(
                f"{ENV_PREFIX}LOGIN_URL must be set when login credentials are configured."
            )

        kwargs: Dict[str, Any] = {"url": url, "identifier": identifier, "passcode": passcode}
        wait = os.getenv(f"{ENV_PREFIX}SECOND_FACTOR_WAIT")
        if wait:
            kwargs["second_factor_wait"] = _coerce(wait, float, f"{ENV_PREFIX}SECOND_FACTOR_WAIT")
        return cls(**kwargs)


@dataclass(frozen=True)
class ProbeConfig:
    """All tunables for one probe run. Immutable once constructed."""
    urls_path: str = "urls.csv"
    artifact_dir: str = "artifacts"

    # Retry loop
    max_attempts: int = 4
    backoff_base: float = 1.0  # seconds, doubled per attempt
    backoff_jitter: float = 0.5  # seconds, uniform ceiling added to each backoff

    # Pacing between targets (seconds)
    visit_gap_min: float = 1.2
    visit_gap_max: float = 4.0

    # Late JS hydration wait after navigation (seconds)
    settle_seconds: float = 2.0

    # Classification
    min_body_length: int = 1200
    success_policy: str = "permissive"

    capture_failure_screenshots: bool = False
    login: Optional[LoginConfig] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1, got {self.max_attempts}")
        for name in ("backoff_base", "backoff_jitter", "visit_gap_min", "visit_gap_max", "settle_seconds"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")
        if self.visit_gap_min > self.visit_gap_max:
            raise ConfigurationError("visit_gap_min must not exceed visit_gap_max")
        if self.min_body_length < 0:
            raise ConfigurationError("min_body_length must not be negative")
        if self.success_policy not in POLICIES:
            raise ConfigurationError(
                f"Unknown success_policy {self.success_policy!r}; "
                f"expected one of {', '.join(sorted(POLICIES))}"
            )

    @property
    def has_credentials(self) -> bool:
        return bool(self.login and self.login.identifier and self.login.passcode)

    @classmethod
    def from_env(cls) -> "ProbeConfig":
        """Load configuration from environment variables.

        Variables are prefixed with PROBE_, e.g. PROBE_MAX_ATTEMPTS=6.
        Login secrets come from PROBE_LOGIN_ID / PROBE_LOGIN_PASSCODE.

        Returns:
            ProbeConfig with values from environment
        """
        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "login":
                continue
            env_value = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if env_value is not None:
                values[f.name] = _coerce(env_value, _field_type(f.name), f"{ENV_PREFIX}{f.name.upper()}")
        values["login"] = LoginConfig.from_env()
        return cls(**values)

    @classmethod
    def from_file(cls, path: str, base: Optional["ProbeConfig"] = None) -> "ProbeConfig":
        """Load configuration from a JSON or YAML file.

        Args:
            path: Path to a .json, .yaml or .yml file
            base: Configuration to overlay (defaults to built-in defaults)

        Returns:
            ProbeConfig with values from file; unknown keys are ignored
        """
        base = base or cls()
        file_path = Path(path)

        if not file_path.exists():
            return base

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                if file_path.suffix.lower() in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot parse {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping of settings")

        probe_section = data.get("probe", data)
        if probe_section is None:
            probe_section = {}
        if not isinstance(probe_section, dict):
            raise ConfigurationError(f"'probe' in {path} must be a mapping of settings")

        known = {f.name for f in fields(cls)} - {"login"}
        overrides = {
            k: _file_value(v, k, path)
            for k, v in probe_section.items()
            if k in known and v is not None
        }
        return base.with_overrides(**overrides)

    def with_overrides(self, **changes: Any) -> "ProbeConfig":
        """Return a copy with the given non-None fields replaced."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            return self
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a dictionary without secrets."""
        data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "login"
        }
        data["login_url"] = self.login.url if self.login else None
        return data


_FIELD_TYPES = {
    "urls_path": str,
    "artifact_dir": str,
    "max_attempts": int,
    "backoff_base": float,
    "backoff_jitter": float,
    "visit_gap_min": float,
    "visit_gap_max": float,
    "settle_seconds": float,
    "min_body_length": int,
    "success_policy": str,
    "capture_failure_screenshots": bool,
}


def _field_type(name: str) -> type:
    return _FIELD_TYPES.get(name, str)


def _coerce(raw: str, target: type, name: str) -> Any:
    if target is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    try:
        return target(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from None


def _file_value(value: Any, name: str, path: str) -> Any:
    """Convert a file setting to its field type; strings are parsed like env values."""
    target = _field_type(name)
    label = f"{name} in {path}"
    if isinstance(value, bool):
        if target is bool:
            return value
        raise ConfigurationError(f"Invalid value for {label}: {value!r}")
    if isinstance(value, target):
        return value
    if target is float and isinstance(value, int):
        return float(value)
    if isinstance(value, (dict, list)):
        raise ConfigurationError(f"Invalid value for {label}: {value!r}")
    return _coerce(str(value), target, label)
