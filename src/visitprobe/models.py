"""Data models for browser visit probing."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse


def parse_hostname(url: str) -> str:
    """Return the lower-cased hostname of ``url`` without a ``www.`` prefix.

    Unparsable input yields an empty string.
    """
    try:
        hostname = urlparse(url.strip()).hostname
    except (ValueError, AttributeError):
        return ""
    if not hostname:
        return ""
    hostname = hostname.lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a moment as ISO-8601 UTC with milliseconds, e.g. 2025-01-01T08:00:00.000Z."""
    moment = moment or utc_now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Target:
    """One URL to health-check."""

    url: str
    hostname: str = ""

    @classmethod
    def from_url(cls, url: str) -> "Target":
        url = url.strip()
        return cls(url=url, hostname=parse_hostname(url))


@dataclass(frozen=True)
class Observation:
    """Signals captured from a single navigation attempt."""

    status: int = 0
    final_url: str = ""
    final_host: str = ""
    body_length: int = 0  # characters of document.body.innerText
    title: str = ""
    markup_length: int = 0  # characters of the serialized document

    @classmethod
    def failed(cls) -> "Observation":
        """Observation for an attempt that errored before a response arrived."""
        return cls(status=0)


@dataclass(frozen=True)
class Verdict:
    """Health classification of one observation."""

    success: bool
    diagnostic: str = ""
    matched_rules: tuple = ()

    def __bool__(self) -> bool:
        return self.success


@dataclass
class AttemptRecord:
    """Transient record of one attempt inside the retry loop."""

    attempt: int
    observation: Optional[Observation] = None
    fault: Optional[BaseException] = None
    verdict: Verdict = field(default_factory=lambda: Verdict(success=False))

    @property
    def status(self) -> int:
        return self.observation.status if self.observation else 0

    @property
    def error(self) -> str:
        if self.fault is not None:
            return str(self.fault) or type(self.fault).__name__
        return self.verdict.diagnostic


@dataclass
class VisitOutcome:
    """Persisted per-target result of a run."""

    timestamp: str
    url: str
    status: int
    success: bool
    attempts: int
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "url": self.url,
            "status": self.status,
            "success": self.success,
            "attempts": self.attempts,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VisitOutcome":
        # Reports written by older tooling used "ok" for the success flag.
        success = data.get("success", data.get("ok", False))
        return cls(
            timestamp=str(data.get("timestamp", "")),
            url=str(data["url"]),
            status=int(data.get("status") or 0),
            success=bool(success),
            attempts=int(data.get("attempts") or 1),
            error=str(data.get("error") or ""),
        )


@dataclass
class RunReport:
    """Ordered outcomes for one execution, one per target in source order."""

    outcomes: List[VisitOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successes(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failures(self) -> List[VisitOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]
