"""Report artifacts for a probe run: CSV log, JSON log and text summary."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .exceptions import ReportWriteError
from .models import RunReport, VisitOutcome, iso_timestamp

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("timestamp", "url", "status", "success", "attempts", "error")
SUMMARY_TITLE = "Daily Browser Visit Summary"


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime objects."""

    def default(self, obj):
        if isinstance(obj, datetime):
            return iso_timestamp(obj)
        return super().default(obj)


def _csv_field(value: str, always_quote: bool = False) -> str:
    if always_quote or any(ch in value for ch in ',"\r\n'):
        return '"' + value.replace('"', '""') + '"'
    return value


def render_csv(outcomes: Iterable[VisitOutcome]) -> str:
    """One header row, then one row per outcome. The error column is always quoted."""
    lines = [",".join(CSV_COLUMNS)]
    for outcome in outcomes:
        lines.append(",".join([
            outcome.timestamp,
            _csv_field(outcome.url),
            str(int(outcome.status)),
            "true" if outcome.success else "false",
            str(int(outcome.attempts)),
            _csv_field(outcome.error or "", always_quote=True),
        ]))
    return "\n".join(lines) + "\n"


def render_summary(report: RunReport, run_time: Optional[datetime] = None) -> str:
    """Human-readable summary; the failure list appears only when failures exist."""
    failures = report.failures
    lines = [
        SUMMARY_TITLE,
        f"Run time (UTC): {iso_timestamp(run_time or report.finished_at or report.started_at)}",
        f"Total URLs: {report.total}",
        f"Successful: {report.successes}",
        f"Unsuccessful: {len(failures)}",
    ]
    if failures:
        lines.append("")
        lines.append("Failures:")
        lines.extend(f"- {outcome.url} (status {outcome.status})" for outcome in failures)
    return "\n".join(lines) + "\n"


def render_auth_failure(diagnostic: str, run_time: Optional[datetime] = None) -> str:
    return "\n".join([
        SUMMARY_TITLE,
        f"Run time (UTC): {iso_timestamp(run_time)}",
        f"Authentication failed: {diagnostic}",
        "No URLs were visited.",
    ]) + "\n"


def render_crash(error: Union[BaseException, str]) -> str:
    message = str(error) or type(error).__name__
    return f"Run crashed:\n{message}\n"


class ReportWriter:
    """Writes report artifacts into a single artifact directory.

    Example structure:
        artifacts/
        ├── visit_log.csv
        ├── visit_log.json
        ├── summary.txt
        └── screenshots/
    """

    CSV_NAME = "visit_log.csv"
    JSON_NAME = "visit_log.json"
    SUMMARY_NAME = "summary.txt"

    def __init__(self, artifact_dir: Union[str, Path] = "artifacts"):
        """Initialize report writer.

        Args:
            artifact_dir: Directory for all artifacts of a run
        """
        self.artifact_dir = Path(artifact_dir)

    @property
    def csv_path(self) -> Path:
        return self.artifact_dir / self.CSV_NAME

    @property
    def json_path(self) -> Path:
        return self.artifact_dir / self.JSON_NAME

    @property
    def summary_path(self) -> Path:
        return self.artifact_dir / self.SUMMARY_NAME

    def ensure_dir(self) -> Path:
        try:
            self.artifact_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ReportWriteError(f"Cannot create artifact directory {self.artifact_dir}: {e}") from e
        return self.artifact_dir

    def _write_text(self, filepath: Path, content: str) -> Path:
        self.ensure_dir()
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise ReportWriteError(f"Cannot write {filepath}: {e}") from e
        return filepath

    def _save_json(self, filepath: Path, data) -> Path:
        """Save data as formatted JSON."""
        return self._write_text(
            filepath,
            json.dumps(data, indent=2, ensure_ascii=False, cls=DateTimeEncoder),
        )

    def write_outcomes(self, outcomes: List[VisitOutcome]) -> Dict[str, Path]:
        """Write the CSV and JSON logs."""
        return {
            "csv": self._write_text(self.csv_path, render_csv(outcomes)),
            "json": self._save_json(self.json_path, [outcome.to_dict() for outcome in outcomes]),
        }

    def write_report(self, report: RunReport) -> Dict[str, Path]:
        """Write every artifact for a completed run.

        Returns:
            Mapping of artifact kind to the file written
        """
        paths = self.write_outcomes(report.outcomes)
        paths["summary"] = self._write_text(self.summary_path, render_summary(report))
        logger.info(f"Report written to {self.artifact_dir}")
        return paths

    def write_auth_failure(self, diagnostic: str) -> Path:
        """Terminal summary for a run stopped by a failed login."""
        return self._write_text(self.summary_path, render_auth_failure(diagnostic))

    def write_crash_summary(self, error: Union[BaseException, str]) -> Optional[Path]:
        """Best-effort crash summary. Returns None when nothing could be written."""
        try:
            return self._write_text(self.summary_path, render_crash(error))
        except ReportWriteError as e:
            logger.error(f"Could not write crash summary: {e}")
            return None

    def load_outcomes(self, filepath: Optional[Path] = None) -> List[VisitOutcome]:
        """Load outcomes back from a JSON log."""
        filepath = Path(filepath) if filepath else self.json_path
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        return [VisitOutcome.from_dict(item) for item in data]
