"""JSON artifact persistence for reports and the remediation plan."""

import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .config import PLAN_FILENAME
from .models import CheckReport, RemediationPlan

logger = logging.getLogger(__name__)


def report_filename(category: str) -> str:
    return f"{category}-results.json"


def write_report(report: CheckReport, output_dir: str | Path) -> Path:
    """Write `<category>-results.json`, replacing any previous run."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / report_filename(report.category)
    path.write_text(report.model_dump_json(indent=2) + "\n", encoding="utf-8")
    logger.info(f"Report written: {path}")
    return path


def read_report(category: str, output_dir: str | Path) -> Optional[CheckReport]:
    """Load a report artifact; None when it does not exist.

    A present but unreadable or unparseable artifact is logged and treated
    as absent.
    """
    path = Path(output_dir) / report_filename(category)
    if not path.is_file():
        return None
    try:
        return CheckReport.model_validate_json(path.read_text(encoding="utf-8"))
    except (ValidationError, UnicodeDecodeError, OSError) as e:
        logger.error(f"Ignoring malformed report {path}: {e}")
        return None


def write_plan(plan: RemediationPlan, output_dir: str | Path) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / PLAN_FILENAME
    path.write_text(plan.model_dump_json(indent=2) + "\n", encoding="utf-8")
    logger.info(f"Remediation plan written: {path}")
    return path
