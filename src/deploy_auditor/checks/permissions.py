"""Directory permission checks against the configured expectation table.

Operational directories (uploads, exports, logs) must be writable by the
application; sensitive ones (config, classes) must not be. Severity follows
that split:

| mismatch                         | operational | write-restricted |
|----------------------------------|-------------|------------------|
| writability differs              | high        | critical         |
| mode bits differ, writability ok | low         | medium           |
| directory missing                | high        | medium           |
"""

import logging
import os
import stat
from pathlib import Path
from typing import Optional

from ..config import PERMISSIONS, AuditConfig, PermissionExpectation
from ..models import CheckItem, CheckReport, Finding, FindingCategory, ItemStatus, Severity
from ..scorer import Tally, build_report, failed_report
from .common import resolve

logger = logging.getLogger(__name__)


def _is_writable(path: Path) -> bool:
    return os.access(path, os.W_OK)


def _is_readable(path: Path) -> bool:
    return os.access(path, os.R_OK)


def _get_mode(path: Path) -> tuple[Optional[int], Optional[str]]:
    """Get permission bits of a path.

    Returns:
        Tuple of (mode, error). If successful, error is None.
    """
    try:
        return stat.S_IMODE(path.stat().st_mode), None
    except FileNotFoundError:
        return None, f"Not found: {path}"
    except PermissionError:
        return None, f"Permission denied: {path}"
    except OSError as e:
        return None, f"Error checking {path}: {e}"


def _missing(expectation: PermissionExpectation) -> tuple[CheckItem, list[Finding]]:
    severity = Severity.high if expectation.writable else Severity.medium
    finding = Finding(
        category=FindingCategory.permission_mismatch,
        severity=severity,
        file=expectation.path,
        message=f"Directory {expectation.path} does not exist",
        evidence={"exists": False, "should_be_writable": expectation.writable, "required_mode": expectation.mode},
    )
    return CheckItem(name=expectation.path, status=ItemStatus.MISSING, detail={"exists": False}), [finding]


def check_directory(
    expectation: PermissionExpectation,
    directory: Path,
) -> tuple[CheckItem, list[Finding]]:
    """Compare one directory's actual permissions with its expectation."""
    if not directory.is_dir():
        return _missing(expectation)

    mode, error = _get_mode(directory)
    if error:
        return CheckItem(name=expectation.path, status=ItemStatus.ERROR, detail={"error": error}), []

    current = f"{mode & 0o777:03o}"
    writable = _is_writable(directory)
    correct_mode = current == expectation.mode
    correct_writable = writable == expectation.writable
    detail = {
        "exists": True,
        "current_mode": current,
        "required_mode": expectation.mode,
        "readable": _is_readable(directory),
        "writable": writable,
        "should_be_writable": expectation.writable,
        "world_writable": bool(mode & stat.S_IWOTH),
    }

    findings = []
    if not correct_writable:
        if expectation.writable:
            severity = Severity.high
            message = f"{expectation.path} must be writable by the application but is not"
        else:
            severity = Severity.critical
            message = f"{expectation.path} is write-restricted but is writable"
        findings.append(
            Finding(
                category=FindingCategory.permission_mismatch,
                severity=severity,
                file=expectation.path,
                message=message,
                evidence=detail,
            )
        )
    elif not correct_mode:
        findings.append(
            Finding(
                category=FindingCategory.permission_mismatch,
                severity=Severity.low if expectation.writable else Severity.medium,
                file=expectation.path,
                message=f"{expectation.path} has mode {current}, expected {expectation.mode}",
                evidence=detail,
            )
        )

    status = ItemStatus.PASS if correct_mode and correct_writable else ItemStatus.FAIL
    return CheckItem(name=expectation.path, status=status, detail=detail), findings


def run_checks(config: AuditConfig) -> CheckReport:
    """Check every directory in the permission table."""
    if not config.root_path.is_dir():
        logger.error(f"Permission check aborted: root {config.root} is not a directory")
        return failed_report(PERMISSIONS, f"Scan root does not exist: {config.root}")

    tally = Tally()
    for expectation in config.permissions:
        item, findings = check_directory(expectation, resolve(config, expectation.path))
        tally = tally.record(item, *findings)

    return build_report(PERMISSIONS, tally, config.threshold_for(PERMISSIONS))
