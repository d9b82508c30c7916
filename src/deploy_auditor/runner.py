"""Checker registry and batch execution.

Each checker runs independently; one category failing never stops the others.
"""

import logging
from typing import Callable

from . import database
from .artifacts import write_report
from .checks import (
    run_dependency_checks,
    run_environment_checks,
    run_exposure_checks,
    run_permission_checks,
    run_routing_checks,
    run_syntax_checks,
    run_variable_checks,
)
from .config import (
    CATEGORY_ORDER,
    DATABASE,
    DEPENDENCIES,
    ENVIRONMENT,
    EXPOSURE,
    PERMISSIONS,
    ROUTING,
    SYNTAX,
    VARIABLES,
    AuditConfig,
)
from .models import CheckReport, ItemStatus, RemediationPlan
from .remediation import generate_plan, render_plan
from .scorer import failed_report, severity_counts

logger = logging.getLogger(__name__)


CHECKERS: dict[str, Callable[[AuditConfig], CheckReport]] = {
    ENVIRONMENT: run_environment_checks,
    SYNTAX: run_syntax_checks,
    DEPENDENCIES: run_dependency_checks,
    VARIABLES: run_variable_checks,
    PERMISSIONS: run_permission_checks,
    ROUTING: run_routing_checks,
    EXPOSURE: run_exposure_checks,
    DATABASE: database.run_checks,
}

_STATUS_MARKS = {
    ItemStatus.PASS: "ok",
    ItemStatus.FAIL: "FAIL",
    ItemStatus.MISSING: "MISSING",
    ItemStatus.ERROR: "ERROR",
    ItemStatus.INFO: "info",
}


def run_check_safely(category: str, config: AuditConfig) -> CheckReport:
    """Run one checker, turning an unexpected exception into a FAILED report.

    Raises:
        KeyError: `category` is not a registered checker.
    """
    check_func = CHECKERS[category]
    try:
        return check_func(config)
    except Exception as e:
        logger.exception(f"Checker {category} crashed")
        return failed_report(category, f"Error running {category}: {e}")


def format_report(report: CheckReport) -> str:
    """Per-item lines followed by the score summary."""
    lines = [f"=== {report.category} ==="]
    for item in report.items:
        lines.append(f"  [{_STATUS_MARKS[item.status]}] {item.name}")
    for finding in report.findings:
        location = f"{finding.file}:{finding.line}" if finding.line is not None else finding.file
        lines.append(f"  {finding.severity.value.upper()}: {location} - {finding.message}")
    if "error" in report.summary:
        lines.append(f"  Error: {report.summary['error']}")
    lines.append(f"Score: {report.score}% ({report.passed}/{report.total} passed)")
    lines.append(f"Status: {report.status}")
    counts = severity_counts(report.findings)
    if counts:
        lines.append("Findings: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
    return "\n".join(lines)


def run_category(category: str, config: AuditConfig, echo: bool = True) -> CheckReport:
    """Run one checker, print its summary, and persist `<category>-results.json`."""
    logger.info(f"Running {category} checks on {config.root}")
    report = run_check_safely(category, config)
    if echo:
        print(format_report(report))
        print()
    write_report(report, config.output_path)
    return report


def run_all(config: AuditConfig, echo: bool = True) -> list[CheckReport]:
    """Run every checker in scan order."""
    return [run_category(category, config, echo=echo) for category in CATEGORY_ORDER]


def run_pipeline(config: AuditConfig, echo: bool = True) -> RemediationPlan:
    """Every checker, then the synthesizer over the freshly written artifacts."""
    run_all(config, echo=echo)
    plan = generate_plan(config)
    if echo:
        print(render_plan(plan))
    return plan
