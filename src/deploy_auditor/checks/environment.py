"""Environment checks: database configuration presence and connectivity."""

import logging

from ..config import ENVIRONMENT, AuditConfig
from ..database import connect
from ..errors import DatabaseUnavailableError
from ..models import CheckItem, CheckReport, Finding, FindingCategory, ItemStatus, Severity
from ..scorer import Tally, build_report, failed_report
from .common import resolve

logger = logging.getLogger(__name__)


def check_database_config(config: AuditConfig) -> tuple[CheckItem, list[Finding]]:
    """The first existing candidate wins; later candidates are not looked at."""
    checked = []
    for candidate in config.database_config_candidates:
        checked.append(candidate)
        if resolve(config, candidate).is_file():
            return CheckItem(
                name="database_config",
                status=ItemStatus.PASS,
                detail={"config_path": candidate, "checked": checked},
            ), []

    target = config.database_config_candidates[0] if config.database_config_candidates else "database config"
    finding = Finding(
        category=FindingCategory.data_config_missing,
        severity=Severity.critical,
        file=target,
        message="No database configuration file found",
        evidence={"checked": checked},
    )
    return CheckItem(name="database_config", status=ItemStatus.FAIL, detail={"checked": checked}), [finding]


def check_database_connection(config: AuditConfig) -> tuple[CheckItem, list[Finding]]:
    if not config.dsn:
        return CheckItem(
            name="database_connection",
            status=ItemStatus.INFO,
            counted=False,
            detail={"configured": False},
        ), []

    try:
        conn = connect(config.dsn)
        try:
            row = conn.fetch_one("SELECT 1 AS test")
        finally:
            conn.close()
        ok = bool(row) and int(row["test"]) == 1
        error = None if ok else "Connectivity query returned an unexpected result"
    except DatabaseUnavailableError as e:
        ok, error = False, str(e)
    except Exception as e:
        ok, error = False, f"Connectivity query failed: {e}"

    if ok:
        return CheckItem(name="database_connection", status=ItemStatus.PASS, detail={"configured": True}), []

    logger.warning(f"Database connectivity check failed: {error}")
    target = config.database_config_candidates[0] if config.database_config_candidates else "database config"
    finding = Finding(
        category=FindingCategory.database_unreachable,
        severity=Severity.critical,
        file=target,
        message=f"Database is not reachable: {error}",
        evidence={"error": error},
    )
    return CheckItem(name="database_connection", status=ItemStatus.FAIL, detail={"error": error}), [finding]


def run_checks(config: AuditConfig) -> CheckReport:
    """Verify the data layer is configured and reachable."""
    if not config.root_path.is_dir():
        logger.error(f"Environment check aborted: root {config.root} is not a directory")
        return failed_report(ENVIRONMENT, f"Scan root does not exist: {config.root}")

    tally = Tally()
    for item, findings in (check_database_config(config), check_database_connection(config)):
        tally = tally.record(item, *findings)

    return build_report(ENVIRONMENT, tally, config.threshold_for(ENVIRONMENT))
