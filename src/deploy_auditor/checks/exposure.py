"""Sensitive-file exposure checks.

A sensitive file is considered protected when its containing directory
holds an access-control file (e.g. .htaccess). The rules inside that file
are not evaluated, only its presence, except for guarded directories where
the file must at least mention the blocked script extension.
"""

import logging
from fnmatch import fnmatchcase
from typing import Optional

from ..config import EXPOSURE, AuditConfig, GuardedDirectory, SensitivePattern
from ..errors import ScanError
from ..models import CheckItem, CheckReport, Finding, FindingCategory, ItemStatus, Severity
from ..scanner import FileRecord
from ..scorer import Tally, build_report, failed_report
from .common import all_files, has_access_control, resolve, unreadable

logger = logging.getLogger(__name__)


def match_pattern(name: str, patterns: list[SensitivePattern]) -> Optional[SensitivePattern]:
    """First pattern matching a bare filename, in configured order."""
    for pattern in patterns:
        if fnmatchcase(name, pattern.pattern):
            return pattern
    return None


def check_matched_file(
    record: FileRecord,
    pattern: SensitivePattern,
    config: AuditConfig,
) -> tuple[CheckItem, list[Finding]]:
    protected = has_access_control(record.path.parent, config)
    detail = {"pattern": pattern.pattern, "size": record.size, "protected": protected}
    if protected:
        return CheckItem(name=record.relative_path, status=ItemStatus.PASS, detail=detail), []

    finding = Finding(
        category=FindingCategory.sensitive_file_exposed,
        severity=pattern.severity,
        file=record.relative_path,
        message=f"{pattern.description or pattern.pattern} is served from a directory without {config.access_control_file}",
        evidence={"pattern": pattern.pattern, "access_control_file": config.access_control_file},
    )
    return CheckItem(name=record.relative_path, status=ItemStatus.FAIL, detail=detail), [finding]


def check_sensitive_file(relative: str, config: AuditConfig) -> tuple[CheckItem, list[Finding]]:
    path = resolve(config, relative)
    name = relative.strip("/")
    if not path.is_file():
        return CheckItem(name=name, status=ItemStatus.MISSING, detail={"exists": False}), []

    try:
        size = path.stat().st_size
    except OSError as e:
        return unreadable(name, e), []

    protected = has_access_control(path.parent, config)
    detail = {"exists": True, "size": size, "protected": protected}
    if protected:
        return CheckItem(name=name, status=ItemStatus.PASS, detail=detail), []

    finding = Finding(
        category=FindingCategory.access_control_gap,
        severity=Severity.medium,
        file=name,
        message=f"{name} is not protected by {config.access_control_file}",
        evidence={"directory": path.parent.relative_to(config.root_path).as_posix()},
    )
    return CheckItem(name=name, status=ItemStatus.FAIL, detail=detail), [finding]


def check_guarded_directory(guard: GuardedDirectory, config: AuditConfig) -> tuple[CheckItem, list[Finding]]:
    directory = resolve(config, guard.path)
    name = f"guard:{guard.path}"
    if not directory.is_dir():
        return CheckItem(name=name, status=ItemStatus.MISSING, detail={"exists": False}), []

    control = directory / config.access_control_file
    has_control = control.is_file()
    try:
        blocks = has_control and guard.blocked in control.read_text(encoding="utf-8", errors="ignore")
        file_count = sum(1 for p in directory.iterdir() if p.name != config.access_control_file)
    except OSError as e:
        return unreadable(name, e), []

    detail = {
        "exists": True,
        "has_access_control": has_control,
        "blocks_execution": blocks,
        "file_count": file_count,
    }
    if blocks:
        return CheckItem(name=name, status=ItemStatus.PASS, detail=detail), []

    if has_control:
        message = f"{config.access_control_file} in {guard.path} does not block .{guard.blocked} execution"
    else:
        message = f"{guard.path} has no {config.access_control_file}; uploaded scripts could be executed"
    finding = Finding(
        category=FindingCategory.access_control_gap,
        severity=Severity.high,
        file=guard.path,
        message=message,
        evidence={"blocked": guard.blocked, "has_access_control": has_control},
    )
    return CheckItem(name=name, status=ItemStatus.FAIL, detail=detail), [finding]


def run_checks(config: AuditConfig) -> CheckReport:
    """Scan for sensitive files, listed config files and guarded directories."""
    try:
        files = all_files(config)
    except ScanError as e:
        logger.error(f"Exposure scan aborted: {e}")
        return failed_report(EXPOSURE, str(e))

    listed = {relative.strip("/") for relative in config.sensitive_files}
    matches_per_pattern = {p.pattern: 0 for p in config.sensitive_patterns}

    tally = Tally()
    for record in files:
        if record.relative_path in listed:
            continue
        pattern = match_pattern(record.name, config.sensitive_patterns)
        if pattern is None:
            continue
        matches_per_pattern[pattern.pattern] += 1
        item, findings = check_matched_file(record, pattern, config)
        tally = tally.record(item, *findings)

    for relative in config.sensitive_files:
        item, findings = check_sensitive_file(relative, config)
        tally = tally.record(item, *findings)

    for guard in config.guarded_directories:
        item, findings = check_guarded_directory(guard, config)
        tally = tally.record(item, *findings)

    return build_report(
        EXPOSURE,
        tally,
        config.threshold_for(EXPOSURE),
        summary={"matches_per_pattern": matches_per_pattern},
    )
