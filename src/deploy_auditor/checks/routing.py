"""Route and rewrite checks.

Request paths are never fetched; each configured route is checked against
the file that the rewrite rules should hand it to. Existing source targets
are also screened with the configured target rules (e.g. a Database object
that never asks for its connection), the usual causes of a bare 500.
"""

import logging
import re

from ..config import ROUTING, AuditConfig, RewriteConfigExpectation, RouteExpectation, TargetRule
from ..models import CheckItem, CheckReport, Finding, FindingCategory, ItemStatus, Severity
from ..scorer import Tally, build_report, failed_report
from .common import resolve, unreadable
from .syntax import count_delimiters

logger = logging.getLogger(__name__)


def check_target_rules(
    route: RouteExpectation,
    text: str,
    rules: list[TargetRule],
) -> list[Finding]:
    """Findings for every rule the target source violates."""
    findings = []
    for rule in rules:
        if not re.search(rule.present, text) or re.search(rule.absent, text):
            continue
        findings.append(
            Finding(
                category=FindingCategory.unchecked_dependency,
                severity=rule.severity,
                file=route.target,
                message=f"Target of {route.request} {rule.message or 'violates ' + rule.name}",
                evidence={"request": route.request, "rule": rule.name, "fix": rule.fix},
            )
        )
    return findings


def check_route(route: RouteExpectation, config: AuditConfig) -> tuple[CheckItem, list[Finding]]:
    target = resolve(config, route.target)
    name = f"route:{route.request}"

    if not target.is_file():
        finding = Finding(
            category=FindingCategory.route_target_missing,
            severity=Severity.high,
            file=route.target,
            message=f"{route.request} should be served by {route.target}, which does not exist",
            evidence={"request": route.request, "expected_target": route.target},
        )
        return CheckItem(name=name, status=ItemStatus.MISSING, detail={"target": route.target}), [finding]

    detail = {"target": route.target, "target_exists": True}
    if target.suffix.lower() not in config.source_extensions:
        return CheckItem(name=name, status=ItemStatus.PASS, detail=detail), []

    try:
        text = target.read_text(encoding="utf-8", errors="ignore")
    except OSError as e:
        return unreadable(name, e), []

    findings = []
    opened, closed = count_delimiters(text)["braces"]
    detail["syntax_valid"] = opened == closed
    if opened != closed:
        # The target exists but would most likely fail at runtime
        findings.append(
            Finding(
                category=FindingCategory.syntax_risk,
                severity=Severity.high,
                file=route.target,
                message=f"Target of {route.request} has unbalanced braces ({opened} vs {closed})",
                evidence={"request": route.request, "opening": opened, "closing": closed, "heuristic": True},
            )
        )

    rule_findings = check_target_rules(route, text, config.target_rules)
    detail["rules_violated"] = [f.evidence["rule"] for f in rule_findings]
    findings.extend(rule_findings)

    status = ItemStatus.FAIL if findings else ItemStatus.PASS
    return CheckItem(name=name, status=status, detail=detail), findings


def check_entry_directory(relative: str, config: AuditConfig) -> tuple[CheckItem, list[Finding]]:
    directory = resolve(config, relative)
    name = f"entry:{relative}"
    entry = f"{relative.strip('/')}/{config.entry_file}"

    if not directory.is_dir():
        finding = Finding(
            category=FindingCategory.route_entry_missing,
            severity=Severity.high,
            file=relative,
            message=f"Route entry directory {relative} does not exist",
            evidence={"directory_exists": False, "entry_file": config.entry_file},
        )
        return CheckItem(name=name, status=ItemStatus.MISSING), [finding]

    if not (directory / config.entry_file).is_file():
        finding = Finding(
            category=FindingCategory.route_entry_missing,
            severity=Severity.high,
            file=entry,
            message=f"Directory {relative} exists but has no {config.entry_file}",
            evidence={"directory_exists": True, "entry_file": config.entry_file},
        )
        return CheckItem(name=name, status=ItemStatus.FAIL, detail={"has_entry": False}), [finding]

    return CheckItem(name=name, status=ItemStatus.PASS, detail={"has_entry": True}), []


def check_rewrite_config(
    expectation: RewriteConfigExpectation,
    config: AuditConfig,
) -> tuple[CheckItem, list[Finding]]:
    path = resolve(config, expectation.path)
    name = f"rewrite:{expectation.path}"

    if not path.is_file():
        finding = Finding(
            category=FindingCategory.rewrite_config_gap,
            severity=Severity.high,
            file=expectation.path,
            message=f"Rewrite configuration {expectation.path} is missing",
            evidence={"exists": False, "required": expectation.required},
        )
        return CheckItem(name=name, status=ItemStatus.MISSING), [finding]

    try:
        content = path.read_text(encoding="utf-8", errors="ignore")
        size = path.stat().st_size
    except OSError as e:
        return unreadable(name, e), []

    missing = [directive for directive in expectation.required if directive not in content]
    detail = {
        "exists": True,
        "size": size,
        "lines": len(content.split("\n")),
        "missing_directives": missing,
    }
    if missing:
        finding = Finding(
            category=FindingCategory.rewrite_config_gap,
            severity=Severity.medium,
            file=expectation.path,
            message=f"{expectation.path} lacks: {', '.join(missing)}",
            evidence={"exists": True, "missing_directives": missing},
        )
        return CheckItem(name=name, status=ItemStatus.FAIL, detail=detail), [finding]

    return CheckItem(name=name, status=ItemStatus.PASS, detail=detail), []


def run_checks(config: AuditConfig) -> CheckReport:
    """Check route targets, entry directories and rewrite configuration files."""
    if not config.root_path.is_dir():
        logger.error(f"Routing check aborted: root {config.root} is not a directory")
        return failed_report(ROUTING, f"Scan root does not exist: {config.root}")

    results = [check_route(route, config) for route in config.routes]
    results += [check_entry_directory(relative, config) for relative in config.entry_directories]
    results += [check_rewrite_config(expectation, config) for expectation in config.rewrite_configs]

    tally = Tally()
    for item, findings in results:
        tally = tally.record(item, *findings)

    return build_report(
        ROUTING,
        tally,
        config.threshold_for(ROUTING),
        summary={
            "routes": len(config.routes),
            "entry_directories": len(config.entry_directories),
            "rewrite_configs": len(config.rewrite_configs),
        },
    )
