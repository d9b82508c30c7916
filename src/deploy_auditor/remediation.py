"""Remediation synthesizer: turns persisted check reports into a fix plan.

Each fixable finding category maps to a fixed priority tier and a
deterministic fix builder. Findings without a builder (the heuristic
syntax_risk) do not produce items. The plan is stable-sorted by tier only,
so within a tier items keep discovery order: category scan order first,
then the order findings were recorded in each report.
"""

import logging
import posixpath
from pathlib import Path
from typing import Callable, Optional

from . import templates
from .artifacts import read_report, write_plan
from .config import CATEGORY_ORDER, AuditConfig
from .models import (
    SEVERITY_RANK,
    CheckReport,
    Finding,
    FindingCategory,
    PayloadKind,
    RemediationItem,
    RemediationPlan,
    Severity,
)

logger = logging.getLogger(__name__)


PRIORITY_TIERS: dict[FindingCategory, Severity] = {
    # Data layer misconfiguration
    FindingCategory.data_config_missing: Severity.critical,
    FindingCategory.database_unreachable: Severity.critical,
    FindingCategory.schema_missing_table: Severity.critical,
    FindingCategory.schema_missing_column: Severity.critical,
    FindingCategory.dangling_reference: Severity.critical,
    # Broken code paths
    FindingCategory.dependency_unresolvable: Severity.high,
    FindingCategory.use_before_definition: Severity.high,
    FindingCategory.route_target_missing: Severity.high,
    FindingCategory.route_entry_missing: Severity.high,
    FindingCategory.rewrite_config_gap: Severity.high,
    FindingCategory.unchecked_dependency: Severity.high,
    FindingCategory.dependency_path_risk: Severity.high,
    # Access control gaps
    FindingCategory.access_control_gap: Severity.medium,
    FindingCategory.sensitive_file_exposed: Severity.medium,
    FindingCategory.permission_mismatch: Severity.medium,
    # Hygiene
    FindingCategory.empty_table: Severity.low,
}


class Fix:
    """Builder output before it is attached to a finding."""

    def __init__(
        self,
        action: str,
        payload: Optional[str] = None,
        kind: Optional[PayloadKind] = None,
        target: Optional[str] = None,
    ):
        self.action = action
        self.payload = payload
        self.kind = kind
        self.target = target


def anchored_path(reference: str, config: AuditConfig) -> str:
    """Anchored replacement expression for a dependency reference.

    References containing a configured segment (`config/`, `classes/`) are
    pointed at that directory next to the declaring file's parent; anything
    else is anchored as written.
    """
    name = posixpath.basename(reference)
    for rule in config.path_rewrite_rules:
        if rule.segment in reference:
            return f"__DIR__ . '/{rule.replacement_dir}/{name}'"
    return f"__DIR__ . '/{reference.lstrip('/')}'"


def _dependency_fix(finding: Finding, config: AuditConfig) -> Fix:
    reference = finding.evidence.get("reference", "")
    if finding.evidence.get("anchored"):
        return Fix(
            action=f"'{reference}' is already anchored but the file does not exist; restore it or correct the path",
            target=finding.file,
        )
    kind = finding.evidence.get("kind") or "require_once"
    statement = f"{kind} {anchored_path(reference, config)};"
    return Fix(
        action=f"Replace the reference to '{reference}' with a path anchored to the declaring file",
        payload=statement,
        kind=PayloadKind.statement,
        target=finding.file,
    )


def _binding_fix(finding: Finding, config: AuditConfig) -> Fix:
    binding = finding.evidence.get("binding", config.tracked_binding)
    payload = config.binding_initializer if binding == config.tracked_binding else None
    return Fix(
        action=f"Assign {binding} before line {finding.line}",
        payload=payload,
        kind=PayloadKind.statement if payload else None,
        target=finding.file,
    )


def _permission_fix(finding: Finding, config: AuditConfig) -> Fix:
    evidence = finding.evidence
    mode = evidence.get("required_mode", "755")
    if not evidence.get("exists", True):
        return Fix(
            action=f"Create directory {finding.file}",
            payload=f"mkdir -p {finding.file} && chmod {mode} {finding.file}",
            kind=PayloadKind.statement,
            target=finding.file,
        )
    if evidence.get("writable") != evidence.get("should_be_writable"):
        if evidence.get("should_be_writable"):
            action = f"Make {finding.file} writable by the web server user"
        else:
            action = f"Remove write access to {finding.file} for the web server user"
    else:
        action = f"Set mode {mode} on {finding.file}"
    return Fix(
        action=action,
        payload=f"chmod {mode} {finding.file}",
        kind=PayloadKind.statement,
        target=finding.file,
    )


def _access_control_target(directory: str, config: AuditConfig) -> str:
    return posixpath.join(directory, config.access_control_file) if directory else config.access_control_file


def _access_control_fix(finding: Finding, config: AuditConfig) -> Fix:
    if "blocked" in finding.evidence:
        # Guarded upload directory: the finding subject is the directory itself
        return Fix(
            action=f"Block script execution in {finding.file}",
            payload=templates.UPLOAD_GUARD,
            kind=PayloadKind.template_file,
            target=_access_control_target(finding.file, config),
        )
    directory = finding.evidence.get("directory", posixpath.dirname(finding.file))
    if directory == ".":
        directory = ""
    return Fix(
        action=f"Add {config.access_control_file} protection to {directory or 'the root directory'}",
        payload=templates.ACCESS_CONTROL_DENY,
        kind=PayloadKind.template_file,
        target=_access_control_target(directory, config),
    )


def _exposure_fix(finding: Finding, config: AuditConfig) -> Fix:
    directory = posixpath.dirname(finding.file)
    return Fix(
        action=f"Move {finding.file} out of the served tree or deny access to it",
        payload=templates.SENSITIVE_FILE_RULES,
        kind=PayloadKind.template_file,
        target=_access_control_target(directory, config),
    )


def _route_target_fix(finding: Finding, config: AuditConfig) -> Fix:
    request = finding.evidence.get("request", "")
    is_entry = posixpath.basename(finding.file) == config.entry_file
    return Fix(
        action=f"Create {finding.file} or point the rewrite rule for {request} at an existing file",
        payload=templates.ENTRY_FILE if is_entry else None,
        kind=PayloadKind.template_file if is_entry else None,
        target=finding.file,
    )


def _route_entry_fix(finding: Finding, config: AuditConfig) -> Fix:
    target = finding.file
    if posixpath.basename(target) != config.entry_file:
        target = posixpath.join(target, config.entry_file)
    return Fix(
        action=f"Add an entry point {target}",
        payload=templates.ENTRY_FILE,
        kind=PayloadKind.template_file,
        target=target,
    )


def _target_rule_fix(finding: Finding, config: AuditConfig) -> Fix:
    fix = finding.evidence.get("fix")
    return Fix(
        action=f"Resolve {finding.evidence.get('rule', 'target rule')} in {finding.file}",
        payload=fix,
        kind=PayloadKind.statement if fix else None,
        target=finding.file,
    )


def _rewrite_fix(finding: Finding, config: AuditConfig) -> Fix:
    missing = finding.evidence.get("missing_directives")
    if missing:
        action = f"Add to {finding.file}: {', '.join(missing)}"
    else:
        action = f"Create rewrite configuration {finding.file}"
    return Fix(action=action, payload=templates.BACKEND_REWRITE, kind=PayloadKind.template_file, target=finding.file)


def _data_config_fix(finding: Finding, config: AuditConfig) -> Fix:
    if finding.category == FindingCategory.database_unreachable:
        action = "Fix database credentials and connection handling"
    else:
        action = "Create the database configuration file"
    return Fix(
        action=action,
        payload=templates.DATABASE_CONFIG,
        kind=PayloadKind.template_file,
        target=finding.file,
    )


def _schema_fix(finding: Finding, config: AuditConfig) -> Fix:
    if finding.category == FindingCategory.schema_missing_column:
        columns = ", ".join(finding.evidence.get("missing_columns", []))
        return Fix(action=f"Add missing columns to '{finding.file}': {columns}", target=finding.file)
    return Fix(action=f"Create table '{finding.file}' by re-running the schema migration", target=finding.file)


def _dangling_fix(finding: Finding, config: AuditConfig) -> Fix:
    return Fix(
        action=f"Repair or remove {finding.evidence.get('count', 0)} dangling row(s) found by {finding.file}",
        payload=finding.evidence.get("query"),
        kind=PayloadKind.statement if finding.evidence.get("query") else None,
    )


def _empty_table_fix(finding: Finding, config: AuditConfig) -> Fix:
    return Fix(action=f"Seed '{finding.file}' with the rows the application expects", target=finding.file)


FIX_BUILDERS: dict[FindingCategory, Callable[[Finding, AuditConfig], Fix]] = {
    FindingCategory.dependency_unresolvable: _dependency_fix,
    FindingCategory.dependency_path_risk: _dependency_fix,
    FindingCategory.use_before_definition: _binding_fix,
    FindingCategory.permission_mismatch: _permission_fix,
    FindingCategory.access_control_gap: _access_control_fix,
    FindingCategory.sensitive_file_exposed: _exposure_fix,
    FindingCategory.route_target_missing: _route_target_fix,
    FindingCategory.route_entry_missing: _route_entry_fix,
    FindingCategory.rewrite_config_gap: _rewrite_fix,
    FindingCategory.unchecked_dependency: _target_rule_fix,
    FindingCategory.data_config_missing: _data_config_fix,
    FindingCategory.database_unreachable: _data_config_fix,
    FindingCategory.schema_missing_table: _schema_fix,
    FindingCategory.schema_missing_column: _schema_fix,
    FindingCategory.dangling_reference: _dangling_fix,
    FindingCategory.empty_table: _empty_table_fix,
}


def load_reports(
    output_dir: str | Path,
    categories: Optional[list[str]] = None,
) -> tuple[list[CheckReport], list[str]]:
    """Read available report artifacts in category scan order.

    Returns:
        Tuple of (reports found, categories whose artifact is missing).
    """
    reports = []
    missing = []
    for category in categories or CATEGORY_ORDER:
        report = read_report(category, output_dir)
        if report is None:
            logger.warning(f"No report artifact for {category}, skipping")
            missing.append(category)
        else:
            reports.append(report)
    return reports, missing


def remediate(finding: Finding, source_category: str, config: AuditConfig) -> Optional[RemediationItem]:
    """RemediationItem for one finding, or None if its category is not fixable."""
    builder = FIX_BUILDERS.get(finding.category)
    if builder is None:
        return None
    fix = builder(finding, config)
    return RemediationItem(
        finding=finding,
        source_category=source_category,
        priority=PRIORITY_TIERS[finding.category],
        action=fix.action,
        fix_payload=fix.payload,
        payload_kind=fix.kind,
        target=fix.target,
    )


def prioritize(items: list[RemediationItem]) -> list[RemediationItem]:
    """Stable sort by priority tier only."""
    return sorted(items, key=lambda item: SEVERITY_RANK[item.priority])


def synthesize(
    reports: list[CheckReport],
    config: AuditConfig,
    missing: Optional[list[str]] = None,
) -> RemediationPlan:
    """Build the ordered remediation plan from reports given in scan order."""
    items = []
    for report in reports:
        for finding in report.findings:
            item = remediate(finding, report.category, config)
            if item is not None:
                items.append(item)

    ordered = prioritize(items)
    counts = {tier.value: 0 for tier in Severity}
    for item in ordered:
        counts[item.priority.value] += 1

    return RemediationPlan(
        sources_loaded=[report.category for report in reports],
        sources_missing=list(missing or []),
        counts=counts,
        items=ordered,
    )


def _render_item(item: RemediationItem) -> list[str]:
    finding = item.finding
    lines = [f"File: {item.target or finding.file}"]
    lines.append(f"Issue: {finding.category.value} - {finding.message}")
    if finding.line is not None:
        lines.append(f"Line: {finding.line}")
    lines.append(f"Fix: {item.action}")
    if item.fix_payload:
        lines.extend(["```", item.fix_payload.rstrip("\n"), "```"])
    lines.append("")
    return lines


def render_plan(plan: RemediationPlan) -> str:
    """Human-readable plan: critical and high items in full, the rest counted."""
    lines = ["SOLUTION RECOMMENDATIONS", "=" * 40, ""]
    lines.append(f"Reports loaded: {', '.join(plan.sources_loaded) or 'none'}")
    if plan.sources_missing:
        lines.append(f"Reports missing: {', '.join(plan.sources_missing)}")
    lines.append("")

    sections = [
        (Severity.critical, "CRITICAL FIXES (apply immediately):"),
        (Severity.high, "HIGH PRIORITY FIXES:"),
    ]
    for tier, heading in sections:
        tier_items = [item for item in plan.items if item.priority == tier]
        if not tier_items:
            continue
        lines.extend([heading, ""])
        for item in tier_items:
            lines.extend(_render_item(item))

    for tier in (Severity.medium, Severity.low):
        count = plan.counts.get(tier.value, 0)
        if count:
            lines.append(f"{tier.value.upper()}: {count} more fix(es) in the JSON plan")

    lines.append(f"Total fixes: {len(plan.items)}")
    return "\n".join(lines)


def generate_plan(config: AuditConfig) -> RemediationPlan:
    """Load every available report from the output dir and write the plan next to them."""
    reports, missing = load_reports(config.output_path)
    plan = synthesize(reports, config, missing)
    write_plan(plan, config.output_path)
    return plan
