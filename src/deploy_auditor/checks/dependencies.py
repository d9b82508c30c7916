"""Dependency-path checker.

Every include/require reference is run through the resolution simulator.
A reference that resolves in no context is `dependency_unresolvable`; one
that resolves but carries a risk marker (parent-directory escape, missing
file anchor) is `dependency_path_risk`.
"""

import logging
from pathlib import Path

from ..config import DEPENDENCIES, AuditConfig
from ..errors import ScanError
from ..models import (
    CheckItem,
    CheckReport,
    DependencyReference,
    Finding,
    FindingCategory,
    ItemStatus,
    ResolutionAttempt,
    Severity,
)
from ..resolver import extract_references, simulate_resolution
from ..scanner import FileRecord
from ..scorer import Tally, build_report, failed_report
from .common import source_files, unreadable

logger = logging.getLogger(__name__)


def _evidence(reference: DependencyReference, attempt: ResolutionAttempt) -> dict:
    winner = attempt.winner
    return {
        "reference": reference.path,
        "statement": reference.statement,
        "kind": reference.kind,
        "anchored": reference.anchored,
        "attempts": [c.model_dump() for c in attempt.candidates],
        "resolved_context": winner.context if winner else None,
        "parent_directory_escape": attempt.parent_directory_escape,
        "missing_anchor": attempt.missing_anchor,
    }


def evaluate_reference(
    relative_path: str,
    reference: DependencyReference,
    attempt: ResolutionAttempt,
) -> tuple[CheckItem, list[Finding]]:
    evidence = _evidence(reference, attempt)
    findings = []

    if not attempt.resolved:
        findings.append(
            Finding(
                category=FindingCategory.dependency_unresolvable,
                severity=Severity.high,
                file=relative_path,
                line=reference.line,
                message=f"'{reference.path}' does not resolve in any of {len(attempt.candidates)} contexts",
                evidence=evidence,
            )
        )
    elif attempt.parent_directory_escape or attempt.missing_anchor:
        markers = [
            name
            for name in ("parent_directory_escape", "missing_anchor")
            if evidence[name]
        ]
        findings.append(
            Finding(
                category=FindingCategory.dependency_path_risk,
                severity=Severity.medium if attempt.parent_directory_escape else Severity.low,
                file=relative_path,
                line=reference.line,
                message=(
                    f"'{reference.path}' resolves via {evidence['resolved_context']} "
                    f"but is fragile: {', '.join(markers)}"
                ),
                evidence=evidence,
            )
        )

    item = CheckItem(
        name=f"{relative_path}:{reference.line}",
        status=ItemStatus.FAIL if findings else ItemStatus.PASS,
        detail={"reference": reference.path, "resolved_context": evidence["resolved_context"]},
    )
    return item, findings


def check_file(record: FileRecord, project_root: Path, pattern: str) -> Tally:
    tally = Tally()
    for reference in extract_references(record.text, pattern):
        attempt = simulate_resolution(
            reference.path,
            record.path,
            project_root,
            anchored=reference.anchored,
        )
        item, findings = evaluate_reference(record.relative_path, reference, attempt)
        tally = tally.record(item, *findings)
    return tally


def run_checks(config: AuditConfig) -> CheckReport:
    """Simulate resolution of every dependency reference under the root."""
    try:
        files = source_files(config)
    except ScanError as e:
        logger.error(f"Dependency path scan aborted: {e}")
        return failed_report(DEPENDENCIES, str(e))

    tally = Tally()
    files_analyzed = 0
    for record in files:
        files_analyzed += 1
        try:
            tally = tally.merge(check_file(record, config.root_path, config.reference_pattern))
        except OSError as e:
            tally = tally.record(unreadable(record.relative_path, e))

    unresolvable = sum(
        1 for f in tally.findings if f.category == FindingCategory.dependency_unresolvable
    )
    return build_report(
        DEPENDENCIES,
        tally,
        config.threshold_for(DEPENDENCIES),
        summary={
            "files_analyzed": files_analyzed,
            "references": tally.total,
            "unresolvable": unresolvable,
            "at_risk": len(tally.findings) - unresolvable,
        },
    )
