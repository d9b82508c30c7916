"""Scoring and report aggregation shared by every checker."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .config import ThresholdTable
from .models import FAILED_STATUS, CheckItem, CheckReport, Finding, ItemStatus


def calculate_score(passed: int, total: int) -> float:
    """Health score: passed/total*100 rounded to one decimal, 100 when total is 0."""
    if total <= 0:
        return 100.0
    passed = max(0, min(passed, total))
    return round(passed / total * 100, 1)


def classify(score: float, table: ThresholdTable) -> str:
    """Map a score to the first tier whose minimum it reaches."""
    for tier in sorted(table.tiers, key=lambda t: t.minimum, reverse=True):
        if score >= tier.minimum:
            return tier.label
    return table.floor_label


@dataclass(frozen=True)
class Tally:
    """Immutable accumulator threaded through a checker run.

    Each `record` call returns a new Tally, so a checker folds its sub-check
    results instead of mutating shared state.
    """

    items: tuple[CheckItem, ...] = ()
    findings: tuple[Finding, ...] = ()

    def record(self, item: CheckItem, *findings: Finding) -> "Tally":
        return Tally(items=self.items + (item,), findings=self.findings + tuple(findings))

    def merge(self, other: "Tally") -> "Tally":
        return Tally(items=self.items + other.items, findings=self.findings + other.findings)

    @property
    def counted(self) -> list[CheckItem]:
        return [item for item in self.items if item.counted]

    @property
    def passed(self) -> int:
        return sum(1 for item in self.counted if item.status == ItemStatus.PASS)

    @property
    def total(self) -> int:
        return len(self.counted)


def build_report(
    category: str,
    tally: Tally,
    thresholds: ThresholdTable,
    summary: Optional[dict[str, Any]] = None,
) -> CheckReport:
    """Reduce a tally to a CheckReport with score and status label."""
    score = calculate_score(tally.passed, tally.total)
    return CheckReport(
        category=category,
        status=classify(score, thresholds),
        score=score,
        passed=tally.passed,
        total=tally.total,
        items=list(tally.items),
        findings=list(tally.findings),
        summary=summary or {},
    )


def failed_report(category: str, error: str) -> CheckReport:
    """Category-wide abort: FAILED status, no items, no findings."""
    return CheckReport(
        category=category,
        status=FAILED_STATUS,
        score=0.0,
        passed=0,
        total=0,
        summary={"error": error},
    )


def severity_counts(findings: list[Finding]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for finding in findings:
        key = finding.severity.value
        counts[key] = counts.get(key, 0) + 1
    return counts
