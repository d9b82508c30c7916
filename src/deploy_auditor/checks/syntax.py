"""Syntax-balance checker (heuristic mode).

Counts paired delimiters across a whole file and flags any mismatch. This is
a text heuristic, not a parser:
- delimiters inside string literals and comments are counted, so a file
  with `"{"` in a string or `// )` in a comment is a false positive
- a file whose extra opening and closing delimiters happen to cancel out
  passes even if they are misplaced (false negative)
"""

import logging

from ..config import SYNTAX, AuditConfig
from ..errors import ScanError
from ..models import CheckItem, CheckReport, Finding, FindingCategory, ItemStatus, Severity
from ..scanner import FileRecord
from ..scorer import Tally, build_report, failed_report
from .common import source_files, unreadable

logger = logging.getLogger(__name__)


DELIMITER_PAIRS = [
    ("braces", "{", "}", Severity.high),
    ("parentheses", "(", ")", Severity.medium),
]


def count_delimiters(text: str) -> dict[str, tuple[int, int]]:
    """Return {pair_name: (opening_count, closing_count)} for the whole text."""
    return {
        name: (text.count(opening), text.count(closing))
        for name, opening, closing, _ in DELIMITER_PAIRS
    }


def check_text(relative_path: str, text: str) -> tuple[CheckItem, list[Finding]]:
    counts = count_delimiters(text)
    findings = []

    for name, opening, closing, severity in DELIMITER_PAIRS:
        opened, closed = counts[name]
        if opened != closed:
            findings.append(
                Finding(
                    category=FindingCategory.syntax_risk,
                    severity=severity,
                    file=relative_path,
                    message=(
                        f"Unbalanced {name}: {opened} '{opening}' vs {closed} '{closing}' "
                        "(heuristic, literals and comments are counted)"
                    ),
                    evidence={"pair": name, "opening": opened, "closing": closed, "heuristic": True},
                )
            )

    item = CheckItem(
        name=relative_path,
        status=ItemStatus.FAIL if findings else ItemStatus.PASS,
        detail={name: {"opening": o, "closing": c} for name, (o, c) in counts.items()},
    )
    return item, findings


def check_file(record: FileRecord) -> tuple[CheckItem, list[Finding]]:
    return check_text(record.relative_path, record.text)


def run_checks(config: AuditConfig) -> CheckReport:
    """Run the delimiter balance heuristic over every source file."""
    try:
        files = source_files(config)
    except ScanError as e:
        logger.error(f"Syntax balance scan aborted: {e}")
        return failed_report(SYNTAX, str(e))

    tally = Tally()
    for record in files:
        try:
            item, findings = check_file(record)
        except OSError as e:
            tally = tally.record(unreadable(record.relative_path, e))
            continue
        tally = tally.record(item, *findings)

    return build_report(
        SYNTAX,
        tally,
        config.threshold_for(SYNTAX),
        summary={"files_analyzed": len(tally.items), "files_with_issues": tally.total - tally.passed},
    )
