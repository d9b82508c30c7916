"""Use-before-definition checker for one named binding.

Scans each file top to bottom with a single "defined" flag. The first line
that reads the binding while the flag is still unset is reported; later
uses in the same file are not. Scope is ignored: an assignment anywhere
earlier in the file counts, even inside another function.
"""

import logging
import re

from ..config import VARIABLES, AuditConfig
from ..errors import ScanError
from ..models import CheckItem, CheckReport, Finding, FindingCategory, ItemStatus, Severity
from ..scanner import FileRecord
from ..scorer import Tally, build_report, failed_report
from .common import source_files, unreadable

logger = logging.getLogger(__name__)


def binding_patterns(binding: str) -> tuple[re.Pattern, re.Pattern]:
    """Regexes for (assignment, any mention) of `binding`.

    `$method = ...` is an assignment; `$method == ...` and `$methods` are not.
    """
    name = re.escape(binding)
    boundary = r"(?![A-Za-z0-9_])"
    assign = re.compile(name + boundary + r"\s*(?:\.|\?\?|\+|-)?=(?![=>])")
    mention = re.compile(name + boundary)
    return assign, mention


def find_first_use_before_definition(text: str, binding: str) -> tuple[int, str] | None:
    """Return (line_number, line) of the first premature read, or None."""
    assign, mention = binding_patterns(binding)
    defined = False

    for line_num, line in enumerate(text.split("\n"), 1):
        assigned_here = assign.search(line)
        if assigned_here:
            # Reads to the right of `=` on the assigning line still count
            rhs = line[assigned_here.end():]
            if not defined and mention.search(rhs):
                return line_num, line.strip()
            defined = True
            continue
        if mention.search(line) and not defined:
            return line_num, line.strip()
    return None


def check_file(record: FileRecord, binding: str) -> tuple[CheckItem, list[Finding]] | None:
    """Only files that mention the binding produce an item."""
    _, mention = binding_patterns(binding)
    if not mention.search(record.text):
        return None

    hit = find_first_use_before_definition(record.text, binding)
    if hit is None:
        return CheckItem(name=record.relative_path, status=ItemStatus.PASS), []

    line_num, context = hit
    finding = Finding(
        category=FindingCategory.use_before_definition,
        severity=Severity.high,
        file=record.relative_path,
        line=line_num,
        message=f"{binding} is read before it is assigned",
        evidence={"binding": binding, "context": context},
    )
    item = CheckItem(
        name=record.relative_path,
        status=ItemStatus.FAIL,
        detail={"line": line_num},
    )
    return item, [finding]


def run_checks(config: AuditConfig) -> CheckReport:
    """Track the configured binding through every source file."""
    binding = config.tracked_binding
    try:
        files = source_files(config)
    except ScanError as e:
        logger.error(f"Use-before-definition scan aborted: {e}")
        return failed_report(VARIABLES, str(e))

    tally = Tally()
    for record in files:
        try:
            result = check_file(record, binding)
        except OSError as e:
            tally = tally.record(unreadable(record.relative_path, e))
            continue
        if result is None:
            continue
        item, findings = result
        tally = tally.record(item, *findings)

    return build_report(
        VARIABLES,
        tally,
        config.threshold_for(VARIABLES),
        summary={"binding": binding, "files_using_binding": tally.total, "errors": len(tally.findings)},
    )
