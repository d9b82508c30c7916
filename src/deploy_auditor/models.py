"""Pydantic models for the deployment auditor."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Severity level for findings and remediation priority tiers."""

    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


# Lower rank sorts first
SEVERITY_RANK = {
    Severity.critical: 0,
    Severity.high: 1,
    Severity.medium: 2,
    Severity.low: 3,
}


class FindingCategory(str, Enum):
    """Kind of issue a finding describes."""

    syntax_risk = "syntax_risk"
    dependency_unresolvable = "dependency_unresolvable"
    dependency_path_risk = "dependency_path_risk"
    use_before_definition = "use_before_definition"
    permission_mismatch = "permission_mismatch"
    route_target_missing = "route_target_missing"
    route_entry_missing = "route_entry_missing"
    unchecked_dependency = "unchecked_dependency"
    rewrite_config_gap = "rewrite_config_gap"
    access_control_gap = "access_control_gap"
    sensitive_file_exposed = "sensitive_file_exposed"
    data_config_missing = "data_config_missing"
    database_unreachable = "database_unreachable"
    schema_missing_table = "schema_missing_table"
    schema_missing_column = "schema_missing_column"
    empty_table = "empty_table"
    dangling_reference = "dangling_reference"


class ItemStatus(str, Enum):
    """Status of a single sub-check inside a report."""

    PASS = "PASS"
    FAIL = "FAIL"
    MISSING = "MISSING"
    ERROR = "ERROR"
    INFO = "INFO"


FAILED_STATUS = "FAILED"


class Finding(BaseModel):
    """A single detected issue."""

    model_config = ConfigDict(frozen=True)

    category: FindingCategory = Field(description="Kind of issue")
    severity: Severity = Field(description="Severity level: critical, high, medium, low")
    file: str = Field(description="Subject file or directory, relative to the audited root")
    line: Optional[int] = Field(default=None, description="Line number in the subject file")
    message: str = Field(description="Human-readable description")
    evidence: dict[str, Any] = Field(
        default_factory=dict,
        description="Machine-readable evidence (e.g., the unresolved reference string)",
    )


class CheckItem(BaseModel):
    """Outcome of one sub-check (one file, one directory, one query...)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Identifier of the sub-check")
    status: ItemStatus
    counted: bool = Field(default=True, description="Whether the item feeds the health score")
    detail: dict[str, Any] = Field(default_factory=dict)


class CheckReport(BaseModel):
    """Result of one checker invocation, persisted as `<category>-results.json`."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(description="Checker category name")
    status: str = Field(description="Status label from the threshold table, or FAILED")
    score: float = Field(ge=0, le=100, description="Health score 0-100, one decimal")
    passed: int = Field(ge=0)
    total: int = Field(ge=0)
    items: list[CheckItem] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)
    summary: dict[str, Any] = Field(default_factory=dict)


class ResolutionCandidate(BaseModel):
    """One resolution context considered for a dependency reference."""

    model_config = ConfigDict(frozen=True)

    context: str = Field(description="relative_to_file, relative_to_root or as_given")
    path: str = Field(description="Candidate path")
    exists: bool


class ResolutionAttempt(BaseModel):
    """Ordered candidates tried for one reference; the first existing one wins."""

    model_config = ConfigDict(frozen=True)

    reference: str
    declaring_file: str
    candidates: list[ResolutionCandidate]
    parent_directory_escape: bool = Field(
        default=False, description="Reference starts with an upward traversal segment"
    )
    missing_anchor: bool = Field(
        default=False, description="Reference is not anchored to the declaring file"
    )

    @property
    def winner(self) -> Optional[ResolutionCandidate]:
        for candidate in self.candidates:
            if candidate.exists:
                return candidate
        return None

    @property
    def resolved(self) -> bool:
        return self.winner is not None


class DependencyReference(BaseModel):
    """A dependency statement found in a source file."""

    model_config = ConfigDict(frozen=True)

    line: int
    statement: str
    path: str
    kind: str = Field(description="Statement keyword, e.g. require_once")
    anchored: bool = Field(default=False, description="Path is prefixed by a file-location anchor")


class PayloadKind(str, Enum):
    statement = "statement"
    template_file = "template_file"


class RemediationItem(BaseModel):
    """A suggested fix traced back to the finding that caused it."""

    model_config = ConfigDict(frozen=True)

    finding: Finding = Field(description="Originating finding")
    source_category: str = Field(description="Report category the finding came from")
    priority: Severity = Field(description="Priority tier")
    action: str = Field(description="Human-readable suggested action")
    fix_payload: Optional[str] = Field(default=None, description="Generated replacement or file content")
    payload_kind: Optional[PayloadKind] = Field(default=None)
    target: Optional[str] = Field(default=None, description="File the payload applies to")


class RemediationPlan(BaseModel):
    """Priority-ordered fix plan, persisted as `solution-recommendations.json`."""

    sources_loaded: list[str] = Field(default_factory=list)
    sources_missing: list[str] = Field(default_factory=list)
    counts: dict[str, int] = Field(default_factory=dict, description="Item count per priority tier")
    items: list[RemediationItem] = Field(default_factory=list)
