"""Audit configuration: target tree layout, expectation tables, thresholds."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError
from .models import Severity


# Category names double as artifact prefixes (`<category>-results.json`)
SYNTAX = "syntax-balance"
DEPENDENCIES = "dependency-paths"
VARIABLES = "use-before-definition"
PERMISSIONS = "permissions"
ROUTING = "routing"
EXPOSURE = "exposure"
ENVIRONMENT = "environment"
DATABASE = "database-integrity"

# Scan order; the synthesizer preserves it when breaking priority ties
CATEGORY_ORDER = [
    ENVIRONMENT,
    SYNTAX,
    DEPENDENCIES,
    VARIABLES,
    PERMISSIONS,
    ROUTING,
    EXPOSURE,
    DATABASE,
]

PLAN_FILENAME = "solution-recommendations.json"

# include/require statements, optionally anchored with __DIR__ or dirname(__FILE__)
DEFAULT_REFERENCE_PATTERN = (
    r"(?P<kind>(?:include|require)(?:_once)?)\s*\(?\s*"
    r"(?P<anchor>(?:__DIR__|dirname\(\s*__FILE__\s*\))\s*\.\s*)?"
    r"['\"](?P<path>[^'\"]+)['\"]"
)


class PermissionExpectation(BaseModel):
    """Expected mode bits and writability of one directory."""

    path: str = Field(description="Directory, relative to the audited root")
    mode: str = Field(default="755", description="Expected octal permission bits")
    writable: bool = Field(description="True for operational dirs, False for write-restricted ones")


class RouteExpectation(BaseModel):
    """External request path and the internal file that must serve it."""

    request: str
    target: str


class RewriteConfigExpectation(BaseModel):
    """Rewrite configuration file and the directives it must contain."""

    path: str
    required: list[str] = Field(default_factory=list)


class SensitivePattern(BaseModel):
    """Filename glob for files that must never be served directly."""

    pattern: str
    description: str = ""
    severity: Severity = Severity.medium


class TargetRule(BaseModel):
    """Text rule applied to every existing route target.

    Violated when `present` matches the target source and `absent` does not.
    """

    name: str
    present: str = Field(description="Regex whose match makes the rule apply")
    absent: str = Field(description="Regex that must also match for the target to pass")
    message: str = ""
    severity: Severity = Severity.high
    fix: Optional[str] = Field(default=None, description="Statement suggested by the remediation plan")


class GuardedDirectory(BaseModel):
    """Directory whose access-control file must block a script extension."""

    path: str
    blocked: str = Field(default="php", description="Token the access-control file must mention")


class TableExpectation(BaseModel):
    description: str = ""
    columns: list[str] = Field(default_factory=list, description="Required column names")


class CountQuery(BaseModel):
    """Row-count sanity query; an empty result is a finding when `expect_rows` is set."""

    table: str
    query: str
    expect_rows: bool = True


class ConsistencyQuery(BaseModel):
    """Outer-join query returning the number of dangling references as `count`."""

    name: str
    query: str
    description: str = ""


class RelationshipQuery(BaseModel):
    """Cardinality query, reported but never scored."""

    name: str
    query: str
    description: str = ""


class ThresholdTier(BaseModel):
    minimum: float = Field(ge=0, le=100)
    label: str


class ThresholdTable(BaseModel):
    """Score cutoffs, highest first; scores below every tier get `floor_label`."""

    tiers: list[ThresholdTier] = Field(default_factory=list)
    floor_label: str = "CRITICAL"


class PathRewriteRule(BaseModel):
    """Substring rule mapping a dependency reference to an anchored rewrite."""

    segment: str = Field(description="Substring looked for in the reference")
    replacement_dir: str = Field(description="Directory relative to the declaring file's directory")


TWO_TIER = ThresholdTable(
    tiers=[
        ThresholdTier(minimum=90, label="EXCELLENT"),
        ThresholdTier(minimum=70, label="GOOD"),
    ],
    floor_label="CRITICAL",
)

SINGLE_CUTOFF = ThresholdTable(
    tiers=[ThresholdTier(minimum=80, label="GOOD")],
    floor_label="NEEDS_ATTENTION",
)


def _default_thresholds() -> dict[str, ThresholdTable]:
    return {
        SYNTAX: SINGLE_CUTOFF,
        DEPENDENCIES: SINGLE_CUTOFF,
        VARIABLES: SINGLE_CUTOFF,
        ROUTING: SINGLE_CUTOFF,
        ENVIRONMENT: SINGLE_CUTOFF,
        PERMISSIONS: TWO_TIER,
        EXPOSURE: TWO_TIER,
        DATABASE: TWO_TIER,
    }


def _default_permissions() -> list[PermissionExpectation]:
    return [
        PermissionExpectation(path="backend/uploads", writable=True),
        PermissionExpectation(path="backend/exports", writable=True),
        PermissionExpectation(path="backend/admin/logs", writable=True),
        PermissionExpectation(path="backend/config", writable=False),
        PermissionExpectation(path="backend/classes", writable=False),
    ]


def _default_routes() -> list[RouteExpectation]:
    return [
        RouteExpectation(request="/backend/api/pages", target="backend/api/index.php"),
        RouteExpectation(request="/backend/api/portfolio", target="backend/api/index.php"),
        RouteExpectation(request="/backend/api/services", target="backend/api/index.php"),
        RouteExpectation(request="/backend/admin/", target="backend/admin/index.php"),
        RouteExpectation(request="/backend/admin/login.php", target="backend/admin/login.php"),
        RouteExpectation(request="/backend/get_projects.php", target="backend/get_projects.php"),
    ]


def _default_target_rules() -> list[TargetRule]:
    return [
        TargetRule(
            name="unchecked_database_connection",
            present=r"new\s+Database\s*\(\s*\)",
            absent=r"getConnection\s*\(\s*\)",
            message="instantiates Database but never obtains a connection",
            fix="$db_connection = $database->getConnection();",
        ),
    ]


def _default_rewrite_configs() -> list[RewriteConfigExpectation]:
    return [
        RewriteConfigExpectation(path=".htaccess", required=["RewriteEngine On"]),
        RewriteConfigExpectation(
            path="backend/.htaccess",
            required=["RewriteEngine On", "api/", "admin/"],
        ),
    ]


def _default_sensitive_patterns() -> list[SensitivePattern]:
    return [
        SensitivePattern(pattern="*.sql", description="SQL dump", severity=Severity.high),
        SensitivePattern(pattern="*.log", description="Log file", severity=Severity.medium),
        SensitivePattern(pattern="composer.*", description="Dependency manifest", severity=Severity.low),
        SensitivePattern(pattern=".env*", description="Environment file", severity=Severity.critical),
    ]


def _default_sensitive_files() -> list[str]:
    return [
        "backend/config/config.php",
        "backend/config/database.php",
        "backend/classes/Auth.php",
        "backend/composer.json",
        "backend/composer.lock",
    ]


def _default_schema() -> dict[str, TableExpectation]:
    return {
        "users": TableExpectation(description="User authentication and roles", columns=["id", "role"]),
        "pages": TableExpectation(description="Dynamic page management", columns=["id", "is_published", "created_by"]),
        "page_elements": TableExpectation(description="Page content elements"),
        "media": TableExpectation(description="Media library", columns=["id"]),
        "portfolio_projects": TableExpectation(description="Portfolio showcase", columns=["id", "featured_image"]),
        "portfolio_images": TableExpectation(description="Project image galleries", columns=["media_id"]),
        "services": TableExpectation(description="Service offerings"),
        "service_packages": TableExpectation(description="Service pricing packages"),
        "blog_posts": TableExpectation(description="Blog content", columns=["featured_image"]),
        "testimonials": TableExpectation(description="Client testimonials", columns=["is_published"]),
        "form_submissions": TableExpectation(description="Form data and leads"),
        "newsletter_subscribers": TableExpectation(description="Email subscribers"),
        "site_settings": TableExpectation(description="Configuration settings"),
    }


def _default_count_queries() -> list[CountQuery]:
    return [
        CountQuery(table="users", query="SELECT COUNT(*) AS count FROM users WHERE role = 'admin'"),
        CountQuery(table="pages", query="SELECT COUNT(*) AS count FROM pages WHERE is_published = 1"),
        CountQuery(table="portfolio_projects", query="SELECT COUNT(*) AS count FROM portfolio_projects"),
        CountQuery(table="media", query="SELECT COUNT(*) AS count FROM media"),
        CountQuery(table="testimonials", query="SELECT COUNT(*) AS count FROM testimonials WHERE is_published = 1"),
    ]


def _default_consistency_queries() -> list[ConsistencyQuery]:
    return [
        ConsistencyQuery(
            name="portfolio_featured_images",
            description="Portfolio projects with missing featured images",
            query=(
                "SELECT COUNT(*) AS count FROM portfolio_projects p "
                "LEFT JOIN media m ON p.featured_image = m.id "
                "WHERE p.featured_image IS NOT NULL AND m.id IS NULL"
            ),
        ),
        ConsistencyQuery(
            name="portfolio_project_images",
            description="Portfolio images with missing media files",
            query=(
                "SELECT COUNT(*) AS count FROM portfolio_images pi "
                "LEFT JOIN media m ON pi.media_id = m.id WHERE m.id IS NULL"
            ),
        ),
        ConsistencyQuery(
            name="blog_featured_images",
            description="Blog posts with missing featured images",
            query=(
                "SELECT COUNT(*) AS count FROM blog_posts b "
                "LEFT JOIN media m ON b.featured_image = m.id "
                "WHERE b.featured_image IS NOT NULL AND m.id IS NULL"
            ),
        ),
    ]


def _default_relationship_queries() -> list[RelationshipQuery]:
    return [
        RelationshipQuery(
            name="portfolio_to_media",
            description="Portfolio projects to media relationship",
            query=(
                "SELECT COUNT(DISTINCT p.id) AS projects, COUNT(DISTINCT m.id) AS media_files "
                "FROM portfolio_projects p LEFT JOIN media m ON p.featured_image = m.id"
            ),
        ),
        RelationshipQuery(
            name="users_to_content",
            description="Users to created content relationship",
            query=(
                "SELECT COUNT(DISTINCT u.id) AS users, COUNT(DISTINCT p.id) AS pages "
                "FROM users u LEFT JOIN pages p ON u.id = p.created_by"
            ),
        ),
    ]


def _default_rewrite_rules() -> list[PathRewriteRule]:
    return [
        PathRewriteRule(segment="config/", replacement_dir="../config"),
        PathRewriteRule(segment="classes/", replacement_dir="../classes"),
    ]


class AuditConfig(BaseModel):
    """Everything a checker needs to know about the audited deployment."""

    root: str = Field(default="../public_html", description="Root of the deployed application tree")
    output_dir: str = Field(default=".", description="Where result artifacts are written")
    source_extensions: list[str] = Field(default_factory=lambda: [".php"])
    skip_dirs: list[str] = Field(default_factory=lambda: [".git", "node_modules"])

    reference_pattern: str = DEFAULT_REFERENCE_PATTERN
    tracked_binding: str = Field(default="$method", description="Binding checked for use before definition")
    binding_initializer: str = "$method = $_SERVER['REQUEST_METHOD'];"
    path_rewrite_rules: list[PathRewriteRule] = Field(default_factory=_default_rewrite_rules)

    access_control_file: str = ".htaccess"
    entry_file: str = "index.php"
    permissions: list[PermissionExpectation] = Field(default_factory=_default_permissions)
    routes: list[RouteExpectation] = Field(default_factory=_default_routes)
    entry_directories: list[str] = Field(default_factory=lambda: ["backend/api", "backend/admin"])
    target_rules: list[TargetRule] = Field(default_factory=_default_target_rules)
    rewrite_configs: list[RewriteConfigExpectation] = Field(default_factory=_default_rewrite_configs)

    sensitive_patterns: list[SensitivePattern] = Field(default_factory=_default_sensitive_patterns)
    sensitive_files: list[str] = Field(default_factory=_default_sensitive_files)
    guarded_directories: list[GuardedDirectory] = Field(
        default_factory=lambda: [GuardedDirectory(path="backend/uploads")]
    )

    database_config_candidates: list[str] = Field(
        default_factory=lambda: [
            "backend/config/config.php",
            "backend/config/database.php",
            "config/database.php",
        ]
    )
    dsn: Optional[str] = Field(default=None, description="sqlite:///path or postgresql://...")
    expected_schema: dict[str, TableExpectation] = Field(default_factory=_default_schema)
    count_queries: list[CountQuery] = Field(default_factory=_default_count_queries)
    consistency_queries: list[ConsistencyQuery] = Field(default_factory=_default_consistency_queries)
    relationship_queries: list[RelationshipQuery] = Field(default_factory=_default_relationship_queries)

    thresholds: dict[str, ThresholdTable] = Field(default_factory=_default_thresholds)

    @property
    def root_path(self) -> Path:
        return Path(self.root)

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)

    def threshold_for(self, category: str) -> ThresholdTable:
        return self.thresholds.get(category, SINGLE_CUTOFF)


def load_config() -> AuditConfig:
    """Build the audit configuration from the environment.

    DEPLOY_AUDIT_CONFIG names an optional JSON file holding an AuditConfig.
    DEPLOY_AUDIT_ROOT, DEPLOY_AUDIT_OUTPUT_DIR and DEPLOY_AUDIT_DSN override
    the corresponding fields afterwards.
    """
    config_file = os.environ.get("DEPLOY_AUDIT_CONFIG", "")
    if config_file:
        try:
            config = AuditConfig.model_validate_json(Path(config_file).read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigError(f"Cannot read config file {config_file}: {e}") from e
        except ValidationError as e:
            raise ConfigError(f"Invalid config file {config_file}: {e}") from e
    else:
        config = AuditConfig()

    overrides = {}
    for env_name, field in (
        ("DEPLOY_AUDIT_ROOT", "root"),
        ("DEPLOY_AUDIT_OUTPUT_DIR", "output_dir"),
        ("DEPLOY_AUDIT_DSN", "dsn"),
    ):
        value = os.environ.get(env_name, "")
        if value:
            overrides[field] = value

    if overrides:
        config = config.model_copy(update=overrides)
    return config
