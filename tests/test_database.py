"""Tests for the database integrity checker against on-disk SQLite stores."""

import sqlite3

import pytest

from deploy_auditor import database
from deploy_auditor.config import AuditConfig
from deploy_auditor.errors import DatabaseUnavailableError
from deploy_auditor.models import FAILED_STATUS, FindingCategory, ItemStatus


SCHEMA = {
    "users": "id INTEGER PRIMARY KEY, email TEXT, role TEXT",
    "pages": "id INTEGER PRIMARY KEY, title TEXT, is_published INTEGER, created_by INTEGER",
    "page_elements": "id INTEGER PRIMARY KEY, page_id INTEGER",
    "media": "id INTEGER PRIMARY KEY, filename TEXT",
    "portfolio_projects": "id INTEGER PRIMARY KEY, title TEXT, featured_image INTEGER",
    "portfolio_images": "id INTEGER PRIMARY KEY, project_id INTEGER, media_id INTEGER",
    "services": "id INTEGER PRIMARY KEY",
    "service_packages": "id INTEGER PRIMARY KEY",
    "blog_posts": "id INTEGER PRIMARY KEY, featured_image INTEGER",
    "testimonials": "id INTEGER PRIMARY KEY, is_published INTEGER",
    "form_submissions": "id INTEGER PRIMARY KEY",
    "newsletter_subscribers": "id INTEGER PRIMARY KEY",
    "site_settings": "id INTEGER PRIMARY KEY",
}


def build_store(path, skip=(), rows=True):
    conn = sqlite3.connect(path)
    for table, columns in SCHEMA.items():
        if table not in skip:
            conn.execute(f"CREATE TABLE {table} ({columns})")
    if rows:
        conn.execute("INSERT INTO media (id, filename) VALUES (1, 'hero.jpg')")
        conn.execute("INSERT INTO pages (id, title, is_published, created_by) VALUES (1, 'Home', 1, 1)")
        conn.execute("INSERT INTO portfolio_projects (id, title, featured_image) VALUES (1, 'Site', 1)")
        conn.execute("INSERT INTO testimonials (id, is_published) VALUES (1, 1)")
        if "users" not in skip:
            conn.execute("INSERT INTO users (id, email, role) VALUES (1, 'a@example.com', 'admin')")
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def store(tmp_path):
    return build_store(tmp_path / "site.db")


@pytest.fixture
def db_config(tmp_path, store):
    return AuditConfig(root=str(tmp_path), dsn=f"sqlite:///{store}")


class TestConnect:
    """Test DSN handling."""

    def test_missing_sqlite_file(self, tmp_path):
        """Test that read-only mode never creates the file."""
        with pytest.raises(DatabaseUnavailableError):
            database.connect(f"sqlite:///{tmp_path / 'none.db'}")
        assert not (tmp_path / "none.db").exists()

    def test_unsupported_scheme(self):
        """Test that unknown schemes are rejected."""
        with pytest.raises(DatabaseUnavailableError, match="mysql"):
            database.connect("mysql://localhost/site")

    def test_connection_is_read_only(self, store):
        """Test that writes are refused."""
        conn = database.connect(f"sqlite:///{store}")
        try:
            with pytest.raises(sqlite3.OperationalError):
                conn.fetch_all("INSERT INTO services (id) VALUES (5)")
        finally:
            conn.close()

    def test_list_tables_and_columns(self, store):
        """Test schema enumeration."""
        conn = database.connect(f"sqlite:///{store}")
        try:
            assert "users" in conn.list_tables()
            assert conn.list_columns("users") == ["id", "email", "role"]
        finally:
            conn.close()


class TestRunChecks:
    """Test the integrity run."""

    def test_healthy_store(self, db_config):
        """Test a complete, consistent store."""
        report = database.run_checks(db_config)

        assert report.score == 100.0
        assert report.status == "EXCELLENT"
        assert report.findings == []
        assert report.summary["tables_present"] == 13
        assert report.summary["consistency_passed"] == 3

    def test_missing_users_table(self, tmp_path):
        """Test 12 of 13 expected tables present."""
        store = build_store(tmp_path / "partial.db", skip=("users",))
        config = AuditConfig(root=str(tmp_path), dsn=f"sqlite:///{store}")

        report = database.run_checks(config)

        assert report.score == 92.3
        assert report.passed == 12
        assert report.total == 13
        users = next(item for item in report.items if item.name == "table:users")
        assert users.status == ItemStatus.MISSING
        categories = [f.category for f in report.findings]
        assert categories == [FindingCategory.schema_missing_table]
        # The users relationship query cannot run, but the batch continues
        relationship = next(item for item in report.items if item.name == "relationship:users_to_content")
        assert relationship.status == ItemStatus.ERROR

    def test_missing_column(self, tmp_path):
        """Test a present table lacking a required column."""
        store = build_store(tmp_path / "cols.db", skip=("testimonials",), rows=False)
        conn = sqlite3.connect(store)
        conn.execute("CREATE TABLE testimonials (id INTEGER PRIMARY KEY)")
        conn.commit()
        conn.close()
        config = AuditConfig(root=str(tmp_path), dsn=f"sqlite:///{store}")

        report = database.run_checks(config)

        missing = [f for f in report.findings if f.category == FindingCategory.schema_missing_column]
        assert len(missing) == 1
        assert missing[0].evidence["missing_columns"] == ["is_published"]
        # Column checks do not feed the score
        assert report.score == 100.0

    def test_empty_tables(self, tmp_path):
        """Test row-count sanity on an empty store."""
        store = build_store(tmp_path / "empty.db", rows=False)
        config = AuditConfig(root=str(tmp_path), dsn=f"sqlite:///{store}")

        report = database.run_checks(config)

        empty = [f.file for f in report.findings if f.category == FindingCategory.empty_table]
        assert empty == ["users", "pages", "portfolio_projects", "media", "testimonials"]
        assert report.score == 100.0

    def test_dangling_reference(self, tmp_path):
        """Test a project whose featured image points at no media row."""
        store = build_store(tmp_path / "dangling.db")
        conn = sqlite3.connect(store)
        conn.execute("INSERT INTO portfolio_projects (id, title, featured_image) VALUES (2, 'Orphan', 99)")
        conn.commit()
        conn.close()
        config = AuditConfig(root=str(tmp_path), dsn=f"sqlite:///{store}")

        report = database.run_checks(config)

        dangling = [f for f in report.findings if f.category == FindingCategory.dangling_reference]
        assert len(dangling) == 1
        assert dangling[0].file == "portfolio_featured_images"
        assert dangling[0].evidence["count"] == 1

    def test_relationships_are_informational(self, db_config):
        """Test that cardinality queries are reported, not scored."""
        report = database.run_checks(db_config)

        relationship = next(item for item in report.items if item.name == "relationship:portfolio_to_media")
        assert relationship.status == ItemStatus.INFO
        assert relationship.counted is False
        assert relationship.detail == {"projects": 1, "media_files": 1}

    def test_unreachable_store(self, tmp_path):
        """Test that connection failure fails the whole category with no findings."""
        config = AuditConfig(root=str(tmp_path), dsn=f"sqlite:///{tmp_path / 'gone.db'}")

        report = database.run_checks(config)

        assert report.status == FAILED_STATUS
        assert report.findings == []
        assert report.items == []

    def test_no_dsn(self, tmp_path):
        """Test that an unconfigured store fails the category."""
        report = database.run_checks(AuditConfig(root=str(tmp_path)))

        assert report.status == FAILED_STATUS
        assert "DSN" in report.summary["error"]

    def test_given_connection_is_left_open(self, db_config, store):
        """Test that a caller-supplied connection is not closed."""
        conn = database.connect(f"sqlite:///{store}")
        try:
            database.run_checks(db_config, conn=conn)
            assert conn.fetch_one("SELECT 1 AS one") == {"one": 1}
        finally:
            conn.close()
