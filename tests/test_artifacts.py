"""Tests for report artifact persistence."""

from pathlib import Path

from deploy_auditor.artifacts import read_report, report_filename, write_report
from deploy_auditor.models import CheckItem, CheckReport, ItemStatus


class TestArtifacts:
    """Test report files on disk."""

    def test_filename(self):
        """Test the `<category>-results.json` naming."""
        assert report_filename("database-integrity") == "database-integrity-results.json"

    def test_write_then_read(self, tmp_path):
        """Test that a written report loads back unchanged."""
        report = CheckReport(
            category="permissions",
            status="GOOD",
            score=80.0,
            passed=4,
            total=5,
            items=[CheckItem(name="backend/uploads", status=ItemStatus.FAIL, detail={"writable": False})],
        )

        path = write_report(report, tmp_path / "out")

        assert path.name == "permissions-results.json"
        assert read_report("permissions", tmp_path / "out") == report

    def test_overwrite(self, tmp_path):
        """Test that a rerun replaces the previous artifact."""
        write_report(CheckReport(category="routing", status="GOOD", score=100.0, passed=1, total=1), tmp_path)
        write_report(CheckReport(category="routing", status="NEEDS_ATTENTION", score=0.0, passed=0, total=1), tmp_path)

        assert read_report("routing", tmp_path).status == "NEEDS_ATTENTION"

    def test_missing_artifact(self, tmp_path):
        """Test that an absent report reads as None."""
        assert read_report("exposure", tmp_path) is None

    def test_undecodable_artifact(self, tmp_path):
        """Test that a report with invalid UTF-8 reads as None instead of raising."""
        (tmp_path / "routing-results.json").write_bytes(b"\xff\xfe\x00{")

        assert read_report("routing", tmp_path) is None

    def test_unreadable_artifact(self, tmp_path, monkeypatch):
        """Test that a report the process may not read is treated as absent."""
        (tmp_path / "routing-results.json").write_text("{}")

        def deny(self, *args, **kwargs):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "read_text", deny)

        assert read_report("routing", tmp_path) is None
