"""Tests for the deploy auditor API and runner."""

import json

import pytest
from httpx import AsyncClient, ASGITransport

from deploy_auditor import runner
from deploy_auditor.checks import permissions
from deploy_auditor.config import CATEGORY_ORDER, PLAN_FILENAME, SYNTAX
from deploy_auditor.main import app
from deploy_auditor.models import FAILED_STATUS

from conftest import write


@pytest.fixture
def test_client():
    """Create async test client for FastAPI."""
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture(autouse=True)
def accurate_writability(monkeypatch):
    """Report only operational directories as writable, whatever the test uid."""
    operational = ("backend/uploads", "backend/exports", "backend/admin/logs")
    monkeypatch.setattr(
        permissions,
        "_is_writable",
        lambda path: any(path.as_posix().endswith(d) for d in operational),
    )


class TestHealthEndpoint:
    """Test /health endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_ok(self, test_client):
        """Test that /health endpoint returns status ok."""
        async with test_client as client:
            response = await client.get("/health")

            assert response.status_code == 200
            assert response.json() == {"status": "ok"}


class TestCategoriesEndpoint:
    """Test /categories endpoint."""

    @pytest.mark.asyncio
    async def test_lists_scan_order(self, test_client):
        """Test that categories come back in scan order."""
        async with test_client as client:
            response = await client.get("/categories")

            assert response.status_code == 200
            assert response.json() == {"categories": CATEGORY_ORDER}


class TestAuditEndpoint:
    """Test /audit/{category} endpoint."""

    @pytest.mark.asyncio
    async def test_audit_writes_artifact(self, test_client, config, site, tmp_path):
        """Test a syntax audit with an explicit config body."""
        write(site, "backend/broken.php", "<?php\nif (true) {\n")

        async with test_client as client:
            response = await client.post(f"/audit/{SYNTAX}", json=config.model_dump(mode="json"))

            assert response.status_code == 200
            data = response.json()
            assert data["category"] == SYNTAX
            assert len(data["findings"]) == 1
            assert data["findings"][0]["file"] == "backend/broken.php"

        assert (tmp_path / "out" / f"{SYNTAX}-results.json").is_file()

    @pytest.mark.asyncio
    async def test_unknown_category(self, test_client, config):
        """Test that an unknown category is a 404."""
        async with test_client as client:
            response = await client.post("/audit/lint", json=config.model_dump(mode="json"))

            assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_config_file(self, test_client, monkeypatch, tmp_path):
        """Test that an unreadable config file is a 422."""
        monkeypatch.setenv("DEPLOY_AUDIT_CONFIG", str(tmp_path / "missing.json"))

        async with test_client as client:
            response = await client.post(f"/audit/{SYNTAX}")

            assert response.status_code == 422


class TestRemediationEndpoint:
    """Test /remediation endpoint."""

    @pytest.mark.asyncio
    async def test_plan_from_artifacts(self, test_client, config, site):
        """Test a plan synthesized from a previously written report."""
        (site / "backend/uploads/.htaccess").unlink()
        runner.run_category("exposure", config, echo=False)

        async with test_client as client:
            response = await client.post("/remediation", json=config.model_dump(mode="json"))

            assert response.status_code == 200
            data = response.json()
            assert data["sources_loaded"] == ["exposure"]
            assert data["counts"]["medium"] == 1
            assert data["items"][0]["target"] == "backend/uploads/.htaccess"


class TestRunner:
    """Test batch execution."""

    def test_crashing_checker_yields_failed_report(self, config, monkeypatch):
        """Test that an unexpected exception does not stop the batch."""
        def boom(config):
            raise RuntimeError("disk on fire")

        monkeypatch.setitem(runner.CHECKERS, SYNTAX, boom)

        report = runner.run_category(SYNTAX, config, echo=False)

        assert report.status == FAILED_STATUS
        assert "disk on fire" in report.summary["error"]

    def test_pipeline_on_healthy_tree(self, config, tmp_path, capsys):
        """Test the full pipeline without a database."""
        plan = runner.run_pipeline(config)

        out = tmp_path / "out"
        for category in CATEGORY_ORDER:
            assert (out / f"{category}-results.json").is_file()
        assert plan.items == []
        saved = json.loads((out / PLAN_FILENAME).read_text())
        assert saved["sources_missing"] == []
        assert "Total fixes: 0" in capsys.readouterr().out

    def test_pipeline_orders_critical_first(self, config, site, tmp_path):
        """Test a broken tree across several categories."""
        (site / "backend/config/config.php").unlink()
        (site / "backend/config/database.php").unlink()
        write(site, "backend/api/pages.php", "<?php\necho $method;\nrequire 'lib/missing.php';\n")

        plan = runner.run_pipeline(config, echo=False)

        priorities = [item.priority.value for item in plan.items]
        assert priorities == sorted(priorities, key=["critical", "high", "medium", "low"].index)
        assert plan.items[0].finding.category.value == "data_config_missing"
        sources = {item.source_category for item in plan.items}
        assert {"environment", "use-before-definition", "dependency-paths"} <= sources

    def test_rerun_writes_identical_artifacts(self, config, site, tmp_path):
        """Test that every category artifact is byte-identical across two runs."""
        write(site, "backend/api/pages.php", "<?php\necho $method;\nrequire 'lib/missing.php';\nif (true) {\n")
        write(site, "backup.sql", "-- dump\n")
        out = tmp_path / "out"

        runner.run_all(config, echo=False)
        first = {category: (out / f"{category}-results.json").read_bytes() for category in CATEGORY_ORDER}
        runner.run_all(config, echo=False)

        for category in CATEGORY_ORDER:
            assert (out / f"{category}-results.json").read_bytes() == first[category], category
