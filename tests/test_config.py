"""Tests for configuration loading."""

import pytest

from deploy_auditor.config import (
    DATABASE,
    PERMISSIONS,
    SINGLE_CUTOFF,
    SYNTAX,
    TWO_TIER,
    AuditConfig,
    load_config,
)
from deploy_auditor.errors import ConfigError


class TestLoadConfig:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        """Test the built-in expectation tables."""
        for name in ("DEPLOY_AUDIT_CONFIG", "DEPLOY_AUDIT_ROOT", "DEPLOY_AUDIT_OUTPUT_DIR", "DEPLOY_AUDIT_DSN"):
            monkeypatch.delenv(name, raising=False)

        config = load_config()

        assert config.root == "../public_html"
        assert len(config.expected_schema) == 13
        assert config.dsn is None

    def test_env_overrides(self, monkeypatch, tmp_path):
        """Test root, output dir and DSN overrides."""
        monkeypatch.delenv("DEPLOY_AUDIT_CONFIG", raising=False)
        monkeypatch.setenv("DEPLOY_AUDIT_ROOT", str(tmp_path))
        monkeypatch.setenv("DEPLOY_AUDIT_OUTPUT_DIR", str(tmp_path / "out"))
        monkeypatch.setenv("DEPLOY_AUDIT_DSN", "sqlite:///site.db")

        config = load_config()

        assert config.root_path == tmp_path
        assert config.output_path == tmp_path / "out"
        assert config.dsn == "sqlite:///site.db"

    def test_config_file(self, monkeypatch, tmp_path):
        """Test loading an AuditConfig JSON file, then env overrides on top."""
        path = tmp_path / "audit.json"
        path.write_text(AuditConfig(root="/srv/site", tracked_binding="$action").model_dump_json())
        monkeypatch.setenv("DEPLOY_AUDIT_CONFIG", str(path))
        monkeypatch.setenv("DEPLOY_AUDIT_ROOT", "/srv/other")

        config = load_config()

        assert config.tracked_binding == "$action"
        assert config.root == "/srv/other"

    def test_invalid_config_file(self, monkeypatch, tmp_path):
        """Test that a malformed file raises ConfigError."""
        path = tmp_path / "audit.json"
        path.write_text('{"permissions": "nope"}')
        monkeypatch.setenv("DEPLOY_AUDIT_CONFIG", str(path))

        with pytest.raises(ConfigError):
            load_config()


class TestThresholds:
    """Test per-category threshold tables."""

    def test_defaults_per_category(self):
        """Test that categories keep their own cutoffs."""
        config = AuditConfig()

        assert config.threshold_for(DATABASE) == TWO_TIER
        assert config.threshold_for(PERMISSIONS) == TWO_TIER
        assert config.threshold_for(SYNTAX) == SINGLE_CUTOFF
        assert config.threshold_for("unknown") == SINGLE_CUTOFF
