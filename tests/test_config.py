"""Tests for audit settings and YAML config loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from gridaudit.config import CONFIG_FILENAME, DEFAULT_CONFIG, AuditSettings, load_config, settings_from_dict
from gridaudit.errors import ConfigError


class TestAuditSettings:
    def test_defaults(self):
        s = AuditSettings()
        assert s.axis_scan_rows == 15
        assert s.fallback_start_col == 5
        assert s.label_columns == 4
        assert s.min_formulas_for_dominant == 3
        assert s.dominant_share == 0.4
        assert s.max_issues == 2000
        assert s.reserved_sheet_names == DEFAULT_CONFIG["reserved_sheet_names"]

    def test_frozen(self):
        s = AuditSettings()
        with pytest.raises(Exception):
            s.max_issues = 10

    @pytest.mark.parametrize(
        "name,reserved",
        [
            ("AUDIT_MASTER", True),
            ("audit_master", True),
            ("Audit_2024", True),
            ("Issues", True),
            ("External_Links", True),
            ("Model", False),
            ("Audit", False),
        ],
    )
    def test_reserved_sheets(self, name, reserved):
        assert AuditSettings().is_reserved_sheet(name) is reserved

    def test_reserved_names_uppercased(self):
        s = AuditSettings(reserved_sheet_names=["Dashboard"], reserved_sheet_prefix="")
        assert s.is_reserved_sheet("DASHBOARD")
        assert not s.is_reserved_sheet("AUDIT_MASTER")


class TestSettingsFromDict:
    def test_top_level_and_block(self):
        s = settings_from_dict({"max_issues": 10, "audit": {"label_columns": 2}})
        assert s.max_issues == 10
        assert s.label_columns == 2

    def test_unknown_keys_ignored(self, caplog):
        s = settings_from_dict({"colour": "red"})
        assert s == AuditSettings()
        assert "colour" in caplog.text

    def test_invalid_value(self):
        with pytest.raises(ConfigError) as excinfo:
            settings_from_dict({"dominant_share": 1.5}, source="inline")
        assert excinfo.value.source == "inline"
        assert "inline" in str(excinfo.value)


class TestLoadConfig:
    def test_none_gives_defaults(self):
        assert load_config(None) == AuditSettings()

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        assert load_config(tmp_path / "nope.yaml") == AuditSettings()

    def test_file(self, tmp_path: Path):
        path = tmp_path / "audit.yaml"
        path.write_text("audit:\n  axis_scan_rows: 20\n  max_issues: 500\n")
        s = load_config(path)
        assert s.axis_scan_rows == 20
        assert s.max_issues == 500

    def test_directory(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text("fallback_start_col: 3\n")
        assert load_config(tmp_path).fallback_start_col == 3

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "audit.yaml"
        path.write_text("")
        assert load_config(path) == AuditSettings()

    def test_bad_yaml(self, tmp_path: Path):
        path = tmp_path / "audit.yaml"
        path.write_text("audit: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_mapping(self, tmp_path: Path):
        path = tmp_path / "audit.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)
