"""Audit configuration.

Settings come from ``DEFAULT_CONFIG`` overlaid with an optional YAML file::

    # gridaudit.yaml
    audit:
      axis_scan_rows: 20
      max_issues: 500
      reserved_sheet_names: [AUDIT_MASTER, ISSUES]

Keys may sit at the top level or under an ``audit:`` block.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from gridaudit.errors import ConfigError

log = logging.getLogger(__name__)

CONFIG_FILENAME = "gridaudit.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "axis_scan_rows": 15,
    "fallback_start_col": 5,  # column E
    "label_columns": 4,
    "label_max_chars": 60,
    "min_formulas_for_dominant": 3,
    "dominant_share": 0.4,
    "max_issues": 2000,
    "value_display_chars": 50,
    "formula_display_chars": 250,
    "complexity_threshold": 7,
    "max_rows": 5000,
    "max_cols": 500,
    "reserved_sheet_prefix": "AUDIT_",
    "reserved_sheet_names": [
        "AUDIT_MASTER",
        "AUDIT_ISSUES",
        "ISSUES",
        "EXTERNAL_LINKS",
        "NAMED_RANGES",
    ],
}


class AuditSettings(BaseModel):
    """Validated audit settings for one run."""

    axis_scan_rows: int = Field(DEFAULT_CONFIG["axis_scan_rows"], ge=1)
    fallback_start_col: int = Field(DEFAULT_CONFIG["fallback_start_col"], ge=1)
    label_columns: int = Field(DEFAULT_CONFIG["label_columns"], ge=1)
    label_max_chars: int = Field(DEFAULT_CONFIG["label_max_chars"], ge=1)
    min_formulas_for_dominant: int = Field(DEFAULT_CONFIG["min_formulas_for_dominant"], ge=1)
    dominant_share: float = Field(DEFAULT_CONFIG["dominant_share"], gt=0, le=1)
    max_issues: int = Field(DEFAULT_CONFIG["max_issues"], ge=0)
    value_display_chars: int = Field(DEFAULT_CONFIG["value_display_chars"], ge=1)
    formula_display_chars: int = Field(DEFAULT_CONFIG["formula_display_chars"], ge=1)
    complexity_threshold: int = Field(DEFAULT_CONFIG["complexity_threshold"], ge=0, le=10)
    max_rows: int = Field(DEFAULT_CONFIG["max_rows"], ge=1)
    max_cols: int = Field(DEFAULT_CONFIG["max_cols"], ge=1)
    reserved_sheet_prefix: str = DEFAULT_CONFIG["reserved_sheet_prefix"]
    reserved_sheet_names: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CONFIG["reserved_sheet_names"])
    )

    model_config = {"frozen": True}

    @field_validator("reserved_sheet_names")
    @classmethod
    def _upper_names(cls, v: list[str]) -> list[str]:
        return [str(n).upper() for n in v]

    def is_reserved_sheet(self, name: str) -> bool:
        """True for sheets generated by a previous audit (never audited)."""
        upper = name.upper()
        prefix = self.reserved_sheet_prefix.upper()
        if prefix and upper.startswith(prefix):
            return True
        return upper in self.reserved_sheet_names


def _flatten_audit_block(user_config: dict[str, Any]) -> dict[str, Any]:
    """Merge a nested ``audit:`` block into the top-level keys."""
    block = user_config.pop("audit", None)
    if isinstance(block, dict):
        user_config.update(block)
    return user_config


def settings_from_dict(data: dict[str, Any], source: str | None = None) -> AuditSettings:
    """Build settings from a plain mapping, ignoring unknown keys.

    Raises:
        ConfigError: If a known key has an invalid value.
    """
    data = _flatten_audit_block(dict(data))
    known = set(AuditSettings.model_fields)
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        log.warning("Ignoring unknown audit config keys: %s", ", ".join(unknown))
    merged = {**DEFAULT_CONFIG, **{k: v for k, v in data.items() if k in known}}
    try:
        return AuditSettings(**merged)
    except ValidationError as exc:
        raise ConfigError(str(exc), source=source) from exc


def load_config(path: Path | None = None) -> AuditSettings:
    """Load audit settings from a YAML file.

    Args:
        path: Config file, or a directory containing ``gridaudit.yaml``.
            ``None`` or a missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid YAML or holds invalid values.
    """
    if path is None:
        return AuditSettings()
    if path.is_dir():
        path = path / CONFIG_FILENAME
    if not path.exists():
        return AuditSettings()
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(str(exc), source=str(path)) from exc
    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping", source=str(path))
    return settings_from_dict(data, source=str(path))
