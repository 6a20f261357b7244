"""Error types raised by the audit engine and its collaborators."""

from __future__ import annotations


class AuditError(Exception):
    """Base class for all audit-engine errors."""


class ConfigError(AuditError):
    """Invalid audit configuration.

    Attributes:
        source: Path or label of the configuration that failed, if known.
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        full = f"Invalid audit config: {message}"
        if source:
            full += f" ({source})"
        super().__init__(full)


class GridLoadError(AuditError):
    """A sheet grid could not be fetched from its provider.

    Attributes:
        sheet_name: The sheet that failed to load.
    """

    def __init__(self, sheet_name: str, message: str | None = None) -> None:
        self.sheet_name = sheet_name
        msg = message or f"Sheet {sheet_name!r} could not be loaded"
        super().__init__(msg)


class SheetEnumerationError(AuditError):
    """The list of sheets to audit is unavailable.

    Raised before any sheet is audited; the run fails as a whole.
    """


class FormulaShapeError(AuditError):
    """Text handed to the reference splitter is not an A1 cell reference."""
