"""Custom exceptions used across SheetFlow."""


class SheetFlowError(Exception):
    """Base error for the application."""


class ConfigError(SheetFlowError):
    """Configuration related error."""


class RuleFormatError(SheetFlowError):
    """Raised when a rule file cannot be read or does not describe rules."""


class SheetNotFoundError(SheetFlowError):
    """Raised when a sheet-rule references a sheet missing from the workbook."""

    def __init__(self, sheet_name: str) -> None:
        super().__init__(f'Sheet "{sheet_name}" not found in workbook')
        self.sheet_name = sheet_name


class WorkbookReadError(SheetFlowError):
    """Raised when a spreadsheet file cannot be parsed into grids."""


class ExportError(SheetFlowError):
    """Raised when records cannot be written to the requested format."""
