"""
Exception classes for the classification workbench.
"""


class WorkbenchError(Exception):
    """Base exception for workbench errors."""
    pass


class SchemaError(WorkbenchError):
    """Raised when an uploaded table is malformed or misses required columns."""

    def __init__(self, message: str, missing_columns=()):
        super().__init__(message)
        self.missing_columns = tuple(missing_columns)


class PreconditionError(WorkbenchError):
    """Raised when an action is invoked before its required prior state exists."""
    pass


class BusyError(WorkbenchError):
    """Raised when an action is invoked while a conflicting action is in flight."""
    pass


class ExportError(WorkbenchError):
    """Raised when there is nothing to export."""
    pass


class TrainingError(WorkbenchError):
    """Raised when a classifier fails to train."""
    pass


class InferenceError(WorkbenchError):
    """Raised when a classifier fails to produce a prediction."""
    pass


class ConfigurationError(WorkbenchError):
    """Raised when configuration is invalid."""
    pass
