"""
Data models for the classification workbench.
"""

from .data_models import (
    AccuracySummary,
    ClassificationOutcome,
    Dataset,
    DatasetRole,
    EvaluationResult,
    EvaluationSnapshot,
    LogEntry,
    LogKind,
    ModelHandle,
    Prediction,
    Record,
    WorkbenchSnapshot,
    WorkflowState
)

__all__ = [
    "AccuracySummary",
    "ClassificationOutcome",
    "Dataset",
    "DatasetRole",
    "EvaluationResult",
    "EvaluationSnapshot",
    "LogEntry",
    "LogKind",
    "ModelHandle",
    "Prediction",
    "Record",
    "WorkbenchSnapshot",
    "WorkflowState"
]
