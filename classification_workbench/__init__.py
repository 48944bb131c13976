"""
Text classification workbench: dataset upload, model training, batch
evaluation, single-text classification and result export.
"""

from .models import (
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
from .dataset_parser import TabularDatasetParser, parse_dataset, load_dataset_file
from .event_log import EventLog
from .evaluation import EvaluationEngine, evaluate, confusion_counts
from .result_exporter import ResultExporter, export_results
from .services import ClassifierInterface
from .sklearn_classifiers import LinearSVCClassifier, MaxEntClassifier, default_classifiers
from .workflow import WorkflowController
from .exceptions import (
    WorkbenchError,
    SchemaError,
    PreconditionError,
    BusyError,
    ExportError,
    TrainingError,
    InferenceError,
    ConfigurationError
)

__version__ = "0.1.0"
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
    "WorkflowState",
    "TabularDatasetParser",
    "parse_dataset",
    "load_dataset_file",
    "EventLog",
    "EvaluationEngine",
    "evaluate",
    "confusion_counts",
    "ResultExporter",
    "export_results",
    "ClassifierInterface",
    "LinearSVCClassifier",
    "MaxEntClassifier",
    "default_classifiers",
    "WorkflowController",
    "WorkbenchError",
    "SchemaError",
    "PreconditionError",
    "BusyError",
    "ExportError",
    "TrainingError",
    "InferenceError",
    "ConfigurationError"
]
