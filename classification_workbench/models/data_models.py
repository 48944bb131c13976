"""
Core data models for the classification workbench.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


def _freeze(mapping: Optional[Mapping]) -> Mapping:
    """Return a read-only copy of a mapping."""
    return MappingProxyType(dict(mapping or {}))


class DatasetRole(str, Enum):
    """Role an uploaded dataset plays in the workflow."""
    TRAINING = "training"
    TEST = "test"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class LogKind(str, Enum):
    """Kind of an event log entry."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class WorkflowState(str, Enum):
    """States of the workflow controller."""
    IDLE = "idle"
    DATA_LOADED = "data_loaded"
    TRAINING = "training"
    TRAINED = "trained"
    TESTING = "testing"
    TESTED = "tested"
    CLASSIFYING = "classifying"

    @property
    def is_busy(self) -> bool:
        """Whether an action is currently in flight."""
        return self in (WorkflowState.TRAINING, WorkflowState.TESTING, WorkflowState.CLASSIFYING)


@dataclass(frozen=True)
class Record:
    """One labeled or unlabeled narrative from an uploaded table."""
    record_id: int
    text: str
    label: Optional[str] = None
    fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """Validate record after initialization."""
        if not isinstance(self.record_id, int) or self.record_id < 1:
            raise ValueError("Record id must be a positive integer")
        object.__setattr__(self, "fields", _freeze(self.fields))

    @property
    def has_label(self) -> bool:
        return self.label is not None


@dataclass(frozen=True)
class Dataset:
    """Immutable ordered sequence of records loaded from one upload."""
    records: Tuple[Record, ...]
    role: DatasetRole = DatasetRole.TRAINING
    columns: Tuple[str, ...] = ()
    source_name: Optional[str] = None
    loaded_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Freeze the record sequence and check positional ids."""
        records = tuple(self.records)
        for position, record in enumerate(records, 1):
            if record.record_id != position:
                raise ValueError(
                    f"Record ids must be 1-based positions, got {record.record_id} at position {position}"
                )
        object.__setattr__(self, "records", records)
        object.__setattr__(self, "columns", tuple(self.columns))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def get(self, record_id: int) -> Record:
        """
        Get a record by its 1-based id.

        Raises:
            KeyError: If no record has this id
        """
        if not 1 <= record_id <= len(self.records):
            raise KeyError(f"Record not found: {record_id}")
        return self.records[record_id - 1]

    def texts(self) -> List[str]:
        """Narrative texts in dataset order."""
        return [record.text for record in self.records]

    def labels(self) -> List[str]:
        """Distinct ground-truth labels in first-seen order."""
        seen: Dict[str, None] = {}
        for record in self.records:
            if record.label is not None:
                seen.setdefault(record.label, None)
        return list(seen)

    @property
    def record_count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ModelHandle:
    """Opaque trained-state capability for one classifier variant."""
    variant: str
    trained: bool
    model: Any = None
    handle_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Validate model handle after initialization."""
        if not self.variant or not self.variant.strip():
            raise ValueError("Model variant cannot be empty")


@dataclass(frozen=True)
class Prediction:
    """One classifier output for one text."""
    record_id: Optional[int]
    model_variant: str
    predicted_label: str
    confidence: float

    def __post_init__(self):
        """Validate prediction confidence."""
        if not isinstance(self.confidence, (int, float)) or not (0.0 <= self.confidence <= 1.0):
            raise ValueError("Confidence must be a number between 0.0 and 1.0")


@dataclass(frozen=True)
class EvaluationResult:
    """Per-record comparison of predictions to ground truth."""
    id: int
    narrative_excerpt: str
    actual_label: Optional[str]
    predictions_by_variant: Mapping[str, str] = field(default_factory=dict)
    correctness_by_variant: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "predictions_by_variant", _freeze(self.predictions_by_variant))
        object.__setattr__(self, "correctness_by_variant", _freeze(self.correctness_by_variant))

    def to_dict(self) -> Dict[str, Any]:
        """Convert the evaluation result to a dictionary."""
        return {
            "id": self.id,
            "narrative": self.narrative_excerpt,
            "actual": self.actual_label,
            "predictions": dict(self.predictions_by_variant),
            "correct": dict(self.correctness_by_variant),
        }


@dataclass(frozen=True)
class AccuracySummary:
    """
    Per-variant percentage of correct predictions for one test run.

    A value of None means there were no test records to score.
    """
    accuracy_by_variant: Mapping[str, Optional[float]]
    total_records: int

    def __post_init__(self):
        object.__setattr__(self, "accuracy_by_variant", _freeze(self.accuracy_by_variant))

    @property
    def has_data(self) -> bool:
        return self.total_records > 0

    @property
    def variants(self) -> List[str]:
        return list(self.accuracy_by_variant)

    def __getitem__(self, variant: str) -> Optional[float]:
        return self.accuracy_by_variant[variant]

    def format(self) -> str:
        """Render the summary as e.g. ``maxent: 70.0% | linear-svc: 50.0%``."""
        parts = []
        for variant, value in self.accuracy_by_variant.items():
            parts.append(f"{variant}: {value:.1f}%" if value is not None else f"{variant}: no data")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accuracy": dict(self.accuracy_by_variant),
            "total_records": self.total_records,
            "has_data": self.has_data,
        }


@dataclass(frozen=True)
class EvaluationSnapshot:
    """Results and accuracy of one completed test run, published together."""
    results: Tuple[EvaluationResult, ...]
    summary: AccuracySummary
    completed_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        results = tuple(self.results)
        if len(results) != self.summary.total_records:
            raise ValueError("Evaluation results and accuracy summary disagree on record count")
        object.__setattr__(self, "results", results)

    @property
    def is_empty(self) -> bool:
        return not self.results

    @property
    def variants(self) -> List[str]:
        return self.summary.variants


@dataclass(frozen=True)
class ClassificationOutcome:
    """Predictions of every classifier variant for one ad-hoc text."""
    text: str
    predictions: Tuple[Prediction, ...]
    classified_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        object.__setattr__(self, "predictions", tuple(self.predictions))

    def by_variant(self) -> Dict[str, Prediction]:
        return {prediction.model_variant: prediction for prediction in self.predictions}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "predictions": {
                p.model_variant: {"label": p.predicted_label, "confidence": round(p.confidence, 3)}
                for p in self.predictions
            },
        }


@dataclass(frozen=True)
class LogEntry:
    """Append-only, timestamped event log entry."""
    message: str
    kind: LogKind = LogKind.INFO
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class WorkbenchSnapshot:
    """Immutable view of the workflow controller after an action completes."""
    state: WorkflowState
    training_data: Optional[Dataset]
    test_data: Optional[Dataset]
    trained_variants: Tuple[str, ...]
    evaluation: Optional[EvaluationSnapshot]
    last_classification: Optional[ClassificationOutcome]
    log_size: int

    @property
    def is_trained(self) -> bool:
        return bool(self.trained_variants)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "training_records": len(self.training_data) if self.training_data is not None else None,
            "test_records": len(self.test_data) if self.test_data is not None else None,
            "trained": self.is_trained,
            "trained_variants": list(self.trained_variants),
            "has_results": self.evaluation is not None and not self.evaluation.is_empty,
            "log_size": self.log_size,
        }
