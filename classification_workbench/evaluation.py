"""
Evaluation of classifier outputs against ground truth.

Computes per-record correctness and per-variant accuracy for one test run.
The computation is a pure function of the test dataset and the predictions.
"""

from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np

from .config import ExportConfig, config as workbench_config
from .exceptions import InferenceError
from .models.data_models import AccuracySummary, Dataset, EvaluationResult, Prediction


PredictionsByVariant = Mapping[str, Union[Mapping[int, str], Iterable[Prediction]]]


def make_excerpt(text: str, preview_length: int = 100, truncation_marker: str = "...") -> str:
    """Cut a narrative to a bounded preview, appending the marker when cut."""
    if len(text) <= preview_length:
        return text
    return text[:preview_length] + truncation_marker


def _labels_by_record(variant: str, predictions) -> Dict[int, str]:
    if isinstance(predictions, Mapping):
        return dict(predictions)

    labels: Dict[int, str] = {}
    for prediction in predictions:
        if prediction.model_variant != variant:
            raise InferenceError(
                f"Prediction from variant '{prediction.model_variant}' filed under '{variant}'"
            )
        labels[prediction.record_id] = prediction.predicted_label
    return labels


def evaluate(
    test_dataset: Dataset,
    predictions_by_variant: PredictionsByVariant,
    preview_length: int = 100,
    truncation_marker: str = "..."
) -> Tuple[Tuple[EvaluationResult, ...], AccuracySummary]:
    """
    Compare predictions with ground truth.

    Args:
        test_dataset: Labeled test dataset
        predictions_by_variant: For each variant, either a mapping of record id to
            predicted label or an iterable of Prediction objects
        preview_length: Maximum narrative excerpt length
        truncation_marker: Appended to cut excerpts

    Returns:
        Tuple of (one EvaluationResult per record, AccuracySummary)

    Raises:
        InferenceError: If a variant has no prediction for some record
    """
    variants = list(predictions_by_variant)
    labels = {
        variant: _labels_by_record(variant, predictions_by_variant[variant])
        for variant in variants
    }

    total = len(test_dataset)
    correct = np.zeros((len(variants), total), dtype=bool)
    results: List[EvaluationResult] = []

    for column, record in enumerate(test_dataset):
        predicted: Dict[str, str] = {}
        correctness: Dict[str, bool] = {}
        for row, variant in enumerate(variants):
            try:
                label = labels[variant][record.record_id]
            except KeyError:
                raise InferenceError(
                    f"Variant '{variant}' produced no prediction for record {record.record_id}"
                )
            predicted[variant] = label
            # exact, case-sensitive; a record without ground truth is never correct
            is_correct = record.label is not None and label == record.label
            correctness[variant] = is_correct
            correct[row, column] = is_correct

        results.append(
            EvaluationResult(
                id=record.record_id,
                narrative_excerpt=make_excerpt(record.text, preview_length, truncation_marker),
                actual_label=record.label,
                predictions_by_variant=predicted,
                correctness_by_variant=correctness
            )
        )

    accuracy: Dict[str, Optional[float]] = {}
    counts = correct.sum(axis=1)
    for row, variant in enumerate(variants):
        accuracy[variant] = round(100.0 * int(counts[row]) / total, 1) if total else None

    return tuple(results), AccuracySummary(accuracy_by_variant=accuracy, total_records=total)


def confusion_counts(results: Iterable[EvaluationResult], variant: str) -> Dict[Tuple[Optional[str], str], int]:
    """
    Count (actual, predicted) label pairs for one variant.

    Args:
        results: Evaluation results of a test run
        variant: Variant to tabulate

    Returns:
        Mapping of (actual label, predicted label) to occurrence count
    """
    counter: Counter = Counter()
    for result in results:
        if variant in result.predictions_by_variant:
            counter[(result.actual_label, result.predictions_by_variant[variant])] += 1
    return dict(counter)


class EvaluationEngine:
    """Evaluates test runs using the configured excerpt settings."""

    def __init__(self, export_config: Optional[ExportConfig] = None):
        self.config = export_config or workbench_config.export

    def evaluate(
        self,
        test_dataset: Dataset,
        predictions_by_variant: PredictionsByVariant
    ) -> Tuple[Tuple[EvaluationResult, ...], AccuracySummary]:
        return evaluate(
            test_dataset,
            predictions_by_variant,
            preview_length=self.config.preview_length,
            truncation_marker=self.config.truncation_marker
        )
