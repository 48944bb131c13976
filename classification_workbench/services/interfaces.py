"""
Core interfaces for the classification workbench services.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

from ..exceptions import InferenceError
from ..models import Dataset, ModelHandle, Prediction


class ClassifierInterface(ABC):
    """
    Interface for a pluggable text classifier variant.

    The workflow controller calls ``train`` once per training run and uses the
    returned handle for every later ``predict``/``predict_batch`` call until the
    next training run supersedes it.
    """

    #: Variant name used as the key in predictions, results and exports
    name: str = ""

    #: Human-readable name used in progress messages
    display_name: str = ""

    @abstractmethod
    def train(self, dataset: Dataset) -> ModelHandle:
        """
        Train a model on a labeled dataset.

        Args:
            dataset: Training dataset

        Returns:
            A new handle with ``trained=True``

        Raises:
            TrainingError: If training fails
        """
        pass

    @abstractmethod
    def predict(self, handle: ModelHandle, text: str) -> Tuple[str, float]:
        """
        Classify a single text.

        Args:
            handle: Handle returned by ``train``
            text: Text to classify

        Returns:
            Tuple of (label, confidence between 0.0 and 1.0)

        Raises:
            InferenceError: If inference fails
        """
        pass

    def predict_batch(self, handle: ModelHandle, dataset: Dataset) -> List[Prediction]:
        """
        Classify every record of a dataset.

        Args:
            handle: Handle returned by ``train``
            dataset: Dataset to classify

        Returns:
            One prediction per record, in dataset order
        """
        predictions = []
        for record in dataset:
            label, confidence = self.predict(handle, record.text)
            predictions.append(
                Prediction(
                    record_id=record.record_id,
                    model_variant=self.name,
                    predicted_label=label,
                    confidence=confidence
                )
            )
        return predictions

    def _require_trained(self, handle: ModelHandle) -> None:
        """
        Check that a handle belongs to this variant and is usable for inference.

        Raises:
            InferenceError: If the handle is untrained or foreign
        """
        if handle is None or not handle.trained:
            raise InferenceError(f"Model '{self.name}' is not trained")
        if handle.variant != self.name:
            raise InferenceError(
                f"Handle for variant '{handle.variant}' cannot be used by '{self.name}'"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
