"""
scikit-learn classifier variants for the workbench.

Both variants share the same feature extraction: Snowball-stemmed tokens,
unigram and bigram TF-IDF features. They differ in the estimator:

- ``linear-svc``: linear support vector classifier
- ``maxent``: maximum entropy (multinomial logistic regression)
"""

import logging
import re
from typing import List, Optional, Tuple

import numpy as np
from nltk.stem.snowball import SnowballStemmer
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.svm import LinearSVC

from .config import ModelConfig, config as workbench_config
from .exceptions import InferenceError, TrainingError
from .models.data_models import Dataset, ModelHandle, Prediction
from .services.interfaces import ClassifierInterface


logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"(?u)\b\w\w+\b")


class StemmingTokenizer:
    """Splits text into word tokens and reduces each to its Snowball stem."""

    def __init__(self, language: str = "english"):
        self.language = language
        self._stemmer = SnowballStemmer(language)

    def __call__(self, text: str) -> List[str]:
        return [self._stemmer.stem(token) for token in TOKEN_PATTERN.findall(text)]


def _softmax(scores: np.ndarray) -> np.ndarray:
    shifted = scores - scores.max(axis=1, keepdims=True)
    exp = np.exp(shifted)
    return exp / exp.sum(axis=1, keepdims=True)


class SklearnTextClassifier(ClassifierInterface):
    """Base class for TF-IDF based scikit-learn classifiers."""

    def __init__(self, model_config: Optional[ModelConfig] = None):
        self.config = model_config or workbench_config.models

    def _build_estimator(self):
        raise NotImplementedError

    def _class_probabilities(self, pipeline: Pipeline, texts: List[str]) -> np.ndarray:
        raise NotImplementedError

    def build_pipeline(self) -> Pipeline:
        """Build an unfitted feature extraction + estimator pipeline."""
        vectorizer = TfidfVectorizer(
            tokenizer=StemmingTokenizer(self.config.stemmer_language),
            token_pattern=None,
            lowercase=True,
            ngram_range=(1, self.config.ngram_max),
            max_features=self.config.max_features,
            min_df=self.config.min_df,
            sublinear_tf=True
        )
        return Pipeline(
            steps=[
                ("tfidf", vectorizer),
                ("clf", self._build_estimator()),
            ]
        )

    def train(self, dataset: Dataset) -> ModelHandle:
        labeled = [record for record in dataset if record.label is not None]
        if not labeled:
            raise TrainingError(f"No labeled records to train '{self.name}' on")

        distinct = {record.label for record in labeled}
        if len(distinct) < 2:
            raise TrainingError(
                f"Training '{self.name}' needs at least two classes, got {sorted(distinct)}"
            )

        logger.info(f"Training {self.display_name} on {len(labeled)} records, {len(distinct)} classes")

        pipeline = self.build_pipeline()
        try:
            pipeline.fit([record.text for record in labeled], [record.label for record in labeled])
        except ValueError as e:
            raise TrainingError(f"Training '{self.name}' failed: {str(e)}")

        return ModelHandle(variant=self.name, trained=True, model=pipeline)

    def predict(self, handle: ModelHandle, text: str) -> Tuple[str, float]:
        self._require_trained(handle)
        labels, confidences = self._predict_texts(handle.model, [text])
        return labels[0], confidences[0]

    def predict_batch(self, handle: ModelHandle, dataset: Dataset) -> List[Prediction]:
        self._require_trained(handle)
        if not len(dataset):
            return []

        labels, confidences = self._predict_texts(handle.model, dataset.texts())
        return [
            Prediction(
                record_id=record.record_id,
                model_variant=self.name,
                predicted_label=label,
                confidence=confidence
            )
            for record, label, confidence in zip(dataset, labels, confidences)
        ]

    def _predict_texts(self, pipeline: Pipeline, texts: List[str]) -> Tuple[List[str], List[float]]:
        try:
            probabilities = self._class_probabilities(pipeline, texts)
        except ValueError as e:
            raise InferenceError(f"Inference with '{self.name}' failed: {str(e)}")

        classes = pipeline.classes_
        best = probabilities.argmax(axis=1)
        labels = [str(classes[index]) for index in best]
        confidences = [float(np.clip(probabilities[row, index], 0.0, 1.0)) for row, index in enumerate(best)]
        return labels, confidences


class LinearSVCClassifier(SklearnTextClassifier):
    """Linear SVC over stemmed unigram/bigram TF-IDF features."""

    name = "linear-svc"
    display_name = "Linear SVC"

    def _build_estimator(self):
        return LinearSVC(C=self.config.svc_c)

    def _class_probabilities(self, pipeline: Pipeline, texts: List[str]) -> np.ndarray:
        scores = np.asarray(pipeline.decision_function(texts), dtype=float)
        if scores.ndim == 1:
            # binary problems return the positive-class margin only
            scores = np.column_stack([-scores, scores])
        return _softmax(scores)


class MaxEntClassifier(SklearnTextClassifier):
    """Maximum entropy classifier over stemmed unigram/bigram TF-IDF features."""

    name = "maxent"
    display_name = "Maximum Entropy"

    def _build_estimator(self):
        return LogisticRegression(C=self.config.maxent_c, max_iter=self.config.maxent_max_iter)

    def _class_probabilities(self, pipeline: Pipeline, texts: List[str]) -> np.ndarray:
        return np.asarray(pipeline.predict_proba(texts), dtype=float)


def default_classifiers(model_config: Optional[ModelConfig] = None) -> List[ClassifierInterface]:
    """The two variants offered by the workbench out of the box."""
    return [MaxEntClassifier(model_config), LinearSVCClassifier(model_config)]
