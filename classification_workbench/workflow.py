"""
Workflow controller for the classification workbench.

This module provides the WorkflowController, the single owner of the session
state (uploaded datasets, trained model handles, evaluation results) and the
state machine that gates and sequences upload, train, test, classify and
export actions.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

from .config import WorkbenchConfig, config as default_config
from .dataset_parser import TabularDatasetParser
from .evaluation import EvaluationEngine
from .event_log import EventLog
from .exceptions import (
    BusyError,
    ConfigurationError,
    ExportError,
    InferenceError,
    PreconditionError,
    SchemaError,
    TrainingError,
    WorkbenchError
)
from .models.data_models import (
    ClassificationOutcome,
    Dataset,
    DatasetRole,
    EvaluationSnapshot,
    ModelHandle,
    Prediction,
    WorkbenchSnapshot,
    WorkflowState
)
from .result_exporter import ResultExporter
from .services.interfaces import ClassifierInterface


logger = logging.getLogger(__name__)

PREPARATION_STEPS = (
    "Preprocessing text data...",
    "Tokenizing narratives...",
    "Extracting features...",
)


class WorkflowController:
    """
    State machine orchestrating upload → train → test/classify → export.

    Train, batch test and classify are coroutines that suspend while the
    classifier adapters work in a thread pool. Only one of them may be in
    flight at a time; a second invocation fails fast with BusyError instead of
    queuing. In-flight actions cannot be cancelled.

    Every failed action is logged once as an error entry and re-raised; the
    state, datasets, model handles and results held before the action are
    left untouched.
    """

    def __init__(
        self,
        classifiers: Sequence[ClassifierInterface],
        workbench_config: Optional[WorkbenchConfig] = None,
        event_log: Optional[EventLog] = None,
        executor: Optional[ThreadPoolExecutor] = None
    ):
        """
        Initialize the controller.

        Args:
            classifiers: Classifier variants to train and evaluate, in display order
            workbench_config: Library configuration (global config if not provided)
            event_log: Log sink (a new one if not provided)
            executor: Thread pool for classifier work (created on first use if not provided)

        Raises:
            ConfigurationError: If no classifiers are given or variant names collide
        """
        if not classifiers:
            raise ConfigurationError("At least one classifier must be registered")

        names = [classifier.name for classifier in classifiers]
        if any(not name for name in names):
            raise ConfigurationError("Every classifier needs a variant name")
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate classifier variant names: {names}")

        self.config = workbench_config or default_config
        self._classifiers = tuple(classifiers)
        self._parser = TabularDatasetParser(self.config.dataset)
        self._engine = EvaluationEngine(self.config.export)
        self._exporter = ResultExporter(self.config.export, self.config.dataset)
        self._log = event_log or EventLog()
        self._executor = executor
        self._owns_executor = executor is None

        self._state = WorkflowState.IDLE
        self._training_data: Optional[Dataset] = None
        self._test_data: Optional[Dataset] = None
        self._handles: Mapping[str, ModelHandle] = MappingProxyType({})
        self._evaluation: Optional[EvaluationSnapshot] = None
        self._last_classification: Optional[ClassificationOutcome] = None

    # Read accessors

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def classifiers(self) -> tuple:
        return self._classifiers

    @property
    def variants(self) -> List[str]:
        return [classifier.name for classifier in self._classifiers]

    @property
    def training_data(self) -> Optional[Dataset]:
        return self._training_data

    @property
    def test_data(self) -> Optional[Dataset]:
        return self._test_data

    @property
    def model_handles(self) -> Mapping[str, ModelHandle]:
        return self._handles

    @property
    def is_trained(self) -> bool:
        return bool(self._handles) and all(handle.trained for handle in self._handles.values())

    @property
    def evaluation(self) -> Optional[EvaluationSnapshot]:
        return self._evaluation

    @property
    def last_classification(self) -> Optional[ClassificationOutcome]:
        return self._last_classification

    @property
    def event_log(self) -> EventLog:
        return self._log

    def snapshot(self) -> WorkbenchSnapshot:
        """Immutable view of the current session."""
        return WorkbenchSnapshot(
            state=self._state,
            training_data=self._training_data,
            test_data=self._test_data,
            trained_variants=tuple(self._handles) if self.is_trained else (),
            evaluation=self._evaluation,
            last_classification=self._last_classification,
            log_size=len(self._log)
        )

    # Uploads

    def upload_training_data(self, content: Union[str, bytes], source_name: Optional[str] = None) -> Dataset:
        """
        Replace the training dataset.

        Permitted in every state. Does not retrain or invalidate existing model
        handles; they stay usable until the next explicit train action.

        Raises:
            SchemaError: If the table is malformed (the previous dataset is kept)
        """
        dataset = self._upload(content, DatasetRole.TRAINING, source_name)
        self._training_data = dataset
        if self._state == WorkflowState.IDLE:
            self._state = WorkflowState.DATA_LOADED
        return dataset

    def upload_test_data(self, content: Union[str, bytes], source_name: Optional[str] = None) -> Dataset:
        """
        Replace the test dataset. Permitted in every state.

        Raises:
            SchemaError: If the table is malformed (the previous dataset is kept)
        """
        dataset = self._upload(content, DatasetRole.TEST, source_name)
        self._test_data = dataset
        return dataset

    def _upload(self, content: Union[str, bytes], role: DatasetRole, source_name: Optional[str]) -> Dataset:
        try:
            dataset = self._parser.parse(content, role=role, source_name=source_name)
        except SchemaError as e:
            if e.missing_columns:
                self._log.error(
                    f"Error: {role.display_name} file must contain "
                    f"'{self.config.dataset.narrative_column}' and "
                    f"'{self.config.dataset.label_column}' columns"
                )
            else:
                self._log.error(f"Error loading {role.display_name} data: {e}")
            raise

        self._log.success(f"{role.display_name} data loaded: {len(dataset)} records")
        return dataset

    # Actions

    async def train(self) -> Mapping[str, ModelHandle]:
        """
        Train every registered classifier on the current training dataset.

        Re-training is permitted and replaces the previous handles as a whole.

        Returns:
            Read-only mapping of variant name to its new model handle

        Raises:
            BusyError: If another action is in flight
            PreconditionError: If no training data has been uploaded
            TrainingError: If any classifier fails (previous handles are kept)
        """
        self._ensure_idle("train the models")
        if self._training_data is None:
            self._reject(PreconditionError("Please upload training data first"))

        previous = self._claim(WorkflowState.TRAINING)
        dataset = self._training_data
        try:
            self._log.info("Starting model training...")
            for step in PREPARATION_STEPS:
                self._log.info(step)
                await self._pause()

            handles: Dict[str, ModelHandle] = {}
            for classifier in self._classifiers:
                self._log.info(f"Training {classifier.display_name or classifier.name} model...")
                handles[classifier.name] = await self._run_blocking(
                    self._train_one, classifier, dataset
                )
                await self._pause()

            self._log.info("Validating models...")
            self._validate_handles(handles)
            await self._pause()
        except BaseException as e:
            self._fail_action(previous, e, TrainingError)

        self._handles = MappingProxyType(handles)
        self._state = WorkflowState.TRAINED
        self._log.success("Models trained successfully!")
        return self._handles

    async def run_batch_test(self) -> EvaluationSnapshot:
        """
        Classify the test dataset with every trained variant and score the results.

        Returns:
            The new evaluation snapshot, which atomically replaces the previous one

        Raises:
            BusyError: If another action is in flight
            PreconditionError: If the models are not trained or no test data is loaded
            InferenceError: If any classifier fails (previous results are kept)
        """
        self._ensure_idle("run the batch test")
        if not self.is_trained:
            self._reject(PreconditionError("Please train the models first"))
        if self._test_data is None:
            self._reject(PreconditionError("Please upload test data first"))

        previous = self._claim(WorkflowState.TESTING)
        dataset = self._test_data
        handles = self._handles
        try:
            self._log.info("Starting classification testing...")
            batches = await self._dispatch(
                lambda classifier: self._predict_batch_one(classifier, handles[classifier.name], dataset)
            )
            results, summary = self._engine.evaluate(dataset, batches)
            snapshot = EvaluationSnapshot(results=results, summary=summary)
        except BaseException as e:
            self._fail_action(previous, e, InferenceError)

        self._evaluation = snapshot
        self._state = WorkflowState.TESTED
        self._log.success(f"Testing completed. {summary.format()}")
        return snapshot

    async def classify_text(self, text: str) -> ClassificationOutcome:
        """
        Classify one ad-hoc text with every trained variant.

        Does not read or modify the test dataset or the evaluation results.

        Raises:
            BusyError: If another action is in flight
            PreconditionError: If the models are not trained or the text is blank
            InferenceError: If any classifier fails
        """
        self._ensure_idle("classify text")
        if not self.is_trained:
            self._reject(PreconditionError("Please train the models first"))
        if not text or not text.strip():
            self._reject(PreconditionError("Please enter text to classify"))

        previous = self._claim(WorkflowState.CLASSIFYING)
        handles = self._handles
        try:
            self._log.info("Classifying text...")
            predictions = await self._dispatch(
                lambda classifier: self._predict_one(classifier, handles[classifier.name], text)
            )
            outcome = ClassificationOutcome(
                text=text,
                predictions=tuple(predictions[classifier.name] for classifier in self._classifiers)
            )
        except BaseException as e:
            self._fail_action(previous, e, InferenceError)

        self._last_classification = outcome
        self._state = previous
        self._log.success("Text classified successfully")
        return outcome

    def export_results(self) -> bytes:
        """
        Serialize the current evaluation results. Does not change state.

        Raises:
            ExportError: If there are no results to export
        """
        evaluation = self._evaluation
        if evaluation is None or evaluation.is_empty:
            self._reject(ExportError("No results to export"))

        try:
            data = self._exporter.export(evaluation.results, evaluation.variants)
        except ExportError as e:
            self._reject(e)

        self._log.success("Results exported successfully")
        return data

    def close(self) -> None:
        """Shut down the thread pool if the controller created it."""
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=True)
            self._executor = None

    # Internals

    def _reject(self, error: WorkbenchError) -> None:
        self._log.error(str(error))
        raise error

    def _ensure_idle(self, action: str) -> None:
        if self._state.is_busy:
            self._reject(BusyError(f"Cannot {action} while {self._state.value} is in progress"))

    def _claim(self, busy_state: WorkflowState) -> WorkflowState:
        # no await between the busy check and this assignment
        previous = self._state
        self._state = busy_state
        return previous

    def _fail_action(self, previous: WorkflowState, error: BaseException, wrap: type) -> None:
        self._state = previous
        if not isinstance(error, Exception):
            # task cancellation or interpreter shutdown; nothing to report
            raise error
        if not isinstance(error, WorkbenchError):
            logger.exception("Unexpected classifier failure")
            error = wrap(f"{type(error).__name__}: {error}")
        self._log.error(str(error))
        raise error

    async def _pause(self) -> None:
        await asyncio.sleep(self.config.workflow.step_delay)

    async def _run_blocking(self, func: Callable, *args):
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.workflow.max_workers,
                thread_name_prefix="workbench"
            )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    async def _dispatch(self, call: Callable[[ClassifierInterface], object]) -> Dict[str, object]:
        """Run one blocking call per classifier and join all of them."""
        if self.config.workflow.parallel_adapters:
            outputs = await asyncio.gather(
                *(self._run_blocking(call, classifier) for classifier in self._classifiers)
            )
        else:
            outputs = []
            for classifier in self._classifiers:
                outputs.append(await self._run_blocking(call, classifier))
        return {classifier.name: output for classifier, output in zip(self._classifiers, outputs)}

    def _validate_handles(self, handles: Dict[str, ModelHandle]) -> None:
        for classifier in self._classifiers:
            handle = handles.get(classifier.name)
            if not isinstance(handle, ModelHandle) or not handle.trained:
                raise TrainingError(f"Model '{classifier.name}' did not report a trained handle")
            if handle.variant != classifier.name:
                raise TrainingError(
                    f"Model '{classifier.name}' returned a handle for variant '{handle.variant}'"
                )

    @staticmethod
    def _train_one(classifier: ClassifierInterface, dataset: Dataset) -> ModelHandle:
        try:
            return classifier.train(dataset)
        except WorkbenchError:
            raise
        except Exception as e:
            raise TrainingError(f"Training {classifier.name} failed: {e}")

    @staticmethod
    def _predict_batch_one(
        classifier: ClassifierInterface,
        handle: ModelHandle,
        dataset: Dataset
    ) -> List[Prediction]:
        try:
            predictions = list(classifier.predict_batch(handle, dataset))
        except WorkbenchError:
            raise
        except Exception as e:
            raise InferenceError(f"Batch inference with {classifier.name} failed: {e}")

        if len(predictions) != len(dataset):
            raise InferenceError(
                f"{classifier.name} returned {len(predictions)} predictions for {len(dataset)} records"
            )
        return predictions

    @staticmethod
    def _predict_one(classifier: ClassifierInterface, handle: ModelHandle, text: str) -> Prediction:
        try:
            label, confidence = classifier.predict(handle, text)
            return Prediction(
                record_id=None,
                model_variant=classifier.name,
                predicted_label=label,
                confidence=float(confidence)
            )
        except WorkbenchError:
            raise
        except Exception as e:
            raise InferenceError(f"Inference with {classifier.name} failed: {e}")
