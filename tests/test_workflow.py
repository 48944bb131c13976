"""
Tests for the WorkflowController state machine.
"""

import asyncio
from typing import Tuple

import pytest

from classification_workbench.config import (
    AWSConfig,
    DatasetConfig,
    ExportConfig,
    LLMClassifierConfig,
    ModelConfig,
    WorkbenchConfig,
    WorkflowConfig
)
from classification_workbench.exceptions import (
    BusyError,
    ConfigurationError,
    ExportError,
    InferenceError,
    PreconditionError,
    SchemaError,
    TrainingError
)
from classification_workbench.models.data_models import (
    Dataset,
    LogKind,
    ModelHandle,
    WorkflowState
)
from classification_workbench.services.interfaces import ClassifierInterface
from classification_workbench.workflow import WorkflowController


TRAINING_CSV = "NARRATIVE,classification\nbike taken,THEFT\nman punched,ASSAULT\n"
TEST_CSV = "NARRATIVE,classification\nbike taken,THEFT\nman punched,ASSAULT\n"


class StubClassifier(ClassifierInterface):
    """Classifier that always predicts the same label."""

    def __init__(self, name="stub", label="THEFT", confidence=0.75, fail_train=False, fail_predict=False):
        self.name = name
        self.display_name = name.capitalize()
        self.label = label
        self.confidence = confidence
        self.fail_train = fail_train
        self.fail_predict = fail_predict
        self.train_calls = 0

    def train(self, dataset: Dataset) -> ModelHandle:
        self.train_calls += 1
        if self.fail_train:
            raise RuntimeError("boom")
        return ModelHandle(variant=self.name, trained=True, model={"size": len(dataset)})

    def predict(self, handle: ModelHandle, text: str) -> Tuple[str, float]:
        self._require_trained(handle)
        if self.fail_predict:
            raise RuntimeError("inference exploded")
        return self.label, self.confidence


def make_config(**workflow_overrides) -> WorkbenchConfig:
    return WorkbenchConfig(
        dataset=DatasetConfig(),
        export=ExportConfig(),
        workflow=WorkflowConfig(**workflow_overrides),
        models=ModelConfig(),
        aws=AWSConfig(),
        llm=LLMClassifierConfig()
    )


def messages(controller):
    return [entry.message for entry in controller.event_log]


class TestWorkflowController:
    """Test cases for WorkflowController."""

    def setup_method(self):
        """Set up test fixtures."""
        self.stub = StubClassifier()
        self.controller = WorkflowController([self.stub], make_config())

    def teardown_method(self):
        """Release the controller's thread pool."""
        self.controller.close()

    def load_and_train(self):
        self.controller.upload_training_data(TRAINING_CSV)
        asyncio.run(self.controller.train())

    def test_initial_state(self):
        """Test a new controller is idle with nothing loaded."""
        assert self.controller.state == WorkflowState.IDLE
        assert self.controller.training_data is None
        assert self.controller.test_data is None
        assert self.controller.is_trained is False
        assert self.controller.evaluation is None
        assert len(self.controller.event_log) == 0

    def test_requires_classifiers(self):
        """Test controller construction validation."""
        with pytest.raises(ConfigurationError, match="At least one classifier"):
            WorkflowController([], make_config())

        with pytest.raises(ConfigurationError, match="Duplicate classifier variant names"):
            WorkflowController([StubClassifier("a"), StubClassifier("a")], make_config())

    def test_upload_training_data(self):
        """Test a valid training upload moves idle to data_loaded and is logged."""
        dataset = self.controller.upload_training_data(TRAINING_CSV, source_name="train.csv")

        assert len(dataset) == 2
        assert self.controller.state == WorkflowState.DATA_LOADED
        entry = self.controller.event_log.entries()[-1]
        assert entry.message == "Training data loaded: 2 records"
        assert entry.kind == LogKind.SUCCESS

    def test_upload_missing_columns(self):
        """Test a schema error is logged, re-raised and leaves state untouched."""
        with pytest.raises(SchemaError):
            self.controller.upload_training_data("text,label\nfoo,bar\n")

        assert self.controller.state == WorkflowState.IDLE
        assert self.controller.training_data is None
        entry = self.controller.event_log.entries()[-1]
        assert entry.kind == LogKind.ERROR
        assert entry.message == "Error: Training file must contain 'NARRATIVE' and 'classification' columns"

    def test_failed_upload_keeps_previous_dataset(self):
        """Test a bad upload does not replace a good one."""
        first = self.controller.upload_test_data(TEST_CSV)

        with pytest.raises(SchemaError):
            self.controller.upload_test_data("NARRATIVE\nonly text\n")

        assert self.controller.test_data is first
        assert messages(self.controller)[-1] == "Error: Test file must contain 'NARRATIVE' and 'classification' columns"

    def test_train_without_data(self):
        """Test training before upload is rejected and logged."""
        with pytest.raises(PreconditionError, match="Please upload training data first"):
            asyncio.run(self.controller.train())

        assert self.controller.state == WorkflowState.IDLE
        assert messages(self.controller) == ["Please upload training data first"]

    def test_train_logs_progress_and_succeeds(self):
        """Test training emits progress entries in order and stores handles."""
        self.load_and_train()

        assert self.controller.state == WorkflowState.TRAINED
        assert self.controller.is_trained
        assert set(self.controller.model_handles) == {"stub"}
        assert messages(self.controller)[1:] == [
            "Starting model training...",
            "Preprocessing text data...",
            "Tokenizing narratives...",
            "Extracting features...",
            "Training Stub model...",
            "Validating models...",
            "Models trained successfully!",
        ]
        assert self.controller.event_log.entries()[-1].kind == LogKind.SUCCESS

    def test_retrain_replaces_handles(self):
        """Test training twice is permitted and yields fresh handles."""
        self.load_and_train()
        first = self.controller.model_handles["stub"]

        asyncio.run(self.controller.train())

        assert self.controller.state == WorkflowState.TRAINED
        assert self.controller.model_handles["stub"].handle_id != first.handle_id
        assert self.stub.train_calls == 2

    def test_failed_retrain_keeps_previous_handles(self):
        """Test a training failure leaves the prior state and handles intact."""
        self.load_and_train()
        first = self.controller.model_handles["stub"]
        self.stub.fail_train = True

        with pytest.raises(TrainingError, match="Training stub failed: boom"):
            asyncio.run(self.controller.train())

        assert self.controller.state == WorkflowState.TRAINED
        assert self.controller.model_handles["stub"] is first
        entry = self.controller.event_log.entries()[-1]
        assert entry.kind == LogKind.ERROR
        assert "boom" in entry.message

    def test_failed_first_training_returns_to_data_loaded(self):
        """Test a failure on first training restores data_loaded."""
        self.stub.fail_train = True
        self.controller.upload_training_data(TRAINING_CSV)

        with pytest.raises(TrainingError):
            asyncio.run(self.controller.train())

        assert self.controller.state == WorkflowState.DATA_LOADED
        assert self.controller.is_trained is False

    def test_upload_after_training_does_not_retrain(self):
        """Test replacing training data keeps the trained handles and state."""
        self.load_and_train()
        handle = self.controller.model_handles["stub"]

        self.controller.upload_training_data("NARRATIVE,classification\nnew,X\nother,Y\nmore,Z\n")

        assert self.controller.state == WorkflowState.TRAINED
        assert self.controller.model_handles["stub"] is handle
        assert len(self.controller.training_data) == 3
        assert self.stub.train_calls == 1

    def test_batch_test_requires_training(self):
        """Test batch test before training is rejected."""
        self.controller.upload_test_data(TEST_CSV)

        with pytest.raises(PreconditionError, match="Please train the models first"):
            asyncio.run(self.controller.run_batch_test())

        assert messages(self.controller)[-1] == "Please train the models first"

    def test_batch_test_requires_test_data(self):
        """Test batch test before test upload is rejected."""
        self.load_and_train()

        with pytest.raises(PreconditionError, match="Please upload test data first"):
            asyncio.run(self.controller.run_batch_test())

        assert self.controller.state == WorkflowState.TRAINED

    def test_end_to_end_batch_test(self):
        """Test a stub predicting THEFT scores one right and one wrong."""
        self.load_and_train()
        self.controller.upload_test_data(TEST_CSV)

        evaluation = asyncio.run(self.controller.run_batch_test())

        assert self.controller.state == WorkflowState.TESTED
        assert evaluation.summary["stub"] == 50.0
        assert evaluation.results[0].correctness_by_variant["stub"] is True
        assert evaluation.results[1].correctness_by_variant["stub"] is False
        assert self.controller.evaluation is evaluation
        assert messages(self.controller)[-2:] == [
            "Starting classification testing...",
            "Testing completed. stub: 50.0%",
        ]

    def test_failed_batch_test_keeps_previous_results(self):
        """Test an inference failure keeps the earlier evaluation."""
        self.load_and_train()
        self.controller.upload_test_data(TEST_CSV)
        first = asyncio.run(self.controller.run_batch_test())
        self.stub.fail_predict = True

        with pytest.raises(InferenceError, match="inference exploded"):
            asyncio.run(self.controller.run_batch_test())

        assert self.controller.state == WorkflowState.TESTED
        assert self.controller.evaluation is first

    def test_classify_text(self):
        """Test single-text classification returns one prediction per variant."""
        self.load_and_train()

        outcome = asyncio.run(self.controller.classify_text("someone took my wallet"))

        assert self.controller.state == WorkflowState.TRAINED
        assert len(outcome.predictions) == 1
        prediction = outcome.predictions[0]
        assert prediction.model_variant == "stub"
        assert prediction.predicted_label == "THEFT"
        assert prediction.confidence == 0.75
        assert prediction.record_id is None
        assert self.controller.last_classification is outcome
        assert messages(self.controller)[-2:] == ["Classifying text...", "Text classified successfully"]

    def test_classify_does_not_touch_results(self):
        """Test classification after a batch test returns to tested with results intact."""
        self.load_and_train()
        self.controller.upload_test_data(TEST_CSV)
        evaluation = asyncio.run(self.controller.run_batch_test())

        asyncio.run(self.controller.classify_text("window smashed"))

        assert self.controller.state == WorkflowState.TESTED
        assert self.controller.evaluation is evaluation

    def test_classify_rejects_blank_text(self):
        """Test whitespace-only text is rejected."""
        self.load_and_train()

        with pytest.raises(PreconditionError, match="Please enter text to classify"):
            asyncio.run(self.controller.classify_text("   "))

        assert messages(self.controller)[-1] == "Please enter text to classify"

    def test_classify_requires_training(self):
        """Test classification before training is rejected."""
        with pytest.raises(PreconditionError, match="Please train the models first"):
            asyncio.run(self.controller.classify_text("anything"))

    def test_export_without_results(self):
        """Test export before a batch test is rejected and logged."""
        with pytest.raises(ExportError, match="No results to export"):
            self.controller.export_results()

        assert messages(self.controller) == ["No results to export"]

    def test_export_after_batch_test(self):
        """Test export serializes results and leaves state unchanged."""
        self.load_and_train()
        self.controller.upload_test_data(TEST_CSV)
        asyncio.run(self.controller.run_batch_test())

        data = self.controller.export_results()

        lines = data.decode("utf-8").splitlines()
        assert lines[0] == "ID,Narrative,Actual,stub,stub_Correct"
        assert lines[1] == "1,bike taken,THEFT,THEFT,true"
        assert lines[2] == "2,man punched,ASSAULT,THEFT,false"
        assert self.controller.state == WorkflowState.TESTED
        assert messages(self.controller)[-1] == "Results exported successfully"

    def test_export_of_empty_test_set(self):
        """Test a batch test over an empty test set gives nothing to export."""
        self.load_and_train()
        self.controller.upload_test_data("NARRATIVE,classification\n")

        evaluation = asyncio.run(self.controller.run_batch_test())

        assert evaluation.summary["stub"] is None
        assert messages(self.controller)[-1] == "Testing completed. stub: no data"
        with pytest.raises(ExportError):
            self.controller.export_results()

    def test_second_train_while_training_is_busy(self):
        """Test a second action while training is in flight fails fast."""
        self.controller.upload_training_data(TRAINING_CSV)

        async def scenario():
            task = asyncio.create_task(self.controller.train())
            await asyncio.sleep(0)
            assert self.controller.state == WorkflowState.TRAINING

            with pytest.raises(BusyError):
                await self.controller.train()
            with pytest.raises(BusyError):
                await self.controller.classify_text("text")

            await task

        asyncio.run(scenario())

        assert self.controller.state == WorkflowState.TRAINED
        assert self.stub.train_calls == 1
        assert messages(self.controller)[-1] == "Models trained successfully!"

    def test_second_batch_test_while_testing_is_busy(self):
        """Test a second batch test during an in-flight one fails fast and leaves its result intact."""
        self.load_and_train()
        self.controller.upload_test_data(TEST_CSV)
        log_start = len(self.controller.event_log)

        async def scenario():
            task = asyncio.create_task(self.controller.run_batch_test())
            await asyncio.sleep(0)
            assert self.controller.state == WorkflowState.TESTING

            with pytest.raises(BusyError):
                await self.controller.run_batch_test()
            with pytest.raises(BusyError):
                await self.controller.train()

            return await task

        evaluation = asyncio.run(scenario())

        assert evaluation.summary["stub"] == 50.0
        assert self.controller.evaluation is evaluation
        assert self.controller.state == WorkflowState.TESTED
        assert self.stub.train_calls == 1
        kinds = [entry.kind for entry in self.controller.event_log.entries()[log_start:]]
        assert kinds == [LogKind.INFO, LogKind.ERROR, LogKind.ERROR, LogKind.SUCCESS]

    def test_snapshot(self):
        """Test the snapshot reflects the session."""
        self.load_and_train()

        snapshot = self.controller.snapshot()

        assert snapshot.state == WorkflowState.TRAINED
        assert snapshot.trained_variants == ("stub",)
        assert snapshot.to_dict()["training_records"] == 2
        assert snapshot.to_dict()["test_records"] is None


class TestMultipleVariants:
    """Test cases with more than one classifier variant."""

    @pytest.mark.parametrize("parallel", [True, False])
    def test_variants_keep_registration_order(self, parallel):
        """Test predictions and accuracy follow registration order whether dispatched in parallel or not."""
        classifiers = [StubClassifier("maxent", "THEFT"), StubClassifier("linear-svc", "ASSAULT")]
        controller = WorkflowController(classifiers, make_config(parallel_adapters=parallel))
        try:
            controller.upload_training_data(TRAINING_CSV)
            controller.upload_test_data(TEST_CSV)
            asyncio.run(controller.train())

            evaluation = asyncio.run(controller.run_batch_test())
            outcome = asyncio.run(controller.classify_text("a bike was taken"))
        finally:
            controller.close()

        assert evaluation.variants == ["maxent", "linear-svc"]
        assert evaluation.summary.format() == "maxent: 50.0% | linear-svc: 50.0%"
        assert [p.model_variant for p in outcome.predictions] == ["maxent", "linear-svc"]
        assert outcome.by_variant()["linear-svc"].predicted_label == "ASSAULT"
