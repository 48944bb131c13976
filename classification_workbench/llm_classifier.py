"""
Few-shot LLM classifier backed by Amazon Bedrock through Strands Agents.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import boto3
from strands import Agent
from strands.models import BedrockModel

from .config import AWSConfig, LLMClassifierConfig, config as workbench_config
from .exceptions import InferenceError, TrainingError
from .models.data_models import Dataset, ModelHandle
from .prompts import ClassificationPrompts
from .services.interfaces import ClassifierInterface


logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{.*?\}", re.DOTALL)


@dataclass(frozen=True)
class FewShotModel:
    """What 'training' produces for the LLM classifier: the label set and examples."""
    labels: Tuple[str, ...]
    examples: Dict[str, List[str]] = field(default_factory=dict)


class BedrockLLMClassifier(ClassifierInterface):
    """
    Classifier variant that asks a Bedrock model to pick a label.

    Training collects the label set and a bounded number of examples per label
    from the training data; prediction sends them as a few-shot prompt.
    """

    name = "llm"
    display_name = "Bedrock LLM"

    def __init__(
        self,
        llm_config: Optional[LLMClassifierConfig] = None,
        aws_config: Optional[AWSConfig] = None,
        agent: Optional[Agent] = None
    ):
        """
        Initialize the classifier.

        Args:
            llm_config: Model id, sampling parameters and prompt limits
            aws_config: Region settings for the Bedrock session
            agent: Pre-built Strands agent (created lazily if not provided)
        """
        self.config = llm_config or workbench_config.llm
        self.aws_config = aws_config or workbench_config.aws
        self._agent = agent

    @property
    def agent(self) -> Agent:
        if self._agent is None:
            self._agent = self._initialize_strands_agent()
        return self._agent

    def _initialize_strands_agent(self) -> Agent:
        try:
            session = boto3.Session(region_name=self.aws_config.bedrock_region)
            model = BedrockModel(
                model_id=self.config.model_id,
                boto_session=session,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens
            )
            agent = Agent(
                model=model,
                system_prompt=ClassificationPrompts.system_prompt(),
                callback_handler=None
            )
        except Exception as e:
            raise InferenceError(f"Failed to initialize Strands agent: {e}")

        logger.info(f"Initialized Strands agent with model: {self.config.model_id}")
        return agent

    def train(self, dataset: Dataset) -> ModelHandle:
        labels = dataset.labels()
        if not labels:
            raise TrainingError(f"No labeled records to train '{self.name}' on")

        examples: Dict[str, List[str]] = {label: [] for label in labels}
        for record in dataset:
            if record.label is None or not record.text:
                continue
            bucket = examples[record.label]
            if len(bucket) < self.config.max_examples_per_label:
                bucket.append(record.text[:self.config.max_text_length])

        logger.info(f"Collected few-shot examples for {len(labels)} labels")
        return ModelHandle(
            variant=self.name,
            trained=True,
            model=FewShotModel(labels=tuple(labels), examples=examples)
        )

    def predict(self, handle: ModelHandle, text: str) -> Tuple[str, float]:
        self._require_trained(handle)
        model: FewShotModel = handle.model

        prompt = ClassificationPrompts.classification_prompt(
            text[:self.config.max_text_length], list(model.labels), model.examples
        )

        try:
            response = self.agent(prompt)
            response_text = response.message['content'][0]['text']
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"LLM classification failed: {e}")

        logger.debug(f"LLM response: {response_text}")
        return self._parse_response(response_text, model.labels)

    def _parse_response(self, response_text: str, labels: Tuple[str, ...]) -> Tuple[str, float]:
        """
        Extract label and confidence from the model reply.

        Raises:
            InferenceError: If the reply has no usable JSON or names an unknown label
        """
        match = JSON_OBJECT_PATTERN.search(response_text or "")
        if not match:
            raise InferenceError(f"No JSON object in LLM response: {response_text!r}")

        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise InferenceError(f"Invalid JSON in LLM response: {e}")

        label = str(payload.get("label", "")).strip()
        if label not in labels:
            raise InferenceError(f"LLM returned unknown label: {label!r}")

        try:
            confidence = float(payload.get("confidence", 0.0))
        except (TypeError, ValueError):
            confidence = 0.0
        return label, min(max(confidence, 0.0), 1.0)
