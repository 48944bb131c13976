"""
Configuration for the classification workbench library.
Independent of UI backend configuration.
"""

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatasetConfig:
    """Configuration for parsing uploaded tables."""
    # Required columns (case-sensitive)
    narrative_column: str = "NARRATIVE"
    label_column: str = "classification"

    # File format
    delimiter: str = ","
    encoding: str = "utf-8"

    @classmethod
    def from_env(cls) -> 'DatasetConfig':
        """Create dataset config from environment variables."""
        return cls(
            narrative_column=os.getenv('WORKBENCH_NARRATIVE_COLUMN', cls.narrative_column),
            label_column=os.getenv('WORKBENCH_LABEL_COLUMN', cls.label_column),
            delimiter=os.getenv('WORKBENCH_DELIMITER', cls.delimiter),
            encoding=os.getenv('WORKBENCH_ENCODING', cls.encoding),
        )


@dataclass
class ExportConfig:
    """Configuration for result export."""
    preview_length: int = 100
    truncation_marker: str = "..."
    filename: str = "classification_results.csv"

    @classmethod
    def from_env(cls) -> 'ExportConfig':
        """Create export config from environment variables."""
        return cls(
            preview_length=int(os.getenv('WORKBENCH_PREVIEW_LENGTH', cls.preview_length)),
            truncation_marker=os.getenv('WORKBENCH_TRUNCATION_MARKER', cls.truncation_marker),
            filename=os.getenv('WORKBENCH_EXPORT_FILENAME', cls.filename),
        )


@dataclass
class WorkflowConfig:
    """Configuration for the workflow controller."""
    # Pause between training progress steps, in seconds
    step_delay: float = 0.0

    # Dispatch classifier adapters concurrently during test/classify
    parallel_adapters: bool = True
    max_workers: int = 4

    @classmethod
    def from_env(cls) -> 'WorkflowConfig':
        """Create workflow config from environment variables."""
        return cls(
            step_delay=float(os.getenv('WORKBENCH_STEP_DELAY', cls.step_delay)),
            parallel_adapters=_env_bool('WORKBENCH_PARALLEL_ADAPTERS', cls.parallel_adapters),
            max_workers=int(os.getenv('WORKBENCH_MAX_WORKERS', cls.max_workers)),
        )


@dataclass
class ModelConfig:
    """Configuration for the scikit-learn classifiers."""
    # Feature extraction
    ngram_max: int = 2
    max_features: int = 50000
    min_df: int = 1
    stemmer_language: str = "english"

    # Linear SVC
    svc_c: float = 1.0

    # Maximum entropy (multinomial logistic regression)
    maxent_c: float = 1.0
    maxent_max_iter: int = 1000

    @classmethod
    def from_env(cls) -> 'ModelConfig':
        """Create model config from environment variables."""
        return cls(
            ngram_max=int(os.getenv('MODEL_NGRAM_MAX', cls.ngram_max)),
            max_features=int(os.getenv('MODEL_MAX_FEATURES', cls.max_features)),
            min_df=int(os.getenv('MODEL_MIN_DF', cls.min_df)),
            stemmer_language=os.getenv('MODEL_STEMMER_LANGUAGE', cls.stemmer_language),
            svc_c=float(os.getenv('MODEL_SVC_C', cls.svc_c)),
            maxent_c=float(os.getenv('MODEL_MAXENT_C', cls.maxent_c)),
            maxent_max_iter=int(os.getenv('MODEL_MAXENT_MAX_ITER', cls.maxent_max_iter)),
        )


@dataclass
class AWSConfig:
    """AWS-related configuration settings."""
    bedrock_region: str = "us-west-2"

    @classmethod
    def from_env(cls) -> 'AWSConfig':
        """Create AWS config from environment variables."""
        return cls(
            bedrock_region=os.getenv('AWS_BEDROCK_REGION', cls.bedrock_region),
        )


@dataclass
class LLMClassifierConfig:
    """Configuration for the Bedrock few-shot classifier."""
    model_id: str = "us.amazon.nova-lite-v1:0"
    temperature: float = 0.1
    max_tokens: int = 500

    # Few-shot prompt limits
    max_examples_per_label: int = 3
    max_text_length: int = 500

    @classmethod
    def from_env(cls) -> 'LLMClassifierConfig':
        """Create LLM classifier config from environment variables."""
        return cls(
            model_id=os.getenv('LLM_CLASSIFIER_MODEL_ID', cls.model_id),
            temperature=float(os.getenv('LLM_CLASSIFIER_TEMPERATURE', cls.temperature)),
            max_tokens=int(os.getenv('LLM_CLASSIFIER_MAX_TOKENS', cls.max_tokens)),
            max_examples_per_label=int(os.getenv('LLM_CLASSIFIER_MAX_EXAMPLES', cls.max_examples_per_label)),
            max_text_length=int(os.getenv('LLM_CLASSIFIER_MAX_TEXT_LENGTH', cls.max_text_length)),
        )


@dataclass
class WorkbenchConfig:
    """Configuration for the classification workbench library."""
    dataset: DatasetConfig
    export: ExportConfig
    workflow: WorkflowConfig
    models: ModelConfig
    aws: AWSConfig
    llm: LLMClassifierConfig

    @classmethod
    def from_env(cls) -> 'WorkbenchConfig':
        """Create workbench config from environment variables."""
        return cls(
            dataset=DatasetConfig.from_env(),
            export=ExportConfig.from_env(),
            workflow=WorkflowConfig.from_env(),
            models=ModelConfig.from_env(),
            aws=AWSConfig.from_env(),
            llm=LLMClassifierConfig.from_env(),
        )


# Global configuration instance
config = WorkbenchConfig.from_env()
