"""
System configuration for the classification workbench backend.
Contains server, CORS and classifier selection settings.
"""

import os
from dataclasses import dataclass, field


@dataclass
class APIConfig:
    """API-related configuration settings."""
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])
    max_file_size_mb: int = 50

    @classmethod
    def from_env(cls) -> 'APIConfig':
        """Create API config from environment variables."""
        cors_origins = os.getenv('API_CORS_ORIGINS', ','.join(cls().cors_origins)).split(',')
        return cls(
            host=os.getenv('API_HOST', cls.host),
            port=int(os.getenv('API_PORT', cls.port)),
            cors_origins=[origin.strip() for origin in cors_origins],
            max_file_size_mb=int(os.getenv('API_MAX_FILE_SIZE_MB', cls().max_file_size_mb)),
        )


@dataclass
class ClassifierSelectionConfig:
    """Which classifier variants the backend registers."""
    enable_sklearn_classifiers: bool = True
    enable_llm_classifier: bool = False

    @classmethod
    def from_env(cls) -> 'ClassifierSelectionConfig':
        """Create classifier selection config from environment variables."""
        return cls(
            enable_sklearn_classifiers=os.getenv(
                'ENABLE_SKLEARN_CLASSIFIERS', str(cls.enable_sklearn_classifiers)
            ).lower() in ('1', 'true', 'yes'),
            enable_llm_classifier=os.getenv(
                'ENABLE_LLM_CLASSIFIER', str(cls.enable_llm_classifier)
            ).lower() in ('1', 'true', 'yes'),
        )


@dataclass
class SystemConfig:
    """Main system configuration container."""
    api: APIConfig = field(default_factory=APIConfig)
    classifiers: ClassifierSelectionConfig = field(default_factory=ClassifierSelectionConfig)

    @classmethod
    def from_env(cls) -> 'SystemConfig':
        """Create system config from environment variables."""
        return cls(
            api=APIConfig.from_env(),
            classifiers=ClassifierSelectionConfig.from_env(),
        )


# Global configuration instance
config = SystemConfig.from_env()
