"""
Configuration package for the classification workbench backend.
"""

from .system_config import config, SystemConfig, APIConfig, ClassifierSelectionConfig

__all__ = [
    'config',
    'SystemConfig',
    'APIConfig',
    'ClassifierSelectionConfig'
]
