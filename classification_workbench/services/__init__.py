"""
Service interfaces for the classification workbench.
"""

from .interfaces import ClassifierInterface

__all__ = [
    "ClassifierInterface"
]
