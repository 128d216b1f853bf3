"""
AccessWatch - Analysis Module
Remote barrier classification.
"""

from src.analysis.classifier import (
    BarrierClassifier,
    ClassificationError,
    RemoteClassifier,
)

__all__ = [
    "BarrierClassifier",
    "ClassificationError",
    "RemoteClassifier",
]
