"""
Model Factory Module
====================

Responsibility:
- Instantiates tree-based classifiers per model family.
- Exposes the uniform fit / predict / score contract used by tuning and evaluation.
"""

from .model_factory import ModelFactory
from .model_adapter import (
    ModelSpec,
    TrainedModel,
    build_estimator,
    feature_importance,
    fit_model,
    predict_labels,
    predict_scores,
)

__all__ = [
    'ModelFactory',
    'ModelSpec',
    'TrainedModel',
    'build_estimator',
    'feature_importance',
    'fit_model',
    'predict_labels',
    'predict_scores',
]
