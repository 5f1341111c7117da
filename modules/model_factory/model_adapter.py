"""
Uniform fit / predict contract over scikit-learn estimators.

The tuning engine and the final evaluator only ever talk to models through
these functions, so any estimator failure surfaces as a FitError and any
schema mismatch at prediction time as a PredictionError.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, clone

from modules.model_factory.model_factory import ModelFactory
from utils.exceptions import FitError, PredictionError


@dataclass(frozen=True)
class ModelSpec:
    """One fully bound hyperparameter assignment for a model family."""
    family: str
    params: Dict[str, Any] = field(default_factory=dict)
    index: int = 0

    @property
    def config_id(self) -> str:
        return f"{self.family}_{self.index:03d}"


@dataclass(frozen=True)
class TrainedModel:
    """A fitted estimator plus the schema it was trained on. Prediction only."""
    spec: ModelSpec
    estimator: BaseEstimator
    feature_names: Tuple[str, ...]
    classes: Tuple[Any, ...]
    positive_class: Any


def build_estimator(spec: ModelSpec) -> BaseEstimator:
    return ModelFactory.create(spec.family, spec.params)


def fit_model(spec: ModelSpec, data: pd.DataFrame, label: str, positive_class: Any,
              template: Optional[BaseEstimator] = None) -> TrainedModel:
    """
    Fit the estimator described by `spec` on already-transformed data.

    Args:
        spec: Model specification (family + params).
        data: Transformed training frame including the label column.
        label: Name of the label column.
        positive_class: Label value treated as the positive class for scores.
        template: Optional unfitted estimator to clone instead of building from spec.

    Raises:
        FitError: On any estimator failure (degenerate data, invalid params, ...).
    """
    if label not in data.columns:
        raise FitError(f"Label column '{label}' missing from training data for {spec.config_id}.")

    X = data.drop(columns=[label])
    y = data[label]
    if X.shape[1] == 0:
        raise FitError(f"No predictors left to fit {spec.config_id}.")

    try:
        estimator = clone(template) if template is not None else build_estimator(spec)
        estimator.fit(X, y)
    except FitError:
        raise
    except Exception as e:
        raise FitError(f"Fitting {spec.config_id} failed: {e}") from e

    classes = tuple(getattr(estimator, 'classes_', np.unique(y)))
    return TrainedModel(
        spec=spec,
        estimator=estimator,
        feature_names=tuple(X.columns),
        classes=classes,
        positive_class=positive_class,
    )


def _align_features(model: TrainedModel, data: pd.DataFrame) -> pd.DataFrame:
    missing = sorted(set(model.feature_names) - set(data.columns))
    if missing:
        raise PredictionError(f"Missing features required by the model: {missing}")
    return data[list(model.feature_names)]


def predict_labels(model: TrainedModel, data: pd.DataFrame) -> np.ndarray:
    X = _align_features(model, data)
    try:
        return np.asarray(model.estimator.predict(X))
    except Exception as e:
        raise PredictionError(f"Prediction with {model.spec.config_id} failed: {e}") from e


def predict_scores(model: TrainedModel, data: pd.DataFrame) -> Optional[np.ndarray]:
    """
    Positive-class probability per row, or None if the estimator has no predict_proba.
    A model trained on a single class scores 1.0/0.0 depending on that class.
    """
    if not hasattr(model.estimator, 'predict_proba'):
        return None
    X = _align_features(model, data)
    try:
        proba = model.estimator.predict_proba(X)
    except Exception as e:
        raise PredictionError(f"Scoring with {model.spec.config_id} failed: {e}") from e

    if model.positive_class in model.classes:
        return np.asarray(proba)[:, model.classes.index(model.positive_class)]
    return np.zeros(len(X))


def feature_importance(model: TrainedModel) -> Optional[pd.Series]:
    """Impurity-based importances where the estimator exposes them."""
    estimator = model.estimator
    importances = getattr(estimator, 'feature_importances_', None)
    if importances is None and hasattr(estimator, 'estimators_') and hasattr(estimator, 'estimators_features_'):
        # Bagging: average base-tree importances mapped back to full feature space
        totals = np.zeros(len(model.feature_names))
        for tree, feats in zip(estimator.estimators_, estimator.estimators_features_):
            if hasattr(tree, 'feature_importances_'):
                totals[feats] += tree.feature_importances_
        importances = totals / max(len(estimator.estimators_), 1)
    if importances is None:
        return None
    return pd.Series(importances, index=list(model.feature_names), name='importance').sort_values(ascending=False)
