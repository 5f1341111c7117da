"""
Classification metric registry.

Every tuned model family is scored with the same explicit metric set. Each
metric declares whether larger is better and whether it needs positive-class
scores (probabilities) rather than hard labels.
"""
import warnings
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np
from sklearn.exceptions import UndefinedMetricWarning
from sklearn.metrics import (
    accuracy_score,
    balanced_accuracy_score,
    cohen_kappa_score,
    f1_score,
    log_loss,
    precision_score,
    recall_score,
    roc_auc_score,
)

from utils.exceptions import ConfigurationError
from utils import constants


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    direction: str
    needs_scores: bool
    func: Callable


def _accuracy(y_true, y_pred, y_score, positive_class):
    return accuracy_score(y_true, y_pred)


def _balanced_accuracy(y_true, y_pred, y_score, positive_class):
    return balanced_accuracy_score(y_true, y_pred)


def _kappa(y_true, y_pred, y_score, positive_class):
    return cohen_kappa_score(y_true, y_pred)


def _precision(y_true, y_pred, y_score, positive_class):
    return precision_score(y_true, y_pred, pos_label=positive_class, zero_division=0)


def _recall(y_true, y_pred, y_score, positive_class):
    return recall_score(y_true, y_pred, pos_label=positive_class, zero_division=0)


def _f1(y_true, y_pred, y_score, positive_class):
    return f1_score(y_true, y_pred, pos_label=positive_class, zero_division=0)


def _roc_auc(y_true, y_pred, y_score, positive_class):
    y_binary = (np.asarray(y_true) == positive_class).astype(int)
    # ROC-AUC is undefined when the fold holds a single class.
    if np.unique(y_binary).size < 2:
        return float('nan')
    return roc_auc_score(y_binary, y_score)


def _log_loss(y_true, y_pred, y_score, positive_class):
    y_binary = (np.asarray(y_true) == positive_class).astype(int)
    return log_loss(y_binary, np.clip(y_score, 1e-15, 1 - 1e-15), labels=[0, 1])


METRICS: Dict[str, MetricDefinition] = {
    'accuracy': MetricDefinition('accuracy', constants.MAXIMIZE, False, _accuracy),
    'balanced_accuracy': MetricDefinition('balanced_accuracy', constants.MAXIMIZE, False, _balanced_accuracy),
    'kappa': MetricDefinition('kappa', constants.MAXIMIZE, False, _kappa),
    'precision': MetricDefinition('precision', constants.MAXIMIZE, False, _precision),
    'recall': MetricDefinition('recall', constants.MAXIMIZE, False, _recall),
    'f1': MetricDefinition('f1', constants.MAXIMIZE, False, _f1),
    'roc_auc': MetricDefinition('roc_auc', constants.MAXIMIZE, True, _roc_auc),
    'log_loss': MetricDefinition('log_loss', constants.MINIMIZE, True, _log_loss),
}


def available_metrics() -> List[str]:
    return list(METRICS.keys())


def get_metric(name: str) -> MetricDefinition:
    if name not in METRICS:
        raise ConfigurationError(f"Unknown metric '{name}'. Available: {available_metrics()}")
    return METRICS[name]


def validate_metric_names(names: Iterable[str]) -> List[str]:
    """Fail fast on an empty or unknown metric list."""
    names = list(names)
    if not names:
        raise ConfigurationError("At least one metric must be requested.")
    for name in names:
        get_metric(name)
    return names


def compute_metrics(names: Iterable[str], y_true, y_pred, y_score: Optional[np.ndarray],
                    positive_class) -> Dict[str, float]:
    """
    Compute every requested metric for one set of predictions.

    A metric that cannot be computed for this data (e.g. ROC-AUC on a
    single-class fold, or no scores available) is reported as NaN rather
    than dropped.
    """
    results = {}
    for name in names:
        metric = get_metric(name)
        if metric.needs_scores and y_score is None:
            results[name] = float('nan')
            continue
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UndefinedMetricWarning)
            try:
                results[name] = float(metric.func(y_true, y_pred, y_score, positive_class))
            except ValueError:
                results[name] = float('nan')
    return results
