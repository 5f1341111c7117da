import math

import numpy as np
import pandas as pd
import pytest

from modules.evaluation_engine import available_metrics, compute_metrics, get_metric, validate_metric_names
from modules.evaluation_engine.cv_analysis import SUMMARY_COLUMNS, aggregate_fold_metrics, cv_fold_consistency
from modules.model_factory import ModelSpec
from utils.exceptions import ConfigurationError


def test_registry_directions():
    assert 'accuracy' in available_metrics()
    assert get_metric('roc_auc').direction == 'maximize'
    assert get_metric('log_loss').direction == 'minimize'
    assert get_metric('roc_auc').needs_scores

def test_unknown_metric():
    with pytest.raises(ConfigurationError, match="Unknown metric"):
        get_metric('gini')
    with pytest.raises(ConfigurationError):
        validate_metric_names([])

def test_compute_metrics_values():
    y_true = np.array([0, 0, 1, 1])
    y_pred = np.array([0, 1, 1, 1])
    y_score = np.array([0.1, 0.6, 0.7, 0.9])
    out = compute_metrics(['accuracy', 'precision', 'recall', 'roc_auc'], y_true, y_pred, y_score, 1)

    assert out['accuracy'] == pytest.approx(0.75)
    assert out['precision'] == pytest.approx(2 / 3)
    assert out['recall'] == pytest.approx(1.0)
    assert out['roc_auc'] == pytest.approx(1.0)

def test_roc_auc_single_class_is_nan():
    out = compute_metrics(['roc_auc', 'accuracy'], np.zeros(4), np.zeros(4), np.full(4, 0.3), 1)
    assert math.isnan(out['roc_auc'])
    assert out['accuracy'] == 1.0

def test_score_metric_without_scores_is_nan():
    out = compute_metrics(['log_loss'], np.array([0, 1]), np.array([0, 1]), None, 1)
    assert math.isnan(out['log_loss'])

def test_string_positive_class():
    y_true = np.array(['no', 'yes', 'yes', 'no'])
    y_pred = np.array(['no', 'yes', 'no', 'no'])
    out = compute_metrics(['recall', 'roc_auc'], y_true, y_pred, np.array([0.2, 0.8, 0.4, 0.1]), 'yes')
    assert out['recall'] == pytest.approx(0.5)
    assert out['roc_auc'] == pytest.approx(1.0)


def _rows(entries):
    cols = ['config_index', 'config_id', 'fold', 'metric', 'value', 'status', 'error', 'fit_seconds']
    return pd.DataFrame([dict(zip(cols, e)) for e in entries], columns=cols)

def test_aggregate_fold_metrics():
    specs = [ModelSpec('decision_tree', {'max_depth': 2}, 1), ModelSpec('decision_tree', {'max_depth': 3}, 2)]
    rows = _rows([
        (1, 'decision_tree_001', 1, 'accuracy', 0.6, 'success', None, 0.1),
        (1, 'decision_tree_001', 2, 'accuracy', 0.8, 'success', None, 0.1),
        (1, 'decision_tree_001', 3, 'accuracy', 0.9, 'success', None, 0.1),
        (2, 'decision_tree_002', 1, 'accuracy', np.nan, 'failed', 'FitError: x', 0.1),
        (2, 'decision_tree_002', 2, 'accuracy', 0.7, 'success', None, 0.1),
        (2, 'decision_tree_002', 3, 'accuracy', np.nan, 'failed', 'FitError: x', 0.1),
    ])
    summary = aggregate_fold_metrics(rows, specs, ['accuracy'])

    assert list(summary.columns) == SUMMARY_COLUMNS
    first = summary.iloc[0]
    assert first['n_folds'] == 3
    assert first['min'] == pytest.approx(0.6)
    assert first['max'] == pytest.approx(0.9)
    assert first['mean'] == pytest.approx(2.3 / 3)
    assert first['median'] == pytest.approx(0.8)
    second = summary.iloc[1]
    assert second['n_folds'] == 1
    assert second['n_failed'] == 2
    assert second['mean'] == pytest.approx(0.7)
    assert second['params'] == {'max_depth': 3}

def test_aggregate_keeps_all_failed_configuration():
    specs = [ModelSpec('decision_tree', {}, 1)]
    rows = _rows([(1, 'decision_tree_001', 1, 'roc_auc', np.nan, 'failed', 'TaskTimeoutError: t', 5.0)])
    summary = aggregate_fold_metrics(rows, specs, ['roc_auc'])
    assert len(summary) == 1
    assert np.isnan(summary.iloc[0]['mean'])
    assert summary.iloc[0]['n_folds'] == 0

def test_cv_fold_consistency_range():
    summary = pd.DataFrame([{'config_id': 'a', 'metric': 'accuracy', 'n_folds': 3, 'min': 0.5, 'max': 0.9, 'mean': 0.7}])
    assert cv_fold_consistency(summary).iloc[0]['range'] == pytest.approx(0.4)
