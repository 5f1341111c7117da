import pytest
import numpy as np
import pandas as pd
from sklearn.dummy import DummyClassifier
from sklearn.ensemble import BaggingClassifier, GradientBoostingClassifier, RandomForestClassifier
from sklearn.tree import DecisionTreeClassifier
from modules.model_factory import (
    ModelFactory,
    ModelSpec,
    feature_importance,
    fit_model,
    predict_labels,
    predict_scores,
)
from utils.exceptions import ConfigurationError, FitError, PredictionError

def test_create_decision_tree():
    model = ModelFactory.create('decision_tree', {'max_depth': 4, 'random_state': 7})
    assert isinstance(model, DecisionTreeClassifier)
    assert model.max_depth == 4
    assert model.random_state == 7

@pytest.mark.parametrize("family,cls", [
    ('random_forest', RandomForestClassifier),
    ('boosted_trees', GradientBoostingClassifier),
    ('majority_class', DummyClassifier),
])
def test_create_families(family, cls):
    assert isinstance(ModelFactory.create(family), cls)

def test_majority_class_defaults():
    assert ModelFactory.create('majority_class').strategy == 'most_frequent'

def test_bagged_trees_param_routing():
    """Ensemble arguments stay on the bagger, tree arguments go to the base tree."""
    model = ModelFactory.create('bagged_trees', {'n_estimators': 15, 'max_depth': 3, 'random_state': 5})

    assert isinstance(model, BaggingClassifier)
    assert model.n_estimators == 15
    assert isinstance(model.estimator, DecisionTreeClassifier)
    assert model.estimator.max_depth == 3
    assert model.estimator.random_state == 5

def test_unknown_family_error():
    with pytest.raises(ConfigurationError, match="Unknown model family"):
        ModelFactory.create('SuperAdvancedAIModel')

def test_parameter_filtering():
    # DummyClassifier takes no max_depth; must not raise TypeError
    model = ModelFactory.create('majority_class', {'max_depth': 3})
    assert not hasattr(model, 'max_depth')

def test_register_and_unregister():
    ModelFactory.register('stump', DecisionTreeClassifier, defaults={'max_depth': 1})
    try:
        assert 'stump' in ModelFactory.get_available_families()
        assert ModelFactory.create('stump').max_depth == 1
    finally:
        ModelFactory.unregister('stump')
    assert 'stump' not in ModelFactory.get_available_families()


@pytest.fixture
def train_frame():
    rng = np.random.default_rng(3)
    x = rng.normal(size=60)
    return pd.DataFrame({'x1': x, 'x2': rng.normal(size=60), 'y': (x > 0).astype(int)})

def test_fit_and_predict(train_frame):
    spec = ModelSpec('decision_tree', {'max_depth': 2, 'random_state': 0}, index=3)
    model = fit_model(spec, train_frame, 'y', positive_class=1)

    assert spec.config_id == 'decision_tree_003'
    assert model.feature_names == ('x1', 'x2')
    preds = predict_labels(model, train_frame.drop(columns='y'))
    assert (preds == train_frame['y']).mean() > 0.9
    scores = predict_scores(model, train_frame)
    assert scores.shape == (60,)
    assert ((scores >= 0) & (scores <= 1)).all()

def test_predict_reorders_columns(train_frame):
    model = fit_model(ModelSpec('decision_tree', {'random_state': 0}), train_frame, 'y', 1)
    shuffled = train_frame[['x2', 'x1']]
    np.testing.assert_array_equal(predict_labels(model, shuffled), predict_labels(model, train_frame))

def test_predict_missing_feature(train_frame):
    model = fit_model(ModelSpec('decision_tree'), train_frame, 'y', 1)
    with pytest.raises(PredictionError, match="x2"):
        predict_labels(model, train_frame[['x1']])

def test_fit_error_wraps_estimator_failure(train_frame):
    spec = ModelSpec('decision_tree', {'max_depth': -4})
    with pytest.raises(FitError, match="decision_tree_000"):
        fit_model(spec, train_frame, 'y', 1)

def test_fit_error_without_predictors(train_frame):
    with pytest.raises(FitError, match="No predictors"):
        fit_model(ModelSpec('decision_tree'), train_frame[['y']], 'y', 1)

def test_single_class_positive_missing(train_frame):
    negatives = train_frame[train_frame['y'] == 0]
    model = fit_model(ModelSpec('majority_class'), negatives, 'y', positive_class=1)
    assert np.all(predict_scores(model, negatives) == 0.0)

def test_feature_importance_bagged(train_frame):
    spec = ModelSpec('bagged_trees', {'n_estimators': 5, 'random_state': 0})
    model = fit_model(spec, train_frame, 'y', 1)
    importance = feature_importance(model)
    assert set(importance.index) == {'x1', 'x2'}
    assert importance.index[0] == 'x1'

def test_feature_importance_absent_for_dummy(train_frame):
    model = fit_model(ModelSpec('majority_class'), train_frame, 'y', 1)
    assert feature_importance(model) is None
