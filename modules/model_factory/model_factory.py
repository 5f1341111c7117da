import inspect
from typing import Dict, Any, List
from sklearn.base import BaseEstimator
from sklearn.dummy import DummyClassifier
from sklearn.ensemble import (
    BaggingClassifier,
    GradientBoostingClassifier,
    RandomForestClassifier,
)
from sklearn.tree import DecisionTreeClassifier

from utils.exceptions import ConfigurationError
from utils import constants

class ModelFactory:
    """
    Factory for creating tree-based classifiers with a unified interface.

    Families map to scikit-learn estimators. Bagged trees are a special case:
    ensemble arguments go to the BaggingClassifier, everything else is routed
    to its base DecisionTreeClassifier.
    """

    FAMILIES = {
        constants.DECISION_TREE: DecisionTreeClassifier,
        constants.BAGGED_TREES: BaggingClassifier,
        constants.RANDOM_FOREST: RandomForestClassifier,
        constants.BOOSTED_TREES: GradientBoostingClassifier,
        constants.MAJORITY_CLASS: DummyClassifier,
    }

    # Fixed constructor arguments applied before user parameters
    DEFAULTS = {
        constants.MAJORITY_CLASS: {'strategy': 'most_frequent'},
    }

    @classmethod
    def create(cls, family: str, params: Dict[str, Any] = None) -> BaseEstimator:
        """
        Create and return an unfitted estimator.
        """
        if params is None:
            params = {}

        if family not in cls.FAMILIES:
            raise ConfigurationError(
                f"Unknown model family: {family}. Available: {cls.get_available_families()}"
            )

        merged = {**cls.DEFAULTS.get(family, {}), **params}
        model_class = cls.FAMILIES[family]

        if model_class is BaggingClassifier:
            return cls._create_bagged_trees(merged)

        return model_class(**cls._filter_params(model_class, merged))

    @classmethod
    def register(cls, family: str, estimator_class: type, defaults: Dict[str, Any] = None) -> None:
        """Add (or replace) a model family."""
        cls.FAMILIES[family] = estimator_class
        if defaults:
            cls.DEFAULTS[family] = dict(defaults)

    @classmethod
    def unregister(cls, family: str) -> None:
        cls.FAMILIES.pop(family, None)
        cls.DEFAULTS.pop(family, None)

    @classmethod
    def get_available_families(cls) -> List[str]:
        """Return list of all supported model families."""
        return list(cls.FAMILIES.keys())

    @classmethod
    def _create_bagged_trees(cls, params: Dict[str, Any]) -> BaggingClassifier:
        bagging_keys = set(cls._accepted_keys(BaggingClassifier)) - {'estimator'}
        bagging_params = {k: v for k, v in params.items() if k in bagging_keys}
        tree_params = cls._filter_params(
            DecisionTreeClassifier,
            {k: v for k, v in params.items() if k not in bagging_keys}
        )
        # Share the seed with the base tree so the whole ensemble is reproducible
        if 'random_state' in bagging_params:
            tree_params.setdefault('random_state', bagging_params['random_state'])
        return BaggingClassifier(estimator=DecisionTreeClassifier(**tree_params), **bagging_params)

    @staticmethod
    def _accepted_keys(model_class) -> List[str]:
        sig = inspect.signature(model_class.__init__)
        return [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY) and p.name != 'self'
        ]

    @classmethod
    def _filter_params(cls, model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor.
        """
        sig = inspect.signature(model_class.__init__)

        # Always allow **kwargs if the model supports it
        if any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values()):
            return dict(params)

        valid_keys = cls._accepted_keys(model_class)
        return {k: v for k, v in params.items() if k in valid_keys}
