import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from modules.base.base_engine import BaseEngine
from modules.evaluation_engine.metrics import compute_metrics, get_metric, validate_metric_names
from modules.model_factory import (
    ModelSpec,
    TrainedModel,
    feature_importance,
    fit_model,
    predict_labels,
    predict_scores,
)
from modules.recipe import FittedRecipe, Recipe
from modules.tuning_engine import TuningResult
from utils.error_handling import handle_engine_errors
from utils.exceptions import ConfigurationError, NoValidConfiguration
from utils.file_io import save_json
from utils import constants


@dataclass(frozen=True)
class FinalReport:
    """Outcome of the single refit on the full train set, scored once on test."""
    spec: ModelSpec
    fitted_recipe: FittedRecipe
    model: TrainedModel
    metrics: Dict[str, float]
    predictions: pd.DataFrame

    @property
    def confusion_input(self) -> pd.DataFrame:
        return self.predictions[['truth', 'predicted']]

    @property
    def roc_input(self) -> pd.DataFrame:
        return self.predictions[['truth', 'score']]

    def feature_importance(self) -> Optional[pd.Series]:
        return feature_importance(self.model)

    def confusion_matrix(self) -> pd.DataFrame:
        return pd.crosstab(self.predictions['truth'], self.predictions['predicted'],
                           rownames=['truth'], colnames=['predicted'])


def rank_configurations(tuning_result: TuningResult, metric: str, direction: str) -> pd.DataFrame:
    """
    Order configurations best-first by mean `metric`.
    Absent means rank last; ties keep the lowest configuration index first.
    """
    if direction not in (constants.MAXIMIZE, constants.MINIMIZE):
        raise ConfigurationError(f"direction must be 'maximize' or 'minimize', got '{direction}'")
    if metric not in tuning_result.metrics:
        raise ConfigurationError(f"Metric '{metric}' was not computed during tuning ({tuning_result.metrics}).")

    summary = tuning_result.summary()
    table = summary[summary['metric'] == metric].copy()
    table['_absent'] = table['mean'].isna()
    table['_key'] = -table['mean'] if direction == constants.MAXIMIZE else table['mean']
    table = table.sort_values(['_absent', '_key', 'config_index'], kind='mergesort')
    table['rank'] = np.arange(1, len(table) + 1)
    return table.drop(columns=['_absent', '_key']).reset_index(drop=True)


def select_best(tuning_result: TuningResult, metric: str, direction: str) -> ModelSpec:
    """Best configuration by aggregate mean of `metric`."""
    ranked = rank_configurations(tuning_result, metric, direction)
    if ranked.empty or ranked['mean'].isna().all():
        raise NoValidConfiguration(
            f"Every configuration of {tuning_result.model_family} failed on every fold; nothing to select."
        )
    return tuning_result.configuration(int(ranked.iloc[0]['config_index']))


def finalize(best_spec: ModelSpec, recipe: Recipe, full_train: pd.DataFrame, test: pd.DataFrame,
             metrics: List[str], positive_class: Any = 1) -> FinalReport:
    """
    Fit recipe + model once on the whole train set, apply to test, score once.
    """
    metrics = validate_metric_names(metrics)
    fitted_recipe = recipe.fit(full_train)
    train_t = fitted_recipe.apply(full_train)
    test_t = fitted_recipe.apply(test)

    model = fit_model(best_spec, train_t, recipe.label, positive_class)
    y_true = test_t[recipe.label].to_numpy()
    y_pred = predict_labels(model, test_t)
    y_score = predict_scores(model, test_t)

    predictions = pd.DataFrame({
        'row_index': test.index,
        'truth': y_true,
        'predicted': y_pred,
        'score': y_score if y_score is not None else np.nan,
    })
    return FinalReport(
        spec=best_spec,
        fitted_recipe=fitted_recipe,
        model=model,
        metrics=compute_metrics(metrics, y_true, y_pred, y_score, positive_class),
        predictions=predictions,
    )


class SelectionEngine(BaseEngine):
    """
    Picks the winning configuration and evaluates it once on the held-out test set.
    """

    def __init__(self, config: dict, logger: logging.Logger, recipe: Recipe):
        super().__init__(config, logger)
        self.recipe = recipe
        self.positive_class = config['data'].get('positive_class', 1)
        tuning = config.get('tuning', {})
        self.metrics = tuning.get('metrics', constants.DEFAULT_METRICS)
        self.selection_metric = tuning.get('selection_metric', self.metrics[0])
        self.direction = tuning.get('direction', get_metric(self.selection_metric).direction)

    def _get_engine_directory_name(self) -> str:
        return constants.FINAL_EVALUATION_DIR

    def select_best(self, tuning_result: TuningResult, metric: Optional[str] = None,
                    direction: Optional[str] = None) -> ModelSpec:
        return select_best(tuning_result, metric or self.selection_metric, direction or self.direction)

    def finalize(self, best_spec: ModelSpec, full_train: pd.DataFrame, test: pd.DataFrame,
                 metrics: Optional[List[str]] = None) -> FinalReport:
        return finalize(best_spec, self.recipe, full_train, test, metrics or self.metrics, self.positive_class)

    @handle_engine_errors("Final Evaluation")
    def execute(self, best_spec: ModelSpec, train_df: pd.DataFrame, test_df: pd.DataFrame,
                run_id: str) -> FinalReport:
        """Refit the winner, score the test set, and persist metrics and predictions."""
        self.logger.info(f"Refitting {best_spec.config_id} on {len(train_df)} training records...")
        start = time.time()
        report = self.finalize(best_spec, train_df, test_df)
        duration = time.time() - start

        save_json({
            'run_id': run_id,
            'config_id': best_spec.config_id,
            'model_family': best_spec.family,
            'params': best_spec.params,
            'metrics': report.metrics,
            'n_train': len(train_df),
            'n_test': len(test_df),
            'features': list(report.fitted_recipe.predictors_out),
            'fit_seconds': duration,
        }, self.output_dir / constants.FINAL_METRICS_FILE)
        self.save_table(report.predictions, constants.TEST_PREDICTIONS_FILE)

        importance = report.feature_importance()
        if importance is not None:
            self.save_table(importance.rename_axis('feature').reset_index(), "feature_importance.parquet")

        summary = ", ".join(f"{k}={v:.4f}" for k, v in report.metrics.items())
        self.logger.info(f"Test evaluation of {best_spec.config_id}: {summary}")
        return report
