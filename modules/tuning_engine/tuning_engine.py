import gc
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from joblib import Parallel, delayed
from sklearn.base import BaseEstimator

from modules.base.base_engine import BaseEngine
from modules.evaluation_engine.cv_analysis import aggregate_fold_metrics, cv_fold_consistency
from modules.evaluation_engine.metrics import compute_metrics, validate_metric_names
from modules.model_factory import ModelSpec, build_estimator, fit_model, predict_labels, predict_scores
from modules.recipe import Recipe
from modules.split_engine import Fold
from utils.error_handling import handle_engine_errors
from utils.exceptions import ConfigurationError
from utils.timeouts import call_with_timeout
from utils import constants

ROW_COLUMNS = ['config_index', 'config_id', 'fold', 'metric', 'value', 'status', 'error', 'fit_seconds']


@dataclass
class TuningResult:
    """
    Per-fold metric rows for one model family's grid, plus the grid itself.

    `rows` has one row per (configuration, fold, metric). A failed
    (configuration, fold) task contributes one row per metric with
    status='failed', value NaN and the error message.
    """
    model_family: str
    configurations: List[ModelSpec]
    metrics: List[str]
    rows: pd.DataFrame
    _summary: Optional[pd.DataFrame] = field(default=None, repr=False)

    def summary(self) -> pd.DataFrame:
        if self._summary is None:
            self._summary = aggregate_fold_metrics(self.rows, self.configurations, self.metrics)
        return self._summary

    def failures(self) -> pd.DataFrame:
        failed = self.rows[self.rows['status'] == constants.TASK_STATUS_FAILED]
        return failed.drop_duplicates(['config_index', 'fold'])[['config_index', 'config_id', 'fold', 'error']]

    def configuration(self, index: int) -> ModelSpec:
        for spec in self.configurations:
            if spec.index == index:
                return spec
        raise KeyError(index)


def run_fold_task(spec: ModelSpec, template: Optional[BaseEstimator], recipe: Recipe, fold: Fold,
                  positive_class: Any, metrics: Sequence[str], timeout: Optional[float]) -> List[Dict[str, Any]]:
    """
    Fit recipe + model on one fold's train part and score it on the validation part.

    Never raises: any failure becomes status='failed' rows so sibling tasks
    keep running.
    """
    start = time.time()
    try:
        scores = call_with_timeout(_fit_and_score, timeout, spec, template, recipe, fold, positive_class, metrics)
        status, error = constants.TASK_STATUS_SUCCESS, None
    except Exception as e:
        scores, status, error = {}, constants.TASK_STATUS_FAILED, f"{type(e).__name__}: {e}"
    elapsed = time.time() - start

    return [
        {
            'config_index': spec.index,
            'config_id': spec.config_id,
            'fold': fold.index,
            'metric': metric,
            'value': scores.get(metric, float('nan')),
            'status': status,
            'error': error,
            'fit_seconds': elapsed,
        }
        for metric in metrics
    ]


def _fit_and_score(spec, template, recipe, fold, positive_class, metrics) -> Dict[str, float]:
    fitted_recipe = recipe.fit(fold.train)
    train_t = fitted_recipe.apply(fold.train)
    valid_t = fitted_recipe.apply(fold.validation)

    model = fit_model(spec, train_t, recipe.label, positive_class, template=template)
    y_pred = predict_labels(model, valid_t)
    y_score = predict_scores(model, valid_t)
    return compute_metrics(metrics, valid_t[recipe.label].to_numpy(), y_pred, y_score, positive_class)


class TuningEngine(BaseEngine):
    """
    Grid search with k-fold cross-validation.

    Every (configuration, fold) pair is an independent task dispatched through
    joblib. Results come back as one list per task and are merged after the
    global barrier, then aggregated per configuration.
    """

    def __init__(self, config: dict, logger: logging.Logger, recipe: Recipe):
        super().__init__(config, logger)
        self.recipe = recipe
        self.positive_class = config['data'].get('positive_class', 1)
        tuning = config.get('tuning', {})
        self.metrics = tuning.get('metrics', constants.DEFAULT_METRICS)
        self.task_timeout = tuning.get('task_timeout_sec')
        execution = config.get('execution', {})
        self.n_jobs = execution.get('n_jobs', -1)
        self.backend = execution.get('backend', 'loky')

    def _get_engine_directory_name(self) -> str:
        return constants.TUNING_DIR

    def tune(self, model_family: str, param_grid: List[ModelSpec], folds: List[Fold],
             metrics: Optional[List[str]] = None) -> TuningResult:
        """
        Cross-validate every configuration in `param_grid` on every fold.

        Args:
            model_family: Family name all specs belong to.
            param_grid: Ordered configurations (index order is the tie-break order).
            folds: Train/validation rounds from SplitEngine.make_cv_folds.
            metrics: Metric names; defaults to the configured tuning metrics.

        Returns:
            TuningResult with one row per (configuration, fold, metric).
        """
        metrics = validate_metric_names(metrics or self.metrics)
        if not param_grid:
            raise ConfigurationError(f"Parameter grid for {model_family} is empty.")
        if not folds:
            raise ConfigurationError("At least one fold is required for tuning.")
        mismatched = [s.config_id for s in param_grid if s.family != model_family]
        if mismatched:
            raise ConfigurationError(f"Configurations {mismatched} do not belong to family '{model_family}'.")

        templates = {}
        for spec in param_grid:
            try:
                templates[spec.index] = build_estimator(spec)
            except ConfigurationError:
                raise
            except Exception as e:
                # fit_model rebuilds from the spec inside the task and records the failure there
                self.logger.warning(f"Could not build {spec.config_id}: {e}")
                templates[spec.index] = None

        n_tasks = len(param_grid) * len(folds)
        self.logger.info(
            f"Tuning {model_family}: {len(param_grid)} configurations x {len(folds)} folds = {n_tasks} tasks "
            f"(n_jobs={self.n_jobs}, backend={self.backend})"
        )
        start = time.time()

        task_results = Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(run_fold_task)(spec, templates[spec.index], self.recipe, fold,
                                  self.positive_class, metrics, self.task_timeout)
            for spec in param_grid
            for fold in folds
        )

        rows = pd.DataFrame([row for task in task_results for row in task], columns=ROW_COLUMNS)
        result = TuningResult(model_family=model_family, configurations=list(param_grid), metrics=metrics, rows=rows)

        n_failed = len(result.failures())
        self.logger.info(
            f"Tuning {model_family} finished in {time.time() - start:.1f}s "
            f"({n_tasks - n_failed} succeeded, {n_failed} failed)."
        )
        if n_failed:
            for _, failure in result.failures().head(5).iterrows():
                self.logger.warning(f"  {failure['config_id']} fold {failure['fold']}: {failure['error']}")

        gc.collect()
        return result

    @handle_engine_errors("Hyperparameter Tuning")
    def execute(self, folds: List[Fold], grids: Dict[str, List[ModelSpec]], run_id: str) -> Dict[str, TuningResult]:
        """Tune every family and persist fold rows and summaries."""
        self.logger.info("Starting Hyperparameter Tuning...")
        results = {}
        for family, grid in grids.items():
            result = self.tune(family, grid, folds)
            results[family] = result
            self._save_result(result)
        return results

    def _save_result(self, result: TuningResult) -> None:
        family = result.model_family
        self.save_table(result.rows, f"{family}_fold_metrics.parquet")
        self.save_table(result.summary(), f"{family}_summary.parquet")
        self.save_table(cv_fold_consistency(result.summary()), f"{family}_fold_consistency.parquet")
