import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd

from modules.grid_generator import GridGenerator
from modules.model_factory import ModelSpec
from modules.recipe import Recipe
from modules.selection_engine import FinalReport, SelectionEngine, rank_configurations
from modules.split_engine import SplitEngine
from modules.tuning_engine import TuningEngine, TuningResult
from utils.exceptions import NoValidConfiguration
from utils.file_io import save_dataframe
from utils import constants


class ModelComparisonController:
    """
    Orchestrates the model comparison:
    grids -> folds -> tuning per family -> best per family -> best overall -> test evaluation.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.base_dir = Path(config.get('outputs', {}).get('base_results_dir', 'results'))
        self.excel_copy = config.get('outputs', {}).get('save_excel_copy', False)
        self.label = config['data']['label']
        self.seeds = config.get('_internal_seeds', {})
        self.folds_k = config.get('cross_validation', {}).get('folds', 5)

        self.recipe = Recipe.from_config(config.get('recipe', {}).get('steps', []), label=self.label)

        # Compute-only engines; avoid creating top-level folders they do not write to
        split_cfg = dict(config)
        split_cfg['outputs'] = {**config.get('outputs', {}), 'skip_dir_creation': True}
        self.split_engine = SplitEngine(split_cfg, logger)
        self.grid_generator = GridGenerator(logger)
        self.tuning_engine = TuningEngine(config, logger, self.recipe)
        self.selection_engine = SelectionEngine(config, logger, self.recipe)

        self.output_dir = self.base_dir / constants.COMPARISON_DIR

    def run(self, train_df: pd.DataFrame, test_df: pd.DataFrame, run_id: str) -> Tuple[FinalReport, pd.DataFrame]:
        """
        Main execution loop.

        Returns:
            (final test-set report of the overall winner, per-family comparison table)
        """
        self.logger.info(f"Recipe: {self.recipe}")

        # 1. Grids
        grids = self.grid_generator.execute(self.config['grids'], self.seeds.get('grid', 0), self.seeds.get('model'))

        # 2. Folds (shared by every family so scores are comparable)
        folds = self.split_engine.make_cv_folds(train_df, self.label, self.folds_k, self.seeds.get('cv', 0))
        self.logger.info(f"Built {len(folds)} stratified folds: sizes {[len(f.validation) for f in folds]}")

        # 3. Tuning
        results = self.tuning_engine.execute(folds, grids, run_id)

        # 4. Best per family, then best overall
        comparison, winners = self.compare(results)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        save_dataframe(comparison, self.output_dir / constants.MODEL_COMPARISON_FILE,
                       excel_copy=self.excel_copy, index=False)

        if not winners:
            raise NoValidConfiguration("No model family produced a valid configuration.")
        best_family = comparison.iloc[0]['model_family']
        best_spec = winners[best_family]
        self.logger.info(
            f"Overall best: {best_spec.config_id} "
            f"({self.selection_engine.selection_metric}={comparison.iloc[0]['mean']:.4f}) params={best_spec.params}"
        )

        # 5. Final refit + test evaluation
        report = self.selection_engine.execute(best_spec, train_df, test_df, run_id)
        return report, comparison

    def compare(self, results: Dict[str, TuningResult]) -> Tuple[pd.DataFrame, Dict[str, ModelSpec]]:
        """
        Best configuration per family and the family ranking.
        Families whose every configuration failed are kept in the table with absent scores.
        """
        metric = self.selection_engine.selection_metric
        direction = self.selection_engine.direction
        rows: List[Dict[str, Any]] = []
        winners: Dict[str, ModelSpec] = {}

        for family, result in results.items():
            try:
                spec = self.selection_engine.select_best(result, metric, direction)
            except NoValidConfiguration as e:
                self.logger.error(str(e))
                rows.append({'model_family': family, 'config_id': None, 'params': None, 'metric': metric,
                             'mean': float('nan'), 'median': float('nan'), 'min': float('nan'),
                             'max': float('nan'), 'n_folds': 0, 'n_failed': len(result.failures())})
                continue

            winners[family] = spec
            best_row = rank_configurations(result, metric, direction).iloc[0]
            rows.append({
                'model_family': family,
                'config_id': spec.config_id,
                'params': dict(spec.params),
                'metric': metric,
                'mean': best_row['mean'],
                'median': best_row['median'],
                'min': best_row['min'],
                'max': best_row['max'],
                'n_folds': int(best_row['n_folds']),
                'n_failed': int(best_row['n_failed']),
            })
            self.logger.info(f"Best {family}: {spec.config_id} {metric} mean={best_row['mean']:.4f}")

        table = pd.DataFrame(rows)
        ascending = direction == constants.MINIMIZE
        table['_absent'] = table['mean'].isna()
        table = (
            table.sort_values(['_absent', 'mean'], ascending=[True, ascending], kind='mergesort')
            .drop(columns='_absent')
            .reset_index(drop=True)
        )
        return table, winners
