import logging
from typing import Dict

import numpy as np
import pandas as pd

from modules.base.base_engine import BaseEngine
from utils.error_handling import handle_engine_errors
from utils import constants


class ExplorationEngine(BaseEngine):
    """
    Exploratory statistics computed once on the validated dataset:
    class balance, numeric summaries, and the predictor correlation matrix
    with its most strongly correlated pairs (e.g. interest rate vs installment).
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.report_threshold = config.get('exploration', {}).get('report_threshold', 0.5)

    def _get_engine_directory_name(self) -> str:
        return constants.EXPLORATION_DIR

    @handle_engine_errors("Exploratory Analysis")
    def execute(self, df: pd.DataFrame, run_id: str) -> Dict[str, pd.DataFrame]:
        self.logger.info("Starting Exploratory Analysis...")
        label = self.config['data']['label']
        tables = self.summarize(df, label)

        for name, table in tables.items():
            self.save_table(table, f"{name}.parquet", index=(name == 'correlation_matrix'))

        pairs = tables['correlated_pairs']
        if not pairs.empty:
            top = pairs.iloc[0]
            self.logger.info(
                f"{len(pairs)} predictor pairs with |r| >= {self.report_threshold}; strongest: "
                f"{top['feature_a']} vs {top['feature_b']} (r={top['correlation']:.3f})"
            )
        return tables

    def summarize(self, df: pd.DataFrame, label: str) -> Dict[str, pd.DataFrame]:
        predictors = df.drop(columns=[label])
        numeric = predictors.select_dtypes(include=[np.number])

        counts = df[label].value_counts()
        class_balance = pd.DataFrame({
            'class': counts.index.astype(str),
            'count': counts.to_numpy(),
            'proportion': (counts / len(df)).to_numpy(),
        })

        numeric_summary = numeric.describe().T.rename_axis('feature').reset_index()
        corr = numeric.corr(method='pearson')

        return {
            'class_balance': class_balance,
            'numeric_summary': numeric_summary,
            'correlation_matrix': corr,
            'correlated_pairs': self.correlated_pairs(corr, self.report_threshold),
        }

    @staticmethod
    def correlated_pairs(corr: pd.DataFrame, threshold: float) -> pd.DataFrame:
        """Upper-triangle pairs with |r| >= threshold, strongest first."""
        rows = []
        cols = list(corr.columns)
        for i in range(len(cols)):
            for j in range(i + 1, len(cols)):
                r = corr.iat[i, j]
                if pd.notna(r) and abs(r) >= threshold:
                    rows.append({'feature_a': cols[i], 'feature_b': cols[j], 'correlation': float(r),
                                 'abs_correlation': abs(float(r))})
        pairs = pd.DataFrame(rows, columns=['feature_a', 'feature_b', 'correlation', 'abs_correlation'])
        return pairs.sort_values('abs_correlation', ascending=False, kind='mergesort').reset_index(drop=True)
