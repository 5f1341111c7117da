import numpy as np
import pandas as pd
from typing import List, Sequence

from utils import constants

SUMMARY_COLUMNS = [
    'config_index', 'config_id', 'model_family', 'params', 'metric',
    'n_folds', 'n_failed', 'min', 'max', 'mean', 'median',
]


def aggregate_fold_metrics(rows: pd.DataFrame, configurations: Sequence, metrics: List[str]) -> pd.DataFrame:
    """
    Summarize per-fold metric rows into one row per (configuration, metric).

    `rows` is the long table produced by tuning: one row per
    (config_index, fold, metric) with a `status` column. Failed folds and NaN
    values are excluded from the statistics, but every (configuration, metric)
    pair is present in the output: a configuration whose folds all failed
    keeps its rows with NaN statistics.
    """
    ok = rows[(rows['status'] == constants.TASK_STATUS_SUCCESS) & rows['value'].notna()]
    stats = (
        ok.groupby(['config_index', 'metric'])['value']
        .agg(['count', 'min', 'max', 'mean', 'median'])
        .rename(columns={'count': 'n_folds'})
    )

    failed = (
        rows[rows['status'] == constants.TASK_STATUS_FAILED]
        .drop_duplicates(['config_index', 'fold'])
        .groupby('config_index')
        .size()
    )

    summary = []
    for spec in configurations:
        for metric in metrics:
            key = (spec.index, metric)
            row = stats.loc[key] if key in stats.index else None
            summary.append({
                'config_index': spec.index,
                'config_id': spec.config_id,
                'model_family': spec.family,
                'params': dict(spec.params),
                'metric': metric,
                'n_folds': int(row['n_folds']) if row is not None else 0,
                'n_failed': int(failed.get(spec.index, 0)),
                'min': float(row['min']) if row is not None else np.nan,
                'max': float(row['max']) if row is not None else np.nan,
                'mean': float(row['mean']) if row is not None else np.nan,
                'median': float(row['median']) if row is not None else np.nan,
            })
    return pd.DataFrame(summary, columns=SUMMARY_COLUMNS)


def cv_fold_consistency(summary: pd.DataFrame) -> pd.DataFrame:
    """
    Spread of fold scores per configuration and metric (max - min).
    A wide range flags configurations whose score depends heavily on the fold.
    """
    out = summary[['config_id', 'metric', 'n_folds', 'min', 'max', 'mean']].copy()
    out['range'] = out['max'] - out['min']
    return out
