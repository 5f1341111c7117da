"""
Tuning Engine
=============

Responsibility:
- Grid search over (configuration x fold) tasks with joblib.
- Per-task failure isolation and soft timeouts.
- Aggregation of fold metrics (min/max/mean/median) per configuration.
"""

from .tuning_engine import TuningEngine, TuningResult, run_fold_task

__all__ = ['TuningEngine', 'TuningResult', 'run_fold_task']
