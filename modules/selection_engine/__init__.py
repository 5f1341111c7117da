"""
Selection Engine
================

Responsibility:
- Rank tuned configurations and select the best one (deterministic tie-break).
- Refit the winner on the full train set and evaluate it once on the test set.
"""

from .selection_engine import (
    SelectionEngine,
    FinalReport,
    finalize,
    rank_configurations,
    select_best,
)

__all__ = ['SelectionEngine', 'FinalReport', 'finalize', 'rank_configurations', 'select_best']
