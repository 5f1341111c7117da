"""
Evaluation Module
=================

Responsibility:
- Registry of classification metrics shared by tuning and final evaluation.
- Fold-metric aggregation helpers (min/max/mean/median per configuration).
"""

from .metrics import (
    MetricDefinition,
    available_metrics,
    compute_metrics,
    get_metric,
    validate_metric_names,
)

__all__ = [
    'MetricDefinition',
    'available_metrics',
    'compute_metrics',
    'get_metric',
    'validate_metric_names',
]
