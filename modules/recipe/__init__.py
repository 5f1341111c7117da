"""
Recipe Module
=============

Responsibility:
- Declarative preprocessing steps (correlation filter, one-hot encoding, normalization).
- Fit on a training portion only; apply deterministically to any split.
"""

from .recipe import Recipe, FittedRecipe
from .steps import (
    CorrelationFilter,
    Encode,
    Normalize,
    find_correlated,
    step_from_config,
)

__all__ = [
    'Recipe',
    'FittedRecipe',
    'CorrelationFilter',
    'Encode',
    'Normalize',
    'find_correlated',
    'step_from_config',
]
