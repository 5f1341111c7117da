"""
Model Comparison Module
=======================

Responsibility:
- Orchestrates grid generation, cross-validated tuning and selection for every model family.
- Ranks families by their best configuration and evaluates the winner on the test set.
"""

from .comparison_controller import ModelComparisonController

__all__ = ['ModelComparisonController']
