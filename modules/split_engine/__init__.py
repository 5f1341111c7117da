"""
Split Engine Module
===================

Responsibility:
- Stratified train/test splitting.
- Stratified k-fold partitioning for cross-validation.
"""

from .split_engine import SplitEngine, Fold

__all__ = ['SplitEngine', 'Fold']
