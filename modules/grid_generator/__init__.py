"""
Parameter Grid Generator
========================

Responsibility:
- Random (seeded, de-duplicated) and exhaustive grids of ModelSpecs per model family.
"""

from .grid_generator import GridGenerator, IntRange, FloatRange, Choice, parse_param

__all__ = ['GridGenerator', 'IntRange', 'FloatRange', 'Choice', 'parse_param']
