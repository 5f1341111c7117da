"""
Data Manager Module
===================

Responsibility:
- Loading of the raw loans dataset (CSV, Excel, Parquet).
- Validation of the label (binary, complete) and feature schema.
- Persistence of validated data for downstream consumption.
"""

from .data_manager import DataManager

__all__ = ['DataManager']
