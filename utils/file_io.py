"""
Table and JSON persistence for run artifacts.

Tables go to Parquet, optionally mirrored to .xlsx. Cells holding dicts or
lists (hyperparameter assignments, mostly) are written as JSON text because
their shape varies from row to row.
"""
import json
from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd

READERS = {
    ".parquet": pd.read_parquet,
    ".csv": pd.read_csv,
    ".xlsx": pd.read_excel,
    ".xls": pd.read_excel,
}


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that understands NumPy scalars and arrays."""

    def default(self, obj):
        if isinstance(obj, np.generic):
            return obj.item()
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


def _is_nested(value: Any) -> bool:
    return isinstance(value, (dict, list, tuple))


def _encode_nested(df: pd.DataFrame) -> pd.DataFrame:
    nested = [c for c in df.columns if df[c].dtype == object and df[c].map(_is_nested).any()]
    if not nested:
        return df
    encode = lambda v: json.dumps(v, sort_keys=True, cls=NumpyEncoder) if _is_nested(v) else v
    return df.assign(**{c: df[c].map(encode) for c in nested})


def save_dataframe(df: pd.DataFrame, path: Path, *, excel_copy: bool = False, index: bool = False) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table = _encode_nested(df)
    table.to_parquet(path, index=index)
    if excel_copy:
        table.to_excel(path.with_suffix(".xlsx"), index=index)
    return path


def read_dataframe(path: Path) -> pd.DataFrame:
    """Load a table, picking the reader from the file extension."""
    path = Path(path)
    reader = READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported file extension: {path.suffix}")
    return reader(path)


def save_json(payload: Dict[str, Any], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(payload, f, indent=2, cls=NumpyEncoder)
    return path
