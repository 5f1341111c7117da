import json

import numpy as np
import pandas as pd
import pytest

from utils.file_io import read_dataframe, save_dataframe, save_json


def test_nested_cells_stored_as_json(tmp_path):
    df = pd.DataFrame({'config_id': ['a', 'b'], 'params': [{'max_depth': np.int64(3)}, None]})
    path = save_dataframe(df, tmp_path / "sub" / "t.parquet")
    back = read_dataframe(path)
    assert json.loads(back['params'][0]) == {'max_depth': 3}
    assert pd.isna(back['params'][1])
    # caller's frame untouched
    assert isinstance(df['params'][0], dict)

def test_excel_copy(tmp_path):
    save_dataframe(pd.DataFrame({'a': [1]}), tmp_path / "t.parquet", excel_copy=True)
    assert read_dataframe(tmp_path / "t.xlsx")['a'].tolist() == [1]

def test_read_unsupported(tmp_path):
    with pytest.raises(ValueError, match="Unsupported"):
        read_dataframe(tmp_path / "t.feather")

def test_save_json_numpy(tmp_path):
    path = save_json({'n': np.int64(4), 'auc': np.float64(0.75), 'arr': np.array([1, 2])}, tmp_path / "m.json")
    assert json.loads(path.read_text()) == {'n': 4, 'auc': 0.75, 'arr': [1, 2]}
