import pytest
import pandas as pd
from modules.data_manager import DataManager
from utils.exceptions import DataValidationError

LABEL = 'not.fully.paid'

# --- Fixtures ---

@pytest.fixture
def base_config(tmp_path):
    return {
        "data": {
            "file_path": str(tmp_path / "loans.csv"),
            "label": LABEL,
            "positive_class": 1,
            "drop_columns": ["dti"],
        },
        "outputs": {
            "base_results_dir": str(tmp_path / "results")
        }
    }

@pytest.fixture
def create_data_file(tmp_path, loans_df):
    """Helper fixture to create a data file for loading tests."""
    def _create(file_format="csv", df=None):
        df = loans_df if df is None else df
        file_path = tmp_path / f"loans.{file_format}"
        if file_format == "xlsx":
            df.to_excel(file_path, index=False)
        elif file_format == "parquet":
            df.to_parquet(file_path, index=False)
        else:
            df.to_csv(file_path, index=False)
        return file_path
    return _create

# --- Loading ---

@pytest.mark.parametrize("file_format", ["csv", "xlsx", "parquet"])
def test_load_formats(base_config, mock_logger, create_data_file, loans_df, file_format):
    base_config['data']['file_path'] = str(create_data_file(file_format))
    df = DataManager(base_config, mock_logger).load_data()
    assert df.shape == loans_df.shape

def test_load_missing_file(base_config, mock_logger):
    with pytest.raises(DataValidationError, match="not found"):
        DataManager(base_config, mock_logger).load_data()

def test_load_unsupported_extension(base_config, mock_logger, tmp_path):
    path = tmp_path / "loans.json"
    path.write_text("{}")
    base_config['data']['file_path'] = str(path)
    with pytest.raises(DataValidationError, match="Unsupported"):
        DataManager(base_config, mock_logger).load_data()

# --- Validation ---

def test_validate_drops_columns(base_config, mock_logger, loans_df):
    out = DataManager(base_config, mock_logger).validate(loans_df)
    assert 'dti' not in out.columns
    assert out.columns[-1] == LABEL
    assert len(out) == len(loans_df)

def test_validate_feature_columns(base_config, mock_logger, loans_df):
    base_config['data']['feature_columns'] = ['fico', 'purpose']
    out = DataManager(base_config, mock_logger).validate(loans_df)
    assert list(out.columns) == ['fico', 'purpose', LABEL]

def test_validate_missing_feature(base_config, mock_logger, loans_df):
    base_config['data']['feature_columns'] = ['fico', 'revol.util']
    with pytest.raises(DataValidationError, match="revol.util"):
        DataManager(base_config, mock_logger).validate(loans_df)

def test_validate_label_missing(base_config, mock_logger, loans_df):
    with pytest.raises(DataValidationError, match="not found"):
        DataManager(base_config, mock_logger).validate(loans_df.drop(columns=LABEL))

def test_validate_label_nan(base_config, mock_logger, loans_df):
    df = loans_df.astype({LABEL: float})
    df.loc[df.index[0], LABEL] = float('nan')
    with pytest.raises(DataValidationError, match="missing values"):
        DataManager(base_config, mock_logger).validate(df)

def test_validate_requires_binary_label(base_config, mock_logger, loans_df):
    df = loans_df.copy()
    df.loc[df.index[0], LABEL] = 2
    with pytest.raises(DataValidationError, match="exactly two classes"):
        DataManager(base_config, mock_logger).validate(df)

def test_validate_positive_class_present(base_config, mock_logger, loans_df):
    base_config['data']['positive_class'] = 'yes'
    with pytest.raises(DataValidationError, match="positive_class"):
        DataManager(base_config, mock_logger).validate(loans_df)

# --- Execute ---

def test_execute_saves_outputs(base_config, mock_logger, create_data_file, tmp_path):
    create_data_file("csv")
    df = DataManager(base_config, mock_logger).execute("run_1")

    out_dir = tmp_path / "results" / "02_DataValidation"
    saved = pd.read_parquet(out_dir / "validated_data.parquet")
    assert saved.shape == df.shape
    stats = pd.read_parquet(out_dir / "column_stats.parquet")
    assert set(stats['column']) == set(df.columns)
    assert not stats.loc[stats['column'] == 'purpose', 'is_numeric'].item()
