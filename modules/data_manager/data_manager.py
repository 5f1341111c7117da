import pandas as pd
import logging
from pathlib import Path
from typing import Optional

from utils.exceptions import DataValidationError
from utils.file_io import read_dataframe, save_dataframe
from utils.error_handling import handle_engine_errors
from utils import constants

class DataManager:
    """
    Manages loading and validation of the raw loans dataset.

    Guarantees for downstream engines:
    - the label column exists, has no missing values, and holds exactly two classes;
    - every configured feature column is present;
    - configured drop columns are removed.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.data: Optional[pd.DataFrame] = None
        self.base_dir = Path(self.config.get('outputs', {}).get('base_results_dir', 'results'))
        self.data_cfg = self.config.get('data', {})

    @handle_engine_errors("Data Management")
    def execute(self, run_id: str) -> pd.DataFrame:
        """
        Execute complete data loading and validation workflow.

        Args:
            run_id: Unique identifier for the run.

        Returns:
            pd.DataFrame: The validated dataset.
        """
        self.logger.info("Starting Data Manager execution...")

        output_dir = self.base_dir / constants.DATA_VALIDATION_DIR
        output_dir.mkdir(parents=True, exist_ok=True)
        excel_copy = self.config.get("outputs", {}).get("save_excel_copy", False)

        self.load_data()
        self.data = self.validate(self.data)

        save_path = output_dir / "validated_data.parquet"
        save_dataframe(self.data, save_path, excel_copy=excel_copy, index=False)
        self.logger.info(f"Saved validated data to {save_path}")

        save_dataframe(self.column_stats(self.data), output_dir / "column_stats.parquet",
                       excel_copy=excel_copy, index=False)
        return self.data

    def load_data(self) -> pd.DataFrame:
        """
        Load data from the file path specified in config (CSV, Excel or Parquet).
        """
        file_path = Path(self.data_cfg['file_path'])
        if not file_path.exists():
            raise DataValidationError(f"Data file not found: {file_path}")

        self.logger.info(f"Loading data from {file_path}")
        try:
            self.data = read_dataframe(file_path)
        except ValueError as e:
            raise DataValidationError(str(e)) from e

        if self.data.empty:
            raise DataValidationError("Loaded dataframe is empty.")

        self.logger.info(f"Loaded {len(self.data)} rows x {len(self.data.columns)} columns.")
        return self.data

    def validate(self, df: pd.DataFrame) -> pd.DataFrame:
        """Check the label and feature schema; return the frame restricted to label + features."""
        label = self.data_cfg['label']
        if label not in df.columns:
            raise DataValidationError(f"Label column '{label}' not found. Columns: {list(df.columns)}")

        missing_labels = int(df[label].isna().sum())
        if missing_labels:
            raise DataValidationError(f"Label column '{label}' has {missing_labels} missing values.")

        classes = sorted(df[label].unique().tolist(), key=str)
        if len(classes) != 2:
            raise DataValidationError(f"Label column '{label}' must have exactly two classes, found {classes}.")

        positive_class = self.data_cfg.get('positive_class', 1)
        if positive_class not in classes:
            raise DataValidationError(
                f"positive_class {positive_class!r} is not one of the label classes {classes}."
            )

        drop_cols = [c for c in self.data_cfg.get('drop_columns', []) if c in df.columns]
        if drop_cols:
            self.logger.info(f"Dropping configured columns: {drop_cols}")

        features = self.data_cfg.get('feature_columns')
        if features:
            missing = [c for c in features if c not in df.columns]
            if missing:
                raise DataValidationError(f"Configured feature columns missing from data: {missing}")
            features = [c for c in features if c not in drop_cols]
        else:
            features = [c for c in df.columns if c != label and c not in drop_cols]

        if not features:
            raise DataValidationError("No feature columns left after applying drop_columns.")

        counts = df[label].value_counts()
        self.logger.info(
            "Class balance: " + ", ".join(f"{k}={v} ({v / len(df):.1%})" for k, v in counts.items())
        )
        return df[features + [label]]

    @staticmethod
    def column_stats(df: pd.DataFrame) -> pd.DataFrame:
        """Type, missing count and cardinality per column."""
        return pd.DataFrame({
            'column': df.columns,
            'dtype': [str(t) for t in df.dtypes],
            'missing': df.isna().sum().to_numpy(),
            'n_unique': df.nunique().to_numpy(),
            'is_numeric': [bool(pd.api.types.is_numeric_dtype(df[c])) for c in df.columns],
        })
