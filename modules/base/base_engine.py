import abc
import logging
from pathlib import Path
from typing import Any, Dict

import pandas as pd

from utils.file_io import save_dataframe


class BaseEngine(abc.ABC):
    """
    Common plumbing for pipeline stages that persist artifacts.

    Subclasses name their numbered results folder and implement `execute`.
    Tables written through `save_table` land in that folder as Parquet, with an
    Excel copy when `outputs.save_excel_copy` is set. Setting
    `outputs.skip_dir_creation` turns an engine into a compute-only helper.
    """

    def __init__(self, config: Dict[str, Any], logger: logging.Logger):
        self.config = config
        self.logger = logger
        outputs = config.get('outputs', {})
        self.base_dir = Path(outputs.get('base_results_dir', 'results'))
        self.output_dir = self.base_dir / self._get_engine_directory_name()
        self.excel_copy = outputs.get('save_excel_copy', False)

        if not outputs.get('skip_dir_creation', False):
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self.logger.info(f"Output directory for {type(self).__name__}: {self.output_dir}")

    @abc.abstractmethod
    def _get_engine_directory_name(self) -> str:
        """Numbered folder under the run directory, e.g. '05_HyperparameterTuning'."""

    @abc.abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """Run the stage and persist its artifacts."""

    def seed(self, component: str) -> int:
        """Seed for `component` from `_internal_seeds`, falling back to the master seed."""
        seeds = self.config.get('_internal_seeds', {})
        if component in seeds:
            return seeds[component]
        return self.config.get('splitting', {}).get('seed', 42)

    def save_table(self, df: pd.DataFrame, filename: str, index: bool = False) -> Path:
        return save_dataframe(df, self.output_dir / filename, excel_copy=self.excel_copy, index=index)
