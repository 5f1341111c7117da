"""
Helpers for the numbered results directory layout.
"""

from pathlib import Path

import pandas as pd

from utils.file_io import save_dataframe
from utils import constants


class ResultsLayoutManager:
    """
    Creates the run's top-level folder structure and writes a manifest of
    every artifact produced once the run completes.
    """

    def __init__(self, base_dir: Path, excel_copy: bool = False, logger=None):
        self.base_dir = Path(base_dir)
        self.excel_copy = excel_copy
        self.logger = logger

    def ensure_base_structure(self) -> None:
        """Create base directory structure with sequential numbering."""
        for folder in constants.TOP_LEVEL_RESULT_DIRS:
            (self.base_dir / folder).mkdir(parents=True, exist_ok=True)

    def write_manifest(self) -> Path:
        """List every file under the run directory (relative path, size) in artifact_manifest.parquet."""
        rows = []
        for path in sorted(self.base_dir.rglob("*")):
            if path.is_file() and not path.name.startswith("artifact_manifest"):
                rows.append({
                    'section': path.relative_to(self.base_dir).parts[0],
                    'path': str(path.relative_to(self.base_dir)),
                    'size_bytes': path.stat().st_size,
                })
        manifest = pd.DataFrame(rows, columns=['section', 'path', 'size_bytes'])
        out = save_dataframe(manifest, self.base_dir / "artifact_manifest.parquet",
                             excel_copy=self.excel_copy, index=False)
        if self.logger:
            self.logger.info(f"Artifact manifest written: {len(manifest)} files")
        return out
