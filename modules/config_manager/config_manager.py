import hashlib
import json
import logging
import os
import platform
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import psutil

from utils import constants
from utils.exceptions import ConfigurationError, InvalidFoldCount, InvalidFraction
from utils.file_io import save_json


class ConfigurationManager:
    """
    Loads the run configuration and rejects anything that would fail later.

    Validation runs in three passes: the JSON schema (shape and types), the
    per-section logical checks (fractions, fold counts, recipe steps, grids,
    metrics), and resource guardrails (grid size, memory). Every configuration
    error therefore surfaces before a single model is fit.
    """

    DEFAULT_MAX_HPO_CONFIGS = 1000

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = "config/schema.json"):
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Returns:
            The validated configuration with `_internal_seeds` filled in.

        Raises:
            ConfigurationError: On the first failed check.
        """
        self.config = self._load_json(self.config_path)
        schema = self._load_json(self.schema_path)
        try:
            jsonschema.validate(instance=self.config, schema=schema)
        except jsonschema.ValidationError as e:
            location = "/".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigurationError(f"Schema validation failed at {location}: {e.message}") from e

        label = self._validate_data(self.config.get('data', {}))
        self._validate_splitting(self.config.get('splitting', {}))
        self._validate_cross_validation(self.config.get('cross_validation', {}))
        self._validate_recipe(self.config.get('recipe', {}), label)
        self._validate_grids(self.config.get('grids', {}))
        self._validate_tuning(self.config.get('tuning', {}))
        self._validate_execution(self.config.get('execution', {}))
        self._validate_resources()
        self._propagate_seeds()
        return self.config

    def generate_run_id(self) -> str:
        """Timestamp id, fixed for the lifetime of this manager."""
        if not self.run_id:
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """Write the effective config, its SHA256 and environment metadata under 01_RunConfiguration."""
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        save_json(self.config, config_dir / constants.CONFIG_USED_FILE)

        digest = hashlib.sha256(json.dumps(self.config, sort_keys=True).encode()).hexdigest()
        config_dir.mkdir(parents=True, exist_ok=True)
        (config_dir / constants.CONFIG_HASH_FILE).write_text(digest)

        save_json({
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': platform.platform(),
            'cpu_count': os.cpu_count(),
            'config_hash': digest,
            'config_path': str(Path(self.config_path).resolve()),
            'working_directory': os.getcwd(),
        }, config_dir / constants.RUN_METADATA_FILE)

    @staticmethod
    def _load_json(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    # ------------------------------------------------------------------ #
    # Section checks                                                     #
    # ------------------------------------------------------------------ #
    @staticmethod
    def _validate_data(data: Dict[str, Any]) -> str:
        for key in ('file_path', 'label'):
            if not data.get(key):
                raise ConfigurationError(f"data.{key} must be specified and non-empty.")
        label = data['label']
        if label in (data.get('feature_columns') or []):
            raise ConfigurationError(f"Label column '{label}' cannot also be listed as a feature column.")
        return label

    @staticmethod
    def _validate_splitting(split: Dict[str, Any]) -> None:
        fraction = split.get('train_fraction', 0.8)
        if not (0.0 < fraction < 1.0):
            raise InvalidFraction(f"train_fraction must be between 0 and 1 (exclusive), got {fraction}")
        if split.get('seed', 42) < 0:
            raise ConfigurationError("splitting.seed must be non-negative.")

    @staticmethod
    def _validate_cross_validation(cv: Dict[str, Any]) -> None:
        folds = cv.get('folds', 5)
        if folds < 2:
            raise InvalidFoldCount(f"cross_validation.folds must be >= 2, got {folds}.")

    @staticmethod
    def _validate_recipe(recipe_cfg: Dict[str, Any], label: str) -> None:
        # Building the Recipe runs its own step-order and label checks.
        from modules.recipe import Recipe
        Recipe.from_config(recipe_cfg.get('steps', []), label=label)

    @staticmethod
    def _validate_grids(grids: Dict[str, Any]) -> None:
        from modules.model_factory import ModelFactory

        if not grids:
            raise ConfigurationError("At least one model family must be configured under 'grids'.")
        families = ModelFactory.get_available_families()
        for family, grid_cfg in grids.items():
            if family not in families:
                raise ConfigurationError(f"Unknown model family '{family}'. Available: {families}")
            mode = grid_cfg.get('mode', constants.GRID_MODE_RANDOM)
            if mode not in (constants.GRID_MODE_RANDOM, constants.GRID_MODE_EXHAUSTIVE):
                raise ConfigurationError(f"grids.{family}.mode must be 'random' or 'exhaustive', got '{mode}'.")
            size = grid_cfg.get('size')
            if mode == constants.GRID_MODE_RANDOM and (size is None or size < 1):
                raise ConfigurationError(f"Random grid for {family} needs a positive 'size', got {size}.")

    @staticmethod
    def _validate_tuning(tuning: Dict[str, Any]) -> None:
        from modules.evaluation_engine import get_metric, validate_metric_names

        metric_names = validate_metric_names(tuning.get('metrics', constants.DEFAULT_METRICS))
        selection_metric = tuning.get('selection_metric', metric_names[0])
        if selection_metric not in metric_names:
            raise ConfigurationError(
                f"selection_metric '{selection_metric}' must be one of the tuned metrics {metric_names}."
            )
        direction = tuning.get('direction', get_metric(selection_metric).direction)
        if direction not in (constants.MAXIMIZE, constants.MINIMIZE):
            raise ConfigurationError(f"tuning.direction must be 'maximize' or 'minimize', got '{direction}'.")
        timeout = tuning.get('task_timeout_sec')
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"tuning.task_timeout_sec must be > 0 when set, got {timeout}.")

    @staticmethod
    def _validate_execution(execution: Dict[str, Any]) -> None:
        n_jobs = execution.get('n_jobs', -1)
        if n_jobs == 0 or n_jobs < -1:
            raise ConfigurationError(f"execution.n_jobs must be -1 (all cores) or a positive integer, got {n_jobs}")

    def _validate_resources(self) -> None:
        """Cap the total number of configurations and sanity-check the memory budget."""
        from modules.grid_generator import GridGenerator

        resources = self.config.setdefault('resources', {})
        total_configs = sum(GridGenerator.expected_size(g) for g in self.config.get('grids', {}).values())
        max_configs = resources.get('max_hpo_configs', self.DEFAULT_MAX_HPO_CONFIGS)
        if total_configs > max_configs:
            raise ConfigurationError(
                f"HPO Grid Explosion Detected! {total_configs} configurations exceed the limit of {max_configs}. "
                "Reduce grid sizes or raise resources.max_hpo_configs."
            )
        folds = self.config.get('cross_validation', {}).get('folds', 5)
        self.logger.info(f"Grid size validated: {total_configs} configurations x {folds} folds "
                         f"= {total_configs * folds} tasks")

        system_ram_mb = psutil.virtual_memory().total // (1024 * 1024)
        max_memory_mb = resources.get('max_memory_mb', int(system_ram_mb * 0.8))
        if max_memory_mb > system_ram_mb:
            self.logger.warning(
                f"max_memory_mb ({max_memory_mb}MB) exceeds physical RAM ({system_ram_mb}MB); "
                "parallel tuning may swap."
            )
        resources['max_memory_mb'] = max_memory_mb

    def _propagate_seeds(self) -> None:
        """Derive one seed per stochastic component from splitting.seed."""
        master_seed = self.config.get('splitting', {}).get('seed', 42)
        self.config['_internal_seeds'] = {
            name: master_seed + offset for name, offset in constants.SEED_OFFSETS.items()
        }
        self.logger.debug(f"Seeds derived from master {master_seed}: {self.config['_internal_seeds']}")
