"""
Parameter grid generation for model families.

Parameter declarations come straight from the JSON config:

    {"type": "int", "low": 1, "high": 15}
    {"type": "float", "low": 1e-4, "high": 1e-1, "log": true}
    {"type": "categorical", "choices": ["gini", "entropy"]}
    [50, 100, 200]          # explicit values
    42                      # fixed value
"""
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from sklearn.model_selection import ParameterGrid

from modules.model_factory import ModelFactory, ModelSpec
from utils.exceptions import ConfigurationError
from utils import constants


@dataclass(frozen=True)
class IntRange:
    low: int
    high: int

    def sample(self, rng: np.random.Generator) -> int:
        return int(rng.integers(self.low, self.high, endpoint=True))

    def values(self) -> List[int]:
        return list(range(self.low, self.high + 1))


@dataclass(frozen=True)
class FloatRange:
    low: float
    high: float
    log: bool = False

    def sample(self, rng: np.random.Generator) -> float:
        if self.log:
            return float(math.exp(rng.uniform(math.log(self.low), math.log(self.high))))
        return float(rng.uniform(self.low, self.high))

    def values(self) -> List[float]:
        raise ConfigurationError(
            f"Continuous range [{self.low}, {self.high}] cannot be enumerated; use explicit values for exhaustive grids."
        )


@dataclass(frozen=True)
class Choice:
    choices: Tuple[Any, ...]

    def sample(self, rng: np.random.Generator) -> Any:
        return self.choices[int(rng.integers(0, len(self.choices)))]

    def values(self) -> List[Any]:
        """Distinct choices in declared order."""
        unique = []
        for value in self.choices:
            if not any(type(value) is type(u) and value == u for u in unique):
                unique.append(value)
        return unique


def parse_param(name: str, declaration: Any):
    """Turn one config declaration into an IntRange, FloatRange or Choice."""
    if isinstance(declaration, list):
        if not declaration:
            raise ConfigurationError(f"Parameter '{name}' has an empty value list.")
        return Choice(tuple(declaration))

    if not isinstance(declaration, dict):
        return Choice((declaration,))

    kind = declaration.get('type')
    try:
        if kind == 'int':
            low, high = int(declaration['low']), int(declaration['high'])
            if low > high:
                raise ConfigurationError(f"Parameter '{name}': low ({low}) > high ({high}).")
            return IntRange(low, high)
        if kind == 'float':
            low, high = float(declaration['low']), float(declaration['high'])
            log = bool(declaration.get('log', False))
            if low > high:
                raise ConfigurationError(f"Parameter '{name}': low ({low}) > high ({high}).")
            if log and low <= 0:
                raise ConfigurationError(f"Parameter '{name}': log-uniform range needs low > 0.")
            return FloatRange(low, high, log)
        if kind == 'categorical':
            choices = declaration['choices']
            if not choices:
                raise ConfigurationError(f"Parameter '{name}' has no choices.")
            return Choice(tuple(choices))
    except KeyError as e:
        raise ConfigurationError(f"Parameter '{name}' is missing key {e}.") from e

    raise ConfigurationError(f"Parameter '{name}' has unknown type '{kind}'.")


def _signature(params: Dict[str, Any]) -> str:
    return json.dumps(params, sort_keys=True, default=str)


class GridGenerator:
    """
    Produces ordered, fully bound ModelSpecs for one model family.

    The order of the returned list is the configuration index used for
    tie-breaking during selection, so generation is fully deterministic for a
    given seed.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, max_retries: int = constants.DEFAULT_GRID_RETRIES):
        self.logger = logger or logging.getLogger(__name__)
        self.max_retries = max_retries

    def generate(self, model_family: str, param_space: Dict[str, Any], size: Optional[int],
                 mode: str, seed: int) -> List[ModelSpec]:
        parsed = {name: parse_param(name, decl) for name, decl in (param_space or {}).items()}

        if mode == constants.GRID_MODE_RANDOM:
            if size is None or size < 1:
                raise ConfigurationError(f"Random grid for {model_family} needs size >= 1, got {size}.")
            combos = self._random(model_family, parsed, size, seed)
        elif mode == constants.GRID_MODE_EXHAUSTIVE:
            if size is not None and size < 1:
                raise ConfigurationError(f"Exhaustive grid size for {model_family} must be >= 1, got {size}.")
            combos = self._exhaustive(parsed, size)
        else:
            raise ConfigurationError(f"Unknown grid mode '{mode}'. Use 'random' or 'exhaustive'.")

        specs = [ModelSpec(family=model_family, params=params, index=i + 1) for i, params in enumerate(combos)]
        self.logger.info(f"Generated {len(specs)} configurations for {model_family} ({mode}).")
        return specs

    def _random(self, family: str, parsed: Dict[str, Any], size: int, seed: int) -> List[Dict[str, Any]]:
        rng = np.random.default_rng(seed)
        seen = set()
        combos = []
        for _ in range(size):
            params = self._draw(parsed, rng)
            retries = 0
            while _signature(params) in seen and retries < self.max_retries:
                params = self._draw(parsed, rng)
                retries += 1
            if _signature(params) in seen:
                self.logger.warning(
                    f"Duplicate configuration accepted for {family} after {self.max_retries} retries: {params}"
                )
            seen.add(_signature(params))
            combos.append(params)
        return combos

    @staticmethod
    def _draw(parsed: Dict[str, Any], rng: np.random.Generator) -> Dict[str, Any]:
        return {name: _to_python(dist.sample(rng)) for name, dist in parsed.items()}

    @staticmethod
    def _exhaustive(parsed: Dict[str, Any], size: Optional[int]) -> List[Dict[str, Any]]:
        grid = {name: dist.values() for name, dist in parsed.items()}
        # ParameterGrid iterates keys in sorted order; keep that so the index is stable.
        combos = [dict(p) for p in ParameterGrid(grid)] if grid else [{}]
        return combos[:size] if size is not None else combos

    @staticmethod
    def expected_size(grid_cfg: Dict[str, Any]) -> int:
        """Number of configurations a grid config will produce (without generating them)."""
        mode = grid_cfg.get('mode', constants.GRID_MODE_RANDOM)
        size = grid_cfg.get('size')
        if mode == constants.GRID_MODE_RANDOM:
            return int(size or 0)
        total = 1
        for name, decl in (grid_cfg.get('params') or {}).items():
            total *= len(parse_param(name, decl).values())
        return min(total, size) if size is not None else total

    def execute(self, grids_config: Dict[str, Dict[str, Any]], seed: int,
                model_seed: Optional[int] = None) -> Dict[str, List[ModelSpec]]:
        """
        Generate grids for every configured family. Each family gets its own seed offset.

        When `model_seed` is given, families whose estimator takes a `random_state`
        and whose grid does not set one get it as a fixed parameter.
        """
        grids = {}
        for offset, (family, grid_cfg) in enumerate(grids_config.items()):
            params = dict(grid_cfg.get('params') or {})
            if model_seed is not None and 'random_state' not in params \
                    and 'random_state' in ModelFactory.create(family).get_params():
                params['random_state'] = model_seed
            grids[family] = self.generate(
                family,
                params,
                grid_cfg.get('size'),
                grid_cfg.get('mode', constants.GRID_MODE_RANDOM),
                seed + offset,
            )
        return grids


def _to_python(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value
