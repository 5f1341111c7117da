"""
Recipe step descriptors.

Each step is a small declarative dataclass. `fit` learns whatever the step
needs strictly from the frame it is handed and returns an immutable fitted
counterpart whose `apply` can transform any frame with the training schema.
"""
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from utils.exceptions import ConfigurationError
from utils import constants


def numeric_columns(data: pd.DataFrame, columns: List[str]) -> List[str]:
    return [c for c in columns if pd.api.types.is_numeric_dtype(data[c]) and not pd.api.types.is_bool_dtype(data[c])]


def nominal_columns(data: pd.DataFrame, columns: List[str]) -> List[str]:
    return [c for c in columns if c not in numeric_columns(data, columns)]


def selected_columns(requested: Optional[Tuple[str, ...]], predictors: List[str]) -> List[str]:
    """Explicit step columns restricted to the predictors still present; all predictors when none are given."""
    if not requested:
        return list(predictors)
    return [c for c in requested if c in predictors]


# --------------------------------------------------------------------------- #
# Correlation filter                                                          #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class CorrelationFilter:
    """Drop numeric predictors that are pairwise correlated above `threshold`."""
    threshold: float = constants.DEFAULT_CORRELATION_THRESHOLD
    method: str = "pearson"
    columns: Optional[Tuple[str, ...]] = None

    kind: ClassVar[str] = "correlation_filter"
    stage: ClassVar[int] = 0
    skips_derived: ClassVar[bool] = False

    def __post_init__(self):
        if not (0.0 < self.threshold <= 1.0):
            raise ConfigurationError(f"Correlation threshold must be in (0, 1], got {self.threshold}")
        if self.method not in ("pearson", "spearman", "kendall"):
            raise ConfigurationError(f"Unsupported correlation method '{self.method}'")

    def fit(self, data: pd.DataFrame, predictors: List[str]) -> "FittedCorrelationFilter":
        candidates = numeric_columns(data, selected_columns(self.columns, predictors))
        removed = find_correlated(data[candidates], self.threshold, self.method) if len(candidates) > 1 else []
        return FittedCorrelationFilter(removed=tuple(removed))


@dataclass(frozen=True)
class FittedCorrelationFilter:
    removed: Tuple[str, ...]

    def apply(self, data: pd.DataFrame) -> pd.DataFrame:
        return data.drop(columns=[c for c in self.removed if c in data.columns])

    def output_predictors(self, predictors: List[str]) -> List[str]:
        return [c for c in predictors if c not in self.removed]


def find_correlated(frame: pd.DataFrame, threshold: float, method: str = "pearson") -> List[str]:
    """
    Greedy filter: while some pair exceeds the threshold, remove the member of
    the most correlated pair with the larger mean absolute correlation to the
    remaining columns. Ties remove the later column.
    """
    corr = frame.corr(method=method).abs().fillna(0.0)
    values = corr.to_numpy(copy=True)
    np.fill_diagonal(values, 0.0)
    keep = list(range(values.shape[0]))
    removed = []

    while len(keep) > 1:
        sub = values[np.ix_(keep, keep)]
        if sub.max() <= threshold:
            break
        i, j = np.unravel_index(np.argmax(sub), sub.shape)
        i, j = min(i, j), max(i, j)
        mean_abs = sub.sum(axis=1) / (len(keep) - 1)
        victim = keep[i] if mean_abs[i] > mean_abs[j] else keep[j]
        removed.append(corr.columns[victim])
        keep.remove(victim)

    return removed


# --------------------------------------------------------------------------- #
# One-hot encoding                                                            #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class Encode:
    """One-hot encode nominal predictors. Unseen categories map to an all-zero vector."""
    drop_first: bool = False
    columns: Optional[Tuple[str, ...]] = None

    kind: ClassVar[str] = "encode"
    stage: ClassVar[int] = 1
    skips_derived: ClassVar[bool] = False

    def fit(self, data: pd.DataFrame, predictors: List[str]) -> "FittedEncode":
        cols = nominal_columns(data, selected_columns(self.columns, predictors))
        if not cols:
            return FittedEncode(columns=(), encoder=None, output_columns=())
        encoder = OneHotEncoder(
            handle_unknown="ignore",
            drop="first" if self.drop_first else None,
            sparse_output=False,
            dtype=np.float64,
        )
        encoder.fit(_as_categories(data, cols))
        return FittedEncode(
            columns=tuple(cols),
            encoder=encoder,
            output_columns=tuple(encoder.get_feature_names_out(cols)),
        )


@dataclass(frozen=True)
class FittedEncode:
    columns: Tuple[str, ...]
    encoder: Optional[OneHotEncoder]
    output_columns: Tuple[str, ...]

    def apply(self, data: pd.DataFrame) -> pd.DataFrame:
        if self.encoder is None:
            return data
        encoded = pd.DataFrame(
            self.encoder.transform(_as_categories(data, list(self.columns))),
            columns=list(self.output_columns),
            index=data.index,
        )
        return pd.concat([data.drop(columns=list(self.columns)), encoded], axis=1)

    def output_predictors(self, predictors: List[str]) -> List[str]:
        return [c for c in predictors if c not in self.columns] + list(self.output_columns)


def _as_categories(data: pd.DataFrame, cols: List[str]) -> pd.DataFrame:
    # Missing levels become an explicit category so the encoder never sees NaN
    return data[cols].astype(object).where(data[cols].notna(), constants.UNKNOWN_CATEGORY).astype(str)


# --------------------------------------------------------------------------- #
# Normalization                                                               #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class Normalize:
    """Center and scale numeric predictors to zero mean and unit variance."""
    columns: Optional[Tuple[str, ...]] = None

    kind: ClassVar[str] = "normalize"
    stage: ClassVar[int] = 2
    # Indicator columns produced by Encode are left unscaled
    skips_derived: ClassVar[bool] = True

    def fit(self, data: pd.DataFrame, predictors: List[str]) -> "FittedNormalize":
        cols = numeric_columns(data, selected_columns(self.columns, predictors))
        if not cols:
            return FittedNormalize(columns=(), scaler=None)
        scaler = StandardScaler()
        scaler.fit(data[cols].to_numpy(dtype=np.float64))
        return FittedNormalize(columns=tuple(cols), scaler=scaler)


@dataclass(frozen=True)
class FittedNormalize:
    columns: Tuple[str, ...]
    scaler: Optional[StandardScaler]

    def apply(self, data: pd.DataFrame) -> pd.DataFrame:
        if self.scaler is None:
            return data
        scaled = self.scaler.transform(data[list(self.columns)].to_numpy(dtype=np.float64))
        out = data.copy()
        out[list(self.columns)] = scaled
        return out

    def output_predictors(self, predictors: List[str]) -> List[str]:
        return list(predictors)

    @property
    def means(self) -> Dict[str, float]:
        return dict(zip(self.columns, self.scaler.mean_)) if self.scaler is not None else {}

    @property
    def scales(self) -> Dict[str, float]:
        return dict(zip(self.columns, self.scaler.scale_)) if self.scaler is not None else {}


STEP_TYPES = {
    CorrelationFilter.kind: CorrelationFilter,
    Encode.kind: Encode,
    Normalize.kind: Normalize,
}


def step_from_config(step_cfg: Dict[str, Any]):
    """Build a step descriptor from a config entry like {"type": "normalize"}."""
    cfg = dict(step_cfg)
    kind = cfg.pop('type', None)
    if kind not in STEP_TYPES:
        raise ConfigurationError(f"Unknown recipe step type '{kind}'. Available: {list(STEP_TYPES)}")
    if cfg.get('columns') is not None:
        cfg['columns'] = tuple(cfg['columns'])
    try:
        return STEP_TYPES[kind](**cfg)
    except TypeError as e:
        raise ConfigurationError(f"Invalid arguments for recipe step '{kind}': {e}") from e
