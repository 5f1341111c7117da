"""
Recipe: an ordered, declarative preprocessing pipeline.

A Recipe is fit once per training portion (a CV fold's train part, or the full
train set for the final refit) and the resulting FittedRecipe is applied to any
frame with the same schema: the training portion itself, the validation fold,
or the held-out test set. Statistics are only ever learned during `fit`.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from modules.recipe.steps import step_from_config
from utils.exceptions import ConfigurationError, DataValidationError, UnknownStepConflict


class Recipe:
    """
    Ordered list of step descriptors plus the label they must never touch.

    Steps compose in a fixed stage order (correlation filter, then encoding,
    then normalization) because filtering changes which numeric columns the
    downstream steps see.
    """

    def __init__(self, steps: Sequence[Any], label: str, predictors: Optional[Sequence[str]] = None):
        self.steps = tuple(steps)
        self.label = label
        self.predictors = tuple(predictors) if predictors is not None else None
        self._validate()

    @classmethod
    def from_config(cls, step_configs: List[Dict[str, Any]], label: str,
                    predictors: Optional[Sequence[str]] = None) -> "Recipe":
        return cls([step_from_config(cfg) for cfg in step_configs], label=label, predictors=predictors)

    def _validate(self) -> None:
        if self.predictors is not None and self.label in self.predictors:
            raise UnknownStepConflict(f"Label column '{self.label}' is listed among the recipe predictors.")

        last_stage = -1
        for step in self.steps:
            if step.columns and self.label in step.columns:
                raise UnknownStepConflict(
                    f"Recipe step '{step.kind}' selects the label column '{self.label}'."
                )
            if step.stage <= last_stage:
                raise ConfigurationError(
                    f"Recipe step '{step.kind}' is out of order; steps must follow "
                    f"correlation_filter -> encode -> normalize, each at most once."
                )
            last_stage = step.stage

    def resolve_predictors(self, data: pd.DataFrame) -> List[str]:
        if self.predictors is not None:
            missing = [c for c in self.predictors if c not in data.columns]
            if missing:
                raise DataValidationError(f"Recipe predictors missing from data: {missing}")
            return list(self.predictors)
        return [c for c in data.columns if c != self.label]

    def fit(self, training_data: pd.DataFrame) -> "FittedRecipe":
        """
        Fit every step in declared order. Each step sees the training frame as
        transformed by the steps before it.
        """
        current = self.resolve_predictors(training_data)
        frame = training_data[current]
        fitted_steps = []
        derived: List[str] = []

        for step in self.steps:
            candidates = [c for c in current if c not in derived] if step.skips_derived else current
            fitted = step.fit(frame, candidates)
            frame = fitted.apply(frame)
            next_predictors = fitted.output_predictors(current)
            derived.extend(c for c in next_predictors if c not in current)
            current = next_predictors
            fitted_steps.append(fitted)

        return FittedRecipe(
            steps=tuple(fitted_steps),
            label=self.label,
            predictors_in=tuple(self.resolve_predictors(training_data)),
            predictors_out=tuple(current),
        )

    def __repr__(self) -> str:
        return f"Recipe(label={self.label!r}, steps={[s.kind for s in self.steps]})"


@dataclass(frozen=True)
class FittedRecipe:
    steps: Tuple[Any, ...]
    label: str
    predictors_in: Tuple[str, ...]
    predictors_out: Tuple[str, ...]

    def apply(self, data: pd.DataFrame) -> pd.DataFrame:
        """
        Transform `data` with the learned parameters. The input is not mutated.
        The label column, when present, is carried through unchanged.
        """
        missing = [c for c in self.predictors_in if c not in data.columns]
        if missing:
            raise DataValidationError(f"Data is missing recipe predictors: {missing}")

        frame = data[list(self.predictors_in)]
        for step in self.steps:
            frame = step.apply(frame)
        frame = frame[list(self.predictors_out)]

        if self.label in data.columns:
            frame = frame.assign(**{self.label: data[self.label].to_numpy()})
        return frame
