"""
SplitEngine for the Loan Default Tuning Pipeline.

This module partitions the validated loans dataset into a stratified
train/test split and partitions the train set into stratified folds for
cross-validation. Every stochastic operation takes its seed explicitly so
that splits are reproducible and testable in isolation.
"""
import pandas as pd
import logging
from dataclasses import dataclass
from typing import List, Tuple
from sklearn.model_selection import train_test_split, StratifiedKFold, KFold
from modules.base.base_engine import BaseEngine
from utils.error_handling import handle_engine_errors
from utils.exceptions import InvalidFraction, InvalidFoldCount, DataValidationError
from utils import constants


@dataclass(frozen=True)
class Fold:
    """One cross-validation round: `validation` is held out, `train` is the other k-1 subsets."""
    index: int
    train: pd.DataFrame
    validation: pd.DataFrame


class SplitEngine(BaseEngine):
    """
    Stratified train/test splitting and k-fold partitioning.

    Class proportions of the label are preserved in every subset. When a class
    is too small to stratify, the engine falls back to unstratified sampling
    and logs a warning rather than failing the run.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)

    def _get_engine_directory_name(self) -> str:
        return constants.MASTER_SPLITS_DIR

    @handle_engine_errors("Data Splitting")
    def execute(self, df: pd.DataFrame, run_id: str) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Execute the splitting workflow.

        Returns:
            train, test DataFrames
        """
        self.logger.info("Starting Split Engine execution...")

        label = self.config['data']['label']
        train_fraction = self.config.get('splitting', {}).get('train_fraction', 0.8)
        seed = self.seed('split')

        train, test = self.split(df, label, train_fraction, seed)

        report = self.balance_report(train, test, label)
        self.save_table(report, "split_balance_report.parquet")
        self.save_table(train, "train.parquet", index=True)
        self.save_table(test, "test.parquet", index=True)

        self.logger.info(f"Splits saved: Train={len(train)}, Test={len(test)}")
        return train, test

    def split(self, dataset: pd.DataFrame, label_field: str, train_fraction: float,
              seed: int) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Stratified train/test split.

        Each class is sampled at `train_fraction`; the two parts are then
        shuffled with the same seed so row order carries no class information.
        """
        if not (0.0 < train_fraction < 1.0):
            raise InvalidFraction(f"train_fraction must be between 0 and 1 (exclusive), got {train_fraction}")
        self._check_label(dataset, label_field)
        if len(dataset) < 2:
            raise DataValidationError(f"Need at least 2 records to split, got {len(dataset)}.")

        try:
            train, test = train_test_split(
                dataset,
                train_size=train_fraction,
                random_state=seed,
                shuffle=True,
                stratify=dataset[label_field]
            )
        except ValueError as e:
            self.logger.warning(f"Stratification failed: {e}. Falling back to random split.")
            train, test = train_test_split(
                dataset,
                train_size=train_fraction,
                random_state=seed,
                shuffle=True
            )

        train = train.sample(frac=1.0, random_state=seed)
        test = test.sample(frac=1.0, random_state=seed)
        return train, test

    def make_folds(self, dataset: pd.DataFrame, label_field: str, k: int, seed: int) -> List[pd.DataFrame]:
        """
        Partition `dataset` into k disjoint, stratified, near-equal subsets.
        Their union is exactly the input: no record dropped or duplicated.
        """
        if k < 2 or k > len(dataset):
            raise InvalidFoldCount(f"Fold count must be between 2 and {len(dataset)} (dataset size), got {k}")
        self._check_label(dataset, label_field)

        min_class = dataset[label_field].value_counts().min()
        if min_class >= k:
            cv = StratifiedKFold(n_splits=k, shuffle=True, random_state=seed)
            splits = cv.split(dataset, dataset[label_field])
        else:
            self.logger.warning(
                f"Smallest class has {min_class} records (< {k} folds). Using unstratified KFold."
            )
            cv = KFold(n_splits=k, shuffle=True, random_state=seed)
            splits = cv.split(dataset)

        return [dataset.iloc[val_idx] for _, val_idx in splits]

    @staticmethod
    def build_cv_folds(subsets: List[pd.DataFrame]) -> List[Fold]:
        """Turn k disjoint subsets into k (train, validation) rounds."""
        folds = []
        for i, validation in enumerate(subsets):
            train = pd.concat([s for j, s in enumerate(subsets) if j != i])
            folds.append(Fold(index=i + 1, train=train, validation=validation))
        return folds

    def make_cv_folds(self, dataset: pd.DataFrame, label_field: str, k: int, seed: int) -> List[Fold]:
        return self.build_cv_folds(self.make_folds(dataset, label_field, k, seed))

    @staticmethod
    def balance_report(train: pd.DataFrame, test: pd.DataFrame, label: str) -> pd.DataFrame:
        """Class counts and proportions per split, alongside the overall proportion."""
        overall = pd.concat([train[label], test[label]]).value_counts(normalize=True)
        report = []
        for cls in overall.index:
            c_train = int((train[label] == cls).sum())
            c_test = int((test[label] == cls).sum())
            report.append({
                'class': str(cls),
                'train_count': c_train,
                'test_count': c_test,
                'overall%': round(float(overall[cls]), 4),
                'train%': round(c_train / len(train), 4) if len(train) else 0.0,
                'test%': round(c_test / len(test), 4) if len(test) else 0.0,
            })
        return pd.DataFrame(report)

    @staticmethod
    def _check_label(dataset: pd.DataFrame, label_field: str) -> None:
        if label_field not in dataset.columns:
            raise DataValidationError(f"Label column '{label_field}' not found in dataset.")
