import logging
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest


def make_loans(n=100, seed=0, positive_rate=0.2):
    """Small synthetic loans frame shaped like the LendingClub extract."""
    rng = np.random.default_rng(seed)
    n_pos = int(round(n * positive_rate))
    label = np.array([1] * n_pos + [0] * (n - n_pos))
    rng.shuffle(label)
    int_rate = 0.06 + 0.15 * rng.random(n) + 0.02 * label
    return pd.DataFrame({
        'credit.policy': rng.integers(0, 2, n),
        'purpose': rng.choice(['debt_consolidation', 'credit_card', 'all_other', 'educational'], n),
        'int.rate': int_rate,
        'installment': 1000 * int_rate + rng.normal(0, 1, n),
        'fico': rng.integers(620, 820, n) - 40 * label,
        'dti': rng.uniform(0, 30, n),
        'not.fully.paid': label,
    })


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def loans_df():
    return make_loans()


@pytest.fixture
def loans_factory():
    return make_loans
