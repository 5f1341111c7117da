import numpy as np
import pandas as pd
import pytest

from modules.recipe import Recipe
from modules.recipe.steps import CorrelationFilter, Encode, Normalize, find_correlated, step_from_config
from utils.exceptions import ConfigurationError, DataValidationError, UnknownStepConflict

LABEL = 'not.fully.paid'


@pytest.fixture
def full_recipe():
    return Recipe([CorrelationFilter(0.9), Encode(), Normalize()], label=LABEL)


def test_fit_output_schema(full_recipe, loans_df):
    fitted = full_recipe.fit(loans_df)
    out = fitted.apply(loans_df)

    # installment is a near-linear function of int.rate
    assert 'installment' in fitted.steps[0].removed or 'int.rate' in fitted.steps[0].removed
    assert 'purpose' not in out.columns
    assert 'purpose_credit_card' in out.columns
    assert out[LABEL].tolist() == loans_df[LABEL].tolist()
    assert list(out.columns) == list(fitted.predictors_out) + [LABEL]


def test_apply_is_idempotent_and_pure(full_recipe, loans_df):
    before = loans_df.copy()
    fitted = full_recipe.fit(loans_df)
    pd.testing.assert_frame_equal(fitted.apply(loans_df), fitted.apply(loans_df))
    pd.testing.assert_frame_equal(loans_df, before)


def test_normalize_uses_training_statistics_only(loans_df):
    train, test = loans_df.iloc[:70], loans_df.iloc[70:].copy()
    test['fico'] = test['fico'] + 500

    fitted = Recipe([Normalize()], label=LABEL).fit(train)
    norm = fitted.steps[0]
    assert norm.means['fico'] == pytest.approx(train['fico'].mean())

    out_train = fitted.apply(train)
    out_test = fitted.apply(test)
    assert out_train['fico'].mean() == pytest.approx(0.0, abs=1e-9)
    assert out_test['fico'].mean() > 5


def test_normalize_skips_indicator_columns(loans_df):
    fitted = Recipe([Encode(), Normalize()], label=LABEL).fit(loans_df)
    out = fitted.apply(loans_df)
    indicators = [c for c in out.columns if c.startswith('purpose_')]
    assert set(np.unique(out[indicators].to_numpy())) <= {0.0, 1.0}
    assert not any(c.startswith('purpose_') for c in fitted.steps[1].columns)


def test_unseen_category_encodes_to_zero_vector(loans_df):
    fitted = Recipe([Encode()], label=LABEL).fit(loans_df)
    row = loans_df.iloc[[0]].copy()
    row['purpose'] = 'small_business'

    out = fitted.apply(row)
    indicators = [c for c in out.columns if c.startswith('purpose_')]
    assert len(indicators) == 4
    assert (out[indicators].to_numpy() == 0).all()


def test_missing_category_becomes_unknown(loans_df):
    df = loans_df.copy()
    df.loc[df.index[:3], 'purpose'] = None
    out = Recipe([Encode()], label=LABEL).fit(df).apply(df)
    assert 'purpose_unknown' in out.columns
    assert out['purpose_unknown'].sum() == 3


def test_label_in_predictors_conflict():
    with pytest.raises(UnknownStepConflict):
        Recipe([Normalize()], label=LABEL, predictors=['fico', LABEL])


def test_step_selecting_label_conflict():
    with pytest.raises(UnknownStepConflict):
        Recipe([Normalize(columns=('fico', LABEL))], label=LABEL)


def test_step_order_enforced():
    with pytest.raises(ConfigurationError, match="out of order"):
        Recipe([Normalize(), Encode()], label=LABEL)
    with pytest.raises(ConfigurationError):
        Recipe([Encode(), Encode()], label=LABEL)


def test_apply_missing_predictor(full_recipe, loans_df):
    fitted = full_recipe.fit(loans_df)
    with pytest.raises(DataValidationError, match="dti"):
        fitted.apply(loans_df.drop(columns='dti'))


def test_apply_without_label(full_recipe, loans_df):
    fitted = full_recipe.fit(loans_df)
    out = fitted.apply(loans_df.drop(columns=LABEL))
    assert LABEL not in out.columns


def test_empty_recipe_passes_predictors_through(loans_df):
    out = Recipe([], label=LABEL).fit(loans_df).apply(loans_df)
    pd.testing.assert_frame_equal(out, loans_df)


def test_step_columns_removed_by_earlier_filter_are_skipped(loans_df):
    recipe = Recipe([CorrelationFilter(0.9), Encode(), Normalize(columns=('int.rate', 'installment', 'fico'))],
                    label=LABEL)
    fitted = recipe.fit(loans_df)
    removed = fitted.steps[0].removed
    assert 'int.rate' in removed or 'installment' in removed

    norm = fitted.steps[2]
    assert not set(norm.columns) & set(removed)
    assert 'fico' in norm.columns
    assert list(fitted.apply(loans_df).columns) == list(fitted.predictors_out) + [LABEL]


def test_step_columns_absent_from_data_are_ignored(loans_df):
    fitted = Recipe([Encode(columns=('purpose', 'home.ownership'))], label=LABEL).fit(loans_df)
    assert fitted.steps[0].columns == ('purpose',)


def test_find_correlated_drops_one_of_pair():
    rng = np.random.default_rng(0)
    a = rng.normal(size=200)
    frame = pd.DataFrame({'a': a, 'b': a * 2 + 0.001 * rng.normal(size=200), 'c': rng.normal(size=200)})
    removed = find_correlated(frame, threshold=0.9)
    assert len(removed) == 1
    assert removed[0] in ('a', 'b')


def test_correlation_threshold_validation():
    with pytest.raises(ConfigurationError):
        CorrelationFilter(threshold=0)


def test_step_from_config():
    step = step_from_config({'type': 'correlation_filter', 'threshold': 0.75, 'columns': ['fico']})
    assert step == CorrelationFilter(threshold=0.75, columns=('fico',))
    with pytest.raises(ConfigurationError, match="Unknown recipe step"):
        step_from_config({'type': 'pca'})
    with pytest.raises(ConfigurationError, match="Invalid arguments"):
        step_from_config({'type': 'normalize', 'scale': 2})


def test_from_config_roundtrip(loans_df):
    recipe = Recipe.from_config([{'type': 'encode'}, {'type': 'normalize'}], label=LABEL)
    assert [s.kind for s in recipe.steps] == ['encode', 'normalize']
    assert LABEL in recipe.fit(loans_df).apply(loans_df).columns
