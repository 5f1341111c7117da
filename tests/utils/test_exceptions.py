import pytest
from utils.exceptions import (
    LoanMLException,
    ConfigurationError,
    InvalidFraction,
    InvalidFoldCount,
    UnknownStepConflict,
    DataValidationError,
    ModelTrainingError,
    FitError,
    TaskTimeoutError,
    PredictionError,
    NoValidConfiguration,
)

def test_exception_inheritance():
    err = ConfigurationError("Test error")
    assert isinstance(err, LoanMLException)
    assert isinstance(err, Exception)
    assert str(err) == "Test error"

@pytest.mark.parametrize("exc", [InvalidFraction, InvalidFoldCount, UnknownStepConflict])
def test_configuration_subclasses(exc):
    assert issubclass(exc, ConfigurationError)

def test_fit_errors_are_training_errors():
    assert issubclass(FitError, ModelTrainingError)
    assert issubclass(TaskTimeoutError, FitError)

@pytest.mark.parametrize("exc", [DataValidationError, PredictionError, NoValidConfiguration])
def test_runtime_errors_share_base(exc):
    with pytest.raises(LoanMLException):
        raise exc("boom")
