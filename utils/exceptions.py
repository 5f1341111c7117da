"""
Custom exception hierarchy for the Loan Default Model Tuning System.
"""

class LoanMLException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(LoanMLException):
    """Configuration validation failed."""
    pass

class InvalidFraction(ConfigurationError):
    """Train fraction outside the open interval (0, 1)."""
    pass

class InvalidFoldCount(ConfigurationError):
    """Fold count below 2 or larger than the dataset."""
    pass

class UnknownStepConflict(ConfigurationError):
    """A recipe step would transform the label column."""
    pass

class DataValidationError(LoanMLException):
    """Data validation failed."""
    pass

class ModelTrainingError(LoanMLException):
    """Model training failed."""
    pass

class FitError(ModelTrainingError):
    """A single model fit failed (non-convergence, degenerate input, ...)."""
    pass

class TaskTimeoutError(FitError):
    """A fit/score task exceeded its time budget."""
    pass

class PredictionError(LoanMLException):
    """Prediction generation failed."""
    pass

class NoValidConfiguration(LoanMLException):
    """Every configuration in the grid failed on every fold."""
    pass
