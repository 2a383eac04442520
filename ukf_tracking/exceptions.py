"""
Exceptions raised by the unscented Kalman filter.
"""
import numpy as np


class EstimatorError(Exception):
    """Base class for all estimator errors."""


class NumericalSingularityError(EstimatorError, np.linalg.LinAlgError):
    """
    A covariance matrix needed by the filter is not positive definite or not invertible.

    Raised when the augmented covariance has no Cholesky factor or an
    innovation covariance is singular. The cycle that raised it has not
    modified the estimator state.
    """


class MalformedMeasurementError(EstimatorError, ValueError):
    """Measurement values do not match the declared sensor type."""


class NonMonotonicTimestampError(EstimatorError, ValueError):
    """Measurement timestamp is older than the last processed one."""

    def __init__(self, timestamp: int, last_timestamp: int):
        super().__init__(
            f"Measurement timestamp {timestamp} us precedes last processed "
            f"timestamp {last_timestamp} us"
        )
        self.timestamp = timestamp
        self.last_timestamp = last_timestamp
