# kalman_filter.py

"""
Linear Kalman correction for lidar measurements.
The lidar observes position only, so no unscented transform is needed.
"""
import logging
from typing import Tuple
import numpy as np
import scipy.linalg

from ukf_tracking.config import UKFConfig
from ukf_tracking.exceptions import MalformedMeasurementError, NumericalSingularityError

logger = logging.getLogger(__name__)


def invert_innovation_covariance(S: np.ndarray) -> np.ndarray:
    """
    Invert an innovation covariance matrix.

    Raises:
        NumericalSingularityError: If S is singular or not finite
    """
    if not np.all(np.isfinite(S)):
        raise NumericalSingularityError("Innovation covariance has non-finite entries")
    try:
        return np.linalg.inv(S)
    except np.linalg.LinAlgError as exc:
        logger.debug("Innovation covariance is singular: %s", exc)
        raise NumericalSingularityError(f"Innovation covariance is singular: {exc}") from exc


def checked_covariance(P: np.ndarray) -> np.ndarray:
    """
    Symmetrize an updated state covariance and verify it can be factored.

    Args:
        P: Covariance produced by a correction

    Returns:
        0.5 * (P + P.T)

    Raises:
        NumericalSingularityError: If the symmetrized matrix is not positive definite
    """
    P = 0.5 * (P + P.T)
    try:
        scipy.linalg.cholesky(P, lower=True)
    except (np.linalg.LinAlgError, ValueError) as exc:
        logger.debug("Updated covariance rejected: %s", exc)
        raise NumericalSingularityError(f"Updated covariance is not positive definite: {exc}") from exc
    return P


class LidarCorrector:
    """
    Kalman measurement update with a position-only measurement model.

    State vector: [px, py, v, yaw, yaw_rate]
    Measurement vector: [px, py]
    """

    def __init__(self, config: UKFConfig):
        """
        Initialize lidar corrector.

        Args:
            config: Filter configuration (lidar noise levels)
        """
        self.dim_x = config.n_x
        self.dim_z = 2

        # Measurement matrix (observe position only)
        self.H = np.zeros((self.dim_z, self.dim_x))
        self.H[0, 0] = 1.0
        self.H[1, 1] = 1.0

        # Measurement noise covariance matrix
        self.R = config.lidar_noise

    def correct(self,
                state: np.ndarray,
                covariance: np.ndarray,
                measurement: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
        """
        Update state estimate with a lidar measurement.

        Args:
            state: Predicted state vector
            covariance: Predicted state covariance matrix
            measurement: Lidar measurement (px, py)

        Returns:
            Tuple of (updated_state, updated_covariance, nis)

        Raises:
            MalformedMeasurementError: If the measurement does not have 2 values
            NumericalSingularityError: If the innovation covariance is singular
        """
        z = np.asarray(measurement, dtype=float).reshape(-1)
        if z.shape[0] != self.dim_z:
            raise MalformedMeasurementError(f"Lidar measurement needs 2 values, got {z.shape[0]}")

        # Innovation: y = z - H * x_{k|k-1}
        innovation = z - self.H @ state

        # Innovation covariance: S = H * P_{k|k-1} * H^T + R
        innovation_cov = self.H @ covariance @ self.H.T + self.R
        innovation_cov_inv = invert_innovation_covariance(innovation_cov)

        # Kalman gain: K = P_{k|k-1} * H^T * S^{-1}
        kalman_gain = covariance @ self.H.T @ innovation_cov_inv

        # Update state: x_{k|k} = x_{k|k-1} + K * y
        state_updated = state + kalman_gain @ innovation

        # Update covariance: P_{k|k} = (I - K * H) * P_{k|k-1}
        I_KH = np.eye(self.dim_x) - kalman_gain @ self.H
        covariance_updated = I_KH @ covariance

        nis = float(innovation @ innovation_cov_inv @ innovation)
        return state_updated, covariance_updated, nis
