"""
CTRV motion model and the prediction half of the unscented transform.
"""
import logging
from typing import Optional, Tuple
import numpy as np

from ukf_tracking.config import UKFConfig
from ukf_tracking.coordinate_transforms import normalize_angle
from ukf_tracking.sigma_points import SigmaPointGenerator

logger = logging.getLogger(__name__)

YAW_INDEX = 3


def ctrv_transition(sigma_points: np.ndarray, dt: float,
                    yaw_rate_threshold: float = 0.001) -> np.ndarray:
    """
    Propagate augmented sigma points through the CTRV model.

    Args:
        sigma_points: Augmented points (7, n) with rows
            [px, py, v, yaw, yaw_rate, nu_a, nu_yawdd]
        dt: Elapsed time in seconds
        yaw_rate_threshold: Below this |yaw_rate| the straight-line model is used

    Returns:
        Predicted state points of shape (5, n)
    """
    px, py, v, yaw, yawd, nu_a, nu_yawdd = sigma_points

    turning = np.abs(yawd) > yaw_rate_threshold
    # Dummy divisor keeps the straight-line columns free of division warnings
    safe_yawd = np.where(turning, yawd, 1.0)

    yaw_end = yaw + yawd * dt
    px_step = np.where(turning,
                       v / safe_yawd * (np.sin(yaw_end) - np.sin(yaw)),
                       v * np.cos(yaw) * dt)
    py_step = np.where(turning,
                       v / safe_yawd * (np.cos(yaw) - np.cos(yaw_end)),
                       v * np.sin(yaw) * dt)

    half_dt2 = 0.5 * dt * dt
    predicted = np.empty((5, sigma_points.shape[1]))
    predicted[0] = px + px_step + half_dt2 * np.cos(yaw) * nu_a
    predicted[1] = py + py_step + half_dt2 * np.sin(yaw) * nu_a
    predicted[2] = v + dt * nu_a
    predicted[3] = yaw_end + half_dt2 * nu_yawdd
    predicted[4] = yawd + dt * nu_yawdd
    return predicted


def weighted_mean(points: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Weighted sum of sigma point columns."""
    return points @ weights


def weighted_covariance(diffs: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Weighted sum of outer products of (already angle-wrapped) difference columns."""
    return (diffs * weights) @ diffs.T


def state_differences(points: np.ndarray, mean: np.ndarray) -> np.ndarray:
    """Sigma point minus mean for every column, heading wrapped into (-pi, pi]."""
    diffs = points - mean[:, None]
    diffs[YAW_INDEX] = normalize_angle(diffs[YAW_INDEX])
    return diffs


class MotionPropagator:
    """
    Predicts the CTRV state forward in time with the unscented transform.
    """

    def __init__(self, config: UKFConfig, generator: Optional[SigmaPointGenerator] = None):
        """
        Initialize propagator.

        Args:
            config: Filter configuration
            generator: Sigma point generator; one is built from config if omitted
        """
        self.config = config
        self.generator = generator or SigmaPointGenerator(config)

    @property
    def weights(self) -> np.ndarray:
        return self.generator.weights

    def predict(self, x: np.ndarray, P: np.ndarray,
                dt: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Predict state mean and covariance after dt seconds.

        Args:
            x: Current state vector (5,)
            P: Current state covariance (5, 5)
            dt: Elapsed time in seconds, non-negative

        Returns:
            Tuple of (predicted_state, predicted_covariance, predicted_sigma_points)
            where predicted_sigma_points has shape (5, 15) and is reused by the
            measurement update of the same cycle

        Raises:
            NumericalSingularityError: If the augmented covariance is not positive definite
        """
        sigma_aug = self.generator.generate(x, P)
        sigma_pred = ctrv_transition(sigma_aug, dt, self.config.yaw_rate_threshold)

        x_pred = weighted_mean(sigma_pred, self.weights)
        P_pred = weighted_covariance(state_differences(sigma_pred, x_pred), self.weights)

        logger.debug("Predicted %.6f s ahead: x=%s", dt, x_pred)
        return x_pred, P_pred, sigma_pred
