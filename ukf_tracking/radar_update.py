# radar_update.py

"""
Unscented measurement update for radar (range, bearing, range rate).

The predicted sigma points of the current cycle are mapped into measurement
space instead of being re-sampled:

    rho     = sqrt(px^2 + py^2)
    phi     = atan2(py, px)
    rho_dot = (px * cos(yaw) * v + py * sin(yaw) * v) / rho
"""
import logging
from typing import Tuple
import numpy as np

from ukf_tracking.config import UKFConfig
from ukf_tracking.coordinate_transforms import cartesian_to_polar, normalize_angle
from ukf_tracking.exceptions import MalformedMeasurementError
from ukf_tracking.kalman_filter import invert_innovation_covariance
from ukf_tracking.motion_model import state_differences, weighted_mean

logger = logging.getLogger(__name__)

BEARING_INDEX = 1


class RadarCorrector:
    """
    Radar measurement update via a second unscented transform.
    """

    def __init__(self, config: UKFConfig, weights: np.ndarray):
        """
        Initialize radar corrector.

        Args:
            config: Filter configuration (radar noise and origin clamp)
            weights: Sigma point weights used for the prediction
        """
        self.dim_z = 3
        self.R = config.radar_noise
        self.weights = weights
        self.origin_threshold = config.origin_threshold
        self.origin_clamp = config.origin_clamp

    def clamp_origin(self, sigma_points: np.ndarray) -> np.ndarray:
        """
        Move points sitting on the origin off it so range stays non-zero.

        Args:
            sigma_points: Predicted state points (5, n)

        Returns:
            Copy of the points with px and py clamped where both are near zero
        """
        points = sigma_points.copy()
        at_origin = ((np.abs(points[0]) < self.origin_threshold) &
                     (np.abs(points[1]) < self.origin_threshold))
        if np.any(at_origin):
            logger.debug("Clamping %d sigma point(s) at the origin", int(np.count_nonzero(at_origin)))
            points[0, at_origin] = self.origin_clamp
            points[1, at_origin] = self.origin_clamp
        return points

    def measurement_sigma_points(self, sigma_points: np.ndarray) -> np.ndarray:
        """
        Map predicted state points into radar measurement space.

        Args:
            sigma_points: Predicted state points (5, n), already clamped

        Returns:
            Measurement points (3, n) with rows [rho, phi, rho_dot]
        """
        px, py, v, yaw = sigma_points[0], sigma_points[1], sigma_points[2], sigma_points[3]
        rho, phi, rho_dot = cartesian_to_polar(px, py, v * np.cos(yaw), v * np.sin(yaw))
        return np.vstack([rho, phi, rho_dot])

    def correct(self,
                state: np.ndarray,
                covariance: np.ndarray,
                sigma_points: np.ndarray,
                measurement: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
        """
        Update state estimate with a radar measurement.

        Args:
            state: Predicted state vector
            covariance: Predicted state covariance matrix
            sigma_points: Predicted sigma points (5, 15) from the same cycle
            measurement: Radar measurement (rho, phi, rho_dot)

        Returns:
            Tuple of (updated_state, updated_covariance, nis)

        Raises:
            MalformedMeasurementError: If the measurement does not have 3 values
            NumericalSingularityError: If the innovation covariance is singular
        """
        z = np.asarray(measurement, dtype=float).reshape(-1)
        if z.shape[0] != self.dim_z:
            raise MalformedMeasurementError(f"Radar measurement needs 3 values, got {z.shape[0]}")

        points = self.clamp_origin(sigma_points)
        z_sigma = self.measurement_sigma_points(points)
        z_pred = weighted_mean(z_sigma, self.weights)

        z_diffs = z_sigma - z_pred[:, None]
        z_diffs[BEARING_INDEX] = normalize_angle(z_diffs[BEARING_INDEX])
        x_diffs = state_differences(points, state)

        weighted_z = z_diffs * self.weights
        innovation_cov = weighted_z @ z_diffs.T + self.R
        cross_cov = x_diffs @ weighted_z.T

        innovation_cov_inv = invert_innovation_covariance(innovation_cov)
        kalman_gain = cross_cov @ innovation_cov_inv

        innovation = z - z_pred
        innovation[BEARING_INDEX] = normalize_angle(innovation[BEARING_INDEX])

        # Heading is left unwrapped; StateEstimate.yaw wraps it for consumers
        state_updated = state + kalman_gain @ innovation
        covariance_updated = covariance - kalman_gain @ innovation_cov @ kalman_gain.T

        nis = float(innovation @ innovation_cov_inv @ innovation)
        return state_updated, covariance_updated, nis
