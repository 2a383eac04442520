# estimator.py
"""
Measurement processing loop of the CTRV unscented Kalman filter.
"""
import logging
from typing import Optional
import numpy as np

from ukf_tracking.config import UKFConfig
from ukf_tracking.coordinate_transforms import polar_to_cartesian
from ukf_tracking.data_structures import Measurement, SensorType, StateEstimate
from ukf_tracking.exceptions import NonMonotonicTimestampError, NumericalSingularityError
from ukf_tracking.kalman_filter import LidarCorrector, checked_covariance
from ukf_tracking.metrics import NISMonitor
from ukf_tracking.motion_model import MotionPropagator
from ukf_tracking.radar_update import RadarCorrector
from ukf_tracking.sigma_points import SigmaPointGenerator

logger = logging.getLogger(__name__)

MICROSECONDS_PER_SECOND = 1_000_000.0


class UKFEstimator:
    """
    Fuses lidar and radar measurements of a single object into a CTRV state.

    Each call to process() is one atomic cycle: the first measurement
    initializes the state, every later one runs prediction followed by the
    correction matching the measurement's sensor type. A cycle that raises
    leaves the estimate exactly as it was before the call.
    """

    def __init__(self, config: Optional[UKFConfig] = None,
                 nis_monitor: Optional[NISMonitor] = None):
        """
        Initialize estimator.

        Args:
            config: Filter configuration; defaults are used if omitted
            nis_monitor: Optional monitor that receives every NIS value
        """
        self.config = config or UKFConfig()
        self.nis_monitor = nis_monitor

        # Initialize components
        self.generator = SigmaPointGenerator(self.config)
        self.propagator = MotionPropagator(self.config, self.generator)
        self.lidar = LidarCorrector(self.config)
        self.radar = RadarCorrector(self.config, self.generator.weights)

        self.state = self._initial_state()
        self.sigma_points_pred: Optional[np.ndarray] = None

    def _initial_state(self) -> StateEstimate:
        return StateEstimate(x=np.zeros(self.config.n_x), P=self.config.initial_covariance)

    @property
    def is_initialized(self) -> bool:
        return self.state.is_initialized

    @property
    def x(self) -> np.ndarray:
        return self.state.x

    @property
    def P(self) -> np.ndarray:
        return self.state.P

    @property
    def nis_laser(self) -> float:
        return self.state.nis_laser

    @property
    def nis_radar(self) -> float:
        return self.state.nis_radar

    def reset(self):
        """Return to the uninitialized state."""
        self.state = self._initial_state()
        self.sigma_points_pred = None

    def process(self, measurement: Measurement) -> StateEstimate:
        """
        Process one measurement.

        Args:
            measurement: Lidar or radar measurement, timestamps non-decreasing

        Returns:
            The updated state estimate (the estimator's own object)

        Raises:
            NonMonotonicTimestampError: If the measurement is older than the last one
            NumericalSingularityError: If a covariance needed by the cycle is singular
                or the corrected covariance is not positive definite
        """
        if not self.state.is_initialized:
            self._initialize(measurement)
            return self.state

        if measurement.timestamp < self.state.timestamp:
            logger.warning("Rejecting %s measurement at %d us: last processed at %d us",
                           measurement.sensor_type.value, measurement.timestamp, self.state.timestamp)
            raise NonMonotonicTimestampError(measurement.timestamp, self.state.timestamp)

        if not self._sensor_enabled(measurement.sensor_type):
            logger.debug("Ignoring %s measurement at %d us: sensor disabled",
                         measurement.sensor_type.value, measurement.timestamp)
            return self.state

        dt = (measurement.timestamp - self.state.timestamp) / MICROSECONDS_PER_SECOND

        try:
            x_pred, P_pred, sigma_pred = self.propagator.predict(self.state.x, self.state.P, dt)
            if measurement.sensor_type is SensorType.LIDAR:
                x_new, P_new, nis = self.lidar.correct(x_pred, P_pred, measurement.raw_measurements)
            else:
                x_new, P_new, nis = self.radar.correct(x_pred, P_pred, sigma_pred,
                                                       measurement.raw_measurements)
            # The next prediction factors P, so only a positive definite one is kept
            P_new = checked_covariance(P_new)
        except NumericalSingularityError:
            logger.warning("Dropping %s measurement at %d us: numerical singularity, state unchanged",
                           measurement.sensor_type.value, measurement.timestamp)
            raise

        self._commit(measurement, x_new, P_new, sigma_pred, nis)
        logger.debug("%s update dt=%.6f s NIS=%.4f x=%s",
                     measurement.sensor_type.value, dt, nis, x_new)
        return self.state

    def _sensor_enabled(self, sensor_type: SensorType) -> bool:
        if sensor_type is SensorType.LIDAR:
            return self.config.use_laser
        return self.config.use_radar

    def _initialize(self, measurement: Measurement):
        """
        Set the state from the first measurement; no correction runs.

        Args:
            measurement: First measurement of the stream
        """
        values = measurement.raw_measurements
        x = np.zeros(self.config.n_x)
        if measurement.sensor_type is SensorType.RADAR:
            rho, phi, rho_dot = values
            px, py = polar_to_cartesian(rho, phi)
            # Range rate only approximates speed; it is the radial component
            x[:] = [px, py, rho_dot, phi, 0.0]
        else:
            x[0], x[1] = values

        self.state.x = x
        self.state.P = self.config.initial_covariance
        self.state.timestamp = measurement.timestamp
        self.state.is_initialized = True
        logger.info("Initialized from %s measurement at %d us: x=%s",
                    measurement.sensor_type.value, measurement.timestamp, x)

    def _commit(self, measurement: Measurement, x: np.ndarray, P: np.ndarray,
                sigma_pred: np.ndarray, nis: float):
        self.state.x = x
        self.state.P = P
        self.state.timestamp = measurement.timestamp
        self.sigma_points_pred = sigma_pred
        if measurement.sensor_type is SensorType.LIDAR:
            self.state.nis_laser = nis
        else:
            self.state.nis_radar = nis

        if self.nis_monitor is not None:
            self.nis_monitor.record(measurement.sensor_type, nis)
