"""
Lidar/Radar Sensor Fusion with an Unscented Kalman Filter

Estimates the 2D position, speed, heading and turn rate of a single moving
object from asynchronous lidar and radar measurements, using a constant turn
rate and velocity (CTRV) motion model.

Key Components:
- Measurement and StateEstimate data structures
- Angle normalization and polar/Cartesian conversion
- Sigma point generation for the noise-augmented state
- CTRV motion propagation (unscented prediction)
- Linear lidar correction and unscented radar correction
- NIS consistency monitoring against the chi-square distribution

Usage:
    from ukf_tracking import UKFEstimator, Measurement

    # Initialize estimator
    ukf = UKFEstimator()

    # Process measurements in time order
    ukf.process(Measurement.lidar(1.0, 0.5, timestamp=0))
    state = ukf.process(Measurement.radar(1.3, 0.46, 0.9, timestamp=50000))

    # Get results
    print(state.position, state.speed, state.yaw, ukf.nis_radar)
"""

from .data_structures import Measurement, NISSummary, SensorType, StateEstimate
from .config import UKFConfig, load_config
from .coordinate_transforms import (
    normalize_angle,
    polar_to_cartesian,
    cartesian_to_polar
)
from .exceptions import (
    EstimatorError,
    MalformedMeasurementError,
    NonMonotonicTimestampError,
    NumericalSingularityError
)
from .sigma_points import SigmaPointGenerator
from .motion_model import MotionPropagator, ctrv_transition
from .kalman_filter import LidarCorrector
from .radar_update import RadarCorrector
from .metrics import NISMonitor
from .estimator import UKFEstimator

__version__ = "1.0.0"

__all__ = [
    # Data structures
    'Measurement',
    'NISSummary',
    'SensorType',
    'StateEstimate',

    # Configuration
    'UKFConfig',
    'load_config',

    # Coordinate transforms
    'normalize_angle',
    'polar_to_cartesian',
    'cartesian_to_polar',

    # Errors
    'EstimatorError',
    'MalformedMeasurementError',
    'NonMonotonicTimestampError',
    'NumericalSingularityError',

    # Core components
    'SigmaPointGenerator',
    'MotionPropagator',
    'ctrv_transition',
    'LidarCorrector',
    'RadarCorrector',
    'NISMonitor',
    'UKFEstimator',
]
