"""
Data structures for the lidar/radar unscented Kalman filter.
"""
from dataclasses import dataclass, field
from enum import Enum
import numbers
from typing import Sequence, Tuple, Union
import numpy as np

from ukf_tracking.coordinate_transforms import normalize_angle
from ukf_tracking.exceptions import MalformedMeasurementError


def _whole_microseconds(timestamp) -> int:
    """Convert a timestamp to int, rejecting fractional or non-numeric values."""
    if isinstance(timestamp, numbers.Integral):
        return int(timestamp)
    try:
        value = float(timestamp)
    except (TypeError, ValueError):
        raise MalformedMeasurementError(f"Timestamp is not numeric: {timestamp!r}") from None
    if not value.is_integer():
        raise MalformedMeasurementError(f"Timestamp must be whole microseconds, got {timestamp!r}")
    return int(value)


class SensorType(Enum):
    """Sensors that can feed the estimator."""
    LIDAR = "lidar"
    RADAR = "radar"

    @property
    def measurement_dim(self) -> int:
        """Number of values in a measurement from this sensor."""
        return 2 if self is SensorType.LIDAR else 3


@dataclass
class Measurement:
    """
    A single timestamped sensor measurement.

    Attributes:
        sensor_type: Sensor that produced the measurement
        raw_measurements: (px, py) for lidar, (rho, phi, rho_dot) for radar
        timestamp: Measurement time in microseconds
    """
    sensor_type: SensorType
    raw_measurements: Union[Sequence[float], np.ndarray]
    timestamp: int

    def __post_init__(self):
        """Validate values against the declared sensor type."""
        if not isinstance(self.sensor_type, SensorType):
            try:
                self.sensor_type = SensorType(self.sensor_type)
            except ValueError:
                raise MalformedMeasurementError(f"Unknown sensor type: {self.sensor_type!r}") from None

        try:
            values = np.asarray(self.raw_measurements, dtype=float).reshape(-1)
        except (TypeError, ValueError) as exc:
            raise MalformedMeasurementError(f"Measurement values are not numeric: {exc}") from exc

        expected = self.sensor_type.measurement_dim
        if values.shape[0] != expected:
            raise MalformedMeasurementError(
                f"{self.sensor_type.value} measurement needs {expected} values, got {values.shape[0]}"
            )
        if not np.all(np.isfinite(values)):
            raise MalformedMeasurementError(f"{self.sensor_type.value} measurement has non-finite values")

        self.raw_measurements = values
        self.timestamp = _whole_microseconds(self.timestamp)

    @classmethod
    def lidar(cls, px: float, py: float, timestamp: int) -> "Measurement":
        return cls(SensorType.LIDAR, (px, py), timestamp)

    @classmethod
    def radar(cls, rho: float, phi: float, rho_dot: float, timestamp: int) -> "Measurement":
        return cls(SensorType.RADAR, (rho, phi, rho_dot), timestamp)


@dataclass
class StateEstimate:
    """
    CTRV state estimate with bookkeeping.

    Attributes:
        x: State vector [px, py, v, yaw, yaw_rate]
        P: 5x5 state covariance matrix
        timestamp: Time of the last processed measurement in microseconds
        is_initialized: Whether a first measurement has set the state
        nis_laser: NIS of the last lidar correction
        nis_radar: NIS of the last radar correction
    """
    x: np.ndarray
    P: np.ndarray
    timestamp: int = 0
    is_initialized: bool = False
    nis_laser: float = 0.0
    nis_radar: float = 0.0

    def __post_init__(self):
        self.x = np.asarray(self.x, dtype=float).reshape(-1)
        self.P = np.asarray(self.P, dtype=float)
        n_x = self.x.shape[0]
        if self.P.shape != (n_x, n_x):
            raise ValueError(f"Covariance shape {self.P.shape} does not match state size {n_x}")

    @property
    def position(self) -> Tuple[float, float]:
        """Get current position estimate."""
        return (float(self.x[0]), float(self.x[1]))

    @property
    def speed(self) -> float:
        return float(self.x[2])

    @property
    def yaw(self) -> float:
        """Heading wrapped into (-pi, pi]."""
        return normalize_angle(self.x[3])

    @property
    def yaw_rate(self) -> float:
        return float(self.x[4])

    @property
    def velocity(self) -> Tuple[float, float]:
        """Get current Cartesian velocity estimate."""
        return (float(self.speed * np.cos(self.x[3])), float(self.speed * np.sin(self.x[3])))

    def copy(self) -> "StateEstimate":
        return StateEstimate(
            x=self.x.copy(),
            P=self.P.copy(),
            timestamp=self.timestamp,
            is_initialized=self.is_initialized,
            nis_laser=self.nis_laser,
            nis_radar=self.nis_radar,
        )


@dataclass
class NISSummary:
    """
    Chi-square consistency summary of one sensor's NIS values.

    Attributes:
        sensor_type: Sensor the values belong to
        count: Number of recorded NIS values
        mean: Mean NIS (expected to approach the measurement dimension)
        threshold: Chi-square quantile used as the alarm threshold
        exceedance_ratio: Fraction of values above the threshold
        is_consistent: Whether the exceedance ratio is within tolerance
    """
    sensor_type: SensorType
    count: int
    mean: float
    threshold: float
    exceedance_ratio: float
    is_consistent: bool
    values: np.ndarray = field(default_factory=lambda: np.zeros(0), repr=False)
