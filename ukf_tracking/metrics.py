"""
Filter consistency metrics.
Compares Normalized Innovation Squared (NIS) values against chi-square quantiles.
"""
import logging
from typing import Dict, List, Optional
import numpy as np
from scipy.stats import chi2

from .data_structures import NISSummary, SensorType

logger = logging.getLogger(__name__)


class NISMonitor:
    """
    Collects NIS values per sensor and checks them against the chi-square distribution.

    A well tuned filter produces NIS values that follow a chi-square
    distribution with as many degrees of freedom as the measurement has
    components, so about (1 - confidence) of them should exceed the
    confidence quantile.
    """

    def __init__(self, confidence: float = 0.95, tolerance: float = 0.05,
                 warn_on_exceedance: bool = False):
        """
        Initialize monitor.

        Args:
            confidence: Chi-square quantile used as the alarm threshold
            tolerance: Allowed excess of the exceedance ratio over 1 - confidence
            warn_on_exceedance: Log a warning for every value above the threshold
        """
        if not 0.0 < confidence < 1.0:
            raise ValueError(f"confidence must be in (0, 1), got {confidence}")
        self.confidence = confidence
        self.tolerance = tolerance
        self.warn_on_exceedance = warn_on_exceedance
        self.values: Dict[SensorType, List[float]] = {sensor: [] for sensor in SensorType}

    def threshold(self, sensor_type: SensorType) -> float:
        """Chi-square quantile for the sensor's measurement dimension."""
        return float(chi2.ppf(self.confidence, df=sensor_type.measurement_dim))

    def record(self, sensor_type: SensorType, nis: float):
        """
        Record one NIS value.

        Args:
            sensor_type: Sensor whose correction produced the value
            nis: NIS value
        """
        self.values[sensor_type].append(float(nis))
        if self.warn_on_exceedance and nis > self.threshold(sensor_type):
            logger.warning("%s NIS %.3f exceeds chi-square %.0f%% threshold %.3f",
                           sensor_type.value, nis, self.confidence * 100, self.threshold(sensor_type))

    def exceedance_ratio(self, sensor_type: SensorType) -> Optional[float]:
        """
        Fraction of recorded values above the threshold.

        Returns:
            Ratio in [0, 1], or None if nothing was recorded for the sensor
        """
        values = np.asarray(self.values[sensor_type])
        if values.size == 0:
            return None
        return float(np.mean(values > self.threshold(sensor_type)))

    def summary(self, sensor_type: SensorType) -> NISSummary:
        """
        Summarize consistency for one sensor.

        Args:
            sensor_type: Sensor to summarize

        Returns:
            NISSummary; a sensor without values is reported as consistent
        """
        values = np.asarray(self.values[sensor_type])
        threshold = self.threshold(sensor_type)
        if values.size == 0:
            return NISSummary(sensor_type=sensor_type, count=0, mean=float('nan'),
                              threshold=threshold, exceedance_ratio=0.0,
                              is_consistent=True, values=values)

        ratio = float(np.mean(values > threshold))
        return NISSummary(
            sensor_type=sensor_type,
            count=int(values.size),
            mean=float(values.mean()),
            threshold=threshold,
            exceedance_ratio=ratio,
            is_consistent=ratio <= (1.0 - self.confidence) + self.tolerance,
            values=values
        )

    def reset(self):
        for sensor in SensorType:
            self.values[sensor] = []
