"""
Filter configuration: dimensions, noise levels and numerical thresholds.
"""
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Tuple, Union
import numpy as np
import yaml


@dataclass(frozen=True)
class UKFConfig:
    """
    Fixed configuration of the CTRV unscented Kalman filter.

    Attributes:
        n_x: State dimension [px, py, v, yaw, yaw_rate]
        n_aug: Augmented state dimension (state plus two process noise terms)
        std_a: Longitudinal acceleration noise standard deviation (m/s^2)
        std_yawdd: Yaw acceleration noise standard deviation (rad/s^2)
        std_laspx: Lidar x noise standard deviation (m)
        std_laspy: Lidar y noise standard deviation (m)
        std_radr: Radar range noise standard deviation (m)
        std_radphi: Radar bearing noise standard deviation (rad)
        std_radrd: Radar range rate noise standard deviation (m/s)
        initial_covariance_diag: Diagonal of the prior covariance P
        yaw_rate_threshold: Below this |yaw_rate| the straight-line model is used (rad/s)
        origin_threshold: Sigma points with |px| and |py| below this are clamped (m)
        origin_clamp: Value px and py are clamped to near the origin (m)
        use_laser: Process lidar measurements after initialization
        use_radar: Process radar measurements after initialization
    """
    n_x: int = 5
    n_aug: int = 7
    std_a: float = 0.4
    std_yawdd: float = 0.65
    std_laspx: float = 0.15
    std_laspy: float = 0.15
    std_radr: float = 0.3
    std_radphi: float = 0.03
    std_radrd: float = 0.3
    initial_covariance_diag: Tuple[float, ...] = (1.0, 1.0, 1.0, 100.0, 100.0)
    yaw_rate_threshold: float = 0.001
    origin_threshold: float = 0.001
    origin_clamp: float = 0.01
    use_laser: bool = True
    use_radar: bool = True

    def __post_init__(self):
        # frozen dataclass, so normalize through object.__setattr__
        object.__setattr__(self, 'initial_covariance_diag',
                           tuple(float(v) for v in self.initial_covariance_diag))

        if self.n_x != 5:
            raise ValueError(f"CTRV state has 5 components, got n_x={self.n_x}")
        if self.n_aug != self.n_x + 2:
            raise ValueError(f"n_aug must be n_x + 2, got n_x={self.n_x}, n_aug={self.n_aug}")
        for name in ('std_a', 'std_yawdd', 'std_laspx', 'std_laspy',
                     'std_radr', 'std_radphi', 'std_radrd'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        for name in ('yaw_rate_threshold', 'origin_threshold', 'origin_clamp'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if len(self.initial_covariance_diag) != self.n_x:
            raise ValueError(
                f"initial_covariance_diag needs {self.n_x} entries, got {len(self.initial_covariance_diag)}"
            )
        if any(v <= 0 for v in self.initial_covariance_diag):
            raise ValueError("initial_covariance_diag entries must be positive")

    @property
    def lambda_(self) -> float:
        """Sigma point spreading parameter."""
        return 3.0 - self.n_aug

    @property
    def n_sigma(self) -> int:
        return 2 * self.n_aug + 1

    @property
    def initial_covariance(self) -> np.ndarray:
        return np.diag(self.initial_covariance_diag)

    @property
    def process_noise(self) -> np.ndarray:
        """Covariance of the two augmented noise terms."""
        return np.diag([self.std_a ** 2, self.std_yawdd ** 2])

    @property
    def lidar_noise(self) -> np.ndarray:
        return np.diag([self.std_laspx ** 2, self.std_laspy ** 2])

    @property
    def radar_noise(self) -> np.ndarray:
        return np.diag([self.std_radr ** 2, self.std_radphi ** 2, self.std_radrd ** 2])

    @classmethod
    def from_dict(cls, values: Dict) -> "UKFConfig":
        """
        Build a configuration from a plain dictionary.

        Args:
            values: Mapping of field names to values; missing fields keep their defaults

        Returns:
            UKFConfig instance
        """
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**values)


def load_config(path: Union[str, Path]) -> UKFConfig:
    """
    Load a filter configuration from a YAML file.

    The file may hold the fields at top level or under a ``ukf`` section.

    Args:
        path: Path to the YAML file

    Returns:
        UKFConfig instance
    """
    with open(path, 'r') as file:
        config = yaml.load(file, yaml.SafeLoader) or {}
    if 'ukf' in config:
        config = config['ukf'] or {}
    return UKFConfig.from_dict(config)
