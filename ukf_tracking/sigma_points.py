"""
Sigma point generation for the augmented CTRV state.

The augmented state appends the longitudinal and yaw acceleration noise terms
to the 5-dimensional state, so every sigma point carries its own noise sample
into the motion model:

    x_aug = [px, py, v, yaw, yaw_rate, nu_a, nu_yawdd]
    P_aug = | P  0 |
            | 0  Q |,  Q = diag(std_a^2, std_yawdd^2)

Points are placed at the mean and at +/- sqrt(lambda + n_aug) along each
column of the lower Cholesky factor of P_aug.
"""
import logging
from typing import Tuple
import numpy as np
import scipy.linalg

from ukf_tracking.config import UKFConfig
from ukf_tracking.exceptions import NumericalSingularityError

logger = logging.getLogger(__name__)


class SigmaPointGenerator:
    """
    Generates the 2 * n_aug + 1 weighted sigma points of the augmented state.
    """

    def __init__(self, config: UKFConfig):
        """
        Initialize generator.

        Args:
            config: Filter configuration (dimensions and process noise)
        """
        self.config = config
        self.n_x = config.n_x
        self.n_aug = config.n_aug
        self.lambda_ = config.lambda_
        self.weights = self._compute_weights()

    def _compute_weights(self) -> np.ndarray:
        """Weights shared by the mean and covariance recombination."""
        spread = self.lambda_ + self.n_aug
        weights = np.full(2 * self.n_aug + 1, 0.5 / spread)
        # Negative whenever n_aug > 3
        weights[0] = self.lambda_ / spread
        return weights

    def augment(self, x: np.ndarray, P: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Build the augmented mean and covariance.

        Args:
            x: State vector (n_x,)
            P: State covariance (n_x, n_x)

        Returns:
            Tuple of (augmented_mean, augmented_covariance)
        """
        x_aug = np.zeros(self.n_aug)
        x_aug[:self.n_x] = x

        P_aug = np.zeros((self.n_aug, self.n_aug))
        P_aug[:self.n_x, :self.n_x] = P
        P_aug[self.n_x:, self.n_x:] = self.config.process_noise

        return x_aug, P_aug

    def generate(self, x: np.ndarray, P: np.ndarray) -> np.ndarray:
        """
        Generate augmented sigma points.

        Args:
            x: State vector (n_x,)
            P: State covariance (n_x, n_x)

        Returns:
            Sigma point matrix of shape (n_aug, 2 * n_aug + 1), one point per column

        Raises:
            NumericalSingularityError: If the augmented covariance is not positive definite
        """
        x_aug, P_aug = self.augment(x, P)
        A = self.square_root(P_aug)

        offsets = np.sqrt(self.lambda_ + self.n_aug) * A

        sigma_points = np.empty((self.n_aug, 2 * self.n_aug + 1))
        sigma_points[:, 0] = x_aug
        sigma_points[:, 1:self.n_aug + 1] = x_aug[:, None] + offsets
        sigma_points[:, self.n_aug + 1:] = x_aug[:, None] - offsets

        return sigma_points

    def square_root(self, P_aug: np.ndarray) -> np.ndarray:
        """
        Lower Cholesky factor of the augmented covariance.

        P_aug is block diagonal, so the factor is the Cholesky factor of the
        state block next to the element-wise square root of the noise
        variances. Zero noise variances therefore give zero columns instead of
        a failed factorization.

        Args:
            P_aug: Augmented covariance (n_aug, n_aug)

        Returns:
            Lower triangular A with A @ A.T == P_aug

        Raises:
            NumericalSingularityError: If the state block is not positive definite
        """
        try:
            L = scipy.linalg.cholesky(P_aug[:self.n_x, :self.n_x], lower=True)
        except (np.linalg.LinAlgError, ValueError) as exc:
            logger.debug("Augmented covariance is not positive definite: %s", exc)
            raise NumericalSingularityError(
                f"Augmented covariance has no Cholesky factor: {exc}"
            ) from exc

        A = np.zeros_like(P_aug)
        A[:self.n_x, :self.n_x] = L
        A[self.n_x:, self.n_x:] = np.sqrt(P_aug[self.n_x:, self.n_x:])
        return A
