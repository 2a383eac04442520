"""
Angle and coordinate helpers shared by the prediction and correction steps.
"""
import numpy as np
from typing import Tuple, Union

ArrayLike = Union[float, np.ndarray]


def normalize_angle(angle: ArrayLike) -> ArrayLike:
    """
    Wrap an angle (or array of angles) into the half-open interval (-pi, pi].

    Args:
        angle: Angle in radians, scalar or array

    Returns:
        Wrapped angle with the same shape as the input

    Note:
        Both +pi and -pi map to +pi, so odd multiples of pi (3pi, -3pi, ...)
        all wrap to +pi.
    """
    wrapped = np.pi - np.mod(np.pi - np.asarray(angle, dtype=float), 2.0 * np.pi)
    if np.ndim(wrapped) == 0:
        return float(wrapped)
    return wrapped


def polar_to_cartesian(rho: float, phi: float) -> Tuple[float, float]:
    """
    Convert a radar range/bearing pair to Cartesian coordinates.

    Args:
        rho: Range in meters
        phi: Bearing in radians, measured counter-clockwise from the x axis

    Returns:
        Tuple of (x, y) coordinates in meters
    """
    return (rho * np.cos(phi), rho * np.sin(phi))


def cartesian_to_polar(px: ArrayLike, py: ArrayLike,
                       vx: ArrayLike, vy: ArrayLike) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
    """
    Convert Cartesian position and velocity to range, bearing and range rate.

    Works element-wise on arrays, so a whole row of sigma points can be
    converted at once. Range must be non-zero; callers clamp positions near
    the origin before calling.

    Args:
        px, py: Position in meters
        vx, vy: Velocity in meters per second

    Returns:
        Tuple of (rho, phi, rho_dot)
    """
    rho = np.sqrt(px ** 2 + py ** 2)
    phi = np.arctan2(py, px)
    rho_dot = (px * vx + py * vy) / rho
    return rho, phi, rho_dot
