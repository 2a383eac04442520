import numpy as np
import pytest

from ukf_tracking.config import UKFConfig
from ukf_tracking.exceptions import MalformedMeasurementError, NumericalSingularityError
from ukf_tracking.kalman_filter import LidarCorrector, checked_covariance


@pytest.fixture
def lidar():
    return LidarCorrector(UKFConfig())


def test_measurement_matrix_selects_position(lidar):
    np.testing.assert_array_equal(lidar.H, [[1, 0, 0, 0, 0],
                                            [0, 1, 0, 0, 0]])
    np.testing.assert_allclose(lidar.R, np.diag([0.15 ** 2, 0.15 ** 2]))


def test_correct_matches_hand_computed_update(lidar):
    x = np.zeros(5)
    P = np.eye(5)
    s = 1.0 + 0.15 ** 2

    x_new, P_new, nis = lidar.correct(x, P, np.array([1.0, 2.0]))

    np.testing.assert_allclose(x_new, [1.0 / s, 2.0 / s, 0.0, 0.0, 0.0])
    assert P_new[0, 0] == pytest.approx(1.0 - 1.0 / s)
    assert P_new[1, 1] == pytest.approx(1.0 - 1.0 / s)
    # Unobserved, uncorrelated components are untouched
    np.testing.assert_allclose(P_new[2:, 2:], np.eye(3))
    assert nis == pytest.approx(5.0 / s)


def test_correlated_components_are_corrected(lidar):
    x = np.array([0.0, 0.0, 1.0, 0.0, 0.0])
    P = np.eye(5)
    P[0, 2] = P[2, 0] = 0.5

    x_new, _, _ = lidar.correct(x, P, np.array([1.0, 0.0]))

    assert x_new[2] > 1.0


def test_perfect_measurement_gives_zero_nis(lidar):
    x = np.array([3.0, -1.0, 2.0, 0.3, 0.1])

    x_new, _, nis = lidar.correct(x, np.eye(5), np.array([3.0, -1.0]))

    np.testing.assert_allclose(x_new, x)
    assert nis == pytest.approx(0.0)


def test_covariance_stays_symmetric_positive_semi_definite(lidar):
    rng = np.random.default_rng(5)
    for _ in range(50):
        B = rng.normal(size=(5, 5))
        P = B @ B.T + 0.01 * np.eye(5)
        x = rng.normal(size=5)
        z = rng.normal(size=2) * 3

        _, P_new, nis = lidar.correct(x, P, z)

        np.testing.assert_allclose(P_new, P_new.T, atol=1e-9)
        assert np.linalg.eigvalsh(0.5 * (P_new + P_new.T)).min() > -1e-9
        assert nis >= 0.0


def test_wrong_measurement_length_raises(lidar):
    with pytest.raises(MalformedMeasurementError):
        lidar.correct(np.zeros(5), np.eye(5), np.array([1.0, 2.0, 3.0]))


def test_singular_innovation_covariance_raises():
    lidar = LidarCorrector(UKFConfig(std_laspx=0.0, std_laspy=0.0))
    P = np.eye(5)
    P[:2, :2] = 0.0

    with pytest.raises(NumericalSingularityError):
        lidar.correct(np.zeros(5), P, np.array([1.0, 2.0]))


def test_checked_covariance_symmetrizes():
    P = np.diag([1.0, 2.0, 3.0, 4.0, 5.0])
    P[0, 1] = 0.1
    P[1, 0] = 0.3

    checked = checked_covariance(P)

    np.testing.assert_array_equal(checked, checked.T)
    assert checked[0, 1] == pytest.approx(0.2)


@pytest.mark.parametrize("P", [
    np.diag([1.0, 1.0, -0.05, 1.0, 1.0]),
    np.diag([1.0, 1.0, 0.0, 1.0, 1.0]),
    np.full((5, 5), np.nan),
])
def test_checked_covariance_rejects_non_positive_definite(P):
    with pytest.raises(NumericalSingularityError):
        checked_covariance(P)
