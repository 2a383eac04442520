import numpy as np
import pytest

from ukf_tracking.config import UKFConfig
from ukf_tracking.exceptions import MalformedMeasurementError
from ukf_tracking.motion_model import MotionPropagator
from ukf_tracking.radar_update import RadarCorrector


@pytest.fixture
def propagator():
    return MotionPropagator(UKFConfig())


@pytest.fixture
def radar(propagator):
    return RadarCorrector(UKFConfig(), propagator.weights)


def predicted_measurement(radar, sigma_points):
    z_sigma = radar.measurement_sigma_points(radar.clamp_origin(sigma_points))
    return z_sigma @ radar.weights


def test_measurement_sigma_points(radar):
    points = np.array([[3.0], [4.0], [2.0], [np.arctan2(4.0, 3.0)], [0.0]])

    z = radar.measurement_sigma_points(points)[:, 0]

    np.testing.assert_allclose(z, [5.0, np.arctan2(4.0, 3.0), 2.0])


def test_clamp_origin_only_touches_points_at_origin(radar):
    points = np.zeros((5, 3))
    points[0, 1] = 0.0005
    points[1, 2] = 0.5

    clamped = radar.clamp_origin(points)

    np.testing.assert_allclose(clamped[:2, 0], [0.01, 0.01])
    np.testing.assert_allclose(clamped[:2, 1], [0.01, 0.01])
    np.testing.assert_allclose(clamped[:2, 2], [0.0, 0.5])
    # Input is left alone
    assert points[0, 0] == 0.0


def test_points_at_origin_do_not_divide_by_zero(radar):
    sigma_points = np.zeros((5, 15))
    sigma_points[2] = 1.0

    with np.errstate(divide='raise', invalid='raise'):
        x_new, P_new, nis = radar.correct(np.zeros(5), np.eye(5), sigma_points,
                                          np.array([0.01, 0.1, 0.0]))

    assert np.all(np.isfinite(x_new))
    assert np.all(np.isfinite(P_new))
    assert np.isfinite(nis)


def test_measurement_at_prediction_leaves_state_and_shrinks_covariance(propagator, radar):
    x = np.array([5.0, 3.0, 2.0, 0.3, 0.1])
    P = np.diag([0.2, 0.2, 0.3, 0.05, 0.05])
    x_pred, P_pred, sigma_pred = propagator.predict(x, P, 0.1)
    z = predicted_measurement(radar, sigma_pred)

    x_new, P_new, nis = radar.correct(x_pred, P_pred, sigma_pred, z)

    np.testing.assert_allclose(x_new, x_pred, atol=1e-12)
    assert nis == pytest.approx(0.0, abs=1e-12)
    assert np.trace(P_new) < np.trace(P_pred)


def test_update_moves_state_towards_measurement(propagator, radar):
    x = np.array([5.0, 0.0, 1.0, 0.0, 0.0])
    P = np.diag([0.5, 0.5, 0.5, 0.05, 0.05])
    x_pred, P_pred, sigma_pred = propagator.predict(x, P, 0.0)

    x_new, _, nis = radar.correct(x_pred, P_pred, sigma_pred, np.array([6.0, 0.0, 1.0]))

    assert x_new[0] > x_pred[0]
    assert nis > 0.0


def test_bearing_innovation_is_wrapped(propagator, radar):
    # Object just below the negative x axis, bearing near -pi
    x = np.array([-10.0, -0.05, 1.0, 0.0, 0.0])
    P = np.diag([1e-4, 1e-4, 0.01, 0.01, 0.01])
    x_pred, P_pred, sigma_pred = propagator.predict(x, P, 0.0)
    z = predicted_measurement(radar, sigma_pred)
    assert z[1] < -3.0

    # Same bearing reported just above the axis, on the other side of +/-pi
    measurement = np.array([z[0], np.pi - 0.005, z[2]])
    x_new, _, nis = radar.correct(x_pred, P_pred, sigma_pred, measurement)

    assert nis < 1.0
    assert np.linalg.norm(x_new[:2] - x_pred[:2]) < 1.0


def test_covariance_stays_symmetric_positive_semi_definite(propagator, radar):
    rng = np.random.default_rng(6)
    for _ in range(50):
        rho = rng.uniform(5, 30)
        phi = rng.uniform(-np.pi, np.pi)
        x = np.array([rho * np.cos(phi), rho * np.sin(phi),
                      rng.uniform(0, 1), rng.uniform(-np.pi, np.pi), rng.uniform(-0.3, 0.3)])
        B = rng.normal(size=(5, 5)) * 0.1
        P = B @ B.T + 0.1 * np.eye(5)
        x_pred, P_pred, sigma_pred = propagator.predict(x, P, 0.05)
        z = predicted_measurement(radar, sigma_pred) + rng.normal(size=3) * [0.3, 0.03, 0.3]

        _, P_new, nis = radar.correct(x_pred, P_pred, sigma_pred, z)

        np.testing.assert_allclose(P_new, P_new.T, atol=1e-9)
        assert np.linalg.eigvalsh(0.5 * (P_new + P_new.T)).min() > -1e-9
        assert nis >= 0.0


def test_wrong_measurement_length_raises(radar):
    with pytest.raises(MalformedMeasurementError):
        radar.correct(np.zeros(5), np.eye(5), np.zeros((5, 15)), np.array([1.0, 2.0]))
