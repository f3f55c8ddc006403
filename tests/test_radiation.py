import numpy as np
import pytest

from krzorbit.coordinates import boyer_to_cartesian
from krzorbit.radiation import high_derivatives, radiation_acceleration

KRZ_ZERO = [0.0, 0.0, 0.0, 0.0]


def _state(r=10.0, theta=1.2, phi=0.4):
    boy = np.array([0.0, r, theta, phi])
    u = np.array([1.2, 0.05, 0.01, 0.04])
    return boy, u


def test_high_derivatives_shape_and_position():
    boy, u = _state()
    x = high_derivatives(0.5, [0.0, 0.1, 0.0, 0.0], boy, u)
    assert x.shape == (8, 4)
    car, _ = boyer_to_cartesian(0.5, boy)
    np.testing.assert_allclose(x[0], car)


def test_time_components_fixed():
    boy, u = _state()
    x = high_derivatives(0.3, KRZ_ZERO, boy, u)
    assert x[1, 0] == 1.0
    np.testing.assert_array_equal(x[2:, 0], np.zeros(6))


def test_seventh_order_equals_sixth():
    boy, u = _state()
    x = high_derivatives(0.7, KRZ_ZERO, boy, u)
    np.testing.assert_array_equal(x[7], x[6])


def test_radial_equatorial_velocity():
    boy = np.array([0.0, 20.0, np.pi / 2, 0.0])
    u = np.array([1.1, 0.2, 0.0, 0.0])
    x = high_derivatives(0.0, KRZ_ZERO, boy, u)
    assert x[1, 1] == pytest.approx(0.2 / 1.1)
    assert x[1, 2] == pytest.approx(0.0, abs=1e-15)
    assert x[1, 3] == pytest.approx(0.0, abs=1e-15)


def test_far_field_has_small_acceleration():
    boy = np.array([0.0, 1.0e6, 1.0, 0.3])
    u = np.array([1.0, 0.0, 0.0, 1.0e-9])
    x = high_derivatives(0.5, KRZ_ZERO, boy, u)
    np.testing.assert_allclose(x[2, 1:], np.zeros(3), rtol=0, atol=1e-10)


def test_high_derivatives_rejects_bad_shape():
    with pytest.raises(ValueError):
        high_derivatives(0.5, KRZ_ZERO, [0.0, 10.0, 1.0], [1.0, 0.0, 0.0, 0.0])


def test_static_trajectory_has_no_acceleration():
    x = np.zeros((8, 4))
    x[0] = [0.0, 3.0, -2.0, 1.5]
    acc = radiation_acceleration(0.6, x)
    np.testing.assert_allclose(acc, np.zeros(4), atol=0.0)


def test_zero_input_gives_zero():
    np.testing.assert_array_equal(radiation_acceleration(0.9, np.zeros((8, 4))),
                                  np.zeros(4))


def test_quadrupole_term_value():
    x = np.zeros((8, 4))
    x[0, 1] = 1.0
    x[5, 1] = 1.0
    acc = radiation_acceleration(0.0, x)
    np.testing.assert_allclose(acc, [0.0, -0.8, 0.0, 0.0])


def test_linear_in_fifth_derivative_when_only_position_and_fifth():
    rng = np.random.default_rng(1)
    x = np.zeros((8, 4))
    x[0, 1:] = rng.normal(size=3)
    x[5, 1:] = rng.normal(size=3)
    doubled = x.copy()
    doubled[5] *= 2.0
    np.testing.assert_allclose(radiation_acceleration(0.4, doubled),
                               2.0 * radiation_acceleration(0.4, x))


def test_time_component_always_zero():
    rng = np.random.default_rng(7)
    x = rng.normal(size=(8, 4))
    acc = radiation_acceleration(0.5, x)
    assert acc[0] == 0.0
    assert np.all(np.isfinite(acc))


def test_radiation_acceleration_rejects_bad_shape():
    with pytest.raises(ValueError):
        radiation_acceleration(0.5, np.zeros((5, 4)))


def test_pipeline_is_finite():
    boy, u = _state()
    x = high_derivatives(0.5, [0.0, 0.1, 0.1, 0.0], boy, u)
    acc = radiation_acceleration(0.5, x)
    assert acc.shape == (4,)
    assert np.all(np.isfinite(acc))
    assert acc[0] == 0.0