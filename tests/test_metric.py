import math

import numpy as np
import pytest

from krzorbit.metric import (
    find_isco_krz,
    find_isco_krz_freq_method,
    metric_krz,
    metric_krz_inverse,
    metric_krz_rderivatives,
    metric_krz_rderivatives_numeric,
    metric_krz_thderivatives,
    metric_krz_thderivatives_numeric,
    radial_stability_krz,
    vertical_stability_krz,
)

KERR = (0.0, 0.0, 0.0, 0.0)
DEFORMED = (0.0, 0.3, -0.2, 0.1)

POINTS = [
    (0.0, KERR, 10.0, 1.0),
    (0.5, KERR, 8.0, 0.7),
    (0.9, DEFORMED, 6.0, 1.2),
    (-0.3, DEFORMED, 15.0, 2.4),
]


@pytest.mark.parametrize("spin,krz_d,r,theta", POINTS)
def test_metric_is_symmetric_and_block_diagonal(spin, krz_d, r, theta):
    g = metric_krz(spin, krz_d, r, theta)
    assert np.array_equal(g, g.T)
    for i, j in [(0, 1), (0, 2), (1, 2), (1, 3), (2, 3)]:
        assert g[i, j] == 0.0


def test_schwarzschild_limit_is_static():
    g = metric_krz(0.0, KERR, 7.0, 0.9)
    assert g[0, 3] == 0.0
    assert g[0, 0] * g[1, 1] == pytest.approx(-1.0)


@pytest.mark.parametrize("spin", [0.0, 0.4, 0.95])
def test_equatorial_g22_is_r_squared(spin):
    r = 9.0
    g = metric_krz(spin, DEFORMED, r, math.pi / 2)
    assert g[2, 2] == pytest.approx(r * r)


@pytest.mark.parametrize("spin,krz_d,r,theta", POINTS)
def test_inverse_times_metric_is_identity(spin, krz_d, r, theta):
    g = metric_krz(spin, krz_d, r, theta)
    inv = metric_krz_inverse(spin, krz_d, r, theta)
    assert np.allclose(g @ inv, np.eye(4), atol=1e-10)


@pytest.mark.parametrize("spin,krz_d,r,theta", POINTS)
def test_radial_derivatives_match_finite_differences(spin, krz_d, r, theta):
    analytic = metric_krz_rderivatives(spin, krz_d, r, theta)
    numeric = metric_krz_rderivatives_numeric(spin, krz_d, r, theta)
    assert np.allclose(analytic, numeric, rtol=1e-4, atol=1e-8)


@pytest.mark.parametrize("spin,krz_d,r,theta", POINTS)
def test_polar_derivatives_match_finite_differences(spin, krz_d, r, theta):
    analytic = metric_krz_thderivatives(spin, krz_d, r, theta)
    numeric = metric_krz_thderivatives_numeric(spin, krz_d, r, theta)
    assert np.allclose(analytic, numeric, rtol=1e-3, atol=1e-6)


def test_polar_derivative_vanishes_on_equator():
    d = metric_krz_thderivatives(0.6, DEFORMED, 8.0, math.pi / 2)
    assert np.allclose(d, 0.0, atol=1e-12)


def test_radial_stability_sign_changes_across_isco():
    outside, omega = radial_stability_krz(0.0, KERR, 10.0)
    inside, _ = radial_stability_krz(0.0, KERR, 5.0)
    assert outside > 0
    assert inside < 0
    assert omega == pytest.approx(10.0 ** -1.5, rel=1e-9)


def test_vertical_stability_positive_for_stable_orbit():
    _, omega = radial_stability_krz(0.3, KERR, 10.0)
    assert vertical_stability_krz(0.3, KERR, 10.0, omega) > 0


def test_find_isco_schwarzschild():
    assert find_isco_krz(0.0, KERR, 100.0) == pytest.approx(6.0, abs=0.05)


def test_find_isco_moves_inward_with_prograde_spin():
    horizon = 1 + math.sqrt(1 - 0.5**2)
    spinning = find_isco_krz(0.5, KERR, 100.0)
    static = find_isco_krz(0.0, KERR, 100.0)
    assert horizon < spinning < static


def test_find_isco_is_a_stability_boundary():
    isco = find_isco_krz(0.4, DEFORMED, 100.0)
    assert radial_stability_krz(0.4, DEFORMED, isco * 1.2)[0] > 0
    assert radial_stability_krz(0.4, DEFORMED, isco * 0.85)[0] < 0


def test_freq_method_falls_back_to_scan_start():
    with pytest.warns(RuntimeWarning):
        result = find_isco_krz_freq_method(0.0, KERR)
    assert result == 12.0