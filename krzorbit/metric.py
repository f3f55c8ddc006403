"""KRZ parametrized black-hole metric, its derivatives and circular-orbit helpers.

Deviation parameters are read from ``krz_d[1]`` (delta_1) and ``krz_d[2]``
(delta_2); index 0 is unused so the sequence can be indexed like the
parameters' names.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

HALF_PI = np.pi / 2.0

_ISCO_TOLERANCE = 1.0e-5
_ISCO_STEP = 1.0e-5
_ISCO_MAX_ITERATIONS = 100
_FREQ_SCAN_START = 12.0
_FREQ_SCAN_STEP = 0.001
_FREQ_SHRINK = 0.999


@dataclass(frozen=True)
class _Fields:
    """Metric functions of the KRZ spacetime at one point."""

    spin: np.float64
    r: np.float64
    sin: np.float64
    cos: np.float64
    d1: np.float64
    d2: np.float64
    r0: np.float64
    a20: np.float64
    a21: np.float64
    e0: np.float64
    k00: np.float64
    k21: np.float64
    k22: np.float64
    k23: np.float64
    x: np.float64
    denom: np.float64
    n2: np.float64
    sigma: np.float64
    w: np.float64
    k2: np.float64

    @property
    def k2_tail(self) -> np.float64:
        r, r0 = self.r, self.r0
        return (self.k00 * r0**2 / r**2
                + self.k21 * r0**3 * self.cos**2 / r**3 / self.denom)


def _fields(spin, krz_d: Sequence[float], r, theta, *, abs_cos: bool = False) -> _Fields:
    spin = np.float64(spin)
    r = np.float64(r)
    theta = np.float64(theta)
    d1 = np.float64(krz_d[1])
    d2 = np.float64(krz_d[2])

    sin = np.sin(theta)
    cos = np.sqrt(1 - sin * sin) if abs_cos else np.cos(theta)
    sqcos = cos * cos
    sqspin = spin * spin

    r0 = 1 + np.sqrt(1 - sqspin)
    a20 = 2 * sqspin / r0**3
    a21 = -sqspin**2 / r0**4
    e0 = (2 - r0) / r0
    k00 = sqspin / r0**2
    k21 = sqspin**2 / r0**4 - 2 * sqspin / r0**3
    w00 = 2 * spin / r0**2
    k22 = -sqspin / r0**2
    k23 = sqspin / r0**2

    x = 1 - r0 / r
    denom = 1 + k22 * x / (1 + k23 * x)
    n2 = (x * (1 - e0 * r0 / r + (k00 - e0) * r0**2 / r**2 + d1 * r0**3 / r**3)
          + (a20 * r0**3 / r**3 + a21 * r0**4 / r**4 + k21 * r0**3 / r**3 / denom) * sqcos)
    sigma = 1 + sqspin * sqcos / r**2
    w = (w00 * r0**2 / r**2 + d2 * r0**3 / r**3) / sigma
    k2 = 1 + spin * w / r + (k00 * r0**2 / r**2 + k21 * r0**3 * sqcos / r**3 / denom) / sigma

    return _Fields(spin, r, sin, cos, d1, d2, r0, a20, a21, e0, k00, k21, k22, k23,
                   x, denom, n2, sigma, w, k2)


@np.errstate(all="ignore")
def metric_krz(spin, krz_d, r, theta) -> np.ndarray:
    """Covariant metric g_{mu nu} at (r, theta) as a 4x4 array."""
    f = _fields(spin, krz_d, r, theta)
    sqsin = f.sin**2
    g = np.zeros((4, 4))
    g[0, 0] = -(f.n2 - f.w**2 * sqsin) / f.k2
    g[0, 3] = g[3, 0] = -f.w * f.r * sqsin
    g[1, 1] = f.sigma / f.n2
    g[2, 2] = f.sigma * f.r**2
    g[3, 3] = f.k2 * f.r**2 * sqsin
    return g


@np.errstate(all="ignore")
def metric_krz_rderivatives(spin, krz_d, r, theta) -> np.ndarray:
    """Analytic radial derivative of the metric."""
    f = _fields(spin, krz_d, r, theta)
    r, r0, spin = f.r, f.r0, f.spin
    sqspin = spin * spin
    sqcos = f.cos**2
    sqsin = f.sin**2
    one_k23 = 1 + f.k23 * f.x

    d_denom = (f.k22 * r0 / r**2 / one_k23
               - f.k22 * f.x / one_k23**2 * f.k23 * r0 / r**2)
    dn2 = (f.x * ((2 - r0) / r**2 - 2 * (f.k00 - f.e0) * r0**2 / r**3
                  - 3 * f.d1 * r0**3 / r**4)
           + r0 * (1 - (2 - r0) / r + (f.k00 - f.e0) * r0**2 / r**2
                   + f.d1 * r0**3 / r**3) / r**2
           + sqcos * (-3 * f.a20 * r0**3 / r**4 - 4 * f.a21 * r0**4 / r**5
                      - 3 * f.k21 * r0**3 / r**4 / f.denom
                      - f.k21 * r0**3 / r**3 / f.denom**2 * d_denom))
    dsigma = -2 * sqcos * sqspin / r**3
    s = 1 + sqcos * sqspin / r**2
    dw = (2 * sqcos * (f.d2 * r0**3 / r**3 + 2 * spin / r**2) * sqspin / (r**3 * s**2)
          + (-3 * f.d2 * r0**3 / r**4 - 4 * spin / r**3) / s)
    dk2 = (spin / r * dw - spin * f.w / r**2 - dsigma / f.sigma**2 * f.k2_tail
           + (-2 * f.k00 * r0**2 / r**3
              - 3 * f.k21 * r0**3 * sqcos / r**4 / f.denom
              - f.k21 * sqcos * r0**3 / r**3 * (r0 * f.k22 / r**2 / one_k23**2)
              / f.denom**2) / f.sigma)

    d = np.zeros((4, 4))
    d[0, 0] = (-dn2 + 2 * dw * sqsin * f.w) / f.k2 - dk2 * (-f.n2 + sqsin * f.w**2) / f.k2**2
    d[1, 1] = dsigma / f.n2 - dn2 * f.sigma / f.n2**2
    d[2, 2] = r**2 * dsigma + 2 * r * f.sigma
    d[3, 3] = 2 * f.k2 * r * sqsin + r**2 * dk2 * sqsin
    d[0, 3] = d[3, 0] = -r * dw * sqsin - sqsin * f.w
    return d


@np.errstate(all="ignore")
def metric_krz_thderivatives(spin, krz_d, r, theta) -> np.ndarray:
    """Analytic polar-angle derivative of the metric."""
    f = _fields(spin, krz_d, r, theta)
    r, r0, spin = f.r, f.r0, f.spin
    sqspin = spin * spin
    sin, cos = f.sin, f.cos
    sqcos = cos**2
    sqsin = sin**2

    dn2 = -2 * cos * sin * (f.a20 * r0**3 / r**3 + f.a21 * r0**4 / r**4
                            + f.k21 * r0**3 / r**3 / f.denom)
    dsigma = -2 * cos * sin * sqspin / r**2
    dw = (2 * cos * sin * (f.d2 * r0**3 / r**3 + 2 * spin / r**2) * sqspin
          / (r**2 * (1 + sqcos * sqspin / r**2) ** 2))
    dk2 = (spin / r * dw - dsigma / f.sigma**2 * f.k2_tail
           + (-2 * cos * sin * f.k21 * r0**3 / r**3 / f.denom) / f.sigma)

    d = np.zeros((4, 4))
    d[0, 0] = ((-dn2 + 2 * sqsin * dw * f.w + 2 * cos * sin * f.w**2) / f.k2
               - dk2 * (-f.n2 + sqsin * f.w**2) / f.k2**2)
    d[1, 1] = -f.sigma * dn2 / f.n2**2 + dsigma / f.n2
    d[2, 2] = r**2 * dsigma
    d[3, 3] = 2 * cos * f.k2 * r**2 * sin + r**2 * sqsin * dk2
    d[0, 3] = d[3, 0] = -r * sqsin * dw - 2 * cos * r * sin * f.w
    return d


@np.errstate(all="ignore")
def metric_krz_rderivatives_numeric(spin, krz_d, r, theta) -> np.ndarray:
    """Radial derivative of the metric by central differences (step 0.001 r)."""
    dr = 0.001 * r
    plus = metric_krz(spin, krz_d, r + dr, theta)
    minus = metric_krz(spin, krz_d, r - dr, theta)
    return (plus - minus) * 0.5 / dr


@np.errstate(all="ignore")
def metric_krz_thderivatives_numeric(spin, krz_d, r, theta) -> np.ndarray:
    """Polar derivative of the metric by central differences (step 0.01)."""
    dtheta = 0.01
    plus = metric_krz(spin, krz_d, r, theta + dtheta)
    minus = metric_krz(spin, krz_d, r, theta - dtheta)
    return (plus - minus) * 0.5 / dtheta


@np.errstate(all="ignore")
def metric_krz_inverse(spin, krz_d, r, theta) -> np.ndarray:
    """Contravariant metric g^{mu nu} at (r, theta)."""
    f = _fields(spin, krz_d, r, theta, abs_cos=True)
    inv = np.zeros((4, 4))
    inv[0, 0] = -(f.k2 / f.n2)
    inv[1, 1] = f.n2 / f.sigma
    inv[2, 2] = 1 / (f.r**2 * f.sigma)
    inv[3, 3] = (-f.w**2 + f.n2 / f.sin**2) / (f.k2 * f.n2 * f.r**2)
    inv[0, 3] = inv[3, 0] = -(f.w / (f.n2 * f.r))
    return inv


def _prograde_omega(dg: np.ndarray):
    return (-dg[0, 3] + np.sqrt(dg[0, 3] ** 2 - dg[0, 0] * dg[3, 3])) / dg[3, 3]


def _circular_energy(g: np.ndarray, omega):
    return -(g[0, 0] + g[0, 3] * omega) / np.sqrt(
        -g[0, 0] - 2.0 * g[0, 3] * omega - g[3, 3] * omega**2)


def _circular_angular_momentum(g: np.ndarray, omega):
    return (g[0, 3] + g[3, 3] * omega) / np.sqrt(
        -g[0, 0] - 2.0 * g[0, 3] * omega - g[3, 3] * omega**2)


def _denominator(g: np.ndarray):
    return g[0, 3] ** 2 - g[0, 0] * g[3, 3]


def _tdot(g: np.ndarray, energy, momentum):
    return (energy * g[3, 3] + momentum * g[0, 3]) / _denominator(g)


def _effective_potential(g: np.ndarray, energy, momentum):
    return (energy**2 * g[3, 3] + 2 * energy * momentum * g[0, 3]
            + momentum**2 * g[0, 0]) / _denominator(g)


def _equatorial_energy(spin, krz_d, r):
    g = metric_krz(spin, krz_d, r, HALF_PI)
    dg = metric_krz_rderivatives(spin, krz_d, r, HALF_PI)
    return _circular_energy(g, _prograde_omega(dg))


def _energy_slope(spin, krz_d, r):
    dr = _ISCO_STEP
    return 0.5 * (_equatorial_energy(spin, krz_d, r + dr)
                  - _equatorial_energy(spin, krz_d, r - dr)) / dr


def _lower_limit(spin) -> float:
    return float(1.0 + np.sqrt(1.0 - spin * spin)) if spin != 0 else 1.0


@np.errstate(all="ignore")
def find_isco_krz(spin, krz_d, r_start) -> float:
    """Bisect for the radius where the circular-orbit energy is stationary.

    Falls back to the horizon radius when the search fails.
    """
    lower = _lower_limit(spin)
    upper = float(r_start)
    r_old = upper
    slope_old = _energy_slope(spin, krz_d, r_old)
    r_new = r_old
    found = False
    count = 0

    while True:
        count += 1
        if count > _ISCO_MAX_ITERATIONS:
            warnings.warn(f"No convergence after {count} iterations. "
                          f"deold = {slope_old:.5e}", RuntimeWarning, stacklevel=2)
            break

        r_new = (lower + upper) / 2.0
        slope_new = _energy_slope(spin, krz_d, r_new)
        if abs(slope_new) < _ISCO_TOLERANCE:
            found = True
        elif slope_new * slope_old > 0.0:
            if r_new < r_old:
                upper = r_new
            elif r_new > r_old:
                lower = r_new
            else:
                warnings.warn(f"rold=rnew? rold = {r_old:e}, rnew = {r_new:e}",
                              RuntimeWarning, stacklevel=2)
        elif slope_new * slope_old < 0.0:
            if r_new < r_old:
                lower = r_new
            elif r_new > r_old:
                upper = r_new
            else:
                warnings.warn(f"rold=rnew? rold = {r_old:e}, rnew = {r_new:e}",
                              RuntimeWarning, stacklevel=2)
        else:
            break
        r_old = r_new
        slope_old = slope_new
        if found:
            break

    if found:
        return float(r_new)
    return float(1 + np.sqrt(1 - spin * spin))


@np.errstate(all="ignore")
def find_isco_krz_freq_method(spin, krz_d) -> float:
    """Locate the ISCO by shrinking the radius while epicyclic frequencies stay real."""
    lower = _lower_limit(spin)
    r_old = _FREQ_SCAN_START
    r_new = r_old
    scan_debug = logger.isEnabledFor(logging.DEBUG)
    while r_new > lower * 1.001:
        if scan_debug:
            logger.debug("%e %e", r_new, _equatorial_energy(spin, krz_d, r_new))
        r_new -= _FREQ_SCAN_STEP

    while True:
        sqnu_r, omega = radial_stability_krz(spin, krz_d, r_new)
        sqnu_th = vertical_stability_krz(spin, krz_d, r_new, omega)
        if sqnu_r > 0 and sqnu_th > 0 and omega > 0:
            if abs(_energy_slope(spin, krz_d, r_new)) < _ISCO_TOLERANCE:
                return float(r_new)
            r_old = r_new
            r_new *= _FREQ_SHRINK
        else:
            warnings.warn(
                f"ISCO occurs before minima in E. rold = {r_old:e} sqnu_r = {sqnu_r:e} "
                f"sqnu_th = {sqnu_th:e} omega = {omega:e}",
                RuntimeWarning, stacklevel=2)
            return float(r_old)


@np.errstate(all="ignore")
def radial_stability_krz(spin, krz_d, r) -> tuple[float, float]:
    """Squared radial epicyclic frequency and orbital frequency of the circular orbit at r."""
    dr = 0.01 * r
    g = metric_krz(spin, krz_d, r, HALF_PI)
    dg = metric_krz_rderivatives(spin, krz_d, r, HALF_PI)
    omega = _prograde_omega(dg)
    energy = _circular_energy(g, omega)
    momentum = _circular_angular_momentum(g, omega)
    tdot = _tdot(g, energy, momentum)

    metrics = [metric_krz(spin, krz_d, r - dr + i * dr, HALF_PI) for i in range(3)]
    veff = [_effective_potential(m, energy, momentum) for m in metrics]
    sqfreq = -0.5 * (veff[2] + veff[0] - 2 * veff[1]) / (
        dr * dr * metrics[2][1, 1] * tdot * tdot)
    return float(sqfreq), float(omega)


@np.errstate(all="ignore")
def vertical_stability_krz(spin, krz_d, r, omega) -> float:
    """Squared vertical epicyclic frequency of the circular orbit at r with frequency omega."""
    theta = HALF_PI
    dtheta = 0.01 * theta
    g = metric_krz(spin, krz_d, r, theta)
    energy = _circular_energy(g, omega)
    momentum = _circular_angular_momentum(g, omega)
    tdot = _tdot(g, energy, momentum)

    metrics = [metric_krz(spin, krz_d, r, HALF_PI - dtheta + i * dtheta) for i in range(3)]
    veff = [_effective_potential(m, energy, momentum) for m in metrics]
    sqfreq = -0.5 * (veff[2] + veff[0] - 2 * veff[1]) / (
        dtheta * dtheta * metrics[2][2, 2] * tdot * tdot)
    return float(sqfreq)