"""Transformations between Boyer-Lindquist and Cartesian-like coordinates.

Coordinate arrays are ordered (t, r, theta, phi) and (t, x, y, z).
"""

from __future__ import annotations

import numpy as np

HALF_PI = np.pi / 2.0
_EPS = 1.0e-10


@np.errstate(all="ignore")
def boyer_to_cartesian(spin, boy) -> tuple[np.ndarray, np.ndarray]:
    """Cartesian coordinates of a Boyer-Lindquist point and the Jacobian d(car)/d(boy)."""
    t, r, th, phi = (np.float64(v) for v in boy)
    a = np.float64(spin)
    rho = np.sqrt(r * r + a * a)

    car = np.array([
        t,
        rho * np.sin(th) * np.cos(phi),
        rho * np.sin(th) * np.sin(phi),
        r * np.cos(th),
    ])

    jac = np.zeros((4, 4))
    jac[0, 0] = 1.0
    jac[1, 1] = r / rho * np.sin(th) * np.cos(phi)
    jac[1, 2] = rho * np.cos(th) * np.cos(phi)
    jac[1, 3] = -rho * np.sin(th) * np.sin(phi)
    jac[2, 1] = r / rho * np.sin(th) * np.sin(phi)
    jac[2, 2] = rho * np.cos(th) * np.sin(phi)
    jac[2, 3] = rho * np.sin(th) * np.cos(phi)
    jac[3, 1] = np.cos(th)
    jac[3, 2] = -r * np.sin(th)
    return car, jac


@np.errstate(all="ignore")
def cartesian_to_boyer(spin, car) -> tuple[np.ndarray, np.ndarray]:
    """Boyer-Lindquist coordinates of a Cartesian point and the Jacobian d(boy)/d(car)."""
    t, x, y, z = (np.float64(v) for v in car)
    a = np.float64(spin)
    a2 = a * a

    inner = -a2 + x * x + y * z + z * z
    r = np.sqrt(np.sqrt(inner * inner + 4 * a2 * z * z) - a2 + x * x + y * y + z * z) / np.sqrt(2)

    if a == 0:
        th = np.arccos(z / np.sqrt(x * x + y * y + z * z))
    else:
        rho2 = x * x + y * y + z * z
        sqcth = (1 - x * x / a2 - y * y / a2 - z * z / a2
                 + np.sqrt(4 * a2 * z * z + (rho2 - a2) ** 2) / a2) / np.sqrt(2)
        if abs(sqcth) < _EPS * 10:
            th = HALF_PI
        else:
            cth = np.sqrt(abs(sqcth))
            th = np.arccos(cth if z > 0 else -cth)

    phi = HALF_PI if x == 0 else np.arctan(y / x)

    boy = np.array([t, r, th, phi], dtype=float)
    return boy, boyer_jacobian_known(spin, car, boy)


@np.errstate(all="ignore")
def boyer_jacobian_known(spin, car, boy) -> np.ndarray:
    """Jacobian d(boy)/d(car) when both coordinate sets are already known."""
    _, x, y, z = (np.float64(v) for v in car)
    _, r, th, phi = (np.float64(v) for v in boy)
    a = np.float64(spin)
    a2 = a * a

    jac = np.zeros((4, 4))
    jac[0, 0] = 1.0
    denom_r = r**4 + a2 * z * z
    jac[1, 1] = r**3 * x / denom_r
    jac[1, 2] = r**3 * y / denom_r
    jac[1, 3] = r * (a2 + r * r) * z / denom_r

    if abs(th - HALF_PI) < _EPS:
        jac[2, 3] = -1 / r
    elif abs(th) < _EPS:
        jac[2, 1] = np.cos(phi) / np.sqrt(r * r + a2)
        jac[2, 2] = np.sin(phi) / np.sqrt(r * r + a2)
    else:
        cos = np.cos(th)
        denom_th = a2 * cos**3 * np.sin(th) + z * z * np.tan(th)
        jac[2, 1] = x * cos * cos / denom_th
        jac[2, 2] = y * cos * cos / denom_th
        jac[2, 3] = -z * np.sin(th) ** 2 / denom_th

    if abs(x) < _EPS:
        jac[3, 1] = -1 / y
    elif abs(y) < _EPS:
        jac[3, 2] = 1 / x
    else:
        jac[3, 1] = -y / (x * x + y * y)
        jac[3, 2] = x / (x * x + y * y)
    return jac