"""Radiation-reaction acceleration from high time derivatives of the trajectory.

Trajectory derivatives are taken with respect to coordinate time in the
Cartesian-like frame. Row ``s`` of the derivative array holds the s-th
derivative of (t, x, y, z), for s = 0..7.
"""

from __future__ import annotations

import numpy as np

from krzorbit.christoffel import christoffel_krz
from krzorbit.coordinates import boyer_jacobian_known, boyer_to_cartesian

DERIVATIVE_ORDERS = 8

# Each term is (coefficient, (a, b, c)) standing for x[a][i] * x[b][k] * x[c][m].
_J5_TERMS = (
    (1, (5, 0, 1)), (1, (0, 5, 1)), (1, (0, 0, 6)),
    (5, (4, 1, 1)), (5, (1, 4, 1)), (5, (0, 4, 2)),
    (5, (4, 0, 2)), (5, (1, 0, 5)), (5, (0, 1, 5)),
    (10, (3, 2, 1)), (10, (2, 3, 1)), (10, (3, 0, 3)),
    (10, (0, 3, 3)), (10, (2, 0, 4)), (10, (0, 2, 4)),
    (20, (3, 1, 2)), (20, (1, 3, 2)), (20, (1, 1, 4)),
    (30, (2, 2, 2)), (30, (2, 1, 3)), (30, (1, 2, 3)),
)

_J6_TERMS = (
    (1, (6, 0, 1)), (1, (0, 6, 1)), (1, (0, 0, 7)),
    (6, (6, 1, 1)), (6, (1, 6, 1)), (6, (0, 5, 2)),
    (6, (5, 0, 2)), (6, (1, 0, 6)), (6, (0, 1, 6)),
    (15, (4, 2, 1)), (15, (2, 4, 1)), (15, (4, 0, 3)),
    (15, (0, 4, 3)), (15, (2, 0, 5)), (15, (0, 2, 5)),
    (20, (3, 3, 1)), (20, (3, 0, 4)), (20, (1, 3, 4)),
    (30, (4, 1, 2)), (30, (1, 4, 2)), (30, (1, 1, 5)),
    (60, (3, 2, 2)), (60, (2, 3, 2)), (60, (3, 1, 3)),
    (60, (1, 3, 3)), (60, (2, 1, 4)), (60, (1, 2, 4)),
    (90, (2, 2, 3)),
)

# Index pairs (k1, m1), (k2, m2) that stand in for the Levi-Civita symbol in J.
_J_PAIRS = {1: ((2, 3), (3, 2)), 2: ((3, 1), (1, 3)), 3: ((1, 2), (2, 1))}


def _levi_civita() -> np.ndarray:
    lev = np.zeros((4, 4, 4))
    for i, j, k in ((1, 2, 3), (2, 3, 1), (3, 1, 2)):
        lev[i, j, k] = 1.0
        lev[k, j, i] = -1.0
    return lev


_LEV = _levi_civita()


@np.errstate(all="ignore")
def high_derivatives(spin, krz_d, boy, boy_taudot) -> np.ndarray:
    """Cartesian position and its first seven coordinate-time derivatives.

    ``boy`` is the Boyer-Lindquist position and ``boy_taudot`` the
    four-velocity with respect to proper time. Returns an (8, 4) array.
    """
    boy = np.asarray(boy, dtype=float)
    u = np.asarray(boy_taudot, dtype=float)
    if boy.shape != (4,) or u.shape != (4,):
        raise ValueError("position and velocity must each have four components")

    car, dcar_dboy = boyer_to_cartesian(spin, boy)
    dboy_dcar = boyer_jacobian_known(spin, car, boy)
    gamma_boy = christoffel_krz(spin, krz_d, boy[1], boy[2])
    gamma = np.einsum("msr,am,sb,rg->abg", gamma_boy, dcar_dboy, dboy_dcar, dboy_dcar)

    def q(a, b):
        return np.einsum("imn,m,n->i", gamma, a, b)

    def q0(a, b):
        return float(np.einsum("mn,m,n->", gamma[0], a, b))

    car_taudot = dcar_dboy @ u
    x = np.zeros((DERIVATIVE_ORDERS, 4))
    x[0] = car
    x1 = np.array([1.0, *(car_taudot[1:] / car_taudot[0])])
    x[1] = x1

    x2 = -q(x1, x1) + q0(x1, x1) * x1
    x2[0] = 0.0
    x[2] = x2

    x3 = (-(q(x2, x1) + q(x1, x2))
          + (q0(x2, x1) + q0(x1, x2)) * x1 + q0(x1, x1) * x2)
    x3[0] = 0.0
    x[3] = x3

    x4 = (-(q(x3, x1) + 2 * q(x2, x2) + q(x1, x3))
          + (q0(x3, x1) + q0(x1, x3) + 2 * q0(x2, x2)) * x1
          + q0(x1, x1) * x3
          + 2 * (q0(x1, x2) + q0(x2, x1)) * x2)
    x4[0] = 0.0
    x[4] = x4

    x5 = (-(q(x4, x1) + 3 * q(x3, x2) + 3 * q(x2, x3) + q(x1, x4))
          + (q0(x4, x1) + q0(x1, x4) + 3 * q0(x3, x2) + 3 * q0(x2, x3)) * x1
          + q0(x1, x1) * x4
          + 3 * (q0(x1, x3) + q0(x3, x1)) * x2
          + 3 * (q0(x1, x2) + q0(x2, x1)) * x3
          + 6 * q0(x2, x2) * x2)
    x5[0] = 0.0
    x[5] = x5

    x6 = (-(q(x5, x1) + 4 * q(x4, x2) + 6 * q(x3, x3) + 4 * q(x2, x4) + q(x1, x5))
          + (q0(x5, x1) + q0(x1, x5) + 4 * q0(x4, x2) + 4 * q0(x2, x4)
             + 6 * q0(x3, x3)) * x1
          + q0(x1, x1) * x5
          + 4 * (q0(x1, x4) + q0(x4, x1)) * x2
          + 4 * (q0(x1, x2) + q0(x2, x1)) * x4
          + 6 * (q0(x3, x1) + q0(x1, x3)) * x3
          + 12 * q0(x2, x2) * x3
          + 12 * (q0(x2, x3) + q0(x3, x2)) * x2)
    x6[0] = 0.0
    x[6] = x6
    # The seventh order is evaluated with the same expression as the sixth.
    x[7] = x6
    return x


def _j_term(x: np.ndarray, terms, i: int, k: int, m: int) -> float:
    return sum(c * x[a, i] * x[b, k] * x[d, m] for c, (a, b, d) in terms)


def radiation_acceleration(spin, x) -> np.ndarray:
    """Radiation-reaction acceleration (per unit mass ratio) from trajectory derivatives.

    ``x`` is the (8, 4) array produced by :func:`high_derivatives`.
    """
    x = np.asarray(x, dtype=float)
    if x.ndim != 2 or x.shape[0] < DERIVATIVE_ORDERS or x.shape[1] != 4:
        raise ValueError("derivative array must have shape (8, 4)")
    spin = float(spin)

    i5 = np.zeros((4, 4))
    for i in range(1, 4):
        for j in range(i, 4):
            i5[i, j] = (x[5, i] * x[0, j] + 5 * x[4, i] * x[1, j] + 10 * x[3, i] * x[2, j]
                        + 5 * x[2, i] * x[3, j] + x[0, i] * x[5, j])
            i5[j, i] = i5[i, j]

    j5 = np.zeros((4, 4))
    j6 = np.zeros((4, 4))
    for i in range(1, 4):
        for j, ((k1, m1), (k2, m2)) in _J_PAIRS.items():
            if j == 3:
                j5[i, j] = -1.5 * spin * x[5, i]
                j6[i, j] = -1.5 * spin * x[6, i]
            j5[i, j] += (_j_term(x, _J5_TERMS, i, k1, m1)
                         - _j_term(x, _J5_TERMS, i, k2, m2))
            j6[i, j] += (_j_term(x, _J6_TERMS, i, k1, m1)
                         - _j_term(x, _J6_TERMS, i, k2, m2))

    x0, x1 = x[0], x[1]
    acc = (8.0 / 15.0 * spin * j5[3]
           - 2.0 / 5.0 * (i5 @ x0)
           + 16.0 / 45.0 * np.einsum("jpq,pk,q,k->j", _LEV, j6, x0, x0)
           + 32.0 / 45.0 * np.einsum("jpq,pk,k,q->j", _LEV, j5, x0, x1)
           + 16.0 / 45.0 * np.einsum("pqj,kp,q,k->j", _LEV, j5, x0, x1)
           - 16.0 / 45.0 * np.einsum("pqk,jp,q,k->j", _LEV, j5, x0, x1))
    acc[0] = 0.0
    return acc