"""Christoffel symbols of the KRZ metric."""

from __future__ import annotations

import numpy as np

from krzorbit.metric import (
    metric_krz,
    metric_krz_inverse,
    metric_krz_rderivatives,
    metric_krz_thderivatives,
)

_LARGE_DETERMINANT = 1e10


def _inverse(spin, krz_d, r, theta, g: np.ndarray) -> np.ndarray:
    gg = g[0, 0] * g[3, 3] - g[0, 3] * g[0, 3]
    if abs(gg) > _LARGE_DETERMINANT:
        inv = np.zeros((4, 4))
        inv[0, 0] = g[3, 3] / gg
        inv[0, 3] = inv[3, 0] = -g[0, 3] / gg
        inv[1, 1] = 1 / g[1, 1]
        inv[2, 2] = 1 / g[2, 2]
        inv[3, 3] = g[0, 0] / gg
        return inv
    return metric_krz_inverse(spin, krz_d, r, theta)


@np.errstate(all="ignore")
def christoffel_krz(spin, krz_d, r, theta) -> np.ndarray:
    """Twice the Christoffel symbols, ``cs[a, b, c] = 2 Gamma^a_{bc}``.

    The metric depends on r and theta only, so derivatives along indices
    0 and 3 vanish.
    """
    dg = np.zeros((4, 4, 4))
    dg[:, :, 1] = metric_krz_rderivatives(spin, krz_d, r, theta)
    dg[:, :, 2] = metric_krz_thderivatives(spin, krz_d, r, theta)

    g = metric_krz(spin, krz_d, r, theta)
    inv = _inverse(spin, krz_d, r, theta, g)

    cs = np.zeros((4, 4, 4))

    for k in (1, 2):
        cs[0, 0, k] = cs[0, k, 0] = inv[0, 0] * dg[0, 0, k] + inv[0, 3] * dg[0, 3, k]
        cs[0, k, 3] = cs[0, 3, k] = inv[0, 0] * dg[0, 3, k] + inv[0, 3] * dg[3, 3, k]
        cs[3, 0, k] = cs[3, k, 0] = inv[3, 3] * dg[0, 3, k] + inv[3, 0] * dg[0, 0, k]
        cs[3, k, 3] = cs[3, 3, k] = inv[3, 3] * dg[3, 3, k] + inv[3, 0] * dg[0, 3, k]

    cs[1, 0, 0] = -inv[1, 1] * dg[0, 0, 1]
    cs[1, 0, 3] = cs[1, 3, 0] = -inv[1, 1] * dg[0, 3, 1]
    cs[1, 1, 1] = inv[1, 1] * dg[1, 1, 1]
    cs[1, 1, 2] = cs[1, 2, 1] = inv[1, 1] * dg[1, 1, 2]
    cs[1, 2, 2] = -inv[1, 1] * dg[2, 2, 1]
    cs[1, 3, 3] = -inv[1, 1] * dg[3, 3, 1]

    cs[2, 0, 0] = -inv[2, 2] * dg[0, 0, 2]
    cs[2, 0, 3] = cs[2, 3, 0] = -inv[2, 2] * dg[0, 3, 2]
    cs[2, 1, 1] = -inv[2, 2] * dg[1, 1, 2]
    cs[2, 1, 2] = cs[2, 2, 1] = inv[2, 2] * dg[2, 2, 1]
    cs[2, 2, 2] = inv[2, 2] * dg[2, 2, 2]
    cs[2, 3, 3] = -inv[2, 2] * dg[3, 3, 2]

    return cs