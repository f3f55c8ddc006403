"""Adaptive Runge-Kutta-Fehlberg integration of an inspiralling test body.

The state vector has sixteen components: the geodesic position and
four-velocity ``(t, r, theta, phi, u^t, u^r, u^theta, u^phi)`` followed by
the radiation-reaction perturbations of the same eight quantities.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import numpy as np

from krzorbit.christoffel import christoffel_krz
from krzorbit.coordinates import boyer_jacobian_known, boyer_to_cartesian
from krzorbit.metric import metric_krz
from krzorbit.radiation import high_derivatives, radiation_acceleration

GRAV = 6.674e-11
CLIGHT = 2.998e8
MSOL = 1.989e30

STATE_SIZE = 16
SAMPLE_INTERVAL = 0.1
PARTICLE_NORM = -1.0
MAX_ERROR = 1e-10
MIN_ERROR = 1e-11
STEP_FACTOR = 1.1

HALF_PI = np.pi / 2.0
_EPS = 1.0e-10

_STAGES = (
    (),
    (1.0 / 4.0,),
    (3.0 / 32.0, 9.0 / 32.0),
    (1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0),
    (439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0),
    (-8.0 / 27.0, 2.0, -3544.0 / 2565.0, 1859.0 / 4104.0, -11.0 / 40.0),
)
_FOURTH_ORDER = (25.0 / 216.0, 0.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0)
_FIFTH_ORDER = (16.0 / 135.0, 0.0, 6656.0 / 12825.0, 28561.0 / 56430.0,
                -9.0 / 50.0, 2.0 / 55.0)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one embedded Runge-Kutta-Fehlberg step.

    ``status`` is 1 when some component's error exceeded the tolerance,
    -1 when none did and at least one was below the lower tolerance, and
    0 otherwise.
    """

    state: np.ndarray
    higher_order: np.ndarray
    velocity_change: np.ndarray
    status: int

    @property
    def rejected(self) -> bool:
        return self.status == 1

    @property
    def grows(self) -> bool:
        return self.status == -1


def _as_state(state) -> np.ndarray:
    var = np.asarray(state, dtype=float)
    if var.shape != (STATE_SIZE,):
        raise ValueError(f"state must have {STATE_SIZE} components")
    return var


@np.errstate(all="ignore")
def equations(state, spin, krz_d, mass_ratio) -> np.ndarray:
    """Proper-time derivative of the sixteen-component state."""
    var = _as_state(state)
    u = var[4:8] + var[12:16]

    gamma = christoffel_krz(spin, krz_d, var[1], var[2])
    force = -0.5 * np.einsum("aij,i,j->a", gamma, u, u)

    boy = var[0:4] + var[8:12]
    derivatives = high_derivatives(spin, krz_d, boy, u)
    acc_car = radiation_acceleration(spin, derivatives)
    acc_car[1:] = acc_car[1:] * mass_ratio * u[0] * u[0] - var[13:16] * force[0] / u[0]

    car, _ = boyer_to_cartesian(spin, boy)
    dboy_dcar = boyer_jacobian_known(spin, car, boy)
    acc = dboy_dcar @ acc_car

    return np.concatenate([var[4:8], force, var[12:16], acc])


def initial_state(spin, krz_d, energy, angular_momentum, r0):
    """Equatorial starting state with zero radial velocity.

    Returns ``(state, energy, angular_momentum, carter_q)`` where the
    constants are recomputed from the constructed four-velocity.
    Raises ValueError when no real polar velocity matches the constants.
    """
    g = metric_krz(spin, krz_d, r0, HALF_PI)
    den = g[0, 3] * g[0, 3] - g[0, 0] * g[3, 3]
    ut = (energy * g[3, 3] + angular_momentum * g[0, 3]) / den
    uphi = -(energy * g[0, 3] + angular_momentum * g[0, 0]) / den
    ur = 0.0

    polar = (PARTICLE_NORM - g[0, 0] * ut * ut - 2 * g[0, 3] * ut * uphi
             - g[3, 3] * uphi * uphi - g[1, 1] * ur * ur) / g[2, 2]
    if abs(polar) < _EPS:
        uth = 0.0
    elif not polar >= 0:
        raise ValueError("energy and angular momentum admit no timelike orbit at r0")
    else:
        uth = float(np.sqrt(polar))

    carter_q = uth * uth * g[2, 2] * g[2, 2]
    new_energy = -g[0, 0] * ut - g[0, 3] * uphi
    new_momentum = g[0, 3] * ut + g[3, 3] * uphi

    state = np.zeros(STATE_SIZE)
    state[1] = r0
    state[2] = HALF_PI
    state[4] = ut
    state[5] = ur
    state[6] = uth
    state[7] = uphi
    return state, float(new_energy), float(new_momentum), float(carter_q)


def _combine(base: np.ndarray, coefficients, increments) -> np.ndarray:
    total = base.copy()
    for c, k in zip(coefficients, increments):
        total = total + c * k
    return total


@np.errstate(all="ignore")
def rkf45_step(state, h, spin, krz_d, mass_ratio) -> StepResult:
    """One Runge-Kutta-Fehlberg 4(5) step of size h with error classification."""
    var = _as_state(state)
    increments: list[np.ndarray] = []
    for row in _STAGES:
        trial = _combine(var, row, increments)
        increments.append(h * equations(trial, spin, krz_d, mass_ratio))

    fourth = _combine(var, _FOURTH_ORDER, increments)
    fifth = _combine(var, _FIFTH_ORDER, increments)
    change = _combine(np.zeros(STATE_SIZE), _FIFTH_ORDER, increments)

    err = np.abs((fourth - fifth) / np.maximum(np.abs(var), np.abs(fourth)))
    if np.any(err > MAX_ERROR):
        status = 1
    elif np.any(err < MIN_ERROR):
        status = -1
    else:
        status = 0
    return StepResult(fourth, fifth, change[4:8], status)


def output_filename(mass, spin, energy, angular_momentum, carter_q, krz_d) -> str:
    """Name of the trajectory file for the given run parameters."""
    return (f"trace_M{mass:.0f}_spin{spin:.6f}_E{energy:.6f}_Lz{angular_momentum:.6f}"
            f"_Q{carter_q:.6f}_d1{krz_d[1]:.6f}_d2{krz_d[2]:.6f}_d3{krz_d[3]:.6f}.dat")


class OrbitIntegrator:
    """Adaptive integration of a state, sampled in seconds of coordinate time.

    While :meth:`run` is suspended at a yielded step, the attributes
    ``state``, ``tau``, ``index``, ``t_sec`` and the conserved quantities
    describe the point the step starts from.
    """

    def __init__(self, spin, krz_d, mass, mass_ratio, state):
        if not mass > 0:
            raise ValueError("mass must be positive")
        self.spin = float(spin)
        self.krz_d = tuple(float(d) for d in krz_d)
        self.mass = float(mass)
        self.mass_ratio = float(mass_ratio)
        self.state = _as_state(state).copy()
        self.h = SAMPLE_INTERVAL * CLIGHT * CLIGHT * CLIGHT / self.mass / MSOL / GRAV
        self.tau = 0.0
        self.index = 0
        self.t_sec = 0.0

        g, u = self._metric_and_velocity()
        self.norm = self._norm(g, u)
        self.energy = float(-g[0, 0] * u[0] - g[0, 3] * u[3])
        self.angular_momentum = float(g[0, 3] * u[0] + g[3, 3] * u[3])
        self.carter_q = float((u[2] * g[2, 2]) ** 2)
        self.energy0 = self.energy
        self.momentum0 = self.angular_momentum

    def _seconds(self, t) -> float:
        return float(t * self.mass * MSOL * GRAV / CLIGHT / CLIGHT / CLIGHT)

    def _metric_and_velocity(self):
        var = self.state
        g = metric_krz(self.spin, self.krz_d, var[1] + var[9], var[2] + var[10])
        return g, var[4:8] + var[12:16]

    @staticmethod
    def _norm(g, u) -> float:
        return float(g[0, 0] * u[0] ** 2 + g[1, 1] * u[1] ** 2 + g[2, 2] * u[2] ** 2
                     + g[3, 3] * u[3] ** 2 + 2 * g[3, 0] * u[3] * u[0])

    @np.errstate(all="ignore")
    def _update_invariants(self) -> None:
        g, u = self._metric_and_velocity()
        theta = self.state[2]
        self.norm = self._norm(g, u)
        self.carter_q = float(
            (u[2] * g[2, 2]) ** 2
            + np.cos(theta) ** 2 * (self.spin ** 2 * (self.norm ** 2 - self.energy ** 2)
                                    + self.angular_momentum ** 2 / np.sin(theta) ** 2))
        self.energy = float(-g[0, 0] * u[0] - g[0, 3] * u[3])
        self.angular_momentum = float(g[0, 3] * u[0] + g[3, 3] * u[3])

    def run(self, total_time) -> Iterator[StepResult]:
        """Yield every accepted step until total_time seconds have elapsed."""
        while self.t_sec < total_time:
            self.t_sec = self._seconds(self.state[0])
            self._update_invariants()
            step = rkf45_step(self.state, self.h, self.spin, self.krz_d, self.mass_ratio)
            if step.rejected:
                self.h /= STEP_FACTOR
                continue
            yield step
            self.tau += self.h
            if step.grows:
                self.h *= STEP_FACTOR
            self.index += 1
            self.state = step.state


def _trace_line(orbit: OrbitIntegrator, step: StepResult) -> str:
    s = orbit.state
    fields = [f"{orbit.index}", f"{orbit.t_sec:.10f}", f"{orbit.tau:.10f}", f"{s[0]:.10f}"]
    fields += [f"{v:.10e}" for v in s[1:8]]
    fields += [f"{v:.10e}" for v in step.velocity_change]
    return "\t ".join(fields) + " \n"


def _progress_line(orbit: OrbitIntegrator) -> str:
    s = orbit.state
    head = [f"{orbit.index}", f"{orbit.t_sec:.10f}", f"{orbit.tau:.3f}",
            f"{s[0]:.3f}", f"{s[1]:.6f}"]
    head += [f"{v:.3f}" for v in s[2:8]]
    tail = [orbit.norm - PARTICLE_NORM,
            (orbit.energy - orbit.energy0) / orbit.energy0,
            (orbit.angular_momentum - orbit.momentum0) / orbit.momentum0,
            orbit.carter_q]
    return "\t ".join(head) + "\t " + " \t ".join(f"{v:.10e}" for v in tail)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="krzorbit",
        description="Integrate an orbit with radiation reaction in the KRZ metric.")
    for name, text in (
        ("mass", "central mass in solar masses"),
        ("spin", "dimensionless spin"),
        ("energy", "specific energy"),
        ("angular_momentum", "specific axial angular momentum"),
        ("carter_q", "Carter constant (reported only)"),
        ("r0", "initial radius"),
        ("total_time", "integration time in seconds"),
        ("d1", "deviation parameter delta_1"),
        ("d2", "deviation parameter delta_2"),
        ("d3", "deviation parameter delta_3"),
        ("mass_ratio", "mass ratio of the orbiting body"),
    ):
        parser.add_argument(name, type=float, help=text)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    krz_d = [0.0] * 10
    krz_d[1], krz_d[2], krz_d[3] = args.d1, args.d2, args.d3

    print(f"spin={args.spin:f} ")
    print(f"delta: {krz_d[1]:f}, {krz_d[2]:f}, {krz_d[3]:f}")
    print(f"template E={args.energy:.6f} Lz={args.angular_momentum:.6f} Q={args.carter_q:.6f}")

    try:
        state, energy, momentum, carter_q = initial_state(
            args.spin, krz_d, args.energy, args.angular_momentum, args.r0)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(f"template E={energy:.6f} Lz={momentum:.6f} Q={carter_q:.6f}")

    filename = output_filename(args.mass, args.spin, energy, momentum, carter_q, krz_d)
    orbit = OrbitIntegrator(args.spin, krz_d, args.mass, args.mass_ratio, state)
    with open(filename, "w", encoding="utf-8") as out:
        for step in orbit.run(args.total_time):
            out.write(_trace_line(orbit, step))
            out.flush()
            if step.grows:
                print(_progress_line(orbit))
    return 0