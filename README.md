# krzorbit

Orbits of a small body around a rotating black hole described by the
Konoplya–Rezzolla–Zhidenko (KRZ) parametrised metric, with the
leading-order radiation-reaction self-acceleration added to the
geodesic motion.

## Modules

- `krzorbit.metric` – the KRZ metric (`metric_krz`), its inverse
  (`metric_krz_inverse`), analytic derivatives in `r` and `theta`
  (`metric_krz_rderivatives`, `metric_krz_thderivatives`) and
  central-difference versions of them
  (`metric_krz_rderivatives_numeric`, `metric_krz_thderivatives_numeric`).
  It also gives the squared radial and vertical epicyclic frequencies of
  equatorial circular orbits (`radial_stability_krz`,
  `vertical_stability_krz`) and two ISCO searches: `find_isco_krz`
  bisects for the radius where the circular-orbit energy is stationary,
  and `find_isco_krz_freq_method` shrinks the radius while the epicyclic
  frequencies stay positive. Both emit a `RuntimeWarning` when they do
  not converge; `find_isco_krz` then returns the horizon radius.
- `krzorbit.christoffel` – `christoffel_krz` returns **twice** the
  Christoffel symbols, `cs[a, b, c] = 2 Γ^a_{bc}`, as a 4×4×4 array.
- `krzorbit.coordinates` – `boyer_to_cartesian`, `cartesian_to_boyer`
  and `boyer_jacobian_known`, converting between Boyer–Lindquist
  `(t, r, theta, phi)` and Cartesian-like `(t, x, y, z)` coordinates
  together with their Jacobians.
- `krzorbit.radiation` – `high_derivatives` gives the Cartesian position
  and its coordinate-time derivatives up to seventh order as an (8, 4)
  array; `radiation_acceleration` turns that array into the
  radiation-reaction acceleration per unit mass ratio.
- `krzorbit.orbit` – the sixteen-component equations of motion
  (`equations`), an equatorial starting state (`initial_state`), one
  adaptive Runge–Kutta–Fehlberg 4(5) step (`rkf45_step`, returning a
  `StepResult`), the trajectory file name (`output_filename`), the
  `OrbitIntegrator` and the command-line entry point `main`.

The deviation parameters are passed as a sequence `krz_d` indexed by the
parameter number: `krz_d[1]` is δ1 and `krz_d[2]` is δ2; index 0 is
unused. δ3 (`krz_d[3]`) does not enter the metric and only appears in
the output file name.

## Installation

```
pip install .
```

## Command line

```
krzorbit M spin E Lz Q r0 total_time d1 d2 d3 mass_ratio
```

Arguments, in order:

1. `M` – central mass in solar masses
2. `spin` – dimensionless spin `a`
3. `E` – specific energy
4. `Lz` – specific axial angular momentum
5. `Q` – Carter constant; it is only printed, the actual value is
   recomputed from the initial state
6. `r0` – initial Boyer–Lindquist radius, in units of `M`
7. `total_time` – length of the run in seconds of coordinate time
8. `d1`, `d2`, `d3` – deviation parameters δ1, δ2, δ3
9. `mass_ratio` – mass ratio of the orbiting body

The orbit starts in the equatorial plane at `r0` with zero radial
velocity and the polar velocity fixed by the normalisation of the
four-velocity. If `E` and `Lz` admit no timelike orbit there, the
command prints an error and exits with status 1.

Every accepted step is written as one line to a file in the current
directory named by `output_filename`, for example
`trace_M1000000_spin0.500000_E..._d3....dat`. The columns are: step
index, coordinate time in seconds, proper time, `t`, `r`, `theta`,
`phi`, `u^t`, `u^r`, `u^theta`, `u^phi` (all at the start of the step),
and the four fifth-order velocity increments of that step. When a step
lets the step size grow, a progress line is printed with the state, the
deviation of the four-velocity norm from −1, the relative drifts of
energy and angular momentum, and the Carter constant.

The initial step size corresponds to 0.1 s; steps are shrunk or grown by
a factor 1.1 to keep the relative error between 1e-11 and 1e-10.

## Library use

```python
import math

from krzorbit.metric import metric_krz, find_isco_krz
from krzorbit.orbit import OrbitIntegrator, initial_state

spin = 0.5
krz_d = [0.0, 0.0, 0.0, 0.0]          # index 0 unused; δ1, δ2, δ3
g = metric_krz(spin, krz_d, 10.0, math.pi / 2)
isco = find_isco_krz(spin, krz_d, 100.0)

state, energy, momentum, carter_q = initial_state(spin, krz_d, 0.95, 3.6, 10.0)
orbit = OrbitIntegrator(spin, krz_d, mass=1e6, mass_ratio=1e-5, state=state)
for step in orbit.run(total_time=1.0):
    print(orbit.index, orbit.t_sec, step.state[1])
```

`OrbitIntegrator.run` is a generator: it yields each accepted
`StepResult`, and while it is suspended the integrator's `state`,
`tau`, `index`, `t_sec`, `energy`, `angular_momentum`, `carter_q` and
`norm` describe the point that step started from.

## What the package does not do

It only integrates and writes trajectories. It does not solve for the
energy and angular momentum of a given eccentricity and semi-latus
rectum, does not stop when the body crosses the horizon, and does not
compute or plot gravitational waveforms from the trajectory.

## Tests

```
pip install .[test]
pytest
```