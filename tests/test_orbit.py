import numpy as np
import pytest

from krzorbit.metric import metric_krz
from krzorbit.orbit import (
    OrbitIntegrator,
    StepResult,
    equations,
    initial_state,
    main,
    output_filename,
    rkf45_step,
)

KRZ = (0.0,) * 10
ENERGY = 0.96
MOMENTUM = 3.7
RADIUS = 10.0


def _orbit():
    return initial_state(0.0, KRZ, ENERGY, MOMENTUM, RADIUS)


def test_output_filename_format():
    name = output_filename(1e6, 0.5, 0.95, 3.5, 1.25, [0.0, 0.1, 0.2, 0.3])
    assert name == ("trace_M1000000_spin0.500000_E0.950000_Lz3.500000_Q1.250000"
                    "_d10.100000_d20.200000_d30.300000.dat")


def test_initial_state_round_trips_constants():
    state, energy, momentum, carter_q = _orbit()
    assert energy == pytest.approx(ENERGY, rel=1e-12)
    assert momentum == pytest.approx(MOMENTUM, rel=1e-12)
    assert carter_q > 0
    assert state[1] == RADIUS
    assert state[2] == pytest.approx(np.pi / 2)
    assert state[0] == 0.0 and state[3] == 0.0 and state[5] == 0.0
    assert np.all(state[8:] == 0.0)


def test_initial_state_is_normalised():
    state, *_ = _orbit()
    g = metric_krz(0.0, KRZ, state[1], state[2])
    u = state[4:8]
    assert np.einsum("ab,a,b->", g, u, u) == pytest.approx(-1.0, abs=1e-12)


def test_initial_state_rejects_unbound_constants():
    with pytest.raises(ValueError):
        initial_state(0.0, KRZ, 0.9, MOMENTUM, RADIUS)


def test_equations_position_rates_are_velocities():
    state, *_ = _orbit()
    diff = equations(state, 0.0, KRZ, 1e-5)
    assert diff.shape == (16,)
    assert np.array_equal(diff[0:4], state[4:8])
    assert np.array_equal(diff[8:12], state[12:16])


def test_equations_radiation_scales_with_mass_ratio():
    state, *_ = _orbit()
    one = equations(state, 0.0, KRZ, 1.0)
    two = equations(state, 0.0, KRZ, 2.0)
    assert np.allclose(two[12:], 2 * one[12:], rtol=1e-12, atol=0)
    assert np.array_equal(one[:12], two[:12])


def test_equations_without_radiation_leave_perturbation_static():
    state, *_ = _orbit()
    diff = equations(state, 0.0, KRZ, 0.0)
    np.testing.assert_array_equal(diff[8:], np.zeros(8))


def test_equations_reject_wrong_size():
    with pytest.raises(ValueError):
        equations(np.zeros(8), 0.0, KRZ, 0.0)


def test_zero_step_leaves_state_and_grows():
    state, *_ = _orbit()
    step = rkf45_step(state, 0.0, 0.0, KRZ, 0.0)
    assert isinstance(step, StepResult)
    assert np.array_equal(step.state, state)
    assert step.grows
    assert not step.rejected


def test_large_step_is_rejected():
    state, *_ = _orbit()
    step = rkf45_step(state, 5.0, 0.0, KRZ, 0.0)
    assert step.rejected
    assert step.status == 1


def test_small_step_velocity_change_matches_higher_order():
    state, *_ = _orbit()
    step = rkf45_step(state, 0.01, 0.0, KRZ, 0.0)
    assert np.allclose(step.velocity_change, step.higher_order[4:8] - state[4:8],
                       rtol=0, atol=1e-14)
    assert step.state[0] > state[0]
    assert step.state[3] > state[3]


def test_integrator_rejects_non_positive_mass():
    state, *_ = _orbit()
    with pytest.raises(ValueError):
        OrbitIntegrator(0.0, KRZ, 0.0, 0.0, state)


def test_integrator_chains_accepted_steps():
    state, *_ = _orbit()
    orbit = OrbitIntegrator(0.0, KRZ, 1e6, 0.0, state)
    previous = None
    times = []
    for expected_index, step in enumerate(orbit.run(0.3)):
        assert orbit.index == expected_index
        if previous is not None:
            assert np.array_equal(orbit.state, previous)
        previous = step.state.copy()
        times.append(orbit.t_sec)
    assert len(times) >= 2
    assert all(b > a for a, b in zip(times, times[1:]))
    assert orbit.t_sec >= 0.3


def test_integrator_conserves_geodesic_constants():
    state, energy, momentum, _ = _orbit()
    orbit = OrbitIntegrator(0.0, KRZ, 1e6, 0.0, state)
    assert orbit.energy0 == pytest.approx(energy, rel=1e-14)
    assert orbit.momentum0 == pytest.approx(momentum, rel=1e-14)
    for _ in orbit.run(0.3):
        assert orbit.energy == pytest.approx(orbit.energy0, rel=1e-8)
        assert orbit.angular_momentum == pytest.approx(orbit.momentum0, rel=1e-8)
        assert orbit.norm == pytest.approx(-1.0, abs=1e-8)
        assert np.all(orbit.state[8:] == 0.0)


def test_main_writes_trajectory(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    code = main(["1e6", "0", "0.96", "3.7", "0", "10", "0.3", "0", "0", "0", "0"])
    assert code == 0
    files = list(tmp_path.glob("trace_*.dat"))
    assert len(files) == 1
    assert files[0].name.startswith("trace_M1000000_spin0.000000_E0.960000_Lz3.700000_Q")
    lines = files[0].read_text().splitlines()
    assert lines
    assert all(len(line.split()) == 15 for line in lines)
    assert lines[0].split()[0] == "0"
    assert "spin=0.000000" in capsys.readouterr().out


def test_main_reports_unbound_orbit(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code = main(["1e6", "0", "0.9", "3.7", "0", "10", "0.3", "0", "0", "0", "0"])
    assert code == 1
    assert list(tmp_path.glob("trace_*.dat")) == []


def test_main_requires_all_arguments():
    with pytest.raises(SystemExit):
        main(["1e6", "0"])