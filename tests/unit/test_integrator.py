import math

import numpy as np
import pytest

from blowdown import constants
from blowdown.physics.integrator import step
from blowdown.physics.reservoir import ReservoirState, StepStatus
from blowdown.warnings import NumericalWarning

R = constants.R_UNIVERSAL / constants.DEFAULT_MOLAR_MASS
V = 10.0
T = 298.15
P0 = 405300.0
P_ATM = constants.P_ATM


@pytest.fixture
def state():
    return ReservoirState.from_pressure(P0, V, R, T)


def test_single_step_removes_flow_times_dt(state):
    result = step(state, 1.0, 50.0, atmospheric_pressure_pa=P_ATM)
    expected_mass = P0 * V / (R * T) - 50.0
    assert result.state.mass_kg == pytest.approx(expected_mass)
    assert result.state.pressure_pa == pytest.approx(expected_mass * R * T / V)
    assert result.status is StepStatus.INTEGRATING
    assert result.flow_kg_s == 50.0
    assert not result.mass_clamped


@pytest.mark.parametrize("dt", [0.0, -1.0, float("nan")])
def test_non_positive_dt_is_a_no_op(state, dt):
    result = step(state, dt, 50.0, atmospheric_pressure_pa=P_ATM)
    assert result.skipped
    assert result.state is state
    assert result.flow_kg_s == 0.0


def test_reaching_ambient_clamps_pressure_and_reports_equilibrium(state):
    result = step(state, 1.0, 120.0, atmospheric_pressure_pa=P_ATM, reseal=True)
    assert result.status is StepStatus.EQUILIBRIUM
    assert result.state.pressure_pa == P_ATM
    assert result.state.sealed


def test_sealed_vent_keeps_mass(state):
    sealed = step(state, 1.0, 120.0, atmospheric_pressure_pa=P_ATM, reseal=True).state
    result = step(sealed, 1.0, 120.0, atmospheric_pressure_pa=P_ATM, reseal=True)
    assert result.state.mass_kg == sealed.mass_kg
    assert result.state.pressure_pa == P_ATM
    assert result.status is StepStatus.EQUILIBRIUM
    assert result.flow_kg_s == 0.0


def test_without_reseal_mass_keeps_draining_at_ambient(state):
    first = step(state, 1.0, 120.0, atmospheric_pressure_pa=P_ATM, reseal=False)
    second = step(first.state, 1.0, 10.0, atmospheric_pressure_pa=P_ATM, reseal=False)
    assert second.state.mass_kg == pytest.approx(first.state.mass_kg - 10.0)
    assert second.state.pressure_pa == P_ATM
    assert second.status is StepStatus.EQUILIBRIUM


def test_near_equilibrium_within_margin(state):
    target = P_ATM + 500.0
    flow = state.mass_kg - target * V / (R * T)
    result = step(state, 1.0, flow, atmospheric_pressure_pa=P_ATM)
    assert result.status is StepStatus.NEAR_EQUILIBRIUM
    assert result.state.pressure_pa == pytest.approx(target)


def test_depletion_clamps_mass_without_atmosphere(state, caplog):
    caplog.set_level("WARNING", logger="blowdown.physics.integrator")
    result = step(state, 1.0, 1.0e4)
    assert result.state.mass_kg == 0.0
    assert result.state.pressure_pa == 0.0
    assert result.mass_clamped
    assert result.status is StepStatus.DEPLETED
    assert result.flow_kg_s == pytest.approx(state.mass_kg)
    assert "clamping to zero" in caplog.text

    again = step(result.state, 1.0, 1.0e4)
    assert again.state.mass_kg == 0.0
    assert again.status is StepStatus.DEPLETED


def test_equilibrium_overrides_depletion_when_venting(state):
    result = step(state, 1.0, 1.0e4, atmospheric_pressure_pa=P_ATM)
    assert result.mass_clamped
    assert result.state.mass_kg == 0.0
    assert result.state.pressure_pa == P_ATM
    assert result.status is StepStatus.EQUILIBRIUM


def test_monotonic_depletion_under_constant_outflow(state):
    masses = []
    current = state
    for _ in range(30):
        current = step(current, 0.5, 15.0).state
        masses.append(current.mass_kg)
    assert all(b <= a for a, b in zip(masses, masses[1:]))
    assert masses[-1] == 0.0


def test_random_sequences_keep_mass_non_negative_and_consistent(state):
    rng = np.random.default_rng(42)
    current = state
    for _ in range(200):
        dt = float(rng.choice([0.0, rng.uniform(0.0, 2.0)]))
        flow = float(rng.uniform(-20.0, 60.0))
        result = step(current, dt, flow, atmospheric_pressure_pa=P_ATM, reseal=False)
        current = result.state
        assert current.mass_kg >= 0.0
        assert math.isfinite(current.pressure_pa)
        if result.status is not StepStatus.EQUILIBRIUM and not result.skipped:
            assert current.pressure_pa == pytest.approx(current.mass_kg * R * T / V)
        else:
            assert current.pressure_pa >= P_ATM or result.skipped


@pytest.mark.parametrize("flow", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_flow_is_absorbed_as_zero(state, flow):
    with pytest.warns(NumericalWarning):
        result = step(state, 1.0, flow, atmospheric_pressure_pa=P_ATM)
    assert result.state.mass_kg == state.mass_kg
    assert result.state.pressure_pa == pytest.approx(state.pressure_pa)
    assert result.flow_kg_s == 0.0
    assert result.status is StepStatus.INTEGRATING
