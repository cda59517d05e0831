import math
from dataclasses import replace

import pytest

from blowdown import constants
from blowdown.errors import ConfigurationError, PhysicsError
from blowdown.physics.gas import (
    check_container,
    mass_from_pressure,
    pressure_from_mass,
    specific_gas_constant,
)
from blowdown.physics.reservoir import (
    Initialized,
    ReservoirState,
    StepStatus,
    Uninitialized,
    initialize,
)

R = constants.R_UNIVERSAL / constants.DEFAULT_MOLAR_MASS
V = 10.0
T = 298.15
P0 = 405300.0


def test_specific_gas_constant_per_kmol():
    assert specific_gas_constant(88.15) == pytest.approx(94.3218, rel=1e-5)
    with pytest.raises(PhysicsError):
        specific_gas_constant(0.0)


@pytest.mark.parametrize(
    "volume, gas_constant, temperature",
    [(0.0, R, T), (V, -1.0, T), (V, R, 0.0), (float("nan"), R, T), (V, R, float("inf"))],
)
def test_check_container_rejects_unphysical_inputs(volume, gas_constant, temperature):
    with pytest.raises(ConfigurationError):
        check_container(volume, gas_constant, temperature)


def test_ideal_gas_relations_are_inverse():
    mass = mass_from_pressure(P0, V, R, T)
    assert mass == pytest.approx(P0 * V / (R * T))
    assert pressure_from_mass(mass, V, R, T) == pytest.approx(P0)


def test_initialize_from_pressure():
    slot = initialize(Uninitialized(), P0, V, R, T)
    assert isinstance(slot, Initialized)
    state = slot.state
    assert state.mass_kg == pytest.approx(P0 * V / (R * T))
    assert state.pressure_pa == P0
    assert state.initial_mass_kg == state.mass_kg
    assert state.initial_pressure_pa == P0
    assert state.status is StepStatus.INTEGRATING
    assert not state.sealed


def test_initialize_is_idempotent():
    first = initialize(Uninitialized(), P0, V, R, T)
    again = initialize(first, 2 * P0, 1.0, R, 400.0)
    assert again is first
    assert again.state.mass_kg == first.state.mass_kg


def test_initialize_from_mass_derives_pressure():
    slot = initialize(Uninitialized(), P0, V, R, T, initial_mass_kg=100.0)
    assert slot.state.mass_kg == 100.0
    assert slot.state.pressure_pa == pytest.approx(100.0 * R * T / V)


def test_initialize_rejects_zero_volume():
    with pytest.raises(ConfigurationError):
        initialize(Uninitialized(), P0, 0.0, R, T)


def test_initialize_logs_fill(caplog):
    caplog.set_level("INFO", logger="blowdown.physics.reservoir")
    initialize(Uninitialized(), P0, V, R, T)
    assert "reservoir initialised" in caplog.text


def test_state_rejects_negative_mass():
    with pytest.raises(ConfigurationError):
        ReservoirState(
            mass_kg=-1.0,
            pressure_pa=0.0,
            volume_m3=V,
            gas_constant=R,
            temperature_k=T,
            initial_mass_kg=1.0,
            initial_pressure_pa=P0,
        )


def test_with_mass_recomputes_pressure_and_lifts_seal():
    state = ReservoirState.from_pressure(P0, V, R, T)
    sealed = replace(state, sealed=True, status=StepStatus.EQUILIBRIUM)
    updated = sealed.with_mass(50.0)
    assert updated.mass_kg == 50.0
    assert updated.pressure_pa == pytest.approx(50.0 * R * T / V)
    assert updated.initial_mass_kg == state.initial_mass_kg
    assert not updated.sealed
    assert updated.status is StepStatus.INTEGRATING
    assert math.isclose(updated.ideal_gas_pressure, updated.pressure_pa)
