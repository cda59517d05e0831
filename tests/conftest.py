from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from blowdown.config_utils import build_config  # noqa: E402
from blowdown.coupling.registry import FaceGroup, InMemoryBoundaryRegistry  # noqa: E402

BOUNDARY = "inlet_r51101_burst"


@pytest.fixture
def make_config():
    """Return a factory building validated configs from dotted overrides."""

    def _make(*overrides: str, **sections):
        return build_config(dict(sections), overrides=list(overrides))

    return _make


@pytest.fixture
def mass_flux_registry():
    """Return a factory for a registry whose boundary carries ``flow`` kg/s."""

    def _make(flow: float, n_faces: int = 4, name: str = BOUNDARY) -> InMemoryBoundaryRegistry:
        faces = FaceGroup(
            name=name,
            flux=np.full(n_faces, flow / n_faces),
            density_c0=np.ones(n_faces),
            flux_kind="mass",
        )
        return InMemoryBoundaryRegistry([faces])

    return _make
