"""Boundary face groups and the solver's name-to-faces lookup.

The CFD solver owns the mesh; this package only sees a :class:`FaceGroup`
per named boundary, holding the per-face samples needed to estimate the mass
flow and a writable ``profile`` array for the boundary condition.  Lookup is
an injected capability (:class:`BoundaryRegistry`) that returns ``None`` for
unknown names; absence is a normal outcome, not an exception.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Optional, Protocol

import numpy as np

from ..errors import BoundaryNotFound

__all__ = [
    "FaceGroup",
    "BoundaryRegistry",
    "InMemoryBoundaryRegistry",
    "require_faces",
]

FluxKind = Literal["volumetric", "mass"]


def _as_face_array(values: Iterable[float] | np.ndarray, label: str) -> np.ndarray:
    arr = np.atleast_1d(np.asarray(values, dtype=np.float64))
    if arr.ndim != 1:
        raise ValueError(f"{label} must be one-dimensional (one value per face)")
    return arr


@dataclass
class FaceGroup:
    """Per-face samples of one boundary for the current step.

    Parameters
    ----------
    name:
        Boundary name as configured in the solver case.
    flux:
        Face flux; volumetric [m^3/s] or already mass-weighted [kg/s]
        depending on ``flux_kind``.
    density_c0:
        Density of the cell adjacent to each face [kg/m^3].
    density_c1:
        Density of the second neighbouring cell where the face has one
        (interior face pair); ``NaN`` on true exterior faces.  ``None`` when
        every face is exterior.
    face_density:
        Density stored on the face itself, when the solver provides it.  Takes
        precedence over the cell values.
    flux_kind:
        ``"volumetric"`` or ``"mass"``.
    """

    name: str
    flux: np.ndarray
    density_c0: np.ndarray
    density_c1: Optional[np.ndarray] = None
    face_density: Optional[np.ndarray] = None
    flux_kind: FluxKind = "volumetric"
    profile: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.flux = _as_face_array(self.flux, "flux")
        n = self.flux.size
        self.density_c0 = _as_face_array(self.density_c0, "density_c0")
        if self.density_c0.size != n:
            raise ValueError("density_c0 must have one entry per face")
        if self.density_c1 is not None:
            self.density_c1 = _as_face_array(self.density_c1, "density_c1")
            if self.density_c1.size != n:
                raise ValueError("density_c1 must have one entry per face")
        if self.face_density is not None:
            self.face_density = _as_face_array(self.face_density, "face_density")
            if self.face_density.size != n:
                raise ValueError("face_density must have one entry per face")
        if self.flux_kind not in ("volumetric", "mass"):
            raise ValueError(f"Unknown flux_kind={self.flux_kind!r}; expected 'volumetric' or 'mass'")
        self.profile = np.zeros(n, dtype=np.float64)

    @property
    def n_faces(self) -> int:
        return int(self.flux.size)

    def densities(self) -> np.ndarray:
        """Return the density to pair with each face flux.

        Face values are used when present.  Otherwise a face with two
        neighbouring cells takes the arithmetic mean of both, and an exterior
        face takes its single adjacent cell.
        """

        if self.face_density is not None:
            return self.face_density
        if self.density_c1 is None:
            return self.density_c0
        interior = np.isfinite(self.density_c1)
        return np.where(interior, 0.5 * (self.density_c0 + np.nan_to_num(self.density_c1)), self.density_c0)


class BoundaryRegistry(Protocol):
    """Name-to-faces lookup provided by the solver."""

    def lookup(self, name: str) -> Optional[FaceGroup]:
        """Return the face group for ``name`` or ``None`` when it does not resolve."""


class InMemoryBoundaryRegistry:
    """Dictionary-backed :class:`BoundaryRegistry`.

    Used by the replay driver and by tests as a stand-in for the solver's
    thread registry.  Names must match exactly.
    """

    def __init__(self, groups: Iterable[FaceGroup] | None = None) -> None:
        self._groups: Dict[str, FaceGroup] = {}
        for group in groups or ():
            self.register(group)

    def register(self, group: FaceGroup) -> None:
        self._groups[group.name] = group

    def remove(self, name: str) -> None:
        self._groups.pop(name, None)

    def names(self) -> List[str]:
        return sorted(self._groups)

    def lookup(self, name: str) -> Optional[FaceGroup]:
        return self._groups.get(name)


def require_faces(registry: BoundaryRegistry, name: str) -> FaceGroup:
    """Resolve ``name`` or raise :class:`BoundaryNotFound`."""

    faces = registry.lookup(name)
    if faces is None:
        raise BoundaryNotFound(name)
    return faces
