"""Uniform boundary profile output."""
from __future__ import annotations

import logging

from .registry import BoundaryRegistry, FaceGroup

__all__ = ["emit", "emit_named"]

logger = logging.getLogger(__name__)


def emit(boundary_faces: FaceGroup, value: float) -> None:
    """Write ``value`` to every face of ``boundary_faces``.

    The reservoir is a lumped model, so the boundary condition is the same on
    all faces.  Safe to call any number of times per step.
    """

    boundary_faces.profile[:] = float(value)


def emit_named(registry: BoundaryRegistry, name: str, value: float) -> bool:
    """Resolve ``name`` and broadcast ``value`` over its faces.

    Returns ``False`` (after logging) when the boundary does not resolve.
    """

    faces = registry.lookup(name)
    if faces is None:
        logger.warning("profile: boundary '%s' not found; profile not written", name)
        return False
    emit(faces, value)
    return True
