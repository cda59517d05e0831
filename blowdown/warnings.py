"""Structured warning classes for the :mod:`blowdown` package."""
from __future__ import annotations


class BlowdownWarning(UserWarning):
    """Base warning class for blowdown."""


class PhysicsWarning(BlowdownWarning):
    """Physical assumption or regime warnings (e.g. unexpected flow direction)."""


class NumericalWarning(BlowdownWarning):
    """Non-finite samples or other numerical accuracy warnings."""


__all__ = [
    "BlowdownWarning",
    "PhysicsWarning",
    "NumericalWarning",
]
