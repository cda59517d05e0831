"""Finite gas reservoir venting through a solver boundary."""
from . import constants
from .errors import BlowdownError, BoundaryNotFound, ConfigurationError, PhysicsError

__all__ = ["constants", "BlowdownError", "BoundaryNotFound", "ConfigurationError", "PhysicsError"]
