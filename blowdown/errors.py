"""Custom exceptions for the :mod:`blowdown` package."""
from __future__ import annotations


class BlowdownError(Exception):
    """Base exception for reservoir blow-down errors."""


class ConfigurationError(BlowdownError, ValueError):
    """Invalid reservoir or run configuration; fatal before the first step."""


# Name used by the coupling layer when reporting setup failures to the solver.
InvalidConfiguration = ConfigurationError


class BoundaryNotFound(BlowdownError, LookupError):
    """The named boundary does not resolve in the solver's registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"boundary {name!r} not found in the solver registry")
        self.name = name


class PhysicsError(BlowdownError, ValueError):
    """Raised when a physical relation is evaluated with unusable inputs."""


__all__ = [
    "BlowdownError",
    "ConfigurationError",
    "InvalidConfiguration",
    "BoundaryNotFound",
    "PhysicsError",
]
