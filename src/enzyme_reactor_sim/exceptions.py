"""
Simulator Exceptions
====================

Error taxonomy shared by the simulator, the fleet and its collaborators.

Date: October 2026
License: MIT
"""


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class UnknownParameterError(SimulatorError, ValueError):
    """Raised when a parameter adjustment names something that is not adjustable."""

    def __init__(self, parameter: str, allowed=()):
        self.parameter = parameter
        self.allowed = tuple(allowed)
        message = f"Unknown parameter: {parameter!r}"
        if self.allowed:
            message += f" (adjustable: {', '.join(self.allowed)})"
        super().__init__(message)


class ReactorNotFoundError(SimulatorError, KeyError):
    """Raised when an operation references a reactor id the fleet does not own."""

    def __init__(self, reactor_id: str):
        self.reactor_id = reactor_id
        super().__init__(reactor_id)

    def __str__(self) -> str:
        return f"Reactor not found: {self.reactor_id!r}"
