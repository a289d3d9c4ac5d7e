"""
Exceptions raised by the simulator.

Configuration problems are detected once, before any round is played, and
surface as :class:`ConfigurationError`.  A shoe that is still empty right
after a shuffle means the engine broke its own contract; that is reported as
:class:`ShoeInvariantError` and is never recovered from.
"""


class SimulationError(Exception):
    """Base class for every error raised by the simulator."""


class ConfigurationError(SimulationError, ValueError):
    """Malformed rules, strategy tables or counting input."""


class ShoeInvariantError(SimulationError, RuntimeError):
    """The shoe has no card to deal even after being reshuffled."""
