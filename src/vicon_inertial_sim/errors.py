class SimulatorError(Exception):
    """Base class for every error raised by vicon_inertial_sim."""


class InvalidTrajectory(SimulatorError, ValueError):
    """The pose samples are unusable (ordering, non-finite values, too few samples)."""


class SplineUnderdetermined(SimulatorError, ValueError):
    """Fewer than four control poses could be placed on the knot grid."""


class OutOfRange(SimulatorError, ValueError):
    """A query time lies outside the valid span."""


class SeedExhausted(SimulatorError, RuntimeError):
    """A seed could not be turned into a random generator."""


class ConfigurationError(SimulatorError, ValueError):
    """An option of the simulator configuration is invalid."""
