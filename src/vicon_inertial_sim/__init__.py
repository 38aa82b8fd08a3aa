"""Vicon-inertial measurement simulator built on a cubic SE(3) B-spline."""

from .errors import (
    SimulatorError,
    InvalidTrajectory,
    SplineUnderdetermined,
    OutOfRange,
    SeedExhausted,
    ConfigurationError,
)
from .trajectory import PoseSample, PoseSampleStore
from .spline import CubicBSplineSE3, SplineKinematics
from .bias import BiasProcess
from .params import SimulatorParams
from .simulator import Simulator, SimulatorState, ImuMeasurement, ViconMeasurement

__version__ = "0.1.0"
