import dataclasses
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import yaml

from .errors import ConfigurationError


@dataclass
class SimulatorParams:
    """
    Options of the vicon-inertial simulator.

    Noise densities are continuous time: sigma_w [rad/s/sqrt(Hz)],
    sigma_a [m/s^2/sqrt(Hz)], sigma_wb [rad/s^2/sqrt(Hz)],
    sigma_ab [m/s^3/sqrt(Hz)]. VICON noise is discrete: sigma_vicon_pos [m],
    sigma_vicon_ori [rad].
    """

    seed_state_init: int = 0
    seed_measurement_imu: int = 0
    seed_measurement_vicon: int = 0

    freq_imu: float = 400.0
    freq_cam: float = 10.0
    freq_vicon: float = 100.0

    # None: mean trajectory sample spacing, at least 0.05 s
    dt_knot: Optional[float] = None

    sigma_w: float = 1.6968e-04
    sigma_a: float = 2.0000e-03
    sigma_wb: float = 1.9393e-05
    sigma_ab: float = 3.0000e-03

    sigma_vicon_pos: float = 1e-3
    sigma_vicon_ori: float = 1e-3

    gravity: tuple = (0.0, 0.0, 9.81)

    # Distance [m] the trajectory must cover before measurements start.
    distance_threshold: float = 0.0

    # Marker body B rigidly attached to the IMU: rotation I->B and B's position in I.
    vicon_q_ItoB: tuple = (0.0, 0.0, 0.0, 1.0)
    vicon_p_BinI: tuple = (0.0, 0.0, 0.0)

    _VECTORS = {"gravity": 3, "vicon_q_ItoB": 4, "vicon_p_BinI": 3}

    def __post_init__(self):
        for name in self._VECTORS:
            value = getattr(self, name)
            if isinstance(value, (list, np.ndarray)):
                setattr(self, name, tuple(float(x) for x in value))

    def validate(self):
        """Raises ConfigurationError on the first invalid option, returns self otherwise."""
        for name in ("seed_state_init", "seed_measurement_imu", "seed_measurement_vicon"):
            seed = getattr(self, name)
            if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {seed!r}.")

        for name in ("freq_imu", "freq_cam", "freq_vicon"):
            self._check_positive(name, getattr(self, name))
        if self.dt_knot is not None:
            self._check_positive("dt_knot", self.dt_knot)

        for name in ("sigma_w", "sigma_a", "sigma_wb", "sigma_ab",
                     "sigma_vicon_pos", "sigma_vicon_ori", "distance_threshold"):
            value = getattr(self, name)
            if not self._is_real(value) or not math.isfinite(value) or value < 0:
                raise ConfigurationError(f"{name} must be a finite non-negative number, got {value!r}.")

        for name, size in self._VECTORS.items():
            value = getattr(self, name)
            try:
                vec = np.asarray(value, dtype=float)
            except (TypeError, ValueError) as err:
                raise ConfigurationError(f"{name} must be a {size}-vector, got {value!r}.") from err
            if vec.shape != (size,) or not np.all(np.isfinite(vec)):
                raise ConfigurationError(f"{name} must be a finite {size}-vector, got {value!r}.")

        if abs(np.linalg.norm(self.vicon_q_ItoB) - 1.0) > 1e-6:
            raise ConfigurationError("vicon_q_ItoB must be a unit quaternion [x, y, z, w].")
        return self

    @staticmethod
    def _is_real(value):
        return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)

    def _check_positive(self, name, value):
        if not self._is_real(value) or not math.isfinite(value) or value <= 0:
            raise ConfigurationError(f"{name} must be a positive number, got {value!r}.")

    @property
    def gravity_vector(self):
        return np.array(self.gravity, dtype=float)

    @classmethod
    def field_names(cls):
        return [f.name for f in dataclasses.fields(cls)]

    @classmethod
    def from_dict(cls, options):
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise ConfigurationError("Simulator configuration must be a mapping.")
        unknown = sorted(set(options) - set(cls.field_names()))
        if unknown:
            raise ConfigurationError(f"Unknown simulator options: {', '.join(unknown)}")
        return cls(**options).validate()

    @classmethod
    def from_yaml(cls, path):
        """Loads options from a YAML mapping; missing keys keep their defaults."""
        with open(path, "r") as f:
            try:
                options = yaml.safe_load(f)
            except yaml.YAMLError as err:
                raise ConfigurationError(f"Could not parse {path}: {err}") from err
        return cls.from_dict(options)

    def to_dict(self):
        out = dataclasses.asdict(self)
        for name in self._VECTORS:
            out[name] = list(out[name])
        return out

    def replace(self, **overrides):
        return dataclasses.replace(self, **overrides).validate()
