import logging

import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R

from vicon_inertial_sim.params import SimulatorParams
from vicon_inertial_sim.trajectory import PoseSampleStore


def store_from_motion(times, rotvec_ItoG, position):
    """
    Builds a PoseSampleStore from closed-form motion.
    rotvec_ItoG(t) -> (3,) rotation vector of R_ItoG, position(t) -> (3,) p_IinG
    """
    times = np.asarray(times, dtype=float)
    quats = np.array([R.from_rotvec(rotvec_ItoG(t)).inv().as_quat() for t in times])
    positions = np.array([position(t) for t in times])
    return PoseSampleStore.from_arrays(times, quats, positions)


@pytest.fixture
def static_store():
    def _build(num=40, dt=0.1):
        times = np.arange(num) * dt
        return store_from_motion(times, lambda t: np.zeros(3), lambda t: np.zeros(3))
    return _build


@pytest.fixture
def yaw_store():
    # Constant rotation about +z at `rate` rad/s, no translation.
    def _build(rate=1.0, duration=5.0, dt=0.05):
        times = np.arange(int(round(duration / dt)) + 1) * dt
        return store_from_motion(times, lambda t: np.array([0.0, 0.0, rate * t]), lambda t: np.zeros(3))
    return _build


@pytest.fixture
def circle_store():
    # Planar circle with the IMU x-axis tangent to the path.
    def _build(radius=2.0, freq_circ=0.1, duration=12.0, dt=0.01):
        w = 2.0 * np.pi * freq_circ
        times = np.arange(int(round(duration / dt)) + 1) * dt
        return store_from_motion(
            times,
            lambda t: np.array([0.0, 0.0, w * t]),
            lambda t: radius * np.array([np.cos(w * t), np.sin(w * t), 0.0]))
    return _build


@pytest.fixture
def wobble_store():
    # Smooth 3D motion with a rotation axis that keeps changing.
    def _build(duration=6.0, dt=0.02):
        times = np.arange(int(round(duration / dt)) + 1) * dt
        return store_from_motion(
            times,
            lambda t: np.array([0.4 * np.sin(0.7 * t), 0.3 * np.cos(1.1 * t), 0.8 * t]),
            lambda t: np.array([np.sin(0.5 * t), 0.5 * np.cos(0.9 * t), 0.2 * t]))
    return _build


@pytest.fixture
def quiet_params():
    """Noise-free, bias-free configuration."""
    return SimulatorParams(
        sigma_w=0.0, sigma_a=0.0, sigma_wb=0.0, sigma_ab=0.0,
        sigma_vicon_pos=0.0, sigma_vicon_ori=0.0)


@pytest.fixture(autouse=True)
def reset_package_logger():
    # The CLI attaches a handler to the captured stdout of the test that ran it.
    yield
    logger = logging.getLogger("vicon_inertial_sim")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
