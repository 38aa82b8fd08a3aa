"""
Uniform cumulative cubic B-spline on SE(3).

Rotation and translation are splined separately (R3 x SO(3)) with the same
cumulative basis. For knot index i and local time u in [0, 1):

    R_ItoG(t) = R_{i-1} Exp(b1 W_i) Exp(b2 W_{i+1}) Exp(b3 W_{i+2})
    p_IinG(t) = p_{i-1} + b1 d_i + b2 d_{i+1} + b3 d_{i+2}

with W_i = Log(R_{i-1}^T R_i), d_i = p_i - p_{i-1} and [b0, b1, b2, b3] the
cumulative basis evaluated at u. Control rotations are kept as R_ItoG so the
right-multiplied increments yield the angular velocity in the IMU frame.
All derivatives are analytic.
"""
import math
from collections import namedtuple

import numpy as np

from .errors import OutOfRange, SplineUnderdetermined
from .geometry import quat_to_rot, rot_to_quat, so3_exp, so3_log, so3_right_jacobian
from .log import get_logger

log = get_logger(__name__)

# B(u) = C @ [1, u, u^2, u^3]
CUMULATIVE_BASIS = np.array([
    [6.0, 0.0, 0.0, 0.0],
    [5.0, 3.0, -3.0, 1.0],
    [1.0, 3.0, 3.0, -2.0],
    [0.0, 0.0, 0.0, 1.0],
]) / 6.0

MIN_CONTROL_POSES = 4
MIN_AUTO_KNOT_SPACING = 0.05
GRID_TOL = 1e-9
# Sample gaps within this many seconds of the knot spacing do not warn.
SPACING_TOL = 1e-6

SplineKinematics = namedtuple(
    "SplineKinematics",
    ["q_GtoI", "p_IinG", "v_IinG", "w_IinI", "a_IinG", "alpha_IinI", "R_GtoI"])


def cumulative_basis(u):
    """
    Cumulative basis and its first two derivatives with respect to u.
    Returns three (4,) arrays: B(u), dB/du, d2B/du2.
    """
    B = CUMULATIVE_BASIS @ np.array([1.0, u, u * u, u * u * u])
    dB = CUMULATIVE_BASIS @ np.array([0.0, 1.0, 2.0 * u, 3.0 * u * u])
    ddB = CUMULATIVE_BASIS @ np.array([0.0, 0.0, 2.0, 6.0 * u])
    return B, dB, ddB


class CubicBSplineSE3:
    def __init__(self, t0, dt, rotations_ItoG, positions):
        """
        t0: timestamp of the first control pose
        dt: uniform knot spacing in seconds
        rotations_ItoG: (N,3,3) control rotations (IMU to global)
        positions: (N,3) control positions p_IinG
        """
        if not dt > 0:
            raise ValueError(f"Knot spacing must be positive, got {dt!r}.")
        rotations_ItoG = np.asarray(rotations_ItoG, dtype=float)
        positions = np.asarray(positions, dtype=float)
        if rotations_ItoG.ndim != 3 or rotations_ItoG.shape[1:] != (3, 3):
            raise ValueError("rotations_ItoG must be an N x 3 x 3 numpy array.")
        if positions.shape != (len(rotations_ItoG), 3):
            raise ValueError("positions must be an N x 3 numpy array matching the rotations.")
        if len(rotations_ItoG) < MIN_CONTROL_POSES:
            raise SplineUnderdetermined(
                f"Cubic B-spline requires at least {MIN_CONTROL_POSES} control poses, "
                f"got {len(rotations_ItoG)}.")

        self._t0 = float(t0)
        self._dt = float(dt)
        self._rotations = rotations_ItoG
        self._positions = positions
        self._omegas = np.array([
            so3_log(rotations_ItoG[k].T @ rotations_ItoG[k + 1])
            for k in range(len(rotations_ItoG) - 1)
        ])
        self._deltas = np.diff(positions, axis=0)

    @classmethod
    def from_samples(cls, store, dt_knot=None):
        """
        Fits the spline to a PoseSampleStore by resampling it onto a uniform
        knot grid (SLERP for rotation, linear for position).

        dt_knot: knot spacing; None uses the mean sample spacing, floored at
                 0.05 s.
        """
        if dt_knot is None:
            dt = max(store.mean_spacing(), MIN_AUTO_KNOT_SPACING)
        else:
            dt = float(dt_knot)
        if not dt > 0:
            raise ValueError(f"Knot spacing must be positive, got {dt_knot!r}.")

        max_gap = float(np.max(np.diff(store.times)))
        if max_gap > dt + SPACING_TOL:
            log.warning(
                "Trajectory samples are up to %.4fs apart, coarser than the knot spacing %.4fs",
                max_gap, dt)

        t_first, t_last = store.start_time, store.end_time
        t0 = math.ceil(t_first / dt - GRID_TOL) * dt
        # Control times are offsets from the first sample so that large
        # timestamps do not quantise the knot grid.
        offset0 = t0 - t_first
        duration = t_last - t_first
        num = int(math.floor((duration - offset0) / dt + GRID_TOL)) + 1 if offset0 <= duration + GRID_TOL else 0
        if num < MIN_CONTROL_POSES:
            raise SplineUnderdetermined(
                f"Only {max(num, 0)} control poses fit in [{t_first!r}, {t_last!r}] "
                f"with knot spacing {dt!r}; at least {MIN_CONTROL_POSES} are required.")

        rotations = np.empty((num, 3, 3))
        positions = np.empty((num, 3))
        for k in range(num):
            offset = min(max(offset0 + k * dt, 0.0), duration)
            q_GtoI, p_IinG = store.interpolate_offset(offset)
            rotations[k] = quat_to_rot(q_GtoI).T
            positions[k] = p_IinG

        spline = cls(t0, dt, rotations, positions)
        log.debug("Spline with %d control poses, dt=%.4fs, valid span [%.6f, %.6f)",
                  num, dt, spline.start_time, spline.end_time)
        return spline

    @property
    def dt(self):
        return self._dt

    @property
    def num_control_poses(self):
        return len(self._rotations)

    @property
    def control_times(self):
        return self._t0 + np.arange(self.num_control_poses) * self._dt

    @property
    def start_time(self):
        return self._t0 + 2 * self._dt

    @property
    def end_time(self):
        return self._t0 + (self.num_control_poses - 2) * self._dt

    def contains(self, t):
        """
        True when t lies in [start_time, end_time). With exactly four control
        poses the span collapses to the single point start_time.
        """
        start = self.start_time
        return start <= t and (t < self.end_time or t == start)

    def _segment(self, t):
        s = t - self._t0
        i = int(math.floor(s / self._dt))
        i = min(max(i, 1), self.num_control_poses - 3)
        u = (s - i * self._dt) / self._dt
        return i, u

    def evaluate(self, t):
        """
        Pose, velocity and acceleration at time t.
        Returns SplineKinematics(q_GtoI, p_IinG, v_IinG, w_IinI, a_IinG,
        alpha_IinI, R_GtoI). Raises OutOfRange outside the valid span.
        """
        if not self.contains(t):
            raise OutOfRange(
                f"Time {t!r} is outside the spline span [{self.start_time!r}, {self.end_time!r}).")

        i, u = self._segment(t)
        B, dB, ddB = cumulative_basis(u)
        b = B[1:]
        db = dB[1:] / self._dt
        ddb = ddB[1:] / (self._dt * self._dt)

        R = self._rotations[i - 1]
        w = np.zeros(3)
        alpha = np.zeros(3)
        for j in range(3):
            omega = self._omegas[i - 1 + j]
            phi = b[j] * omega
            A = so3_exp(phi)
            R = R @ A
            w_rot = A.T @ w
            w_inc = so3_right_jacobian(phi) @ (db[j] * omega)
            alpha = A.T @ alpha + ddb[j] * omega + np.cross(w_rot, w_inc)
            w = w_rot + w_inc

        deltas = self._deltas[i - 1:i + 2]
        p = self._positions[i - 1] + b @ deltas
        v = db @ deltas
        a = ddb @ deltas

        R_GtoI = R.T
        return SplineKinematics(rot_to_quat(R_GtoI), p, v, w, a, alpha, R_GtoI)

    def get_pose(self, t):
        """Returns (R_GtoI, p_IinG)."""
        kin = self.evaluate(t)
        return kin.R_GtoI, kin.p_IinG

    def get_velocity(self, t):
        """Returns (R_GtoI, p_IinG, w_IinI, v_IinG)."""
        kin = self.evaluate(t)
        return kin.R_GtoI, kin.p_IinG, kin.w_IinI, kin.v_IinG

    def get_acceleration(self, t):
        """Returns (R_GtoI, p_IinG, w_IinI, v_IinG, alpha_IinI, a_IinG)."""
        kin = self.evaluate(t)
        return kin.R_GtoI, kin.p_IinG, kin.w_IinI, kin.v_IinG, kin.alpha_IinI, kin.a_IinG
