import enum
from collections import namedtuple

import numpy as np

from .bias import BiasProcess
from .errors import InvalidTrajectory, SeedExhausted
from .geometry import quat_multiply, quat_to_rot, rot_to_quat, so3_exp
from .io import BiasWriter, TrajectoryReader
from .log import get_logger
from .params import SimulatorParams
from .spline import CubicBSplineSE3

log = get_logger(__name__)

ImuMeasurement = namedtuple("ImuMeasurement", ["t", "wm", "am"])
ViconMeasurement = namedtuple("ViconMeasurement", ["t", "q_VtoB", "p_BinV"])

STATE_SIZE = 17


class SimulatorState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    EXHAUSTED = "exhausted"


def make_rng(seed):
    """Independent numpy Generator for one random stream."""
    try:
        return np.random.default_rng(seed)
    except (TypeError, ValueError) as err:
        raise SeedExhausted(f"Cannot seed a random generator with {seed!r}: {err}") from err


class Simulator:
    """
    Vicon-inertial measurement generator.

    A cubic SE(3) B-spline is fitted to the ground-truth trajectory once.
    Each sensor stream (IMU, camera trigger, VICON) is pulled independently
    by the caller; ticks of a stream are start_time + k / freq. Pulls return
    None once the stream's next tick leaves the spline span, at which point
    the simulator is exhausted for every stream.

    Three generators are kept apart so that each noise realisation depends
    only on its own seed: IMU white noise, VICON noise, and bias random walk.
    """

    def __init__(self, store, params=None):
        """
        store: PoseSampleStore with the ground-truth trajectory
        params: SimulatorParams, defaults when None
        """
        self.state = SimulatorState.UNINITIALIZED
        self.params = (params if params is not None else SimulatorParams()).validate()
        p = self.params

        self.spline = CubicBSplineSE3.from_samples(store, p.dt_knot)

        self._gen_meas_imu = make_rng(p.seed_measurement_imu)
        self._gen_meas_vicon = make_rng(p.seed_measurement_vicon)
        self._gen_state_init = make_rng(p.seed_state_init)

        self._gravity = p.gravity_vector
        self._R_ItoB = quat_to_rot(np.array(p.vicon_q_ItoB))
        self._p_BinI = np.array(p.vicon_p_BinI, dtype=float)
        self._dt_imu = 1.0 / p.freq_imu

        self.start_time = self._find_start_time()
        self.timestamp = self.start_time
        self._num_imu = 0
        self._num_cam = 0
        self._num_vicon = 0

        self._bias = BiasProcess(p.sigma_wb, p.sigma_ab, self._dt_imu,
                                 self._gen_state_init, self.start_time)

        self.state = SimulatorState.RUNNING
        log.info("Simulation starts at %.6f (spline span [%.6f, %.6f), %d control poses, dt=%.4fs)",
                 self.start_time, self.spline.start_time, self.spline.end_time,
                 self.spline.num_control_poses, self.spline.dt)

    @classmethod
    def from_file(cls, path, params=None):
        """Builds a simulator from a `t qx qy qz qw px py pz` trajectory file."""
        store = TrajectoryReader(path).read()
        return cls(store, params)

    def _find_start_time(self):
        # Step along the camera grid until the trajectory has moved enough.
        t = self.spline.start_time
        threshold = self.params.distance_threshold
        if threshold <= 0.0:
            return t

        _, p_prev = self.spline.get_pose(t)
        distance = 0.0
        k = 0
        while distance <= threshold:
            k += 1
            t = self.spline.start_time + k / self.params.freq_cam
            if not self.spline.contains(t):
                raise InvalidTrajectory(
                    f"Trajectory only covers {distance:.3f}m, less than the "
                    f"distance threshold of {threshold:.3f}m.")
            _, p_IinG = self.spline.get_pose(t)
            distance += np.linalg.norm(p_IinG - p_prev)
            p_prev = p_IinG
        log.info("Moved %.3fm, skipping to t=%.6f", distance, t)
        return t

    def ok(self):
        """True while the simulation clock is inside the spline span."""
        return self.state is SimulatorState.RUNNING and self.spline.contains(self.timestamp)

    @property
    def next_imu_time(self):
        return self.start_time + (self._num_imu + 1) / self.params.freq_imu

    @property
    def next_cam_time(self):
        return self.start_time + (self._num_cam + 1) / self.params.freq_cam

    @property
    def next_vicon_time(self):
        return self.start_time + (self._num_vicon + 1) / self.params.freq_vicon

    def _admit(self, t):
        # Shared gate of every pull: flips to EXHAUSTED on the first tick past the span.
        if self.state is not SimulatorState.RUNNING:
            return False
        if not self.spline.contains(t):
            self.state = SimulatorState.EXHAUSTED
            log.info("Simulation exhausted: tick %.6f is past the spline end %.6f",
                     t, self.spline.end_time)
            return False
        return True

    def get_state(self, desired_time):
        """
        Ground-truth state [t, q_GtoI(4), p_IinG(3), v_IinG(3), b_gyro(3), b_accel(3)]
        at desired_time, or None outside the spline span.
        """
        if not self.spline.contains(desired_time):
            return None
        kin = self.spline.evaluate(desired_time)
        bias_gyro, bias_accel = self._bias.bias(desired_time)

        imustate = np.empty(STATE_SIZE)
        imustate[0] = desired_time
        imustate[1:5] = kin.q_GtoI
        imustate[5:8] = kin.p_IinG
        imustate[8:11] = kin.v_IinG
        imustate[11:14] = bias_gyro
        imustate[14:17] = bias_accel
        return imustate

    def get_next_imu(self):
        """
        Next IMU reading as ImuMeasurement(t, wm, am), or None when exhausted.
        wm is the body angular velocity and am the body specific force, both
        with bias and white noise.
        """
        t = self.next_imu_time
        if not self._admit(t):
            return None

        bias_gyro, bias_accel = self._bias.step(t)
        kin = self.spline.evaluate(t)

        accel_inI = kin.R_GtoI @ (kin.a_IinG + self._gravity)

        sqrt_dt = np.sqrt(self._dt_imu)
        n = self._gen_meas_imu.standard_normal(3)
        m = self._gen_meas_imu.standard_normal(3)
        wm = kin.w_IinI + bias_gyro + self.params.sigma_w / sqrt_dt * n
        am = accel_inI + bias_accel + self.params.sigma_a / sqrt_dt * m

        self._num_imu += 1
        self.timestamp = max(self.timestamp, t)
        log.debug("imu t=%.6f wm=%s am=%s", t, wm, am)
        return ImuMeasurement(t, wm, am)

    def get_next_cam(self):
        """Next camera trigger time, or None when exhausted."""
        t = self.next_cam_time
        if not self._admit(t):
            return None
        self._num_cam += 1
        self.timestamp = max(self.timestamp, t)
        return t

    def get_next_vicon(self):
        """
        Next VICON reading as ViconMeasurement(t, q_VtoB, p_BinV), or None
        when exhausted. The VICON frame coincides with the global frame; the
        orientation is perturbed on the right by Exp(sigma_vicon_ori * n_r)
        and the position by sigma_vicon_pos * n_p.
        """
        t = self.next_vicon_time
        if not self._admit(t):
            return None

        kin = self.spline.evaluate(t)
        R_GtoB = self._R_ItoB @ kin.R_GtoI
        p_BinG = kin.p_IinG + kin.R_GtoI.T @ self._p_BinI

        n_r = self._gen_meas_vicon.standard_normal(3)
        n_p = self._gen_meas_vicon.standard_normal(3)
        dq = rot_to_quat(so3_exp(self.params.sigma_vicon_ori * n_r))
        q_VtoB = quat_multiply(rot_to_quat(R_GtoB), dq)
        q_VtoB /= np.linalg.norm(q_VtoB)
        if q_VtoB[3] < 0.0:
            q_VtoB = -q_VtoB
        p_BinV = p_BinG + self.params.sigma_vicon_pos * n_p

        self._num_vicon += 1
        self.timestamp = max(self.timestamp, t)
        return ViconMeasurement(t, q_VtoB, p_BinV)

    def true_bias_history(self):
        """Returns (times, gyro biases, accel biases) recorded so far."""
        return self._bias.history()

    def save_true_bias(self, path):
        times, bias_gyro, bias_accel = self._bias.history()
        BiasWriter(path).write(times, bias_gyro, bias_accel)
