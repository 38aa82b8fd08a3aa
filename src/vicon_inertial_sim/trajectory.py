from bisect import bisect_right
from collections import namedtuple

import numpy as np

from .errors import InvalidTrajectory, OutOfRange
from .geometry import slerp_quaternions, linear_interpolate_translation

PoseSample = namedtuple("PoseSample", ["t", "q_GtoI", "p_IinG"])

MIN_SAMPLES = 4
QUAT_NORM_TOL = 1e-6


class PoseSampleStore:
    def __init__(self, samples):
        """
        Ordered store of ground-truth pose samples.

        samples: iterable of (t, q_GtoI, p_IinG) with q_GtoI a scalar-last
                 [x, y, z, w] unit quaternion rotating vectors from the global
                 frame G into the IMU frame I, and p_IinG the IMU position in G.
        Raises InvalidTrajectory on fewer than four samples, non-finite
        values, non-unit quaternions or timestamps that do not strictly
        increase.
        """
        samples = list(samples)
        if len(samples) < MIN_SAMPLES:
            raise InvalidTrajectory(
                f"Trajectory needs at least {MIN_SAMPLES} samples, got {len(samples)}.")

        times = np.empty(len(samples))
        quats = np.empty((len(samples), 4))
        positions = np.empty((len(samples), 3))
        for i, sample in enumerate(samples):
            if len(sample) != 3:
                raise InvalidTrajectory(f"Sample {i} must be (t, q_GtoI, p_IinG).")
            t, q, p = sample
            q = np.asarray(q, dtype=float)
            p = np.asarray(p, dtype=float)
            if q.shape != (4,) or p.shape != (3,):
                raise InvalidTrajectory(
                    f"Sample {i}: expected a (4,) quaternion and a (3,) position.")
            times[i] = t
            quats[i] = q
            positions[i] = p

        self._validate(times, quats, positions)

        self._times = times
        self._quats = quats / np.linalg.norm(quats, axis=1)[:, np.newaxis]
        self._positions = positions
        # Sample times relative to the first one.
        self._offsets = (times - times[0]).tolist()

    @classmethod
    def from_arrays(cls, times, quats, positions):
        """
        times: (N,) array, quats: (N,4) scalar-last, positions: (N,3)
        """
        times = np.asarray(times, dtype=float)
        quats = np.asarray(quats, dtype=float)
        positions = np.asarray(positions, dtype=float)
        if times.ndim != 1 or quats.shape != (len(times), 4) or positions.shape != (len(times), 3):
            raise InvalidTrajectory("Expected times (N,), quats (N,4) and positions (N,3).")
        return cls(zip(times, quats, positions))

    @staticmethod
    def _validate(times, quats, positions):
        for name, values in (("timestamps", times), ("quaternions", quats), ("positions", positions)):
            bad = ~np.isfinite(values)
            if bad.any():
                row = int(np.argwhere(bad)[0][0])
                raise InvalidTrajectory(f"Non-finite {name} at sample {row}.")

        steps = np.diff(times)
        if np.any(steps <= 0):
            row = int(np.argmax(steps <= 0)) + 1
            raise InvalidTrajectory(
                f"Timestamps must be strictly increasing (sample {row}: "
                f"{times[row - 1]!r} -> {times[row]!r}).")

        norm_err = np.abs(np.linalg.norm(quats, axis=1) - 1.0)
        if np.any(norm_err > QUAT_NORM_TOL):
            row = int(np.argmax(norm_err > QUAT_NORM_TOL))
            raise InvalidTrajectory(
                f"Quaternion at sample {row} is not unit norm (|q| - 1 = {norm_err[row]:.3e}).")

    def __len__(self):
        return len(self._times)

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    def __getitem__(self, i):
        return PoseSample(float(self._times[i]), self._quats[i].copy(), self._positions[i].copy())

    @property
    def times(self):
        return self._times.copy()

    @property
    def quaternions(self):
        return self._quats.copy()

    @property
    def positions(self):
        return self._positions.copy()

    @property
    def start_time(self):
        return float(self._times[0])

    @property
    def end_time(self):
        return float(self._times[-1])

    def mean_spacing(self):
        return (self.end_time - self.start_time) / (len(self) - 1)

    def bracket(self, t):
        """
        Returns (i, i+1) such that times[i] <= t <= times[i+1].
        The last sample time maps to the final pair.
        Raises OutOfRange outside [start_time, end_time].
        """
        return self._bracket_offset(t - self._times[0])

    def _bracket_offset(self, offset):
        if not (0.0 <= offset <= self._offsets[-1]):
            raise OutOfRange(
                f"Time {self.start_time + offset!r} is outside the trajectory "
                f"[{self.start_time!r}, {self.end_time!r}].")
        i = bisect_right(self._offsets, offset) - 1
        i = min(i, len(self._offsets) - 2)
        return i, i + 1

    def interpolate(self, t):
        """
        Pose at time t: SLERP between the bracketing quaternions and linear
        interpolation between the bracketing positions.
        Returns (q_GtoI, p_IinG).
        """
        return self.interpolate_offset(t - self._times[0])

    def interpolate_offset(self, offset):
        """
        Same as interpolate() for the time start_time + offset. Offsets keep
        sub-microsecond resolution when the timestamps are large (Unix epoch).
        """
        i0, i1 = self._bracket_offset(offset)
        o0, o1 = self._offsets[i0], self._offsets[i1]
        alpha = min(max((offset - o0) / (o1 - o0), 0.0), 1.0)
        q = slerp_quaternions(self._quats[i0], self._quats[i1], alpha)
        p = linear_interpolate_translation(self._positions[i0], self._positions[i1], alpha)
        return q, p
