import numpy as np

from .errors import InvalidTrajectory
from .trajectory import PoseSampleStore

MIN_FILE_SAMPLES = 8
# Quaternions printed with few digits are renormalised if they are this close to unit norm.
QUAT_RENORM_TOL = 1e-2


class TrajectoryReader:
    def __init__(self, filepath):
        self.filepath = filepath

    def read(self):
        """
        Reads a ground-truth trajectory.
        Each line: t qx qy qz qw px py pz (whitespace separated).
        Lines starting with '#' and blank lines are skipped.
        Returns a PoseSampleStore; raises InvalidTrajectory on malformed lines,
        bad quaternions or fewer than eight samples.
        """
        times = []
        quats = []
        positions = []
        with open(self.filepath, 'r') as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                fields = line.split()
                if len(fields) != 8:
                    raise InvalidTrajectory(
                        f"{self.filepath}:{lineno}: expected 8 values (t qx qy qz qw px py pz), "
                        f"got {len(fields)}.")
                try:
                    values = [float(x) for x in fields]
                except ValueError as err:
                    raise InvalidTrajectory(f"{self.filepath}:{lineno}: {err}") from err

                q = np.array(values[1:5])
                norm = np.linalg.norm(q)
                if not np.isfinite(norm) or abs(norm - 1.0) > QUAT_RENORM_TOL:
                    raise InvalidTrajectory(
                        f"{self.filepath}:{lineno}: quaternion norm {norm} is not close to 1.")
                times.append(values[0])
                quats.append(q / norm)
                positions.append(values[5:8])

        if len(times) < MIN_FILE_SAMPLES:
            raise InvalidTrajectory(
                f"{self.filepath}: need at least {MIN_FILE_SAMPLES} samples, got {len(times)}.")
        return PoseSampleStore.from_arrays(times, quats, positions)


class _RowWriter:
    header = ""
    columns = 0

    def __init__(self, filepath):
        self.filepath = filepath

    def _write_rows(self, rows):
        rows = np.asarray(rows, dtype=float)
        if rows.ndim != 2 or rows.shape[1] != self.columns:
            raise ValueError(f"Expected an N x {self.columns} array of rows.")
        with open(self.filepath, 'w') as f:
            f.write(f"# {self.header}\n")
            for row in rows:
                f.write(f"{row[0]:.9f} " + " ".join(f"{x:.9e}" for x in row[1:]) + "\n")


class TrajWriter(_RowWriter):
    header = "t qx qy qz qw px py pz"
    columns = 8

    def write(self, timestamps, quats, positions):
        """
        Writes a trajectory readable by TrajectoryReader.
        timestamps: (N,), quats: (N,4) [x,y,z,w], positions: (N,3)
        """
        timestamps = np.asarray(timestamps, dtype=float)
        quats = np.asarray(quats, dtype=float)
        positions = np.asarray(positions, dtype=float)
        if not (len(timestamps) == len(quats) == len(positions)):
            raise ValueError("Timestamps, quaternions and positions must have the same length.")
        if quats.ndim != 2 or quats.shape[1] != 4 or positions.ndim != 2 or positions.shape[1] != 3:
            raise ValueError("Quaternions must be N x 4 and positions N x 3.")
        self._write_rows(np.column_stack((timestamps, quats, positions)))


class ImuWriter(_RowWriter):
    header = "t wx wy wz ax ay az"
    columns = 7

    def write(self, measurements):
        """measurements: sequence of ImuMeasurement(t, wm, am)"""
        rows = [np.concatenate(([m.t], m.wm, m.am)) for m in measurements]
        self._write_rows(np.reshape(rows, (-1, self.columns)))


class CamWriter(_RowWriter):
    header = "t"
    columns = 1

    def write(self, timestamps):
        self._write_rows(np.reshape(np.asarray(timestamps, dtype=float), (-1, 1)))


class ViconWriter(_RowWriter):
    header = "t qx qy qz qw px py pz"
    columns = 8

    def write(self, measurements):
        """measurements: sequence of ViconMeasurement(t, q_VtoB, p_BinV)"""
        rows = [np.concatenate(([m.t], m.q_VtoB, m.p_BinV)) for m in measurements]
        self._write_rows(np.reshape(rows, (-1, self.columns)))


class StateWriter(_RowWriter):
    header = "t qx qy qz qw px py pz vx vy vz bwx bwy bwz bax bay baz"
    columns = 17

    def write(self, states):
        """states: (N,17) array as returned row-wise by Simulator.get_state"""
        self._write_rows(np.reshape(np.asarray(states, dtype=float), (-1, self.columns)))


class BiasWriter(_RowWriter):
    header = "t bwx bwy bwz bax bay baz"
    columns = 7

    def write(self, timestamps, bias_gyro, bias_accel):
        timestamps = np.asarray(timestamps, dtype=float)
        bias_gyro = np.asarray(bias_gyro, dtype=float)
        bias_accel = np.asarray(bias_accel, dtype=float)
        if not (len(timestamps) == len(bias_gyro) == len(bias_accel)):
            raise ValueError("Timestamps and biases must have the same length.")
        self._write_rows(np.column_stack((timestamps, bias_gyro, bias_accel)))
