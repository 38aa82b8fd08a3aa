from bisect import bisect_right

import numpy as np


class BiasProcess:
    def __init__(self, sigma_wb, sigma_ab, dt, rng, t_init,
                 bias_gyro_init=None, bias_accel_init=None):
        """
        Gyroscope and accelerometer biases driven by independent 3D random
        walks, advanced on a fixed timestep:

            b_g(k+1) = b_g(k) + sqrt(dt) * sigma_wb * n_k
            b_a(k+1) = b_a(k) + sqrt(dt) * sigma_ab * m_k

        sigma_wb, sigma_ab: continuous-time random walk densities
        dt: step size in seconds (the IMU period)
        rng: numpy Generator reserved for the bias increments
        t_init: time of the initial bias, recorded as the first history entry
        """
        if not dt > 0:
            raise ValueError(f"Bias timestep must be positive, got {dt!r}.")
        if sigma_wb < 0 or sigma_ab < 0:
            raise ValueError("Bias random walk densities must be non-negative.")
        self.sigma_wb = float(sigma_wb)
        self.sigma_ab = float(sigma_ab)
        self.dt = float(dt)
        self._rng = rng

        self.bias_gyro = np.zeros(3) if bias_gyro_init is None else np.array(bias_gyro_init, dtype=float)
        self.bias_accel = np.zeros(3) if bias_accel_init is None else np.array(bias_accel_init, dtype=float)
        if self.bias_gyro.shape != (3,) or self.bias_accel.shape != (3,):
            raise ValueError("Initial biases must be 3-vectors.")

        self._hist_time = [float(t_init)]
        self._hist_gyro = [self.bias_gyro.copy()]
        self._hist_accel = [self.bias_accel.copy()]

    @property
    def last_time(self):
        return self._hist_time[-1]

    def step(self, t_next):
        """
        Advances both random walks by one step and records the result at t_next.
        t_next must be strictly after the last recorded time.
        """
        if not t_next > self._hist_time[-1]:
            raise ValueError(
                f"Bias can only move forward in time ({t_next!r} <= {self._hist_time[-1]!r}).")
        sqrt_dt = np.sqrt(self.dt)
        n = self._rng.standard_normal(3)
        m = self._rng.standard_normal(3)
        self.bias_gyro = self.bias_gyro + sqrt_dt * self.sigma_wb * n
        self.bias_accel = self.bias_accel + sqrt_dt * self.sigma_ab * m

        self._hist_time.append(float(t_next))
        self._hist_gyro.append(self.bias_gyro.copy())
        self._hist_accel.append(self.bias_accel.copy())
        return self.bias_gyro.copy(), self.bias_accel.copy()

    def bias(self, t):
        """
        Most recent recorded (b_gyro, b_accel) with timestamp <= t.
        Times before the first entry return the initial bias.
        """
        i = max(bisect_right(self._hist_time, t) - 1, 0)
        return self._hist_gyro[i].copy(), self._hist_accel[i].copy()

    def history(self):
        """Returns (times (K,), gyro biases (K,3), accel biases (K,3))."""
        return (np.array(self._hist_time),
                np.array(self._hist_gyro),
                np.array(self._hist_accel))

    def __len__(self):
        return len(self._hist_time)
