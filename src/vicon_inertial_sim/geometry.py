import numpy as np
from scipy.spatial.transform import Rotation

# Quaternions are Hamilton, stored scalar-last [x, y, z, w] (scipy convention).

SMALL_ANGLE = 1e-10


def _check_vec3(v, name):
    if not isinstance(v, np.ndarray) or v.shape != (3,):
        raise ValueError(f"Input {name} must be a (3,) numpy array.")


def so3_hat(omega):
    """
    Maps a 3-vector omega to its corresponding skew-symmetric matrix (so(3)).
    omega: (3,) array
    Returns: (3,3) skew-symmetric matrix
    """
    _check_vec3(omega, "omega")
    return np.array([
        [0.0, -omega[2], omega[1]],
        [omega[2], 0.0, -omega[0]],
        [-omega[1], omega[0], 0.0]
    ])


def so3_vee(Omega):
    """
    Maps a skew-symmetric matrix Omega (so(3)) to its corresponding 3-vector.
    Omega: (3,3) skew-symmetric matrix
    Returns: (3,) array
    """
    if not isinstance(Omega, np.ndarray) or Omega.shape != (3, 3):
        raise ValueError("Input Omega must be a (3,3) numpy array.")
    if not np.allclose(Omega, -Omega.T, atol=1e-7):
        raise ValueError("Input Omega must be skew-symmetric.")
    return np.array([Omega[2, 1], Omega[0, 2], Omega[1, 0]])


def so3_exp(omega):
    """
    Exponential map from a rotation vector to a rotation matrix (Rodrigues).
    omega: (3,) rotation vector
    Returns: (3,3) rotation matrix
    """
    _check_vec3(omega, "omega")
    angle = np.linalg.norm(omega)
    W = so3_hat(omega)
    if angle < SMALL_ANGLE:
        # first order Taylor expansion
        return np.eye(3) + W
    s = np.sin(angle)
    c = np.cos(angle)
    return np.eye(3) + (s / angle) * W + ((1.0 - c) / angle**2) * (W @ W)


def so3_log(R):
    """
    Logarithm map from a rotation matrix to its rotation vector.
    R: (3,3) rotation matrix
    Returns: (3,) rotation vector with norm in [0, pi]
    """
    if not isinstance(R, np.ndarray) or R.shape != (3, 3):
        raise ValueError("Input R must be a (3,3) numpy array.")
    return Rotation.from_matrix(R).as_rotvec()


def so3_right_jacobian(omega):
    """
    Right Jacobian of SO(3), such that
    exp(omega + d) ~= exp(omega) exp(Jr(omega) d) for small d.
    """
    _check_vec3(omega, "omega")
    angle = np.linalg.norm(omega)
    W = so3_hat(omega)
    if angle < SMALL_ANGLE:
        return np.eye(3) - 0.5 * W
    return (np.eye(3)
            - ((1.0 - np.cos(angle)) / angle**2) * W
            + ((angle - np.sin(angle)) / angle**3) * (W @ W))


def quat_to_rot(q):
    """
    Rotation matrix of a scalar-last Hamilton quaternion.
    q: (4,) [x, y, z, w]
    Returns: (3,3) rotation matrix
    """
    return Rotation.from_quat(q).as_matrix()


def rot_to_quat(R):
    """
    Scalar-last Hamilton quaternion of a rotation matrix, with w >= 0.
    """
    q = Rotation.from_matrix(R).as_quat()
    if q[3] < 0.0:
        q = -q
    return q


def quat_multiply(q1, q2):
    """
    Hamilton product q1 * q2 of two scalar-last quaternions.
    """
    x1, y1, z1, w1 = q1
    x2, y2, z2, w2 = q2
    return np.array([
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
    ])


# Interpolation

def linear_interpolate_translation(t1, t2, alpha):
    """
    Linearly interpolates between two translation vectors t1 and t2.
    t1, t2: (3,) arrays representing translation vectors.
    alpha: float, interpolation factor (0 <= alpha <= 1).
           alpha=0 returns t1, alpha=1 returns t2.
    Returns: (3,) array, interpolated translation vector.
    """
    if not (0 <= alpha <= 1):
        raise ValueError("alpha must be between 0 and 1.")
    return (1 - alpha) * t1 + alpha * t2


def slerp_quaternions(q1, q2, alpha):
    """
    Spherical Linear Interpolation between two quaternions.
    q1, q2: (4,) numpy arrays representing quaternions [x, y, z, w]
    alpha: float, interpolation factor (0 <= alpha <= 1)
    Returns: (4,) numpy array, interpolated unit quaternion.
    """
    if not (0 <= alpha <= 1):
        raise ValueError("alpha must be between 0 and 1 for Slerp.")

    q1 = q1 / np.linalg.norm(q1)
    q2 = q2 / np.linalg.norm(q2)

    dot = np.dot(q1, q2)

    # Take the shorter path.
    if dot < 0.0:
        q2 = -q2
        dot = -dot

    # Nearly parallel: fall back to normalised lerp.
    DOT_THRESHOLD = 1.0 - 1e-8
    if dot > DOT_THRESHOLD:
        result = q1 + alpha * (q2 - q1)
        return result / np.linalg.norm(result)

    theta_0 = np.arccos(dot)
    sin_theta_0 = np.sin(theta_0)

    s1 = np.sin(theta_0 * (1.0 - alpha)) / sin_theta_0
    s2 = np.sin(theta_0 * alpha) / sin_theta_0

    result = (s1 * q1) + (s2 * q2)
    return result / np.linalg.norm(result)
