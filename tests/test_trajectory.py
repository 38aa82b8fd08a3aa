import pytest
import numpy as np
from scipy.spatial.transform import Rotation as R

from vicon_inertial_sim.errors import InvalidTrajectory, OutOfRange
from vicon_inertial_sim.trajectory import PoseSample, PoseSampleStore


def make_samples(num=5, dt=0.5):
    samples = []
    for i in range(num):
        q = R.from_rotvec([0.0, 0.0, 0.1 * i]).as_quat()
        samples.append((i * dt, q, np.array([float(i), 0.0, 0.0])))
    return samples


def test_store_basic_access():
    store = PoseSampleStore(make_samples())
    assert len(store) == 5
    assert store.start_time == 0.0
    assert store.end_time == 2.0
    assert np.isclose(store.mean_spacing(), 0.5)

    first = store[0]
    assert isinstance(first, PoseSample)
    assert first.t == 0.0
    assert np.allclose(first.q_GtoI, [0, 0, 0, 1])

    times = [s.t for s in store]
    assert times == [0.0, 0.5, 1.0, 1.5, 2.0]
    assert store.times.shape == (5,)
    assert store.quaternions.shape == (5, 4)
    assert store.positions.shape == (5, 3)


def test_store_from_arrays_matches_constructor():
    samples = make_samples()
    times = [s[0] for s in samples]
    quats = [s[1] for s in samples]
    positions = [s[2] for s in samples]
    store = PoseSampleStore.from_arrays(times, quats, positions)
    assert np.allclose(store.positions, PoseSampleStore(samples).positions)

    with pytest.raises(InvalidTrajectory, match="Expected times"):
        PoseSampleStore.from_arrays(times, quats[:-1], positions)


def test_store_requires_four_samples():
    with pytest.raises(InvalidTrajectory, match="at least 4 samples"):
        PoseSampleStore(make_samples(num=3))


def test_store_rejects_non_monotonic_time():
    samples = make_samples()
    samples[2] = (samples[1][0], samples[2][1], samples[2][2])
    with pytest.raises(InvalidTrajectory, match="strictly increasing"):
        PoseSampleStore(samples)

    samples = make_samples()
    samples[3], samples[2] = samples[2], samples[3]
    with pytest.raises(InvalidTrajectory, match="strictly increasing"):
        PoseSampleStore(samples)


def test_store_rejects_non_finite_values():
    samples = make_samples()
    samples[1] = (samples[1][0], samples[1][1], np.array([np.nan, 0.0, 0.0]))
    with pytest.raises(InvalidTrajectory, match="Non-finite positions at sample 1"):
        PoseSampleStore(samples)

    samples = make_samples()
    samples[4] = (np.inf, samples[4][1], samples[4][2])
    with pytest.raises(InvalidTrajectory, match="Non-finite timestamps"):
        PoseSampleStore(samples)


def test_store_rejects_non_unit_quaternion():
    samples = make_samples()
    samples[2] = (samples[2][0], samples[2][1] * 1.001, samples[2][2])
    with pytest.raises(InvalidTrajectory, match="not unit norm"):
        PoseSampleStore(samples)

    # Within tolerance is accepted and renormalised.
    samples = make_samples()
    samples[2] = (samples[2][0], samples[2][1] * (1.0 + 5e-7), samples[2][2])
    store = PoseSampleStore(samples)
    assert np.isclose(np.linalg.norm(store[2].q_GtoI), 1.0, atol=1e-15)


def test_store_rejects_malformed_sample():
    samples = make_samples()
    samples[0] = (0.0, np.array([0.0, 0.0, 1.0]), np.zeros(3))
    with pytest.raises(InvalidTrajectory, match="quaternion"):
        PoseSampleStore(samples)


def test_bracket():
    store = PoseSampleStore(make_samples())
    assert store.bracket(0.0) == (0, 1)
    assert store.bracket(0.25) == (0, 1)
    assert store.bracket(0.5) == (1, 2)
    assert store.bracket(1.99) == (3, 4)
    assert store.bracket(2.0) == (3, 4)

    with pytest.raises(OutOfRange):
        store.bracket(-0.01)
    with pytest.raises(OutOfRange):
        store.bracket(2.01)


def test_interpolate_slerp_and_lerp():
    store = PoseSampleStore(make_samples())
    q, p = store.interpolate(0.75)
    assert np.allclose(p, [1.5, 0.0, 0.0])
    assert np.allclose(R.from_quat(q).as_rotvec(), [0.0, 0.0, 0.15], atol=1e-12)

    q, p = store.interpolate(2.0)
    assert np.allclose(p, [4.0, 0.0, 0.0])
    assert np.allclose(R.from_quat(q).as_rotvec(), [0.0, 0.0, 0.4], atol=1e-12)


def test_interpolate_offset_with_epoch_times():
    t_epoch = 1.6e9
    samples = [(t_epoch + s[0], s[1], s[2]) for s in make_samples()]
    store = PoseSampleStore(samples)
    assert store.bracket(t_epoch + 0.75) == (1, 2)

    q, p = store.interpolate_offset(0.75)
    assert np.allclose(p, [1.5, 0.0, 0.0], atol=1e-12)
    assert np.allclose(R.from_quat(q).as_rotvec(), [0.0, 0.0, 0.15], atol=1e-12)
    q_abs, p_abs = store.interpolate(t_epoch + 0.75)
    assert np.allclose(p_abs, p) and np.allclose(q_abs, q)

    with pytest.raises(OutOfRange):
        store.interpolate_offset(-1e-3)
    with pytest.raises(OutOfRange):
        store.interpolate_offset(2.5)
