import typing

import pytest
import numpy as np

from vicon_inertial_sim.errors import ConfigurationError
from vicon_inertial_sim.params import SimulatorParams


def test_defaults_are_valid():
    params = SimulatorParams().validate()
    assert params.freq_imu == 400.0
    assert params.freq_cam == 10.0
    assert params.freq_vicon == 100.0
    assert params.dt_knot is None
    assert np.allclose(params.gravity_vector, [0.0, 0.0, 9.81])
    assert params.vicon_q_ItoB == (0.0, 0.0, 0.0, 1.0)


def test_dt_knot_is_optional():
    assert typing.get_type_hints(SimulatorParams)["dt_knot"] == typing.Optional[float]
    params = SimulatorParams(dt_knot=0.05).replace(dt_knot=None)
    assert params.dt_knot is None
    assert SimulatorParams.from_dict({"dt_knot": None}).dt_knot is None


def test_lists_become_tuples():
    params = SimulatorParams(gravity=[0, 0, 9.8], vicon_p_BinI=np.array([0.1, 0.0, 0.0]))
    assert params.gravity == (0.0, 0.0, 9.8)
    assert params.vicon_p_BinI == (0.1, 0.0, 0.0)


@pytest.mark.parametrize("overrides, name", [
    ({"freq_imu": 0.0}, "freq_imu"),
    ({"freq_cam": -10.0}, "freq_cam"),
    ({"freq_vicon": float("nan")}, "freq_vicon"),
    ({"dt_knot": 0.0}, "dt_knot"),
    ({"sigma_w": -1e-3}, "sigma_w"),
    ({"sigma_ab": float("inf")}, "sigma_ab"),
    ({"seed_measurement_imu": -1}, "seed_measurement_imu"),
    ({"seed_state_init": 1.5}, "seed_state_init"),
    ({"gravity": (0.0, 9.81)}, "gravity"),
    ({"vicon_q_ItoB": (0.0, 0.0, 0.0, 2.0)}, "vicon_q_ItoB"),
    ({"distance_threshold": -1.0}, "distance_threshold"),
])
def test_invalid_options(overrides, name):
    with pytest.raises(ConfigurationError, match=name):
        SimulatorParams(**overrides).validate()


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match="Unknown simulator options: freq_lidar"):
        SimulatorParams.from_dict({"freq_lidar": 10.0})
    with pytest.raises(ConfigurationError, match="mapping"):
        SimulatorParams.from_dict([1, 2, 3])
    assert SimulatorParams.from_dict(None) == SimulatorParams()


def test_from_yaml(tmp_path):
    config = tmp_path / "sim.yaml"
    config.write_text(
        "# simulator options\n"
        "freq_imu: 200\n"
        "seed_measurement_vicon: 3\n"
        "gravity: [0.0, 0.0, 9.80665]\n"
        "dt_knot: 0.1\n")
    params = SimulatorParams.from_yaml(str(config))
    assert params.freq_imu == 200
    assert params.seed_measurement_vicon == 3
    assert params.gravity == (0.0, 0.0, 9.80665)
    assert params.dt_knot == 0.1
    # Unset keys keep their defaults
    assert params.freq_cam == 10.0


def test_from_yaml_errors(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("freq_imu: [1, 2\n")
    with pytest.raises(ConfigurationError, match="Could not parse"):
        SimulatorParams.from_yaml(str(bad))

    invalid = tmp_path / "invalid.yaml"
    invalid.write_text("freq_vicon: -5\n")
    with pytest.raises(ConfigurationError, match="freq_vicon"):
        SimulatorParams.from_yaml(str(invalid))


def test_to_dict_roundtrip():
    params = SimulatorParams(freq_imu=250.0, gravity=(0.0, 0.0, 9.8))
    options = params.to_dict()
    assert options["gravity"] == [0.0, 0.0, 9.8]
    assert SimulatorParams.from_dict(options) == params


def test_replace_validates():
    params = SimulatorParams()
    assert params.replace(freq_vicon=50.0).freq_vicon == 50.0
    assert params.freq_vicon == 100.0
    with pytest.raises(ConfigurationError, match="freq_vicon"):
        params.replace(freq_vicon=0.0)
