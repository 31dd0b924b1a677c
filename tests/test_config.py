import json

import numpy as np
import pytest

from cablesim.config import (
    DEFAULT_ORBIT_RADIUS,
    TetherConfig,
    circular_orbit_velocity,
    deployment_direction,
)
from cablesim.exceptions import ConfigurationError


def test_defaults_match_reference_deployment():
    cfg = TetherConfig()
    assert cfg.length == 100.0
    assert cfg.linear_density == 1e-3
    assert cfg.timestep == 1e-4
    assert cfg.points == 1000
    assert cfg.deployment_speed == 10.0
    assert cfg.end_mass == 0.05
    assert cfg.sat_mass == 1.30
    assert cfg.friction == 0.0
    assert cfg.braking_force == 1.0
    assert cfg.substeps_per_frame == 200
    assert cfg.segment_length == pytest.approx(0.1)
    assert cfg.deployment_time == pytest.approx(10.0)


@pytest.mark.parametrize("angles,expected", [
    ((0.0, 0.0), [0.0, -1.0, 0.0]),
    ((90.0, 0.0), [1.0, 0.0, 0.0]),
    ((0.0, 90.0), [0.0, 0.0, -1.0]),
    ((180.0, 0.0), [0.0, 1.0, 0.0]),
])
def test_deployment_direction_from_angles(angles, expected):
    assert np.allclose(deployment_direction(*angles), expected, atol=1e-12)


def test_deployment_velocity_scales_direction():
    cfg = TetherConfig(deployment_angle=(90.0, 0.0), deployment_speed=4.0)
    assert np.allclose(cfg.deployment_velocity(), [4.0, 0.0, 0.0])
    assert np.linalg.norm(cfg.deployment_direction) == pytest.approx(1.0)


def test_anchor_state_is_circular_orbit():
    cfg = TetherConfig()
    p, v = cfg.anchor_state()
    assert np.allclose(p, [0.0, DEFAULT_ORBIT_RADIUS, 0.0])
    assert v[0] == pytest.approx(np.sqrt(3.986e14 / 6.771e6))
    assert v[0] == pytest.approx(circular_orbit_velocity(DEFAULT_ORBIT_RADIUS))
    assert v[1] == 0.0 and v[2] == 0.0


@pytest.mark.parametrize("overrides", [
    {"length": 0.0},
    {"length": -5.0},
    {"linear_density": -1e-3},
    {"timestep": 0.0},
    {"points": 1},
    {"points": 2.5},
    {"deployment_angle": (1.0, 2.0, 3.0)},
    {"deployment_speed": -1.0},
    {"end_mass": -0.05},
    {"sat_mass": float("nan")},
    {"friction": -0.1},
    {"braking_force": -1.0},
    {"mu": 0.0},
    {"initial_deployed_length": 200.0},
    {"substeps_per_frame": 0},
])
def test_invalid_values_rejected(overrides):
    with pytest.raises(ConfigurationError):
        TetherConfig(**overrides)


def test_replace_validates_and_rejects_unknown_keys():
    cfg = TetherConfig()
    short = cfg.replace(length=10.0, points=50)
    assert short.segment_length == pytest.approx(0.2)
    assert cfg.length == 100.0
    with pytest.raises(ConfigurationError, match="Unknown"):
        cfg.replace(colour="red")
    with pytest.raises(ConfigurationError):
        cfg.replace(points=0)


def test_dict_round_trip():
    cfg = TetherConfig(length=20.0, deployment_angle=(10.0, 5.0))
    data = cfg.to_dict()
    assert data["deployment_angle"] == [10.0, 5.0]
    assert TetherConfig.from_dict(data) == cfg
    with pytest.raises(ConfigurationError):
        TetherConfig.from_dict({"length": 1.0, "bogus": 2})


def test_from_file(tmp_path):
    path = tmp_path / "tether.json"
    path.write_text(json.dumps({"length": 50.0, "points": 200,
                                "deployment_angle": [15.0, 0.0]}))
    cfg = TetherConfig.from_file(path)
    assert cfg.length == 50.0
    assert cfg.points == 200
    assert cfg.deployment_angle == (15.0, 0.0)
    assert cfg.timestep == 1e-4


def test_from_file_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        TetherConfig.from_file(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ConfigurationError):
        TetherConfig.from_file(bad)
    listed = tmp_path / "list.json"
    listed.write_text("[1, 2]")
    with pytest.raises(ConfigurationError):
        TetherConfig.from_file(listed)
