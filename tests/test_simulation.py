"""
Tests for the TetherSimulation driver.
"""
import numpy as np
import pytest

from cablesim.config import TetherConfig
from cablesim.core.cable import Cable
from cablesim.core.simulation import Frame, TetherSimulation
from cablesim.exceptions import ConfigurationError
from cablesim.utils.io import load_simulation_log

DT = 1e-3


@pytest.fixture
def config():
    return TetherConfig(length=2.0, points=10, timestep=DT, deployment_speed=5.0,
                        substeps_per_frame=20)


@pytest.fixture
def sim(config):
    return TetherSimulation(Cable.from_config(config), DT, substeps_per_frame=20)


def test_simulation_creation(sim):
    assert sim.time == 0.0
    assert sim.frame_index == 0
    assert sim.logger is None
    assert sim.output_path is None
    assert not sim.stopped


def test_invalid_substeps(config):
    with pytest.raises(ConfigurationError):
        TetherSimulation(Cable.from_config(config), DT, substeps_per_frame=0)


def test_advance_frame_runs_substeps(sim):
    frame = sim.advance_frame()
    assert isinstance(frame, Frame)
    assert frame.index == 1
    assert sim.cable.step_count == 20
    assert frame.time == pytest.approx(20 * DT)
    assert frame.deployed_length == pytest.approx(sim.cable.deployed_length)
    # Mid-cable point still near 400 km altitude
    assert frame.mid_altitude == pytest.approx(400e3, abs=10.0)
    assert frame.mid_speed > 7000.0


def test_frame_hud_readout(sim):
    hud = sim.advance_frame().hud()
    assert "Height:" in hud and "km" in hud
    assert "Time: 0.02 s" in hud
    assert "Length:" in hud


def test_frames_generator_counts(sim):
    frames = list(sim.frames(3))
    assert [f.index for f in frames] == [1, 2, 3]
    assert sim.cable.step_count == 60


def test_termination_callback_stops_frames(sim):
    sim.set_termination_callback(lambda s: s.cable.step_count >= 30)
    frames = list(sim.frames(10))
    assert len(frames) == 2
    assert sim.stopped
    assert sim.cable.step_count == 30


def test_run_duration(sim, capsys):
    sim.run(duration=0.1, log_interval=0.05)
    assert sim.cable.step_count == 100
    assert sim.time == pytest.approx(0.1)
    out = capsys.readouterr().out
    assert "[TetherSimulation] Starting deployment" in out


def test_run_with_logging(tmp_path, config):
    sim = TetherSimulation(Cable.from_config(config), DT, substeps_per_frame=20,
                           simulation_name="deploy", output_dir=tmp_path,
                           auto_timestamp=False)
    assert sim.output_path == tmp_path / "deploy"
    sim.run(duration=0.1, log_interval=0)

    csv_path = tmp_path / "deploy" / "logs" / "simulation.csv"
    lines = csv_path.read_text().strip().splitlines()
    # Header + initial state + 5 frames
    assert len(lines) == 7

    sim.disable_logging()
    assert sim.logger is None


def test_with_logging_factory_and_plots(tmp_path, config):
    sim = TetherSimulation.with_logging("plots", Cable.from_config(config), DT,
                                        substeps_per_frame=20, output_dir=tmp_path,
                                        auto_save_plots=True)
    sim.run(duration=0.2, log_interval=0)
    plots = sim.output_path / "plots"
    for name in ("deployment.png", "end_relative_trajectory.png",
                 "tension_profile.png", "cable_shape.png"):
        assert (plots / name).exists()


def test_save_plots_requires_logging(sim):
    with pytest.raises(RuntimeError):
        sim.save_plots()


def test_enable_logging_requires_name(sim):
    with pytest.raises(ConfigurationError):
        sim.enable_logging()
    # Still a ValueError for callers catching builtin types
    with pytest.raises(ValueError):
        sim.enable_logging()


def test_stretch_warning():
    cfg = TetherConfig(length=1.0, points=4, timestep=DT, initial_deployed_length=1.0)
    cable = Cable.from_config(cfg)
    # Double the length of the last link
    cable.chain.p[-1] += cable.chain.p[-1] - cable.chain.p[-2]
    sim = TetherSimulation(cable, DT, substeps_per_frame=1)
    with pytest.warns(RuntimeWarning, match="stretch"):
        sim.advance_frame()


def test_get_energy(sim):
    e = sim.get_energy()
    assert e["potential"] < 0.0
    assert e["total"] == pytest.approx(e["kinetic"] + e["potential"])


def test_history_not_kept_by_default(sim):
    sim.advance_frame()
    assert sim.history == []
    with pytest.raises(RuntimeError):
        sim.save_history()


def test_history_export(tmp_path, config):
    sim = TetherSimulation(Cable.from_config(config), DT, substeps_per_frame=20,
                           keep_history=True)
    list(sim.frames(5))
    assert len(sim.history) == 5
    assert [s.time for s in sim.history] == pytest.approx([0.02, 0.04, 0.06, 0.08, 0.10])

    # No output folder yet: a path is required
    with pytest.raises(ConfigurationError):
        sim.save_history()

    path = sim.save_history(tmp_path / "history.csv")
    df = load_simulation_log(path)
    assert len(df) == 5
    assert df["deployed_length"].is_monotonic_increasing
    assert df["deployed_length"].iloc[-1] == pytest.approx(sim.cable.deployed_length)
    assert df["end.p_y"].iloc[-1] == pytest.approx(sim.cable.end_position[1])


def test_history_defaults_to_log_folder(tmp_path, config):
    sim = TetherSimulation(Cable.from_config(config), DT, substeps_per_frame=20,
                           simulation_name="hist", output_dir=tmp_path, keep_history=True)
    sim.advance_frame()
    path = sim.save_history()
    assert path == sim.output_path / "logs" / "history.csv"
    assert path.exists()
    sim.disable_logging()
