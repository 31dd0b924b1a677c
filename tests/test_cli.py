"""
Tests for the command line front end.
"""
import json

import pytest

from cablesim.cli import build_parser, config_from_args, default_frames, main
from cablesim.config import TetherConfig


def parse(*argv):
    return config_from_args(build_parser().parse_args(list(argv)))


def test_defaults_without_flags():
    assert parse() == TetherConfig()


def test_short_flags_map_to_config():
    cfg = parse("-l", "50", "-d", "2e-3", "-t", "5e-4", "-p", "200",
                "-a", "30", "-10", "-s", "4", "-w", "0.2", "-W", "3",
                "-f", "0.01", "-b", "0.5")
    assert cfg.length == 50.0
    assert cfg.linear_density == 2e-3
    assert cfg.timestep == 5e-4
    assert cfg.points == 200
    assert cfg.deployment_angle == (30.0, -10.0)
    assert cfg.deployment_speed == 4.0
    assert cfg.end_mass == 0.2
    assert cfg.sat_mass == 3.0
    assert cfg.friction == 0.01
    assert cfg.braking_force == 0.5


def test_speed_flag_sets_speed_not_length():
    cfg = parse("-s", "2")
    assert cfg.deployment_speed == 2.0
    assert cfg.length == 100.0


def test_flags_override_config_file(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"length": 20.0, "points": 40}))
    cfg = parse("--config", str(path), "-p", "80")
    assert cfg.length == 20.0
    assert cfg.points == 80


@pytest.mark.parametrize("argv", [
    ["-p", "1"],
    ["-l", "-3"],
    ["-p", "many"],
    ["-a", "10"],
    ["--frames", "0"],
    ["--plots"],
])
def test_invalid_arguments_exit_with_usage(argv, capsys):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    assert exc.value.code != 0
    assert "usage" in capsys.readouterr().err


def test_default_frames():
    cfg = TetherConfig()
    # 20 s at 200 x 1e-4 s per frame
    assert default_frames(cfg) == 1000
    assert default_frames(cfg.replace(deployment_speed=0.0)) >= 1


def test_main_prints_hud(capsys):
    code = main(["-l", "2", "-p", "10", "-t", "1e-3", "-s", "5", "--frames", "3"])
    assert code == 0
    lines = [l for l in capsys.readouterr().out.splitlines() if l.startswith("Height:")]
    assert len(lines) == 3
    assert "Length:" in lines[-1]


def test_main_with_logging(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code = main(["-l", "2", "-p", "10", "-t", "1e-3", "--frames", "2",
                 "--log", "cli_run", "--plots"])
    assert code == 0
    runs = list((tmp_path / "output").glob("cli_run_*"))
    assert len(runs) == 1
    assert (runs[0] / "logs" / "simulation.csv").exists()
    assert (runs[0] / "plots" / "deployment.png").exists()
