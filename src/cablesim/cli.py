"""
Command line front end: deploy a tether and print a HUD line per frame.

Flags mirror the TetherConfig fields. A JSON config given with --config is
loaded first; explicit flags override it.
"""
from __future__ import annotations

import argparse
import math
import sys

from cablesim.config import TetherConfig
from cablesim.core.cable import Cable
from cablesim.core.simulation import TetherSimulation
from cablesim.exceptions import CableSimError, ConfigurationError

# Flag destination -> TetherConfig field
FLAG_FIELDS = {
    "length": "length",
    "linear_density": "linear_density",
    "timestep": "timestep",
    "points": "points",
    "deployment_angle": "deployment_angle",
    "deployment_speed": "deployment_speed",
    "end_mass": "end_mass",
    "sat_mass": "sat_mass",
    "friction": "friction",
    "braking_force": "braking_force",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cablesim",
        description="Simulate deployment of a tether from an orbiting satellite",
    )
    parser.add_argument("-l", "--length", type=float, help="Tether length [m] (default 100)")
    parser.add_argument("-d", "--linear-density", type=float,
                        help="Tether mass per metre [kg/m] (default 1e-3)")
    parser.add_argument("-t", "--timestep", type=float,
                        help="Integration step [s] (default 1e-4)")
    parser.add_argument("-p", "--points", type=int,
                        help="Number of cable links (default 1000)")
    parser.add_argument("-a", "--deployment-angle", type=float, nargs=2,
                        metavar=("ANGX", "ANGY"),
                        help="In-plane and out-of-plane deployment angles [deg] (default 0 0)")
    parser.add_argument("-s", "--deployment-speed", type=float,
                        help="Initial end-mass speed [m/s] (default 10)")
    parser.add_argument("-w", "--end-mass", type=float, help="End mass [kg] (default 0.05)")
    parser.add_argument("-W", "--sat-mass", type=float, help="Satellite mass [kg] (default 1.3)")
    parser.add_argument("-f", "--friction", type=float,
                        help="Spool friction during deployment [N] (default 0)")
    parser.add_argument("-b", "--braking-force", type=float,
                        help="Brake force at full length [N] (default 1)")
    parser.add_argument("--config", type=str, default=None,
                        help="JSON file with TetherConfig fields")
    parser.add_argument("--frames", type=int, default=None,
                        help="Frames to run (default: twice the nominal deployment time)")
    parser.add_argument("--log", type=str, default=None, metavar="NAME",
                        help="Log telemetry to output/NAME_<timestamp>/")
    parser.add_argument("--plots", action="store_true",
                        help="Save plots at the end (requires --log)")
    return parser


def config_from_args(args: argparse.Namespace) -> TetherConfig:
    """
    Merge parsed flags over the defaults (or over --config).

    Raises
    ------
    ConfigurationError
        If the resulting configuration is invalid
    """
    config = TetherConfig.from_file(args.config) if args.config else TetherConfig()
    overrides = {
        field: getattr(args, dest)
        for dest, field in FLAG_FIELDS.items()
        if getattr(args, dest) is not None
    }
    if "deployment_angle" in overrides:
        overrides["deployment_angle"] = tuple(overrides["deployment_angle"])
    return config.replace(**overrides)


def default_frames(config: TetherConfig) -> int:
    """Frames covering twice the nominal deployment time (at least one)."""
    frame_time = config.timestep * config.substeps_per_frame
    duration = 2.0 * config.deployment_time
    if not math.isfinite(duration):
        duration = 10.0
    return max(1, int(math.ceil(duration / frame_time - 1e-9)))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        parser.error(str(e))

    if args.frames is not None and args.frames < 1:
        parser.error(f"--frames must be >= 1, got {args.frames}")
    if args.plots and not args.log:
        parser.error("--plots requires --log")

    frames = args.frames if args.frames is not None else default_frames(config)
    sim = TetherSimulation(
        Cable.from_config(config),
        config.timestep,
        substeps_per_frame=config.substeps_per_frame,
    )
    if args.log:
        sim.enable_logging(args.log)

    print(
        f"[cablesim] {config.length} m tether, {config.points} links, "
        f"dt={config.timestep}s, {frames} frames"
    )
    try:
        for frame in sim.frames(frames):
            print(frame.hud())
    except CableSimError as e:
        print(f"[cablesim] Simulation failed: {e}", file=sys.stderr)
        return 1
    finally:
        if sim.logger is not None:
            sim.logger.close()

    if args.plots:
        sim.save_plots()
    return 0


if __name__ == "__main__":
    sys.exit(main())
