"""
Standalone plotting script for existing deployment logs.

Useful for re-generating plots after a run has completed.
"""
import sys
from pathlib import Path
import argparse

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cablesim.utils.io import load_simulation_log, tension_profile
from cablesim.visualization.plotting import (
    plot_deployment,
    plot_relative_trajectory,
    plot_tension_profile,
)


def main():
    """Plot deployment results from CSV log."""
    parser = argparse.ArgumentParser(
        description="Generate plots from CableSim deployment logs"
    )
    parser.add_argument(
        "csv_path",
        type=str,
        help="Path to simulation CSV file"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for plots (default: ../plots next to the CSV)"
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Display plots interactively"
    )

    args = parser.parse_args()

    csv_path = Path(args.csv_path)
    if not csv_path.exists():
        print(f"Error: CSV file not found: {csv_path}")
        return 1

    plots_dir = Path(args.output_dir) if args.output_dir else csv_path.parent.parent / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)
    print(f"Output directory: {plots_dir}")

    plot_deployment(str(csv_path), save_path=str(plots_dir / "deployment.png"), show=args.show)
    for point in ("mid", "end"):
        plot_relative_trajectory(
            str(csv_path), point=point,
            save_path=str(plots_dir / f"{point}_relative_trajectory.png"),
            show=args.show,
        )

    # Final tension profile, only if the run logged one
    df = load_simulation_log(csv_path)
    try:
        profile = tension_profile(df)
    except KeyError:
        print("Log has no tension profile; skipping profile plot.")
    else:
        length = df["deployed_length"].iloc[-1]
        plot_tension_profile(
            profile.iloc[-1].to_numpy(), length / profile.shape[1],
            save_path=str(plots_dir / "tension_profile.png"), show=args.show,
        )

    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
