"""
Example 01: Reference deployment using the Scenario API.

A 100 m tether is paid out at 10 m/s from a satellite in a 400 km circular
orbit, then braked at full length. 250 links keep the run short.
"""
import sys
from pathlib import Path

# Setup path for local development (not needed if installed via pip)
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from cablesim.api.scenario import Scenario


def run_example():
    scenario = (
        Scenario(name="01_basic_deployment")
        .configure(points=250, timestep=2e-4)
        .enable_plotting()
        .run(duration=15.0)
    )

    cable = scenario.cable
    print(f"Deployed length: {cable.deployed_length:.2f} m of {cable.target_length:.2f} m")
    print(f"Peak tension at end: {cable.tensions.max():.4f} N")
    print(f"Results saved to {scenario.simulation.output_path}")


if __name__ == "__main__":
    run_example()
