"""
Example 02: Inextensible links, spool friction and an early stop.

Uses the 'exact' tension preset (active-set multiplier solve) and a
constant spool friction. The run stops one second after full deployment.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from cablesim.api.scenario import Scenario
from cablesim.dynamics.forces import DeploymentFriction


def run_example():
    length = 30.0
    deployed_at = []

    def one_second_after_deployment(sim):
        if sim.cable.is_fully_deployed and not deployed_at:
            deployed_at.append(sim.time)
        return bool(deployed_at) and sim.time >= deployed_at[0] + 1.0

    scenario = (
        Scenario(name="02_exact_friction")
        .configure(length=length, points=60, timestep=1e-3, deployment_speed=5.0,
                   substeps_per_frame=50)
        .configure_tension("exact")
        .with_friction(DeploymentFriction(length, friction=0.002, braking_force=0.5))
        .stop_when(one_second_after_deployment)
        .enable_plotting()
        .run(duration=30.0)
    )

    cable = scenario.cable
    if deployed_at:
        print(f"Fully deployed at t={deployed_at[0]:.2f} s")
    else:
        print(f"Friction stopped the deployment at {cable.deployed_length:.2f} m")
    print(f"Energy: {scenario.simulation.get_energy()}")


if __name__ == "__main__":
    run_example()
