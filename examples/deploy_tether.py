"""
Interactive-style tether deployment run.

Prints the heads-up display (mid-cable altitude, time, mid-cable speed,
deployed length) after every frame of 200 sub-steps.

    python examples/deploy_tether.py -l 50 -p 200 -t 2e-4 -s 5 --frames 100
    python examples/deploy_tether.py -a 30 0 -f 0.01 --log tether_30deg --plots
"""
import sys
from pathlib import Path

# Setup path for local development (not needed if installed via pip)
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cablesim.cli import main

if __name__ == "__main__":
    sys.exit(main())
