import os
import sys

# Headless plotting for every test module
os.environ.setdefault("MPLBACKEND", "Agg")

# Get the path to the project root (one level up from 'tests')
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(project_root, 'src')

# Add 'src' to sys.path
sys.path.insert(0, src_path)

import pytest


@pytest.fixture(autouse=True)
def close_figures():
    """Release matplotlib figures created during a test."""
    yield
    import matplotlib.pyplot as plt
    plt.close("all")
