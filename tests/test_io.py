import pandas as pd
import pytest

from cablesim.utils.io import (
    load_simulation_log,
    save_simulation_history,
    tension_profile,
)


def test_save_and_load_history(tmp_path):
    history = [
        {"t": 0.0, "deployed_length": 0.0},
        {"t": 0.1, "deployed_length": 1.0},
    ]
    path = save_simulation_history(history, tmp_path / "nested" / "run.csv")
    assert path.exists()
    df = load_simulation_log(path)
    assert list(df.columns) == ["t", "deployed_length"]
    assert df["deployed_length"].iloc[-1] == pytest.approx(1.0)


def test_save_empty_history_raises(tmp_path):
    with pytest.raises(ValueError):
        save_simulation_history([], tmp_path / "run.csv")


def test_load_requires_time_column(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"x": [1.0]}).to_csv(path, index=False)
    with pytest.raises(ValueError):
        load_simulation_log(path)


def test_tension_profile_orders_links():
    df = pd.DataFrame({"t": [0.0], "T_10": [3.0], "T_2": [2.0], "T_0": [1.0]})
    profile = tension_profile(df)
    assert list(profile.columns) == ["T_0", "T_2", "T_10"]
    with pytest.raises(KeyError):
        tension_profile(df[["t"]])
