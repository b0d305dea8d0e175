import logging

import numpy as np
import pandas as pd
import pytest

from binomial_pooling import config
from binomial_pooling.data_processing import (
    add_count_columns,
    group_codes,
    load_league_stats,
    simulate_egg_cartons,
    simulate_grouped_binomial,
    validate_counts,
)


def _counts(successes, trials):
    return pd.DataFrame({"group": [f"g{i}" for i in range(len(trials))],
                         "successes": successes, "trials": trials})


def test_load_league_stats_one_row_per_player():
    df = load_league_stats(config.PATH_LEAGUE_STATS)
    assert df["group"].is_unique
    assert len(df) == 30
    # P09 appears twice in the file and is summed
    p09 = df.set_index("group").loc["P09"]
    assert p09["successes"] == 83
    assert p09["trials"] == 201
    assert p09["team"] == "Ridge"
    # zero-attempt player is dropped
    assert "P31" not in set(df["group"])
    assert {"failures", "proportion", "team", "position"} <= set(df.columns)


def test_load_league_stats_min_attempts():
    df = load_league_stats(config.PATH_LEAGUE_STATS, min_attempts=50)
    assert (df["trials"] >= 50).all()
    assert "P07" not in set(df["group"])


def test_load_league_stats_custom_columns(tmp_path):
    path = tmp_path / "shots.csv"
    pd.DataFrame({"name": ["a", "b"], "fg": [3, 5], "fga": [10, 9]}).to_csv(path, index=False)
    df = load_league_stats(path, made_col="fg", attempts_col="fga", group_col="name")
    assert df["successes"].tolist() == [3, 5]
    assert df["failures"].tolist() == [7, 4]


def test_load_league_stats_missing_column(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"player": ["a"], "made": [1]}).to_csv(path, index=False)
    with pytest.raises(ValueError, match="missing columns"):
        load_league_stats(path)


def test_validate_counts_rejects_bad_data():
    with pytest.raises(ValueError, match="successes > trials"):
        validate_counts(_counts([5, 1], [4, 2]))
    with pytest.raises(ValueError, match="Negative"):
        validate_counts(_counts([-1, 1], [4, 2]))
    with pytest.raises(ValueError, match="whole-number"):
        validate_counts(_counts([1.5, 1], [4, 2]))
    with pytest.raises(ValueError, match="Zero trials"):
        validate_counts(_counts([0, 1], [0, 2]))
    with pytest.raises(ValueError, match="Missing count columns"):
        validate_counts(pd.DataFrame({"group": ["a"], "successes": [1]}))
    with pytest.raises(ValueError, match="No rows"):
        validate_counts(_counts([], []))


def test_validate_counts_allows_zero_trials_on_request():
    df = _counts([0, 1], [0, 2])
    assert validate_counts(df, allow_zero_trials=True) is df


def test_add_count_columns():
    out = add_count_columns(_counts([0, 3, 4], [0, 4, 4]))
    assert out["failures"].tolist() == [0, 1, 0]
    assert np.isnan(out["proportion"].iloc[0])
    assert out["proportion"].iloc[1:].tolist() == [0.75, 1.0]


def test_group_codes_sorted():
    df = pd.DataFrame({"group": ["b", "a", "b", "c"]})
    codes, labels = group_codes(df)
    assert list(labels) == ["a", "b", "c"]
    assert codes.tolist() == [1, 0, 1, 2]


def test_simulate_grouped_binomial():
    df = simulate_grouped_binomial(n_groups=12, trials=(5, 50), sigma=0.4, seed=3)
    assert len(df) == 12
    assert df["trials"].between(5, 50).all()
    assert (df["successes"] <= df["trials"]).all()
    assert {"true_logit", "true_p"} <= set(df.columns)
    again = simulate_grouped_binomial(n_groups=12, trials=(5, 50), sigma=0.4, seed=3)
    pd.testing.assert_frame_equal(df, again)


def test_simulate_grouped_binomial_trials_forms():
    assert (simulate_grouped_binomial(n_groups=4, trials=10, seed=1)["trials"] == 10).all()
    df = simulate_grouped_binomial(n_groups=3, trials=[1, 2, 3], seed=1)
    assert df["trials"].tolist() == [1, 2, 3]
    with pytest.raises(ValueError):
        simulate_grouped_binomial(n_groups=3, trials=[1, 2], seed=1)
    with pytest.raises(ValueError):
        simulate_grouped_binomial(sigma=-1.0)


def test_simulate_egg_cartons():
    df = simulate_egg_cartons(n_cartons=10, seed=5)
    assert df["supplier"].tolist()[:4] == ["A", "B", "A", "B"]
    assert (df["broken"] + df["unbroken"] == df["eggs"]).all()
    assert (df["successes"] == df["broken"]).all()
    assert df["group"].iloc[0] == "carton001"
    with pytest.raises(ValueError):
        simulate_egg_cartons(p_broken=1.0)
    with pytest.raises(ValueError):
        simulate_egg_cartons(sigma_carton=-0.1)


def test_load_league_stats_logs_dropped_players(caplog):
    with caplog.at_level(logging.INFO, logger="binomial_pooling.data_processing.league"):
        load_league_stats(config.PATH_LEAGUE_STATS)
    assert "Dropped 1 players" in caplog.text
    assert "Combined 1 split rows" in caplog.text
