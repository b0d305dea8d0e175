import matplotlib

matplotlib.use("Agg")

import pytest

from binomial_pooling import config
from binomial_pooling.data_processing import simulate_egg_cartons, simulate_grouped_binomial
from binomial_pooling.models import fit_complete_pooling, fit_mixed_binomial


@pytest.fixture(scope="session")
def sim_df():
    # 40 groups, 20-200 trials each, true sigma 0.6
    return simulate_grouped_binomial(n_groups=40, trials=(20, 200), mu=-0.5, sigma=0.6, seed=7)


@pytest.fixture(scope="session")
def eggs_df():
    return simulate_egg_cartons(n_cartons=200, eggs_per_carton=12, p_broken=0.15,
                                sigma_carton=1.5, supplier_effect=0.5, seed=11)


@pytest.fixture(scope="session")
def mixed_fit(sim_df):
    return fit_mixed_binomial(sim_df)


@pytest.fixture(scope="session")
def pooled_fit(sim_df):
    return fit_complete_pooling(sim_df)


@pytest.fixture()
def output_dir(tmp_path, monkeypatch):
    """Redirect every output path to a temporary directory for one test."""
    for attr in ("DIR_OUTPUT", "DIR_FIGURES", "DIR_TABLES", "PATH_IDATA_LEAGUE", "PATH_IDATA_EGGS"):
        monkeypatch.setattr(config, attr, getattr(config, attr))
    config.set_output_dir(tmp_path)
    return tmp_path
