import arviz as az
import numpy as np
import pandas as pd
import pytest
from scipy import stats

from binomial_pooling.analysis import dispersion_summary, get_ic, mcmc_diagnostics, to_elpd
from binomial_pooling.models import fit_binomial_glm


def _idata(shift=0.0, n_obs=None, seed=0):
    rng = np.random.default_rng(seed)
    mu = rng.normal(size=(4, 1000)) + shift * np.arange(4)[:, None]
    kwargs = {}
    if n_obs:
        y = rng.normal(size=n_obs)
        kwargs["log_likelihood"] = {"y": stats.norm.logpdf(y[None, None, :], loc=mu[..., None])}
    return az.from_dict(posterior={"mu": mu}, **kwargs)


def test_mcmc_diagnostics_well_mixed():
    diag = mcmc_diagnostics(_idata())
    assert diag["rhat_max"] < 1.01
    assert diag["ess_bulk_min"] > 400
    assert diag["n_divergent"] == 0
    assert diag["ok"]


def test_mcmc_diagnostics_flags_stuck_chains():
    diag = mcmc_diagnostics(_idata(shift=5.0))
    assert diag["rhat_max"] > 1.1
    assert not diag["ok"]


def test_get_ic_and_elpd():
    ic = get_ic(_idata(n_obs=20))
    elpd, se = to_elpd(ic)
    assert np.isfinite(elpd) and elpd < 0
    assert se > 0


def test_to_elpd_waic_and_missing():
    assert to_elpd(pd.Series({"elpd_waic": -12.5, "se": 1.5})) == (-12.5, 1.5)
    with pytest.raises(KeyError):
        to_elpd(pd.Series({"other": 1.0}))


def test_dispersion_summary(eggs_df):
    fit = fit_binomial_glm(eggs_df, "C(supplier)")
    out = dispersion_summary(fit)
    assert out["deviance_per_df"] == pytest.approx(fit.deviance / fit.df_resid)
    assert out["dispersion"] == pytest.approx(fit.pearson_chi2 / fit.df_resid)
    assert 0 <= out["p_value"] <= 1
