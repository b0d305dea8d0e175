import numpy as np
import pytest
from scipy import stats
from scipy.optimize import minimize
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from binomial_pooling.models import beta_binomial, fit_beta_binomial


@pytest.fixture(scope="module")
def bb_fit(sim_df):
    return fit_beta_binomial(sim_df)


def test_fit_summary(sim_df, bb_fit):
    assert bb_fit.converged
    assert bb_fit.nobs == len(sim_df)
    assert bb_fit.mean == pytest.approx(bb_fit.alpha / (bb_fit.alpha + bb_fit.beta))
    pooled = sim_df["successes"].sum() / sim_df["trials"].sum()
    assert abs(bb_fit.mean - pooled) < 0.05
    assert bb_fit.aic == pytest.approx(-2 * bb_fit.llf + 4)


def test_loglik_is_betabinomial_sum(sim_df, bb_fit):
    expected = stats.betabinom.logpmf(sim_df["successes"], sim_df["trials"],
                                      bb_fit.alpha, bb_fit.beta).sum()
    assert bb_fit.llf == pytest.approx(expected, rel=1e-10)


def test_posterior_is_weighted_average(sim_df, bb_fit):
    est = bb_fit.group_estimates(sim_df)
    df = sim_df.set_index("group").reindex(est.index)
    w = est["pool_weight"]
    expected = w * bb_fit.mean + (1 - w) * df["proportion"]
    np.testing.assert_allclose(est["estimate"], expected, rtol=1e-10)
    assert ((w > 0) & (w < 1)).all()
    # more trials, less weight on the pooled mean
    order = np.argsort(df["trials"].to_numpy())
    assert np.all(np.diff(w.to_numpy()[order]) <= 1e-12)


def test_intervals_contain_estimate(sim_df, bb_fit):
    est = bb_fit.group_estimates(sim_df, level=0.9)
    assert ((est["lower"] < est["estimate"]) & (est["estimate"] < est["upper"])).all()
    wide = bb_fit.group_estimates(sim_df, level=0.99)
    assert ((wide["upper"] - wide["lower"]) > (est["upper"] - est["lower"])).all()


def test_nonconvergence_warns(sim_df, monkeypatch):
    def stalled(*args, **kwargs):
        res = minimize(*args, **kwargs)
        res.success = False
        res.message = "iteration limit reached"
        return res

    monkeypatch.setattr(beta_binomial, "minimize", stalled)
    with pytest.warns(ConvergenceWarning):
        fit = fit_beta_binomial(sim_df)
    assert not fit.converged
