from types import SimpleNamespace

import arviz as az
import numpy as np
import pytest
from scipy import stats

from binomial_pooling.analysis import aic_table, compare_loo, likelihood_ratio_test
from binomial_pooling.analysis import comparison
from binomial_pooling.models import fit_binomial_glm, fit_no_pooling


def _fit(llf, k, n=50, **kw):
    return SimpleNamespace(llf=llf, n_params=k, nobs=n, **kw)


def test_aic_table_weights():
    tbl = aic_table({"small": _fit(-100.0, 1), "big": _fit(-95.0, 3), "huge": _fit(-94.9, 10)})
    assert list(tbl.index) == ["big", "small", "huge"]
    assert tbl["delta_aic"].iloc[0] == 0.0
    assert tbl["weight"].sum() == pytest.approx(1.0)
    assert tbl.loc["small", "aic"] == pytest.approx(202.0)
    assert tbl.loc["big", "aicc"] == pytest.approx(196.0 + 24.0 / 46.0)
    expected = np.exp(-0.5 * tbl["delta_aic"])
    np.testing.assert_allclose(tbl["weight"], expected / expected.sum())


def test_aic_table_no_underflow_for_large_gaps():
    tbl = aic_table({"a": _fit(-10.0, 1), "b": _fit(-5000.0, 1)})
    assert tbl.loc["a", "weight"] == pytest.approx(1.0)
    assert tbl.loc["b", "weight"] >= 0.0


def test_aic_table_quasi_listed_last(eggs_df):
    glm = fit_binomial_glm(eggs_df, "C(supplier)")
    quasi = fit_binomial_glm(eggs_df, "C(supplier)", scale="X2")
    tbl = aic_table({"quasi": quasi, "glm": glm})
    assert tbl.index[-1] == "quasi"
    assert np.isnan(tbl.loc["quasi", "weight"])
    assert tbl.loc["glm", "weight"] == pytest.approx(1.0)


def test_aic_table_empty():
    with pytest.raises(ValueError):
        aic_table({})


def test_likelihood_ratio_test(sim_df, pooled_fit):
    full = fit_no_pooling(sim_df)
    stat, df, p = likelihood_ratio_test(pooled_fit, full)
    assert df == len(sim_df) - 1
    assert stat == pytest.approx(2 * (full.llf - pooled_fit.llf))
    assert p == pytest.approx(stats.chi2.sf(stat, df))


def test_likelihood_ratio_test_boundary():
    stat, df, p = likelihood_ratio_test(_fit(-10.0, 1), _fit(-8.0, 2), boundary=True)
    assert stat == pytest.approx(4.0)
    assert p == pytest.approx(0.5 * stats.chi2.sf(4.0, 1))
    _, _, p0 = likelihood_ratio_test(_fit(-10.0, 1), _fit(-10.0, 2), boundary=True)
    assert p0 == 1.0


def test_likelihood_ratio_test_misuse():
    with pytest.raises(ValueError):
        likelihood_ratio_test(_fit(-10.0, 1, n=10), _fit(-8.0, 2, n=11))
    with pytest.raises(ValueError):
        likelihood_ratio_test(_fit(-10.0, 2), _fit(-8.0, 2))


def test_compare_loo_requires_log_likelihood():
    rng = np.random.default_rng(0)
    idata = az.from_dict(posterior={"mu": rng.normal(size=(2, 100))})
    with pytest.raises(ValueError, match="log_likelihood"):
        compare_loo({"a": idata, "b": idata})


def _idata_with_loglik(shift, seed):
    rng = np.random.default_rng(seed)
    mu = rng.normal(loc=shift, scale=0.1, size=(2, 200))
    y = rng.normal(size=15)
    ll = stats.norm.logpdf(y[None, None, :], loc=mu[..., None])
    return az.from_dict(posterior={"mu": mu}, log_likelihood={"y": ll})


def test_compare_loo_ranks_models():
    tbl = compare_loo({"centred": _idata_with_loglik(0.0, 1), "shifted": _idata_with_loglik(3.0, 2)})
    assert "elpd_loo" in tbl.columns
    assert tbl.index[0] == "centred"


def test_compare_loo_falls_back_to_waic(monkeypatch):
    real_compare = az.compare
    calls = []

    def loo_fails(idatas, ic=None, **kwargs):
        calls.append(ic)
        if ic == "loo":
            raise ValueError("LOO unavailable")
        return real_compare(idatas, ic=ic, **kwargs)

    monkeypatch.setattr(comparison.az, "compare", loo_fails)
    tbl = compare_loo({"centred": _idata_with_loglik(0.0, 1), "shifted": _idata_with_loglik(3.0, 2)})
    assert calls == ["loo", "waic"]
    assert "elpd_waic" in tbl.columns
    assert tbl.index[0] == "centred"
