# comparison.py
# Model comparison: AIC tables, likelihood-ratio tests, LOO
# -------------------------------------------------------------------

import logging

import arviz as az
import numpy as np
import pandas as pd
from scipy import stats
from scipy.special import logsumexp

logger = logging.getLogger(__name__)


def aic_table(fits: dict) -> pd.DataFrame:
    """
    AIC comparison of maximum-likelihood fits.

    ``fits`` maps a label to any fit exposing ``llf``, ``n_params`` and
    ``nobs``. Fits without a likelihood (quasi families, AIC = NaN) are
    listed but get no weight. Akaike weights are normalised with
    log-sum-exp so large AIC gaps do not underflow.
    """
    if not fits:
        raise ValueError("No fits to compare")

    nobs = {f.nobs for f in fits.values()}
    if len(nobs) > 1:
        logger.warning("Fits use different numbers of observations %s; AIC values are not comparable",
                       sorted(nobs))

    rows = []
    for label, f in fits.items():
        k = f.n_params
        aic = getattr(f, "aic", -2.0 * f.llf + 2.0 * k)
        n = f.nobs
        aicc = aic + 2.0 * k * (k + 1) / (n - k - 1) if n - k - 1 > 0 else np.nan
        rows.append({"model": label, "llf": f.llf, "df": k, "nobs": n, "aic": aic, "aicc": aicc})

    tbl = pd.DataFrame(rows).set_index("model")
    ok = tbl["aic"].notna()
    tbl["delta_aic"] = tbl["aic"] - tbl.loc[ok, "aic"].min()
    log_w = -0.5 * tbl.loc[ok, "delta_aic"].to_numpy()
    tbl["weight"] = np.nan
    tbl.loc[ok, "weight"] = np.exp(log_w - logsumexp(log_w))
    return tbl.sort_values("aic", na_position="last")


def likelihood_ratio_test(restricted, full, boundary: bool = False) -> tuple:
    """
    LRT of a restricted model nested in ``full``.

    Returns (statistic, df, p_value). ``boundary=True`` halves the p-value
    for a single variance parameter tested at zero.
    """
    if restricted.nobs != full.nobs:
        raise ValueError("Models were fitted to different data")
    df = full.n_params - restricted.n_params
    if df <= 0:
        raise ValueError(f"Full model must have more parameters ({full.n_params} vs {restricted.n_params})")

    stat = max(0.0, 2.0 * (full.llf - restricted.llf))
    p = float(stats.chi2.sf(stat, df))
    if boundary:
        p = 1.0 if stat == 0.0 else 0.5 * p
    return stat, df, p


def compare_loo(idatas: dict, var_name: str | None = None) -> pd.DataFrame:
    """
    PSIS-LOO ranking of Bayesian fits (needs a log_likelihood group).

    Falls back to WAIC when LOO cannot be computed, as in
    ``diagnostics.get_ic``.
    """
    for label, idata in idatas.items():
        if "log_likelihood" not in idata.groups():
            raise ValueError(f"'{label}' has no log_likelihood group; sample with log_likelihood=True")
    try:
        return az.compare(idatas, ic="loo", var_name=var_name)
    except (ValueError, TypeError) as e:
        logger.info("LOO comparison failed (%s); falling back to WAIC", e)
        return az.compare(idatas, ic="waic", var_name=var_name)
