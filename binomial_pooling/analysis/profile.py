# profile.py
# Likelihood profiles for the mixed binomial model
# =============================================================================
"""
For a parameter psi (sigma or one fixed effect) the profile log-likelihood is

    l_p(psi) = max over the remaining parameters of l(psi, ...)

and the profile deviance 2 * (l_hat - l_p(psi)) is compared against the
chi-square(1) quantile to get a likelihood-based confidence interval. The
signed square root ("zeta") is close to linear in psi when the Wald
approximation is good, so its curvature shows where Wald intervals mislead,
typically for sigma near zero.

sigma = 0 is on the boundary of the parameter space; the likelihood-ratio
test of sigma = 0 therefore uses the 50:50 chi-square(0)/chi-square(1)
mixture for its p-value.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats

from .. import config
from ..models.binomial_glm import BinomialFit, fit_binomial_glm
from ..models.mixed_binomial import MixedBinomialFit, fit_mixed_binomial

logger = logging.getLogger(__name__)


@dataclass
class Profile:
    name: str
    estimate: float
    llf_max: float
    table: pd.DataFrame


def _default_grid(fit: MixedBinomialFit, name: str, n_points: int, width: float) -> np.ndarray:
    if name == "sigma":
        se = fit.sigma_se if np.isfinite(fit.sigma_se) else fit.sigma
        upper = max(fit.sigma + width * se, 2.5 * fit.sigma, 0.5)
        return np.linspace(0.0, upper, n_points)
    est = float(fit.params[name])
    se = float(fit.bse[name]) if np.isfinite(fit.bse[name]) else 1.0
    return np.linspace(est - width * se, est + width * se, n_points)


def profile_parameter(df: pd.DataFrame,
                      fit: MixedBinomialFit,
                      name: str = "sigma",
                      grid=None,
                      n_points: int = 25,
                      width: float = 4.0) -> Profile:
    """
    Profile ``name`` ("sigma" or a fixed-effect name) over a grid.

    Each grid point refits the remaining parameters, walking outward from
    the estimate so each fit starts from its neighbour's solution.
    """
    if name != "sigma" and name not in fit.params.index:
        raise KeyError(f"Unknown parameter '{name}'; have 'sigma' and {list(fit.params.index)}")

    estimate = fit.sigma if name == "sigma" else float(fit.params[name])
    values = np.asarray(grid if grid is not None else _default_grid(fit, name, n_points, width), dtype=float)
    if name == "sigma" and (values < 0).any():
        raise ValueError("sigma grid must be non-negative")
    values = np.unique(np.append(values, estimate))

    theta_hat = np.append(fit.params.to_numpy(), np.log(max(fit.sigma, 1e-4)))
    llf = {}
    below = values[values <= estimate][::-1]
    above = values[values > estimate]
    for side in (below, above):
        start = theta_hat.copy()
        for v in side:
            kwargs = {"fixed_sigma": v} if name == "sigma" else {"fixed_params": {name: v}}
            pf = fit_mixed_binomial(df, fit.formula, n_agq=fit.n_agq, start=start,
                                    compute_se=False, **kwargs)
            llf[v] = pf.llf
            start = np.append(pf.params.to_numpy(), np.log(max(pf.sigma, 1e-4)))

    table = pd.DataFrame({"value": values, "llf": [llf[v] for v in values]})
    dev = 2.0 * (fit.llf - table["llf"])
    if (dev < -1e-3).any():
        logger.warning("Profile of %s found a higher log-likelihood than the fit (%.4f); "
                       "the original fit may not be at the optimum", name, -dev.min() / 2)
    table["deviance"] = dev.clip(lower=0.0)
    table["zeta"] = np.sign(table["value"] - estimate) * np.sqrt(table["deviance"])
    return Profile(name=name, estimate=estimate, llf_max=fit.llf, table=table)


def _crossing(values: np.ndarray, dev: np.ndarray, cutoff: float):
    """First point, walking away from the estimate, where deviance exceeds cutoff."""
    root = np.sqrt(cutoff)
    for i in range(1, len(values)):
        if dev[i] > cutoff >= dev[i - 1]:
            r0, r1 = np.sqrt(dev[i - 1]), np.sqrt(dev[i])
            t = (root - r0) / (r1 - r0)
            return values[i - 1] + t * (values[i] - values[i - 1])
    return None


def profile_confint(profile: Profile, level: float | None = None) -> tuple:
    """
    Likelihood-based interval from a profile.

    Endpoints are interpolated linearly in zeta between grid points. If the
    deviance never crosses the cutoff below the estimate, the lower end is
    the smallest grid value (0 for sigma) when that is a boundary, NaN
    otherwise; an upper end that is never reached is NaN.
    """
    level = config.CI_PROB if level is None else level
    cutoff = stats.chi2.ppf(level, df=1)
    tbl = profile.table.sort_values("value")
    v = tbl["value"].to_numpy()
    d = tbl["deviance"].to_numpy()

    lo_mask = v <= profile.estimate
    hi_mask = v >= profile.estimate
    lower = _crossing(v[lo_mask][::-1], d[lo_mask][::-1], cutoff)
    upper = _crossing(v[hi_mask], d[hi_mask], cutoff)

    if lower is None:
        if profile.name == "sigma" and v.min() == 0.0:
            lower = 0.0
        else:
            logger.warning("Profile of %s does not reach the cutoff below the estimate; widen the grid",
                           profile.name)
            lower = np.nan
    if upper is None:
        logger.warning("Profile of %s does not reach the cutoff above the estimate; widen the grid",
                       profile.name)
        upper = np.nan
    return float(lower), float(upper)


def sigma_lrt(df: pd.DataFrame,
              mixed: MixedBinomialFit | None = None,
              glm: BinomialFit | None = None) -> dict:
    """Likelihood-ratio test of sigma = 0 (mixed model vs the same-formula GLM)."""
    mixed = mixed or fit_mixed_binomial(df)
    glm = glm or fit_binomial_glm(df, mixed.formula)
    if glm.nobs != mixed.nobs:
        raise ValueError("Models were fitted to different data")

    stat = max(0.0, 2.0 * (mixed.llf - glm.llf))
    # 50:50 mixture of chi2(0) and chi2(1) on the boundary
    p_value = 1.0 if stat == 0.0 else 0.5 * float(stats.chi2.sf(stat, df=1))
    return {"statistic": stat, "df": 1, "p_value": p_value,
            "llf_glm": glm.llf, "llf_mixed": mixed.llf}
