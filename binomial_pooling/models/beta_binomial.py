# beta_binomial.py
# Empirical-Bayes beta-binomial model
# -------------------------------------------------------------------
# Model: p_g ~ Beta(alpha, beta),  y_g | p_g ~ Binomial(n_g, p_g)
#
# Marginally y_g ~ BetaBinomial(n_g, alpha, beta). alpha and beta are
# estimated by maximum likelihood on (logit mean, log concentration);
# each group's posterior is then Beta(alpha + y_g, beta + n_g - y_g), so
#
#   posterior mean = B_g * mean + (1 - B_g) * y_g / n_g,
#   B_g = (alpha + beta) / (alpha + beta + n_g)
#
# i.e. the conjugate form of partial pooling: the weight on the pooled
# mean falls as a group's trials grow.
# -------------------------------------------------------------------

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats
from scipy.optimize import minimize
from scipy.special import expit, logit
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from .. import config
from ..data_processing.counts import validate_counts
from ..utils.math import finite_objective

logger = logging.getLogger(__name__)

LOG_CONC_BOUNDS = (-5.0, 15.0)


@dataclass
class BetaBinomialFit:
    alpha: float
    beta: float
    llf: float
    nobs: int
    converged: bool
    name: str = "beta-binomial"
    n_params: int = 2

    @property
    def mean(self) -> float:
        return self.alpha / (self.alpha + self.beta)

    @property
    def concentration(self) -> float:
        return self.alpha + self.beta

    @property
    def aic(self) -> float:
        return -2.0 * self.llf + 2.0 * self.n_params

    def group_estimates(self, df: pd.DataFrame, level: float | None = None) -> pd.DataFrame:
        """Posterior mean, equal-tailed interval and pooling weight per group."""
        level = config.CI_PROB if level is None else level
        g = _collapse(df)
        a_post = self.alpha + g["successes"]
        b_post = self.beta + g["trials"] - g["successes"]
        tail = (1.0 - level) / 2.0
        out = pd.DataFrame({
            "estimate": a_post / (a_post + b_post),
            "lower": stats.beta.ppf(tail, a_post, b_post),
            "upper": stats.beta.ppf(1.0 - tail, a_post, b_post),
            "pool_weight": self.concentration / (self.concentration + g["trials"]),
        }, index=g.index)
        return out


def _collapse(df: pd.DataFrame) -> pd.DataFrame:
    """Sum counts to one row per group."""
    return df.groupby("group", sort=True)[["successes", "trials"]].sum()


def fit_beta_binomial(df: pd.DataFrame) -> BetaBinomialFit:
    """Maximum-likelihood beta-binomial fit to per-group counts."""
    validate_counts(df)
    g = _collapse(df)
    y = g["successes"].to_numpy(dtype=float)
    n = g["trials"].to_numpy(dtype=float)

    def unpack(theta):
        m, k = expit(theta[0]), np.exp(theta[1])
        return m * k, (1.0 - m) * k

    penalty = {}

    def negloglik(theta):
        a, b = unpack(theta)
        return finite_objective(-stats.betabinom.logpmf(y, n, a, b).sum(), penalty)

    p_hat = np.clip(y.sum() / n.sum(), 1e-6, 1 - 1e-6)
    starts = [np.array([logit(p_hat), k]) for k in np.log([2.0, 20.0, 200.0])]
    theta0 = min(starts, key=negloglik)

    res = minimize(negloglik, theta0, method="L-BFGS-B",
                   bounds=[(None, None), LOG_CONC_BOUNDS])
    if not res.success:
        logger.warning("Beta-binomial optimizer did not converge: %s", res.message)
        warnings.warn(f"Beta-binomial fit did not converge: {res.message}", ConvergenceWarning)
    if res.x[1] >= LOG_CONC_BOUNDS[1] - 1e-6:
        logger.info("Concentration at its upper bound: no detectable extra-binomial variation")

    a, b = unpack(res.x)
    return BetaBinomialFit(alpha=float(a), beta=float(b), llf=float(-res.fun),
                           nobs=len(g), converged=bool(res.success))
