# mixed_binomial.py
# Hierarchical binomial model (random intercept per group) by maximum likelihood
# =============================================================================
"""
Model
-----
    y_i ~ Binomial(n_i, p_i)
    logit(p_i) = x_i' beta + b_g[i]
    b_g ~ Normal(0, sigma)

``sigma`` is the among-group standard deviation (the hyperparameter that
controls how strongly group estimates are pooled toward x' beta).

Marginal likelihood
-------------------
The random effects are integrated out group by group. For group g with joint
log-density

    f_g(b) = sum_{i in g} log Binom(y_i | n_i, expit(x_i' beta + b)) + log N(b | 0, sigma)

we find the conditional mode b_g (Newton iterations, vectorised over groups)
and the conditional SD s_g = (-f_g''(b_g))^(-1/2), then apply adaptive
Gauss-Hermite quadrature with K nodes x_k and weights w_k:

    log L_g = log(sqrt(2) s_g) + logsumexp_k( log w_k + x_k^2 + f_g(b_g + sqrt(2) s_g x_k) )

K = 1 is the Laplace approximation. As sigma -> 0 the expression tends to the
plain binomial GLM log-likelihood, which is what makes likelihood-ratio tests
against the GLM meaningful.

The outer problem maximises sum_g log L_g over (beta, log sigma) with
L-BFGS-B. Standard errors come from the numerical Hessian at the optimum.
"""

import logging
import warnings
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import patsy
from scipy.optimize import minimize
from scipy.special import expit, logsumexp
from scipy import stats
from statsmodels.tools.numdiff import approx_hess
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from .. import config
from ..data_processing.counts import add_count_columns, group_codes, validate_counts
from ..utils.math import binomial_logpmf_logit, finite_objective
from .binomial_glm import fit_binomial_glm

logger = logging.getLogger(__name__)

LOG_SIGMA_BOUNDS = (-10.0, 4.0)   # sigma in [4.5e-5, 54.6]
NEWTON_TOL = 1e-10
NEWTON_MAX_ITER = 200


# =============================================================================
# Data container
# =============================================================================
@dataclass
class _Problem:
    y: np.ndarray
    n: np.ndarray
    X: np.ndarray
    gi: np.ndarray
    labels: pd.Index
    names: list
    design_info: object

    @property
    def n_groups(self) -> int:
        return len(self.labels)


def _build_problem(df: pd.DataFrame, formula: str) -> _Problem:
    validate_counts(df)
    X = patsy.dmatrix(formula, df, return_type="dataframe")
    gi, labels = group_codes(df)
    return _Problem(
        y=df["successes"].to_numpy(dtype=float),
        n=df["trials"].to_numpy(dtype=float),
        X=X.to_numpy(dtype=float),
        gi=gi,
        labels=pd.Index(labels, name="group"),
        names=list(X.columns),
        design_info=X.design_info,
    )


# =============================================================================
# Inner problem: conditional modes and per-group marginal log-likelihood
# =============================================================================
def _group_sum(prob: _Problem, values: np.ndarray) -> np.ndarray:
    return np.bincount(prob.gi, weights=values, minlength=prob.n_groups)


def _conditional_objective(prob, eta_fixed, b, prec):
    """f_g(b) up to constants, one value per group."""
    eta = eta_fixed + b[prob.gi]
    ll = prob.y * eta - prob.n * np.logaddexp(0.0, eta)
    return _group_sum(prob, ll) - 0.5 * prec * b ** 2


def conditional_modes(prob: _Problem, eta_fixed: np.ndarray, sigma: float, b0=None):
    """
    Newton-Raphson for the mode of each group's conditional density.

    Returns (modes, information) where information = -f_g''(mode).
    f_g is strictly concave so Newton directions always ascend; a step
    that does not increase f_g is halved.
    """
    prec = 1.0 / sigma ** 2
    b = np.zeros(prob.n_groups) if b0 is None else np.array(b0, dtype=float)
    f_cur = _conditional_objective(prob, eta_fixed, b, prec)

    for _ in range(NEWTON_MAX_ITER):
        p = expit(eta_fixed + b[prob.gi])
        grad = _group_sum(prob, prob.y - prob.n * p) - prec * b
        info = _group_sum(prob, prob.n * p * (1.0 - p)) + prec
        step = grad / info

        b_new = b + step
        f_new = _conditional_objective(prob, eta_fixed, b_new, prec)
        for _ in range(30):
            worse = f_new < f_cur - 1e-12
            if not worse.any():
                break
            step = np.where(worse, 0.5 * step, step)
            b_new = b + step
            f_new = _conditional_objective(prob, eta_fixed, b_new, prec)

        b, f_cur = b_new, f_new
        if np.max(np.abs(step)) < NEWTON_TOL:
            break

    p = expit(eta_fixed + b[prob.gi])
    info = _group_sum(prob, prob.n * p * (1.0 - p)) + prec
    return b, info


def _group_loglik(prob: _Problem, beta: np.ndarray, sigma: float, n_agq: int, b0=None):
    """Per-group marginal log-likelihood, conditional modes and conditional SDs."""
    eta_fixed = prob.X @ beta

    if sigma <= 0.0:
        ll = binomial_logpmf_logit(prob.y, prob.n, eta_fixed)
        zeros = np.zeros(prob.n_groups)
        return _group_sum(prob, ll), zeros, zeros

    b_hat, info = conditional_modes(prob, eta_fixed, sigma, b0)
    s = 1.0 / np.sqrt(info)

    x, w = np.polynomial.hermite.hermgauss(n_agq)
    nodes = b_hat[:, None] + np.sqrt(2.0) * s[:, None] * x[None, :]       # (G, K)

    eta = eta_fixed[:, None] + nodes[prob.gi, :]                          # (N, K)
    ll_obs = binomial_logpmf_logit(prob.y[:, None], prob.n[:, None], eta)
    ll_nodes = np.column_stack([_group_sum(prob, ll_obs[:, k]) for k in range(n_agq)])

    f = ll_nodes + stats.norm.logpdf(nodes, loc=0.0, scale=sigma)
    log_lik = (np.log(np.sqrt(2.0) * s)
               + logsumexp(np.log(w)[None, :] + x[None, :] ** 2 + f, axis=1))
    return log_lik, b_hat, s


def marginal_loglik(df: pd.DataFrame, beta, sigma: float,
                    formula: str = "1", n_agq: int | None = None) -> float:
    """Total marginal log-likelihood at given fixed effects and sigma."""
    prob = _build_problem(df, formula)
    beta = np.asarray(beta, dtype=float).ravel()
    if beta.size != prob.X.shape[1]:
        raise ValueError(f"Expected {prob.X.shape[1]} fixed effects {prob.names}, got {beta.size}")
    n_agq = config.N_AGQ if n_agq is None else int(n_agq)
    if n_agq < 1:
        raise ValueError("n_agq must be >= 1")
    ll, _, _ = _group_loglik(prob, beta, float(sigma), n_agq)
    return float(ll.sum())


# =============================================================================
# Fit object
# =============================================================================
@dataclass
class MixedBinomialFit:
    """Maximum-likelihood fit of the random-intercept binomial model."""

    name: str
    formula: str
    params: pd.Series
    sigma: float
    bse: pd.Series
    sigma_se: float
    llf: float
    nobs: int
    n_groups: int
    n_agq: int
    converged: bool
    ranef: pd.DataFrame
    fixed: tuple = ()
    design_info: object = field(default=None, repr=False)
    eta_group_fixed: pd.Series = field(default=None, repr=False)

    @property
    def n_params(self) -> int:
        # fixed effects + sigma, minus anything held fixed
        return len(self.params) + 1 - len(self.fixed)

    @property
    def aic(self) -> float:
        return -2.0 * self.llf + 2.0 * self.n_params

    @property
    def singular(self) -> bool:
        return self.sigma <= np.exp(LOG_SIGMA_BOUNDS[0]) * 1.01

    def group_estimates(self, level: float | None = None) -> pd.DataFrame:
        """
        Partially pooled success probability per group.

        The group's linear predictor is its trials-weighted fixed part plus
        the conditional mode; the interval uses the conditional SD only
        (fixed-effect uncertainty is not propagated).
        """
        level = config.CI_PROB if level is None else level
        z = stats.norm.ppf(0.5 + level / 2.0)
        eta = self.eta_group_fixed + self.ranef["mode"]
        out = pd.DataFrame({
            "logit": eta,
            "estimate": expit(eta),
            "lower": expit(eta - z * self.ranef["sd"]),
            "upper": expit(eta + z * self.ranef["sd"]),
        })
        out.index.name = "group"
        return out

    def predict_proba(self, df: pd.DataFrame, include_ranef: bool = True) -> np.ndarray:
        """Fitted probabilities; groups unseen in the fit get a zero random effect."""
        X = patsy.dmatrix(self.design_info, df, return_type="dataframe").to_numpy()
        eta = X @ self.params.to_numpy()
        if include_ranef:
            eta = eta + df["group"].map(self.ranef["mode"]).fillna(0.0).to_numpy()
        return expit(eta)


# =============================================================================
# Fitting
# =============================================================================
def _start_values(prob: _Problem, df: pd.DataFrame, formula: str) -> np.ndarray:
    glm = fit_binomial_glm(df, formula)
    beta0 = glm.params.to_numpy(dtype=float)

    # pick the best of a few sigma starts
    best, best_ll = None, -np.inf
    for sigma0 in (0.1, 0.5, 1.0):
        ll, _, _ = _group_loglik(prob, beta0, sigma0, 1)
        if ll.sum() > best_ll:
            best, best_ll = sigma0, ll.sum()
    return np.append(beta0, np.log(best))


def fit_mixed_binomial(df: pd.DataFrame,
                       formula: str = "1",
                       n_agq: int | None = None,
                       fixed_sigma: float | None = None,
                       fixed_params: dict | None = None,
                       start=None,
                       compute_se: bool = True,
                       name: str | None = None) -> MixedBinomialFit:
    """
    Fit ``successes/trials ~ formula + (1 | group)`` by maximum likelihood.

    Parameters
    ----------
    df : DataFrame
        Canonical count columns; ``group`` identifies the random intercept.
    formula : str
        Right-hand side of the fixed-effect patsy formula.
    n_agq : int, optional
        Adaptive Gauss-Hermite points (default ``config.N_AGQ``; 1 = Laplace).
    fixed_sigma : float, optional
        Hold sigma at this value (0 allowed) instead of estimating it.
    fixed_params : dict, optional
        Hold named fixed effects at given values (used for profiling).
    start : array-like, optional
        Starting (beta..., log sigma) vector.
    compute_se : bool
        Skip the numerical Hessian when False.
    """
    n_agq = config.N_AGQ if n_agq is None else int(n_agq)
    if n_agq < 1:
        raise ValueError("n_agq must be >= 1")
    if fixed_sigma is not None and fixed_sigma < 0:
        raise ValueError("fixed_sigma must be non-negative")

    if "failures" not in df.columns:
        df = add_count_columns(df)
    prob = _build_problem(df, formula)
    p = len(prob.names)

    theta0 = np.asarray(start, dtype=float).copy() if start is not None else _start_values(prob, df, formula)
    free = np.ones(p + 1, dtype=bool)
    fixed = []

    for key, value in (fixed_params or {}).items():
        if key not in prob.names:
            raise KeyError(f"Unknown fixed effect '{key}'; have {prob.names}")
        j = prob.names.index(key)
        theta0[j] = float(value)
        free[j] = False
        fixed.append(key)
    if fixed_sigma is not None:
        theta0[p] = np.log(fixed_sigma) if fixed_sigma > 0 else -np.inf
        free[p] = False
        fixed.append("sigma")

    cache = {"b": None}
    penalty = {}

    def unpack(theta):
        return theta[:p], (np.exp(theta[p]) if np.isfinite(theta[p]) else 0.0)

    def objective(base, mask):
        def negloglik(t):
            theta = base.copy()
            theta[mask] = t
            beta, sigma = unpack(theta)
            ll, b_hat, _ = _group_loglik(prob, beta, sigma, n_agq, cache["b"])
            if sigma > 0:
                cache["b"] = b_hat
            return finite_objective(-ll.sum(), penalty)
        return negloglik

    converged = True
    theta_hat = theta0.copy()
    if free.any():
        bounds = [(None, None)] * p + [LOG_SIGMA_BOUNDS]
        res = minimize(objective(theta0, free), theta0[free], method="L-BFGS-B",
                       bounds=[b for b, f in zip(bounds, free) if f])
        theta_hat[free] = res.x
        converged = bool(res.success)
        if not converged:
            logger.warning("Optimizer did not converge: %s", res.message)
            warnings.warn(f"Mixed binomial fit did not converge: {res.message}", ConvergenceWarning)
        logger.debug("L-BFGS-B finished after %d evaluations", res.nfev)

    beta_hat, sigma_hat = unpack(theta_hat)
    ll_g, b_hat, s_hat = _group_loglik(prob, beta_hat, sigma_hat, n_agq)

    singular = bool(free[p] and sigma_hat <= np.exp(LOG_SIGMA_BOUNDS[0]) * 1.01)
    if singular:
        logger.info("Boundary (singular) fit: sigma estimated at its lower bound")

    bse = np.full(p, np.nan)
    sigma_se = np.nan
    # sigma on the boundary has no curvature; condition on it for the beta SEs
    se_mask = free.copy()
    se_mask[p] = se_mask[p] and not singular
    if compute_se and se_mask.any():
        full = np.full(p + 1, np.nan)
        full[se_mask] = _hessian_se(objective(theta_hat, se_mask), theta_hat[se_mask])
        bse = full[:p]
        sigma_se = sigma_hat * full[p]   # delta method from log sigma

    # trials-weighted fixed part per group, for group-level estimates
    eta_fixed = prob.X @ beta_hat
    w_sum = _group_sum(prob, prob.n)
    eta_group = _group_sum(prob, prob.n * eta_fixed) / w_sum

    return MixedBinomialFit(
        name=name or f"mixed binomial ~ {formula} + (1 | group)",
        formula=formula,
        params=pd.Series(beta_hat, index=prob.names),
        sigma=float(sigma_hat),
        bse=pd.Series(bse, index=prob.names),
        sigma_se=float(sigma_se),
        llf=float(ll_g.sum()),
        nobs=len(df),
        n_groups=prob.n_groups,
        n_agq=n_agq,
        converged=converged,
        ranef=pd.DataFrame({"mode": b_hat, "sd": s_hat}, index=prob.labels),
        fixed=tuple(fixed),
        design_info=prob.design_info,
        eta_group_fixed=pd.Series(eta_group, index=prob.labels),
    )


def _hessian_se(negloglik, theta_free: np.ndarray) -> np.ndarray:
    """Standard errors from the inverse numerical Hessian of -loglik."""
    H = approx_hess(theta_free, negloglik)
    try:
        cov = np.linalg.inv(H)
    except np.linalg.LinAlgError:
        logger.warning("Singular Hessian; standard errors unavailable")
        return np.full(theta_free.size, np.nan)
    var = np.diag(cov)
    return np.where(var > 0, np.sqrt(np.abs(var)), np.nan)
