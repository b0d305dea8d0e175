# math.py
# Small numerical helpers shared by the binomial models
# -------------------------------------------------------------------

import numpy as np
from scipy.special import gammaln


def log_binom_coef(n, y) -> np.ndarray:
    """log C(n, y), vectorized."""
    n = np.asarray(n, dtype=float)
    y = np.asarray(y, dtype=float)
    return gammaln(n + 1.0) - gammaln(y + 1.0) - gammaln(n - y + 1.0)


def binomial_logpmf_logit(y, n, eta) -> np.ndarray:
    """
    Binomial log-probability parameterised on the logit scale.

    y, n : successes and trials, broadcastable against eta
    eta  : linear predictor, logit(p)

    Uses log(p) = -log1p(exp(-eta)) and log(1-p) = -log1p(exp(eta)) through
    np.logaddexp so that large |eta| stays finite.
    """
    y = np.asarray(y, dtype=float)
    n = np.asarray(n, dtype=float)
    eta = np.asarray(eta, dtype=float)
    return (log_binom_coef(n, y)
            + y * eta
            - n * np.logaddexp(0.0, eta))


def finite_objective(value, state: dict) -> float:
    """
    Return ``value`` when finite, otherwise a finite penalty above the last
    finite value recorded in ``state`` (key ``"last"``).

    Used inside L-BFGS-B objectives so that finite-difference gradients
    near the edge of the feasible region stay finite.
    """
    value = float(value)
    if np.isfinite(value):
        state["last"] = value
        return value
    last = state.get("last")
    if last is None:
        return 1e10
    return last + abs(last) + 1e3
