# simulate.py
# Simulated hierarchical binomial datasets
# -------------------------------------------------------------------
# Group effects are logit-normal:
#   logit(p_g) = mu + b_g,   b_g ~ Normal(0, sigma)
#   y_g ~ Binomial(n_g, p_g)
# -------------------------------------------------------------------

import numpy as np
import pandas as pd
from scipy.special import expit, logit

from .counts import add_count_columns


def _draw_trials(rng, n_groups, trials):
    """Expand an int, a (low, high) tuple or a sequence into per-group trials."""
    if isinstance(trials, (int, np.integer)):
        return np.full(n_groups, int(trials))
    if isinstance(trials, tuple) and len(trials) == 2:
        low, high = trials
        return rng.integers(low, high + 1, size=n_groups)
    arr = np.asarray(trials, dtype=int)
    if arr.shape != (n_groups,):
        raise ValueError(f"Expected {n_groups} trial counts, got {arr.shape}")
    return arr


def simulate_grouped_binomial(n_groups: int = 30,
                              trials=(5, 200),
                              mu: float = 0.0,
                              sigma: float = 0.5,
                              seed=None,
                              prefix: str = "g") -> pd.DataFrame:
    """
    Simulate grouped binomial counts with logit-normal group effects.

    Parameters
    ----------
    n_groups : int
        Number of groups.
    trials : int, (low, high) tuple, or sequence
        Trials per group; a tuple draws uniform integers in [low, high].
    mu : float
        Population mean on the logit scale.
    sigma : float
        Among-group standard deviation on the logit scale (>= 0).
    seed : int or numpy Generator, optional
    prefix : str
        Group labels are ``f"{prefix}{i:03d}"``.

    Returns
    -------
    DataFrame with canonical count columns plus ``true_logit`` and ``true_p``.
    """
    if n_groups < 1:
        raise ValueError("n_groups must be positive")
    if sigma < 0:
        raise ValueError("sigma must be non-negative")

    rng = np.random.default_rng(seed)
    n = _draw_trials(rng, n_groups, trials)
    if (n < 0).any():
        raise ValueError("trials must be non-negative")

    eta = mu + sigma * rng.standard_normal(n_groups)
    p = expit(eta)
    y = rng.binomial(n, p)

    df = pd.DataFrame({
        "group": [f"{prefix}{i:03d}" for i in range(n_groups)],
        "successes": y,
        "trials": n,
        "true_logit": eta,
        "true_p": p,
    })
    return add_count_columns(df)


def simulate_egg_cartons(n_cartons: int = 60,
                         eggs_per_carton: int = 12,
                         p_broken: float = 0.08,
                         sigma_carton: float = 1.0,
                         supplier_effect: float = 0.0,
                         seed=None) -> pd.DataFrame:
    """
    Simulate broken eggs per carton.

    Cartons alternate between suppliers A and B; supplier B's logit is
    shifted by ``supplier_effect``. Carton-to-carton variation (rough
    handling, a dropped box) enters as a logit-normal carton effect with
    SD ``sigma_carton``, which makes the counts overdispersed relative to a
    plain binomial whenever ``sigma_carton > 0``.
    """
    if not 0.0 < p_broken < 1.0:
        raise ValueError("p_broken must lie strictly between 0 and 1")
    if sigma_carton < 0:
        raise ValueError("sigma_carton must be non-negative")

    rng = np.random.default_rng(seed)
    supplier = np.where(np.arange(n_cartons) % 2 == 0, "A", "B")
    eta = (logit(p_broken)
           + supplier_effect * (supplier == "B")
           + sigma_carton * rng.standard_normal(n_cartons))
    broken = rng.binomial(eggs_per_carton, expit(eta))

    df = pd.DataFrame({
        "carton": np.arange(1, n_cartons + 1),
        "supplier": supplier,
        "broken": broken,
        "unbroken": eggs_per_carton - broken,
        "eggs": eggs_per_carton,
    })
    df["group"] = df["carton"].map(lambda c: f"carton{c:03d}")
    df["successes"] = df["broken"]
    df["trials"] = df["eggs"]
    return add_count_columns(df)
