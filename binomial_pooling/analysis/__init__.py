# analysis/__init__.py
# Shrinkage, likelihood profiles, model comparison and diagnostics

from .comparison import aic_table, compare_loo, likelihood_ratio_test
from .diagnostics import dispersion_summary, get_ic, mcmc_diagnostics, to_elpd
from .profile import Profile, profile_confint, profile_parameter, sigma_lrt
from .shrinkage import compare_estimates, shrinkage_by_trials

__all__ = [
    "aic_table",
    "compare_loo",
    "likelihood_ratio_test",
    "dispersion_summary",
    "get_ic",
    "mcmc_diagnostics",
    "to_elpd",
    "Profile",
    "profile_confint",
    "profile_parameter",
    "sigma_lrt",
    "compare_estimates",
    "shrinkage_by_trials",
]
