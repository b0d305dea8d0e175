# diagnostics.py
# Fit diagnostics: MCMC convergence, information criteria, overdispersion
# -------------------------------------------------------------------

import logging

import arviz as az
import numpy as np

from ..models.binomial_glm import BinomialFit, overdispersion_test

logger = logging.getLogger(__name__)

RHAT_MAX = 1.01
ESS_MIN = 400
BFMI_MIN = 0.3


def mcmc_diagnostics(idata: az.InferenceData, var_names=None) -> dict:
    """Global convergence summary of a posterior sample."""
    rhat_max = float(az.rhat(idata, var_names=var_names).to_array().max())
    ess_min = float(az.ess(idata, var_names=var_names, method="bulk").to_array().min())

    n_divergent = 0
    bfmi_min = np.nan
    if "sample_stats" in idata.groups():
        if "diverging" in idata.sample_stats:
            n_divergent = int(np.asarray(idata.sample_stats["diverging"]).sum())
        if "energy" in idata.sample_stats:
            bfmi_min = float(np.min(az.bfmi(idata)))

    ok = (rhat_max < RHAT_MAX
          and ess_min > ESS_MIN
          and n_divergent == 0
          and (np.isnan(bfmi_min) or bfmi_min > BFMI_MIN))
    if not ok:
        logger.warning("MCMC diagnostics: max R-hat %.4f, min ESS %.0f, %d divergences, BFMI %.2f",
                       rhat_max, ess_min, n_divergent, bfmi_min)
    return {"rhat_max": rhat_max, "ess_bulk_min": ess_min,
            "n_divergent": n_divergent, "bfmi_min": bfmi_min, "ok": bool(ok)}


def get_ic(idata: az.InferenceData, var_name: str | None = None):
    """PSIS-LOO, falling back to WAIC when LOO cannot be computed."""
    try:
        ic = az.loo(idata, var_name=var_name, pointwise=True)
        pk = np.asarray(ic.pareto_k)
        frac_bad = np.mean(pk > 0.7)
        if frac_bad > 0:
            logger.warning("LOO: %.1f%% of points have Pareto k > 0.7", 100 * frac_bad)
        return ic
    except (ValueError, TypeError) as e:
        logger.info("LOO failed (%s); falling back to WAIC", e)
        return az.waic(idata, var_name=var_name)


def to_elpd(ic) -> tuple:
    """Extract (ELPD, SE) from a LOO or WAIC result."""
    if "elpd_loo" in ic:
        return float(ic["elpd_loo"]), float(ic["se"])
    if "elpd_waic" in ic:
        return float(ic["elpd_waic"]), float(ic["se"])
    raise KeyError("No ELPD field found")


def dispersion_summary(fit: BinomialFit) -> dict:
    """Pearson dispersion, deviance per df and the Pearson goodness-of-fit test."""
    out = overdispersion_test(fit)
    out["deviance_per_df"] = fit.deviance / fit.df_resid
    return out
