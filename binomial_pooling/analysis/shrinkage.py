# shrinkage.py
# Side-by-side complete / no / partial pooling estimates per group
# -------------------------------------------------------------------

import numpy as np
import pandas as pd

from ..data_processing.counts import validate_counts
from ..models.beta_binomial import BetaBinomialFit, fit_beta_binomial
from ..models.binomial_glm import BinomialFit, fit_complete_pooling
from ..models.mixed_binomial import MixedBinomialFit, fit_mixed_binomial


def compare_estimates(df: pd.DataFrame,
                      mixed: MixedBinomialFit | None = None,
                      beta_binomial: BetaBinomialFit | None = None,
                      pooled: BinomialFit | None = None) -> pd.DataFrame:
    """
    One row per group with every estimator of its success probability.

    Columns
    -------
    trials, successes : summed counts
    raw       : no pooling, successes / trials
    pooled    : complete pooling, one probability for everyone
    partial   : mixed-model conditional estimate
    eb        : beta-binomial posterior mean
    shrinkage : (raw - partial) / (raw - pooled); 0 = no pooling,
                1 = complete pooling; NaN when raw == pooled
    weight    : 1 - shrinkage, the weight on the group's own data

    Fits that are not supplied are computed here with default settings.
    """
    validate_counts(df)
    mixed = mixed or fit_mixed_binomial(df)
    beta_binomial = beta_binomial or fit_beta_binomial(df)
    pooled = pooled or fit_complete_pooling(df)

    counts = df.groupby("group", sort=True)[["successes", "trials"]].sum()
    table = counts.copy()
    table["raw"] = counts["successes"] / counts["trials"]
    # trials-weighted, so covariates in the pooled model still give one value per group
    fitted = pd.Series(np.asarray(pooled.predict_proba(df)) * df["trials"].to_numpy(), index=df.index)
    table["pooled"] = fitted.groupby(df["group"]).sum().reindex(table.index) / counts["trials"]
    table["partial"] = mixed.group_estimates()["estimate"].reindex(table.index)
    table["eb"] = beta_binomial.group_estimates(df)["estimate"].reindex(table.index)

    gap = table["raw"] - table["pooled"]
    with np.errstate(invalid="ignore", divide="ignore"):
        shrink = (table["raw"] - table["partial"]) / gap
    table["shrinkage"] = shrink.where(gap.abs() > 1e-12)
    table["weight"] = 1.0 - table["shrinkage"]
    table.index.name = "group"
    return table


def shrinkage_by_trials(table: pd.DataFrame, bins=4) -> pd.DataFrame:
    """
    Mean shrinkage within trials bins.

    ``bins`` is a number of quantile bins or explicit bin edges. Groups
    with few trials carry little information and should shrink most.
    """
    if np.ndim(bins) == 0:
        cut = pd.qcut(table["trials"], q=int(bins), duplicates="drop")
    else:
        cut = pd.cut(table["trials"], bins=bins, include_lowest=True)
    out = (table.groupby(cut, observed=True)
                .agg(n_groups=("shrinkage", "size"),
                     trials_median=("trials", "median"),
                     shrinkage_mean=("shrinkage", "mean"))
                .reset_index()
                .rename(columns={"trials": "trials_bin"}))
    return out
