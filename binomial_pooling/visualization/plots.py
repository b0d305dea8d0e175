# plots.py
# Chapter figures: shrinkage, profiles, group intervals, carton counts
# -------------------------------------------------------------------

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats

from ..analysis.profile import Profile
from .style import COLORS_POOLING, FIGSIZE_SINGLE, FIGSIZE_TALL, FIGSIZE_WIDE


def plot_shrinkage(table: pd.DataFrame, ax=None, annotate: int = 0):
    """
    Raw (no pooling) estimates against trials, with an arrow from each raw
    value to its partially pooled estimate and the pooled mean as a line.

    ``annotate`` labels the n groups that moved furthest.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=FIGSIZE_WIDE)
    else:
        fig = ax.figure

    x = table["trials"].to_numpy()
    ax.scatter(x, table["raw"], s=18, color=COLORS_POOLING["raw"], label="raw (no pooling)", zorder=3)
    ax.scatter(x, table["partial"], s=18, color=COLORS_POOLING["partial"], label="partial pooling", zorder=3)
    for xi, r, p in zip(x, table["raw"], table["partial"]):
        ax.annotate("", xy=(xi, p), xytext=(xi, r),
                    arrowprops=dict(arrowstyle="->", color="0.6", lw=0.8))

    pooled = table["pooled"]
    if np.allclose(pooled, pooled.iloc[0]):
        ax.axhline(pooled.iloc[0], color=COLORS_POOLING["pooled"], ls="--", lw=1, label="complete pooling")

    if annotate:
        moved = (table["raw"] - table["partial"]).abs().nlargest(annotate)
        for g in moved.index:
            ax.text(table.loc[g, "trials"], table.loc[g, "raw"], f" {g}", fontsize=7, va="center")

    ax.set_xscale("log")
    ax.set_xlabel("trials (log scale)")
    ax.set_ylabel("success probability")
    ax.legend(loc="best")
    fig.tight_layout()
    return fig, ax


def plot_shrinkage_vs_trials(table: pd.DataFrame, ax=None):
    """Shrinkage fraction against trials; low-information groups shrink most."""
    if ax is None:
        fig, ax = plt.subplots(figsize=FIGSIZE_SINGLE)
    else:
        fig = ax.figure

    data = table.dropna(subset=["shrinkage"])
    sns.scatterplot(data=data, x="trials", y="shrinkage", ax=ax,
                    color=COLORS_POOLING["partial"], s=20, edgecolor=None)
    if "eb" in data.columns:
        with np.errstate(invalid="ignore", divide="ignore"):
            eb_shrink = (data["raw"] - data["eb"]) / (data["raw"] - data["pooled"])
        ax.scatter(data["trials"], eb_shrink, s=12, marker="x",
                   color=COLORS_POOLING["eb"], label="beta-binomial")
        ax.legend(loc="best")
    ax.set_xscale("log")
    ax.set_ylim(-0.05, 1.05)
    ax.set_xlabel("trials (log scale)")
    ax.set_ylabel("shrinkage toward pooled mean")
    fig.tight_layout()
    return fig, ax


def plot_profile(profile: Profile, level: float = 0.95, ax=None):
    """Signed root deviance (zeta) with the +/- cutoff for a ``level`` interval."""
    if ax is None:
        fig, ax = plt.subplots(figsize=FIGSIZE_SINGLE)
    else:
        fig = ax.figure

    tbl = profile.table.sort_values("value")
    ax.plot(tbl["value"], tbl["zeta"], marker="o", ms=3, color=COLORS_POOLING["partial"])
    cut = np.sqrt(stats.chi2.ppf(level, df=1))
    for c in (-cut, cut):
        ax.axhline(c, color="0.5", ls=":", lw=1)
    ax.axvline(profile.estimate, color=COLORS_POOLING["pooled"], ls="--", lw=1)
    ax.set_xlabel(profile.name)
    ax.set_ylabel(r"$\zeta$ (signed root deviance)")
    ax.set_title(f"Profile of {profile.name}")
    fig.tight_layout()
    return fig, ax


def plot_group_intervals(estimates: pd.DataFrame, pooled: float | None = None,
                         ax=None, max_groups: int = 60):
    """
    Caterpillar plot of per-group estimates with intervals.

    ``estimates`` needs ``estimate``, ``lower`` and ``upper`` columns and is
    indexed by group; only the first ``max_groups`` by estimate are drawn.
    """
    est = estimates.sort_values("estimate").tail(max_groups)
    if ax is None:
        fig, ax = plt.subplots(figsize=FIGSIZE_TALL)
    else:
        fig = ax.figure

    y = np.arange(len(est))
    ax.errorbar(est["estimate"], y,
                xerr=[est["estimate"] - est["lower"], est["upper"] - est["estimate"]],
                fmt="o", ms=3, lw=0.8, color=COLORS_POOLING["partial"])
    if pooled is not None:
        ax.axvline(pooled, color=COLORS_POOLING["pooled"], ls="--", lw=1)
    ax.set_yticks(y)
    ax.set_yticklabels(est.index.astype(str), fontsize=6)
    ax.set_xlabel("success probability")
    fig.tight_layout()
    return fig, ax


def plot_carton_counts(df: pd.DataFrame, p_hat: float | None = None, ax=None):
    """
    Distribution of broken eggs per carton against the binomial expectation
    at the pooled breakage rate; excess mass at 0 and in the right tail is
    the overdispersion the carton effect absorbs.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=FIGSIZE_SINGLE)
    else:
        fig = ax.figure

    n = int(df["trials"].max())
    if p_hat is None:
        p_hat = df["successes"].sum() / df["trials"].sum()
    k = np.arange(n + 1)
    observed = df["successes"].value_counts().reindex(k, fill_value=0) / len(df)
    expected = stats.binom.pmf(k, n, p_hat)

    ax.bar(k, observed.to_numpy(), width=0.8, color=COLORS_POOLING["partial"],
           alpha=0.7, label="observed")
    ax.plot(k, expected, "o-", color=COLORS_POOLING["raw"], ms=4, label=f"binomial(n={n}, p={p_hat:.3f})")
    ax.set_xlabel("broken eggs per carton")
    ax.set_ylabel("proportion of cartons")
    ax.legend(loc="best")
    fig.tight_layout()
    return fig, ax
