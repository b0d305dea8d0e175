# league_chapter.py
# Partial pooling of player shooting percentages
# -------------------------------------------------------------------
# Steps:
#   1. load league statistics (one row per player)
#   2. complete pooling, no pooling, partial pooling (ML), beta-binomial
#   3. shrinkage table: how far each player moves toward the league mean
#   4. AIC comparison and likelihood-ratio test of sigma = 0
#   5. likelihood profile / confidence interval for sigma
#   6. (optional) Bayesian hierarchical model with PyMC
# -------------------------------------------------------------------

import argparse
import logging
import sys
from pathlib import Path

from .. import config
from ..analysis import (
    aic_table,
    compare_estimates,
    profile_confint,
    profile_parameter,
    shrinkage_by_trials,
    sigma_lrt,
)
from ..data_processing import load_league_stats
from ..models import fit_beta_binomial, fit_complete_pooling, fit_mixed_binomial, fit_no_pooling
from ..tables import parameter_table, write_table
from .common import add_common_args, banner, configure, show

logger = logging.getLogger(__name__)


def run_league(df, n_agq: int = 1, profile_points: int = 20) -> dict:
    """Fit every pooling model to player counts and collect the chapter results."""
    pooled = fit_complete_pooling(df)
    unpooled = fit_no_pooling(df)
    mixed = fit_mixed_binomial(df, n_agq=n_agq, name="partial pooling")
    betabin = fit_beta_binomial(df)

    table = compare_estimates(df, mixed=mixed, beta_binomial=betabin, pooled=pooled)
    fits = {"complete pooling": pooled, "no pooling": unpooled,
            "partial pooling": mixed, "beta-binomial": betabin}

    profile = profile_parameter(df, mixed, "sigma", n_points=profile_points)
    return {
        "fits": fits,
        "shrinkage": table,
        "shrinkage_by_trials": shrinkage_by_trials(table),
        "aic": aic_table(fits),
        "lrt": sigma_lrt(df, mixed=mixed, glm=pooled),
        "profile": profile,
        "sigma_ci": profile_confint(profile),
    }


def run_bayes(df, draws=None, seed=None):
    # PyMC is imported here so the ML workflow does not pay for pytensor
    from ..analysis import mcmc_diagnostics
    from ..models.bayesian_binomial import (
        build_hierarchical_model,
        posterior_group_estimates,
        sample_hierarchical_model,
        save_idata,
    )
    from ..tables import posterior_table

    model = build_hierarchical_model(df)
    kwargs = {"random_seed": seed}
    if draws:
        kwargs["draws"] = draws
    idata = sample_hierarchical_model(model, **kwargs)
    save_idata(idata, config.PATH_IDATA_LEAGUE)
    return idata, posterior_table(idata), posterior_group_estimates(idata), mcmc_diagnostics(idata)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Partial pooling of player shooting percentages")
    parser.add_argument("--data", type=Path, default=config.PATH_LEAGUE_STATS,
                        help="League statistics CSV")
    parser.add_argument("--made-col", default="made")
    parser.add_argument("--attempts-col", default="attempts")
    parser.add_argument("--player-col", default="player")
    parser.add_argument("--min-attempts", type=int, default=0,
                        help="Drop players with fewer attempts")
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure(args)

    banner("Partial pooling: league shooting percentages")

    print("\n[1/6] Loading league statistics...")
    df = load_league_stats(args.data, made_col=args.made_col, attempts_col=args.attempts_col,
                           group_col=args.player_col, min_attempts=args.min_attempts)
    print(f"  {len(df)} players, {int(df['trials'].sum())} attempts, "
          f"league rate {df['successes'].sum() / df['trials'].sum():.3f}")

    print("\n[2/6] Fitting pooling models...")
    res = run_league(df, n_agq=args.n_agq)
    mixed = res["fits"]["partial pooling"]
    betabin = res["fits"]["beta-binomial"]
    print(f"  mixed model: intercept = {mixed.params.iloc[0]:.3f} (SE {mixed.bse.iloc[0]:.3f}), "
          f"sigma = {mixed.sigma:.3f}")
    print(f"  beta-binomial: mean = {betabin.mean:.3f}, concentration = {betabin.concentration:.1f}")

    print("\n[3/6] Shrinkage toward the league mean")
    show(res["shrinkage"].sort_values("trials"))
    show(res["shrinkage_by_trials"])

    print("\n[4/6] Model comparison")
    show(res["aic"], digits=2)
    lrt = res["lrt"]
    print(f"  LRT sigma = 0: stat = {lrt['statistic']:.2f}, p = {lrt['p_value']:.4g} (boundary-corrected)")

    print("\n[5/6] Likelihood profile of sigma")
    lo, hi = res["sigma_ci"]
    print(f"  sigma = {mixed.sigma:.3f}, {int(config.CI_PROB * 100)}% profile CI [{lo:.3f}, {hi:.3f}]")

    write_table(res["shrinkage"], "league_shrinkage")
    write_table(res["aic"], "league_aic")
    write_table(parameter_table({k: v for k, v in res["fits"].items() if k != "beta-binomial"}),
                "league_parameters")
    write_table(res["profile"].table, "league_sigma_profile")

    if not args.no_plots:
        from ..visualization import (
            plot_profile,
            plot_shrinkage,
            plot_shrinkage_vs_trials,
            save_figure,
            setup_style,
        )
        setup_style()
        fig, _ = plot_shrinkage(res["shrinkage"], annotate=5)
        save_figure(fig, "league_shrinkage")
        fig, _ = plot_shrinkage_vs_trials(res["shrinkage"])
        save_figure(fig, "league_shrinkage_vs_trials")
        fig, _ = plot_profile(res["profile"], level=config.CI_PROB)
        save_figure(fig, "league_sigma_profile")

    if args.bayes:
        print("\n[6/6] Bayesian hierarchical model (PyMC)...")
        idata, summary, groups, diag = run_bayes(df, draws=args.draws, seed=args.seed)
        show(summary)
        print(f"  max R-hat {diag['rhat_max']:.4f}, min ESS {diag['ess_bulk_min']:.0f}, "
              f"divergences {diag['n_divergent']}")
        write_table(summary, "league_posterior_summary")
        write_table(groups, "league_posterior_groups")
        if not args.no_plots:
            from ..visualization import plot_group_intervals, save_figure
            fig, _ = plot_group_intervals(groups, pooled=float(summary.loc["p_pop", "mean"]))
            save_figure(fig, "league_posterior_groups")
    else:
        print("\n[6/6] Bayesian model skipped (use --bayes)")

    print(f"\nOutputs written to {config.DIR_OUTPUT}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
