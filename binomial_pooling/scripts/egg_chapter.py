# egg_chapter.py
# Overdispersion and carton effects in broken-egg counts
# -------------------------------------------------------------------
# Steps:
#   1. simulate cartons (eggs per carton, two suppliers, carton effect)
#   2. binomial GLM with supplier; Pearson dispersion check
#   3. quasi-binomial: same estimates, SEs inflated by sqrt(dispersion)
#   4. carton random-effect model and beta-binomial
#   5. AIC comparison, LRT of sigma = 0, likelihood profile of sigma
#   6. (optional) Bayesian hierarchical model with PyMC
# -------------------------------------------------------------------

import argparse
import logging
import sys

from .. import config
from ..analysis import (
    aic_table,
    dispersion_summary,
    profile_confint,
    profile_parameter,
    sigma_lrt,
)
from ..data_processing import simulate_egg_cartons
from ..models import fit_beta_binomial, fit_binomial_glm, fit_mixed_binomial
from ..tables import parameter_table, write_table
from .common import add_common_args, banner, configure, show

logger = logging.getLogger(__name__)

SUPPLIER_FORMULA = "C(supplier)"


def run_eggs(df, n_agq: int = 1, profile_points: int = 20) -> dict:
    """Fit the carton models and collect the chapter results."""
    glm = fit_binomial_glm(df, SUPPLIER_FORMULA, name="binomial GLM")
    quasi = fit_binomial_glm(df, SUPPLIER_FORMULA, scale="X2", name="quasi-binomial")
    mixed = fit_mixed_binomial(df, SUPPLIER_FORMULA, n_agq=n_agq, name="carton random effect")
    betabin = fit_beta_binomial(df)

    profile = profile_parameter(df, mixed, "sigma", n_points=profile_points)
    return {
        "fits": {"binomial GLM": glm, "quasi-binomial": quasi,
                 "carton random effect": mixed, "beta-binomial": betabin},
        "dispersion": dispersion_summary(glm),
        # quasi-likelihood has no AIC
        "aic": aic_table({"binomial GLM": glm, "carton random effect": mixed,
                          "beta-binomial": betabin}),
        "lrt": sigma_lrt(df, mixed=mixed, glm=glm),
        "profile": profile,
        "sigma_ci": profile_confint(profile),
    }


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Overdispersion in simulated egg cartons")
    parser.add_argument("--n-cartons", type=int, default=60)
    parser.add_argument("--eggs", type=int, default=12, help="Eggs per carton")
    parser.add_argument("--p-broken", type=float, default=0.08)
    parser.add_argument("--sigma-carton", type=float, default=1.0,
                        help="Carton-level SD on the logit scale")
    parser.add_argument("--supplier-effect", type=float, default=0.0,
                        help="Logit shift for supplier B")
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure(args)

    banner("Partial pooling: broken eggs per carton")

    print("\n[1/6] Simulating cartons...")
    df = simulate_egg_cartons(n_cartons=args.n_cartons, eggs_per_carton=args.eggs,
                              p_broken=args.p_broken, sigma_carton=args.sigma_carton,
                              supplier_effect=args.supplier_effect, seed=args.seed)
    print(f"  {len(df)} cartons x {args.eggs} eggs, {int(df['broken'].sum())} broken "
          f"({df['broken'].sum() / df['eggs'].sum():.3f})")
    show(df.groupby("supplier")[["broken", "eggs"]].sum())

    print("\n[2/6] Fitting binomial, quasi-binomial and carton models...")
    res = run_eggs(df, n_agq=args.n_agq)
    disp = res["dispersion"]
    print(f"  Pearson dispersion = {disp['dispersion']:.2f} on {disp['df_resid']} df "
          f"(p = {disp['p_value']:.3g}); deviance/df = {disp['deviance_per_df']:.2f}")

    print("\n[3/6] Parameter estimates")
    params = parameter_table({k: v for k, v in res["fits"].items() if k != "beta-binomial"})
    show(params)
    betabin = res["fits"]["beta-binomial"]
    print(f"  beta-binomial: mean = {betabin.mean:.3f}, concentration = {betabin.concentration:.1f}")

    print("\n[4/6] Model comparison")
    show(res["aic"], digits=2)
    lrt = res["lrt"]
    print(f"  LRT sigma = 0: stat = {lrt['statistic']:.2f}, p = {lrt['p_value']:.4g} (boundary-corrected)")

    print("\n[5/6] Likelihood profile of the carton SD")
    mixed = res["fits"]["carton random effect"]
    lo, hi = res["sigma_ci"]
    print(f"  sigma = {mixed.sigma:.3f} (simulated {args.sigma_carton}), "
          f"{int(config.CI_PROB * 100)}% profile CI [{lo:.3f}, {hi:.3f}]")

    write_table(params, "eggs_parameters")
    write_table(res["aic"], "eggs_aic")
    write_table(res["profile"].table, "eggs_sigma_profile")

    if not args.no_plots:
        from ..visualization import plot_carton_counts, plot_profile, save_figure, setup_style
        setup_style()
        fig, _ = plot_carton_counts(df)
        save_figure(fig, "eggs_carton_counts")
        fig, _ = plot_profile(res["profile"], level=config.CI_PROB)
        save_figure(fig, "eggs_sigma_profile")

    if args.bayes:
        print("\n[6/6] Bayesian hierarchical model (PyMC)...")
        from ..analysis import mcmc_diagnostics
        from ..models.bayesian_binomial import (
            build_hierarchical_model,
            sample_hierarchical_model,
            save_idata,
        )
        from ..tables import posterior_table

        kwargs = {"random_seed": args.seed}
        if args.draws:
            kwargs["draws"] = args.draws
        idata = sample_hierarchical_model(build_hierarchical_model(df), **kwargs)
        save_idata(idata, config.PATH_IDATA_EGGS)
        summary = posterior_table(idata)
        show(summary)
        diag = mcmc_diagnostics(idata)
        print(f"  max R-hat {diag['rhat_max']:.4f}, min ESS {diag['ess_bulk_min']:.0f}, "
              f"divergences {diag['n_divergent']}")
        write_table(summary, "eggs_posterior_summary")
    else:
        print("\n[6/6] Bayesian model skipped (use --bayes)")

    print(f"\nOutputs written to {config.DIR_OUTPUT}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
