import pandas as pd

from binomial_pooling.scripts import egg_chapter, league_chapter


def test_league_chapter_writes_tables(output_dir, capsys):
    assert league_chapter.main(["--output-dir", str(output_dir), "--no-plots"]) == 0
    out = capsys.readouterr().out
    assert "Model comparison" in out
    aic = pd.read_csv(output_dir / "tables" / "league_aic.csv", index_col=0)
    assert {"complete pooling", "no pooling", "partial pooling", "beta-binomial"} == set(aic.index)
    shrink = pd.read_csv(output_dir / "tables" / "league_shrinkage.csv", index_col=0)
    assert len(shrink) == 30


def test_egg_chapter_writes_figures(output_dir):
    assert egg_chapter.main(["--output-dir", str(output_dir), "--n-cartons", "40", "--seed", "3"]) == 0
    assert (output_dir / "figures" / "eggs_carton_counts.png").exists()
    assert (output_dir / "figures" / "eggs_sigma_profile.png").exists()
    params = pd.read_csv(output_dir / "tables" / "eggs_parameters.csv", index_col=0)
    assert "sigma" in set(params["parameter"])


def test_run_eggs_results(eggs_df):
    res = egg_chapter.run_eggs(eggs_df, profile_points=8)
    assert res["dispersion"]["dispersion"] > 1.0
    assert res["aic"].index[0] in {"carton random effect", "beta-binomial"}
    lo, hi = res["sigma_ci"]
    assert lo < res["fits"]["carton random effect"].sigma < hi
