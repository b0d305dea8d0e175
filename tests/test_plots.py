import matplotlib.pyplot as plt
import pytest

from binomial_pooling.analysis import compare_estimates, profile_parameter
from binomial_pooling.visualization import (
    plot_carton_counts,
    plot_group_intervals,
    plot_profile,
    plot_shrinkage,
    plot_shrinkage_vs_trials,
    save_figure,
    setup_style,
)


@pytest.fixture(scope="module")
def table(sim_df, mixed_fit, pooled_fit):
    return compare_estimates(sim_df, mixed=mixed_fit, pooled=pooled_fit)


def test_shrinkage_plots(table):
    setup_style()
    fig, ax = plot_shrinkage(table, annotate=3)
    assert len(ax.collections) >= 2
    plt.close(fig)
    fig, ax = plot_shrinkage_vs_trials(table)
    assert ax.get_xscale() == "log"
    plt.close(fig)


def test_profile_plot(sim_df, mixed_fit):
    prof = profile_parameter(sim_df, mixed_fit, "sigma", n_points=6)
    fig, ax = plot_profile(prof)
    assert ax.get_xlabel() == "sigma"
    plt.close(fig)


def test_group_intervals_and_carton_plots(mixed_fit, eggs_df):
    fig, ax = plot_group_intervals(mixed_fit.group_estimates(), pooled=0.4, max_groups=10)
    assert len(ax.get_yticks()) == 10
    plt.close(fig)
    fig, ax = plot_carton_counts(eggs_df)
    assert len(ax.patches) == 13
    plt.close(fig)


def test_save_figure(tmp_path):
    fig, ax = plt.subplots()
    ax.plot([0, 1], [0, 1])
    paths = save_figure(fig, "line", output_dir=tmp_path, formats=["png", "pdf"])
    assert [p.name for p in paths] == ["line.png", "line.pdf"]
    assert all(p.exists() for p in paths)


def test_save_figure_default_format(tmp_path):
    fig, _ = plt.subplots()
    paths = save_figure(fig, "blank", output_dir=tmp_path)
    assert [p.name for p in paths] == ["blank.png"]
