from .plots import (
    plot_carton_counts,
    plot_group_intervals,
    plot_profile,
    plot_shrinkage,
    plot_shrinkage_vs_trials,
)
from .style import COLORS_POOLING, COLORS_WONG, save_figure, setup_style

__all__ = [
    "plot_carton_counts",
    "plot_group_intervals",
    "plot_profile",
    "plot_shrinkage",
    "plot_shrinkage_vs_trials",
    "COLORS_POOLING",
    "COLORS_WONG",
    "save_figure",
    "setup_style",
]
