"""
style.py - Shared figure styling and saving

Usage:
    from binomial_pooling.visualization.style import setup_style, save_figure

    setup_style()
    fig, ax = plt.subplots(figsize=FIGSIZE_SINGLE)
    ...
    save_figure(fig, "shrinkage", formats=["png", "pdf"])
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

import matplotlib as mpl
import matplotlib.pyplot as plt
import seaborn as sns

from .. import config

logger = logging.getLogger(__name__)

# =============================================================================
# Figure Settings
# =============================================================================

DPI_SCREEN = 150
DPI_PRINT = 300

FIGSIZE_SINGLE = (4.5, 3.5)
FIGSIZE_WIDE = (7.0, 4.0)
FIGSIZE_TALL = (4.5, 7.0)

# Wong (2011) colorblind-safe palette
COLORS_WONG = {
    'blue': '#0072B2',
    'orange': '#E69F00',
    'green': '#009E73',
    'vermillion': '#D55E00',
    'purple': '#CC79A7',
    'sky_blue': '#56B4E9',
    'black': '#000000',
}

# Role colors used across chapter figures
COLORS_POOLING = {
    'raw': COLORS_WONG['vermillion'],
    'partial': COLORS_WONG['blue'],
    'pooled': COLORS_WONG['black'],
    'eb': COLORS_WONG['green'],
}


def setup_style(context: str = 'paper'):
    """Seaborn whitegrid theme with the colorblind-safe cycle."""
    sns.set_theme(context=context, style='whitegrid')
    plt.rcParams.update({
        'figure.dpi': DPI_SCREEN,
        'savefig.dpi': DPI_PRINT,
        'savefig.bbox': 'tight',
        'axes.spines.top': False,
        'axes.spines.right': False,
        'legend.frameon': False,
    })
    plt.rcParams['axes.prop_cycle'] = mpl.cycler(color=list(COLORS_WONG.values()))


def save_figure(
    fig: plt.Figure,
    name: str,
    output_dir: Optional[Path] = None,
    formats: Sequence[str] = ('png',),
    dpi: Optional[int] = None,
    close: bool = True
) -> List[Path]:
    """
    Save ``fig`` as ``<output_dir>/<name>.<fmt>`` for each format.

    output_dir defaults to ``config.DIR_FIGURES``; vector formats ignore dpi.
    """
    output_dir = Path(output_dir or config.DIR_FIGURES)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for fmt in formats:
        filepath = output_dir / f"{name}.{fmt}"
        if fmt in ('pdf', 'svg', 'eps'):
            fig.savefig(filepath, format=fmt, bbox_inches='tight')
        else:
            fig.savefig(filepath, format=fmt, dpi=dpi or DPI_PRINT, bbox_inches='tight')
        logger.info("Saved figure %s", filepath)
        paths.append(filepath)

    if close:
        plt.close(fig)
    return paths
