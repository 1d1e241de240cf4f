"""
Choropleth maps of canton incidence.
Shows the quantile classes and the continuous incidence per 100,000 inhabitants.
Cantons without incidence are drawn in grey with hatching rather than left out.
"""

import logging
from pathlib import Path
import matplotlib.pyplot as plt

from src.config import FIGURE_DIR

logger = logging.getLogger(__name__)

MISSING_KWDS = {
    'color': 'lightgrey',
    'edgecolor': 'darkgrey',
    'hatch': '///',
    'label': 'No data',
}


def plot_incidence_bins(regions, ax=None, cmap='YlOrRd', title='COVID-19 incidence per 100,000 inhabitants'):
    """Draw the quantile classes in `incidence_bin` as a categorical choropleth."""
    if ax is None:
        _, ax = plt.subplots(1, 1, figsize=(12, 8))

    regions.plot(
        column='incidence_bin',
        ax=ax,
        categorical=True,
        cmap=cmap,
        edgecolor='white',
        linewidth=0.5,
        legend=True,
        missing_kwds=MISSING_KWDS,
        legend_kwds={
            'title': 'Cases per 100,000',
            'loc': 'lower left',
            'frameon': False,
        }
    )
    ax.set_title(title, fontsize=16, pad=12)
    ax.axis('off')
    return ax


def plot_incidence(regions, ax=None, cmap='YlOrRd', title='COVID-19 incidence per 100,000 inhabitants'):
    """Draw incidence as a continuous choropleth with a colour bar."""
    if ax is None:
        _, ax = plt.subplots(1, 1, figsize=(12, 8))

    regions.plot(
        column='incidence',
        ax=ax,
        cmap=cmap,
        edgecolor='white',
        linewidth=0.5,
        legend=True,
        missing_kwds=MISSING_KWDS,
        legend_kwds={
            'label': 'Cases per 100,000',
            'orientation': 'horizontal',
            'fraction': 0.046,
            'pad': 0.04,
            'aspect': 30
        }
    )
    ax.set_title(title, fontsize=16, pad=12)
    ax.axis('off')
    return ax


def save_incidence_maps(regions, output_dir=FIGURE_DIR, dpi=200):
    """Render both maps to PNG files in `output_dir` and return their paths."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    outputs = []
    for name, plot in (('incidence_quantiles.png', plot_incidence_bins), ('incidence.png', plot_incidence)):
        fig, ax = plt.subplots(1, 1, figsize=(12, 8))
        try:
            plot(regions, ax=ax)
            output_path = output_dir / name
            fig.savefig(output_path, dpi=dpi, bbox_inches='tight', pad_inches=0.3)
        finally:
            plt.close(fig)
        logger.info(f"Map saved to {output_path}")
        outputs.append(output_path)

    return outputs
