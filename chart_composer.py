"""
Dual-panel market chart
Price panel on top, market cap panel below, each with a marker for one
reference event
"""

from typing import NamedTuple

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')  # headless, file output only
import matplotlib.pyplot as plt
import matplotlib.dates as mdates

CANVAS_SIZE = (1024, 768)
DPI = 100

MARGIN = 10
CAPTION_AREA = 60
X_LABEL_AREA = 70
Y_LABEL_AREA = 50

CAPTION_FONT_SIZE = 36
LABEL_FONT_SIZE = 10

LINE_COLOR = 'red'
EVENT_COLOR = 'blue'
EVENT_RADIUS = 5  # px


class ChartError(Exception):
    """Base error for chart composition"""


class EmptySeriesError(ChartError):
    """No valued samples to take axis bounds from"""


class RenderFlushError(ChartError):
    """The finished canvas could not be written"""


class AnnotationEvent(NamedTuple):
    timestamp: pd.Timestamp
    value: float
    label: str = 'merge date'

    @classmethod
    def from_iso(cls, when, value, label='merge date'):
        ts = pd.Timestamp(when)
        ts = ts.tz_localize('UTC') if ts.tzinfo is None else ts.tz_convert('UTC')
        return cls(ts, float(value), label)


MERGE_EVENT = AnnotationEvent.from_iso('2022-09-15T06:43:00Z', 1450.0)


class PanelSpec(NamedTuple):
    series: str
    caption: str
    legend_label: str
    margin_left: int = MARGIN


class Bounds(NamedTuple):
    x_min: pd.Timestamp
    x_max: pd.Timestamp
    y_min: float
    y_max: float


def default_panels(asset='ETH'):
    # market caps need the wider left margin for their longer labels
    return (
        PanelSpec('prices', f'{asset} price', f'{asset} price in USD'),
        PanelSpec('market_caps', f'{asset} market cap', f'{asset} market cap in USD', margin_left=55),
    )


DEFAULT_PANELS = default_panels()


def compute_bounds(valued_samples):
    """X/Y extent of the valued samples"""
    if not valued_samples:
        raise EmptySeriesError("no valued samples to compute bounds from")

    timestamps = [s.timestamp for s in valued_samples]
    values = np.array([s.value for s in valued_samples], dtype=float)

    return Bounds(min(timestamps), max(timestamps), float(values.min()), float(values.max()))


def panel_rect(band, bands=2, margin_left=MARGIN, size=CANVAS_SIZE):
    """Axes rectangle (left, bottom, width, height) for a band, in figure fractions"""
    width, height = size
    band_height = height / bands
    band_top = height - band * band_height

    left = margin_left + Y_LABEL_AREA
    right = width - MARGIN
    top = band_top - MARGIN - CAPTION_AREA
    bottom = band_top - band_height + MARGIN + X_LABEL_AREA

    return (left / width, bottom / height, (right - left) / width, (top - bottom) / height)


def render_panel(figure, band, dataset, spec, event, bands=2, size=CANVAS_SIZE):
    """Draw one panel: mesh, series line, event marker and legend"""
    valued = dataset.valued_samples(spec.series)
    bounds = compute_bounds(valued)

    ax = figure.add_axes(panel_rect(band, bands, spec.margin_left, size))
    ax.set_title(spec.caption, fontsize=CAPTION_FONT_SIZE)

    ax.plot([s.timestamp for s in valued], [s.value for s in valued],
            color=LINE_COLOR, linewidth=1, label=spec.legend_label)

    # fixed limits: an event outside the domain is clipped, not clamped
    ax.set_xlim(bounds.x_min, bounds.x_max)
    ax.set_ylim(bounds.y_min, bounds.y_max)

    # marker area in points^2 for a radius given in pixels
    diameter_pt = 2 * EVENT_RADIUS * 72 / figure.dpi
    ax.scatter([event.timestamp], [event.value], s=diameter_pt ** 2,
               color=EVENT_COLOR, zorder=3, label=event.label)

    ax.grid(True, alpha=0.3)
    ax.xaxis.set_major_formatter(mdates.DateFormatter('%Y-%m-%d'))
    ax.tick_params(axis='x', labelrotation=270, labelsize=LABEL_FONT_SIZE)
    ax.tick_params(axis='y', labelsize=LABEL_FONT_SIZE)

    legend = ax.legend(loc='best', fancybox=False)
    frame = legend.get_frame()
    frame.set_alpha(None)
    frame.set_facecolor((1.0, 1.0, 1.0, 0.8))
    frame.set_edgecolor('black')

    return ax, bounds


def compose_chart(dataset, event=MERGE_EVENT, panels=DEFAULT_PANELS, size=CANVAS_SIZE):
    """Build the full figure, one band per panel, top to bottom"""
    width, height = size
    figure = plt.figure(figsize=(width / DPI, height / DPI), dpi=DPI)

    try:
        for band, spec in enumerate(panels):
            print(f"  Drawing panel '{spec.caption}'...")
            render_panel(figure, band, dataset, spec, event, bands=len(panels), size=size)
    except Exception:
        plt.close(figure)
        raise

    return figure


def present(figure, path):
    """Write the canvas to path (format from the extension) and release it"""
    try:
        figure.savefig(path)
    except (OSError, ValueError) as e:
        raise RenderFlushError(f"could not write chart to {path}: {e}") from e
    finally:
        plt.close(figure)

    print(f"✅ Saved {path}")
