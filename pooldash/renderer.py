"""Render chart descriptions to PNG with matplotlib."""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for server use
import matplotlib.pyplot as plt
from matplotlib.colors import to_rgba
from matplotlib.figure import Figure

from .charts import ChartSpec, SeriesSpec

logger = logging.getLogger(__name__)

# Chart.js point styles -> matplotlib markers
MARKERS = {
    'circle': 'o',
    'rectRot': 'D',
    'rect': 's',
    'triangle': '^',
}


def parse_color(color: str) -> Tuple[float, float, float, float]:
    """Convert "#rrggbb" or "rgba(r, g, b, a)" to a matplotlib RGBA tuple."""
    color = color.strip()
    if color.startswith('rgba(') and color.endswith(')'):
        r, g, b, a = [float(c) for c in color[5:-1].split(',')]
        return (r / 255, g / 255, b / 255, a)
    return to_rgba(color)


def _to_datetimes(xs: List[int]) -> List[datetime]:
    return [datetime.fromtimestamp(x / 1000) for x in xs]


class ChartRenderer:
    """Draw a ChartSpec onto a matplotlib figure."""

    def __init__(self, dpi: int = 100, figsize: Tuple[float, float] = (10, 3),
                 style: str = 'dark_background'):
        """Initialize renderer.

        Args:
            dpi: Output resolution
            figsize: Figure size in inches
            style: Matplotlib style sheet
        """
        self.dpi = dpi
        self.figsize = tuple(figsize)
        self.style = style

    def _draw_line(self, ax, series: SeriesSpec):
        if not series.points:
            return
        xs = _to_datetimes([p.x for p in series.points])
        ys = np.array([p.y for p in series.points], dtype=float)

        ax.plot(xs, ys, '-', color=series.color, linewidth=series.line_width,
                label=series.name, zorder=-series.order)

        if series.fill:
            # Approximate the vertical gradient with the top stop's alpha
            top = parse_color(series.gradient[0]) if series.gradient else parse_color(series.color)
            ax.fill_between(xs, ys, 0, color=top[:3], alpha=top[3] or 0.3,
                            linewidth=0, zorder=-series.order - 0.5)

    def _draw_scatter(self, ax, series: SeriesSpec):
        if not series.points:
            return
        xs = _to_datetimes([p.x for p in series.points])
        ys = [p.y for p in series.points]
        ax.scatter(xs, ys, marker=MARKERS.get(series.point_style, 'o'),
                   s=(series.point_radius * 2) ** 2,
                   facecolors=series.face_color or series.color,
                   edgecolors=series.color, linewidths=series.line_width,
                   label=series.name, zorder=10 - series.order)

    def draw(self, spec: ChartSpec) -> Figure:
        """Create a new figure for the spec. Caller owns and must close it."""
        with plt.style.context(self.style):
            fig, ax = plt.subplots(figsize=self.figsize)

            for series in spec.series:
                if series.kind == 'scatter':
                    self._draw_scatter(ax, series)
                else:
                    self._draw_line(ax, series)

            if spec.x_axis.min is not None and spec.x_axis.max is not None:
                ax.set_xlim(datetime.fromtimestamp(spec.x_axis.min / 1000),
                            datetime.fromtimestamp(spec.x_axis.max / 1000))
            if spec.y_axis.min is not None:
                ax.set_ylim(bottom=spec.y_axis.min)
            if spec.y_axis.max is not None:
                ax.set_ylim(top=spec.y_axis.max)

            ax.get_xaxis().set_visible(spec.x_axis.display)
            ax.get_yaxis().set_visible(spec.y_axis.display)
            for side in ('top', 'right', 'bottom', 'left'):
                ax.spines[side].set_visible(False)
            ax.set_title(spec.title, fontweight='bold')
            fig.tight_layout()

        return fig

    def to_png(self, fig: Figure) -> bytes:
        """Serialize a figure to PNG bytes."""
        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=self.dpi, bbox_inches='tight')
        buf.seek(0)
        image_bytes = buf.read()
        buf.close()
        return image_bytes


class ChartSlot:
    """Holds the live figure of one chart.

    Every rebuild releases the previous figure before the new one is
    created, so at most one figure per slot is ever open.
    """

    def __init__(self, name: str, renderer: ChartRenderer, output_dir: Optional[str] = None):
        """Initialize slot.

        Args:
            name: Chart name, also the PNG file stem
            renderer: Renderer used to draw specs
            output_dir: Directory for PNG output (None keeps images in memory only)
        """
        self.name = name
        self.renderer = renderer
        self.output_dir = Path(output_dir) if output_dir else None
        self.figure: Optional[Figure] = None
        self.spec: Optional[ChartSpec] = None
        self.image: Optional[bytes] = None
        self.renders = 0

    def release(self):
        """Close the current figure, if any."""
        if self.figure is not None:
            plt.close(self.figure)
            self.figure = None

    def replace(self, spec: ChartSpec) -> bytes:
        """Release the previous figure and render the new spec.

        Returns:
            PNG image as bytes
        """
        self.release()
        self.figure = self.renderer.draw(spec)
        self.spec = spec
        self.image = self.renderer.to_png(self.figure)
        self.renders += 1

        if self.output_dir is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"{self.name}.png"
            path.write_bytes(self.image)
            logger.debug(f"Chart {self.name} written to {path} ({len(self.image)} bytes)")

        return self.image

    @property
    def path(self) -> Optional[Path]:
        if self.output_dir is None:
            return None
        return self.output_dir / f"{self.name}.png"
