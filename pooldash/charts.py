"""Chart descriptions for the pool and miner hashrate charts.

Builders turn raw API series into a ``ChartSpec``: a plain value object
describing every series, its style and the shared axis bounds. Drawing is
left to ``pooldash.renderer``.
"""

import logging
import zlib
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from .formatting import format_hashrate
from .models import NormalizedPoint, SnappedEvent
from .series import WINDOW_MS, normalize_series, snap_events

logger = logging.getLogger(__name__)

# Pool / total hashrate colour
ACCENT_COLOR = '#F26822'
GRADIENT_TOP = 'rgba(242, 104, 34, 0.5)'
GRADIENT_BOTTOM = 'rgba(242, 104, 34, 0.0)'

# Worker colour palette (bright colours that work on dark backgrounds)
WORKER_COLORS = [
    '#ffb700',  # Yellow
    '#00d2d3',  # Cyan
    '#5f27cd',  # Purple
    '#ff9f43',  # Orange
    '#54a0ff',  # Blue
    '#ff6b6b',  # Red
]

GLOBAL_KEY = 'global'
TOTAL_LABEL = 'Total'

ColorMode = Literal['positional', 'stable']


class AxisSpec(BaseModel):
    """Axis bounds; axes are drawn without ticks or labels by default."""

    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None
    display: bool = False


class SeriesSpec(BaseModel):
    """One named series of a chart."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: Literal['line', 'scatter']
    points: List[Union[NormalizedPoint, SnappedEvent]] = Field(default_factory=list)
    color: str
    fill: bool = False
    gradient: Optional[List[str]] = None
    face_color: Optional[str] = None
    line_width: float = 2
    point_radius: float = 0
    point_style: str = 'circle'
    tension: float = 0.4
    order: int = 0

    def tooltip(self, index: int, prefix_name: bool = False) -> str:
        """Tooltip text for the point at index."""
        point = self.points[index]
        if isinstance(point, SnappedEvent):
            return f"Block {point.height}: {point.effort}% Effort"
        label = format_hashrate(point.y)
        return f"{self.name}: {label}" if prefix_name else label


class ChartSpec(BaseModel):
    """Complete description of a chart handed to the renderer."""

    model_config = ConfigDict(frozen=True)

    title: str
    series: List[SeriesSpec]
    x_axis: AxisSpec
    y_axis: AxisSpec = AxisSpec(min=0)
    tooltip_names: bool = False

    def get(self, name: str) -> Optional[SeriesSpec]:
        """Series by name, None if absent."""
        return next((s for s in self.series if s.name == name), None)

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.series]

    def tooltip(self, name: str, index: int) -> str:
        """Tooltip for a point of the named series."""
        series = self.get(name)
        if series is None:
            raise KeyError(name)
        return series.tooltip(index, prefix_name=self.tooltip_names)


def _time_axis(now_ms: int, window_ms: int) -> AxisSpec:
    return AxisSpec(min=now_ms - window_ms, max=now_ms)


def build_pool_chart(hashrate_data: Sequence[Any], blocks: Sequence[Any], now_ms: int,
                     window_ms: int = WINDOW_MS) -> ChartSpec:
    """Build the pool hashrate chart with block discoveries on the line.

    Args:
        hashrate_data: Raw pool hashrate samples
        blocks: Raw pool blocks
        now_ms: Reference instant in epoch milliseconds
        window_ms: Window length in milliseconds

    Returns:
        ChartSpec with a "Hashrate" line and a "Blocks" scatter series
    """
    line = normalize_series(hashrate_data, now_ms, window_ms)
    events = snap_events(blocks, line, now_ms, window_ms)

    hashrate_series = SeriesSpec(
        name='Hashrate',
        kind='line',
        points=line,
        color=ACCENT_COLOR,
        fill=True,
        gradient=[GRADIENT_TOP, GRADIENT_BOTTOM],
        line_width=2,
        point_radius=0,
        tension=0.4,
        order=2,
    )
    blocks_series = SeriesSpec(
        name='Blocks',
        kind='scatter',
        points=events,
        color='#FFD700',
        face_color='#fff',
        line_width=2,
        point_radius=6,
        point_style='rectRot',
        tension=0,
        order=1,
    )

    logger.debug(f"Pool chart: {len(line)} hashrate points, {len(events)} blocks")
    return ChartSpec(
        title='Pool Hashrate (24h)',
        series=[hashrate_series, blocks_series],
        x_axis=_time_axis(now_ms, window_ms),
    )


def worker_color(name: str, placed: int, mode: ColorMode = 'positional') -> str:
    """Pick a palette colour for a worker.

    Args:
        name: Worker identifier
        placed: Number of workers already given a colour
        mode: "positional" cycles by placement, "stable" hashes the name

    Returns:
        Hex colour string
    """
    if mode == 'stable':
        idx = zlib.crc32(name.encode('utf-8'))
    else:
        idx = placed
    return WORKER_COLORS[idx % len(WORKER_COLORS)]


def build_miner_chart(workers_data: Mapping[str, Any], now_ms: int,
                      window_ms: int = WINDOW_MS, color_mode: ColorMode = 'positional') -> ChartSpec:
    """Build the per-worker hashrate chart.

    Args:
        workers_data: Series name -> raw samples; "global" is the miner total
        now_ms: Reference instant in epoch milliseconds
        window_ms: Window length in milliseconds
        color_mode: Worker colour assignment, see ``worker_color``

    Returns:
        ChartSpec with a "Total" line (when present) plus one line per
        worker that has data inside the window
    """
    series: List[SeriesSpec] = []

    if workers_data.get(GLOBAL_KEY) is not None:
        series.append(SeriesSpec(
            name=TOTAL_LABEL,
            kind='line',
            points=normalize_series(workers_data[GLOBAL_KEY], now_ms, window_ms),
            color=ACCENT_COLOR,
            fill=True,
            gradient=[GRADIENT_TOP, GRADIENT_BOTTOM],
            line_width=2,
            order=10,  # Bottom layer
        ))

    placed = 0
    for key, samples in workers_data.items():
        if key == GLOBAL_KEY:
            continue
        points = normalize_series(samples, now_ms, window_ms)
        if not points:
            logger.debug(f"Worker {key} has no data in window, skipped")
            continue
        series.append(SeriesSpec(
            name=key,
            kind='line',
            points=points,
            color=worker_color(key, placed, color_mode),
            fill=False,
            line_width=1.5,
            order=5,
        ))
        placed += 1

    logger.debug(f"Miner chart: {len(series)} series ({placed} workers)")
    return ChartSpec(
        title='Worker Hashrate (24h)',
        series=series,
        x_axis=_time_axis(now_ms, window_ms),
        tooltip_names=True,
    )


def chart_summary(spec: ChartSpec) -> Dict[str, int]:
    """Point count per series, used for logging and the status view."""
    return {s.name: len(s.points) for s in spec.series}
