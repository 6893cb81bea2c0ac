"""Time-series preparation for the hashrate charts."""

import logging
import math
from typing import Iterable, List, Mapping, Sequence, Union

import numpy as np

from .models import HashrateSample, NormalizedPoint, PoolBlock, SnappedEvent

logger = logging.getLogger(__name__)

WINDOW_MS = 24 * 60 * 60 * 1000

Sample = Union[HashrateSample, Mapping]


def _as_sample(raw: Sample) -> HashrateSample:
    if isinstance(raw, HashrateSample):
        return raw
    return HashrateSample.model_validate(raw)


def normalize_series(samples: Iterable[Sample], now_ms: int,
                     window_ms: int = WINDOW_MS) -> List[NormalizedPoint]:
    """Restrict samples to the trailing window and sort them by time.

    Args:
        samples: Hashrate samples (models or raw ``{"ts", "hs"}`` mappings)
        now_ms: Reference instant in epoch milliseconds
        window_ms: Window length in milliseconds

    Returns:
        Points ascending by x, all with x >= now_ms - window_ms
    """
    if samples is None or isinstance(samples, (Mapping, str, bytes)):
        return []

    cutoff = now_ms - window_ms
    points = []
    for raw in samples:
        sample = _as_sample(raw)
        if sample.ts >= cutoff:
            points.append(NormalizedPoint(x=sample.ts, y=sample.hs))

    # sorted() is stable, equal timestamps keep their input order
    return sorted(points, key=lambda p: p.x)


def nearest_value(line: Sequence[NormalizedPoint], x: int) -> float:
    """Value of the line point closest in time to x, 0 for an empty line.

    On a tie the earlier point in the sequence wins.
    """
    if not line:
        return 0.0
    xs = np.fromiter((p.x for p in line), dtype=np.int64, count=len(line))
    # argmin returns the first index of the minimum
    idx = int(np.argmin(np.abs(xs - x)))
    return line[idx].y


def snap_events(blocks: Iterable[Union[PoolBlock, Mapping]], line: Sequence[NormalizedPoint],
                now_ms: int, window_ms: int = WINDOW_MS) -> List[SnappedEvent]:
    """Place block events on the hashrate line.

    Args:
        blocks: Pool blocks (models or raw mappings)
        line: Normalized hashrate series for the same window
        now_ms: Reference instant in epoch milliseconds
        window_ms: Window length in milliseconds

    Returns:
        One SnappedEvent per block inside [now_ms - window_ms, now_ms], in input order
    """
    cutoff = now_ms - window_ms
    events = []
    for raw in blocks or []:
        block = raw if isinstance(raw, PoolBlock) else PoolBlock.model_validate(raw)
        x = block.ts
        if x < cutoff or x > now_ms:
            continue
        events.append(SnappedEvent(
            x=x,
            y=nearest_value(line, x),
            height=block.height,
            effort=math.floor(block.effort + 0.5),
        ))

    logger.debug(f"Snapped {len(events)} block events onto {len(line)} line points")
    return events
