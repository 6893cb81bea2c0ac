"""Tests for the pool and miner chart builders."""

from pooldash.charts import (
    WORKER_COLORS, build_miner_chart, build_pool_chart, chart_summary, worker_color,
)
from pooldash.series import WINDOW_MS

from conftest import HOUR, NOW, hashrate_series


def test_pool_chart_has_line_and_scatter():
    samples = hashrate_series([100, 200, 300])
    blocks = [{"height": 77, "ts": NOW - 2 * HOUR, "shares": 90, "diff": 100}]

    spec = build_pool_chart(samples, blocks, NOW)

    assert spec.names == ['Hashrate', 'Blocks']
    hashrate, scatter = spec.series
    assert hashrate.kind == 'line'
    assert hashrate.fill is True
    assert hashrate.point_radius == 0
    assert scatter.kind == 'scatter'
    assert scatter.point_style == 'rectRot'
    assert len(scatter.points) == 1
    assert scatter.points[0].y == 200


def test_pool_chart_axes_cover_fixed_window():
    spec = build_pool_chart([], [], NOW)
    assert spec.x_axis.min == NOW - WINDOW_MS
    assert spec.x_axis.max == NOW
    assert spec.x_axis.display is False
    assert spec.y_axis.min == 0
    assert spec.y_axis.display is False


def test_pool_chart_tooltips():
    spec = build_pool_chart(hashrate_series([2_000_000]),
                            [{"height": 77, "ts": NOW - 3 * HOUR, "shares": 150, "diff": 100}], NOW)
    assert spec.tooltip('Hashrate', 0) == "2.00 MH/s"
    assert spec.tooltip('Blocks', 0) == "Block 77: 150% Effort"


def test_pool_chart_empty_inputs():
    spec = build_pool_chart([], [], NOW)
    assert len(spec.series) == 2
    assert chart_summary(spec) == {'Hashrate': 0, 'Blocks': 0}


def test_miner_chart_total_and_workers():
    data = {
        "global": hashrate_series([10, 20]),
        "rig1": hashrate_series([5, 10]),
        "rig2": hashrate_series([5, 10]),
    }
    spec = build_miner_chart(data, NOW)

    assert spec.names == ['Total', 'rig1', 'rig2']
    total = spec.get('Total')
    assert total.fill is True
    assert total.order > spec.get('rig1').order
    assert spec.get('rig1').color == WORKER_COLORS[0]
    assert spec.get('rig2').color == WORKER_COLORS[1]
    assert spec.x_axis.min == NOW - WINDOW_MS
    assert spec.y_axis.min == 0


def test_miner_chart_omits_workers_without_recent_data():
    data = {
        "global": hashrate_series([10]),
        "stale": hashrate_series([1], start=NOW - 48 * HOUR),
        "empty": [],
        "rig": hashrate_series([3]),
    }
    spec = build_miner_chart(data, NOW)

    assert spec.names == ['Total', 'rig']
    # Colour index counts placed workers only
    assert spec.get('rig').color == WORKER_COLORS[0]


def test_miner_chart_without_global_series():
    spec = build_miner_chart({"rig": hashrate_series([3])}, NOW)
    assert spec.names == ['rig']


def test_miner_chart_colors_cycle_palette():
    data = {f"w{i}": hashrate_series([i + 1]) for i in range(len(WORKER_COLORS) + 2)}
    spec = build_miner_chart(data, NOW)
    colors = [s.color for s in spec.series]
    assert colors[len(WORKER_COLORS)] == WORKER_COLORS[0]
    assert colors[len(WORKER_COLORS) + 1] == WORKER_COLORS[1]


def test_miner_chart_colors_are_deterministic():
    data = {"a": hashrate_series([1]), "b": hashrate_series([2]), "c": hashrate_series([3])}
    first = [s.color for s in build_miner_chart(data, NOW).series]
    second = [s.color for s in build_miner_chart(data, NOW).series]
    assert first == second


def test_stable_colors_survive_worker_changes():
    both = {"a": hashrate_series([1]), "b": hashrate_series([2])}
    only_b = {"b": hashrate_series([2])}
    color_b = build_miner_chart(both, NOW, color_mode='stable').get('b').color
    assert build_miner_chart(only_b, NOW, color_mode='stable').get('b').color == color_b
    assert worker_color('b', 5, 'stable') == color_b


def test_miner_tooltips_include_series_name():
    spec = build_miner_chart({"global": hashrate_series([1500]), "rig1": hashrate_series([999])}, NOW)
    assert spec.tooltip('Total', 0) == "Total: 1.50 KH/s"
    assert spec.tooltip('rig1', 0) == "rig1: 999.00 H/s"
