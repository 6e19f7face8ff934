"""
Pytest tests for aggregate.py (window filter, series, max/avg rows, time tables).

Run from the repository root:
    pytest workflow_telemetry/test_aggregate.py -v
"""

import math

from workflow_telemetry.aggregate import (
    CPU,
    DISK,
    MEMORY,
    NETWORK,
    aggregate,
    filter_window,
    floor_value,
)
from workflow_telemetry.stat_types import (
    UNBOUNDED,
    CPUStats,
    DiskStats,
    ExecutionWindow,
    MemoryStats,
    NetworkStats,
    ReportMode,
    SeriesPoint,
)


def cpu(t, user, sys_):
    return CPUStats(time=t, total_load=None, user_load=user, system_load=sys_)


def mem(t, active, total, available=None):
    return MemoryStats(time=t, total_memory_mb=total, active_memory_mb=active, available_memory_mb=available)


# ============================================================================
# CPU
# ============================================================================

def test_cpu_series_and_summary_rows():
    """Three samples in [0, 2000] give the documented series and max/avg rows."""
    samples = [cpu(0, 10, 5), cpu(1000, 20, 10), cpu(2000, 30, 5)]
    result = aggregate(samples, ExecutionWindow(0, 2000), CPU)

    assert result.series["user_load"] == (SeriesPoint(0, 10), SeriesPoint(1000, 20), SeriesPoint(2000, 30))
    assert [p.y for p in result.series["system_load"]] == [5, 10, 5]
    assert [r.as_list() for r in result.summary_rows] == [
        ["CPU(user)", "30.00%", "20.00%"],
        ["CPU(sys)", "10.00%", "6.67%"],
    ]
    assert result.sample_count == 3


def test_cpu_series_share_x_axis():
    samples = [cpu(0, 1, None), cpu(5000, None, 2), cpu(10000, 3, 4)]
    result = aggregate(samples, UNBOUNDED, CPU)
    assert [p.x for p in result.series["user_load"]] == [p.x for p in result.series["system_load"]]


# ============================================================================
# Flooring and filtering
# ============================================================================

def test_negative_and_missing_values_plot_as_zero():
    """Negative, None and NaN readings never reach the series, max or sum."""
    samples = [cpu(0, -5, None), cpu(1000, float("nan"), -0.1), cpu(2000, 4, 2)]
    result = aggregate(samples, UNBOUNDED, CPU)

    assert [p.y for p in result.series["user_load"]] == [0, 0, 4]
    assert [p.y for p in result.series["system_load"]] == [0, 0, 2]
    for points in result.series.values():
        assert all(p.y >= 0 and not math.isnan(p.y) for p in points)
    assert result.summary_rows[0].max_value == "4.00%"
    assert result.summary_rows[0].avg_value == "1.33%"


def test_floor_value():
    assert floor_value(None) == 0
    assert floor_value(-1) == 0
    assert floor_value(float("nan")) == 0
    assert floor_value(2.5) == 2.5


def test_window_is_inclusive_on_both_ends():
    samples = [cpu(999, 1, 1), cpu(1000, 2, 2), cpu(1500, 3, 3), cpu(2000, 4, 4), cpu(2001, 5, 5)]
    kept = filter_window(samples, ExecutionWindow(1000, 2000))
    assert [s.time for s in kept] == [1000, 1500, 2000]

    result = aggregate(samples, ExecutionWindow(1000, 2000), CPU)
    assert [p.x for p in result.series["user_load"]] == [1000, 1500, 2000]


def test_unbounded_window_keeps_everything():
    samples = [cpu(t, 1, 1) for t in (0, 10, 20)]
    assert len(filter_window(samples, UNBOUNDED)) == 3


# ============================================================================
# Empty input
# ============================================================================

def test_empty_input_yields_placeholders_without_division_errors():
    for desc in (CPU, MEMORY, NETWORK, DISK):
        for mode in (ReportMode.SUMMARY, ReportMode.TIMESERIES):
            result = aggregate([], ExecutionWindow(0, 1000), desc, mode)
            assert result.is_empty
            assert all(len(points) == 0 for points in result.series.values())
            text = " ".join(" ".join(r.as_list()) for r in result.summary_rows)
            assert "nan" not in text.lower()
            assert "inf" not in text.lower()


def test_all_samples_outside_window_is_empty():
    result = aggregate([cpu(5000, 10, 10)], ExecutionWindow(0, 1000), CPU)
    assert result.is_empty
    assert result.summary_rows[0].as_list() == ["CPU(user)", "0.00%", "0.00%"]


def test_aggregate_is_pure():
    samples = [mem(0, 100, 1000, 900), mem(1000, 200, 1000, 800)]
    first = aggregate(samples, UNBOUNDED, MEMORY, ReportMode.TIMESERIES)
    second = aggregate(samples, UNBOUNDED, MEMORY, ReportMode.TIMESERIES)
    assert first == second


# ============================================================================
# Memory capacity rule
# ============================================================================

def test_memory_usage_percentage():
    samples = [mem(0, 100, 1000), mem(1000, 200, 1000), mem(2000, 300, 1000)]
    result = aggregate(samples, UNBOUNDED, MEMORY)
    assert [r.as_list() for r in result.summary_rows] == [
        ["Memory", "300.00M(0.30%)", "200.00M(0.20%)"],
    ]
    # Summary mode plots the used series only.
    assert list(result.series) == ["active_memory"]


def test_memory_average_uses_sum_of_running_max_capacity():
    """Capacity sum is 1000 + 1000 (max kept when total drops) + 3000."""
    samples = [mem(0, 200, 1000), mem(1000, 200, 500), mem(2000, 200, 3000)]
    result = aggregate(samples, UNBOUNDED, MEMORY)
    row = result.summary_rows[0]
    assert row.max_value == "200.00M(0.07%)"
    assert row.avg_value == "200.00M(0.12%)"


def test_memory_without_capacity_does_not_divide_by_zero():
    result = aggregate([mem(0, 100, None)], UNBOUNDED, MEMORY)
    assert result.summary_rows[0].as_list() == ["Memory", "100.00M(0.00%)", "100.00M(0.00%)"]


# ============================================================================
# Network / disk
# ============================================================================

def test_network_and_disk_rows_have_no_average():
    net = aggregate([NetworkStats(0, 1.5, 2.25), NetworkStats(1, -1, 3)], UNBOUNDED, NETWORK)
    assert [r.as_list() for r in net.summary_rows] == [
        ["Network I/O Read", "1.50M", "-"],
        ["Network I/O Write", "3.00M", "-"],
    ]
    disk = aggregate([DiskStats(0, 4, None)], UNBOUNDED, DISK)
    assert [r.as_list() for r in disk.summary_rows] == [
        ["Disk I/O Read", "4.00M", "-"],
        ["Disk I/O Write", "0.00M", "-"],
    ]
    assert [p.y for p in disk.series["write"]] == [0]


# ============================================================================
# Time-series tables
# ============================================================================

def test_timeseries_table_uses_first_sample_as_origin():
    samples = [mem(10000, 100, 1000, 900), mem(15000, 300, 1000, 700)]
    result = aggregate(samples, UNBOUNDED, MEMORY, ReportMode.TIMESERIES)

    assert list(result.series) == ["active_memory", "available_memory"]
    assert result.table == (
        ("Time", "Used", "Available"),
        ("0s", "100.00M", "900.00M"),
        ("5s", "300.00M", "700.00M"),
        ("**Max**", "300.00M", "900.00M"),
        ("**Avg**", "200.00M", "800.00M"),
    )


def test_timeseries_table_uses_window_start_when_bounded():
    samples = [cpu(3000, 10, 5), cpu(6000, 20, 5)]
    result = aggregate(samples, ExecutionWindow(1000, 7000), CPU, ReportMode.TIMESERIES)
    assert [row[0] for row in result.table[1:3]] == ["2s", "5s"]


def test_summary_mode_has_no_table():
    result = aggregate([cpu(0, 1, 1)], UNBOUNDED, CPU, ReportMode.SUMMARY)
    assert result.table == ()
