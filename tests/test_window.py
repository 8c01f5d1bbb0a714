from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from netload_reporter.monitoring.rates import RatePair
from netload_reporter.monitoring.window import WindowedAverageTracker

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
ZERO = RatePair(0.0, 0.0)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def test_single_point_falls_back_to_instantaneous() -> None:
    tracker = WindowedAverageTracker(300)
    inst = RatePair(rx_bytes_per_sec=4000.0, tx_bytes_per_sec=2000.0)
    out = tracker.update(at(1), 4000, 2000, instantaneous=inst)
    assert out.rates == inst
    assert out.span_seconds == 0.0
    assert len(tracker) == 1


def test_average_is_independent_of_sampling_interval() -> None:
    fine = WindowedAverageTracker(300)
    for i in range(1, 11):
        fine_out = fine.update(at(i * 10), 1, 1, instantaneous=ZERO)

    coarse = WindowedAverageTracker(300)
    for i in range(1, 3):
        coarse_out = coarse.update(at(i * 50), 5, 5, instantaneous=ZERO)

    assert fine_out.rates.rx_bytes_per_sec == pytest.approx(0.1)
    assert coarse_out.rates.rx_bytes_per_sec == pytest.approx(0.1)
    assert fine_out.rates == coarse_out.rates


def test_prunes_points_older_than_window() -> None:
    tracker = WindowedAverageTracker(300)
    for i in range(1, 11):
        tracker.update(at(i * 60), 60, 0, instantaneous=ZERO)
    # now=600, cutoff=300: the point at 300 is the latest one covering the window
    assert tracker.oldest is not None
    assert tracker.oldest.at == at(300)
    assert len(tracker) == 6
    out = tracker.update(at(660), 60, 0, instantaneous=ZERO)
    assert tracker.oldest.at == at(360)
    assert out.span_seconds == 300.0
    assert out.rates.rx_bytes_per_sec == pytest.approx(1.0)


def test_stale_head_is_kept_until_a_newer_point_covers_window() -> None:
    tracker = WindowedAverageTracker(60)
    tracker.update(at(0), 10, 10, instantaneous=ZERO)
    out = tracker.update(at(3600), 36, 0, instantaneous=ZERO)
    assert len(tracker) == 2
    assert tracker.oldest is not None and tracker.oldest.at == at(0)
    assert out.span_seconds == 3600.0
    assert out.rates.rx_bytes_per_sec == pytest.approx(36 / 3600)

    tracker.update(at(3700), 0, 0, instantaneous=ZERO)
    assert tracker.oldest.at == at(3600)


def test_history_never_empties() -> None:
    tracker = WindowedAverageTracker(1)
    for i in range(50):
        tracker.update(at(i * 100), 1, 1, instantaneous=ZERO)
        assert len(tracker) >= 1


def test_sparse_series_keeps_oldest_reference() -> None:
    tracker = WindowedAverageTracker(60)
    tracker.update(at(0), 0, 0, instantaneous=ZERO)
    out = tracker.update(at(45), 90, 45, instantaneous=ZERO)
    assert len(tracker) == 2
    assert out.rates.rx_bytes_per_sec == pytest.approx(2.0)
    assert out.rates.tx_bytes_per_sec == pytest.approx(1.0)


def test_rejects_non_positive_window() -> None:
    with pytest.raises(ValueError):
        WindowedAverageTracker(0)
