"""Tests for cycle pacing."""

import pytest

from traffic_worker.cycle.pacing import PacingController, pacing_delay


def test_delay_is_proportional_share_minus_elapsed():
    # 20 of 200 items in a 750s cycle -> 75s budget
    assert pacing_delay(750.0, 20, 200, 15.0) == pytest.approx(60.0)


def test_overrun_never_goes_negative():
    assert pacing_delay(100.0, 10, 100, 25.0) == 0.0


@pytest.mark.parametrize("total,chunk_size", [(100, 10), (100, 25), (12, 3)])
def test_even_cycle_sleeps_sum_to_target(total, chunk_size):
    """With zero processing latency a full cycle of sleeps adds up to the target."""
    delays = [pacing_delay(600.0, chunk_size, total, 0.0) for _ in range(total // chunk_size)]
    assert sum(delays) == pytest.approx(600.0)


def test_short_last_chunk_gets_proportional_share():
    sizes = [4, 4, 4, 1]
    delays = [pacing_delay(130.0, n, 13, 0.0) for n in sizes]

    assert delays[-1] == pytest.approx(10.0)
    assert sum(delays) == pytest.approx(130.0)


def test_invalid_totals_rejected():
    with pytest.raises(ValueError):
        pacing_delay(10.0, 1, 0, 0.0)


def test_rolling_average_reported_every_n_chunks():
    controller = PacingController(cycle_seconds=100.0, total_items=10, window=10, report_every=3)

    assert controller.record_duration(1.0) is None
    assert controller.record_duration(2.0) is None
    assert controller.record_duration(3.0) == pytest.approx(2.0)


def test_rolling_average_keeps_last_window():
    controller = PacingController(cycle_seconds=100.0, total_items=10, window=2)
    for seconds in (10.0, 2.0, 4.0):
        controller.record_duration(seconds)

    assert controller.average_duration() == pytest.approx(3.0)
