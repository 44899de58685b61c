"""
Tests for the Adaptive Interval Scheduler
=========================================
"""

from dataclasses import replace

import pytest

from vin_scan.config import ScanConfig
from vin_scan.models import AdaptiveIntervalState
from vin_scan.pipeline.interval import IntervalScheduler


def _adaptive():
    config = ScanConfig()
    config.flags = replace(config.flags, adaptive_intervals=True)
    return IntervalScheduler(config)


# =============================================================================
# FIXED INTERVAL
# =============================================================================

class TestFixedInterval:
    """Tests for the interval with adaptive scheduling disabled."""

    def test_first_scan_never_throttled(self):
        """Test that a fresh state can always scan."""
        assert IntervalScheduler(ScanConfig()).can_scan(AdaptiveIntervalState(), 0.0)

    def test_fixed_interval_when_adaptive_disabled(self):
        """Test the fixed two second interval."""
        scheduler = IntervalScheduler(ScanConfig())
        state = scheduler.update(AdaptiveIntervalState(), success=False, now_ms=1000.0)
        assert scheduler.required_interval_ms(state) == 2000
        assert not scheduler.can_scan(state, 2500.0)
        assert scheduler.can_scan(state, 3000.0)

    def test_time_until_next(self):
        scheduler = IntervalScheduler(ScanConfig())
        state = scheduler.update(AdaptiveIntervalState(), success=True, now_ms=1000.0)
        assert scheduler.time_until_next_ms(state, 1500.0) == 1500
        assert scheduler.time_until_next_ms(state, 5000.0) == 0
        assert scheduler.time_until_next_ms(AdaptiveIntervalState(), 0.0) == 0


# =============================================================================
# ADAPTIVE INTERVAL
# =============================================================================

class TestAdaptiveInterval:
    """Tests for the failure-driven interval table."""

    @pytest.mark.parametrize("failures, expected", [
        (0, 1200),
        (1, 1500),
        (2, 2500),
        (3, 2500),
        (4, 4000),
        (6, 6000),
        (25, 6000),
    ])
    def test_table(self, failures, expected):
        """Test the interval for each failure count."""
        state = AdaptiveIntervalState(failure_count=failures)
        assert _adaptive().required_interval_ms(state) == expected

    def test_failures_accumulate_and_reset(self):
        """Test that a success resets the failure count."""
        scheduler = _adaptive()
        state = AdaptiveIntervalState()
        for t in (1000.0, 5000.0, 9000.0):
            state = scheduler.update(state, success=False, now_ms=t)
        assert state.failure_count == 3
        assert state.current_interval_ms == 2500
        assert state.last_scan_time_ms == 9000.0

        state = scheduler.update(state, success=True, now_ms=20000.0)
        assert state.failure_count == 0
        assert state.current_interval_ms == 1200

    def test_interval_never_decreases_with_failures(self):
        scheduler = _adaptive()
        intervals = [scheduler.required_interval_ms(AdaptiveIntervalState(failure_count=f))
                     for f in range(1, 12)]
        assert intervals == sorted(intervals)
