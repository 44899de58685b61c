"""
Adaptive Interval Scheduler
===========================

Throttles how often a new scan session may start. Failure streaks walk
up the interval table two failures at a time; a clean success record
earns a 0.8x shorter interval. With adaptive intervals disabled a fixed
interval applies.
"""

import logging
from dataclasses import replace
from typing import Optional

from ..config import ScanConfig
from ..models import AdaptiveIntervalState

logger = logging.getLogger(__name__)


class IntervalScheduler:

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    def required_interval_ms(self, state: AdaptiveIntervalState) -> float:
        if not self.config.flags.adaptive_intervals:
            return float(self.config.fixed_interval_ms)

        table = self.config.interval_table_ms
        index = min(state.failure_count // 2, len(table) - 1)
        multiplier = self.config.success_interval_multiplier if state.failure_count == 0 else 1.0
        return float(int(table[index] * multiplier))

    def can_scan(self, state: AdaptiveIntervalState, now_ms: float) -> bool:
        if state.last_scan_time_ms is None:
            return True
        return now_ms - state.last_scan_time_ms >= self.required_interval_ms(state)

    def time_until_next_ms(self, state: AdaptiveIntervalState, now_ms: float) -> float:
        if state.last_scan_time_ms is None:
            return 0.0
        return max(0.0, self.required_interval_ms(state) - (now_ms - state.last_scan_time_ms))

    def update(self, state: AdaptiveIntervalState, success: bool, now_ms: float) -> AdaptiveIntervalState:
        """Record a completed session; failures reset on success."""
        failures = 0 if success else state.failure_count + 1
        updated = replace(state, failure_count=failures, last_scan_time_ms=now_ms)
        updated = replace(updated, current_interval_ms=self.required_interval_ms(updated))
        logger.debug(
            f"Interval updated: success={success}, failures={failures}, "
            f"next interval {updated.current_interval_ms:.0f}ms"
        )
        return updated
