"""
Performance Metrics
===================

Session-scoped log of scan metrics. Recording never affects control
flow; a sink that raises is logged and ignored by the engine.

Usage:
    log = PerformanceLog()
    log.record(PerformanceMetric(...))
    print(log.summary())
    print(benchmark(result_confidence=0.92, scan_time_ms=1200, success=True))
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ..models import PerformanceMetric

logger = logging.getLogger(__name__)

TARGET_ACCURACY_PCT = 85
TARGET_SCAN_TIME_MS = 1500
TARGET_CONFIDENCE = 0.9


class MetricsSink(Protocol):
    def record(self, metric: PerformanceMetric) -> None:
        ...


@dataclass
class PerformanceLog:
    """In-memory metrics sink with summary statistics."""
    max_entries: int = 1000
    metrics: List[PerformanceMetric] = field(default_factory=list)

    def record(self, metric: PerformanceMetric) -> None:
        self.metrics.append(metric)
        if len(self.metrics) > self.max_entries:
            del self.metrics[:len(self.metrics) - self.max_entries]

    def clear(self) -> None:
        self.metrics.clear()

    def summary(self) -> Dict[str, Any]:
        count = len(self.metrics)
        if count == 0:
            return {
                'average_scan_time_ms': 0.0,
                'average_confidence': 0.0,
                'average_accuracy': 0.0,
                'total_false_positives': 0,
                'total_false_negatives': 0,
                'sample_size': 0,
            }

        return {
            'average_scan_time_ms': sum(m.scan_time_ms for m in self.metrics) / count,
            'average_confidence': sum(m.confidence for m in self.metrics) / count,
            'average_accuracy': sum(m.accuracy for m in self.metrics) / count,
            'total_false_positives': sum(m.false_positives for m in self.metrics),
            'total_false_negatives': sum(m.false_negatives for m in self.metrics),
            'sample_size': count,
        }


def build_metric(scan_time_ms: float, confidence: float, success: bool, timestamp: float) -> PerformanceMetric:
    return PerformanceMetric(
        scan_time_ms=scan_time_ms,
        confidence=confidence,
        accuracy=1 if success else 0,
        false_positives=0,
        false_negatives=0 if success else 1,
        timestamp=timestamp,
    )


def benchmark(confidence: Optional[float], scan_time_ms: float, success: bool) -> Dict[str, Any]:
    """Compare one session against the accuracy, scan time and confidence targets."""
    confidence_pct = (confidence or 0.0) * 100
    targets = {
        'accuracy': {'current': 100 if success else 0, 'target': TARGET_ACCURACY_PCT, 'unit': '%'},
        'scan_time': {'current': scan_time_ms, 'target': TARGET_SCAN_TIME_MS, 'unit': 'ms'},
        'confidence': {'current': confidence_pct, 'target': TARGET_CONFIDENCE * 100, 'unit': '%'},
    }
    meets = {
        'accuracy': targets['accuracy']['current'] >= TARGET_ACCURACY_PCT,
        'scan_time': scan_time_ms <= TARGET_SCAN_TIME_MS,
        'confidence': confidence_pct >= TARGET_CONFIDENCE * 100,
    }
    for name, ok in meets.items():
        target = targets[name]
        logger.debug(f"Benchmark {name}: {target['current']:.1f}{target['unit']} "
                     f"(target {target['target']}{target['unit']}) - {'PASS' if ok else 'FAIL'}")
    return {'targets': targets, 'meets_target': meets, 'overall_pass': all(meets.values())}
