"""
Tests for Performance Metrics
=============================
"""

from vin_scan.pipeline.metrics import PerformanceLog, benchmark, build_metric


# =============================================================================
# PERFORMANCE LOG
# =============================================================================

class TestPerformanceLog:
    """Tests for PerformanceLog."""

    def test_empty_summary(self):
        summary = PerformanceLog().summary()
        assert summary["sample_size"] == 0
        assert summary["average_scan_time_ms"] == 0.0

    def test_summary(self):
        """Test averages and error totals."""
        log = PerformanceLog()
        log.record(build_metric(1000.0, 0.9, True, 1.0))
        log.record(build_metric(2000.0, 0.5, False, 2.0))
        summary = log.summary()
        assert summary["sample_size"] == 2
        assert summary["average_scan_time_ms"] == 1500.0
        assert summary["average_confidence"] == 0.7
        assert summary["average_accuracy"] == 0.5
        assert summary["total_false_negatives"] == 1
        assert summary["total_false_positives"] == 0

    def test_bounded(self):
        """Test that the oldest entries are dropped past max_entries."""
        log = PerformanceLog(max_entries=3)
        for i in range(5):
            log.record(build_metric(float(i), 0.9, True, float(i)))
        assert len(log.metrics) == 3
        assert log.metrics[0].scan_time_ms == 2.0

    def test_clear(self):
        log = PerformanceLog()
        log.record(build_metric(1.0, 0.9, True, 1.0))
        log.clear()
        assert log.summary()["sample_size"] == 0


# =============================================================================
# BENCHMARK
# =============================================================================

class TestBenchmark:
    """Tests for benchmark."""

    def test_passing_session(self):
        report = benchmark(0.95, 900.0, True)
        assert report["overall_pass"]
        assert report["targets"]["scan_time"]["target"] == 1500

    def test_slow_session_fails(self):
        """Test that a scan over the time target fails overall."""
        report = benchmark(0.95, 1800.0, True)
        assert not report["meets_target"]["scan_time"]
        assert not report["overall_pass"]

    def test_missing_confidence(self):
        report = benchmark(None, 100.0, False)
        assert report["targets"]["confidence"]["current"] == 0.0
        assert not report["meets_target"]["accuracy"]
