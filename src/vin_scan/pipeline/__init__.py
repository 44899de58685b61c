"""
VIN Scan Pipeline Module
========================

Race coordination, attempt control, frame history and consensus,
interval scheduling, metrics and the engine that ties them together.
"""

from .race import (
    ParallelScanResult,
    RaceCoordinator,
    apply_quality_penalties,
    choose_winner,
    evaluate_barcode_readings,
)
from .attempts import AttemptController, SessionPhase, SessionResult, attempt_budget, backoff_ms
from .history import (
    FrameHistory,
    StabilityReport,
    analyze_inconsistencies,
    calculate_stability_score,
)
from .interval import IntervalScheduler
from .metrics import PerformanceLog, benchmark, build_metric
from .engine import VIN_REGIONS, RegionOfInterest, VINScanEngine, enhance_image

__all__ = [
    "ParallelScanResult",
    "RaceCoordinator",
    "apply_quality_penalties",
    "choose_winner",
    "evaluate_barcode_readings",
    "AttemptController",
    "SessionPhase",
    "SessionResult",
    "attempt_budget",
    "backoff_ms",
    "FrameHistory",
    "StabilityReport",
    "analyze_inconsistencies",
    "calculate_stability_score",
    "IntervalScheduler",
    "PerformanceLog",
    "benchmark",
    "build_metric",
    "VIN_REGIONS",
    "RegionOfInterest",
    "VINScanEngine",
    "enhance_image",
]
