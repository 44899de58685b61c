"""
Attempt Controller
==================

Quality-adaptive loop for one scan session:

    Idle -> Scoring -> Attempting -> Done

Scoring sizes the attempt budget from the frame quality. Attempting runs
the race coordinator until an early-exit condition holds, the budget is
spent or the hang-prevention deadline passes. Done applies the bounded
quality and manufacturer bonuses.

The deadline bounds the whole session. A race still running when it
passes is left to finish in the background and its result is dropped;
the session completes with whatever it has.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from ..config import ScanConfig
from ..core.scoring import clamp_confidence
from ..core.vin_utils import VINConstants
from ..models import AttemptRecord, RecognitionSource, ScanStatus, VINScanResult
from ..recognition.backends import ImageHandle, ImageQuality
from .race import RaceCoordinator

logger = logging.getLogger(__name__)

HIGH_QUALITY = 0.8
GOOD_QUALITY = 0.6
POOR_QUALITY = 0.3

ENHANCED_CONFIDENCE_BOOST = 1.05
QUALITY_BONUS_WEIGHT = 0.2
MANUFACTURER_BONUS = 0.05
MANUFACTURER_BONUS_CEILING = 0.9


class SessionPhase(str, Enum):
    IDLE = "idle"
    SCORING = "scoring"
    ATTEMPTING = "attempting"
    DONE = "done"


@dataclass
class SessionResult:
    """Result of one scan session."""
    status: ScanStatus
    result: Optional[VINScanResult] = None
    attempts: List[AttemptRecord] = field(default_factory=list)
    overall_quality: float = 0.0
    attempt_budget: int = 0
    timed_out: bool = False
    processing_time_ms: float = 0.0


def attempt_budget(quality: ImageQuality) -> int:
    """
    Number of race attempts for a frame of the given quality.

    Poor frames get a second try; very poor frames still get one.
    """
    overall = quality.overall
    if overall >= HIGH_QUALITY and not quality.has_issues:
        return 1
    if overall >= GOOD_QUALITY:
        return 1
    if overall >= POOR_QUALITY:
        return 2
    return 1


def backoff_ms(completed_attempts: int, base_ms: int = 100, max_ms: int = 1000) -> float:
    """Delay before the next attempt: ``min(base * 2^n, max)``."""
    return float(min(base_ms * (2 ** completed_attempts), max_ms))


def _collect_abandoned(task: "asyncio.Future") -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Abandoned recognition attempt failed: {error}")
    else:
        logger.debug("Abandoned recognition attempt finished after the deadline")


class AttemptController:
    """
    Runs one scan session over a single frame.

    Args:
        race: Race coordinator invoked once per attempt
        config: Engine configuration
        clock: Monotonic clock in seconds
        sleep: Awaitable sleep in seconds (injectable for tests)
    """

    def __init__(
        self,
        race: RaceCoordinator,
        config: Optional[ScanConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.race = race
        self.config = config or ScanConfig()
        self.clock = clock or time.monotonic
        self.sleep = sleep or asyncio.sleep
        self.phase = SessionPhase.IDLE

    def should_exit_early(self, result: VINScanResult, overall_quality: float) -> bool:
        cfg = self.config
        if result.confidence >= cfg.early_exit_barcode_confidence and result.source == RecognitionSource.BARCODE:
            return True
        if result.confidence >= cfg.early_exit_confidence:
            return True
        return (result.confidence >= cfg.early_exit_quality_confidence
                and overall_quality >= cfg.early_exit_min_quality)

    def quality_level(self, attempt_index: int) -> Optional[float]:
        """Capture quality for an attempt when progressive quality is on."""
        if not self.config.flags.progressive_quality:
            return None
        levels = self.config.quality_levels
        return levels[min(attempt_index, len(levels) - 1)]

    def finalize(self, result: VINScanResult, overall_quality: float) -> VINScanResult:
        """Apply the bounded quality and manufacturer bonuses."""
        ceiling = self.config.max_confidence
        confidence = result.confidence

        if confidence < HIGH_QUALITY and overall_quality >= HIGH_QUALITY:
            bonus = (overall_quality - HIGH_QUALITY) * QUALITY_BONUS_WEIGHT
            confidence = clamp_confidence(confidence + bonus, ceiling)
            logger.debug(f"Quality bonus +{bonus:.1%}")

        if (self.config.flags.manufacturer_validation
                and result.vin[:2] in VINConstants.NORTH_AMERICAN_PREFIXES
                and confidence < MANUFACTURER_BONUS_CEILING):
            confidence = clamp_confidence(confidence + MANUFACTURER_BONUS, ceiling)
            logger.debug(f"Known manufacturer bonus for {result.vin[:2]}")

        return replace(result, confidence=confidence)

    async def run(self, image: ImageHandle, quality: ImageQuality) -> SessionResult:
        start = self.clock()
        deadline = start + self.config.hang_timeout_s

        self.phase = SessionPhase.SCORING
        overall = quality.overall
        budget = attempt_budget(quality)
        logger.debug(
            f"Quality {overall:.2f} (contrast {quality.contrast:.2f}, brightness "
            f"{quality.brightness:.2f}, issues {quality.has_issues}) -> {budget} attempt(s)"
        )

        self.phase = SessionPhase.ATTEMPTING
        attempts: List[AttemptRecord] = []
        best: Optional[VINScanResult] = None
        last_status = ScanStatus.NO_CANDIDATE_FOUND
        timed_out = False

        while len(attempts) < budget:
            if self.clock() >= deadline:
                timed_out = True
                logger.warning(f"Scan exceeded {self.config.hang_timeout_s:.0f}s, stopping attempts")
                break

            level = self.quality_level(len(attempts))
            task = asyncio.ensure_future(self.race.race(image, quality))
            done, _ = await asyncio.wait({task}, timeout=max(deadline - self.clock(), 0.0))
            if not done:
                timed_out = True
                task.add_done_callback(_collect_abandoned)
                logger.warning(f"Recognition still running after {self.config.hang_timeout_s:.0f}s, abandoning session")
                break
            parallel = task.result()
            number = len(attempts) + 1
            candidate = parallel.best
            last_status = parallel.status

            if candidate is not None:
                candidate.attempt_number = number
                candidate.quality_level = level
            attempts.append(AttemptRecord(number=number, quality_level=level,
                                          result=candidate, reason=parallel.reason))

            if candidate is not None:
                if self.should_exit_early(candidate, overall):
                    logger.debug(f"Early exit on attempt {number} ({candidate.confidence:.0%})")
                    best = candidate
                    break
                if self.config.flags.enhanced_confidence:
                    best = replace(candidate, confidence=min(candidate.confidence * ENHANCED_CONFIDENCE_BOOST,
                                                             self.config.max_confidence))
                    break
                if best is None or candidate.confidence > best.confidence:
                    best = candidate

            if len(attempts) < budget:
                delay = backoff_ms(len(attempts), self.config.backoff_base_ms, self.config.backoff_max_ms)
                delay = min(delay, max(deadline - self.clock(), 0.0) * 1000)
                logger.debug(f"Backoff {delay:.0f}ms before attempt {len(attempts) + 1}")
                await self.sleep(delay / 1000)

        if best is None and not timed_out and self.clock() >= deadline:
            timed_out = True

        self.phase = SessionPhase.DONE
        elapsed_ms = (self.clock() - start) * 1000

        if best is None:
            status = ScanStatus.TIMEOUT_ABORT if timed_out else last_status
            return SessionResult(status=status, attempts=attempts, overall_quality=overall,
                                 attempt_budget=budget, timed_out=timed_out,
                                 processing_time_ms=elapsed_ms)

        return SessionResult(
            status=ScanStatus.SUCCESS,
            result=self.finalize(best, overall),
            attempts=attempts,
            overall_quality=overall,
            attempt_budget=budget,
            timed_out=timed_out,
            processing_time_ms=elapsed_ms,
        )
