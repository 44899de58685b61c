"""
VIN Scan Engine
===============

Entry point tying the pipeline together for one camera frame:

    quality analysis -> attempt controller (race per attempt)
        -> frame history -> temporal consensus -> interval update -> metrics

State (frame history, interval state) is passed in and returned updated
on the outcome; the engine itself only holds its collaborators, its
configuration and the single-session gate.

Usage:
    engine = VINScanEngine(
        text_recognizer=PaddleTextRecognizer(),
        barcode_scanner=ZBarBarcodeScanner(),
        quality_analyzer=OpenCVQualityAnalyzer(),
    )
    state = engine.new_state()
    outcome = engine.scan_frame_sync("frame.jpg", state)
    state = outcome.state
    if outcome.success:
        print(outcome.vin, outcome.confidence)
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ..config import ScanConfig
from ..core.context import adjust_for_context, generate_user_feedback
from ..core.vin_utils import validate_vin
from ..models import ConsensusResult, ScanFrame, ScanOutcome, ScanState, ScanStatus
from ..recognition.backends import BarcodeScanner, ImageHandle, QualityAnalyzer, TextRecognizer
from ..recognition.quality import OpenCVQualityAnalyzer
from .attempts import AttemptController, SessionResult
from .history import FrameHistory, StabilityReport, calculate_stability_score
from .interval import IntervalScheduler
from .metrics import MetricsSink, PerformanceLog, benchmark, build_metric
from .race import RaceCoordinator, _call

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionOfInterest:
    """Frame region as fractions of width and height."""
    name: str
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


FULL_FRAME = RegionOfInterest("full", 0.0, 0.0, 1.0, 1.0)

# Common VIN locations, most likely first
VIN_REGIONS: Tuple[RegionOfInterest, ...] = (
    RegionOfInterest("primary", 0.2, 0.3, 0.6, 0.4),
    RegionOfInterest("windshield", 0.1, 0.15, 0.8, 0.1),
    RegionOfInterest("doorjamb", 0.05, 0.7, 0.4, 0.08),
    RegionOfInterest("dashboard", 0.15, 0.25, 0.7, 0.15),
)


def enhance_image(image: ImageHandle) -> ImageHandle:
    """Image enhancement hook. Currently a pass-through."""
    return image


class VINScanEngine:
    """
    Scans VINs from frames by racing barcode and text recognition and
    stabilizing results across frames.

    Args:
        text_recognizer: Text recognition backend (None disables the path)
        barcode_scanner: Barcode backend (None disables the path)
        quality_analyzer: Image quality backend (defaults to OpenCV)
        config: Engine configuration (defaults to ScanConfig())
        metrics_sink: Receives one PerformanceMetric per session
        clock: Monotonic clock in seconds
        sleep: Awaitable sleep in seconds, used for retry backoff
    """

    def __init__(
        self,
        text_recognizer: Optional[TextRecognizer] = None,
        barcode_scanner: Optional[BarcodeScanner] = None,
        quality_analyzer: Optional[QualityAnalyzer] = None,
        config: Optional[ScanConfig] = None,
        metrics_sink: Optional[MetricsSink] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.config = config or ScanConfig()
        if self.config.flags.safety_checks:
            # Fields may have been reassigned since construction
            self.config.validate()
        self.clock = clock or time.monotonic
        self.quality_analyzer = quality_analyzer or OpenCVQualityAnalyzer()
        self.metrics = metrics_sink if metrics_sink is not None else PerformanceLog()

        self.race = RaceCoordinator(text_recognizer, barcode_scanner, self.config)
        self.controller = AttemptController(self.race, self.config, clock=self.clock, sleep=sleep)
        self.history = FrameHistory(self.config)
        self.scheduler = IntervalScheduler(self.config)

        self._active = False

    @property
    def is_scanning(self) -> bool:
        return self._active

    def new_state(self) -> ScanState:
        return ScanState(history=self.history.new_history())

    def time_until_next_scan_ms(self, state: ScanState) -> float:
        return self.scheduler.time_until_next_ms(state.interval, self.clock() * 1000)

    def get_consensus(self, state: ScanState) -> ConsensusResult:
        return self.history.calculate_consensus(state.history, self.clock())

    def get_stability(self, state: ScanState) -> StabilityReport:
        return calculate_stability_score(state.history.frames)

    def roi_regions(self) -> Tuple[RegionOfInterest, ...]:
        """Regions the capture layer should focus on, in priority order."""
        if self.config.flags.roi_processing:
            return VIN_REGIONS
        return (FULL_FRAME,)

    def _debug(self, message: str) -> None:
        if self.config.flags.debug_logging:
            logger.info(message)

    async def scan_frame(self, image: ImageHandle, state: Optional[ScanState] = None) -> ScanOutcome:
        """
        Run one scan session over a frame.

        Returns BUSY while another session is active and THROTTLED when the
        scheduler's interval has not elapsed; neither changes the state.

        Raises:
            ImageLoadError: If the image handle is malformed
        """
        state = state or self.new_state()

        if self._active:
            return ScanOutcome(status=ScanStatus.BUSY, state=state)

        if not self.scheduler.can_scan(state.interval, self.clock() * 1000):
            self._debug("Skipping scan due to scan interval")
            return ScanOutcome(status=ScanStatus.THROTTLED, state=state)

        self._active = True
        try:
            return await self._run_session(image, state)
        finally:
            self._active = False

    def scan_frame_sync(self, image: ImageHandle, state: Optional[ScanState] = None) -> ScanOutcome:
        return asyncio.run(self.scan_frame(image, state))

    async def _run_session(self, image: ImageHandle, state: ScanState) -> ScanOutcome:
        flags = self.config.flags

        if flags.image_preprocessing:
            image = enhance_image(image)

        quality = await _call(self.quality_analyzer.analyze, image)
        session = await self.controller.run(image, quality)

        now = self.clock()
        history = state.history
        consensus = None
        outcome = ScanOutcome(status=session.status, state=state, attempts=session.attempts,
                              processing_time_ms=session.processing_time_ms, result=session.result)

        if session.result is not None:
            history = self.history.add_frame(history, ScanFrame.from_result(session.result, now), now)
            outcome.vin, outcome.confidence = session.result.vin, session.result.confidence

            if flags.multi_frame_analysis:
                history, consensus = self.history.update_consensus(history, now)
                outcome.consensus = consensus
                if consensus.reached:
                    outcome.vin, outcome.confidence = consensus.vin, consensus.confidence
                elif self.config.require_consensus:
                    outcome.status = ScanStatus.CONSENSUS_NOT_REACHED
                    outcome.vin, outcome.confidence = None, 0.0

            if outcome.vin is not None:
                outcome.validation = validate_vin(outcome.vin, check_digit=flags.check_digit_validation)
                outcome.context = adjust_for_context(outcome.vin, outcome.confidence)
                outcome.feedback = generate_user_feedback(outcome.context)

        success = outcome.status == ScanStatus.SUCCESS
        interval = self.scheduler.update(state.interval, success, now * 1000)
        outcome.state = ScanState(history=history, interval=interval)

        self._record_metrics(session, success, now)
        self._debug(
            f"Scan {outcome.status.value}: {outcome.vin or 'none'} "
            f"({outcome.confidence:.0%}, {session.processing_time_ms:.0f}ms, "
            f"{len(session.attempts)}/{session.attempt_budget} attempts)"
        )
        return outcome

    def _record_metrics(self, session: SessionResult, success: bool, now: float) -> None:
        if not self.config.flags.performance_metrics:
            return

        confidence = session.result.confidence if session.result else 0.0
        try:
            self.metrics.record(build_metric(session.processing_time_ms, confidence, success, now))
        except Exception as e:
            logger.warning(f"Metrics sink failed: {e}")

        if self.config.flags.debug_logging:
            report = benchmark(confidence, session.processing_time_ms, success)
            logger.debug(f"Benchmark overall pass: {report['overall_pass']}")
