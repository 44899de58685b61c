"""
Recognition Race Coordinator
============================

Runs the barcode and text recognition paths concurrently for one frame
and picks a winner. Each path's failure is isolated: an exception or an
unavailable engine on one side yields "no result" for that side only.

Tie-break: when both paths produce a VIN, the barcode wins unless the
text result has strictly higher confidence.
"""

import asyncio
import inspect
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from ..config import ScanConfig
from ..core.extraction import extract_vin
from ..core.scoring import clamp_confidence, score_candidate
from ..core.vin_utils import VIN_LENGTH, correct_characters, is_valid_vin
from ..exceptions import RecognitionUnavailable
from ..models import RecognitionSource, ScanStatus, VINScanResult
from ..recognition.backends import (
    BarcodeReading,
    BarcodeScanner,
    ImageHandle,
    ImageQuality,
    TextRecognizer,
)

logger = logging.getLogger(__name__)

BARCODE_EXACT_CONFIDENCE = 0.98

GLARE_FACTOR = 0.9
BLUR_FACTOR = 0.8
LOW_CONTRAST_FACTOR = 0.85
LOW_CONTRAST_LEVEL = 0.5

# Most informative first when no path produced a VIN
_FAILURE_PRIORITY = (
    ScanStatus.LOW_CONFIDENCE,
    ScanStatus.STRUCTURAL_REJECTION,
    ScanStatus.NO_CANDIDATE_FOUND,
    ScanStatus.RECOGNITION_UNAVAILABLE,
)


@contextmanager
def _timer():
    """Context manager for timing operations."""
    start = time.perf_counter()
    elapsed = {'ms': 0.0}
    yield elapsed
    elapsed['ms'] = (time.perf_counter() - start) * 1000


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    """Await coroutine functions directly; run blocking adapters in a worker thread."""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    return await asyncio.to_thread(fn, *args)


@dataclass
class PathResult:
    result: Optional[VINScanResult] = None
    status: ScanStatus = ScanStatus.NO_CANDIDATE_FOUND


@dataclass
class ParallelScanResult:
    """Outcome of one race: both path results, the winner and why it won."""
    barcode: Optional[VINScanResult]
    text: Optional[VINScanResult]
    best: Optional[VINScanResult]
    processing_time_ms: float
    reason: str
    status: ScanStatus

    def to_dict(self):
        return {
            'barcode': self.barcode.to_dict() if self.barcode else None,
            'text': self.text.to_dict() if self.text else None,
            'best': self.best.to_dict() if self.best else None,
            'processing_time_ms': self.processing_time_ms,
            'reason': self.reason,
            'status': self.status.value,
        }


def evaluate_barcode_readings(
    readings: List[BarcodeReading],
    min_confidence: float = 0.7,
) -> PathResult:
    """
    Pick the first barcode value that is, or corrects to, a valid VIN.

    An already-valid value is trusted at 0.98; a corrected one is scored
    like a text candidate and must clear ``min_confidence``.
    """
    status = ScanStatus.NO_CANDIDATE_FOUND
    for reading in readings:
        value = reading.value.strip().upper()
        if not value:
            continue

        if len(value) == VIN_LENGTH and is_valid_vin(value):
            logger.debug(f"Valid barcode VIN: {value}")
            return PathResult(
                VINScanResult(vin=value, confidence=BARCODE_EXACT_CONFIDENCE,
                              source=RecognitionSource.BARCODE, barcode_format=reading.format),
                ScanStatus.SUCCESS,
            )

        corrected = correct_characters(value)
        if len(corrected) != VIN_LENGTH or not is_valid_vin(corrected):
            if status == ScanStatus.NO_CANDIDATE_FOUND:
                status = ScanStatus.STRUCTURAL_REJECTION
            continue

        confidence = score_candidate(value, corrected, value)
        if confidence > min_confidence:
            logger.debug(f"Corrected barcode VIN: {value} -> {corrected} ({confidence:.0%})")
            return PathResult(
                VINScanResult(vin=corrected, confidence=confidence,
                              source=RecognitionSource.BARCODE, barcode_format=reading.format),
                ScanStatus.SUCCESS,
            )
        status = ScanStatus.LOW_CONFIDENCE

    return PathResult(status=status)


def apply_quality_penalties(confidence: float, quality: ImageQuality, ceiling: float = 0.98) -> float:
    """Discount a text-path confidence for glare, blur and low contrast."""
    if quality.has_glare:
        confidence *= GLARE_FACTOR
    if quality.is_blurry:
        confidence *= BLUR_FACTOR
    if quality.contrast < LOW_CONTRAST_LEVEL:
        confidence *= LOW_CONTRAST_FACTOR
    return clamp_confidence(confidence, ceiling)


def choose_winner(
    barcode: Optional[VINScanResult],
    text: Optional[VINScanResult],
) -> Tuple[Optional[VINScanResult], str]:
    if barcode and text:
        if barcode.confidence >= text.confidence:
            return barcode, f"Barcode preferred ({barcode.confidence:.0%} vs {text.confidence:.0%})"
        return text, f"Text preferred ({text.confidence:.0%} vs {barcode.confidence:.0%})"
    if barcode:
        return barcode, f"Barcode only ({barcode.confidence:.0%})"
    if text:
        return text, f"Text only ({text.confidence:.0%})"
    return None, "No valid results"


class RaceCoordinator:
    """
    Concurrent barcode + text recognition for a single frame.

    Args:
        text_recognizer: Text recognition backend (None disables the path)
        barcode_scanner: Barcode backend (None disables the path)
        config: Engine configuration; flags gate each path
    """

    def __init__(
        self,
        text_recognizer: Optional[TextRecognizer],
        barcode_scanner: Optional[BarcodeScanner],
        config: Optional[ScanConfig] = None,
    ):
        self.text_recognizer = text_recognizer
        self.barcode_scanner = barcode_scanner
        self.config = config or ScanConfig()

    async def race(self, image: ImageHandle, quality: ImageQuality) -> ParallelScanResult:
        with _timer() as elapsed:
            barcode_path, text_path = await asyncio.gather(
                self._guarded("barcode", self._barcode_path(image)),
                self._guarded("text", self._text_path(image, quality)),
            )

        for path in (barcode_path, text_path):
            if path.result is not None:
                path.result.processing_time_ms = elapsed['ms']
                path.result.image_quality = quality.overall

        best, reason = choose_winner(barcode_path.result, text_path.result)
        if best is not None:
            status = ScanStatus.SUCCESS
        else:
            statuses = {barcode_path.status, text_path.status}
            status = next(s for s in _FAILURE_PRIORITY if s in statuses)

        logger.debug(f"Race finished in {elapsed['ms']:.0f}ms: {best.vin if best else 'none'} - {reason}")
        return ParallelScanResult(
            barcode=barcode_path.result,
            text=text_path.result,
            best=best,
            processing_time_ms=elapsed['ms'],
            reason=reason,
            status=status,
        )

    async def _guarded(self, label: str, path) -> PathResult:
        try:
            return await path
        except RecognitionUnavailable as e:
            logger.warning(f"{label} recognition unavailable: {e.message}")
            return PathResult(status=ScanStatus.RECOGNITION_UNAVAILABLE)
        except Exception as e:
            logger.error(f"{label} recognition failed: {e}")
            return PathResult(status=ScanStatus.NO_CANDIDATE_FOUND)

    async def _barcode_path(self, image: ImageHandle) -> PathResult:
        if not self.config.flags.barcode_scanning or self.barcode_scanner is None:
            return PathResult(status=ScanStatus.RECOGNITION_UNAVAILABLE)

        readings = await _call(self.barcode_scanner.scan, image)
        return evaluate_barcode_readings(readings or [], self.config.barcode_min_confidence)

    async def _text_path(self, image: ImageHandle, quality: ImageQuality) -> PathResult:
        if not self.config.flags.text_recognition or self.text_recognizer is None:
            return PathResult(status=ScanStatus.RECOGNITION_UNAVAILABLE)

        recognition = await _call(self.text_recognizer.recognize, image)
        if recognition is None or not recognition.text:
            return PathResult(status=ScanStatus.NO_CANDIDATE_FOUND)

        outcome = extract_vin(
            recognition.text,
            context_aware=self.config.flags.context_aware_detection,
            min_confidence=self.config.candidate_min_confidence,
            context_min_confidence=self.config.context_min_confidence,
        )
        if outcome.match is None:
            return PathResult(status=outcome.status)

        confidence = apply_quality_penalties(outcome.match.confidence, quality, self.config.max_confidence)
        return PathResult(
            VINScanResult(vin=outcome.match.vin, confidence=confidence,
                          source=RecognitionSource.TEXT, raw_text=recognition.text[:500]),
            ScanStatus.SUCCESS,
        )
