"""
Shared fixtures for the VIN Scan test suite.

Fake backends stand in for PaddleOCR / pyzbar / OpenCV so that the
pipeline can be exercised deterministically without the engines.
"""

import asyncio
from typing import List, Optional, Sequence, Union

import numpy as np
import pytest

from vin_scan.models import RecognitionSource, ScanFrame
from vin_scan.recognition.backends import (
    BarcodeReading,
    BarcodeScanner,
    ImageQuality,
    QualityAnalyzer,
    TextRecognition,
    TextRecognizer,
)

# =============================================================================
# TEST DATA
# =============================================================================

VALID_VIN = "1HGCM82633A004352"
OTHER_VIN = "1FTFW1ET5DFC10312"
LABELED_TEXT = f"VIN: {VALID_VIN}"



# =============================================================================
# FAKE BACKENDS
# =============================================================================

class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeTextRecognizer(TextRecognizer):
    """Returns queued texts in order (the last one repeats) or raises."""

    def __init__(self, texts: Union[str, Sequence[str]] = "", error: Optional[Exception] = None,
                 clock: Optional[FakeClock] = None, advance_s: float = 0.0):
        self.texts = [texts] if isinstance(texts, str) else list(texts)
        self.error = error
        self.clock = clock
        self.advance_s = advance_s
        self.calls = 0

    @property
    def name(self) -> str:
        return "FakeText"

    @property
    def is_available(self) -> bool:
        return True

    def recognize(self, image) -> TextRecognition:
        self.calls += 1
        if self.clock is not None:
            self.clock.advance(self.advance_s)
        if self.error is not None:
            raise self.error
        text = self.texts[min(self.calls - 1, len(self.texts) - 1)] if self.texts else ""
        return TextRecognition(text=text, confidence=0.9, provider=self.name)


class HangingTextRecognizer(FakeTextRecognizer):
    """Text recognizer whose call never completes."""

    def __init__(self):
        super().__init__()
        self.started = False

    async def recognize(self, image) -> TextRecognition:
        self.started = True
        await asyncio.Event().wait()
        raise AssertionError("unreachable")


class FakeBarcodeScanner(BarcodeScanner):
    """Returns a fixed list of barcode values or raises."""

    def __init__(self, values: Sequence[str] = (), error: Optional[Exception] = None):
        self.values = list(values)
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return "FakeBarcode"

    @property
    def is_available(self) -> bool:
        return True

    def scan(self, image) -> List[BarcodeReading]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [BarcodeReading(value=v, format="CODE39") for v in self.values]


class FakeQualityAnalyzer(QualityAnalyzer):
    """Reports a fixed ImageQuality."""

    def __init__(self, quality: ImageQuality):
        self.quality = quality

    @property
    def name(self) -> str:
        return "FakeQuality"

    @property
    def is_available(self) -> bool:
        return True

    def analyze(self, image) -> ImageQuality:
        return self.quality


def make_frame(vin: str = VALID_VIN, confidence: float = 0.9, timestamp: float = 100.0,
               source: RecognitionSource = RecognitionSource.TEXT) -> ScanFrame:
    """Create a history frame with fixed metadata."""
    return ScanFrame(
        vin=vin,
        confidence=confidence,
        timestamp=timestamp,
        image_quality=0.8,
        source=source,
        processing_time_ms=12.0,
        attempt_number=1,
        frame_id=f"frame_{int(timestamp * 1000)}",
    )



# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    """Fake monotonic clock starting at t=100s."""
    return FakeClock()


@pytest.fixture
def fake_sleep():
    """Sleep that records delays and returns immediately."""
    return FakeSleep()


@pytest.fixture
def good_quality():
    """Overall 0.87, no issues: one attempt."""
    return ImageQuality(contrast=0.9, brightness=0.8)


@pytest.fixture
def poor_quality():
    """Overall 0.46, blurry and low contrast: two attempts, text penalized."""
    return ImageQuality(contrast=0.4, brightness=0.6, is_blurry=True)


@pytest.fixture
def frame_image():
    """Blank BGR frame; content is irrelevant to the fake backends."""
    return np.zeros((32, 32, 3), dtype=np.uint8)
