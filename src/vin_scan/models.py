"""
Scan Data Model
===============

Value types shared by the scan pipeline. State objects are frozen;
components return updated copies instead of mutating in place.

Time units: timestamps are seconds from the engine clock, durations and
intervals are milliseconds.
"""

import re
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .core.context import ContextAdjustment, UserFeedback
    from .core.vin_utils import VINValidationResult

_VIN_PATTERN = re.compile(r'^[A-HJ-NPR-Z0-9]{17}$')


class ScanStatus(str, Enum):
    """Outcome of a scan operation. Only SUCCESS carries a VIN."""
    SUCCESS = "success"
    NO_CANDIDATE_FOUND = "no_candidate_found"
    STRUCTURAL_REJECTION = "structural_rejection"
    LOW_CONFIDENCE = "low_confidence"
    TIMEOUT_ABORT = "timeout_abort"
    CONSENSUS_NOT_REACHED = "consensus_not_reached"
    RECOGNITION_UNAVAILABLE = "recognition_unavailable"
    THROTTLED = "throttled"
    BUSY = "busy"


class RecognitionSource(str, Enum):
    TEXT = "text"
    BARCODE = "barcode"


@dataclass
class VINScanResult:
    """Winning per-frame result of one recognition path."""
    vin: str
    confidence: float
    source: RecognitionSource
    processing_time_ms: float = 0.0
    image_quality: float = 0.0
    attempt_number: int = 1
    quality_level: Optional[float] = None
    barcode_format: Optional[str] = None
    raw_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vin': self.vin,
            'confidence': self.confidence,
            'source': self.source.value,
            'processing_time_ms': self.processing_time_ms,
            'image_quality': self.image_quality,
            'attempt_number': self.attempt_number,
            'quality_level': self.quality_level,
            'barcode_format': self.barcode_format,
        }


@dataclass(frozen=True)
class ScanFrame:
    """An accepted per-frame result. Immutable after creation."""
    vin: str
    confidence: float
    timestamp: float
    image_quality: float
    source: RecognitionSource
    processing_time_ms: float
    attempt_number: int
    frame_id: str

    def __post_init__(self):
        if not _VIN_PATTERN.match(self.vin):
            raise ValueError(f"ScanFrame requires a 17-character VIN without I/O/Q, got {self.vin!r}")

    @classmethod
    def from_result(cls, result: VINScanResult, timestamp: float) -> 'ScanFrame':
        return cls(
            vin=result.vin,
            confidence=result.confidence,
            timestamp=timestamp,
            image_quality=result.image_quality,
            source=result.source,
            processing_time_ms=result.processing_time_ms,
            attempt_number=result.attempt_number,
            frame_id=f"frame_{int(timestamp * 1000)}_{random.getrandbits(32):08x}",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vin': self.vin,
            'confidence': self.confidence,
            'timestamp': self.timestamp,
            'image_quality': self.image_quality,
            'source': self.source.value,
            'processing_time_ms': self.processing_time_ms,
            'attempt_number': self.attempt_number,
            'frame_id': self.frame_id,
        }


@dataclass(frozen=True)
class ScanHistory:
    """
    Sliding window of accepted frames, oldest first.

    Invariant: ``len(frames) <= max_frames``.
    """
    frames: Tuple[ScanFrame, ...] = ()
    consensus: Optional[str] = None
    confidence_score: float = 0.0
    stability_score: float = 0.0
    total_frames: int = 0
    max_frames: int = 3
    last_updated: float = 0.0

    @property
    def latest(self) -> Optional[ScanFrame]:
        return self.frames[-1] if self.frames else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'frames': [f.to_dict() for f in self.frames],
            'consensus': self.consensus,
            'confidence_score': self.confidence_score,
            'stability_score': self.stability_score,
            'total_frames': self.total_frames,
            'max_frames': self.max_frames,
            'last_updated': self.last_updated,
        }


@dataclass(frozen=True)
class AdaptiveIntervalState:
    """Throttle state; ``last_scan_time_ms`` is None until the first session completes."""
    failure_count: int = 0
    current_interval_ms: float = 0.0
    last_scan_time_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'failure_count': self.failure_count,
            'current_interval_ms': self.current_interval_ms,
            'last_scan_time_ms': self.last_scan_time_ms,
        }


@dataclass(frozen=True)
class ScanState:
    """Everything the engine carries between sessions."""
    history: ScanHistory = field(default_factory=ScanHistory)
    interval: AdaptiveIntervalState = field(default_factory=AdaptiveIntervalState)


@dataclass(frozen=True)
class PerformanceMetric:
    scan_time_ms: float
    confidence: float
    accuracy: int
    false_positives: int
    false_negatives: int
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scan_time_ms': self.scan_time_ms,
            'confidence': self.confidence,
            'accuracy': self.accuracy,
            'false_positives': self.false_positives,
            'false_negatives': self.false_negatives,
            'timestamp': self.timestamp,
        }


@dataclass
class CharacterInconsistency:
    """A VIN position where frames disagree."""
    position: int
    values: Dict[str, int]
    suggestion: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {'position': self.position, 'values': self.values, 'suggestion': self.suggestion}


@dataclass
class ConsensusResult:
    """Reduction of the recent frame window to a single VIN."""
    vin: Optional[str]
    confidence: float
    stability: float
    frame_count: int = 0
    group_scores: Dict[str, float] = field(default_factory=dict)
    inconsistencies: List[CharacterInconsistency] = field(default_factory=list)

    @property
    def reached(self) -> bool:
        return self.vin is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vin': self.vin,
            'confidence': self.confidence,
            'stability': self.stability,
            'frame_count': self.frame_count,
            'group_scores': self.group_scores,
            'inconsistencies': [i.to_dict() for i in self.inconsistencies],
        }


@dataclass
class AttemptRecord:
    number: int
    quality_level: Optional[float]
    result: Optional[VINScanResult]
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'quality_level': self.quality_level,
            'result': self.result.to_dict() if self.result else None,
            'reason': self.reason,
        }


@dataclass
class ScanOutcome:
    """Return value of ``VINScanEngine.scan_frame``; ``state`` is the updated state."""
    status: ScanStatus
    state: ScanState
    vin: Optional[str] = None
    confidence: float = 0.0
    result: Optional[VINScanResult] = None
    consensus: Optional[ConsensusResult] = None
    attempts: List[AttemptRecord] = field(default_factory=list)
    processing_time_ms: float = 0.0
    context: Optional["ContextAdjustment"] = None
    feedback: Optional["UserFeedback"] = None
    validation: Optional["VINValidationResult"] = None

    @property
    def success(self) -> bool:
        return self.status == ScanStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'vin': self.vin,
            'confidence': self.confidence,
            'result': self.result.to_dict() if self.result else None,
            'consensus': self.consensus.to_dict() if self.consensus else None,
            'attempts': [a.to_dict() for a in self.attempts],
            'processing_time_ms': self.processing_time_ms,
            'context': self.context.to_dict() if self.context else None,
            'feedback': self.feedback.to_dict() if self.feedback else None,
            'validation': self.validation.to_dict() if self.validation else None,
            'history': self.state.history.to_dict(),
            'interval': self.state.interval.to_dict(),
        }
