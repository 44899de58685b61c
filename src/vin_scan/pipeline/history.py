"""
Frame History & Temporal Consensus
==================================

Keeps a short sliding window of accepted per-frame results and reduces
it to a stabilized VIN.

Consensus scoring per distinct VIN in the analyzed window:
    score = 0.5 * fused_confidence + 0.3 * frequency + 0.2 * max(0, recency)

``fused_confidence`` averages, over the 17 positions, the decay-weighted
confidence contributed by frames holding that VIN; positions 6 and 8
(historically ambiguous) are boosted by 1.15. A consensus is only
declared when the winning VIN was seen in at least two frames.

Usage:
    history = FrameHistory(config)
    state = history.add_frame(state, frame, now)
    state, consensus = history.update_consensus(state, now)
"""

import logging
from collections import Counter
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import ScanConfig
from ..core.scoring import clamp_confidence
from ..core.vin_utils import VIN_LENGTH
from ..models import CharacterInconsistency, ConsensusResult, ScanFrame, ScanHistory

logger = logging.getLogger(__name__)

MIN_CONSENSUS_FRAMES = 2
CRITICAL_FUSION_POSITIONS = (5, 7)
CRITICAL_POSITION_BOOST = 1.15

FUSED_WEIGHT = 0.5
FREQUENCY_WEIGHT = 0.3
RECENCY_WEIGHT = 0.2

INCONSISTENCY_STABILITY = 0.8
INCONSISTENCY_RATIO = 0.8
TREND_THRESHOLD = 0.1


@dataclass
class StabilityReport:
    overall: float
    recent: float
    trend: str

    def to_dict(self):
        return {'overall': self.overall, 'recent': self.recent, 'trend': self.trend}


def _distinct_ratio(frames: Sequence[ScanFrame]) -> float:
    distinct = len({f.vin for f in frames})
    return 1.0 if distinct == 1 else 1.0 / distinct


def analyze_inconsistencies(frames: Sequence[ScanFrame]) -> List[CharacterInconsistency]:
    """
    Flag positions where frames disagree.

    A position is reported when more than one character appears and either
    both '0' and '1' are among them or the most common character covers
    less than 80% of the frames.
    """
    if len(frames) < 2:
        return []

    inconsistencies = []
    for position in range(VIN_LENGTH):
        counts = Counter(f.vin[position] for f in frames if position < len(f.vin))
        if len(counts) < 2:
            continue

        char, count = counts.most_common(1)[0]
        ratio = count / len(frames)
        if ('0' in counts and '1' in counts) or ratio < INCONSISTENCY_RATIO:
            logger.debug(f"Position {position} inconsistency: {'/'.join(counts)} - suggest '{char}' ({ratio:.0%})")
            inconsistencies.append(CharacterInconsistency(
                position=position,
                values=dict(counts),
                suggestion={'char': char, 'confidence': ratio},
            ))
    return inconsistencies


def calculate_stability_score(frames: Sequence[ScanFrame]) -> StabilityReport:
    """Overall agreement, agreement of the last three frames, and its trend."""
    if len(frames) < 2:
        return StabilityReport(overall=0.0, recent=0.0, trend='stable')

    counts = Counter(f.vin for f in frames)
    overall = counts.most_common(1)[0][1] / len(frames)
    recent = _distinct_ratio(frames[-3:])

    trend = 'stable'
    if len(frames) >= 4:
        half = len(frames) // 2
        first, second = _distinct_ratio(frames[:half]), _distinct_ratio(frames[half:])
        if second > first + TREND_THRESHOLD:
            trend = 'improving'
        elif second < first - TREND_THRESHOLD:
            trend = 'declining'

    return StabilityReport(overall=overall, recent=recent, trend=trend)


class FrameHistory:
    """
    Owns ScanHistory updates and consensus computation.

    All methods are pure: they return new ScanHistory values.
    """

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    def new_history(self) -> ScanHistory:
        return ScanHistory(max_frames=self.config.max_frames)

    def add_frame(self, history: ScanHistory, frame: ScanFrame, now: float) -> ScanHistory:
        """Evict frames older than the age window, then append FIFO within capacity."""
        cutoff = now - self.config.frame_max_age_s
        recent = [f for f in history.frames if f.timestamp > cutoff]
        keep = recent[-(history.max_frames - 1):] if history.max_frames > 1 else []

        return replace(
            history,
            frames=tuple(keep) + (frame,),
            total_frames=history.total_frames + 1,
            last_updated=now,
        )

    def _fused_confidence(self, window: Sequence[ScanFrame], vin: str) -> float:
        decay = self.config.consensus_decay
        weighted = [
            frame.confidence * decay ** (len(window) - index - 1)
            for index, frame in enumerate(window)
            if frame.vin == vin
        ]
        mean = sum(weighted) / len(weighted)
        total = sum(
            mean * (CRITICAL_POSITION_BOOST if pos in CRITICAL_FUSION_POSITIONS else 1.0)
            for pos in range(VIN_LENGTH)
        )
        return total / VIN_LENGTH

    def calculate_consensus(self, history: ScanHistory, now: float) -> ConsensusResult:
        """
        Reduce the most recent frames to a consensus VIN.

        Returns a result with ``vin=None`` when fewer than two frames are
        available or the best VIN was seen only once.
        """
        if len(history.frames) < MIN_CONSENSUS_FRAMES:
            return ConsensusResult(vin=None, confidence=0.0, stability=0.0)

        window = list(history.frames[-self.config.consensus_window:])
        groups: Dict[str, List[ScanFrame]] = {}
        for frame in window:
            groups.setdefault(frame.vin, []).append(frame)

        horizon = self.config.recency_horizon_s
        scores: Dict[str, float] = {}
        best_vin: Optional[str] = None
        best_score = 0.0
        best_fused = 0.0

        for vin, group in groups.items():
            fused = self._fused_confidence(window, vin)
            frequency = len(group) / len(window)
            recency = sum(1 - (now - f.timestamp) / horizon for f in group) / len(group)
            score = FUSED_WEIGHT * fused + FREQUENCY_WEIGHT * frequency + RECENCY_WEIGHT * max(0.0, recency)
            scores[vin] = score

            if score > best_score:
                best_vin, best_score, best_fused = vin, score, fused

        if best_vin is None:
            return ConsensusResult(vin=None, confidence=0.0, stability=0.0, group_scores=scores)

        count = len(groups[best_vin])
        stability = count / len(window)

        inconsistencies = []
        if stability < INCONSISTENCY_STABILITY or len(groups) > 2:
            inconsistencies = analyze_inconsistencies(window)

        reached = count >= MIN_CONSENSUS_FRAMES
        confidence = clamp_confidence(best_fused, self.config.max_confidence)
        logger.debug(
            f"Consensus {'reached' if reached else 'not reached'}: {best_vin} "
            f"({confidence:.0%} fused, {stability:.0%} stability, {len(groups)} distinct)"
        )
        return ConsensusResult(
            vin=best_vin if reached else None,
            confidence=confidence,
            stability=stability,
            frame_count=count,
            group_scores=scores,
            inconsistencies=inconsistencies,
        )

    def update_consensus(self, history: ScanHistory, now: float) -> Tuple[ScanHistory, ConsensusResult]:
        """Compute consensus and store it on the history."""
        consensus = self.calculate_consensus(history, now)
        updated = replace(
            history,
            consensus=consensus.vin,
            confidence_score=consensus.confidence,
            stability_score=consensus.stability,
            last_updated=now,
        )
        return updated, consensus

    def frame_stats(self, history: ScanHistory) -> Dict[str, object]:
        """Summary statistics over the frames currently held."""
        frames = history.frames
        count = len(frames)
        return {
            'total_frames': history.total_frames,
            'current_frames': count,
            'max_frames': history.max_frames,
            'average_confidence': sum(f.confidence for f in frames) / count if count else 0.0,
            'average_processing_time_ms': sum(f.processing_time_ms for f in frames) / count if count else 0.0,
            'source_breakdown': dict(Counter(f.source.value for f in frames)),
            'unique_vins': list(dict.fromkeys(f.vin for f in frames)),
        }
