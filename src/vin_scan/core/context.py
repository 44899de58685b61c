"""
Context Adjustment & User Feedback
==================================

Manufacturer- and position-specific OCR ambiguity checks. Suggestions are
annotations only: the VIN itself is never rewritten here, the caller
decides whether to accept, retry or fall back to manual entry.

Usage:
    adjustment = adjust_for_context("1FMCU9G61LUA12345", 0.62)
    feedback = generate_user_feedback(adjustment)
    print(feedback.type, feedback.message)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .scoring import clamp_confidence
from .vin_utils import VIN_LENGTH, manufacturer_for_wmi

logger = logging.getLogger(__name__)

SUGGESTION_THRESHOLD_PCT = 70
REVIEW_THRESHOLD_PCT = 65
ADJUSTMENT_PENALTY_PCT = 10

# (manufacturer, wmi, 1-based position, seen, suggested, reason)
AMBIGUITY_RULES: Tuple[Tuple[str, str, int, str, str, str], ...] = (
    ("Ford", "1FM", 6, "1", "0", "Ford model pattern suggests 0 for this WMI"),
    ("Ford", "1FM", 8, "1", "0", "Plant code pattern analysis suggests 0"),
)

SUCCESS_PCT = 85
GOOD_PCT = 70


@dataclass(frozen=True)
class Adjustment:
    """A suggested character change at a 1-based VIN position."""
    position: int
    original: str
    suggested: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'position': self.position,
            'original': self.original,
            'suggested': self.suggested,
            'reason': self.reason,
        }


@dataclass
class ContextAdjustment:
    """Outcome of context adjustment; ``vin`` is always the input VIN."""
    vin: str
    confidence: float
    adjustments: List[Adjustment] = field(default_factory=list)
    confidence_adjustment: int = 0
    needs_user_review: bool = False

    @property
    def adjusted_confidence(self) -> float:
        return clamp_confidence(self.confidence + self.confidence_adjustment / 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vin': self.vin,
            'confidence': self.confidence,
            'adjusted_confidence': self.adjusted_confidence,
            'adjustments': [a.to_dict() for a in self.adjustments],
            'confidence_adjustment': self.confidence_adjustment,
            'needs_user_review': self.needs_user_review,
        }


def adjust_for_context(vin: str, confidence: float) -> ContextAdjustment:
    """
    Check a structurally valid VIN against known ambiguity patterns.

    Args:
        vin: 17-character VIN
        confidence: Confidence in [0, 1]

    Returns:
        ContextAdjustment with suggestions and a percentage-point delta
    """
    if len(vin) != VIN_LENGTH:
        return ContextAdjustment(vin=vin, confidence=confidence, needs_user_review=True)

    confidence_pct = confidence * 100
    wmi = vin[:3]
    manufacturer = manufacturer_for_wmi(wmi)

    adjustments = []
    for make, rule_wmi, position, seen, suggested, reason in AMBIGUITY_RULES:
        if confidence_pct >= SUGGESTION_THRESHOLD_PCT:
            break
        if manufacturer == make and wmi == rule_wmi and vin[position - 1] == seen:
            adjustments.append(Adjustment(position, seen, suggested, reason))

    result = ContextAdjustment(
        vin=vin,
        confidence=confidence,
        adjustments=adjustments,
        confidence_adjustment=-ADJUSTMENT_PENALTY_PCT * len(adjustments),
        needs_user_review=confidence_pct < REVIEW_THRESHOLD_PCT and bool(adjustments),
    )
    logger.debug(
        f"Context validation for {vin}: {len(adjustments)} suggestions, "
        f"confidence adjustment {result.confidence_adjustment}"
    )
    return result


# =============================================================================
# USER FEEDBACK
# =============================================================================

@dataclass
class UserFeedback:
    """Caller-facing message with the actions to offer."""
    type: str
    message: str
    actions: List[Dict[str, str]]
    highlight_positions: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'message': self.message,
            'actions': self.actions,
            'highlight_positions': self.highlight_positions,
        }


_ACCEPT = {'type': 'accept', 'label': 'Accept'}
_RETRY = {'type': 'retry', 'label': 'Retry Scan'}
_MANUAL = {'type': 'manual', 'label': 'Manual Entry'}
_ACCEPT_ANYWAY = {'type': 'accept', 'label': 'Accept Anyway'}


def generate_user_feedback(context: ContextAdjustment) -> UserFeedback:
    """Turn a context adjustment into a success, warning or error message."""
    pct = round(context.adjusted_confidence * 100)

    if pct >= SUCCESS_PCT and not context.needs_user_review:
        return UserFeedback('success', f"VIN scanned successfully ({pct}% confidence)", [dict(_ACCEPT)])

    if pct >= GOOD_PCT and not context.adjustments:
        return UserFeedback('success', f"VIN detected with good confidence ({pct}%)", [dict(_ACCEPT)])

    if context.needs_user_review:
        suggestions = ', '.join(
            f"Position {a.position}: {a.original} -> {a.suggested} ({a.reason})"
            for a in context.adjustments
        )
        return UserFeedback(
            'warning',
            f"Low confidence scan ({pct}%). Suggestions: {suggestions}",
            [dict(_RETRY), dict(_MANUAL), dict(_ACCEPT_ANYWAY)],
            [a.position for a in context.adjustments],
        )

    return UserFeedback(
        'error',
        f"Low confidence scan ({pct}%). Try better lighting or closer distance.",
        [dict(_RETRY), dict(_MANUAL)],
    )
