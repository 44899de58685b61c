"""
VIN Candidate Extraction
========================

Finds VIN-shaped substrings in raw recognized text and picks the best
structurally valid one.

Search strategies, in priority order:
1. Labeled sequences ("VIN", "Vehicle ID", "Chassis", "Serial"), including
   space-separated characters
2. Standalone 17-character alphanumeric runs
3. Line scan for 15-20 character runs with a manufacturer-like start
4. Sliding 17-character window over all alphanumerics (first 3 plausible)

Candidate regexes deliberately accept I, O and Q so that OCR noise
reaches the corrector. A "valid-length candidate" is therefore not a
valid VIN until it has been corrected and validated.

Usage:
    from vin_scan.core.extraction import extract_vin

    outcome = extract_vin("VIN: 1HGCM82633A004352")
    if outcome.match:
        print(outcome.match.vin, outcome.match.confidence)
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models import ScanStatus
from .context import ContextAdjustment, UserFeedback, adjust_for_context, generate_user_feedback
from .scoring import MAX_CONFIDENCE, score_candidate
from .vin_utils import VIN_LENGTH, correct_characters, is_valid_vin

logger = logging.getLogger(__name__)

MIN_CANDIDATE_CONFIDENCE = 0.5
MIN_CONTEXT_CONFIDENCE = 0.6
CONTEXT_BONUS_WEIGHT = 0.2
MAX_WINDOW_CANDIDATES = 3

_LABELED_PATTERNS = [
    re.compile(r'VIN\s*[#:]?\s*([A-Z0-9]{17})'),
    re.compile(r'VEHICLE\s*ID\s*[#:]?\s*([A-Z0-9]{17})'),
    re.compile(r'CHASSIS\s*[#:]?\s*([A-Z0-9]{17})'),
    re.compile(r'SERIAL\s*[#:]?\s*([A-Z0-9]{17})'),
    # "1 C 4 R J F B G 5 M C 7 0 8 1 6 7"
    re.compile(r'VIN\s*[#:]?\s*((?:[A-Z0-9]\s+){16}[A-Z0-9])'),
]
_STANDALONE = re.compile(r'[A-Z0-9]{17}')
_LINE_STARTS = (
    re.compile(r'^1[A-Z0-9]'),
    re.compile(r'^[A-Z][A-Z0-9]'),
    re.compile(r'^[0-9][A-Z]'),
)
_WINDOW_START = re.compile(r'^[1-9][A-Z0-9]')
_NON_ALNUM = re.compile(r'[^A-Z0-9]')
_LINE_SPLIT = re.compile(r'[\r\n]+')
_WHITESPACE = re.compile(r'\s+')

_CONTEXT_MARKERS = [
    re.compile(r'VIN[\s:]*', re.IGNORECASE),
    re.compile(r'VEHICLE[\s:]*IDENTIFICATION[\s:]*NUMBER', re.IGNORECASE),
    re.compile(r'CHASSIS[\s:]*NUMBER', re.IGNORECASE),
    re.compile(r'SERIAL[\s:]*NUMBER', re.IGNORECASE),
]
_CONTEXT_RUN = re.compile(r'[A-HJ-NPR-Z0-9IO]{17}')


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class VINMatch:
    """A corrected, validated VIN with its confidence."""
    vin: str
    confidence: float
    original: str
    method: str = "candidate"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vin': self.vin,
            'confidence': self.confidence,
            'original': self.original,
            'method': self.method,
        }


@dataclass
class ExtractionOutcome:
    """Best match for one text, or the reason there is none."""
    match: Optional[VINMatch] = None
    status: ScanStatus = ScanStatus.NO_CANDIDATE_FOUND
    candidates: List[str] = field(default_factory=list)
    filtered: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'match': self.match.to_dict() if self.match else None,
            'status': self.status.value,
            'candidates': self.candidates,
            'filtered': self.filtered,
        }


@dataclass
class ValidatedExtraction:
    """Extraction result annotated with context suggestions and feedback."""
    match: VINMatch
    context: ContextAdjustment
    feedback: UserFeedback

    @property
    def confidence(self) -> float:
        return self.context.adjusted_confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vin': self.match.vin,
            'confidence': self.confidence,
            'match': self.match.to_dict(),
            'context': self.context.to_dict(),
            'feedback': self.feedback.to_dict(),
        }


# =============================================================================
# FILTERING
# =============================================================================

NON_VIN_KEYWORDS = (
    'chat', 'message', 'terminal', 'npm', 'run', 'dev', 'test', 'component',
    'function', 'return', 'code', 'file', 'line', 'error', 'warning', 'build',
    'install', 'package', 'json', 'script', 'agent', 'assistant', 'user',
    'query', 'response', 'http', 'https', 'www', 'com', 'org', 'net',
    'navigation', 'radio', 'bluetooth', 'android', 'apple', 'software',
    'update', 'version', 'settings', 'menu', 'instant', 'reports',
    'autotrader', 'carfax', 'edmunds', 'website', 'online', 'internet', 'web',
    'click', 'button',
)

_VIN_SHAPED = re.compile(r'[A-HJ-NPR-Z0-9]{17}')
_VIN_CONTEXT = re.compile(
    r'VIN[\s#:]|VEHICLE[\s:]*IDENTIFICATION|CHASSIS[\s:]*NUMBER|SERIAL[\s:]*NUMBER',
    re.IGNORECASE,
)
_PROGRAMMING = re.compile(
    r'(\{|\}|\[|\]|\(|\)|console\.|log|function|class|import|export|const|let|var)',
    re.IGNORECASE,
)
_UI_WORDS = re.compile(r'navigation|button|modal|screen|tab|scroll|click|tap|touch|swipe|gesture')
_SPACED_VIN_BLOCK = re.compile(r'^[A-HJ-NPR-Z0-9\s]{17,50}$')


def is_likely_non_vin_text(text: str) -> bool:
    """
    Heuristic filter for recognized text that is clearly not a VIN label.

    Text containing a VIN-shaped run or an explicit VIN label always passes.
    """
    if _VIN_SHAPED.search(text.upper()) or _VIN_CONTEXT.search(text):
        return False

    lower = text.lower()
    if any(keyword in lower for keyword in NON_VIN_KEYWORDS):
        return True
    if _PROGRAMMING.search(text) or _UI_WORDS.search(lower):
        return True
    if text.count('.') > 2:
        return True
    return len(text) > 200 and not _SPACED_VIN_BLOCK.match(text)


# =============================================================================
# CANDIDATES
# =============================================================================

def extract_candidates(text: str) -> List[str]:
    """
    Collect de-duplicated 17-character candidates in priority order.

    Candidates may still contain I, O or Q.
    """
    if not text:
        return []

    text = text.upper()
    candidates: List[str] = []

    for pattern in _LABELED_PATTERNS:
        for match in pattern.finditer(text):
            candidate = _WHITESPACE.sub('', match.group(1))
            if len(candidate) == VIN_LENGTH:
                candidates.append(candidate)

    candidates.extend(_STANDALONE.findall(text))

    for line in _LINE_SPLIT.split(text):
        clean = _NON_ALNUM.sub('', line)
        if 15 <= len(clean) <= 20 and any(p.match(clean) for p in _LINE_STARTS):
            if len(clean) >= VIN_LENGTH:
                candidates.append(clean[:VIN_LENGTH])

    alnum = _NON_ALNUM.sub('', text)
    windows = [
        alnum[i:i + VIN_LENGTH]
        for i in range(len(alnum) - VIN_LENGTH + 1)
        if _WINDOW_START.match(alnum[i:i + VIN_LENGTH])
    ]
    candidates.extend(windows[:MAX_WINDOW_CANDIDATES])

    unique = list(dict.fromkeys(candidates))
    logger.debug(f"Extracted {len(unique)} candidates: {unique}")
    return unique


def find_vin_with_context(text: str) -> Optional[VINMatch]:
    """
    Secondary search: VIN-like runs on lines at or next to a label keyword.

    The label's proximity adds up to 0.2 to the candidate score.
    """
    lines = _LINE_SPLIT.split(text.upper())

    for i, raw_line in enumerate(lines):
        line = raw_line.strip()
        clean = _WHITESPACE.sub('', line)
        if not VIN_LENGTH <= len(clean) <= 25:
            continue

        strength = 0.0
        if any(m.search(line) for m in _CONTEXT_MARKERS):
            strength = 1.0 if 'VIN' in line else 0.8
        elif i > 0 and any(m.search(lines[i - 1]) for m in _CONTEXT_MARKERS):
            strength = 0.7
        elif i < len(lines) - 1 and any(m.search(lines[i + 1]) for m in _CONTEXT_MARKERS):
            strength = 0.6

        if not strength:
            continue

        run = _CONTEXT_RUN.search(clean)
        if not run:
            continue

        candidate = run.group(0)
        corrected = correct_characters(candidate)
        if len(corrected) == VIN_LENGTH and is_valid_vin(corrected):
            confidence = min(score_candidate(candidate, corrected, text) + strength * CONTEXT_BONUS_WEIGHT,
                             MAX_CONFIDENCE)
            logger.debug(f"Context candidate {corrected} (strength {strength}, confidence {confidence:.2f})")
            return VINMatch(vin=corrected, confidence=confidence, original=candidate, method="context")

    return None


# =============================================================================
# EXTRACTION
# =============================================================================

def extract_vin(
    text: str,
    context_aware: bool = True,
    min_confidence: float = MIN_CANDIDATE_CONFIDENCE,
    context_min_confidence: float = MIN_CONTEXT_CONFIDENCE,
) -> ExtractionOutcome:
    """
    Extract the best VIN from recognized text.

    Args:
        text: Recognized text for one frame
        context_aware: Drop text that looks like UI, code or prose first
        min_confidence: Acceptance floor for regular candidates
        context_min_confidence: Acceptance floor for the context fallback (exclusive)

    Returns:
        ExtractionOutcome; ``match`` is None when nothing qualified
    """
    if not text or not text.strip():
        return ExtractionOutcome()

    if context_aware and is_likely_non_vin_text(text):
        logger.debug("Text rejected by non-VIN filter")
        return ExtractionOutcome(filtered=True)

    candidates = extract_candidates(text)
    best: Optional[VINMatch] = None
    any_valid = False

    for candidate in candidates:
        corrected = correct_characters(candidate)
        if len(corrected) != VIN_LENGTH or not is_valid_vin(corrected):
            continue
        any_valid = True

        confidence = score_candidate(candidate, corrected, text)
        logger.debug(f"Candidate {candidate} -> {corrected} ({confidence:.0%})")
        if confidence >= min_confidence and (best is None or confidence > best.confidence):
            best = VINMatch(vin=corrected, confidence=confidence, original=candidate)

    if best is None:
        fallback = find_vin_with_context(text)
        if fallback and fallback.confidence > context_min_confidence:
            return ExtractionOutcome(match=fallback, status=ScanStatus.SUCCESS, candidates=candidates)

        if any_valid:
            status = ScanStatus.LOW_CONFIDENCE
        elif candidates:
            status = ScanStatus.STRUCTURAL_REJECTION
        else:
            status = ScanStatus.NO_CANDIDATE_FOUND
        return ExtractionOutcome(status=status, candidates=candidates)

    return ExtractionOutcome(match=best, status=ScanStatus.SUCCESS, candidates=candidates)


def extract_vin_with_validation(text: str, context_aware: bool = True) -> Optional[ValidatedExtraction]:
    """Extract a VIN and annotate it with context suggestions and user feedback."""
    outcome = extract_vin(text, context_aware=context_aware)
    if outcome.match is None:
        return None

    context = adjust_for_context(outcome.match.vin, outcome.match.confidence)
    if context.adjustments:
        logger.info("Suggestions: " + ', '.join(
            f"{a.position}: {a.original}->{a.suggested}" for a in context.adjustments
        ))
    return ValidatedExtraction(match=outcome.match, context=context,
                               feedback=generate_user_feedback(context))
