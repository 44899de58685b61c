"""
Confidence Scoring
==================

Bounded, deterministic confidence for a corrected VIN candidate, built
from correction cost, structural shape, preservation of critical
positions, surrounding label context and manufacturer prefix.
"""

import re
from typing import Tuple

from .vin_utils import VINConstants, VIN_LENGTH, count_changed_characters

BASE_SCORE = 0.4
UNCHANGED_BONUS = 0.4
MAX_CONFIDENCE = 0.98

# (pattern, bonus) applied to the corrected string when it has 17 characters
STRUCTURE_BONUSES: Tuple[Tuple[re.Pattern, float], ...] = (
    (re.compile(r'^[1-5]'), 0.15),                 # country of origin
    (re.compile(r'^.[A-HJ-NPR-Z]{2}'), 0.10),      # manufacturer code
    (re.compile(r'^.{3}[A-Z0-9]{5}'), 0.10),       # vehicle descriptor
    (re.compile(r'^.{8}[0-9X]'), 0.05),            # check digit slot
    (re.compile(r'^.{9}[A-Z0-9]{2}'), 0.05),       # model year and plant
)

CRITICAL_POSITIONS = (0, 1, 2, 8, 9, 10)
PRESERVED_POSITION_BONUS = 0.03
CHECK_SLOT_BONUS = 0.02
YEAR_SLOT_BONUS = 0.02
_YEAR_LETTER = re.compile(r'[A-HJ-NPR-Y]')

CHANGED_CHAR_PENALTY = 0.03
LENGTH_CHANGE_PENALTY = 0.10

LABEL_BONUS = 0.08
LEADING_PATTERN_BONUS = 0.05
MANUFACTURER_BONUS = 0.10

_VIN_LABEL = re.compile(r'VIN[\s#:]|VEHICLE.*ID|CHASSIS.*NUMBER', re.IGNORECASE)
_LEADING_PATTERN = re.compile(r'^[1-9][A-HJ-NPR-Z]')


def has_vin_label(text: str) -> bool:
    """True when ``text`` carries an explicit VIN / vehicle identification label."""
    return bool(_VIN_LABEL.search(text))


def clamp_confidence(value: float, ceiling: float = MAX_CONFIDENCE) -> float:
    return max(0.0, min(value, ceiling))


def _critical_position_bonus(original: str, corrected: str) -> float:
    if len(original) != VIN_LENGTH or len(corrected) != VIN_LENGTH:
        return 0.0

    bonus = sum(PRESERVED_POSITION_BONUS for pos in CRITICAL_POSITIONS
                if original[pos] == corrected[pos])

    check_char = corrected[VINConstants.CHECK_DIGIT_INDEX]
    if check_char.isdigit() or check_char == 'X':
        bonus += CHECK_SLOT_BONUS
    if _YEAR_LETTER.fullmatch(corrected[VINConstants.YEAR_INDEX]):
        bonus += YEAR_SLOT_BONUS
    return bonus


def score_candidate(original: str, corrected: str, text: str) -> float:
    """
    Score a corrected candidate.

    Args:
        original: Candidate as extracted, before correction
        corrected: Output of ``correct_characters(original)``
        text: Full recognized text the candidate came from

    Returns:
        Confidence in [0, 0.98]
    """
    score = BASE_SCORE

    if original == corrected:
        score += UNCHANGED_BONUS

    if len(corrected) == VIN_LENGTH:
        score += sum(bonus for pattern, bonus in STRUCTURE_BONUSES if pattern.match(corrected))

    score += _critical_position_bonus(original, corrected)

    changed = count_changed_characters(original, corrected)
    score -= CHANGED_CHAR_PENALTY * changed
    score -= LENGTH_CHANGE_PENALTY * abs(len(original) - len(corrected))

    if has_vin_label(text):
        score += LABEL_BONUS
    if _LEADING_PATTERN.match(corrected):
        score += LEADING_PATTERN_BONUS
    if corrected[:2] in VINConstants.COMMON_MANUFACTURER_PREFIXES:
        score += MANUFACTURER_BONUS

    return clamp_confidence(score)
