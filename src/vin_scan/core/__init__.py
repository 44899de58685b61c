"""
VIN Scan Core Module
====================

Pure VIN logic: correction, validation, scoring, context adjustment and
candidate extraction. No I/O and no recognition engines.
"""

from .vin_utils import (
    # Constants
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    VIN_INVALID_CHARS,
    WMI_BY_MANUFACTURER,
    KNOWN_WMIS,
    # Correction
    correct_characters,
    count_changed_characters,
    # Validation
    VINValidationResult,
    validate_vin,
    is_valid_vin,
    is_known_manufacturer,
    manufacturer_for_wmi,
    # Checksum
    calculate_check_digit,
    validate_checksum,
    # Decoding
    decode_vin,
)
from .scoring import score_candidate, has_vin_label, clamp_confidence, MAX_CONFIDENCE
from .context import (
    Adjustment,
    ContextAdjustment,
    UserFeedback,
    adjust_for_context,
    generate_user_feedback,
)
from .extraction import (
    VINMatch,
    ExtractionOutcome,
    ValidatedExtraction,
    extract_candidates,
    extract_vin,
    extract_vin_with_validation,
    find_vin_with_context,
    is_likely_non_vin_text,
)

__all__ = [
    # Constants
    "VINConstants",
    "VIN_LENGTH",
    "VIN_VALID_CHARS",
    "VIN_INVALID_CHARS",
    "WMI_BY_MANUFACTURER",
    "KNOWN_WMIS",
    # Correction
    "correct_characters",
    "count_changed_characters",
    # Validation
    "VINValidationResult",
    "validate_vin",
    "is_valid_vin",
    "is_known_manufacturer",
    "manufacturer_for_wmi",
    # Checksum
    "calculate_check_digit",
    "validate_checksum",
    "decode_vin",
    # Scoring
    "score_candidate",
    "has_vin_label",
    "clamp_confidence",
    "MAX_CONFIDENCE",
    # Context
    "Adjustment",
    "ContextAdjustment",
    "UserFeedback",
    "adjust_for_context",
    "generate_user_feedback",
    # Extraction
    "VINMatch",
    "ExtractionOutcome",
    "ValidatedExtraction",
    "extract_candidates",
    "extract_vin",
    "extract_vin_with_validation",
    "find_vin_with_context",
    "is_likely_non_vin_text",
]
