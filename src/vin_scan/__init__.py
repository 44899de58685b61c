"""
VIN Scan
========

VIN recognition and consensus engine for camera frames.

Package Structure:
    vin_scan/
    ├── core/           # VIN correction, validation, scoring, extraction
    ├── recognition/    # Text / barcode / quality backends (PaddleOCR, pyzbar, OpenCV)
    ├── pipeline/       # Race, attempts, frame history, intervals, engine
    ├── config.py       # Thresholds and feature flags
    ├── models.py       # Shared result and state types
    └── cli.py          # Command line interface

Quick Start:
    # Validation
    from vin_scan import validate_vin
    result = validate_vin("1HGCM82633A004352")
    print(result.is_valid)

    # Extraction from recognized text
    from vin_scan import extract_vin
    outcome = extract_vin("VIN: 1HGCM82633A004352")
    print(outcome.match.vin)

    # Frame scanning
    from vin_scan import VINScanEngine
    engine = VINScanEngine(text_recognizer=..., barcode_scanner=...)
    outcome = engine.scan_frame_sync("frame.jpg")

Version: 1.0.0
"""

__version__ = "1.0.0"

# Core exports (lightweight, no image stack required)
from .core import (
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    VINValidationResult,
    validate_vin,
    is_valid_vin,
    correct_characters,
    calculate_check_digit,
    validate_checksum,
    decode_vin,
    score_candidate,
    adjust_for_context,
    generate_user_feedback,
    extract_vin,
    extract_vin_with_validation,
)
from .config import FeatureFlags, ScanConfig
from .exceptions import (
    PipelineError,
    ImageLoadError,
    ConfigurationError,
    BackendError,
    RecognitionUnavailable,
)
from .models import ScanStatus, RecognitionSource, ScanOutcome, ScanState

__all__ = [
    "__version__",
    # Core
    "VINConstants",
    "VIN_LENGTH",
    "VIN_VALID_CHARS",
    "VINValidationResult",
    "validate_vin",
    "is_valid_vin",
    "correct_characters",
    "calculate_check_digit",
    "validate_checksum",
    "decode_vin",
    "score_candidate",
    "adjust_for_context",
    "generate_user_feedback",
    "extract_vin",
    "extract_vin_with_validation",
    # Config
    "FeatureFlags",
    "ScanConfig",
    # Errors
    "PipelineError",
    "ImageLoadError",
    "ConfigurationError",
    "BackendError",
    "RecognitionUnavailable",
    # Models
    "ScanStatus",
    "RecognitionSource",
    "ScanOutcome",
    "ScanState",
]


# Lazy imports for the engine and backends (pull in OpenCV / numpy)
def __getattr__(name: str):
    """Lazy import for pipeline and recognition modules."""
    if name == "VINScanEngine":
        from .pipeline.engine import VINScanEngine
        return VINScanEngine
    elif name == "RecognizerFactory":
        from .recognition.factory import RecognizerFactory
        return RecognizerFactory
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
