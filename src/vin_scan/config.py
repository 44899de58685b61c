"""
Scan Engine Configuration - Centralized Settings
================================================

All tunable thresholds and feature flags in one place.
Supports environment variable overrides and JSON/YAML config files.

The confidence cutoffs and interval table are empirically tuned values,
kept as named fields so they can be adjusted without touching the
algorithms that consume them.

Usage:
    from vin_scan.config import ScanConfig, FeatureFlags

    config = ScanConfig()
    config = ScanConfig(flags=FeatureFlags().with_phase(1))
    config = ScanConfig.load(Path("scan.yaml"))

Environment Variables:
    VIN_SCAN_HANG_TIMEOUT_S=30
    VIN_SCAN_MAX_FRAMES=3
    VIN_SCAN_LOG_LEVEL=DEBUG
    VIN_SCAN_FLAG_ADAPTIVE_INTERVALS=true
"""

import os
import json
import logging
from dataclasses import dataclass, field, asdict, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid float for {key}: {value}, using default {default}")
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid int for {key}: {value}, using default {default}")
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get bool from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        return value.lower() in ('true', '1', 'yes', 'on')
    return default


def _get_env_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


def _coerce(key: str, value: Any, default: Any) -> Any:
    """Convert a file value to the type of the field's default."""
    try:
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise TypeError(f"expected true/false, got {value!r}")
            return value
        if isinstance(default, tuple):
            if not isinstance(value, (list, tuple)):
                raise TypeError(f"expected a list, got {value!r}")
            item_type = type(default[0]) if default else float
            return tuple(item_type(v) for v in value)
        if isinstance(default, (int, float)):
            if isinstance(value, (bool, list, dict)) or value is None:
                raise TypeError(f"expected a number, got {value!r}")
            return type(default)(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {key}: {e}",
                                 config_key=key, expected=type(default).__name__) from e
    return value


def _flag(name: str, default: bool):
    return field(default_factory=lambda: _get_env_bool(f'VIN_SCAN_FLAG_{name.upper()}', default))


# =============================================================================
# FEATURE FLAGS
# =============================================================================

@dataclass(frozen=True)
class FeatureFlags:
    """
    Immutable set of feature toggles consumed by the scan engine.

    Every legal combination is supported; a disabled feature degrades
    to its baseline behaviour rather than failing.
    """

    # Phase 1
    roi_processing: bool = _flag('roi_processing', False)
    adaptive_intervals: bool = _flag('adaptive_intervals', False)
    # Phase 2
    progressive_quality: bool = _flag('progressive_quality', False)
    image_preprocessing: bool = _flag('image_preprocessing', False)
    # Confidence and validation
    enhanced_confidence: bool = _flag('enhanced_confidence', True)
    check_digit_validation: bool = _flag('check_digit_validation', True)
    manufacturer_validation: bool = _flag('manufacturer_validation', True)
    # Detection
    context_aware_detection: bool = _flag('context_aware_detection', True)
    multi_frame_analysis: bool = _flag('multi_frame_analysis', True)
    # Recognition paths
    text_recognition: bool = _flag('text_recognition', True)
    barcode_scanning: bool = _flag('barcode_scanning', True)
    # Diagnostics and safety
    debug_logging: bool = _flag('debug_logging', True)
    performance_metrics: bool = _flag('performance_metrics', True)
    safety_checks: bool = _flag('safety_checks', True)

    PHASES = {
        1: ('roi_processing', 'adaptive_intervals'),
        2: ('progressive_quality', 'image_preprocessing'),
    }

    SAFETY_FLAGS = ('text_recognition', 'barcode_scanning', 'safety_checks',
                    'debug_logging', 'performance_metrics')

    def with_phase(self, phase: int) -> 'FeatureFlags':
        """Return a copy with the flags of a rollout phase (1-3) enabled."""
        if phase == 3:
            return replace(self, **{f.name: True for f in fields(self)})
        if phase not in self.PHASES:
            raise ConfigurationError(f"Unknown rollout phase: {phase}",
                                     config_key="phase", expected="1, 2 or 3")
        return replace(self, **{name: True for name in self.PHASES[phase]})

    def disable_all_enhancements(self) -> 'FeatureFlags':
        """Return a copy with every enhancement off and only the safety flags kept."""
        return replace(self, **{
            f.name: f.name in self.SAFETY_FLAGS for f in fields(self)
        })

    def enabled(self) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(self) if getattr(self, f.name))

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(
        default_factory=lambda: _get_env_str('VIN_SCAN_LOG_LEVEL', 'INFO')
    )
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format: str = '%Y-%m-%d %H:%M:%S'

    # File logging (optional)
    log_file: Optional[str] = field(
        default_factory=lambda: os.environ.get('VIN_SCAN_LOG_FILE')
    )


@dataclass
class ScanConfig:
    """Complete scan engine configuration."""

    flags: FeatureFlags = field(default_factory=FeatureFlags)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Acceptance floors
    candidate_min_confidence: float = 0.5
    context_min_confidence: float = 0.6
    barcode_min_confidence: float = 0.7
    max_confidence: float = 0.98

    # Attempt controller
    early_exit_barcode_confidence: float = 0.9
    early_exit_confidence: float = 0.8
    early_exit_quality_confidence: float = 0.75
    early_exit_min_quality: float = 0.6
    backoff_base_ms: int = 100
    backoff_max_ms: int = 1000
    hang_timeout_s: float = field(
        default_factory=lambda: _get_env_float('VIN_SCAN_HANG_TIMEOUT_S', 30.0)
    )
    quality_levels: Tuple[float, ...] = (0.5, 0.8, 1.0)

    # Frame history and consensus
    max_frames: int = field(
        default_factory=lambda: _get_env_int('VIN_SCAN_MAX_FRAMES', 3)
    )
    frame_max_age_s: float = 20.0
    consensus_window: int = 5
    consensus_decay: float = 0.9
    recency_horizon_s: float = 30.0
    # Report CONSENSUS_NOT_REACHED instead of the single-frame result
    require_consensus: bool = field(
        default_factory=lambda: _get_env_bool('VIN_SCAN_REQUIRE_CONSENSUS', False)
    )

    # Adaptive interval scheduler
    interval_table_ms: Tuple[int, ...] = (1500, 2500, 4000, 6000)
    success_interval_multiplier: float = 0.8
    fixed_interval_ms: int = field(
        default_factory=lambda: _get_env_int('VIN_SCAN_FIXED_INTERVAL_MS', 2000)
    )

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check value ranges that the engine relies on."""
        try:
            self._check_ranges()
        except TypeError as e:
            raise ConfigurationError(f"Wrong value type: {e}") from e

    def _check_ranges(self) -> None:
        if not 3 <= self.max_frames <= 5:
            raise ConfigurationError(
                f"max_frames must be between 3 and 5, got {self.max_frames}",
                config_key="max_frames", expected="3-5"
            )
        if not 0.0 < self.max_confidence <= 1.0:
            raise ConfigurationError(
                f"max_confidence must be in (0, 1], got {self.max_confidence}",
                config_key="max_confidence", expected="(0, 1]"
            )
        if not self.interval_table_ms:
            raise ConfigurationError("interval_table_ms must not be empty",
                                     config_key="interval_table_ms")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (tuples become lists for YAML safe_dump)."""
        return {k: list(v) if isinstance(v, tuple) else v for k, v in asdict(self).items()}

    def save(self, path: Path):
        """Save configuration to a JSON or YAML file (chosen by suffix)."""
        path = Path(path)
        with open(path, 'w') as f:
            if path.suffix in ('.yaml', '.yml'):
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> 'ScanConfig':
        """Load configuration from a JSON or YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}", config_key="path")

        try:
            with open(path) as f:
                if path.suffix in ('.yaml', '.yml'):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot parse config file {path}: {e}", config_key="path") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config root must be a mapping: {path}",
                                     expected="mapping")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanConfig':
        """Build a config from a (possibly partial) dictionary; unknown keys are ignored."""
        for section in ('flags', 'logging'):
            if not isinstance(data.get(section) or {}, dict):
                raise ConfigurationError(f"'{section}' must be a mapping",
                                         config_key=section, expected="mapping")

        flag_names = {f.name for f in fields(FeatureFlags)}
        flags = FeatureFlags(**{
            k: _coerce(f"flags.{k}", v, False) for k, v in (data.get('flags') or {}).items() if k in flag_names
        })

        log_config = LoggingConfig()
        for key, value in (data.get('logging') or {}).items():
            if hasattr(log_config, key):
                setattr(log_config, key, value)

        defaults = cls()
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name in ('flags', 'logging') or f.name not in data:
                continue
            kwargs[f.name] = _coerce(f.name, data[f.name], getattr(defaults, f.name))

        return cls(flags=flags, logging=log_config, **kwargs)


def setup_logging(config: LoggingConfig):
    """Configure logging based on settings."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
    )
