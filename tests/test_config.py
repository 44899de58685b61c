"""
Tests for Configuration and Errors
==================================

Feature flags, environment overrides, config files and the
PipelineError hierarchy.
"""

import json

import pytest
import yaml

from vin_scan.config import FeatureFlags, LoggingConfig, ScanConfig
from vin_scan.exceptions import (
    BackendError,
    ConfigurationError,
    ImageLoadError,
    PipelineError,
    RecognitionUnavailable,
)


# =============================================================================
# FEATURE FLAG TESTS
# =============================================================================

class TestFeatureFlags:
    """Tests for FeatureFlags."""

    def test_defaults(self):
        """Test the default rollout state."""
        flags = FeatureFlags()
        assert not flags.roi_processing
        assert not flags.adaptive_intervals
        assert not flags.progressive_quality
        assert not flags.image_preprocessing
        assert flags.enhanced_confidence
        assert flags.multi_frame_analysis
        assert flags.text_recognition and flags.barcode_scanning

    def test_phase_one(self):
        flags = FeatureFlags().with_phase(1)
        assert flags.roi_processing and flags.adaptive_intervals
        assert not flags.progressive_quality

    def test_phase_three_enables_everything(self):
        """Test that phase 3 turns every flag on."""
        flags = FeatureFlags().disable_all_enhancements().with_phase(3)
        assert all(flags.to_dict().values())

    def test_unknown_phase(self):
        with pytest.raises(ConfigurationError):
            FeatureFlags().with_phase(4)

    def test_disable_all_keeps_safety_flags(self):
        """Test that only the safety flags survive disable_all_enhancements."""
        flags = FeatureFlags().with_phase(3).disable_all_enhancements()
        assert set(flags.enabled()) == set(FeatureFlags.SAFETY_FLAGS)

    def test_immutable(self):
        with pytest.raises(AttributeError):
            FeatureFlags().adaptive_intervals = True

    def test_environment_override(self, monkeypatch):
        """Test VIN_SCAN_FLAG_* environment variables."""
        monkeypatch.setenv("VIN_SCAN_FLAG_ADAPTIVE_INTERVALS", "true")
        monkeypatch.setenv("VIN_SCAN_FLAG_BARCODE_SCANNING", "0")
        flags = FeatureFlags()
        assert flags.adaptive_intervals
        assert not flags.barcode_scanning


# =============================================================================
# SCAN CONFIG TESTS
# =============================================================================

class TestScanConfig:
    """Tests for ScanConfig defaults, validation and environment overrides."""

    def test_defaults(self):
        """Test the documented default values."""
        config = ScanConfig()
        assert config.max_frames == 3
        assert config.hang_timeout_s == 30.0
        assert config.interval_table_ms == (1500, 2500, 4000, 6000)
        assert not config.require_consensus

    @pytest.mark.parametrize("max_frames", [2, 6])
    def test_max_frames_range(self, max_frames):
        """Test that max_frames outside 3-5 is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            ScanConfig(max_frames=max_frames)
        assert exc_info.value.config_key == "max_frames"

    def test_wrong_type_rejected(self):
        """Test that a wrong-typed field raises ConfigurationError, not TypeError."""
        config = ScanConfig()
        config.max_frames = "x"
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_invalid_env_value_falls_back(self, monkeypatch):
        monkeypatch.setenv("VIN_SCAN_HANG_TIMEOUT_S", "soon")
        assert ScanConfig().hang_timeout_s == 30.0

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("VIN_SCAN_MAX_FRAMES", "5")
        assert ScanConfig().max_frames == 5

    def test_logging_env(self, monkeypatch):
        monkeypatch.setenv("VIN_SCAN_LOG_LEVEL", "DEBUG")
        assert LoggingConfig().level == "DEBUG"


# =============================================================================
# CONFIG FILE TESTS
# =============================================================================

class TestConfigFiles:
    """Tests for ScanConfig.save, load and from_dict."""

    def test_yaml_save_and_load(self, tmp_path):
        """Test a YAML round trip of a non-default config."""
        config = ScanConfig(max_frames=4, flags=FeatureFlags().with_phase(1))
        path = tmp_path / "scan.yaml"
        config.save(path)

        assert yaml.safe_load(path.read_text())["max_frames"] == 4
        loaded = ScanConfig.load(path)
        assert loaded.max_frames == 4
        assert loaded.flags.adaptive_intervals
        assert loaded.interval_table_ms == config.interval_table_ms

    def test_json_partial_file(self, tmp_path):
        """Test that a partial file keeps defaults and ignores unknown keys."""
        path = tmp_path / "scan.json"
        path.write_text(json.dumps({"require_consensus": True, "unknown": 1,
                                    "flags": {"multi_frame_analysis": False, "bogus": True}}))
        loaded = ScanConfig.load(path)
        assert loaded.require_consensus
        assert not loaded.flags.multi_frame_analysis
        assert loaded.max_frames == 3

    def test_numeric_strings_are_converted(self):
        loaded = ScanConfig.from_dict({"max_frames": "4", "hang_timeout_s": 12, "quality_levels": [0.6, 1]})
        assert loaded.max_frames == 4
        assert loaded.hang_timeout_s == 12.0
        assert loaded.quality_levels == (0.6, 1.0)

    def test_load_missing(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ScanConfig.load(tmp_path / "missing.yaml")

    def test_load_non_mapping(self, tmp_path):
        """Test that a list at the root is rejected."""
        path = tmp_path / "scan.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            ScanConfig.load(path)

    @pytest.mark.parametrize("name, content", [
        ("scan.json", "{not json"),
        ("scan.yaml", "max_frames: [1, 2\n"),
    ])
    def test_load_malformed(self, tmp_path, name, content):
        """Test that unparseable files raise ConfigurationError."""
        path = tmp_path / name
        path.write_text(content)
        with pytest.raises(ConfigurationError):
            ScanConfig.load(path)

    @pytest.mark.parametrize("data, key", [
        ({"max_frames": "x"}, "max_frames"),
        ({"require_consensus": "yes"}, "require_consensus"),
        ({"interval_table_ms": 1500}, "interval_table_ms"),
        ({"flags": {"adaptive_intervals": "on"}}, "flags.adaptive_intervals"),
        ({"flags": ["adaptive_intervals"]}, "flags"),
    ])
    def test_wrong_types_in_file(self, data, key):
        """Test that wrong-typed values name the offending key."""
        with pytest.raises(ConfigurationError) as exc_info:
            ScanConfig.from_dict(data)
        assert exc_info.value.config_key == key


# =============================================================================
# ERROR TESTS
# =============================================================================

class TestExceptions:
    """Tests for the PipelineError hierarchy."""

    def test_hierarchy(self):
        assert issubclass(RecognitionUnavailable, BackendError)
        assert issubclass(BackendError, PipelineError)
        assert issubclass(ImageLoadError, PipelineError)

    def test_to_dict(self):
        """Test the structured error payload."""
        err = ImageLoadError("frame.jpg", "file not found")
        d = err.to_dict()
        assert d["error_code"] == "IMAGE_LOAD_ERROR"
        assert d["context"]["source"] == "frame.jpg"

    def test_recognition_unavailable_code(self):
        err = RecognitionUnavailable("PaddleOCR", "not installed")
        assert err.error_code == "RECOGNITION_UNAVAILABLE"
        assert err.backend == "PaddleOCR"
