"""
Tests for the Command Line Interface
====================================

Run with: pytest tests/test_cli.py -v
"""

import io
import json

import cv2
import numpy as np
import pytest

from vin_scan.cli import main

from conftest import LABELED_TEXT, VALID_VIN


# =============================================================================
# SUBCOMMAND TESTS
# =============================================================================

class TestValidateCommand:
    """Tests for `vin-scan validate`."""

    def test_valid(self, capsys):
        """Test a valid VIN with its manufacturer."""
        assert main(["validate", VALID_VIN]) == 0
        out = capsys.readouterr().out
        assert "VALID" in out
        assert "Honda" in out

    def test_invalid(self, capsys):
        assert main(["validate", "1HGCM826A3A004352"]) == 1
        assert "INVALID" in capsys.readouterr().out

    def test_json(self, capsys):
        """Test JSON output with the global --json option."""
        assert main(["--json", "validate", VALID_VIN]) == 0
        assert json.loads(capsys.readouterr().out)["is_valid"] is True


class TestDecodeCommand:
    """Tests for `vin-scan decode`."""

    def test_decode(self, capsys):
        """Test that the model year is decoded."""
        assert main(["decode", VALID_VIN]) == 0
        assert "2003" in capsys.readouterr().out

    def test_decode_error(self, capsys):
        assert main(["--json", "decode", "1HG"]) == 1
        assert "error" in json.loads(capsys.readouterr().out)


class TestExtractCommand:
    """Tests for `vin-scan extract`."""

    def test_extract_text(self, capsys):
        assert main(["extract", LABELED_TEXT]) == 0
        assert VALID_VIN in capsys.readouterr().out

    def test_extract_stdin(self, capsys, monkeypatch):
        """Test reading text from stdin with '-'."""
        monkeypatch.setattr("sys.stdin", io.StringIO(f"Label\n{LABELED_TEXT}\n"))
        assert main(["--json", "extract", "-"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["match"]["vin"] == VALID_VIN
        assert payload["feedback"]["type"] == "success"

    def test_nothing_found(self, capsys):
        """Test the failure status and exit code when no VIN is present."""
        assert main(["extract", "hello world"]) == 1
        assert "no_candidate_found" in capsys.readouterr().out


class TestScanCommand:
    """Tests for `vin-scan scan`."""

    def test_scan_without_backends(self, tmp_path, capsys):
        """Test a scan with both recognition paths disabled."""
        path = tmp_path / "frame.png"
        cv2.imwrite(str(path), np.full((32, 32, 3), 90, dtype=np.uint8))
        assert main(["scan", str(path), "--no-text", "--no-barcode"]) == 1
        assert "recognition_unavailable" in capsys.readouterr().out

    def test_missing_image(self, tmp_path, capsys):
        """Test that a missing image prints an error instead of a traceback."""
        missing = tmp_path / "missing.png"
        assert main(["scan", str(missing), "--no-text", "--no-barcode"]) == 1
        assert "Failed to load image" in capsys.readouterr().err


# =============================================================================
# GLOBAL OPTION TESTS
# =============================================================================

class TestConfigOption:
    """Tests for --config."""

    def test_missing_config_file(self, tmp_path, capsys):
        """Test exit code 2 for a missing config file."""
        assert main(["--config", str(tmp_path / "none.yaml"), "validate", VALID_VIN]) == 2
        assert "Configuration error" in capsys.readouterr().err

    @pytest.mark.parametrize("name, content", [
        ("scan.json", "{not json"),
        ("scan.yaml", "flags: [1, 2\n"),
        ("scan.yaml", "max_frames: x\n"),
    ])
    def test_unusable_config_file(self, tmp_path, capsys, name, content):
        """Test exit code 2 for malformed or wrong-typed config files."""
        path = tmp_path / name
        path.write_text(content)
        assert main(["--config", str(path), "validate", VALID_VIN]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_config_file_applied(self, tmp_path, capsys):
        path = tmp_path / "scan.yaml"
        path.write_text("flags:\n  context_aware_detection: false\n")
        assert main(["--config", str(path), "extract", LABELED_TEXT]) == 0


class TestParser:
    """Tests for argument parsing."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
