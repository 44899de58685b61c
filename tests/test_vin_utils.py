"""
Tests for VIN Utilities
=======================

Correction, structural validation, check digit and decoding.

Run with: pytest tests/test_vin_utils.py -v
"""

import pytest

from vin_scan.core.vin_utils import (
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    calculate_check_digit,
    correct_characters,
    count_changed_characters,
    decode_vin,
    is_known_manufacturer,
    is_valid_vin,
    manufacturer_for_wmi,
    validate_checksum,
    validate_vin,
)

from conftest import VALID_VIN


# =============================================================================
# Constants
# =============================================================================

class TestConstants:
    """Tests for VIN constants."""

    def test_alphabet_excludes_ambiguous_letters(self):
        """Test that I, O and Q are outside the VIN alphabet."""
        assert VIN_LENGTH == 17
        assert len(VIN_VALID_CHARS) == 33
        for char in "IOQ":
            assert char not in VIN_VALID_CHARS

    def test_north_american_prefixes_are_common(self):
        for prefix in VINConstants.NORTH_AMERICAN_PREFIXES:
            assert prefix in VINConstants.COMMON_MANUFACTURER_PREFIXES


# =============================================================================
# Character Correction
# =============================================================================

class TestCorrectCharacters:
    """Tests for correct_characters and count_changed_characters."""

    def test_ambiguous_letters_become_zero(self):
        """Test that I, O and Q map to zero."""
        assert correct_characters("SAL1A2A40SA6O6662") == "SAL1A2A40SA606662"
        assert correct_characters("IOQ") == "000"

    def test_lowercase_input(self):
        assert correct_characters("sal1a2a40sa6o6662") == "SAL1A2A40SA606662"

    def test_strips_characters_outside_alphabet(self):
        assert correct_characters("1HG-CM8 2633A.004352") == VALID_VIN

    def test_idempotent(self):
        """Test that correcting twice changes nothing."""
        once = correct_characters("1hgcm8-2633aoO4352")
        assert correct_characters(once) == once

    def test_output_alphabet(self):
        result = correct_characters("Quick brown fox: I/O #17 ?")
        assert all(c in VIN_VALID_CHARS for c in result)

    def test_count_changed_characters(self):
        assert count_changed_characters("SAL1A2A40SA6O6662", "SAL1A2A40SA606662") == 1
        assert count_changed_characters(VALID_VIN, VALID_VIN) == 0

    def test_count_includes_dropped_characters(self):
        """Test that characters removed by correction count as changes."""
        assert count_changed_characters(f"{VALID_VIN}*", VALID_VIN) == 1
        assert count_changed_characters("1HG-CM", "1HGCM") == 3
        assert count_changed_characters("", "") == 0


# =============================================================================
# Structural Validation
# =============================================================================

class TestValidateVIN:
    """Tests for validate_vin."""

    def test_valid_vin(self):
        """Test a structurally valid VIN with a correct checksum."""
        result = validate_vin(VALID_VIN)
        assert result.is_valid
        assert result.failure_reason is None
        assert result.known_manufacturer
        assert result.manufacturer == "Honda"
        assert result.checksum_valid is True
        assert result.expected_check_digit == "3"

    def test_normalizes_case_and_whitespace(self):
        assert validate_vin(f"  {VALID_VIN.lower()} ").is_valid

    def test_wrong_length(self):
        result = validate_vin(VALID_VIN[:-1])
        assert not result.is_valid
        assert "length" in result.failure_reason

    def test_characters_outside_alphabet(self):
        result = validate_vin("1HGCM82633A0O4352")
        assert not result.is_valid
        assert result.invalid_chars == ["O"]

    def test_check_digit_slot_must_be_digit_or_x(self):
        """Test that a letter other than X in position 9 is rejected."""
        result = validate_vin("1HGCM826A3A004352")
        assert not result.is_valid
        assert "check digit" in result.failure_reason

    def test_check_digit_slot_accepts_x(self):
        assert validate_vin("1HGCM826X3A004352").is_valid

    def test_checksum_is_advisory(self):
        """Test that a checksum mismatch never rejects."""
        # Check digit '7' is wrong for this VIN but the VIN stays valid
        result = validate_vin("1HGCM82673A004352")
        assert result.is_valid
        assert result.checksum_valid is False

    def test_unknown_manufacturer_is_not_rejected(self):
        """Test that unknown WMIs pass validation."""
        result = validate_vin("ZZZCM82633A004352")
        assert result.is_valid
        assert not result.known_manufacturer
        assert result.manufacturer is None

    def test_is_valid_vin_agrees_with_validate(self):
        for vin in (VALID_VIN, "1HGCM826A3A004352", "SHORT", "1HGCM82633A0O4352"):
            assert is_valid_vin(vin) == validate_vin(vin).is_valid

    def test_to_dict(self):
        d = validate_vin(VALID_VIN).to_dict()
        assert d["vin"] == VALID_VIN
        assert d["is_valid"] is True


# =============================================================================
# Check Digit
# =============================================================================

class TestCheckDigit:
    """Tests for the NHTSA check digit."""

    def test_known_vectors(self):
        """Test check digits for known VINs."""
        assert calculate_check_digit(VALID_VIN) == "3"
        assert calculate_check_digit("11111111111111111") == "1"

    def test_wrong_length_returns_none(self):
        assert calculate_check_digit("1HGCM") is None

    def test_validate_checksum(self):
        assert validate_checksum(VALID_VIN)
        assert not validate_checksum("1HGCM82673A004352")


# =============================================================================
# Manufacturer Lookup
# =============================================================================

class TestManufacturer:
    """Tests for WMI manufacturer lookup."""

    def test_lookup_by_wmi(self):
        assert manufacturer_for_wmi("1FM") == "Ford"
        assert manufacturer_for_wmi("1hg") == "Honda"
        assert manufacturer_for_wmi("ZZZ") is None

    def test_is_known_manufacturer(self):
        assert is_known_manufacturer(VALID_VIN)
        assert not is_known_manufacturer("ZZ")


# =============================================================================
# Decoding
# =============================================================================

class TestDecodeVIN:
    """Tests for decode_vin."""

    def test_decode_structure(self):
        """Test decoding of each VIN section."""
        decoded = decode_vin(VALID_VIN)
        assert decoded["wmi"] == "1HG"
        assert decoded["vds"] == "CM8263"
        assert decoded["check_digit"] == "3"
        assert decoded["checksum_valid"] is True
        assert decoded["model_year"] == 2003
        assert decoded["plant_code"] == "A"
        assert decoded["sequential"] == "004352"

    def test_letter_year_reports_both_cycles(self):
        """Test that letter years show both 30-year cycles."""
        decoded = decode_vin("1FTFW1ET5DFC10312")
        assert decoded["model_year"] == 2013
        assert "1983" in decoded["model_year_display"]

    @pytest.mark.parametrize("bad", ["", "1HGCM", 12345])
    def test_invalid_input(self, bad):
        assert "error" in decode_vin(bad)
