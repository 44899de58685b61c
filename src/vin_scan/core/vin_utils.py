"""
VIN Utilities - Single Source of Truth
======================================

VIN alphabet constants, the conservative character corrector, the
structural validator, check digit arithmetic, manufacturer prefix
table and VIN decoding.

Usage:
    from vin_scan.core.vin_utils import correct_characters, validate_vin

    corrected = correct_characters("1HGCM82633A0O4352")   # '1HGCM82633A004352'
    result = validate_vin(corrected)
    print(result.is_valid, result.manufacturer)
"""

import re
import logging
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


# =============================================================================
# VIN CONSTANTS
# =============================================================================

class VINConstants:
    """Immutable VIN specification constants per ISO 3779 / NHTSA."""

    LENGTH: int = 17

    # Valid characters (I, O, Q excluded to avoid confusion with 1, 0)
    VALID_CHARS: FrozenSet[str] = frozenset("0123456789ABCDEFGHJKLMNPRSTUVWXYZ")
    INVALID_CHARS: FrozenSet[str] = frozenset("IOQ")

    # Position indices (0-based)
    CHECK_DIGIT_INDEX: int = 8
    YEAR_INDEX: int = 9
    PLANT_INDEX: int = 10
    SEQUENTIAL_START: int = 11

    # Checksum weights by position (NHTSA standard)
    CHECKSUM_WEIGHTS: Tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)

    # Character to value mapping for checksum (ISO 3779)
    CHAR_VALUES: Dict[str, int] = {
        'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6, 'G': 7, 'H': 8,
        'J': 1, 'K': 2, 'L': 3, 'M': 4, 'N': 5, 'P': 7, 'R': 9,
        'S': 2, 'T': 3, 'U': 4, 'V': 5, 'W': 6, 'X': 7, 'Y': 8, 'Z': 9,
        '0': 0, '1': 1, '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9
    }

    # 2-character prefixes of high-volume manufacturers
    COMMON_MANUFACTURER_PREFIXES: Tuple[str, ...] = (
        '1G', '1C', '1F', '1H', '2G', '3G', '4F', '5F', 'WA', 'WB', 'JH', 'KM',
    )

    # North American subset used for the post-session manufacturer bonus
    NORTH_AMERICAN_PREFIXES: Tuple[str, ...] = (
        '1G', '1C', '1F', '1H', '2G', '3G', '4F', '5F',
    )

    # Letter codes cycle every 30 years; digits cover 2001-2009
    MODEL_YEAR_CODES_MODERN: Dict[str, int] = {
        '1': 2001, '2': 2002, '3': 2003, '4': 2004,
        '5': 2005, '6': 2006, '7': 2007, '8': 2008, '9': 2009,
        'A': 2010, 'B': 2011, 'C': 2012, 'D': 2013, 'E': 2014,
        'F': 2015, 'G': 2016, 'H': 2017, 'J': 2018, 'K': 2019,
        'L': 2020, 'M': 2021, 'N': 2022, 'P': 2023, 'R': 2024,
        'S': 2025, 'T': 2026, 'V': 2027, 'W': 2028, 'X': 2029,
        'Y': 2030,
    }

    MODEL_YEAR_CODES_LEGACY: Dict[str, int] = {
        'A': 1980, 'B': 1981, 'C': 1982, 'D': 1983, 'E': 1984,
        'F': 1985, 'G': 1986, 'H': 1987, 'J': 1988, 'K': 1989,
        'L': 1990, 'M': 1991, 'N': 1992, 'P': 1993, 'R': 1994,
        'S': 1995, 'T': 1996, 'V': 1997, 'W': 1998, 'X': 1999,
        'Y': 2000,
    }


VIN_LENGTH = VINConstants.LENGTH
VIN_VALID_CHARS = VINConstants.VALID_CHARS
VIN_INVALID_CHARS = VINConstants.INVALID_CHARS


# =============================================================================
# WORLD MANUFACTURER IDENTIFIERS
# =============================================================================

WMI_BY_MANUFACTURER: Dict[str, Tuple[str, ...]] = {
    "Ford": (
        "1FA", "1FB", "1FC", "1FD", "1FE", "1FF", "1FG", "1FH", "1FJ", "1FK",
        "1FL", "1FM", "1FN", "1FP", "1FR", "1FS", "1FT", "1FU", "1FV", "1FW",
        "1FX", "1FY", "1FZ",
    ),
    "General Motors": (
        "1G1", "1G2", "1G3", "1G4", "1G6", "1G7", "1G8", "1G9", "1GA", "1GB",
        "1GC", "1GD", "1GE", "1GF", "1GG", "1GH", "1GK", "1GL", "1GM", "1GN",
        "1GP", "1GR", "1GS", "1GT", "1GU", "1GV", "1GW", "1GX", "1GY", "1GZ",
    ),
    "Chrysler/Stellantis": (
        "1C3", "1C4", "1C6", "1C7", "1C8", "1D3", "1D4", "1D7", "1D8",
    ),
    "Honda": (
        "1HG", "1HH", "1HJ", "1HK", "1HL", "1HM", "1HN", "1HP", "1HR", "1HS",
        "1HT", "1HU", "1HV", "1HW", "1HX", "1HY", "1HZ",
    ),
    "Toyota": (
        "1N4", "1N6", "1NX", "2T1", "2T2", "2T3", "4T1", "4T2", "4T3", "4T4",
        "4T5", "4T6", "4T7", "4T8", "4T9", "4TA", "4TB", "4TC", "4TD", "4TE",
        "4TF", "4TG", "4TH", "4TJ", "4TK", "4TL", "4TM", "4TN", "4TP", "4TR",
        "4TS", "4TT", "4TU", "4TV", "4TW", "4TX", "4TY", "4TZ",
    ),
    "Nissan": (
        "1N4", "1N6", "3N1", "3N2", "3N3", "3N4", "3N5", "3N6", "3N7", "3N8",
        "3N9", "3NA", "3NB", "3NC", "3ND", "3NE", "3NF", "3NG", "3NH", "3NJ",
        "3NK", "3NL", "3NM", "3NN", "3NP", "3NR", "3NS", "3NT", "3NU", "3NV",
        "3NW", "3NX", "3NY", "3NZ",
    ),
    "BMW": (
        "4US", "5UX", "5UY", "5UZ", "WBA", "WBB", "WBC", "WBD", "WBE", "WBF",
        "WBG", "WBH", "WBJ", "WBK", "WBL", "WBM", "WBN", "WBP", "WBR", "WBS",
        "WBT", "WBU", "WBV", "WBW", "WBX", "WBY", "WBZ",
    ),
    "Mercedes-Benz": (
        "4JG", "4JH", "4JJ", "4JK", "4JL", "4JM", "4JN", "4JP", "4JR", "4JS",
        "4JT", "4JU", "4JV", "4JW", "4JX", "4JY", "4JZ", "WDD", "WDE", "WDF",
        "WDG", "WDH", "WDJ", "WDK", "WDL", "WDM", "WDN", "WDP", "WDR", "WDS",
        "WDT", "WDU", "WDV", "WDW", "WDX", "WDY", "WDZ",
    ),
    "Volkswagen": (
        "3VW", "9BW", "WVW", "WVX", "WVY", "WVZ",
    ),
    "Audi": (
        "WA1", "WA2", "WA3", "WA4", "WA5", "WA6", "WA7", "WA8", "WA9", "WAA",
        "WAB", "WAC", "WAD", "WAE", "WAF", "WAG", "WAH", "WAJ", "WAK", "WAL",
        "WAM", "WAN", "WAP", "WAR", "WAS", "WAT", "WAU", "WAV", "WAW", "WAX",
        "WAY", "WAZ",
    ),
    "Hyundai": (
        "KMH", "KMJ", "KMK", "KML", "KMM", "KMN", "KMP", "KMR", "KMS", "KMT",
        "KMU", "KMV", "KMW", "KMX", "KMY", "KMZ",
    ),
    "Kia": (
        "KNA", "KNB", "KNC", "KND", "KNE", "KNF", "KNG", "KNH", "KNJ", "KNK",
        "KNL", "KNM", "KNN", "KNP", "KNR", "KNS", "KNT", "KNU", "KNV", "KNW",
        "KNX", "KNY", "KNZ",
    ),
    "Mazda": (
        "JM1", "JM2", "JM3", "JM4", "JM5", "JM6", "JM7", "JM8", "JM9", "JMA",
        "JMB", "JMC", "JMD", "JME", "JMF", "JMG", "JMH", "JMJ", "JMK", "JML",
        "JMM", "JMN", "JMP", "JMR", "JMS", "JMT", "JMU", "JMV", "JMW", "JMX",
        "JMY", "JMZ",
    ),
    "Subaru": (
        "JF1", "JF2", "JF3", "JF4", "JF5", "JF6", "JF7", "JF8", "JF9", "JFA",
        "JFB", "JFC", "JFD", "JFE", "JFF", "JFG", "JFH", "JFJ", "JFK", "JFL",
        "JFM", "JFN", "JFP", "JFR", "JFS", "JFT", "JFU", "JFV", "JFW", "JFX",
        "JFY", "JFZ",
    ),
    "Mitsubishi": (
        "JA3", "JA4", "JA5", "JA6", "JA7", "JA8", "JA9", "JAA", "JAB", "JAC",
        "JAD", "JAE", "JAF", "JAG", "JAH", "JAJ", "JAK", "JAL", "JAM", "JAN",
        "JAP", "JAR", "JAS", "JAT", "JAU", "JAV", "JAW", "JAX", "JAY", "JAZ",
    ),
    "Acura": (
        "19U", "19V", "19W", "19X", "19Y", "19Z",
    ),
    "Infiniti": (
        "JNK", "JNL", "JNM", "JNN", "JNP", "JNR", "JNS", "JNT", "JNU", "JNV",
        "JNW", "JNX", "JNY", "JNZ",
    ),
    "Lexus": (
        "JTH", "JTJ", "JTK", "JTL", "JTM", "JTN", "JTP", "JTR", "JTS", "JTT",
        "JTU", "JTV", "JTW", "JTX", "JTY", "JTZ",
    ),
    "Volvo": (
        "YV1", "YV2", "YV3", "YV4", "YV5", "YV6", "YV7", "YV8", "YV9", "YVA",
        "YVB", "YVC", "YVD", "YVE", "YVF", "YVG", "YVH", "YVJ", "YVK", "YVL",
        "YVM", "YVN", "YVP", "YVR", "YVS", "YVT", "YVU", "YVV", "YVW", "YVX",
        "YVY", "YVZ",
    ),
    "Porsche": (
        "WP0", "WP1", "WP2", "WP3", "WP4", "WP5", "WP6", "WP7", "WP8", "WP9",
        "WPA", "WPB", "WPC", "WPD", "WPE", "WPF", "WPG", "WPH", "WPJ", "WPK",
        "WPL", "WPM", "WPN", "WPP", "WPR", "WPS", "WPT", "WPU", "WPV", "WPW",
        "WPX", "WPY", "WPZ",
    ),
    "Jeep": (
        "1J4", "1J8", "1J9", "1JA", "1JB", "1JC", "1JD", "1JE", "1JF", "1JG",
        "1JH", "1JJ", "1JK", "1JL", "1JM", "1JN", "1JP", "1JR", "1JS", "1JT",
        "1JU", "1JV", "1JW", "1JX", "1JY", "1JZ",
    ),
    "Ram": (
        "1C6", "1C7", "1C8", "1C9", "1CA", "1CB", "1CC", "1CD", "1CE", "1CF",
        "1CG", "1CH", "1CJ", "1CK", "1CL", "1CM", "1CN", "1CP", "1CR", "1CS",
        "1CT", "1CU", "1CV", "1CW", "1CX", "1CY", "1CZ",
    ),
    "Tesla": (
        "5YJ", "5YK", "5YL", "5YM", "5YN", "5YP", "5YR", "5YS", "5YT", "5YU",
        "5YV", "5YW", "5YX", "5YY", "5YZ",
    ),
    "Land Rover": (
        "SAL", "SAM", "SAN", "SAP", "SAR", "SAS", "SAT", "SAU", "SAV", "SAW",
        "SAX", "SAY", "SAZ",
    ),
    "Jaguar": (
        "SAJ", "SAK", "SAL", "SAM", "SAN", "SAP", "SAR", "SAS", "SAT", "SAU",
        "SAV", "SAW", "SAX", "SAY", "SAZ",
    ),
    "Mini": (
        "WMW", "WMX", "WMY", "WMZ",
    ),
    "Cadillac": (
        "1G6", "1G7", "1G8", "1G9", "1GA", "1GB", "1GC", "1GD", "1GE", "1GF",
        "1GG", "1GH", "1GJ", "1GK", "1GL", "1GM", "1GN", "1GP", "1GR", "1GS",
        "1GT", "1GU", "1GV", "1GW", "1GX", "1GY", "1GZ",
    ),
    "Buick": (
        "1G4", "1G5", "1G6", "1G7", "1G8", "1G9", "1GA", "1GB", "1GC", "1GD",
        "1GE", "1GF", "1GG", "1GH", "1GJ", "1GK", "1GL", "1GM", "1GN", "1GP",
        "1GR", "1GS", "1GT", "1GU", "1GV", "1GW", "1GX", "1GY", "1GZ",
    ),
    "Genesis": (
        "KMH", "KMJ", "KMK", "KML", "KMM", "KMN", "KMP", "KMR", "KMS", "KMT",
        "KMU", "KMV", "KMW", "KMX", "KMY", "KMZ",
    ),
    "Lincoln": (
        "1LN", "1LP", "1LR", "1LS", "1LT", "1LU", "1LV", "1LW", "1LX", "1LY",
        "1LZ",
    ),
    "Maserati": (
        "ZAM", "ZAN", "ZAP", "ZAR", "ZAS", "ZAT", "ZAU", "ZAV", "ZAW", "ZAX",
        "ZAY", "ZAZ",
    ),
    "Ferrari": (
        "ZFF", "ZFG", "ZFH", "ZFJ", "ZFK", "ZFL", "ZFM", "ZFN", "ZFP", "ZFR",
        "ZFS", "ZFT", "ZFU", "ZFV", "ZFW", "ZFX", "ZFY", "ZFZ",
    ),
    "Lamborghini": (
        "ZHW", "ZHX", "ZHY", "ZHZ",
    ),
    "Alfa Romeo": (
        "ZAR", "ZAS", "ZAT", "ZAU", "ZAV", "ZAW", "ZAX", "ZAY", "ZAZ",
    ),
}

_MANUFACTURER_BY_WMI: Dict[str, str] = {
    wmi: make for make, codes in WMI_BY_MANUFACTURER.items() for wmi in codes
}

KNOWN_WMIS: FrozenSet[str] = frozenset(_MANUFACTURER_BY_WMI)


def manufacturer_for_wmi(wmi: str) -> Optional[str]:
    """Return the manufacturer name for a 3-character WMI, if known."""
    return _MANUFACTURER_BY_WMI.get(wmi[:3].upper())


def is_known_manufacturer(vin: str) -> bool:
    return len(vin) >= 3 and vin[:3].upper() in KNOWN_WMIS


# =============================================================================
# CHARACTER CORRECTION
# =============================================================================

_AMBIGUOUS_TO_ZERO = str.maketrans("IOQ", "000")
_OUTSIDE_ALPHABET = re.compile(r'[^A-HJ-NPR-Z0-9]')


def correct_characters(raw: str) -> str:
    """
    Map OCR-ambiguous characters onto the VIN alphabet.

    ``I``, ``O`` and ``Q`` (any case) become ``0``; everything else outside
    the alphabet is dropped. Broader letter/digit substitutions are left to
    the context adjuster. Idempotent.
    """
    upper = raw.upper().translate(_AMBIGUOUS_TO_ZERO)
    return _OUTSIDE_ALPHABET.sub('', upper)


def count_changed_characters(original: str, corrected: str) -> int:
    """Count positions of ``original`` that ``corrected`` changed or dropped."""
    return sum(1 for i, a in enumerate(original) if i >= len(corrected) or corrected[i] != a)


# =============================================================================
# STRUCTURAL VALIDATION
# =============================================================================

@dataclass
class VINValidationResult:
    """
    Result of structural VIN validation.

    ``is_valid`` covers the hard checks only (length, alphabet, check digit
    slot, model year slot). ``known_manufacturer`` and ``checksum_valid``
    are advisory and never reject.
    """
    vin: str
    is_valid: bool
    failure_reason: Optional[str] = None
    known_manufacturer: bool = False
    manufacturer: Optional[str] = None
    checksum_valid: Optional[bool] = None
    expected_check_digit: Optional[str] = None
    invalid_chars: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vin': self.vin,
            'is_valid': self.is_valid,
            'failure_reason': self.failure_reason,
            'known_manufacturer': self.known_manufacturer,
            'manufacturer': self.manufacturer,
            'checksum_valid': self.checksum_valid,
            'expected_check_digit': self.expected_check_digit,
            'invalid_chars': self.invalid_chars,
        }


def validate_vin(vin: str, check_digit: bool = True) -> VINValidationResult:
    """
    Structural VIN validation.

    Checks, stopping at the first failure:
    1. Length (must be 17)
    2. Every character in the VIN alphabet
    3. Position 9 is a digit or 'X'
    4. Position 10 is not I, O or Q
    5. WMI membership (sets ``known_manufacturer`` only)

    Args:
        vin: Candidate string
        check_digit: Also compute the advisory checksum result

    Returns:
        VINValidationResult
    """
    vin = vin.strip().upper()

    if len(vin) != VIN_LENGTH:
        return VINValidationResult(vin=vin, is_valid=False,
                                   failure_reason=f"length {len(vin)} != {VIN_LENGTH}")

    invalid_chars = [c for c in vin if c not in VIN_VALID_CHARS]
    if invalid_chars:
        return VINValidationResult(vin=vin, is_valid=False,
                                   failure_reason="characters outside VIN alphabet",
                                   invalid_chars=invalid_chars)

    check_char = vin[VINConstants.CHECK_DIGIT_INDEX]
    if not (check_char.isdigit() or check_char == 'X'):
        return VINValidationResult(vin=vin, is_valid=False,
                                   failure_reason=f"check digit slot holds '{check_char}'")

    if vin[VINConstants.YEAR_INDEX] in VIN_INVALID_CHARS:
        return VINValidationResult(vin=vin, is_valid=False,
                                   failure_reason="model year slot holds I, O or Q")

    manufacturer = manufacturer_for_wmi(vin)
    result = VINValidationResult(
        vin=vin,
        is_valid=True,
        known_manufacturer=manufacturer is not None,
        manufacturer=manufacturer,
    )

    if check_digit:
        result.expected_check_digit = calculate_check_digit(vin)
        result.checksum_valid = check_char == result.expected_check_digit
        if not result.checksum_valid:
            logger.debug(f"Checksum mismatch for {vin}: expected {result.expected_check_digit}")

    return result


def is_valid_vin(vin: str) -> bool:
    """Hard structural checks only; manufacturer membership does not matter."""
    return validate_vin(vin, check_digit=False).is_valid


# =============================================================================
# CHECK DIGIT
# =============================================================================

def calculate_check_digit(vin: str) -> Optional[str]:
    """
    Calculate the expected check digit for a VIN.

    The check digit (position 9) is calculated by:
    1. Assigning numeric values to each character
    2. Multiplying by position weights
    3. Summing and taking mod 11
    4. Result 10 becomes 'X'

    Returns:
        Expected check digit ('0'-'9' or 'X'), or None if calculation fails
    """
    if len(vin) != VIN_LENGTH:
        return None

    total = 0
    for i, char in enumerate(vin.upper()):
        if i == VINConstants.CHECK_DIGIT_INDEX:
            continue
        value = VINConstants.CHAR_VALUES.get(char)
        if value is None:
            return None
        total += value * VINConstants.CHECKSUM_WEIGHTS[i]

    remainder = total % 11
    return 'X' if remainder == 10 else str(remainder)


def validate_checksum(vin: str) -> bool:
    """Validate VIN checksum at position 9."""
    expected = calculate_check_digit(vin)
    if expected is None:
        return False
    return vin[VINConstants.CHECK_DIGIT_INDEX].upper() == expected


# =============================================================================
# DECODING
# =============================================================================

def decode_vin(vin: str) -> Dict[str, Any]:
    """
    Decode VIN structure into its component parts.

    VIN Structure (ISO 3779):
    - Position 1-3: WMI (World Manufacturer Identifier)
    - Position 4-8: VDS (Vehicle Descriptor Section)
    - Position 9: Check digit
    - Position 10: Model year
    - Position 11: Plant code
    - Position 12-17: VIS Sequential number

    Letter year codes repeat every 30 years; the 2010+ reading is reported
    with the 1980-2000 reading noted alongside.
    """
    if not isinstance(vin, str):
        return {'error': f'Expected string, got {type(vin).__name__}'}

    vin = vin.upper().strip()

    if len(vin) != VIN_LENGTH:
        return {'error': f'Invalid VIN length: {len(vin)} (expected {VIN_LENGTH})'}

    year_code = vin[VINConstants.YEAR_INDEX]
    model_year_modern = VINConstants.MODEL_YEAR_CODES_MODERN.get(year_code)
    model_year_legacy = VINConstants.MODEL_YEAR_CODES_LEGACY.get(year_code)

    if model_year_modern is not None:
        model_year: Any = model_year_modern
        if model_year_legacy:
            model_year_display = f"{model_year_modern} (or {model_year_legacy})"
        else:
            model_year_display = str(model_year_modern)
    else:
        model_year = f'Unknown ({year_code})'
        model_year_display = model_year

    return {
        'vin': vin,
        'wmi': vin[0:3],
        'manufacturer': manufacturer_for_wmi(vin),
        'vds': vin[3:9],
        'check_digit': vin[8],
        'checksum_valid': validate_checksum(vin),
        'model_year_code': year_code,
        'model_year': model_year,
        'model_year_display': model_year_display,
        'plant_code': vin[10],
        'sequential': vin[11:17],
        'vis': vin[9:17],
    }
