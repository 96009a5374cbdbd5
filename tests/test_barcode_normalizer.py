from barcode.gs1 import GS
from barcode.normalizer import GENERIC_FAILURE, BarcodeNormalizer, ScanStrictness, normalize_scan, strip_symbology
from models.results import BarcodeType, ScanErrorKind

ENHANCED = ScanStrictness.ENHANCED
LEGACY = ScanStrictness.LEGACY

def test_eleven_digits_pass_through():
    scan = normalize_scan("00781108901", ENHANCED)
    assert scan.ok
    assert scan.barcode_type == BarcodeType.NDC11
    assert scan.ndc11_candidates == ["00781108901"]

def test_gs1_composite_with_gtin():
    raw = "01" + "00300406035706" + "17251231" + "10ABC123" + GS + "21SN99"
    scan = normalize_scan(raw, ENHANCED)
    assert scan.ok
    assert scan.barcode_type == BarcodeType.GS1
    assert scan.ndc10 == "0040603570"
    assert scan.ndc11_candidates == ["00040603570", "00406003570", "00406035700"]
    assert scan.lot == "ABC123"
    assert scan.serial == "SN99"
    assert scan.expiry == "2025-12-31"

def test_symbology_prefix_is_stripped():
    assert strip_symbology("]d2010030040603570617251231") == "010030040603570617251231"
    scan = normalize_scan("]d2" + "01" + "00300406035706" + "17251231", ENHANCED)
    assert scan.ok
    assert scan.gtin14 == "00300406035706"

def test_bare_gtin14():
    scan = normalize_scan("00300406035706", ENHANCED)
    assert scan.ok
    assert scan.barcode_type == BarcodeType.GTIN14

def test_bad_gtin14_check_digit_is_reported_as_such():
    scan = normalize_scan("00300406035705", ENHANCED)
    assert not scan.ok
    assert scan.error_kind == ScanErrorKind.CHECKSUM
    assert scan.reason == "Invalid GTIN-14 check digit (expected 6, got 5)"

def test_non_pharma_gtin14():
    scan = normalize_scan("10012345678902", ENHANCED)
    assert not scan.ok
    assert scan.error_kind == ScanErrorKind.NOT_PHARMACEUTICAL

def test_upc_a():
    scan = normalize_scan("307811089010", ENHANCED)
    assert scan.ok
    assert scan.barcode_type == BarcodeType.UPCA
    assert scan.ndc10 == "0781108901"
    assert scan.ndc11 == "00781108901"

def test_upc_a_without_check_digit_is_completed():
    scan = normalize_scan("30781108901", ENHANCED)
    assert scan.ok
    assert scan.upc12 == "307811089010"

def test_bad_upc_a_check_digit_message():
    scan = normalize_scan("307811089015", ENHANCED)
    assert not scan.ok
    assert scan.error_kind == ScanErrorKind.CHECKSUM
    assert "Invalid UPC-A check digit" in scan.reason
    assert scan.reason == "Invalid UPC-A check digit (expected 0, got 5)"

def test_dashed_package_ndc_is_exact():
    scan = normalize_scan("0781-1089-01", ENHANCED)
    assert scan.ok
    assert scan.barcode_type == BarcodeType.NDC_DASHED
    assert scan.ndc11_candidates == ["00781108901"]
    assert scan.ndc_formatted == "0781-1089-01"

def test_dashed_six_digit_labeler():
    scan = normalize_scan("123456-789-01", ENHANCED)
    assert scan.ok
    assert scan.ndc11 == "12345678901"

def test_legacy_treats_dashed_as_ten_digits():
    scan = normalize_scan("0781-1089-01", LEGACY)
    assert scan.ok
    assert scan.barcode_type == BarcodeType.NDC10
    assert scan.ndc11_candidates == ["00781108901", "07811008901", "07811089001"]

def test_ten_digits_expand():
    scan = normalize_scan("1234567890", ENHANCED)
    assert scan.ndc11_candidates == ["01234567890", "12345067890", "12345678900", "12345607890"]
    assert len(normalize_scan("1234567890", LEGACY).ndc11_candidates) == 3

def test_product_level_ndc():
    scan = normalize_scan("0781-1089", ENHANCED)
    assert not scan.ok
    assert scan.error_kind == ScanErrorKind.PRODUCT_LEVEL
    assert scan.suggestions

def test_exhaustion_diagnostics():
    assert normalize_scan("12345", ENHANCED).reason == "Incomplete code (5 digits)"
    assert normalize_scan("1234567890123", ENHANCED).reason.startswith("13-digit code detected")
    assert normalize_scan("12345678", ENHANCED).reason.startswith("8-digit code detected")
    assert normalize_scan("ABC12", ENHANCED).reason == "Unrecognized barcode format"
    assert normalize_scan("1" * 20, ENHANCED).reason == "Code too long for standard pharmaceutical barcodes"

def test_legacy_failures_are_generic():
    scan = normalize_scan("12345", LEGACY)
    assert not scan.ok
    assert scan.reason == GENERIC_FAILURE
    assert scan.suggestions == []

def test_empty_scan():
    scan = BarcodeNormalizer(ENHANCED).normalize("   ")
    assert not scan.ok
    assert scan.error_kind == ScanErrorKind.EMPTY

def test_strictness_from_setting():
    assert ScanStrictness.from_setting("LEGACY") is LEGACY
    assert ScanStrictness.from_setting("bogus") is ENHANCED

def test_dashed_product_level_is_not_read_as_ndc10():
    scan = normalize_scan("123456-7890", ENHANCED)
    assert not scan.ok
    assert scan.error_kind == ScanErrorKind.PRODUCT_LEVEL
    assert scan.barcode_type is None
    assert scan.ndc11_candidates == []
    assert scan.detected_length == 10
