from ndc.checksum import (
    complete_upc_a,
    detect_barcode_type,
    gtin14_check_digit,
    is_pharma_gtin14,
    ndc_to_gtin14,
    ndc_to_upc_a,
    upc_a_check_digit,
    validate_gtin14,
    validate_upc_a,
)

def test_gtin14_check_digit_is_deterministic():
    assert gtin14_check_digit("0030040603570") == 6
    assert gtin14_check_digit("0030040603570") == gtin14_check_digit("0030040603570")
    assert gtin14_check_digit("123") == -1

def test_validate_gtin14():
    assert validate_gtin14("00300406035706")
    assert not validate_gtin14("00300406035705")
    assert is_pharma_gtin14("00300406035706")
    assert not is_pharma_gtin14("10012345678902")

def test_upc_a_rejects_wrong_check_digit():
    assert upc_a_check_digit("30781108901") == 0
    assert validate_upc_a("307811089010")
    assert not validate_upc_a("307811089015")

def test_upc_a_requires_drug_prefix():
    body = "51234567890"
    assert not validate_upc_a(complete_upc_a(body))

def test_detect_barcode_type():
    assert detect_barcode_type("00300406035706") == "gtin14"
    assert detect_barcode_type("307811089010") == "upca"
    assert detect_barcode_type("00781108901") == "ndc11"
    assert detect_barcode_type("0781-1089-01") == "ndc10"
    assert detect_barcode_type("12345") is None

def test_ndc_to_gtin14_and_upc_a():
    assert ndc_to_gtin14("0040-6035-70") == "00300406035706"
    assert validate_gtin14(ndc_to_gtin14("00781108901", indicator=1))
    assert ndc_to_gtin14("0781-1089-01", indicator=9) is None
    assert ndc_to_upc_a("0781-1089-01") == "307811089010"
    assert ndc_to_upc_a("bad") is None
