from __future__ import annotations

import re

from ndc.formats import dashed_to_ndc11, is_digits, split_dashed, validate_ndc_format

_KEEP_DIGITS_AND_DASHES = re.compile(r"[^0-9-]")


# Single best guess at the NDC-11 for any NDC shape. Dashed package-level input
# pads each segment per its convention (exact); undashed 10-digit input is a
# guess, so callers that can afford it should use expand_ndc10_to_11 instead.
# Product-level (two-segment) input has no package and yields "".
def normalize_ndc_to_11(ndc: str) -> str:
    text = _KEEP_DIGITS_AND_DASHES.sub("", ndc or "")
    if not text:
        return ""
    if "-" in text:
        if not validate_ndc_format(text) or len(split_dashed(text)) != 3:
            return ""
        return dashed_to_ndc11(text)
    if is_digits(text, 11):
        return text
    if is_digits(text, 10):
        # A leading zero usually means a 4-digit labeler was already padded once.
        return "0" + text if text[0] == "0" else text[:5] + "0" + text[5:]
    return ""
