from __future__ import annotations

import re
from typing import Optional

from models.fda import FdaPackaging, FdaProduct
from models.results import LineDraft
from ndc.normalizer import normalize_ndc_to_11
from pricing.utils import package_size_from_description

_SPACES = re.compile(r"\s+")


def derive_item_name(product: FdaProduct) -> str:
    """Brand (or generic) + first strength + dosage form, e.g. 'Fluoxetine 20 mg/1 capsule'."""
    drug = (
        product.brand_name_base.strip()
        or product.brand_name.strip()
        or product.generic_name.strip()
        or "Unknown drug"
    )
    strength = product.active_ingredients[0].strength.strip() if product.active_ingredients else ""
    form = product.dosage_form.lower()
    parts = [drug]
    if strength:
        parts.append(strength)
    if form:
        parts.append(form)
    return _SPACES.sub(" ", " ".join(parts)).strip()


def build_line_draft(product: FdaProduct, ndc_input: str, package: Optional[FdaPackaging] = None) -> LineDraft:
    """Fields the report layer needs for a new line item.

    `package` is the verified package when the caller already has one;
    otherwise the package is looked up from `ndc_input`. With no package
    match the first listed package only hints at the size.
    """
    pkg = package or product.find_matching_package(ndc_input)
    if pkg is not None and pkg.description:
        package_size = package_size_from_description(pkg.description)
    elif product.packaging:
        package_size = package_size_from_description(product.packaging[0].description)
    else:
        package_size = "UNKNOWN"

    ndc11 = (pkg.ndc11 if pkg is not None else "") or normalize_ndc_to_11(str(ndc_input or ""))
    strength = product.active_ingredients[0].strength if product.active_ingredients else None

    return LineDraft(
        ok=bool(ndc11),
        ndc11=ndc11 or None,
        package_size=package_size,
        item_name=derive_item_name(product),
        labeler_name=product.labeler_name or "Unknown Labeler",
        package_ndc=pkg.package_ndc if pkg is not None else None,
        package_description=pkg.description if pkg is not None else None,
        dosage_form=product.dosage_form or None,
        strength=strength or None,
        dea_schedule=product.dea_schedule,
    )
