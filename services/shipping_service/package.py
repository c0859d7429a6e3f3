"""
Package estimation for carrier quotes.

The storefront ships everything in one box whose size is derived from how many
units are in the order, not from the products' own measurements. Carriers
reject volumes under their minimums, so every dimension is floored before the
quote is requested.
"""
from typing import Iterable, Optional

from shared.errors import ValidationError
from .schemas import PackageDimensions

# Carrier-mandated minimums (cm / kg)
MIN_HEIGHT_CM = 2
MIN_WIDTH_CM = 11
MIN_LENGTH_CM = 16
MIN_WEIGHT_KG = 0.1

FIRST_UNIT_WEIGHT_G = 500
EXTRA_UNIT_WEIGHT_G = 250
FIRST_UNIT_HEIGHT_CM = 8
EXTRA_UNIT_HEIGHT_CM = 2
BOX_WIDTH_CM = 25
BOX_LENGTH_CM = 25


def _floored(weight_kg: float, height: float, width: float, length: float) -> PackageDimensions:
    return PackageDimensions(
        weight_kg=max(weight_kg, MIN_WEIGHT_KG),
        height_cm=max(height, MIN_HEIGHT_CM),
        width_cm=max(width, MIN_WIDTH_CM),
        length_cm=max(length, MIN_LENGTH_CM),
    )


def estimate_package(total_quantity: int) -> PackageDimensions:
    """Stepped estimate: 500g/8cm for the first unit, +250g/+2cm for each extra one."""
    if isinstance(total_quantity, bool) or not isinstance(total_quantity, int) or total_quantity < 1:
        raise ValidationError(
            "total quantity must be a positive integer",
            total_quantity=total_quantity,
        )

    extra_units = total_quantity - 1
    weight_g = FIRST_UNIT_WEIGHT_G + EXTRA_UNIT_WEIGHT_G * extra_units
    height = FIRST_UNIT_HEIGHT_CM + EXTRA_UNIT_HEIGHT_CM * extra_units

    return _floored(weight_g / 1000, height, BOX_WIDTH_CM, BOX_LENGTH_CM)


def aggregate_package(items: Iterable[tuple]) -> Optional[PackageDimensions]:
    """
    Package from physical attributes: total weight, largest of each dimension.

    `items` yields (product, quantity). Returns None when any product is
    missing a measurement, so callers can fall back to estimate_package().
    """
    total_weight = 0.0
    height = width = length = 0.0
    seen = False

    for product, quantity in items:
        measures = (product.weight, product.height, product.width, product.length)
        if any(m is None for m in measures):
            return None
        seen = True
        total_weight += product.weight * quantity
        height = max(height, product.height)
        width = max(width, product.width)
        length = max(length, product.length)

    if not seen:
        return None
    return _floored(total_weight, height, width, length)
