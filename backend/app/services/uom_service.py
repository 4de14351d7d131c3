"""
Unit of Measure (UOM) Service

Provides conversion functions between compatible units of measure used in
recipes and the catalog (grams, kilograms, millilitres, units...).
"""
from decimal import Decimal
from typing import Optional, Tuple

from app.exceptions import ValidationError


# Mass converts to KG, volume to L, count to UN.
UOM_CONVERSIONS = {
    # Mass
    'MG': {'base': 'KG', 'factor': Decimal('0.000001')},
    'G': {'base': 'KG', 'factor': Decimal('0.001')},
    'KG': {'base': 'KG', 'factor': Decimal('1')},
    'LB': {'base': 'KG', 'factor': Decimal('0.453592')},
    'OZ': {'base': 'KG', 'factor': Decimal('0.0283495')},
    # Volume
    'ML': {'base': 'L', 'factor': Decimal('0.001')},
    'L': {'base': 'L', 'factor': Decimal('1')},
    # Count
    'UN': {'base': 'UN', 'factor': Decimal('1')},
    'DZ': {'base': 'UN', 'factor': Decimal('12')},
}

# Spellings seen in imported catalogs
UOM_ALIASES = {
    'KGS': 'KG',
    'GR': 'G',
    'GRS': 'G',
    'LT': 'L',
    'LTS': 'L',
    'UND': 'UN',
    'UNID': 'UN',
    'EA': 'UN',
    'PC': 'UN',
}


class UOMConversionError(ValidationError):
    """Raised when a UOM conversion fails."""

    error_code = "UOM_CONVERSION_ERROR"


def normalize_unit(unit: Optional[str]) -> str:
    """
    Canonical upper-case code for a unit ('kg' -> 'KG', 'Kg' -> 'KG', 'und' -> 'UN').

    Unknown units are returned upper-cased and stripped.
    """
    code = (unit or '').strip().upper()
    return UOM_ALIASES.get(code, code)


def get_base_unit(unit: Optional[str]) -> Optional[str]:
    """Base unit of ``unit`` (KG, L or UN), or None when the unit is unknown."""
    info = UOM_CONVERSIONS.get(normalize_unit(unit))
    return info['base'] if info else None


def are_compatible(from_unit: Optional[str], to_unit: Optional[str]) -> bool:
    """True when both units are known and share a base (or are literally equal)."""
    if normalize_unit(from_unit) == normalize_unit(to_unit):
        return True
    from_base = get_base_unit(from_unit)
    return from_base is not None and from_base == get_base_unit(to_unit)


def try_convert(quantity: Decimal, from_unit: Optional[str], to_unit: Optional[str]) -> Tuple[Decimal, bool]:
    """
    Convert quantity between units without raising.

    Returns:
        Tuple of (converted_quantity, was_converted)
        - was_converted=True: Conversion succeeded (or units were equal)
        - was_converted=False: Units unknown or incompatible, quantity unchanged
    """
    quantity = Decimal(str(quantity))
    from_code = normalize_unit(from_unit)
    to_code = normalize_unit(to_unit)

    if from_code == to_code:
        return quantity, True

    from_info = UOM_CONVERSIONS.get(from_code)
    to_info = UOM_CONVERSIONS.get(to_code)

    if not from_info or not to_info:
        return quantity, False  # Unknown unit

    if from_info['base'] != to_info['base']:
        return quantity, False  # Incompatible bases

    # from_unit -> base -> to_unit
    quantity_in_base = quantity * from_info['factor']
    return quantity_in_base / to_info['factor'], True


def convert_quantity(quantity: Decimal, from_unit: Optional[str], to_unit: Optional[str]) -> Decimal:
    """
    Convert a quantity from one unit to another.

    Raises:
        UOMConversionError: If units not found or incompatible

    Example:
        >>> convert_quantity(Decimal("250"), "g", "kg")
        Decimal('0.250')
    """
    converted, ok = try_convert(quantity, from_unit, to_unit)
    if not ok:
        raise UOMConversionError(
            f"Cannot convert from '{from_unit}' to '{to_unit}'",
            details={"from_unit": from_unit, "to_unit": to_unit},
        )
    return converted


def to_kg(quantity: Decimal, unit: Optional[str]) -> Decimal:
    """Convert a mass quantity to kilograms."""
    return convert_quantity(quantity, unit, 'KG')
