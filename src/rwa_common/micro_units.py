"""Fixed-point helpers for USDC micro-units.

All monetary amounts are stored as int micro-units (6 implied decimals).
Decimal is used only at the calculation/presentation boundary.
"""

from decimal import Decimal

MICRO_PER_UNIT = 1_000_000
_MICRO = Decimal(MICRO_PER_UNIT)


def micro_to_decimal(micro: int) -> Decimal:
    """Convert micro-units to a Decimal amount: 1_500_000 -> Decimal('1.5')."""
    return Decimal(micro) / _MICRO


def decimal_to_micro(amount: Decimal) -> int:
    """Convert a Decimal amount to micro-units, truncating toward zero."""
    return int(amount * _MICRO)


def micro_to_display(micro: int) -> str:
    """Convert micro-units to a display string: 12_345_678 -> '$12.345678'."""
    if micro < 0:
        abs_micro = -micro
        return f"-${abs_micro // MICRO_PER_UNIT:,}.{abs_micro % MICRO_PER_UNIT:06d}"
    return f"${micro // MICRO_PER_UNIT:,}.{micro % MICRO_PER_UNIT:06d}"


def validate_micro_amount(micro: int) -> None:
    """Validate that an on-chain amount fits u64 and is non-negative."""
    if not (0 <= micro < 2**64):
        raise ValueError(f"Amount must be a u64 micro-unit value, got {micro}")
