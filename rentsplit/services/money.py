"""Money rounding and exact even splitting.

All amounts are Decimal quantized to the sen (0.01) with ROUND_HALF_UP.
Splitting works on integer sen so that the parts always add up to the whole.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Convert int/str/float/Decimal to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value) -> Decimal:
    """Round to the nearest sen, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount) -> int:
    """Convert an amount to integer sen (rounded half up)."""
    return int(to_money(amount) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def split_evenly(amount, count: int, offset: int = 0) -> tuple[list[Decimal], int]:
    """Split amount into count equal parts, exact to the sen.

    Algorithm:
    1. Convert amount to integer sen and divmod by count
    2. Every part gets the quotient
    3. Remainder sen go one at a time to parts in order, starting at offset
       and wrapping around

    Passing the returned offset into the next call keeps remainder sen
    rotating across several splits, so no part collects more than one extra
    sen overall than any other.

    Args:
        amount: Amount to split (may be negative)
        count: Number of parts (must be positive)
        offset: Index of the first part to receive a remainder sen

    Returns:
        Tuple of (parts in input order, offset for the next split)

    Raises:
        ValueError: If count is not positive
    """
    if count <= 0:
        raise ValueError("count must be positive")

    base, remainder = divmod(to_cents(amount), count)
    cents = [base] * count
    for i in range(remainder):
        cents[(offset + i) % count] += 1

    return [from_cents(c) for c in cents], (offset + remainder) % count


def split_proportionally(amount, weights, offset: int = 0) -> tuple[list[Decimal], int]:
    """Split a non-negative amount by weights, exact to the sen.

    Algorithm:
    1. Each part gets floor(sen x weight / total weight)
    2. Remainder sen go one at a time to parts with a positive weight, in
       order starting at offset and wrapping around

    Parts with zero weight always get 0.00.

    Args:
        amount: Amount to split (non-negative)
        weights: Non-negative weights, at least one positive
        offset: Index of the first part eligible for a remainder sen

    Returns:
        Tuple of (parts in input order, offset for the next split)

    Raises:
        ValueError: If the amount or a weight is negative, or all weights are zero
    """
    share_weights = [to_decimal(w) for w in weights]
    if any(w < 0 for w in share_weights):
        raise ValueError("weights must be non-negative")
    total_weight = sum(share_weights, ZERO)
    if total_weight <= 0:
        raise ValueError("at least one weight must be positive")

    total_cents = to_cents(amount)
    if total_cents < 0:
        raise ValueError("amount must be non-negative")

    cents = [int(total_cents * w // total_weight) for w in share_weights]
    remainder = total_cents - sum(cents)

    count = len(cents)
    position = offset % count
    while remainder > 0:
        if share_weights[position] > 0:
            cents[position] += 1
            remainder -= 1
        position = (position + 1) % count

    return [from_cents(c) for c in cents], position
