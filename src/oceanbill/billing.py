import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Sequence

from oceanbill.models import BillingLineItem, BillingResult, MeteringRead

_CENTS = Decimal("0.01")


def coerce_number(value: "Any") -> "float":
    """
    best-effort numeric coercion. Anything that does not coerce to
    a finite number (None, blank or non-numeric strings, inf, nan)
    becomes 0.
    """
    if value is None:
        return 0.0

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0

    if not math.isfinite(number):
        return 0.0

    return number


def to_fixed2(value: "float | Decimal") -> "str":
    """
    formats a number with exactly two decimals, rounding half away
    from zero on its shortest decimal representation (2.345 -> "2.35").
    Non-finite values format as "0.00", like any other invalid number.
    """
    if not isinstance(value, Decimal):
        value = Decimal(repr(value))

    if not value.is_finite():
        return "0.00"

    # quantize needs every integer digit plus the two decimals
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        rounded = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    # avoid "-0.00" for tiny negatives
    if rounded == 0:
        rounded = Decimal("0.00")

    return f"{rounded:.2f}"


def calculate_billing(
    reads: "Sequence[MeteringRead]",
    rate: "Any" = None,
) -> "BillingResult":
    """
    computes one line item per read and the aggregate totals.

    Malformed energy values and a malformed or missing rate default
    to 0; no read is ever dropped and this never raises.

    note - line amounts are the product of the *unrounded* energy and
    rate, and total_cost sums those raw amounts, while total_energy sums
    the already rounded per-line energies. The two totals therefore
    accumulate rounding differently. Flagged as a likely precision bug,
    left as is until the billing owners confirm the intended rounding.
    """
    unit_rate = coerce_number(rate)
    unit_price = to_fixed2(unit_rate)

    line_items: "list[BillingLineItem]" = []
    for read in reads:
        energy = coerce_number(read.consumed_energy)
        line_items.append(
            BillingLineItem(
                date=read.date,
                start_time=read.start_time,
                end_time=read.end_time,
                energy_consumed=to_fixed2(energy),
                unit_price=unit_price,
                # a product overflowing to inf defaults to 0 like its inputs
                amount=coerce_number(unit_rate * energy),
            )
        )

    energies = [Decimal(i.energy_consumed) for i in line_items]
    with localcontext() as ctx:
        # exact sum of the rounded energies, whatever their magnitude
        widest = max((e.adjusted() for e in energies), default=0)
        ctx.prec = max(ctx.prec, widest + len(str(len(energies))) + 3)
        total_energy = sum(energies, Decimal(0))
    total_cost = sum((i.amount for i in line_items), 0.0)

    return BillingResult(
        total_energy=to_fixed2(total_energy),
        total_cost=to_fixed2(total_cost),
        line_items=tuple(line_items),
    )
