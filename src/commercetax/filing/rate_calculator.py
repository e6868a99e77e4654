"""Fee computation for monthly filings.

The fee is the declared amount times the current rate, floored at the default
(minimum) amount. Good taxpayers get a proportional discount applied after
the floor. The result is quantized once, at the end, to cents with
ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal

from commercetax.domain.models.policy import TaxPolicy

CENT = Decimal("0.01")


def compute_fee(declared_amount: Decimal, policy: TaxPolicy, is_good_taxpayer: bool) -> Decimal:
    """Return the fee owed for ``declared_amount`` under ``policy``.

    Callers validate ``declared_amount > 0`` before calling.
    """
    base = Decimal(declared_amount) * policy.current_rate
    floored = max(base, policy.default_amount)

    if is_good_taxpayer:
        fee = floored - floored * policy.good_taxpayer_discount
    else:
        fee = floored

    return fee.quantize(CENT, rounding=ROUND_HALF_UP)
