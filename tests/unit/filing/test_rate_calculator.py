"""Unit tests for the fee floor + good taxpayer discount."""

from decimal import Decimal

import pytest

from commercetax.domain.models.policy import TaxPolicy
from commercetax.filing.rate_calculator import compute_fee


def _policy(**overrides) -> TaxPolicy:
    values = {
        "deadline_day": 15,
        "current_rate": Decimal("0.08"),
        "default_amount": Decimal("9999"),
        "good_taxpayer_discount": Decimal("0.10"),
    }
    values.update(overrides)
    return TaxPolicy(**values)


class TestComputeFee:
    def test_below_floor_charges_default_amount(self):
        # base = 4000 < 9999
        assert compute_fee(Decimal("50000"), _policy(), False) == Decimal("9999")

    def test_above_floor_charges_base(self):
        # base = 16000
        assert compute_fee(Decimal("200000"), _policy(), False) == Decimal("16000")

    def test_good_taxpayer_discount_on_base(self):
        # 16000 - 1600
        assert compute_fee(Decimal("200000"), _policy(), True) == Decimal("14400")

    def test_good_taxpayer_discount_on_floor(self):
        # 9999 - 999.9
        assert compute_fee(Decimal("50000"), _policy(), True) == Decimal("8999.10")

    def test_base_equal_to_floor(self):
        policy = _policy(default_amount=Decimal("8000"))
        assert compute_fee(Decimal("100000"), policy, False) == Decimal("8000")

    def test_zero_default_amount_is_no_op_floor(self):
        policy = _policy(default_amount=Decimal("0"))
        assert compute_fee(Decimal("1000"), policy, False) == Decimal("80.00")
        assert compute_fee(Decimal("1000"), policy, True) == Decimal("72.00")

    def test_rounds_half_up_to_cents(self):
        policy = _policy(current_rate=Decimal("0.015"), default_amount=Decimal("0"))
        # 10.3 * 0.015 = 0.1545 -> 0.15 ; 10.5 * 0.015 = 0.1575 -> 0.16
        assert compute_fee(Decimal("10.3"), policy, False) == Decimal("0.15")
        assert compute_fee(Decimal("10.5"), policy, False) == Decimal("0.16")

    def test_result_has_two_decimal_places(self):
        fee = compute_fee(Decimal("123456.789"), _policy(), False)
        assert fee.as_tuple().exponent == -2

    def test_accepts_integer_amount(self):
        assert compute_fee(200000, _policy(), False) == Decimal("16000")


AMOUNTS = [Decimal(a) for a in ("0.01", "1", "999.99", "50000", "124987.5", "125000", "200000", "9999999.99")]
POLICIES = [
    _policy(),
    _policy(default_amount=Decimal("0")),
    _policy(current_rate=Decimal("0.5"), good_taxpayer_discount=Decimal("1")),
    _policy(current_rate=Decimal("0"), default_amount=Decimal("150.55")),
]


class TestFeeProperties:
    @pytest.mark.parametrize("policy", POLICIES)
    @pytest.mark.parametrize("amount", AMOUNTS)
    def test_standard_fee_never_below_default_amount(self, amount, policy):
        assert compute_fee(amount, policy, False) >= policy.default_amount

    @pytest.mark.parametrize("policy", POLICIES)
    @pytest.mark.parametrize("amount", AMOUNTS)
    def test_good_taxpayer_never_pays_more(self, amount, policy):
        assert compute_fee(amount, policy, True) <= compute_fee(amount, policy, False)
