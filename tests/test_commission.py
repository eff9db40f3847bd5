"""
Tests for the commission engine
"""
from decimal import Decimal

import pytest

from agentledger.services.commission import compute_standard_commission, max_markup, to_decimal, validate_markup


class TestStandardCommission:
    """Commission = amount x rate(kind), exact"""

    def test_cashout_rate(self):
        """✅ Cashout is 0.5%."""
        assert compute_standard_commission(Decimal("1000"), "cashout") == Decimal("5")

    def test_deposit_rate(self):
        """✅ Deposit is 0.3%."""
        assert compute_standard_commission(Decimal("1000"), "deposit") == Decimal("3")

    def test_no_rounding(self):
        """✅ Sub-cent results are kept exactly."""
        assert compute_standard_commission(Decimal("0.01"), "deposit") == Decimal("0.00003")
        assert compute_standard_commission(Decimal("333.33"), "cashout") == Decimal("1.66665")

    def test_float_input_goes_through_str(self):
        """✅ 0.1 stays 0.1, not its binary expansion."""
        assert to_decimal(0.1) == Decimal("0.1")
        assert compute_standard_commission(0.1, "cashout") == Decimal("0.0005")

    def test_unknown_kind(self):
        """✅ Only cashout and deposit have a rate."""
        with pytest.raises(KeyError):
            compute_standard_commission(Decimal("10"), "transfer")


class TestMarkupCap:
    """0 <= markup <= 5% of amount"""

    def test_cap_is_five_percent(self):
        assert max_markup(Decimal("1000")) == Decimal("50")

    @pytest.mark.parametrize("markup,expected", [
        ("0", True),
        ("40", True),
        ("50", True),
        ("50.01", False),
        ("-0.01", False),
    ])
    def test_bounds_on_1000(self, markup, expected):
        """✅ Upper bound inclusive, negatives rejected."""
        assert validate_markup(Decimal(markup), Decimal("1000")) is expected
