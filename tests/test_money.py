"""Tests for the Money value object."""

from decimal import Decimal

import pytest

from django_dive_billing.money import CurrencyMismatchError, Money, round_money


class TestMoney:

    def test_amount_is_normalized_to_decimal(self):
        money = Money(45, "USD")

        assert isinstance(money.amount, Decimal)
        assert money.amount == Decimal("45")

    def test_arithmetic_keeps_currency(self):
        price = Money(Decimal("45.00"), "USD")

        assert price * 7 == Money(Decimal("315.00"), "USD")
        assert 2 * price == Money(Decimal("90.00"), "USD")
        assert price + price - Money(Decimal("10"), "USD") == Money(Decimal("80.00"), "USD")
        assert -price == Money(Decimal("-45.00"), "USD")

    def test_mixing_currencies_raises(self):
        with pytest.raises(CurrencyMismatchError):
            Money(Decimal("1"), "USD") + Money(Decimal("1"), "EUR")

    def test_quantized_uses_currency_decimals(self):
        assert Money(Decimal("10.005"), "USD").quantized().amount == Decimal("10.00")
        assert Money(Decimal("10.015"), "USD").quantized().amount == Decimal("10.02")
        assert Money(Decimal("1500.5"), "JPY").quantized().amount == Decimal("1500")

    def test_str(self):
        assert str(Money(Decimal("150"), "USD")) == "150.00 USD"

    def test_zero_and_sign_helpers(self):
        assert Money.zero("USD").is_zero()
        assert Money(Decimal("0.01"), "USD").is_positive()
        assert not Money(Decimal("-1"), "USD").is_positive()


def test_round_money_is_bankers_rounding():
    assert round_money(Decimal("2.345")) == Decimal("2.34")
    assert round_money(Decimal("2.355")) == Decimal("2.36")
