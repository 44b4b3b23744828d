"""Tests for the pricing and totals calculator."""

from decimal import Decimal

import pytest

from fixtures import AMOXICILLIN, PARACETAMOL, VITAMIN_C, line
from pos_engine.errors import InvalidLineItem, ValidationError
from pos_engine.models import DiscountKind, DiscountSelection, LineItem
from pos_engine.pricing import (
    compute_totals,
    discount_rate,
    star_points_earned,
    to_currency,
)


class TestComputeTotals:
    """Tests for compute_totals."""

    def test_no_discount(self) -> None:
        """VAT is 12% of the subtotal when no discount applies."""
        totals = compute_totals([line("L1", PARACETAMOL, 2)], DiscountSelection.none())

        assert totals.subtotal == Decimal("11.98")
        assert totals.discount_amount == 0
        assert totals.discounted_subtotal == Decimal("11.98")
        assert totals.vat == Decimal("1.4376")
        assert totals.total == Decimal("13.4176")

    def test_senior_pwd_discount_applies_before_vat(self) -> None:
        """Senior/PWD takes 20% off, then VAT is charged on the remainder."""
        totals = compute_totals([line("L1", PARACETAMOL, 2)], DiscountSelection.senior_pwd())

        assert totals.discount_amount == Decimal("2.396")
        assert totals.discounted_subtotal == Decimal("9.584")
        assert totals.vat == Decimal("1.15008")
        assert totals.total == Decimal("10.73408")

    def test_custom_discount(self) -> None:
        """A custom percent is applied as given."""
        totals = compute_totals([line("L1", VITAMIN_C, 5)], DiscountSelection.custom(10))

        assert totals.subtotal == Decimal("40.00")
        assert totals.discount_amount == Decimal("4.00")
        assert totals.total == Decimal("40.32")

    def test_custom_percent_argument_overrides_selection(self) -> None:
        """custom_percent replaces the percent stored on a Custom selection."""
        totals = compute_totals([line("L1", VITAMIN_C, 5)], DiscountSelection.custom(10), custom_percent=50)

        assert totals.discount_amount == Decimal("20.00")

    def test_custom_percent_above_hundred_is_clamped(self) -> None:
        """A 150% custom discount behaves as 100%."""
        totals = compute_totals([line("L1", AMOXICILLIN, 2)], DiscountSelection.custom(150))

        assert totals.discount_amount == totals.subtotal
        assert totals.total == 0

    def test_negative_custom_percent_is_clamped_to_zero(self) -> None:
        """A negative custom discount behaves as no discount."""
        totals = compute_totals([line("L1", AMOXICILLIN, 2)], DiscountSelection.custom(-10))

        assert totals.discount_amount == 0
        assert totals.total == Decimal("28.00")

    def test_empty_lines(self) -> None:
        """No lines yields all-zero totals."""
        totals = compute_totals([])

        assert totals.subtotal == 0
        assert totals.total == 0

    @pytest.mark.parametrize(
        "discount",
        [
            DiscountSelection.none(),
            DiscountSelection.senior_pwd(),
            DiscountSelection.custom("33.3"),
            DiscountSelection.custom(100),
        ],
    )
    def test_total_is_discounted_subtotal_plus_vat(self, discount) -> None:
        """The total decomposes exactly and the discount never exceeds the subtotal."""
        lines = [line("L1", PARACETAMOL, 3), line("L2", AMOXICILLIN, 1), line("L3", VITAMIN_C, 7)]
        totals = compute_totals(lines, discount)

        assert totals.total == totals.discounted_subtotal + totals.vat
        assert totals.discount_amount <= totals.subtotal
        assert totals.total >= 0

    def test_zero_quantity_rejected(self) -> None:
        """Quantity below 1 raises InvalidLineItem instead of clamping."""
        bad = LineItem("L1", "MED001", "Paracetamol", Decimal("5.99"), quantity=0)

        with pytest.raises(InvalidLineItem) as exc_info:
            compute_totals([bad])

        assert exc_info.value.line_id == "L1"
        assert isinstance(exc_info.value, ValidationError)

    def test_boolean_quantity_rejected(self) -> None:
        """A bool is not a quantity."""
        bad = LineItem("L1", "MED001", "Paracetamol", Decimal("5.99"), quantity=True)

        with pytest.raises(InvalidLineItem):
            compute_totals([bad])

    def test_negative_price_rejected(self) -> None:
        """Negative unit price raises InvalidLineItem."""
        bad = LineItem("L1", "MED001", "Paracetamol", Decimal("-1"), quantity=1)

        with pytest.raises(InvalidLineItem):
            compute_totals([bad])

    def test_float_prices_are_exact(self) -> None:
        """Float inputs go through their string form, so 5.99 x 2 is exactly 11.98."""
        item = LineItem("L1", "MED001", "Paracetamol", 5.99, quantity=2)

        assert compute_totals([item]).subtotal == Decimal("11.98")


class TestDiscountRate:
    """Tests for discount_rate."""

    def test_rates(self) -> None:
        """Each selection maps to its fractional rate."""
        assert discount_rate(DiscountSelection.none()) == 0
        assert discount_rate(DiscountSelection.senior_pwd()) == Decimal("0.20")
        assert discount_rate(DiscountSelection.custom(15)) == Decimal("0.15")

    def test_custom_without_percent(self) -> None:
        """A Custom selection with no percent is no discount."""
        assert discount_rate(DiscountSelection(DiscountKind.CUSTOM)) == 0


class TestDisplayHelpers:
    """Tests for to_currency and star_points_earned."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("13.4176"), Decimal("13.42")),
            (Decimal("10.73408"), Decimal("10.73")),
            (Decimal("0.125"), Decimal("0.13")),
            (Decimal("0"), Decimal("0.00")),
        ],
    )
    def test_to_currency_rounds_half_up(self, amount, expected) -> None:
        """Display rounding is to centavos, half up."""
        assert to_currency(amount) == expected

    @pytest.mark.parametrize(
        "total,points",
        [
            (Decimal("13.4176"), 0),
            (Decimal("199.99"), 0),
            (Decimal("200"), 1),
            (Decimal("599.99"), 2),
        ],
    )
    def test_star_points(self, total, points) -> None:
        """One point per full 200 pesos."""
        assert star_points_earned(total) == points

    def test_star_points_custom_divisor(self) -> None:
        """The pesos-per-point divisor is configurable."""
        assert star_points_earned(Decimal("250"), pesos_per_point=100) == 2
        assert star_points_earned(Decimal("250"), pesos_per_point=0) == 0
