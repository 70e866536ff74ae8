"""Tests for the live customization session behind the item screen."""

from decimal import Decimal

import pytest
from menu.shared.money import Money
from ordering.customization.selection import CustomizationSelection
from ordering.customization.session import CustomizationSession
from shared.exceptions import OutOfBoundsError, UnknownReferenceError


class TestInitialState:
    def test_starts_from_defaults(self, latte):
        session = CustomizationSession(latte)
        assert session.selection.size_id == "m"
        assert session.selection.options == {"milk-type": {"whole": 1}}
        assert session.current_price == latte.base_price
        assert session.extra_price == Money.zero()

    def test_starts_from_given_selection(self, latte, oat_latte):
        session = CustomizationSession(latte, oat_latte)
        assert session.current_price == Money.of("68.00")


class TestSize:
    def test_select_size(self, latte):
        session = CustomizationSession(latte)
        session.select_size("l")
        assert session.current_price == Money.of("75.00")
        assert session.extra_price == Money.of("15.00")

    def test_unknown_size(self, latte):
        with pytest.raises(UnknownReferenceError):
            CustomizationSession(latte).select_size("xl")


class TestIngredients:
    def test_set_and_reset_amount(self, latte):
        session = CustomizationSession(latte)
        session.set_ingredient_amount("espresso", Decimal(3))
        assert session.current_price == Money.of("84.00")

        session.reset_ingredient("espresso")
        assert session.current_price == Money.of("60.00")
        assert session.selection.ingredients == {}

    def test_unknown_ingredient(self, latte):
        with pytest.raises(UnknownReferenceError):
            CustomizationSession(latte).set_ingredient_amount("cinnamon", Decimal(1))

    def test_out_of_bounds_amount_surfaces_on_pricing(self, latte):
        session = CustomizationSession(latte)
        session.set_ingredient_amount("espresso", Decimal(9))
        with pytest.raises(OutOfBoundsError):
            session.current_price


class TestToggleChoice:
    def test_single_choice_group_replaces_choice(self, latte):
        session = CustomizationSession(latte)
        session.toggle_choice("milk-type", "oat")
        assert session.selection.options["milk-type"] == {"oat": 1}
        assert session.current_price == Money.of("68.00")

    def test_last_choice_of_required_group_stays(self, latte):
        session = CustomizationSession(latte)
        session.toggle_choice("milk-type", "whole")
        assert session.selection.is_choice_selected("milk-type", "whole")

    def test_optional_choice_toggles_on_and_off(self, latte):
        session = CustomizationSession(latte)
        session.toggle_choice("syrup", "vanilla")
        assert session.extra_price == Money.of("10.00")

        session.toggle_choice("syrup", "vanilla")
        assert "syrup" not in session.selection.options
        assert session.extra_price == Money.zero()

    def test_multi_choice_group_accumulates(self, latte):
        session = CustomizationSession(latte)
        session.toggle_choice("syrup", "vanilla")
        session.toggle_choice("syrup", "caramel")
        assert session.selection.options["syrup"] == {"vanilla": 1, "caramel": 1}
        assert session.extra_price == Money.of("20.00")

    def test_unknown_choice(self, latte):
        with pytest.raises(UnknownReferenceError):
            CustomizationSession(latte).toggle_choice("syrup", "hazelnut")

    def test_unknown_group(self, latte):
        with pytest.raises(UnknownReferenceError):
            CustomizationSession(latte).toggle_choice("toppings", "cream")


class TestChoiceQuantity:
    def test_extra_units_are_charged(self, latte):
        session = CustomizationSession(latte)
        session.set_choice_quantity("milk-type", "oat", 3)
        assert session.selection.options["milk-type"] == {"oat": 3}
        assert session.current_price == Money.of("78.00")

    def test_quantity_above_max_surfaces_on_pricing(self, latte):
        session = CustomizationSession(latte)
        session.set_choice_quantity("syrup", "caramel", 4)
        with pytest.raises(OutOfBoundsError):
            session.breakdown()


class TestToLine:
    def test_line_price_matches_screen_price(self, latte):
        session = CustomizationSession(latte)
        session.select_size("l")
        session.toggle_choice("syrup", "caramel")
        session.set_choice_quantity("syrup", "caramel", 2)

        line = session.to_line("shop-a", quantity=2)

        assert line.unit_price == session.current_price
        assert line.quantity == 2
        assert line.selection == CustomizationSelection.create(
            size_id="l", options={"milk-type": {"whole": 1}, "syrup": {"caramel": 2}}
        )
