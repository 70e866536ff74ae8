"""Live customization of a menu item before it goes into the cart.

The session backs the item detail screen: it keeps the customer's working
selection, applies the screen's toggle rules and reports the running price.
Prices come from the same validator and calculator the cart uses, so the
price shown on the screen is the price the line is added at.
"""

from decimal import Decimal

from menu.item.definitions import CatalogDefinitions
from menu.shared.money import Money
from ordering.cart.line import CartLine, build_line
from ordering.customization.pricing import PriceBreakdown, price_breakdown
from ordering.customization.selection import CustomizationSelection, default_selection
from ordering.customization.validation import validate
from shared.exceptions import UnknownReferenceError


class CustomizationSession:
    def __init__(self, catalog: CatalogDefinitions, selection: CustomizationSelection | None = None):
        self.catalog = catalog
        self.selection = selection if selection is not None else default_selection(catalog)

    def _group_and_choice(self, group_id: str, choice_id: str):
        group = self.catalog.group(group_id)
        if group is None:
            raise UnknownReferenceError("options", group_id)
        choice = group.choice(choice_id)
        if choice is None:
            raise UnknownReferenceError(f"options.{group_id}", choice_id)
        return group, choice

    def select_size(self, size_id: str) -> None:
        if self.catalog.size(size_id) is None:
            raise UnknownReferenceError("size_id", size_id)
        self.selection = self.selection.with_size(size_id)

    def set_ingredient_amount(self, ingredient_id: str, amount: Decimal) -> None:
        if self.catalog.ingredient(ingredient_id) is None:
            raise UnknownReferenceError("ingredients", ingredient_id)
        self.selection = self.selection.with_ingredient(ingredient_id, amount)

    def reset_ingredient(self, ingredient_id: str) -> None:
        self.selection = self.selection.without_ingredient(ingredient_id)

    def toggle_choice(self, group_id: str, choice_id: str) -> None:
        """Select or deselect a choice.

        Selecting a choice in a single-choice group replaces the group's
        current choice. The last choice of a required group stays selected.
        """
        group, choice = self._group_and_choice(group_id, choice_id)
        selected = self.selection.options.get(group_id, {})

        if choice_id in selected:
            if group.required and len(selected) <= 1:
                return
            self.selection = self.selection.without_choice(group_id, choice_id)
            return

        self.selection = self.selection.with_choice(
            group_id,
            choice_id,
            choice.initial_quantity,
            exclusive=not group.allows_multiple_choices,
        )

    def set_choice_quantity(self, group_id: str, choice_id: str, quantity: int) -> None:
        group, _ = self._group_and_choice(group_id, choice_id)
        self.selection = self.selection.with_choice(
            group_id, choice_id, quantity, exclusive=not group.allows_multiple_choices
        )

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def breakdown(self) -> PriceBreakdown:
        """Itemized price of the working selection; raises if it is not valid yet."""
        return price_breakdown(self.catalog, validate(self.catalog, self.selection))

    @property
    def current_price(self) -> Money:
        return self.breakdown().total

    @property
    def extra_price(self) -> Money:
        """Charge for the customization on top of the base price."""
        return self.breakdown().extra

    def to_line(self, coffee_shop_id: str, quantity: int = 1) -> CartLine:
        return build_line(self.catalog, self.selection, coffee_shop_id, quantity)
