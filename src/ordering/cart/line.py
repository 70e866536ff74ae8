"""Cart line: one distinct customized configuration of a menu item at a quantity."""

import json
from decimal import Decimal

from protean.fields import Identifier, Integer, String, Text, ValueObject

from menu.item.definitions import CatalogDefinitions
from menu.shared.money import Money
from ordering.customization.pricing import line_total, price
from ordering.customization.selection import CustomizationSelection
from ordering.customization.validation import validate
from ordering.domain import ordering
from shared.exceptions import OutOfBoundsError


@ordering.value_object
class LineSnapshot:
    """Display fields captured when the line was created, for offline rendering."""

    name: String(required=True, max_length=255)
    image_url: String(max_length=500)
    size_name: String(max_length=100)
    size_abbreviation: String(max_length=10)
    size_additional_price: ValueObject(Money)
    details: Text(default="[]")  # JSON array of human-readable customization lines

    @property
    def detail_lines(self) -> tuple[str, ...]:
        return tuple(json.loads(self.details or "[]"))


@ordering.entity(part_of="Cart")
class CartLine:
    menu_item_id: Identifier(required=True)
    coffee_shop_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1, default=1)
    unit_price: ValueObject(Money, required=True)
    selection: ValueObject(CustomizationSelection, required=True)
    snapshot: ValueObject(LineSnapshot, required=True)

    @property
    def size_id(self) -> str | None:
        return self.selection.size_id

    @property
    def total(self) -> Money:
        return line_total(self)

    def is_mergeable_with(self, other: "CartLine") -> bool:
        return mergeable(self, other)

    def clone(self) -> "CartLine":
        """A detached line with the same identity and values; value objects are shared."""
        return CartLine(
            id=self.id,
            menu_item_id=self.menu_item_id,
            coffee_shop_id=self.coffee_shop_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            selection=self.selection,
            snapshot=self.snapshot,
        )


def mergeable(a: CartLine, b: CartLine) -> bool:
    """Whether two lines describe the same order and should be combined.

    Same menu item, same size (no size counts as a value) and structurally
    equal customization. Selections compare as canonical maps, so the order in
    which ingredients or choices were picked does not matter.
    """
    return a.menu_item_id == b.menu_item_id and a.size_id == b.size_id and a.selection == b.selection


def _format_amount(amount: Decimal) -> str:
    return f"{amount.normalize():f}"


def _describe(catalog: CatalogDefinitions, selection: CustomizationSelection) -> list[str]:
    details = []
    ingredients = selection.ingredients
    for ingredient in catalog.ingredients:
        if ingredient.id in ingredients:
            amount = _format_amount(ingredients[ingredient.id])
            details.append(f"{ingredient.name}: {amount} {ingredient.unit}")

    for group in catalog.option_groups:
        for choice in group.choices:
            if not selection.is_choice_selected(group.id, choice.id):
                continue
            quantity = selection.choice_quantity(group.id, choice.id)
            details.append(f"{choice.name} x{quantity}" if quantity > 1 else choice.name)
    return details


def build_line(
    catalog: CatalogDefinitions,
    selection: CustomizationSelection,
    coffee_shop_id: str,
    quantity: int = 1,
) -> CartLine:
    """Validate and price a selection once, producing a line ready for the cart.

    Raises a ValidationError subclass for an inconsistent selection; no cart
    is touched in that case.
    """
    if quantity < 1:
        raise OutOfBoundsError({"quantity": ["Quantity must be at least 1"]})

    validated = validate(catalog, selection)
    chosen = validated.selection
    size = catalog.size(chosen.size_id) if chosen.size_id else None

    return CartLine(
        menu_item_id=catalog.menu_item_id,
        coffee_shop_id=coffee_shop_id,
        quantity=quantity,
        unit_price=price(catalog, validated),
        selection=chosen,
        snapshot=LineSnapshot(
            name=catalog.name,
            image_url=catalog.image_url,
            size_name=size.name if size else None,
            size_abbreviation=size.abbreviation if size else None,
            size_additional_price=size.additional_price if size else None,
            details=json.dumps(_describe(catalog, chosen)),
        ),
    )
