"""The canonical unit price of a customized menu item.

There is exactly one pricing rule, used both by the live item screen and by
cart lines:

    unit = base price
         + additional price of the selected size
         + for each selected customizable ingredient:
               (amount - free amount) * price per unit, when amount > free amount
         + for each selected choice:
               base price (a flat charge for selecting it)
               + (quantity - default quantity) * price per additional unit,
                 when the choice allows a quantity and quantity > default quantity

Ingredients the customer did not touch are included in the base price.
Because amounts and quantities are validated first, every term is
non-negative and the price never decreases when an amount or a quantity
grows.
"""

from dataclasses import dataclass
from decimal import Decimal

from menu.item.definitions import CatalogDefinitions
from menu.shared.money import Money
from ordering.customization.selection import ValidatedSelection


@dataclass(frozen=True)
class PriceComponent:
    """One itemized charge of a unit price."""

    kind: str  # "size" | "ingredient" | "choice"
    reference: str
    label: str
    amount: Money


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Money
    components: tuple[PriceComponent, ...] = ()

    @property
    def extra(self) -> Money:
        """Everything charged on top of the base price."""
        return sum((c.amount for c in self.components), Money.zero(self.base_price.currency))

    @property
    def total(self) -> Money:
        return self.base_price + self.extra


def _ingredient_surcharge(ingredient, amount: Decimal) -> Money | None:
    if not ingredient.is_customizable or ingredient.price_per_unit is None:
        return None
    free = ingredient.included_amount
    if amount <= free:
        return None
    return ingredient.price_per_unit.times(amount - free)


def _choice_charge(choice, quantity: int, currency: str) -> Money:
    charge = choice.base_price if choice.base_price is not None else Money.zero(currency)
    if (
        choice.allows_quantity
        and choice.price_per_additional_unit is not None
        and quantity > choice.default_quantity
    ):
        charge = charge + choice.price_per_additional_unit * (quantity - choice.default_quantity)
    return charge


def price_breakdown(catalog: CatalogDefinitions, validated: ValidatedSelection) -> PriceBreakdown:
    """Itemize the unit price of a validated selection."""
    if not isinstance(validated, ValidatedSelection):
        raise TypeError("Prices are only computed for selections returned by validate()")
    if validated.menu_item_id != catalog.menu_item_id:
        raise ValueError(
            f"Selection was validated for {validated.menu_item_id}, not {catalog.menu_item_id}"
        )

    selection = validated.selection
    components: list[PriceComponent] = []

    if selection.size_id is not None:
        size = catalog.size(selection.size_id)
        components.append(
            PriceComponent(kind="size", reference=size.id, label=size.name, amount=size.additional_price)
        )

    for ingredient in catalog.ingredients:
        if ingredient.id not in selection.ingredients:
            continue
        surcharge = _ingredient_surcharge(ingredient, selection.ingredients[ingredient.id])
        if surcharge is not None:
            components.append(
                PriceComponent(kind="ingredient", reference=ingredient.id, label=ingredient.name, amount=surcharge)
            )

    # Walk the catalog rather than the selection maps so the itemization has a stable order
    for group in catalog.option_groups:
        for choice in group.choices:
            if not selection.is_choice_selected(group.id, choice.id):
                continue
            quantity = selection.choice_quantity(group.id, choice.id)
            components.append(
                PriceComponent(
                    kind="choice",
                    reference=f"{group.id}.{choice.id}",
                    label=choice.name,
                    amount=_choice_charge(choice, quantity, catalog.currency),
                )
            )

    return PriceBreakdown(base_price=catalog.base_price, components=tuple(components))


def price(catalog: CatalogDefinitions, validated: ValidatedSelection) -> Money:
    """Per-unit price of a validated selection."""
    return price_breakdown(catalog, validated).total


def line_total(line) -> Money:
    """Unit price of a cart line times its quantity."""
    return line.unit_price * line.quantity


def cart_total(cart, currency: str | None = None) -> Money:
    """Sum of all line totals; an empty cart totals zero in ``currency``."""
    if not cart.lines:
        return Money.zero(currency) if currency else Money.zero()
    return sum((line_total(line) for line in cart.lines[1:]), line_total(cart.lines[0]))


class PriceCalculator:
    """Calculator bound to one menu item's definitions."""

    def __init__(self, catalog: CatalogDefinitions):
        self.catalog = catalog

    def price(self, validated: ValidatedSelection) -> Money:
        return price(self.catalog, validated)

    def breakdown(self, validated: ValidatedSelection) -> PriceBreakdown:
        return price_breakdown(self.catalog, validated)
