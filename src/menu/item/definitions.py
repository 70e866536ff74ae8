"""Customization surface of a menu item: sizes, ingredients and option groups.

``CatalogDefinitions`` is the menu item aggregate. Its sizes, ingredients and
option groups are entities identified by the menu service's own ids, and the
aggregate checks its invariants on construction, so an inconsistent catalog
is rejected at the boundary instead of surfacing later as a wrong price.
The ordering context only reads these definitions.
"""

from collections import Counter
from decimal import Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, HasMany, Identifier, Integer, String, ValueObject

from menu.domain import menu
from menu.shared.money import Money


def _duplicates(ids) -> list[str]:
    return sorted(i for i, count in Counter(ids).items() if count > 1)


def _decimal(value) -> Decimal:
    # Float fields hold amounts such as 0.25; read them back as the decimals they were written as
    amount = Decimal(str(value))
    return amount.to_integral_value() if amount == amount.to_integral_value() else amount.normalize()


@menu.entity(part_of="CatalogDefinitions")
class SizeOption:
    """A mutually exclusive variant of a menu item with its own price delta."""

    id: Identifier(identifier=True, required=True)
    name: String(required=True, max_length=100)
    abbreviation: String(max_length=10)
    additional_price: ValueObject(Money, required=True)
    is_default: Boolean(default=False)


@menu.entity(part_of="CatalogDefinitions")
class IngredientDefinition:
    """An ingredient whose amount the customer may adjust.

    ``free_amount`` units are included in the base price; every unit beyond
    it costs ``price_per_unit``.
    """

    id: Identifier(identifier=True, required=True)
    name: String(required=True, max_length=100)
    unit: String(max_length=20)
    default_amount: Float(required=True, min_value=0.0)
    is_customizable: Boolean(default=False)
    min_amount: Float(min_value=0.0)
    max_amount: Float(min_value=0.0)
    free_amount: Float(default=0.0, min_value=0.0)
    price_per_unit: ValueObject(Money)

    @invariant.post
    def bounds_must_enclose_default(self):
        if self.min_amount is not None and self.min_amount > self.default_amount:
            raise ValidationError({"min_amount": [f"Ingredient {self.id}: min amount exceeds default amount"]})
        if self.max_amount is not None and self.max_amount < self.default_amount:
            raise ValidationError({"max_amount": [f"Ingredient {self.id}: max amount is below default amount"]})

    @property
    def lower_bound(self) -> Decimal:
        return _decimal(self.min_amount) if self.min_amount is not None else Decimal(0)

    @property
    def upper_bound(self) -> Decimal | None:
        return _decimal(self.max_amount) if self.max_amount is not None else None

    @property
    def included_amount(self) -> Decimal:
        return _decimal(self.free_amount or 0)


@menu.entity(part_of="OptionGroupDefinition")
class ChoiceDefinition:
    """A selectable add-on within an option group.

    ``base_price`` is a flat charge for selecting the choice and already covers
    ``default_quantity`` units; extra units cost ``price_per_additional_unit``.
    """

    id: Identifier(identifier=True, required=True)
    name: String(required=True, max_length=100)
    base_price: ValueObject(Money)
    allows_quantity: Boolean(default=False)
    min_quantity: Integer(default=1, min_value=1)
    max_quantity: Integer(min_value=1)
    default_quantity: Integer(default=1, min_value=1)
    price_per_additional_unit: ValueObject(Money)

    @invariant.post
    def quantity_bounds_must_enclose_default(self):
        if not self.allows_quantity:
            return
        if self.min_quantity > self.default_quantity:
            raise ValidationError({"min_quantity": [f"Choice {self.id}: min quantity exceeds default quantity"]})
        if self.max_quantity is not None and self.max_quantity < self.default_quantity:
            raise ValidationError({"max_quantity": [f"Choice {self.id}: max quantity is below default quantity"]})

    @property
    def initial_quantity(self) -> int:
        """Quantity a choice gets when the customer first selects it."""
        return self.default_quantity if self.allows_quantity else 1


@menu.entity(part_of="CatalogDefinitions")
class OptionGroupDefinition:
    """A named set of choices, e.g. "Milk" or "Syrup"."""

    id: Identifier(identifier=True, required=True)
    name: String(required=True, max_length=100)
    required: Boolean(default=False)
    allows_multiple_choices: Boolean(default=False)
    choices: HasMany(ChoiceDefinition)

    @invariant.post
    def required_group_needs_a_choice(self):
        if self.required and not self.choices:
            raise ValidationError({"choices": [f"Option group {self.id}: a required group needs at least one choice"]})

    @classmethod
    def create(cls, id=None, name=None, choices=(), **attributes):
        """Build a group, rejecting repeated choice ids before they can collapse into one."""
        duplicates = _duplicates(c.id for c in choices)
        if duplicates:
            raise ValidationError({"choices": [f"Option group {id}: duplicate choice ids {duplicates}"]})
        return cls(id=id, name=name, choices=list(choices), **attributes)

    def choice(self, choice_id: str) -> ChoiceDefinition | None:
        return next((c for c in self.choices if c.id == choice_id), None)


@menu.aggregate
class CatalogDefinitions:
    """One menu item's customization surface."""

    menu_item_id: Identifier(identifier=True, required=True)
    name: String(required=True, max_length=255)
    image_url: String(max_length=500)
    base_price: ValueObject(Money, required=True)
    sizes: HasMany(SizeOption)
    ingredients: HasMany(IngredientDefinition)
    option_groups: HasMany(OptionGroupDefinition)

    @invariant.post
    def exactly_one_default_size(self):
        if self.sizes and sum(1 for s in self.sizes if s.is_default) != 1:
            raise ValidationError({"sizes": [f"Menu item {self.menu_item_id}: exactly one size must be the default"]})

    @invariant.post
    def prices_must_share_currency(self):
        for price in self._prices():
            if price.currency != self.base_price.currency:
                raise ValidationError(
                    {
                        "base_price": [
                            f"Menu item {self.menu_item_id}: all prices must be in {self.base_price.currency}, "
                            f"found {price.currency}"
                        ]
                    }
                )

    @classmethod
    def create(
        cls, menu_item_id=None, name=None, base_price=None, sizes=(), ingredients=(), option_groups=(), image_url=None
    ):
        """Build a menu item, rejecting repeated size, ingredient or option group ids."""
        for field, ids in (
            ("sizes", (s.id for s in sizes)),
            ("ingredients", (i.id for i in ingredients)),
            ("option_groups", (g.id for g in option_groups)),
        ):
            duplicates = _duplicates(ids)
            if duplicates:
                raise ValidationError({field: [f"Menu item {menu_item_id}: duplicate ids {duplicates}"]})

        return cls(
            menu_item_id=menu_item_id,
            name=name,
            image_url=image_url,
            base_price=base_price,
            sizes=list(sizes),
            ingredients=list(ingredients),
            option_groups=list(option_groups),
        )

    def _prices(self):
        yield from (s.additional_price for s in self.sizes)
        yield from (i.price_per_unit for i in self.ingredients if i.price_per_unit is not None)
        for group in self.option_groups:
            for choice in group.choices:
                if choice.base_price is not None:
                    yield choice.base_price
                if choice.price_per_additional_unit is not None:
                    yield choice.price_per_additional_unit

    @property
    def currency(self) -> str:
        return self.base_price.currency

    @property
    def default_size(self) -> SizeOption | None:
        return next((s for s in self.sizes if s.is_default), None)

    def size(self, size_id: str) -> SizeOption | None:
        return next((s for s in self.sizes if s.id == size_id), None)

    def ingredient(self, ingredient_id: str) -> IngredientDefinition | None:
        return next((i for i in self.ingredients if i.id == ingredient_id), None)

    def group(self, group_id: str) -> OptionGroupDefinition | None:
        return next((g for g in self.option_groups if g.id == group_id), None)
