"""What the customer chose for a menu item.

A ``CustomizationSelection`` is the typed replacement for the free-form
customization dictionaries the clients used to send around. Its ingredient
amounts and choice quantities are kept as canonical JSON (sorted keys,
normalized decimals, empty groups dropped), so two selections are equal when
they pick the same size, the same ingredient amounts and the same choice
quantities, regardless of the order in which the maps were built.
"""

import json
from decimal import Decimal, InvalidOperation

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text, ValueObject

from menu.item.definitions import CatalogDefinitions
from ordering.domain import ordering


def _canonical(value: dict) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def _encode_ingredients(ingredients: dict) -> str:
    encoded = {}
    for ingredient_id, amount in ingredients.items():
        try:
            encoded[ingredient_id] = f"{Decimal(str(amount)).normalize():f}"
        except InvalidOperation:
            raise ValidationError({f"ingredients.{ingredient_id}": [f"Invalid amount: {amount!r}"]}) from None
    return _canonical(encoded)


def _encode_options(options: dict) -> str:
    return _canonical(
        {
            group_id: {choice_id: int(quantity) for choice_id, quantity in choices.items()}
            for group_id, choices in options.items()
            if choices
        }
    )


@ordering.value_object
class CustomizationSelection:
    size_id: String(max_length=100)
    # JSON object: ingredient id -> chosen amount as decimal text, only for ingredients the customer touched
    ingredient_amounts: Text(default="{}")
    # JSON object: option group id -> {choice id: chosen quantity}
    choice_quantities: Text(default="{}")

    @invariant.post
    def ingredient_amounts_must_be_decimal_text(self):
        try:
            amounts = json.loads(self.ingredient_amounts or "{}")
        except (json.JSONDecodeError, TypeError):
            raise ValidationError({"ingredients": ["Ingredient amounts must be valid JSON"]}) from None

        if not isinstance(amounts, dict):
            raise ValidationError({"ingredients": ["Ingredient amounts must be a JSON object"]})

        for ingredient_id, amount in amounts.items():
            try:
                finite = isinstance(amount, str) and Decimal(amount).is_finite()
            except InvalidOperation:
                finite = False
            if not finite:
                raise ValidationError({f"ingredients.{ingredient_id}": [f"Invalid amount: {amount!r}"]})

    @invariant.post
    def choice_quantities_must_be_integers(self):
        try:
            options = json.loads(self.choice_quantities or "{}")
        except (json.JSONDecodeError, TypeError):
            raise ValidationError({"options": ["Choice quantities must be valid JSON"]}) from None

        if not isinstance(options, dict) or not all(isinstance(c, dict) for c in options.values()):
            raise ValidationError({"options": ["Choice quantities must map groups to choices"]})

        for group_id, choices in options.items():
            for choice_id, quantity in choices.items():
                if isinstance(quantity, bool) or not isinstance(quantity, int):
                    raise ValidationError({f"options.{group_id}.{choice_id}": [f"Invalid quantity: {quantity!r}"]})

    @classmethod
    def create(cls, size_id=None, ingredients=None, options=None) -> "CustomizationSelection":
        """Build a selection from plain maps.

        ``ingredients`` maps ingredient id to amount; ``options`` maps option
        group id to ``{choice id: quantity}``.
        """
        return cls(
            size_id=size_id,
            ingredient_amounts=_encode_ingredients(ingredients or {}),
            choice_quantities=_encode_options(options or {}),
        )

    @property
    def ingredients(self) -> dict[str, Decimal]:
        return {k: Decimal(v) for k, v in json.loads(self.ingredient_amounts or "{}").items()}

    @property
    def options(self) -> dict[str, dict[str, int]]:
        return json.loads(self.choice_quantities or "{}")

    def selected_choices(self):
        """Yield ``(group_id, choice_id, quantity)`` for every selected choice."""
        for group_id, choices in self.options.items():
            for choice_id, quantity in choices.items():
                yield group_id, choice_id, quantity

    def choice_quantity(self, group_id: str, choice_id: str) -> int:
        return self.options.get(group_id, {}).get(choice_id, 0)

    def is_choice_selected(self, group_id: str, choice_id: str) -> bool:
        return choice_id in self.options.get(group_id, {})

    # -------------------------------------------------------------------
    # Derived selections
    # -------------------------------------------------------------------
    def with_size(self, size_id: str | None) -> "CustomizationSelection":
        return CustomizationSelection.create(size_id=size_id, ingredients=self.ingredients, options=self.options)

    def with_ingredient(self, ingredient_id: str, amount: Decimal) -> "CustomizationSelection":
        ingredients = {**self.ingredients, ingredient_id: amount}
        return CustomizationSelection.create(size_id=self.size_id, ingredients=ingredients, options=self.options)

    def without_ingredient(self, ingredient_id: str) -> "CustomizationSelection":
        ingredients = {k: v for k, v in self.ingredients.items() if k != ingredient_id}
        return CustomizationSelection.create(size_id=self.size_id, ingredients=ingredients, options=self.options)

    def with_choice(
        self, group_id: str, choice_id: str, quantity: int, exclusive: bool = False
    ) -> "CustomizationSelection":
        """Select a choice; ``exclusive`` drops the group's other choices."""
        options = self.options
        current = {} if exclusive else options.get(group_id, {})
        options[group_id] = {**current, choice_id: quantity}
        return CustomizationSelection.create(size_id=self.size_id, ingredients=self.ingredients, options=options)

    def without_choice(self, group_id: str, choice_id: str) -> "CustomizationSelection":
        options = self.options
        options[group_id] = {k: v for k, v in options.get(group_id, {}).items() if k != choice_id}
        return CustomizationSelection.create(size_id=self.size_id, ingredients=self.ingredients, options=options)


@ordering.value_object
class ValidatedSelection:
    """A selection checked against the definitions of ``menu_item_id``.

    Produced by ``ordering.customization.validation.validate``; it is the only
    input the price calculator accepts.
    """

    menu_item_id: Identifier(required=True)
    selection: ValueObject(CustomizationSelection, required=True)


def default_selection(catalog: CatalogDefinitions) -> CustomizationSelection:
    """The selection a customer starts from on the item screen.

    Picks the default size and, for each required option group, its first
    choice at the choice's default quantity.
    """
    size = catalog.default_size
    options = {
        group.id: {group.choices[0].id: group.choices[0].initial_quantity}
        for group in catalog.option_groups
        if group.required and group.choices
    }
    return CustomizationSelection.create(size_id=size.id if size else None, options=options)
