"""Check a customer's selection against a menu item's definitions.

Rules are applied in a fixed order and the first failure is raised, so a
given bad selection always produces the same error:

1. size: must exist when the item has sizes; the default size is substituted
   when none is given
2. required option groups must have a choice; single-choice groups accept at
   most one
3. choice quantities must be within the choice's bounds; choices without a
   quantity are forced to 1
4. ingredient amounts must be within the ingredient's bounds; ingredients
   that are not customizable reject any override
5. every referenced option group, choice and ingredient must exist
"""

import structlog

from menu.item.definitions import CatalogDefinitions
from ordering.customization.selection import CustomizationSelection, ValidatedSelection
from shared.exceptions import OutOfBoundsError, RequiredOptionMissingError, UnknownReferenceError

logger = structlog.get_logger(__name__)


def _resolve_size(catalog: CatalogDefinitions, size_id: str | None) -> str | None:
    if not catalog.sizes:
        if size_id is not None:
            raise UnknownReferenceError("size_id", size_id)
        return None

    if size_id is None:
        return catalog.default_size.id
    if catalog.size(size_id) is None:
        raise UnknownReferenceError("size_id", size_id)
    return size_id


def _check_groups(catalog: CatalogDefinitions, selection: CustomizationSelection) -> None:
    for group in catalog.option_groups:
        selected = selection.options.get(group.id, {})
        if group.required and not selected:
            raise RequiredOptionMissingError(group.id)
        if not group.allows_multiple_choices and len(selected) > 1:
            raise OutOfBoundsError({f"options.{group.id}": ["Only one choice may be selected"]})


def _normalize_quantities(catalog: CatalogDefinitions, selection: CustomizationSelection) -> dict:
    options: dict[str, dict[str, int]] = {}
    for group_id, choice_id, quantity in selection.selected_choices():
        group = catalog.group(group_id)
        choice = group.choice(choice_id) if group else None
        if choice is None:
            # Unknown references are reported by _check_references
            options.setdefault(group_id, {})[choice_id] = quantity
            continue

        if not choice.allows_quantity:
            quantity = 1
        elif quantity < choice.min_quantity or (choice.max_quantity is not None and quantity > choice.max_quantity):
            upper = choice.max_quantity if choice.max_quantity is not None else "∞"
            raise OutOfBoundsError(
                {f"options.{group_id}.{choice_id}": [f"Quantity {quantity} is outside [{choice.min_quantity}, {upper}]"]}
            )
        options.setdefault(group_id, {})[choice_id] = quantity
    return options


def _check_ingredients(catalog: CatalogDefinitions, selection: CustomizationSelection) -> None:
    for ingredient_id, amount in selection.ingredients.items():
        ingredient = catalog.ingredient(ingredient_id)
        if ingredient is None:
            continue

        field = f"ingredients.{ingredient_id}"
        if not ingredient.is_customizable:
            raise OutOfBoundsError({field: ["Ingredient is not customizable"]})

        lower, upper = ingredient.lower_bound, ingredient.upper_bound
        if amount < lower or (upper is not None and amount > upper):
            shown_upper = upper if upper is not None else "∞"
            raise OutOfBoundsError({field: [f"Amount {amount} is outside [{lower}, {shown_upper}]"]})


def _check_references(catalog: CatalogDefinitions, selection: CustomizationSelection) -> None:
    for group_id, choices in selection.options.items():
        group = catalog.group(group_id)
        if group is None:
            raise UnknownReferenceError("options", group_id)
        for choice_id in choices:
            if group.choice(choice_id) is None:
                raise UnknownReferenceError(f"options.{group_id}", choice_id)

    for ingredient_id in selection.ingredients:
        if catalog.ingredient(ingredient_id) is None:
            raise UnknownReferenceError("ingredients", ingredient_id)


def validate(catalog: CatalogDefinitions, selection: CustomizationSelection) -> ValidatedSelection:
    """Return the selection made consistent with ``catalog`` or raise a ValidationError."""
    try:
        size_id = _resolve_size(catalog, selection.size_id)
        _check_groups(catalog, selection)
        options = _normalize_quantities(catalog, selection)
        _check_ingredients(catalog, selection)
        _check_references(catalog, selection)
    except (UnknownReferenceError, OutOfBoundsError, RequiredOptionMissingError) as exc:
        logger.debug("Selection rejected", menu_item_id=catalog.menu_item_id, errors=exc.messages)
        raise

    return ValidatedSelection(
        menu_item_id=catalog.menu_item_id,
        selection=CustomizationSelection.create(size_id=size_id, ingredients=selection.ingredients, options=options),
    )


class SelectionValidator:
    """Validator bound to one menu item's definitions."""

    def __init__(self, catalog: CatalogDefinitions):
        self.catalog = catalog

    def validate(self, selection: CustomizationSelection) -> ValidatedSelection:
        return validate(self.catalog, selection)
