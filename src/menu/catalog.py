"""Catalog providers: where the ordering context gets menu item definitions.

The network-backed provider lives with the mobile client; this module defines
the interface and the in-memory and JSON-file providers used for wiring and
tests. Definitions are parsed once here, at the boundary.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Iterable
from decimal import Decimal
from pathlib import Path

import structlog
from protean.exceptions import ValidationError
from protean.utils.reflection import declared_fields
from pydantic.alias_generators import to_snake

from menu.item.definitions import (
    CatalogDefinitions,
    ChoiceDefinition,
    IngredientDefinition,
    OptionGroupDefinition,
    SizeOption,
)
from menu.shared.money import DEFAULT_CURRENCY, Money
from shared.exceptions import UnknownReferenceError

logger = structlog.get_logger(__name__)

_PRICE_FIELDS = frozenset({"base_price", "additional_price", "price_per_unit", "price_per_additional_unit"})
_AMOUNT_FIELDS = frozenset({"default_amount", "min_amount", "max_amount", "free_amount"})


class CatalogProvider(ABC):
    """Read-only source of menu item definitions."""

    @abstractmethod
    def definitions_for(self, menu_item_id: str) -> CatalogDefinitions:
        """Return the definitions of a menu item or raise UnknownReferenceError."""


class InMemoryCatalog(CatalogProvider):
    def __init__(self, definitions: Iterable[CatalogDefinitions] = ()):
        self._by_id: dict[str, CatalogDefinitions] = {d.menu_item_id: d for d in definitions}

    def definitions_for(self, menu_item_id: str) -> CatalogDefinitions:
        definitions = self._by_id.get(menu_item_id)
        if definitions is None:
            raise UnknownReferenceError("menu_item_id", menu_item_id)
        return definitions

    def __contains__(self, menu_item_id: str) -> bool:
        return menu_item_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------
def _price(field: str, value, currency: str) -> Money | None:
    if value is None:
        return None
    try:
        return Money.of(value, currency)
    except (TypeError, ValueError) as exc:
        raise ValidationError({field: [str(exc)]}) from None


def _snake(data: dict) -> dict:
    return {to_snake(key): value for key, value in data.items()}


def _attributes(element_cls, data: dict, currency: str) -> dict:
    """Keep the attributes ``element_cls`` declares, reading prices in ``currency``."""
    fields = declared_fields(element_cls)
    attributes = {}
    for name, value in data.items():
        if name not in fields:
            continue
        if name in _PRICE_FIELDS:
            value = _price(name, value, currency)
        elif name in _AMOUNT_FIELDS and value is not None:
            value = float(value)
        attributes[name] = value
    return attributes


def _option_group(data: dict, currency: str) -> OptionGroupDefinition:
    data = _snake(data)
    choices = [
        ChoiceDefinition(**_attributes(ChoiceDefinition, _snake(c), currency)) for c in data.pop("choices", None) or []
    ]
    return OptionGroupDefinition.create(choices=choices, **_attributes(OptionGroupDefinition, data, currency))


def definitions_from_wire(data: dict, currency: str = DEFAULT_CURRENCY) -> CatalogDefinitions:
    """Build a menu item from the menu service's camelCase document.

    Prices arrive as decimal text (``"60.00"``) and are read in ``currency``.
    """
    data = _snake(data)
    sizes = [SizeOption(**_attributes(SizeOption, _snake(s), currency)) for s in data.pop("sizes", None) or []]
    ingredients = [
        IngredientDefinition(**_attributes(IngredientDefinition, _snake(i), currency))
        for i in data.pop("ingredients", None) or []
    ]
    option_groups = [_option_group(g, currency) for g in data.pop("option_groups", None) or []]
    return CatalogDefinitions.create(
        sizes=sizes,
        ingredients=ingredients,
        option_groups=option_groups,
        **_attributes(CatalogDefinitions, data, currency),
    )


def load_catalog(path: str | Path, currency: str = DEFAULT_CURRENCY) -> InMemoryCatalog:
    """Load menu item definitions from a JSON file.

    The file holds either a list of definitions or an object with an
    ``items`` list, in the menu service's camelCase wire format. Prices are
    read in ``currency``, the currency the app is configured for.
    """
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"), parse_float=Decimal)
    if isinstance(data, dict):
        data = data.get("items", [])

    definitions = [definitions_from_wire(item, currency) for item in data]
    logger.info("Catalog loaded", path=str(p), menu_items=len(definitions), currency=currency)
    return InMemoryCatalog(definitions)
