import os
from pathlib import Path

import pytest


def pytest_sessionstart(session):
    """Run the suite with the test environment's logging defaults.

    Menu definitions are built by fixtures the ordering tests share, so the
    menu domain is initialized once for the whole session.
    """
    os.environ.setdefault("ENVIRONMENT", "test")

    from menu.domain import menu

    menu.init()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)


@pytest.fixture
def latte():
    """A latte with sizes, adjustable ingredients and priced options."""
    from menu.item.definitions import (
        CatalogDefinitions,
        ChoiceDefinition,
        IngredientDefinition,
        OptionGroupDefinition,
        SizeOption,
    )
    from menu.shared.money import Money

    return CatalogDefinitions.create(
        menu_item_id="latte",
        name="Latte",
        image_url="https://cdn.example.com/latte.png",
        base_price=Money.of("60.00"),
        sizes=[
            SizeOption(id="s", name="Small", abbreviation="S", additional_price=Money.zero()),
            SizeOption(id="m", name="Medium", abbreviation="M", additional_price=Money.zero(), is_default=True),
            SizeOption(id="l", name="Large", abbreviation="L", additional_price=Money.of("15.00")),
        ],
        ingredients=[
            IngredientDefinition(
                id="espresso",
                name="Espresso shot",
                unit="shot",
                default_amount=1,
                is_customizable=True,
                min_amount=1,
                max_amount=4,
                free_amount=1,
                price_per_unit=Money.of("12.00"),
            ),
            IngredientDefinition(
                id="sugar",
                name="Sugar",
                unit="g",
                default_amount=0,
                is_customizable=True,
                min_amount=0,
                max_amount=20,
                free_amount=10,
                price_per_unit=Money.of("0.50"),
            ),
            IngredientDefinition(id="milk", name="Milk", unit="ml", default_amount=200),
        ],
        option_groups=[
            OptionGroupDefinition.create(
                id="milk-type",
                name="Milk",
                required=True,
                choices=[
                    ChoiceDefinition(id="whole", name="Whole milk"),
                    ChoiceDefinition(
                        id="oat",
                        name="Oat milk",
                        base_price=Money.of("8.00"),
                        allows_quantity=True,
                        min_quantity=1,
                        max_quantity=3,
                        default_quantity=1,
                        price_per_additional_unit=Money.of("5.00"),
                    ),
                ],
            ),
            OptionGroupDefinition.create(
                id="syrup",
                name="Syrup",
                allows_multiple_choices=True,
                choices=[
                    ChoiceDefinition(id="vanilla", name="Vanilla", base_price=Money.of("10.00")),
                    ChoiceDefinition(
                        id="caramel",
                        name="Caramel",
                        base_price=Money.of("10.00"),
                        allows_quantity=True,
                        min_quantity=1,
                        max_quantity=3,
                        default_quantity=1,
                        price_per_additional_unit=Money.of("4.00"),
                    ),
                ],
            ),
        ],
    )


@pytest.fixture
def croissant():
    """A single-size item without customization."""
    from menu.item.definitions import CatalogDefinitions
    from menu.shared.money import Money

    return CatalogDefinitions.create(menu_item_id="croissant", name="Croissant", base_price=Money.of("45.00"))


@pytest.fixture
def oat_latte():
    """Selection for a latte with oat milk."""
    from ordering.customization.selection import CustomizationSelection

    return CustomizationSelection.create(options={"milk-type": {"oat": 1}})
