"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from menu.item.definitions import CatalogDefinitions, SizeOption
from menu.shared.money import Money
from ordering.cart.cart import Cart
from ordering.cart.events import (
    CartCleared,
    CartLineAdded,
    CartLineMerged,
    CartLineQuantityUpdated,
    CartLineRemoved,
)
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

_CART_EVENT_CLASSES = {
    "CartLineAdded": CartLineAdded,
    "CartLineMerged": CartLineMerged,
    "CartLineQuantityUpdated": CartLineQuantityUpdated,
    "CartLineRemoved": CartLineRemoved,
    "CartCleared": CartCleared,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def americano():
    """A menu item with sizes and nothing else to customize."""
    return CatalogDefinitions.create(
        menu_item_id="americano",
        name="Americano",
        base_price=Money.of("45.00"),
        sizes=[
            SizeOption(id="s", name="Small", abbreviation="S", additional_price=Money.zero()),
            SizeOption(id="m", name="Medium", abbreviation="M", additional_price=Money.zero(), is_default=True),
            SizeOption(id="l", name="Large", abbreviation="L", additional_price=Money.of("10.00")),
        ],
    )


@pytest.fixture()
def error():
    """Container for the error a rejected cart action raised."""
    return {"exc": None}


@pytest.fixture()
def before():
    """The cart as it was right before the action under test."""
    return {"state": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an empty cart", target_fixture="cart")
def empty_cart():
    return Cart()


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart has {count:d} line"))
def cart_has_n_lines_singular(cart, count):
    assert len(cart.lines) == count


@then(parsers.cfparse("the cart has {count:d} lines"))
def cart_has_n_lines(cart, count):
    assert len(cart.lines) == count


@then(parsers.cfparse('the cart belongs to "{coffee_shop_id}"'))
def cart_belongs_to(cart, coffee_shop_id):
    assert cart.coffee_shop_id == coffee_shop_id


@then("the cart action fails with a validation error")
def cart_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then("the cart is unchanged")
def cart_is_unchanged(cart, before):
    assert cart.to_dict() == before["state"]
    assert cart._events == []


@then(parsers.cfparse("a {event_type} cart event is raised"))
def cart_event_raised(cart, event_type):
    event_cls = _CART_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in cart._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in cart._events]}"
