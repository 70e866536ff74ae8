"""Domain events for the Cart aggregate.

``CartService`` drains them after every committed mutation and logs them.
"""

from protean.fields import Identifier, Integer

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartLineAdded:
    """A new line was appended to the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    coffee_shop_id = Identifier(required=True)
    line_id = Identifier(required=True)
    menu_item_id = Identifier(required=True)
    quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartLineMerged:
    """An added line matched an existing one and its quantity was folded in."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    menu_item_id = Identifier(required=True)
    added_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartLineQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartLineRemoved:
    """A line was removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    menu_item_id = Identifier(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """All lines were removed and the cart released its coffee shop."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    removed_lines = Integer(required=True)
