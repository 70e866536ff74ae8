"""Cart aggregate: the customer's pending order for a single coffee shop.

The cart holds an ordered list of lines that all belong to one coffee shop.
Adding a line that is mergeable with an existing one increases that line's
quantity instead of appending a duplicate. The cart is empty exactly when it
has no coffee shop.
"""

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import HasMany, Identifier

from menu.shared.money import Money
from ordering.cart.events import (
    CartCleared,
    CartLineAdded,
    CartLineMerged,
    CartLineQuantityUpdated,
    CartLineRemoved,
)
from ordering.cart.line import CartLine, mergeable
from ordering.customization.pricing import cart_total
from ordering.domain import ordering
from shared.exceptions import CartLineNotFoundError, CoffeeShopConflictError


@ordering.aggregate
class Cart:
    coffee_shop_id: Identifier()
    lines: HasMany(CartLine)

    @invariant.post
    def empty_cart_has_no_coffee_shop(self):
        if not self.lines and self.coffee_shop_id is not None:
            raise ValidationError({"coffee_shop_id": ["An empty cart cannot belong to a coffee shop"]})
        if self.lines and self.coffee_shop_id is None:
            raise ValidationError({"coffee_shop_id": ["A cart with lines must belong to a coffee shop"]})

    @invariant.post
    def lines_must_share_one_coffee_shop(self):
        foreign = {line.coffee_shop_id for line in self.lines} - {self.coffee_shop_id}
        if self.lines and foreign:
            raise ValidationError({"lines": [f"Cart for {self.coffee_shop_id} holds lines from {sorted(foreign)}"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, lines=(), id=None):
        """Build a cart holding copies of ``lines``; the caller's lines stay untouched."""
        copies = [line.clone() for line in lines]
        attributes = {"coffee_shop_id": copies[0].coffee_shop_id if copies else None, "lines": copies}
        if id is not None:
            attributes["id"] = id
        return cls(**attributes)

    def clone(self) -> "Cart":
        """A detached copy with the same identity, for readers and the cart store."""
        return Cart.create(self.lines, id=self.id)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def total(self) -> Money:
        return cart_total(self)

    def can_add_from(self, coffee_shop_id: str) -> bool:
        return self.is_empty or self.coffee_shop_id == coffee_shop_id

    def line(self, line_id: str) -> CartLine:
        found = next((line for line in self.lines if str(line.id) == str(line_id)), None)
        if found is None:
            raise CartLineNotFoundError({"line_id": [f"Line {line_id} not found in cart"]})
        return found

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add(self, line: CartLine) -> CartLine:
        """Add a line, merging it into an equivalent line when there is one.

        Raises CoffeeShopConflictError, leaving the cart unchanged, when the
        line belongs to a different coffee shop than the cart.
        """
        if not self.can_add_from(line.coffee_shop_id):
            raise CoffeeShopConflictError(self.coffee_shop_id, line.coffee_shop_id)

        existing = next((candidate for candidate in self.lines if mergeable(candidate, line)), None)
        if existing is not None:
            existing.quantity += line.quantity
            self.raise_(
                CartLineMerged(
                    cart_id=str(self.id),
                    line_id=str(existing.id),
                    menu_item_id=existing.menu_item_id,
                    added_quantity=line.quantity,
                    new_quantity=existing.quantity,
                )
            )
            return existing

        added = line.clone()
        with atomic_change(self):
            self.coffee_shop_id = line.coffee_shop_id
            self.add_lines(added)

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                coffee_shop_id=added.coffee_shop_id,
                line_id=str(added.id),
                menu_item_id=added.menu_item_id,
                quantity=added.quantity,
            )
        )
        return added

    def update_quantity(self, line_id: str, quantity: int) -> CartLine:
        """Set a line's quantity, clamped to at least 1. Removal is a separate operation."""
        line = self.line(line_id)
        previous_quantity = line.quantity
        line.quantity = max(1, quantity)
        self.raise_(
            CartLineQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line.id),
                previous_quantity=previous_quantity,
                new_quantity=line.quantity,
            )
        )
        return line

    def remove(self, line_id: str) -> CartLine:
        return self._discard(self.line(line_id))

    def remove_at(self, index: int) -> CartLine:
        if not 0 <= index < len(self.lines):
            raise CartLineNotFoundError({"index": [f"No line at position {index}"]})
        return self._discard(self.lines[index])

    def _discard(self, line: CartLine) -> CartLine:
        with atomic_change(self):
            self.remove_lines(line)
            if not self.lines:
                self.coffee_shop_id = None

        self.raise_(CartLineRemoved(cart_id=str(self.id), line_id=str(line.id), menu_item_id=line.menu_item_id))
        return line

    def clear(self) -> None:
        removed = len(self.lines)
        with atomic_change(self):
            for line in list(self.lines):
                self.remove_lines(line)
            self.coffee_shop_id = None

        self.raise_(CartCleared(cart_id=str(self.id), removed_lines=removed))
