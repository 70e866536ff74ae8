"""Error taxonomy shared by the Menu and Ordering contexts.

Every error is recoverable. Validation errors are protean ``ValidationError``
instances carrying a ``messages`` mapping of field name to a list of
messages, the same shape the API layer renders for user-facing feedback.
"""

from protean.exceptions import ValidationError


class ShopError(Exception):
    """Base class for domain errors that are not validation failures."""


class UnknownReferenceError(ValidationError):
    """A size, ingredient, option group, choice or menu item id does not exist."""

    def __init__(self, field: str, reference: str):
        self.reference = reference
        super().__init__({field: [f"Unknown reference: {reference}"]})


class OutOfBoundsError(ValidationError):
    """An amount or quantity falls outside the range its definition allows."""


class RequiredOptionMissingError(ValidationError):
    """A required option group has no selected choice."""

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__({f"options.{group_id}": ["At least one choice must be selected"]})


class CartLineNotFoundError(ValidationError):
    """A cart line id or position does not exist in the cart."""


class CurrencyMismatchError(ShopError):
    """Money amounts in different currencies were combined."""


class CoffeeShopConflictError(ShopError):
    """A line from another coffee shop was added to a non-empty cart.

    The caller decides whether to clear the cart and retry or cancel the add.
    """

    def __init__(self, current_shop_id: str, attempted_shop_id: str):
        self.current_shop_id = current_shop_id
        self.attempted_shop_id = attempted_shop_id
        super().__init__(
            f"Cart holds items from coffee shop {current_shop_id}; cannot add an item from {attempted_shop_id}"
        )


class PersistenceError(ShopError):
    """The cart store failed to load or save the cart."""
