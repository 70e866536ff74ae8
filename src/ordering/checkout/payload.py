"""Order request sent to the ordering service at checkout.

The payload shape is an external contract: the ordering service reads
``menuItemId``, ``quantity`` and the ``customization`` block of every item.
Field names are camelCase on the wire and money is rendered as decimal text.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from protean.exceptions import ValidationError
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from ordering.cart.cart import Cart
from ordering.cart.line import CartLine


def _amount_to_wire(amount: Decimal) -> int | float:
    # Ingredient amounts travel as JSON numbers
    return int(amount) if amount == amount.to_integral_value() else float(amount)


WireAmount = Annotated[Decimal, PlainSerializer(_amount_to_wire, when_used="json")]


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class OptionChoicePayload(_Payload):
    choice_id: str
    quantity: int


class OrderItemCustomizationPayload(_Payload):
    selected_size: str | None = None
    size_additional_price: str | None = None  # for server-side audit
    selected_ingredients: dict[str, WireAmount] = Field(default_factory=dict)
    selected_options: dict[str, list[OptionChoicePayload]] = Field(default_factory=dict)


class OrderItemPayload(_Payload):
    menu_item_id: str
    quantity: int
    customization: OrderItemCustomizationPayload


class CreateOrderPayload(_Payload):
    coffee_shop_id: str
    items: list[OrderItemPayload]
    comment: str | None = None
    scheduled_for: str | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def order_item_payload(line: CartLine) -> OrderItemPayload:
    selection = line.selection
    size_price = line.snapshot.size_additional_price
    return OrderItemPayload(
        menu_item_id=line.menu_item_id,
        quantity=line.quantity,
        customization=OrderItemCustomizationPayload(
            selected_size=selection.size_id,
            size_additional_price=str(size_price) if selection.size_id and size_price is not None else None,
            selected_ingredients=dict(selection.ingredients),
            selected_options={
                group_id: [
                    OptionChoicePayload(choice_id=choice_id, quantity=quantity)
                    for choice_id, quantity in choices.items()
                ]
                for group_id, choices in selection.options.items()
            },
        ),
    )


def build_order_payload(
    cart: Cart,
    comment: str | None = None,
    scheduled_for: datetime | None = None,
) -> CreateOrderPayload:
    """Turn the cart into the order request; an empty cart cannot be checked out."""
    if cart.is_empty:
        raise ValidationError({"cart": ["Cannot check out an empty cart"]})

    return CreateOrderPayload(
        coffee_shop_id=cart.coffee_shop_id,
        items=[order_item_payload(line) for line in cart.lines],
        comment=comment,
        scheduled_for=scheduled_for.isoformat() if scheduled_for else None,
    )
