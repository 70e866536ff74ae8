"""Cart stores keep the process-wide cart across restarts.

A store loads the cart once at startup and saves it after every mutation.
The cart lives on the device as one JSON document, written from the
aggregate's ``to_dict()``. Failures are reported as PersistenceError; the
cart keeps working in memory.
"""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

import structlog
from protean.exceptions import ValidationError

from menu.shared.money import Money
from ordering.cart.cart import Cart
from ordering.cart.line import CartLine, LineSnapshot
from ordering.customization.selection import CustomizationSelection
from shared.exceptions import PersistenceError

logger = structlog.get_logger(__name__)


def serialize_cart(cart: Cart) -> str:
    return json.dumps(cart.to_dict(), default=str)


def _money(data) -> Money | None:
    return Money(amount=data["amount"], currency=data["currency"]) if data else None


def _line(data: dict) -> CartLine:
    selection = data["selection"]
    snapshot = data["snapshot"]
    return CartLine(
        id=data["id"],
        menu_item_id=data["menu_item_id"],
        coffee_shop_id=data["coffee_shop_id"],
        quantity=data["quantity"],
        unit_price=_money(data["unit_price"]),
        selection=CustomizationSelection(
            size_id=selection.get("size_id"),
            ingredient_amounts=selection.get("ingredient_amounts") or "{}",
            choice_quantities=selection.get("choice_quantities") or "{}",
        ),
        snapshot=LineSnapshot(
            name=snapshot["name"],
            image_url=snapshot.get("image_url"),
            size_name=snapshot.get("size_name"),
            size_abbreviation=snapshot.get("size_abbreviation"),
            size_additional_price=_money(snapshot.get("size_additional_price")),
            details=snapshot.get("details") or "[]",
        ),
    )


def deserialize_cart(payload: str | bytes) -> Cart:
    try:
        document = json.loads(payload)
        return Cart(
            id=document["id"],
            coffee_shop_id=document.get("coffee_shop_id"),
            lines=[_line(line) for line in document.get("lines") or []],
        )
    except (ValueError, KeyError, TypeError, AttributeError, ValidationError) as exc:
        # ValueError covers malformed JSON and bytes that are not UTF-8
        raise PersistenceError(f"Stored cart is corrupt: {exc}") from exc


class CartStore(ABC):
    """Port to wherever the device keeps its cart."""

    @abstractmethod
    def load(self) -> Cart | None:
        """Return the stored cart, or None when nothing has been stored yet."""

    @abstractmethod
    def save(self, cart: Cart) -> None:
        """Replace the stored cart."""


class InMemoryCartStore(CartStore):
    """Keeps the serialized cart in memory. Used in tests and previews."""

    def __init__(self, payload: str | bytes | None = None):
        self._payload = payload
        self._lock = threading.Lock()
        self.saves = 0

    def load(self) -> Cart | None:
        with self._lock:
            payload = self._payload
        return deserialize_cart(payload) if payload is not None else None

    def save(self, cart: Cart) -> None:
        payload = serialize_cart(cart)
        with self._lock:
            self._payload = payload
            self.saves += 1


class JsonFileCartStore(CartStore):
    """Stores the cart as a JSON document on the local file system.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write never leaves a truncated cart behind.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Cart | None:
        try:
            payload = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug("No stored cart found", path=str(self.path))
            return None
        except OSError as exc:
            raise PersistenceError(f"Cannot read cart from {self.path}: {exc}") from exc

        cart = deserialize_cart(payload)
        logger.info("Cart loaded", path=str(self.path), lines=len(cart.lines), item_count=cart.item_count)
        return cart

    def save(self, cart: Cart) -> None:
        payload = serialize_cart(cart)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Cannot write cart to {self.path}: {exc}") from exc

        logger.debug("Cart saved", path=str(self.path), lines=len(cart.lines))
