"""Cart management: the single owner of the process-wide cart.

``CartService`` serializes every mutation behind one lock, so readers only
ever see committed cart states. Each call runs inside the ordering domain's
context, whichever thread it comes from. After each mutation the service
hands a copy of the cart to a single background worker that writes it to the
``CartStore``; the caller does not wait for the write. A failed write is
logged and the in-memory cart is kept as is.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor

import structlog

from menu.item.definitions import CatalogDefinitions
from menu.shared.money import DEFAULT_CURRENCY, Money
from ordering.cart.cart import Cart
from ordering.cart.line import CartLine, build_line
from ordering.cart.persistence import CartStore
from ordering.customization.pricing import cart_total
from ordering.customization.selection import CustomizationSelection
from ordering.domain import ordering
from shared.exceptions import PersistenceError

logger = structlog.get_logger(__name__)


class CartService:
    def __init__(self, store: CartStore, currency: str = DEFAULT_CURRENCY):
        self._store = store
        self._currency = currency
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cart-store")
        self._last_save: Future | None = None
        self._closed = False
        with ordering.domain_context():
            self._cart = self._load()

    def _load(self) -> Cart:
        try:
            cart = self._store.load()
        except PersistenceError as exc:
            logger.warning("Could not load stored cart, starting empty", error=str(exc))
            return Cart()
        return cart if cart is not None else Cart()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def cart(self) -> Cart:
        """A copy of the current committed cart."""
        with self._lock, ordering.domain_context():
            return self._cart.clone()

    def total(self) -> Money:
        with self._lock:
            return cart_total(self._cart, self._currency)

    def item_count(self) -> int:
        with self._lock:
            return self._cart.item_count

    def can_add_from(self, coffee_shop_id: str) -> bool:
        with self._lock:
            return self._cart.can_add_from(coffee_shop_id)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add(self, line: CartLine) -> CartLine:
        """Add a priced line; raises CoffeeShopConflictError for another shop's line."""
        return self._mutate(lambda cart: cart.add(line))

    def add_selection(
        self,
        catalog: CatalogDefinitions,
        selection: CustomizationSelection,
        coffee_shop_id: str,
        quantity: int = 1,
    ) -> CartLine:
        """Validate, price and add a selection in one step.

        Validation happens before the cart is locked, so a rejected selection
        never touches the cart.
        """
        with ordering.domain_context():
            line = build_line(catalog, selection, coffee_shop_id, quantity)
        return self.add(line)

    def replace_and_add(self, line: CartLine) -> CartLine:
        """Empty the cart and add ``line``: the caller's answer to a coffee shop conflict."""

        def replace(cart: Cart) -> CartLine:
            cart.clear()
            return cart.add(line)

        return self._mutate(replace)

    def update_quantity(self, line_id: str, quantity: int) -> CartLine:
        return self._mutate(lambda cart: cart.update_quantity(line_id, quantity))

    def remove(self, line_id: str) -> CartLine:
        return self._mutate(lambda cart: cart.remove(line_id))

    def remove_at(self, index: int) -> CartLine:
        return self._mutate(lambda cart: cart.remove_at(index))

    def clear(self) -> None:
        self._mutate(lambda cart: cart.clear())

    def _mutate(self, operation):
        with self._lock, ordering.domain_context():
            if self._closed:
                raise RuntimeError("Cart service is closed; the cart can no longer change")

            try:
                result = operation(self._cart)
                events = list(self._cart._events)
            finally:
                self._cart._events.clear()

            self._schedule_save(self._cart.clone())
            if isinstance(result, CartLine):
                result = result.clone()

        for event in events:
            payload = {k: v for k, v in event.to_dict().items() if not k.startswith("_")}
            logger.info("Cart changed", cart_event=type(event).__name__, version=event.__version__, **payload)
        return result

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def _schedule_save(self, snapshot: Cart) -> None:
        self._last_save = self._executor.submit(self._save, snapshot)

    def _save(self, snapshot: Cart) -> None:
        try:
            with ordering.domain_context():
                self._store.save(snapshot)
        except PersistenceError as exc:
            logger.warning(
                "Could not save cart, keeping in-memory state",
                error=str(exc),
                lines=len(snapshot.lines),
            )

    def flush(self, timeout: float | None = None) -> None:
        """Block until every scheduled save has finished."""
        with self._lock:
            pending = self._last_save
        if pending is not None:
            pending.result(timeout=timeout)

    def close(self) -> None:
        """Finish pending saves and stop accepting changes."""
        with self._lock:
            self._closed = True
        self.flush()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "CartService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
