"""Composition root for the ordering context.

Wires settings, logging, the protean domains, the catalog, the cart store and
the cart service. The client app calls ``create_cart_service()`` once at
startup and passes the service to whatever needs the cart; menu definitions
shipped with the app are read with ``create_catalog()`` in the same currency.
"""

from functools import cache

import structlog

from menu.catalog import InMemoryCatalog, load_catalog
from menu.domain import menu
from ordering.cart.management import CartService
from ordering.cart.persistence import CartStore, JsonFileCartStore
from ordering.config import OrderingSettings
from ordering.domain import ordering
from ordering.utils.logging import add_context, configure_logging

logger = structlog.get_logger(__name__)


@cache
def init_domains() -> None:
    """Register the elements of both bounded contexts, once per process."""
    menu.init()
    ordering.init()


def create_catalog(settings: OrderingSettings | None = None) -> InMemoryCatalog:
    """Load the bundled menu definitions, pricing them in the configured currency."""
    settings = settings or OrderingSettings.from_env()
    init_domains()
    with menu.domain_context():
        return load_catalog(settings.catalog_path, currency=settings.currency)


def create_cart_service(
    settings: OrderingSettings | None = None,
    store: CartStore | None = None,
    setup_logging: bool = True,
) -> CartService:
    settings = settings or OrderingSettings.from_env()
    if setup_logging:
        configure_logging(environment=settings.environment, level=settings.log_level, log_dir=settings.log_dir)
        add_context(environment=settings.environment)

    init_domains()
    store = store or JsonFileCartStore(settings.cart_path)
    service = CartService(store, currency=settings.currency)
    logger.info(
        "Cart service started",
        environment=settings.environment,
        currency=settings.currency,
        store=type(store).__name__,
        item_count=service.item_count(),
    )
    return service
