"""Ordering bounded context: item customization, pricing, the cart and checkout.

The cart is a standard aggregate kept on the device and persisted through a
cart store; it converts to an order request at checkout.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
