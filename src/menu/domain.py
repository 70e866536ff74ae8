"""Menu bounded context: menu items and the customization surface they offer.

The menu service owns these definitions; the ordering context reads them to
validate and price a customer's selection.
"""

import structlog
from protean.domain import Domain

menu = Domain(name="menu")

logger = structlog.get_logger(__name__)
