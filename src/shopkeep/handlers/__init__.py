"""Handlers: plain functions taking a :class:`~shopkeep.core.context.Context`.

shop      get / create / update / delete over :class:`~shopkeep.store.ShopStore`
events    producer and consumers over the context's event channel
"""

from shopkeep.handlers.events import ShopEvent, committing_consumer, consumer, producer
from shopkeep.handlers.shop import create_shop, delete_shop, get_shops, update_shop

__all__ = [
    "ShopEvent",
    "committing_consumer",
    "consumer",
    "create_shop",
    "delete_shop",
    "get_shops",
    "producer",
    "update_shop",
]
