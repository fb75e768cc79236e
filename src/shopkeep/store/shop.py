"""Shop store: query-by-example access to the ``shop`` table."""

from __future__ import annotations

from shopkeep.store.models import Shop
from shopkeep.store.repository import ExampleRepository


class ShopStore(ExampleRepository[Shop]):
    """Store for :class:`Shop` rows.

    Example::

        store = ShopStore(session)
        store.get(Shop(name="Pramod"))
        store.update(Shop(id=2, location="Gaya", state="Bihar"))
        store.delete("3")
    """

    model = Shop


__all__ = ["ShopStore"]
