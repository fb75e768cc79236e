"""Record store: query-by-example reads and merge updates over one table per entity.

Modules
-------
models       Record base model + Shop
repository   ExampleRepository -- get / create / update / delete
shop         ShopStore
sessions     SQLiteSession, CassandraSession (Session protocol)
seeder       CSV fixture loader
"""

from shopkeep.store.models import Record, Shop
from shopkeep.store.repository import ExampleRepository
from shopkeep.store.seeder import Seeder
from shopkeep.store.sessions import CassandraSession, SQLiteSession
from shopkeep.store.shop import ShopStore

__all__ = [
    "Record",
    "Shop",
    "ExampleRepository",
    "ShopStore",
    "Seeder",
    "SQLiteSession",
    "CassandraSession",
]
