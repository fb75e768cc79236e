"""Tests for ShopStore / ExampleRepository on SQLite.

Seeded rows (tests/fixtures/shop.csv):
    {1, Pramod, Gaya, Bihar}
    {2, Shubh, HSR, Karnataka}
"""

import pytest

from shopkeep.core.context import Context
from shopkeep.core.errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    NotFoundError,
    QueryError,
)
from shopkeep.core.settings import DeletePolicy
from shopkeep.store.models import Shop
from shopkeep.store.shop import ShopStore

PRAMOD = Shop(id=1, name="Pramod", location="Gaya", state="Bihar")
SHUBH = Shop(id=2, name="Shubh", location="HSR", state="Karnataka")


class TestGet:
    def test_by_name(self, store):
        assert store.get(Shop(name="Pramod")) == [PRAMOD]

    def test_by_id(self, store):
        assert store.get(Shop(id=2)) == [SHUBH]

    def test_fields_combine_with_and(self, store):
        assert store.get(Shop(name="Pramod", state="Bihar")) == [PRAMOD]
        assert store.get(Shop(name="Pramod", state="Karnataka")) == []

    def test_empty_example_returns_all_in_key_order(self, store):
        assert store.get(Shop()) == [PRAMOD, SHUBH]

    def test_no_match_is_empty_list(self, store):
        assert store.get(Shop(id=9)) == []

    def test_explicit_empty_string_is_a_constraint(self, store):
        assert store.get(Shop(name="")) == []

    def test_explicit_zero_id_is_a_constraint(self, store):
        assert store.get(Shop(id=0)) == []

    def test_closed_session_raises_not_empty(self, store, seeded_session):
        seeded_session.close()
        with pytest.raises(ConnectionFailureError) as exc_info:
            store.get(Shop(name="Pramod"))
        assert exc_info.value.context.operation == "get"
        assert exc_info.value.context.entity == "shop"


class TestCreate:
    def test_returns_stored_row(self, store):
        created = store.create(Shop(id=3, name="Mehul", location="Koramangala", state="Karnataka"))
        assert created == [Shop(id=3, name="Mehul", location="Koramangala", state="Karnataka")]
        assert store.get(Shop(id=3)) == created

    def test_unassigned_fields_take_defaults(self, store):
        assert store.create(Shop(id=4, name="Only")) == [Shop(id=4, name="Only", location="", state="")]

    def test_duplicate_key(self, store):
        with pytest.raises(ConstraintViolationError):
            store.create(Shop(id=1, name="Again"))
        assert store.get(Shop(id=1)) == [PRAMOD]

    def test_key_required(self, store):
        with pytest.raises(ConstraintViolationError) as exc_info:
            store.create(Shop(name="No id"))
        assert exc_info.value.field == "id"


class TestUpdate:
    def test_merges_assigned_fields(self, store):
        updated = store.update(Shop(id=2, location="Gaya", state="Bihar"))
        assert updated == [Shop(id=2, name="Shubh", location="Gaya", state="Bihar")]
        assert store.get(Shop(id=2)) == updated

    def test_other_rows_untouched(self, store):
        store.update(Shop(id=2, name="Shubham"))
        assert store.get(Shop(id=1)) == [PRAMOD]

    def test_explicit_empty_string_overwrites(self, store):
        assert store.update(Shop(id=1, location="")) == [
            Shop(id=1, name="Pramod", location="", state="Bihar")
        ]

    def test_no_changes_returns_stored_row(self, store):
        assert store.update(Shop(id=1)) == [PRAMOD]

    def test_missing_row(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.update(Shop(id=9, name="Ghost"))
        assert exc_info.value.id == "9"
        assert exc_info.value.entity == "shop"

    def test_key_required(self, store):
        with pytest.raises(ConstraintViolationError):
            store.update(Shop(name="Pramod"))


class TestDelete:
    def test_removes_row(self, store):
        store.delete(1)
        assert store.get(Shop()) == [SHUBH]

    def test_string_id_is_coerced(self, store):
        store.delete("2")
        assert store.get(Shop(id=2)) == []

    def test_invalid_id(self, store):
        with pytest.raises(ConstraintViolationError) as exc_info:
            store.delete("abc")
        assert exc_info.value.value == "abc"

    def test_idempotent_policy_ignores_missing_row(self, store):
        assert store.delete_policy == DeletePolicy.IDEMPOTENT
        store.delete(9)
        store.delete(9)

    def test_strict_policy_raises_for_missing_row(self, seeded_session):
        strict = ShopStore(seeded_session, delete_policy=DeletePolicy.STRICT)
        with pytest.raises(NotFoundError) as exc_info:
            strict.delete("9")
        assert exc_info.value.id == "9"

    def test_strict_policy_deletes_existing_row(self, seeded_session):
        strict = ShopStore(seeded_session, delete_policy=DeletePolicy.STRICT)
        strict.delete(1)
        assert strict.get(Shop(id=1)) == []


class TestErrors:
    def test_missing_table_is_query_error(self, session):
        session.execute("DROP TABLE shop")
        with pytest.raises(QueryError) as exc_info:
            ShopStore(session).get(Shop())
        assert exc_info.value.context.operation == "get"

    def test_closed_session_on_write(self, store, seeded_session):
        seeded_session.close()
        with pytest.raises(ConnectionFailureError):
            store.create(Shop(id=5))

    def test_closed_session_on_read(self, store, seeded_session):
        seeded_session.close()
        with pytest.raises(ConnectionFailureError):
            store.get(Shop())

    def test_closed_session_on_update(self, store, seeded_session):
        seeded_session.close()
        with pytest.raises(ConnectionFailureError):
            store.update(Shop(id=1, name="Name_Update"))

    @pytest.mark.parametrize("policy", list(DeletePolicy))
    def test_closed_session_on_delete(self, seeded_session, policy):
        store = ShopStore(seeded_session, delete_policy=policy)
        seeded_session.close()
        with pytest.raises(ConnectionFailureError):
            store.delete("1")


def test_from_context(seeded_session):
    ctx = Context(session=seeded_session)
    store = ShopStore.from_context(ctx, delete_policy=DeletePolicy.STRICT)
    assert store.session is seeded_session
    assert store.delete_policy == DeletePolicy.STRICT
    assert store.get(Shop(name="Pramod")) == [PRAMOD]
