"""
Shop handlers.

CRUD over the ``shop`` table. Query and path parameters arrive as strings
and are validated through :class:`~shopkeep.store.models.Shop`; a value
that does not fit its field raises :class:`ConstraintViolationError`.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from shopkeep.core.context import Context
from shopkeep.core.errors import ConstraintViolationError
from shopkeep.core.settings import DeletePolicy, get_settings
from shopkeep.store.models import Shop
from shopkeep.store.shop import ShopStore


def _shop_store(ctx: Context, **kwargs: Any) -> ShopStore:
    return ShopStore.from_context(ctx, **kwargs)


def _validate(data: dict[str, Any]) -> Shop:
    try:
        return Shop.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first["loc"] else None
        raise ConstraintViolationError(
            f"Invalid shop: {first['msg']}",
            field=field,
            value=first.get("input"),
            cause=e,
        ) from e


# ------------------------------------------------------------------ #
# Shops
# ------------------------------------------------------------------ #


def get_shops(ctx: Context) -> list[Shop]:
    """List shops matching the non-empty query parameters.

    ``?name=Pramod`` filters on name; no parameters lists every shop.
    """
    with ctx.log_scope():
        example = _validate({c: v for c in Shop.columns() if (v := ctx.param(c))})
        return _shop_store(ctx).get(example)


def create_shop(ctx: Context) -> list[Shop]:
    """Create the shop carried in the request body."""
    with ctx.log_scope():
        shop = ctx.bind(Shop)
        created = _shop_store(ctx).create(shop)
        ctx.logger.info("shop_created", id=shop.id)
        return created


def update_shop(ctx: Context) -> list[Shop]:
    """Merge the request body into the shop whose id is in the path."""
    with ctx.log_scope():
        body = ctx.bind(Shop)
        patch = _validate({**body.constraints(), "id": ctx.path_param("id")})
        updated = _shop_store(ctx).update(patch)
        ctx.logger.info("shop_updated", id=patch.id, fields=sorted(patch.constraints()))
        return updated


def delete_shop(ctx: Context, delete_policy: DeletePolicy | None = None) -> None:
    """Delete the shop whose id is in the path.

    *delete_policy* defaults to ``ShopkeepSettings.delete_policy``
    (``SHOPKEEP_DELETE_POLICY``).
    """
    if delete_policy is None:
        delete_policy = get_settings().delete_policy
    with ctx.log_scope():
        id = ctx.path_param("id")
        _shop_store(ctx, delete_policy=delete_policy).delete(id)
        ctx.logger.info("shop_deleted", id=id)


__all__ = ["get_shops", "create_shop", "update_shop", "delete_shop"]
