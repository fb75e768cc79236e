"""
Event handlers.

``producer`` publishes a :class:`ShopEvent` keyed by the path id so that
every event for one shop lands on the same partition. ``consumer`` takes
the next event and acknowledges it on receipt; ``committing_consumer``
acknowledges only events it could decode.
"""

from __future__ import annotations

from pydantic import BaseModel

from shopkeep.channel import Message, PublishOptions
from shopkeep.core.context import Context
from shopkeep.core.errors import DeserializationError

SHOP_EVENTS_TOPIC = "shop-events"


class ShopEvent(BaseModel):
    """Payload published for a shop."""

    id: str
    name: str = ""
    action: str = "published"


async def producer(ctx: Context, topic: str = SHOP_EVENTS_TOPIC) -> None:
    """Publish an event for the shop id in the path.

    Raises:
        NotFoundError: the channel does not know *topic*.
    """
    id = ctx.path_param("id")
    async with ctx.log_scope():
        await ctx.channel.publish_event_with_options(
            topic,
            ShopEvent(id=id),
            {"request_id": ctx.request_id},
            PublishOptions(partition_key=id),
        )
        ctx.logger.info("event_published", topic=topic, id=id)


async def consumer(ctx: Context) -> ShopEvent:
    """Receive the next event (auto-committed) and decode it."""
    async with ctx.log_scope():
        message = await ctx.channel.subscribe()
        event = ctx.channel.bind(message.value, ShopEvent)
        ctx.logger.info("event_consumed", topic=message.topic, id=event.id, offset=message.offset)
    return event


async def committing_consumer(ctx: Context) -> ShopEvent:
    """Receive events until one decodes; commit only that one.

    Undecodable events are skipped without committing, so another member
    of the consumer group may still pick them up after a rebalance.
    """
    decoded: list[ShopEvent] = []

    def commit_fn(message: Message) -> tuple[bool, bool]:
        try:
            decoded.append(ctx.channel.bind(message.value, ShopEvent))
        except DeserializationError as e:
            ctx.logger.warning("event_skipped", topic=message.topic, offset=message.offset, error=str(e))
            return False, True
        return True, False

    async with ctx.log_scope():
        message = await ctx.channel.subscribe_with_commit(commit_fn)
        ctx.logger.info("event_consumed", topic=message.topic, id=decoded[-1].id, offset=message.offset)
    return decoded[-1]


__all__ = ["ShopEvent", "SHOP_EVENTS_TOPIC", "producer", "consumer", "committing_consumer"]
