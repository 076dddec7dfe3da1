import asyncio

import pytest

from referral_portal.services.event_bus import EventBus, Subscription


@pytest.fixture()
def bus():
    return EventBus(redis_url="", channel="test:referrals")


async def test_local_publish_reaches_subscribers(bus):
    async with bus.subscription() as subscription:
        await bus.publish({"table": "referrals", "action": "insert", "referral_id": "r1", "referrer_id": "e1"})
        payload = await subscription.get(timeout=1)
    assert payload["referral_id"] == "r1"
    assert bus.subscriber_count == 0


async def test_referrer_scoped_subscription_filters(bus):
    async with bus.subscription(referrer_id="e1") as mine, bus.subscription() as everything:
        await bus.publish({"table": "referrals", "action": "update", "referral_id": "r2", "referrer_id": "e2"})
        await bus.publish({"table": "referrals", "action": "update", "referral_id": "r1", "referrer_id": "e1"})

        assert (await mine.get(timeout=1))["referral_id"] == "r1"
        assert mine.queue.empty()
        assert [(await everything.get(timeout=1))["referral_id"] for _ in range(2)] == ["r2", "r1"]


async def test_get_times_out(bus):
    async with bus.subscription() as subscription:
        with pytest.raises(asyncio.TimeoutError):
            await subscription.get(timeout=0.01)


def test_full_queue_drops_oldest():
    subscription = Subscription(maxsize=2)
    for idx in range(3):
        subscription.offer({"referral_id": f"r{idx}"})
    assert subscription.queue.qsize() == 2
    assert subscription.queue.get_nowait()["referral_id"] == "r1"


async def test_invalid_payload_is_dropped(bus):
    async with bus.subscription() as subscription:
        await bus._broadcast("not json")
        await bus._broadcast("[1, 2]")
        assert subscription.queue.empty()


async def test_close_without_redis_is_a_no_op(bus):
    await bus.close()
