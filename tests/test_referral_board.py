import asyncio

import pytest

from conftest import referral_payload
from referral_portal.services.event_bus import EventBus
from referral_portal.services.identity import actor_context
from referral_portal.services.referral_board import ReferralBoard
from referral_portal.services.referrals import create_referrals
from referral_portal.services.status_history import transition_referral


@pytest.fixture()
async def seeded(db_session, make_job, make_employee, employee_actor):
    eng = await make_job("ENG-101", "Backend Engineer")
    des = await make_job("DES-201", "Product Designer", department="Design")
    other = actor_context(await make_employee("EMP002", "Alex Chen"))
    await create_referrals(db_session, payload=referral_payload([eng.id, des.id]), actor=employee_actor)
    await create_referrals(
        db_session,
        payload=referral_payload([eng.id], candidate_first_name="Sam", candidate_email="sam@example.com"),
        actor=other,
    )
    return {"eng": eng, "des": des, "other": other}


async def test_refresh_scopes_to_actor(session_factory, seeded, employee_actor, hr_actor):
    employee_board = ReferralBoard(session_factory, employee_actor, bus=EventBus(redis_url=""))
    snapshot = await employee_board.refresh()
    assert snapshot.generation == 1
    assert len(snapshot.referrals) == 2
    assert all(item.referrer is None for item in snapshot.referrals)

    hr_board = ReferralBoard(session_factory, hr_actor, bus=EventBus(redis_url=""))
    snapshot = await hr_board.refresh()
    assert snapshot.summary.total_referrals == 3
    assert snapshot.summary.active_jobs == 2
    assert {item.referrer.name for item in snapshot.referrals} == {"Priya Sharma", "Alex Chen"}


async def test_set_filters_recomputes(session_factory, seeded, hr_actor):
    board = ReferralBoard(session_factory, hr_actor, bus=EventBus(redis_url=""))
    await board.refresh()

    snapshot = await board.set_filters(search_term="sam")
    assert [item.candidate_first_name for item in snapshot.referrals] == ["Sam"]

    snapshot = await board.set_filters(search_term="", job_filter=seeded["des"].id)
    assert [item.job.job_code for item in snapshot.referrals] == ["DES-201"]
    # Counts always cover the whole scoped list.
    assert snapshot.summary.total_referrals == 3


async def test_superseded_refresh_is_discarded(session_factory, seeded, hr_actor):
    release_first = asyncio.Event()
    calls = 0

    class SlowFirstBoard(ReferralBoard):
        async def _load(self):
            nonlocal calls
            calls += 1
            if calls == 1:
                await release_first.wait()
                return [], []
            return await super()._load()

    board = SlowFirstBoard(session_factory, hr_actor, bus=EventBus(redis_url=""))
    slow = asyncio.create_task(board.refresh())
    await asyncio.sleep(0)
    fresh = await board.refresh()
    release_first.set()

    assert await slow is None
    assert fresh.generation == 2
    assert board.generation == 2
    assert len(board.referrals) == 3


async def test_watch_refreshes_on_change(db_session, session_factory, seeded, hr_actor):
    bus = EventBus(redis_url="")
    board = ReferralBoard(session_factory, hr_actor, bus=bus)
    await board.refresh()
    referral_id = board.referrals[0].id

    async with board.watch() as watch:
        assert bus.subscriber_count == 1
        assert await watch.next_change(timeout=0.01) is None

        await transition_referral(db_session, referral_id=referral_id, proposed="screening", note=None, actor=hr_actor)
        await bus.publish({"table": "referrals", "action": "update", "referral_id": referral_id, "referrer_id": "x"})
        await bus.publish({"table": "referrals", "action": "update", "referral_id": referral_id, "referrer_id": "x"})

        snapshot = await watch.next_change(timeout=1)
        assert watch.subscription.queue.empty()

    assert bus.subscriber_count == 0
    assert snapshot.summary.in_progress == 1
    assert next(item for item in snapshot.referrals if item.id == referral_id).current_status == "screening"


async def test_employee_watch_ignores_other_referrers(session_factory, seeded, employee_actor):
    bus = EventBus(redis_url="")
    board = ReferralBoard(session_factory, employee_actor, bus=bus)
    async with board.watch() as watch:
        await bus.publish({"table": "referrals", "action": "update", "referral_id": "r9", "referrer_id": "someone"})
        assert await watch.next_change(timeout=0.01) is None
