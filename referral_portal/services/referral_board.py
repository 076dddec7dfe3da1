"""
Live view of the referrals one actor can see.

The board keeps the last fetched rows, the filtered subset and the summary
counts. Refreshes are numbered; a fetch that finishes after a newer one has
started is thrown away, so a slow response never overwrites a fresher one.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.core.roles import sees_all_referrals
from referral_portal.models.job import Job
from referral_portal.schemas.dashboard import BoardSnapshot, ReferralSummaryOut
from referral_portal.schemas.referral import ReferralListItem
from referral_portal.schemas.user import ActorContext
from referral_portal.services.event_bus import EventBus, Subscription, event_bus
from referral_portal.services.jobs import list_active_jobs
from referral_portal.services.referral_filters import ALL, filter_referrals, summarize
from referral_portal.services.referrals import list_referrals_for_actor, referral_list_item

logger = logging.getLogger("referrals.board")

SessionFactory = Callable[[], AsyncSession]


class ReferralBoard:
    def __init__(
        self,
        session_factory: SessionFactory,
        actor: ActorContext,
        *,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._session_factory = session_factory
        self.actor = actor
        self._bus = bus or event_bus
        self.include_referrer = sees_all_referrals(actor.role)

        self.search_term: str = ""
        self.status_filter: str = ALL
        self.job_filter: str = ALL

        self._generation = 0
        self._applied_generation = 0
        self._items: list[ReferralListItem] = []
        self._visible: list[ReferralListItem] = []
        self._summary = summarize([], [])

    @property
    def generation(self) -> int:
        return self._applied_generation

    @property
    def referrals(self) -> list[ReferralListItem]:
        return list(self._visible)

    @property
    def summary(self) -> ReferralSummaryOut:
        return self._summary

    async def _load(self) -> tuple[list[ReferralListItem], list[Job]]:
        async with self._session_factory() as session:
            referrals = await list_referrals_for_actor(session, self.actor)
            jobs = await list_active_jobs(session)
            items = [referral_list_item(r, include_referrer=self.include_referrer) for r in referrals]
        return items, jobs

    async def refresh(self) -> Optional[BoardSnapshot]:
        """Re-fetch and recompute. Returns None when a newer refresh superseded this one."""
        self._generation += 1
        generation = self._generation
        items, jobs = await self._load()
        if generation != self._generation:
            logger.debug("board_refresh_superseded", extra={"generation": generation, "latest": self._generation})
            return None

        self._items = items
        self._visible = self._apply_filters(items)
        self._summary = summarize(items, jobs)
        self._applied_generation = generation
        return self.snapshot()

    def _apply_filters(self, items: list[ReferralListItem]) -> list[ReferralListItem]:
        return filter_referrals(
            items,
            self.search_term,
            self.status_filter,
            self.job_filter,
            include_referrer=self.include_referrer,
        )

    async def set_filters(
        self,
        *,
        search_term: Optional[str] = None,
        status_filter: Optional[str] = None,
        job_filter: Optional[str] = None,
    ) -> Optional[BoardSnapshot]:
        if search_term is not None:
            self.search_term = search_term
        if status_filter is not None:
            self.status_filter = status_filter or ALL
        if job_filter is not None:
            self.job_filter = job_filter or ALL
        return await self.refresh()

    def snapshot(self) -> BoardSnapshot:
        return BoardSnapshot(
            generation=self._applied_generation,
            referrals=list(self._visible),
            summary=self._summary,
        )

    @asynccontextmanager
    async def watch(self) -> AsyncIterator["BoardWatch"]:
        """Hold a change-feed subscription for as long as the block runs."""
        referrer_id = None if self.include_referrer else self.actor.actor_id
        async with self._bus.subscription(referrer_id=referrer_id) as subscription:
            logger.info("board_watch_started", extra={"actor_id": self.actor.actor_id})
            try:
                yield BoardWatch(self, subscription)
            finally:
                logger.info("board_watch_stopped", extra={"actor_id": self.actor.actor_id})


class BoardWatch:
    def __init__(self, board: ReferralBoard, subscription: Subscription) -> None:
        self.board = board
        self.subscription = subscription

    def _drain(self) -> int:
        drained = 0
        while True:
            try:
                self.subscription.queue.get_nowait()
            except asyncio.QueueEmpty:
                return drained
            drained += 1

    async def next_change(self, timeout: Optional[float] = None) -> Optional[BoardSnapshot]:
        """Wait for a notification and refresh. Returns None on timeout or a superseded refresh."""
        try:
            await self.subscription.get(timeout=timeout)
        except asyncio.TimeoutError:
            return None
        # Several queued notifications collapse into one refresh.
        self._drain()
        return await self.board.refresh()
