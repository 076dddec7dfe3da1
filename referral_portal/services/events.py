from __future__ import annotations

from typing import Iterable

from referral_portal.models.referral import Referral
from referral_portal.services.event_bus import event_bus

REFERRALS_TABLE = "referrals"


async def notify_referral_change(referral: Referral, *, action: str) -> None:
    """Publish an insert/update notification for one referral. Call after commit."""
    await event_bus.publish(
        {
            "table": REFERRALS_TABLE,
            "action": action,
            "referral_id": referral.id,
            "referrer_id": referral.referrer_id,
        }
    )


async def notify_referrals_created(referrals: Iterable[Referral]) -> None:
    for referral in referrals:
        await notify_referral_change(referral, action="insert")
