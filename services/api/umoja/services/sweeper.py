"""Periodic price alert sweep.

Each run takes a bounded batch of active alerts that are out of cooldown,
least recently evaluated first, compares each against the trailing average
price for its crop/county and fires the ones that match through the same
claim-then-notify path as order completion.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
import logging

import redis
from sqlalchemy import select, update

from umoja.models import PriceAlert
from umoja.services.alerts import cooldown_clause, fire_alert, should_fire, trailing_average_message
from umoja.services.clock import utcnow
from umoja.services.prices import trailing_average
from umoja.services.sms_client import NotificationGateway, get_sms_gateway
from umoja.settings import get_settings
from umoja.stores.postgres import get_session
from umoja.stores.redis import acquire_lock, release_lock

logger = logging.getLogger("uvicorn.error")

SWEEP_LOCK_KEY = "price-alert-sweep"


@dataclass
class SweepStats:
    checked: int = 0
    triggered: int = 0
    no_price_data: int = 0
    skipped_locked: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class AlertSweeper:
    """Proactive alert evaluation against trailing-window prices."""

    def __init__(
        self,
        gateway: NotificationGateway | None = None,
        batch_size: int | None = None,
        window_days: int | None = None,
    ):
        settings = get_settings()
        self.gateway = gateway or get_sms_gateway()
        self.batch_size = batch_size or settings.sweep_batch_size
        self.window = timedelta(days=window_days or settings.sweep_window_days)
        self.lock_ttl = settings.sweep_lock_ttl_seconds

    async def run(self, now: datetime | None = None) -> SweepStats:
        """Run one sweep, skipping it if another sweep holds the lock."""
        now = now or utcnow()

        locked = await self._acquire_lock()
        if locked is False:
            logger.info("[sweep] another sweep is running, skipping")
            return SweepStats(skipped_locked=True)

        try:
            stats = await self._sweep(now)
        finally:
            if locked:
                await self._release_lock()

        logger.info(
            f"[sweep] complete checked={stats.checked} triggered={stats.triggered} "
            f"no_price_data={stats.no_price_data}"
        )
        return stats

    async def _sweep(self, now: datetime) -> SweepStats:
        stats = SweepStats()
        since = now - self.window
        averages: dict[tuple[str, str], float | None] = {}

        async with get_session() as session:
            result = await session.execute(
                select(PriceAlert)
                .where(PriceAlert.is_active.is_(True))
                .where(cooldown_clause(now))
                .order_by(PriceAlert.last_checked_at.asc().nulls_first(), PriceAlert.id)
                .limit(self.batch_size)
            )
            alerts = list(result.scalars().all())

            for alert in alerts:
                key = (alert.crop_name, alert.county)
                if key not in averages:
                    averages[key] = await trailing_average(
                        session, crop_name=alert.crop_name, county=alert.county, since=since
                    )

            if alerts:
                await session.execute(
                    update(PriceAlert)
                    .where(PriceAlert.id.in_([a.id for a in alerts]))
                    .values(last_checked_at=now)
                    .execution_options(synchronize_session=False)
                )

        for alert in alerts:
            stats.checked += 1
            average = averages[(alert.crop_name, alert.county)]
            if average is None:
                stats.no_price_data += 1
                continue
            if not should_fire(alert, average, now):
                continue
            fired = await fire_alert(
                alert,
                message=trailing_average_message(alert, average),
                now=now,
                gateway=self.gateway,
                trigger="sweep",
            )
            if fired:
                stats.triggered += 1
        return stats

    async def _acquire_lock(self) -> bool | None:
        """True if acquired, False if held elsewhere, None when Redis is unavailable."""
        try:
            return await acquire_lock(SWEEP_LOCK_KEY, ttl=self.lock_ttl)
        except (RuntimeError, redis.RedisError) as e:
            logger.warning(f"[sweep] lock unavailable, running unlocked: {e!r}")
            return None

    async def _release_lock(self) -> None:
        try:
            await release_lock(SWEEP_LOCK_KEY)
        except (RuntimeError, redis.RedisError) as e:
            logger.warning(f"[sweep] failed to release lock: {e!r}")
