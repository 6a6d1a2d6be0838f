"""Price alert matching, claiming and dispatch.

The reactive path (order completion) and the periodic sweep share everything
in this module: the cooldown constant, the matching predicate and the claim.
An alert fires only after claim_alert() has won the conditional update, so two
concurrent firers produce exactly one notification.
"""

import asyncio
from datetime import datetime, timedelta
import logging

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from umoja.models import PriceAlert, User
from umoja.models.enums import NotificationMethod, Role
from umoja.services.caller import CallerContext
from umoja.services.clock import as_utc
from umoja.services.errors import ForbiddenError, InvalidInputError, NotFoundError
from umoja.services.sms_client import NotificationGateway
from umoja.settings import get_settings
from umoja.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")

# Minimum time between two firings of one alert (reactive and sweep paths alike)
PRICE_ALERT_COOLDOWN = timedelta(hours=24)


def cooldown_elapsed(last_triggered_at: datetime | None, now: datetime) -> bool:
    last = as_utc(last_triggered_at)
    return last is None or now - last >= PRICE_ALERT_COOLDOWN


def should_fire(alert: PriceAlert, observed_price: float | None, now: datetime) -> bool:
    """Decide whether an observed price satisfies an alert.

    True iff the alert is active, the price is at or above the target and the
    cooldown since the last firing has elapsed.
    """
    if not alert.is_active or observed_price is None:
        return False
    if observed_price < alert.target_price_per_unit:
        return False
    return cooldown_elapsed(alert.last_triggered_at, now)


def cooldown_clause(now: datetime):
    """SQL form of cooldown_elapsed() for queries and the conditional claim."""
    cutoff = now - PRICE_ALERT_COOLDOWN
    return or_(PriceAlert.last_triggered_at.is_(None), PriceAlert.last_triggered_at <= cutoff)


async def find_matching_alerts(
    session: AsyncSession,
    *,
    crop_name: str,
    county: str,
    price: float,
    now: datetime,
) -> list[PriceAlert]:
    """Active alerts for crop/county with target <= price and cooldown elapsed."""
    result = await session.execute(
        select(PriceAlert)
        .where(PriceAlert.crop_name == crop_name)
        .where(PriceAlert.county == county)
        .where(PriceAlert.is_active.is_(True))
        .where(PriceAlert.target_price_per_unit <= price)
        .where(cooldown_clause(now))
        .order_by(PriceAlert.id)
    )
    return list(result.scalars().all())


async def claim_alert(session: AsyncSession, alert_id: int, now: datetime) -> bool:
    """Atomically mark an alert as triggered if its cooldown still holds.

    Returns:
        True if this caller won the claim (exactly one row updated).
    """
    result = await session.execute(
        update(PriceAlert)
        .where(PriceAlert.id == alert_id)
        .where(PriceAlert.is_active.is_(True))
        .where(cooldown_clause(now))
        .values(last_triggered_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def target_reached_message(alert: PriceAlert) -> str:
    return (
        f"UmojaHub Alert: {alert.crop_name} in {alert.county} has reached your target price "
        f"of KES {alert.target_price_per_unit:g}/{alert.unit}."
    )


def trailing_average_message(alert: PriceAlert, average_price: float) -> str:
    return (
        f"UmojaHub Alert: {alert.crop_name} in {alert.county} has reached KES {round(average_price)}/{alert.unit}, "
        f"above your target of KES {alert.target_price_per_unit:g}. Visit the marketplace now."
    )


async def fire_alert(
    alert: PriceAlert,
    *,
    message: str,
    now: datetime,
    gateway: NotificationGateway,
    trigger: str,
) -> bool:
    """Claim the alert, then notify its owner.

    The claim is committed before anything is sent. Notification failures are
    logged and never raised; the alert stays marked either way.

    Returns:
        True if this call fired the alert, False if the claim was lost.
    """
    async with get_session() as session:
        claimed = await claim_alert(session, alert.id, now)
        phone = None
        if claimed:
            phone = await session.scalar(select(User.phone_number).where(User.id == alert.farmer_id))

    if not claimed:
        logger.info(f"[alerts] claim lost alert_id={alert.id} trigger={trigger}")
        return False

    logger.info(
        f"[alerts] fired alert_id={alert.id} farmer_id={alert.farmer_id} "
        f"crop={alert.crop_name} county={alert.county} trigger={trigger}"
    )
    await _notify(alert, phone, message, gateway)
    return True


async def _notify(alert: PriceAlert, phone: str | None, message: str, gateway: NotificationGateway) -> None:
    if alert.notification_method not in (NotificationMethod.SMS, NotificationMethod.BOTH):
        logger.info(f"[alerts] no outbound channel for method={alert.notification_method.value} alert_id={alert.id}")
        return
    if not phone:
        logger.warning(f"[alerts] farmer has no phone number alert_id={alert.id} farmer_id={alert.farmer_id}")
        return

    timeout = get_settings().sms_timeout_seconds + 5
    try:
        result = await asyncio.wait_for(gateway.send(phone, message), timeout=timeout)
    except Exception:
        logger.exception(f"[alerts] notification dispatch failed alert_id={alert.id}")
        return
    if not result.success:
        logger.warning(f"[alerts] notification not delivered alert_id={alert.id}")


# ============================================================
# Alert management (farmer-facing)
# ============================================================


def _require_farmer(caller: CallerContext) -> None:
    if caller.role != Role.FARMER:
        raise ForbiddenError("Only farmers can manage price alerts")


async def create_alert(
    caller: CallerContext,
    *,
    crop_name: str,
    county: str,
    target_price_per_unit: float,
    unit: str,
    notification_method: NotificationMethod,
) -> PriceAlert:
    _require_farmer(caller)
    if target_price_per_unit <= 0:
        raise InvalidInputError("Target price must be positive", detail={"field": "target_price_per_unit"})

    async with get_session() as session:
        alert = PriceAlert(
            farmer_id=caller.user_id,
            crop_name=crop_name,
            county=county,
            target_price_per_unit=target_price_per_unit,
            unit=unit,
            notification_method=notification_method,
            is_active=True,
        )
        session.add(alert)
        await session.flush()
        await session.refresh(alert)

    logger.info(f"[alerts] created alert_id={alert.id} farmer_id={caller.user_id} {crop_name}/{county}")
    return alert


async def list_alerts(caller: CallerContext) -> list[PriceAlert]:
    _require_farmer(caller)
    async with get_session() as session:
        result = await session.execute(
            select(PriceAlert)
            .where(PriceAlert.farmer_id == caller.user_id)
            .where(PriceAlert.is_active.is_(True))
            .order_by(PriceAlert.created_at.desc(), PriceAlert.id.desc())
        )
        return list(result.scalars().all())


async def deactivate_alert(caller: CallerContext, alert_id: int) -> PriceAlert:
    _require_farmer(caller)
    async with get_session() as session:
        alert = await session.get(PriceAlert, alert_id)
        if alert is None or alert.farmer_id != caller.user_id:
            raise NotFoundError(f"Alert {alert_id} not found", code="ALERT_NOT_FOUND")
        alert.is_active = False
    logger.info(f"[alerts] deactivated alert_id={alert_id} farmer_id={caller.user_id}")
    return alert
