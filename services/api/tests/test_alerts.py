"""Tests for alert matching, the conditional claim and alert management."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from umoja.models import PriceAlert
from umoja.models.enums import NotificationMethod, Role
from umoja.services.alerts import (
    PRICE_ALERT_COOLDOWN,
    claim_alert,
    create_alert,
    deactivate_alert,
    fire_alert,
    list_alerts,
    should_fire,
    target_reached_message,
    trailing_average_message,
)
from umoja.services.clock import as_utc
from umoja.services.errors import ForbiddenError, NotFoundError
from umoja.stores.postgres import get_session

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _alert(**overrides) -> PriceAlert:
    fields = {
        "farmer_id": 1,
        "crop_name": "Maize",
        "county": "Kiambu",
        "target_price_per_unit": 40.0,
        "unit": "KG",
        "notification_method": NotificationMethod.SMS,
        "is_active": True,
        "last_triggered_at": None,
    }
    fields.update(overrides)
    return PriceAlert(**fields)


class TestShouldFire:
    def test_fires_at_or_above_target(self):
        assert should_fire(_alert(), 40.0, NOW)
        assert should_fire(_alert(), 45.0, NOW)

    def test_below_target(self):
        assert not should_fire(_alert(), 39.99, NOW)

    def test_inactive_alert(self):
        assert not should_fire(_alert(is_active=False), 45.0, NOW)

    def test_no_price(self):
        assert not should_fire(_alert(), None, NOW)

    def test_inside_cooldown(self):
        alert = _alert(last_triggered_at=NOW - timedelta(hours=1))
        assert not should_fire(alert, 45.0, NOW)

    def test_cooldown_boundary_is_inclusive(self):
        alert = _alert(last_triggered_at=NOW - PRICE_ALERT_COOLDOWN)
        assert should_fire(alert, 45.0, NOW)

    def test_naive_timestamps_are_treated_as_utc(self):
        naive = (NOW - timedelta(hours=25)).replace(tzinfo=None)
        assert should_fire(_alert(last_triggered_at=naive), 45.0, NOW)


class TestMessages:
    def test_target_reached(self):
        assert target_reached_message(_alert()) == (
            "UmojaHub Alert: Maize in Kiambu has reached your target price of KES 40/KG."
        )

    def test_trailing_average(self):
        message = trailing_average_message(_alert(), 44.6)
        assert "has reached KES 45/KG, above your target of KES 40" in message


@pytest.mark.asyncio
async def test_claim_succeeds_once_per_cooldown(factory):
    farmer = await factory.user(Role.FARMER)
    alert = await factory.alert(farmer)

    async with get_session() as session:
        assert await claim_alert(session, alert.id, NOW) is True
    async with get_session() as session:
        assert await claim_alert(session, alert.id, NOW + timedelta(hours=1)) is False
    async with get_session() as session:
        assert await claim_alert(session, alert.id, NOW + timedelta(hours=24)) is True

    async with get_session() as session:
        stored = await session.get(PriceAlert, alert.id)
    assert as_utc(stored.last_triggered_at) == NOW + timedelta(hours=24)


@pytest.mark.asyncio
async def test_concurrent_firers_notify_exactly_once(factory, sms):
    farmer = await factory.user(Role.FARMER, phone="+254700000099")
    alert = await factory.alert(farmer)

    results = await asyncio.gather(
        fire_alert(alert, message="reactive", now=NOW, gateway=sms, trigger="order:1"),
        fire_alert(alert, message="sweep", now=NOW + timedelta(minutes=1), gateway=sms, trigger="sweep"),
    )

    assert sorted(results) == [False, True]
    assert len(sms.sent) == 1
    assert sms.sent[0][0] == "+254700000099"

    async with get_session() as session:
        stored = await session.get(PriceAlert, alert.id)
    assert as_utc(stored.last_triggered_at) in (NOW, NOW + timedelta(minutes=1))


@pytest.mark.asyncio
async def test_undelivered_sms_still_marks_alert(factory, sms):
    sms.success = False
    farmer = await factory.user(Role.FARMER)
    alert = await factory.alert(farmer)

    assert await fire_alert(alert, message="hello", now=NOW, gateway=sms, trigger="test") is True

    async with get_session() as session:
        stored = await session.get(PriceAlert, alert.id)
    assert stored.last_triggered_at is not None


class TestAlertManagement:
    @pytest.mark.asyncio
    async def test_create_list_deactivate(self, factory):
        farmer = await factory.user(Role.FARMER)
        caller = factory.caller(farmer)

        alert = await create_alert(
            caller,
            crop_name="Beans",
            county="Meru",
            target_price_per_unit=120.0,
            unit="KG",
            notification_method=NotificationMethod.BOTH,
        )
        assert [a.id for a in await list_alerts(caller)] == [alert.id]

        await deactivate_alert(caller, alert.id)
        assert await list_alerts(caller) == []

    @pytest.mark.asyncio
    async def test_buyers_cannot_create_alerts(self, factory):
        buyer = await factory.user(Role.BUYER)
        with pytest.raises(ForbiddenError):
            await create_alert(
                factory.caller(buyer),
                crop_name="Beans",
                county="Meru",
                target_price_per_unit=120.0,
                unit="KG",
                notification_method=NotificationMethod.SMS,
            )

    @pytest.mark.asyncio
    async def test_cannot_deactivate_someone_elses_alert(self, factory):
        owner = await factory.user(Role.FARMER)
        other = await factory.user(Role.FARMER)
        alert = await factory.alert(owner)

        with pytest.raises(NotFoundError):
            await deactivate_alert(factory.caller(other), alert.id)
