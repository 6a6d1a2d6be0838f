"""Tests for the periodic alert sweep."""

from datetime import datetime, timedelta, timezone

import pytest

from umoja.models import PriceAlert
from umoja.models.enums import PriceObservationSource, Role
from umoja.services import sweeper as sweeper_module
from umoja.services.clock import as_utc
from umoja.services.prices import append_observation
from umoja.services.sweeper import AlertSweeper
from umoja.stores.postgres import get_session

T = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


async def _observe(price: float, recorded_at: datetime, crop_name: str = "Maize", county: str = "Kiambu") -> None:
    async with get_session() as session:
        await append_observation(
            session,
            crop_name=crop_name,
            county=county,
            price_per_unit=price,
            unit="KG",
            source=PriceObservationSource.LISTING_CREATED,
            recorded_at=recorded_at,
        )


async def _load(alert_id: int) -> PriceAlert:
    async with get_session() as session:
        return await session.get(PriceAlert, alert_id)


@pytest.mark.asyncio
async def test_cooldown_blocks_sweep_until_elapsed(factory, sms):
    farmer = await factory.user(Role.FARMER)
    alert = await factory.alert(farmer, target=40.0, last_triggered_at=T)
    await _observe(45.0, T)

    sweeper = AlertSweeper(gateway=sms)

    stats = await sweeper.run(now=T + timedelta(hours=1))
    assert stats.triggered == 0
    assert sms.sent == []

    stats = await sweeper.run(now=T + timedelta(hours=25))
    assert stats.checked == 1
    assert stats.triggered == 1
    assert len(sms.sent) == 1
    assert "above your target of KES 40" in sms.sent[0][1]

    stored = await _load(alert.id)
    assert as_utc(stored.last_triggered_at) == T + timedelta(hours=25)


@pytest.mark.asyncio
async def test_uses_trailing_average_not_latest_price(factory, sms):
    farmer = await factory.user(Role.FARMER)
    await factory.alert(farmer, target=40.0)
    await _observe(30.0, T - timedelta(days=2))
    await _observe(45.0, T - timedelta(days=1))
    # Outside the 7 day window
    await _observe(100.0, T - timedelta(days=10))

    stats = await AlertSweeper(gateway=sms).run(now=T)

    assert stats.checked == 1
    assert stats.triggered == 0
    assert sms.sent == []


@pytest.mark.asyncio
async def test_alerts_without_price_data_are_counted(factory, sms):
    farmer = await factory.user(Role.FARMER)
    await factory.alert(farmer, crop_name="Sorghum", county="Kitui")
    await factory.alert(farmer, target=40.0)
    await _observe(42.0, T - timedelta(hours=3))

    stats = await AlertSweeper(gateway=sms).run(now=T)

    assert stats.to_dict() == {"checked": 2, "triggered": 1, "no_price_data": 1, "skipped_locked": False}


@pytest.mark.asyncio
async def test_batches_rotate_least_recently_checked_first(factory, sms):
    farmer = await factory.user(Role.FARMER)
    first = await factory.alert(farmer, crop_name="Sorghum", county="Kitui")
    second = await factory.alert(farmer, crop_name="Millet", county="Kitui")

    sweeper = AlertSweeper(gateway=sms, batch_size=1)

    await sweeper.run(now=T)
    assert as_utc((await _load(first.id)).last_checked_at) == T
    assert (await _load(second.id)).last_checked_at is None

    await sweeper.run(now=T + timedelta(minutes=5))
    assert as_utc((await _load(second.id)).last_checked_at) == T + timedelta(minutes=5)
    assert as_utc((await _load(first.id)).last_checked_at) == T


@pytest.mark.asyncio
async def test_inactive_alerts_are_not_swept(factory, sms):
    farmer = await factory.user(Role.FARMER)
    alert = await factory.alert(farmer, target=40.0)
    async with get_session() as session:
        stored = await session.get(PriceAlert, alert.id)
        stored.is_active = False
    await _observe(50.0, T)

    stats = await AlertSweeper(gateway=sms).run(now=T)

    assert stats.checked == 0
    assert sms.sent == []


class TestSweepLock:
    @pytest.mark.asyncio
    async def test_runs_unlocked_without_redis(self, factory, sms):
        farmer = await factory.user(Role.FARMER)
        await factory.alert(farmer, target=40.0)
        await _observe(41.0, T)

        stats = await AlertSweeper(gateway=sms).run(now=T)

        assert stats.skipped_locked is False
        assert stats.triggered == 1

    @pytest.mark.asyncio
    async def test_skips_when_lock_is_held(self, factory, sms, monkeypatch):
        async def held(key, ttl):
            return False

        monkeypatch.setattr(sweeper_module, "acquire_lock", held)
        farmer = await factory.user(Role.FARMER)
        await factory.alert(farmer, target=40.0)
        await _observe(41.0, T)

        stats = await AlertSweeper(gateway=sms).run(now=T)

        assert stats.skipped_locked is True
        assert stats.checked == 0
        assert sms.sent == []

    @pytest.mark.asyncio
    async def test_releases_lock_after_sweep(self, factory, sms, monkeypatch):
        released = []

        async def acquired(key, ttl):
            return True

        async def release(key):
            released.append(key)

        monkeypatch.setattr(sweeper_module, "acquire_lock", acquired)
        monkeypatch.setattr(sweeper_module, "release_lock", release)

        await AlertSweeper(gateway=sms).run(now=T)

        assert released == [sweeper_module.SWEEP_LOCK_KEY]
