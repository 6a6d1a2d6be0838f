"""Shared fixtures.

Integration tests run against a throwaway SQLite file per test (aiosqlite).
Redis is never initialised here, so cache and lock helpers take their
"unavailable" branches. Outbound SMS goes to a recording fake.
"""

from datetime import datetime
import itertools

import pytest
from httpx import ASGITransport, AsyncClient

from umoja.auth import create_access_token
from umoja.main import app
from umoja.models import Listing, Order, PriceAlert, User
from umoja.models.enums import (
    FulfillmentStatus,
    FulfillmentType,
    NotificationMethod,
    PaymentStatus,
    Role,
    VerificationStatus,
)
from umoja.services import sms_client, tasks
from umoja.services.caller import CallerContext
from umoja.services.sms_client import SendResult
from umoja.services.tasks import SideEffectDispatcher
from umoja.settings import get_settings
from umoja.stores import postgres

CRON_SECRET = "cron-test-secret"
WEBHOOK_SECRET = "webhook-test-secret"

_phone_numbers = itertools.count(1)


@pytest.fixture(autouse=True)
def settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("JWT_SECRET", "jwt-test-secret")
    monkeypatch.setenv("CRON_SECRET", CRON_SECRET)
    monkeypatch.setenv("PAYMENT_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setenv("SMS_API_KEY", "")
    monkeypatch.setenv("PAYMENT_API_URL", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def db(tmp_path):
    """Fresh SQLite database with every table created."""
    await postgres.init_db(f"sqlite+aiosqlite:///{tmp_path / 'umoja-test.db'}")
    await postgres.create_tables()
    yield
    await postgres.close_db()


class FakeSmsGateway:
    """Records messages instead of sending them."""

    def __init__(self, success: bool = True):
        self.success = success
        self.sent: list[tuple[str, str]] = []

    async def send(self, recipient: str, message: str) -> SendResult:
        self.sent.append((recipient, message))
        return SendResult(success=self.success, message_id=f"msg-{len(self.sent)}" if self.success else None)


@pytest.fixture
def sms(monkeypatch: pytest.MonkeyPatch) -> FakeSmsGateway:
    gateway = FakeSmsGateway()
    monkeypatch.setattr(sms_client, "_client", gateway)
    return gateway


@pytest.fixture
async def dispatcher():
    """Running dispatcher installed as the process-wide singleton."""
    d = SideEffectDispatcher(workers=2, max_queue=100, job_timeout=10.0)
    await d.start()
    tasks.set_dispatcher(d)
    yield d
    await d.stop(drain_timeout=5.0)
    tasks.set_dispatcher(None)


@pytest.fixture
async def client():
    """Create test client (lifespan is not run; use the db/dispatcher fixtures)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


class Factory:
    """Row builders and caller helpers for integration tests."""

    @staticmethod
    def headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    @staticmethod
    def caller(user: User) -> CallerContext:
        return CallerContext(user_id=user.id, role=user.role)

    async def user(
        self,
        role: Role,
        *,
        phone: str | None = None,
        verification_status: VerificationStatus = VerificationStatus.UNSUBMITTED,
    ) -> User:
        async with postgres.get_session() as session:
            user = User(
                full_name=f"Test {role.value.title()}",
                phone_number=phone or f"+2547{next(_phone_numbers):08d}",
                role=role,
                verification_status=verification_status,
            )
            session.add(user)
            await session.flush()
            await session.refresh(user)
        return user

    async def listing(
        self,
        farmer: User,
        *,
        crop_name: str = "Maize",
        county: str = "Kiambu",
        price: float = 45.0,
        quantity: float = 500.0,
        unit: str = "KG",
    ) -> Listing:
        async with postgres.get_session() as session:
            listing = Listing(
                farmer_id=farmer.id,
                title=f"{crop_name} from {county}",
                crop_name=crop_name,
                quantity_available=quantity,
                unit=unit,
                price_per_unit=price,
                pickup_county=county,
            )
            session.add(listing)
            await session.flush()
            await session.refresh(listing)
        return listing

    async def order(
        self,
        listing: Listing,
        buyer: User,
        *,
        quantity: float = 10.0,
        payment_status: PaymentStatus = PaymentStatus.PENDING_PAYMENT,
        fulfillment_status: FulfillmentStatus = FulfillmentStatus.AWAITING_PAYMENT,
        paid_at: datetime | None = None,
        confirmed_at: datetime | None = None,
        received_at: datetime | None = None,
        checkout_request_id: str | None = None,
    ) -> Order:
        async with postgres.get_session() as session:
            order = Order(
                listing_id=listing.id,
                farmer_id=listing.farmer_id,
                buyer_id=buyer.id,
                crop_name=listing.crop_name,
                quantity=quantity,
                unit=listing.unit,
                price_per_unit=listing.price_per_unit,
                total_amount=quantity * listing.price_per_unit,
                fulfillment_type=FulfillmentType.PICKUP,
                buyer_phone=buyer.phone_number,
                payment_status=payment_status,
                fulfillment_status=fulfillment_status,
                paid_at=paid_at,
                confirmed_by_farmer_at=confirmed_at,
                received_by_buyer_at=received_at,
                checkout_request_id=checkout_request_id,
            )
            session.add(order)
            await session.flush()
            await session.refresh(order)
        return order

    async def alert(
        self,
        farmer: User,
        *,
        crop_name: str = "Maize",
        county: str = "Kiambu",
        target: float = 40.0,
        method: NotificationMethod = NotificationMethod.SMS,
        last_triggered_at: datetime | None = None,
    ) -> PriceAlert:
        async with postgres.get_session() as session:
            alert = PriceAlert(
                farmer_id=farmer.id,
                crop_name=crop_name,
                county=county,
                target_price_per_unit=target,
                unit="KG",
                notification_method=method,
                is_active=True,
                last_triggered_at=last_triggered_at,
            )
            session.add(alert)
            await session.flush()
            await session.refresh(alert)
        return alert


@pytest.fixture
def factory(db) -> Factory:
    return Factory()
