import asyncio
import os
import sys
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import stripe
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from divebook.domain.bookings import db_models as booking_db_models
from divebook.domain.bookings.statuses import BookingStatus
from divebook.domain.centers import db_models as center_db_models
from divebook.domain.payments import db_models as payment_db_models  # noqa: F401
from divebook.domain.payments.commission import compute_commission, compute_total
from divebook.domain.platform_config import db_models as platform_config_db_models  # noqa: F401
from divebook.infra.auth import create_access_token
from divebook.infra.db import Base, enable_sqlite_foreign_keys, get_db_session
from divebook.infra.stripe_client import StripeClient
from divebook.main import app
from divebook.settings import settings

WEBHOOK_SECRET = "whsec_test_secret"
STRIPE_SECRET = "sk_test_123"
PUBLIC_BASE_URL = "https://divebook.test"


@pytest.fixture(scope="session")
def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    async def init_models() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_models())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture(scope="session")
def async_session_maker(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture(autouse=True)
def restore_settings():
    names = [
        "testing",
        "app_env",
        "public_base_url",
        "stripe_secret_key",
        "stripe_webhook_secret",
        "metrics_token",
        "default_commission_rate",
        "supported_currencies_raw",
        "slot_start_hour",
        "slot_end_hour",
    ]
    original = {name: getattr(settings, name) for name in names}
    yield
    for name, value in original.items():
        setattr(settings, name, value)


@pytest.fixture(autouse=True)
def enable_test_mode():
    settings.testing = True
    settings.app_env = "dev"
    settings.public_base_url = PUBLIC_BASE_URL
    settings.stripe_secret_key = STRIPE_SECRET
    settings.stripe_webhook_secret = WEBHOOK_SECRET
    app.state.stripe_client = None
    yield
    app.state.stripe_client = None


@pytest.fixture(autouse=True)
def clean_database(test_engine):
    async def truncate_tables() -> None:
        async with test_engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                await conn.execute(table.delete())

    asyncio.run(truncate_tables())
    yield


def _build_client(async_session_maker, raise_server_exceptions: bool):
    async def override_db_session():
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    original_factory = getattr(app.state, "db_session_factory", None)
    app.state.db_session_factory = async_session_maker
    try:
        with TestClient(app, raise_server_exceptions=raise_server_exceptions) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        app.state.db_session_factory = original_factory


@pytest.fixture()
def client(async_session_maker):
    yield from _build_client(async_session_maker, raise_server_exceptions=True)


@pytest.fixture()
def client_no_raise(async_session_maker):
    """Test client that returns HTTP responses instead of raising server exceptions."""
    yield from _build_client(async_session_maker, raise_server_exceptions=False)


@pytest.fixture()
def auth_headers():
    def _headers(profile_id: str) -> dict[str, str]:
        token = create_access_token(profile_id, ttl_minutes=30, settings=settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def stripe_calls():
    return {"checkout": [], "transfers": [], "accounts": [], "account_links": []}


def make_fake_stripe(calls: dict[str, list], *, fail: bool = False) -> SimpleNamespace:
    """Stand-in for the outbound SDK surface; webhook verification stays real."""

    def _record(bucket: str, response: SimpleNamespace):
        def _create(**kwargs):
            if fail:
                raise ConnectionError("connection refused to api.stripe.com")
            calls[bucket].append(kwargs)
            return response

        return _create

    return SimpleNamespace(
        api_key=None,
        Webhook=stripe.Webhook,
        checkout=SimpleNamespace(
            Session=SimpleNamespace(
                create=_record(
                    "checkout",
                    SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.test/cs_test_1", payment_intent=None),
                )
            )
        ),
        Transfer=SimpleNamespace(create=_record("transfers", SimpleNamespace(id="tr_test_1"))),
        Account=SimpleNamespace(create=_record("accounts", SimpleNamespace(id="acct_test_new"))),
        AccountLink=SimpleNamespace(
            create=_record("account_links", SimpleNamespace(url="https://connect.stripe.test/onboarding"))
        ),
    )


@pytest.fixture()
def fake_stripe(stripe_calls):
    app.state.stripe_client = StripeClient(
        secret_key=STRIPE_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        stripe_sdk=make_fake_stripe(stripe_calls),
    )
    return stripe_calls


@pytest.fixture()
def failing_stripe(stripe_calls):
    app.state.stripe_client = StripeClient(
        secret_key=STRIPE_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        stripe_sdk=make_fake_stripe(stripe_calls, fail=True),
    )
    return stripe_calls


def future_date(days: int = 7) -> date:
    return datetime.now(tz=timezone.utc).date() + timedelta(days=days)


@pytest.fixture()
def booking_day() -> date:
    return future_date()


@dataclass
class Marketplace:
    owner_id: str
    staff_id: str
    client_id: str
    other_client_id: str
    admin_id: str
    center_id: str
    service_id: str


@pytest.fixture()
def marketplace(async_session_maker) -> Marketplace:
    async def _seed() -> Marketplace:
        async with async_session_maker() as session:
            owner = center_db_models.Profile(display_name="Owner")
            staff = center_db_models.Profile(display_name="Staff")
            diver = center_db_models.Profile(display_name="Diver")
            other_diver = center_db_models.Profile(display_name="Other Diver")
            admin = center_db_models.Profile(display_name="Admin", role=center_db_models.PROFILE_ROLE_ADMIN)
            session.add_all([owner, staff, diver, other_diver, admin])
            await session.flush()

            center = center_db_models.Center(owner_id=owner.profile_id, name="Blue Reef Divers", currency="EUR")
            session.add(center)
            await session.flush()
            session.add_all(
                [
                    center_db_models.CenterMember(
                        profile_id=owner.profile_id,
                        center_id=center.center_id,
                        role_in_center=center_db_models.CENTER_ROLE_OWNER,
                    ),
                    center_db_models.CenterMember(
                        profile_id=staff.profile_id,
                        center_id=center.center_id,
                        role_in_center=center_db_models.CENTER_ROLE_STAFF,
                    ),
                ]
            )
            service = center_db_models.Service(
                center_id=center.center_id,
                name="Two Tank Boat Dive",
                price=Decimal("100.00"),
                currency="EUR",
                max_capacity=4,
                min_participants=1,
                is_active=True,
            )
            session.add(service)
            await session.commit()
            return Marketplace(
                owner_id=owner.profile_id,
                staff_id=staff.profile_id,
                client_id=diver.profile_id,
                other_client_id=other_diver.profile_id,
                admin_id=admin.profile_id,
                center_id=center.center_id,
                service_id=service.service_id,
            )

    return asyncio.run(_seed())


@pytest.fixture()
def seed_booking(async_session_maker, marketplace):
    def _seed(
        status: BookingStatus = BookingStatus.PENDING,
        *,
        participants: int = 2,
        unit_price: Decimal = Decimal("100.00"),
        commission_rate: Decimal = Decimal("20"),
        booking_date: date | None = None,
        time_slot: time = time(hour=8),
        client_id: str | None = None,
    ) -> str:
        async def _insert() -> str:
            async with async_session_maker() as session:
                total = compute_total(unit_price, participants)
                booking = booking_db_models.Booking(
                    client_id=client_id or marketplace.client_id,
                    center_id=marketplace.center_id,
                    service_id=marketplace.service_id,
                    booking_date=booking_date or future_date(),
                    time_slot=time_slot,
                    participants=participants,
                    unit_price=unit_price,
                    total_price=total,
                    commission_rate=commission_rate,
                    commission_amount=compute_commission(total, commission_rate),
                    currency="EUR",
                    status=status,
                )
                session.add(booking)
                await session.commit()
                return booking.booking_id

        return asyncio.run(_insert())

    return _seed


@pytest.fixture()
def connect_center(async_session_maker, marketplace):
    def _connect(account_id: str = "acct_center_1", onboarding_complete: bool = True) -> None:
        async def _update() -> None:
            async with async_session_maker() as session:
                center = await session.get(center_db_models.Center, marketplace.center_id)
                center.stripe_account_id = account_id
                center.stripe_onboarding_complete = onboarding_complete
                await session.commit()

        asyncio.run(_update())

    return _connect
