# tests/conftest.py

from datetime import datetime, date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from barberbook import models  # noqa: F401  registers tables
from barberbook.auth import token_for
from barberbook.core.resolver import RuleScope
from barberbook.db import get_session, make_engine
from barberbook.deps import get_now
from barberbook.main import create_app
from barberbook.models import Service, Shop, Staff, StaffService, User, WeeklyRule
from barberbook.services.booking import BookingGuard, get_booking_guard

# Friday morning; every test date below is in the future relative to this
NOW = datetime(2025, 6, 20, 8, 0)
MONDAY = date(2025, 6, 23)
WEDNESDAY = date(2025, 6, 25)
SUNDAY = date(2025, 6, 22)


def seed(session: Session) -> SimpleNamespace:
    owner = User(email="owner@shop.test", name="Owner", role="owner")
    barber_user = User(email="ana@shop.test", name="Ana", role="staff")
    barber2_user = User(email="bruno@shop.test", name="Bruno", role="staff")
    client = User(email="carla@client.test", name="Carla", role="client")
    other_client = User(email="dan@client.test", name="Dan", role="client")
    session.add_all([owner, barber_user, barber2_user, client, other_client])
    session.commit()

    shop = Shop(name="Main Street Cuts", owner_id=owner.id)
    session.add(shop)
    session.commit()

    barber = Staff(shop_id=shop.id, user_id=barber_user.id, display_name="Ana")
    barber2 = Staff(shop_id=shop.id, user_id=barber2_user.id, display_name="Bruno")
    session.add_all([barber, barber2])
    session.commit()

    haircut = Service(shop_id=shop.id, name="Haircut", duration_minutes=30, price=30.0)
    beard = Service(shop_id=shop.id, name="Beard trim", duration_minutes=15, price=15.0)
    session.add_all([haircut, beard])
    session.commit()

    session.add_all(
        [
            StaffService(staff_id=barber.id, service_id=haircut.id, custom_price=35.0),
            StaffService(staff_id=barber.id, service_id=beard.id),
            StaffService(staff_id=barber2.id, service_id=haircut.id),
            StaffService(staff_id=barber2.id, service_id=beard.id, custom_price=20.0, is_active=False),
        ]
    )
    # Monday 09:00-18:00 with lunch 12:00-13:00, Wednesday 09:00-18:00
    session.add_all(
        [
            WeeklyRule(
                scope=RuleScope.shop.value,
                owner_id=shop.id,
                day_of_week=1,
                open_minute=9 * 60,
                close_minute=18 * 60,
                break_start_minute=12 * 60,
                break_end_minute=13 * 60,
            ),
            WeeklyRule(
                scope=RuleScope.shop.value,
                owner_id=shop.id,
                day_of_week=3,
                open_minute=9 * 60,
                close_minute=18 * 60,
            ),
        ]
    )
    session.commit()

    return SimpleNamespace(
        owner=owner,
        shop=shop,
        barber=barber,
        barber_user=barber_user,
        barber2=barber2,
        barber2_user=barber2_user,
        client=client,
        other_client=other_client,
        haircut=haircut,
        beard=beard,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed database so several threads can hold their own connections."""
    engine = make_engine(f"sqlite:///{tmp_path / 'barber.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def data(session):
    return seed(session)


@pytest.fixture
def guard():
    return BookingGuard(lock_timeout_s=2.0)


@pytest.fixture
def client(engine, data, guard):
    app = create_app(use_lifespan=False)

    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_now] = lambda: NOW
    app.dependency_overrides[get_booking_guard] = lambda: guard

    with TestClient(app) as test_client:
        yield test_client


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}
