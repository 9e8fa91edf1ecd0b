import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
from app.models.dealer import Dealer  # noqa
from app.models.vehicle import Vehicle  # noqa
from app.models.transaction import Transaction  # noqa
from app.models.notification import Notification  # noqa
from app.models.rto_application import RTOApplication  # noqa
from app.models.idempotency_key import IdempotencyKeyRecord  # noqa

from app.db.base import Base
from app.db.session import get_db
from app.services.rating_prompt import rating_prompts
from app.tests.factories import RecordingNotifier, make_dealer, make_vehicle

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _reset_rating_prompts():
    rating_prompts.clear()
    yield
    rating_prompts.clear()


@pytest.fixture
def seller(db):
    return make_dealer(db, "Sharma Motors", "owner@sharmamotors.in")


@pytest.fixture
def buyer(db):
    return make_dealer(db, "Kapoor Cars", "owner@kapoorcars.in")


@pytest.fixture
def outsider(db):
    return make_dealer(db, "Mehta Autos", "owner@mehtaautos.in")


@pytest.fixture
def vehicle(db, seller):
    return make_vehicle(db, seller)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(db):
    from app.main import create_app

    app = create_app()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
