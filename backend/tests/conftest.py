from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from pawdesk.database import get_session, import_models
from pawdesk.main import app
from pawdesk.models.client import Client
from pawdesk.models.dog import Dog
from pawdesk.models.package import Package
from pawdesk.models.user import User, UserRole

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Models imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables created and dropped per test, so fallback-trainer lookups and
#    ledger counts never see rows from another test
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="engine")
def engine_fixture():
    return test_engine


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a freshly created schema"""
    import_models()
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the
    entire duration, so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="unguarded_client")
def unguarded_client_fixture(session: Session):
    """Like ``client``, but server errors come back as responses instead of being re-raised"""
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def kennel(session: Session):
    """Two clients with a dog each, a trainer, and packages/templates to book against.

    Client A owns package_a (10 credits, 9 used) and package_a2 (5 credits, 0 used).
    Client B owns package_b. One template (8 credits) is available to everyone.
    """
    client_a = Client(name="Alice Walker", email="alice@example.com")
    client_b = Client(name="Bob Barker", email="bob@example.com")
    session.add(client_a)
    session.add(client_b)
    session.commit()
    session.refresh(client_a)
    session.refresh(client_b)

    dog_a = Dog(client_id=client_a.id, name="Biscuit", breed="Beagle")
    dog_b = Dog(client_id=client_b.id, name="Pepper", breed="Border Collie")
    trainer = User(name="Tess Trainer", email="tess@example.com", role=UserRole.TRAINER.value)
    session.add(dog_a)
    session.add(dog_b)
    session.add(trainer)

    package_a = Package(client_id=client_a.id, type="10 Session Pack", total_credits=10, used_credits=9, price_cents=50000)
    package_a2 = Package(client_id=client_a.id, type="5 Session Pack", total_credits=5, used_credits=0, price_cents=27500)
    package_b = Package(client_id=client_b.id, type="10 Session Pack", total_credits=10, used_credits=0, price_cents=50000)
    template = Package(
        client_id=None,
        is_template=True,
        type="Puppy Starter",
        total_credits=8,
        used_credits=0,
        price_cents=32000,
        currency="EUR",
        expires_on=date(2027, 6, 30),
    )
    for row in (package_a, package_a2, package_b, template):
        session.add(row)
    session.commit()

    for row in (dog_a, dog_b, trainer, package_a, package_a2, package_b, template):
        session.refresh(row)

    return {
        "client_a_id": client_a.id,
        "client_b_id": client_b.id,
        "dog_a_id": dog_a.id,
        "dog_b_id": dog_b.id,
        "trainer_id": trainer.id,
        "package_a_id": package_a.id,
        "package_a2_id": package_a2.id,
        "package_b_id": package_b.id,
        "template_id": template.id,
    }
