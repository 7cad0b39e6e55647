import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEND_EMAILS"] = "false"
os.environ["DEDUP_BACKEND"] = "memory"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.deps import CurrentUser, get_current_user
from app.db.database import Base, get_db
from app.services.auto_generation_service import AutoGenerationService
from app.services.notification_service import NotificationDispatcher, get_notification_dispatcher
from app.services.request_service import (
    AccommodationService,
    ClaimService,
    TransportService,
    VisaService,
    get_accommodation_service,
    get_claim_service,
    get_transport_service,
    get_visa_service,
)
from app.services.travel_request_service import TravelRequestService, get_travel_request_service
from app.services.workflow.dedup import DedupGuard, InMemoryDedupStore
from app.services.workflow_action_service import WorkflowActionService, get_workflow_action_service

ROLE_EMAILS = {
    "Department Focal": "focal@example.com",
    "Line Manager": "line.manager@example.com",
    "HOD": "hod@example.com",
    "Ticketing Admin": "ticketing@example.com",
}


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMailer:
    """Records notification emails; the first ``failures`` sends report failure."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.attempts = 0
        self.sent = []

    def send_notification_email(self, to_email, title, message, action_url=None, data=None):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            return False
        self.sent.append({"to": to_email, "title": title, "message": message, "action_url": action_url})
        return True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def dispatcher(session_factory, mailer):
    return NotificationDispatcher(
        session_factory=session_factory,
        mailer=mailer,
        queue_size=100,
        max_attempts=3,
        retry_delay=0,
        role_emails=ROLE_EMAILS,
        frontend_url="http://frontend.test",
    )


@pytest.fixture
def dedup_guard(clock):
    return DedupGuard(InMemoryDedupStore(clock=clock), ttl_seconds=15, clock=clock)


@pytest.fixture
def submission_guard(clock):
    return DedupGuard(InMemoryDedupStore(clock=clock), ttl_seconds=30, clock=clock)


@pytest.fixture
def action_service(session_factory, dedup_guard, dispatcher):
    return WorkflowActionService(session_factory=session_factory, dedup_guard=dedup_guard, dispatcher=dispatcher)


@pytest.fixture
def auto_generation(session_factory):
    return AutoGenerationService(session_factory)


@pytest.fixture
def travel_service(session_factory, submission_guard, dispatcher, auto_generation, action_service):
    return TravelRequestService(
        session_factory=session_factory,
        submission_guard=submission_guard,
        dispatcher=dispatcher,
        auto_generation=auto_generation,
        action_service=action_service,
    )


@pytest.fixture
def claim_service(session_factory, submission_guard, dispatcher):
    return ClaimService(session_factory, submission_guard, dispatcher)


@pytest.fixture
def visa_service(session_factory, submission_guard, dispatcher):
    return VisaService(session_factory, submission_guard, dispatcher)


@pytest.fixture
def accommodation_service(session_factory, submission_guard, dispatcher):
    return AccommodationService(session_factory, submission_guard, dispatcher)


@pytest.fixture
def transport_service(session_factory, submission_guard, dispatcher):
    return TransportService(session_factory, submission_guard, dispatcher)


@pytest.fixture
def requestor():
    return CurrentUser(email="alice@example.com", name="Alice Tan", role="Requestor", staff_id="S1001")


@pytest.fixture
def seed(session_factory):
    """Insert a request row directly and return its id."""
    def _seed(row):
        request_id = row.id
        with session_factory() as db:
            with db.begin():
                db.add(row)
        return request_id

    return _seed


@pytest.fixture
def identity(requestor):
    return {"user": requestor}


@pytest.fixture
def act_as(identity):
    def _act_as(role: str, name: str, email: str = None, staff_id: str = None):
        identity["user"] = CurrentUser(
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            name=name,
            role=role,
            staff_id=staff_id,
        )
        return identity["user"]

    return _act_as


@pytest.fixture
def client(
    session_factory,
    identity,
    dispatcher,
    action_service,
    travel_service,
    claim_service,
    visa_service,
    accommodation_service,
    transport_service,
):
    from app.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: identity["user"]
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_workflow_action_service] = lambda: action_service
    app.dependency_overrides[get_travel_request_service] = lambda: travel_service
    app.dependency_overrides[get_claim_service] = lambda: claim_service
    app.dependency_overrides[get_visa_service] = lambda: visa_service
    app.dependency_overrides[get_accommodation_service] = lambda: accommodation_service
    app.dependency_overrides[get_transport_service] = lambda: transport_service

    yield TestClient(app)

    app.dependency_overrides.clear()
