"""Pytest configuration and shared fixtures."""
import uuid
import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.database import Base, get_db
from app.api.schemas import ImpactUpdateCreate, ImpactUpdateRecord
from app.models.domain import Campaign, Event, ImpactUpdate
from app.models.audit import AuditEvent
from app.models.enums import EventStatus, ImpactStatus

CLUB_ID = "club_123"
HOST_ID = "user_123"


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    # In-memory SQLite shared across threads, so the API test client sees the same data
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()


@pytest.fixture
def sample_campaign(db_session):
    campaign = Campaign(club_id=CLUB_ID, name="Winter appeal", impact_area_ids=["poverty_basic_needs"])
    db_session.add(campaign)
    db_session.commit()
    db_session.refresh(campaign)
    return campaign


@pytest.fixture
def sample_event(db_session, sample_campaign):
    """An event that ended a week ago, with impact reporting still pending."""
    event = Event(
        club_id=CLUB_ID,
        campaign_id=sample_campaign.id,
        title="Charity 5k",
        event_date=datetime.utcnow() - timedelta(days=7),
        status=EventStatus.ENDED,
    )
    db_session.add(event)
    db_session.commit()
    db_session.refresh(event)
    return event


def impact_payload(event_id=None, campaign_id=None, **overrides) -> ImpactUpdateCreate:
    """A create payload that passes validation and the publish rule."""
    data = {
        "event_id": event_id,
        "campaign_id": campaign_id,
        "impact_area_ids": ["poverty_basic_needs"],
        "title": "Hampers delivered",
        "description": "Forty hampers delivered to families in the parish",
        "impact_date": datetime.utcnow() - timedelta(days=2),
        "metrics": [{"type": "people_helped", "milestone": "Families helped", "value": 40}],
        "proof": {"media": [{"type": "image", "url": "https://cdn.example.org/hampers.jpg"}]},
    }
    data.update(overrides)
    return ImpactUpdateCreate(**data)


@pytest.fixture
def make_payload():
    return impact_payload


@pytest.fixture
def make_record():
    """Factory for in-memory impact records, for the pure rules."""
    def _make(**overrides) -> ImpactUpdateRecord:
        now = datetime.utcnow()
        data = {
            "id": str(uuid.uuid4()),
            "club_id": CLUB_ID,
            "event_id": "event_1",
            "impact_area_ids": ["poverty_basic_needs"],
            "title": "Hampers delivered",
            "description": "Forty hampers delivered",
            "impact_date": now,
            "metrics": [{"milestone": "Families helped", "value": 40}],
            "proof": {"media": [{"url": "https://cdn.example.org/1.jpg"}]},
            "status": ImpactStatus.DRAFT,
            "created_by": HOST_ID,
            "created_at": now,
            "updated_at": now,
        }
        data.update(overrides)
        return ImpactUpdateRecord(**data)
    return _make


@pytest.fixture
def api_client(db_session):
    """TestClient bound to the in-memory session."""
    from app.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Identity headers as set by the authenticating proxy."""
    def _headers(user_id: str = HOST_ID, club_id: str = CLUB_ID, role: str = "host") -> dict:
        return {"X-User-Id": user_id, "X-Club-Id": club_id, "X-User-Role": role}
    return _headers
