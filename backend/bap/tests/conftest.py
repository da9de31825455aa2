import os
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite:///./test_bap.db"
os.environ.pop("BAP_WAITING_PERIOD_POLICY", None)
import uuid
from datetime import timedelta

import pytest

from bap import models, notify, schemas
from bap.database import Base, SessionLocal, engine
from bap.services import submissions as submission_service

TestingSessionLocal = SessionLocal

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(autouse=True)
def outbox():
    notify.EMAIL_OUTBOX.clear()
    yield notify.EMAIL_OUTBOX
    notify.EMAIL_OUTBOX.clear()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory():
    """Open extra sessions that are closed when the test ends."""

    opened = []

    def _open():
        session = TestingSessionLocal()
        opened.append(session)
        return session

    yield _open
    for session in opened:
        session.close()


@pytest.fixture
def make_member(db):
    def _make(name: str | None = None, *, is_admin: bool = False, email: str | None = "auto"):
        suffix = uuid.uuid4().hex[:8]
        member = models.Member(
            display_name=name or f"Member {suffix}",
            contact_email=f"member-{suffix}@example.com" if email == "auto" else email,
            is_admin=is_admin,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make


@pytest.fixture
def member(make_member):
    return make_member("Grace Breeder")


@pytest.fixture
def admin(make_member):
    return make_member("Ada Admin", is_admin=True)


@pytest.fixture
def other_admin(make_member):
    return make_member("Otto Admin", is_admin=True)


def default_payload(**overrides):
    data = {
        "species_type": "Fish",
        "species_class": "Cichlids",
        "species_common_name": "Convict Cichlid",
        "species_latin_name": "Amatitlania nigrofasciata",
        "water_type": "Fresh",
        "count": "25",
        "reproduction_date": models.utcnow() - timedelta(days=90),
        "foods": ["flake", "live brine shrimp"],
        "spawn_locations": ["cave"],
        "tank_size": "20 gallon",
        "temperature": "78",
        "ph": "7.4",
    }
    data.update(overrides)
    return data


@pytest.fixture
def payload():
    return default_payload


@pytest.fixture
def make_submission(db, admin):
    """Create a submission and drive it into ``state`` through the public operations."""

    def _make(owner, state: str = "submitted", *, points: int = 10, **overrides):
        submission = submission_service.create_submission(
            db,
            owner.id,
            default_payload(**overrides),
            submit=state != "draft",
            disable_emails=True,
        )
        if state in ("witnessed", "declined", "changes-requested", "approved", "denied"):
            if state == "declined":
                submission_service.decline_witness(db, submission.id, admin.id, disable_emails=True)
            else:
                submission_service.confirm_witness(db, submission.id, admin.id, disable_emails=True)
        if state == "changes-requested":
            submission_service.request_changes(
                db, submission.id, admin.id, "Please add a photo of the fry", disable_emails=True
            )
        elif state == "approved":
            submission_service.approve_submission(
                db,
                admin.id,
                submission.id,
                schemas.SpeciesNameIds(common_name_id=1, scientific_name_id=1),
                schemas.ApprovalData(points=points),
                disable_emails=True,
            )
        elif state == "denied":
            submission_service.deny_submission(
                db, admin.id, submission.id, "Not a spawn", disable_emails=True
            )
        db.refresh(submission)
        return submission

    return _make
