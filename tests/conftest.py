from datetime import date, datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from equiptrak.core.security import create_access_token, get_password_hash
from equiptrak.db import models
from equiptrak.db.session import get_db
from equiptrak.main import app

PASSWORD = "secret123"


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture()
def api_app(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def client(api_app):
    return TestClient(api_app)


def _token(user: models.User) -> str:
    return create_access_token({"sub": user.id, "email": user.email, "role": user.role})


@pytest.fixture()
def seeded(db_session):
    password_hash = get_password_hash(PASSWORD)
    acme = models.Company(id="company-acme", name="Acme Garage")
    bolt = models.Company(id="company-bolt", name="Bolt Motors")
    admin = models.User(id="user-admin", email="admin@example.com", password_hash=password_hash, role="admin")
    user = models.User(
        id="user-acme",
        email="user@acme.example",
        password_hash=password_hash,
        role="user",
        company_id=acme.id,
    )
    compressor_type = models.EquipmentType(id="type-compressor", name="Compressor", description="Air compressor")
    lift_type = models.EquipmentType(id="type-lift", name="Lift", description=None)
    db_session.add_all([acme, bolt, admin, user, compressor_type, lift_type])
    db_session.commit()

    db_session.add_all(
        [
            models.Equipment(
                id="eq-compressor",
                company_id=acme.id,
                equipment_type_id=compressor_type.id,
                name="Compressor 1",
                serial_number="C-001",
                type="compressor",
                last_test_date=date(2024, 3, 1),
                next_test_date=date(2025, 2, 28),
            ),
            models.Equipment(
                id="eq-lift",
                company_id=acme.id,
                equipment_type_id=lift_type.id,
                name="Lift 1",
                serial_number="L-001",
                type="lift",
            ),
            models.Equipment(
                id="eq-bolt",
                company_id=bolt.id,
                name="Bolt Lift",
                serial_number="L-001",
                type="lift",
            ),
            models.ServiceRecord(
                id="sr-pending",
                company_id=acme.id,
                equipment_id="eq-compressor",
                certificate_number="BWS-1000",
                service_date=date(2024, 3, 1),
                retest_date=date(2025, 2, 28),
                engineer_name="Sam Engineer",
                status="pending",
            ),
            models.ServiceRecord(
                id="sr-completed",
                company_id=acme.id,
                certificate_number="BWS-1001",
                service_date=date(2024, 6, 1),
                retest_date=date(2025, 5, 31),
                engineer_name="Sam Engineer",
                status="completed",
            ),
            models.Conversation(id="conv-open", company_id=acme.id, subject="Lift booking", status="open"),
            models.Conversation(id="conv-closed", company_id=acme.id, subject="Old thread", status="closed"),
            models.Conversation(id="conv-bolt", company_id=bolt.id, subject="Bolt thread", status="open"),
        ]
    )
    db_session.commit()
    db_session.add_all(
        [
            models.ConversationParticipant(
                id="part-admin", conversation_id="conv-open", user_id=admin.id, joined_at=datetime(2024, 5, 1, 9)
            ),
            models.ConversationParticipant(
                id="part-user", conversation_id="conv-open", user_id=user.id, joined_at=datetime(2024, 5, 1, 10)
            ),
            models.Message(
                id="msg-1",
                conversation_id="conv-open",
                sender_id=user.id,
                content="Can we book the lift test?",
                created_at=datetime(2024, 5, 1, 10, 5),
            ),
            models.Message(
                id="msg-2",
                conversation_id="conv-open",
                sender_id=admin.id,
                content="Monday works.",
                created_at=datetime(2024, 5, 1, 11, 0),
            ),
        ]
    )
    db_session.commit()

    return SimpleNamespace(
        acme_id=acme.id,
        bolt_id=bolt.id,
        admin_id=admin.id,
        user_id=user.id,
        admin_token=_token(admin),
        user_token=_token(user),
        password=PASSWORD,
    )
