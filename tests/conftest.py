"""
Shared fixtures: an in-memory SQLite database, seed users and recording
doubles for the audit and notification collaborators.
"""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reseller_portal.core.database import Base
from reseller_portal.models import Customer, CustomerStatus, User, UserRole


class RecordingAuditor:
    def __init__(self):
        self.facts = []

    def record_fact(self, action, performed_by, entity_type, entity_id=None, changes=None, metadata=None):
        self.facts.append({
            "action": action,
            "performed_by": performed_by,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "changes": changes,
            "metadata": metadata,
        })

    def actions(self):
        return [fact["action"] for fact in self.facts]


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def deliver_notification(self, user_id, type, payload):
        self.sent.append({"user_id": user_id, "type": type, "payload": payload})

    def types(self):
        return [n["type"] for n in self.sent]


class FailingCollaborator:
    """Stands in for an audit store or mail gateway that is down."""

    def record_fact(self, *args, **kwargs):
        raise RuntimeError("audit store unavailable")

    def deliver_notification(self, *args, **kwargs):
        raise RuntimeError("notification gateway unavailable")


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
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def auditor():
    return RecordingAuditor()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def admin(db):
    user = User(email="admin@example.com", name="Admin", role=UserRole.ADMIN)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def reseller(db):
    user = User(
        email="reseller@example.com",
        name="Reseller",
        company="Partner BV",
        role=UserRole.RESELLER,
        commission_rate=Decimal("20"),
        commission_years=3,
        is_one_off_payment=False,
        is_trusted=False,
        currency="EUR",
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def other_reseller(db):
    user = User(
        email="other@example.com",
        name="Other Reseller",
        role=UserRole.RESELLER,
        commission_rate=Decimal("10"),
        commission_years=1,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def make_customer(db):
    def _make(owner, company_name="Acme Corp", status=CustomerStatus.PROSPECT):
        customer = Customer(reseller_id=owner.id, company_name=company_name, status=status)
        db.add(customer)
        db.commit()
        return customer
    return _make


@pytest.fixture
def customer(make_customer, reseller):
    return make_customer(reseller)
