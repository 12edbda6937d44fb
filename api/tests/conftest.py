# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import copy
import os
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'case_lifecycle_test'

from config import EngineSettings
from domain.errors import ReferenceCollisionException
from models.commands import parse_command
from models.entities import ActorContext, Case, CaseFields
from models.enums import ActorRole
from services.case_engine import CaseEngine
from services.notifications import NotificationEmitter


class InMemoryCaseStore:
    """
    Case record store kept in process memory.

    Mirrors the MongoDBService contract: documents are stored in their
    MongoDB shape, writes are version-checked, and counters increment
    atomically.
    """

    def __init__(self, admin_ids: Optional[List[str]] = None):
        self.cases: Dict[str, Dict[str, Any]] = {}
        self.counters: Dict[str, int] = {}
        self.notifications: List[Dict[str, Any]] = []
        self.admin_ids = list(admin_ids if admin_ids is not None else ["admin-1", "admin-2"])
        self.lost_races = 0
        self.replace_calls = 0
        self.healthy = True
        self._lock = threading.Lock()

    def health_check(self) -> Dict[str, Any]:
        if self.healthy:
            return {"status": "healthy", "database": "memory"}
        return {"status": "unhealthy", "database": "memory", "error": "down"}

    def find_case(self, case_id: str) -> Optional[Case]:
        with self._lock:
            document = self.cases.get(case_id)
            if document is None:
                return None
            return Case.from_document(copy.deepcopy(document))

    def insert_case(self, case: Case) -> Case:
        with self._lock:
            if any(doc["caseRef"] == case.case_ref for doc in self.cases.values()):
                raise ReferenceCollisionException(
                    f"Case reference {case.case_ref} already exists",
                    case_ref=case.case_ref
                )
            self.cases[case.id] = case.to_document()
        return case

    def replace_case(self, case: Case, expected_version: int) -> bool:
        with self._lock:
            self.replace_calls += 1
            stored = self.cases.get(case.id)
            if stored is None or stored["version"] != expected_version:
                return False
            if self.lost_races > 0:
                # Another writer gets there first
                self.lost_races -= 1
                stored["version"] += 1
                return False
            self.cases[case.id] = case.to_document()
            return True

    def delete_case(self, case_id: str) -> bool:
        with self._lock:
            return self.cases.pop(case_id, None) is not None

    def increment_counter(self, key: str) -> int:
        with self._lock:
            self.counters[key] = self.counters.get(key, 0) + 1
            return self.counters[key]

    def find_admin_ids(self) -> List[str]:
        return list(self.admin_ids)

    def insert_notifications(self, documents: List[Dict[str, Any]]) -> int:
        with self._lock:
            self.notifications.extend(documents)
        return len(documents)

    def notifications_for(self, recipient_id: str) -> List[Dict[str, Any]]:
        return [n for n in self.notifications if n["recipientId"] == recipient_id]


class TickingClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def settings():
    """Engine settings with retries that never sleep."""
    return EngineSettings(reference_retry_delay=0.0, allow_public_view=True)


@pytest.fixture
def store():
    """In-memory case record store."""
    return InMemoryCaseStore()


@pytest.fixture
def clock():
    """Deterministic clock starting in 2025."""
    return TickingClock()


@pytest.fixture
def emitter(store):
    """Notification emitter writing to the in-memory store."""
    return NotificationEmitter(store)


@pytest.fixture
def engine(store, settings, emitter, clock):
    """Case engine over the in-memory store."""
    return CaseEngine(store, settings, emitter=emitter, clock=clock, sleep=lambda seconds: None)


@pytest.fixture
def owner():
    """Verified case owner."""
    return ActorContext(actor_id="user-1", role=ActorRole.USER, verified=True, name="Ada Owner")


@pytest.fixture
def other_user():
    """Verified user who does not own the case."""
    return ActorContext(actor_id="user-2", role=ActorRole.USER, verified=True)


@pytest.fixture
def admin():
    """Administrator."""
    return ActorContext(actor_id="admin-1", role=ActorRole.ADMIN, verified=True)


@pytest.fixture
def staff():
    """Staff member; handles cases like an administrator."""
    return ActorContext(actor_id="staff-1", role=ActorRole.STAFF, verified=True)


@pytest.fixture
def anonymous():
    """Caller without an identity."""
    return ActorContext()


@pytest.fixture
def dispute_fields():
    """Complete fields for a dispute case submission."""
    return CaseFields(
        title="Refund never arrived",
        category="vendor_and_service",
        desired_action="mediation",
        narrative="I paid for a washing machine that was never delivered.",
        contact_number="+44 20 7946 0000",
        vendor_details={"name": "Spin Cycle Ltd", "contact": "sales@spincycle.example"}
    )


@pytest.fixture
def aid_fields():
    """Complete fields for an aid initiative application."""
    return CaseFields(
        title="Community pantry",
        initiative_category="food_security",
        narrative="Weekly food distribution for forty families.",
        applicant_name="Grace Hopper",
        applicant_email="grace@example.org",
        applicant_phone="+1 555 0100",
        beneficiary_count=40
    )


@pytest.fixture
def submitted_case(engine, owner, dispute_fields):
    """A dispute case in pending_review."""
    return engine.create_case("dispute_case", owner, fields=dispute_fields)


@pytest.fixture
def public_case(engine, submitted_case, admin):
    """The submitted case after an administrator put it on the public feed."""
    command = parse_command("publish", {"isPublic": True, "publicNarrative": "A refund that never arrived."})
    return engine.transition(submitted_case.id, command, admin)


@pytest.fixture
def meeting_date():
    return datetime(2025, 4, 10, tzinfo=timezone.utc)


def actor_headers(actor: ActorContext) -> Dict[str, str]:
    """Gateway headers identifying an actor."""
    headers = {}
    if actor.actor_id:
        headers["X-Actor-Id"] = actor.actor_id
        headers["X-Actor-Role"] = str(actor.role)
        headers["X-Actor-Verified"] = "true" if actor.verified else "false"
    return headers


@pytest.fixture
def app(store, settings, emitter):
    """Flask application wired to the in-memory store."""
    from app import create_app

    application = create_app(settings=settings, mongodb_service=store, emitter=emitter)
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def headers_for():
    """Build gateway headers for an actor."""
    return actor_headers
