import os

# Settings read the environment at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("EVENTS_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import copy
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from app_lifecycle.core.config import Settings
from app_lifecycle.core.database import APPLICATIONS, POSTS
from app_lifecycle.core.security import create_access_token
from app_lifecycle.core.store import DocumentStore
from app_lifecycle.models.candidate import FreelancerCandidate, TeacherCandidate
from app_lifecycle.services.lifecycle_service import ApplicationLifecycleService
from app_lifecycle.services.notification_sink import StoreNotificationSink

# Constants for testing
TEACHER_ID = "665f1a2b3c4d5e6f7a8b9c01"
OTHER_TEACHER_ID = "665f1a2b3c4d5e6f7a8b9c02"
FREELANCER_ID = "665f1a2b3c4d5e6f7a8b9c03"
GUARDIAN_ID = "665f1a2b3c4d5e6f7a8b9c10"
ADMIN_ID = "665f1a2b3c4d5e6f7a8b9c20"
POST_CODE = "P-010125-00"


# =============================================================================
# In-memory document store
# =============================================================================


def _matches(document: dict, filter: dict) -> bool:
    for key, condition in filter.items():
        value = document.get(key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            for operator, operand in condition.items():
                if operator == "$ne" and value == operand:
                    return False
                if operator == "$in" and value not in operand:
                    return False
                if operator == "$exists" and (key in document) != bool(operand):
                    return False
        elif isinstance(value, list) and not isinstance(condition, list):
            if condition not in value:
                return False
        elif value != condition:
            return False
    return True


def _apply_update(document: dict, update: dict) -> None:
    for field, value in update.get("$set", {}).items():
        document[field] = copy.deepcopy(value)
    for field in update.get("$unset", {}):
        document.pop(field, None)
    for field, value in update.get("$addToSet", {}).items():
        values = document.setdefault(field, [])
        if value not in values:
            values.append(value)
    for field, value in update.get("$pull", {}).items():
        if isinstance(value, dict) and "$in" in value:
            document[field] = [item for item in document.get(field, []) if item not in value["$in"]]
        else:
            document[field] = [item for item in document.get(field, []) if item != value]


class InMemoryDocumentStore(DocumentStore):
    """
    DocumentStore double with the subset of MongoDB semantics the service uses:
    unique indexes, the handful of query/update operators, and transactions that
    roll back every write on error.
    """

    UNIQUE_KEYS = {
        APPLICATIONS: ("post_id", "candidate_id"),
        POSTS: ("post_id",),
    }

    def __init__(self):
        self.collections: dict[str, list[dict]] = {}
        self.transactions_started = 0
        self._in_transaction = False
        self._failures: list[tuple[str, str, object, Exception]] = []

    def fail(self, operation: str, collection: str, error: Exception, when=None) -> None:
        """Make ``operation`` (find, insert_one, update_one, delete_many) on ``collection`` raise ``error`` (optionally only when ``when(arg)``)."""
        self._failures.append((operation, collection, when, error))

    def _check_failure(self, operation: str, collection: str, argument) -> None:
        for failing_operation, failing_collection, when, error in self._failures:
            if failing_operation == operation and failing_collection == collection:
                if when is None or when(argument):
                    raise error

    def _collection(self, name: str) -> list[dict]:
        return self.collections.setdefault(name, [])

    def _check_unique(self, collection: str, candidate: dict) -> None:
        keys = self.UNIQUE_KEYS.get(collection)
        if not keys:
            return
        for document in self._collection(collection):
            if document["_id"] == candidate["_id"]:
                continue
            if all(document.get(key) == candidate.get(key) for key in keys):
                raise DuplicateKeyError("E11000 duplicate key error", code=11000)

    def seed(self, collection: str, document: dict) -> dict:
        document = copy.deepcopy(document)
        document.setdefault("_id", ObjectId())
        self._collection(collection).append(document)
        return document

    def all(self, collection: str) -> list[dict]:
        return copy.deepcopy(self._collection(collection))

    async def find_one(self, collection, filter):
        for document in self._collection(collection):
            if _matches(document, filter):
                return copy.deepcopy(document)
        return None

    async def find(self, collection, filter, sort=None, limit=None):
        self._check_failure("find", collection, filter)
        documents = [copy.deepcopy(d) for d in self._collection(collection) if _matches(d, filter)]
        for field, direction in reversed(sort or []):
            documents.sort(
                key=lambda d: (d.get(field) is not None, d.get(field)), reverse=direction < 0
            )
        return documents[:limit] if limit else documents

    async def insert_one(self, collection, document):
        self._check_failure("insert_one", collection, document)
        document = copy.deepcopy(document)
        document.setdefault("_id", ObjectId())
        self._check_unique(collection, document)
        self._collection(collection).append(document)
        return copy.deepcopy(document)

    async def update_one(self, collection, filter, update):
        self._check_failure("update_one", collection, filter)
        for index, document in enumerate(self._collection(collection)):
            if _matches(document, filter):
                updated = copy.deepcopy(document)
                _apply_update(updated, update)
                self._check_unique(collection, updated)
                self._collection(collection)[index] = updated
                return 1
        return 0

    async def update_many(self, collection, filter, update):
        matched = 0
        for index, document in enumerate(self._collection(collection)):
            if _matches(document, filter):
                updated = copy.deepcopy(document)
                _apply_update(updated, update)
                self._collection(collection)[index] = updated
                matched += 1
        return matched

    async def delete_many(self, collection, filter):
        self._check_failure("delete_many", collection, filter)
        before = self._collection(collection)
        kept = [document for document in before if not _matches(document, filter)]
        self.collections[collection] = kept
        return len(before) - len(kept)

    async def count(self, collection, filter):
        return len([d for d in self._collection(collection) if _matches(d, filter)])

    @asynccontextmanager
    async def transaction(self):
        if self._in_transaction:
            yield
            return

        self.transactions_started += 1
        snapshot = copy.deepcopy(self.collections)
        self._in_transaction = True
        try:
            yield
        except Exception:
            self.collections = snapshot
            raise
        finally:
            self._in_transaction = False


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def atomic_settings():
    return Settings(lifecycle_atomic_transitions=True, lifecycle_decline_archive_policy="auto_only")


@pytest.fixture
def best_effort_settings():
    return Settings(lifecycle_atomic_transitions=False, lifecycle_decline_archive_policy="auto_only")


@pytest.fixture
def archive_all_settings():
    return Settings(lifecycle_atomic_transitions=True, lifecycle_decline_archive_policy="all")


@pytest.fixture
def events():
    """Mock the lifecycle event publisher."""
    publisher = AsyncMock()
    publisher.publish_transition = AsyncMock()
    return publisher


@pytest.fixture
def notifications(store):
    return StoreNotificationSink(store)


@pytest.fixture
def service(store, notifications, events, atomic_settings):
    return ApplicationLifecycleService(store, notifications, events, atomic_settings)


@pytest.fixture
def make_service(store, notifications, events):
    def factory(settings):
        return ApplicationLifecycleService(store, notifications, events, settings)

    return factory


# Test Data Fixtures
@pytest.fixture
def teacher():
    return TeacherCandidate(id=TEACHER_ID, name="Asha Rahman", custom_id="T001")


@pytest.fixture
def other_teacher():
    return TeacherCandidate(id=OTHER_TEACHER_ID, name="Tanvir Hasan", custom_id="T002")


@pytest.fixture
def freelancer():
    return FreelancerCandidate(id=FREELANCER_ID, name="Mira Das", custom_id="F001")


@pytest.fixture
def post(store):
    """An open post with code P-010125-00."""
    return store.seed(
        POSTS,
        {
            "post_id": POST_CODE,
            "subject": "Mathematics",
            "class_name": "Class 8",
            "status": "open",
            "applicants": [],
            "posted_by": GUARDIAN_ID,
            "created_at": datetime(2025, 1, 1),
        },
    )


@pytest.fixture
def seed_application(store):
    """Insert an application directly; ``minutes`` orders applied_at."""

    def factory(post_document, candidate_id, status="pending", minutes=0, **fields):
        applied_at = datetime(2025, 1, 2) + timedelta(minutes=minutes)
        document = {
            "post_id": post_document["_id"],
            "candidate_id": candidate_id,
            "candidate_role": "teacher",
            "candidate_name": f"Candidate {candidate_id[-2:]}",
            "status": status,
            "applied_at": applied_at,
            "updated_at": applied_at,
            "auto_declined": False,
            **fields,
        }
        return store.seed(APPLICATIONS, document)

    return factory


# =============================================================================
# API fixtures
# =============================================================================


def bearer(user_id: str, role: str, **claims) -> dict:
    token = create_access_token({"id": user_id, "role": role, **claims})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def teacher_headers():
    return bearer(TEACHER_ID, "teacher", name="Asha Rahman", custom_id="T001")


@pytest.fixture
def other_teacher_headers():
    return bearer(OTHER_TEACHER_ID, "teacher", name="Tanvir Hasan", custom_id="T002")


@pytest.fixture
def guardian_headers():
    return bearer(GUARDIAN_ID, "guardian", name="Guardian")


@pytest.fixture
def admin_headers():
    return bearer(ADMIN_ID, "admin", name="Admin")


@pytest.fixture
def test_client(store, events):
    """Create a test client for FastAPI backed by the in-memory store."""
    from app_lifecycle.main import app
    from app_lifecycle.routers.dependencies import get_document_store, get_event_publisher

    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_event_publisher] = lambda: events
    client = TestClient(app)

    yield client

    # Clean up after test
    app.dependency_overrides.clear()
