"""
Pytest Configuration and Fixtures

Every test gets a fresh in-memory MongoDB (mongomock) patched into the
global client, with multi-document transactions switched off.
"""
import mongomock
import pytest

from ticketflow.config.settings import settings
from ticketflow.domain.enums import UserRole
from ticketflow.domain.models import ActorContext, Workflow
from ticketflow.repositories import mongo_client
from ticketflow.services.workflow_service import WorkflowService

from .helpers import TENANT_ID, make_actor


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch):
    """Fresh mongomock database for each test"""
    client = mongomock.MongoClient(tz_aware=True)
    database = client["ticketflow_test"]
    monkeypatch.setattr(mongo_client, "_client", client)
    monkeypatch.setattr(mongo_client, "_database", database)
    monkeypatch.setattr(settings, "mongo_use_transactions", False)
    yield database
    client.close()


@pytest.fixture
def admin() -> ActorContext:
    return make_actor(UserRole.ADMIN)


@pytest.fixture
def manager() -> ActorContext:
    return make_actor(UserRole.SUPPORT_MANAGER)


@pytest.fixture
def staff() -> ActorContext:
    return make_actor(UserRole.SUPPORT_STAFF)


@pytest.fixture
def end_user() -> ActorContext:
    return make_actor(UserRole.END_USER)


@pytest.fixture
def workflow_service() -> WorkflowService:
    return WorkflowService()


@pytest.fixture
def system_default(workflow_service) -> Workflow:
    """Seeded, ACTIVE system default workflow"""
    return workflow_service.ensure_system_default(TENANT_ID)
