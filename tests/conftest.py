from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import storage
from catalogs import CatalogLookup, InMemoryCatalog
from classification import Classifier
from validation import Validator

TODAY = date(2026, 10, 19)


class MemoryStore:
    """Record sink + audit recorder that keeps everything in lists."""

    def __init__(self):
        self.records = []
        self.alerts = []
        self.audit = []

    def save_evaluation(self, record, alert):
        self.records.append(record)
        self.alerts.append(alert)

    def record_audit(self, entry):
        self.audit.append(entry)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def empty_catalog() -> InMemoryCatalog:
    """A catalog with nothing configured, so every lookup uses the built-in tables."""
    return InMemoryCatalog()


@pytest.fixture
def lookup(empty_catalog) -> CatalogLookup:
    return CatalogLookup(empty_catalog)


@pytest.fixture
def validator(lookup) -> Validator:
    return Validator(lookup)


@pytest.fixture
def classifier(lookup) -> Classifier:
    return Classifier(lookup)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def db(monkeypatch):
    """
    In-memory SQLite swapped in for the module-level engine.
    StaticPool keeps a single connection so the schema survives between calls.
    """
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    monkeypatch.setattr(storage, "_engine", engine)
    storage.init_db()
    yield engine
    engine.dispose()
