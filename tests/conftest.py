"""
Pytest configuration and shared fixtures for HazCom compliance core tests.

Provides:
- In-memory test database and repositories
- Reference catalog and configuration
- Chemical / employee record builders pinned to a fixed clock
"""

import pytest
from datetime import datetime, timedelta
from typing import Any, Dict, Generator, List
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from hazcom.catalog import clear_catalog_cache, load_catalog
from hazcom.compliance.training import MODULE_IDS
from hazcom.database import (
    Base,
    ChemicalRepository,
    DatabaseManager,
    EmployeeRepository,
    create_test_db,
)
from hazcom.matching import LabelReconciler, ReferenceMatcher
from hazcom.normalization.text_normalizer import TextNormalizer
from hazcom.utils.config_manager import ConfigManager


# Every time-dependent test runs against this instant
FIXED_NOW = datetime(2026, 3, 15, 12, 0)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture(scope="function")
def test_db_engine():
    """Create a fresh in-memory SQLite database engine for each test."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """
    Provide a transactional database session for testing.

    Each test gets a clean session that rolls back after completion.
    """
    SessionLocal = sessionmaker(bind=test_db_engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def test_db() -> Generator[DatabaseManager, None, None]:
    """In-memory DatabaseManager with all tables created."""
    db = create_test_db()
    yield db
    db.close()


@pytest.fixture
def chemical_repo(test_db) -> ChemicalRepository:
    return ChemicalRepository(test_db)


@pytest.fixture
def employee_repo(test_db) -> EmployeeRepository:
    return EmployeeRepository(test_db)


# ============================================================================
# CATALOG / MATCHING FIXTURES
# ============================================================================

@pytest.fixture
def config() -> ConfigManager:
    """Configuration built from the in-code defaults."""
    return ConfigManager()


@pytest.fixture
def sample_catalog() -> List[Dict[str, Any]]:
    """The bundled reference catalog (fresh copy per test)."""
    clear_catalog_cache()
    return load_catalog()


@pytest.fixture
def normalizer() -> TextNormalizer:
    return TextNormalizer()


@pytest.fixture
def matcher(normalizer) -> ReferenceMatcher:
    return ReferenceMatcher(normalizer=normalizer)


@pytest.fixture
def reconciler(sample_catalog, config) -> LabelReconciler:
    return LabelReconciler(catalog=sample_catalog, config=config)


# ============================================================================
# RECORD BUILDERS
# ============================================================================

def make_chemical(product_name: str = "Test Solvent", **overrides) -> Dict[str, Any]:
    """
    Build a fully compliant chemical record.

    Current SDS, labeled and documented; override fields to introduce
    deficiencies.
    """
    record = {
        'product_name': product_name,
        'manufacturer': 'Acme Chemical Co.',
        'signal_word': 'WARNING',
        'storage_requirements': 'Store in a cool, dry place.',
        'first_aid': {'eyes': 'Flush with water for 15 minutes.', 'skin': None,
                      'inhalation': None, 'ingestion': None},
        'ppe_required': {'eyes': None, 'hands': 'Nitrile gloves', 'respiratory': None, 'body': None},
        'sds_status': 'current',
        'sds_url': 'https://example.com/sds/test-solvent.pdf',
        'labeled': True,
        'location': 'Main Shop',
    }
    record.update(overrides)
    return record


def make_employee(name: str = "Pat Smith",
                  modules: int = 7,
                  days_since_training: float = 100,
                  **overrides) -> Dict[str, Any]:
    """
    Build an employee record relative to FIXED_NOW.

    Args:
        name: Employee name
        modules: Number of curriculum modules completed (first N ids)
        days_since_training: Age of last_training in days (None for no date)
    """
    record = {
        'name': name,
        'role': 'Technician',
        'completed_modules': MODULE_IDS[:modules],
        'last_training': (
            None if days_since_training is None
            else FIXED_NOW - timedelta(days=days_since_training)
        ),
        'status': 'current',
    }
    record.update(overrides)
    return record


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
