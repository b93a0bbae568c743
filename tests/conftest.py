"""
Pytest configuration and shared fixtures
"""
import os
import sys
import pytest
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'a3f9c1e07b5d4e2f8a6c0b9d1e7f3a5c'
    os.environ['DATABASE_URL'] = 'sqlite://'

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def app():
    """Flask app on a fresh in-memory sqlite database"""
    from app_init import create_app
    return create_app('testing')


@pytest.fixture
def client(app):
    """Flask test client"""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Session on the app's database, rolled back after the test"""
    from database.connection import get_session_factory
    session = get_session_factory()()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def org_headers():
    """Request headers scoping calls to a test firm and advisor"""
    return {'X-Organization-Id': 'firm-1', 'X-User-Id': 'advisor-1'}


@pytest.fixture
def sample_aum_schedule():
    """AUM schedule: 1% on the first million, 0.5% above"""
    return {
        'entity_type': 'household',
        'entity_id': 'hh-1001',
        'name': 'Standard AUM',
        'fee_type': 'aum',
        'frequency': 'quarterly',
        'tiers': [
            {'name': 'First $1M', 'min_value': 0, 'max_value': 1000000, 'rate': 0.01},
            {'name': 'Above $1M', 'min_value': 1000000, 'max_value': None, 'rate': 0.005}
        ]
    }


@pytest.fixture
def sample_flat_schedule():
    """Flat fee schedule: 5000 regardless of assets"""
    return {
        'entity_type': 'account',
        'entity_id': 'acct-2001',
        'name': 'Planning Retainer',
        'fee_type': 'flat',
        'frequency': 'annual',
        'tiers': [
            {'min_value': 0, 'max_value': None, 'rate': 5000}
        ]
    }


@pytest.fixture
def sample_fee_history():
    """Fee history entry for one quarter"""
    return {
        'entity_type': 'household',
        'entity_id': 'hh-1001',
        'billing_period_start': '2026-01-01',
        'billing_period_end': '2026-03-31',
        'billable_amount': 1500000,
        'fee_amount': 3125
    }


@pytest.fixture
def sample_meeting_notes():
    """Raw notes from a review meeting"""
    return (
        "Reviewed the portfolio and retirement timeline. Client is worried about "
        "tax exposure on the trust. Agreed to rebalance into bonds; next step is "
        "a follow up call in March."
    )
