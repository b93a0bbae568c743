"""
Database package for the Advisory Billing Service.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    configure_database,
    get_engine,
    get_session_factory,
    get_db_session,
    init_db,
    check_db_connection,
    is_db_configured
)

from database.models import (
    FeeSchedule,
    FeeTier,
    FeeHistory,
    EventLog,
    MeetingNotes,
    Task
)

__all__ = [
    # Connection
    'Base',
    'configure_database',
    'get_engine',
    'get_session_factory',
    'get_db_session',
    'init_db',
    'check_db_connection',
    'is_db_configured',
    # Models
    'FeeSchedule',
    'FeeTier',
    'FeeHistory',
    'EventLog',
    'MeetingNotes',
    'Task'
]
