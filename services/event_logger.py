"""
Event Logger Service - Audit trail for billing records.

Every change to a fee schedule, fee history record or meeting-derived task is
written to the event_log table so advisors and compliance reviewers can see
who changed a client's billing terms and when.
"""

import logging
from typing import Dict, Optional, List
from datetime import datetime

logger = logging.getLogger(__name__)

# Event types for different operations
EVENT_TYPES = {
    # CRUD Operations
    'CREATED': 'Entity was created',
    'UPDATED': 'Entity was updated',
    'DELETED': 'Entity was deleted',

    # Fee schedule lifecycle
    'DEACTIVATED': 'Fee schedule was superseded',
    'TIERS_REPLACED': 'Fee tiers were replaced',

    # Billing events
    'FEE_RECORDED': 'Fee was recorded for a billing period',
    'FEE_BILLED': 'Fee was invoiced',

    # Meeting events
    'SUMMARY_GENERATED': 'Meeting summary was generated',
    'TASKS_CREATED': 'Tasks were created from action items',
}

# Entity types
ENTITY_TYPES = ['fee_schedule', 'fee_history', 'meeting_notes', 'task']


class EventLogger:
    """Service for logging billing events to the database."""

    def __init__(self, session, organization_id: str, actor_type: str = 'system', actor_id: str = None):
        """
        Initialize the event logger.

        Args:
            session: SQLAlchemy database session
            organization_id: The organization ID for multi-tenancy
            actor_type: Type of actor (user, system)
            actor_id: ID of the actor (user ID if user, None if system)
        """
        self.session = session
        self.organization_id = organization_id
        self.actor_type = actor_type
        self.actor_id = actor_id

    def log(self, entity_type: str, entity_id: str, event_type: str,
            description: str = None, metadata: Dict = None) -> Optional[Dict]:
        """
        Log an event to the database.

        The event is written inside a SAVEPOINT. A failed audit write is
        rolled back to it and logged; the caller's pending changes and the
        session stay usable. Failures flushing the caller's own changes
        still propagate.

        Returns:
            The created event log entry as a dict, or None on failure
        """
        from database.models import EventLog

        self.session.flush()

        try:
            event = EventLog(
                organization_id=self.organization_id,
                timestamp=datetime.utcnow(),
                actor_type=self.actor_type,
                actor_id=self.actor_id,
                entity_type=entity_type,
                entity_id=entity_id,
                event_type=event_type,
                description=description or EVENT_TYPES.get(event_type, event_type),
                extra_data=metadata or {}
            )

            with self.session.begin_nested():
                self.session.add(event)

            logger.debug(f"Event logged: {event_type} on {entity_type}:{entity_id}")
            return event.to_dict()

        except Exception as e:
            logger.error(f"Failed to log event: {e}")
            return None

    def log_create(self, entity_type: str, entity_id: str, entity_data: Dict = None) -> Optional[Dict]:
        """Log a creation event."""
        return self.log(
            entity_type=entity_type,
            entity_id=entity_id,
            event_type='CREATED',
            description=f"New {entity_type} created",
            metadata={'data': entity_data} if entity_data else None
        )

    def log_update(self, entity_type: str, entity_id: str, changes: Dict = None) -> Optional[Dict]:
        """Log an update event with change tracking."""
        return self.log(
            entity_type=entity_type,
            entity_id=entity_id,
            event_type='UPDATED',
            description=f"{entity_type.capitalize()} was updated",
            metadata={'changes': changes} if changes else None
        )

    def log_delete(self, entity_type: str, entity_id: str, entity_data: Dict = None) -> Optional[Dict]:
        """Log a deletion event."""
        return self.log(
            entity_type=entity_type,
            entity_id=entity_id,
            event_type='DELETED',
            description=f"{entity_type.capitalize()} was deleted",
            metadata={'deleted_data': entity_data} if entity_data else None
        )

    def get_entity_history(self, entity_type: str, entity_id: str,
                           limit: int = 50) -> List[Dict]:
        """Get the event history for a specific entity."""
        from database.models import EventLog

        events = self.session.query(EventLog).filter(
            EventLog.organization_id == self.organization_id,
            EventLog.entity_type == entity_type,
            EventLog.entity_id == entity_id
        ).order_by(EventLog.timestamp.desc()).limit(limit).all()

        return [e.to_dict() for e in events]


def get_event_logger(session, organization_id: str, user_id: str = None) -> EventLogger:
    """
    Factory function to create an EventLogger instance.

    Args:
        session: SQLAlchemy database session
        organization_id: Organization ID
        user_id: Optional user ID if the actor is a user

    Returns:
        EventLogger instance
    """
    actor_type = 'user' if user_id else 'system'
    return EventLogger(session, organization_id, actor_type, user_id)
