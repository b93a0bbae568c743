"""
SQLAlchemy models for the Advisory Billing Service.
Defines fee schedules and their tiers, billing history, the audit event log,
and meeting notes with the tasks created from their action items.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, Numeric, Boolean, DateTime, Date,
    ForeignKey, JSON, Index
)
from sqlalchemy.orm import relationship
from database.connection import Base
from fee_calculations import (
    BILLABLE_AMOUNT_PRECISION,
    EFFECTIVE_RATE_PRECISION,
    FEE_AMOUNT_PRECISION,
    TIER_BOUND_PRECISION,
    TIER_RATE_PRECISION,
)


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def _money(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value else None


# =============================================================================
# FEE SCHEDULES
# =============================================================================

class FeeSchedule(Base):
    """
    Tiered fee schedule attached to a household, account or person.
    Only one schedule per entity is active at a time.
    """
    __tablename__ = 'fee_schedules'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    organization_id = Column(String(64), nullable=False)
    entity_type = Column(String(20), nullable=False)  # household, account, person
    entity_id = Column(String(64), nullable=False)
    name = Column(String(255))
    description = Column(Text)
    fee_type = Column(String(20), nullable=False, default='aum')
    frequency = Column(String(20), nullable=False, default='quarterly')
    billing_method = Column(String(20), nullable=False, default='arrears')
    minimum_fee = Column(Numeric(*FEE_AMOUNT_PRECISION))
    maximum_fee = Column(Numeric(*FEE_AMOUNT_PRECISION))
    effective_date = Column(Date)
    end_date = Column(Date)
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text)
    created_by = Column(String(64))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tiers = relationship(
        "FeeTier",
        back_populates="fee_schedule",
        cascade="all, delete-orphan",
        order_by="FeeTier.display_order",
    )

    __table_args__ = (
        Index('ix_fee_schedules_organization', 'organization_id'),
        Index('ix_fee_schedules_entity', 'entity_type', 'entity_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'name': self.name,
            'description': self.description,
            'fee_type': self.fee_type,
            'frequency': self.frequency,
            'billing_method': self.billing_method,
            'minimum_fee': _money(self.minimum_fee),
            'maximum_fee': _money(self.maximum_fee),
            'effective_date': _iso(self.effective_date),
            'end_date': _iso(self.end_date),
            'is_active': self.is_active,
            'notes': self.notes,
            'created_by': self.created_by,
            'tiers': [tier.to_dict() for tier in self.tiers],
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class FeeTier(Base):
    """One [min_value, max_value) band of a fee schedule."""
    __tablename__ = 'fee_tiers'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    fee_schedule_id = Column(String(36), ForeignKey('fee_schedules.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255))
    min_value = Column(Numeric(*TIER_BOUND_PRECISION), nullable=False, default=0)
    max_value = Column(Numeric(*TIER_BOUND_PRECISION))  # NULL = unbounded
    rate = Column(Numeric(*TIER_RATE_PRECISION), nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    # Relationships
    fee_schedule = relationship("FeeSchedule", back_populates="tiers")

    __table_args__ = (
        Index('ix_fee_tiers_schedule', 'fee_schedule_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'min_value': _money(self.min_value),
            'max_value': _money(self.max_value),
            'rate': float(self.rate) if self.rate is not None else None,
            'display_order': self.display_order
        }


class FeeHistory(Base):
    """Fee billed (or to be billed) for an entity over one billing period."""
    __tablename__ = 'fee_history'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    organization_id = Column(String(64), nullable=False)
    fee_schedule_id = Column(String(36), ForeignKey('fee_schedules.id', ondelete='SET NULL'))
    entity_type = Column(String(20), nullable=False)
    entity_id = Column(String(64), nullable=False)
    billing_period_start = Column(Date, nullable=False)
    billing_period_end = Column(Date, nullable=False)
    billable_amount = Column(Numeric(*BILLABLE_AMOUNT_PRECISION), nullable=False)
    fee_amount = Column(Numeric(*FEE_AMOUNT_PRECISION), nullable=False)
    effective_rate = Column(Numeric(*EFFECTIVE_RATE_PRECISION))  # basis points
    is_billed = Column(Boolean, default=False, nullable=False)
    billed_at = Column(DateTime)
    invoice_number = Column(String(100))
    notes = Column(Text)
    created_by = Column(String(64))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_fee_history_schedule', 'fee_schedule_id'),
        Index('ix_fee_history_entity', 'entity_type', 'entity_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'fee_schedule_id': self.fee_schedule_id,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'billing_period_start': _iso(self.billing_period_start),
            'billing_period_end': _iso(self.billing_period_end),
            'billable_amount': _money(self.billable_amount),
            'fee_amount': _money(self.fee_amount),
            'effective_rate': _money(self.effective_rate),
            'is_billed': self.is_billed,
            'billed_at': _iso(self.billed_at),
            'invoice_number': self.invoice_number,
            'notes': self.notes,
            'created_by': self.created_by,
            'created_at': _iso(self.created_at)
        }


# =============================================================================
# EVENT LOG
# =============================================================================

class EventLog(Base):
    """
    Audit trail of changes to billing records.
    """
    __tablename__ = 'event_log'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    organization_id = Column(String(64))
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    actor_type = Column(String(50))  # user, system
    actor_id = Column(String(64))
    entity_type = Column(String(50), nullable=False)  # fee_schedule, fee_history, meeting_notes, task
    entity_id = Column(String(64), nullable=False)
    event_type = Column(String(100), nullable=False)  # CREATED, UPDATED, DEACTIVATED, etc.
    description = Column(Text)
    extra_data = Column(JSON, default=dict)

    __table_args__ = (
        Index('ix_event_log_organization', 'organization_id'),
        Index('ix_event_log_entity', 'entity_type', 'entity_id'),
        Index('ix_event_log_timestamp', 'timestamp'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'timestamp': _iso(self.timestamp),
            'actor_type': self.actor_type,
            'actor_id': self.actor_id,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'event_type': self.event_type,
            'description': self.description,
            'metadata': self.extra_data or {}
        }


# =============================================================================
# MEETING NOTES & TASKS
# =============================================================================

class MeetingNotes(Base):
    """Notes and generated summary for one client meeting."""
    __tablename__ = 'meeting_notes'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    organization_id = Column(String(64), nullable=False)
    meeting_id = Column(String(64), nullable=False)
    raw_notes = Column(Text)
    transcript = Column(Text)
    ai_summary = Column(Text)
    key_points = Column(JSON, default=list)
    action_items = Column(JSON, default=list)
    decisions_made = Column(JSON, default=list)
    follow_up_topics = Column(JSON, default=list)
    client_concerns = Column(JSON, default=list)
    client_sentiment = Column(String(20))
    compliance_items = Column(JSON, default=list)
    requires_documentation = Column(Boolean, default=False)
    external_attendees = Column(JSON, default=list)
    manually_edited = Column(Boolean, default=False)
    ai_generated_at = Column(DateTime)
    created_by = Column(String(64))
    updated_by = Column(String(64))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_meeting_notes_meeting', 'organization_id', 'meeting_id', unique=True),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'meeting_id': self.meeting_id,
            'raw_notes': self.raw_notes,
            'transcript': self.transcript,
            'ai_summary': self.ai_summary,
            'key_points': self.key_points or [],
            'action_items': self.action_items or [],
            'decisions_made': self.decisions_made or [],
            'follow_up_topics': self.follow_up_topics or [],
            'client_concerns': self.client_concerns or [],
            'client_sentiment': self.client_sentiment,
            'compliance_items': self.compliance_items or [],
            'requires_documentation': bool(self.requires_documentation),
            'external_attendees': self.external_attendees or [],
            'manually_edited': bool(self.manually_edited),
            'ai_generated_at': _iso(self.ai_generated_at),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Task(Base):
    """Follow-up task, e.g. created from a meeting action item."""
    __tablename__ = 'tasks'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    organization_id = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    priority = Column(String(20), default='medium')  # low, medium, high, urgent
    status = Column(String(20), default='pending')   # pending, in_progress, completed
    due_date = Column(Date)
    assigned_to = Column(String(255))
    source_type = Column(String(50))  # meeting
    source_id = Column(String(64))
    created_by = Column(String(64))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_tasks_organization', 'organization_id'),
        Index('ix_tasks_source', 'source_type', 'source_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'title': self.title,
            'description': self.description,
            'priority': self.priority,
            'status': self.status,
            'due_date': _iso(self.due_date),
            'assigned_to': self.assigned_to,
            'source_type': self.source_type,
            'source_id': self.source_id,
            'created_at': _iso(self.created_at)
        }
