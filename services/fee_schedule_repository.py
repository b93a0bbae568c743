"""
Fee Schedule Repository - Database access layer for advisory fee schedules.
Handles fee schedules with their tiers, fee calculation against a stored
schedule, and the fee history billed per household, account or person.
All changes are written to the event_log table.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from database.models import FeeHistory, FeeSchedule, FeeTier
from errors import ConflictError, NotFoundError, ValidationError
from fee_calculations import (
    EFFECTIVE_RATE_PRECISION,
    FeeCalculationResult,
    Tier,
    calculate_fee,
    check_precision,
    effective_rate_bps,
    validate_tiers,
)
from services.event_logger import get_event_logger
from validators import (
    parse_entity_type,
    validate_fee_history_request,
    validate_fee_schedule_request,
)

logger = logging.getLogger(__name__)

CONFLICT_POLICIES = ('replace', 'reject')

SCHEDULE_FIELDS = [
    'name', 'description', 'fee_type', 'frequency', 'billing_method',
    'minimum_fee', 'maximum_fee', 'effective_date', 'end_date', 'notes', 'is_active'
]


def _jsonable(value):
    """Audit metadata is stored as JSON."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class FeeScheduleRepository:
    """Repository for fee schedule and fee history operations with event logging."""

    def __init__(self, session: Session, organization_id: str, user_id: str = None,
                 conflict_policy: str = 'replace'):
        if conflict_policy not in CONFLICT_POLICIES:
            raise ValueError(f"Unknown conflict policy: {conflict_policy}")
        self.session = session
        self.organization_id = organization_id
        self.user_id = user_id
        self.conflict_policy = conflict_policy
        self.events = get_event_logger(session, organization_id, user_id)

    # =========================================================================
    # FEE SCHEDULES
    # =========================================================================

    def _get_schedule_model(self, fee_schedule_id: str) -> FeeSchedule:
        schedule = self.session.query(FeeSchedule).filter(
            FeeSchedule.id == fee_schedule_id,
            FeeSchedule.organization_id == self.organization_id
        ).first()
        if not schedule:
            raise NotFoundError(f"Fee schedule {fee_schedule_id} not found")
        return schedule

    def _active_schedules(self, entity_type: str, entity_id: str, exclude_id: str = None):
        query = self.session.query(FeeSchedule).filter(
            FeeSchedule.organization_id == self.organization_id,
            FeeSchedule.entity_type == entity_type,
            FeeSchedule.entity_id == entity_id,
            FeeSchedule.is_active == True  # noqa: E712
        )
        if exclude_id:
            query = query.filter(FeeSchedule.id != exclude_id)
        return query.all()

    def _enforce_single_active(self, entity_type: str, entity_id: str, exclude_id: str = None):
        """Apply the conflict policy before a schedule becomes active for an entity."""
        current = self._active_schedules(entity_type, entity_id, exclude_id)
        if not current:
            return

        if self.conflict_policy == 'reject':
            raise ConflictError(
                f"An active fee schedule already exists for {entity_type} {entity_id}",
                field='entity_id'
            )

        for schedule in current:
            schedule.is_active = False
            schedule.updated_at = datetime.utcnow()
            self.events.log(
                entity_type='fee_schedule',
                entity_id=schedule.id,
                event_type='DEACTIVATED',
                description=f"Fee schedule superseded for {entity_type} {entity_id}"
            )
            logger.info(f"Deactivated fee schedule: {schedule.id}")

    @staticmethod
    def _build_tiers(tiers: List[Tier]) -> List[FeeTier]:
        return [
            FeeTier(
                name=tier.name,
                min_value=tier.min_value,
                max_value=tier.max_value,
                rate=tier.rate,
                display_order=index,
            )
            for index, tier in enumerate(tiers)
        ]

    @staticmethod
    def _to_tiers(schedule: FeeSchedule) -> List[Tier]:
        return [
            Tier(
                min_value=Decimal(tier.min_value),
                max_value=None if tier.max_value is None else Decimal(tier.max_value),
                rate=Decimal(tier.rate),
                name=tier.name,
            )
            for tier in schedule.tiers
        ]

    def create_fee_schedule(self, data: Dict) -> Dict:
        """Create a fee schedule with its tiers."""
        cleaned = validate_fee_schedule_request(data)
        validate_tiers(cleaned['tiers'], cleaned['fee_type'])

        is_active = cleaned.get('is_active', True)
        if is_active:
            self._enforce_single_active(cleaned['entity_type'], cleaned['entity_id'])

        schedule = FeeSchedule(
            organization_id=self.organization_id,
            entity_type=cleaned['entity_type'],
            entity_id=cleaned['entity_id'],
            name=cleaned.get('name'),
            description=cleaned.get('description'),
            fee_type=cleaned['fee_type'],
            frequency=cleaned.get('frequency') or 'quarterly',
            billing_method=cleaned.get('billing_method') or 'arrears',
            minimum_fee=cleaned.get('minimum_fee'),
            maximum_fee=cleaned.get('maximum_fee'),
            effective_date=cleaned.get('effective_date') or date.today(),
            end_date=cleaned.get('end_date'),
            is_active=is_active,
            notes=cleaned.get('notes'),
            created_by=self.user_id,
            tiers=self._build_tiers(cleaned['tiers'])
        )
        self.session.add(schedule)
        self.session.flush()

        self.events.log_create('fee_schedule', schedule.id, {
            'entity_type': schedule.entity_type,
            'entity_id': schedule.entity_id,
            'fee_type': schedule.fee_type,
            'tier_count': len(schedule.tiers)
        })

        logger.info(f"Created fee schedule: {schedule.id}")
        return schedule.to_dict()

    def get_fee_schedule(self, fee_schedule_id: str) -> Dict:
        """Get a fee schedule by ID."""
        return self._get_schedule_model(fee_schedule_id).to_dict()

    def list_fee_schedules(self, entity_type: str = None, entity_id: str = None,
                           active_only: bool = False, limit: int = None,
                           offset: int = None) -> Dict[str, Any]:
        """List fee schedules, newest first."""
        query = self.session.query(FeeSchedule).filter(
            FeeSchedule.organization_id == self.organization_id
        )
        if entity_type:
            query = query.filter(FeeSchedule.entity_type == parse_entity_type(entity_type))
        if entity_id:
            query = query.filter(FeeSchedule.entity_id == entity_id)
        if active_only:
            query = query.filter(FeeSchedule.is_active == True)  # noqa: E712

        total = query.count()
        query = query.order_by(FeeSchedule.created_at.desc(), FeeSchedule.id)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)

        return {
            'fee_schedules': [s.to_dict() for s in query.all()],
            'total': total
        }

    def get_entity_fee_schedule(self, entity_type: str, entity_id: str) -> Optional[Dict]:
        """Get the active fee schedule for a household, account or person."""
        schedule = self.session.query(FeeSchedule).filter(
            FeeSchedule.organization_id == self.organization_id,
            FeeSchedule.entity_type == parse_entity_type(entity_type),
            FeeSchedule.entity_id == entity_id,
            FeeSchedule.is_active == True  # noqa: E712
        ).order_by(FeeSchedule.created_at.desc()).first()
        return schedule.to_dict() if schedule else None

    def update_fee_schedule(self, fee_schedule_id: str, data: Dict) -> Dict:
        """Update a fee schedule. Supplied tiers replace the existing ones."""
        schedule = self._get_schedule_model(fee_schedule_id)
        cleaned = validate_fee_schedule_request(data, partial=True)

        fee_type = cleaned.get('fee_type', schedule.fee_type)
        if 'tiers' in cleaned:
            validate_tiers(cleaned['tiers'], fee_type)
        elif 'fee_type' in cleaned:
            # Existing tiers must still form a valid partition for the new type
            validate_tiers(self._to_tiers(schedule), fee_type)

        minimum_fee = cleaned.get('minimum_fee', schedule.minimum_fee)
        maximum_fee = cleaned.get('maximum_fee', schedule.maximum_fee)
        if minimum_fee is not None and maximum_fee is not None and minimum_fee > maximum_fee:
            raise ValidationError("minimum_fee cannot exceed maximum_fee", field='minimum_fee')

        if cleaned.get('is_active') and not schedule.is_active:
            self._enforce_single_active(schedule.entity_type, schedule.entity_id, exclude_id=schedule.id)

        changes = {}
        for key in SCHEDULE_FIELDS:
            if key in cleaned:
                old_value = getattr(schedule, key)
                new_value = cleaned[key]
                if old_value != new_value:
                    changes[key] = {'old': _jsonable(old_value), 'new': _jsonable(new_value)}
                setattr(schedule, key, new_value)

        if 'tiers' in cleaned:
            schedule.tiers = self._build_tiers(cleaned['tiers'])
            self.events.log(
                entity_type='fee_schedule',
                entity_id=schedule.id,
                event_type='TIERS_REPLACED',
                metadata={'tier_count': len(cleaned['tiers'])}
            )

        schedule.updated_at = datetime.utcnow()
        self.session.flush()

        if changes:
            self.events.log_update('fee_schedule', schedule.id, changes)

        logger.info(f"Updated fee schedule: {schedule.id}")
        return schedule.to_dict()

    def delete_fee_schedule(self, fee_schedule_id: str) -> bool:
        """Delete a fee schedule and its tiers."""
        schedule = self._get_schedule_model(fee_schedule_id)
        snapshot = {
            'entity_type': schedule.entity_type,
            'entity_id': schedule.entity_id,
            'fee_type': schedule.fee_type
        }

        self.session.delete(schedule)
        self.session.flush()

        self.events.log_delete('fee_schedule', fee_schedule_id, snapshot)
        logger.info(f"Deleted fee schedule: {fee_schedule_id}")
        return True

    def get_fee_schedule_events(self, fee_schedule_id: str, limit: int = 50) -> List[Dict]:
        """Audit trail of a fee schedule, newest first. Kept after the schedule is deleted."""
        events = self.events.get_entity_history('fee_schedule', fee_schedule_id, limit=limit)
        if not events:
            self._get_schedule_model(fee_schedule_id)
        return events

    # =========================================================================
    # FEE CALCULATION
    # =========================================================================

    def calculate_fee(self, fee_schedule_id: str, billable_amount: Any) -> FeeCalculationResult:
        """Calculate the fee a stored schedule charges on a billable amount."""
        schedule = self._get_schedule_model(fee_schedule_id)
        return calculate_fee(
            schedule.fee_type,
            self._to_tiers(schedule),
            billable_amount,
            minimum_fee=schedule.minimum_fee,
            maximum_fee=schedule.maximum_fee,
            frequency=schedule.frequency,
        )

    # =========================================================================
    # FEE HISTORY
    # =========================================================================

    def record_fee_history(self, data: Dict) -> Dict:
        """Record the fee for one billing period."""
        cleaned = validate_fee_history_request(data)

        if cleaned['fee_schedule_id']:
            self._get_schedule_model(cleaned['fee_schedule_id'])

        effective_rate = cleaned['effective_rate']
        if effective_rate is None:
            effective_rate = check_precision(
                effective_rate_bps(cleaned['fee_amount'], cleaned['billable_amount']),
                'effective_rate', EFFECTIVE_RATE_PRECISION
            )

        entry = FeeHistory(
            organization_id=self.organization_id,
            fee_schedule_id=cleaned['fee_schedule_id'],
            entity_type=cleaned['entity_type'],
            entity_id=cleaned['entity_id'],
            billing_period_start=cleaned['billing_period_start'],
            billing_period_end=cleaned['billing_period_end'],
            billable_amount=cleaned['billable_amount'],
            fee_amount=cleaned['fee_amount'],
            effective_rate=effective_rate,
            invoice_number=cleaned['invoice_number'],
            notes=cleaned['notes'],
            created_by=self.user_id
        )
        self.session.add(entry)
        self.session.flush()

        self.events.log(
            entity_type='fee_history',
            entity_id=entry.id,
            event_type='FEE_RECORDED',
            description=f"Fee recorded for {entry.entity_type} {entry.entity_id}",
            metadata={
                'fee_amount': _jsonable(entry.fee_amount),
                'billing_period_end': _jsonable(entry.billing_period_end)
            }
        )

        logger.info(f"Recorded fee history: {entry.id}")
        return entry.to_dict()

    def get_fee_history(self, entity_type: str, entity_id: str, limit: int = 12) -> List[Dict]:
        """Fee history for an entity, most recent billing period first."""
        entries = self.session.query(FeeHistory).filter(
            FeeHistory.organization_id == self.organization_id,
            FeeHistory.entity_type == parse_entity_type(entity_type),
            FeeHistory.entity_id == entity_id
        ).order_by(
            FeeHistory.billing_period_end.desc(),
            FeeHistory.created_at.desc()
        ).limit(limit).all()
        return [e.to_dict() for e in entries]

    def mark_fee_as_billed(self, history_id: str, invoice_number: str = None) -> Dict:
        """Mark a fee history entry as invoiced."""
        entry = self.session.query(FeeHistory).filter(
            FeeHistory.id == history_id,
            FeeHistory.organization_id == self.organization_id
        ).first()
        if not entry:
            raise NotFoundError(f"Fee history {history_id} not found")

        entry.is_billed = True
        entry.billed_at = datetime.utcnow()
        if invoice_number:
            entry.invoice_number = invoice_number
        self.session.flush()

        self.events.log(
            entity_type='fee_history',
            entity_id=entry.id,
            event_type='FEE_BILLED',
            metadata={'invoice_number': entry.invoice_number}
        )

        logger.info(f"Marked fee history as billed: {entry.id}")
        return entry.to_dict()
