"""
Meeting Notes Service - Summaries of client meetings and their follow-up tasks.

Summaries come from a pluggable SummaryGenerator. The keyword generator
shipped here only spots common advisory topics (portfolio, retirement, tax,
estate, rebalancing) and is meant to be swapped for an NLP backend.

Action items, decisions, compliance items and external attendees are stored
as JSON lists but always pass through the typed records below.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from database.models import MeetingNotes, Task
from errors import NotFoundError, ValidationError
from services.event_logger import get_event_logger
from validators import parse_date, sanitize_string, validate_required_fields

logger = logging.getLogger(__name__)

PRIORITIES = ('low', 'medium', 'high', 'urgent')
SENTIMENTS = ('positive', 'neutral', 'concerned', 'negative')


def _require_text(data: Dict[str, Any], key: str, record: str) -> str:
    is_valid, error = validate_required_fields(data, [key])
    if not is_valid or not isinstance(data[key], str):
        raise ValidationError(f"{record}: {key} is required", field=key)
    return sanitize_string(data[key])


# ==================== RECORDS ====================

@dataclass
class ActionItem:
    description: str
    priority: str = 'medium'
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    task_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ActionItem':
        if not isinstance(data, dict):
            raise ValidationError("Action item must be an object", field='action_items')
        priority = str(data.get('priority') or 'medium').lower()
        if priority not in PRIORITIES:
            raise ValidationError(f"Invalid priority '{priority}'. Must be one of: {', '.join(PRIORITIES)}",
                                  field='priority')
        return cls(
            description=_require_text(data, 'description', 'Action item'),
            priority=priority,
            assignee=data.get('assignee'),
            due_date=parse_date(data.get('due_date'), 'due_date'),
            task_id=data.get('task_id'),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['due_date'] = self.due_date.isoformat() if self.due_date else None
        return result


@dataclass
class Decision:
    decision: str
    context: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Decision':
        if not isinstance(data, dict):
            raise ValidationError("Decision must be an object", field='decisions_made')
        return cls(decision=_require_text(data, 'decision', 'Decision'), context=data.get('context'))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ComplianceItem:
    item: str
    action: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ComplianceItem':
        if not isinstance(data, dict):
            raise ValidationError("Compliance item must be an object", field='compliance_items')
        return cls(item=_require_text(data, 'item', 'Compliance item'), action=data.get('action'))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExternalAttendee:
    """Someone outside the firm who attended, e.g. the client's accountant."""
    name: str
    email: str
    role: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExternalAttendee':
        if not isinstance(data, dict):
            raise ValidationError("External attendee must be an object", field='external_attendees')
        email = _require_text(data, 'email', 'External attendee')
        if '@' not in email:
            raise ValidationError(f"Invalid email address: {email}", field='email')
        return cls(name=_require_text(data, 'name', 'External attendee'), email=email, role=data.get('role'))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NoteSummary:
    summary: str
    key_points: List[str] = field(default_factory=list)
    action_items: List[ActionItem] = field(default_factory=list)
    decisions: List[Decision] = field(default_factory=list)
    follow_up_topics: List[str] = field(default_factory=list)
    client_concerns: List[str] = field(default_factory=list)
    sentiment: str = 'neutral'
    compliance_items: List[ComplianceItem] = field(default_factory=list)

    @property
    def requires_documentation(self) -> bool:
        return len(self.compliance_items) > 0


# ==================== GENERATORS ====================

class SummaryGenerator(ABC):
    """Turns raw meeting notes (and an optional transcript) into a NoteSummary."""

    @abstractmethod
    def generate(self, raw_notes: str, transcript: Optional[str] = None) -> NoteSummary:
        raise NotImplementedError


class KeywordSummaryGenerator(SummaryGenerator):
    """Keyword matcher over the raw notes. The transcript is ignored."""

    KEY_POINT_RULES = [
        (('portfolio', 'investment'), 'Discussed portfolio performance and investment strategy'),
        (('retire',), 'Reviewed retirement planning progress'),
        (('tax',), 'Discussed tax planning strategies'),
        (('estate', 'trust'), 'Discussed estate planning considerations'),
    ]
    DEFAULT_KEY_POINT = 'General client review meeting conducted'

    def generate(self, raw_notes: str, transcript: Optional[str] = None) -> NoteSummary:
        text = (raw_notes or '').lower()

        def mentions(*words):
            return any(word in text for word in words)

        key_points = [point for words, point in self.KEY_POINT_RULES if mentions(*words)]
        action_items = []
        follow_up_topics = []
        client_concerns = []
        compliance_items = []

        if mentions('tax'):
            compliance_items.append(ComplianceItem('Tax planning discussion documented', 'Review with tax advisor'))
        if mentions('concern', 'worried'):
            client_concerns.append('Client expressed concerns - review and address')
        if mentions('rebalance'):
            action_items.append(ActionItem('Review portfolio for rebalancing', priority='high'))
        if mentions('follow up', 'next step'):
            follow_up_topics.append('Schedule follow-up meeting to review progress')

        if not key_points:
            key_points.append(self.DEFAULT_KEY_POINT)

        return NoteSummary(
            summary=(f"Meeting notes summarized. {len(key_points)} key points identified, "
                     f"{len(action_items)} action items created."),
            key_points=key_points,
            action_items=action_items,
            follow_up_topics=follow_up_topics,
            client_concerns=client_concerns,
            sentiment='concerned' if client_concerns else 'positive',
            compliance_items=compliance_items,
        )


# ==================== REPOSITORY ====================

def _string_list(value: Any, field_name: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"{field_name} must be an array of strings", field=field_name)
    return [sanitize_string(item) for item in value]


def _record_list(value: Any, record_cls, field_name: str) -> List[Dict]:
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be an array", field=field_name)
    return [record_cls.from_dict(item).to_dict() for item in value]


class MeetingNotesRepository:
    """Repository for meeting notes, summaries and the tasks created from them."""

    RECORD_FIELDS = {
        'action_items': ActionItem,
        'decisions_made': Decision,
        'compliance_items': ComplianceItem,
        'external_attendees': ExternalAttendee,
    }
    TEXT_LIST_FIELDS = ['key_points', 'follow_up_topics', 'client_concerns']

    def __init__(self, session: Session, organization_id: str, user_id: str = None,
                 generator: SummaryGenerator = None):
        self.session = session
        self.organization_id = organization_id
        self.user_id = user_id
        self.generator = generator or KeywordSummaryGenerator()
        self.events = get_event_logger(session, organization_id, user_id)

    def _find_notes(self, meeting_id: str) -> Optional[MeetingNotes]:
        return self.session.query(MeetingNotes).filter(
            MeetingNotes.organization_id == self.organization_id,
            MeetingNotes.meeting_id == meeting_id
        ).first()

    def _get_or_create_notes(self, meeting_id: str) -> MeetingNotes:
        notes = self._find_notes(meeting_id)
        if notes is None:
            notes = MeetingNotes(
                organization_id=self.organization_id,
                meeting_id=meeting_id,
                created_by=self.user_id
            )
            self.session.add(notes)
        return notes

    def get_notes(self, meeting_id: str) -> Dict:
        """Get the notes for a meeting."""
        notes = self._find_notes(meeting_id)
        if notes is None:
            raise NotFoundError(f"Notes for meeting {meeting_id} not found")
        return notes.to_dict()

    def generate_summary(self, meeting_id: str, raw_notes: str, transcript: str = None) -> Dict:
        """Summarize raw notes and store the result on the meeting's notes."""
        if not isinstance(raw_notes, str) or not raw_notes.strip():
            raise ValidationError("raw_notes is required", field='raw_notes')

        summary = self.generator.generate(raw_notes, transcript)

        notes = self._get_or_create_notes(meeting_id)
        notes.raw_notes = raw_notes
        if transcript:
            notes.transcript = transcript
        notes.ai_summary = summary.summary
        notes.key_points = list(summary.key_points)
        notes.action_items = [item.to_dict() for item in summary.action_items]
        notes.decisions_made = [item.to_dict() for item in summary.decisions]
        notes.follow_up_topics = list(summary.follow_up_topics)
        notes.client_concerns = list(summary.client_concerns)
        notes.client_sentiment = summary.sentiment
        notes.compliance_items = [item.to_dict() for item in summary.compliance_items]
        notes.requires_documentation = summary.requires_documentation
        notes.ai_generated_at = datetime.utcnow()
        notes.updated_by = self.user_id
        self.session.flush()

        self.events.log(
            entity_type='meeting_notes',
            entity_id=notes.id,
            event_type='SUMMARY_GENERATED',
            metadata={
                'meeting_id': meeting_id,
                'generator': type(self.generator).__name__,
                'action_items': len(summary.action_items)
            }
        )

        logger.info(f"Generated summary for meeting: {meeting_id}")
        return notes.to_dict()

    def update_notes(self, meeting_id: str, data: Dict) -> Dict:
        """Manually edit a meeting's notes, creating them if needed."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        values = {}
        for key in ('raw_notes', 'transcript', 'ai_summary'):
            if key in data:
                if data[key] is not None and not isinstance(data[key], str):
                    raise ValidationError(f"{key} must be a string", field=key)
                values[key] = data[key]
        for key in self.TEXT_LIST_FIELDS:
            if key in data:
                values[key] = _string_list(data[key], key)
        for key, record_cls in self.RECORD_FIELDS.items():
            if key in data:
                values[key] = _record_list(data[key], record_cls, key)
        if 'client_sentiment' in data:
            sentiment = str(data['client_sentiment']).lower()
            if sentiment not in SENTIMENTS:
                raise ValidationError(f"Invalid client_sentiment '{sentiment}'", field='client_sentiment')
            values['client_sentiment'] = sentiment

        notes = self._get_or_create_notes(meeting_id)
        for key, value in values.items():
            setattr(notes, key, value)
        if 'compliance_items' in values:
            notes.requires_documentation = len(values['compliance_items']) > 0
        notes.manually_edited = True
        notes.updated_by = self.user_id
        self.session.flush()

        self.events.log_update('meeting_notes', notes.id, {'fields': sorted(values)})

        logger.info(f"Updated notes for meeting: {meeting_id}")
        return notes.to_dict()

    def convert_action_items_to_tasks(self, meeting_id: str) -> Dict[str, Any]:
        """
        Create a task for every action item that does not have one yet

        Returns:
            {'created': number of new tasks, 'task_ids': their ids}
        """
        notes = self._find_notes(meeting_id)
        if notes is None:
            raise NotFoundError(f"Notes for meeting {meeting_id} not found")

        items = [ActionItem.from_dict(item) for item in (notes.action_items or [])]
        task_ids = []

        for item in items:
            if item.task_id:
                continue
            task = Task(
                organization_id=self.organization_id,
                title=item.description[:255],
                description=f"Action item from meeting {meeting_id}",
                priority=item.priority,
                due_date=item.due_date,
                assigned_to=item.assignee,
                source_type='meeting',
                source_id=meeting_id,
                created_by=self.user_id
            )
            self.session.add(task)
            self.session.flush()
            item.task_id = task.id
            task_ids.append(task.id)

        if task_ids:
            # Reassign so the JSON column is marked dirty
            notes.action_items = [item.to_dict() for item in items]
            notes.updated_by = self.user_id
            self.session.flush()

            self.events.log(
                entity_type='meeting_notes',
                entity_id=notes.id,
                event_type='TASKS_CREATED',
                metadata={'meeting_id': meeting_id, 'task_ids': task_ids}
            )
            logger.info(f"Created {len(task_ids)} tasks from meeting: {meeting_id}")

        return {'created': len(task_ids), 'task_ids': task_ids}
