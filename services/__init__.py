"""
Services package for the Advisory Billing Service.
Contains repository classes for database access.
"""

from services.event_logger import EventLogger, get_event_logger
from services.fee_schedule_repository import FeeScheduleRepository
from services.meeting_notes import (
    KeywordSummaryGenerator,
    MeetingNotesRepository,
    SummaryGenerator
)

__all__ = [
    'EventLogger',
    'get_event_logger',
    'FeeScheduleRepository',
    'KeywordSummaryGenerator',
    'MeetingNotesRepository',
    'SummaryGenerator'
]
