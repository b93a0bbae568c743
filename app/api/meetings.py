"""
Meeting Notes API Routes Blueprint

- /api/meetings/<id>/notes - Get or edit a meeting's notes
- /api/meetings/<id>/notes/summary - Summarize raw notes
- /api/meetings/<id>/notes/convert-action-items - Create tasks from action items
"""

import logging
from flask import Blueprint, jsonify

from app.utils.helpers import get_json_body, get_request_scope
from database.connection import get_db_session
from errors import BillingError, ValidationError
from services.meeting_notes import MeetingNotesRepository

logger = logging.getLogger(__name__)

# Create blueprint
meetings_bp = Blueprint('meetings_bp', __name__)


def get_repository(session):
    organization_id, user_id = get_request_scope()
    return MeetingNotesRepository(session, organization_id, user_id)


@meetings_bp.route('/api/meetings/<meeting_id>/notes', methods=['GET'])
def get_notes(meeting_id):
    """Get the notes for a meeting"""
    try:
        with get_db_session() as session:
            notes = get_repository(session).get_notes(meeting_id)
        return jsonify({'success': True, 'notes': notes})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error getting notes for meeting {meeting_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Internal Server Error'}), 500


@meetings_bp.route('/api/meetings/<meeting_id>/notes', methods=['PUT'])
def update_notes(meeting_id):
    """Manually edit a meeting's notes"""
    try:
        with get_db_session() as session:
            notes = get_repository(session).update_notes(meeting_id, get_json_body())
        return jsonify({'success': True, 'notes': notes})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error updating notes for meeting {meeting_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Internal Server Error'}), 500


@meetings_bp.route('/api/meetings/<meeting_id>/notes/summary', methods=['POST'])
def generate_summary(meeting_id):
    """Summarize raw notes (and optional transcript) for a meeting"""
    try:
        data = get_json_body()
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        with get_db_session() as session:
            notes = get_repository(session).generate_summary(
                meeting_id,
                data.get('raw_notes'),
                transcript=data.get('transcript')
            )
        return jsonify({'success': True, 'notes': notes})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error generating summary for meeting {meeting_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Internal Server Error'}), 500


@meetings_bp.route('/api/meetings/<meeting_id>/notes/convert-action-items', methods=['POST'])
def convert_action_items(meeting_id):
    """Create tasks for action items that have none yet"""
    try:
        with get_db_session() as session:
            result = get_repository(session).convert_action_items_to_tasks(meeting_id)
        return jsonify({'success': True, **result})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error converting action items for meeting {meeting_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Internal Server Error'}), 500
