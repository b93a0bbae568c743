"""
Fee Schedule API Routes Blueprint

Advisory fee schedules, fee calculation and fee history:
- /api/allocations/fees - Fee schedule management
- /api/allocations/fees/<id>/events - Fee schedule audit trail
- /api/allocations/<households|accounts|persons>/<id>/fees - Active schedule for an entity
- /api/allocations/fees/calculate - Fee for a billable amount
- /api/allocations/fees/history - Billed fee history
"""

import logging
from flask import Blueprint, current_app, jsonify, request

from app.utils.helpers import get_json_body, get_request_scope, parse_bool_arg, parse_int_arg
from database.connection import get_db_session
from errors import BillingError, ValidationError
from services.fee_schedule_repository import FeeScheduleRepository
from validators import validate_calculate_request

logger = logging.getLogger(__name__)

# Create blueprint
fees_bp = Blueprint('fees_bp', __name__)

ENTITY_PATHS = {
    'households': 'household',
    'accounts': 'account',
    'persons': 'person',
}
ENTITY_ROUTE = '/api/allocations/<any(households, accounts, persons):entity_path>/<entity_id>'


def get_repository(session):
    """Fee schedule repository scoped to the request's organization"""
    organization_id, user_id = get_request_scope()
    return FeeScheduleRepository(
        session,
        organization_id,
        user_id,
        conflict_policy=current_app.config['FEE_SCHEDULE_CONFLICT_POLICY']
    )


def server_error():
    return jsonify({'success': False, 'error': 'Internal Server Error'}), 500


def get_arg(name):
    value = request.args.get(name)
    return value.strip() if value else None


def parse_entity_arg():
    """Accept either the singular entity type or its plural path segment"""
    value = get_arg('entity_type')
    return ENTITY_PATHS.get(value, value)


# ============================================================================
# FEE SCHEDULES
# ============================================================================

@fees_bp.route('/api/allocations/fees', methods=['POST'])
def create_fee_schedule():
    """Create a fee schedule with its tiers"""
    try:
        with get_db_session() as session:
            schedule = get_repository(session).create_fee_schedule(get_json_body())
        return jsonify({'success': True, 'fee_schedule': schedule}), 201
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error creating fee schedule: {str(e)}")
        return server_error()


@fees_bp.route('/api/allocations/fees', methods=['GET'])
def list_fee_schedules():
    """List fee schedules with optional entity filter and pagination"""
    try:
        with get_db_session() as session:
            result = get_repository(session).list_fee_schedules(
                entity_type=parse_entity_arg(),
                entity_id=get_arg('entity_id'),
                active_only=parse_bool_arg('active_only'),
                limit=parse_int_arg('limit', minimum=1, maximum=500),
                offset=parse_int_arg('offset')
            )
        return jsonify({'success': True, **result})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error listing fee schedules: {str(e)}")
        return server_error()


@fees_bp.route('/api/allocations/fees/<fee_schedule_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_fee_schedule(fee_schedule_id):
    """Get, update or delete a single fee schedule"""
    try:
        with get_db_session() as session:
            repo = get_repository(session)
            if request.method == 'GET':
                schedule = repo.get_fee_schedule(fee_schedule_id)
            elif request.method == 'PUT':
                schedule = repo.update_fee_schedule(fee_schedule_id, get_json_body())
            else:
                repo.delete_fee_schedule(fee_schedule_id)
                schedule = None

        if schedule is None:
            return '', 204
        return jsonify({'success': True, 'fee_schedule': schedule})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error handling fee schedule {fee_schedule_id}: {str(e)}")
        return server_error()


@fees_bp.route('/api/allocations/fees/<fee_schedule_id>/events', methods=['GET'])
def get_fee_schedule_events(fee_schedule_id):
    """Audit trail of a fee schedule, including after it was deleted"""
    try:
        limit = parse_int_arg('limit', default=50, minimum=1, maximum=500)
        with get_db_session() as session:
            events = get_repository(session).get_fee_schedule_events(fee_schedule_id, limit=limit)
        return jsonify({'success': True, 'events': events, 'count': len(events)})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error getting events for fee schedule {fee_schedule_id}: {str(e)}")
        return server_error()


@fees_bp.route(ENTITY_ROUTE + '/fees', methods=['GET'])
def get_entity_fee_schedule(entity_path, entity_id):
    """Active fee schedule for a household, account or person (null if none)"""
    try:
        with get_db_session() as session:
            schedule = get_repository(session).get_entity_fee_schedule(ENTITY_PATHS[entity_path], entity_id)
        return jsonify({'success': True, 'fee_schedule': schedule})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error getting fee schedule for {entity_path}/{entity_id}: {str(e)}")
        return server_error()


# ============================================================================
# CALCULATION
# ============================================================================

@fees_bp.route('/api/allocations/fees/calculate', methods=['POST'])
def calculate_fee():
    """Calculate the fee a schedule charges on a billable amount"""
    try:
        fee_schedule_id, billable_amount = validate_calculate_request(get_json_body())
        with get_db_session() as session:
            result = get_repository(session).calculate_fee(fee_schedule_id, billable_amount)
        return jsonify({'success': True, **result.to_dict()})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error calculating fee: {str(e)}")
        return server_error()


# ============================================================================
# FEE HISTORY
# ============================================================================

@fees_bp.route('/api/allocations/fees/history', methods=['POST'])
def record_fee_history():
    """Record the fee for a billing period"""
    try:
        with get_db_session() as session:
            entry = get_repository(session).record_fee_history(get_json_body())
        return jsonify({'success': True, 'fee_history': entry}), 201
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error recording fee history: {str(e)}")
        return server_error()


@fees_bp.route(ENTITY_ROUTE + '/fees/history', methods=['GET'])
def get_fee_history(entity_path, entity_id):
    """Fee history for an entity, most recent period first"""
    try:
        limit = parse_int_arg('limit', default=current_app.config['FEE_HISTORY_DEFAULT_LIMIT'],
                              minimum=1, maximum=500)
        with get_db_session() as session:
            history = get_repository(session).get_fee_history(ENTITY_PATHS[entity_path], entity_id, limit=limit)
        return jsonify({'success': True, 'fee_history': history, 'count': len(history)})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error getting fee history for {entity_path}/{entity_id}: {str(e)}")
        return server_error()


@fees_bp.route('/api/allocations/fees/history/<history_id>/billed', methods=['PATCH'])
def mark_fee_as_billed(history_id):
    """Mark a fee history entry as invoiced"""
    try:
        body = get_json_body()
        invoice_number = body.get('invoice_number') if isinstance(body, dict) else None
        if invoice_number is not None and not isinstance(invoice_number, str):
            raise ValidationError("invoice_number must be a string", field='invoice_number')
        with get_db_session() as session:
            entry = get_repository(session).mark_fee_as_billed(history_id, invoice_number)
        return jsonify({'success': True, 'fee_history': entry})
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error marking fee history {history_id} as billed: {str(e)}")
        return server_error()
