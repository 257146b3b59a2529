# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask import Blueprint, request, jsonify
from ..errors import InputValidationError, RecordNotFoundError
from ..models.enums import ValidationStatus
from ..services import RecordFilters, get_hours_service, get_validation_service
import logging

logger = logging.getLogger(__name__)
self_reported_hours_bp = Blueprint('self_reported_hours', __name__)

def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InputValidationError(["Request body must be a JSON object"])
    return data

def _volunteer_id(source):
    volunteer_id = source.get('volunteer_id')
    if not volunteer_id:
        raise InputValidationError(["Missing required field: volunteer_id"])
    return volunteer_id

# POST /api/self-reported-hours
@self_reported_hours_bp.route('', methods=['POST'])
def create_hours():
    data = _json_body()
    volunteer_id = _volunteer_id(data)

    record = get_hours_service().create_record(volunteer_id, data)

    # A verified organization gets asked right away unless the caller opts out.
    request_validation = data.get('request_validation', bool(data.get('organization_id')))
    organization = record.organization
    validation_request = None
    if (request_validation and organization is not None and organization.is_verified
            and record.validation_status == ValidationStatus.UNVALIDATED.value):
        validation_request = get_validation_service().request_validation(
            record.id, volunteer_id, record.organization_id)

    body = get_hours_service().get_record(record.id, volunteer_id)
    body['validation_request'] = validation_request.to_dict() if validation_request else None
    return jsonify(body), 201

# GET /api/self-reported-hours?volunteer_id=...&status=...
@self_reported_hours_bp.route('', methods=['GET'])
def list_hours():
    volunteer_id = _volunteer_id(request.args)
    records = get_hours_service().list_records(volunteer_id, RecordFilters.from_args(request.args))
    logger.info(f"Fetched {len(records)} self-reported hour records for volunteer {volunteer_id}")
    return jsonify(records)

@self_reported_hours_bp.route('/stats', methods=['GET'])
def hours_stats():
    volunteer_id = _volunteer_id(request.args)
    return jsonify(get_hours_service().get_stats(volunteer_id).to_dict())

@self_reported_hours_bp.route('/<record_id>', methods=['GET'])
def get_hours(record_id):
    volunteer_id = _volunteer_id(request.args)
    record = get_hours_service().get_record(record_id, volunteer_id)
    if record is None:
        raise RecordNotFoundError(f"Record with ID {record_id} not found.")
    return jsonify(record)

@self_reported_hours_bp.route('/<record_id>', methods=['PATCH'])
def update_hours(record_id):
    data = _json_body()
    volunteer_id = _volunteer_id(data)
    get_hours_service().update_record(record_id, volunteer_id, data)
    return jsonify(get_hours_service().get_record(record_id, volunteer_id))

@self_reported_hours_bp.route('/<record_id>', methods=['DELETE'])
def delete_hours(record_id):
    volunteer_id = _volunteer_id(request.args)
    get_hours_service().delete_record(record_id, volunteer_id)
    return jsonify({'message': f'Record with ID {record_id} deleted successfully'}), 200

@self_reported_hours_bp.route('/<record_id>/request-validation', methods=['POST'])
def request_validation(record_id):
    data = _json_body()
    volunteer_id = _volunteer_id(data)
    organization_id = data.get('organization_id')
    if not organization_id:
        raise InputValidationError(["Missing required field: organization_id"])

    validation_request = get_validation_service().request_validation(record_id, volunteer_id, organization_id)
    return jsonify(validation_request.to_dict()), 201

@self_reported_hours_bp.route('/<record_id>/history', methods=['GET'])
def validation_history(record_id):
    volunteer_id = _volunteer_id(request.args)
    history = get_validation_service().get_validation_history(record_id, volunteer_id)
    return jsonify([r.to_dict() for r in history])

@self_reported_hours_bp.route('/validation-requests/<request_id>/cancel', methods=['POST'])
def cancel_request(request_id):
    volunteer_id = _volunteer_id(_json_body())
    get_validation_service().cancel_validation_request(request_id, volunteer_id)
    return jsonify({'message': f'Validation request {request_id} cancelled'}), 200

@self_reported_hours_bp.route('/validation-requests/<request_id>/resubmit', methods=['POST'])
def resubmit_request(request_id):
    volunteer_id = _volunteer_id(_json_body())
    new_request = get_validation_service().resubmit_validation_request(request_id, volunteer_id)
    return jsonify(new_request.to_dict()), 201
