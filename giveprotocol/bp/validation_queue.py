# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask import Blueprint, current_app, flash, jsonify, redirect, render_template, request, url_for
from sqlalchemy import select
from ..database import db
from ..errors import AccessDeniedError, InputValidationError, RecordNotFoundError
from ..models.enums import ACTIVITY_TYPE_LABELS, REJECTION_REASON_LABELS, RejectionReason
from ..models.profiles import Organization
from ..models.self_reported_hours import ValidationRequest
from ..services import BatchResult, get_validation_service
from ..validationQueue import ValidationQueue
import logging

logger = logging.getLogger(__name__)

validation_queue_api_bp = Blueprint('validation_queue_api', __name__)
validation_dashboard_bp = Blueprint('validation_dashboard', __name__)

DASHBOARD_ACTIONS = ('toggle', 'select_all', 'clear', 'approve', 'reject', 'batch_approve', 'batch_reject')

def _require_responder(value):
    if not value:
        raise AccessDeniedError("You must be logged in")
    return value

def _check_request_organization(org_id, request_id):
    validation_request = db.session.get(ValidationRequest, request_id)
    if validation_request is None:
        raise RecordNotFoundError("Validation request not found", {"request_id": request_id})
    if validation_request.organization_id != org_id:
        raise AccessDeniedError("Validation request belongs to another organization")

def _batch_ids(data):
    request_ids = data.get('request_ids')
    if not isinstance(request_ids, list) or not request_ids:
        raise InputValidationError(["request_ids must be a non-empty list"])
    limit = current_app.config.get('VALIDATION_BATCH_LIMIT', 100)
    if len(request_ids) > limit:
        raise InputValidationError([f"Cannot process more than {limit} requests at once"])
    return [str(rid) for rid in request_ids]

def _split_by_organization(org_id, request_ids):
    """Separate ids owned by the organization from those that are not."""
    owned_ids = set(db.session.execute(
        select(ValidationRequest.id).where(ValidationRequest.id.in_(request_ids),
                                          ValidationRequest.organization_id == org_id)
    ).scalars().all())
    foreign = {rid: "Validation request not found" for rid in request_ids if rid not in owned_ids}
    return [rid for rid in request_ids if rid in owned_ids], foreign

def _merge_failures(results: BatchResult, foreign) -> BatchResult:
    for rid, message in foreign.items():
        results.failed.setdefault(rid, message)
    return results

# ---------------------------------------------------------------------- #
# JSON API, mounted at /api/organizations
# ---------------------------------------------------------------------- #

@validation_queue_api_bp.route('/<org_id>/validation-queue', methods=['GET'])
def get_queue(org_id):
    service = get_validation_service()
    items = service.get_organization_validation_queue(org_id)
    return jsonify({
        'organization_id': org_id,
        'count': service.get_validation_queue_count(org_id),
        'items': [item.to_dict() for item in items],
    })

@validation_queue_api_bp.route('/<org_id>/validation-queue/count', methods=['GET'])
def get_queue_count(org_id):
    return jsonify({'organization_id': org_id, 'count': get_validation_service().get_validation_queue_count(org_id)})

@validation_queue_api_bp.route('/<org_id>/validation-queue/<request_id>/approve', methods=['POST'])
def approve(org_id, request_id):
    data = request.get_json(silent=True) or {}
    responder = _require_responder(data.get('responded_by'))
    _check_request_organization(org_id, request_id)
    validation_request = get_validation_service().process_validation_response(request_id, responder, True)
    return jsonify(validation_request.to_dict())

@validation_queue_api_bp.route('/<org_id>/validation-queue/<request_id>/reject', methods=['POST'])
def reject(org_id, request_id):
    data = request.get_json(silent=True) or {}
    responder = _require_responder(data.get('responded_by'))
    _check_request_organization(org_id, request_id)
    validation_request = get_validation_service().process_validation_response(
        request_id, responder, False,
        rejection_reason=data.get('rejection_reason'),
        rejection_notes=data.get('rejection_notes'))
    return jsonify(validation_request.to_dict())

@validation_queue_api_bp.route('/<org_id>/validation-queue/batch-approve', methods=['POST'])
def batch_approve(org_id):
    data = request.get_json(silent=True) or {}
    responder = _require_responder(data.get('responded_by'))
    owned, foreign = _split_by_organization(org_id, _batch_ids(data))
    results = get_validation_service().batch_approve_requests(owned, responder)
    return jsonify(_merge_failures(results, foreign).to_dict())

@validation_queue_api_bp.route('/<org_id>/validation-queue/batch-reject', methods=['POST'])
def batch_reject(org_id):
    data = request.get_json(silent=True) or {}
    responder = _require_responder(data.get('responded_by'))
    request_ids = _batch_ids(data)
    try:
        reason = RejectionReason(data.get('rejection_reason'))
    except ValueError:
        raise InputValidationError(["A valid rejection reason is required"])

    owned, foreign = _split_by_organization(org_id, request_ids)
    results = get_validation_service().batch_reject_requests(
        owned, responder, reason, data.get('rejection_notes'))
    return jsonify(_merge_failures(results, foreign).to_dict())

# ---------------------------------------------------------------------- #
# HTML dashboard, mounted at /organizations
# ---------------------------------------------------------------------- #

def _dashboard_url(org_id, responder, selected, view=None):
    params = {'responder': responder or None, 'selected': sorted(selected) or None, 'view': view}
    return url_for('validation_dashboard.dashboard', org_id=org_id,
                   **{k: v for k, v in params.items() if v})

def _flash_messages(queue: ValidationQueue):
    for message in queue.messages:
        category = 'error' if message.level == 'error' else message.level
        flash(f"{message.title}: {message.text}", category)
    # Partial batch failures list the individual errors.
    if queue.error and not any(m.level == 'error' for m in queue.messages):
        flash(queue.error, 'error')

@validation_dashboard_bp.route('/<org_id>/validation', methods=['GET'])
def dashboard(org_id):
    responder = request.args.get('responder', '')
    queue = ValidationQueue(org_id, responder, get_validation_service(),
                            selected_ids=request.args.getlist('selected'))

    view_id = request.args.get('view')
    viewing = queue.get_item(view_id) if view_id else None
    if view_id and viewing is None and not queue.error:
        flash("That request is no longer pending", 'warning')

    return render_template(
        'validation/dashboard.html',
        organization=db.session.get(Organization, org_id),
        org_id=org_id,
        responder=responder,
        queue=queue,
        viewing=viewing,
        activity_labels={k.value: v for k, v in ACTIVITY_TYPE_LABELS.items()},
        rejection_reasons={k.value: v for k, v in REJECTION_REASON_LABELS.items()},
    )

@validation_dashboard_bp.route('/<org_id>/validation/actions', methods=['POST'])
def dashboard_action(org_id):
    form = request.form
    action = form.get('action', '')
    responder = form.get('responder', '')
    request_id = form.get('request_id', '')
    view = None

    if action not in DASHBOARD_ACTIONS:
        flash(f"Unknown action: {action}", 'error')
        return redirect(_dashboard_url(org_id, responder, form.getlist('selected')))

    # Only select_all needs the current queue before acting.
    queue = ValidationQueue(org_id, responder, get_validation_service(),
                            selected_ids=form.getlist('selected'), autoload=(action == 'select_all'))

    if action == 'toggle':
        queue.toggle_selection(request_id)
    elif action == 'select_all':
        queue.select_all()
    elif action == 'clear':
        queue.clear_selection()
    elif action == 'approve':
        if not queue.approve_request(request_id) and form.get('from_modal'):
            view = request_id
    elif action == 'reject':
        if not queue.reject_request(request_id, form.get('rejection_reason'), form.get('rejection_notes') or None) \
                and form.get('from_modal'):
            view = request_id
    elif action == 'batch_approve':
        queue.batch_approve()
    elif action == 'batch_reject':
        queue.batch_reject(reason=form.get('rejection_reason'), notes=form.get('rejection_notes') or None)

    logger.info(f"Dashboard action '{action}' for organization {org_id}: selected={len(queue.selected_ids)}")
    _flash_messages(queue)
    return redirect(_dashboard_url(org_id, responder, queue.selected_ids, view))
