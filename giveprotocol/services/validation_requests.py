# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    AccessDeniedError,
    InputValidationError,
    PreconditionError,
    RecordNotFoundError,
    StoreError,
    ValidationWorkflowError,
)
from ..models.enums import RejectionReason, RequestStatus, ValidationStatus
from ..models.profiles import Organization
from ..models.self_reported_hours import SelfReportedHours, ValidationRequest
from ..utility.validationRules import (
    calculate_days_until_expiration,
    expiration_datetime,
    generate_verification_hash,
    is_validation_expired,
    utcnow,
)

logger = logging.getLogger(__name__)

ANONYMOUS_VOLUNTEER = "Anonymous Volunteer"

@dataclass
class ValidationQueueItem:
    """One pending request as an organization sees it."""
    request_id: str
    record: SelfReportedHours
    volunteer_name: str
    volunteer_email: str
    days_until_expiration: int
    is_resubmission: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'request_id': self.request_id,
            'self_reported_hours': self.record.to_dict(),
            'volunteer_name': self.volunteer_name,
            'volunteer_email': self.volunteer_email,
            'days_until_expiration': self.days_until_expiration,
            'is_resubmission': self.is_resubmission,
        }

@dataclass
class BatchResult:
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'succeeded': list(self.succeeded),
            'failed': dict(self.failed),
            'success_count': len(self.succeeded),
            'failed_count': len(self.failed),
        }

class ValidationRequestService:
    """
    Create, cancel, resubmit and answer validation requests.

    The service holds no state of its own; it is built per request (or per
    test) around a SQLAlchemy session and an optional Discord notifier.
    Every mutating method commits on success and rolls back on failure.
    """

    def __init__(self, session, notifier=None):
        self.session = session
        self.notifier = notifier

    # ------------------------------------------------------------------ #
    # Volunteer side
    # ------------------------------------------------------------------ #

    def request_validation(self, record_id: str, volunteer_id: str, organization_id: str) -> ValidationRequest:
        """Ask a verified organization to validate a record."""
        try:
            record = self.session.get(SelfReportedHours, record_id)
            if record is None:
                raise RecordNotFoundError("Record not found", {"record_id": record_id})
            if record.volunteer_id != volunteer_id:
                raise AccessDeniedError()

            if record.validation_status == ValidationStatus.PENDING.value:
                raise PreconditionError("Validation request already pending")
            if record.validation_status == ValidationStatus.VALIDATED.value:
                raise PreconditionError("Record is already validated")
            if is_validation_expired(record.activity_date):
                raise PreconditionError("Validation window has expired for this activity")

            self._require_verified_organization(organization_id)

            request = self._create_request(record, organization_id)
            record.organization_id = organization_id
            record.organization_name = None
            record.validation_status = ValidationStatus.PENDING.value
            record.validation_request_id = request.id
            record.rejection_reason = None
            record.rejection_notes = None
            self.session.commit()
        except ValidationWorkflowError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error requesting validation for record {record_id}: {e}")
            raise StoreError("Failed to create validation request", e)

        logger.info(f"Validation requested: record={record_id}, organization={organization_id}, request={request.id}")
        return request

    def cancel_validation_request(self, request_id: str, volunteer_id: str) -> None:
        try:
            request = self.session.get(ValidationRequest, request_id)
            if request is None:
                raise RecordNotFoundError("Request not found", {"request_id": request_id})
            if request.volunteer_id != volunteer_id:
                raise AccessDeniedError()
            if request.status != RequestStatus.PENDING.value:
                raise PreconditionError("Can only cancel pending requests")

            request.status = RequestStatus.CANCELLED.value
            record = self.session.get(SelfReportedHours, request.self_reported_hours_id)
            if record is not None:
                record.validation_status = ValidationStatus.UNVALIDATED.value
                record.validation_request_id = None
            else:
                logger.warning(f"Hours record missing while cancelling request {request_id}")
            self.session.commit()
        except ValidationWorkflowError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to cancel request", e)

        logger.info(f"Validation request {request_id} cancelled by volunteer {volunteer_id}")

    def resubmit_validation_request(self, original_request_id: str, volunteer_id: str) -> ValidationRequest:
        """Appeal a rejection by opening a new request against the same organization."""
        try:
            original = self.session.get(ValidationRequest, original_request_id)
            if original is None:
                raise RecordNotFoundError("Original request not found", {"request_id": original_request_id})
            if original.volunteer_id != volunteer_id:
                raise AccessDeniedError()
            if original.status != RequestStatus.REJECTED.value:
                raise PreconditionError("Can only resubmit rejected requests")

            record = self.session.get(SelfReportedHours, original.self_reported_hours_id)
            if record is None:
                raise RecordNotFoundError("Hours record not found", {"record_id": original.self_reported_hours_id})
            if record.validation_status == ValidationStatus.VALIDATED.value:
                raise PreconditionError("Record is already validated")
            if is_validation_expired(record.activity_date):
                raise PreconditionError("Validation window has expired")

            self._require_verified_organization(original.organization_id)

            request = self._create_request(record, original.organization_id,
                                           is_resubmission=True, original_request_id=original.id)
            record.validation_status = ValidationStatus.PENDING.value
            record.validation_request_id = request.id
            record.rejection_reason = None
            record.rejection_notes = None
            self.session.commit()
        except ValidationWorkflowError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to create resubmission", e)

        logger.info(f"Validation request {original_request_id} resubmitted as {request.id}")
        return request

    def get_validation_history(self, record_id: str, volunteer_id: str) -> List[ValidationRequest]:
        """All requests ever made for a record, newest first."""
        try:
            rows = self.session.execute(
                select(ValidationRequest)
                .where(ValidationRequest.self_reported_hours_id == record_id,
                       ValidationRequest.volunteer_id == volunteer_id)
                .order_by(ValidationRequest.created_at.desc())
            ).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching validation history for record {record_id}: {e}")
            raise StoreError("Failed to fetch history", e)
        return list(rows or [])

    # ------------------------------------------------------------------ #
    # Organization side
    # ------------------------------------------------------------------ #

    def expire_stale_requests(self, organization_id: str) -> int:
        """Mark pending requests whose window has closed (and their records) as expired."""
        now = utcnow()
        try:
            stale = self.session.execute(
                select(ValidationRequest)
                .where(ValidationRequest.organization_id == organization_id,
                       ValidationRequest.status == RequestStatus.PENDING.value,
                       ValidationRequest.expires_at < now)
            ).scalars().all()
            for request in stale:
                request.status = RequestStatus.EXPIRED.value
                if request.record is not None and request.record.validation_status == ValidationStatus.PENDING.value:
                    request.record.validation_status = ValidationStatus.EXPIRED.value
            if stale:
                self.session.commit()
                logger.info(f"Expired {len(stale)} stale validation request(s) for organization {organization_id}")
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to expire stale requests", e)
        return len(stale)

    def get_organization_validation_queue(self, organization_id: str) -> List[ValidationQueueItem]:
        """Pending requests for an organization, oldest first."""
        self.expire_stale_requests(organization_id)
        try:
            requests = self.session.execute(
                select(ValidationRequest)
                .where(ValidationRequest.organization_id == organization_id,
                       ValidationRequest.status == RequestStatus.PENDING.value)
                .order_by(ValidationRequest.created_at.asc())
            ).unique().scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching validation queue for organization {organization_id}: {e}")
            raise StoreError("Failed to fetch validation queue", e)

        items = []
        for request in requests:
            volunteer = request.volunteer
            items.append(ValidationQueueItem(
                request_id=request.id,
                record=request.record,
                volunteer_name=(volunteer.name if volunteer and volunteer.name else ANONYMOUS_VOLUNTEER),
                volunteer_email=(volunteer.email if volunteer and volunteer.email else ""),
                days_until_expiration=calculate_days_until_expiration(request.record.activity_date) or 0,
                is_resubmission=bool(request.is_resubmission),
            ))
        return items

    def get_validation_queue_count(self, organization_id: str) -> int:
        try:
            count = self.session.execute(
                select(func.count(ValidationRequest.id))
                .where(ValidationRequest.organization_id == organization_id,
                       ValidationRequest.status == RequestStatus.PENDING.value)
            ).scalar()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching validation queue count for organization {organization_id}: {e}")
            return 0
        return count or 0

    def process_validation_response(self, request_id: str, responded_by: str, approved: bool,
                                    rejection_reason=None, rejection_notes: Optional[str] = None) -> ValidationRequest:
        """
        Approve or reject a pending request.

        The status flip is a conditional UPDATE on ``status = 'pending'``;
        when two organizers answer the same request, the second one gets a
        PreconditionError instead of overwriting the first decision.
        """
        reason = None
        if not approved:
            try:
                reason = RejectionReason(rejection_reason)
            except ValueError:
                raise InputValidationError(["A valid rejection reason is required"])

        try:
            request = self.session.get(ValidationRequest, request_id)
            if request is None:
                raise RecordNotFoundError("Validation request not found", {"request_id": request_id})
            if request.status != RequestStatus.PENDING.value:
                raise PreconditionError("This request has already been processed")

            now = utcnow()
            if request.expires_at < now:
                self._expire(request)
                self.session.commit()
                raise PreconditionError("Validation window has expired")

            record = self.session.get(SelfReportedHours, request.self_reported_hours_id)
            if record is None:
                raise RecordNotFoundError("Hours record not found", {"record_id": request.self_reported_hours_id})
            if record.validation_status == ValidationStatus.VALIDATED.value:
                raise PreconditionError("Record is already validated")

            new_status = RequestStatus.APPROVED if approved else RequestStatus.REJECTED
            result = self.session.execute(
                update(ValidationRequest)
                .where(ValidationRequest.id == request_id,
                       ValidationRequest.status == RequestStatus.PENDING.value)
                .values(status=new_status.value,
                        responded_at=now,
                        responded_by=responded_by,
                        rejection_reason=reason.value if reason else None,
                        rejection_notes=rejection_notes if not approved else None,
                        updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise PreconditionError("This request has already been processed")

            if approved:
                record.validation_status = ValidationStatus.VALIDATED.value
                record.validated_at = now
                record.validated_by = responded_by
                record.rejection_reason = None
                record.rejection_notes = None
                record.verification_hash = generate_verification_hash({
                    'hours_id': record.id,
                    'volunteer_id': record.volunteer_id,
                    'organization_id': request.organization_id,
                    'hours': float(record.hours),
                    'activity_date': record.activity_date.isoformat(),
                    'activity_type': record.activity_type,
                    'validated_at': now.isoformat(),
                })
            else:
                record.validation_status = ValidationStatus.REJECTED.value
                record.rejection_reason = reason.value
                record.rejection_notes = rejection_notes
            self.session.commit()
        except ValidationWorkflowError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error processing validation response for request {request_id}: {e}")
            raise StoreError("Failed to update request", e)

        logger.info(f"Validation request {request_id} {new_status.value} by {responded_by}")
        self._notify_decision(request, record, approved)
        return request

    def batch_approve_requests(self, request_ids: List[str], responded_by: str) -> BatchResult:
        results = self._run_batch(request_ids, lambda rid: self.process_validation_response(rid, responded_by, True))
        self._notify_batch("approved", results)
        return results

    def batch_reject_requests(self, request_ids: List[str], responded_by: str,
                              rejection_reason, rejection_notes: Optional[str] = None) -> BatchResult:
        results = self._run_batch(request_ids, lambda rid: self.process_validation_response(
            rid, responded_by, False, rejection_reason, rejection_notes))
        self._notify_batch("rejected", results)
        return results

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _run_batch(self, request_ids, action) -> BatchResult:
        # Sequential: one request in flight at a time against the database.
        results = BatchResult()
        for request_id in dict.fromkeys(request_ids):
            try:
                action(request_id)
                results.succeeded.append(request_id)
            except ValidationWorkflowError as e:
                logger.warning(f"Batch operation failed for request {request_id}: {e.message}")
                results.failed[request_id] = e.message
        return results

    def _require_verified_organization(self, organization_id: str) -> Organization:
        organization = self.session.get(Organization, organization_id) if organization_id else None
        if organization is None:
            raise RecordNotFoundError("Organization not found", {"organization_id": organization_id})
        if not organization.is_verified:
            raise PreconditionError("Organization is not verified on the platform")
        return organization

    def _create_request(self, record: SelfReportedHours, organization_id: str,
                        is_resubmission: bool = False, original_request_id: Optional[str] = None) -> ValidationRequest:
        request = ValidationRequest(
            self_reported_hours_id=record.id,
            organization_id=organization_id,
            volunteer_id=record.volunteer_id,
            status=RequestStatus.PENDING.value,
            expires_at=expiration_datetime(record.activity_date),
            is_resubmission=is_resubmission,
            original_request_id=original_request_id,
        )
        self.session.add(request)
        self.session.flush()
        return request

    def _expire(self, request: ValidationRequest) -> None:
        request.status = RequestStatus.EXPIRED.value
        record = self.session.get(SelfReportedHours, request.self_reported_hours_id)
        if record is not None and record.validation_status == ValidationStatus.PENDING.value:
            record.validation_status = ValidationStatus.EXPIRED.value

    def _notify_decision(self, request: ValidationRequest, record: SelfReportedHours, approved: bool) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.send_validation_decision(
                request_id=request.id,
                organization_id=request.organization_id,
                volunteer_id=request.volunteer_id,
                hours=float(record.hours),
                approved=approved,
                rejection_reason=record.rejection_reason,
            )
        except Exception as e:
            logger.warning(f"Failed to notify Discord: {e}")

    def _notify_batch(self, action: str, results: BatchResult) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.send_batch_summary(action, len(results.succeeded), results.failed)
        except Exception as e:
            logger.warning(f"Failed to notify Discord: {e}")
