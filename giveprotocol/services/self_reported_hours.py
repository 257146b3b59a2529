# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    AccessDeniedError,
    InputValidationError,
    PreconditionError,
    RecordNotFoundError,
    StoreError,
    ValidationWorkflowError,
)
from ..models.enums import ActivityType, RequestStatus, ValidationStatus
from ..models.profiles import Organization, Volunteer
from ..models.self_reported_hours import SelfReportedHours, ValidationRequest
from ..utility.validationRules import (
    calculate_days_until_expiration,
    can_delete_record,
    can_edit_record,
    can_request_validation,
    effective_status,
    is_validation_expired,
    to_date,
    validate_hours_input,
)

logger = logging.getLogger(__name__)

UNKNOWN_ORGANIZATION = "Unknown Organization"
UPDATABLE_FIELDS = ("activity_date", "hours", "activity_type", "description", "location", "organization_contact_email")

@dataclass
class RecordFilters:
    status: Optional[str] = None
    organization_id: Optional[str] = None
    activity_type: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "RecordFilters":
        return cls(
            status=args.get("status") or None,
            organization_id=args.get("organization_id") or None,
            activity_type=args.get("activity_type") or None,
            date_from=args.get("date_from") or None,
            date_to=args.get("date_to") or None,
        )

@dataclass
class VolunteerHoursStats:
    total_validated_hours: float = 0.0
    total_unvalidated_hours: float = 0.0
    total_pending_hours: float = 0.0
    total_rejected_hours: float = 0.0
    total_expired_hours: float = 0.0
    record_count: int = 0
    records_by_status: Dict[str, int] = field(
        default_factory=lambda: {status.value: 0 for status in ValidationStatus})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_validated_hours': self.total_validated_hours,
            'total_unvalidated_hours': self.total_unvalidated_hours,
            'total_pending_hours': self.total_pending_hours,
            'total_rejected_hours': self.total_rejected_hours,
            'total_expired_hours': self.total_expired_hours,
            'record_count': self.record_count,
            'records_by_status': dict(self.records_by_status),
        }

def to_display(record: SelfReportedHours) -> Dict[str, Any]:
    """Record as a volunteer sees it: effective status plus what they may do with it."""
    status = effective_status(record.validation_status, record.activity_date)
    organization = record.organization
    is_verified = bool(organization is not None and organization.is_verified)

    data = record.to_dict()
    data.update({
        'validation_status': status.value,
        'organization_display_name': (organization.name if organization is not None else None)
                                     or record.organization_name or UNKNOWN_ORGANIZATION,
        'is_verified_organization': is_verified,
        'days_until_expiration': calculate_days_until_expiration(record.activity_date),
        'can_edit': can_edit_record(status),
        'can_delete': can_delete_record(status),
        'can_request_validation': can_request_validation(status, record.activity_date, is_verified),
    })
    return data

class SelfReportedHoursService:
    """CRUD and statistics over a volunteer's self-reported hours."""

    def __init__(self, session):
        self.session = session

    def create_record(self, volunteer_id: str, data: Mapping[str, Any]) -> SelfReportedHours:
        errors = validate_hours_input(data)
        if errors:
            raise InputValidationError(errors)

        try:
            if self.session.get(Volunteer, volunteer_id) is None:
                raise RecordNotFoundError("Volunteer not found", {"volunteer_id": volunteer_id})

            organization_id = data.get("organization_id") or None
            status = ValidationStatus.UNVALIDATED
            if organization_id:
                organization = self.session.get(Organization, organization_id)
                if organization is None:
                    raise RecordNotFoundError("Organization not found", {"organization_id": organization_id})
                if organization.is_verified and is_validation_expired(data["activity_date"]):
                    status = ValidationStatus.EXPIRED

            record = SelfReportedHours(
                volunteer_id=volunteer_id,
                activity_date=to_date(data["activity_date"]),
                hours=float(data["hours"]),
                activity_type=ActivityType(data["activity_type"]).value,
                description=data["description"],
                location=data.get("location") or None,
                organization_id=organization_id,
                organization_name=(data.get("organization_name") or "").strip() or None,
                organization_contact_email=data.get("organization_contact_email") or None,
                validation_status=status.value,
            )
            self.session.add(record)
            self.session.commit()
        except ValidationWorkflowError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error creating self-reported hours for volunteer {volunteer_id}: {e}")
            raise StoreError("Failed to create record", e)

        logger.info(f"Self-reported hours logged: volunteer={volunteer_id}, hours={record.hours}, id={record.id}")
        return record

    def list_records(self, volunteer_id: str, filters: Optional[RecordFilters] = None) -> List[Dict[str, Any]]:
        filters = filters or RecordFilters()
        query = (select(SelfReportedHours)
                 .where(SelfReportedHours.volunteer_id == volunteer_id)
                 .order_by(SelfReportedHours.activity_date.desc(), SelfReportedHours.created_at.desc()))
        if filters.organization_id:
            query = query.where(SelfReportedHours.organization_id == filters.organization_id)
        if filters.activity_type:
            query = query.where(SelfReportedHours.activity_type == filters.activity_type)
        try:
            if filters.date_from:
                query = query.where(SelfReportedHours.activity_date >= to_date(filters.date_from))
            if filters.date_to:
                query = query.where(SelfReportedHours.activity_date <= to_date(filters.date_to))
        except ValueError:
            raise InputValidationError(["Date filters must be ISO-8601 dates (YYYY-MM-DD)"])

        try:
            rows = self.session.execute(query).unique().scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching self-reported hours for volunteer {volunteer_id}: {e}")
            raise StoreError("Failed to fetch records", e)

        records = [to_display(row) for row in rows]
        # Filter on the effective status so lazily-expired records match "expired".
        if filters.status:
            records = [r for r in records if r['validation_status'] == filters.status]
        return records

    def get_record(self, record_id: str, volunteer_id: str) -> Optional[Dict[str, Any]]:
        try:
            record = self.session.get(SelfReportedHours, record_id)
        except SQLAlchemyError as e:
            raise StoreError("Failed to fetch record", e)
        if record is None or record.volunteer_id != volunteer_id:
            return None
        return to_display(record)

    def get_stats(self, volunteer_id: str) -> VolunteerHoursStats:
        try:
            rows = self.session.execute(
                select(SelfReportedHours).where(SelfReportedHours.volunteer_id == volunteer_id)
            ).unique().scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching volunteer hours stats for {volunteer_id}: {e}")
            raise StoreError("Failed to fetch stats", e)

        stats = VolunteerHoursStats(record_count=len(rows))
        totals = {
            ValidationStatus.VALIDATED: "total_validated_hours",
            ValidationStatus.PENDING: "total_pending_hours",
            ValidationStatus.REJECTED: "total_rejected_hours",
            ValidationStatus.EXPIRED: "total_expired_hours",
            ValidationStatus.UNVALIDATED: "total_unvalidated_hours",
        }
        for row in rows:
            status = effective_status(row.validation_status, row.activity_date)
            stats.records_by_status[status.value] += 1
            attr = totals[status]
            setattr(stats, attr, getattr(stats, attr) + float(row.hours))
        return stats

    def _settle_lapsed_request(self, record: SelfReportedHours) -> None:
        """Store the expiry of a pending record whose window has closed."""
        if record.validation_status != ValidationStatus.PENDING.value:
            return
        record.validation_status = ValidationStatus.EXPIRED.value
        if record.validation_request_id:
            request = self.session.get(ValidationRequest, record.validation_request_id)
            if request is not None and request.status == RequestStatus.PENDING.value:
                request.status = RequestStatus.EXPIRED.value

    def update_record(self, record_id: str, volunteer_id: str, changes: Mapping[str, Any]) -> SelfReportedHours:
        changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        try:
            record = self._owned_record(record_id, volunteer_id, "Record not found")
            status = effective_status(record.validation_status, record.activity_date)
            if not can_edit_record(status):
                raise PreconditionError(f"Cannot edit {status.value} records")
            if status == ValidationStatus.EXPIRED:
                self._settle_lapsed_request(record)

            errors = validate_hours_input(changes, partial=True)
            if errors:
                raise InputValidationError(errors)

            if "activity_date" in changes:
                record.activity_date = to_date(changes["activity_date"])
            if "hours" in changes:
                record.hours = float(changes["hours"])
            if "activity_type" in changes:
                record.activity_type = ActivityType(changes["activity_type"]).value
            if "description" in changes:
                record.description = changes["description"]
            if "location" in changes:
                record.location = changes["location"] or None
            if "organization_contact_email" in changes:
                record.organization_contact_email = changes["organization_contact_email"] or None
            if (record.validation_status == ValidationStatus.EXPIRED.value
                    and not is_validation_expired(record.activity_date)):
                record.validation_status = ValidationStatus.UNVALIDATED.value
            self.session.commit()
        except ValidationWorkflowError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error updating self-reported hours {record_id}: {e}")
            raise StoreError("Failed to update record", e)

        logger.info(f"Self-reported hours {record_id} updated ({', '.join(sorted(changes)) or 'no changes'})")
        return record

    def delete_record(self, record_id: str, volunteer_id: str) -> None:
        try:
            record = self._owned_record(record_id, volunteer_id, "Record not found")
            status = effective_status(record.validation_status, record.activity_date)
            if not can_delete_record(status):
                raise PreconditionError(f"Cannot delete {status.value} records")
            self.session.delete(record)
            self.session.commit()
        except ValidationWorkflowError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error deleting self-reported hours {record_id}: {e}")
            raise StoreError("Failed to delete record", e)

        logger.info(f"Self-reported hours {record_id} deleted by volunteer {volunteer_id}")

    def _owned_record(self, record_id: str, volunteer_id: str, missing_message: str) -> SelfReportedHours:
        record = self.session.get(SelfReportedHours, record_id)
        if record is None:
            raise RecordNotFoundError(missing_message, {"record_id": record_id})
        if record.volunteer_id != volunteer_id:
            raise AccessDeniedError()
        return record
