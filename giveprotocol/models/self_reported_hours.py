# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from uuid import uuid4
from ..database import db
from ..utility.validationRules import utcnow
from .enums import ValidationStatus, RequestStatus

def _new_id() -> str:
    return str(uuid4())

class SelfReportedHours(db.Model):
    """Volunteer-submitted record of hours awaiting (optional) organization validation"""
    __tablename__ = 'self_reported_hours'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    volunteer_id = db.Column(db.String(36), db.ForeignKey('volunteers.id', ondelete='CASCADE'), nullable=False, index=True)

    # Activity details
    activity_date = db.Column(db.Date, nullable=False, index=True)
    hours = db.Column(db.Numeric(4, 1), nullable=False)
    activity_type = db.Column(db.String(40), nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(255), nullable=True)

    # Either a verified organization or a free-text name, never both
    organization_id = db.Column(db.String(36), db.ForeignKey('organizations.id', ondelete='SET NULL'), nullable=True, index=True)
    organization_name = db.Column(db.String(255), nullable=True)
    organization_contact_email = db.Column(db.String(255), nullable=True)

    # Validation
    validation_status = db.Column(db.String(20), nullable=False, default=ValidationStatus.UNVALIDATED.value, index=True)
    validation_request_id = db.Column(db.String(36), nullable=True)
    validated_at = db.Column(db.DateTime, nullable=True)
    validated_by = db.Column(db.String(36), nullable=True)
    rejection_reason = db.Column(db.String(40), nullable=True)
    rejection_notes = db.Column(db.Text, nullable=True)
    verification_hash = db.Column(db.String(66), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    organization = db.relationship('Organization', lazy='joined')
    volunteer = db.relationship('Volunteer', lazy='select')

    def to_dict(self):
        return {
            'id': self.id,
            'volunteer_id': self.volunteer_id,
            'activity_date': self.activity_date.isoformat() if self.activity_date else None,
            'hours': float(self.hours) if self.hours is not None else 0.0,
            'activity_type': self.activity_type,
            'description': self.description,
            'location': self.location,
            'organization_id': self.organization_id,
            'organization_name': self.organization_name,
            'organization_contact_email': self.organization_contact_email,
            'validation_status': self.validation_status,
            'validation_request_id': self.validation_request_id,
            'validated_at': self.validated_at.isoformat() if self.validated_at else None,
            'validated_by': self.validated_by,
            'rejection_reason': self.rejection_reason,
            'rejection_notes': self.rejection_notes,
            'verification_hash': self.verification_hash,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<SelfReportedHours(id='{self.id}', hours={self.hours}, status='{self.validation_status}')>"

class ValidationRequest(db.Model):
    """Links a self-reported hours record to the organization asked to validate it"""
    __tablename__ = 'validation_requests'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    self_reported_hours_id = db.Column(db.String(36), db.ForeignKey('self_reported_hours.id', ondelete='CASCADE'), nullable=False, index=True)
    organization_id = db.Column(db.String(36), db.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)
    volunteer_id = db.Column(db.String(36), db.ForeignKey('volunteers.id', ondelete='CASCADE'), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    # activity date + 90 days
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    responded_at = db.Column(db.DateTime, nullable=True)
    responded_by = db.Column(db.String(36), nullable=True)
    rejection_reason = db.Column(db.String(40), nullable=True)
    rejection_notes = db.Column(db.Text, nullable=True)

    is_resubmission = db.Column(db.Boolean, default=False, nullable=False)
    original_request_id = db.Column(db.String(36), db.ForeignKey('validation_requests.id'), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    record = db.relationship('SelfReportedHours', foreign_keys=[self_reported_hours_id], lazy='joined')
    volunteer = db.relationship('Volunteer', lazy='joined')

    def to_dict(self):
        return {
            'id': self.id,
            'self_reported_hours_id': self.self_reported_hours_id,
            'organization_id': self.organization_id,
            'volunteer_id': self.volunteer_id,
            'status': self.status,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'responded_at': self.responded_at.isoformat() if self.responded_at else None,
            'responded_by': self.responded_by,
            'rejection_reason': self.rejection_reason,
            'rejection_notes': self.rejection_notes,
            'is_resubmission': bool(self.is_resubmission),
            'original_request_id': self.original_request_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<ValidationRequest(id='{self.id}', status='{self.status}')>"
