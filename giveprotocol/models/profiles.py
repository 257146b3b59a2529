# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from uuid import uuid4
from ..database import db
from ..utility.validationRules import utcnow

def _new_id() -> str:
    return str(uuid4())

class Volunteer(db.Model):
    """A volunteer who self-reports hours"""
    __tablename__ = 'volunteers'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Volunteer(id='{self.id}', email='{self.email}')>"

class Organization(db.Model):
    """A charity that can validate self-reported hours once verified"""
    __tablename__ = 'organizations'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(255), nullable=False, index=True)
    contact_email = db.Column(db.String(255), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'contact_email': self.contact_email,
            'location': self.location,
            'is_verified': bool(self.is_verified),
        }

    def __repr__(self):
        return f"<Organization(name='{self.name}', verified={self.is_verified})>"
