# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""
Shared fixtures for the unit tests: an application on in-memory SQLite,
a volunteer, a verified and an unverified organization.
"""

import unittest
from datetime import date, timedelta

from giveprotocol import create_app
from giveprotocol.config import TestingConfig
from giveprotocol.database import db
from giveprotocol.models.enums import ActivityType, RequestStatus, ValidationStatus
from giveprotocol.models.profiles import Organization, Volunteer
from giveprotocol.models.self_reported_hours import SelfReportedHours, ValidationRequest
from giveprotocol.utility.validationRules import expiration_datetime

DESCRIPTION = (
    "Sorted donated canned goods and packed grocery boxes for forty families "
    "at the Saturday distribution."
)

def hours_data(**overrides):
    data = {
        "activity_date": (date.today() - timedelta(days=5)).isoformat(),
        "hours": 3.5,
        "activity_type": ActivityType.DIRECT_SERVICE.value,
        "description": DESCRIPTION,
        "location": "Novato Community Pantry",
    }
    data.update(overrides)
    return data

class AppTestCase(unittest.TestCase):
    """Fresh application and database for every test."""

    def setUp(self):
        self.app = create_app(TestingConfig)
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        self.session = db.session
        self.client = self.app.test_client()

        self.volunteer = Volunteer(name="Jordan Lee", email="jordan@example.com")
        self.other_volunteer = Volunteer(name="Sam Rivera", email="sam@example.com")
        self.organization = Organization(name="Novato Food Bank", is_verified=True)
        self.unverified_organization = Organization(name="Garden Club", is_verified=False)
        self.session.add_all([self.volunteer, self.other_volunteer,
                              self.organization, self.unverified_organization])
        self.session.commit()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def make_record(self, days_ago=5, hours=2.0, status=ValidationStatus.UNVALIDATED,
                    organization=None, volunteer=None):
        """Insert a record directly, bypassing input validation."""
        organization = organization if organization is not None else self.organization
        record = SelfReportedHours(
            volunteer_id=(volunteer or self.volunteer).id,
            activity_date=date.today() - timedelta(days=days_ago),
            hours=hours,
            activity_type=ActivityType.EVENT_SUPPORT.value,
            description=DESCRIPTION,
            organization_id=organization.id,
            validation_status=status.value,
        )
        self.session.add(record)
        self.session.commit()
        return record

    def make_pending(self, days_ago=5, hours=2.0, organization=None, volunteer=None):
        """Record plus a pending request, as request_validation would leave them."""
        record = self.make_record(days_ago, hours, ValidationStatus.PENDING, organization, volunteer)
        request = ValidationRequest(
            self_reported_hours_id=record.id,
            organization_id=record.organization_id,
            volunteer_id=record.volunteer_id,
            status=RequestStatus.PENDING.value,
            expires_at=expiration_datetime(record.activity_date),
        )
        self.session.add(request)
        self.session.flush()
        record.validation_request_id = request.id
        self.session.commit()
        return record, request
