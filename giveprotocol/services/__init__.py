# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from .self_reported_hours import SelfReportedHoursService, RecordFilters, VolunteerHoursStats
from .validation_requests import ValidationRequestService, ValidationQueueItem, BatchResult

from flask import current_app
from ..database import db

def get_hours_service() -> SelfReportedHoursService:
    return SelfReportedHoursService(db.session)

def get_validation_service() -> ValidationRequestService:
    """Service bound to the request's session and the app's Discord notifier."""
    return ValidationRequestService(db.session, notifier=current_app.extensions.get("discord_notifier"))
