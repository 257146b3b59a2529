# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""
Eligibility rules for self-reported hours.

Everything here is a pure function of its inputs (plus "today" when the
caller does not pass one), so the services, the templates and the tests
all agree on what a volunteer may do with a record.
"""

import hashlib
import json
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from ..models.enums import (
    ActivityType,
    ValidationStatus,
    VALIDATION_WINDOW_DAYS,
    MIN_HOURS_PER_RECORD,
    MAX_HOURS_PER_RECORD,
    MIN_DESCRIPTION_LENGTH,
    MAX_DESCRIPTION_LENGTH,
)

DateLike = Union[date, datetime, str]

EDITABLE_STATUSES = frozenset({
    ValidationStatus.UNVALIDATED,
    ValidationStatus.REJECTED,
    ValidationStatus.EXPIRED,
})

REQUESTABLE_STATUSES = frozenset({
    ValidationStatus.UNVALIDATED,
    ValidationStatus.REJECTED,
})

def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_date(value: DateLike) -> date:
    """Coerce an ISO-8601 string, datetime or date into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])

def expiration_datetime(activity_date: DateLike) -> datetime:
    """Last moment of the final day of the validation window for an activity date."""
    return datetime.combine(to_date(activity_date) + timedelta(days=VALIDATION_WINDOW_DAYS), datetime.max.time())

def calculate_days_until_expiration(activity_date: DateLike, today: Optional[date] = None) -> Optional[int]:
    """
    Days left in the validation window.

    Returns ``90 - days_elapsed`` while ``days_elapsed <= 90`` and ``None``
    once the window has closed.
    """
    today = today or date.today()
    days_elapsed = (today - to_date(activity_date)).days
    if days_elapsed > VALIDATION_WINDOW_DAYS:
        return None
    return VALIDATION_WINDOW_DAYS - days_elapsed

def is_validation_expired(activity_date: DateLike, today: Optional[date] = None) -> bool:
    return calculate_days_until_expiration(activity_date, today) is None

def _status(status) -> ValidationStatus:
    return status if isinstance(status, ValidationStatus) else ValidationStatus(status)

def can_edit_record(status) -> bool:
    return _status(status) in EDITABLE_STATUSES

def can_delete_record(status) -> bool:
    return _status(status) in EDITABLE_STATUSES

def can_request_validation(status, activity_date: DateLike, org_verified: bool, today: Optional[date] = None) -> bool:
    if org_verified is not True:
        return False
    if _status(status) not in REQUESTABLE_STATUSES:
        return False
    return not is_validation_expired(activity_date, today)

def effective_status(status, activity_date: DateLike, today: Optional[date] = None) -> ValidationStatus:
    """The status a reader should see, with the 90-day expiry applied lazily."""
    status = _status(status)
    if status in (ValidationStatus.VALIDATED, ValidationStatus.EXPIRED):
        return status
    if is_validation_expired(activity_date, today):
        return ValidationStatus.EXPIRED
    return status

def validate_hours_input(data: Mapping[str, Any], partial: bool = False, today: Optional[date] = None) -> List[str]:
    """
    Check a create (or, with ``partial``, an update) payload.

    Returns a list of human-readable errors; an empty list means valid.
    Only the keys present are checked when ``partial`` is set.
    """
    errors: List[str] = []
    today = today or date.today()

    if not partial or "activity_date" in data:
        raw_date = data.get("activity_date")
        if not raw_date:
            errors.append("Activity date is required")
        else:
            try:
                if to_date(raw_date) > today:
                    errors.append("Activity date cannot be in the future")
            except ValueError:
                errors.append("Activity date must be an ISO-8601 date (YYYY-MM-DD)")

    if not partial or "hours" in data:
        try:
            hours = float(data.get("hours"))
            if hours < MIN_HOURS_PER_RECORD or hours > MAX_HOURS_PER_RECORD:
                errors.append(f"Hours must be between {MIN_HOURS_PER_RECORD} and {MAX_HOURS_PER_RECORD}")
        except (TypeError, ValueError):
            errors.append("Hours must be a number")

    if not partial or "activity_type" in data:
        try:
            ActivityType(data.get("activity_type"))
        except ValueError:
            errors.append("Activity type is not recognized")

    if not partial or "description" in data:
        description = data.get("description") or ""
        if not isinstance(description, str):
            errors.append("Description must be text")
        else:
            if len(description) < MIN_DESCRIPTION_LENGTH:
                errors.append(f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters")
            if len(description) > MAX_DESCRIPTION_LENGTH:
                errors.append(f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters")

    if not partial:
        organization_id = data.get("organization_id")
        organization_name = (data.get("organization_name") or "").strip()
        if not organization_id and not organization_name:
            errors.append("Either organization ID or organization name is required")
        if organization_id and organization_name:
            errors.append("Cannot specify both organization ID and organization name")

    return errors

def generate_verification_hash(data: Dict[str, Any]) -> str:
    """0x-prefixed SHA-256 of the validated record, salted with the current time."""
    payload = dict(data)
    payload["timestamp"] = time.time_ns()
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return "0x" + hashlib.sha256(encoded).hexdigest()
