# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from enum import Enum

class ActivityType(str, Enum):
    """Categories of volunteer work"""
    DIRECT_SERVICE = "direct_service"
    ADMINISTRATIVE_SUPPORT = "administrative_support"
    PROFESSIONAL_TECHNICAL = "professional_technical"
    EVENT_SUPPORT = "event_support"
    MENTORING_TEACHING = "mentoring_teaching"
    LEADERSHIP_COORDINATION = "leadership_coordination"
    GOVERNANCE = "governance"
    ADVOCACY_AWARENESS = "advocacy_awareness"
    FUNDRAISING = "fundraising"
    TRANSPORTATION_DELIVERY = "transportation_delivery"
    DIGITAL_VIRTUAL = "digital_virtual"
    PHYSICAL_LABOR = "physical_labor"
    ENVIRONMENTAL_STEWARDSHIP = "environmental_stewardship"
    OTHER = "other"

ACTIVITY_TYPE_LABELS = {
    ActivityType.DIRECT_SERVICE: "Direct Service",
    ActivityType.ADMINISTRATIVE_SUPPORT: "Administrative Support",
    ActivityType.PROFESSIONAL_TECHNICAL: "Professional/Technical Skills",
    ActivityType.EVENT_SUPPORT: "Event Support",
    ActivityType.MENTORING_TEACHING: "Mentoring/Teaching",
    ActivityType.LEADERSHIP_COORDINATION: "Leadership/Coordination",
    ActivityType.GOVERNANCE: "Governance",
    ActivityType.ADVOCACY_AWARENESS: "Advocacy/Awareness",
    ActivityType.FUNDRAISING: "Fundraising",
    ActivityType.TRANSPORTATION_DELIVERY: "Transportation/Delivery",
    ActivityType.DIGITAL_VIRTUAL: "Digital/Virtual",
    ActivityType.PHYSICAL_LABOR: "Physical Labor/Construction",
    ActivityType.ENVIRONMENTAL_STEWARDSHIP: "Environmental Stewardship",
    ActivityType.OTHER: "Other",
}

class ValidationStatus(str, Enum):
    """Validation status of a self-reported hours record"""
    UNVALIDATED = "unvalidated"
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"
    EXPIRED = "expired"

class RequestStatus(str, Enum):
    """Status of a validation request sent to an organization"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

class RejectionReason(str, Enum):
    HOURS_INACCURATE = "hours_inaccurate"
    DATE_INCORRECT = "date_incorrect"
    ACTIVITY_NOT_RECOGNIZED = "activity_not_recognized"
    VOLUNTEER_NOT_RECOGNIZED = "volunteer_not_recognized"
    DESCRIPTION_INSUFFICIENT = "description_insufficient"
    OTHER = "other"

REJECTION_REASON_LABELS = {
    RejectionReason.HOURS_INACCURATE: "Hours claimed are inaccurate",
    RejectionReason.DATE_INCORRECT: "Activity date is incorrect",
    RejectionReason.ACTIVITY_NOT_RECOGNIZED: "Activity not recognized",
    RejectionReason.VOLUNTEER_NOT_RECOGNIZED: "Volunteer not recognized",
    RejectionReason.DESCRIPTION_INSUFFICIENT: "Description is insufficient",
    RejectionReason.OTHER: "Other reason",
}

VALIDATION_WINDOW_DAYS = 90

MIN_HOURS_PER_RECORD = 0.5
MAX_HOURS_PER_RECORD = 24

MIN_DESCRIPTION_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 500
