"""Domain models for the BTO allocation engine."""

from bto_alloc.models.application import Application, Flat, Receipt, WithdrawalRequest
from bto_alloc.models.base import Event
from bto_alloc.models.enums import (
    ApplicationStatus,
    FlatType,
    MaritalStatus,
    RegistrationStatus,
    UserRole,
)
from bto_alloc.models.project import FlatUnits, Project
from bto_alloc.models.registration import OfficerRegistration
from bto_alloc.models.user import User, validate_nric

__all__ = [
    "Application",
    "ApplicationStatus",
    "Event",
    "Flat",
    "FlatType",
    "FlatUnits",
    "MaritalStatus",
    "OfficerRegistration",
    "Project",
    "Receipt",
    "RegistrationStatus",
    "User",
    "UserRole",
    "WithdrawalRequest",
    "validate_nric",
]
