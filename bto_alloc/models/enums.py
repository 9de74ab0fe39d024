"""Enumeration types for BTO domain entities."""

from enum import Enum


class MaritalStatus(str, Enum):
    SINGLE = "SINGLE"
    MARRIED = "MARRIED"

    @classmethod
    def parse(cls, value: str) -> "MaritalStatus":
        """Parse ``Single``/``married``/``SINGLE`` style values."""
        return cls(value.strip().upper())


class UserRole(str, Enum):
    APPLICANT = "APPLICANT"
    OFFICER = "OFFICER"
    MANAGER = "MANAGER"


class FlatType(str, Enum):
    TWO_ROOM = "TWO_ROOM"
    THREE_ROOM = "THREE_ROOM"

    @property
    def label(self) -> str:
        """Human-readable label used in project files (``2-Room``)."""
        return _FLAT_LABELS[self]

    @property
    def code(self) -> str:
        """Short code used inside flat ids (``2R``)."""
        return _FLAT_CODES[self]

    @classmethod
    def from_label(cls, label: str) -> "FlatType":
        """Resolve a label (``2-Room``) or enum name (``TWO_ROOM``)."""
        cleaned = label.strip()
        for flat_type, flat_label in _FLAT_LABELS.items():
            if cleaned.lower() == flat_label.lower():
                return flat_type
        return cls(cleaned.upper())


_FLAT_LABELS = {FlatType.TWO_ROOM: "2-Room", FlatType.THREE_ROOM: "3-Room"}
_FLAT_CODES = {FlatType.TWO_ROOM: "2R", FlatType.THREE_ROOM: "3R"}


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    UNSUCCESSFUL = "UNSUCCESSFUL"
    BOOKED = "BOOKED"
    WITHDRAWAL_REQUESTED = "WITHDRAWAL_REQUESTED"


class RegistrationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
