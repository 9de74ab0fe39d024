"""Application, flat and withdrawal request models."""

from dataclasses import dataclass
from datetime import datetime

from bto_alloc.models.enums import ApplicationStatus, FlatType, MaritalStatus


@dataclass
class Application:
    """An applicant's application to one project.

    Records are never deleted; UNSUCCESSFUL applications stay for reporting.
    """

    application_id: str
    applicant_id: str
    project_id: str
    status: ApplicationStatus
    applied_at: datetime
    status_updated_at: datetime
    requested_flat_type: FlatType | None = None
    reserved_flat_type: FlatType | None = None  # Unit held since approval
    booked_flat_id: str | None = None
    previous_status: ApplicationStatus | None = None  # Set while withdrawal pending

    @property
    def is_active(self) -> bool:
        return self.status != ApplicationStatus.UNSUCCESSFUL


@dataclass
class Flat:
    """A booked flat. Created at booking time only."""

    flat_id: str  # F-{project_id}-{2R|3R}-{seq}
    project_id: str
    flat_type: FlatType
    application_id: str | None = None


@dataclass
class WithdrawalRequest:
    """An applicant's request to withdraw, awaiting a manager decision."""

    application_id: str
    reason: str
    requested_at: datetime
    processed: bool = False
    approved: bool = False
    processed_at: datetime | None = None
    processed_by: str | None = None
    request_id: str = ""  # WDR{n:05d}, assigned by the store when blank


@dataclass
class Receipt:
    """Proof of a booking, built from the booked application on request."""

    receipt_id: str  # REC-{application_id}
    application_id: str
    applicant_nric: str
    applicant_name: str
    applicant_age: int
    marital_status: MaritalStatus
    project_id: str
    project_name: str
    neighborhood: str
    flat_id: str
    flat_type: FlatType
    applied_at: datetime
    generated_at: datetime
    generated_by: str | None = None  # Officer NRIC

    def render(self) -> str:
        """Plain-text receipt with dd-mm-yyyy dates."""
        lines = [
            "BOOKING RECEIPT",
            f"Receipt ID: {self.receipt_id}",
            f"Date: {self.generated_at:%d-%m-%Y}",
            "",
            f"Applicant: {self.applicant_name} ({self.applicant_nric})",
            f"Age: {self.applicant_age}",
            f"Marital Status: {self.marital_status.value.title()}",
            "",
            f"Project: {self.project_name} ({self.project_id})",
            f"Neighborhood: {self.neighborhood}",
            f"Flat: {self.flat_id} ({self.flat_type.label})",
            "",
            f"Application: {self.application_id}, applied {self.applied_at:%d-%m-%Y}",
        ]
        if self.generated_by:
            lines.append(f"Issued by: {self.generated_by}")
        return "\n".join(lines)
