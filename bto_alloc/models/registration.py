"""Officer registration model."""

from dataclasses import dataclass
from datetime import datetime

from bto_alloc.models.enums import RegistrationStatus


@dataclass
class OfficerRegistration:
    """An officer's request to handle a project."""

    officer_id: str
    project_id: str
    status: RegistrationStatus
    registered_at: datetime
    decided_at: datetime | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.officer_id, self.project_id)
