"""User model: applicants, officers and managers."""

import re
from dataclasses import dataclass, field

from bto_alloc.exceptions import InvalidIdentityError
from bto_alloc.models.enums import MaritalStatus, UserRole

NRIC_PATTERN = re.compile(r"^[ST]\d{7}[A-Z]$")


def validate_nric(value: str) -> str:
    """Normalize and validate an NRIC (``S1234567A``).

    Parameters
    ----------
    value : str
        Raw identity string from the boundary.

    Returns
    -------
    str
        Upper-cased NRIC.

    Raises
    ------
    InvalidIdentityError
        If the value is not S/T, seven digits and a letter.
    """
    nric = (value or "").strip().upper()
    if not NRIC_PATTERN.match(nric):
        raise InvalidIdentityError(f"Invalid NRIC: {value!r}")
    return nric


@dataclass
class User:
    """A person known to the system.

    Officers are applicants too: they can apply for projects they do not
    handle. Managers never apply.
    """

    nric: str
    name: str
    age: int
    marital_status: MaritalStatus
    role: UserRole = UserRole.APPLICANT
    active_application_id: str | None = None
    booked_flat_id: str | None = None
    handling_project_ids: list[str] = field(default_factory=list)

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER

    @property
    def is_officer(self) -> bool:
        return self.role == UserRole.OFFICER

    def handles(self, project_id: str) -> bool:
        """Whether this user is on the project's officer roster."""
        return project_id in self.handling_project_ids
