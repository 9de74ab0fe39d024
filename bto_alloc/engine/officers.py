"""Officer registration rules and roster changes."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from bto_alloc.exceptions import (
    AlreadyRegisteredError,
    ConflictingRoleError,
    InvalidTransitionError,
    NoOfficerSlotsError,
    OverlappingAssignmentError,
)
from bto_alloc.models import (
    OfficerRegistration,
    Project,
    RegistrationStatus,
    User,
    UserRole,
)
from bto_alloc.store.allocation import AllocationStore

logger = logging.getLogger(__name__)


class OfficerRegistry:
    """Checks and applies officer registrations against a store.

    Parameters
    ----------
    store : AllocationStore
        Store holding users, projects, applications and registrations.
    clock : Callable[[], datetime]
        Source of "now" for registration timestamps.
    """

    def __init__(
        self,
        store: AllocationStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.clock = clock

    def check_can_register(self, user: User, project: Project) -> None:
        """Raise the first rule a registration would break.

        Checks run in order: duplicate registration, free slots,
        overlapping approved assignment, own application to the project.

        Raises
        ------
        AlreadyRegisteredError
        NoOfficerSlotsError
        OverlappingAssignmentError
        ConflictingRoleError
        """
        if self.store.find_registration(user.nric, project.project_id) is not None:
            raise AlreadyRegisteredError(
                f"{user.nric} already registered for project {project.project_id}"
            )

        if project.available_officer_slots <= 0:
            raise NoOfficerSlotsError(f"Project {project.project_id} has no officer slots left")

        for registration in self.store.get_officer_registrations(user.nric):
            if registration.status != RegistrationStatus.APPROVED:
                continue
            other = self.store.get_project(registration.project_id)
            if other.project_id != project.project_id and other.overlaps(project):
                raise OverlappingAssignmentError(
                    f"{user.nric} already handles {other.project_id} "
                    f"({other.open_date} to {other.close_date}), which overlaps "
                    f"{project.project_id} ({project.open_date} to {project.close_date})"
                )

        if self.store.has_application_for(user.nric, project.project_id):
            raise ConflictingRoleError(
                f"{user.nric} applied for project {project.project_id} and cannot handle it"
            )

    def register(self, user: User, project: Project) -> OfficerRegistration:
        """Create a PENDING registration after all checks pass."""
        if user.is_manager:
            raise ConflictingRoleError(f"Manager {user.nric} cannot register as an officer")

        self.check_can_register(user, project)
        registration = OfficerRegistration(
            officer_id=user.nric,
            project_id=project.project_id,
            status=RegistrationStatus.PENDING,
            registered_at=self.clock(),
        )
        self.store.add_registration(registration)
        return registration

    def decide(self, registration: OfficerRegistration, approve: bool) -> OfficerRegistration:
        """Approve or reject a PENDING registration.

        Approval consumes an officer slot, puts the officer on the project
        roster and promotes an applicant to the officer role.

        Raises
        ------
        InvalidTransitionError
            If the registration was already decided.
        NoOfficerSlotsError
            If the project filled up since the registration was made.
        OverlappingAssignmentError
            If another overlapping registration was approved meanwhile.
        """
        if registration.status != RegistrationStatus.PENDING:
            raise InvalidTransitionError(
                f"Registration {registration.officer_id}/{registration.project_id} "
                f"is already {registration.status.value}"
            )

        if not approve:
            registration.status = RegistrationStatus.REJECTED
            registration.decided_at = self.clock()
            return registration

        project = self.store.get_project(registration.project_id)
        officer = self.store.get_user(registration.officer_id)

        if project.available_officer_slots <= 0:
            raise NoOfficerSlotsError(f"Project {project.project_id} has no officer slots left")

        for other_registration in self.store.get_officer_registrations(officer.nric):
            if other_registration.status != RegistrationStatus.APPROVED:
                continue
            other = self.store.get_project(other_registration.project_id)
            if other.project_id != project.project_id and other.overlaps(project):
                raise OverlappingAssignmentError(
                    f"{officer.nric} was approved for overlapping project {other.project_id}"
                )

        registration.status = RegistrationStatus.APPROVED
        registration.decided_at = self.clock()
        if officer.nric not in project.officer_ids:
            project.officer_ids.append(officer.nric)
        if project.project_id not in officer.handling_project_ids:
            officer.handling_project_ids.append(project.project_id)
        if officer.role == UserRole.APPLICANT:
            officer.role = UserRole.OFFICER
            logger.info("Promoted %s to officer", officer.nric)
        return registration
