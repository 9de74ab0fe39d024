"""Application lifecycle: submission, decision, booking and withdrawal.

Inventory is reserved when a manager approves an application. Booking uses
the held unit when the applicant books the type that was reserved, and swaps
the reservation otherwise. Approving a withdrawal hands the held unit back.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from bto_alloc.config import EligibilityConfig
from bto_alloc.engine.eligibility import (
    eligible_flat_types,
    offered_flat_types,
    permitted_flat_types,
    preferred_flat_type,
)
from bto_alloc.engine.inventory import InventoryLedger
from bto_alloc.exceptions import (
    AlreadyHasActiveApplicationError,
    ConflictingRoleError,
    InvalidTransitionError,
    NoUnitsAvailableError,
    NotEligibleError,
    ProjectNotOpenError,
    ProjectNotVisibleError,
)
from bto_alloc.models import (
    Application,
    ApplicationStatus,
    Flat,
    FlatType,
    Project,
    RegistrationStatus,
    User,
    WithdrawalRequest,
)
from bto_alloc.store.allocation import AllocationStore

logger = logging.getLogger(__name__)

S = ApplicationStatus

TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    S.PENDING: frozenset({S.SUCCESSFUL, S.UNSUCCESSFUL, S.WITHDRAWAL_REQUESTED}),
    S.SUCCESSFUL: frozenset({S.BOOKED, S.WITHDRAWAL_REQUESTED}),
    S.BOOKED: frozenset({S.WITHDRAWAL_REQUESTED}),
    # Approved withdrawal, or a rejected one reverting to the prior status
    S.WITHDRAWAL_REQUESTED: frozenset({S.UNSUCCESSFUL, S.PENDING, S.SUCCESSFUL, S.BOOKED}),
    S.UNSUCCESSFUL: frozenset(),
}

WITHDRAWABLE = frozenset({S.PENDING, S.SUCCESSFUL, S.BOOKED})


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in TRANSITIONS[current]


class ApplicationStateMachine:
    """Owns application status changes and the inventory effects tied to them.

    Parameters
    ----------
    store : AllocationStore
        Store holding users, projects, applications and flats.
    rules : EligibilityConfig | None
        Eligibility age thresholds.
    clock : Callable[[], datetime]
        Source of "now" for timestamps and window checks.
    """

    def __init__(
        self,
        store: AllocationStore,
        rules: EligibilityConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.rules = rules or EligibilityConfig()
        self.clock = clock
        # Ids are drawn from store-wide sequences shared by every project
        self._ids = threading.Lock()

    # Submission
    def submit(
        self,
        applicant: User,
        project: Project,
        requested_type: FlatType | None = None,
    ) -> Application:
        """Create a PENDING application.

        Raises
        ------
        AlreadyHasActiveApplicationError
            If the applicant holds a non-terminal application.
        ConflictingRoleError
            If the applicant is a manager, or is registered as an officer
            for this project.
        NotEligibleError
            If the project offers no flat type (or not the requested one)
            their age and marital status permit.
        ProjectNotOpenError
            If today is outside the application window.
        ProjectNotVisibleError
            If the project is hidden.
        """
        active = self.store.active_application(applicant.nric)
        if active is not None:
            raise AlreadyHasActiveApplicationError(
                f"{applicant.nric} already has active application {active.application_id} "
                f"({active.status.value})"
            )

        if applicant.is_manager:
            raise ConflictingRoleError(f"Manager {applicant.nric} cannot apply for a flat")

        registration = self.store.find_registration(applicant.nric, project.project_id)
        if registration is not None and registration.status != RegistrationStatus.REJECTED:
            raise ConflictingRoleError(
                f"{applicant.nric} is registered as an officer for {project.project_id}"
            )

        # Sold-out types still accept applications; approval settles them
        eligible = offered_flat_types(applicant, project, self.rules)
        if not eligible:
            raise NotEligibleError(
                f"{applicant.nric} is not eligible for any flat type in {project.project_id}"
            )
        if requested_type is None:
            requested_type = preferred_flat_type(eligible)
        elif requested_type not in eligible:
            raise NotEligibleError(
                f"{applicant.nric} is not eligible for {requested_type.label} in {project.project_id}"
            )

        now = self.clock()
        if not project.is_open_on(now.date()):
            raise ProjectNotOpenError(
                f"Project {project.project_id} accepts applications from "
                f"{project.open_date} to {project.close_date}"
            )
        if not project.visible:
            raise ProjectNotVisibleError(f"Project {project.project_id} is not visible")

        with self._ids:
            application = Application(
                application_id=self._next_application_id(),
                applicant_id=applicant.nric,
                project_id=project.project_id,
                status=S.PENDING,
                applied_at=now,
                status_updated_at=now,
                requested_flat_type=requested_type,
            )
            self.store.add_application(application)
        applicant.active_application_id = application.application_id
        return application

    # Manager decision
    def decide(self, application: Application, approve: bool) -> Application:
        """Approve or reject a PENDING application.

        An approval that cannot reserve a unit ends UNSUCCESSFUL with the
        inventory untouched.

        Raises
        ------
        InvalidTransitionError
            If the application is not PENDING.
        """
        self._require(application, S.PENDING, "decide on")

        if not approve:
            self._set_status(application, S.UNSUCCESSFUL)
            self._clear_active(application)
            return application

        project = self.store.get_project(application.project_id)
        flat_type = application.requested_flat_type
        if flat_type is None:
            applicant = self.store.get_user(application.applicant_id)
            flat_type = preferred_flat_type(eligible_flat_types(applicant, project, self.rules))

        if flat_type is None:
            logger.info("Approval of %s overridden: no eligible units", application.application_id)
            self._set_status(application, S.UNSUCCESSFUL)
            self._clear_active(application)
            return application

        try:
            InventoryLedger(project).reserve(flat_type)
        except NoUnitsAvailableError:
            logger.info(
                "Approval of %s overridden: %s sold out in %s",
                application.application_id,
                flat_type.label,
                project.project_id,
            )
            self._set_status(application, S.UNSUCCESSFUL)
            self._clear_active(application)
            return application

        application.reserved_flat_type = flat_type
        self._set_status(application, S.SUCCESSFUL)
        return application

    # Booking
    def book(self, application: Application, chosen_type: FlatType) -> Flat:
        """Book a flat of ``chosen_type`` for a SUCCESSFUL application.

        Raises
        ------
        InvalidTransitionError
            If the application is not SUCCESSFUL or already has a flat.
        NotEligibleError
            If the applicant may not take ``chosen_type`` in this project.
        NoUnitsAvailableError
            If a different type than the reserved one has no units left.
        """
        self._require(application, S.SUCCESSFUL, "book")
        if application.booked_flat_id is not None:
            raise InvalidTransitionError(
                f"Application {application.application_id} already booked "
                f"{application.booked_flat_id}"
            )

        applicant = self.store.get_user(application.applicant_id)
        project = self.store.get_project(application.project_id)
        if chosen_type not in permitted_flat_types(applicant, self.rules) or not project.offers(
            chosen_type
        ):
            raise NotEligibleError(
                f"{applicant.nric} may not book {chosen_type.label} in {project.project_id}"
            )

        ledger = InventoryLedger(project)
        if application.reserved_flat_type != chosen_type:
            ledger.reserve(chosen_type)
            if application.reserved_flat_type is not None:
                ledger.release(application.reserved_flat_type)
            application.reserved_flat_type = chosen_type

        flat = Flat(
            flat_id=self._next_flat_id(project, chosen_type),
            project_id=project.project_id,
            flat_type=chosen_type,
            application_id=application.application_id,
        )
        self.store.add_flat(flat)
        application.booked_flat_id = flat.flat_id
        applicant.booked_flat_id = flat.flat_id
        self._set_status(application, S.BOOKED)
        return flat

    # Withdrawal
    def request_withdrawal(self, application: Application, reason: str = "") -> WithdrawalRequest:
        """Ask to withdraw a PENDING, SUCCESSFUL or BOOKED application.

        Inventory is untouched until a manager approves the request.

        Raises
        ------
        InvalidTransitionError
            If the application is UNSUCCESSFUL or a withdrawal is pending.
        """
        if application.status not in WITHDRAWABLE:
            raise InvalidTransitionError(
                f"Cannot withdraw application {application.application_id} "
                f"in status {application.status.value}"
            )

        application.previous_status = application.status
        self._set_status(application, S.WITHDRAWAL_REQUESTED)

        request = WithdrawalRequest(
            application_id=application.application_id,
            reason=reason,
            requested_at=application.status_updated_at,
        )
        with self._ids:
            self.store.add_withdrawal(request)
        return request

    def resolve_withdrawal(
        self,
        application: Application,
        approve: bool,
        processed_by: str | None = None,
    ) -> FlatType | None:
        """Approve or reject a pending withdrawal.

        Returns
        -------
        FlatType | None
            The flat type whose unit went back to the pool, if any.

        Raises
        ------
        InvalidTransitionError
            If no withdrawal is pending for the application.
        """
        self._require(application, S.WITHDRAWAL_REQUESTED, "resolve withdrawal of")

        released: FlatType | None = None
        if approve:
            released = self._release_holding(application)
            application.previous_status = None
            self._set_status(application, S.UNSUCCESSFUL)
            self._clear_active(application)
        else:
            prior = application.previous_status or self._derive_prior_status(application)
            application.previous_status = None
            self._set_status(application, prior)

        request = self.store.pending_withdrawal(application.application_id)
        if request is not None:
            request.processed = True
            request.approved = approve
            request.processed_at = application.status_updated_at
            request.processed_by = processed_by
        return released

    # Helpers
    def _release_holding(self, application: Application) -> FlatType | None:
        project = self.store.get_project(application.project_id)
        ledger = InventoryLedger(project)

        if application.booked_flat_id is not None:
            flat = self.store.get_flat(application.booked_flat_id)
            flat_type = flat.flat_type
            flat.application_id = None
            applicant = self.store.get_user(application.applicant_id)
            if applicant.booked_flat_id == flat.flat_id:
                applicant.booked_flat_id = None
            application.booked_flat_id = None
        else:
            flat_type = application.reserved_flat_type

        application.reserved_flat_type = None
        if flat_type is None:
            return None
        return flat_type if ledger.release(flat_type) else None

    @staticmethod
    def _derive_prior_status(application: Application) -> ApplicationStatus:
        if application.booked_flat_id is not None:
            return S.BOOKED
        if application.reserved_flat_type is not None:
            return S.SUCCESSFUL
        return S.PENDING

    def _require(self, application: Application, status: ApplicationStatus, action: str) -> None:
        if application.status != status:
            raise InvalidTransitionError(
                f"Cannot {action} application {application.application_id}: "
                f"status is {application.status.value}, expected {status.value}"
            )

    def _set_status(self, application: Application, target: ApplicationStatus) -> None:
        if not can_transition(application.status, target):
            raise InvalidTransitionError(
                f"Application {application.application_id} cannot move from "
                f"{application.status.value} to {target.value}"
            )
        application.status = target
        application.status_updated_at = self.clock()

    def _clear_active(self, application: Application) -> None:
        applicant = self.store.get_user(application.applicant_id)
        if applicant.active_application_id == application.application_id:
            applicant.active_application_id = None

    def _next_application_id(self) -> str:
        seq = len(self.store.applications) + 1
        while f"APP{seq:05d}" in self.store.applications:
            seq += 1
        return f"APP{seq:05d}"

    def _next_flat_id(self, project: Project, flat_type: FlatType) -> str:
        booked = sum(
            1
            for flat in self.store.flats
            if flat.project_id == project.project_id and flat.flat_type == flat_type
        )
        seq = booked + 1
        while True:
            flat_id = f"F-{project.project_id}-{flat_type.code}-{seq}"
            if flat_id not in self.store.flats:
                return flat_id
            seq += 1
