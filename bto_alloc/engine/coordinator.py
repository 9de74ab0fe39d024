"""Allocation coordinator: the single entry point for mutating operations.

Every operation resolves its ids through the store, checks the caller's
authority, runs under the project lock (and the applicant lock when the
applicant's active application can change), persists the store and
publishes a domain event to the configured sinks.
"""

from __future__ import annotations

import logging
import threading
from contextlib import ExitStack, contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, Sequence

from bto_alloc.config import EligibilityConfig
from bto_alloc.engine.officers import OfficerRegistry
from bto_alloc.engine.queries import receipt_for, visible_projects_for
from bto_alloc.engine.state_machine import ApplicationStateMachine
from bto_alloc.exceptions import (
    BtoError,
    ConflictingRoleError,
    NotHandlingProjectError,
    NotProjectManagerError,
)
from bto_alloc.models import (
    Application,
    Event,
    Flat,
    FlatType,
    OfficerRegistration,
    Project,
    Receipt,
    User,
    WithdrawalRequest,
    validate_nric,
)
from bto_alloc.sinks.serialization import to_dict
from bto_alloc.store.allocation import AllocationStore

logger = logging.getLogger(__name__)


class AllocationCoordinator:
    """Orchestrates the application and registration workflows.

    Parameters
    ----------
    store : AllocationStore
        Store holding all entities; flushed after each operation.
    sinks : Sequence[Any]
        Event sinks exposing ``send(topic, record)``.
    clock : Callable[[], datetime]
        Source of "now" for timestamps and window checks.
    rules : EligibilityConfig | None
        Eligibility age thresholds.
    topic_prefix : str
        Prefix for event topics (``{prefix}.{entity}``).
    """

    def __init__(
        self,
        store: AllocationStore,
        sinks: Sequence[Any] = (),
        clock: Callable[[], datetime] = datetime.now,
        rules: EligibilityConfig | None = None,
        topic_prefix: str = "dev.bto",
    ) -> None:
        self.store = store
        self.sinks = list(sinks)
        self.clock = clock
        self.rules = rules or EligibilityConfig()
        self.topic_prefix = topic_prefix
        self.applications = ApplicationStateMachine(store, rules=self.rules, clock=clock)
        self.officers = OfficerRegistry(store, clock=clock)
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # Applicant operations
    def apply(
        self,
        applicant_nric: str,
        project_id: str,
        flat_type: FlatType | None = None,
    ) -> Application:
        """Submit an application for a project."""
        applicant = self._user(applicant_nric)
        project = self.store.get_project(project_id)

        with self._operation("apply", project.project_id, applicant.nric):
            application = self.applications.submit(applicant, project, flat_type)
            self._commit(
                "application.submitted",
                application.application_id,
                application,
                "%s applied for %s (%s)",
                applicant.nric,
                project.project_id,
                application.requested_flat_type.label if application.requested_flat_type else "-",
            )
        return application

    def request_withdrawal(
        self,
        applicant_nric: str,
        application_id: str,
        reason: str = "",
    ) -> WithdrawalRequest:
        """Ask to withdraw one's own application."""
        applicant = self._user(applicant_nric)
        application = self.store.get_application(application_id)

        with self._operation(
            "request_withdrawal", application.project_id, application.applicant_id
        ):
            if application.applicant_id != applicant.nric:
                raise ConflictingRoleError(
                    f"{applicant.nric} cannot withdraw application {application_id} "
                    f"of {application.applicant_id}"
                )
            request = self.applications.request_withdrawal(application, reason)
            self._commit(
                "withdrawal.requested",
                application.application_id,
                request,
                "Withdrawal requested for %s (was %s)",
                application.application_id,
                application.previous_status.value if application.previous_status else "-",
            )
        return request

    # Manager operations
    def decide_application(
        self,
        manager_nric: str,
        application_id: str,
        approve: bool,
    ) -> Application:
        """Approve or reject a PENDING application.

        An approval that finds no units leaves the application UNSUCCESSFUL.
        """
        manager = self._user(manager_nric)
        application = self.store.get_application(application_id)
        project = self.store.get_project(application.project_id)

        with self._operation("decide_application", project.project_id, application.applicant_id):
            self._require_manager(manager, project)
            self.applications.decide(application, approve)
            self._commit(
                f"application.{application.status.value.lower()}",
                application.application_id,
                application,
                "%s decided %s: %s",
                manager.nric,
                application.application_id,
                application.status.value,
            )
        return application

    def resolve_withdrawal(
        self,
        manager_nric: str,
        application_id: str,
        approve: bool,
    ) -> Application:
        """Approve or reject the pending withdrawal of an application."""
        manager = self._user(manager_nric)
        application = self.store.get_application(application_id)
        project = self.store.get_project(application.project_id)

        with self._operation("resolve_withdrawal", project.project_id, application.applicant_id):
            self._require_manager(manager, project)
            released = self.applications.resolve_withdrawal(application, approve, manager.nric)
            self._commit(
                "withdrawal.approved" if approve else "withdrawal.rejected",
                application.application_id,
                {
                    "application_id": application.application_id,
                    "status": application.status,
                    "released_flat_type": released,
                    "processed_by": manager.nric,
                },
                "Withdrawal of %s %s; now %s",
                application.application_id,
                "approved" if approve else "rejected",
                application.status.value,
            )
        return application

    def decide_registration(
        self,
        manager_nric: str,
        officer_nric: str,
        project_id: str,
        approve: bool,
    ) -> OfficerRegistration:
        """Approve or reject an officer's PENDING registration."""
        manager = self._user(manager_nric)
        officer = self._user(officer_nric)
        project = self.store.get_project(project_id)
        registration = self.store.get_registration(officer.nric, project.project_id)

        with self._operation("decide_registration", project.project_id):
            self._require_manager(manager, project)
            self.officers.decide(registration, approve)
            self._commit(
                f"registration.{registration.status.value.lower()}",
                project.project_id,
                registration,
                "Registration of %s for %s: %s",
                officer.nric,
                project.project_id,
                registration.status.value,
            )
        return registration

    def create_project(self, manager_nric: str, project: Project) -> Project:
        """Add a new project managed by the caller."""
        manager = self._user(manager_nric)

        with self._operation("create_project", project.project_id):
            if not manager.is_manager:
                raise NotProjectManagerError(f"{manager.nric} is not a manager")
            if project.manager_id != manager.nric:
                raise NotProjectManagerError(
                    f"Project {project.project_id} names manager {project.manager_id}, "
                    f"not {manager.nric}"
                )
            self.store.add_project(project)
            self._commit(
                "project.created",
                project.project_id,
                project,
                "%s created project %s (%s)",
                manager.nric,
                project.project_id,
                project.name,
            )
        return project

    def set_visibility(self, manager_nric: str, project_id: str, visible: bool) -> Project:
        """Show or hide a project from applicants."""
        manager = self._user(manager_nric)
        project = self.store.get_project(project_id)

        with self._operation("set_visibility", project.project_id):
            self._require_manager(manager, project)
            project.visible = visible
            self._commit(
                "project.visibility_changed",
                project.project_id,
                {"project_id": project.project_id, "visible": visible},
                "Project %s visibility set to %s",
                project.project_id,
                visible,
            )
        return project

    # Officer operations
    def register_officer(self, officer_nric: str, project_id: str) -> OfficerRegistration:
        """Register to handle a project; starts PENDING."""
        officer = self._user(officer_nric)
        project = self.store.get_project(project_id)

        with self._operation("register_officer", project.project_id):
            registration = self.officers.register(officer, project)
            self._commit(
                "registration.submitted",
                project.project_id,
                registration,
                "%s registered for %s",
                officer.nric,
                project.project_id,
            )
        return registration

    def book_flat(
        self,
        officer_nric: str,
        application_id: str,
        flat_type: FlatType,
    ) -> Flat:
        """Book a flat for a SUCCESSFUL application on the applicant's behalf."""
        officer = self._user(officer_nric)
        application = self.store.get_application(application_id)
        project = self.store.get_project(application.project_id)

        with self._operation("book_flat", project.project_id, application.applicant_id):
            if not officer.handles(project.project_id):
                raise NotHandlingProjectError(
                    f"{officer.nric} does not handle project {project.project_id}"
                )
            if application.applicant_id == officer.nric:
                raise ConflictingRoleError(f"{officer.nric} cannot book their own flat")
            flat = self.applications.book(application, flat_type)
            self._commit(
                "application.booked",
                application.application_id,
                flat,
                "%s booked %s for %s",
                officer.nric,
                flat.flat_id,
                application.application_id,
            )
        return flat

    def generate_receipt(self, officer_nric: str, application_id: str) -> Receipt:
        """Issue the booking receipt of a BOOKED application in a handled project."""
        officer = self._user(officer_nric)
        application = self.store.get_application(application_id)
        project = self.store.get_project(application.project_id)

        with self._operation("generate_receipt", project.project_id):
            if not officer.handles(project.project_id):
                raise NotHandlingProjectError(
                    f"{officer.nric} does not handle project {project.project_id}"
                )
            receipt = receipt_for(self.store, application.application_id, self.clock(), officer.nric)
        logger.info("%s issued %s for %s", officer.nric, receipt.receipt_id, receipt.flat_id)
        return receipt

    # Queries
    def visible_projects_for(
        self,
        nric: str,
        neighborhood: str | None = None,
        flat_type: FlatType | None = None,
    ) -> list[Project]:
        """Projects the user may browse, with optional filters."""
        return visible_projects_for(
            self.store,
            self._user(nric),
            self.rules,
            neighborhood=neighborhood,
            flat_type=flat_type,
        )

    def close(self) -> None:
        """Close every sink."""
        for sink in self.sinks:
            sink.close()

    # Helpers
    def _user(self, nric: str) -> User:
        return self.store.get_user(validate_nric(nric))

    def _require_manager(self, manager: User, project: Project) -> None:
        if not manager.is_manager or project.manager_id != manager.nric:
            raise NotProjectManagerError(
                f"{manager.nric} does not manage project {project.project_id}"
            )

    def _lock_for(self, key: str) -> threading.RLock:
        with self._locks_guard:
            if key not in self._locks:
                self._locks[key] = threading.RLock()
            return self._locks[key]

    @contextmanager
    def _operation(self, name: str, project_id: str, applicant_nric: str | None = None) -> Iterator[None]:
        keys = [f"project:{project_id}"]
        if applicant_nric is not None:
            keys.append(f"applicant:{applicant_nric}")

        # Sorted so two operations never take the same pair in opposite order
        with ExitStack() as stack:
            for key in sorted(keys):
                stack.enter_context(self._lock_for(key))
            try:
                yield
            except BtoError as exc:
                logger.warning("%s rejected [%s]: %s", name, exc.code, exc)
                raise

    def _commit(self, event_type: str, subject: str, payload: Any, message: str, *args: Any) -> None:
        """Persist, log and publish after a successful mutation.

        Persistence errors propagate after the in-memory change is made so
        the caller can retry the save.
        """
        self.store.flush()
        logger.info(message, *args)
        self._publish(event_type, subject, payload)

    def _publish(self, event_type: str, subject: str, payload: Any) -> None:
        if not self.sinks:
            return
        event = Event.create(event_type, subject, to_dict(payload), event_time=self.clock())
        topic = f"{self.topic_prefix}.{event.entity}"
        for sink in self.sinks:
            sink.send(topic, event)
