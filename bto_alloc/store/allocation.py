"""Allocation data store with referential integrity."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Protocol

from bto_alloc.exceptions import ReferentialIntegrityError
from bto_alloc.models import (
    Application,
    Flat,
    OfficerRegistration,
    Project,
    User,
    WithdrawalRequest,
)
from bto_alloc.store.repository import InMemoryRepository, Repository


class Storage(Protocol):
    """Persistence collaborator for the whole store."""

    def load_all(self, store: "AllocationStore") -> None:
        ...

    def save_all(self, store: "AllocationStore") -> None:
        ...


@dataclass
class AllocationStore:
    """In-memory store for BTO entities with relationship tracking.

    Each collection is an injected :class:`Repository`; the defaults are
    in-memory. An optional :class:`Storage` is flushed by :meth:`flush`.
    """

    users: Repository[User] = field(
        default_factory=lambda: InMemoryRepository("User", attrgetter("nric"))
    )
    projects: Repository[Project] = field(
        default_factory=lambda: InMemoryRepository("Project", attrgetter("project_id"))
    )
    applications: Repository[Application] = field(
        default_factory=lambda: InMemoryRepository("Application", attrgetter("application_id"))
    )
    flats: Repository[Flat] = field(
        default_factory=lambda: InMemoryRepository("Flat", attrgetter("flat_id"))
    )
    registrations: Repository[OfficerRegistration] = field(
        default_factory=lambda: InMemoryRepository("Registration", attrgetter("key"))
    )
    withdrawals: Repository[WithdrawalRequest] = field(
        default_factory=lambda: InMemoryRepository("WithdrawalRequest", attrgetter("request_id"))
    )
    storage: Storage | None = None

    # Relationship indexes
    _user_applications: dict[str, list[str]] = field(default_factory=dict)
    _project_applications: dict[str, list[str]] = field(default_factory=dict)
    _officer_registrations: dict[str, list[str]] = field(default_factory=dict)
    _project_registrations: dict[str, list[str]] = field(default_factory=dict)
    _application_withdrawals: dict[str, list[str]] = field(default_factory=dict)

    def add_user(self, user: User) -> None:
        """Add a user to the store."""
        self.users.add(user)
        self._user_applications.setdefault(user.nric, [])
        self._officer_registrations.setdefault(user.nric, [])

    def add_project(self, project: Project) -> None:
        """Add a project to the store."""
        if project.manager_id not in self.users:
            raise ReferentialIntegrityError(f"Manager {project.manager_id} not found")
        for officer_id in project.officer_ids:
            if officer_id not in self.users:
                raise ReferentialIntegrityError(f"Officer {officer_id} not found")

        self.projects.add(project)
        self._project_applications.setdefault(project.project_id, [])
        self._project_registrations.setdefault(project.project_id, [])

    def add_application(self, application: Application) -> None:
        """Add an application to the store."""
        if application.applicant_id not in self.users:
            raise ReferentialIntegrityError(f"Applicant {application.applicant_id} not found")
        if application.project_id not in self.projects:
            raise ReferentialIntegrityError(f"Project {application.project_id} not found")

        self.applications.add(application)
        self._user_applications[application.applicant_id].append(application.application_id)
        self._project_applications[application.project_id].append(application.application_id)
        self._application_withdrawals.setdefault(application.application_id, [])

    def add_flat(self, flat: Flat) -> None:
        """Add a booked flat to the store."""
        if flat.project_id not in self.projects:
            raise ReferentialIntegrityError(f"Project {flat.project_id} not found")
        if flat.application_id and flat.application_id not in self.applications:
            raise ReferentialIntegrityError(f"Application {flat.application_id} not found")

        self.flats.add(flat)

    def add_registration(self, registration: OfficerRegistration) -> None:
        """Add an officer registration to the store."""
        if registration.officer_id not in self.users:
            raise ReferentialIntegrityError(f"Officer {registration.officer_id} not found")
        if registration.project_id not in self.projects:
            raise ReferentialIntegrityError(f"Project {registration.project_id} not found")

        self.registrations.add(registration)
        self._officer_registrations[registration.officer_id].append(registration.project_id)
        self._project_registrations[registration.project_id].append(registration.officer_id)

    def add_withdrawal(self, request: WithdrawalRequest) -> None:
        """Add a withdrawal request, assigning its id when blank."""
        if request.application_id not in self.applications:
            raise ReferentialIntegrityError(f"Application {request.application_id} not found")

        if not request.request_id:
            request.request_id = self._next_withdrawal_id()
        self.withdrawals.add(request)
        self._application_withdrawals[request.application_id].append(request.request_id)

    def _next_withdrawal_id(self) -> str:
        seq = len(self.withdrawals) + 1
        while f"WDR{seq:05d}" in self.withdrawals:
            seq += 1
        return f"WDR{seq:05d}"

    # Lookups
    def get_user(self, nric: str) -> User:
        return self.users.find_by_id(nric)

    def get_project(self, project_id: str) -> Project:
        return self.projects.find_by_id(project_id)

    def get_application(self, application_id: str) -> Application:
        return self.applications.find_by_id(application_id)

    def get_flat(self, flat_id: str) -> Flat:
        return self.flats.find_by_id(flat_id)

    def get_registration(self, officer_id: str, project_id: str) -> OfficerRegistration:
        return self.registrations.find_by_id((officer_id, project_id))

    def find_registration(self, officer_id: str, project_id: str) -> OfficerRegistration | None:
        return self.registrations.get((officer_id, project_id))

    # Query methods
    def get_user_applications(self, nric: str) -> list[Application]:
        """Get all applications submitted by a user, oldest first."""
        ids = self._user_applications.get(nric, [])
        return [self.applications.find_by_id(aid) for aid in ids]

    def get_project_applications(self, project_id: str) -> list[Application]:
        """Get all applications for a project, oldest first."""
        ids = self._project_applications.get(project_id, [])
        return [self.applications.find_by_id(aid) for aid in ids]

    def get_officer_registrations(self, nric: str) -> list[OfficerRegistration]:
        """Get all registrations made by an officer."""
        project_ids = self._officer_registrations.get(nric, [])
        return [self.registrations.find_by_id((nric, pid)) for pid in project_ids]

    def get_project_registrations(self, project_id: str) -> list[OfficerRegistration]:
        """Get all officer registrations for a project."""
        officer_ids = self._project_registrations.get(project_id, [])
        return [self.registrations.find_by_id((oid, project_id)) for oid in officer_ids]

    def get_application_withdrawals(self, application_id: str) -> list[WithdrawalRequest]:
        """Get all withdrawal requests for an application, oldest first."""
        keys = self._application_withdrawals.get(application_id, [])
        return [self.withdrawals.find_by_id(key) for key in keys]

    def pending_withdrawal(self, application_id: str) -> WithdrawalRequest | None:
        """Get the unprocessed withdrawal request of an application, if any."""
        for request in self.get_application_withdrawals(application_id):
            if not request.processed:
                return request
        return None

    def has_application_for(self, nric: str, project_id: str) -> bool:
        """Whether the user has ever applied to the project."""
        return any(app.project_id == project_id for app in self.get_user_applications(nric))

    def active_application(self, nric: str) -> Application | None:
        """The user's non-terminal application, if any."""
        for application in self.get_user_applications(nric):
            if application.is_active:
                return application
        return None

    @classmethod
    def from_records(
        cls,
        users: Iterable[User] = (),
        projects: Iterable[Project] = (),
        applications: Iterable[Application] = (),
        flats: Iterable[Flat] = (),
        registrations: Iterable[OfficerRegistration] = (),
        withdrawals: Iterable[WithdrawalRequest] = (),
    ) -> "AllocationStore":
        """Build a fresh store, checking every reference on the way in.

        Raises
        ------
        ReferentialIntegrityError
            If any record references a missing entity.
        DuplicateEntityError
            If two records share a key.
        """
        store = cls()
        for user in users:
            store.add_user(user)
        for project in projects:
            store.add_project(project)
        for application in applications:
            store.add_application(application)
        for flat in flats:
            store.add_flat(flat)
        for registration in registrations:
            store.add_registration(registration)
        for request in withdrawals:
            store.add_withdrawal(request)

        for application in store.applications:
            if application.booked_flat_id and application.booked_flat_id not in store.flats:
                raise ReferentialIntegrityError(
                    f"Flat {application.booked_flat_id} of application "
                    f"{application.application_id} not found"
                )
        return store

    def replace_contents(self, other: "AllocationStore") -> None:
        """Take over every entity and index of ``other``, keeping this store's repositories."""
        self.users.load_all(other.users.save_all())
        self.projects.load_all(other.projects.save_all())
        self.applications.load_all(other.applications.save_all())
        self.flats.load_all(other.flats.save_all())
        self.registrations.load_all(other.registrations.save_all())
        self.withdrawals.load_all(other.withdrawals.save_all())

        self._user_applications = other._user_applications
        self._project_applications = other._project_applications
        self._officer_registrations = other._officer_registrations
        self._project_registrations = other._project_registrations
        self._application_withdrawals = other._application_withdrawals

    def rebuild_indexes(self) -> None:
        """Recompute relationship indexes after a bulk load.

        The store is left as it was when a reference is broken.

        Raises
        ------
        ReferentialIntegrityError
            If any record references a missing entity.
        """
        staging = AllocationStore.from_records(
            self.users,
            self.projects,
            self.applications,
            self.flats,
            self.registrations,
            self.withdrawals,
        )
        self.replace_contents(staging)

    def flush(self) -> None:
        """Persist the store through the configured storage, if any."""
        if self.storage is not None:
            self.storage.save_all(self)

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "users": len(self.users),
            "projects": len(self.projects),
            "applications": len(self.applications),
            "flats": len(self.flats),
            "registrations": len(self.registrations),
            "withdrawals": len(self.withdrawals),
        }


