"""Launch scenario: a full sales exercise driven through the coordinator."""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, time, timedelta
from typing import Any

from bto_alloc.config import EligibilityConfig, ScenarioConfig
from bto_alloc.engine.coordinator import AllocationCoordinator
from bto_alloc.engine.queries import summarize_by_flat_type, summarize_by_status
from bto_alloc.exceptions import BtoError
from bto_alloc.generators import ProjectGenerator, UserGenerator
from bto_alloc.models import ApplicationStatus, Receipt, User, UserRole
from bto_alloc.store.allocation import AllocationStore

logger = logging.getLogger(__name__)


class LaunchScenario:
    """Simulate a BTO launch from project creation to key collection.

    This scenario creates:
    - Managers, each creating one project open on ``today``
    - Officers registering for projects and managers deciding on them
    - Applicants applying to a project they can see
    - Manager decisions, officer bookings and a share of withdrawals

    Every step goes through :class:`AllocationCoordinator`, so rule
    rejections (no slots, ineligible applicants, sold-out types) happen as
    they would for real users.
    """

    def __init__(
        self,
        config: ScenarioConfig | None = None,
        seed: int | None = None,
        *,
        today: date | None = None,
        rules: EligibilityConfig | None = None,
        store: AllocationStore | None = None,
        event_sinks: list[Any] | None = None,
    ) -> None:
        """Initialize launch scenario.

        Parameters
        ----------
        config : ScenarioConfig | None
            Population sizes and decision rates.
        seed : int | None
            Random seed for reproducibility.
        today : date | None
            Simulated launch day. Defaults to today.
        rules : EligibilityConfig | None
            Eligibility age thresholds.
        store : AllocationStore | None
            Store to fill; a fresh in-memory store by default.
        event_sinks : list[Any] | None
            Sinks receiving domain events while the scenario runs.
        """
        self.config = config or ScenarioConfig()
        self.seed = seed
        self.today = today or date.today()

        if seed is not None:
            random.seed(seed)

        self.store = store or AllocationStore()
        self._ticks = 0
        self.coordinator = AllocationCoordinator(
            self.store,
            sinks=event_sinks or [],
            clock=self._clock,
            rules=rules,
        )
        self._user_gen = UserGenerator(seed=seed, today=self.today)
        self._project_gen = ProjectGenerator(seed=seed)
        self.rejections: dict[str, int] = {}
        self.receipts: list[Receipt] = []

    def _clock(self) -> datetime:
        """Simulated time: one minute per call from 09:00 on launch day."""
        self._ticks += 1
        return datetime.combine(self.today, time(9)) + timedelta(minutes=self._ticks)

    def generate(self) -> AllocationStore:
        """Run the launch and return the populated store.

        Returns
        -------
        AllocationStore
            Store containing all generated data.
        """
        cfg = self.config
        logger.info(
            "Starting launch scenario '%s': %d projects, %d applicants, %d officers",
            cfg.name,
            cfg.num_projects,
            cfg.num_applicants,
            cfg.num_officers,
        )

        managers = self._add_users(cfg.num_projects, UserRole.MANAGER)
        officers = self._add_users(cfg.num_officers, UserRole.OFFICER)
        applicants = self._add_users(cfg.num_applicants, UserRole.APPLICANT)

        for project in self._project_gen.generate_batch(
            cfg.num_projects, [m.nric for m in managers], open_on=self.today
        ):
            self.coordinator.create_project(project.manager_id, project)

        self._register_officers(officers)
        self._apply(applicants)
        self._decide_applications()
        self._book_flats()
        self._withdraw()

        logger.info("Launch scenario complete: %s", self.store.summary())
        if self.rejections:
            logger.info("Rule rejections: %s", self.rejections)
        return self.store

    def _add_users(self, count: int, role: UserRole) -> list[User]:
        users = list(self._user_gen.generate_batch(count, role))
        for user in users:
            self.store.add_user(user)
        return users

    def _attempt(self, operation: str, func: Any, *args: Any) -> Any:
        """Run a coordinator call, counting rule rejections by error code."""
        try:
            return func(*args)
        except BtoError as exc:
            self.rejections[exc.code] = self.rejections.get(exc.code, 0) + 1
            logger.debug("%s rejected: %s", operation, exc)
            return None

    def _register_officers(self, officers: list[User]) -> None:
        projects = list(self.store.projects)
        for officer in officers:
            project = random.choice(projects)
            registration = self._attempt(
                "register_officer", self.coordinator.register_officer, officer.nric, project.project_id
            )
            if registration is None:
                continue
            self._attempt(
                "decide_registration",
                self.coordinator.decide_registration,
                project.manager_id,
                officer.nric,
                project.project_id,
                True,
            )

    def _apply(self, applicants: list[User]) -> None:
        for applicant in applicants:
            choices = self.coordinator.visible_projects_for(applicant.nric)
            if not choices:
                self.rejections["NoVisibleProject"] = self.rejections.get("NoVisibleProject", 0) + 1
                continue
            project = random.choice(choices)
            self._attempt("apply", self.coordinator.apply, applicant.nric, project.project_id)

    def _decide_applications(self) -> None:
        for application in list(self.store.applications):
            if application.status != ApplicationStatus.PENDING:
                continue
            project = self.store.get_project(application.project_id)
            approve = random.random() < self.config.approval_rate
            self._attempt(
                "decide_application",
                self.coordinator.decide_application,
                project.manager_id,
                application.application_id,
                approve,
            )

    def _book_flats(self) -> None:
        for application in list(self.store.applications):
            if application.status != ApplicationStatus.SUCCESSFUL:
                continue
            if random.random() >= self.config.booking_rate:
                continue
            project = self.store.get_project(application.project_id)
            officers = [o for o in project.officer_ids if o != application.applicant_id]
            if not officers:
                continue
            officer = random.choice(officers)
            flat = self._attempt(
                "book_flat",
                self.coordinator.book_flat,
                officer,
                application.application_id,
                application.reserved_flat_type,
            )
            if flat is not None:
                self.receipts.append(
                    self.coordinator.generate_receipt(officer, application.application_id)
                )

    def _withdraw(self) -> None:
        for application in list(self.store.applications):
            if not application.is_active or random.random() >= self.config.withdrawal_rate:
                continue
            request = self._attempt(
                "request_withdrawal",
                self.coordinator.request_withdrawal,
                application.applicant_id,
                application.application_id,
                self._user_gen.fake.sentence(nb_words=6),
            )
            if request is None:
                continue
            project = self.store.get_project(application.project_id)
            self._attempt(
                "resolve_withdrawal",
                self.coordinator.resolve_withdrawal,
                project.manager_id,
                application.application_id,
                random.random() < 0.7,
            )

    def export(self, sinks: list[Any]) -> None:
        """Export the final state to sinks.

        Parameters
        ----------
        sinks : list[Any]
            List of sink instances (JsonFileSink, KafkaSink, etc.).
        """
        for sink in sinks:
            sink.write_batch("users", list(self.store.users))
            sink.write_batch("projects", list(self.store.projects))
            sink.write_batch("applications", list(self.store.applications))
            sink.write_batch("flats", list(self.store.flats))
            sink.write_batch("registrations", list(self.store.registrations))
            sink.write_batch("withdrawals", list(self.store.withdrawals))

        logger.info("Exported launch data to %d sinks", len(sinks))

    def get_launch_summary(self) -> dict[str, Any]:
        """Get summary statistics for the launch.

        Returns
        -------
        dict[str, Any]
            Entity counts, status and flat type distributions, remaining
            inventory per project and rule rejections by code.
        """
        applications = list(self.store.applications)
        inventory = {
            project.project_id: {
                flat_type.value: {"available": units.available, "total": units.total}
                for flat_type, units in project.units.items()
            }
            for project in self.store.projects
        }
        return {
            "counts": self.store.summary(),
            "application_status_distribution": {
                status.value: count for status, count in summarize_by_status(applications).items()
            },
            "booked_flat_types": {
                flat_type.value: count
                for flat_type, count in summarize_by_flat_type(self.store, applications).items()
            },
            "inventory": inventory,
            "rejections": dict(self.rejections),
        }
