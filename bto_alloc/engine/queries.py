"""Read-only queries: project discovery, booking receipts and report summaries."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime

from bto_alloc.config import EligibilityConfig
from bto_alloc.engine.eligibility import offered_flat_types
from bto_alloc.exceptions import InvalidTransitionError
from bto_alloc.models import (
    Application,
    ApplicationStatus,
    FlatType,
    MaritalStatus,
    Project,
    Receipt,
    User,
)
from bto_alloc.store.allocation import AllocationStore


@dataclass
class ReportCriteria:
    """Filters for application reports. ``None`` means "any"."""

    marital_status: MaritalStatus | None = None
    flat_type: FlatType | None = None  # Matches the booked flat's type
    neighborhood: str | None = None
    min_age: int | None = None
    max_age: int | None = None
    status: ApplicationStatus | None = None


def visible_projects_for(
    store: AllocationStore,
    user: User,
    rules: EligibilityConfig | None = None,
    neighborhood: str | None = None,
    flat_type: FlatType | None = None,
) -> list[Project]:
    """Projects a user may see, sorted by name.

    Managers see every project. Officers also see the projects they handle
    regardless of visibility. Everyone else sees visible projects with a
    flat type their age and marital status permit, sold out or not.
    """
    rules = rules or EligibilityConfig()
    result = []
    for project in store.projects:
        if user.is_manager or user.handles(project.project_id):
            result.append(project)
            continue
        if project.visible and offered_flat_types(user, project, rules):
            result.append(project)

    result = filter_projects(result, neighborhood=neighborhood, flat_type=flat_type)
    return sorted(result, key=lambda p: p.name.lower())


def filter_projects(
    projects: list[Project],
    neighborhood: str | None = None,
    flat_type: FlatType | None = None,
    manager_id: str | None = None,
) -> list[Project]:
    filtered = list(projects)
    if neighborhood:
        filtered = [p for p in filtered if p.neighborhood.lower() == neighborhood.lower()]
    if flat_type is not None:
        filtered = [p for p in filtered if p.offers(flat_type)]
    if manager_id:
        filtered = [p for p in filtered if p.manager_id == manager_id]
    return filtered


def receipt_for(
    store: AllocationStore,
    application_id: str,
    generated_at: datetime,
    generated_by: str | None = None,
) -> Receipt:
    """Build the booking receipt of a BOOKED application.

    Raises
    ------
    EntityNotFoundError
        If the application, its applicant, project or flat is unknown.
    InvalidTransitionError
        If the application has not booked a flat.
    """
    application = store.get_application(application_id)
    if application.status != ApplicationStatus.BOOKED or application.booked_flat_id is None:
        raise InvalidTransitionError(
            f"Application {application_id} has no booked flat "
            f"(status {application.status.value})"
        )

    applicant = store.get_user(application.applicant_id)
    project = store.get_project(application.project_id)
    flat = store.get_flat(application.booked_flat_id)
    return Receipt(
        receipt_id=f"REC-{application.application_id}",
        application_id=application.application_id,
        applicant_nric=applicant.nric,
        applicant_name=applicant.name,
        applicant_age=applicant.age,
        marital_status=applicant.marital_status,
        project_id=project.project_id,
        project_name=project.name,
        neighborhood=project.neighborhood,
        flat_id=flat.flat_id,
        flat_type=flat.flat_type,
        applied_at=application.applied_at,
        generated_at=generated_at,
        generated_by=generated_by,
    )


def filter_applications(
    store: AllocationStore,
    applications: list[Application],
    criteria: ReportCriteria,
) -> list[Application]:
    """Apply report criteria to a list of applications."""
    result = []
    for application in applications:
        applicant = store.get_user(application.applicant_id)
        project = store.get_project(application.project_id)

        if criteria.marital_status is not None and applicant.marital_status != criteria.marital_status:
            continue
        if criteria.min_age is not None and applicant.age < criteria.min_age:
            continue
        if criteria.max_age is not None and applicant.age > criteria.max_age:
            continue
        if criteria.status is not None and application.status != criteria.status:
            continue
        if criteria.neighborhood and project.neighborhood.lower() != criteria.neighborhood.lower():
            continue
        if criteria.flat_type is not None:
            if application.booked_flat_id is None:
                continue
            if store.get_flat(application.booked_flat_id).flat_type != criteria.flat_type:
                continue
        result.append(application)
    return result


def booking_report(
    store: AllocationStore,
    project_id: str | None = None,
    criteria: ReportCriteria | None = None,
) -> list[Application]:
    """Booked applications, optionally limited to one project and filtered."""
    if project_id is None:
        applications = list(store.applications)
    else:
        applications = store.get_project_applications(project_id)
    booked = [
        a for a in applications if a.status == ApplicationStatus.BOOKED and a.booked_flat_id
    ]
    return filter_applications(store, booked, criteria or ReportCriteria())


def summarize_by_status(applications: list[Application]) -> dict[ApplicationStatus, int]:
    return dict(Counter(a.status for a in applications))


def summarize_by_marital_status(
    store: AllocationStore, applications: list[Application]
) -> dict[MaritalStatus, int]:
    return dict(Counter(store.get_user(a.applicant_id).marital_status for a in applications))


def summarize_by_flat_type(
    store: AllocationStore, applications: list[Application]
) -> dict[FlatType, int]:
    """Count booked flats per type; unbooked applications are skipped."""
    return dict(
        Counter(
            store.get_flat(a.booked_flat_id).flat_type
            for a in applications
            if a.booked_flat_id is not None
        )
    )


def summarize_by_age_range(
    store: AllocationStore,
    applications: list[Application],
    boundaries: list[int],
) -> dict[str, int]:
    """Bucket applicants by age.

    ``boundaries=[30, 40]`` yields ``Under 30``, ``30-39`` and
    ``40 and above``.
    """
    if not boundaries:
        return {}
    bounds = sorted(boundaries)
    labels = [f"Under {bounds[0]}"]
    labels += [f"{low}-{high - 1}" for low, high in zip(bounds, bounds[1:])]
    labels.append(f"{bounds[-1]} and above")

    summary = {label: 0 for label in labels}
    for application in applications:
        age = store.get_user(application.applicant_id).age
        index = sum(1 for bound in bounds if age >= bound)
        summary[labels[index]] += 1
    return summary
