"""Flat-type eligibility rules.

Singles aged 35 and above may take a 2-Room flat only. Married applicants
aged 21 and above may take a 2-Room or 3-Room flat. Everyone else is not
eligible. Applications only need the project to offer a permitted type;
available units are checked when a manager approves and when an officer
books.
"""

from bto_alloc.config import EligibilityConfig
from bto_alloc.models import FlatType, MaritalStatus, Project, User

DEFAULT_RULES = EligibilityConfig()

# Preference when an applicant does not name a flat type
PREFERENCE_ORDER = (FlatType.THREE_ROOM, FlatType.TWO_ROOM)


def permitted_flat_types(
    applicant: User,
    rules: EligibilityConfig = DEFAULT_RULES,
) -> frozenset[FlatType]:
    """Flat types an applicant's age and marital status allow.

    Parameters
    ----------
    applicant : User
        The applicant.
    rules : EligibilityConfig
        Age thresholds.

    Returns
    -------
    frozenset[FlatType]
        Permitted types, ignoring any project inventory.
    """
    if applicant.marital_status == MaritalStatus.SINGLE:
        if applicant.age >= rules.single_min_age:
            return frozenset({FlatType.TWO_ROOM})
        return frozenset()

    if applicant.marital_status == MaritalStatus.MARRIED:
        if applicant.age >= rules.married_min_age:
            return frozenset({FlatType.TWO_ROOM, FlatType.THREE_ROOM})
        return frozenset()

    return frozenset()


def eligible_flat_types(
    applicant: User,
    project: Project,
    rules: EligibilityConfig = DEFAULT_RULES,
) -> frozenset[FlatType]:
    """Flat types the applicant could be allocated in this project right now.

    Parameters
    ----------
    applicant : User
        The applicant.
    project : Project
        The project whose inventory is checked.
    rules : EligibilityConfig
        Age thresholds.

    Returns
    -------
    frozenset[FlatType]
        Permitted types that the project offers with units available.
    """
    return frozenset(
        flat_type
        for flat_type in permitted_flat_types(applicant, rules)
        if flat_type in project.units and project.units[flat_type].available > 0
    )


def offered_flat_types(
    applicant: User,
    project: Project,
    rules: EligibilityConfig = DEFAULT_RULES,
) -> frozenset[FlatType]:
    """Permitted types the project offers at all, sold out or not.

    Submission is gated on this set; availability is only checked when a
    manager approves (reserve) or an officer books.
    """
    return frozenset(t for t in permitted_flat_types(applicant, rules) if project.offers(t))


def is_eligible_for(
    applicant: User,
    project: Project,
    flat_type: FlatType,
    rules: EligibilityConfig = DEFAULT_RULES,
) -> bool:
    return flat_type in eligible_flat_types(applicant, project, rules)


def preferred_flat_type(eligible: frozenset[FlatType]) -> FlatType | None:
    """Pick the largest eligible flat type, or None if there is none."""
    for flat_type in PREFERENCE_ORDER:
        if flat_type in eligible:
            return flat_type
    return None
