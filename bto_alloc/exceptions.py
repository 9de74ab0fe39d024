"""Custom exception hierarchy for bto-alloc.

Every rule violation raised by the engine derives from :class:`BtoError` and
carries a stable ``code`` so callers can map failures without matching on
message text.
"""


class BtoError(Exception):
    """Base exception for all bto-alloc errors."""

    code = "BtoError"


class EntityNotFoundError(BtoError):
    """Raised when a referenced entity does not exist."""

    code = "NotFound"


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a persisted record references a missing entity."""

    code = "ReferentialIntegrity"


class DuplicateEntityError(BtoError):
    """Raised when adding an entity whose key is already taken."""

    code = "DuplicateEntity"


class InvalidIdentityError(BtoError):
    """Raised when an NRIC does not match the expected format."""

    code = "InvalidIdentity"


# Application workflow


class AlreadyHasActiveApplicationError(BtoError):
    """Raised when an applicant already holds a non-terminal application."""

    code = "AlreadyHasActiveApplication"


class NotEligibleError(BtoError):
    """Raised when an applicant may not apply for any (or the requested) flat type."""

    code = "NotEligible"


class ProjectNotOpenError(BtoError):
    """Raised when applying outside a project's application window."""

    code = "ProjectNotOpen"


class ProjectNotVisibleError(BtoError):
    """Raised when applying to a hidden project."""

    code = "ProjectNotVisible"


class NoUnitsAvailableError(BtoError):
    """Raised when a flat type has no available units left."""

    code = "NoUnitsAvailable"


class InvalidTransitionError(BtoError):
    """Raised when an entity is in an invalid state for the operation."""

    code = "InvalidTransition"


# Officer registration


class AlreadyRegisteredError(BtoError):
    """Raised when an officer already registered for the project."""

    code = "AlreadyRegistered"


class NoOfficerSlotsError(BtoError):
    """Raised when a project has no free officer slots."""

    code = "NoOfficerSlots"


class OverlappingAssignmentError(BtoError):
    """Raised when an officer already handles a project with an overlapping window."""

    code = "OverlappingAssignment"


class ConflictingRoleError(BtoError):
    """Raised when a user would be both applicant and officer for one project."""

    code = "ConflictingRole"


# Authority


class NotProjectManagerError(BtoError):
    """Raised when a manager acts on a project they do not manage."""

    code = "NotProjectManager"


class NotHandlingProjectError(BtoError):
    """Raised when an officer books a flat for a project they do not handle."""

    code = "NotHandlingProject"


# Infrastructure


class ConfigurationError(BtoError):
    """Raised when configuration is invalid or missing."""

    code = "Configuration"


class PersistenceError(BtoError):
    """Raised when loading or saving records fails."""

    code = "Persistence"


class SinkError(BtoError):
    """Raised when a sink operation fails."""

    code = "Sink"
