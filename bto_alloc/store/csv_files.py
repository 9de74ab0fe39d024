"""CSV file persistence for the allocation store.

One file per entity type, header row first. Saves go through a temp file in
the same directory and an atomic replace, so a failed save leaves the
previous file in place.
"""

from __future__ import annotations

import csv
import logging
import os
import tempfile
from collections.abc import Callable, Iterable
from datetime import date, datetime
from pathlib import Path
from typing import TypeVar

from bto_alloc.exceptions import BtoError, PersistenceError
from bto_alloc.models import (
    Application,
    ApplicationStatus,
    Flat,
    FlatType,
    FlatUnits,
    MaritalStatus,
    OfficerRegistration,
    Project,
    RegistrationStatus,
    User,
    UserRole,
    WithdrawalRequest,
    validate_nric,
)
from bto_alloc.store.allocation import AllocationStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_FILES = {
    UserRole.APPLICANT: "ApplicantList.csv",
    UserRole.OFFICER: "OfficerList.csv",
    UserRole.MANAGER: "ManagerList.csv",
}
PROJECT_FILE = "ProjectList.csv"
APPLICATION_FILE = "ApplicationList.csv"
FLAT_FILE = "FlatList.csv"
REGISTRATION_FILE = "OfficerRegistrations.csv"
WITHDRAWAL_FILE = "WithdrawalRequests.csv"

USER_HEADER = ["Name", "NRIC", "Age", "Marital Status"]
PROJECT_HEADER = [
    "ProjectID",
    "Project Name",
    "Neighborhood",
    "Type 1",
    "Number of units for Type 1",
    "Available units for Type 1",
    "Type 2",
    "Number of units for Type 2",
    "Available units for Type 2",
    "Application opening date",
    "Application closing date",
    "Manager",
    "Officer Slot",
    "Officer",
    "Visible",
]
APPLICATION_HEADER = [
    "ApplicationID",
    "ApplicantNRIC",
    "ProjectID",
    "Status",
    "ApplicationDate",
    "StatusUpdateDate",
    "BookedFlatID",
    "RequestedFlatType",
    "ReservedFlatType",
    "PreviousStatus",
]
FLAT_HEADER = ["FlatID", "ProjectID", "FlatType", "ApplicationID"]
REGISTRATION_HEADER = ["OfficerNRIC", "ProjectID", "Status", "RegistrationDate", "DecisionDate"]
WITHDRAWAL_HEADER = [
    "RequestID",
    "ApplicationID",
    "Reason",
    "RequestDate",
    "IsProcessed",
    "IsApproved",
    "ProcessedDate",
    "ProcessedBy",
]

_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0"}


def _parse_bool(value: str) -> bool:
    cleaned = value.strip().lower()
    if cleaned in _TRUE:
        return True
    if cleaned in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def _parse_optional(value: str | None, parse: Callable[[str], T]) -> T | None:
    if value is None or not value.strip():
        return None
    return parse(value.strip())


def _format_optional(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, FlatType):
        return value.label
    if isinstance(value, (ApplicationStatus, RegistrationStatus)):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class CsvStorage:
    """Load and save an :class:`AllocationStore` as CSV files.

    Parameters
    ----------
    data_dir : str | Path
        Directory holding the CSV files.
    date_format : str
        ``strftime`` format of project opening and closing dates.
    """

    def __init__(self, data_dir: str | Path, date_format: str = "%d/%m/%Y") -> None:
        self.data_dir = Path(data_dir)
        self.date_format = date_format

    # Whole store
    def load_all(self, store: AllocationStore) -> None:
        """Replace the store's contents with the files on disk.

        Every file is parsed and checked before the store is touched, so a
        failed load leaves it as it was.

        Raises
        ------
        PersistenceError
            If a file cannot be read or a row is malformed.
        ReferentialIntegrityError
            If a record references a user, project, application or flat
            that does not exist.
        DuplicateEntityError
            If two rows share a key.
        """
        staging = AllocationStore.from_records(
            users=self.load_users(),
            projects=self.load_projects(),
            applications=self.load_applications(),
            flats=self.load_flats(),
            registrations=self.load_registrations(),
            withdrawals=self.load_withdrawals(),
        )

        # Denormalized user fields are derived rather than stored
        for user in staging.users:
            user.active_application_id = None
            user.booked_flat_id = None
            user.handling_project_ids = []
        for project in staging.projects:
            for officer_id in project.officer_ids:
                staging.get_user(officer_id).handling_project_ids.append(project.project_id)
        for application in staging.applications:
            applicant = staging.get_user(application.applicant_id)
            if application.is_active:
                applicant.active_application_id = application.application_id
            if application.booked_flat_id:
                applicant.booked_flat_id = application.booked_flat_id

        store.replace_contents(staging)
        logger.info("Loaded store from %s: %s", self.data_dir, store.summary())

    def save_all(self, store: AllocationStore) -> None:
        """Write every entity type to its file.

        Raises
        ------
        PersistenceError
            If any file cannot be written. Files already replaced stay
            replaced; the failing file keeps its previous content.
        """
        self.save_users(store.users)
        self.save_projects(store.projects)
        self.save_applications(store.applications)
        self.save_flats(store.flats)
        self.save_registrations(store.registrations)
        self.save_withdrawals(store.withdrawals)
        logger.debug("Saved store to %s", self.data_dir)

    # Users
    def load_users(self) -> list[User]:
        users: list[User] = []
        for role, filename in USER_FILES.items():
            users.extend(self._read(filename, lambda row, role=role: self._user_from_row(row, role)))
        return users

    def save_users(self, users: Iterable[User]) -> None:
        by_role: dict[UserRole, list[list[str]]] = {role: [] for role in USER_FILES}
        for user in users:
            by_role[user.role].append(
                [user.name, user.nric, str(user.age), user.marital_status.value.title()]
            )
        for role, filename in USER_FILES.items():
            self._write(filename, USER_HEADER, by_role[role])

    @staticmethod
    def _user_from_row(row: dict[str, str], role: UserRole) -> User:
        return User(
            nric=validate_nric(row["NRIC"]),
            name=row["Name"].strip(),
            age=int(row["Age"]),
            marital_status=MaritalStatus.parse(row["Marital Status"]),
            role=role,
        )

    # Projects
    def load_projects(self) -> list[Project]:
        return self._read(PROJECT_FILE, self._project_from_row)

    def save_projects(self, projects: Iterable[Project]) -> None:
        rows = []
        for project in projects:
            type_columns: list[str] = []
            for flat_type in project.flat_types[:2]:
                units = project.units[flat_type]
                type_columns += [flat_type.label, str(units.total), str(units.available)]
            type_columns += [""] * (6 - len(type_columns))
            rows.append(
                [project.project_id, project.name, project.neighborhood]
                + type_columns
                + [
                    project.open_date.strftime(self.date_format),
                    project.close_date.strftime(self.date_format),
                    project.manager_id,
                    str(project.officer_slots),
                    ";".join(project.officer_ids),
                    "true" if project.visible else "false",
                ]
            )
        self._write(PROJECT_FILE, PROJECT_HEADER, rows)

    def _project_from_row(self, row: dict[str, str]) -> Project:
        units: dict[FlatType, FlatUnits] = {}
        for n in (1, 2):
            label = (row.get(f"Type {n}") or "").strip()
            if not label:
                continue
            total = int(row[f"Number of units for Type {n}"])
            available_str = (row.get(f"Available units for Type {n}") or "").strip()
            available = int(available_str) if available_str else total
            units[FlatType.from_label(label)] = FlatUnits(total=total, available=available)

        officers = row.get("Officer") or ""
        visible = _parse_optional(row.get("Visible"), _parse_bool)
        return Project(
            project_id=row["ProjectID"].strip(),
            name=row["Project Name"].strip(),
            neighborhood=row["Neighborhood"].strip(),
            open_date=datetime.strptime(row["Application opening date"].strip(), self.date_format).date(),
            close_date=datetime.strptime(row["Application closing date"].strip(), self.date_format).date(),
            manager_id=validate_nric(row["Manager"]),
            officer_slots=int(row["Officer Slot"]),
            units=units,
            officer_ids=[validate_nric(nric) for nric in officers.split(";") if nric.strip()],
            visible=True if visible is None else visible,
        )

    # Applications
    def load_applications(self) -> list[Application]:
        return self._read(APPLICATION_FILE, self._application_from_row)

    def save_applications(self, applications: Iterable[Application]) -> None:
        rows = [
            [
                a.application_id,
                a.applicant_id,
                a.project_id,
                a.status.value,
                a.applied_at.isoformat(),
                a.status_updated_at.isoformat(),
                _format_optional(a.booked_flat_id),
                _format_optional(a.requested_flat_type),
                _format_optional(a.reserved_flat_type),
                _format_optional(a.previous_status),
            ]
            for a in applications
        ]
        self._write(APPLICATION_FILE, APPLICATION_HEADER, rows)

    @staticmethod
    def _application_from_row(row: dict[str, str]) -> Application:
        return Application(
            application_id=row["ApplicationID"].strip(),
            applicant_id=validate_nric(row["ApplicantNRIC"]),
            project_id=row["ProjectID"].strip(),
            status=ApplicationStatus(row["Status"].strip().upper()),
            applied_at=datetime.fromisoformat(row["ApplicationDate"].strip()),
            status_updated_at=datetime.fromisoformat(row["StatusUpdateDate"].strip()),
            booked_flat_id=_parse_optional(row.get("BookedFlatID"), str),
            requested_flat_type=_parse_optional(row.get("RequestedFlatType"), FlatType.from_label),
            reserved_flat_type=_parse_optional(row.get("ReservedFlatType"), FlatType.from_label),
            previous_status=_parse_optional(row.get("PreviousStatus"), ApplicationStatus),
        )

    # Flats
    def load_flats(self) -> list[Flat]:
        return self._read(FLAT_FILE, self._flat_from_row)

    def save_flats(self, flats: Iterable[Flat]) -> None:
        rows = [
            [f.flat_id, f.project_id, f.flat_type.label, _format_optional(f.application_id)]
            for f in flats
        ]
        self._write(FLAT_FILE, FLAT_HEADER, rows)

    @staticmethod
    def _flat_from_row(row: dict[str, str]) -> Flat:
        return Flat(
            flat_id=row["FlatID"].strip(),
            project_id=row["ProjectID"].strip(),
            flat_type=FlatType.from_label(row["FlatType"]),
            application_id=_parse_optional(row.get("ApplicationID"), str),
        )

    # Officer registrations
    def load_registrations(self) -> list[OfficerRegistration]:
        return self._read(REGISTRATION_FILE, self._registration_from_row)

    def save_registrations(self, registrations: Iterable[OfficerRegistration]) -> None:
        rows = [
            [
                r.officer_id,
                r.project_id,
                r.status.value,
                r.registered_at.isoformat(),
                _format_optional(r.decided_at),
            ]
            for r in registrations
        ]
        self._write(REGISTRATION_FILE, REGISTRATION_HEADER, rows)

    @staticmethod
    def _registration_from_row(row: dict[str, str]) -> OfficerRegistration:
        return OfficerRegistration(
            officer_id=validate_nric(row["OfficerNRIC"]),
            project_id=row["ProjectID"].strip(),
            status=RegistrationStatus(row["Status"].strip().upper()),
            registered_at=datetime.fromisoformat(row["RegistrationDate"].strip()),
            decided_at=_parse_optional(row.get("DecisionDate"), datetime.fromisoformat),
        )

    # Withdrawal requests
    def load_withdrawals(self) -> list[WithdrawalRequest]:
        return self._read(WITHDRAWAL_FILE, self._withdrawal_from_row)

    def save_withdrawals(self, requests: Iterable[WithdrawalRequest]) -> None:
        rows = [
            [
                w.request_id,
                w.application_id,
                w.reason,
                w.requested_at.isoformat(),
                "true" if w.processed else "false",
                "true" if w.approved else "false",
                _format_optional(w.processed_at),
                _format_optional(w.processed_by),
            ]
            for w in requests
        ]
        self._write(WITHDRAWAL_FILE, WITHDRAWAL_HEADER, rows)

    @staticmethod
    def _withdrawal_from_row(row: dict[str, str]) -> WithdrawalRequest:
        return WithdrawalRequest(
            application_id=row["ApplicationID"].strip(),
            reason=row.get("Reason") or "",
            requested_at=datetime.fromisoformat(row["RequestDate"].strip()),
            processed=_parse_bool(row["IsProcessed"]),
            approved=_parse_bool(row["IsApproved"]),
            processed_at=_parse_optional(row.get("ProcessedDate"), datetime.fromisoformat),
            processed_by=_parse_optional(row.get("ProcessedBy"), validate_nric),
            request_id=(row.get("RequestID") or "").strip(),
        )

    # File helpers
    def _read(self, filename: str, parse: Callable[[dict[str, str]], T]) -> list[T]:
        """Parse every row of a file; a missing file yields no records."""
        path = self.data_dir / filename
        if not path.exists():
            logger.debug("%s not found, starting empty", path)
            return []

        records: list[T] = []
        try:
            with open(path, newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f)
                for row in reader:
                    if not any((value or "").strip() for value in row.values()):
                        continue
                    try:
                        records.append(parse(row))
                    except (KeyError, ValueError, AttributeError, BtoError) as exc:
                        raise PersistenceError(
                            f"{path}:{reader.line_num}: malformed row: {exc}"
                        ) from exc
        except OSError as exc:
            raise PersistenceError(f"Cannot read {path}: {exc}") from exc
        return records

    def _write(self, filename: str, header: list[str], rows: list[list[str]]) -> None:
        """Write rows to a temp file and atomically replace the target."""
        path = self.data_dir / filename
        tmp_name = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self.data_dir,
                prefix=f".{filename}.",
                suffix=".tmp",
                newline="",
                encoding="utf-8",
                delete=False,
            ) as f:
                tmp_name = f.name
                writer = csv.writer(f)
                writer.writerow(header)
                writer.writerows(rows)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Cannot write {path}: {exc}") from exc
