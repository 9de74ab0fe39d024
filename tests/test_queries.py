"""Tests for project discovery and application reports."""

from datetime import date, datetime
from typing import Callable

import pytest

from conftest import MANAGER_NRIC, OFFICER_NRIC, OTHER_MANAGER_NRIC
from bto_alloc.engine.coordinator import AllocationCoordinator
from bto_alloc.engine.queries import (
    ReportCriteria,
    booking_report,
    filter_applications,
    filter_projects,
    receipt_for,
    summarize_by_age_range,
    summarize_by_flat_type,
    summarize_by_marital_status,
    summarize_by_status,
    visible_projects_for,
)
from bto_alloc.exceptions import InvalidTransitionError
from bto_alloc.models import ApplicationStatus, FlatType, MaritalStatus, Project, User
from bto_alloc.store.allocation import AllocationStore


@pytest.fixture
def launched(coordinator: AllocationCoordinator) -> AllocationCoordinator:
    """P1 with three applications: two booked, one pending.

    S8500001D (single, 40) books a 2-Room, S9500003F (married, 30) books a
    3-Room and S8500002E (single, 40) is still pending.
    """
    coordinator.register_officer(OFFICER_NRIC, "P1")
    coordinator.decide_registration(MANAGER_NRIC, OFFICER_NRIC, "P1", True)

    first = coordinator.apply("S8500001D", "P1")
    second = coordinator.apply("S9500003F", "P1")
    coordinator.apply("S8500002E", "P1")
    for application in (first, second):
        coordinator.decide_application(MANAGER_NRIC, application.application_id, True)
    coordinator.book_flat(OFFICER_NRIC, first.application_id, FlatType.TWO_ROOM)
    coordinator.book_flat(OFFICER_NRIC, second.application_id, FlatType.THREE_ROOM)
    return coordinator


class TestVisibleProjects:
    """Tests for visible_projects_for."""

    @pytest.fixture
    def catalogue(self, store: AllocationStore, make_project: Callable[..., Project]) -> AllocationStore:
        store.add_project(make_project("P2", two_room=None, three_room=5, neighborhood="Bedok"))
        store.add_project(make_project("P3", visible=False, neighborhood="Anchorvale"))
        store.add_project(
            make_project("P4", manager_id=OTHER_MANAGER_NRIC, neighborhood="Tampines",
                         open_date=date(2025, 5, 1), close_date=date(2025, 5, 31))
        )
        return store

    def test_single_sees_visible_two_room_projects(self, catalogue: AllocationStore, single_40: User) -> None:
        """Test singles only see visible projects offering 2-Room."""
        projects = visible_projects_for(catalogue, single_40)

        assert [p.project_id for p in projects] == ["P4", "P1"]

    def test_window_does_not_filter(self, catalogue: AllocationStore, married_30: User) -> None:
        """Test projects outside their window still show; hidden ones do not."""
        ids = {p.project_id for p in visible_projects_for(catalogue, married_30)}

        assert ids == {"P1", "P2", "P4"}

    def test_sold_out_project_still_listed(self, catalogue: AllocationStore, single_40: User) -> None:
        """Test a project whose permitted type is sold out stays browsable."""
        catalogue.get_project("P1").units[FlatType.TWO_ROOM].available = 0

        assert "P1" in {p.project_id for p in visible_projects_for(catalogue, single_40)}

    def test_manager_sees_everything(
self, catalogue: AllocationStore, manager: User) -> None:
        assert len(visible_projects_for(catalogue, manager)) == 4

    def test_officer_sees_handled_hidden_project(self, catalogue: AllocationStore, officer: User) -> None:
        officer.handling_project_ids.append("P3")

        assert "P3" in {p.project_id for p in visible_projects_for(catalogue, officer)}

    def test_sorted_by_name(self, catalogue: AllocationStore, manager: User) -> None:
        names = [p.name for p in visible_projects_for(catalogue, manager)]

        assert names == sorted(names, key=str.lower)

    def test_filters(self, catalogue: AllocationStore, married_30: User) -> None:
        """Test neighborhood matching ignores case."""
        by_town = visible_projects_for(catalogue, married_30, neighborhood="bedok")
        by_type = visible_projects_for(catalogue, married_30, flat_type=FlatType.TWO_ROOM)

        assert [p.project_id for p in by_town] == ["P2"]
        assert {p.project_id for p in by_type} == {"P1", "P4"}

    def test_filter_projects_by_manager(self, catalogue: AllocationStore) -> None:
        projects = filter_projects(list(catalogue.projects), manager_id=OTHER_MANAGER_NRIC)

        assert [p.project_id for p in projects] == ["P4"]


class TestReports:
    """Tests for booking reports and summaries."""

    def test_booking_report(self, launched: AllocationCoordinator) -> None:
        """Test only booked applications are reported."""
        report = booking_report(launched.store, "P1")

        assert [a.applicant_id for a in report] == ["S8500001D", "S9500003F"]
        assert booking_report(launched.store) == report

    @pytest.mark.parametrize(
        ("criteria", "expected"),
        [
            (ReportCriteria(marital_status=MaritalStatus.MARRIED), ["S9500003F"]),
            (ReportCriteria(flat_type=FlatType.TWO_ROOM), ["S8500001D"]),
            (ReportCriteria(min_age=35), ["S8500001D"]),
            (ReportCriteria(max_age=35), ["S9500003F"]),
            (ReportCriteria(neighborhood="YISHUN"), ["S8500001D", "S9500003F"]),
            (ReportCriteria(neighborhood="Bedok"), []),
        ],
    )
    def test_booking_report_criteria(
        self, launched: AllocationCoordinator, criteria: ReportCriteria, expected: list[str]
    ) -> None:
        report = booking_report(launched.store, "P1", criteria)

        assert [a.applicant_id for a in report] == expected

    def test_filter_by_status(self, launched: AllocationCoordinator) -> None:
        applications = launched.store.get_project_applications("P1")
        pending = filter_applications(
            launched.store, applications, ReportCriteria(status=ApplicationStatus.PENDING)
        )

        assert [a.applicant_id for a in pending] == ["S8500002E"]

    def test_summaries(self, launched: AllocationCoordinator) -> None:
        store = launched.store
        applications = store.get_project_applications("P1")

        assert summarize_by_status(applications) == {
            ApplicationStatus.BOOKED: 2,
            ApplicationStatus.PENDING: 1,
        }
        assert summarize_by_marital_status(store, applications) == {
            MaritalStatus.SINGLE: 2,
            MaritalStatus.MARRIED: 1,
        }
        assert summarize_by_flat_type(store, applications) == {
            FlatType.TWO_ROOM: 1,
            FlatType.THREE_ROOM: 1,
        }

    def test_summarize_by_age_range(self, launched: AllocationCoordinator) -> None:
        store = launched.store
        applications = store.get_project_applications("P1")

        assert summarize_by_age_range(store, applications, [40, 30]) == {
            "Under 30": 0,
            "30-39": 1,
            "40 and above": 2,
        }
        assert summarize_by_age_range(store, applications, []) == {}


class TestReceipts:
    """Tests for booking receipts."""

    def test_receipt_for_booked_application(self, launched: AllocationCoordinator) -> None:
        """Test the receipt carries applicant, project and flat details."""
        store = launched.store
        issued = datetime(2025, 3, 12, 9, 30)

        receipt = receipt_for(store, "APP00002", issued, generated_by=OFFICER_NRIC)

        applicant = store.get_user("S9500003F")
        assert receipt.receipt_id == "REC-APP00002"
        assert receipt.applicant_nric == "S9500003F"
        assert receipt.applicant_name == applicant.name
        assert receipt.applicant_age == 30
        assert receipt.marital_status == MaritalStatus.MARRIED
        assert receipt.project_id == "P1"
        assert receipt.project_name == store.get_project("P1").name
        assert receipt.neighborhood == "Yishun"
        assert receipt.flat_id == "F-P1-3R-1"
        assert receipt.flat_type == FlatType.THREE_ROOM
        assert receipt.generated_at == issued
        assert receipt.generated_by == OFFICER_NRIC

    def test_render(self, launched: AllocationCoordinator) -> None:
        text = receipt_for(launched.store, "APP00001", datetime(2025, 3, 12)).render()

        assert "Receipt ID: REC-APP00001" in text
        assert "Date: 12-03-2025" in text
        assert "Flat: F-P1-2R-1 (2-Room)" in text
        assert "Marital Status: Single" in text
        assert "Issued by" not in text

    def test_no_receipt_without_booking(self, launched: AllocationCoordinator) -> None:
        """Test pending applications have no receipt."""
        with pytest.raises(InvalidTransitionError, match="APP00003"):
            receipt_for(launched.store, "APP00003", datetime(2025, 3, 12))
