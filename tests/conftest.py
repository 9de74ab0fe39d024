"""Pytest configuration and fixtures."""

from datetime import date, datetime, timedelta
from typing import Any, Callable

import pytest

from bto_alloc.engine.coordinator import AllocationCoordinator
from bto_alloc.models import FlatType, FlatUnits, MaritalStatus, Project, User, UserRole
from bto_alloc.store.allocation import AllocationStore

MANAGER_NRIC = "S1234567A"
OTHER_MANAGER_NRIC = "S7654321B"
OFFICER_NRIC = "S8012345C"


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingSink:
    """Sink that keeps everything it receives."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, Any]] = []
        self.batches: dict[str, list[Any]] = {}
        self.closed = False

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        self.sent.append((topic, record))

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        self.batches[entity_type] = list(records)

    def close(self) -> None:
        self.closed = True

    @property
    def event_types(self) -> list[str]:
        return [record.event_type for _, record in self.sent]


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 10:00 on 10 March 2025."""
    return FakeClock(datetime(2025, 3, 10, 10, 0))


@pytest.fixture
def make_user() -> Callable[..., User]:
    """Factory for users with sensible defaults."""

    def _make(
        nric: str,
        age: int = 40,
        marital_status: MaritalStatus = MaritalStatus.SINGLE,
        role: UserRole = UserRole.APPLICANT,
        name: str | None = None,
    ) -> User:
        return User(
            nric=nric,
            name=name or f"User {nric}",
            age=age,
            marital_status=marital_status,
            role=role,
        )

    return _make


@pytest.fixture
def make_project() -> Callable[..., Project]:
    """Factory for projects open throughout March 2025 by default."""

    def _make(
        project_id: str = "P1",
        two_room: int | None = 2,
        three_room: int | None = 1,
        open_date: date = date(2025, 3, 1),
        close_date: date = date(2025, 3, 31),
        manager_id: str = MANAGER_NRIC,
        officer_slots: int = 2,
        neighborhood: str = "Yishun",
        visible: bool = True,
    ) -> Project:
        units = {}
        if two_room is not None:
            units[FlatType.TWO_ROOM] = FlatUnits(total=two_room, available=two_room)
        if three_room is not None:
            units[FlatType.THREE_ROOM] = FlatUnits(total=three_room, available=three_room)
        return Project(
            project_id=project_id,
            name=f"{neighborhood} Breeze {project_id}",
            neighborhood=neighborhood,
            open_date=open_date,
            close_date=close_date,
            manager_id=manager_id,
            officer_slots=officer_slots,
            units=units,
            visible=visible,
        )

    return _make


@pytest.fixture
def manager(make_user: Callable[..., User]) -> User:
    """Manager in charge of the default project."""
    return make_user(MANAGER_NRIC, age=45, marital_status=MaritalStatus.MARRIED, role=UserRole.MANAGER)


@pytest.fixture
def officer(make_user: Callable[..., User]) -> User:
    """Officer not yet registered for any project."""
    return make_user(OFFICER_NRIC, age=30, marital_status=MaritalStatus.MARRIED, role=UserRole.OFFICER)


@pytest.fixture
def single_40(make_user: Callable[..., User]) -> User:
    """Single applicant aged 40 (2-Room only)."""
    return make_user("S8500001D", age=40)


@pytest.fixture
def single_40_b(make_user: Callable[..., User]) -> User:
    """Second single applicant aged 40."""
    return make_user("S8500002E", age=40)


@pytest.fixture
def married_30(make_user: Callable[..., User]) -> User:
    """Married applicant aged 30 (2-Room or 3-Room)."""
    return make_user("S9500003F", age=30, marital_status=MaritalStatus.MARRIED)


@pytest.fixture
def store(
    manager: User,
    officer: User,
    single_40: User,
    single_40_b: User,
    married_30: User,
    make_user: Callable[..., User],
    make_project: Callable[..., Project],
) -> AllocationStore:
    """Store with one manager, one officer, three applicants and project P1."""
    store = AllocationStore()
    for user in (manager, officer, single_40, single_40_b, married_30):
        store.add_user(user)
    store.add_user(
        make_user(OTHER_MANAGER_NRIC, age=50, marital_status=MaritalStatus.MARRIED, role=UserRole.MANAGER)
    )
    store.add_project(make_project())
    return store


@pytest.fixture
def sink() -> RecordingSink:
    """Sink recording published events."""
    return RecordingSink()


@pytest.fixture
def coordinator(store: AllocationStore, sink: RecordingSink, clock: FakeClock) -> AllocationCoordinator:
    """Coordinator over the default store with a recording sink."""
    return AllocationCoordinator(store, sinks=[sink], clock=clock)
