"""Project and flat inventory models."""

from dataclasses import dataclass, field
from datetime import date

from bto_alloc.models.enums import FlatType


@dataclass
class FlatUnits:
    """Total and available units of one flat type."""

    total: int
    available: int

    def __post_init__(self) -> None:
        if not 0 <= self.available <= self.total:
            raise ValueError(
                f"Available units must be within 0..{self.total}, got {self.available}"
            )


@dataclass
class Project:
    """BTO project with its application window and flat inventory."""

    project_id: str
    name: str
    neighborhood: str
    open_date: date
    close_date: date
    manager_id: str
    officer_slots: int
    units: dict[FlatType, FlatUnits] = field(default_factory=dict)
    officer_ids: list[str] = field(default_factory=list)
    visible: bool = True

    def __post_init__(self) -> None:
        if self.close_date < self.open_date:
            raise ValueError(
                f"Project {self.project_id} closes before it opens "
                f"({self.close_date} < {self.open_date})"
            )

    @property
    def available_officer_slots(self) -> int:
        return max(0, self.officer_slots - len(self.officer_ids))

    @property
    def flat_types(self) -> list[FlatType]:
        return [t for t in FlatType if t in self.units]

    def offers(self, flat_type: FlatType) -> bool:
        """Whether the project has any units of this type at all."""
        return flat_type in self.units and self.units[flat_type].total > 0

    def is_open_on(self, day: date) -> bool:
        """Whether ``day`` falls inside the inclusive application window."""
        return self.open_date <= day <= self.close_date

    def overlaps(self, other: "Project") -> bool:
        """Whether the two application windows share at least one day."""
        return not (other.close_date < self.open_date or other.open_date > self.close_date)
