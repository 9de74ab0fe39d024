"""Project generator with realistic windows and inventory."""

from __future__ import annotations

import random
from datetime import date, timedelta
from typing import Iterator

from bto_alloc.generators.base import BaseGenerator
from bto_alloc.models import FlatType, FlatUnits, Project


class ProjectGenerator(BaseGenerator):
    """Generate synthetic BTO projects."""

    NEIGHBORHOODS = [
        "Ang Mo Kio",
        "Bedok",
        "Bukit Batok",
        "Choa Chu Kang",
        "Jurong West",
        "Punggol",
        "Sengkang",
        "Tampines",
        "Tengah",
        "Woodlands",
        "Yishun",
    ]
    NAME_SUFFIXES = ["Residences", "Grove", "Vista", "Heights", "Court", "Breeze", "Meadows"]

    # Share of projects offering a single flat type
    SINGLE_TYPE_RATE = 0.15
    UNIT_RANGE = (2, 40)
    WINDOW_DAYS = (21, 90)
    OFFICER_SLOT_RANGE = (1, 5)

    def __init__(self, seed: int | None = None, locale: str = "en_US") -> None:
        super().__init__(seed, locale)
        self._sequence = 0

    def generate(self, manager_id: str, open_on: date | None = None) -> Project:
        """Generate a single project.

        Parameters
        ----------
        manager_id : str
            NRIC of the managing officer.
        open_on : date | None
            A day the application window must include. Defaults to today.

        Returns
        -------
        Project
            Generated project, visible and with full inventory.
        """
        self._sequence += 1
        open_on = open_on or date.today()
        window = random.randint(*self.WINDOW_DAYS)
        open_date = open_on - timedelta(days=random.randint(0, window - 1))
        neighborhood = random.choice(self.NEIGHBORHOODS)

        flat_types = list(FlatType)
        if random.random() < self.SINGLE_TYPE_RATE:
            flat_types = [random.choice(flat_types)]
        units = {}
        for flat_type in flat_types:
            total = random.randint(*self.UNIT_RANGE)
            units[flat_type] = FlatUnits(total=total, available=total)

        return Project(
            project_id=f"PRJ{self._sequence:03d}",
            name=f"{neighborhood} {random.choice(self.NAME_SUFFIXES)}",
            neighborhood=neighborhood,
            open_date=open_date,
            close_date=open_date + timedelta(days=window),
            manager_id=manager_id,
            officer_slots=random.randint(*self.OFFICER_SLOT_RANGE),
            units=units,
        )

    def generate_batch(
        self,
        count: int,
        manager_ids: list[str],
        open_on: date | None = None,
    ) -> Iterator[Project]:
        """Generate projects, assigning managers round-robin."""
        for i in range(count):
            yield self.generate(manager_ids[i % len(manager_ids)], open_on)
