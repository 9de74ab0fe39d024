"""Per-project flat inventory bookkeeping."""

import logging
from types import MappingProxyType
from typing import Mapping

from bto_alloc.exceptions import NoUnitsAvailableError
from bto_alloc.models import FlatType, FlatUnits, Project

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Reserve and release units of a project's flat types.

    The ledger mutates the project's ``units`` mapping in place and keeps
    ``0 <= available <= total`` for every type.

    Parameters
    ----------
    project : Project
        Project whose inventory is managed.
    """

    def __init__(self, project: Project) -> None:
        self.project = project

    def available_count(self, flat_type: FlatType) -> int:
        units = self.project.units.get(flat_type)
        return units.available if units else 0

    def total_count(self, flat_type: FlatType) -> int:
        units = self.project.units.get(flat_type)
        return units.total if units else 0

    def reserve(self, flat_type: FlatType) -> None:
        """Take one unit of ``flat_type`` out of the available pool.

        Raises
        ------
        NoUnitsAvailableError
            If the project has no available unit of this type.
        """
        units = self.project.units.get(flat_type)
        if units is None or units.available <= 0:
            raise NoUnitsAvailableError(
                f"No {flat_type.label} units available in project {self.project.project_id}"
            )
        units.available -= 1
        logger.debug(
            "Reserved %s in %s: %d/%d available",
            flat_type.value,
            self.project.project_id,
            units.available,
            units.total,
        )

    def release(self, flat_type: FlatType) -> bool:
        """Return one unit of ``flat_type`` to the available pool.

        Returns
        -------
        bool
            False when the pool was already full (nothing to return).
        """
        units = self.project.units.get(flat_type)
        if units is None or units.available >= units.total:
            logger.warning(
                "Release of %s in %s ignored: pool already full",
                flat_type.value,
                self.project.project_id,
            )
            return False
        units.available += 1
        logger.debug(
            "Released %s in %s: %d/%d available",
            flat_type.value,
            self.project.project_id,
            units.available,
            units.total,
        )
        return True

    def snapshot(self) -> Mapping[FlatType, FlatUnits]:
        """Read-only copy of the current counts."""
        return MappingProxyType(
            {t: FlatUnits(total=u.total, available=u.available) for t, u in self.project.units.items()}
        )
