"""Allocation engine: eligibility, inventory, workflows and queries."""

from bto_alloc.engine.coordinator import AllocationCoordinator
from bto_alloc.engine.eligibility import (
    eligible_flat_types,
    offered_flat_types,
    permitted_flat_types,
)
from bto_alloc.engine.inventory import InventoryLedger
from bto_alloc.engine.officers import OfficerRegistry
from bto_alloc.engine.queries import ReportCriteria, receipt_for
from bto_alloc.engine.state_machine import ApplicationStateMachine

__all__ = [
    "AllocationCoordinator",
    "ApplicationStateMachine",
    "InventoryLedger",
    "OfficerRegistry",
    "ReportCriteria",
    "eligible_flat_types",
    "offered_flat_types",
    "permitted_flat_types",
    "receipt_for",
]
