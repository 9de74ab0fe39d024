"""In-memory allocation store and its CSV persistence."""

from bto_alloc.store.allocation import AllocationStore, Storage
from bto_alloc.store.csv_files import CsvStorage
from bto_alloc.store.repository import InMemoryRepository, Repository

__all__ = ["AllocationStore", "CsvStorage", "InMemoryRepository", "Repository", "Storage"]
