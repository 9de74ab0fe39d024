"""Faker-backed generators for sample BTO data."""

from bto_alloc.generators.base import BaseGenerator
from bto_alloc.generators.projects import ProjectGenerator
from bto_alloc.generators.users import UserGenerator

__all__ = ["BaseGenerator", "ProjectGenerator", "UserGenerator"]
