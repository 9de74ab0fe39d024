"""Tests for data generators."""

from datetime import date

import pytest

from bto_alloc.generators import ProjectGenerator, UserGenerator
from bto_alloc.models import FlatType, MaritalStatus, UserRole, validate_nric

TODAY = date(2025, 3, 10)


class TestUserGenerator:
    """Tests for UserGenerator."""

    def test_generate_applicant(self, seed: int) -> None:
        """Test applicant generation."""
        gen = UserGenerator(seed=seed, today=TODAY)
        user = gen.generate()

        assert validate_nric(user.nric) == user.nric
        assert user.name
        assert user.role == UserRole.APPLICANT
        low, high = UserGenerator.AGE_RANGES[user.marital_status]
        assert low <= user.age <= high

    def test_generate_staff(self, seed: int) -> None:
        """Test officers and managers use the staff age range."""
        gen = UserGenerator(seed=seed, today=TODAY)

        for user in gen.generate_batch(20, role=UserRole.MANAGER):
            assert user.role == UserRole.MANAGER
            assert 25 <= user.age <= 60

    def test_generate_multiple_unique(self, seed: int) -> None:
        """Test generated NRICs are unique."""
        gen = UserGenerator(seed=seed, today=TODAY)
        users = list(gen.generate_batch(200))

        assert len(users) == 200
        assert len({u.nric for u in users}) == 200
        assert {u.marital_status for u in users} == set(MaritalStatus)

    def test_seed_reproducible(self, seed: int) -> None:
        """Test the same seed yields the same users."""
        first = list(UserGenerator(seed=seed, today=TODAY).generate_batch(5))
        second = list(UserGenerator(seed=seed, today=TODAY).generate_batch(5))

        assert first == second

    @pytest.mark.parametrize(
        ("age", "prefix", "year_digits"),
        [(40, "S", "85"), (26, "S", "99"), (25, "T", "00"), (21, "T", "04")],
    )
    def test_nric_matches_birth_year(self, seed: int, age: int, prefix: str, year_digits: str) -> None:
        """Test the prefix and first digits follow the birth year."""
        nric = UserGenerator(seed=seed, today=TODAY).nric_for(age)

        assert nric[0] == prefix
        assert nric[1:3] == year_digits


class TestProjectGenerator:
    """Tests for ProjectGenerator."""

    def test_generate_project(self, seed: int) -> None:
        """Test project generation."""
        gen = ProjectGenerator(seed=seed)
        project = gen.generate("S1234567A", open_on=TODAY)

        assert project.project_id == "PRJ001"
        assert project.manager_id == "S1234567A"
        assert project.neighborhood in ProjectGenerator.NEIGHBORHOODS
        assert project.name.startswith(project.neighborhood)
        assert project.visible is True
        assert project.is_open_on(TODAY)
        assert 1 <= project.officer_slots <= 5

    def test_full_inventory(self, seed: int) -> None:
        """Test generated projects start with every unit available."""
        gen = ProjectGenerator(seed=seed)

        for project in gen.generate_batch(20, ["S1234567A"], open_on=TODAY):
            assert project.units
            for flat_type, units in project.units.items():
                assert isinstance(flat_type, FlatType)
                assert units.available == units.total >= 2

    def test_batch_round_robin_managers(self, seed: int) -> None:
        """Test managers are assigned in turn and ids are sequential."""
        gen = ProjectGenerator(seed=seed)
        projects = list(gen.generate_batch(4, ["S1234567A", "S7654321B"], open_on=TODAY))

        assert [p.project_id for p in projects] == ["PRJ001", "PRJ002", "PRJ003", "PRJ004"]
        assert [p.manager_id for p in projects] == ["S1234567A", "S7654321B"] * 2
