"""User generator: applicants, officers and managers."""

from __future__ import annotations

import random
import string
from datetime import date
from typing import Iterator

from bto_alloc.generators.base import BaseGenerator
from bto_alloc.models import MaritalStatus, User, UserRole, validate_nric


class UserGenerator(BaseGenerator):
    """Generate synthetic users with unique NRICs.

    Ages straddle the eligibility thresholds so generated populations
    include ineligible singles and married applicants alike.
    """

    MARITAL_STATUS = [MaritalStatus.SINGLE, MaritalStatus.MARRIED]
    MARITAL_WEIGHTS = [0.4, 0.6]

    AGE_RANGES = {
        MaritalStatus.SINGLE: (21, 65),
        MaritalStatus.MARRIED: (19, 65),
    }
    STAFF_AGE_RANGE = (25, 60)

    def __init__(
        self,
        seed: int | None = None,
        locale: str = "en_US",
        today: date | None = None,
    ) -> None:
        super().__init__(seed, locale)
        self.today = today or date.today()
        self._issued: set[str] = set()

    def generate(self, role: UserRole = UserRole.APPLICANT) -> User:
        """Generate a single user.

        Parameters
        ----------
        role : UserRole
            Role of the generated user.

        Returns
        -------
        User
            Generated user.
        """
        marital_status = random.choices(self.MARITAL_STATUS, weights=self.MARITAL_WEIGHTS, k=1)[0]
        if role == UserRole.APPLICANT:
            low, high = self.AGE_RANGES[marital_status]
        else:
            low, high = self.STAFF_AGE_RANGE
        age = random.randint(low, high)

        return User(
            nric=self.nric_for(age),
            name=self.fake.name(),
            age=age,
            marital_status=marital_status,
            role=role,
        )

    def generate_batch(self, count: int, role: UserRole = UserRole.APPLICANT) -> Iterator[User]:
        """Generate multiple users.

        Parameters
        ----------
        count : int
            Number of users to generate.
        role : UserRole
            Role of every generated user.

        Yields
        ------
        User
            Generated users.
        """
        for _ in range(count):
            yield self.generate(role)

    def nric_for(self, age: int) -> str:
        """Issue an unused NRIC consistent with the holder's age.

        The prefix is ``T`` for people born in 2000 or later and ``S``
        otherwise; the first two digits are the birth year.
        """
        birth_year = self.today.year - age
        prefix = "T" if birth_year >= 2000 else "S"
        while True:
            digits = f"{birth_year % 100:02d}{random.randint(0, 99999):05d}"
            nric = validate_nric(f"{prefix}{digits}{random.choice(string.ascii_uppercase)}")
            if nric not in self._issued:
                self._issued.add(nric)
                return nric
