from __future__ import annotations

import re
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict


def normalize_period_id(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
        return stripped
    return value


PeriodId = Annotated[int | str, BeforeValidator(normalize_period_id)]


class Term(str, Enum):
    FY = "FY"
    A = "A"
    B = "B"
    S1 = "S1"
    S2 = "S2"
    T1 = "T1"
    T2 = "T2"
    T3 = "T3"


DISPLAY_ID_PATTERN = re.compile(r"^(A|B|S1|S2|T1|T2|T3)-(.+)$")


class TimeSlot(BaseModel):
    """A bookable (term, period) pair.

    Full-year slots display as the bare period id; every other track is
    prefixed with its term tag, e.g. ``"S1-3"``.
    """

    model_config = ConfigDict(frozen=True)

    term: Term = Term.FY
    period_id: PeriodId

    @property
    def load_term(self) -> Term:
        # A/B days alternate inside one full-year load counter.
        if self.term in (Term.A, Term.B):
            return Term.FY
        return self.term

    @property
    def display_id(self) -> int | str:
        if self.term == Term.FY:
            return self.period_id
        return f"{self.term.value}-{self.period_id}"

    def with_period(self, period_id: int | str) -> "TimeSlot":
        return TimeSlot(term=self.term, period_id=period_id)

    @classmethod
    def from_display_id(cls, value: int | str, *, default_term: Term = Term.FY) -> "TimeSlot":
        normalized = normalize_period_id(value)
        if isinstance(normalized, str):
            match = DISPLAY_ID_PATTERN.match(normalized)
            if match:
                return cls(term=Term(match.group(1)), period_id=match.group(2))
        return cls(term=default_term, period_id=normalized)

    def __str__(self) -> str:
        return str(self.display_id)
