"""
Optional per-request search budget.

The algorithms are bounded by the size of the time grid, but a host may
still want to cap a request by examined candidates or wall-clock time.
Running out is reported with ``SearchBudgetExceeded``, never as an empty
result.
"""

import time
from dataclasses import dataclass
from typing import Optional

from .exceptions import InvalidInputError, SearchBudgetExceeded


@dataclass(frozen=True)
class SearchBudget:
    max_candidates: Optional[int] = None
    max_seconds: Optional[float] = None

    def __post_init__(self):
        if self.max_candidates is not None and self.max_candidates <= 0:
            raise InvalidInputError("max_candidates must be greater than zero")
        if self.max_seconds is not None and self.max_seconds <= 0:
            raise InvalidInputError("max_seconds must be greater than zero")


class BudgetTracker:
    """Counts consumed candidates for one search. Not shared between requests."""

    def __init__(self, budget: Optional[SearchBudget] = None):
        self._budget = budget or SearchBudget()
        self._started = time.monotonic()
        self.examined = 0

    def consume(self, partial=None) -> None:
        """Account for one examined start instant."""
        self.examined += 1
        budget = self._budget

        if budget.max_candidates is not None and self.examined > budget.max_candidates:
            raise SearchBudgetExceeded(
                f"Search stopped after {budget.max_candidates} candidates",
                partial=partial,
            )

        if budget.max_seconds is not None:
            elapsed = time.monotonic() - self._started
            if elapsed > budget.max_seconds:
                raise SearchBudgetExceeded(
                    f"Search stopped after {elapsed:.2f}s (limit {budget.max_seconds}s)",
                    partial=partial,
                )


def tracker_for(budget: Optional[SearchBudget]) -> BudgetTracker:
    return BudgetTracker(budget)
