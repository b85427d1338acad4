"""Per-entity outcome records shared by the batch jobs.

Each batch loop appends one ``EntityOutcome`` per user, account or
connection it touched instead of raising, then reduces them with
``tally`` for its summary log line.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EntityOutcome:
    """Result of processing one entity in a batch."""

    entity_id: str
    status: OutcomeStatus
    category: str = ""  # e.g. "cash" / "investment" for connections
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED


def tally(
    outcomes: Iterable[EntityOutcome], category: Optional[str] = None
) -> Counter:
    """Count outcomes by status, optionally restricted to one category.

    Missing statuses count as zero.
    """
    return Counter(
        o.status for o in outcomes if category is None or o.category == category
    )
