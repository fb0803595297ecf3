"""
vanguardscraper.vgmodels
========================

Value objects produced by the scraper and read back from storage.

- :class:`HoldingRecord`: one non-cash row of the detailed holdings table.
- :class:`StoredHolding`: a record as persisted, with its batch timestamp.
- :class:`JobSuccess` / :class:`JobFailure`: outcome of one scheduled job,
  used for logging only.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from collections.abc import Iterable

# Column order of the money cells in the detailed holdings table
MONEY_FIELDS = (
    "ongoing_charge",
    "units",
    "avg_unit_cost",
    "last_price",
    "total_cost",
    "value",
    "change",
)

CASH_NAME = "Cash"


@dataclass(frozen=True)
class HoldingRecord:
    name: str
    ongoing_charge: Decimal
    units: Decimal
    avg_unit_cost: Decimal
    last_price: Decimal
    total_cost: Decimal
    value: Decimal
    change: Decimal

    @classmethod
    def from_cells(cls, name: str, values: list[Decimal]) -> HoldingRecord:
        """Build a record from the seven parsed money cells, in table order."""
        if len(values) != len(MONEY_FIELDS):
            msg = f"expected {len(MONEY_FIELDS)} money values for {name!r}, got {len(values)}"
            raise ValueError(msg)
        return cls(name, *values)

    def as_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class StoredHolding(HoldingRecord):
    """A :class:`HoldingRecord` read back from storage."""

    id: int = 0
    scraped_at: datetime | None = None


@dataclass(frozen=True)
class JobSuccess:
    count: int

    def __str__(self) -> str:
        return f"job completed successfully: {self.count} holdings saved"


@dataclass(frozen=True)
class JobFailure:
    reason: str
    attempts: int = 0

    def __str__(self) -> str:
        return f"job failed after {self.attempts} attempt(s): {self.reason}"


JobOutcome = JobSuccess | JobFailure


def records_to_frame(records: Iterable[HoldingRecord]) -> pd.DataFrame:
    """
    Convert records to a :class:`pandas.DataFrame`.

    Decimals are kept as :class:`~decimal.Decimal` objects (``object``
    dtype) so printing or exporting the frame never goes through floats.
    """
    rows = [r.as_dict() for r in records]
    if not rows:
        return pd.DataFrame(columns=["name", *MONEY_FIELDS])
    cols = list(rows[0])
    return pd.DataFrame(rows, columns=cols, dtype=object)
