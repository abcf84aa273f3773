"""HUD Fair Market Rent reference data and matching.

The reference table is a flat JSON array of records like::

    {"zipCode": "43211", "bedrooms": 3, "fairMarketRent": 1310,
     "year": 2024, "county": "Franklin", "state": "OH"}

`ReferenceRentStore` owns the loaded table and `ReferenceRentMatcher` looks
properties up in it by zip code and bedroom count.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from statistics import fmean

from pydantic import ValidationError as PydanticValidationError

from dealflow.address import extract_zip_code
from dealflow.config import DEFAULT_HUD_DATA_PATH
from dealflow.errors import ReferenceDataError
from dealflow.models import (
    Confidence,
    Property,
    ReferenceDataStats,
    ReferenceMatch,
    ReferenceRentRecord,
)
from dealflow.rounding import to_cents

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceTable:
    """An immutable snapshot of the reference data, indexed by zip code."""

    records: tuple[ReferenceRentRecord, ...] = ()
    by_zip: dict[str, tuple[ReferenceRentRecord, ...]] = field(default_factory=dict)

    @classmethod
    def build(cls, records: list[ReferenceRentRecord]) -> ReferenceTable:
        grouped: dict[str, list[ReferenceRentRecord]] = {}
        for record in records:
            grouped.setdefault(record.zip_code, []).append(record)
        return cls(
            records=tuple(records),
            by_zip={zip_code: tuple(rows) for zip_code, rows in grouped.items()},
        )

    def __len__(self) -> int:
        return len(self.records)


def parse_records(raw: list) -> list[ReferenceRentRecord]:
    """Validate rows one by one, skipping (and logging) malformed ones."""
    valid: list[ReferenceRentRecord] = []
    problems: list[str] = []

    for index, item in enumerate(raw, start=1):
        try:
            valid.append(ReferenceRentRecord.model_validate(item))
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            problems.append(f"Row {index}: invalid {fields or 'record'}")

    if problems:
        logger.warning(
            "HUD data validation: %d invalid records skipped. First errors: %s",
            len(problems),
            problems[:5],
        )
    return valid


class ReferenceRentStore:
    """Lazily loaded, cached HUD rent table.

    The table is either unloaded or loaded. The first read of `table` loads it;
    a missing or unreadable file then counts as an empty table (with a
    warning) so analysis can proceed without reference data. `load()` does the
    same but raises ReferenceDataError instead, and re-reads the file if the
    cached table is such an empty stand-in. `reload()` reads the file again
    and replaces the snapshot in one assignment, so concurrent readers see
    either the old table or the new one.
    """

    def __init__(self, path: str | Path = DEFAULT_HUD_DATA_PATH):
        self.path = Path(path)
        self._table: ReferenceTable | None = None
        self._degraded = False
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._table is not None

    @property
    def table(self) -> ReferenceTable:
        table = self._table
        if table is None:
            with self._lock:
                if self._table is None:
                    self._table, self._degraded = self._read_or_empty()
                table = self._table
        return table

    @property
    def records(self) -> tuple[ReferenceRentRecord, ...]:
        return self.table.records

    def load(self) -> ReferenceTable:
        """Load the table if needed, raising when the file is missing or malformed."""
        table = self._table
        if table is None or self._degraded:
            with self._lock:
                if self._table is None or self._degraded:
                    self._table = self._read()
                    self._degraded = False
                table = self._table
        return table

    def reload(self) -> ReferenceTable:
        """Re-read the file. On failure the previous table stays in place."""
        table = self._read()
        with self._lock:
            self._table = table
            self._degraded = False
        return table

    def invalidate(self) -> None:
        """Forget the loaded table; the next access reads the file again."""
        with self._lock:
            self._table = None
            self._degraded = False

    def _read_or_empty(self) -> tuple[ReferenceTable, bool]:
        try:
            return self._read(), False
        except ReferenceDataError as e:
            logger.warning("%s; continuing without HUD data", e)
            return ReferenceTable(), True

    def _read(self) -> ReferenceTable:
        if not self.path.exists():
            raise ReferenceDataError(f"HUD data file not found at {self.path}")

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ReferenceDataError(f"Failed to load HUD data from {self.path}: {e}") from e

        if not isinstance(raw, list):
            raise ReferenceDataError(f"HUD data in {self.path} must be an array")

        table = ReferenceTable.build(parse_records(raw))
        logger.info("Loaded %d HUD rental records from %s", len(table), self.path)
        return table

    def stats(self) -> ReferenceDataStats:
        records = self.records
        if not records:
            return ReferenceDataStats()

        bedrooms = [r.bedrooms for r in records]
        years = [r.year for r in records]
        return ReferenceDataStats(
            total_records=len(records),
            unique_zip_codes=len(self.table.by_zip),
            bedroom_range=(min(bedrooms), max(bedrooms)),
            year_range=(min(years), max(years)),
            average_rent=to_cents(fmean(r.fair_market_rent for r in records)),
        )

    def search(
        self,
        zip_code: str | None = None,
        bedrooms: int | None = None,
        min_rent: float | None = None,
        max_rent: float | None = None,
        year: int | None = None,
    ) -> list[ReferenceRentRecord]:
        """Filter the table. Criteria left as None are ignored."""
        if zip_code is not None:
            candidates = self.table.by_zip.get(zip_code, ())
        else:
            candidates = self.records

        return [
            r
            for r in candidates
            if (bedrooms is None or r.bedrooms == bedrooms)
            and (min_rent is None or r.fair_market_rent >= min_rent)
            and (max_rent is None or r.fair_market_rent <= max_rent)
            and (year is None or r.year == year)
        ]


def _latest(records: list[ReferenceRentRecord]) -> ReferenceRentRecord:
    # max() keeps the first of equal years
    return max(records, key=lambda r: r.year)


class ReferenceRentMatcher:
    """Matches properties to HUD fair market rents.

    1. Exact zip code and bedroom count, most recent year: HIGH confidence.
    2. Same zip code, nearest bedroom count, most recent year: MEDIUM.
    3. Otherwise no match: LOW.
    """

    def __init__(self, store: ReferenceRentStore | None = None):
        self.store = store or ReferenceRentStore()

    def match(self, prop: Property) -> ReferenceMatch:
        try:
            return self._match(prop)
        except Exception as e:
            raise ReferenceDataError(f"Error during matching: {e}") from e

    def _match(self, prop: Property) -> ReferenceMatch:
        table = self.store.table
        if not table.records:
            return ReferenceMatch(
                matched=False,
                confidence=Confidence.LOW,
                match_criteria="No HUD data available",
            )

        zip_code = extract_zip_code(prop.address)
        if not zip_code:
            return ReferenceMatch(
                matched=False,
                confidence=Confidence.LOW,
                match_criteria="Could not extract zip code from property address",
            )

        same_zip = table.by_zip.get(zip_code, ())
        exact = [r for r in same_zip if r.bedrooms == prop.bedrooms]
        if exact:
            best = _latest(exact)
            return ReferenceMatch(
                matched=True,
                confidence=Confidence.HIGH,
                rent=best.fair_market_rent,
                record=best,
                match_criteria=f"Exact match: {zip_code}, {prop.bedrooms} bedrooms, {best.year}",
            )

        if same_zip:
            # min() keeps the first of equally close bedroom counts
            closest = min(same_zip, key=lambda r: abs(r.bedrooms - prop.bedrooms))
            best = _latest([r for r in same_zip if r.bedrooms == closest.bedrooms])
            return ReferenceMatch(
                matched=True,
                confidence=Confidence.MEDIUM,
                rent=best.fair_market_rent,
                record=best,
                match_criteria=(
                    f"Fallback match: {zip_code}, {best.bedrooms} bedrooms "
                    f"(property has {prop.bedrooms}), {best.year}"
                ),
            )

        return ReferenceMatch(
            matched=False,
            confidence=Confidence.LOW,
            match_criteria=f"No HUD data found for zip code {zip_code}",
        )
