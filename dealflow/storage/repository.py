"""File-based JSON storage for properties, analysis results and errors.

Layout under the data directory::

    properties/<zip>/<YYYY-MM-DD>/<buybox>.json | properties.json
    analysis/<zip>/<YYYY-MM-DD>/<buybox>-analysis.json | analysis-results.json
    batches/<YYYY-MM-DD>/<buybox>-<HHMMSS>.json
    errors/<YYYY-MM-DD>/errors-<timestamp>.json

Dates are UTC. A single writer is assumed.
"""

from __future__ import annotations

import json
import logging
import shutil
import uuid
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Optional

from dealflow.models import (
    BatchAnalysisResult,
    DateRange,
    DetailedAnalysisResult,
    ErrorRecord,
    Property,
    utcnow,
)

logger = logging.getLogger(__name__)

UNKNOWN_ZIP = "unknown"


def _day(on: date | None = None) -> str:
    return (on or utcnow().date()).isoformat()


def _dump(obj: Any) -> Any:
    if isinstance(obj, list):
        return [_dump(o) for o in obj]
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", by_alias=True)
    return obj


def _write_json(path: Path, data: dict | list) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _subdirs(path: Path) -> list[str]:
    if not path.exists():
        return []
    return [p.name for p in path.iterdir() if p.is_dir()]


class AnalysisRepository:
    """Reads and writes the JSON data tree."""

    def __init__(self, data_path: str | Path = "./data"):
        self.root = Path(data_path)
        self.properties_dir = self.root / "properties"
        self.analysis_dir = self.root / "analysis"
        self.batches_dir = self.root / "batches"
        self.errors_dir = self.root / "errors"
        for directory in (self.properties_dir, self.analysis_dir, self.batches_dir, self.errors_dir):
            directory.mkdir(parents=True, exist_ok=True)

    # --- Properties --------------------------------------------------------

    def _properties_file(self, zip_code: str, day: str, buybox_name: str | None) -> Path:
        filename = f"{buybox_name}.json" if buybox_name else "properties.json"
        return self.properties_dir / zip_code / day / filename

    def save_properties(
        self,
        zip_code: str,
        properties: list[Property],
        buybox_name: str | None = None,
        on: date | None = None,
    ) -> Path:
        path = self._properties_file(zip_code, _day(on), buybox_name)
        _write_json(
            path,
            {
                "timestamp": utcnow().isoformat(),
                "zipCode": zip_code,
                "buyboxName": buybox_name,
                "propertyCount": len(properties),
                "properties": _dump(properties),
            },
        )
        logger.info("Saved %d properties for zip code %s to %s", len(properties), zip_code, path)
        return path

    def load_properties(
        self, zip_code: str, day: str | None = None, buybox_name: str | None = None
    ) -> Optional[list[Property]]:
        """Properties stored for a zip code on a day (today by default); None if absent."""
        path = self._properties_file(zip_code, day or _day(), buybox_name)
        if not path.exists():
            return None
        data = _read_json(path)
        return [Property.model_validate(p) for p in data.get("properties", [])]

    def available_zip_codes(self) -> list[str]:
        """Zip codes with stored properties."""
        return sorted(_subdirs(self.properties_dir))

    def available_dates(self, zip_code: str) -> list[str]:
        """Dates with stored properties for a zip code, most recent first."""
        return sorted(_subdirs(self.properties_dir / zip_code), reverse=True)

    # --- Analysis results --------------------------------------------------

    def _analysis_file(self, zip_code: str, day: str, buybox_name: str | None) -> Path:
        filename = f"{buybox_name}-analysis.json" if buybox_name else "analysis-results.json"
        return self.analysis_dir / zip_code / day / filename

    def analyzed_zip_codes(self) -> list[str]:
        """Zip codes with stored analysis results."""
        return sorted(_subdirs(self.analysis_dir))

    def analysis_dates(self, zip_code: str) -> list[str]:
        return sorted(_subdirs(self.analysis_dir / zip_code), reverse=True)

    def save_analysis_results(
        self,
        zip_code: str,
        results: list[DetailedAnalysisResult],
        buybox_name: str | None = None,
        on: date | None = None,
    ) -> Path:
        path = self._analysis_file(zip_code, _day(on), buybox_name)
        _write_json(
            path,
            {
                "timestamp": utcnow().isoformat(),
                "zipCode": zip_code,
                "buyboxName": buybox_name,
                "totalResults": len(results),
                "results": _dump(results),
            },
        )
        logger.info("Saved %d analysis results for zip code %s to %s", len(results), zip_code, path)
        return path

    def load_analysis_results(
        self, zip_code: str, day: str | None = None, buybox_name: str | None = None
    ) -> Optional[list[DetailedAnalysisResult]]:
        path = self._analysis_file(zip_code, day or _day(), buybox_name)
        if not path.exists():
            return None
        data = _read_json(path)
        return [DetailedAnalysisResult.model_validate(r) for r in data.get("results", [])]

    def save_batch_result(
        self,
        batch: BatchAnalysisResult,
        buybox_name: str | None = None,
        on: date | None = None,
    ) -> Path:
        """Store a whole batch, and its results grouped by zip code.

        Returns the path of the batch file.
        """
        grouped: dict[str, list[DetailedAnalysisResult]] = {}
        for result in batch.results:
            grouped.setdefault(result.zip_code or UNKNOWN_ZIP, []).append(result)
        for zip_code, results in grouped.items():
            self.save_analysis_results(zip_code, results, buybox_name, on=on)

        stamp = batch.timestamp.strftime("%H%M%S%f")
        path = self.batches_dir / _day(on) / f"{buybox_name or 'batch'}-{stamp}.json"
        _write_json(path, _dump(batch))
        logger.info("Saved batch analysis results for %d zip codes to %s", len(grouped), path)
        return path

    def load_batch_result(self, path: str | Path) -> BatchAnalysisResult:
        return BatchAnalysisResult.model_validate(_read_json(Path(path)))

    def find_results(
        self,
        zip_codes: list[str] | None = None,
        date_range: DateRange | None = None,
        min_cash_flow: float | None = None,
        min_roi: float | None = None,
        buybox_name: str | None = None,
    ) -> list[DetailedAnalysisResult]:
        """Stored analysis results matching every given criterion.

        min_cash_flow applies to annual cash flow and min_roi to cash-on-cash
        return. Results come back grouped by zip code, most recent date first.
        """
        found: list[DetailedAnalysisResult] = []
        for zip_code in zip_codes or self.analyzed_zip_codes():
            for day in self.analysis_dates(zip_code):
                if date_range is not None and not date_range.contains(date.fromisoformat(day)):
                    continue
                results = self.load_analysis_results(zip_code, day, buybox_name)
                if not results:
                    continue
                found.extend(
                    r
                    for r in results
                    if (min_cash_flow is None or r.financial_metrics.annual_cash_flow >= min_cash_flow)
                    and (min_roi is None or r.financial_metrics.cash_on_cash_return >= min_roi)
                )
        return found

    # --- Errors ------------------------------------------------------------

    def save_error(self, error: ErrorRecord) -> Path:
        stamp = error.timestamp.strftime("%Y-%m-%dT%H-%M-%S-%f")
        path = self.errors_dir / error.timestamp.date().isoformat() / (
            f"errors-{stamp}-{uuid.uuid4().hex[:8]}.json"
        )
        _write_json(path, _dump(error))
        logger.info("Saved error record to %s", path)
        return path

    def load_errors(self, day: str | None = None) -> list[ErrorRecord]:
        directory = self.errors_dir / (day or _day())
        if not directory.exists():
            return []
        return [
            ErrorRecord.model_validate(_read_json(path))
            for path in sorted(directory.glob("*.json"))
        ]

    # --- Retention ---------------------------------------------------------

    def cleanup_old_data(self, days_to_keep: int = 30, today: date | None = None) -> list[Path]:
        """Delete dated directories older than the retention window. Returns what was removed."""
        cutoff = ((today or utcnow().date()) - timedelta(days=days_to_keep)).isoformat()
        removed: list[Path] = []

        dated_dirs: list[Path] = []
        for base in (self.properties_dir, self.analysis_dir):
            for zip_code in _subdirs(base):
                dated_dirs.extend(base / zip_code / d for d in _subdirs(base / zip_code))
        for base in (self.batches_dir, self.errors_dir):
            dated_dirs.extend(base / d for d in _subdirs(base))

        for path in dated_dirs:
            # ISO dates compare correctly as strings
            if path.name < cutoff:
                shutil.rmtree(path)
                removed.append(path)
                logger.debug("Deleted old data: %s", path)

        logger.info("Cleanup removed %d directories older than %s", len(removed), cutoff)
        return removed
