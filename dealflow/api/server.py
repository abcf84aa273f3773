"""FastAPI application exposing analysis, stored data and reference rents."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError

from dealflow.analysis.batch import BatchAnalyzer
from dealflow.analysis.engine import PropertyAnalyzer
from dealflow.config import AppConfig, Settings
from dealflow.errors import AnalysisError, ReferenceDataError, ValidationError
from dealflow.models import CamelModel, DateRange, Property, utcnow
from dealflow.rent.estimator import RentalEstimator, check_estimate
from dealflow.storage.export import EXPORT_COLUMNS, results_to_csv
from dealflow.storage.repository import AnalysisRepository
from dealflow.validation import validate_property

logger = logging.getLogger(__name__)


class PropertyRequest(CamelModel):
    property: Optional[dict[str, Any]] = None


class BatchRequest(CamelModel):
    properties: Optional[list[dict[str, Any]]] = None
    save_results: bool = True


class ZipCodeRequest(CamelModel):
    zip_code: Optional[str] = None
    date: Optional[str] = None
    buybox_name: Optional[str] = None
    save_results: bool = True


def _json(obj: Any) -> Any:
    if isinstance(obj, list):
        return [_json(o) for o in obj]
    return obj.model_dump(mode="json", by_alias=True)


def _parse_properties(raw: list[dict[str, Any]]) -> list[Property]:
    try:
        return [Property.model_validate(p) for p in raw]
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "Invalid property data", "message": str(e)},
        ) from e


def _date_range(start: date | None, end: date | None) -> DateRange | None:
    if start is not None and end is not None:
        return DateRange(start_date=start, end_date=end)
    return None


def create_app(
    cfg: AppConfig,
    settings: Settings | None = None,
    repo: AnalysisRepository | None = None,
    estimator: RentalEstimator | None = None,
) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="DealFlow", version="0.1.0")
    repo = repo or AnalysisRepository(settings.data_path or cfg.storage.data_path)
    estimator = estimator or RentalEstimator.from_config(cfg.financial.rental)
    analyzer = PropertyAnalyzer(estimator)
    batch_analyzer = BatchAnalyzer(analyzer)

    # --- Analysis ----------------------------------------------------------

    @app.post("/api/analysis/property")
    async def analyze_property(req: PropertyRequest):
        """Analyze a single property."""
        if not req.property:
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "Property data is required",
                    "message": "Please provide property data in the request body",
                },
            )

        prop = _parse_properties([req.property])[0]
        try:
            validate_property(prop)
            result = analyzer.analyze(prop, cfg.financial)
        except ValidationError as e:
            raise HTTPException(
                status_code=422,
                detail={"error": "Invalid property data", "message": str(e), "fields": e.fields},
            ) from e
        except AnalysisError as e:
            raise HTTPException(
                status_code=500, detail={"error": "Analysis failed", "message": str(e)}
            ) from e

        return {"success": True, "result": _json(result), "timestamp": utcnow().isoformat()}

    @app.post("/api/analysis/batch")
    async def analyze_batch(req: BatchRequest):
        """Analyze several properties; failures are reported per property."""
        if req.properties is None:
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "Properties array is required",
                    "message": "Please provide an array of properties in the request body",
                },
            )
        if not req.properties:
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "Empty properties array",
                    "message": "Please provide at least one property to analyze",
                },
            )

        batch = batch_analyzer.analyze_batch(_parse_properties(req.properties), cfg.financial)
        if req.save_results and batch.results:
            repo.save_batch_result(batch)
        return {"success": True, "result": _json(batch), "timestamp": utcnow().isoformat()}

    @app.post("/api/analysis/zipcode")
    async def analyze_zip_code(req: ZipCodeRequest):
        """Analyze the properties stored for a zip code."""
        if not req.zip_code:
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "Zip code is required",
                    "message": "Please provide a zip code to analyze",
                },
            )

        properties = repo.load_properties(req.zip_code, req.date, req.buybox_name)
        if not properties:
            on = f" on {req.date}" if req.date else ""
            raise HTTPException(
                status_code=404,
                detail={
                    "error": "No properties found",
                    "message": f"No property data found for zip code {req.zip_code}{on}",
                },
            )

        batch = batch_analyzer.analyze_batch(properties, cfg.financial)
        if req.save_results and batch.results:
            repo.save_batch_result(batch, req.buybox_name)
        return {
            "success": True,
            "result": _json(batch),
            "propertiesAnalyzed": len(properties),
            "timestamp": utcnow().isoformat(),
        }

    @app.get("/api/analysis/results")
    async def get_results(
        zip_codes: Optional[list[str]] = Query(None, alias="zipCodes"),
        start_date: Optional[date] = Query(None, alias="startDate"),
        end_date: Optional[date] = Query(None, alias="endDate"),
        min_cash_flow: Optional[float] = Query(None, alias="minCashFlow"),
        min_roi: Optional[float] = Query(None, alias="minROI"),
        buybox_name: Optional[str] = Query(None, alias="buyboxName"),
    ):
        """Stored analysis results matching the given filters."""
        results = repo.find_results(
            zip_codes=zip_codes,
            date_range=_date_range(start_date, end_date),
            min_cash_flow=min_cash_flow,
            min_roi=min_roi,
            buybox_name=buybox_name,
        )
        return {
            "success": True,
            "results": _json(results),
            "count": len(results),
            "timestamp": utcnow().isoformat(),
        }

    @app.get("/api/analysis/statistics")
    async def get_statistics(zip_codes: Optional[list[str]] = Query(None, alias="zipCodes")):
        results = repo.find_results(zip_codes=zip_codes)
        cash_flows = [r.financial_metrics.annual_cash_flow for r in results]
        rois = [r.financial_metrics.cash_on_cash_return for r in results]
        return {
            "success": True,
            "statistics": {
                "totalProperties": len(results),
                "averageCashFlow": sum(cash_flows) / len(results) if results else 0,
                "averageROI": sum(rois) / len(results) if results else 0,
                "positiveFlowCount": sum(1 for cf in cash_flows if cf > 0),
            },
            "timestamp": utcnow().isoformat(),
        }

    @app.get("/api/analysis/export/csv")
    async def export_results_csv(
        zip_codes: Optional[list[str]] = Query(None, alias="zipCodes"),
        start_date: Optional[date] = Query(None, alias="startDate"),
        end_date: Optional[date] = Query(None, alias="endDate"),
        columns: Optional[list[str]] = Query(None),
        filename: str = Query("analysis-results.csv"),
    ):
        results = repo.find_results(
            zip_codes=zip_codes, date_range=_date_range(start_date, end_date)
        )
        return Response(
            content=results_to_csv(results, columns),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/api/analysis/columns")
    async def get_columns():
        columns = list(EXPORT_COLUMNS)
        return {"success": True, "columns": columns, "count": len(columns)}

    # --- Stored properties -------------------------------------------------

    @app.get("/api/properties/zipcodes")
    async def get_zip_codes():
        zip_codes = repo.available_zip_codes()
        return {"success": True, "zipCodes": zip_codes, "count": len(zip_codes)}

    @app.get("/api/properties/dates/{zip_code}")
    async def get_dates(zip_code: str):
        dates = repo.available_dates(zip_code)
        return {"success": True, "zipCode": zip_code, "dates": dates, "count": len(dates)}

    @app.get("/api/properties")
    async def get_properties(
        zip_code: str = Query(..., alias="zipCode"),
        day: Optional[str] = Query(None, alias="date"),
        buybox_name: Optional[str] = Query(None, alias="buyboxName"),
    ):
        properties = repo.load_properties(zip_code, day, buybox_name)
        if properties is None:
            raise HTTPException(
                status_code=404,
                detail={
                    "error": "No properties found",
                    "message": f"No property data found for zip code {zip_code}",
                },
            )
        return {"success": True, "properties": _json(properties), "count": len(properties)}

    # --- Rental estimates and reference data -------------------------------

    @app.post("/api/rental/estimate")
    async def estimate_rent(req: PropertyRequest):
        """Rent estimate for a property, with a reasonableness check."""
        if not req.property:
            raise HTTPException(
                status_code=400, detail={"error": "Property data is required"}
            )
        prop = _parse_properties([req.property])[0]
        estimate = estimator.estimate(prop, cfg.financial.rental)
        return {
            "success": True,
            "estimate": _json(estimate),
            "check": _json(check_estimate(prop, estimate)),
        }

    @app.get("/api/rental/reference/stats")
    async def reference_stats():
        return {
            "success": True,
            "available": bool(estimator.store.records),
            "stats": _json(estimator.store.stats()),
        }

    @app.post("/api/rental/reference/reload")
    async def reload_reference():
        """Re-read the HUD reference file."""
        try:
            table = estimator.store.reload()
        except ReferenceDataError as e:
            raise HTTPException(
                status_code=500, detail={"error": "Reload failed", "message": str(e)}
            ) from e
        logger.info("Reloaded %d HUD records", len(table))
        return {"success": True, "records": len(table)}

    @app.get("/api/config")
    async def get_config():
        """Return current configuration."""
        return cfg.model_dump()

    return app
