"""
Record Table API Endpoints

Admin table views over stored BMI records with filtering, sorting,
pagination and export.

Two views share one query engine and both return category and gender
facets:
- /api/data      the table
- /api/database  the same table plus a debug block (applied filters and
                 the total number of named users)

Anonymous calculations are never listed.
"""
import math
from typing import Callable, Optional, Union

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import ValidationError
from schemas import DataTableResponse, DatabaseTableResponse
from services.data_export import DataExportService, ExportFormat
from services.user_records import (
    InvalidQueryError,
    TableQuery,
    category_facets,
    count_named,
    gender_facets,
    query_table,
)

router = APIRouter(prefix="/api", tags=["records"])

# Keeps integer bounds bindable by every database driver
MAX_RANGE_BOUND = 1e9


def optional_number(raw: Optional[str], param: str, cast: Callable[[float], Union[int, float]] = float):
    """Range filter value: blank means unset, anything non-numeric is a 400."""
    if raw is None or not raw.strip():
        return None
    try:
        number = float(raw)
    except ValueError:
        raise ValidationError(f"Invalid value for {param}", field=param)
    if not math.isfinite(number) or abs(number) > MAX_RANGE_BOUND:
        raise ValidationError(f"Invalid value for {param}", field=param)
    return cast(number)


def table_query_params(
    page: int = Query(1, description="Page number, starting at 1"),
    limit: int = Query(10, description="Rows per page (1-100)"),
    sort_by: str = Query("lastCalculation", alias="sortBy", description="Sort field"),
    sort_order: str = Query("desc", alias="sortOrder", description="asc or desc"),
    search: str = Query("", description="Case-insensitive name search"),
    category: str = Query("", description="Exact category match"),
    gender: str = Query("", description="male or female"),
    min_age: Optional[str] = Query(None, alias="minAge", description="Whole years; blank is ignored"),
    max_age: Optional[str] = Query(None, alias="maxAge", description="Whole years; blank is ignored"),
    min_bmi: Optional[str] = Query(None, alias="minBmi", description="Blank is ignored"),
    max_bmi: Optional[str] = Query(None, alias="maxBmi", description="Blank is ignored"),
) -> TableQuery:
    table_query = TableQuery(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        category=category,
        gender=gender,
        min_age=optional_number(min_age, "minAge", int),
        max_age=optional_number(max_age, "maxAge", int),
        min_bmi=optional_number(min_bmi, "minBmi"),
        max_bmi=optional_number(max_bmi, "maxBmi"),
    )
    try:
        return table_query.validate()
    except InvalidQueryError as e:
        raise ValidationError(str(e))


def _table_payload(db: Session, table_query: TableQuery) -> dict:
    page = query_table(db, table_query)
    return {
        "data": page.rows,
        "pagination": page.pagination(),
        "filters": {
            "categories": category_facets(db),
            "genders": gender_facets(db),
        },
        "sort": {
            "sortBy": table_query.sort_by,
            "sortOrder": table_query.sort_order,
        },
    }


def _export_response(db: Session, table_query: TableQuery, format: str, prefix: str) -> Response:
    try:
        export_format = ExportFormat(format)
    except ValueError:
        raise ValidationError("Invalid export format", field="format")

    export = DataExportService(db).export(table_query)
    filename = export.filename(prefix, export_format)

    if export_format == ExportFormat.CSV:
        return Response(
            content=export.to_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return Response(content=export.to_json(), media_type="application/json")


@router.get("/data", response_model=DataTableResponse)
def get_data_table(
    table_query: TableQuery = Depends(table_query_params),
    db: Session = Depends(get_db),
):
    """
    Paginated table of named users.

    Supports name search, category, gender, age range and BMI range filters.
    """
    return _table_payload(db, table_query)


@router.get("/data/export")
def export_data_table(
    format: str = Query("json", description="json or csv"),
    table_query: TableQuery = Depends(table_query_params),
    db: Session = Depends(get_db),
):
    """Export every row matching the /api/data filters."""
    return _export_response(db, table_query, format, prefix="bmi-data")


@router.get("/database", response_model=DatabaseTableResponse)
def get_database_table(
    table_query: TableQuery = Depends(table_query_params),
    db: Session = Depends(get_db),
):
    """
    Paginated table of named users with per-gender counts.

    The debug block echoes the filters that were applied.
    """
    payload = _table_payload(db, table_query)
    payload["debug"] = {
        "appliedFilters": table_query.applied_filters(),
        "totalRecords": count_named(db),
    }
    return payload


@router.get("/database/export")
def export_database_table(
    format: str = Query("json", description="json or csv"),
    table_query: TableQuery = Depends(table_query_params),
    db: Session = Depends(get_db),
):
    """Export every row matching the /api/database filters."""
    return _export_response(db, table_query, format, prefix="bmi-database")
