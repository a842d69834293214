"""
Record Export Service

Serializes filtered user records for download.

Formats:
- json: structured export with metadata
- csv: one row per user, spreadsheet friendly

Anonymous users are never exported. Filters match the table views,
but exports are not paginated.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List
import csv
import io
import json

from sqlalchemy.orm import Session

from services.user_records import TableQuery, fetch_all_rows


class ExportFormat(str, Enum):
    """Supported export formats."""
    JSON = "json"
    CSV = "csv"


# (header, row key) pairs in column order
CSV_COLUMNS = [
    ("ID", "id"),
    ("Name", "name"),
    ("Gender", "gender"),
    ("Age", "age"),
    ("Height (cm)", "height"),
    ("Weight (kg)", "weight"),
    ("BMI", "currentBmi"),
    ("Category", "currentCategory"),
    ("Last Calculation", "lastCalculation"),
    ("Total Calculations", "calculationCount"),
]


@dataclass
class RecordExport:
    """Complete export of matching records."""
    exported_at: datetime
    filters: Dict[str, Any]
    rows: List[Dict[str, Any]]

    @property
    def total_records(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exportedAt": self.exported_at.isoformat(),
            "totalRecords": self.total_records,
            "filters": self.filters,
            "data": self.rows,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def to_csv(self) -> str:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow([header for header, _ in CSV_COLUMNS])
        for row in self.rows:
            writer.writerow([
                "N/A" if row.get(key) is None else row.get(key)
                for _, key in CSV_COLUMNS
            ])
        return output.getvalue()

    def filename(self, prefix: str, export_format: ExportFormat) -> str:
        return f"{prefix}-{self.exported_at.date().isoformat()}.{export_format.value}"


class DataExportService:
    """Builds exports for the table views."""

    def __init__(self, db: Session):
        self.db = db

    def export(self, table_query: TableQuery) -> RecordExport:
        return RecordExport(
            exported_at=datetime.now(timezone.utc),
            filters=table_query.applied_filters(),
            rows=fetch_all_rows(self.db, table_query),
        )
