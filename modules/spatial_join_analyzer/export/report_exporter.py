"""Report Exporter

Writes spatial join results as tabular reports for city managers: the project
analysis report, the project manager contact list and the infrastructure
impact summary. Group keys are serialized with ``" - "`` only here.
"""

import csv
import logging
import numbers
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd
from pydantic import BaseModel, Field

from src.exceptions import SynergyProcessingError
from ..models import LayerConfig, UNKNOWN_VALUE
from ..spatial_join import GroupKey, SpatialMatch, serialize_group_key

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
UNTITLED_PROJECT = "Untitled Project"
ALL_TYPES = "All Types"

ANALYSIS_REPORT_PREFIX = "project-analysis"
CONTACT_LIST_PREFIX = "project-managers"
INFRASTRUCTURE_SUMMARY_PREFIX = "infrastructure-impact"

CONTACT_COLUMNS = ['Project Manager', 'Phone', 'Email', 'Department', 'Project Title', 'Project Number']
INFRASTRUCTURE_COLUMNS = ['Infrastructure Type', 'Subcategory', 'Count', 'Affected Projects']


class ExportFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"


class ExportOptions(BaseModel):
    """Column selection and output format for the project analysis report."""
    include_contact_info: bool = Field(True, description="Add project manager columns")
    include_infrastructure_impact: bool = Field(True, description="Add match total and breakdown columns")
    include_cost_data: bool = Field(True, description="Add construction cost column")
    format: ExportFormat = Field(ExportFormat.CSV, description="Output file format")


def _is_unknown_key(key: GroupKey) -> bool:
    return all(segment == UNKNOWN_VALUE for segment in key)


def format_date(value: Any) -> str:
    """Format an epoch-milliseconds timestamp or date string as M/D/YYYY (UTC)."""
    if value is None or value == "" or isinstance(value, bool):
        return NOT_AVAILABLE
    if isinstance(value, numbers.Number):
        timestamp = pd.to_datetime(value, unit="ms", errors="coerce")
    else:
        timestamp = pd.to_datetime(value, errors="coerce")
    if pd.isna(timestamp):
        return str(value)
    return f"{timestamp.month}/{timestamp.day}/{timestamp.year}"


def format_cost(value: Any) -> str:
    if not value or isinstance(value, bool):
        return NOT_AVAILABLE
    if isinstance(value, numbers.Number):
        amount = f"{value:,.3f}".rstrip("0").rstrip(".")
        return f"${amount}"
    return str(value)


class ReportExporter:
    """Builds report tables with pandas and writes them to the output directory."""
    
    def __init__(self, layer_config: LayerConfig, output_dir: Union[str, Path]):
        """Initialize the report exporter.
        
        Args:
            layer_config: Layer configuration (display fields and target names)
            output_dir: Directory the report files are written to
        """
        self.layer_config = layer_config
        self.output_dir = Path(output_dir)
        self.display_fields = layer_config.reference.display_fields
    
    def _reference_value(self, match: SpatialMatch, field_name: str, fallback: str) -> Any:
        value = match.get_reference_property(field_name)
        return value if value else fallback
    
    def _group_label(self, key: GroupKey, target_index: int) -> str:
        if not key or _is_unknown_key(key):
            return self.layer_config.get_target_name(target_index)
        return serialize_group_key(key)
    
    def format_breakdown(self, match: SpatialMatch) -> str:
        """Describe a match's groups as ``group: count; ...`` per target, joined by `` | ``."""
        parts = []
        for index, target_match in enumerate(match.target_matches):
            if target_match.match_count == 0:
                continue
            parts.append("; ".join(
                f"{self._group_label(key, index)}: {count}"
                for key, count in target_match.grouped_matches.items()
            ))
        return " | ".join(parts) or "None"
    
    def build_analysis_frame(self, matches: Sequence[SpatialMatch],
                             options: Optional[ExportOptions] = None) -> pd.DataFrame:
        options = options or ExportOptions()
        fields = self.display_fields
        
        columns = ['Project Title', 'Project Number', 'Agency/Department', 'Start Date', 'End Date']
        if options.include_cost_data:
            columns.append('Construction Cost ($)')
        if options.include_contact_info:
            columns.extend(['Project Manager', 'Phone', 'Email'])
        if options.include_infrastructure_impact:
            columns.extend(['Total Infrastructure Items Affected', 'Infrastructure Breakdown'])
        
        rows = []
        for match in matches:
            row = [
                str(self._reference_value(match, fields.title, UNTITLED_PROJECT)),
                str(self._reference_value(match, fields.project_number, NOT_AVAILABLE)),
                str(self._reference_value(match, fields.department, UNKNOWN_VALUE)),
                format_date(match.get_reference_property(fields.start_date)),
                format_date(match.get_reference_property(fields.end_date)),
            ]
            if options.include_cost_data:
                row.append(format_cost(match.get_reference_property(fields.cost)))
            if options.include_contact_info:
                row.extend([
                    str(self._reference_value(match, fields.manager_name, NOT_AVAILABLE)),
                    str(self._reference_value(match, fields.manager_phone, NOT_AVAILABLE)),
                    str(self._reference_value(match, fields.manager_email, NOT_AVAILABLE)),
                ])
            if options.include_infrastructure_impact:
                row.extend([str(match.total_match_count), self.format_breakdown(match)])
            rows.append(row)
        
        return pd.DataFrame(rows, columns=columns)
    
    def build_contact_frame(self, matches: Sequence[SpatialMatch]) -> pd.DataFrame:
        """One row per unique project manager (name and email), first project wins."""
        fields = self.display_fields
        managers: Dict[Tuple[str, str], List[str]] = {}
        
        for match in matches:
            name = match.get_reference_property(fields.manager_name)
            email = match.get_reference_property(fields.manager_email)
            if not name or not email:
                continue
            key = (str(name), str(email))
            if key in managers:
                continue
            managers[key] = [
                str(name),
                str(self._reference_value(match, fields.manager_phone, NOT_AVAILABLE)),
                str(email),
                str(self._reference_value(match, fields.department, UNKNOWN_VALUE)),
                str(self._reference_value(match, fields.title, UNTITLED_PROJECT)),
                str(self._reference_value(match, fields.project_number, NOT_AVAILABLE)),
            ]
        
        return pd.DataFrame(list(managers.values()), columns=CONTACT_COLUMNS)
    
    def build_infrastructure_frame(self, matches: Sequence[SpatialMatch]) -> pd.DataFrame:
        """Aggregate group counts per (target layer, group key) across all matches."""
        totals: Dict[Tuple[int, GroupKey], Dict[str, Any]] = {}
        
        for match in matches:
            project_title = str(self._reference_value(match, self.display_fields.title, UNTITLED_PROJECT))
            for index, target_match in enumerate(match.target_matches):
                for key, count in target_match.grouped_matches.items():
                    entry = totals.setdefault((index, key), {"count": 0, "projects": {}})
                    entry["count"] += count
                    entry["projects"][project_title] = None
        
        rows = []
        for (index, key), entry in totals.items():
            if not key or _is_unknown_key(key):
                infrastructure_type = self.layer_config.get_target_name(index)
                subcategory = ALL_TYPES
            else:
                infrastructure_type = key[0] or UNKNOWN_VALUE
                subcategory = serialize_group_key(key[1:]) or UNKNOWN_VALUE
            rows.append([
                infrastructure_type,
                subcategory,
                str(entry["count"]),
                "; ".join(entry["projects"]),
            ])
        
        return pd.DataFrame(rows, columns=INFRASTRUCTURE_COLUMNS)
    
    def export_analysis_results(self, matches: Sequence[SpatialMatch],
                                options: Optional[ExportOptions] = None,
                                export_date: Optional[date] = None) -> Path:
        options = options or ExportOptions()
        frame = self.build_analysis_frame(matches, options)
        return self._write(frame, ANALYSIS_REPORT_PREFIX, options.format, export_date)
    
    def export_contact_list(self, matches: Sequence[SpatialMatch],
                            export_format: ExportFormat = ExportFormat.CSV,
                            export_date: Optional[date] = None) -> Path:
        frame = self.build_contact_frame(matches)
        return self._write(frame, CONTACT_LIST_PREFIX, export_format, export_date)
    
    def export_infrastructure_summary(self, matches: Sequence[SpatialMatch],
                                      export_format: ExportFormat = ExportFormat.CSV,
                                      export_date: Optional[date] = None) -> Path:
        frame = self.build_infrastructure_frame(matches)
        return self._write(frame, INFRASTRUCTURE_SUMMARY_PREFIX, export_format, export_date)
    
    def _write(self, frame: pd.DataFrame, prefix: str, export_format: ExportFormat,
               export_date: Optional[date]) -> Path:
        export_date = export_date or date.today()
        extension = "xlsx" if export_format == ExportFormat.EXCEL else "csv"
        output_file = self.output_dir / f"{prefix}-{export_date.isoformat()}.{extension}"
        
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            if export_format == ExportFormat.EXCEL:
                with pd.ExcelWriter(output_file, engine='openpyxl') as writer:
                    frame.to_excel(writer, sheet_name=prefix[:31], index=False)
            else:
                frame.to_csv(output_file, index=False, quoting=csv.QUOTE_ALL, encoding='utf-8')
        except OSError as e:
            raise SynergyProcessingError(
                f"Export failed: {str(e)}", {"file": str(output_file)}
            )
        
        logger.info(f"Exported {len(frame)} rows to {output_file}")
        return output_file
