"""Report export for spatial join results."""

from .report_exporter import ExportFormat, ExportOptions, ReportExporter, format_cost, format_date

__all__ = ['ExportFormat', 'ExportOptions', 'ReportExporter', 'format_cost', 'format_date']
