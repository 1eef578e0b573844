"""
Analytics: statistics, score trends, error-book filters and CSV export.
"""

from .aggregation import (
    ErrorSummary,
    ExamStatistics,
    SubjectStats,
    TrendPoint,
    error_summary,
    filter_error_records,
    score_trend,
    statistics,
    topics_by_subject,
)
from .export import CSV_HEADERS, outcomes_to_csv, report_filename

__all__ = [
    "ExamStatistics",
    "SubjectStats",
    "TrendPoint",
    "ErrorSummary",
    "statistics",
    "score_trend",
    "error_summary",
    "filter_error_records",
    "topics_by_subject",
    "CSV_HEADERS",
    "outcomes_to_csv",
    "report_filename",
]
