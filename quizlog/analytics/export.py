"""
CSV report export.

The report opens cleanly in spreadsheet tools: it is BOM-prefixed so CJK
subject and topic names are read as UTF-8, with one row per exam outcome.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from quizlog.records.codec import BOM
from quizlog.records.models import ExamOutcome

CSV_HEADERS = ["日期", "科目", "知识点", "正确数", "错误数", "分数", "用时"]


def report_filename(today: str) -> str:
    """Default export file name for a report written on ``today`` (YYYY-MM-DD)."""
    return f"考试报表_{today}.csv"


def outcomes_to_csv(outcomes: Iterable[ExamOutcome]) -> str:
    """
    Render outcomes as CSV text.

    Args:
        outcomes: Outcomes in the order they should appear

    Returns:
        BOM-prefixed CSV with a header row, rows separated by newlines
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for outcome in outcomes:
        writer.writerow(
            [
                outcome.date,
                outcome.subject,
                outcome.topic,
                outcome.correct_count,
                outcome.wrong_count,
                outcome.score,
                outcome.total_time,
            ]
        )
    return BOM + buffer.getvalue().rstrip("\n")
