"""
Aggregation over exam outcomes and error records.

Everything here is a pure function of its input: nothing is cached and the
store is never consulted directly. Means are rounded half up.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal

from quizlog.records.models import ErrorRecord, ExamOutcome, round_half_up

MasteryFilter = Literal["mastered", "unmastered"]
FrequencyFilter = Literal["high", "medium", "low"]
PeriodFilter = Literal["today", "recent", "week", "month"]

PERIOD_DAYS: dict[str, int] = {"recent": 3, "week": 7, "month": 30}


@dataclass
class SubjectStats:
    count: int
    average_score: int
    highest_score: int


@dataclass
class ExamStatistics:
    """Totals across all outcomes, with a per-subject breakdown."""

    total_exams: int = 0
    average_score: int = 0
    highest_score: int = 0
    subject_count: int = 0
    subject_stats: dict[str, SubjectStats] = field(default_factory=dict)


@dataclass
class TrendPoint:
    date: str  # YYYY-MM-DD
    average_score: int
    count: int


@dataclass
class ErrorSummary:
    total_wrong_questions: int = 0
    subject_count: int = 0
    topic_count: int = 0
    mastered_count: int = 0


def _mean(scores: Sequence[int]) -> int:
    return round_half_up(sum(scores) / len(scores)) if scores else 0


# =============================================================================
# Outcomes
# =============================================================================


def statistics(outcomes: Iterable[ExamOutcome]) -> ExamStatistics:
    """
    Summarize exam outcomes.

    Returns:
        ExamStatistics; all zeros with an empty breakdown for no outcomes
    """
    outcomes = list(outcomes)
    if not outcomes:
        return ExamStatistics()

    by_subject: dict[str, list[int]] = defaultdict(list)
    for outcome in outcomes:
        by_subject[outcome.subject].append(outcome.score)

    scores = [o.score for o in outcomes]
    return ExamStatistics(
        total_exams=len(outcomes),
        average_score=_mean(scores),
        highest_score=max(scores),
        subject_count=len(by_subject),
        subject_stats={
            subject: SubjectStats(
                count=len(subject_scores),
                average_score=_mean(subject_scores),
                highest_score=max(subject_scores),
            )
            for subject, subject_scores in by_subject.items()
        },
    )


def score_trend(
    outcomes: Iterable[ExamOutcome],
    window_days: int = 30,
    now: datetime | None = None,
) -> list[TrendPoint]:
    """
    Daily mean scores over a trailing window.

    Args:
        outcomes: Outcomes to bucket
        window_days: Outcomes older than this many days before ``now`` are left out
        now: Reference time (defaults to the current time)

    Returns:
        One point per date that has outcomes, ascending by date
    """
    now = now or datetime.now()
    cutoff_ms = int((now - timedelta(days=window_days)).timestamp() * 1000)

    daily: dict[str, list[int]] = defaultdict(list)
    for outcome in outcomes:
        if outcome.timestamp >= cutoff_ms:
            daily[outcome.date].append(outcome.score)

    return [
        TrendPoint(date=date, average_score=_mean(scores), count=len(scores))
        for date, scores in sorted(daily.items())
    ]


# =============================================================================
# Error records
# =============================================================================


def error_summary(records: Iterable[ErrorRecord]) -> ErrorSummary:
    records = list(records)
    return ErrorSummary(
        total_wrong_questions=sum(r.error_count for r in records),
        subject_count=len({r.subject for r in records}),
        topic_count=len({(r.subject, r.topic) for r in records}),
        mastered_count=sum(1 for r in records if r.mastered),
    )


def _matches_frequency(record: ErrorRecord, frequency: str) -> bool:
    count = record.error_count
    if frequency == "high":
        return count >= 5
    if frequency == "medium":
        return 2 <= count <= 4
    if frequency == "low":
        return count == 1
    raise ValueError(f"Unknown frequency filter: {frequency!r}")


def _matches_period(record: ErrorRecord, period: str, now: datetime) -> bool:
    recorded_at = record.recorded_at
    if period == "today":
        return recorded_at.date() == now.date()
    if period not in PERIOD_DAYS:
        raise ValueError(f"Unknown period filter: {period!r}")
    return recorded_at >= now - timedelta(days=PERIOD_DAYS[period])


def filter_error_records(
    records: Iterable[ErrorRecord],
    subject: str | None = None,
    topic: str | None = None,
    mastery: MasteryFilter | None = None,
    frequency: FrequencyFilter | None = None,
    period: PeriodFilter | None = None,
    now: datetime | None = None,
) -> list[ErrorRecord]:
    """
    Filter error records the way the error book does.

    Args:
        records: Records to filter
        subject: Keep only this subject
        topic: Keep only this topic
        mastery: "mastered" or "unmastered"
        frequency: "high" (5+ wrong), "medium" (2-4) or "low" (1)
        period: "today", "recent" (3 days), "week" (7) or "month" (30)
        now: Reference time for the period filter

    Raises:
        ValueError: Unknown mastery, frequency or period value
    """
    if mastery not in (None, "mastered", "unmastered"):
        raise ValueError(f"Unknown mastery filter: {mastery!r}")
    now = now or datetime.now()

    result = []
    for record in records:
        if subject and record.subject != subject:
            continue
        if topic and record.topic != topic:
            continue
        if mastery and record.mastered != (mastery == "mastered"):
            continue
        if frequency and not _matches_frequency(record, frequency):
            continue
        if period and not _matches_period(record, period, now):
            continue
        result.append(record)
    return result


def topics_by_subject(records: Iterable[ErrorRecord], subject: str) -> list[str]:
    """Distinct topics with error records for a subject, in first-seen order."""
    topics: list[str] = []
    for record in records:
        if record.subject == subject and record.topic not in topics:
            topics.append(record.topic)
    return topics
