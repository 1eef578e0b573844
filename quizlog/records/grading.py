"""Grading: turn a finished exam into an outcome and an error record."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from quizlog.bank.models import Question
from quizlog.records.models import (
    UNANSWERED,
    ErrorRecord,
    ExamOutcome,
    WrongQuestion,
    format_duration,
    new_record_id,
    round_half_up,
)


def grade_exam(
    subject: str,
    topic: str,
    questions: Sequence[Question],
    answers: Sequence[str | None],
    started_at: datetime,
    finished_at: datetime | None = None,
) -> tuple[ExamOutcome, ErrorRecord | None]:
    """
    Grade an exam.

    Unanswered questions count as wrong. The score is the percentage of
    correct answers, rounded half up.

    Args:
        subject: Subject of the bank the questions came from
        topic: Topic of the bank
        questions: Questions in the order they were asked
        answers: Answer letter per question (None or missing for unanswered)
        started_at: When the exam started
        finished_at: When the exam was submitted (defaults to now)

    Returns:
        Tuple of (outcome, error record or None when every answer was right)
    """
    finished_at = finished_at or datetime.now()
    record_id = new_record_id()

    correct_count = 0
    wrong_questions: list[WrongQuestion] = []
    for index, question in enumerate(questions):
        answer = answers[index] if index < len(answers) else None
        if question.is_correct(answer):
            correct_count += 1
            continue
        wrong_questions.append(
            WrongQuestion(
                id=f"{record_id}-{index}",
                question=question.text,
                options=dict(question.options),
                correct_answer=question.correct_answer,
                user_answer=answer.strip().upper() if answer and answer.strip() else UNANSWERED,
            )
        )

    total = len(questions)
    score = round_half_up(correct_count / total * 100) if total else 0
    elapsed_ms = int((finished_at - started_at).total_seconds() * 1000)

    outcome = ExamOutcome(
        id=record_id,
        date=finished_at.strftime("%Y-%m-%d"),
        time=finished_at.strftime("%H:%M:%S"),
        subject=subject,
        topic=topic,
        correct_count=correct_count,
        wrong_count=total - correct_count,
        score=score,
        total_time=format_duration(elapsed_ms),
        timestamp=int(finished_at.timestamp() * 1000),
    )

    if not wrong_questions:
        return outcome, None

    error_record = ErrorRecord(
        id=record_id,
        subject=subject,
        topic=topic,
        date=finished_at.replace(microsecond=0).isoformat(),
        wrong_questions=wrong_questions,
    )
    return outcome, error_record
