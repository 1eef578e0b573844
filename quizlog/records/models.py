"""Exam outcome and error-record data classes."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime

UNANSWERED = "未作答"
DEFAULT_TOPIC = "默认知识点"


def new_record_id() -> str:
    """Short random id for records created in this session."""
    return uuid.uuid4().hex[:12]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, unlike round())."""
    return int(math.floor(value + 0.5))


def format_duration(milliseconds: int) -> str:
    """Format a duration as MM:SS."""
    milliseconds = max(0, int(milliseconds))
    minutes = milliseconds // 60000
    seconds = (milliseconds % 60000) // 1000
    return f"{minutes:02d}:{seconds:02d}"


@dataclass(frozen=True)
class ExamOutcome:
    """Summary of one completed exam. Never mutated once stored."""

    id: str
    date: str  # YYYY-MM-DD
    time: str  # HH:MM:SS
    subject: str
    topic: str
    correct_count: int
    wrong_count: int
    score: int  # 0-100
    total_time: str = "00:00"  # MM:SS
    timestamp: int = 0  # epoch ms

    @property
    def total_questions(self) -> int:
        return self.correct_count + self.wrong_count

    @property
    def recorded_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000)


@dataclass
class WrongQuestion:
    """A question answered incorrectly (or left unanswered) in an exam."""

    id: str
    question: str
    options: dict[str, str]
    correct_answer: str
    user_answer: str = UNANSWERED
    mastered: bool = False

    @property
    def unanswered(self) -> bool:
        return self.user_answer == UNANSWERED


@dataclass
class ErrorRecord:
    """The wrong answers of one exam session, with a mastery flag."""

    id: str
    subject: str
    topic: str
    date: str  # ISO timestamp
    wrong_questions: list[WrongQuestion] = field(default_factory=list)
    mastered: bool = False

    @property
    def recorded_at(self) -> datetime:
        return datetime.fromisoformat(self.date)

    @property
    def error_count(self) -> int:
        return len(self.wrong_questions)

    def get_question(self, question_id: str) -> WrongQuestion | None:
        for question in self.wrong_questions:
            if question.id == question_id:
                return question
        return None
