"""
Line formats for the outcome and error trees.

Outcome line (one per exam):
    date§time§subject§topic§correctCount§wrongCount§score

Error line (one per wrong question):
    question§A.optA§B.optB§C.optC§D.optD§answer§你的答案:userAnswer

Files are named after the session that produced them:
    {root}/{subject}/{YYYY-MM-DD}_{HH-MM-SS}.txt
"""

from __future__ import annotations

import re
from datetime import datetime

from loguru import logger

from quizlog.records.codec import decode, encode
from quizlog.records.models import DEFAULT_TOPIC, UNANSWERED, ExamOutcome, WrongQuestion

OUTCOME_FIELD_COUNT = 7
ERROR_MIN_FIELD_COUNT = 6
USER_ANSWER_PREFIX = "你的答案:"
ANSWER_KEYS = ("A", "B", "C", "D")

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"

FILE_STAMP_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})_(\d{2})-(\d{2})-(\d{2})")
OPTION_PATTERN = re.compile(r"^([A-D])\.?(.+)$", re.DOTALL)
LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")

# Ordered keyword buckets; first match wins.
TOPIC_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("语音练习", ("发音", "读音", "音标", "pronunciation", "phonetic")),
    ("词汇练习", ("单词", "词汇", "vocabulary")),
    ("语法练习", ("语法", "grammar")),
    ("辨音练习", ("画线部分", "下划线", "underline")),
    ("选择题", ("选择", "choose")),
]
GENERIC_TOPIC = "综合练习"


def parse_int(value: str) -> int:
    """Leading-integer parse with a 0 fallback; never raises."""
    match = LEADING_INT_PATTERN.match(value or "")
    return int(match.group(1)) if match else 0


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


# =============================================================================
# File naming
# =============================================================================


def session_file_name(date: str, time: str) -> str:
    """File name for a session: ``2024-01-01_10-00-00.txt``."""
    return f"{date}_{time.replace(':', '-')}.txt"


def session_path(root: str, subject: str, date: str, time: str) -> str:
    """Path of a session file relative to the storage root."""
    return f"{root}/{subject}/{session_file_name(date, time)}"


def parse_file_stamp(file_name: str) -> datetime | None:
    """Recover the session time encoded in a file name."""
    match = FILE_STAMP_PATTERN.search(file_name)
    if not match:
        return None
    try:
        return datetime(*(int(g) for g in match.groups()))
    except ValueError:
        return None


def split_relative_path(path: str) -> tuple[str, str]:
    """Split ``subject/file.txt`` into (subject, file name)."""
    parts = path.replace("\\", "/").strip("/").split("/")
    file_name = parts[-1]
    subject = parts[-2] if len(parts) > 1 else ""
    return subject, file_name


# =============================================================================
# Outcome lines
# =============================================================================


def outcome_to_line(outcome: ExamOutcome) -> str:
    return encode(
        [
            outcome.date,
            outcome.time,
            outcome.subject,
            outcome.topic,
            str(outcome.correct_count),
            str(outcome.wrong_count),
            str(outcome.score),
        ]
    )


def parse_outcome_line(line: str, record_id: str, file_stamp: datetime | None = None) -> ExamOutcome | None:
    """
    Decode one outcome line.

    Args:
        line: Raw record line
        record_id: Deterministic id assigned by the store
        file_stamp: Session time from the file name, used when the line's own
            date/time does not parse

    Returns:
        ExamOutcome, or None when the line has fewer than 7 fields
    """
    parts = decode(line)
    if len(parts) < OUTCOME_FIELD_COUNT:
        logger.warning(f"Skipping outcome line with {len(parts)} fields: {line!r}")
        return None

    date_str, time_str, subject, topic, correct, wrong, score = (p.strip() for p in parts[:OUTCOME_FIELD_COUNT])

    try:
        moment = datetime.strptime(f"{date_str} {time_str}", f"{DATE_FORMAT} {TIME_FORMAT}")
    except ValueError:
        moment = file_stamp or datetime.now()

    return ExamOutcome(
        id=record_id,
        date=date_str,
        time=time_str,
        subject=subject,
        topic=topic or DEFAULT_TOPIC,
        correct_count=parse_int(correct),
        wrong_count=parse_int(wrong),
        score=parse_int(score),
        total_time="00:00",
        timestamp=to_epoch_ms(moment),
    )


# =============================================================================
# Error lines
# =============================================================================


def wrong_question_to_line(question: WrongQuestion) -> str:
    options = [f"{key}.{question.options.get(key, '')}" for key in ANSWER_KEYS]
    return encode(
        [
            question.question,
            *options,
            question.correct_answer,
            f"{USER_ANSWER_PREFIX}{question.user_answer or UNANSWERED}",
        ]
    )


def parse_error_line(line: str, question_id: str) -> WrongQuestion | None:
    """
    Decode one error line.

    Option fields that do not look like ``A.text`` are dropped; the rest of
    the question is kept. Lines with fewer than 6 fields or an answer outside
    A-D are rejected.
    """
    parts = decode(line)
    if len(parts) < ERROR_MIN_FIELD_COUNT:
        logger.warning(f"Skipping error line with {len(parts)} fields: {line!r}")
        return None

    correct_answer = parts[5].strip().upper()
    if correct_answer not in ANSWER_KEYS:
        logger.warning(f"Skipping error line with invalid answer {parts[5]!r}: {line!r}")
        return None

    options: dict[str, str] = {}
    for raw in parts[1:5]:
        match = OPTION_PATTERN.match(raw.strip())
        if match:
            options[match.group(1)] = match.group(2)
        else:
            logger.debug(f"Dropping malformed option {raw!r} in {question_id}")

    user_answer = UNANSWERED
    if len(parts) > ERROR_MIN_FIELD_COUNT:
        annotated = parts[6].strip().replace(USER_ANSWER_PREFIX, "", 1).strip()
        user_answer = annotated or UNANSWERED

    return WrongQuestion(
        id=question_id,
        question=parts[0],
        options=options,
        correct_answer=correct_answer,
        user_answer=user_answer,
    )


def infer_topic(question_text: str | None) -> str:
    """Guess a topic label from keywords in a question's text."""
    if not question_text:
        return DEFAULT_TOPIC
    lowered = question_text.lower()
    for topic, keywords in TOPIC_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return topic
    return GENERIC_TOPIC
