"""
Question bank parser.

Bank files hold one question per line:

    text§option A§option B§option C§option D§answer

The answer is a letter A-D (any case). Letters wrapped in hyphens, such as
``b-ea-d``, are rendered underlined so phonics questions can point at the
exact letters being asked about.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from loguru import logger

from quizlog.bank.models import OPTION_KEYS, BankParseResult, Question, RejectedLine
from quizlog.records.codec import decode

QUESTION_FIELD_COUNT = 6

UNDERLINE_PATTERN = re.compile(r"-([a-zA-Z]+)-")
UNDERLINE_TAG = re.compile(r"<u>(.*?)</u>")


def underline_markup(text: str) -> str:
    """Rewrite ``-letters-`` runs as ``<u>letters</u>``."""
    if not text:
        return text
    return UNDERLINE_PATTERN.sub(r"<u>\1</u>", text)


def to_rich_markup(text: str) -> str:
    """Convert ``<u>`` tags to rich console markup for terminal display."""
    return UNDERLINE_TAG.sub(r"[u]\1[/u]", text)


def _validate(line: str) -> tuple[Question | None, str]:
    parts = decode(line)
    if len(parts) != QUESTION_FIELD_COUNT:
        return None, f"expected {QUESTION_FIELD_COUNT} fields, got {len(parts)}"

    answer = parts[5].strip().upper()
    if answer not in OPTION_KEYS:
        return None, f"answer must be one of A, B, C, D, got {parts[5].strip()!r}"

    question = Question(
        text=underline_markup(parts[0].strip()),
        options={key: underline_markup(value.strip()) for key, value in zip(OPTION_KEYS, parts[1:5])},
        correct_answer=answer,
    )
    return question, ""


def parse_line(line: str) -> Question | None:
    """
    Parse one bank line.

    Returns:
        The Question, or None when the field count is wrong or the answer is
        not A-D. Malformed lines never raise.
    """
    question, reason = _validate(line)
    if question is None:
        logger.warning(f"Rejected question line ({reason}): {line!r}")
    return question


def parse_bank(lines: Iterable[str]) -> BankParseResult:
    """Parse every non-blank line, keeping diagnostics for rejected ones."""
    result = BankParseResult()
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        question, reason = _validate(line.rstrip("\r\n"))
        if question is None:
            logger.warning(f"Rejected question line {number} ({reason}): {line!r}")
            result.rejected.append(RejectedLine(line_number=number, raw=line, reason=reason))
        else:
            result.questions.append(question)
    return result


def load_bank(lines: Iterable[str]) -> list[Question]:
    """
    Parse a bank's lines into questions, dropping rejects.

    An empty result means the bank cannot produce an exam; callers treat it
    as a load failure rather than "zero questions available".
    """
    return parse_bank(lines).questions
