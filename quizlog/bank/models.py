"""Question bank data classes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

OPTION_KEYS: tuple[str, ...] = ("A", "B", "C", "D")


@dataclass(frozen=True)
class Question:
    """
    A single multiple-choice question parsed from a bank file.

    ``text`` and the option values may carry ``<u>...</u>`` underline markup.
    Instances are immutable; exam sessions and error records hold references.
    """

    text: str
    options: Mapping[str, str] = field(hash=False)
    correct_answer: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    def option_text(self, key: str) -> str:
        """Option text for a letter, or an empty string."""
        return self.options.get(key.upper(), "")

    def is_correct(self, answer: str | None) -> bool:
        """Check an answer letter against the key (case-insensitive)."""
        return bool(answer) and answer.strip().upper() == self.correct_answer


@dataclass
class RejectedLine:
    """A bank line that failed validation."""

    line_number: int
    raw: str
    reason: str


@dataclass
class BankParseResult:
    """Questions parsed from a bank, plus the lines that were rejected."""

    questions: list[Question] = field(default_factory=list)
    rejected: list[RejectedLine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.questions
