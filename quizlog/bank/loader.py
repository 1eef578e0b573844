"""
Question bank loader.

Discovers and loads per-topic bank files laid out as:

    data/
      英语/
        语音.txt
        词汇.txt
      数学/
        ...

Each subject is a directory, each topic a ``.txt`` file inside it.
"""

from __future__ import annotations

import random
from pathlib import Path

from loguru import logger

from quizlog.bank.models import Question
from quizlog.bank.parser import parse_bank
from quizlog.bank.sampler import sample
from quizlog.errors import BankLoadError, EmptyBankError


class QuestionBankLoader:
    """
    Load and manage question banks from a data directory.

    Features:
    - Subject/topic discovery from the directory tree
    - Per-bank validation (rejected lines are counted, not fatal)
    - Random exam draws via the Fisher-Yates sampler
    """

    BANK_SUFFIX = ".txt"

    def __init__(self, data_dir: Path | str):
        """
        Initialize loader.

        Args:
            data_dir: Root of the bank tree ({subject}/{topic}.txt)
        """
        self.data_dir = Path(data_dir)

        self._subjects: list[str] = []
        self._topics: dict[str, list[str]] = {}
        self._questions: dict[str, list[Question]] = {}
        self._failures: dict[str, str] = {}
        self._rejected_lines: int = 0
        self._initialized = False

    @staticmethod
    def _key(subject: str, topic: str) -> str:
        return f"{subject}/{topic}"

    # =========================================================================
    # Discovery & Loading
    # =========================================================================

    def scan(self) -> bool:
        """
        Rescan the data directory and load every bank.

        Banks that fail to load are recorded in ``failures`` and skipped.

        Returns:
            True if the data directory exists and was scanned
        """
        self._subjects = []
        self._topics = {}
        self._questions = {}
        self._failures = {}
        self._rejected_lines = 0
        self._initialized = False

        if not self.data_dir.is_dir():
            logger.error(f"Question bank directory not found: {self.data_dir}")
            return False

        for subject in self._list_subject_dirs():
            self._subjects.append(subject)
            topics = self._list_topic_files(subject)
            self._topics[subject] = topics

            for topic in topics:
                try:
                    self._questions[self._key(subject, topic)] = self.load_questions(subject, topic)
                except BankLoadError as e:
                    logger.error(str(e))
                    self._failures[self._key(subject, topic)] = e.reason

        self._initialized = True
        status = self.loading_status()
        logger.info(
            f"Bank scan complete: {status['subjects_count']} subjects, "
            f"{status['topics_count']} topics, {status['questions_count']} questions "
            f"({len(self._failures)} failed banks)"
        )
        return True

    def _list_subject_dirs(self) -> list[str]:
        return sorted(
            d.name for d in self.data_dir.iterdir() if d.is_dir() and not d.name.startswith(".")
        )

    def _list_topic_files(self, subject: str) -> list[str]:
        subject_dir = self.data_dir / subject
        return sorted(
            f.stem
            for f in subject_dir.iterdir()
            if f.is_file() and f.suffix == self.BANK_SUFFIX and not f.name.startswith(".")
        )

    def load_questions(self, subject: str, topic: str) -> list[Question]:
        """
        Read and parse a single bank file.

        Raises:
            BankLoadError: The file is missing or unreadable
            EmptyBankError: The file yielded no valid questions
        """
        path = self.data_dir / subject / f"{topic}{self.BANK_SUFFIX}"
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise BankLoadError(subject, topic, str(e)) from e

        result = parse_bank(text.split("\n"))
        self._rejected_lines += len(result.rejected)
        if result.is_empty:
            raise EmptyBankError(subject, topic)

        logger.debug(f"Loaded bank {subject}/{topic}: {len(result.questions)} questions")
        return result.questions

    def reload(self) -> bool:
        """Discard loaded banks and scan again."""
        return self.scan()

    # =========================================================================
    # Queries
    # =========================================================================

    def subjects(self) -> list[str]:
        return list(self._subjects)

    def topics(self, subject: str) -> list[str]:
        return list(self._topics.get(subject, []))

    def questions(self, subject: str, topic: str) -> list[Question]:
        return list(self._questions.get(self._key(subject, topic), []))

    @property
    def failures(self) -> dict[str, str]:
        """Banks that failed to load, keyed by ``subject/topic``."""
        return dict(self._failures)

    def random_questions(
        self,
        subject: str,
        topic: str,
        count: int = 10,
        rng: random.Random | None = None,
    ) -> list[Question]:
        """
        Draw an exam's worth of questions from one bank.

        Raises:
            EmptyBankError: No questions are available for the bank
        """
        questions = self.questions(subject, topic)
        if not questions:
            raise EmptyBankError(subject, topic)
        return sample(questions, count, rng)

    def subject_info(self) -> list[dict]:
        """Summary of each subject: topics and question totals."""
        return [
            {
                "name": subject,
                "topics": self.topics(subject),
                "topic_count": len(self.topics(subject)),
                "total_questions": sum(len(self.questions(subject, t)) for t in self.topics(subject)),
            }
            for subject in self._subjects
        ]

    def is_loaded(self) -> bool:
        """Check whether a scan finished and found at least one subject."""
        return self._initialized and bool(self._subjects) and bool(self._topics)

    def loading_status(self) -> dict:
        return {
            "initialized": self._initialized,
            "subjects_count": len(self._subjects),
            "topics_count": sum(len(t) for t in self._topics.values()),
            "questions_count": sum(len(q) for q in self._questions.values()),
            "failed_banks": len(self._failures),
            "rejected_lines": self._rejected_lines,
        }
