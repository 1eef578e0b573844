"""
Mastery tracking for error records.

Error files are append-only and carry no mastery state, so the flags live in
a JSON sidecar inside the errors tree:

    error/mastery.json
    {"records": ["英语-2024-01-01_10-00-00.txt"],
     "questions": ["英语-2024-01-02_09-00-00.txt-3"],
     "cleared": ["英语-2023-12-30_18-00-00.txt"]}

The sidecar has no ``.txt`` suffix, so store scans never pick it up. Cleared
records stay on disk but are dropped from the view whenever flags are applied.
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field

from loguru import logger

from quizlog.bank.sampler import shuffle
from quizlog.errors import StorageError
from quizlog.records.backends import FileBackend
from quizlog.records.models import ErrorRecord, WrongQuestion
from quizlog.records.store import OutcomeStore


@dataclass
class MasteryState:
    """Serializable sidecar contents."""

    records: set[str] = field(default_factory=set)
    questions: set[str] = field(default_factory=set)
    cleared: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "records": sorted(self.records),
            "questions": sorted(self.questions),
            "cleared": sorted(self.cleared),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MasteryState":
        return cls(
            records=set(data.get("records", [])),
            questions=set(data.get("questions", [])),
            cleared=set(data.get("cleared", [])),
        )


@dataclass
class PracticeItem:
    """A wrong question queued for practice, with the record it came from."""

    record_id: str
    subject: str
    topic: str
    question: WrongQuestion


class MasteryTracker:
    """
    Mastery flags on top of an OutcomeStore.

    Mutations update the store's records in memory and rewrite the sidecar.
    ``refresh()`` rescans the store and re-applies the sidecar, so flags
    survive rescans and restarts.
    """

    def __init__(self, store: OutcomeStore, backend: FileBackend, path: str = "error/mastery.json"):
        self.store = store
        self.backend = backend
        self.path = path
        self._state = self._load()

    # =========================================================================
    # Sidecar I/O
    # =========================================================================

    def _load(self) -> MasteryState:
        try:
            raw = self.backend.read_text(self.path)
        except FileNotFoundError:
            return MasteryState()
        except (OSError, StorageError) as e:
            logger.warning(f"Could not read mastery file {self.path}: {e}")
            return MasteryState()

        try:
            return MasteryState.from_dict(json.loads(raw))
        except (json.JSONDecodeError, AttributeError, TypeError) as e:
            logger.warning(f"Ignoring corrupt mastery file {self.path}: {e}")
            return MasteryState()

    def _save(self) -> None:
        self.backend.write_text(self.path, json.dumps(self._state.to_dict(), ensure_ascii=False, indent=2))
        logger.debug(
            f"Saved mastery: {len(self._state.records)} records, {len(self._state.questions)} questions"
        )

    def apply(self) -> None:
        """Copy sidecar flags onto the store's current records and drop cleared ones."""
        if self._state.cleared:
            self.store.drop_error_records(self._state.cleared)
        for record in self.store.error_records():
            record.mastered = record.id in self._state.records
            for question in record.wrong_questions:
                question.mastered = question.id in self._state.questions

    def refresh(self) -> None:
        """Rescan the store and re-apply the persisted flags."""
        self._state = self._load()
        self.store.refresh()
        self.apply()

    # =========================================================================
    # Mutations
    # =========================================================================

    def toggle_mastered(self, record_id: str) -> bool | None:
        """
        Flip a record's mastered flag and persist it.

        Returns:
            The new flag, or None if no record has this id
        """
        record = self.store.get_error_record(record_id)
        if record is None:
            logger.warning(f"Unknown error record: {record_id}")
            return None

        record.mastered = not record.mastered
        if record.mastered:
            self._state.records.add(record_id)
        else:
            self._state.records.discard(record_id)
        self._save()
        logger.info(f"Record {record_id} marked {'mastered' if record.mastered else 'unmastered'}")
        return record.mastered

    def set_question_mastered(self, record_id: str, question_id: str, mastered: bool = True) -> bool:
        """
        Set one wrong question's mastered flag and persist it.

        Returns:
            True if the question was found
        """
        record = self.store.get_error_record(record_id)
        question = record.get_question(question_id) if record else None
        if question is None:
            logger.warning(f"Unknown question {question_id} in record {record_id}")
            return False

        question.mastered = mastered
        if mastered:
            self._state.questions.add(question_id)
        else:
            self._state.questions.discard(question_id)
        self._save()
        return True

    def clear_mastered(self) -> int:
        """
        Remove mastered records from the error book and persist the removal.

        The error files are kept; the cleared ids are recorded in the sidecar
        so the records stay hidden after rescans and restarts.

        Returns:
            Number of records cleared
        """
        cleared = {r.id for r in self.store.error_records() if r.mastered}
        if not cleared:
            return 0

        self._state.cleared |= cleared
        self._save()
        self.store.drop_error_records(cleared)
        logger.info(f"Cleared {len(cleared)} mastered error records")
        return len(cleared)

    # =========================================================================
    # Practice
    # =========================================================================

    def practice_set(
        self,
        records: list[ErrorRecord] | None = None,
        rng: random.Random | None = None,
    ) -> list[PracticeItem]:
        """Unmastered questions from unmastered records, shuffled."""
        if records is None:
            records = self.store.error_records()
        items = [
            PracticeItem(record.id, record.subject, record.topic, question)
            for record in records
            if not record.mastered
            for question in record.wrong_questions
            if not question.mastered
        ]
        return shuffle(items, rng)

    def answer_practice(self, item: PracticeItem, answer: str | None) -> bool:
        """Check a practice answer; a correct one marks the question mastered."""
        correct = bool(answer) and answer.strip().upper() == item.question.correct_answer
        if correct:
            self.set_question_mastered(item.record_id, item.question.id, True)
        return correct

    def mastered_count(self, records: list[ErrorRecord] | None = None) -> int:
        """Number of mastered records."""
        if records is None:
            records = self.store.error_records()
        return sum(1 for r in records if r.mastered)
