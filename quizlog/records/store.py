"""
Outcome Store: flat-file persistence for exam outcomes and error records.

The on-disk trees are the source of truth. The store rebuilds its in-memory
view by rescanning them:

- Outcomes merge additively, deduplicated by a deterministic id derived from
  subject directory, file name and line index.
- Error records are rebuilt from disk on every scan; mastery flags of records
  that were already in memory are carried over by id.

All I/O goes through an injected FileBackend.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from enum import Enum

from loguru import logger

from quizlog.errors import ListingUnavailableError, StorageError
from quizlog.records.backends import FileBackend
from quizlog.records.codec import split_records
from quizlog.records.formats import (
    infer_topic,
    outcome_to_line,
    parse_error_line,
    parse_file_stamp,
    parse_outcome_line,
    session_path,
    split_relative_path,
    wrong_question_to_line,
)
from quizlog.records.models import ErrorRecord, ExamOutcome


class StoreState(str, Enum):
    """Lifecycle of the in-memory view."""

    UNINITIALIZED = "uninitialized"
    SCANNING = "scanning"
    READY = "ready"


class OutcomeStore:
    """
    In-memory view of the outcome and error trees.

    Sessions are stored one file per exam in each tree:
        {results_root}/{subject}/{date}_{HH-MM-SS}.txt
        {errors_root}/{subject}/{date}_{HH-MM-SS}.txt
    """

    def __init__(
        self,
        backend: FileBackend,
        results_root: str = "log",
        errors_root: str = "error",
        fallback_files: Sequence[str] = (),
    ):
        """
        Initialize the store.

        Args:
            backend: File collaborator for listing, reading and writing
            results_root: Root of the outcome tree, relative to the backend
            errors_root: Root of the error tree, relative to the backend
            fallback_files: Relative paths tried in both trees when the
                backend cannot list files
        """
        self.backend = backend
        self.results_root = results_root.strip("/")
        self.errors_root = errors_root.strip("/")
        self.fallback_files = list(fallback_files)

        self.state = StoreState.UNINITIALIZED
        self._outcomes: list[ExamOutcome] = []
        self._error_records: list[ErrorRecord] = []

    # =========================================================================
    # Listing
    # =========================================================================

    def _list(self, root: str) -> list[str]:
        try:
            return self.backend.list_files(root, ".txt")
        except ListingUnavailableError as e:
            logger.warning(f"Listing unavailable for {root}/ ({e}); trying {len(self.fallback_files)} fallback files")
        except (StorageError, OSError) as e:
            logger.error(f"Listing {root}/ failed ({e}); trying {len(self.fallback_files)} fallback files")
        return sorted(self.fallback_files)

    def list_outcome_files(self) -> list[str]:
        """Outcome files relative to the results root."""
        return self._list(self.results_root)

    def list_error_files(self) -> list[str]:
        """Error files relative to the errors root."""
        return self._list(self.errors_root)

    def _read(self, path: str) -> str | None:
        try:
            content = self.backend.read_text(path)
        except (OSError, StorageError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None
        if not content.strip():
            logger.warning(f"File is empty: {path}")
            return None
        return content

    # =========================================================================
    # File Parsing
    # =========================================================================

    def load_outcome_file(self, path: str) -> list[ExamOutcome]:
        """
        Parse one outcome file.

        Args:
            path: File path relative to the results root

        Returns:
            Outcomes in line order (empty if the file is missing or unreadable)
        """
        content = self._read(f"{self.results_root}/{path}")
        if content is None:
            return []

        subject_dir, file_name = split_relative_path(path)
        stamp = parse_file_stamp(file_name)
        outcomes = []
        for index, line in enumerate(split_records(content)):
            outcome = parse_outcome_line(line, f"{subject_dir}-{file_name}-{index}", stamp)
            if outcome is not None:
                outcomes.append(outcome)
        logger.debug(f"Parsed {len(outcomes)} outcomes from {path}")
        return outcomes

    def load_error_file(self, path: str) -> ErrorRecord | None:
        """
        Parse one error file into a record.

        Args:
            path: File path relative to the errors root

        Returns:
            ErrorRecord, or None if the file has no valid question lines
        """
        content = self._read(f"{self.errors_root}/{path}")
        if content is None:
            return None

        subject, file_name = split_relative_path(path)
        record_id = f"{subject}-{file_name}"
        wrong_questions = []
        for index, line in enumerate(split_records(content)):
            question = parse_error_line(line, f"{record_id}-{index}")
            if question is not None:
                wrong_questions.append(question)

        if not wrong_questions:
            return None

        stamp = parse_file_stamp(file_name) or datetime.now()
        return ErrorRecord(
            id=record_id,
            subject=subject,
            topic=self._companion_topic(subject, file_name) or infer_topic(wrong_questions[0].question),
            date=stamp.isoformat(),
            wrong_questions=wrong_questions,
        )

    def _companion_topic(self, subject: str, file_name: str) -> str | None:
        """Topic of the outcome saved by the same session, if it was scanned."""
        prefix = f"{subject}-{file_name}-"
        for outcome in self._outcomes:
            if outcome.id.startswith(prefix):
                return outcome.topic
        return None

    # =========================================================================
    # Scanning
    # =========================================================================

    def scan(self) -> None:
        """
        Rescan both trees.

        Outcomes with an id already in memory are skipped. Error records are
        rebuilt and swapped in as a whole, keeping known mastery flags.
        """
        self.state = StoreState.SCANNING
        try:
            self._scan_trees()
        finally:
            self.state = StoreState.READY

    def _scan_trees(self) -> None:
        outcomes = list(self._outcomes)
        known_ids = {o.id for o in outcomes}
        added = 0
        for path in self.list_outcome_files():
            for outcome in self.load_outcome_file(path):
                if outcome.id in known_ids:
                    logger.debug(f"Skipping duplicate outcome {outcome.id}")
                    continue
                known_ids.add(outcome.id)
                outcomes.append(outcome)
                added += 1
        self._outcomes = outcomes

        previous = {r.id: r for r in self._error_records}
        records = []
        for path in self.list_error_files():
            record = self.load_error_file(path)
            if record is None:
                continue
            old = previous.get(record.id)
            if old is not None:
                record.mastered = old.mastered
                mastered_questions = {q.id for q in old.wrong_questions if q.mastered}
                for question in record.wrong_questions:
                    question.mastered = question.id in mastered_questions
            records.append(record)
        self._error_records = records

        logger.info(
            f"Store scan complete: {len(self._outcomes)} outcomes (+{added}), "
            f"{len(self._error_records)} error records"
        )

    def invalidate(self) -> None:
        """Drop the in-memory view; the next refresh rebuilds it from disk."""
        self._outcomes = []
        self._error_records = []
        self.state = StoreState.UNINITIALIZED

    def refresh(self) -> None:
        """Rescan the trees."""
        self.scan()

    def drop_error_records(self, record_ids: set[str]) -> int:
        """Remove records from the in-memory view until the next scan; files are untouched."""
        kept = [r for r in self._error_records if r.id not in record_ids]
        dropped = len(self._error_records) - len(kept)
        self._error_records = kept
        return dropped

    def ensure_ready(self) -> None:
        """Scan once if the store has not been loaded yet."""
        if self.state == StoreState.UNINITIALIZED:
            self.scan()

    # =========================================================================
    # Saving
    # =========================================================================

    def save(self, outcome: ExamOutcome) -> str:
        """
        Append an outcome line to its session file.

        Returns:
            Path written, relative to the backend root
        """
        path = session_path(self.results_root, outcome.subject, outcome.date, outcome.time)
        self.backend.append_text(path, outcome_to_line(outcome) + "\n")
        logger.info(f"Saved exam outcome to {path}")
        return path

    def save_errors(self, record: ErrorRecord, date: str | None = None, time: str | None = None) -> str | None:
        """
        Append one line per wrong question to the session's error file.

        Args:
            record: Error record to persist
            date: Session date (YYYY-MM-DD); defaults to the record's date
            time: Session time (HH:MM:SS); defaults to the record's time

        Returns:
            Path written, or None when the record has no wrong questions
        """
        if not record.wrong_questions:
            return None
        recorded_at = record.recorded_at
        date = date or recorded_at.strftime("%Y-%m-%d")
        time = time or recorded_at.strftime("%H:%M:%S")
        path = session_path(self.errors_root, record.subject, date, time)
        content = "".join(wrong_question_to_line(q) + "\n" for q in record.wrong_questions)
        self.backend.append_text(path, content)
        logger.info(f"Saved {len(record.wrong_questions)} wrong questions to {path}")
        return path

    def record_exam(self, outcome: ExamOutcome, error_record: ErrorRecord | None = None) -> None:
        """Persist an exam's outcome and wrong answers, then rescan."""
        self.save(outcome)
        if error_record is not None:
            self.save_errors(error_record, outcome.date, outcome.time)
        self.refresh()

    # =========================================================================
    # Queries
    # =========================================================================

    def outcomes(self) -> list[ExamOutcome]:
        """All outcomes, newest first."""
        return sorted(self._outcomes, key=lambda o: o.timestamp, reverse=True)

    def outcomes_by_subject(self, subject: str) -> list[ExamOutcome]:
        return [o for o in self._outcomes if o.subject == subject]

    def outcomes_by_topic(self, subject: str, topic: str) -> list[ExamOutcome]:
        return [o for o in self._outcomes if o.subject == subject and o.topic == topic]

    def error_records(self) -> list[ErrorRecord]:
        """All error records, newest first."""
        return sorted(self._error_records, key=lambda r: r.date, reverse=True)

    def errors_by_subject(self, subject: str) -> list[ErrorRecord]:
        return [r for r in self._error_records if r.subject == subject]

    def get_error_record(self, record_id: str) -> ErrorRecord | None:
        for record in self._error_records:
            if record.id == record_id:
                return record
        return None
