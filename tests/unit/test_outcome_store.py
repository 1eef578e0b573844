"""
Unit tests for OutcomeStore scanning, deduplication and saving.

Run: pytest tests/unit/test_outcome_store.py -v
"""
from datetime import datetime

import pytest

from quizlog.errors import ListingUnavailableError, UnsafePathError
from quizlog.records import (
    UNANSWERED,
    ErrorRecord,
    ExamOutcome,
    LocalFileBackend,
    OutcomeStore,
    StoreState,
    WrongQuestion,
)


class OfflineBackend(LocalFileBackend):
    """Local backend whose listing collaborator is unreachable."""

    def list_files(self, root, suffix=".txt"):
        raise ListingUnavailableError("listing endpoint offline")


class BrokenListingBackend(LocalFileBackend):
    """Local backend whose listing fails with an unexpected storage error."""

    def list_files(self, root, suffix=".txt"):
        raise UnsafePathError(f"Path escapes storage root: {root}")


def make_outcome(**overrides):
    fields = dict(
        id="session",
        date="2024-03-01",
        time="09:30:00",
        subject="Math",
        topic="Algebra",
        correct_count=7,
        wrong_count=3,
        score=70,
    )
    fields.update(overrides)
    return ExamOutcome(**fields)


def make_error_record(**overrides):
    fields = dict(
        id="session",
        subject="Math",
        topic="Algebra",
        date="2024-03-01T09:30:00",
        wrong_questions=[
            WrongQuestion(
                id="session-0",
                question="2 + 2 = ?",
                options={"A": "3", "B": "4", "C": "5", "D": "6"},
                correct_answer="B",
                user_answer="C",
            ),
            WrongQuestion(
                id="session-1",
                question="3 * 3 = ?",
                options={"A": "6", "B": "8", "C": "9", "D": "12"},
                correct_answer="C",
            ),
        ],
    )
    fields.update(overrides)
    return ErrorRecord(**fields)


class TestStateMachine:
    def test_starts_uninitialized(self, store):
        assert store.state == StoreState.UNINITIALIZED
        assert store.outcomes() == []

    def test_scan_reaches_ready(self, store):
        store.scan()
        assert store.state == StoreState.READY

    def test_ensure_ready_scans_once(self, store, storage_root, write_files):
        store.ensure_ready()
        write_files(storage_root / "log", {"Math/2024-01-03_12-00-00.txt": "2024-01-03§12:00:00§Math§Algebra§5§5§50\n"})
        store.ensure_ready()
        assert len(store.outcomes()) == 2

    def test_invalidate_drops_view(self, store):
        store.scan()
        store.invalidate()
        assert store.state == StoreState.UNINITIALIZED
        assert store.outcomes() == []
        assert store.error_records() == []

    def test_refresh_after_invalidate_rebuilds(self, store):
        store.scan()
        store.invalidate()
        store.refresh()
        assert len(store.outcomes()) == 2


class TestOutcomeScanning:
    def test_loads_every_outcome(self, store):
        store.scan()
        outcomes = store.outcomes()
        assert [o.score for o in outcomes] == [90, 80]  # newest first

    def test_ids_are_deterministic(self, store):
        store.scan()
        ids = {o.id for o in store.outcomes()}
        assert ids == {
            "Math-2024-01-01_10-00-00.txt-0",
            "Math-2024-01-02_11-00-00.txt-0",
        }

    def test_rescan_adds_no_duplicates(self, store):
        store.scan()
        store.scan()
        store.refresh()
        assert len(store.outcomes()) == 2

    def test_rescan_picks_up_new_lines_only(self, store, storage_root):
        store.scan()
        path = storage_root / "log" / "Math" / "2024-01-01_10-00-00.txt"
        with open(path, "a", encoding="utf-8") as f:
            f.write("2024-01-01§10:30:00§Math§Algebra§10§0§100\n")
        store.refresh()

        outcomes = store.outcomes()
        assert len(outcomes) == 3
        assert "Math-2024-01-01_10-00-00.txt-1" in {o.id for o in outcomes}

    def test_malformed_lines_are_skipped(self, store, storage_root, write_files):
        write_files(
            storage_root / "log",
            {"Math/2024-01-05_08-00-00.txt": "garbage\n2024-01-05§08:00:00§Math§Algebra§6§4§60\nshort§line\n"},
        )
        store.scan()
        assert sorted(o.score for o in store.outcomes()) == [60, 80, 90]

    def test_empty_file_is_skipped(self, store, storage_root, write_files):
        write_files(storage_root / "log", {"Math/2024-01-06_08-00-00.txt": "\n\n"})
        store.scan()
        assert len(store.outcomes()) == 2

    def test_queries(self, store, storage_root, write_files):
        write_files(storage_root / "log", {"英语/2024-01-03_09-00-00.txt": "2024-01-03§09:00:00§英语§语音§3§7§30\n"})
        store.scan()

        assert len(store.outcomes_by_subject("Math")) == 2
        assert len(store.outcomes_by_subject("英语")) == 1
        assert len(store.outcomes_by_topic("英语", "语音")) == 1
        assert store.outcomes_by_topic("英语", "词汇") == []

    def test_missing_results_root(self, tmp_path):
        store = OutcomeStore(LocalFileBackend(tmp_path))
        store.scan()
        assert store.state == StoreState.READY
        assert store.outcomes() == []
        assert store.error_records() == []


    def test_byte_order_mark_is_ignored(self, store, storage_root, write_files):
        write_files(
            storage_root / "log",
            {"Art/2024-01-05_08-00-00.txt": "\ufeff2024-01-05§08:00:00§Art§Color§6§4§60\n"},
        )
        store.scan()

        outcome = next(o for o in store.outcomes() if o.subject == "Art")
        assert outcome.date == "2024-01-05"
        assert outcome.timestamp == int(datetime(2024, 1, 5, 8, 0, 0).timestamp() * 1000)


class TestErrorScanning:
    def test_loads_error_record(self, store):
        store.scan()
        records = store.error_records()
        assert len(records) == 1

        record = records[0]
        assert record.id == "Math-2024-01-01_10-00-00.txt"
        assert record.subject == "Math"
        assert record.date == "2024-01-01T10:00:00"
        assert record.error_count == 2
        assert [q.id for q in record.wrong_questions] == [
            "Math-2024-01-01_10-00-00.txt-0",
            "Math-2024-01-01_10-00-00.txt-1",
        ]
        assert record.wrong_questions[0].user_answer == "A"
        assert record.wrong_questions[1].user_answer == UNANSWERED

    def test_topic_comes_from_companion_outcome(self, store):
        store.scan()
        assert store.error_records()[0].topic == "Algebra"

    def test_topic_inferred_without_companion(self, store, storage_root, write_files):
        write_files(
            storage_root / "error",
            {"英语/2024-02-01_09-00-00.txt": "选出画线部分发音不同的一项§A.b<u>ea</u>d§B.m<u>ea</u>t§C.s<u>ea</u>t§D.h<u>ea</u>d§D§你的答案:B\n"},
        )
        store.scan()
        record = store.get_error_record("英语-2024-02-01_09-00-00.txt")
        assert record.topic == "语音练习"

    def test_file_without_valid_lines_yields_no_record(self, store, storage_root, write_files):
        write_files(storage_root / "error", {"Math/2024-02-02_09-00-00.txt": "not§enough\nq§A.1§B.2§C.3§D.4§Z\n"})
        store.scan()
        assert store.get_error_record("Math-2024-02-02_09-00-00.txt") is None
        assert len(store.error_records()) == 1

    def test_error_records_rebuilt_from_disk(self, store, storage_root):
        store.scan()
        (storage_root / "error" / "Math" / "2024-01-01_10-00-00.txt").unlink()
        store.refresh()
        assert store.error_records() == []

    def test_mastery_survives_rescan(self, store):
        store.scan()
        record = store.error_records()[0]
        record.mastered = True
        record.wrong_questions[1].mastered = True

        store.refresh()
        rescanned = store.get_error_record(record.id)
        assert rescanned is not record
        assert rescanned.mastered is True
        assert [q.mastered for q in rescanned.wrong_questions] == [False, True]

    def test_errors_by_subject(self, store):
        store.scan()
        assert len(store.errors_by_subject("Math")) == 1
        assert store.errors_by_subject("英语") == []


class TestFallbackListing:
    def test_fallback_files_used_when_listing_unavailable(self, storage_root):
        store = OutcomeStore(
            OfflineBackend(storage_root),
            fallback_files=["Math/2024-01-01_10-00-00.txt", "Math/does-not-exist.txt"],
        )
        store.scan()

        assert store.state == StoreState.READY
        assert [o.id for o in store.outcomes()] == ["Math-2024-01-01_10-00-00.txt-0"]
        assert [r.id for r in store.error_records()] == ["Math-2024-01-01_10-00-00.txt"]

    def test_fallback_listing_is_sorted(self, storage_root):
        store = OutcomeStore(OfflineBackend(storage_root), fallback_files=["b.txt", "a.txt"])
        assert store.list_outcome_files() == ["a.txt", "b.txt"]

    def test_listing_is_sorted_and_relative(self, store, storage_root, write_files):
        write_files(storage_root / "log", {"Art/2023-12-31_09-00-00.txt": "x"})
        assert store.list_outcome_files() == [
            "Art/2023-12-31_09-00-00.txt",
            "Math/2024-01-01_10-00-00.txt",
            "Math/2024-01-02_11-00-00.txt",
        ]


    def test_unexpected_listing_error_falls_back(self, storage_root):
        store = OutcomeStore(BrokenListingBackend(storage_root), fallback_files=["Math/2024-01-02_11-00-00.txt"])
        store.scan()

        assert store.state == StoreState.READY
        assert [o.score for o in store.outcomes()] == [90]

    def test_results_root_outside_storage_root(self, storage_root):
        store = OutcomeStore(LocalFileBackend(storage_root), results_root="../elsewhere")
        store.scan()

        assert store.state == StoreState.READY
        assert store.outcomes() == []
        assert len(store.error_records()) == 1


class TestSaving:
    def test_save_appends_outcome_line(self, store, storage_root):
        path = store.save(make_outcome())

        assert path == "log/Math/2024-03-01_09-30-00.txt"
        content = (storage_root / path).read_text(encoding="utf-8")
        assert content == "2024-03-01§09:30:00§Math§Algebra§7§3§70\n"

    def test_save_errors_uses_session_stem(self, store, storage_root):
        path = store.save_errors(make_error_record(), "2024-03-01", "09:30:00")

        assert path == "error/Math/2024-03-01_09-30-00.txt"
        lines = (storage_root / path).read_text(encoding="utf-8").splitlines()
        assert lines == [
            "2 + 2 = ?§A.3§B.4§C.5§D.6§B§你的答案:C",
            f"3 * 3 = ?§A.6§B.8§C.9§D.12§C§你的答案:{UNANSWERED}",
        ]

    def test_save_errors_defaults_to_record_date(self, store):
        assert store.save_errors(make_error_record()) == "error/Math/2024-03-01_09-30-00.txt"

    def test_save_errors_without_wrong_questions(self, store, storage_root):
        assert store.save_errors(make_error_record(wrong_questions=[])) is None
        assert not (storage_root / "error" / "Math" / "2024-03-01_09-30-00.txt").exists()

    def test_record_exam_counts_once(self, store):
        store.scan()
        store.record_exam(make_outcome(), make_error_record())
        store.refresh()

        assert len(store.outcomes()) == 3
        assert len(store.error_records()) == 2

    def test_saved_errors_load_back(self, store):
        store.record_exam(make_outcome(), make_error_record())

        record = store.get_error_record("Math-2024-03-01_09-30-00.txt")
        assert record.topic == "Algebra"
        assert [q.options for q in record.wrong_questions] == [
            {"A": "3", "B": "4", "C": "5", "D": "6"},
            {"A": "6", "B": "8", "C": "9", "D": "12"},
        ]
        assert [q.correct_answer for q in record.wrong_questions] == ["B", "C"]
        assert [q.user_answer for q in record.wrong_questions] == ["C", UNANSWERED]

    def test_appending_to_same_session_keeps_both_lines(self, store, storage_root):
        store.save(make_outcome())
        store.save(make_outcome(score=75))
        store.scan()
        assert len(store.outcomes_by_topic("Math", "Algebra")) == 4
