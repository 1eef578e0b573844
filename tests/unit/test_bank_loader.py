"""
Unit tests for QuestionBankLoader.

Run: pytest tests/unit/test_bank_loader.py -v
"""
import random

import pytest

from quizlog.bank import QuestionBankLoader
from quizlog.errors import BankLoadError, EmptyBankError


@pytest.fixture
def loader(storage_root):
    loader = QuestionBankLoader(storage_root / "data")
    loader.scan()
    return loader


class TestDiscovery:
    def test_subjects_are_directories(self, loader):
        assert loader.subjects() == ["Math", "英语"]

    def test_topics_are_txt_files(self, loader):
        assert loader.topics("英语") == ["语音"]
        assert loader.topics("Math") == ["Algebra"]

    def test_unknown_subject_has_no_topics(self, loader):
        assert loader.topics("History") == []

    def test_question_counts(self, loader):
        assert len(loader.questions("英语", "语音")) == 4
        assert len(loader.questions("Math", "Algebra")) == 2

    def test_non_txt_files_ignored(self, storage_root):
        (storage_root / "data" / "Math" / "notes.md").write_text("# not a bank", encoding="utf-8")
        loader = QuestionBankLoader(storage_root / "data")
        loader.scan()
        assert loader.topics("Math") == ["Algebra"]

    def test_bank_saved_with_byte_order_mark(self, storage_root):
        (storage_root / "data" / "Math" / "Geometry.txt").write_text(
            "Sides of a triangle?§2§3§4§5§B\n", encoding="utf-8-sig"
        )
        loader = QuestionBankLoader(storage_root / "data")
        loader.scan()
        assert loader.questions("Math", "Geometry")[0].text == "Sides of a triangle?"

    def test_missing_directory(self, tmp_path):
        loader = QuestionBankLoader(tmp_path / "nowhere")
        assert loader.scan() is False
        assert not loader.is_loaded()
        assert loader.subjects() == []

    def test_subject_info(self, loader):
        info = {s["name"]: s for s in loader.subject_info()}
        assert info["英语"]["topic_count"] == 1
        assert info["英语"]["total_questions"] == 4
        assert info["Math"]["topics"] == ["Algebra"]


class TestFailures:
    def test_empty_bank_is_a_load_failure(self, storage_root):
        (storage_root / "data" / "Math" / "Geometry.txt").write_text("", encoding="utf-8")
        loader = QuestionBankLoader(storage_root / "data")
        loader.scan()

        assert "Math/Geometry" in loader.failures
        assert loader.questions("Math", "Geometry") == []
        with pytest.raises(EmptyBankError):
            loader.random_questions("Math", "Geometry")

    def test_fully_rejected_bank_raises(self, storage_root):
        (storage_root / "data" / "Math" / "Broken.txt").write_text("bad\nworse§x\n", encoding="utf-8")
        loader = QuestionBankLoader(storage_root / "data")

        with pytest.raises(EmptyBankError):
            loader.load_questions("Math", "Broken")

    def test_missing_bank_raises_load_error(self, loader):
        with pytest.raises(BankLoadError) as exc_info:
            loader.load_questions("Math", "Calculus")
        assert exc_info.value.subject == "Math"
        assert not isinstance(exc_info.value, EmptyBankError)

    def test_rejected_lines_are_counted(self, storage_root):
        bank = storage_root / "data" / "Math" / "Algebra.txt"
        bank.write_text(bank.read_text(encoding="utf-8") + "\nbroken line\n", encoding="utf-8")
        loader = QuestionBankLoader(storage_root / "data")
        loader.scan()

        status = loader.loading_status()
        assert status["rejected_lines"] == 1
        assert status["questions_count"] == 6
        assert len(loader.questions("Math", "Algebra")) == 2


class TestRandomQuestions:
    def test_draws_requested_count(self, loader):
        drawn = loader.random_questions("英语", "语音", count=3, rng=random.Random(7))
        assert len(drawn) == 3
        assert len({q.text + q.options["A"] for q in drawn}) == 3

    def test_small_bank_returns_everything(self, loader):
        drawn = loader.random_questions("Math", "Algebra", count=10)
        assert sorted(q.text for q in drawn) == ["1 + 1 = ?", "2 * 3 = ?"]

    def test_loading_status(self, loader):
        status = loader.loading_status()
        assert status["initialized"] is True
        assert status["subjects_count"] == 2
        assert status["topics_count"] == 2
        assert status["questions_count"] == 6
        assert status["failed_banks"] == 0
        assert loader.is_loaded()

    def test_reload_picks_up_new_banks(self, loader, storage_root):
        (storage_root / "data" / "Math" / "Geometry.txt").write_text("Sides of a triangle?§2§3§4§5§B", encoding="utf-8")
        loader.reload()
        assert loader.topics("Math") == ["Algebra", "Geometry"]
