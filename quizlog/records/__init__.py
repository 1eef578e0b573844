"""
Records: exam outcomes, error records and their flat-file persistence.

Modules:
- codec: §-delimited line encoding
- models: ExamOutcome, WrongQuestion, ErrorRecord
- formats: Outcome and error line formats, file naming
- backends: Local and HTTP file backends
- store: OutcomeStore (rescan-as-truth view of the trees)
- grading: Exam grading
- mastery: Mastery sidecar and practice mode
"""

from .codec import FIELD_SEPARATOR, decode, encode, split_records
from .models import (
    DEFAULT_TOPIC,
    UNANSWERED,
    ErrorRecord,
    ExamOutcome,
    WrongQuestion,
    format_duration,
    new_record_id,
    round_half_up,
)
from .backends import FileBackend, HttpFileBackend, LocalFileBackend
from .store import OutcomeStore, StoreState
from .grading import grade_exam
from .mastery import MasteryTracker, PracticeItem

__all__ = [
    "FIELD_SEPARATOR",
    "encode",
    "decode",
    "split_records",
    "UNANSWERED",
    "DEFAULT_TOPIC",
    "ExamOutcome",
    "WrongQuestion",
    "ErrorRecord",
    "format_duration",
    "new_record_id",
    "round_half_up",
    "FileBackend",
    "LocalFileBackend",
    "HttpFileBackend",
    "OutcomeStore",
    "StoreState",
    "grade_exam",
    "MasteryTracker",
    "PracticeItem",
]
