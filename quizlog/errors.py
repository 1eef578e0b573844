"""Exception types shared across the bank loader and the record store."""

from __future__ import annotations


class QuizlogError(Exception):
    """Base class for quizlog errors."""
    pass


class BankLoadError(QuizlogError):
    """Raised when a question bank file cannot be read."""

    def __init__(self, subject: str, topic: str, reason: str):
        self.subject = subject
        self.topic = topic
        self.reason = reason
        super().__init__(f"Failed to load bank {subject}/{topic}: {reason}")


class EmptyBankError(BankLoadError):
    """Raised when a bank is empty or every line in it was rejected."""

    def __init__(self, subject: str, topic: str):
        super().__init__(subject, topic, "bank is empty or has no valid questions")


class StorageError(QuizlogError):
    """Raised by a file backend when an operation cannot be completed."""
    pass


class ListingUnavailableError(StorageError):
    """Raised when the directory-listing collaborator cannot be reached."""
    pass


class UnsafePathError(StorageError):
    """Raised when a relative path would escape the storage root."""
    pass
