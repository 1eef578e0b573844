"""
quizlog: offline quiz trainer with flat-file history.

Packages:
- bank: Question bank parsing, loading and sampling
- records: Outcome/error persistence, grading and mastery
- analytics: Statistics, trends and error-book filters
- api: HTTP persistence API
- cli: Typer command-line interface
"""

__version__ = "0.1.0"
