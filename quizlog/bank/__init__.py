"""
Bank: question bank parsing, loading and sampling.

Modules:
- models: Question and parse diagnostics
- parser: Line parser and underline markup
- loader: Directory discovery and bank loading
- sampler: Fisher-Yates shuffle and sampling
"""

from .loader import QuestionBankLoader
from .models import OPTION_KEYS, BankParseResult, Question, RejectedLine
from .parser import load_bank, parse_bank, parse_line, to_rich_markup, underline_markup
from .sampler import sample, shuffle

__all__ = [
    "OPTION_KEYS",
    "Question",
    "RejectedLine",
    "BankParseResult",
    "parse_line",
    "parse_bank",
    "load_bank",
    "underline_markup",
    "to_rich_markup",
    "QuestionBankLoader",
    "sample",
    "shuffle",
]
