"""
Delimited-record codec.

Every flat file in quizlog (question banks, outcome logs, error logs) stores
one record per line, with fields joined by a section sign. The separator is
not escaped: a field containing it will split into extra fields on decode.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

FIELD_SEPARATOR = "§"
BOM = "\ufeff"


def encode(fields: Sequence[str]) -> str:
    """Join fields into a single record line."""
    values = [str(f) for f in fields]
    for value in values:
        if FIELD_SEPARATOR in value or "\n" in value or "\r" in value:
            logger.warning(f"Field will not round-trip (contains separator or line break): {value!r}")
    return FIELD_SEPARATOR.join(values)


def decode(line: str) -> list[str]:
    """Split a record line into fields. Arity is validated by the caller."""
    return line.split(FIELD_SEPARATOR)


def split_records(text: str) -> list[str]:
    """Return the non-blank lines of a file's text, trailing CR and any leading BOM removed."""
    return [line.rstrip("\r") for line in text.removeprefix(BOM).split("\n") if line.strip()]
