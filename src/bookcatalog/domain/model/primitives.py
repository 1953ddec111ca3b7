"""Domain primitives: scalar aliases + ISBN normalisation."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from bookcatalog.domain.errors import ValidationError

type Site = str
type Isbn = str  # ISBN-13, digits only
type PropertyName = str
type Candidate = dict[PropertyName, str]

_ISBN_SEPARATORS = re.compile(r"[\s-]+")
_ISBN10 = re.compile(r"^\d{9}[\dX]$")
_ISBN13 = re.compile(r"^97[89]\d{10}$")


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _isbn13_check_digit(first_twelve: str) -> str:
    weights = (1, 3) * 6
    total = sum(int(digit) * weight for digit, weight in zip(first_twelve, weights, strict=True))
    return str((10 - total % 10) % 10)


def _isbn10_is_valid(value: str) -> bool:
    total = 0
    for index, char in enumerate(value):
        digit = 10 if char == "X" else int(char)
        total += (10 - index) * digit
    return total % 11 == 0


def normalize_isbn(value: str) -> Isbn:
    """Return the canonical ISBN-13 form of ``value``.

    Hyphens and whitespace are dropped and ISBN-10 values are converted.
    Raises ``ValidationError`` for anything that is not a valid ISBN.
    """

    compact = _ISBN_SEPARATORS.sub("", value).upper()
    if _ISBN13.match(compact):
        if _isbn13_check_digit(compact[:12]) != compact[12]:
            raise ValidationError(f"ISBN-13 checksum mismatch: {value!r}")
        return compact
    if _ISBN10.match(compact):
        if not _isbn10_is_valid(compact):
            raise ValidationError(f"ISBN-10 checksum mismatch: {value!r}")
        body = "978" + compact[:9]
        return body + _isbn13_check_digit(body)
    raise ValidationError(f"Not an ISBN: {value!r}")


def normalize_optional_isbn(value: str | None) -> Isbn | None:
    if value is None or not value.strip():
        return None
    return normalize_isbn(value)
