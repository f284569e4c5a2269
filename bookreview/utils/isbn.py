"""ISBN-10 / ISBN-13 normalisation and checksum validation."""

import re

_SEPARATORS = re.compile(r"[-\s]")


def normalize_isbn(isbn: str) -> str:
    """Strip hyphens and whitespace, upper-case a trailing ISBN-10 'x'."""
    return _SEPARATORS.sub("", isbn).upper()


def _is_valid_isbn10(isbn: str) -> bool:
    if not isbn[:9].isdigit():
        return False

    total = sum(int(digit) * (10 - i) for i, digit in enumerate(isbn[:9]))
    check = (11 - (total % 11)) % 11
    expected = "X" if check == 10 else str(check)
    return isbn[9] == expected


def _is_valid_isbn13(isbn: str) -> bool:
    if not isbn.isdigit():
        return False

    total = sum(int(digit) * (1 if i % 2 == 0 else 3) for i, digit in enumerate(isbn[:12]))
    check = (10 - (total % 10)) % 10
    return int(isbn[12]) == check


def is_valid_isbn(isbn: str) -> bool:
    """True when `isbn` is a well-formed ISBN-10 or ISBN-13."""
    clean = normalize_isbn(isbn)
    if len(clean) == 10:
        return _is_valid_isbn10(clean)
    if len(clean) == 13:
        return _is_valid_isbn13(clean)
    return False
