import pytest

from bookreview.utils.isbn import is_valid_isbn, normalize_isbn


@pytest.mark.parametrize(
    "isbn",
    [
        "9780743273565",
        "978-0-7432-7356-5",
        "0306406152",
        "0-306-40615-2",
        "080442957X",
        "080442957x",
    ],
)
def test_valid_isbns(isbn):
    assert is_valid_isbn(isbn)


@pytest.mark.parametrize(
    "isbn",
    [
        "9780743273566",  # wrong check digit
        "0306406153",
        "X306406152",
        "97807432735",  # wrong length
        "",
        "978074327356A",
    ],
)
def test_invalid_isbns(isbn):
    assert not is_valid_isbn(isbn)


def test_normalize_strips_separators_and_uppercases():
    assert normalize_isbn(" 0-8044-2957-x ") == "080442957X"
