import logging
import zipfile
from typing import Any, BinaryIO, Dict, List, Sequence, Tuple, Union

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from exceptions import FormatError

logger = logging.getLogger(__name__)

BOOKS_SHEET = "Books"
SENTENCES_SHEET = "Sentences"

BOOK_COLUMNS = {
    "title": "Title",
    "author": "Author",
    "publisher": "Publisher",
    "isbn": "ISBN",
    "date_added": "Date Added",
}

SENTENCE_COLUMNS = {
    "book_title": "Book Title",
    "author": "Author",
    "text": "Sentence",
    "page": "Page",
    "date_added": "Date Added",
}

Rows = List[Dict[str, Any]]
Source = Union[str, BinaryIO]


def _sheet_rows(frame: pd.DataFrame) -> Rows:
    frame.columns = [str(column).strip() for column in frame.columns]
    return frame.to_dict(orient="records")


def read_workbook(source: Source) -> Tuple[Rows, Rows]:
    """
    Read the Books and Sentences sheets of an import workbook.

    Args:
        source: Path or binary file object of an .xlsx workbook

    Returns:
        Tuple[Rows, Rows]: Book rows and sentence rows keyed by column header

    Raises:
        FormatError: If the file can't be read or a sheet is missing
    """
    try:
        sheets = pd.read_excel(source, sheet_name=None, dtype=object, engine="openpyxl")
    except (ValueError, OSError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
        logger.error(f"Failed to read workbook: {e}")
        raise FormatError(f"Failed to read the file: {e}") from e

    for name in (BOOKS_SHEET, SENTENCES_SHEET):
        if name not in sheets:
            raise FormatError(f"'{name}' sheet not found in the Excel file.")

    book_rows = _sheet_rows(sheets[BOOKS_SHEET])
    sentence_rows = _sheet_rows(sheets[SENTENCES_SHEET])
    logger.info(f"Read {len(book_rows)} book rows and {len(sentence_rows)} sentence rows")
    return book_rows, sentence_rows


def write_workbook(target: Source, book_rows: Sequence[Dict[str, Any]],
                   sentence_rows: Sequence[Dict[str, Any]]) -> None:
    """Write book and sentence rows to a two-sheet .xlsx workbook."""
    books = pd.DataFrame(list(book_rows), columns=list(BOOK_COLUMNS.values()))
    sentences = pd.DataFrame(list(sentence_rows), columns=list(SENTENCE_COLUMNS.values()))
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        books.to_excel(writer, sheet_name=BOOKS_SHEET, index=False)
        sentences.to_excel(writer, sheet_name=SENTENCES_SHEET, index=False)
    logger.info(f"Wrote {len(books)} book rows and {len(sentences)} sentence rows")
