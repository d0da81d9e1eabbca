import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from models import OLDEST, Book, Sentence, parse_timestamp
from workbook import BOOK_COLUMNS, SENTENCE_COLUMNS

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


@dataclass
class ExportRows:
    books: List[Dict[str, Any]]
    sentences: List[Dict[str, Any]]


def format_date_added(created_at: str) -> str:
    """Render a stored timestamp as a locale date."""
    parsed = parse_timestamp(created_at)
    if parsed == OLDEST:
        return ""
    return parsed.astimezone().strftime("%x")


def export_rows(books: Sequence[Book], sentences: Sequence[Sentence]) -> Optional[ExportRows]:
    """
    Flatten books and sentences into spreadsheet rows.

    Returns None when there are no books, meaning there is nothing to export.
    """
    if not books:
        logger.warning("There is no data to export.")
        return None

    by_id = {book.id: book for book in books}

    book_rows = [
        {
            BOOK_COLUMNS["title"]: book.title,
            BOOK_COLUMNS["author"]: book.author,
            BOOK_COLUMNS["publisher"]: book.publisher or "",
            BOOK_COLUMNS["isbn"]: book.isbn or "",
            BOOK_COLUMNS["date_added"]: format_date_added(book.created_at),
        }
        for book in books
    ]

    sentence_rows = []
    for sentence in sentences:
        book = by_id.get(sentence.book_id)
        sentence_rows.append({
            SENTENCE_COLUMNS["book_title"]: book.title if book else UNKNOWN,
            SENTENCE_COLUMNS["author"]: book.author if book else UNKNOWN,
            SENTENCE_COLUMNS["text"]: sentence.text,
            SENTENCE_COLUMNS["page"]: sentence.page if sentence.page is not None else "",
            SENTENCE_COLUMNS["date_added"]: format_date_added(sentence.created_at),
        })

    return ExportRows(books=book_rows, sentences=sentence_rows)
