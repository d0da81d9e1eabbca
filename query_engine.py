import locale
import logging
import unicodedata
from typing import Iterable, List, Optional, Sequence, Union

from models import Book, BookSortKey, SearchType, Sentence, SentenceSortKey, parse_timestamp

logger = logging.getLogger(__name__)

BOOK_FIELDS = {
    SearchType.TITLE: lambda book: book.title,
    SearchType.AUTHOR: lambda book: book.author,
    SearchType.PUBLISHER: lambda book: book.publisher,
    SearchType.ISBN: lambda book: book.isbn,
}


def use_system_collation() -> None:
    """Collate titles and authors by the user's locale instead of the C default."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning(f"Falling back to default collation: {e}")


def _base_letters(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _collate(value: str):
    """Sort key: accent-free letters first, then the active LC_COLLATE order."""
    return (_base_letters(value), locale.strxfrm(value.casefold()))


def _newest_first(created_at: str) -> float:
    return -parse_timestamp(created_at).timestamp()


def _normalize_query(query: Optional[str]) -> Optional[str]:
    if not query or not query.strip():
        return None
    return query.lower()


def search_sentences(sentences: Iterable[Sentence], query: Optional[str]) -> List[Sentence]:
    """Sentences whose text contains the query, ignoring case. Blank queries match nothing."""
    term = _normalize_query(query)
    if term is None:
        return []
    return [s for s in sentences if term in s.text.lower()]


def search_books(books: Iterable[Book], query: Optional[str],
                 search_type: Union[SearchType, str]) -> List[Book]:
    search_type = SearchType(search_type)
    term = _normalize_query(query)
    if term is None or search_type is SearchType.SENTENCE:
        return []
    field = BOOK_FIELDS[search_type]
    return [book for book in books if term in (field(book) or "").lower()]


def search(books: Sequence[Book], sentences: Sequence[Sentence], query: Optional[str],
           search_type: Union[SearchType, str] = SearchType.SENTENCE):
    """Dispatch to sentence or book search depending on the selected mode."""
    search_type = SearchType(search_type)
    if search_type is SearchType.SENTENCE:
        return search_sentences(sentences, query)
    return search_books(books, query, search_type)


def sort_books(books: Iterable[Book], key: Union[BookSortKey, str] = BookSortKey.CREATED_AT) -> List[Book]:
    """Return a sorted copy; ties keep insertion order."""
    key = BookSortKey(key)
    if key is BookSortKey.TITLE:
        return sorted(books, key=lambda book: _collate(book.title))
    if key is BookSortKey.AUTHOR:
        return sorted(books, key=lambda book: _collate(book.author))
    return sorted(books, key=lambda book: _newest_first(book.created_at))


def sort_sentences(sentences: Iterable[Sentence],
                   key: Union[SentenceSortKey, str] = SentenceSortKey.PAGE) -> List[Sentence]:
    """
    Return a sorted copy of the sentences.

    By page: ascending, sentences without a page last, ties newest first.
    By creation time: newest first.
    """
    key = SentenceSortKey(key)
    if key is SentenceSortKey.PAGE:
        return sorted(
            sentences,
            key=lambda s: (s.page is None, s.page or 0, _newest_first(s.created_at)),
        )
    return sorted(sentences, key=lambda s: _newest_first(s.created_at))


def sentences_for_book(sentences: Iterable[Sentence], book_id: str,
                       key: Union[SentenceSortKey, str] = SentenceSortKey.PAGE) -> List[Sentence]:
    return sort_sentences((s for s in sentences if s.book_id == book_id), key)
