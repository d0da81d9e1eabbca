import logging
import threading
from typing import List, Optional, Union

import isbn_lookup
from cover_generator import CoverGenerator
from entity_store import EntityStore
from exceptions import ImportInProgressError, NotFoundError, SyncError
from exporter import ExportRows, export_rows
from importer import ImportResult, ReconcilingImporter, Row
from models import Book, BookSortKey, SearchType, Sentence, SentenceSortKey
from query_engine import search, sentences_for_book, sort_books
from sheet_client import SheetClient
from workbook import Source, read_workbook, write_workbook

logger = logging.getLogger(__name__)


class ReadingLog:
    """
    One reading-log session: the in-memory store kept in step with the sheet.

    Single adds go to the sheet first and reach the store only on success.
    Deletes leave the store first and are put back if the sheet refuses.
    Mutations are expected one at a time; only imports are guarded.
    """

    def __init__(self, client: Optional[SheetClient] = None, store: Optional[EntityStore] = None,
                 workers: Optional[int] = None):
        self.client = client or SheetClient()
        self.store = store or EntityStore()
        self.importer = ReconcilingImporter(self.store, self.client, workers=workers)
        self._import_lock = threading.Lock()
        self._cover_generator: Optional[CoverGenerator] = None

    def load(self) -> None:
        books, sentences = self.client.fetch_all()
        self.store.replace_all(books, sentences)
        logger.info(f"Loaded {len(self.store.books)} books and {len(self.store.sentences)} sentences")

    def add_book(self, title: str, author: str, publisher: str = "", isbn: str = "",
                 cover_image: Optional[str] = None) -> Book:
        book = Book.create(title, author, publisher=publisher, isbn=isbn, cover_image=cover_image)
        try:
            self.client.create_book(book)
        except SyncError:
            logger.error(f"Could not save the new book to the sheet: {book.title}")
            raise
        self.store.add_book(book)
        return book

    def add_sentence(self, book_id: str, text: str, page: Optional[int] = None) -> Sentence:
        if self.store.get_book(book_id) is None:
            raise NotFoundError(f"Book not found: {book_id}")
        sentence = Sentence.create(book_id, text, page=page)
        try:
            self.client.create_sentence(sentence)
        except SyncError:
            logger.error(f"Could not save the new sentence to the sheet for book {book_id}")
            raise
        self.store.add_sentence(sentence)
        return sentence

    def delete_book(self, book_id: str) -> Book:
        removed = self.store.detach_book(book_id)
        book = removed.books[0][1]
        try:
            self.client.delete_book(book_id)
        except SyncError:
            self.store.reattach(removed)
            logger.error(f"Could not delete book {book_id} from the sheet; restored locally")
            raise
        logger.info(f"Deleted book {book.title!r} and {len(removed.sentences)} sentence(s)")
        return book

    def delete_sentence(self, sentence_id: str) -> Sentence:
        removed = self.store.detach_sentence(sentence_id)
        sentence = removed.sentences[0][1]
        try:
            self.client.delete_sentence(sentence_id)
        except SyncError:
            self.store.reattach(removed)
            logger.error(f"Could not delete sentence {sentence_id} from the sheet; restored locally")
            raise
        return sentence

    def books(self, sort: Union[BookSortKey, str] = BookSortKey.CREATED_AT) -> List[Book]:
        return sort_books(self.store.books, sort)

    def sentences(self, book_id: str, sort: Union[SentenceSortKey, str] = SentenceSortKey.PAGE) -> List[Sentence]:
        if self.store.get_book(book_id) is None:
            raise NotFoundError(f"Book not found: {book_id}")
        return sentences_for_book(self.store.sentences, book_id, sort)

    def search(self, query: str, search_type: Union[SearchType, str] = SearchType.SENTENCE):
        return search(self.store.books, self.store.sentences, query, search_type)

    def export_rows(self) -> Optional[ExportRows]:
        return export_rows(self.store.books, self.store.sentences)

    def export_workbook(self, target: Source) -> bool:
        """Write the log to a workbook. Returns False when there is nothing to export."""
        rows = self.export_rows()
        if rows is None:
            return False
        write_workbook(target, rows.books, rows.sentences)
        return True

    def import_rows(self, book_rows: List[Row], sentence_rows: List[Row]) -> ImportResult:
        if not self._import_lock.acquire(blocking=False):
            raise ImportInProgressError("An import is already in progress.")
        try:
            return self.importer.run(book_rows, sentence_rows)
        finally:
            self._import_lock.release()

    def import_workbook(self, source: Source) -> ImportResult:
        book_rows, sentence_rows = read_workbook(source)
        return self.import_rows(book_rows, sentence_rows)

    def lookup_isbn(self, isbn: str):
        return isbn_lookup.lookup_isbn(isbn)

    def generate_cover(self, title: str, author: str) -> Optional[str]:
        if self._cover_generator is None:
            self._cover_generator = CoverGenerator()
        return self._cover_generator.generate(title, author)
