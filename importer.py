import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from entity_store import EntityStore
from exceptions import SyncError
from models import Book, Sentence, clean_cell, natural_book_key, natural_sentence_key, parse_page
from settings import get_settings
from sheet_client import SheetClient
from workbook import BOOK_COLUMNS, SENTENCE_COLUMNS

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


@dataclass
class ImportPlan:
    """New records a batch would add, in input order."""
    books: List[Book] = field(default_factory=list)
    sentences: List[Sentence] = field(default_factory=list)
    skipped_books: int = 0
    skipped_sentences: int = 0

    @property
    def empty(self) -> bool:
        return not self.books and not self.sentences


@dataclass
class ImportResult:
    books_added: int = 0
    sentences_added: int = 0
    skipped_books: int = 0
    skipped_sentences: int = 0

    @property
    def nothing_to_import(self) -> bool:
        return self.books_added == 0 and self.sentences_added == 0

    @property
    def message(self) -> str:
        if self.nothing_to_import:
            return "No new data to import. The books and sentences in the file may already exist."
        return (f"Successfully imported {self.books_added} new book(s) "
                f"and {self.sentences_added} new sentence(s).")


class ReconcilingImporter:
    """
    Merge spreadsheet rows into the store and replay the writes remotely.

    Rows are deduplicated by natural key against the store and against
    earlier rows of the same batch. New records are committed to the store
    before the remote writes; if any write fails the whole batch is taken
    back out of the store.
    """

    def __init__(self, store: EntityStore, client: SheetClient, workers: Optional[int] = None):
        self.store = store
        self.client = client
        self.workers = workers or get_settings().IMPORT_WORKERS

    def plan(self, book_rows: Iterable[Row], sentence_rows: Iterable[Row]) -> ImportPlan:
        plan = ImportPlan()

        book_ids: Dict[tuple, str] = {book.natural_key: book.id for book in self.store.books}
        for row in book_rows:
            title = clean_cell(row.get(BOOK_COLUMNS["title"]))
            author = clean_cell(row.get(BOOK_COLUMNS["author"]))
            if not title or not author:
                plan.skipped_books += 1
                continue

            key = natural_book_key(title, author)
            if key in book_ids:
                plan.skipped_books += 1
                continue

            book = Book.create(
                title,
                author,
                publisher=row.get(BOOK_COLUMNS["publisher"]),
                isbn=row.get(BOOK_COLUMNS["isbn"]),
            )
            book_ids[key] = book.id
            plan.books.append(book)

        seen = {sentence.natural_key for sentence in self.store.sentences}
        for row in sentence_rows:
            title = clean_cell(row.get(SENTENCE_COLUMNS["book_title"]))
            author = clean_cell(row.get(SENTENCE_COLUMNS["author"]))
            text = clean_cell(row.get(SENTENCE_COLUMNS["text"]))
            if not title or not author or not text:
                plan.skipped_sentences += 1
                continue

            book_id = book_ids.get(natural_book_key(title, author))
            if book_id is None:
                logger.debug(f"Skipping sentence for unknown book: {title} / {author}")
                plan.skipped_sentences += 1
                continue

            key = natural_sentence_key(book_id, text)
            if key in seen:
                plan.skipped_sentences += 1
                continue

            sentence = Sentence.create(book_id, text, page=parse_page(row.get(SENTENCE_COLUMNS["page"])))
            seen.add(key)
            plan.sentences.append(sentence)

        return plan

    def run(self, book_rows: Iterable[Row], sentence_rows: Iterable[Row]) -> ImportResult:
        """
        Import a batch of rows.

        Returns:
            ImportResult: Counts of records actually imported

        Raises:
            SyncError: If any remote write failed; the store is unchanged
        """
        plan = self.plan(book_rows, sentence_rows)
        result = ImportResult(
            skipped_books=plan.skipped_books,
            skipped_sentences=plan.skipped_sentences,
        )
        if plan.empty:
            logger.info("Nothing to import")
            return result

        for book in plan.books:
            self.store.add_book(book)
        for sentence in plan.sentences:
            self.store.add_sentence(sentence)

        try:
            self._replay(plan)
        except SyncError:
            self.store.discard(
                book_ids=[book.id for book in plan.books],
                sentence_ids=[sentence.id for sentence in plan.sentences],
            )
            logger.warning(f"Rolled back import of {len(plan.books)} book(s) "
                           f"and {len(plan.sentences)} sentence(s)")
            raise

        result.books_added = len(plan.books)
        result.sentences_added = len(plan.sentences)
        logger.info(result.message)
        return result

    def _replay(self, plan: ImportPlan) -> None:
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self.client.create_book, book) for book in plan.books]
            futures += [executor.submit(self.client.create_sentence, s) for s in plan.sentences]
        # leaving the executor block waits for every write

        errors = [future.exception() for future in futures if future.exception() is not None]
        if errors:
            for error in errors:
                logger.error(f"Import write failed: {error}")
            raise SyncError(
                f"Error processing file: {len(errors)} of {len(futures)} write(s) failed ({errors[0]})",
                action="IMPORT",
            ) from errors[0]
