import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from exceptions import NotFoundError, ValidationError
from models import Book, Sentence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Removed:
    """Entries taken out of the store, each with the index it had."""
    books: Tuple[Tuple[int, Book], ...] = ()
    sentences: Tuple[Tuple[int, Sentence], ...] = ()


class EntityStore:
    """
    In-memory books and sentences for the current session.

    Insertion order is preserved and is the base order for every view.
    Cascading book deletion lives here and nowhere else.
    """

    def __init__(self, books: Iterable[Book] = (), sentences: Iterable[Sentence] = ()):
        self._books: List[Book] = []
        self._sentences: List[Sentence] = []
        self.replace_all(books, sentences)

    @property
    def books(self) -> Tuple[Book, ...]:
        return tuple(self._books)

    @property
    def sentences(self) -> Tuple[Sentence, ...]:
        return tuple(self._sentences)

    def __len__(self):
        return len(self._books) + len(self._sentences)

    def replace_all(self, books: Iterable[Book], sentences: Iterable[Sentence]) -> None:
        """
        Reset the store to a freshly fetched collection.

        Repeated ids and sentences of unknown books are dropped with a
        warning. The current contents are only replaced once the new ones
        are complete.
        """
        new_books: List[Book] = []
        book_ids = set()
        for book in books:
            if book.id in book_ids:
                logger.warning(f"Dropped book with repeated id: {book.id}")
                continue
            book_ids.add(book.id)
            new_books.append(book)

        new_sentences: List[Sentence] = []
        sentence_ids = set()
        orphans = 0
        for sentence in sentences:
            if sentence.book_id not in book_ids:
                orphans += 1
                continue
            if sentence.id in sentence_ids:
                logger.warning(f"Dropped sentence with repeated id: {sentence.id}")
                continue
            sentence_ids.add(sentence.id)
            new_sentences.append(sentence)
        if orphans:
            logger.warning(f"Dropped {orphans} sentence(s) referencing missing books")

        self._books = new_books
        self._sentences = new_sentences

    def get_book(self, book_id: str) -> Optional[Book]:
        return next((book for book in self._books if book.id == book_id), None)

    def get_sentence(self, sentence_id: str) -> Optional[Sentence]:
        return next((s for s in self._sentences if s.id == sentence_id), None)

    def sentences_for(self, book_id: str) -> List[Sentence]:
        return [s for s in self._sentences if s.book_id == book_id]

    def add_book(self, book: Book) -> None:
        if self.get_book(book.id) is not None:
            raise ValidationError(f"Duplicate book id: {book.id}")
        self._books.append(book)

    def add_sentence(self, sentence: Sentence) -> None:
        if self.get_sentence(sentence.id) is not None:
            raise ValidationError(f"Duplicate sentence id: {sentence.id}")
        if self.get_book(sentence.book_id) is None:
            raise NotFoundError(f"Book not found: {sentence.book_id}")
        self._sentences.append(sentence)

    def detach_book(self, book_id: str) -> Removed:
        """Remove a book and every sentence that references it."""
        position = next((i for i, b in enumerate(self._books) if b.id == book_id), None)
        if position is None:
            raise NotFoundError(f"Book not found: {book_id}")
        removed = Removed(
            books=((position, self._books[position]),),
            sentences=tuple((i, s) for i, s in enumerate(self._sentences) if s.book_id == book_id),
        )
        del self._books[position]
        self._sentences = [s for s in self._sentences if s.book_id != book_id]
        return removed

    def detach_sentence(self, sentence_id: str) -> Removed:
        position = next((i for i, s in enumerate(self._sentences) if s.id == sentence_id), None)
        if position is None:
            raise NotFoundError(f"Sentence not found: {sentence_id}")
        removed = Removed(sentences=((position, self._sentences[position]),))
        del self._sentences[position]
        return removed

    def reattach(self, removed: Removed) -> None:
        """
        Put detached entries back near their old positions.

        Anything added meanwhile stays. Entries whose id came back in the
        meantime, and sentences whose book is gone, are not reinserted.
        """
        for position, book in sorted(removed.books, key=lambda entry: entry[0]):
            if self.get_book(book.id) is None:
                self._books.insert(min(position, len(self._books)), book)
        for position, sentence in sorted(removed.sentences, key=lambda entry: entry[0]):
            if self.get_sentence(sentence.id) is None and self.get_book(sentence.book_id) is not None:
                self._sentences.insert(min(position, len(self._sentences)), sentence)

    def remove_book(self, book_id: str) -> Tuple[Book, List[Sentence]]:
        removed = self.detach_book(book_id)
        return removed.books[0][1], [sentence for _, sentence in removed.sentences]

    def remove_sentence(self, sentence_id: str) -> Sentence:
        return self.detach_sentence(sentence_id).sentences[0][1]

    def discard(self, book_ids: Iterable[str] = (), sentence_ids: Iterable[str] = ()) -> None:
        """Drop the given ids if present. Sentences of discarded books go too."""
        book_ids = set(book_ids)
        sentence_ids = set(sentence_ids)
        self._books = [b for b in self._books if b.id not in book_ids]
        self._sentences = [
            s for s in self._sentences
            if s.id not in sentence_ids and s.book_id not in book_ids
        ]
