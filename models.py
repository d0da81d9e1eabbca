import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from exceptions import ValidationError
from settings import get_settings

logger = logging.getLogger(__name__)

BookKey = Tuple[str, str]
SentenceKey = Tuple[str, str]


class SearchType(str, Enum):
    SENTENCE = "sentence"
    TITLE = "title"
    AUTHOR = "author"
    PUBLISHER = "publisher"
    ISBN = "isbn"


class BookSortKey(str, Enum):
    CREATED_AT = "createdAt"
    TITLE = "title"
    AUTHOR = "author"


class SentenceSortKey(str, Enum):
    PAGE = "page"
    CREATED_AT = "createdAt"


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    """Current time as an ISO-8601 string with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse a stored createdAt value; unparseable values sort as the oldest."""
    if not value:
        return OLDEST
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable timestamp: {value!r}")
        return OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def placeholder_cover() -> str:
    return get_settings().PLACEHOLDER_COVER_URL.format(seed=new_id())


def clean_cell(value: Any) -> Optional[str]:
    """
    Normalize a spreadsheet or sheet-API cell to a trimmed string.

    Empty strings, None and NaN become None. Integral floats lose their
    trailing ``.0`` so numeric ISBN cells keep their digits.
    """
    if value is None:
        return None
    if isinstance(value, float):
        if value != value:  # NaN
            return None
        if value.is_integer():
            return str(int(value))
    text = str(value).strip()
    return text or None


def parse_page(value: Any) -> Optional[int]:
    """Parse a page cell leniently: anything but a positive whole number is 'no page'."""
    text = clean_cell(value)
    if text is None:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if number != number or not number.is_integer() or number < 1:
        return None
    return int(number)


def natural_book_key(title: str, author: str) -> BookKey:
    return (title.strip().lower(), author.strip().lower())


def natural_sentence_key(book_id: str, text: str) -> SentenceKey:
    return (book_id, text.strip().lower())


class Book(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    author: str
    publisher: Optional[str] = None
    isbn: Optional[str] = None
    cover_image: str = Field(default_factory=placeholder_cover, alias="coverImage")
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")

    @field_validator("id", "title", "author", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return clean_cell(value) or ""

    @field_validator("publisher", "isbn", mode="before")
    @classmethod
    def _coerce_optional(cls, value):
        return clean_cell(value)

    @field_validator("cover_image", mode="before")
    @classmethod
    def _default_cover(cls, value):
        return clean_cell(value) or placeholder_cover()

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value):
        if isinstance(value, datetime):
            return value.isoformat()
        return clean_cell(value) or utc_now_iso()

    @classmethod
    def create(cls, title: str, author: str, publisher: Optional[str] = None,
               isbn: Optional[str] = None, cover_image: Optional[str] = None) -> "Book":
        """Build a new book with a fresh id and creation time."""
        title = (title or "").strip()
        author = (author or "").strip()
        if not title or not author:
            raise ValidationError("Book title and author are required.")
        return cls(
            id=new_id(),
            title=title,
            author=author,
            publisher=clean_cell(publisher),
            isbn=clean_cell(isbn),
            cover_image=cover_image or placeholder_cover(),
            created_at=utc_now_iso(),
        )

    @property
    def natural_key(self) -> BookKey:
        return natural_book_key(self.title, self.author)

    def to_record(self) -> dict:
        """Wire representation; absent optional fields are omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Sentence(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    book_id: str = Field(alias="bookId")
    text: str
    page: Optional[int] = None
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")

    @field_validator("id", "book_id", "text", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return clean_cell(value) or ""

    @field_validator("page", mode="before")
    @classmethod
    def _coerce_page(cls, value):
        return parse_page(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value):
        if isinstance(value, datetime):
            return value.isoformat()
        return clean_cell(value) or utc_now_iso()

    @classmethod
    def create(cls, book_id: str, text: str, page: Optional[int] = None) -> "Sentence":
        text = (text or "").strip()
        if not text:
            raise ValidationError("Sentence text is required.")
        if not book_id:
            raise ValidationError("A sentence must belong to a book.")
        if page is not None and (isinstance(page, bool) or not isinstance(page, int) or page < 1):
            raise ValidationError(f"Page must be a positive integer, got {page!r}.")
        return cls(id=new_id(), book_id=book_id, text=text, page=page, created_at=utc_now_iso())

    @property
    def natural_key(self) -> SentenceKey:
        return natural_sentence_key(self.book_id, self.text)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)
