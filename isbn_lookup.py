import logging
import re
from typing import Dict, Optional

import requests
from ratelimit import limits, sleep_and_retry
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from exceptions import BookAPIError, ValidationError
from settings import get_settings

# Set up logging
logger = logging.getLogger(__name__)

GOOGLE_BOOKS_URL = "https://www.googleapis.com/books/v1/volumes"
GOOGLE_BOOKS_CALLS = 100
PERIOD = 60  # 1 minute

ISBN_PATTERN = re.compile(r'^(97(8|9))?\d{9}(\d|X)$')


def normalize_isbn(isbn: str) -> str:
    """Strip hyphens and whitespace from a scanned or typed ISBN."""
    return re.sub(r'[-\s]', '', isbn or '')


def is_valid_isbn(isbn: str) -> bool:
    return bool(ISBN_PATTERN.match(normalize_isbn(isbn)))


@sleep_and_retry
@limits(calls=GOOGLE_BOOKS_CALLS, period=PERIOD)
@retry(
    stop=stop_after_attempt(get_settings().MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(requests.RequestException),
    reraise=True,
)
def _fetch_volumes(isbn: str) -> Dict:
    settings = get_settings()
    params = {"q": f"isbn:{isbn}"}
    if settings.GOOGLE_BOOKS_API_KEY:
        params["key"] = settings.GOOGLE_BOOKS_API_KEY
    response = requests.get(GOOGLE_BOOKS_URL, params=params, timeout=settings.REQUEST_TIMEOUT)
    response.raise_for_status()
    return response.json()


def lookup_isbn(isbn: str) -> Optional[Dict[str, Optional[str]]]:
    """
    Look up book details on Google Books by ISBN.

    Args:
        isbn (str): ISBN-10 or ISBN-13, hyphens and spaces allowed

    Returns:
        Optional[Dict]: title, author, publisher, isbn and coverImage of the
        first match, or None if no book was found

    Raises:
        ValidationError: If the ISBN is malformed
        BookAPIError: If the Google Books request fails
    """
    cleaned = normalize_isbn(isbn)
    if not ISBN_PATTERN.match(cleaned):
        raise ValidationError("Invalid ISBN format.")

    try:
        data = _fetch_volumes(cleaned)
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Error fetching book data for ISBN {cleaned}: {e}")
        raise BookAPIError(f"Failed to fetch book information for ISBN {cleaned}: {e}") from e

    items = data.get("items") or []
    if not data.get("totalItems") or not items:
        logger.warning(f"No book found for ISBN: {cleaned}")
        return None

    volume_info = items[0].get("volumeInfo", {})
    authors = volume_info.get("authors")
    image_links = volume_info.get("imageLinks") or {}

    logger.info(f"Found Google Books entry for ISBN: {cleaned}")
    return {
        "title": volume_info.get("title"),
        "author": ", ".join(authors) if authors else "Unknown Author",
        "publisher": volume_info.get("publisher"),
        "isbn": cleaned,
        "coverImage": image_links.get("thumbnail") or image_links.get("smallThumbnail"),
    }
