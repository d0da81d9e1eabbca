import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic import ValidationError as PydanticValidationError

from exceptions import SyncError
from models import Book, Sentence
from settings import get_settings

logger = logging.getLogger(__name__)

APPS_SCRIPT_URL_PREFIX = "https://script.google.com/macros/s/"
URL_PLACEHOLDER = "YOUR_GOOGLE_APPS_SCRIPT_WEB_APP_URL_HERE"

ADD_BOOK = "ADD_BOOK"
ADD_SENTENCE = "ADD_SENTENCE"
DELETE_BOOK = "DELETE_BOOK"
DELETE_SENTENCE = "DELETE_SENTENCE"


def is_configured(url: Optional[str]) -> bool:
    """Check that the endpoint looks like a deployed Apps Script web app."""
    if not url or not url.strip():
        return False
    if URL_PLACEHOLDER in url:
        return False
    return url.strip().startswith(APPS_SCRIPT_URL_PREFIX)


class SheetClient:
    """
    Client for the spreadsheet-backed Apps Script endpoint.

    Every logical write is one round trip. Failures are raised as SyncError
    immediately; there is no retry, caching or batching at this layer.

    Args:
        url (str): Web app URL. Defaults to READING_LOG_API_URL.
        timeout (int): Per-request transport timeout in seconds.
    """

    def __init__(self, url: Optional[str] = None, timeout: Optional[int] = None):
        settings = get_settings()
        self.url = (url or settings.READING_LOG_API_URL).strip()
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.session = requests.Session()

    @property
    def configured(self) -> bool:
        return is_configured(self.url)

    def fetch_all(self) -> Tuple[List[Book], List[Sentence]]:
        """
        Fetch every book and sentence from the remote sheet.

        Returns:
            Tuple[List[Book], List[Sentence]]: The full remote collections

        Raises:
            SyncError: On network failure, non-success status or bad payload
        """
        if not self.url:
            raise SyncError("Reading log endpoint is not configured.", action="FETCH")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Failed to fetch data: {e}")
            raise SyncError(f"Failed to fetch data from the sheet: {e}", action="FETCH") from e

        payload = self._decode(response, "FETCH")
        try:
            books = [Book.model_validate(row) for row in payload.get("books") or []]
            sentences = [Sentence.model_validate(row) for row in payload.get("sentences") or []]
        except PydanticValidationError as e:
            logger.error(f"Malformed records from sheet: {e}")
            raise SyncError(f"Malformed records from the sheet: {e}", action="FETCH") from e

        logger.info(f"Fetched {len(books)} books and {len(sentences)} sentences")
        return books, sentences

    def create_book(self, book: Book) -> Dict[str, Any]:
        return self._post(ADD_BOOK, book.to_record())

    def create_sentence(self, sentence: Sentence) -> Dict[str, Any]:
        return self._post(ADD_SENTENCE, sentence.to_record())

    def delete_book(self, book_id: str) -> Dict[str, Any]:
        """Delete a book; the remote script removes its sentences by bookId."""
        return self._post(DELETE_BOOK, {"bookId": book_id})

    def delete_sentence(self, sentence_id: str) -> Dict[str, Any]:
        return self._post(DELETE_SENTENCE, {"sentenceId": sentence_id})

    def _post(self, action: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not self.url:
            raise SyncError("Reading log endpoint is not configured.", action=action)
        try:
            # Apps Script web apps only accept text/plain bodies from simple requests
            response = self.session.post(
                self.url,
                data=json.dumps({"action": action, "data": data}),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Failed to {action}: {e}")
            raise SyncError(f"Failed to {action}: {e}", action=action) from e

        payload = self._decode(response, action)
        logger.debug(f"{action} succeeded: {payload.get('message')}")
        return payload

    def _decode(self, response: requests.Response, action: str) -> Dict[str, Any]:
        if not response.ok:
            logger.error(f"Failed to {action}. Response: {response.text[:500]}")
            raise SyncError(
                f"Failed to {action}. Status: {response.status_code}",
                action=action,
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Failed to {action}: response is not JSON: {response.text[:500]}")
            raise SyncError(f"Failed to {action}: invalid JSON response", action=action) from e

        if not isinstance(payload, dict):
            raise SyncError(f"Failed to {action}: unexpected response shape", action=action)
        if payload.get("status") == "error":
            details = payload.get("error") or {}
            message = details.get("message") if isinstance(details, dict) else None
            message = message or payload.get("message") or "unknown error"
            logger.error(f"{action} rejected by sheet: {message}")
            raise SyncError(f"Failed to {action}: {message}", action=action,
                            status_code=response.status_code)
        return payload
