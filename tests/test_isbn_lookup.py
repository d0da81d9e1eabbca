from unittest.mock import MagicMock, patch

import pytest
import requests

from exceptions import BookAPIError, ValidationError
from settings import get_settings
from isbn_lookup import _fetch_volumes, is_valid_isbn, lookup_isbn, normalize_isbn

VOLUME = {
    "totalItems": 1,
    "items": [{
        "volumeInfo": {
            "title": "Dune",
            "authors": ["Frank Herbert", "Brian Herbert"],
            "publisher": "Ace",
            "imageLinks": {"smallThumbnail": "http://books.google.com/small.jpg"},
        }
    }],
}


def test_normalize_and_validate_isbn():
    assert normalize_isbn("978-0-441 01359-3") == "9780441013593"
    assert is_valid_isbn("978-0-441-01359-3")
    assert is_valid_isbn("044101359X")
    assert not is_valid_isbn("12345")
    assert not is_valid_isbn("")


def test_invalid_isbn_is_rejected_before_any_request():
    with patch("isbn_lookup._fetch_volumes") as mock_fetch:
        with pytest.raises(ValidationError):
            lookup_isbn("not-an-isbn")
        mock_fetch.assert_not_called()


@patch("isbn_lookup._fetch_volumes")
def test_lookup_maps_first_volume(mock_fetch):
    mock_fetch.return_value = VOLUME
    book = lookup_isbn("978-0-441-01359-3")

    mock_fetch.assert_called_once_with("9780441013593")
    assert book == {
        "title": "Dune",
        "author": "Frank Herbert, Brian Herbert",
        "publisher": "Ace",
        "isbn": "9780441013593",
        "coverImage": "http://books.google.com/small.jpg",
    }


@patch("isbn_lookup._fetch_volumes")
def test_lookup_defaults_unknown_author(mock_fetch):
    mock_fetch.return_value = {"totalItems": 1, "items": [{"volumeInfo": {"title": "Anonymous"}}]}
    book = lookup_isbn("9780441013593")
    assert book["author"] == "Unknown Author"
    assert book["coverImage"] is None


@patch("isbn_lookup._fetch_volumes")
def test_lookup_returns_none_when_nothing_found(mock_fetch):
    mock_fetch.return_value = {"totalItems": 0}
    assert lookup_isbn("9780441013593") is None


@patch("isbn_lookup._fetch_volumes")
def test_lookup_wraps_transport_errors(mock_fetch):
    mock_fetch.side_effect = requests.ConnectionError("offline")
    with pytest.raises(BookAPIError):
        lookup_isbn("9780441013593")


@patch("isbn_lookup.requests.get")
def test_fetch_volumes_queries_google_books(mock_get, monkeypatch):
    monkeypatch.delenv("GOOGLE_BOOKS_API_KEY", raising=False)
    get_settings.cache_clear()
    response = MagicMock()
    response.json.return_value = VOLUME
    mock_get.return_value = response

    assert _fetch_volumes("9780441013593") == VOLUME
    args, kwargs = mock_get.call_args
    assert args[0] == "https://www.googleapis.com/books/v1/volumes"
    assert kwargs["params"] == {"q": "isbn:9780441013593"}
