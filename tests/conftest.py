import pytest
import os
from unittest.mock import MagicMock

from settings import get_settings
from entity_store import EntityStore
from models import Book, Sentence

SHEET_URL = "https://script.google.com/macros/s/test-deployment/exec"


@pytest.fixture(autouse=True)
def env_setup():
    """Set up test environment variables"""
    os.environ["READING_LOG_API_URL"] = SHEET_URL
    os.environ["GEMINI_API_KEY"] = "test_key"
    get_settings.cache_clear()
    yield
    # Clean up
    os.environ.pop("READING_LOG_API_URL", None)
    os.environ.pop("GEMINI_API_KEY", None)
    get_settings.cache_clear()


def make_book(title, author, created_at="2024-01-01T00:00:00.000Z", **kwargs):
    book = Book.create(title, author, **kwargs)
    return book.model_copy(update={"created_at": created_at})


def make_sentence(book, text, page=None, created_at="2024-01-01T00:00:00.000Z"):
    sentence = Sentence.create(book.id, text, page=page)
    return sentence.model_copy(update={"created_at": created_at})


@pytest.fixture
def dune():
    return make_book("Dune", "Herbert", publisher="Ace", isbn="9780441013593")


@pytest.fixture
def store(dune):
    store = EntityStore()
    store.add_book(dune)
    store.add_sentence(make_sentence(dune, "Fear is the mind-killer.", page=8))
    return store


@pytest.fixture
def client():
    """Sheet client double whose writes all succeed"""
    client = MagicMock()
    client.configured = True
    client.fetch_all.return_value = ([], [])
    client.create_book.return_value = {"status": "success"}
    client.create_sentence.return_value = {"status": "success"}
    client.delete_book.return_value = {"status": "success"}
    client.delete_sentence.return_value = {"status": "success"}
    return client
