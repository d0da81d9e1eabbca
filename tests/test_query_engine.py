import locale
from unittest.mock import patch

import pytest

from models import SearchType
from query_engine import (search, search_books, search_sentences, sentences_for_book, sort_books, sort_sentences,
                          use_system_collation)
from conftest import make_book, make_sentence


@pytest.fixture
def library():
    dune = make_book("Dune", "Frank Herbert", publisher="Ace", isbn="9780441013593",
                     created_at="2024-01-01T00:00:00.000Z")
    emma = make_book("emma", "Jane Austen", created_at="2024-03-01T00:00:00.000Z")
    annals = make_book("Annals", "Tacitus", publisher="Penguin", created_at="2024-02-01T00:00:00.000Z")
    return [dune, emma, annals]


def test_blank_query_matches_nothing(library):
    sentences = [make_sentence(library[0], "Fear is the mind-killer.")]
    assert search_sentences(sentences, "") == []
    assert search_sentences(sentences, "   ") == []
    assert search_books(library, "  ", SearchType.TITLE) == []


def test_sentence_search_is_case_insensitive(library):
    sentences = [
        make_sentence(library[0], "Fear is the mind-killer."),
        make_sentence(library[1], "It is a truth universally acknowledged."),
    ]
    results = search(library, sentences, "MIND", "sentence")
    assert [s.text for s in results] == ["Fear is the mind-killer."]


@pytest.mark.parametrize("search_type, query, expected", [
    ("title", "EMM", ["emma"]),
    ("author", "austen", ["emma"]),
    ("publisher", "pen", ["Annals"]),
    ("isbn", "044101", ["Dune"]),
])
def test_book_search_by_field(library, search_type, query, expected):
    assert [b.title for b in search_books(library, query, search_type)] == expected


def test_book_search_skips_missing_optional_fields(library):
    assert [b.title for b in search_books(library, "a", "publisher")] == ["Dune"]


def test_sort_books_newest_first_by_default(library):
    assert [b.title for b in sort_books(library)] == ["emma", "Annals", "Dune"]


def test_sort_books_by_title_ignores_case(library):
    assert [b.title for b in sort_books(library, "title")] == ["Annals", "Dune", "emma"]


def test_sort_books_by_title_places_accented_letters_with_base_letter():
    books = [make_book("Zorro", "McCulley"), make_book("Émile", "Zola"), make_book("Anna", "Tolstoy")]
    assert [b.title for b in sort_books(books, "title")] == ["Anna", "Émile", "Zorro"]


def test_use_system_collation_tolerates_missing_locale():
    with patch("query_engine.locale.setlocale", side_effect=locale.Error("unsupported locale setting")):
        use_system_collation()


def test_sort_books_by_author(library):
    assert [b.author for b in sort_books(library, "author")] == ["Frank Herbert", "Jane Austen", "Tacitus"]


def test_sort_does_not_mutate_input(library):
    original = list(library)
    sort_books(library, "title")
    assert library == original


def test_sentences_without_page_sort_last(library):
    book = library[0]
    sentences = [
        make_sentence(book, "no page, newest", created_at="2024-05-01T00:00:00.000Z"),
        make_sentence(book, "page 10", page=10, created_at="2024-01-01T00:00:00.000Z"),
        make_sentence(book, "page 2", page=2, created_at="2024-01-02T00:00:00.000Z"),
        make_sentence(book, "no page, oldest", created_at="2023-01-01T00:00:00.000Z"),
        make_sentence(book, "page 2 newer", page=2, created_at="2024-02-01T00:00:00.000Z"),
    ]
    assert [s.text for s in sort_sentences(sentences, "page")] == [
        "page 2 newer", "page 2", "page 10", "no page, newest", "no page, oldest",
    ]


def test_sentences_by_creation_time_newest_first(library):
    book = library[0]
    sentences = [
        make_sentence(book, "old", page=1, created_at="2024-01-01T00:00:00.000Z"),
        make_sentence(book, "new", page=9, created_at="2024-06-01T00:00:00.000Z"),
    ]
    assert [s.text for s in sort_sentences(sentences, "createdAt")] == ["new", "old"]


def test_sentences_for_book_filters_by_book(library):
    dune, emma = library[0], library[1]
    sentences = [make_sentence(dune, "Dune quote", page=1), make_sentence(emma, "Emma quote")]
    assert [s.text for s in sentences_for_book(sentences, emma.id)] == ["Emma quote"]
