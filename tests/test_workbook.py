from io import BytesIO

import pandas as pd
import pytest

from exceptions import FormatError
from exporter import export_rows
from workbook import read_workbook, write_workbook


def test_export_workbook_reads_back(tmp_path, store):
    path = tmp_path / "ReadingLog_Export.xlsx"
    rows = export_rows(store.books, store.sentences)
    write_workbook(str(path), rows.books, rows.sentences)

    book_rows, sentence_rows = read_workbook(str(path))

    assert book_rows[0]["Title"] == "Dune"
    assert book_rows[0]["Author"] == "Herbert"
    assert str(book_rows[0]["ISBN"]) == "9780441013593"
    assert sentence_rows[0]["Sentence"] == "Fear is the mind-killer."
    assert int(sentence_rows[0]["Page"]) == 8


def test_missing_sentences_sheet_raises_format_error(tmp_path):
    path = tmp_path / "books_only.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([{"Title": "Dune", "Author": "Herbert"}]).to_excel(writer, sheet_name="Books", index=False)

    with pytest.raises(FormatError, match="'Sentences' sheet not found"):
        read_workbook(str(path))


def test_missing_books_sheet_raises_format_error(tmp_path):
    path = tmp_path / "wrong.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([{"A": 1}]).to_excel(writer, sheet_name="Sheet1", index=False)

    with pytest.raises(FormatError, match="'Books' sheet not found"):
        read_workbook(str(path))


def test_unreadable_file_raises_format_error():
    with pytest.raises(FormatError):
        read_workbook(BytesIO(b"this is not a workbook"))


def test_header_whitespace_is_ignored(tmp_path):
    path = tmp_path / "padded.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([{" Title ": "Dune", "Author ": "Herbert"}]).to_excel(writer, sheet_name="Books", index=False)
        pd.DataFrame(columns=["Book Title", "Author", "Sentence", "Page"]).to_excel(
            writer, sheet_name="Sentences", index=False)

    book_rows, sentence_rows = read_workbook(str(path))
    assert book_rows == [{"Title": "Dune", "Author": "Herbert"}]
    assert sentence_rows == []
