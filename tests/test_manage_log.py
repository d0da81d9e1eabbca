from unittest.mock import MagicMock, patch

import manage_log
from exceptions import SyncError
from importer import ImportResult


@patch("manage_log.ReadingLog")
def test_export_command(mock_log_cls, tmp_path):
    log = mock_log_cls.return_value
    log.export_workbook.return_value = True
    target = str(tmp_path / "out.xlsx")

    assert manage_log.main(["export", target]) == 0
    log.load.assert_called_once()
    log.export_workbook.assert_called_once_with(target)


@patch("manage_log.ReadingLog")
def test_import_command(mock_log_cls):
    log = mock_log_cls.return_value
    log.import_workbook.return_value = ImportResult(books_added=2, sentences_added=5, skipped_sentences=1)

    assert manage_log.main(["import", "ReadingLog_Export.xlsx"]) == 0
    log.import_workbook.assert_called_once_with("ReadingLog_Export.xlsx")


@patch("manage_log.ReadingLog")
def test_failure_exits_non_zero(mock_log_cls):
    mock_log_cls.return_value.load.side_effect = SyncError("Failed to fetch data from the sheet")
    assert manage_log.main(["stats"]) == 1


@patch("manage_log.ReadingLog")
def test_stats_command(mock_log_cls):
    log = mock_log_cls.return_value
    log.books.return_value = [MagicMock(id="b1", title="Dune", author="Herbert")]
    log.store.sentences = ()
    log.store.sentences_for.return_value = []
    assert manage_log.main(["stats"]) == 0
