from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from contact_import.services.progress import ProgressTracker, SheetProgressIndicator, is_tty_enabled


def test_disabled_without_tty():
    with patch("contact_import.services.progress.is_tty_enabled", return_value=False):
        with patch("contact_import.services.progress.tqdm") as mock_tqdm:
            tracker = ProgressTracker(3)
            tracker.start_file(Path("a.xlsx"))
            tracker.finish_file(success=True, inserted_rows=10)
            tracker.close()
    mock_tqdm.assert_not_called()
    assert tracker.pbar is None
    # 表示しなくても集計は行う
    assert (tracker.files_started, tracker.files_ok, tracker.rows_inserted) == (1, 1, 10)


def test_enabled_with_tty_updates_bar():
    bar = MagicMock()
    with patch("contact_import.services.progress.is_tty_enabled", return_value=True):
        with patch("contact_import.services.progress.tqdm", return_value=bar) as mock_tqdm:
            with ProgressTracker(2) as tracker:
                tracker.start_file(Path("north.xlsx"))
                tracker.finish_file(success=True, inserted_rows=5)
                tracker.start_file(Path("south.xlsx"))
                tracker.finish_file(success=False)
    kwargs = mock_tqdm.call_args.kwargs
    assert kwargs["total"] == 2
    assert kwargs["unit"] == "file"
    bar.set_description.assert_any_call("Importing files (north.xlsx)")
    assert bar.update.call_count == 2
    bar.set_postfix.assert_called_with(ok=1, failed=1, rows=5)
    bar.close.assert_called_once()


def test_sheet_indicator_writes_only_on_tty():
    with patch("contact_import.services.progress.is_tty_enabled", return_value=True):
        with patch("contact_import.services.progress.tqdm") as mock_tqdm:
            ind = SheetProgressIndicator("a.xlsx")
            ind.start_sheet("Contacts")
            ind.finish_sheet(success=True, rows_inserted=12)
            ind.start_sheet("Empty")
            ind.finish_sheet(success=False)
    written = [c.args[0] for c in mock_tqdm.write.call_args_list]
    assert written == [
        "  a.xlsx sheet 1: Contacts - 12 rows ✓",
        "  a.xlsx sheet 2: Empty ✗",
    ]
    # 1 シート 1 行、改行なし出力はしない
    assert all("end" not in c.kwargs for c in mock_tqdm.write.call_args_list)

    with patch("contact_import.services.progress.is_tty_enabled", return_value=False):
        with patch("contact_import.services.progress.tqdm") as mock_tqdm:
            ind = SheetProgressIndicator("a.xlsx")
            ind.start_sheet("Contacts")
            ind.finish_sheet()
    mock_tqdm.write.assert_not_called()


def test_is_tty_enabled_follows_stdout():
    with patch("contact_import.services.progress.sys") as mock_sys:
        mock_sys.stdout.isatty.return_value = False
        assert is_tty_enabled() is False
