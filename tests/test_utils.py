from __future__ import annotations

import json
import logging
from pathlib import Path

from core.utils import (
    format_chapter_name,
    format_time,
    get_valid_filename,
    load_settings,
    log_error_to_file,
    sanitize_title,
    save_settings,
    setup_logger,
)


def test_format_chapter_name() -> None:
    assert format_chapter_name("1") == "Chapter_001"
    assert format_chapter_name("120") == "Chapter_120"
    assert format_chapter_name("12.5") == "Chapter_012.5"
    assert format_chapter_name(" 3 ") == "Chapter_003"
    assert format_chapter_name("Oneshot") == "Chapter_Oneshot"
    assert format_chapter_name("") == "Chapter_000"


def test_get_valid_filename_and_title() -> None:
    assert get_valid_filename("a b/c?.png") == "a_bc.png"
    assert sanitize_title('Kaguya-sama: Love is War?') == "Kaguya-sama_ Love is War_"
    assert sanitize_title("...") == "Manga"


def test_settings_roundtrip(tmp_path: Path) -> None:
    settings_file = tmp_path / "settings.json"
    assert load_settings(settings_file) == {}

    save_settings({"timeout": 12, "grayscale": True}, settings_file)

    assert load_settings(settings_file) == {"grayscale": True, "timeout": 12}


def test_load_settings_ignores_broken_json(tmp_path: Path) -> None:
    settings_file = tmp_path / "settings.json"
    settings_file.write_text("{not json", encoding="utf-8")
    assert load_settings(settings_file) == {}

    settings_file.write_text(json.dumps([1, 2]), encoding="utf-8")
    assert load_settings(settings_file) == {}


def test_log_error_to_file_appends(tmp_path: Path) -> None:
    log_error_to_file("first", tmp_path / "out")
    log_error_to_file("second", tmp_path / "out")

    lines = (tmp_path / "out" / "error_log.txt").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("first")


def test_setup_logger_is_idempotent(tmp_path: Path) -> None:
    name = "tests.setup_logger"
    try:
        logger = setup_logger(name, log_dir=tmp_path)
        again = setup_logger(name, log_dir=tmp_path)

        assert logger is again
        assert len(logger.handlers) == 2
        assert len(list(tmp_path.glob("*.log"))) == 1
    finally:
        for handler in list(logging.getLogger(name).handlers):
            handler.close()
            logging.getLogger(name).removeHandler(handler)


def test_format_time() -> None:
    assert format_time(65) == "01:05"
    assert format_time(3725) == "01:02:05"
    assert format_time(-3) == "00:00"
