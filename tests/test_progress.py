from __future__ import annotations

import logging
from pathlib import Path

from core.models import Chapter, ChapterOutcome
from logic.progress import LoggingProgressSink


def test_logging_sink_logs_outcomes(caplog) -> None:
    sink = LoggingProgressSink(logging.getLogger("tests.progress"))
    chapter = Chapter("c1", "9")

    with caplog.at_level(logging.INFO, logger="tests.progress"):
        sink.set_length(chapter, 2)
        sink.finish(ChapterOutcome(chapter, True, Path("a.pdf"), page_count=1, dropped=1))
        sink.finish(ChapterOutcome(chapter, False, reason="kaputt"))

    assert "2 Bilder gefunden" in caplog.text
    assert "(1 Seiten übersprungen)" in caplog.text
    assert any(r.levelno == logging.ERROR and "kaputt" in r.getMessage() for r in caplog.records)
