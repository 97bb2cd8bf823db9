"""Fortschritts-Senken für Kapitel-Pipelines.

Position/Länge zählen abgeschlossene Seiten-Downloads (Erfolg oder Abbruch).
Die PDF-Erstellung wird nur als Statusmeldung angekündigt.
"""

import logging
from typing import Dict, Optional, Protocol

from core.models import Chapter, ChapterOutcome


class ProgressSink(Protocol):
    def set_length(self, chapter: Chapter, length: int) -> None:
        ...

    def set_position(self, chapter: Chapter, position: int) -> None:
        ...

    def message(self, chapter: Chapter, text: str) -> None:
        ...

    def finish(self, outcome: ChapterOutcome) -> None:
        ...


class LoggingProgressSink:
    """Schreibt Fortschritt und Ergebnis in einen Logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._lengths: Dict[str, int] = {}

    def set_length(self, chapter: Chapter, length: int) -> None:
        self._lengths[chapter.id] = length
        self.logger.info("%s: %d Bilder gefunden - Download startet…", chapter.label, length)

    def set_position(self, chapter: Chapter, position: int) -> None:
        self.logger.debug("%s: %d/%d", chapter.label, position, self._lengths.get(chapter.id, 0))

    def message(self, chapter: Chapter, text: str) -> None:
        self.logger.info("%s: %s", chapter.label, text)

    def finish(self, outcome: ChapterOutcome) -> None:
        if outcome.success:
            self.logger.info(outcome.describe())
        else:
            self.logger.error(outcome.describe())
