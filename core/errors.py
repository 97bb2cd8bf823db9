"""Fehlerklassen für Download und PDF-Erstellung.

Kapitel-Fehler (``ChapterError``) beenden nur die Pipeline des betroffenen
Kapitels. Seiten-Fehler (``PageError``) werden gezählt und übersprungen.
"""

from typing import Optional


class DownloaderError(Exception):
    """Basis aller Fehler des Downloaders."""


class TransportError(DownloaderError):
    """Eine HTTP-Anfrage konnte nicht abgeschlossen werden (Verbindung, Timeout)."""


class ChapterError(DownloaderError):
    """Fehler, der ein einzelnes Kapitel abbricht."""

    def __init__(self, reason: str, chapter_id: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.chapter_id = chapter_id


class MetadataError(ChapterError):
    """At-Home-Manifest nicht abrufbar oder fehlerhaft."""


class EmptyChapterError(ChapterError):
    """Keine einzige Seite übrig, es wird keine PDF geschrieben."""


class PdfWriteError(ChapterError):
    """Die fertige PDF konnte nicht geschrieben werden."""


class FilesystemError(ChapterError):
    """Staging- oder Zielordner nicht verfügbar."""


class PageError(DownloaderError):
    """Fehler einer einzelnen Seite."""

    def __init__(self, ordinal: int, reason: str):
        super().__init__(f"Seite {ordinal}: {reason}")
        self.ordinal = ordinal
        self.reason = reason


class ImageDecodeError(PageError):
    """Bilddaten konnten nicht dekodiert werden."""
