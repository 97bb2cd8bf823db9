"""Datenmodelle für Kapitel, Manifest, gestagte Seiten und Ergebnisse."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import quote


@dataclass(frozen=True)
class Chapter:
    id: str
    number: str
    display_name: str = ""

    @property
    def label(self) -> str:
        return f"Chapter {self.number}"


@dataclass(frozen=True)
class PageManifestEntry:
    ordinal: int
    remote_filename: str


@dataclass(frozen=True)
class ChapterManifest:
    """Geparste Antwort von ``/at-home/server/{id}``."""

    base_url: str
    hash: str
    entries: Tuple[PageManifestEntry, ...]
    data_saver: bool = False

    def image_url(self, entry: PageManifestEntry) -> str:
        quality = "data-saver" if self.data_saver else "data"
        return f"{self.base_url.rstrip('/')}/{quality}/{self.hash}/{quote(entry.remote_filename)}"


@dataclass(frozen=True)
class StagedPage:
    ordinal: int
    local_path: Path
    byte_size: int


@dataclass(frozen=True)
class PageFetchFailure:
    ordinal: int
    remote_filename: str
    reason: str


@dataclass
class FetchResult:
    manifest_size: int
    pages: List[StagedPage] = field(default_factory=list)
    failures: List[PageFetchFailure] = field(default_factory=list)

    @property
    def dropped(self) -> int:
        return len(self.failures)


@dataclass(frozen=True)
class PdfPage:
    ordinal: int
    media_width: int
    media_height: int


@dataclass
class AssemblyResult:
    output_path: Path
    pages: List[PdfPage] = field(default_factory=list)
    # (ordinal, Grund) für Seiten, die beim Dekodieren verworfen wurden
    skipped: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass
class ChapterOutcome:
    chapter: Chapter
    success: bool
    output_path: Optional[Path] = None
    page_count: int = 0
    dropped: int = 0
    reason: str = ""
    error: Optional[str] = None

    def describe(self) -> str:
        if self.success:
            text = f"{self.chapter.label}: {self.page_count} Seiten -> {self.output_path}"
            if self.dropped:
                text += f" ({self.dropped} Seiten übersprungen)"
            return text
        return f"{self.chapter.label} fehlgeschlagen: {self.reason}"
