import asyncio
import logging
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from core.config import (
    API_BASE_URL,
    DEFAULT_SETTINGS,
)
from core.errors import ChapterError, EmptyChapterError, FilesystemError
from core.models import Chapter, ChapterOutcome
from core.pdf_utils import PdfAssembler
from core.request_manager import RequestManager, Transport
from core.utils import (
    ensure_directory,
    format_chapter_name,
    get_valid_filename,
    log_error_to_file,
    sanitize_title,
)
from .fetcher import PageFetcher
from .progress import LoggingProgressSink, ProgressSink

logger = logging.getLogger(__name__)


# ---------------------------
# Options
# ---------------------------
@dataclass
class DownloadOptions:
    temp_dir: Path = Path(DEFAULT_SETTINGS["temp_dir"])
    max_workers: int = DEFAULT_SETTINGS["max_concurrent_downloads"]
    max_parallel_chapters: int = DEFAULT_SETTINGS["max_parallel_chapters"]
    timeout: float = DEFAULT_SETTINGS["timeout"]
    api_base_url: str = API_BASE_URL
    data_saver: bool = DEFAULT_SETTINGS["data_saver"]
    jpeg_quality: int = DEFAULT_SETTINGS["jpeg_quality"]
    progressive: bool = DEFAULT_SETTINGS["jpeg_progressive"]
    grayscale: bool = DEFAULT_SETTINGS["grayscale"]
    compress: bool = DEFAULT_SETTINGS["compress_pdf"]

    def __post_init__(self):
        self.temp_dir = Path(self.temp_dir)
        self.max_workers = max(1, int(self.max_workers))
        self.max_parallel_chapters = max(1, int(self.max_parallel_chapters))
        self.timeout = max(0.1, float(self.timeout))
        self.jpeg_quality = int(max(1, min(100, int(self.jpeg_quality))))

    @classmethod
    def from_settings(cls, settings: Optional[Dict[str, Any]] = None, **overrides) -> "DownloadOptions":
        """Defaults <- settings.json <- explizite Overrides (``None`` = nicht gesetzt)."""
        data = dict(DEFAULT_SETTINGS)
        data.update(settings or {})
        values = {
            "temp_dir": data["temp_dir"],
            "max_workers": data["max_concurrent_downloads"],
            "max_parallel_chapters": data["max_parallel_chapters"],
            "timeout": data["timeout"],
            "data_saver": bool(data["data_saver"]),
            "jpeg_quality": data["jpeg_quality"],
            "progressive": bool(data["jpeg_progressive"]),
            "grayscale": bool(data["grayscale"]),
            "compress": bool(data["compress_pdf"]),
        }
        if data.get("api_base_url"):
            values["api_base_url"] = data["api_base_url"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def chapter_pdf_name(chapter: Chapter, manga_title: Optional[str] = None) -> str:
    chapter_name = format_chapter_name(chapter.number)
    if manga_title:
        return f"{chapter_name} - {sanitize_title(manga_title)}.pdf"
    return f"{chapter_name}.pdf"


# ---------------------------
# Chapter pipeline
# ---------------------------
class ChapterPipeline:
    """Manifest -> Seiten-Download -> PDF für genau ein Kapitel.

    Fehler dieses Kapitels werden als ``ChapterOutcome`` gemeldet und nie
    weitergeworfen. Der Staging-Ordner wird in jedem Fall entfernt.
    """

    def __init__(
        self,
        chapter: Chapter,
        transport: Transport,
        dest_dir: Union[str, Path],
        options: Optional[DownloadOptions] = None,
        sink: Optional[ProgressSink] = None,
        manga_title: Optional[str] = None,
        output_name: Optional[str] = None,
    ):
        self.chapter = chapter
        self.transport = transport
        self.dest_dir = Path(dest_dir)
        self.options = options or DownloadOptions()
        self.sink = sink or LoggingProgressSink()
        self.output_path = self.dest_dir / (output_name or chapter_pdf_name(chapter, manga_title))
        self.staging_dir: Optional[Path] = None

    def _prepare_dirs(self) -> Path:
        try:
            ensure_directory(self.dest_dir)
            ensure_directory(self.options.temp_dir)
            prefix = f"{get_valid_filename(self.chapter.id) or 'chapter'}-"
            return Path(tempfile.mkdtemp(prefix=prefix, dir=self.options.temp_dir))
        except OSError as e:
            raise FilesystemError(f"Ordner nicht verfügbar: {e}", self.chapter.id) from e

    def _make_fetcher(self, staging_dir: Path) -> PageFetcher:
        return PageFetcher(
            self.transport,
            staging_dir,
            max_workers=self.options.max_workers,
            timeout=self.options.timeout,
            api_base_url=self.options.api_base_url,
            data_saver=self.options.data_saver,
        )

    def _make_assembler(self) -> PdfAssembler:
        return PdfAssembler(
            compress=self.options.compress,
            jpeg_quality=self.options.jpeg_quality,
            grayscale=self.options.grayscale,
            progressive=self.options.progressive,
        )

    async def run(self) -> ChapterOutcome:
        chapter = self.chapter
        dropped = 0
        try:
            self.staging_dir = self._prepare_dirs()
            fetcher = self._make_fetcher(self.staging_dir)

            self.sink.message(chapter, "Lade Manifest…")
            manifest = await fetcher.fetch_manifest(chapter.id)
            total = len(manifest.entries)
            self.sink.set_length(chapter, total)

            fetched = await fetcher.fetch_pages(
                manifest,
                chapter.id,
                on_page_done=lambda done, _total: self.sink.set_position(chapter, done),
            )
            dropped = fetched.dropped
            if dropped:
                self.sink.message(chapter, f"{dropped} von {total} Bildern fehlgeschlagen")

            self.sink.message(chapter, "Erstelle PDF…")
            try:
                assembled = await asyncio.to_thread(
                    self._make_assembler().assemble, fetched.pages, self.output_path
                )
            except EmptyChapterError:
                dropped = total
                raise
            dropped += len(assembled.skipped)
            outcome = ChapterOutcome(
                chapter=chapter,
                success=True,
                output_path=self.output_path,
                page_count=assembled.page_count,
                dropped=dropped,
            )
        except ChapterError as e:
            outcome = ChapterOutcome(
                chapter=chapter, success=False, dropped=dropped, reason=e.reason, error=type(e).__name__
            )
            log_error_to_file(f"{chapter.label} ({chapter.id}): {type(e).__name__}: {e.reason}", self.dest_dir)
        except Exception as e:
            # ein kaputtes Kapitel darf die anderen nicht mitreißen
            logger.exception("Unerwarteter Fehler bei %s (%s)", chapter.label, chapter.id)
            outcome = ChapterOutcome(
                chapter=chapter, success=False, dropped=dropped, reason=str(e) or type(e).__name__,
                error=type(e).__name__,
            )
            log_error_to_file(f"Unerwarteter Fehler bei {chapter.label} ({chapter.id}): {e}", self.dest_dir)
        finally:
            if self.staging_dir is not None:
                shutil.rmtree(self.staging_dir, ignore_errors=True)

        self.sink.finish(outcome)
        return outcome


# ---------------------------
# Coordinator
# ---------------------------
class DownloadCoordinator:
    """Startet eine ``ChapterPipeline`` pro Kapitel, höchstens
    ``max_parallel_chapters`` gleichzeitig, und wartet auf alle."""

    def __init__(
        self,
        transport: Transport,
        dest_dir: Union[str, Path],
        options: Optional[DownloadOptions] = None,
        sink: Optional[ProgressSink] = None,
        manga_title: Optional[str] = None,
    ):
        self.transport = transport
        self.dest_dir = Path(dest_dir)
        self.options = options or DownloadOptions()
        self.sink = sink or LoggingProgressSink()
        self.manga_title = manga_title

    def _output_names(self, chapters: List[Chapter]) -> List[str]:
        # gleiche Kapitelnummer (z.B. zwei Scanlation-Gruppen) -> ID-Suffix statt Überschreiben
        names: List[str] = []
        used = set()
        for chapter in chapters:
            name = chapter_pdf_name(chapter, self.manga_title)
            if name in used:
                stem = f"{name[: -len('.pdf')]} ({get_valid_filename(chapter.id)[:8]})"
                name = f"{stem}.pdf"
                counter = 2
                while name in used:
                    name = f"{stem} ({counter}).pdf"
                    counter += 1
            used.add(name)
            names.append(name)
        return names

    async def run(self, chapters: Iterable[Chapter]) -> List[ChapterOutcome]:
        chapters = list(chapters)
        slots = asyncio.Semaphore(self.options.max_parallel_chapters)

        async def _bounded(chapter: Chapter, output_name: str) -> ChapterOutcome:
            async with slots:
                pipeline = ChapterPipeline(
                    chapter,
                    self.transport,
                    self.dest_dir,
                    self.options,
                    self.sink,
                    output_name=output_name,
                )
                return await pipeline.run()

        names = self._output_names(chapters)
        return list(await asyncio.gather(*(_bounded(c, n) for c, n in zip(chapters, names))))


# Public API

async def download_chapters_async(
    chapters: Iterable[Chapter],
    dest_dir: Union[str, Path],
    options: Optional[DownloadOptions] = None,
    sink: Optional[ProgressSink] = None,
    manga_title: Optional[str] = None,
    transport: Optional[Transport] = None,
) -> List[ChapterOutcome]:
    options = options or DownloadOptions()
    if transport is not None:
        return await DownloadCoordinator(transport, dest_dir, options, sink, manga_title).run(chapters)
    async with RequestManager(timeout=options.timeout) as manager:
        return await DownloadCoordinator(manager, dest_dir, options, sink, manga_title).run(chapters)


def download_chapters(
    chapters: Iterable[Chapter],
    dest_dir: Union[str, Path],
    options: Optional[DownloadOptions] = None,
    sink: Optional[ProgressSink] = None,
    manga_title: Optional[str] = None,
    transport: Optional[Transport] = None,
) -> List[ChapterOutcome]:
    """Lädt alle Kapitel als PDFs nach ``dest_dir``. GUI-agnostisch, blockierend."""
    start = time.time()
    outcomes = asyncio.run(download_chapters_async(chapters, dest_dir, options, sink, manga_title, transport))
    logger.debug("%d Kapitel in %.1f s verarbeitet", len(outcomes), time.time() - start)
    return outcomes
