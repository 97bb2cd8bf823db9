import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Union
from urllib.parse import quote

from core.config import API_BASE_URL, DEFAULT_TIMEOUT, MAX_CONCURRENT_DOWNLOADS
from core.errors import MetadataError, TransportError
from core.models import (
    ChapterManifest,
    FetchResult,
    PageFetchFailure,
    PageManifestEntry,
    StagedPage,
)
from core.request_manager import Transport
from core.utils import get_valid_filename

logger = logging.getLogger(__name__)

# (fertig, gesamt) nach jeder abgeschlossenen Seite, egal ob Erfolg oder Abbruch
PageDone = Callable[[int, int], None]


def parse_manifest(payload, data_saver: bool = False) -> ChapterManifest:
    """Parst die At-Home-Antwort in ein ``ChapterManifest``.

    Raises:
        MetadataError: bei fehlenden oder falsch typisierten Feldern
    """
    if not isinstance(payload, dict):
        raise MetadataError("Antwort ist kein JSON-Objekt")
    if payload.get("result", "ok") != "ok":
        raise MetadataError(f"Server meldet result={payload.get('result')!r}")

    base_url = payload.get("baseUrl")
    chapter = payload.get("chapter")
    if not isinstance(base_url, str) or not base_url:
        raise MetadataError("baseUrl fehlt")
    if not isinstance(chapter, dict):
        raise MetadataError("chapter fehlt")
    chapter_hash = chapter.get("hash")
    if not isinstance(chapter_hash, str) or not chapter_hash:
        raise MetadataError("chapter.hash fehlt")

    key = "dataSaver" if data_saver else "data"
    filenames = chapter.get(key)
    if not isinstance(filenames, list) or not all(isinstance(f, str) and f for f in filenames):
        raise MetadataError(f"chapter.{key} ist keine Liste von Dateinamen")

    entries = tuple(PageManifestEntry(ordinal=i, remote_filename=name) for i, name in enumerate(filenames))
    return ChapterManifest(base_url=base_url, hash=chapter_hash, entries=entries, data_saver=data_saver)


def staged_filename(entry: PageManifestEntry, manifest_size: int) -> str:
    """Ordinal mit fester Breite voran, damit lexikalisch = numerisch sortiert."""
    width = max(4, len(str(max(0, manifest_size - 1))))
    name = get_valid_filename(entry.remote_filename) or "page"
    return f"{entry.ordinal:0{width}d}_{name}"


class PageFetcher:
    """Löst das Manifest eines Kapitels auf und lädt alle Seiten parallel.

    Höchstens ``max_workers`` Bild-Anfragen laufen gleichzeitig. Fehlgeschlagene
    Seiten werden nicht wiederholt, sondern als ``PageFetchFailure`` gezählt.
    """

    def __init__(
        self,
        transport: Transport,
        staging_dir: Union[str, Path],
        max_workers: int = MAX_CONCURRENT_DOWNLOADS,
        timeout: float = DEFAULT_TIMEOUT,
        api_base_url: str = API_BASE_URL,
        data_saver: bool = False,
    ):
        if max_workers < 1:
            raise ValueError("max_workers muss mindestens 1 sein")
        self.transport = transport
        self.staging_dir = Path(staging_dir)
        self.max_workers = max_workers
        self.timeout = timeout
        self.api_base_url = api_base_url.rstrip("/")
        self.data_saver = data_saver

    async def fetch_manifest(self, chapter_id: str) -> ChapterManifest:
        url = f"{self.api_base_url}/at-home/server/{quote(chapter_id, safe='')}"
        try:
            response = await self.transport.get(url, timeout=self.timeout)
        except TransportError as e:
            raise MetadataError(str(e), chapter_id) from e
        if not response.ok:
            raise MetadataError(f"HTTP {response.status} für {url}", chapter_id)
        try:
            payload = response.json()
        except ValueError as e:
            raise MetadataError(f"ungültiges JSON: {e}", chapter_id) from e
        try:
            return parse_manifest(payload, self.data_saver)
        except MetadataError as e:
            e.chapter_id = chapter_id
            raise

    async def _fetch_page(
        self,
        manifest: ChapterManifest,
        entry: PageManifestEntry,
        slots: asyncio.Semaphore,
    ) -> Union[StagedPage, PageFetchFailure]:
        url = manifest.image_url(entry)
        async with slots:
            try:
                response = await self.transport.get(url, timeout=self.timeout)
            except TransportError as e:
                return PageFetchFailure(entry.ordinal, entry.remote_filename, str(e))

        if not response.ok:
            return PageFetchFailure(entry.ordinal, entry.remote_filename, f"HTTP {response.status}")
        if not response.body:
            return PageFetchFailure(entry.ordinal, entry.remote_filename, "leere Antwort")

        path = self.staging_dir / staged_filename(entry, len(manifest.entries))
        try:
            await asyncio.to_thread(path.write_bytes, response.body)
        except OSError as e:
            return PageFetchFailure(entry.ordinal, entry.remote_filename, f"Schreibfehler: {e}")
        return StagedPage(ordinal=entry.ordinal, local_path=path, byte_size=len(response.body))

    async def fetch(self, chapter_id: str, on_page_done: Optional[PageDone] = None) -> FetchResult:
        """Lädt alle Seiten eines Kapitels in den Staging-Ordner.

        Returns:
            ``FetchResult`` mit nach Ordinal sortierten Seiten; Lücken fehlen einfach.

        Raises:
            MetadataError: Manifest nicht abrufbar oder fehlerhaft
        """
        manifest = await self.fetch_manifest(chapter_id)
        return await self.fetch_pages(manifest, chapter_id, on_page_done)

    async def fetch_pages(
        self,
        manifest: ChapterManifest,
        chapter_id: str = "",
        on_page_done: Optional[PageDone] = None,
    ) -> FetchResult:
        total = len(manifest.entries)
        result = FetchResult(manifest_size=total)
        logger.debug("Kapitel %s: %d Seiten im Manifest", chapter_id, total)
        if not total:
            return result

        slots = asyncio.Semaphore(self.max_workers)
        done = 0

        async def _run(entry: PageManifestEntry) -> Union[StagedPage, PageFetchFailure]:
            nonlocal done
            outcome = await self._fetch_page(manifest, entry, slots)
            done += 1
            if on_page_done:
                on_page_done(done, total)
            return outcome

        # alle Tasks laufen zu Ende, bevor ein unerwarteter Fehler weitergereicht wird
        outcomes = await asyncio.gather(
            *(_run(entry) for entry in manifest.entries), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        staged: List[StagedPage] = []
        for outcome in outcomes:
            if isinstance(outcome, StagedPage):
                staged.append(outcome)
            else:
                logger.warning(
                    "Kapitel %s: Bild %d (%s) übersprungen: %s",
                    chapter_id, outcome.ordinal, outcome.remote_filename, outcome.reason,
                )
                result.failures.append(outcome)

        result.pages = sorted(staged, key=lambda p: p.ordinal)
        result.failures.sort(key=lambda f: f.ordinal)
        return result
